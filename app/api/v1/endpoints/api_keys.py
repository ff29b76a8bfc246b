import logging
from typing import Optional
from fastapi import APIRouter, Depends, Query, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession
from app.database import get_db
from app.api.deps import ActivityContext, get_activity_context, get_current_user
from app.middleware.rate_limit import rate_limit_sensitive
from app.models.user import User
from app.schemas.api_key import (
    ApiKeyCreateRequest,
    ApiKeyUpdateRequest,
    ApiKeyResponse,
    ApiKeyCreatedResponse,
    ApiKeyListResponse,
)
from app.services.activity_service import ActivityActions, EntityTypes
from app.services.api_key_service import ApiKeyService

logger = logging.getLogger(__name__)

router = APIRouter()


def _created_response(api_key, raw_key: str) -> ApiKeyCreatedResponse:
    return ApiKeyCreatedResponse(
        **ApiKeyResponse.model_validate(api_key).model_dump(),
        key=raw_key
    )


@router.get("", response_model=ApiKeyListResponse)
async def list_api_keys(
    team_id: Optional[str] = Query(None, alias="teamId"),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    List active API keys of the caller, or of a team the caller belongs to.
    Key hashes are never returned.
    """
    keys = await ApiKeyService.list_api_keys(db, user, team_id=team_id)
    return ApiKeyListResponse(
        api_keys=[ApiKeyResponse.model_validate(key) for key in keys],
        total=len(keys)
    )


@router.post("", response_model=ApiKeyCreatedResponse, status_code=status.HTTP_201_CREATED)
@rate_limit_sensitive()
async def create_api_key(
    request: Request,
    payload: ApiKeyCreateRequest,
    activity: ActivityContext = Depends(get_activity_context),
    db: AsyncSession = Depends(get_db)
):
    """
    Issue a new API key.
    The full key is returned only in this response.
    """
    api_key, raw_key = await ApiKeyService.create_api_key(
        db=db,
        user=activity.user,
        name=payload.name,
        permissions=payload.permissions,
        team_id=payload.team_id,
        expires_at=payload.expires_at,
        request_id=activity.request_id
    )

    activity.log_action(
        EntityTypes.API_KEY,
        ActivityActions.CREATE,
        entity_id=api_key.id,
        details={"name": api_key.name, "permissions": api_key.permissions}
    )

    return _created_response(api_key, raw_key)


@router.patch("/{key_id}", response_model=ApiKeyResponse)
async def update_api_key(
    key_id: str,
    payload: ApiKeyUpdateRequest,
    activity: ActivityContext = Depends(get_activity_context),
    db: AsyncSession = Depends(get_db)
):
    """Rename an API key or change its permissions (owner or admin)."""
    api_key = await ApiKeyService.update_api_key(
        db=db,
        key_id=key_id,
        user=activity.user,
        name=payload.name,
        permissions=payload.permissions
    )

    activity.log_action(
        EntityTypes.API_KEY,
        ActivityActions.UPDATE,
        entity_id=api_key.id,
        details=payload.model_dump(exclude_none=True)
    )

    return ApiKeyResponse.model_validate(api_key)


@router.delete("/{key_id}", status_code=status.HTTP_204_NO_CONTENT)
async def revoke_api_key(
    key_id: str,
    activity: ActivityContext = Depends(get_activity_context),
    db: AsyncSession = Depends(get_db)
):
    """Revoke an API key (owner or admin). Revoked keys stop authenticating."""
    api_key = await ApiKeyService.revoke_api_key(db=db, key_id=key_id, user=activity.user)

    activity.log_action(EntityTypes.API_KEY, ActivityActions.REVOKE, entity_id=api_key.id)

    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{key_id}/rotate", response_model=ApiKeyCreatedResponse)
@rate_limit_sensitive()
async def rotate_api_key(
    request: Request,
    key_id: str,
    activity: ActivityContext = Depends(get_activity_context),
    db: AsyncSession = Depends(get_db)
):
    """
    Rotate an API key: a new key is issued and the old one stops working.
    The new key is returned only in this response.
    """
    api_key, raw_key = await ApiKeyService.rotate_api_key(db=db, key_id=key_id, user=activity.user)

    activity.log_action(
        EntityTypes.API_KEY,
        ActivityActions.UPDATE,
        entity_id=api_key.id,
        details={"rotated": True}
    )

    return _created_response(api_key, raw_key)
