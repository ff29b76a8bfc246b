from typing import Optional
from fastapi import APIRouter, Depends, Query, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession
from app.database import get_db
from app.api.deps import ActivityContext, get_activity_context, get_credential_service, get_current_user
from app.middleware.rate_limit import rate_limit_sensitive
from app.models.user import User
from app.schemas.credential import (
    CredentialCreateRequest,
    CredentialUpdateRequest,
    CredentialResponse,
    CredentialListResponse,
)
from app.services.activity_service import ActivityActions, EntityTypes
from app.services.credential_service import CredentialService

router = APIRouter()


@router.get("", response_model=CredentialListResponse)
async def list_credentials(
    service: Optional[str] = Query(None, description="Filter by service"),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """List the caller's service credentials. Keys are never exposed."""
    credentials = await CredentialService.list_credentials(db, user.id, service=service)
    return CredentialListResponse(
        credentials=[CredentialResponse.model_validate(c) for c in credentials],
        total=len(credentials)
    )


@router.post("", response_model=CredentialResponse, status_code=status.HTTP_201_CREATED)
@rate_limit_sensitive()
async def create_credential(
    request: Request,
    payload: CredentialCreateRequest,
    activity: ActivityContext = Depends(get_activity_context),
    credential_service: CredentialService = Depends(get_credential_service),
    db: AsyncSession = Depends(get_db)
):
    """Add a service credential. The key is encrypted before it is stored."""
    credential = await credential_service.create_credential(
        db=db,
        user_id=activity.user.id,
        service=payload.service,
        api_key=payload.api_key,
        request_id=activity.request_id
    )

    activity.log_action(
        EntityTypes.CREDENTIAL,
        ActivityActions.CREATE,
        entity_id=credential.id,
        details={"service": credential.service}
    )

    return CredentialResponse.model_validate(credential)


@router.patch("/{credential_id}", response_model=CredentialResponse)
async def update_credential(
    credential_id: str,
    payload: CredentialUpdateRequest,
    activity: ActivityContext = Depends(get_activity_context),
    credential_service: CredentialService = Depends(get_credential_service),
    db: AsyncSession = Depends(get_db)
):
    """Replace the key and/or toggle a credential. Only the owner can see it."""
    credential = await credential_service.update_credential(
        db=db,
        credential_id=credential_id,
        user_id=activity.user.id,
        api_key=payload.api_key,
        is_active=payload.is_active
    )

    activity.log_action(
        EntityTypes.CREDENTIAL,
        ActivityActions.UPDATE,
        entity_id=credential.id,
        details={"key_replaced": payload.api_key is not None, "is_active": credential.is_active}
    )

    return CredentialResponse.model_validate(credential)


@router.delete("/{credential_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_credential(
    credential_id: str,
    activity: ActivityContext = Depends(get_activity_context),
    db: AsyncSession = Depends(get_db)
):
    """Delete a credential owned by the caller."""
    await CredentialService.delete_credential_by_id(db, credential_id, activity.user.id)

    activity.log_action(EntityTypes.CREDENTIAL, ActivityActions.DELETE, entity_id=credential_id)

    return Response(status_code=status.HTTP_204_NO_CONTENT)
