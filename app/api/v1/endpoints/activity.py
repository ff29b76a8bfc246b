from typing import Optional
from datetime import datetime
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from app.database import get_db
from app.api.deps import get_current_user, require_admin
from app.core.exceptions import ForbiddenError
from app.core.pagination import PaginationQuery, pagination_params
from app.models.user import User, UserRole
from app.schemas.activity import ActivityLogResponse, ActivityListResponse
from app.services.activity_service import ActivityService

router = APIRouter()


@router.get("", response_model=ActivityListResponse)
async def list_activity(
    entity_type: Optional[str] = Query(None, alias="entityType"),
    action: Optional[str] = Query(None),
    user_id: Optional[str] = Query(None, alias="userId"),
    start_date: Optional[datetime] = Query(None, alias="startDate"),
    end_date: Optional[datetime] = Query(None, alias="endDate"),
    query: PaginationQuery = Depends(pagination_params),
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """
    Query the activity log with filters, newest first.
    Admin only.
    """
    result = await ActivityService.query_activity(
        db,
        query,
        entity_type=entity_type,
        action=action,
        user_id=user_id,
        start_date=start_date,
        end_date=end_date,
        transform=ActivityLogResponse.model_validate
    )
    return ActivityListResponse(data=result.data, pagination=result.pagination)


@router.get("/user/{user_id}", response_model=ActivityListResponse)
async def get_user_activity(
    user_id: str,
    query: PaginationQuery = Depends(pagination_params),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Activity of one user. Users may read their own; admins anyone's."""
    if user.id != user_id and user.role != UserRole.ADMIN.value:
        raise ForbiddenError("You can only view your own activity")

    result = await ActivityService.get_user_activity(
        db, user_id, query, transform=ActivityLogResponse.model_validate
    )
    return ActivityListResponse(data=result.data, pagination=result.pagination)
