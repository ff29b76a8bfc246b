from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession
from app.database import get_db
from app.api.deps import ActivityContext, get_activity_context, get_current_principal
from app.core.pagination import PaginationQuery, pagination_params
from app.models.user import User
from app.schemas.project import (
    ProjectCreateRequest,
    ProjectUpdateRequest,
    ProjectResponse,
    ProjectListResponse,
)
from app.services.activity_service import ActivityActions, EntityTypes
from app.services.project_service import ProjectService

router = APIRouter()


@router.get("", response_model=ProjectListResponse)
async def list_projects(
    query: PaginationQuery = Depends(pagination_params),
    user: User = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db)
):
    """
    List projects visible to the caller.
    Supports page, limit, search (name/description), sortBy and sortOrder.
    Accepts a bearer token or an X-API-Key header.
    """
    result = await ProjectService.list_projects(
        db, user, query, transform=ProjectResponse.model_validate
    )
    return ProjectListResponse(data=result.data, pagination=result.pagination)


@router.get("/{project_id}", response_model=ProjectResponse)
async def get_project(
    project_id: str,
    user: User = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db)
):
    """Get a project. Owners and admins only."""
    project = await ProjectService.get_project(db, project_id, user)
    return ProjectResponse.model_validate(project)


@router.post("", response_model=ProjectResponse, status_code=status.HTTP_201_CREATED)
async def create_project(
    payload: ProjectCreateRequest,
    activity: ActivityContext = Depends(get_activity_context),
    db: AsyncSession = Depends(get_db)
):
    project = await ProjectService.create_project(
        db,
        activity.user,
        name=payload.name,
        description=payload.description,
        team_id=payload.team_id
    )
    activity.log_action(EntityTypes.PROJECT, ActivityActions.CREATE, entity_id=project.id)
    return ProjectResponse.model_validate(project)


@router.patch("/{project_id}", response_model=ProjectResponse)
async def update_project(
    project_id: str,
    payload: ProjectUpdateRequest,
    user: User = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db)
):
    project = await ProjectService.update_project(
        db,
        project_id,
        user,
        name=payload.name,
        description=payload.description,
        status=payload.status
    )
    return ProjectResponse.model_validate(project)


@router.delete("/{project_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_project(
    project_id: str,
    user: User = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db)
):
    await ProjectService.delete_project(db, project_id, user)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
