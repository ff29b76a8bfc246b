import logging
from typing import Any, Callable, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from app.core import repositories
from app.core.ownership import verify_ownership, verify_ownership_or_admin
from app.core.pagination import PaginatedResult, PaginationQuery, build_paginated_response
from app.core.team_access import verify_team_membership
from app.models.project import Project
from app.models.user import User, UserRole

logger = logging.getLogger(__name__)

PROJECT_SORTABLE_FIELDS = {
    "name": Project.name,
    "created_at": Project.created_at,
    "updated_at": Project.updated_at,
}


class ProjectService:
    """Service for projects, the representative owned resource."""

    @staticmethod
    async def list_projects(
        db: AsyncSession,
        user: User,
        query: PaginationQuery,
        transform: Optional[Callable[[Any], Any]] = None
    ) -> PaginatedResult:
        """List the user's projects (all projects for admins), paginated and searchable."""
        base_filters = [] if user.role == UserRole.ADMIN.value else [Project.owner_id == user.id]

        return await build_paginated_response(
            db,
            repositories.projects,
            query,
            base_filters=base_filters,
            search_fields=["name", "description"],
            sortable_fields=PROJECT_SORTABLE_FIELDS,
            default_sort="created_at",
            transform=transform,
        )

    @staticmethod
    async def get_project(db: AsyncSession, project_id: str, user: User) -> Project:
        """
        Raises:
            NotFoundError if the project doesn't exist
            ForbiddenError if it belongs to someone else and the user is not admin
        """
        return await verify_ownership_or_admin(
            db, repositories.projects, project_id, user.id, user.role
        )

    @staticmethod
    async def create_project(
        db: AsyncSession,
        user: User,
        name: str,
        description: Optional[str] = None,
        team_id: Optional[str] = None
    ) -> Project:
        """Create a project owned by the user, optionally inside a team the user belongs to."""
        if team_id:
            await verify_team_membership(db, team_id, user.id, user.role)

        project = Project(
            name=name,
            description=description,
            owner_id=user.id,
            team_id=team_id,
        )
        db.add(project)
        await db.commit()
        await db.refresh(project)

        logger.info(f"Project created: {project.id} by user {user.id}")
        return project

    @staticmethod
    async def update_project(
        db: AsyncSession,
        project_id: str,
        user: User,
        name: Optional[str] = None,
        description: Optional[str] = None,
        status: Optional[str] = None
    ) -> Project:
        """Update a project owned by the user. Foreign projects are reported as missing."""
        project = await verify_ownership(db, repositories.projects, project_id, user.id)

        if name is not None:
            project.name = name
        if description is not None:
            project.description = description
        if status is not None:
            project.status = status

        await db.commit()
        await db.refresh(project)
        return project

    @staticmethod
    async def delete_project(db: AsyncSession, project_id: str, user: User) -> None:
        """Delete a project owned by the user. Foreign projects are reported as missing."""
        project = await verify_ownership(db, repositories.projects, project_id, user.id)
        await db.delete(project)
        await db.commit()
        logger.info(f"Project deleted: {project_id} by user {user.id}")
