from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession
from app.database import get_db
from app.api.deps import get_current_user
from app.core.team_access import get_team_role
from app.models.user import User
from app.schemas.team import TeamMemberResponse, TeamMembersResponse, TeamRoleResponse
from app.services.team_service import TeamService

router = APIRouter()


@router.get("/{team_id}/members", response_model=TeamMembersResponse)
async def list_team_members(
    team_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """List team members. Members and admins only."""
    team, members = await TeamService.list_members(db, team_id, user)
    return TeamMembersResponse(
        team_id=team.id,
        owner_id=team.owner_id,
        members=[TeamMemberResponse.model_validate(m) for m in members]
    )


@router.get("/{team_id}/role", response_model=TeamRoleResponse)
async def get_my_team_role(
    team_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Caller's role in a team ("owner", the membership role, or null)."""
    role = await get_team_role(db, team_id, user.id)
    return TeamRoleResponse(team_id=team_id, role=role)


@router.delete("/{team_id}/members/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_team_member(
    team_id: str,
    user_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Remove a member. Team owner or admin only."""
    await TeamService.remove_member(db, team_id, user_id, user)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
