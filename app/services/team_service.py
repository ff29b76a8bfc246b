import logging
from typing import List, Tuple
from sqlalchemy import and_, select
from sqlalchemy.ext.asyncio import AsyncSession
from app.core.exceptions import NotFoundError, ValidationError
from app.core.ownership import verify_resource_exists
from app.core import repositories
from app.core.team_access import verify_team_membership, verify_team_owner
from app.models.team import Team, TeamMember
from app.models.user import User

logger = logging.getLogger(__name__)


class TeamService:
    """Service for team membership queries and removal."""

    @staticmethod
    async def list_members(db: AsyncSession, team_id: str, user: User) -> Tuple[Team, List[TeamMember]]:
        """
        Members of a team, visible to its members and admins.

        Raises:
            ForbiddenError if the user is not a member of the team
        """
        await verify_team_membership(db, team_id, user.id, user.role)
        team = await verify_resource_exists(db, repositories.teams, team_id)

        result = await db.execute(
            select(TeamMember)
            .where(TeamMember.team_id == team_id)
            .order_by(TeamMember.joined_at.asc(), TeamMember.id.asc())
        )
        return team, list(result.scalars().all())

    @staticmethod
    async def remove_member(db: AsyncSession, team_id: str, member_user_id: str, user: User) -> None:
        """
        Remove a member from a team (team owner or admin).

        Raises:
            NotFoundError if the team or the membership doesn't exist
            ForbiddenError if the user is not the team owner
            ValidationError if the target is the team owner
        """
        await verify_team_owner(db, team_id, user.id, user.role)
        team = await verify_resource_exists(db, repositories.teams, team_id)

        if team.owner_id == member_user_id:
            raise ValidationError("The team owner cannot be removed from the team")

        result = await db.execute(
            select(TeamMember).where(
                and_(TeamMember.team_id == team_id, TeamMember.user_id == member_user_id)
            )
        )
        membership = result.scalar_one_or_none()
        if membership is None:
            raise NotFoundError("Team member not found")

        await db.delete(membership)
        await db.commit()
        logger.info(f"Team member removed: team={team_id} user={member_user_id} by {user.id}")
