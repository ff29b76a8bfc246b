"""
Team access helpers.

Each check comes as a boolean probe and a throwing assertion. Platform
admins always pass the assertions.
"""
import logging
from typing import Optional
from sqlalchemy import and_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from app.core import repositories
from app.core.exceptions import ForbiddenError
from app.core.ownership import AccessDecision, AccessOutcome, enforce
from app.models.team import Team, TeamMember
from app.models.user import UserRole

logger = logging.getLogger(__name__)


async def _find_membership(
    db: AsyncSession,
    team_id: str,
    user_id: str
) -> Optional[TeamMember]:
    result = await db.execute(
        select(TeamMember).where(
            and_(TeamMember.team_id == team_id, TeamMember.user_id == user_id)
        )
    )
    return result.scalar_one_or_none()


async def check_team_access(
    db: AsyncSession,
    team_id: str,
    user_id: str,
    require_owner: bool = False
) -> AccessDecision[Team]:
    """Core team predicate: owner always passes, members pass unless require_owner."""
    team = await repositories.teams.find_by_id(db, team_id)
    if team is None:
        return AccessDecision(AccessOutcome.NOT_FOUND, reason="Team not found")

    if team.owner_id == user_id:
        return AccessDecision(AccessOutcome.ALLOWED, resource=team)

    if require_owner:
        return AccessDecision(
            AccessOutcome.DENIED,
            reason="Only the team owner can perform this action"
        )

    if await _find_membership(db, team_id, user_id) is None:
        return AccessDecision(AccessOutcome.DENIED, reason="You are not a member of this team")

    return AccessDecision(AccessOutcome.ALLOWED, resource=team)


async def is_team_owner(db: AsyncSession, team_id: str, user_id: str) -> bool:
    """Check if user is team owner (returns boolean)."""
    try:
        decision = await check_team_access(db, team_id, user_id, require_owner=True)
        return decision.allowed
    except SQLAlchemyError as e:
        logger.error(f"Failed to check team ownership: {str(e)}")
        return False


async def is_team_member(db: AsyncSession, team_id: str, user_id: str) -> bool:
    """Check if user is team member or owner (returns boolean)."""
    try:
        decision = await check_team_access(db, team_id, user_id)
        return decision.allowed
    except SQLAlchemyError as e:
        logger.error(f"Failed to check team membership: {str(e)}")
        return False


async def verify_team_owner(
    db: AsyncSession,
    team_id: str,
    user_id: str,
    user_role: Optional[str]
) -> None:
    """
    Verify user is team owner or admin.

    Raises:
        NotFoundError if the team doesn't exist
        ForbiddenError if the user is not the owner
    """
    if user_role == UserRole.ADMIN.value:
        return

    decision = await check_team_access(db, team_id, user_id, require_owner=True)
    enforce(decision)


async def verify_team_membership(
    db: AsyncSession,
    team_id: str,
    user_id: str,
    user_role: Optional[str]
) -> None:
    """
    Verify user is team member or admin.

    A missing team is reported the same way as a missing membership.

    Raises:
        ForbiddenError if the user is not a member of the team
    """
    if user_role == UserRole.ADMIN.value:
        return

    decision = await check_team_access(db, team_id, user_id)
    if not decision.allowed:
        raise ForbiddenError("You are not a member of this team")


async def get_team_role(db: AsyncSession, team_id: str, user_id: str) -> Optional[str]:
    """Get user's role in a team, "owner" for the team owner, None if not a member."""
    team = await repositories.teams.find_by_id(db, team_id)
    if team is None:
        return None
    if team.owner_id == user_id:
        return "owner"

    membership = await _find_membership(db, team_id, user_id)
    return membership.role if membership else None
