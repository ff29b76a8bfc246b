"""
Ownership verification helpers.

Every check is built on one predicate, check_access(), which returns an
AccessDecision. Thin wrappers turn it into either a throwing assertion
(security-critical call sites) or a boolean probe (display logic).
"""
import enum
import logging
from dataclasses import dataclass
from typing import Any, Generic, List, Optional, Sequence, Type, TypeVar
from sqlalchemy import and_, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from app.core.exceptions import ForbiddenError, NotFoundError

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT")

# Roles that may access any resource in the ownership-or-admin variant
PRIVILEGED_ROLES = {"admin", "owner"}


class AccessOutcome(str, enum.Enum):
    """Result of an access check."""
    ALLOWED = "allowed"
    DENIED = "denied"
    NOT_FOUND = "not_found"


@dataclass
class AccessDecision(Generic[ModelT]):
    """Outcome of check_access() with the resolved resource when allowed."""
    outcome: AccessOutcome
    resource: Optional[ModelT] = None
    reason: Optional[str] = None

    @property
    def allowed(self) -> bool:
        return self.outcome == AccessOutcome.ALLOWED


class ResourceRepository(Generic[ModelT]):
    """
    Query capabilities for one owned entity type.

    Args:
        model: SQLAlchemy model class with an `id` column
        resource_name: Human-readable name used in error messages
        owner_column: Name of the column holding the owning user id
    """

    def __init__(self, model: Type[ModelT], resource_name: str, owner_column: str = "owner_id"):
        self.model = model
        self.resource_name = resource_name
        self.owner_column = owner_column

    def column(self, name: str) -> Any:
        return getattr(self.model, name)

    @property
    def id_column(self) -> Any:
        return self.model.id

    @property
    def owner(self) -> Any:
        return self.column(self.owner_column)

    def owner_of(self, resource: ModelT) -> Optional[str]:
        return getattr(resource, self.owner_column)

    async def find_by_id(self, db: AsyncSession, resource_id: str) -> Optional[ModelT]:
        result = await db.execute(
            select(self.model).where(self.id_column == resource_id)
        )
        return result.scalar_one_or_none()

    async def find_by_id_and_owner(
        self,
        db: AsyncSession,
        resource_id: str,
        owner_id: str
    ) -> Optional[ModelT]:
        result = await db.execute(
            select(self.model).where(
                and_(self.id_column == resource_id, self.owner == owner_id)
            )
        )
        return result.scalar_one_or_none()

    async def count(self, db: AsyncSession, where: Optional[Any] = None) -> int:
        query = select(func.count()).select_from(self.model)
        if where is not None:
            query = query.where(where)
        result = await db.execute(query)
        return int(result.scalar_one() or 0)

    async def list(
        self,
        db: AsyncSession,
        where: Optional[Any] = None,
        order_by: Sequence[Any] = (),
        limit: Optional[int] = None,
        offset: int = 0
    ) -> List[ModelT]:
        query = select(self.model)
        if where is not None:
            query = query.where(where)
        if order_by:
            query = query.order_by(*order_by)
        if limit is not None:
            query = query.limit(limit)
        if offset:
            query = query.offset(offset)
        result = await db.execute(query)
        return list(result.scalars().all())


async def check_access(
    db: AsyncSession,
    repo: ResourceRepository[ModelT],
    resource_id: str,
    user_id: str,
    role: Optional[str] = None,
    hide_existence: bool = True
) -> AccessDecision[ModelT]:
    """
    Decide whether a user may access a resource.

    With hide_existence=True the lookup is a single (id, owner) predicate, so a
    resource owned by someone else is reported as NOT_FOUND. Otherwise the
    resource is looked up by id, privileged roles are allowed, and a foreign
    owner yields DENIED.
    """
    if hide_existence:
        resource = await repo.find_by_id_and_owner(db, resource_id, user_id)
        if resource is None:
            return AccessDecision(AccessOutcome.NOT_FOUND, reason=f"{repo.resource_name} not found")
        return AccessDecision(AccessOutcome.ALLOWED, resource=resource)

    resource = await repo.find_by_id(db, resource_id)
    if resource is None:
        return AccessDecision(AccessOutcome.NOT_FOUND, reason=f"{repo.resource_name} not found")

    if role in PRIVILEGED_ROLES:
        return AccessDecision(AccessOutcome.ALLOWED, resource=resource)

    if repo.owner_of(resource) != user_id:
        return AccessDecision(
            AccessOutcome.DENIED,
            reason=f"You do not have access to this {repo.resource_name.lower()}"
        )

    return AccessDecision(AccessOutcome.ALLOWED, resource=resource)


def enforce(decision: AccessDecision[ModelT]) -> ModelT:
    """Return the resource of an allowed decision or raise the matching error."""
    if decision.outcome == AccessOutcome.NOT_FOUND:
        raise NotFoundError(decision.reason or "Resource not found")
    if decision.outcome == AccessOutcome.DENIED:
        raise ForbiddenError(decision.reason or "Forbidden")
    return decision.resource


async def verify_ownership(
    db: AsyncSession,
    repo: ResourceRepository[ModelT],
    resource_id: str,
    user_id: str
) -> ModelT:
    """
    Verify that a resource exists and belongs to the user.

    Raises:
        NotFoundError if the resource doesn't exist or isn't owned by the user
    """
    decision = await check_access(db, repo, resource_id, user_id, hide_existence=True)
    return enforce(decision)


async def verify_ownership_or_admin(
    db: AsyncSession,
    repo: ResourceRepository[ModelT],
    resource_id: str,
    user_id: str,
    user_role: Optional[str]
) -> ModelT:
    """
    Verify ownership or a privileged role (admin/owner).

    Raises:
        NotFoundError if the resource doesn't exist
        ForbiddenError if the user neither owns it nor holds a privileged role
    """
    decision = await check_access(
        db, repo, resource_id, user_id, role=user_role, hide_existence=False
    )
    if decision.outcome == AccessOutcome.DENIED:
        logger.warning(
            f"ACCESS_DENIED | user_id={user_id} | resource={repo.resource_name}:{resource_id}"
        )
    return enforce(decision)


async def is_resource_owner(
    db: AsyncSession,
    repo: ResourceRepository[ModelT],
    resource_id: str,
    user_id: str
) -> bool:
    """
    Check if user owns a resource (returns boolean instead of throwing).

    Storage errors are logged and reported as False.
    """
    try:
        decision = await check_access(db, repo, resource_id, user_id, hide_existence=True)
        return decision.allowed
    except SQLAlchemyError as e:
        logger.error(
            f"Failed to check resource ownership: {str(e)}",
            extra={"resource_id": resource_id, "user_id": user_id}
        )
        return False


async def verify_resource_exists(
    db: AsyncSession,
    repo: ResourceRepository[ModelT],
    resource_id: str
) -> ModelT:
    """
    Verify resource exists (regardless of ownership).

    Raises:
        NotFoundError if the resource doesn't exist
    """
    resource = await repo.find_by_id(db, resource_id)
    if resource is None:
        raise NotFoundError(f"{repo.resource_name} not found")
    return resource
