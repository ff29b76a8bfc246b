import logging
from datetime import datetime
from typing import List, Optional, Tuple
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from app.core import repositories
from app.core.api_key import generate_api_key
from app.core.exceptions import ValidationError
from app.core.logging_utils import sanitize_log_message
from app.core.ownership import verify_ownership_or_admin, verify_resource_exists
from app.core.team_access import verify_team_membership, verify_team_owner
from app.models.api_key import ApiKey
from app.models.mixins import as_utc, utcnow
from app.models.user import User

logger = logging.getLogger(__name__)


class ApiKeyService:
    """Service for API key issuance, listing, update, rotation and revocation."""

    @staticmethod
    async def _get_manageable_key(db: AsyncSession, key_id: str, user: User) -> ApiKey:
        """
        Load a key the user may manage.

        Personal keys: owner or admin. Team keys: team owner or admin.

        Raises:
            NotFoundError if the key doesn't exist
            ForbiddenError if the user may not manage it
        """
        api_key = await verify_resource_exists(db, repositories.api_keys, key_id)
        if api_key.team_id and not api_key.user_id:
            await verify_team_owner(db, api_key.team_id, user.id, user.role)
            return api_key
        return await verify_ownership_or_admin(
            db, repositories.api_keys, key_id, user.id, user.role
        )

    @staticmethod
    async def list_api_keys(
        db: AsyncSession,
        user: User,
        team_id: Optional[str] = None
    ) -> List[ApiKey]:
        """
        List active API keys of the user, or of a team the user belongs to.

        Raises:
            ForbiddenError if team_id is given and the user is not a member
        """
        if team_id:
            await verify_team_membership(db, team_id, user.id, user.role)
            owner_filter = ApiKey.team_id == team_id
        else:
            owner_filter = ApiKey.user_id == user.id

        result = await db.execute(
            select(ApiKey)
            .where(owner_filter, ApiKey.is_active == True)
            .order_by(ApiKey.created_at.desc(), ApiKey.id.asc())
        )
        return list(result.scalars().all())

    @staticmethod
    async def create_api_key(
        db: AsyncSession,
        user: User,
        name: str,
        permissions: Optional[List[str]] = None,
        team_id: Optional[str] = None,
        expires_at: Optional[datetime] = None,
        request_id: Optional[str] = None
    ) -> Tuple[ApiKey, str]:
        """
        Issue a new API key.

        Args:
            db: Database session
            user: Issuing user
            name: Display name of the key
            permissions: Subset of read/write/admin, defaults to ["read"]
            team_id: Issue the key to this team instead of the user
            expires_at: Optional expiry, must be in the future
            request_id: Request ID (UUID) for request tracing

        Returns:
            Tuple of (ApiKey record, raw key). The raw key is not stored.

        Raises:
            ValidationError if expires_at is not in the future
            ForbiddenError if team_id is given and the user is not a member
        """
        if expires_at is not None and as_utc(expires_at) <= utcnow():
            raise ValidationError("Expiration date must be in the future")

        if team_id:
            await verify_team_membership(db, team_id, user.id, user.role)

        generated = generate_api_key()

        api_key = ApiKey(
            user_id=None if team_id else user.id,
            team_id=team_id,
            name=name,
            key_hash=generated.hash,
            key_prefix=generated.prefix,
            permissions=list(permissions) if permissions else ["read"],
            expires_at=expires_at,
            is_active=True,
        )

        db.add(api_key)
        await db.commit()
        await db.refresh(api_key)

        logger.info(
            sanitize_log_message(
                "API key created",
                RequestID=request_id,
                ApiKeyID=api_key.id,
                UserID=user.id,
                TeamID=team_id,
                Permissions=api_key.permissions
            )
        )

        return api_key, generated.key

    @staticmethod
    async def update_api_key(
        db: AsyncSession,
        key_id: str,
        user: User,
        name: Optional[str] = None,
        permissions: Optional[List[str]] = None
    ) -> ApiKey:
        """Rename a key or replace its permissions (owner or admin)."""
        api_key = await ApiKeyService._get_manageable_key(db, key_id, user)

        if name is not None:
            api_key.name = name
        if permissions is not None:
            api_key.permissions = list(permissions)

        await db.commit()
        await db.refresh(api_key)
        logger.info(f"API key updated: {api_key.id} by user {user.id}")
        return api_key

    @staticmethod
    async def revoke_api_key(db: AsyncSession, key_id: str, user: User) -> ApiKey:
        """
        Revoke a key. Keys are never hard-deleted.

        Revoking an already revoked key keeps its original revoked_at.
        """
        api_key = await ApiKeyService._get_manageable_key(db, key_id, user)

        if api_key.is_active:
            api_key.is_active = False
            api_key.revoked_at = utcnow()
            await db.commit()
            await db.refresh(api_key)
            logger.info(f"API key revoked: {api_key.id} by user {user.id}")

        return api_key

    @staticmethod
    async def rotate_api_key(db: AsyncSession, key_id: str, user: User) -> Tuple[ApiKey, str]:
        """
        Replace a key's secret. The old key stops authenticating immediately.

        Returns:
            Tuple of (ApiKey record, new raw key)

        Raises:
            ValidationError if the key has been revoked
        """
        api_key = await ApiKeyService._get_manageable_key(db, key_id, user)

        if not api_key.is_active:
            raise ValidationError("Cannot rotate a revoked API key")

        generated = generate_api_key()
        api_key.key_hash = generated.hash
        api_key.key_prefix = generated.prefix
        api_key.last_used_at = None

        await db.commit()
        await db.refresh(api_key)
        logger.info(f"API key rotated: {api_key.id} by user {user.id}")

        return api_key, generated.key
