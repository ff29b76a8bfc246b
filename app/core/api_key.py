import logging
import re
import secrets
from hashlib import sha256
from typing import NamedTuple, Optional
from fastapi import Header, Depends, Request
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from app.config import settings
from app.core.exceptions import UnauthorizedError
from app.database import get_db
from app.models.api_key import ApiKey
from app.models.mixins import as_utc, utcnow
from app.models.user import User

logger = logging.getLogger(__name__)

KEY_LENGTH = 32  # 32 bytes = 256 bits
LEGACY_PREFIX_PATTERN = re.compile(r"^([a-z_]+)_")


class GeneratedApiKey(NamedTuple):
    """Freshly issued key. Only `hash` and `prefix` may be persisted."""
    key: str
    hash: str
    prefix: str


def hash_api_key(api_key: str) -> str:
    """
    Hash an API key for storage using SHA256.
    Using SHA256 instead of bcrypt because:
    - API keys are already random (not user-chosen passwords)
    - SHA256 doesn't have length limitations like bcrypt (72 bytes)
    - Hash lookups need to be deterministic
    """
    return sha256(api_key.encode('utf-8')).hexdigest()


def verify_api_key(plain_key: str, hashed_key: str) -> bool:
    """Verify an API key against its hash using constant-time comparison."""
    if not isinstance(plain_key, str) or not isinstance(hashed_key, str):
        return False
    computed_hash = hash_api_key(plain_key)
    # Compare bytes so non-ASCII stored values cannot raise
    return secrets.compare_digest(
        computed_hash.encode('utf-8'),
        hashed_key.encode('utf-8')
    )


def generate_api_key(prefix: Optional[str] = None) -> GeneratedApiKey:
    """
    Generate a new API key.

    Args:
        prefix: Key prefix, defaults to settings.API_KEY_PREFIX

    Returns:
        GeneratedApiKey with the full key (show once), its hash and prefix
    """
    prefix = settings.API_KEY_PREFIX if prefix is None else prefix
    key = f"{prefix}{secrets.token_urlsafe(KEY_LENGTH)}"
    return GeneratedApiKey(key=key, hash=hash_api_key(key), prefix=prefix)


def extract_prefix(api_key: str, prefix: Optional[str] = None) -> Optional[str]:
    """
    Best-effort prefix recognition.

    Keys issued under an older prefix scheme (e.g. "sk_test_...") are
    recognised by their leading lowercase/underscore group.
    """
    prefix = settings.API_KEY_PREFIX if prefix is None else prefix
    if not api_key:
        return None
    if prefix and api_key.startswith(prefix):
        return prefix
    match = LEGACY_PREFIX_PATTERN.match(api_key)
    return match.group(1) + "_" if match else None


async def get_api_key_from_header(
    x_api_key: Optional[str],
    db: AsyncSession
) -> Optional[ApiKey]:
    """
    Extract and validate API key from header.

    Uses direct hash lookup (O(1)) instead of iterating through all keys.

    Args:
        x_api_key: API key from X-API-Key header
        db: Database session

    Returns:
        ApiKey model if an active key matches, None otherwise
    """
    if not x_api_key:
        return None

    if not db:
        return None

    key_hash = hash_api_key(x_api_key)

    result = await db.execute(
        select(ApiKey).where(
            ApiKey.key_hash == key_hash,
            ApiKey.is_active == True
        )
    )
    api_key = result.scalar_one_or_none()

    if api_key is None or not verify_api_key(x_api_key, api_key.key_hash):
        return None
    return api_key


async def authenticate_api_key(
    request: Request,
    x_api_key: Optional[str] = Header(None, alias="X-API-Key"),
    db: AsyncSession = Depends(get_db)
) -> User:
    """
    Authenticate a request by API key and return the owning user.

    Raises:
        UnauthorizedError if the key is missing, unknown, inactive, expired,
        or not bound to a user
    """
    if not x_api_key:
        raise UnauthorizedError("Missing X-API-Key header")

    api_key = await get_api_key_from_header(x_api_key, db)
    if not api_key:
        raise UnauthorizedError("Invalid API key")

    if api_key.expires_at and as_utc(api_key.expires_at) < utcnow():
        raise UnauthorizedError("API key has expired")

    if not api_key.user_id:
        # Team keys have no single principal to act as
        raise UnauthorizedError("Team API keys not yet supported for authentication")

    api_key_id, user_id = api_key.id, api_key.user_id

    # Touch before loading the principal so a rollback cannot expire it
    try:
        api_key.last_used_at = utcnow()
        await db.commit()
    except SQLAlchemyError as e:
        logger.error(f"Failed to update API key last_used_at: {str(e)}", exc_info=True)
        await db.rollback()

    user = await db.get(User, user_id)
    if not user:
        raise UnauthorizedError("User not found for API key")

    request.state.api_key_id = api_key_id
    request.state.user = user
    return user
