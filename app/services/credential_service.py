import logging
from typing import List, Optional
from sqlalchemy import and_, delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from app.config import settings
from app.core import repositories
from app.core.encryption import CredentialCipher, extract_key_prefix, validate_api_key_format
from app.core.exceptions import DecryptionError, ValidationError
from app.core.logging_utils import sanitize_log_message
from app.core.ownership import verify_ownership
from app.models.credential import UserCredential
from app.models.mixins import utcnow

logger = logging.getLogger(__name__)


class CredentialService:
    """
    Service for users' third-party service keys.

    Secrets are encrypted with the injected cipher before they reach the
    store and only decrypted in get_api_key().
    """

    def __init__(self, cipher: CredentialCipher):
        self.cipher = cipher

    def _seal(self, service: str, api_key: str) -> tuple:
        if not validate_api_key_format(service, api_key):
            raise ValidationError(f"Invalid API key format for service: {service}")
        return self.cipher.encrypt(api_key), extract_key_prefix(api_key)

    @staticmethod
    async def _find(
        db: AsyncSession,
        user_id: str,
        service: str,
        active_only: bool = False
    ) -> Optional[UserCredential]:
        conditions = [UserCredential.user_id == user_id, UserCredential.service == service]
        if active_only:
            conditions.append(UserCredential.is_active == True)
        result = await db.execute(select(UserCredential).where(and_(*conditions)))
        return result.scalars().first()

    @staticmethod
    async def list_credentials(
        db: AsyncSession,
        user_id: str,
        service: Optional[str] = None
    ) -> List[UserCredential]:
        """List a user's credentials, newest first."""
        query = select(UserCredential).where(UserCredential.user_id == user_id)
        if service:
            query = query.where(UserCredential.service == service)
        query = query.order_by(UserCredential.created_at.desc(), UserCredential.id.asc())

        result = await db.execute(query)
        return list(result.scalars().all())

    async def create_credential(
        self,
        db: AsyncSession,
        user_id: str,
        service: str,
        api_key: str,
        request_id: Optional[str] = None
    ) -> UserCredential:
        """
        Store a new credential for a service.

        Raises:
            ValidationError if the user already has one for the service or the key format is invalid
            ConfigurationError if no master key is configured
        """
        if await self._find(db, user_id, service) is not None:
            raise ValidationError(f"Credential for {service} already exists. Use update instead.")

        encrypted, key_prefix = self._seal(service, api_key)

        credential = UserCredential(
            user_id=user_id,
            service=service,
            encrypted_api_key=encrypted,
            key_prefix=key_prefix,
            is_active=True,
        )
        db.add(credential)
        await db.commit()
        await db.refresh(credential)

        logger.info(
            sanitize_log_message(
                "Credential added",
                RequestID=request_id,
                CredentialID=credential.id,
                UserID=user_id,
                Service=service
            )
        )
        return credential

    async def set_credential(
        self,
        db: AsyncSession,
        user_id: str,
        service: str,
        api_key: str
    ) -> UserCredential:
        """Store or replace the user's credential for a service, reactivating it."""
        encrypted, key_prefix = self._seal(service, api_key)

        credential = await self._find(db, user_id, service)
        if credential is None:
            credential = UserCredential(user_id=user_id, service=service)
            db.add(credential)

        credential.encrypted_api_key = encrypted
        credential.key_prefix = key_prefix
        credential.is_active = True

        await db.commit()
        await db.refresh(credential)
        return credential

    async def update_credential(
        self,
        db: AsyncSession,
        credential_id: str,
        user_id: str,
        api_key: Optional[str] = None,
        is_active: Optional[bool] = None
    ) -> UserCredential:
        """
        Replace the secret and/or toggle a credential owned by the user.

        Raises:
            NotFoundError if the credential doesn't exist or belongs to someone else
        """
        credential = await verify_ownership(db, repositories.credentials, credential_id, user_id)

        if api_key is not None:
            credential.encrypted_api_key, credential.key_prefix = self._seal(credential.service, api_key)
        if is_active is not None:
            credential.is_active = is_active

        await db.commit()
        await db.refresh(credential)
        logger.info(f"Credential updated: {credential.id} by user {user_id}")
        return credential

    @staticmethod
    async def delete_credential_by_id(
        db: AsyncSession,
        credential_id: str,
        user_id: str
    ) -> None:
        """Hard-delete a credential owned by the user."""
        credential = await verify_ownership(db, repositories.credentials, credential_id, user_id)
        await db.delete(credential)
        await db.commit()
        logger.info(f"Credential deleted: {credential_id} by user {user_id}")

    async def get_api_key(
        self,
        db: AsyncSession,
        user_id: str,
        service: str
    ) -> Optional[str]:
        """
        Decrypted key for a user and service.

        Falls back to the platform key from settings when the user has no
        active credential or it cannot be decrypted.

        Returns:
            The key, or None if neither source has one
        """
        credential = await self._find(db, user_id, service, active_only=True)

        if credential is not None:
            try:
                plaintext = self.cipher.decrypt(credential.encrypted_api_key)
            except DecryptionError:
                logger.error(
                    f"Failed to decrypt API key for user {user_id}, service {service}; "
                    f"falling back to platform key"
                )
            else:
                credential.last_used_at = utcnow()
                await db.commit()
                return plaintext

        return settings.get_platform_api_key(service) or None

    async def has_credential(self, db: AsyncSession, user_id: str, service: str) -> bool:
        """Check if the user has an active credential for a service."""
        return await self._find(db, user_id, service, active_only=True) is not None

    @staticmethod
    async def delete_credential(db: AsyncSession, user_id: str, service: str) -> bool:
        """Delete the user's credential for a service. Returns whether one existed."""
        result = await db.execute(
            delete(UserCredential).where(
                and_(UserCredential.user_id == user_id, UserCredential.service == service)
            )
        )
        await db.commit()
        return result.rowcount > 0

    @staticmethod
    async def deactivate_credential(db: AsyncSession, user_id: str, service: str) -> bool:
        """Soft-delete the user's credential for a service. Returns whether one existed."""
        result = await db.execute(
            update(UserCredential)
            .where(and_(UserCredential.user_id == user_id, UserCredential.service == service))
            .values(is_active=False, updated_at=utcnow())
        )
        await db.commit()
        return result.rowcount > 0
