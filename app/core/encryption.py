"""
AES-256-GCM encryption for third-party credentials stored at rest.

Blob layout (base64 encoded): salt (64) | iv (16) | auth tag (16) | ciphertext.
Each call derives its own key from the master key and a fresh salt using
PBKDF2-HMAC-SHA512.
"""
import base64
import logging
import os
from typing import Optional

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from app.config import settings
from app.core.exceptions import ConfigurationError, DecryptionError, ValidationError

logger = logging.getLogger(__name__)

SALT_LENGTH = 64
IV_LENGTH = 16
TAG_LENGTH = 16
KEY_LENGTH = 32
KDF_ITERATIONS = 100_000

HEADER_LENGTH = SALT_LENGTH + IV_LENGTH + TAG_LENGTH


class CredentialCipher:
    """Encrypts and decrypts small secrets with a master key supplied at construction."""

    def __init__(self, master_key: Optional[str]):
        self._master_key = master_key or ""

    @property
    def is_configured(self) -> bool:
        return bool(self._master_key)

    def _require_master_key(self) -> bytes:
        if not self._master_key:
            raise ConfigurationError(
                "ENCRYPTION_KEY environment variable is required for encrypting sensitive data"
            )
        return self._master_key.encode("utf-8")

    def _derive_key(self, salt: bytes) -> bytes:
        kdf = PBKDF2HMAC(
            algorithm=hashes.SHA512(),
            length=KEY_LENGTH,
            salt=salt,
            iterations=KDF_ITERATIONS,
        )
        return kdf.derive(self._require_master_key())

    def encrypt(self, plaintext: str) -> str:
        """
        Encrypt a secret for storage.

        Raises:
            ValidationError: if plaintext is empty
            ConfigurationError: if no master key is configured
        """
        if not plaintext:
            raise ValidationError("Cannot encrypt empty text")
        self._require_master_key()

        salt = os.urandom(SALT_LENGTH)
        iv = os.urandom(IV_LENGTH)
        key = self._derive_key(salt)

        # AESGCM appends the tag to the ciphertext
        sealed = AESGCM(key).encrypt(iv, plaintext.encode("utf-8"), None)
        ciphertext, auth_tag = sealed[:-TAG_LENGTH], sealed[-TAG_LENGTH:]

        return base64.b64encode(salt + iv + auth_tag + ciphertext).decode("ascii")

    def decrypt(self, blob: str) -> str:
        """
        Decrypt a blob produced by encrypt().

        Every failure mode surfaces as the same DecryptionError.

        Raises:
            ConfigurationError: if no master key is configured
            DecryptionError: if the blob is malformed, tampered with, or was
                encrypted under a different key
        """
        self._require_master_key()

        try:
            if not blob:
                raise ValueError("empty blob")
            raw = base64.b64decode(blob, validate=True)
            if len(raw) <= HEADER_LENGTH:
                raise ValueError("blob too short")

            salt = raw[:SALT_LENGTH]
            iv = raw[SALT_LENGTH:SALT_LENGTH + IV_LENGTH]
            auth_tag = raw[SALT_LENGTH + IV_LENGTH:HEADER_LENGTH]
            ciphertext = raw[HEADER_LENGTH:]

            key = self._derive_key(salt)
            plaintext = AESGCM(key).decrypt(iv, ciphertext + auth_tag, None)
            return plaintext.decode("utf-8")
        except (InvalidTag, ValueError) as e:
            logger.debug(f"Credential decryption failed: {type(e).__name__}")
            raise DecryptionError(
                "Failed to decrypt data - data may be corrupted or encryption key may have changed"
            ) from None

    def verify_round_trip(self) -> bool:
        """Encrypt and decrypt a probe value to confirm the master key works."""
        probe = "forge-encryption-probe-" + base64.urlsafe_b64encode(os.urandom(6)).decode("ascii")
        return self.decrypt(self.encrypt(probe)) == probe


def get_cipher() -> CredentialCipher:
    """Build a cipher from application settings."""
    return CredentialCipher(settings.ENCRYPTION_KEY)


def extract_key_prefix(secret: str) -> str:
    """
    Displayable prefix of a provider key, e.g. "sk-proj-abcdefg...".
    """
    if not secret:
        return ""
    max_length = 15
    return secret[:max_length] + "..." if len(secret) > max_length else secret


def validate_api_key_format(service: str, secret: str) -> bool:
    """Basic shape check of a provider key before it is stored."""
    if not secret or not isinstance(secret, str):
        return False

    service = service.lower()
    if service == "openai":
        return secret.startswith("sk-") and len(secret) > 20
    if service == "anthropic":
        return secret.startswith("sk-ant-") and len(secret) > 20
    if service == "elevenlabs":
        return len(secret) > 20
    if service == "meshy":
        return secret.startswith("msy_") and len(secret) > 20
    if service == "fal":
        return len(secret) > 10
    if service == "openrouter":
        return secret.startswith("sk-or-") and len(secret) > 20
    return len(secret) > 10
