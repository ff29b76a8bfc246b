"""
Tests for API key generation, hashing and header authentication.
"""
import re
import secrets
import time
from datetime import timedelta
import pytest
from app.config import settings
from app.core import api_key as api_key_module
from app.core.api_key import (
    extract_prefix,
    generate_api_key,
    get_api_key_from_header,
    hash_api_key,
    verify_api_key,
)
from app.models.api_key import ApiKey
from app.models.mixins import utcnow


class TestApiKeyGeneration:
    """Tests for issuing new keys."""

    def test_generated_key_shape(self):
        """Key is the configured prefix plus 43 URL-safe base64 characters."""
        generated = generate_api_key()

        assert generated.key.startswith(settings.API_KEY_PREFIX)
        body = generated.key[len(settings.API_KEY_PREFIX):]
        assert len(body) == 43
        assert re.fullmatch(r"[A-Za-z0-9_-]+", body)
        assert generated.prefix == settings.API_KEY_PREFIX

    def test_generated_hash_matches_key(self):
        generated = generate_api_key()

        assert generated.hash == hash_api_key(generated.key)
        assert verify_api_key(generated.key, generated.hash) is True

    def test_generated_keys_are_unique(self):
        keys = {generate_api_key().key for _ in range(50)}

        assert len(keys) == 50

    def test_custom_prefix(self):
        generated = generate_api_key(prefix="fk_test_")

        assert generated.key.startswith("fk_test_")
        assert generated.prefix == "fk_test_"


class TestApiKeyHashing:
    """Tests for API key hashing functions."""

    def test_hash_api_key_returns_hex_string(self):
        """Hash function should return a hex string."""
        hashed = hash_api_key("fk_live_example")

        assert isinstance(hashed, str)
        assert len(hashed) == 64  # SHA256 produces 64 hex characters
        assert all(c in '0123456789abcdef' for c in hashed)

    def test_hash_api_key_consistent(self):
        """Same input should produce same hash."""
        assert hash_api_key("consistent_key") == hash_api_key("consistent_key")

    def test_hash_api_key_different_inputs(self):
        """Different inputs should produce different hashes."""
        assert hash_api_key("key1") != hash_api_key("key2")

    def test_verify_api_key_incorrect(self):
        """Verification should fail with incorrect key."""
        hashed = hash_api_key("my_secret_api_key")

        assert verify_api_key("wrong_key", hashed) is False

    def test_verify_api_key_empty_key(self):
        """Verification should fail with empty key."""
        assert verify_api_key("", hash_api_key("some_key")) is False

    @pytest.mark.parametrize("candidate,stored", [
        (None, "abc"),
        ("abc", None),
        (123, "abc"),
        ("key", "ñ-non-ascii-stored-hash"),
        ("key", ""),
    ])
    def test_verify_api_key_malformed_input(self, candidate, stored):
        """Malformed input yields False instead of raising."""
        assert verify_api_key(candidate, stored) is False


class TestExtractPrefix:
    """Tests for prefix recognition."""

    def test_configured_prefix(self):
        key = generate_api_key().key

        assert extract_prefix(key) == settings.API_KEY_PREFIX

    def test_legacy_prefix(self):
        assert extract_prefix("sk_test_abc123", prefix="fk_live_") == "sk_test_"

    def test_unrecognised(self):
        assert extract_prefix("ABC123", prefix="fk_live_") is None
        assert extract_prefix("", prefix="fk_live_") is None


class TestApiKeyFromHeader:
    """Tests for API key lookup from headers."""

    async def test_get_api_key_from_header_none(self, db_session):
        """Should return None when no API key provided."""
        assert await get_api_key_from_header(None, db_session) is None

    async def test_get_api_key_from_header_empty(self, db_session):
        """Should return None when empty API key provided."""
        assert await get_api_key_from_header("", db_session) is None

    async def test_get_api_key_from_header_invalid(self, db_session):
        """Should return None for invalid API key."""
        assert await get_api_key_from_header("invalid_key", db_session) is None

    async def test_get_api_key_from_header_valid(self, db_session, member_user):
        """Should return ApiKey for valid API key."""
        generated = generate_api_key()
        api_key = ApiKey(
            user_id=member_user.id,
            name="Test Key",
            key_hash=generated.hash,
            key_prefix=generated.prefix,
            permissions=["read"],
            is_active=True
        )
        db_session.add(api_key)
        await db_session.commit()
        await db_session.refresh(api_key)

        result = await get_api_key_from_header(generated.key, db_session)

        assert result is not None
        assert result.id == api_key.id
        assert result.name == "Test Key"

    async def test_get_api_key_inactive_key(self, db_session, member_user):
        """Should return None for inactive API key."""
        generated = generate_api_key()
        db_session.add(ApiKey(
            user_id=member_user.id,
            name="Inactive Key",
            key_hash=generated.hash,
            key_prefix=generated.prefix,
            is_active=False
        ))
        await db_session.commit()

        assert await get_api_key_from_header(generated.key, db_session) is None


class TestAuthenticateApiKey:
    """Tests for X-API-Key authentication through a protected route."""

    async def _store_key(self, db_session, **fields) -> str:
        generated = generate_api_key()
        db_session.add(ApiKey(
            name="Header Key",
            key_hash=generated.hash,
            key_prefix=generated.prefix,
            permissions=["read"],
            **fields
        ))
        await db_session.commit()
        return generated.key

    async def test_valid_key_authenticates(self, async_client, db_session, member_user):
        key = await self._store_key(db_session, user_id=member_user.id, is_active=True)

        response = await async_client.get("/api/projects", headers={"X-API-Key": key})

        assert response.status_code == 200

    async def test_valid_key_touches_last_used_at(self, async_client, db_session, member_user):
        key = await self._store_key(db_session, user_id=member_user.id, is_active=True)

        await async_client.get("/api/projects", headers={"X-API-Key": key})

        stored = await get_api_key_from_header(key, db_session)
        await db_session.refresh(stored)
        assert stored.last_used_at is not None

    async def test_missing_key(self, async_client):
        response = await async_client.get("/api/projects")

        assert response.status_code == 401
        assert response.json()["code"] == "UNAUTHORIZED"

    async def test_unknown_key(self, async_client, db_session):
        response = await async_client.get(
            "/api/projects", headers={"X-API-Key": "fk_live_" + "x" * 43}
        )

        assert response.status_code == 401

    async def test_expired_key(self, async_client, db_session, member_user):
        key = await self._store_key(
            db_session,
            user_id=member_user.id,
            is_active=True,
            expires_at=utcnow() - timedelta(minutes=1)
        )

        response = await async_client.get("/api/projects", headers={"X-API-Key": key})

        assert response.status_code == 401
        assert response.json()["detail"] == "API key has expired"

    async def test_team_only_key_rejected(self, async_client, db_session, member_user):
        from app.models.team import Team

        team = Team(name="Studio", owner_id=member_user.id)
        db_session.add(team)
        await db_session.commit()
        key = await self._store_key(db_session, team_id=team.id, is_active=True)

        response = await async_client.get("/api/projects", headers={"X-API-Key": key})

        assert response.status_code == 401


class TestApiKeyTimingSafety:
    """Tests to verify timing attack prevention."""

    def test_verify_uses_compare_digest(self, monkeypatch):
        """Verification goes through secrets.compare_digest."""
        calls = []
        real_compare = secrets.compare_digest

        def recording_compare(a, b):
            calls.append((a, b))
            return real_compare(a, b)

        monkeypatch.setattr(api_key_module.secrets, "compare_digest", recording_compare)

        key = generate_api_key().key
        assert verify_api_key(key, hash_api_key(key)) is True
        assert len(calls) == 1
        assert all(isinstance(arg, bytes) for arg in calls[0])

    def test_verify_timing_smoke(self):
        """Correct and wrong keys take comparable time (rough smoke check)."""
        correct_key = generate_api_key().key
        hashed = hash_api_key(correct_key)
        iterations = 2000

        start = time.perf_counter()
        for _ in range(iterations):
            verify_api_key(correct_key, hashed)
        correct_time = time.perf_counter() - start

        wrong_key = generate_api_key().key
        start = time.perf_counter()
        for _ in range(iterations):
            verify_api_key(wrong_key, hashed)
        wrong_time = time.perf_counter() - start

        # Generous bound: only catches gross short-circuiting
        assert wrong_time < correct_time * 5
        assert correct_time < wrong_time * 5
