"""
Tests for JWT tokens, bearer authentication and log masking.
"""
import logging
import pytest
from datetime import timedelta

from app.config import settings
from app.core.logging_config import RequestIDFormatter
from app.core.logging_utils import MASK, mask_headers, mask_sensitive_data, sanitize_log_message
from app.core.security import create_access_token, decode_access_token


class TestJWTTokens:
    """Tests for JWT token creation and validation."""

    def test_create_access_token_returns_string(self):
        """Token creation should return a JWT string."""
        token = create_access_token({"sub": "user123"})

        assert isinstance(token, str)
        # JWT tokens have 3 parts separated by dots
        assert token.count(".") == 2

    def test_decode_access_token_valid(self):
        """Valid token should decode successfully."""
        token = create_access_token({"sub": "user123", "role": "admin"})

        payload = decode_access_token(token)

        assert payload["sub"] == "user123"
        assert payload["role"] == "admin"
        assert "exp" in payload

    def test_expired_token(self):
        """Expired token should return None."""
        token = create_access_token({"sub": "user123"}, expires_delta=timedelta(seconds=-10))

        assert decode_access_token(token) is None

    def test_decode_access_token_tampered(self):
        """Tampered token should return None."""
        parts = create_access_token({"sub": "user123"}).split(".")
        parts[1] = parts[1][:-5] + "XXXXX"

        assert decode_access_token(".".join(parts)) is None

    @pytest.mark.parametrize("token", ["", "not.a.valid.jwt.token"])
    def test_decode_garbage(self, token):
        assert decode_access_token(token) is None


class TestBearerAuthentication:
    """Bearer token handling on protected routes."""

    async def test_expired_token_rejected(self, async_client, member_user):
        token = create_access_token({"sub": member_user.id}, expires_delta=timedelta(seconds=-10))

        response = await async_client.get("/api/api-keys", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 401

    async def test_unknown_user_rejected(self, async_client, db_session):
        token = create_access_token({"sub": "00000000-0000-0000-0000-000000000000"})

        response = await async_client.get("/api/api-keys", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 401
        assert response.json()["detail"] == "User not found"

    async def test_token_without_subject_rejected(self, async_client, db_session):
        token = create_access_token({"role": "admin"})

        response = await async_client.get("/api/api-keys", headers={"Authorization": f"Bearer {token}"})

        assert response.json()["detail"] == "Invalid token payload"


class TestLogMasking:
    """Secrets never reach log lines."""

    def test_masks_by_key_name(self):
        masked = mask_sensitive_data({
            "api_key": "sk-proj-abcdefghijklmnop",
            "encrypted_api_key": "c2FsdA==",
            "key_hash": "ab" * 32,
            "password": "hunter2",
            "name": "CI pipeline",
        })

        assert masked == {
            "api_key": MASK,
            "encrypted_api_key": MASK,
            "key_hash": MASK,
            "password": MASK,
            "name": "CI pipeline",
        }

    def test_masks_keys_in_free_text(self):
        masked = mask_sensitive_data("client sent fk_live_AbCdEfGhIjKlMnOp in the body")

        assert masked == f"client sent {MASK} in the body"

    def test_keeps_request_id_and_uuids(self):
        request_id = "3f2b8c1e-1a2b-4c3d-8e9f-0a1b2c3d4e5f"

        assert mask_sensitive_data({"request_id": request_id, "UserID": request_id}) == {
            "request_id": request_id,
            "UserID": request_id,
        }

    def test_partial_email(self):
        assert mask_sensitive_data({"email": "designer@example.com"}) == {"email": "des***@example.com"}

    def test_nested_structures(self):
        masked = mask_sensitive_data({"items": [{"token": "abc"}, {"label": "ok"}]})

        assert masked == {"items": [{"token": MASK}, {"label": "ok"}]}

    def test_headers(self):
        masked = mask_headers({"Authorization": "Bearer x", "X-API-Key": "fk_live_x", "Accept": "*/*"})

        assert masked == {"Authorization": MASK, "X-API-Key": MASK, "Accept": "*/*"}

    def test_sanitize_log_message(self):
        line = sanitize_log_message(
            "Credential added",
            RequestID="3f2b8c1e-1a2b-4c3d-8e9f-0a1b2c3d4e5f",
            Service="openai",
            ApiKey="sk-proj-abcdefghijklmnop"
        )

        assert line == (
            f"Credential added | Service: openai | ApiKey: {MASK} "
            f"| RequestID: 3f2b8c1e-1a2b-4c3d-8e9f-0a1b2c3d4e5f"
        )

    def test_masking_can_be_disabled(self, monkeypatch):
        monkeypatch.setattr(settings, "LOG_MASK_SENSITIVE", False)

        assert sanitize_log_message("debug", api_key="raw") == "debug | api_key: raw"


class TestRequestIDFormatter:
    """Request IDs move from the message into their own column."""

    def _record(self, msg):
        return logging.LogRecord("test", logging.INFO, __file__, 1, msg, None, None)

    def test_extracts_request_id(self):
        request_id = "3f2b8c1e-1a2b-4c3d-8e9f-0a1b2c3d4e5f"
        record = self._record(f"API key created | RequestID: {request_id}")

        line = RequestIDFormatter().format(record)

        assert f"[{request_id}]" in line
        assert line.endswith("API key created")

    def test_system_marker_without_request(self):
        line = RequestIDFormatter().format(self._record("Application startup complete"))

        assert "[SYSTEM]" in line
