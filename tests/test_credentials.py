"""
Tests for stored third-party credentials: HTTP surface and service lookups.
"""
import pytest
from app.config import settings
from app.core.encryption import CredentialCipher, get_cipher
from app.models.credential import UserCredential
from app.services.credential_service import CredentialService

OPENAI_KEY = "sk-proj-abcdefghijklmnopqrstuvwxyz0123"
ANTHROPIC_KEY = "sk-ant-REDACTED"


@pytest.fixture
def credential_service() -> CredentialService:
    return CredentialService(get_cipher())


async def _add(async_client, headers, service="openai", api_key=OPENAI_KEY):
    return await async_client.post(
        "/api/credentials", json={"service": service, "api_key": api_key}, headers=headers
    )


class TestCredentialEndpoints:
    """/api/credentials"""

    async def test_create_encrypts_at_rest(self, async_client, db_session, member_user, auth_headers):
        response = await _add(async_client, auth_headers(member_user))

        body = response.json()
        assert response.status_code == 201
        assert body["service"] == "openai"
        assert body["key_prefix"] == "sk-proj-abcdefg..."
        assert "api_key" not in body
        assert "encrypted_api_key" not in body

        stored = await db_session.get(UserCredential, body["id"])
        assert OPENAI_KEY not in stored.encrypted_api_key
        assert get_cipher().decrypt(stored.encrypted_api_key) == OPENAI_KEY

    async def test_duplicate_service_rejected(self, async_client, member_user, auth_headers):
        await _add(async_client, auth_headers(member_user))

        response = await _add(async_client, auth_headers(member_user))

        assert response.status_code == 400
        assert response.json()["detail"] == "Credential for openai already exists. Use update instead."

    async def test_invalid_format_rejected(self, async_client, member_user, auth_headers):
        response = await _add(async_client, auth_headers(member_user), api_key="not-an-openai-key-at-all")

        assert response.status_code == 400
        assert response.json()["code"] == "VALIDATION_ERROR"

    async def test_list_filters_by_service(self, async_client, member_user, other_user, auth_headers):
        await _add(async_client, auth_headers(member_user))
        await _add(async_client, auth_headers(member_user), service="anthropic", api_key=ANTHROPIC_KEY)
        await _add(async_client, auth_headers(other_user))

        everything = await async_client.get("/api/credentials", headers=auth_headers(member_user))
        only_anthropic = await async_client.get(
            "/api/credentials", params={"service": "anthropic"}, headers=auth_headers(member_user)
        )

        assert everything.json()["total"] == 2
        assert [c["service"] for c in only_anthropic.json()["credentials"]] == ["anthropic"]

    async def test_update_replaces_key(self, async_client, db_session, member_user, auth_headers):
        created = (await _add(async_client, auth_headers(member_user))).json()
        replacement = "sk-proj-zyxwvutsrqponmlkjihgfedcba9876"

        response = await async_client.patch(
            f"/api/credentials/{created['id']}",
            json={"api_key": replacement, "is_active": False},
            headers=auth_headers(member_user)
        )

        assert response.status_code == 200
        assert response.json()["key_prefix"] == "sk-proj-zyxwvut..."
        assert response.json()["is_active"] is False
        stored = await db_session.get(UserCredential, created["id"])
        assert get_cipher().decrypt(stored.encrypted_api_key) == replacement

    async def test_foreign_credential_is_hidden(self, async_client, member_user, other_user, auth_headers):
        created = (await _add(async_client, auth_headers(member_user))).json()

        patch = await async_client.patch(
            f"/api/credentials/{created['id']}",
            json={"is_active": False},
            headers=auth_headers(other_user)
        )
        delete = await async_client.delete(
            f"/api/credentials/{created['id']}", headers=auth_headers(other_user)
        )

        assert patch.status_code == 404
        assert delete.status_code == 404

    async def test_delete(self, async_client, member_user, auth_headers):
        created = (await _add(async_client, auth_headers(member_user))).json()

        response = await async_client.delete(
            f"/api/credentials/{created['id']}", headers=auth_headers(member_user)
        )
        listing = await async_client.get("/api/credentials", headers=auth_headers(member_user))

        assert response.status_code == 204
        assert listing.json()["total"] == 0


class TestCredentialLookup:
    """CredentialService.get_api_key and the per-service helpers."""

    async def test_decrypts_user_key(self, db_session, credential_service, member_user):
        await credential_service.create_credential(db_session, member_user.id, "openai", OPENAI_KEY)

        key = await credential_service.get_api_key(db_session, member_user.id, "openai")

        assert key == OPENAI_KEY
        credential = await CredentialService._find(db_session, member_user.id, "openai")
        assert credential.last_used_at is not None

    async def test_falls_back_to_platform_key(self, db_session, credential_service, member_user, monkeypatch):
        monkeypatch.setattr(settings, "OPENAI_API_KEY", "sk-platform-wide-openai-key-000")

        assert await credential_service.get_api_key(db_session, member_user.id, "openai") == \
            "sk-platform-wide-openai-key-000"

    async def test_corrupted_blob_falls_back(self, db_session, credential_service, member_user, monkeypatch):
        monkeypatch.setattr(settings, "ANTHROPIC_API_KEY", "sk-ant-REDACTED")
        credential = await credential_service.create_credential(
            db_session, member_user.id, "anthropic", ANTHROPIC_KEY
        )
        credential.encrypted_api_key = credential.encrypted_api_key[:-8] + "AAAAAAAA"
        await db_session.commit()

        key = await credential_service.get_api_key(db_session, member_user.id, "anthropic")

        assert key == "sk-ant-REDACTED"

    async def test_none_without_any_source(self, db_session, credential_service, member_user, monkeypatch):
        monkeypatch.setattr(settings, "OPENAI_API_KEY", "")

        assert await credential_service.get_api_key(db_session, member_user.id, "openai") is None

    async def test_wrong_master_key_falls_back(self, db_session, credential_service, member_user, monkeypatch):
        monkeypatch.setattr(settings, "OPENAI_API_KEY", "")
        await credential_service.create_credential(db_session, member_user.id, "openai", OPENAI_KEY)
        other_cipher = CredentialService(CredentialCipher("a-completely-different-master-key"))

        assert await other_cipher.get_api_key(db_session, member_user.id, "openai") is None

    async def test_has_and_deactivate(self, db_session, credential_service, member_user):
        await credential_service.create_credential(db_session, member_user.id, "openai", OPENAI_KEY)

        assert await credential_service.has_credential(db_session, member_user.id, "openai") is True
        assert await CredentialService.deactivate_credential(db_session, member_user.id, "openai") is True
        assert await credential_service.has_credential(db_session, member_user.id, "openai") is False

    async def test_delete_by_service(self, db_session, credential_service, member_user):
        await credential_service.create_credential(db_session, member_user.id, "openai", OPENAI_KEY)

        assert await CredentialService.delete_credential(db_session, member_user.id, "openai") is True
        assert await CredentialService.delete_credential(db_session, member_user.id, "openai") is False

    async def test_set_credential_upserts(self, db_session, credential_service, member_user):
        first = await credential_service.set_credential(db_session, member_user.id, "openai", OPENAI_KEY)
        await CredentialService.deactivate_credential(db_session, member_user.id, "openai")

        second = await credential_service.set_credential(
            db_session, member_user.id, "openai", "sk-proj-replacement-key-0123456789"
        )

        assert second.id == first.id
        assert second.is_active is True
        assert await credential_service.get_api_key(db_session, member_user.id, "openai") == \
            "sk-proj-replacement-key-0123456789"
