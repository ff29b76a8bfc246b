"""Pydantic schemas for request/response contracts."""
from app.schemas.api_key import (
    ApiKeyCreateRequest,
    ApiKeyUpdateRequest,
    ApiKeyResponse,
    ApiKeyCreatedResponse,
    ApiKeyListResponse,
)
from app.schemas.credential import (
    CredentialCreateRequest,
    CredentialUpdateRequest,
    CredentialResponse,
    CredentialListResponse,
)
from app.schemas.activity import (
    ActivityLogResponse,
    ActivityListResponse,
)
from app.schemas.project import (
    ProjectCreateRequest,
    ProjectUpdateRequest,
    ProjectResponse,
    ProjectListResponse,
)
from app.schemas.team import (
    TeamMemberResponse,
    TeamMembersResponse,
    TeamRoleResponse,
)

__all__ = [
    "ApiKeyCreateRequest",
    "ApiKeyUpdateRequest",
    "ApiKeyResponse",
    "ApiKeyCreatedResponse",
    "ApiKeyListResponse",
    "CredentialCreateRequest",
    "CredentialUpdateRequest",
    "CredentialResponse",
    "CredentialListResponse",
    "ActivityLogResponse",
    "ActivityListResponse",
    "ProjectCreateRequest",
    "ProjectUpdateRequest",
    "ProjectResponse",
    "ProjectListResponse",
    "TeamMemberResponse",
    "TeamMembersResponse",
    "TeamRoleResponse",
]
