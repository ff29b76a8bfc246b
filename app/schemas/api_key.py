from typing import List, Literal, Optional
from datetime import datetime
from pydantic import BaseModel, Field

Permission = Literal["read", "write", "admin"]


class ApiKeyCreateRequest(BaseModel):
    """Request schema for issuing an API key."""
    name: str = Field(..., min_length=1, max_length=255)
    team_id: Optional[str] = None
    permissions: List[Permission] = Field(default_factory=lambda: ["read"])
    expires_at: Optional[datetime] = None


class ApiKeyUpdateRequest(BaseModel):
    """Request schema for renaming an API key or changing its permissions."""
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    permissions: Optional[List[Permission]] = None


class ApiKeyResponse(BaseModel):
    """Response schema for an API key. Never carries the hash."""
    id: str
    user_id: Optional[str] = None
    team_id: Optional[str] = None
    name: str
    key_prefix: str
    permissions: List[str]
    last_used_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None
    is_active: bool
    created_at: datetime
    revoked_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ApiKeyCreatedResponse(ApiKeyResponse):
    """Response schema for a newly issued or rotated key (full key shown once)."""
    key: str
    message: str = "Store this key securely. It will not be shown again."


class ApiKeyListResponse(BaseModel):
    """Response schema for listing API keys."""
    api_keys: List[ApiKeyResponse]
    total: int
