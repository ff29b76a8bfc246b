from typing import List, Optional
from datetime import datetime
from pydantic import BaseModel, Field


class CredentialCreateRequest(BaseModel):
    """Request schema for storing a third-party service key."""
    service: str = Field(..., min_length=1, max_length=100)
    api_key: str = Field(..., min_length=1)


class CredentialUpdateRequest(BaseModel):
    """Request schema for replacing a stored key or toggling it."""
    api_key: Optional[str] = Field(None, min_length=1)
    is_active: Optional[bool] = None


class CredentialResponse(BaseModel):
    """Response schema for a credential. The encrypted key is never exposed."""
    id: str
    service: str
    key_prefix: Optional[str] = None
    is_active: bool
    last_used_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class CredentialListResponse(BaseModel):
    """Response schema for listing credentials."""
    credentials: List[CredentialResponse]
    total: int
