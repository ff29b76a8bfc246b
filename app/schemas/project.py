from typing import List, Optional
from datetime import datetime
from pydantic import BaseModel, Field
from app.core.pagination import PaginationMetadata


class ProjectCreateRequest(BaseModel):
    """Request schema for creating a project."""
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    team_id: Optional[str] = None


class ProjectUpdateRequest(BaseModel):
    """Request schema for updating a project."""
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    status: Optional[str] = Field(None, max_length=50)


class ProjectResponse(BaseModel):
    """Response schema for a project."""
    id: str
    name: str
    description: Optional[str] = None
    owner_id: str
    team_id: Optional[str] = None
    status: str
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class ProjectListResponse(BaseModel):
    """Paginated project listing."""
    data: List[ProjectResponse]
    pagination: PaginationMetadata
