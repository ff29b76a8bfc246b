from typing import Any, Dict, List, Optional
from datetime import datetime
from pydantic import BaseModel
from app.core.pagination import PaginationMetadata


class ActivityLogResponse(BaseModel):
    """Response schema for an activity log entry."""
    id: str
    user_id: Optional[str] = None
    entity_type: str
    entity_id: Optional[str] = None
    action: str
    details: Dict[str, Any] = {}
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class ActivityListResponse(BaseModel):
    """Paginated activity listing."""
    data: List[ActivityLogResponse]
    pagination: PaginationMetadata
