from typing import List, Optional
from datetime import datetime
from pydantic import BaseModel


class TeamMemberResponse(BaseModel):
    """Response schema for a team membership."""
    user_id: str
    role: str
    joined_at: datetime

    class Config:
        from_attributes = True


class TeamMembersResponse(BaseModel):
    team_id: str
    owner_id: str
    members: List[TeamMemberResponse]


class TeamRoleResponse(BaseModel):
    team_id: str
    role: Optional[str] = None
