"""Database models."""
from app.models.user import User, UserRole
from app.models.team import Team, TeamMember
from app.models.project import Project
from app.models.api_key import ApiKey
from app.models.credential import UserCredential
from app.models.activity_log import ActivityLog

__all__ = [
    "User",
    "UserRole",
    "Team",
    "TeamMember",
    "Project",
    "ApiKey",
    "UserCredential",
    "ActivityLog",
]
