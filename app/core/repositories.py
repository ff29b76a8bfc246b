"""Resource repositories for the owned entity types."""
from app.core.ownership import ResourceRepository
from app.models.activity_log import ActivityLog
from app.models.api_key import ApiKey
from app.models.credential import UserCredential
from app.models.project import Project
from app.models.team import Team

projects = ResourceRepository(Project, "Project")
teams = ResourceRepository(Team, "Team")
credentials = ResourceRepository(UserCredential, "Credential", owner_column="user_id")
api_keys = ResourceRepository(ApiKey, "API key", owner_column="user_id")
activity_logs = ResourceRepository(ActivityLog, "Activity", owner_column="user_id")
