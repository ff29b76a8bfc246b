import enum
import logging
import re
from datetime import datetime
from typing import Any, Callable, Dict, Optional, Tuple
from fastapi import BackgroundTasks, Request
from sqlalchemy import and_
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from app.config import settings
from app.core import repositories
from app.core.pagination import PaginatedResult, PaginationQuery, build_paginated_response
from app.models.activity_log import ActivityLog

logger = logging.getLogger(__name__)

UUID_PATTERN = r"[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}"

METHOD_ACTIONS = {
    "GET": "read",
    "POST": "create",
    "PUT": "update",
    "PATCH": "update",
    "DELETE": "delete",
}


class ActivityActions(str, enum.Enum):
    """Common activity actions. The store accepts any string."""
    CREATE = "create"
    READ = "read"
    UPDATE = "update"
    DELETE = "delete"
    LOGIN = "login"
    LOGOUT = "logout"
    UPLOAD = "upload"
    DOWNLOAD = "download"
    INVITE = "invite"
    JOIN = "join"
    LEAVE = "leave"
    SHARE = "share"
    REVOKE = "revoke"
    ADMIN_ACTION = "admin_action"
    SETTINGS_CHANGE = "settings_change"


class EntityTypes(str, enum.Enum):
    """Common entity types. The store accepts any string."""
    USER = "user"
    TEAM = "team"
    PROJECT = "project"
    ASSET = "asset"
    API_KEY = "api_key"
    CREDENTIAL = "credential"
    NOTIFICATION = "notification"
    SYSTEM_SETTING = "system_setting"


def _value(item: Any) -> Any:
    return item.value if isinstance(item, enum.Enum) else item


def derive_activity(
    method: str,
    path: str,
    api_prefix: Optional[str] = None
) -> Tuple[str, str, Optional[str]]:
    """
    Derive (action, entity_type, entity_id) from a request method and path.

    Under /api/<entity_type>[/<uuid>[/...]] the first segment is the entity
    type and a UUID second segment its id. Paths outside the API prefix are
    recorded as entity type "api" without an id.
    """
    api_prefix = settings.API_PREFIX if api_prefix is None else api_prefix
    action = METHOD_ACTIONS.get(method.upper(), "unknown")

    match = re.match(
        rf"^{re.escape(api_prefix)}/([^/]+)(?:/([^/]+))?",
        path,
    )
    if not match:
        return action, "api", None

    entity_type, candidate_id = match.group(1), match.group(2)
    if candidate_id and re.fullmatch(UUID_PATTERN, candidate_id, re.IGNORECASE):
        return action, entity_type, candidate_id
    return action, entity_type, None


class ActivityLogger:
    """
    Best-effort activity writer.

    Writes go through their own session from `session_factory`, never the
    request session, so they can run after the response has been sent.
    Failures are reported to `sink` and swallowed.

    Args:
        session_factory: Callable returning an AsyncSession context manager
        sink: Logger receiving write failures
    """

    def __init__(
        self,
        session_factory: async_sessionmaker,
        sink: Optional[logging.Logger] = None
    ):
        self.session_factory = session_factory
        self.sink = sink or logger

    async def record(
        self,
        user_id: Optional[str],
        entity_type: Any,
        action: Any,
        entity_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None
    ) -> ActivityLog:
        """Insert one activity row. Raises on storage failure."""
        entry = ActivityLog(
            user_id=user_id,
            entity_type=_value(entity_type),
            entity_id=entity_id,
            action=_value(action),
            details=details or {},
            ip_address=ip_address,
            user_agent=user_agent,
        )
        async with self.session_factory() as session:
            session.add(entry)
            await session.commit()
        logger.debug(
            f"Activity logged: {entry.action} {entry.entity_type}",
            extra={"user_id": user_id, "entity_id": entity_id}
        )
        return entry

    async def log(
        self,
        user_id: Optional[str],
        entity_type: Any,
        action: Any,
        entity_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None
    ) -> bool:
        """
        Log an activity without ever raising.

        Returns:
            True if the entry was written, False otherwise
        """
        if not settings.ACTIVITY_LOG_ENABLED:
            return False
        try:
            await self.record(
                user_id=user_id,
                entity_type=entity_type,
                action=action,
                entity_id=entity_id,
                details=details,
                ip_address=ip_address,
                user_agent=user_agent,
            )
            return True
        except Exception as e:
            self.sink.error(
                f"Failed to log activity: {str(e)}",
                extra={
                    "user_id": user_id,
                    "entity_type": _value(entity_type),
                    "action": _value(action),
                }
            )
            return False

    def schedule(
        self,
        background_tasks: BackgroundTasks,
        user_id: Optional[str],
        entity_type: Any,
        action: Any,
        entity_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None
    ) -> None:
        """Schedule log() to run after the response is sent (non-blocking)."""
        background_tasks.add_task(
            self.log,
            user_id=user_id,
            entity_type=entity_type,
            action=action,
            entity_id=entity_id,
            details=details,
            ip_address=ip_address,
            user_agent=user_agent,
        )

    @staticmethod
    def request_context(request: Request) -> Dict[str, Optional[str]]:
        """Extract client IP and user agent from a request."""
        return {
            "ip_address": request.client.host if request.client else None,
            "user_agent": request.headers.get("user-agent"),
        }


class ActivityService:
    """Read side of the activity log."""

    @staticmethod
    async def query_activity(
        db: AsyncSession,
        query: PaginationQuery,
        entity_type: Optional[str] = None,
        action: Optional[str] = None,
        user_id: Optional[str] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        transform: Optional[Callable[[Any], Any]] = None
    ) -> PaginatedResult:
        """
        Query activity logs with filters, newest first.

        Args:
            db: Database session
            query: Pagination parameters
            entity_type: Filter by entity type
            action: Filter by action
            user_id: Filter by acting user
            start_date: Only entries created at or after this time
            end_date: Only entries created at or before this time

        Returns:
            PaginatedResult of ActivityLog records
        """
        conditions = []

        if entity_type:
            conditions.append(ActivityLog.entity_type == entity_type)
        if action:
            conditions.append(ActivityLog.action == action)
        if user_id:
            conditions.append(ActivityLog.user_id == user_id)
        if start_date:
            conditions.append(ActivityLog.created_at >= start_date)
        if end_date:
            conditions.append(ActivityLog.created_at <= end_date)

        return await build_paginated_response(
            db,
            repositories.activity_logs,
            query,
            base_filters=[and_(*conditions)] if conditions else [],
            sortable_fields={"created_at": ActivityLog.created_at},
            default_sort="created_at",
            transform=transform,
        )

    @staticmethod
    async def get_user_activity(
        db: AsyncSession,
        user_id: str,
        query: PaginationQuery,
        transform: Optional[Callable[[Any], Any]] = None
    ) -> PaginatedResult:
        """Activity performed by one user, newest first."""
        return await ActivityService.query_activity(
            db, query, user_id=user_id, transform=transform
        )
