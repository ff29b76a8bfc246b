import uuid
from typing import Any, Dict, Optional
from fastapi import Depends, Header, Request, BackgroundTasks
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from app.database import get_db, AsyncSessionLocal
from app.models.user import User, UserRole
from app.core.api_key import authenticate_api_key
from app.core.encryption import get_cipher
from app.core.exceptions import ForbiddenError, UnauthorizedError
from app.core.security import decode_access_token
from app.services.activity_service import ActivityLogger
from app.services.credential_service import CredentialService


# HTTP Bearer scheme for JWT authentication
bearer_scheme = HTTPBearer(auto_error=False)


async def _user_from_token(token: str, db: AsyncSession) -> User:
    payload = decode_access_token(token)
    if not payload:
        raise UnauthorizedError("Invalid or expired token")

    user_id = payload.get("sub")
    if not user_id:
        raise UnauthorizedError("Invalid token payload")

    user = await db.get(User, str(user_id))
    if not user:
        raise UnauthorizedError("User not found")
    return user


async def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db)
) -> User:
    """
    Get current user from JWT token.
    Dependency for endpoints requiring user authentication.

    The user is also stored on request.state.user for the activity hook.

    Raises:
        UnauthorizedError: 401 if token is missing/invalid or the user is unknown
    """
    if not credentials:
        raise UnauthorizedError("Not authenticated")

    user = await _user_from_token(credentials.credentials, db)
    request.state.user = user
    return user


async def get_current_principal(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    x_api_key: Optional[str] = Header(None, alias="X-API-Key"),
    db: AsyncSession = Depends(get_db)
) -> User:
    """
    Resolve the caller from a bearer token, or from an X-API-Key header when
    no token is present.
    """
    if credentials:
        user = await _user_from_token(credentials.credentials, db)
        request.state.user = user
        return user

    if x_api_key:
        return await authenticate_api_key(request, x_api_key=x_api_key, db=db)

    raise UnauthorizedError("Not authenticated")


async def require_admin(user: User = Depends(get_current_user)) -> User:
    """Require a platform admin."""
    if user.role != UserRole.ADMIN.value:
        raise ForbiddenError("Admin access required")
    return user


# Service Dependencies for Dependency Injection
def get_credential_service() -> CredentialService:
    """Get CredentialService bound to the configured cipher."""
    return CredentialService(get_cipher())


def get_activity_logger(request: Request) -> ActivityLogger:
    """Activity logger bound at startup, or one on the default session factory."""
    activity_logger = getattr(request.app.state, "activity_logger", None)
    if activity_logger is None:
        activity_logger = ActivityLogger(AsyncSessionLocal)
    return activity_logger


class ActivityContext:
    """Request-scoped activity logging context with the acting user and request ID."""

    def __init__(
        self,
        request: Request,
        background_tasks: BackgroundTasks,
        activity_logger: ActivityLogger,
        user: Optional[User] = None
    ):
        """
        Initialize activity context with request-scoped information.

        Args:
            request: FastAPI Request object
            background_tasks: FastAPI BackgroundTasks instance
            activity_logger: Writer the entries are scheduled on
            user: Acting user, None for anonymous calls
        """
        # Get or generate request ID from request state
        if not hasattr(request.state, "request_id"):
            request.state.request_id = str(uuid.uuid4())

        self.request_id = request.state.request_id
        self.request = request
        self.background_tasks = background_tasks
        self.activity_logger = activity_logger
        self.user = user
        self.client = activity_logger.request_context(request)

    def log_action(
        self,
        entity_type: Any,
        action: Any,
        entity_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ) -> None:
        """
        Schedule an activity entry for after the response.

        Replaces the generic entry the automatic hook would write.

        Args:
            entity_type: Entity type (EntityTypes member or free string)
            action: Action (ActivityActions member or free string)
            entity_id: ID of the entity
            details: Extra JSON-serialisable context
        """
        self.activity_logger.schedule(
            self.background_tasks,
            user_id=self.user.id if self.user else None,
            entity_type=entity_type,
            action=action,
            entity_id=entity_id,
            details={**(details or {}), "request_id": self.request_id},
            **self.client,
        )
        self.request.state.activity_logged = True


async def get_activity_context(
    request: Request,
    background_tasks: BackgroundTasks,
    user: User = Depends(get_current_user),
    activity_logger: ActivityLogger = Depends(get_activity_logger)
) -> ActivityContext:
    """
    Get request-scoped activity context for an authenticated user.

    Usage:
        @router.post("/endpoint")
        async def endpoint(activity: ActivityContext = Depends(get_activity_context)):
            activity.log_action(EntityTypes.PROJECT, ActivityActions.CREATE, entity_id=...)
    """
    return ActivityContext(
        request=request,
        background_tasks=background_tasks,
        activity_logger=activity_logger,
        user=user
    )
