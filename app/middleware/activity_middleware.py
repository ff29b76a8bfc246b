"""
Automatic activity logging for authenticated requests.

Runs after the endpoint: if an auth dependency stored a principal on
request.state.user, an activity entry derived from the method and path is
attached to the response as a background task. Requests whose endpoint
already logged an entry through ActivityContext are skipped, so each request
yields one row.
"""
import logging
from typing import Iterable, Optional
from fastapi import FastAPI, Request
from starlette.background import BackgroundTask, BackgroundTasks
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response
from app.config import settings
from app.services.activity_service import ActivityLogger, derive_activity

logger = logging.getLogger(__name__)


class ActivityLoggingMiddleware(BaseHTTPMiddleware):
    """Record one activity entry per authenticated request."""

    def __init__(self, app, exclude_paths: Optional[Iterable[str]] = None):
        super().__init__(app)
        self.exclude_paths = list(exclude_paths) if exclude_paths is not None else [
            "/health",
            f"{settings.API_PREFIX}/activity",
        ]

    def _is_excluded(self, path: str) -> bool:
        return any(
            path == excluded or path.startswith(excluded.rstrip("/") + "/")
            for excluded in self.exclude_paths
        )

    async def dispatch(self, request: Request, call_next) -> Response:
        response = await call_next(request)

        if not settings.ACTIVITY_LOG_ENABLED or self._is_excluded(request.url.path):
            return response

        user = getattr(request.state, "user", None)
        if user is None:
            return response

        # The endpoint already scheduled its own, more specific entry
        if getattr(request.state, "activity_logged", False):
            return response

        activity_logger: Optional[ActivityLogger] = getattr(request.app.state, "activity_logger", None)
        if activity_logger is None:
            logger.debug("Activity logger not configured, skipping")
            return response

        action, entity_type, entity_id = derive_activity(request.method, request.url.path)
        details = {
            "method": request.method,
            "url": _path_with_query(request),
            "status_code": response.status_code,
        }
        if request.query_params:
            details["query"] = dict(request.query_params)

        task = BackgroundTask(
            activity_logger.log,
            user_id=user.id,
            entity_type=entity_type,
            entity_id=entity_id,
            action=action,
            details=details,
            **activity_logger.request_context(request),
        )
        _attach_background(response, task)
        return response


def _path_with_query(request: Request) -> str:
    query = request.url.query
    return f"{request.url.path}?{query}" if query else request.url.path


def _attach_background(response: Response, task: BackgroundTask) -> None:
    """Append a task to the response, keeping any task already attached."""
    if response.background is None:
        response.background = task
    elif isinstance(response.background, BackgroundTasks):
        response.background.tasks.append(task)
    else:
        response.background = BackgroundTasks([response.background, task])


def setup_activity_logging(app: FastAPI, activity_logger: ActivityLogger) -> None:
    """
    Bind the activity logger to the app and install the automatic hook.

    Args:
        app: FastAPI application instance
        activity_logger: Logger used by both the hook and explicit endpoint calls
    """
    app.state.activity_logger = activity_logger
    app.add_middleware(ActivityLoggingMiddleware)
    logger.info(f"Activity logging enabled: {settings.ACTIVITY_LOG_ENABLED}")
