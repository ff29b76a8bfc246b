import logging
import time
import uuid
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from app.config import settings
from app.core.logging_utils import mask_headers, sanitize_log_message

logger = logging.getLogger(__name__)


class LoggingMiddleware(BaseHTTPMiddleware):
    """Middleware to log all HTTP requests and responses with sensitive data masking."""

    # Endpoints to skip logging (reduce noise)
    SKIP_EXACT = {"/", "/health"}
    SKIP_PREFIXES = ("/docs", "/redoc", "/openapi.json")

    def _skip(self, path: str) -> bool:
        return path in self.SKIP_EXACT or path.startswith(self.SKIP_PREFIXES)

    async def dispatch(self, request: Request, call_next):
        # Request ID is assigned even for skipped paths so error handlers can use it
        if not hasattr(request.state, "request_id"):
            request.state.request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request_id = request.state.request_id

        if self._skip(request.url.path) or not settings.LOG_ENABLE_REQUEST_LOGGING:
            response = await call_next(request)
            response.headers["X-Request-ID"] = request_id
            return response

        start_time = time.time()

        method = request.method
        path = request.url.path
        client_ip = request.client.host if request.client else None

        logger.debug(
            sanitize_log_message(
                f"Request: {method} {path}",
                RequestID=request_id,
                IP=client_ip,
                UserAgent=request.headers.get("user-agent"),
                QueryParams=dict(request.query_params),
                Headers=mask_headers(dict(request.headers))
            )
        )

        try:
            response = await call_next(request)
        except Exception as e:
            logger.exception(
                sanitize_log_message(
                    f"Exception in request: {method} {path}",
                    RequestID=request_id,
                    ProcessTime=f"{time.time() - start_time:.3f}s",
                    IP=client_ip,
                    Error=str(e)
                )
            )
            raise

        response.headers["X-Request-ID"] = request_id

        # Principal is only known after the auth dependency ran
        user = getattr(request.state, "user", None)
        logger.info(
            sanitize_log_message(
                f"Response: {method} {path}",
                RequestID=request_id,
                Status=response.status_code,
                ProcessTime=f"{time.time() - start_time:.3f}s",
                IP=client_ip,
                UserID=user.id if user is not None else None
            )
        )

        return response
