"""
Rate limiting using slowapi.

Callers presenting an X-API-Key are limited per key, everyone else per
client IP.
"""
import logging
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address
from app.config import settings
from app.core.api_key import hash_api_key
from app.core.logging_utils import get_request_id, sanitize_log_message

logger = logging.getLogger(__name__)


def get_client_ip(request: Request) -> str:
    """Client IP, honouring the first hop of X-Forwarded-For."""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return get_remote_address(request)


def rate_limit_key(request: Request) -> str:
    """Bucket key: a digest of the presented API key, else the client IP."""
    api_key = request.headers.get("X-API-Key")
    if api_key:
        # Never keep the raw key in limiter storage
        return f"key:{hash_api_key(api_key)[:16]}"
    return f"ip:{get_client_ip(request)}"


limiter = Limiter(
    key_func=rate_limit_key,
    default_limits=[settings.RATE_LIMIT_DEFAULT],
    storage_uri=settings.RATE_LIMIT_STORAGE_URI,
    enabled=settings.RATE_LIMIT_ENABLED
)


async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    logger.warning(
        sanitize_log_message(
            "RATE_LIMITED",
            RequestID=get_request_id(request),
            Path=request.url.path,
            Limit=str(exc.detail),
            IP=get_client_ip(request)
        )
    )
    return JSONResponse(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        content={"detail": f"Rate limit exceeded: {exc.detail}", "code": "RATE_LIMITED"}
    )


def setup_rate_limiting(app: FastAPI) -> None:
    """
    Configure rate limiting for the FastAPI application.

    Args:
        app: FastAPI application instance
    """
    if not settings.RATE_LIMIT_ENABLED:
        logger.info("Rate limiting is disabled")
        return

    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
    app.add_middleware(SlowAPIMiddleware)

    logger.info(
        f"Rate limiting enabled: default={settings.RATE_LIMIT_DEFAULT}, "
        f"sensitive={settings.RATE_LIMIT_SENSITIVE}"
    )


def rate_limit_sensitive():
    """Stricter limit for key issuance, rotation and credential submission."""
    return limiter.limit(settings.RATE_LIMIT_SENSITIVE)
