import logging
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from app.api.v1.router import api_router
from app.config import settings
from app.core.encryption import get_cipher
from app.core.exceptions import AppException, ConfigurationError
from app.core.logging_config import setup_logging, cleanup_old_logs
from app.core.logging_utils import get_request_id, sanitize_log_message
from app.database import AsyncSessionLocal, init_db, close_db
from app.middleware.activity_middleware import setup_activity_logging
from app.middleware.logging_middleware import LoggingMiddleware
from app.middleware.rate_limit import setup_rate_limiting
from app.middleware.security import setup_security_middleware
from app.services.activity_service import ActivityLogger

logger = logging.getLogger(__name__)

app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.VERSION,
    openapi_url=f"{settings.API_PREFIX}/openapi.json",
    docs_url=f"{settings.API_PREFIX}/docs",
    redoc_url=f"{settings.API_PREFIX}/redoc",
)


@app.on_event("startup")
async def startup_event():
    """Initialize logging, the schema and the credential cipher."""
    setup_logging()
    cleanup_old_logs()
    await init_db()

    cipher = get_cipher()
    if cipher.is_configured:
        if not cipher.verify_round_trip():
            raise ConfigurationError("Credential encryption self-test failed")
        logger.info("Credential encryption self-test passed")
    else:
        logger.warning("ENCRYPTION_KEY not set - credential endpoints will fail until it is configured")

    logger.info("Application startup complete")


@app.on_event("shutdown")
async def shutdown_event():
    await close_db()
    logger.info("Application shutdown complete")


# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.BACKEND_CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
    allow_headers=["Authorization", "Content-Type", "X-API-Key", "X-Request-ID", "Accept", "Origin"],
)

# Security middleware (request size limit + security headers)
setup_security_middleware(app, max_request_size=settings.MAX_REQUEST_SIZE)

# Activity hook (reads the principal the auth dependencies stored on request.state)
setup_activity_logging(app, ActivityLogger(AsyncSessionLocal))

# Logging middleware (assigns request IDs)
app.add_middleware(LoggingMiddleware)

# Rate limiting
setup_rate_limiting(app)

# Include API router
app.include_router(api_router, prefix=settings.API_PREFIX)


@app.exception_handler(AppException)
async def app_exception_handler(request: Request, exc: AppException):
    log = logger.error if exc.status_code >= 500 else logger.warning
    log(
        sanitize_log_message(
            exc.code,
            RequestID=get_request_id(request),
            Path=request.url.path,
            Method=request.method,
            IP=request.client.host if request.client else None,
            Status=exc.status_code,
            Detail=exc.detail
        )
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "code": exc.code},
        headers=getattr(exc, "headers", None)
    )


# Generic exception handler for unhandled exceptions
@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    logger.exception(
        sanitize_log_message(
            f"Unhandled exception: {type(exc).__name__}",
            RequestID=get_request_id(request),
            Path=request.url.path,
            Method=request.method,
            IP=request.client.host if request.client else None,
            ExceptionType=type(exc).__name__,
            ExceptionMessage=str(exc)
        )
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "detail": "Internal server error" if settings.is_production() else str(exc),
            "code": "INTERNAL_ERROR"
        }
    )


# Health check endpoint
@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "version": settings.VERSION}


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": settings.PROJECT_NAME,
        "version": settings.VERSION,
        "docs": f"{settings.API_PREFIX}/docs"
    }
