from typing import List
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator, model_validator


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Project Info
    PROJECT_NAME: str = "Forge Admin API"
    VERSION: str = "1.0.0"
    API_PREFIX: str = "/api"
    ENVIRONMENT: str = Field(default="development", description="Environment: development, staging, production")

    # Database
    DATABASE_URL: str = Field(
        default="sqlite+aiosqlite:///./data/forge_admin.db",
        description="Database URL (SQLite or PostgreSQL)"
    )
    DB_POOL_SIZE: int = Field(default=5, description="Database connection pool size")
    DB_MAX_OVERFLOW: int = Field(default=10, description="Database max overflow connections")
    DB_POOL_TIMEOUT: int = Field(default=30, description="Database pool timeout in seconds")
    DB_POOL_RECYCLE: int = Field(default=3600, description="Database pool recycle time in seconds")

    # Security - JWT
    SECRET_KEY: str = Field(..., description="Secret key for JWT token verification")
    ALGORITHM: str = Field(default="HS256", description="JWT algorithm")
    ACCESS_TOKEN_EXPIRE_MINUTES: int = Field(default=30, description="JWT token expiration in minutes")

    @field_validator('SECRET_KEY')
    @classmethod
    def validate_secret_key(cls, v: str) -> str:
        if len(v) < 32:
            raise ValueError('SECRET_KEY must be at least 32 characters')
        return v

    # Security - Credential encryption
    ENCRYPTION_KEY: str = Field(
        default="",
        description="Master key for credential encryption (required in production)"
    )

    # API Keys
    API_KEY_PREFIX: str = Field(default="fk_live_", description="Prefix prepended to issued API keys")

    # Pagination
    PAGINATION_DEFAULT_LIMIT: int = Field(default=20, description="Default page size")
    PAGINATION_MAX_LIMIT: int = Field(default=100, description="Maximum page size a caller may request")

    # Platform AI provider keys (fallback when a user has no credential)
    OPENAI_API_KEY: str = Field(default="", description="Platform OpenAI API key")
    ANTHROPIC_API_KEY: str = Field(default="", description="Platform Anthropic API key")
    ELEVENLABS_API_KEY: str = Field(default="", description="Platform ElevenLabs API key")
    MESHY_API_KEY: str = Field(default="", description="Platform Meshy API key")
    FAL_KEY: str = Field(default="", description="Platform FAL API key")
    OPENROUTER_API_KEY: str = Field(default="", description="Platform OpenRouter API key")
    AI_GATEWAY_API_KEY: str = Field(default="", description="Platform AI gateway API key")

    # Security - CORS
    BACKEND_CORS_ORIGINS: List[str] = Field(
        default=["http://localhost:3000", "http://localhost:5173"],
        description="Allowed CORS origins"
    )
    MAX_REQUEST_SIZE: int = Field(default=1048576, description="Max request body size in bytes (default 1MB)")

    # Server Configuration
    WORKERS: int = Field(default=4, description="Number of Uvicorn workers")
    HOST: str = Field(default="0.0.0.0", description="Server host")
    PORT: int = Field(default=8000, description="Server port")

    # Logging
    LOG_LEVEL: str = Field(default="INFO", description="Logging level (DEBUG, INFO, WARNING, ERROR)")
    LOG_DIR: str = Field(default="./logs", description="Directory for log files")
    LOG_RETENTION_DAYS: int = Field(default=30, description="Number of days to keep log files")
    LOG_MASK_SENSITIVE: bool = Field(default=True, description="Enable sensitive data masking in logs")
    LOG_ENABLE_REQUEST_LOGGING: bool = Field(default=True, description="Enable HTTP request/response logging")

    # Activity log
    ACTIVITY_LOG_ENABLED: bool = Field(default=True, description="Record authenticated requests in the activity log")

    # Rate Limiting
    RATE_LIMIT_ENABLED: bool = Field(default=True, description="Enable rate limiting")
    RATE_LIMIT_DEFAULT: str = Field(default="100/minute", description="Default rate limit")
    RATE_LIMIT_SENSITIVE: str = Field(default="10/minute", description="Rate limit for key issuance and credential endpoints")
    RATE_LIMIT_STORAGE_URI: str = Field(default="memory://", description="Rate limit storage URI")

    @model_validator(mode="after")
    def require_encryption_key_in_production(self) -> "Settings":
        if self.is_production() and not self.ENCRYPTION_KEY:
            raise ValueError('ENCRYPTION_KEY is required when ENVIRONMENT=production')
        return self

    def is_production(self) -> bool:
        return self.ENVIRONMENT.lower() in ["production", "prod"]

    def get_log_level(self) -> str:
        """Get log level based on environment."""
        if self.ENVIRONMENT.lower() in ["development", "dev", "test"]:
            return "DEBUG"
        return self.LOG_LEVEL.upper()

    def get_platform_api_key(self, service: str) -> str:
        """Platform-wide provider key for a service, empty if not configured."""
        keys = {
            "openai": self.OPENAI_API_KEY,
            "anthropic": self.ANTHROPIC_API_KEY,
            "elevenlabs": self.ELEVENLABS_API_KEY,
            "meshy": self.MESHY_API_KEY,
            "fal": self.FAL_KEY,
            "openrouter": self.OPENROUTER_API_KEY,
            "ai-gateway": self.AI_GATEWAY_API_KEY,
        }
        return keys.get(service.lower(), "")


settings = Settings()
