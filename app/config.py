from typing import List
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Project Info
    PROJECT_NAME: str = "Admin Boilerplate API"
    VERSION: str = "1.0.0"
    API_V1_STR: str = "/api/v1"
    ENVIRONMENT: str = Field(default="development", description="Environment: development, staging, production")

    # Database
    DATABASE_URL: str = Field(
        default="sqlite+aiosqlite:///./data/admin.db",
        description="Async SQLAlchemy database URL"
    )
    DATABASE_DEBUG: bool = Field(default=False, description="Echo SQL statements")
    DB_POOL_SIZE: int = Field(default=5, description="Database connection pool size")
    DB_MAX_OVERFLOW: int = Field(default=10, description="Database max overflow connections")
    DB_POOL_TIMEOUT: int = Field(default=30, description="Database pool timeout in seconds")
    DB_POOL_RECYCLE: int = Field(default=3600, description="Database pool recycle time in seconds")

    # Security - JWT
    ACCESS_TOKEN_SECRET_KEY: str = Field(..., description="Secret key for access tokens")
    REFRESH_TOKEN_SECRET_KEY: str = Field(..., description="Secret key for refresh tokens")
    ALGORITHM: str = Field(default="HS256", description="JWT algorithm")
    ACCESS_TOKEN_EXPIRE_MINUTES: int = Field(default=30, description="Access token lifetime in minutes")
    REFRESH_TOKEN_EXPIRE_DAYS: int = Field(default=7, description="Refresh token lifetime in days")
    REFRESH_TOKEN_REMEMBER_ME_EXPIRE_DAYS: int = Field(
        default=30,
        description="Refresh token lifetime in days when remember me is set"
    )
    REFRESH_TOKEN_NOT_BEFORE_SECONDS: int = Field(
        default=0,
        description="Delay in seconds before a refresh token becomes usable"
    )
    JWT_SUBJECT: str = Field(default="admin-boilerplate", description="JWT subject claim")
    JWT_AUDIENCE: str = Field(default="https://example.com", description="JWT audience claim")
    JWT_ISSUER: str = Field(default="admin-boilerplate-api", description="JWT issuer claim")

    @field_validator('ACCESS_TOKEN_SECRET_KEY', 'REFRESH_TOKEN_SECRET_KEY')
    @classmethod
    def validate_secret_key(cls, v: str) -> str:
        if len(v) < 32:
            raise ValueError('Token secret keys must be at least 32 characters')
        return v

    # Security - Password
    PASSWORD_EXPIRED_IN_DAYS: int = Field(default=182, description="Days until a new password expires")

    # Security - CORS
    BACKEND_CORS_ORIGINS: List[str] = Field(
        default=["http://localhost:3000", "http://localhost:8000"],
        description="Allowed CORS origins"
    )
    MAX_REQUEST_SIZE: int = Field(default=1048576, description="Max request body size in bytes (default 1MB)")

    # User import
    IMPORT_MAX_FILE_SIZE: int = Field(default=524288, description="Max user import file size in bytes (default 512KB)")
    IMPORT_ALLOWED_FILE_TYPES: List[str] = Field(
        default=["text/csv", "application/vnd.ms-excel"],
        description="Allowed MIME types for user import files"
    )

    # Pagination
    PAGINATION_DEFAULT_PER_PAGE: int = Field(default=20, description="Default page size for list endpoints")
    PAGINATION_MAX_PER_PAGE: int = Field(default=100, description="Maximum page size for list endpoints")

    # Server Configuration
    HOST: str = Field(default="0.0.0.0", description="Server host")
    PORT: int = Field(default=8000, description="Server port")

    # Logging
    LOG_LEVEL: str = Field(default="INFO", description="Logging level (DEBUG, INFO, WARNING, ERROR)")
    LOG_DIR: str = Field(default="./logs", description="Directory for log files")
    LOG_RETENTION_DAYS: int = Field(default=30, description="Number of days to keep log files")
    LOG_MASK_SENSITIVE: bool = Field(default=True, description="Enable sensitive data masking in logs")
    LOG_ENABLE_REQUEST_LOGGING: bool = Field(default=True, description="Enable HTTP request/response logging")

    # Rate Limiting
    RATE_LIMIT_ENABLED: bool = Field(default=True, description="Enable rate limiting")
    RATE_LIMIT_DEFAULT: str = Field(default="100/minute", description="Default rate limit")
    RATE_LIMIT_AUTH: str = Field(default="5/minute", description="Rate limit for login")
    RATE_LIMIT_STORAGE_URI: str = Field(default="memory://", description="Rate limit storage URI")

    def get_log_level(self) -> str:
        """Get log level based on environment."""
        if self.ENVIRONMENT.lower() in ["development", "dev", "test"]:
            return "DEBUG"
        return self.LOG_LEVEL.upper()


settings = Settings()
