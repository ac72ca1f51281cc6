"""
Application configuration

SECURITY: Defaults are fail-safe for production.
- DEBUG defaults to False
- SECRET_KEY and DATABASE_URL have no defaults (will fail if not set)
- Runtime validation catches insecure configurations
"""
import json
import os
import logging
from typing import List
from pydantic import AliasChoices, Field, field_validator, model_validator
from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)

# Default CORS origins
DEFAULT_CORS_ORIGINS = [
    "http://localhost:3000",
    "http://localhost:5173",
    "http://127.0.0.1:3000",
    "http://127.0.0.1:5173",
]


class Settings(BaseSettings):
    # App - defaults are PRODUCTION safe
    APP_NAME: str = "Courier Express"
    DEBUG: bool = False  # SECURE DEFAULT: off in production
    ENVIRONMENT: str = "production"  # Explicit env marker
    LOG_LEVEL: str = "INFO"

    # Database - NO DEFAULT (will fail if not set)
    DATABASE_URL: str
    CREATE_TABLES_ON_STARTUP: bool = False

    # Database Pool Configuration
    DB_POOL_SIZE: int = 5
    DB_MAX_OVERFLOW: int = 10
    DB_POOL_RECYCLE: int = 3600  # 1 hour

    # Auth - NO DEFAULT SECRET KEY (will fail if not set)
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    SESSION_EXPIRE_HOURS: int = 24

    # Session cookie
    COOKIE_DOMAIN: str = ""  # Empty = host-only cookie
    COOKIE_SECURE: bool = True  # Set to False for local dev without HTTPS
    COOKIE_SAMESITE: str = "lax"  # "strict", "lax", or "none"

    # CORS - accepts JSON array or comma-separated string
    CORS_ORIGINS: List[str] = DEFAULT_CORS_ORIGINS

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def parse_cors_origins(cls, v):
        if isinstance(v, list):
            return v
        if isinstance(v, str):
            if not v or v.strip() == "":
                return DEFAULT_CORS_ORIGINS
            # Try JSON first
            if v.startswith("["):
                try:
                    return json.loads(v)
                except json.JSONDecodeError:
                    pass
            # Fallback to comma-separated
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v

    # Rate Limiting
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_STORAGE: str = "memory"  # "memory" or "redis"
    RATE_LIMIT_AUTH: str = "5/minute"  # login brute-force guard (slowapi)

    # Redis (shared rate-limit counters for multi-instance deployments)
    REDIS_URL: str = ""

    # Transactional email (Resend)
    RESEND_API_KEY: str = ""
    RESEND_FROM_EMAIL: str = "noreply@example.com"
    RESEND_API_BASE: str = "https://api.resend.com"
    COMPANY_NAME: str = "Courier Express"
    PUBLIC_SITE_URL: str = "http://localhost:3000"

    # Geocoding (Mapbox) - token never leaves the server
    MAPBOX_ACCESS_TOKEN: str = ""
    MAPBOX_TIMEOUT_SECONDS: float = 10.0

    # Storage (S3 compatible)
    S3_BUCKET: str = Field(
        default="courier-uploads",
        validation_alias=AliasChoices("S3_BUCKET", "S3_BUCKET_NAME"),
    )
    S3_REGION: str = Field(
        default="us-east-1",
        validation_alias=AliasChoices("S3_REGION", "AWS_REGION"),
    )
    S3_ACCESS_KEY: str = ""
    S3_SECRET_KEY: str = ""
    S3_ENDPOINT: str = ""  # Leave empty for AWS, set for R2/MinIO
    S3_PUBLIC_URL: str = ""  # CDN / custom domain in front of the bucket

    # Request size limit
    MAX_REQUEST_SIZE_MB: int = 10

    @model_validator(mode="after")
    def validate_production_config(self):
        """Runtime validation to catch insecure production configurations."""
        if self.ENVIRONMENT == "production":
            errors = []

            if self.DEBUG:
                errors.append(
                    "DEBUG=True is forbidden in production. "
                    "Set DEBUG=false or ENVIRONMENT=development"
                )

            insecure_secrets = [
                "your-secret-key",
                "change-in-production",
                "secret",
                "password",
                "changeme",
            ]
            if any(bad in self.SECRET_KEY.lower() for bad in insecure_secrets):
                errors.append(
                    "Insecure SECRET_KEY detected in production. "
                    "Generate a secure key: python -c 'import secrets; print(secrets.token_urlsafe(32))'"
                )

            if "localhost" in self.DATABASE_URL or "127.0.0.1" in self.DATABASE_URL:
                errors.append(
                    "Localhost DATABASE_URL detected in production. "
                    "Configure proper database connection."
                )

            cors_warnings = []
            for origin in self.CORS_ORIGINS:
                if origin == "*":
                    cors_warnings.append("Wildcard '*' CORS origin is insecure in production")
                elif "localhost" in origin or "127.0.0.1" in origin:
                    cors_warnings.append(f"Localhost CORS origin '{origin}' should be removed in production")

            if cors_warnings:
                logger.warning(
                    "CORS WARNINGS in production:\n" +
                    "\n".join(f"  - {w}" for w in cors_warnings)
                )

            if self.RATE_LIMIT_STORAGE == "memory":
                logger.warning(
                    "Rate limit counters are process-local; "
                    "set RATE_LIMIT_STORAGE=redis when running more than one instance"
                )

            if errors:
                raise ValueError(
                    "PRODUCTION SECURITY VIOLATIONS:\n" + "\n".join(f"  - {e}" for e in errors)
                )

        return self

    @property
    def is_sqlite(self) -> bool:
        return self.DATABASE_URL.startswith("sqlite")

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"


# Try to load settings, provide helpful error on failure
try:
    settings = Settings()
except Exception as e:
    # In development, allow fallback defaults
    if os.getenv("ENVIRONMENT", "development") == "development":
        logger.warning(
            "Settings validation failed, using development defaults. "
            "Set DATABASE_URL and SECRET_KEY in .env file."
        )
        os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./courier_dev.db")
        os.environ.setdefault("SECRET_KEY", "dev-only-secret-key-not-for-production")
        os.environ.setdefault("ENVIRONMENT", "development")
        settings = Settings()
    else:
        raise
