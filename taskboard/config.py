"""
Application Configuration
=========================

Centralized configuration using Pydantic Settings.
Loads from environment variables with validation.
"""

from functools import lru_cache
from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Environment
    ENVIRONMENT: str = Field(default="development")

    # Server
    PORT: int = Field(default=5000)

    # Development Settings
    DEV_AUTH_DISABLED: bool = Field(
        default=False,
        description="Disable authentication for local development/testing"
    )

    # Database
    DATABASE_URL: str = Field(default="")

    # Session token (issued as a cookie after identity-provider sign-in)
    JWT_SECRET: str = Field(default="change-this-secret-in-production")
    JWT_ALGORITHM: str = Field(default="HS256")
    JWT_ACCESS_TOKEN_EXPIRE_DAYS: int = Field(default=365)
    AUTH_COOKIE_NAME: str = Field(default="token")

    # Firebase (ID tokens are verified only when a project is configured)
    FIREBASE_PROJECT_ID: Optional[str] = Field(default=None)

    # App Configuration
    API_BASE_URL: str = Field(default="http://localhost:5000")
    ALLOWED_ORIGINS: str = Field(
        default=(
            "http://localhost:5173,"
            "https://task-management-15020.web.app,"
            "https://task-management-15020.firebaseapp.com"
        )
    )

    @property
    def allowed_origins_list(self) -> List[str]:
        """Parse ALLOWED_ORIGINS into a list."""
        return [origin.strip() for origin in self.ALLOWED_ORIGINS.split(",") if origin.strip()]

    @property
    def database_url_async(self) -> str:
        """Convert database URL to async format for asyncpg."""
        if self.DATABASE_URL.startswith("postgresql://"):
            return self.DATABASE_URL.replace(
                "postgresql://", "postgresql+asyncpg://", 1
            )
        return self.DATABASE_URL

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.ENVIRONMENT.lower() == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.ENVIRONMENT.lower() == "development"

    @property
    def auth_disabled(self) -> bool:
        """Check if auth is disabled (only allowed in development)."""
        return self.is_development and self.DEV_AUTH_DISABLED

    @property
    def cookie_samesite(self) -> str:
        return "none" if self.is_production else "strict"

    @field_validator("JWT_SECRET")
    @classmethod
    def validate_jwt_secret(cls, v: str) -> str:
        """Ensure JWT secret is sufficiently long."""
        if len(v) < 32:
            raise ValueError("JWT_SECRET must be at least 32 characters long")
        return v


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are loaded only once.
    """
    return Settings()


# Export a default settings instance
settings = get_settings()
