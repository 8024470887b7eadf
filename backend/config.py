"""
Nano - Configuration Management

Centralized configuration for environment variables and deployment settings.
This module ensures:
- No hardcoded secrets
- No missing required variables
- Discord role and channel IDs live in one place
- Environment-specific settings (dev/staging/prod)
"""

from typing import Dict, List
from pydantic import Field
from pydantic_settings import BaseSettings
from functools import lru_cache
import logging

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    Uses pydantic-settings for validation and type coercion.
    """

    # ==================== ENVIRONMENT ====================
    ENVIRONMENT: str = Field(
        default="development",
        description="Runtime environment: development, staging, production"
    )
    DEBUG: bool = Field(
        default=False,
        description="Enable debug mode (auto-enabled in development)"
    )

    # ==================== DATABASE ====================
    DATABASE_URL: str = Field(
        default="sqlite+aiosqlite:///./nano.db",
        description="SQLAlchemy async URL (postgresql+asyncpg in production)"
    )
    POSTGRES_SSLMODE: str = Field(
        default="",
        description="Passed to asyncpg as 'ssl' when set, e.g. require"
    )

    # ==================== DISCORD ====================
    DISCORD_TOKEN: str = Field(
        default="",
        description="Bot token; the bot is not started when empty"
    )
    GUILD_ID: int = Field(default=0, description="Server the bot manages")
    AUDIT_CHANNEL_ID: int = Field(
        default=0,
        description="Committee-only channel for audit and review cards"
    )
    GENERAL_CHANNEL_ID: int = Field(
        default=0,
        description="Public channel for welcome announcements"
    )
    CONTACT_USER_ID: int = Field(
        default=0,
        description="User pinged in help and failure messages"
    )

    # ==================== ROLES ====================
    MEMBER_ROLE_ID: int = Field(default=0)
    NON_MEMBER_ROLE_ID: int = Field(default=0)
    OLD_MEMBER_ROLE_ID: int = Field(default=0)
    UNDERGRAD_FRESHER_ROLE_ID: int = Field(default=0)
    POSTGRAD_FRESHER_ROLE_ID: int = Field(default=0)
    EXTRA_ROLE_ID: int = Field(default=0)

    # ==================== INTEGRATIONS ====================
    UNION_API_URL: str = Field(
        default="",
        description="Union membership list endpoint (returns all current members)"
    )
    UNION_API_KEY: str = Field(
        default="",
        description="Sent as X-API-Key to the union membership API"
    )
    VERIFY_WEBHOOK_KEY: str = Field(
        default="",
        description="Shared secret the login provider sends with each pending record"
    )
    LOGIN_URL: str = Field(
        default="https://icas.8bitsqu.id/verify?id={identity}",
        description="External login page, formatted with the Discord user ID"
    )

    # ==================== OBSERVABILITY ====================
    SENTRY_DSN: str = Field(
        default="",
        description="Sentry DSN for error tracking"
    )
    LOG_LEVEL: str = Field(
        default="INFO",
        description="Logging level: DEBUG, INFO, WARNING, ERROR"
    )

    # ==================== API ====================
    API_TITLE: str = Field(default="Nano Verification API")
    API_VERSION: str = Field(default="1.0.0")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True

    # ==================== COMPUTED PROPERTIES ====================

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.lower() == "production"

    @property
    def is_development(self) -> bool:
        return self.ENVIRONMENT.lower() == "development"

    @property
    def debug_enabled(self) -> bool:
        """Enable debug in development or when explicitly set"""
        return self.DEBUG or self.is_development

    @property
    def bot_enabled(self) -> bool:
        return bool(self.DISCORD_TOKEN)

    @property
    def role_ids(self) -> Dict[str, int]:
        return {
            "member": self.MEMBER_ROLE_ID,
            "non_member": self.NON_MEMBER_ROLE_ID,
            "old_member": self.OLD_MEMBER_ROLE_ID,
            "undergraduate": self.UNDERGRAD_FRESHER_ROLE_ID,
            "postgraduate": self.POSTGRAD_FRESHER_ROLE_ID,
            "extra": self.EXTRA_ROLE_ID,
        }

    def validate_production_config(self) -> List[str]:
        """
        Validate configuration for production deployment.
        Returns list of validation errors.
        """
        errors = []

        if not self.DATABASE_URL:
            errors.append("DATABASE_URL is required")

        if not self.VERIFY_WEBHOOK_KEY:
            errors.append("VERIFY_WEBHOOK_KEY is required")
        elif len(self.VERIFY_WEBHOOK_KEY) < 16:
            errors.append("VERIFY_WEBHOOK_KEY should be at least 16 characters")

        if self.is_production:
            if self.DATABASE_URL.startswith("sqlite"):
                errors.append("DATABASE_URL cannot be SQLite in production")

            if not self.DISCORD_TOKEN:
                errors.append("DISCORD_TOKEN is required in production")

            missing = [name for name, value in self.role_ids.items() if not value]
            if missing:
                errors.append(f"Role IDs not configured: {', '.join(missing)}")

            if not self.GUILD_ID or not self.AUDIT_CHANNEL_ID or not self.GENERAL_CHANNEL_ID:
                errors.append("GUILD_ID, AUDIT_CHANNEL_ID and GENERAL_CHANNEL_ID are required")

            if self.DEBUG:
                errors.append("DEBUG should be False in production")

        return errors

    def get_database_url(self) -> str:
        """Get the database URL"""
        if self.DATABASE_URL:
            return self.DATABASE_URL

        raise ValueError("No database configuration found. Set DATABASE_URL.")

    def login_url_for(self, identity: int) -> str:
        return self.LOGIN_URL.format(identity=identity)


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.
    Settings are loaded once and cached for the application lifetime.
    """
    settings = Settings()

    logger.info(f"Environment: {settings.ENVIRONMENT}")
    logger.info(f"Debug: {settings.debug_enabled}")

    # Validate in production
    if settings.is_production:
        errors = settings.validate_production_config()
        if errors:
            for error in errors:
                logger.error(f"Configuration error: {error}")
            raise ValueError(f"Production configuration invalid: {', '.join(errors)}")

    return settings


# ==================== ENVIRONMENT VALIDATION ====================

def validate_environment() -> dict:
    """
    Validate all required environment variables.

    Returns a status dict with validation results.
    """
    settings = get_settings()

    status = {
        "valid": True,
        "environment": settings.ENVIRONMENT,
        "errors": [],
        "warnings": [],
        "variables": {}
    }

    required_vars = [
        ("DATABASE_URL", settings.DATABASE_URL),
        ("VERIFY_WEBHOOK_KEY", settings.VERIFY_WEBHOOK_KEY),
    ]

    for name, value in required_vars:
        if not value:
            status["errors"].append(f"{name} is not set")
            status["valid"] = False
        else:
            status["variables"][name] = "✓ Set"

    optional_vars = [
        ("DISCORD_TOKEN", settings.DISCORD_TOKEN, "Discord bot disabled"),
        ("UNION_API_URL", settings.UNION_API_URL, "Membership verification disabled"),
        ("UNION_API_KEY", settings.UNION_API_KEY, "Union API requests are unauthenticated"),
        ("SENTRY_DSN", settings.SENTRY_DSN, "Error tracking disabled"),
    ]

    for name, value, warning in optional_vars:
        if not value:
            status["warnings"].append(warning)
            status["variables"][name] = "⚠ Not set"
        else:
            status["variables"][name] = "✓ Set"

    # Production-specific validation
    errors = settings.validate_production_config()
    if errors and settings.is_production:
        status["errors"].extend(errors)
        status["valid"] = False

    return status


# Export settings instance for convenience
settings = get_settings()
