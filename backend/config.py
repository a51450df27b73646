"""
Mileage Ledger - Configuration Management

Centralized configuration for environment variables and the HMRC rate table.
This module ensures:
- No hardcoded secrets
- Rate table values are validated once at startup
- Environment-specific settings (dev/staging/prod)
"""

from typing import List
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
    SERVICE_NAME: str = Field(
        default="mileage-ledger",
        description="Service name attached to structured logs"
    )

    # ==================== OBSERVABILITY ====================
    SENTRY_DSN: str = Field(
        default="",
        description="Sentry DSN for error tracking"
    )
    SENTRY_TRACES_SAMPLE_RATE: float = Field(
        default=0.0,
        ge=0.0,
        le=1.0,
        description="Performance tracing sample rate"
    )
    LOG_LEVEL: str = Field(
        default="INFO",
        description="Logging level: DEBUG, INFO, WARNING, ERROR"
    )
    LOG_JSON: bool = Field(
        default=False,
        description="Force JSON log output outside production"
    )

    # ==================== HMRC RATE TABLE ====================
    # Pence per mile. Car and van are tiered at the threshold, motorbike is flat.
    HMRC_CAR_FIRST_TIER_PENCE: int = Field(default=45)
    HMRC_CAR_SECOND_TIER_PENCE: int = Field(default=25)
    HMRC_VAN_FIRST_TIER_PENCE: int = Field(default=45)
    HMRC_VAN_SECOND_TIER_PENCE: int = Field(default=25)
    HMRC_MOTORBIKE_FLAT_PENCE: int = Field(default=24)
    HMRC_THRESHOLD_MILES: int = Field(
        default=10000,
        description="Business miles per vehicle after which the second tier applies"
    )

    # ==================== EXPORTS ====================
    DEFAULT_USER_NAME: str = Field(
        default="MileClear User",
        description="Display name used on summaries when the user has none"
    )

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True
        extra = "ignore"

    # ==================== COMPUTED PROPERTIES ====================

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.lower() == "production"

    @property
    def is_development(self) -> bool:
        return self.ENVIRONMENT.lower() == "development"

    @property
    def is_staging(self) -> bool:
        return self.ENVIRONMENT.lower() == "staging"

    @property
    def debug_enabled(self) -> bool:
        """Enable debug in development or when explicitly set"""
        return self.DEBUG or self.is_development

    @property
    def json_logs(self) -> bool:
        return self.LOG_JSON or self.is_production

    def validate_rate_config(self) -> List[str]:
        """
        Validate the HMRC rate table values.
        Returns list of validation errors.
        """
        errors = []

        rates = {
            "HMRC_CAR_FIRST_TIER_PENCE": self.HMRC_CAR_FIRST_TIER_PENCE,
            "HMRC_CAR_SECOND_TIER_PENCE": self.HMRC_CAR_SECOND_TIER_PENCE,
            "HMRC_VAN_FIRST_TIER_PENCE": self.HMRC_VAN_FIRST_TIER_PENCE,
            "HMRC_VAN_SECOND_TIER_PENCE": self.HMRC_VAN_SECOND_TIER_PENCE,
            "HMRC_MOTORBIKE_FLAT_PENCE": self.HMRC_MOTORBIKE_FLAT_PENCE,
        }
        for name, value in rates.items():
            if value < 0:
                errors.append(f"{name} cannot be negative")

        if self.HMRC_CAR_SECOND_TIER_PENCE > self.HMRC_CAR_FIRST_TIER_PENCE:
            errors.append("HMRC_CAR_SECOND_TIER_PENCE cannot exceed HMRC_CAR_FIRST_TIER_PENCE")

        if self.HMRC_VAN_SECOND_TIER_PENCE > self.HMRC_VAN_FIRST_TIER_PENCE:
            errors.append("HMRC_VAN_SECOND_TIER_PENCE cannot exceed HMRC_VAN_FIRST_TIER_PENCE")

        if self.HMRC_THRESHOLD_MILES <= 0:
            errors.append("HMRC_THRESHOLD_MILES must be greater than 0")

        return errors

    def validate_production_config(self) -> List[str]:
        """
        Validate configuration for production deployment.
        Returns list of validation errors.
        """
        errors = []

        if self.is_production:
            if not self.SENTRY_DSN:
                errors.append("SENTRY_DSN is required in production")

            if self.DEBUG:
                errors.append("DEBUG should be False in production")

        return errors


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.
    Settings are loaded once and cached for the process lifetime.
    """
    settings = Settings()

    logger.info(f"Environment: {settings.ENVIRONMENT}")
    logger.info(f"Debug: {settings.debug_enabled}")

    rate_errors = settings.validate_rate_config()
    if rate_errors:
        for error in rate_errors:
            logger.error(f"Rate configuration error: {error}")
        raise ValueError(f"Rate configuration invalid: {', '.join(rate_errors)}")

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
    Validate the runtime environment.

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

    optional_vars = [
        ("SENTRY_DSN", settings.SENTRY_DSN, "Error tracking disabled"),
    ]

    for name, value, warning in optional_vars:
        if not value:
            status["warnings"].append(warning)
            status["variables"][name] = "⚠ Not set"
        else:
            status["variables"][name] = "✓ Set"

    errors = settings.validate_rate_config() + settings.validate_production_config()
    if errors:
        status["errors"].extend(errors)
        status["valid"] = False

    return status
