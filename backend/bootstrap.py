"""
Mileage Ledger - Bootstrap

One-time process setup for hosts embedding the ledger (export workers,
API processes): environment, logging, error tracking, config self-check.
"""

import logging
from pathlib import Path

from dotenv import load_dotenv

from config import Settings, get_settings, validate_environment
from logging_config import setup_logging
from sentry_integration import capture_message, init_sentry

ROOT_DIR = Path(__file__).parent

logger = logging.getLogger(__name__)


def init_engine(env_file: Path = ROOT_DIR / ".env") -> Settings:
    """
    Load .env, configure logging and Sentry, and validate configuration.

    Raises:
        RuntimeError: configuration invalid in production
    """
    load_dotenv(env_file)

    settings = get_settings()

    setup_logging(
        level=settings.LOG_LEVEL,
        json_format=settings.json_logs,
        service_name=settings.SERVICE_NAME,
    )

    if settings.SENTRY_DSN:
        init_sentry(
            dsn=settings.SENTRY_DSN,
            environment=settings.ENVIRONMENT,
            traces_sample_rate=settings.SENTRY_TRACES_SAMPLE_RATE,
        )

    env_status = validate_environment()
    if not env_status["valid"]:
        for error in env_status["errors"]:
            logger.error(f"Configuration Error: {error}")
        if settings.is_production:
            capture_message("Mileage ledger started with invalid configuration", level="error")
            raise RuntimeError("Cannot start in production with invalid configuration")

    for warning in env_status.get("warnings", []):
        logger.warning(f"Configuration Warning: {warning}")

    logger.info(f"Mileage ledger ready ({settings.ENVIRONMENT})")
    return settings
