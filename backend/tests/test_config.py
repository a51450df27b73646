"""
Unit Tests for Configuration, Logging and Error Tracking Setup

Run with: pytest tests/test_config.py -v
"""

import json
import logging
import os

import pytest
import sentry_sdk

from bootstrap import init_engine
from config import Settings, get_settings, validate_environment
from logging_config import (
    JSONFormatter,
    RequestContextFilter,
    clear_request_context,
    get_request_context,
    set_request_context,
    setup_logging,
)
from sentry_integration import capture_exception, filter_sensitive_data, init_sentry, redact_dict


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    yield root
    for handler in root.handlers[:]:
        root.removeHandler(handler)
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)


class TestSettings:
    """Settings and rate table validation"""

    def test_defaults(self):
        settings = Settings(_env_file=None)
        assert settings.ENVIRONMENT == "development"
        assert settings.HMRC_THRESHOLD_MILES == 10000
        assert settings.DEFAULT_USER_NAME == "MileClear User"
        assert settings.debug_enabled is True
        assert settings.validate_rate_config() == []

    def test_rate_errors(self):
        settings = Settings(
            _env_file=None,
            HMRC_CAR_FIRST_TIER_PENCE=20,
            HMRC_MOTORBIKE_FLAT_PENCE=-1,
            HMRC_THRESHOLD_MILES=0,
        )
        errors = settings.validate_rate_config()
        assert "HMRC_MOTORBIKE_FLAT_PENCE cannot be negative" in errors
        assert "HMRC_CAR_SECOND_TIER_PENCE cannot exceed HMRC_CAR_FIRST_TIER_PENCE" in errors
        assert "HMRC_THRESHOLD_MILES must be greater than 0" in errors

    def test_get_settings_rejects_bad_rates(self, monkeypatch):
        monkeypatch.setenv("HMRC_VAN_SECOND_TIER_PENCE", "60")
        with pytest.raises(ValueError, match="Rate configuration invalid"):
            get_settings()

    def test_production_requires_sentry(self, monkeypatch):
        monkeypatch.setenv("ENVIRONMENT", "production")
        monkeypatch.delenv("SENTRY_DSN", raising=False)
        with pytest.raises(ValueError, match="SENTRY_DSN is required in production"):
            get_settings()

    def test_production_json_logs(self):
        settings = Settings(_env_file=None, ENVIRONMENT="production", SENTRY_DSN="https://key@example.invalid/1")
        assert settings.is_production
        assert settings.json_logs
        assert settings.validate_production_config() == []

    def test_validate_environment_warns_without_sentry(self, monkeypatch):
        monkeypatch.delenv("SENTRY_DSN", raising=False)
        status = validate_environment()
        assert status["valid"] is True
        assert "Error tracking disabled" in status["warnings"]


class TestLogging:
    """Structured logging with run context"""

    def _record(self, **extra):
        record = logging.LogRecord("services.mileage.ledger", logging.INFO, __file__, 10, "Annotated %d trips", (3,), None)
        for key, value in extra.items():
            setattr(record, key, value)
        return record

    def test_json_formatter_includes_context(self):
        set_request_context(request_id="req-1", user_id="user-1", tax_year="2025-26")
        try:
            record = self._record(tally_miles={"car": "50"})
            RequestContextFilter().filter(record)
            payload = json.loads(JSONFormatter(service_name="test-ledger").format(record))
        finally:
            clear_request_context()

        assert payload["message"] == "Annotated 3 trips"
        assert payload["service"] == "test-ledger"
        assert payload["level"] == "INFO"
        assert payload["extra"]["request_id"] == "req-1"
        assert payload["extra"]["tax_year"] == "2025-26"
        assert payload["extra"]["tally_miles"] == {"car": "50"}

    def test_clear_request_context(self):
        set_request_context(request_id="req-1", user_id="user-1")
        clear_request_context()
        assert get_request_context() == {"request_id": None, "user_id": None, "tax_year": None}

    def test_setup_logging_installs_one_handler(self, restore_root_logger):
        root = setup_logging(level="WARNING", json_format=True, service_name="test-ledger")
        assert root.level == logging.WARNING
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, JSONFormatter)


class TestSentry:
    """Error tracking setup and scrubbing"""

    def test_disabled_without_dsn(self, monkeypatch):
        monkeypatch.delenv("SENTRY_DSN", raising=False)
        assert init_sentry(dsn=None) is False

    def test_addresses_and_secrets_redacted(self):
        event = {
            "extra": {
                "user_id": "user-1",
                "error_detail": {"details": {"trip_id": "t1"}},
                "start_address": "1 High Street, Leeds",
                "api_key": "abc",
            },
            "contexts": {"trip": {"end_address": "2 Station Road, York"}},
        }
        filtered = filter_sensitive_data(event, {})
        assert filtered["extra"]["user_id"] == "user-1"
        assert filtered["extra"]["error_detail"]["details"]["trip_id"] == "t1"
        assert filtered["extra"]["start_address"] == "[REDACTED]"
        assert filtered["extra"]["api_key"] == "[REDACTED]"
        assert filtered["contexts"]["trip"]["end_address"] == "[REDACTED]"

    def test_redact_lists(self):
        assert redact_dict({"rows": [{"token": "x", "miles": 3}]}) == {"rows": [{"token": "[REDACTED]", "miles": 3}]}

    def test_capture_tags_stay_on_the_event_scope(self, monkeypatch):
        seen = {}

        def fake_capture(exception):
            seen.update(sentry_sdk.get_current_scope()._tags)
            return "event-id"

        monkeypatch.setattr(sentry_sdk, "capture_exception", fake_capture)

        event_id = capture_exception(
            ValueError("bad trip"),
            tags={"ledger_error": "TripDataIntegrityError"},
            user_id="user-1",
        )

        assert event_id == "event-id"
        assert seen["ledger_error"] == "TripDataIntegrityError"
        assert "ledger_error" not in sentry_sdk.get_current_scope()._tags
        assert "ledger_error" not in sentry_sdk.get_isolation_scope()._tags


class TestInitEngine:
    """Process bootstrap"""

    ENV_KEYS = ("LOG_LEVEL", "SERVICE_NAME", "HMRC_MOTORBIKE_FLAT_PENCE")

    def test_loads_env_file(self, tmp_path, monkeypatch, restore_root_logger):
        monkeypatch.delenv("SENTRY_DSN", raising=False)
        for key in self.ENV_KEYS:
            monkeypatch.delenv(key, raising=False)

        env_file = tmp_path / ".env"
        env_file.write_text("LOG_LEVEL=WARNING\nSERVICE_NAME=test-ledger\nHMRC_MOTORBIKE_FLAT_PENCE=20\n")

        try:
            settings = init_engine(env_file)
            assert settings.SERVICE_NAME == "test-ledger"
            assert settings.HMRC_MOTORBIKE_FLAT_PENCE == 20
            assert restore_root_logger.level == logging.WARNING
        finally:
            for key in self.ENV_KEYS:
                os.environ.pop(key, None)

    def test_production_without_sentry_fails(self, tmp_path, monkeypatch, restore_root_logger):
        monkeypatch.setenv("ENVIRONMENT", "production")
        monkeypatch.delenv("SENTRY_DSN", raising=False)
        with pytest.raises(ValueError):
            init_engine(tmp_path / "missing.env")
