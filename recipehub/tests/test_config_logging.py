import json
import logging

import pytest

from recipehub.core.config import Settings, validate_config
from recipehub.core.logging import (
    JsonFormatter,
    PrettyFormatter,
    _safe_truncate,
    latency_bucket_ms,
    log_event,
    request_id_ctx_var,
)
from recipehub.core.validation import EnvValidationError, validate_env

PROD_VALUES = dict(
    ENV="production",
    DATABASE_URL="postgresql://recipe:pw@db:5432/recipehub",
    TEST_DATABASE_URL=None,
    JWT_SECRET="x" * 40,
    OPENAI_API_KEY="sk-live",
    STRIPE_SECRET_KEY="sk_live_1",
    STRIPE_WEBHOOK_SECRET="whsec_live",
)


def _settings(**overrides):
    values = {**PROD_VALUES, **overrides}
    return Settings(_env_file=None, **values)


@pytest.fixture
def enforce_env(monkeypatch):
    monkeypatch.delenv("SKIP_ENV_VALIDATION", raising=False)


class TestValidateConfig:
    def test_strict_raises_on_missing_keys(self):
        cfg = _settings(OPENAI_API_KEY=None, STRIPE_WEBHOOK_SECRET=None)
        with pytest.raises(RuntimeError) as exc:
            validate_config(strict=True, settings_obj=cfg)
        assert "OPENAI_API_KEY" in str(exc.value)
        assert "STRIPE_WEBHOOK_SECRET" in str(exc.value)

    def test_lenient_only_warns(self, caplog):
        cfg = _settings(STRIPE_SECRET_KEY=None)
        with caplog.at_level(logging.WARNING):
            assert validate_config(strict=False, settings_obj=cfg, logger=logging.getLogger("test.config"))
        assert "STRIPE_SECRET_KEY" in caplog.text
        assert "sk-live" not in caplog.text

    def test_complete_config_passes(self):
        assert validate_config(strict=True, settings_obj=_settings())


class TestValidateEnv:
    def test_production_passes(self, enforce_env):
        assert validate_env(settings_obj=_settings())

    def test_production_requires_keys(self, enforce_env):
        with pytest.raises(EnvValidationError, match="JWT_SECRET"):
            validate_env(settings_obj=_settings(JWT_SECRET=None))

    def test_production_rejects_short_jwt_secret(self, enforce_env):
        with pytest.raises(EnvValidationError, match="32 characters"):
            validate_env(settings_obj=_settings(JWT_SECRET="short"))

    def test_production_rejects_test_database(self, enforce_env):
        with pytest.raises(EnvValidationError, match="TEST_DATABASE_URL"):
            validate_env(settings_obj=_settings(TEST_DATABASE_URL="sqlite:///tmp/test.db"))

    def test_invalid_database_url(self, enforce_env):
        with pytest.raises(EnvValidationError, match="DATABASE_URL"):
            validate_env(env="development", settings_obj=_settings(ENV="development", DATABASE_URL="not a url"))

    def test_development_is_lenient(self, enforce_env):
        cfg = _settings(ENV="development", OPENAI_API_KEY=None, JWT_SECRET="short")
        assert validate_env(settings_obj=cfg)

    def test_skip_flag(self, monkeypatch):
        monkeypatch.setenv("SKIP_ENV_VALIDATION", "1")
        assert validate_env(settings_obj=_settings(JWT_SECRET=None))


def _record(msg="billing.webhook.duplicate", **extra):
    record = logging.LogRecord("recipehub", logging.INFO, __file__, 1, msg, (), None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestFormatters:
    def test_json_formatter_includes_extras(self):
        line = JsonFormatter().format(_record(request_id="rid-1", user_id="u-1", event_type="invoice.paid"))
        payload = json.loads(line)
        assert payload["message"] == "billing.webhook.duplicate"
        assert payload["level"] == "INFO"
        assert payload["request_id"] == "rid-1"
        assert payload["user_id"] == "u-1"
        assert payload["event_type"] == "invoice.paid"
        assert payload["timestamp"].endswith("Z")

    def test_json_formatter_drops_empty_extras(self):
        payload = json.loads(JsonFormatter().format(_record(user_id=None)))
        assert "user_id" not in payload

    def test_pretty_formatter(self):
        line = PrettyFormatter().format(_record(request_id="rid-2", plan="pro"))
        assert "[rid=rid-2]" in line
        assert "plan=pro" in line


class TestLogEvent:
    def test_log_event_uses_context_request_id(self, caplog):
        token = request_id_ctx_var.set("ctx-rid")
        try:
            with caplog.at_level(logging.INFO, logger="recipehub"):
                log_event("info", "usage.recorded", user_id="u-9", extra={"month": "2026-10"})
        finally:
            request_id_ctx_var.reset(token)
        record = next(r for r in caplog.records if r.getMessage() == "usage.recorded")
        assert record.request_id == "ctx-rid"
        assert record.user_id == "u-9"
        assert record.month == "2026-10"

    def test_log_event_truncates_long_values(self, caplog):
        with caplog.at_level(logging.INFO, logger="recipehub"):
            log_event("warning", "ai.output_invalid", extra={"raw": "x" * 2000})
        record = next(r for r in caplog.records if r.getMessage() == "ai.output_invalid")
        assert record.levelname == "WARNING"
        assert record.raw.endswith("...<truncated>")
        assert len(record.raw) < 600


def test_safe_truncate_handles_unprintable_values():
    class Broken:
        def __str__(self):
            raise ValueError("nope")

    assert _safe_truncate(Broken()) == "<unserializable>"
    assert _safe_truncate("short") == "short"


@pytest.mark.parametrize("latency,bucket", [
    (None, "unknown"),
    (3, "<10ms"),
    (50, "10-100ms"),
    (250, "100-500ms"),
    (750, "500-1000ms"),
    (4000, ">=1000ms"),
])
def test_latency_buckets(latency, bucket):
    assert latency_bucket_ms(latency) == bucket
