"""
Tests for configuration management in `health_monitor/config.py`.

Covers:
- Environment parsing and the NODE_ENV fallback
- Logging level coercion to the expected Literal
- Threshold and interval overrides
- URL validation for the monitored system and the webhook
- get_config cache behavior
- Startup validation warnings and log directory creation
"""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

import pytest
from rich.console import Console

from health_monitor.config import (
    AppConfig,
    LoggingConfig,
    MonitoringConfig,
    NotificationConfig,
    get_config,
    load_config_from_env,
    print_config_summary,
    validate_config,
)
from health_monitor.errors import ConfigurationWarning

MONITOR_ENV_VARS = (
    "ENVIRONMENT",
    "NODE_ENV",
    "MONITOR_BASE_URL",
    "SLACK_WEBHOOK_URL",
    "EMAIL_ALERT_TO",
    "LOG_LEVEL",
    "LOG_DIR",
    "CHECK_INTERVAL_SECONDS",
    "ALERT_COOLDOWN_SECONDS",
    "RESPONSE_TIME_THRESHOLD_MS",
    "DB_RESPONSE_TIME_THRESHOLD_MS",
    "MEMORY_USAGE_THRESHOLD_PERCENT",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Start every test from an empty monitor environment and a cold config cache."""
    for name in MONITOR_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    get_config.cache_clear()
    yield
    get_config.cache_clear()


def test_load_config_defaults() -> None:
    config = load_config_from_env()

    assert config.environment == "development"
    assert config.logging.format == "console"
    assert config.monitoring.base_url == "http://localhost:5000"
    assert config.monitoring.check_interval_seconds == 30.0
    assert config.monitoring.probe_timeout_seconds == 10.0
    assert config.monitoring.alert_cooldown_seconds == 300.0
    assert config.monitoring.report_interval_seconds == 86400
    assert config.notifications.slack_webhook_url is None
    assert config.notifications.email_alert_to is None


def test_default_thresholds() -> None:
    thresholds = load_config_from_env().monitoring.thresholds

    assert thresholds.response_time_ms == 2000
    assert thresholds.error_rate_percent == 5
    assert thresholds.memory_usage_percent == 85
    assert thresholds.disk_usage_percent == 90
    assert thresholds.db_response_time_ms == 1000


def test_environment_falls_back_to_node_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("NODE_ENV", "production")

    config = load_config_from_env()

    assert config.environment == "production"
    assert config.logging.format == "json"


def test_environment_aliases(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ENVIRONMENT", "stage")
    assert load_config_from_env().environment == "staging"

    monkeypatch.setenv("ENVIRONMENT", "dev")
    assert load_config_from_env().environment == "development"


def test_logging_level_literal_coercion(monkeypatch: pytest.MonkeyPatch) -> None:
    # Unknown level should coerce to INFO
    monkeypatch.setenv("LOG_LEVEL", "verbose")
    assert load_config_from_env().logging.level == "INFO"

    # Known level should pass through
    monkeypatch.setenv("LOG_LEVEL", "debug")
    assert load_config_from_env().logging.level == "DEBUG"


def test_env_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("MONITOR_BASE_URL", "https://watcher.example.com/")
    monkeypatch.setenv("CHECK_INTERVAL_SECONDS", "15")
    monkeypatch.setenv("ALERT_COOLDOWN_SECONDS", "60")
    monkeypatch.setenv("RESPONSE_TIME_THRESHOLD_MS", "500")
    monkeypatch.setenv("MEMORY_USAGE_THRESHOLD_PERCENT", "70")
    monkeypatch.setenv("SLACK_WEBHOOK_URL", "https://hooks.slack.test/services/T/B/X")
    monkeypatch.setenv("EMAIL_ALERT_TO", "oncall@example.com")

    config = load_config_from_env()

    # Trailing slash is stripped so "/health" can be appended safely
    assert config.monitoring.base_url == "https://watcher.example.com"
    assert config.monitoring.check_interval_seconds == 15.0
    assert config.monitoring.alert_cooldown_seconds == 60.0
    assert config.monitoring.thresholds.response_time_ms == 500.0
    assert config.monitoring.thresholds.memory_usage_percent == 70.0
    assert config.notifications.slack_webhook_url == "https://hooks.slack.test/services/T/B/X"
    assert config.notifications.email_alert_to == "oncall@example.com"


def test_invalid_urls_rejected() -> None:
    with pytest.raises(ValueError, match="base_url"):
        MonitoringConfig(base_url="localhost:5000")

    with pytest.raises(ValueError, match="slack_webhook_url"):
        NotificationConfig(slack_webhook_url="ftp://hooks.example.com")


def test_invalid_interval_rejected() -> None:
    with pytest.raises(ValueError):
        MonitoringConfig(check_interval_seconds=0)


def test_get_config_cache() -> None:
    c1 = get_config()
    c2 = get_config()
    assert c1 is c2  # same object due to lru_cache


def test_alert_log_path(tmp_path: Path) -> None:
    config = AppConfig(logging=LoggingConfig(log_dir=str(tmp_path)))
    assert config.alert_log_path == tmp_path / "alerts.log"


class TestValidateConfig:
    def test_warns_about_missing_optional_settings(self, tmp_path: Path) -> None:
        log_dir = tmp_path / "nested" / "logs"
        config = AppConfig(logging=LoggingConfig(log_dir=str(log_dir)))

        warnings = validate_config(config)

        assert all(isinstance(w, ConfigurationWarning) for w in warnings)
        messages = " ".join(str(w) for w in warnings)
        assert "MONITOR_BASE_URL" in messages
        assert "SLACK_WEBHOOK_URL" in messages
        assert "EMAIL_ALERT_TO" in messages
        assert log_dir.is_dir()

    def test_fully_configured_has_no_warnings(self, tmp_path: Path) -> None:
        config = AppConfig(
            monitoring=MonitoringConfig(base_url="https://watcher.example.com"),
            notifications=NotificationConfig(
                slack_webhook_url="https://hooks.slack.test/x", email_alert_to="ops@example.com"
            ),
            logging=LoggingConfig(log_dir=str(tmp_path)),
        )

        assert validate_config(config) == []

    def test_base_url_judged_from_config_not_environment(self, tmp_path: Path) -> None:
        config = AppConfig(
            monitoring=MonitoringConfig(base_url="https://watcher.example.com"),
            logging=LoggingConfig(log_dir=str(tmp_path)),
        )

        messages = " ".join(str(w) for w in validate_config(config))

        assert "MONITOR_BASE_URL" not in messages
        assert "SLACK_WEBHOOK_URL" in messages


def test_print_config_summary() -> None:
    console = Console(record=True, width=120)
    print_config_summary(AppConfig(), console)

    output = console.export_text()
    assert "http://localhost:5000" in output
    assert "2000ms" in output
