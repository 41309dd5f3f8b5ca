"""
Configuration management with environment variable support and validation.

Design principles:
- Environment-specific configs (dev, staging, prod)
- Validation at startup (fail fast on invalid values, warn on missing optional ones)
- Type safety with Pydantic
- Secure defaults (no webhook URLs in code)
"""

import os
from functools import lru_cache
from pathlib import Path
from typing import Literal, cast

import structlog
from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator
from rich.console import Console
from rich.table import Table

from health_monitor.domain.models import AlertThresholds
from health_monitor.errors import ConfigurationWarning

# Load environment variables from .env file
load_dotenv()

logger = structlog.get_logger(__name__)

DEFAULT_BASE_URL = "http://localhost:5000"

Environment = Literal["development", "staging", "production"]
LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class MonitoringConfig(BaseModel):
    """Probe scheduling and alerting configuration."""

    base_url: str = Field(default=DEFAULT_BASE_URL, description="Base URL of the monitored system")
    check_interval_seconds: float = Field(
        default=30.0, gt=0.0, description="Interval between health checks"
    )
    probe_timeout_seconds: float = Field(
        default=10.0, gt=0.0, description="Hard deadline for one health probe"
    )
    alert_cooldown_seconds: float = Field(
        default=300.0, ge=0.0, description="Minimum time between identical alerts"
    )
    report_interval_seconds: float = Field(
        default=24 * 60 * 60, gt=0.0, description="Interval between daily reports"
    )
    thresholds: AlertThresholds = Field(default_factory=AlertThresholds)

    @field_validator("base_url")
    def validate_base_url(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError("base_url must be an http(s) URL")
        return v.rstrip("/")


class NotificationConfig(BaseModel):
    """Alert channel configuration. Every channel is optional."""

    slack_webhook_url: str | None = Field(None, description="Chat webhook URL")
    email_alert_to: str | None = Field(None, description="Email recipient (placeholder channel)")
    alert_log_file: str = Field(default="alerts.log", description="Alert log file name")

    @field_validator("slack_webhook_url")
    def validate_webhook_url(cls, v: str | None) -> str | None:
        if v and not v.startswith(("http://", "https://")):
            raise ValueError("slack_webhook_url must be an http(s) URL")
        return v or None


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: LogLevel = Field(default="INFO", description="Logging level")
    format: Literal["json", "console"] = Field(default="json", description="Logging format")
    log_dir: str = Field(default="./logs", description="Directory for alert log and reports")


class AppConfig(BaseModel):
    """Main application configuration combining all subsystems."""

    environment: Environment = Field(default="development", description="Environment")
    monitoring: MonitoringConfig = Field(default_factory=MonitoringConfig)
    notifications: NotificationConfig = Field(default_factory=NotificationConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @property
    def log_dir(self) -> Path:
        return Path(self.logging.log_dir)

    @property
    def alert_log_path(self) -> Path:
        return self.log_dir / self.notifications.alert_log_file


def load_config_from_env() -> AppConfig:
    """Load configuration from environment variables with validation."""

    def _env_to_literal(val: str) -> Environment:
        v = val.strip().lower()
        if v in {"dev", "development"}:
            return "development"
        if v in {"stage", "staging"}:
            return "staging"
        return "production"

    def _level_to_literal(val: str) -> LogLevel:
        v = val.strip().upper()
        return cast(
            LogLevel,
            v if v in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"} else "INFO",
        )

    def _float(name: str, default: float) -> float:
        return float(os.getenv(name, str(default)))

    environment = _env_to_literal(
        os.getenv("ENVIRONMENT") or os.getenv("NODE_ENV") or "development"
    )

    thresholds = AlertThresholds(
        response_time_ms=_float("RESPONSE_TIME_THRESHOLD_MS", 2000.0),
        db_response_time_ms=_float("DB_RESPONSE_TIME_THRESHOLD_MS", 1000.0),
        memory_usage_percent=_float("MEMORY_USAGE_THRESHOLD_PERCENT", 85.0),
    )

    monitoring_config = MonitoringConfig(
        base_url=os.getenv("MONITOR_BASE_URL") or DEFAULT_BASE_URL,
        check_interval_seconds=_float("CHECK_INTERVAL_SECONDS", 30.0),
        probe_timeout_seconds=_float("PROBE_TIMEOUT_SECONDS", 10.0),
        alert_cooldown_seconds=_float("ALERT_COOLDOWN_SECONDS", 300.0),
        thresholds=thresholds,
    )

    notification_config = NotificationConfig(
        slack_webhook_url=os.getenv("SLACK_WEBHOOK_URL") or None,
        email_alert_to=os.getenv("EMAIL_ALERT_TO") or None,
    )

    logging_config = LoggingConfig(
        level=_level_to_literal(os.getenv("LOG_LEVEL", "INFO")),
        format="console" if environment == "development" else "json",
        log_dir=os.getenv("LOG_DIR", "./logs"),
    )

    return AppConfig(
        environment=environment,
        monitoring=monitoring_config,
        notifications=notification_config,
        logging=logging_config,
    )


@lru_cache
def get_config() -> AppConfig:
    """Get cached application configuration."""
    return load_config_from_env()


def validate_config(config: AppConfig) -> list[ConfigurationWarning]:
    """
    Startup validation: report missing optional settings and prepare the log directory.

    Returns the non-fatal warnings so callers can surface them; nothing here aborts startup.
    """
    warnings: list[ConfigurationWarning] = []

    if config.monitoring.base_url == DEFAULT_BASE_URL:
        warnings.append(
            ConfigurationWarning(
                f"MONITOR_BASE_URL not configured, using {config.monitoring.base_url}"
            )
        )
    if not config.notifications.slack_webhook_url:
        warnings.append(ConfigurationWarning("SLACK_WEBHOOK_URL not configured"))
    if not config.notifications.email_alert_to:
        warnings.append(ConfigurationWarning("EMAIL_ALERT_TO not configured"))

    for warning in warnings:
        logger.warning("configuration_warning", detail=str(warning))

    config.log_dir.mkdir(parents=True, exist_ok=True)
    logger.info(
        "configuration_validated",
        environment=config.environment,
        base_url=config.monitoring.base_url,
        log_dir=str(config.log_dir),
    )
    return warnings


def print_config_summary(config: AppConfig, console: Console | None = None) -> None:
    """Print configuration summary for operators."""
    console = console or Console()

    table = Table(title="Health Monitor Configuration")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")

    thresholds = config.monitoring.thresholds
    rows = [
        ("Environment", config.environment),
        ("Base URL", config.monitoring.base_url),
        ("Check Interval", f"{config.monitoring.check_interval_seconds:g}s"),
        ("Probe Timeout", f"{config.monitoring.probe_timeout_seconds:g}s"),
        ("Alert Cooldown", f"{config.monitoring.alert_cooldown_seconds:g}s"),
        ("Response Time Threshold", f"{thresholds.response_time_ms:g}ms"),
        ("DB Response Time Threshold", f"{thresholds.db_response_time_ms:g}ms"),
        ("Memory Usage Threshold", f"{thresholds.memory_usage_percent:g}%"),
        ("Slack Webhook", "configured" if config.notifications.slack_webhook_url else "-"),
        ("Email Recipient", config.notifications.email_alert_to or "-"),
        ("Log Directory", config.logging.log_dir),
        ("Log Level", config.logging.level),
    ]
    for setting, value in rows:
        table.add_row(setting, value)

    console.print(table)
