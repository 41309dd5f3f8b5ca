"""
Domain models for health monitoring and alerting.

These models represent the core concepts of the monitor and are framework-agnostic.
They use Pydantic for validation; wire names of the health endpoint and of the
daily report file are kept through field aliases.
"""

from dataclasses import dataclass
from datetime import UTC, date, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from health_monitor.errors import MalformedResponseError

ALERT_SOURCE = "production_monitor"
GENERAL_METRIC = "general"


class HealthStatus(str, Enum):
    """Overall status reported by the monitored system."""

    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


class AlertType(str, Enum):
    """Alert severity classes."""

    CRITICAL = "CRITICAL"
    WARNING = "WARNING"


class AlertThresholds(BaseModel):
    """Static thresholds the analyzer compares snapshots against."""

    model_config = ConfigDict(frozen=True)

    response_time_ms: float = Field(default=2000.0, gt=0.0)
    error_rate_percent: float = Field(
        default=5.0, ge=0.0, le=100.0, description="Reserved, not evaluated by any check"
    )
    memory_usage_percent: float = Field(default=85.0, ge=0.0, le=100.0)
    disk_usage_percent: float = Field(
        default=90.0, ge=0.0, le=100.0, description="Reserved, not evaluated by any check"
    )
    db_response_time_ms: float = Field(default=1000.0, gt=0.0)


# Health endpoint payload


class _Check(BaseModel):
    model_config = ConfigDict(frozen=True, extra="allow", populate_by_name=True)


class DatabaseCheck(_Check):
    response_time: float | None = Field(default=None, alias="responseTime")
    status: str | None = None


class MemoryCheck(_Check):
    percentage: float | None = None


class ExternalServicesCheck(_Check):
    status: str | None = None
    services: dict[str, Any] | None = None


class HealthChecks(_Check):
    """Per-subsystem checks. Unknown checks are kept as extra fields."""

    database: DatabaseCheck | None = None
    memory: MemoryCheck | None = None
    external_services: ExternalServicesCheck | None = None


class HealthSnapshot(BaseModel):
    """Point-in-time result of probing the monitored system."""

    model_config = ConfigDict(frozen=True)

    status: HealthStatus
    checks: HealthChecks = Field(default_factory=HealthChecks)
    response_time_ms: float = Field(default=0.0, ge=0.0, description="Wall-clock probe duration")
    raw: dict[str, Any] = Field(default_factory=dict, description="Parsed payload as received")

    @classmethod
    def from_payload(cls, payload: Any, response_time_ms: float) -> "HealthSnapshot":
        """Validate a decoded health payload against the endpoint contract."""
        if not isinstance(payload, dict):
            raise MalformedResponseError(
                f"Health payload must be a JSON object, got {type(payload).__name__}"
            )
        try:
            return cls(
                status=payload.get("status"),
                checks=payload.get("checks") or {},
                response_time_ms=response_time_ms,
                raw=payload,
            )
        except ValidationError as e:
            raise MalformedResponseError(
                f"Health payload does not match contract ({e.error_count()} errors)"
            ) from e


# Alerts


class AlertCandidate(BaseModel):
    """A potential alert derived from one threshold violation."""

    model_config = ConfigDict(frozen=True)

    type: AlertType
    message: str
    metric: str = GENERAL_METRIC
    value: float | str | None = None
    threshold: float | None = None
    details: dict[str, Any] | None = None

    @property
    def dedup_key(self) -> str:
        return f"{self.type.value}:{self.metric or GENERAL_METRIC}"


class DispatchedAlert(AlertCandidate):
    """An alert that passed deduplication and was handed to the channels."""

    timestamp: str
    environment: str

    @classmethod
    def from_candidate(
        cls, candidate: AlertCandidate, environment: str, now: datetime | None = None
    ) -> "DispatchedAlert":
        now = now or datetime.now(UTC)
        return cls(
            **candidate.model_dump(),
            timestamp=now.isoformat(timespec="milliseconds").replace("+00:00", "Z"),
            environment=environment,
        )


class AlertLogEntry(BaseModel):
    """One line of the append-only alert log."""

    timestamp: str
    level: AlertType
    message: str
    data: dict[str, Any]
    source: str = ALERT_SOURCE

    @classmethod
    def from_alert(cls, alert: DispatchedAlert) -> "AlertLogEntry":
        return cls(
            timestamp=alert.timestamp,
            level=alert.type,
            message=alert.message,
            data=alert.model_dump(
                mode="json",
                include={"type", "metric", "value", "threshold", "details"},
                exclude_none=True,
            ),
        )


# Aggregates


@dataclass
class RunningMetrics:
    """Process-lifetime counters, reset at every daily report."""

    checks: int = 0
    failures: int = 0
    alerts: int = 0

    def reset(self) -> None:
        self.checks = 0
        self.failures = 0
        self.alerts = 0


class MetricsCounts(BaseModel):
    model_config = ConfigDict(frozen=True)

    checks: int = Field(ge=0)
    failures: int = Field(ge=0)
    alerts: int = Field(ge=0)


class AlertSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    total: int = Field(ge=0)
    rate: float


class DailyReport(BaseModel):
    """Daily aggregate of the running metrics, written once per cycle."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    date: str
    metrics: MetricsCounts
    uptime: float = Field(ge=0.0, description="Monitor uptime in seconds")
    alert_summary: AlertSummary = Field(alias="alertSummary")
    health_rate: float = Field(alias="healthRate")

    @classmethod
    def from_metrics(
        cls, metrics: RunningMetrics, uptime_seconds: float, day: date
    ) -> "DailyReport":
        # A report with no checks counts as fully healthy with no alerts
        if metrics.checks:
            alert_rate = metrics.alerts / metrics.checks * 100
            health_rate = (1 - metrics.failures / metrics.checks) * 100
        else:
            alert_rate = 0.0
            health_rate = 100.0

        return cls(
            date=day.isoformat(),
            metrics=MetricsCounts(
                checks=metrics.checks, failures=metrics.failures, alerts=metrics.alerts
            ),
            uptime=uptime_seconds,
            alert_summary=AlertSummary(total=metrics.alerts, rate=alert_rate),
            health_rate=health_rate,
        )

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, indent=2)


class MonitorStatus(BaseModel):
    """Snapshot returned by the monitor's status accessor."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    monitoring: bool
    checks: int
    failures: int
    alerts: int
    success_rate: float = Field(alias="successRate")
    uptime: float
