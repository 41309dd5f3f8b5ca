"""
Threshold analysis of health snapshots.

Every rule is evaluated independently, so one snapshot can yield several
candidates. Nothing here performs I/O.
"""

from health_monitor.domain.models import (
    GENERAL_METRIC,
    AlertCandidate,
    AlertThresholds,
    AlertType,
    HealthSnapshot,
    HealthStatus,
)


def _fmt(value: float) -> str:
    return f"{value:g}"


def analyze(snapshot: HealthSnapshot, thresholds: AlertThresholds) -> list[AlertCandidate]:
    """Compare one snapshot against the thresholds and return the violations found."""
    alerts: list[AlertCandidate] = []
    checks = snapshot.checks

    if snapshot.response_time_ms > thresholds.response_time_ms:
        response_time = round(snapshot.response_time_ms)
        alerts.append(
            AlertCandidate(
                type=AlertType.WARNING,
                message=(
                    f"High response time: {response_time}ms "
                    f"(threshold: {_fmt(thresholds.response_time_ms)}ms)"
                ),
                metric="response_time",
                value=response_time,
                threshold=thresholds.response_time_ms,
            )
        )

    if snapshot.status is HealthStatus.UNHEALTHY:
        alerts.append(
            AlertCandidate(
                type=AlertType.CRITICAL,
                message="System status is unhealthy",
                metric="system_status",
                value=snapshot.status.value,
                details=snapshot.raw.get("checks"),
            )
        )
    elif snapshot.status is HealthStatus.DEGRADED:
        alerts.append(
            AlertCandidate(
                type=AlertType.WARNING,
                message="System status is degraded",
                metric="system_status",
                value=snapshot.status.value,
                details=snapshot.raw.get("checks"),
            )
        )

    db_response_time = checks.database.response_time if checks.database else None
    if db_response_time is not None and db_response_time > thresholds.db_response_time_ms:
        alerts.append(
            AlertCandidate(
                type=AlertType.WARNING,
                message=f"Database response time high: {_fmt(db_response_time)}ms",
                metric="db_response_time",
                value=db_response_time,
                threshold=thresholds.db_response_time_ms,
            )
        )

    memory_percentage = checks.memory.percentage if checks.memory else None
    if memory_percentage is not None and memory_percentage > thresholds.memory_usage_percent:
        alerts.append(
            AlertCandidate(
                type=AlertType.WARNING,
                message=f"High memory usage: {_fmt(memory_percentage)}%",
                metric="memory_usage",
                value=memory_percentage,
                threshold=thresholds.memory_usage_percent,
            )
        )

    external = checks.external_services
    if external is not None and external.status == HealthStatus.UNHEALTHY.value:
        alerts.append(
            AlertCandidate(
                type=AlertType.WARNING,
                message="External services unavailable",
                metric="external_services",
                value=external.status,
                details=external.services,
            )
        )

    return alerts


def probe_failure_alert(error: BaseException) -> AlertCandidate:
    """The single CRITICAL alert raised when the probe itself fails."""
    return AlertCandidate(
        type=AlertType.CRITICAL,
        message=f"Health check failed: {error}",
        metric=GENERAL_METRIC,
        details={"error": str(error), "error_type": type(error).__name__},
    )
