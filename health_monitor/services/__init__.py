"""
Core services for the health monitor.

This package contains the probe, analysis, deduplication and dispatch pipeline
and the monitor that schedules it.
"""

from .analyzer import analyze, probe_failure_alert
from .channels import AlertChannel, AlertLogChannel, EmailChannel, SlackWebhookChannel
from .deduplicator import AlertDeduplicator, should_dispatch
from .dispatcher import AlertDispatcher, DispatchReport
from .monitor import HealthMonitor
from .prober import HealthProber, HealthSource
from .result import Result

__all__ = [
    "AlertChannel",
    "AlertDeduplicator",
    "AlertDispatcher",
    "AlertLogChannel",
    "DispatchReport",
    "EmailChannel",
    "HealthMonitor",
    "HealthProber",
    "HealthSource",
    "Result",
    "SlackWebhookChannel",
    "analyze",
    "probe_failure_alert",
    "should_dispatch",
]
