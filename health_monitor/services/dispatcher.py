"""
Fan-out of dispatched alerts to every notification channel.

Key pattern: settle-all. Every channel attempt runs concurrently inside one
TaskGroup and is wrapped so that it returns a Result instead of raising, so one
channel outage never cancels its siblings or reaches the caller.
"""

import asyncio
from collections.abc import Sequence
from dataclasses import dataclass, field

import structlog

from health_monitor.domain.models import DispatchedAlert
from health_monitor.services.channels import AlertChannel, ChannelOutcome
from health_monitor.services.result import Result

logger = structlog.get_logger(__name__)

ChannelResult = Result[ChannelOutcome, Exception]


@dataclass
class DispatchReport:
    """Per-channel outcome of one dispatch."""

    alert: DispatchedAlert
    results: dict[str, ChannelResult] = field(default_factory=dict)

    @property
    def delivered(self) -> list[str]:
        return [
            name
            for name, result in self.results.items()
            if result.is_ok() and result.unwrap() != "skipped"
        ]

    @property
    def failed(self) -> dict[str, Exception]:
        return {
            name: result.unwrap_err() for name, result in self.results.items() if result.is_err()
        }


class AlertDispatcher:
    """Sends each alert to all configured channels and never raises."""

    def __init__(self, channels: Sequence[AlertChannel]) -> None:
        self.channels = list(channels)
        self.logger = logger.bind(component="alert_dispatcher")

    async def dispatch(self, alert: DispatchedAlert) -> DispatchReport:
        async with asyncio.TaskGroup() as task_group:
            tasks = {
                channel.name: task_group.create_task(self._attempt(channel, alert))
                for channel in self.channels
            }

        report = DispatchReport(
            alert=alert, results={name: task.result() for name, task in tasks.items()}
        )

        self.logger.info(
            "alert_dispatched",
            metric=alert.metric,
            delivered=report.delivered,
            failed=sorted(report.failed),
        )
        return report

    async def _attempt(self, channel: AlertChannel, alert: DispatchedAlert) -> ChannelResult:
        try:
            return Result.ok(await channel.send(alert))
        except Exception as e:
            self.logger.error(
                "alert_channel_failed",
                channel=channel.name,
                error=str(e),
                error_type=type(e).__name__,
            )
            return Result.err(e)
