"""
Notification channels for dispatched alerts.

Each channel either delivers, skips (not configured) or raises. The dispatcher
decides what to do with failures; channels never swallow their own errors.
"""

import asyncio
from pathlib import Path
from typing import Any, Literal, Protocol

import httpx
import structlog

from health_monitor.domain.models import AlertLogEntry, AlertType, DispatchedAlert
from health_monitor.errors import ChannelError

logger = structlog.get_logger(__name__)

ChannelOutcome = Literal["delivered", "queued", "skipped"]


class AlertChannel(Protocol):
    """Protocol for a single alert delivery mechanism."""

    name: str

    async def send(self, alert: DispatchedAlert) -> ChannelOutcome:
        """Deliver the alert, raising on failure."""
        ...


class SlackWebhookChannel:
    """Posts alerts to a Slack-compatible incoming webhook."""

    name = "slack"

    def __init__(
        self,
        webhook_url: str | None,
        client: httpx.AsyncClient | None = None,
        timeout_seconds: float = 10.0,
    ) -> None:
        self.webhook_url = webhook_url
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout_seconds)
        self.logger = logger.bind(component="slack_channel")

    @staticmethod
    def build_payload(alert: DispatchedAlert) -> dict[str, Any]:
        color = "danger" if alert.type is AlertType.CRITICAL else "warning"
        return {
            "text": f"\U0001f6a8 {alert.type.value} Alert",
            "attachments": [
                {
                    "color": color,
                    "title": "Dependency Watcher Alert",
                    "text": alert.message,
                    "fields": [
                        {"title": "Environment", "value": alert.environment, "short": True},
                        {"title": "Timestamp", "value": alert.timestamp, "short": True},
                    ],
                    "footer": "Production Monitor",
                }
            ],
        }

    async def send(self, alert: DispatchedAlert) -> ChannelOutcome:
        if not self.webhook_url:
            return "skipped"

        try:
            response = await self._client.post(self.webhook_url, json=self.build_payload(alert))
        except httpx.RequestError as e:
            raise ChannelError(self.name, f"Slack webhook request failed: {e}") from e

        if response.status_code != 200:
            raise ChannelError(self.name, f"Slack webhook failed: {response.status_code}")

        self.logger.debug("slack_alert_sent", metric=alert.metric)
        return "delivered"

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()


class AlertLogChannel:
    """Appends one JSON line per alert to an append-only log file."""

    name = "log"

    def __init__(self, path: Path) -> None:
        self.path = path

    async def send(self, alert: DispatchedAlert) -> ChannelOutcome:
        line = AlertLogEntry.from_alert(alert).model_dump_json() + "\n"
        await asyncio.to_thread(self._append, line)
        return "delivered"

    def _append(self, line: str) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.path.open("a", encoding="utf-8") as log_file:
            log_file.write(line)


class EmailChannel:
    """
    Email placeholder.

    Records the intent to send in `outbox`; handing off to a mail service is not
    wired up yet.
    """

    name = "email"

    def __init__(self, recipient: str | None) -> None:
        self.recipient = recipient
        self.outbox: list[DispatchedAlert] = []
        self.logger = logger.bind(component="email_channel")

    async def send(self, alert: DispatchedAlert) -> ChannelOutcome:
        if not self.recipient:
            return "skipped"

        self.outbox.append(alert)
        self.logger.info("email_alert_queued", recipient=self.recipient, message=alert.message)
        return "queued"
