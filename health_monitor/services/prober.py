"""
Health endpoint probing.

The prober issues one timed `GET {base_url}/health`, enforces a hard deadline on
the whole exchange and turns the JSON body into a validated HealthSnapshot.
"""

import asyncio
import json
import time
from types import TracebackType
from typing import Protocol

import httpx
import structlog

from health_monitor.domain.models import HealthSnapshot
from health_monitor.errors import MalformedResponseError, ProbeTimeoutError, TransportError

logger = structlog.get_logger(__name__)

HEALTH_PATH = "/health"


class HealthSource(Protocol):
    """
    Protocol for anything that can produce a HealthSnapshot.

    The monitor only depends on this, so tests can substitute a fake source.
    """

    async def probe(self, base_url: str) -> HealthSnapshot:
        """
        Probe the system behind `base_url`.

        Raises:
            ProbeTimeoutError, TransportError, MalformedResponseError
        """
        ...


class HealthProber:
    """Probes a health endpoint over HTTP with a hard timeout."""

    def __init__(
        self, timeout_seconds: float = 10.0, client: httpx.AsyncClient | None = None
    ) -> None:
        self.timeout_seconds = timeout_seconds
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout_seconds)
        self.logger = logger.bind(component="health_prober")

    async def probe(self, base_url: str) -> HealthSnapshot:
        url = f"{base_url.rstrip('/')}{HEALTH_PATH}"
        start_time = time.perf_counter()

        try:
            response = await asyncio.wait_for(self._client.get(url), timeout=self.timeout_seconds)
        except (TimeoutError, httpx.TimeoutException) as e:
            raise ProbeTimeoutError(self.timeout_seconds) from e
        except httpx.RequestError as e:
            raise TransportError(f"Request failed: {e}") from e

        response_time_ms = (time.perf_counter() - start_time) * 1000

        try:
            payload = response.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise MalformedResponseError(f"Invalid JSON response: {e}") from e

        snapshot = HealthSnapshot.from_payload(payload, response_time_ms=response_time_ms)

        self.logger.debug(
            "health_probe_completed",
            url=url,
            http_status=response.status_code,
            status=snapshot.status.value,
            response_time_ms=round(response_time_ms, 1),
        )
        return snapshot

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "HealthProber":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()
