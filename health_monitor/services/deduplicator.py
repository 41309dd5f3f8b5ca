"""
Cooldown-based alert deduplication.

One bucket per (severity, metric) pair: an alert key that fired less than
`cooldown_ms` ago suppresses every identical alert, whatever its value.
"""

import time
from collections.abc import Callable, MutableMapping

import structlog

from health_monitor.domain.models import AlertCandidate

logger = structlog.get_logger(__name__)

DEFAULT_COOLDOWN_MS = 300_000


def now_ms() -> float:
    """Epoch milliseconds."""
    return time.time() * 1000


def should_dispatch(
    candidate: AlertCandidate,
    registry: MutableMapping[str, float],
    cooldown_ms: float = DEFAULT_COOLDOWN_MS,
    now: float | None = None,
) -> bool:
    """Return True and record the firing time if `candidate` is outside its cooldown."""
    now = now_ms() if now is None else now
    key = candidate.dedup_key

    last_fired = registry.get(key)
    if last_fired is not None and now - last_fired < cooldown_ms:
        return False

    registry[key] = now
    return True


class AlertDeduplicator:
    """Owns a cooldown registry and evicts expired keys lazily on every lookup."""

    def __init__(
        self,
        cooldown_ms: float = DEFAULT_COOLDOWN_MS,
        clock: Callable[[], float] = now_ms,
    ) -> None:
        self.cooldown_ms = cooldown_ms
        self._clock = clock
        self._registry: dict[str, float] = {}
        self.logger = logger.bind(component="alert_deduplicator")

    def should_dispatch(self, candidate: AlertCandidate) -> bool:
        now = self._clock()
        self._evict_expired(now)

        allowed = should_dispatch(candidate, self._registry, self.cooldown_ms, now=now)
        if not allowed:
            self.logger.debug(
                "alert_suppressed",
                key=candidate.dedup_key,
                remaining_ms=round(self.cooldown_ms - (now - self._registry[candidate.dedup_key])),
            )
        return allowed

    def last_fired(self, key: str) -> float | None:
        return self._registry.get(key)

    def _evict_expired(self, now: float) -> None:
        expired = [key for key, fired in self._registry.items() if now - fired >= self.cooldown_ms]
        for key in expired:
            del self._registry[key]

    def __len__(self) -> int:
        return len(self._registry)
