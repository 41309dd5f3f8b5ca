"""
Error taxonomy for the health monitor.

Probe errors stop at the monitor cycle boundary and become a CRITICAL alert.
Channel errors stop at the dispatcher boundary and are only logged.
"""


class MonitorError(Exception):
    """Base class for all monitor failures."""


class ProbeError(MonitorError):
    """The health endpoint could not be probed."""


class TransportError(ProbeError):
    """Connection-level failure talking to the health endpoint."""


class ProbeTimeoutError(ProbeError, TimeoutError):
    """No complete response within the probe deadline."""

    def __init__(self, timeout_seconds: float) -> None:
        super().__init__(f"Health check timeout ({timeout_seconds:g}s)")
        self.timeout_seconds = timeout_seconds


class MalformedResponseError(ProbeError):
    """The response body is not JSON or does not match the health contract."""


class ChannelError(MonitorError):
    """A notification channel failed to deliver an alert."""

    def __init__(self, channel: str, message: str) -> None:
        super().__init__(f"{channel}: {message}")
        self.channel = channel


class ConfigurationWarning(UserWarning):
    """Non-fatal configuration issue, e.g. an optional channel left unconfigured."""
