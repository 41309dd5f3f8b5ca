"""Production health monitoring for the Dependency Watcher service.

Probes the service's health endpoint, turns threshold violations into alerts,
rate-limits repeats with a cooldown window and fans alerts out to the
configured notification channels.
"""

__version__ = "0.1.0"
