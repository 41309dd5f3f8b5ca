"""
The health monitor: scheduling, alert pipeline and process lifecycle.

One monitoring cycle is strictly sequential:
1. Probe the health endpoint
2. Analyze the snapshot against the thresholds
3. Deduplicate each candidate against the cooldown registry
4. Dispatch survivors to every channel

Cycles never overlap: the probe loop re-arms only after the previous cycle has
settled. A report tick waits for an in-flight cycle instead of splitting its
counts, and stop() abandons the in-flight cycle so the final report is flushed
promptly. All mutable state (running metrics, cooldown registry) belongs to the
monitor instance and is only touched from the event loop.
"""

import asyncio
import signal
import time
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from pathlib import Path

import structlog

from health_monitor.config import AppConfig, get_config, validate_config
from health_monitor.domain.models import (
    AlertCandidate,
    DailyReport,
    DispatchedAlert,
    HealthSnapshot,
    MonitorStatus,
    RunningMetrics,
)
from health_monitor.services.analyzer import analyze, probe_failure_alert
from health_monitor.services.channels import AlertLogChannel, EmailChannel, SlackWebhookChannel
from health_monitor.services.deduplicator import AlertDeduplicator
from health_monitor.services.dispatcher import AlertDispatcher, DispatchReport
from health_monitor.services.prober import HealthProber, HealthSource

logger = structlog.get_logger(__name__)

SHUTDOWN_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class HealthMonitor:
    """
    Drives the probe-analyze-dedupe-dispatch pipeline on a fixed interval.

    Collaborators are injected so tests can run several independent monitors
    side by side; anything not supplied is built from the configuration.
    """

    def __init__(
        self,
        config: AppConfig | None = None,
        source: HealthSource | None = None,
        dispatcher: AlertDispatcher | None = None,
        deduplicator: AlertDeduplicator | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.config = config if config is not None else get_config()
        self.logger = logger.bind(component="health_monitor")
        self.metrics = RunningMetrics()
        self._closers: list[Callable[[], Awaitable[None]]] = []

        if source is None:
            prober = HealthProber(timeout_seconds=self.config.monitoring.probe_timeout_seconds)
            self._closers.append(prober.aclose)
            source = prober
        self.source = source

        if dispatcher is None:
            dispatcher = self._build_dispatcher()
        self.dispatcher = dispatcher

        if deduplicator is None:
            deduplicator = AlertDeduplicator(
                cooldown_ms=self.config.monitoring.alert_cooldown_seconds * 1000
            )
        self.deduplicator = deduplicator

        self._clock = clock or (lambda: datetime.now(UTC))
        self._started_at = time.monotonic()
        self._stop_event = asyncio.Event()
        # Held for a whole cycle so a report never splits one cycle's counts
        self._cycle_lock = asyncio.Lock()
        self._is_running = False
        self._flushed = False

    def _build_dispatcher(self) -> AlertDispatcher:
        slack = SlackWebhookChannel(
            self.config.notifications.slack_webhook_url,
            timeout_seconds=self.config.monitoring.probe_timeout_seconds,
        )
        self._closers.append(slack.aclose)
        return AlertDispatcher(
            [
                slack,
                AlertLogChannel(self.config.alert_log_path),
                EmailChannel(self.config.notifications.email_alert_to),
            ]
        )

    @property
    def is_running(self) -> bool:
        return self._is_running

    @property
    def uptime_seconds(self) -> float:
        return time.monotonic() - self._started_at

    # Alert pipeline

    async def run_cycle(self) -> HealthSnapshot | None:
        """
        Execute one monitoring cycle.

        Never raises: a failed probe is counted and turned into a single
        CRITICAL alert. Returns the snapshot, or None when the probe failed.

        The check is counted once the probe settles, so a cycle abandoned on
        stop leaves the metrics untouched.
        """
        async with self._cycle_lock:
            cycle_start = time.perf_counter()

            try:
                snapshot = await self.source.probe(self.config.monitoring.base_url)
                candidates = analyze(snapshot, self.config.monitoring.thresholds)
            except Exception as e:
                self.metrics.checks += 1
                self.metrics.failures += 1
                self.logger.error(
                    "health_check_failed",
                    error=str(e),
                    error_type=type(e).__name__,
                    duration_seconds=round(time.perf_counter() - cycle_start, 3),
                )
                await self.send_alert(probe_failure_alert(e))
                return None

            self.metrics.checks += 1
            self.logger.info(
                "health_check_completed",
                status=snapshot.status.value,
                response_time_ms=round(snapshot.response_time_ms),
                violations=len(candidates),
            )

            for candidate in candidates:
                await self.send_alert(candidate)

            return snapshot

    async def send_alert(self, candidate: AlertCandidate) -> DispatchReport | None:
        """Deduplicate and dispatch one candidate. Returns None when suppressed."""
        if not self.deduplicator.should_dispatch(candidate):
            return None

        self.metrics.alerts += 1
        alert = DispatchedAlert.from_candidate(
            candidate, environment=self.config.environment, now=self._clock()
        )
        self.logger.warning(
            "alert_raised",
            type=alert.type.value,
            metric=alert.metric,
            message=alert.message,
        )
        return await self.dispatcher.dispatch(alert)

    # Reporting

    def generate_daily_report(self) -> DailyReport:
        """Write the aggregate of the running metrics to a dated file, then reset them."""
        report = DailyReport.from_metrics(
            self.metrics, uptime_seconds=self.uptime_seconds, day=self._clock().date()
        )

        report_path = self._write_report(report)

        self.logger.info(
            "daily_report_generated",
            path=str(report_path),
            checks=report.metrics.checks,
            failures=report.metrics.failures,
            alerts=report.metrics.alerts,
            alert_rate=round(report.alert_summary.rate, 2),
            health_rate=round(report.health_rate, 2),
        )

        self.metrics.reset()
        return report

    def _write_report(self, report: DailyReport) -> Path:
        """Reports are never overwritten: a later one on the same day gets a sequence suffix."""
        log_dir = self.config.log_dir
        log_dir.mkdir(parents=True, exist_ok=True)

        sequence = 0
        while True:
            suffix = f"-{sequence}" if sequence else ""
            report_path = log_dir / f"daily-report-{report.date}{suffix}.json"
            try:
                with report_path.open("x", encoding="utf-8") as f:
                    f.write(report.to_json())
            except FileExistsError:
                sequence += 1
                continue
            return report_path

    def get_status(self) -> MonitorStatus:
        checks, failures = self.metrics.checks, self.metrics.failures
        success_rate = round((checks - failures) / checks * 100, 2) if checks else 0.0
        return MonitorStatus(
            monitoring=self._is_running,
            checks=checks,
            failures=failures,
            alerts=self.metrics.alerts,
            success_rate=success_rate,
            uptime=self.uptime_seconds,
        )

    # Scheduling

    async def run(self) -> None:
        """
        Run until stop() is called.

        The first cycle starts immediately so failures are visible at boot.
        """
        if self._is_running:
            raise RuntimeError("Monitor is already running")

        self._is_running = True
        self._stop_event.clear()
        self.logger.info(
            "monitor_started",
            base_url=self.config.monitoring.base_url,
            interval_seconds=self.config.monitoring.check_interval_seconds,
        )

        try:
            async with asyncio.TaskGroup() as task_group:
                task_group.create_task(self._probe_loop())
                task_group.create_task(self._report_loop())
        finally:
            self._is_running = False
            self.logger.info("monitor_stopped")

    def stop(self) -> None:
        self._stop_event.set()

    async def _probe_loop(self) -> None:
        interval = self.config.monitoring.check_interval_seconds

        while True:
            cycle_start = time.perf_counter()
            if await self._cycle_or_stop():
                return

            elapsed = time.perf_counter() - cycle_start
            sleep_time = max(0.0, interval - elapsed)
            if sleep_time == 0:
                self.logger.warning(
                    "health_check_slower_than_interval",
                    elapsed_seconds=round(elapsed, 3),
                    interval_seconds=interval,
                )

            if await self._sleep_or_stop(sleep_time):
                return

    async def _cycle_or_stop(self) -> bool:
        """Run one cycle; cancel it and return True if a stop arrives first."""
        cycle = asyncio.create_task(self.run_cycle())
        stop_requested = asyncio.create_task(self._stop_event.wait())
        try:
            await asyncio.wait({cycle, stop_requested}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            stop_requested.cancel()
            if not cycle.done():
                cycle.cancel()
                await asyncio.wait({cycle})

        if cycle.cancelled():
            self.logger.info("health_check_abandoned_on_stop")
            return True
        cycle.result()
        return False

    async def _report_loop(self) -> None:
        while not await self._sleep_or_stop(self.config.monitoring.report_interval_seconds):
            async with self._cycle_lock:
                try:
                    self.generate_daily_report()
                except OSError as e:
                    self.logger.error("daily_report_failed", error=str(e))

    async def _sleep_or_stop(self, seconds: float) -> bool:
        """Sleep for `seconds`; return True as soon as a stop was requested."""
        if self._stop_event.is_set():
            return True
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=seconds)
        except TimeoutError:
            return False
        return True

    # Lifecycle

    def shutdown(self) -> DailyReport | None:
        """
        Stop scheduling and flush the final report.

        Idempotent: the final report is written exactly once, whichever
        termination path gets here first.
        """
        self.stop()
        if self._flushed:
            return None
        self._flushed = True

        self.logger.info("monitor_shutting_down")
        try:
            return self.generate_daily_report()
        except OSError as e:
            self.logger.error("final_report_failed", error=str(e))
            return None

    async def aclose(self) -> None:
        """Release the HTTP clients this monitor created itself."""
        closers, self._closers = self._closers, []
        for close in closers:
            await close()

    @asynccontextmanager
    async def session(self) -> AsyncIterator["HealthMonitor"]:
        """
        Scoped lifecycle for the daemon.

        Validates configuration, turns SIGINT/SIGTERM into a graceful stop and
        guarantees the final report flush however the session ends.
        """
        validate_config(self.config)
        loop = asyncio.get_running_loop()
        installed = self._install_signal_handlers(loop)
        self.logger.info("monitoring_session_started")

        try:
            yield self
        finally:
            for sig in installed:
                loop.remove_signal_handler(sig)
            self.shutdown()
            await self.aclose()
            self.logger.info("monitoring_session_ended")

    def _install_signal_handlers(self, loop: asyncio.AbstractEventLoop) -> list[signal.Signals]:
        installed = []
        for sig in SHUTDOWN_SIGNALS:
            try:
                loop.add_signal_handler(sig, self._on_signal, sig)
            except (NotImplementedError, RuntimeError):
                # Not available on this platform or outside the main thread
                continue
            installed.append(sig)
        return installed

    def _on_signal(self, sig: signal.Signals) -> None:
        self.logger.info("shutdown_signal_received", signal=sig.name)
        self.stop()
