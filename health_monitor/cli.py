"""
Command line entry point.

    health-monitor run      # daemon: probe every interval until SIGINT/SIGTERM
    health-monitor check    # one probe cycle, print the result, exit 1 on probe failure
    health-monitor config   # print the effective configuration
"""

import argparse
import asyncio
import sys

from rich.console import Console
from rich.table import Table

from health_monitor.config import AppConfig, get_config, print_config_summary
from health_monitor.observability import configure_logging
from health_monitor.services.monitor import HealthMonitor

console = Console()


async def run_daemon(config: AppConfig) -> None:
    monitor = HealthMonitor(config)
    async with monitor.session():
        await monitor.run()


async def run_single_check(config: AppConfig) -> int:
    monitor = HealthMonitor(config)
    try:
        snapshot = await monitor.run_cycle()
    finally:
        await monitor.aclose()

    status = monitor.get_status()
    table = Table(title=f"Health check: {config.monitoring.base_url}")
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("Status", snapshot.status.value if snapshot else "probe failed")
    if snapshot:
        table.add_row("Response Time", f"{snapshot.response_time_ms:.0f}ms")
    table.add_row("Alerts Dispatched", str(status.alerts))
    console.print(table)

    return 0 if snapshot else 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="health-monitor", description="Dependency Watcher production health monitor"
    )
    parser.add_argument(
        "command", nargs="?", choices=["run", "check", "config"], default="run"
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    config = get_config()
    configure_logging(config.logging)

    if args.command == "config":
        print_config_summary(config, console)
        return 0

    if args.command == "check":
        return asyncio.run(run_single_check(config))

    asyncio.run(run_daemon(config))
    return 0


def run() -> None:
    sys.exit(main())


if __name__ == "__main__":
    run()
