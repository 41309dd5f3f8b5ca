from health_monitor.cli import run

run()
