"""Schedule commands for the notification daemon.

Provides the command that runs the sweep job, precise timers and the
health server in one process.
"""

import asyncio
from pathlib import Path
from typing import Optional

import typer

from subwatch.cli.utils import (
    DEFAULT_CONFIG,
    build_notification_scheduler,
    display_success,
    display_warning,
    load_config,
    logger,
)
from subwatch.models.config import AppConfig
from subwatch.observability.logging import configure_logging

schedule_app = typer.Typer(help="Run the notification daemon")


@schedule_app.command(name="start")
def schedule_start(
    config_path: Path = typer.Option(
        DEFAULT_CONFIG,
        "--config",
        "-c",
        help="Path to subwatch config YAML",
    ),
    health_port: int = typer.Option(
        8000, "--health-port", "-p", help="Port for health server"
    ),
    sweep_interval: Optional[int] = typer.Option(
        None,
        "--sweep-interval",
        min=1,
        help="Override sweep interval in seconds",
    ),
):
    """Start the notification daemon with health server.

    Sweeps due notifications periodically, arms one-shot timers for
    notifications due within the hour, and serves /health and /metrics.
    Press Ctrl+C to stop gracefully.

    Examples:
        python -m subwatch.cli schedule start

        python -m subwatch.cli schedule start --sweep-interval 30 --health-port 9000
    """
    config = load_config(config_path)
    if sweep_interval is not None:
        config.scheduler.sweep_interval_seconds = sweep_interval

    configure_logging(level=config.logging.level, json_output=config.logging.json_output)

    try:
        asyncio.run(_run_daemon(config=config, health_port=health_port))
    except KeyboardInterrupt:
        display_warning("\nDaemon stopped.")
    except Exception as e:
        logger.exception("daemon_failed")
        typer.secho(f"Daemon failed: {e}", fg=typer.colors.RED)
        raise typer.Exit(code=1)


async def _run_daemon(config: AppConfig, health_port: int) -> None:
    """Run the job scheduler and health server until shutdown."""
    from subwatch.health import HealthChecker
    from subwatch.health.server import run_health_server_async
    from subwatch.scheduling import NotificationJobScheduler, NotificationSweepJob

    typer.secho("Starting subwatch notification daemon", fg=typer.colors.CYAN, bold=True)
    typer.echo(f"  Store: {config.storage.notifications_path}")
    typer.echo(f"  Sweep interval: {config.scheduler.sweep_interval_seconds}s")
    typer.echo(f"  Delivery: {config.delivery.method}")
    typer.echo(f"  Health endpoint: http://localhost:{health_port}/health")
    typer.echo(f"  Metrics endpoint: http://localhost:{health_port}/metrics")
    typer.echo("\nPress Ctrl+C to stop.\n")

    job_scheduler = NotificationJobScheduler(timezone=config.scheduler.timezone)
    notifier = build_notification_scheduler(config, job_scheduler=job_scheduler)

    job_scheduler.add_job(
        NotificationSweepJob(notifier),
        job_id="notification_sweep",
        trigger="interval",
        seconds=config.scheduler.sweep_interval_seconds,
    )

    armed = await notifier.arm_upcoming_timers()
    display_success(f"Armed {armed} timer(s) for notifications due within the hour")

    checker = HealthChecker(
        store=notifier.store,
        job_scheduler=job_scheduler,
        data_dir=config.storage.notifications_path.parent,
    )

    try:
        await asyncio.gather(
            run_health_server_async(
                checker, host="0.0.0.0", port=health_port, log_level="warning"
            ),
            job_scheduler.start(),
        )
    finally:
        notifier.shutdown()
        await job_scheduler.shutdown(wait=False)
