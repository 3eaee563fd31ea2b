"""Notification commands.

Operate on the JSON notification store named in the configuration, so
notifications scheduled here are picked up by a running daemon.
"""

import asyncio
from pathlib import Path
from typing import Optional

import typer

from subwatch.cli.utils import (
    DEFAULT_CONFIG,
    build_notification_scheduler,
    display_info,
    display_success,
    handle_errors,
    load_config,
    parse_timestamp,
)
from subwatch.models.notification import (
    NotificationPriority,
    NotificationRequest,
    NotificationStatus,
    NotificationType,
    RecurrenceFrequency,
    RecurrencePattern,
)
from subwatch.observability.context import correlation_id_context

notify_app = typer.Typer(help="Schedule and manage notifications")


@notify_app.command(name="schedule")
@handle_errors
def notify_schedule(
    user_id: str = typer.Option(..., "--user", "-u", help="Recipient user ID"),
    title: str = typer.Option(..., "--title", "-t"),
    message: str = typer.Option(..., "--message", "-m"),
    at: str = typer.Option(..., "--at", help="ISO-8601 delivery time (naive = UTC)"),
    notification_type: NotificationType = typer.Option(
        NotificationType.SYSTEM, "--type", case_sensitive=False
    ),
    priority: NotificationPriority = typer.Option(
        NotificationPriority.MEDIUM, "--priority", case_sensitive=False
    ),
    recur: Optional[RecurrenceFrequency] = typer.Option(
        None, "--recur", case_sensitive=False, help="Repeat daily/weekly/monthly/yearly"
    ),
    interval: int = typer.Option(1, "--interval", min=1, help="Units between repeats"),
    max_occurrences: Optional[int] = typer.Option(None, "--max-occurrences", min=1),
    until: Optional[str] = typer.Option(None, "--until", help="ISO-8601 recurrence end"),
    config_path: Path = typer.Option(DEFAULT_CONFIG, "--config", "-c", help="Config YAML"),
):
    """Schedule a one-off or recurring notification."""
    recurrence = None
    if recur is not None:
        recurrence = RecurrencePattern(
            frequency=recur,
            interval=interval,
            max_occurrences=max_occurrences,
            end_date=parse_timestamp(until) if until else None,
        )

    request = NotificationRequest(
        user_id=user_id,
        title=title,
        message=message,
        type=notification_type,
        priority=priority,
        scheduled_for=parse_timestamp(at),
        recurrence=recurrence,
    )

    scheduler = build_notification_scheduler(load_config(config_path))
    notification = asyncio.run(scheduler.schedule_notification(request))

    display_success(f"Scheduled {notification.id}")
    typer.echo(f"  Due: {notification.scheduled_for.isoformat()}")


@notify_app.command(name="list")
@handle_errors
def notify_list(
    user_id: str = typer.Option(..., "--user", "-u", help="User ID"),
    status: Optional[NotificationStatus] = typer.Option(
        None, "--status", "-s", case_sensitive=False
    ),
    config_path: Path = typer.Option(DEFAULT_CONFIG, "--config", "-c", help="Config YAML"),
):
    """List a user's notifications."""
    scheduler = build_notification_scheduler(load_config(config_path))
    notifications = asyncio.run(scheduler.list_notifications(user_id, status))

    if not notifications:
        display_info("No notifications found.")
        return

    for n in notifications:
        typer.echo(
            f"{n.id}  {n.status.value:<10}  {n.scheduled_for.isoformat()}  "
            f"{n.type.value:<22}  {n.title}"
        )
        if n.metadata.last_error:
            typer.echo(f"    last error (retry {n.retry_count}): {n.metadata.last_error}")


@notify_app.command(name="cancel")
@handle_errors
def notify_cancel(
    notification_id: str = typer.Argument(..., help="Notification ID"),
    config_path: Path = typer.Option(DEFAULT_CONFIG, "--config", "-c", help="Config YAML"),
):
    """Cancel a pending notification."""
    scheduler = build_notification_scheduler(load_config(config_path))
    asyncio.run(scheduler.cancel_notification(notification_id))
    display_success(f"Cancelled {notification_id}")


@notify_app.command(name="reschedule")
@handle_errors
def notify_reschedule(
    notification_id: str = typer.Argument(..., help="Notification ID"),
    at: str = typer.Option(..., "--at", help="New ISO-8601 delivery time (naive = UTC)"),
    config_path: Path = typer.Option(DEFAULT_CONFIG, "--config", "-c", help="Config YAML"),
):
    """Move a pending notification to a new time."""
    new_time = parse_timestamp(at)
    scheduler = build_notification_scheduler(load_config(config_path))
    asyncio.run(scheduler.reschedule_notification(notification_id, new_time))
    display_success(f"Rescheduled {notification_id} to {new_time.isoformat()}")


@notify_app.command(name="process")
@handle_errors
def notify_process(
    config_path: Path = typer.Option(DEFAULT_CONFIG, "--config", "-c", help="Config YAML"),
):
    """Run one sweep over due notifications."""
    scheduler = build_notification_scheduler(load_config(config_path))

    async def _sweep() -> int:
        with correlation_id_context("cli-sweep"):
            return await scheduler.process_scheduled_notifications()

    delivered = asyncio.run(_sweep())
    display_success(f"Delivered {delivered} notification(s)")
