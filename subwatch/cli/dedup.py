"""Duplicate detection commands.

Works on JSON files holding arrays of subscription or SMS message records.
"""

import asyncio
import json
from pathlib import Path
from typing import List, Optional

import typer
from pydantic import ValidationError

from subwatch.cli.utils import (
    DEFAULT_CONFIG,
    display_info,
    display_success,
    display_warning,
    handle_errors,
    load_config,
    load_subscriptions,
)
from subwatch.models.dedup import DuplicateDetectionConfig
from subwatch.models.subscription import SubscriptionMessage
from subwatch.scheduling.jobs import FingerprintCleanupJob
from subwatch.services.dedup_service import DuplicateDetector

dedup_app = typer.Typer(help="Find duplicate subscriptions")


def _detection_config(
    config_path: Path,
    name_threshold: Optional[float],
    amount_threshold: Optional[float],
    window_days: Optional[float],
) -> DuplicateDetectionConfig:
    """Config-file settings with command-line overrides applied."""
    config = load_config(config_path).dedup
    overrides = {
        "service_name_similarity_threshold": name_threshold,
        "amount_similarity_threshold": amount_threshold,
        "time_window_days": window_days,
    }
    return config.model_copy(
        update={key: value for key, value in overrides.items() if value is not None}
    )


def _describe(subscription) -> str:
    return (
        f"{subscription.name} ({subscription.amount} "
        f"{subscription.billing_cycle.value}) [{subscription.id}]"
    )


@dedup_app.command(name="check")
@handle_errors
def dedup_check(
    candidate_file: Path = typer.Argument(..., help="JSON file with the candidate subscription(s)"),
    existing_file: Path = typer.Argument(..., help="JSON file with existing subscriptions"),
    config_path: Path = typer.Option(DEFAULT_CONFIG, "--config", "-c", help="Config YAML"),
    name_threshold: Optional[float] = typer.Option(None, "--name-threshold", min=0.0, max=1.0),
    amount_threshold: Optional[float] = typer.Option(None, "--amount-threshold", min=0.0, max=100.0),
    window_days: Optional[float] = typer.Option(None, "--window-days", min=0.0),
):
    """Check candidate subscriptions against existing ones.

    Exits with code 2 if any candidate is a duplicate.
    """
    detector = DuplicateDetector(
        _detection_config(config_path, name_threshold, amount_threshold, window_days)
    )
    candidates = load_subscriptions(candidate_file)
    existing = load_subscriptions(existing_file)

    found = False
    for candidate in candidates:
        result = detector.detect_duplicate_subscription(candidate, existing)
        if not result.is_duplicate:
            display_success(f"{_describe(candidate)}: no duplicates")
            continue

        found = True
        display_warning(
            f"{_describe(candidate)}: duplicate "
            f"(confidence {result.confidence:.1f}, {result.reason.value})"
        )
        for duplicate in result.duplicates:
            typer.echo(f"  - {_describe(duplicate)}")

    if found:
        raise typer.Exit(code=2)


@dedup_app.command(name="scan")
@handle_errors
def dedup_scan(
    subscriptions_file: Path = typer.Argument(..., help="JSON file with subscriptions"),
    config_path: Path = typer.Option(DEFAULT_CONFIG, "--config", "-c", help="Config YAML"),
    name_threshold: Optional[float] = typer.Option(None, "--name-threshold", min=0.0, max=1.0),
    amount_threshold: Optional[float] = typer.Option(None, "--amount-threshold", min=0.0, max=100.0),
    window_days: Optional[float] = typer.Option(None, "--window-days", min=0.0),
):
    """Group duplicate subscriptions and suggest which record to keep."""
    detector = DuplicateDetector(
        _detection_config(config_path, name_threshold, amount_threshold, window_days)
    )
    subscriptions = load_subscriptions(subscriptions_file)
    groups = detector.find_duplicate_groups(subscriptions)

    if not groups:
        display_success(f"No duplicates among {len(subscriptions)} subscriptions")
        return

    display_info(f"Found {len(groups)} duplicate group(s):")
    for index, group in enumerate(groups, start=1):
        resolution = detector.resolve_duplicates(group)
        typer.echo(f"\nGroup {index}:")
        typer.echo(f"  keep:   {_describe(resolution.keep)}")
        for duplicate in resolution.remove:
            typer.echo(f"  remove: {_describe(duplicate)}")


def _load_messages(path: Path) -> List[SubscriptionMessage]:
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise typer.BadParameter(f"Cannot read {path}: {e}")

    if isinstance(raw, dict):
        raw = raw.get("messages", [])
    if not isinstance(raw, list):
        raise typer.BadParameter(f"{path} must contain a JSON array of messages")

    try:
        return [SubscriptionMessage.model_validate(item) for item in raw]
    except ValidationError as e:
        raise typer.BadParameter(f"Invalid message in {path}: {e}")


@dedup_app.command(name="message")
@handle_errors
def dedup_message(
    text: str = typer.Argument(..., help="Raw SMS text"),
    messages_file: Path = typer.Argument(..., help="JSON file with processed messages"),
):
    """Check whether an SMS text was already processed.

    Exits with code 2 if it was.
    """
    detector = DuplicateDetector()
    if detector.is_message_duplicate(text, _load_messages(messages_file)):
        display_warning("Message already processed")
        raise typer.Exit(code=2)

    display_success("New message")


@dedup_app.command(name="cleanup")
@handle_errors
def dedup_cleanup(
    messages_file: Path = typer.Argument(..., help="JSON file with processed messages"),
    days: Optional[int] = typer.Option(
        None, "--days", min=1, help="Fingerprint retention (default from config)"
    ),
    config_path: Path = typer.Option(DEFAULT_CONFIG, "--config", "-c", help="Config YAML"),
):
    """Strip expired fingerprints from a message file in place."""
    config = load_config(config_path)
    messages = _load_messages(messages_file)

    def save(updated: List[SubscriptionMessage]) -> None:
        by_id = {message.id: message for message in updated}
        merged = [by_id.get(message.id, message) for message in messages]
        messages_file.write_text(
            json.dumps([m.model_dump(mode="json") for m in merged], indent=2),
            encoding="utf-8",
        )

    job = FingerprintCleanupJob(
        DuplicateDetector(config.dedup),
        lambda: messages,
        save,
        days_to_keep=days or config.storage.fingerprint_retention_days,
    )
    result = asyncio.run(job())
    display_success(
        f"Expired {result['updated']} of {result['inspected']} fingerprint(s)"
    )
