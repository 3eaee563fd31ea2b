"""Shared CLI utilities.

Provides common functionality for all CLI commands.
"""

import functools
import json
from datetime import datetime
from pathlib import Path
from typing import Callable, List, Optional, TypeVar

import typer
from pydantic import ValidationError

from subwatch.models.config import AppConfig
from subwatch.models.subscription import Subscription
from subwatch.observability.logging import configure_logging, get_logger
from subwatch.services.config_manager import ConfigManager, ConfigValidationError
from subwatch.services.notification import (
    JsonFileNotificationStore,
    NotificationScheduler,
    create_deliverer,
)
from subwatch.services.preferences_service import (
    JsonFilePreferenceStore,
    NotificationPreferencesService,
)
from subwatch.utils.dates import to_datetime

# Console logging for interactive use; the daemon reconfigures from config
configure_logging(level="WARNING", json_output=False)
logger = get_logger("cli")

F = TypeVar("F", bound=Callable)

DEFAULT_CONFIG = Path("config/subwatch.yaml")


def load_config(config_path: Path, required: bool = False) -> AppConfig:
    """Load and validate configuration.

    Args:
        config_path: Path to configuration file.
        required: Fail if the file does not exist instead of using defaults.

    Returns:
        Validated AppConfig.

    Raises:
        typer.Exit: If configuration is invalid.
    """
    config_manager = ConfigManager(config_path=str(config_path))
    try:
        if required:
            return config_manager.load_config()
        return config_manager.load_or_default()
    except (FileNotFoundError, ConfigValidationError) as e:
        typer.secho(f"Configuration Error: {e}", fg=typer.colors.RED)
        raise typer.Exit(code=1)


def build_notification_scheduler(
    config: AppConfig, job_scheduler: Optional[object] = None
) -> NotificationScheduler:
    """Wire a NotificationScheduler to the JSON stores named in config."""
    preferences = NotificationPreferencesService(
        JsonFilePreferenceStore(config.storage.preferences_path)
    )
    return NotificationScheduler(
        store=JsonFileNotificationStore(config.storage.notifications_path),
        deliverer=create_deliverer(config.delivery),
        preferences=preferences,
        job_scheduler=job_scheduler,
        settings=config.scheduler,
    )


def load_subscriptions(path: Path) -> List[Subscription]:
    """Read a JSON array of subscriptions.

    Raises:
        typer.BadParameter: If the file is missing or malformed.
    """
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise typer.BadParameter(f"Cannot read {path}: {e}")

    if isinstance(raw, dict):
        raw = raw.get("subscriptions", [])
    if not isinstance(raw, list):
        raise typer.BadParameter(f"{path} must contain a JSON array of subscriptions")

    try:
        return [Subscription.model_validate(item) for item in raw]
    except ValidationError as e:
        raise typer.BadParameter(f"Invalid subscription in {path}: {e}")


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 CLI argument (naive values are UTC)."""
    try:
        return to_datetime(value)
    except ValueError as e:
        raise typer.BadParameter(f"Invalid timestamp '{value}': {e}")


def handle_errors(func: F) -> F:
    """Decorator for consistent error handling.

    Catches exceptions and displays user-friendly error messages.
    """

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except (typer.Exit, typer.BadParameter):
            raise
        except Exception as e:
            logger.exception("command_failed")
            typer.secho(f"Error: {e}", fg=typer.colors.RED)
            raise typer.Exit(code=1)

    return wrapper  # type: ignore[return-value]


def display_success(message: str) -> None:
    typer.secho(message, fg=typer.colors.GREEN)


def display_warning(message: str) -> None:
    typer.secho(message, fg=typer.colors.YELLOW)


def display_error(message: str) -> None:
    typer.secho(message, fg=typer.colors.RED)


def display_info(message: str) -> None:
    typer.secho(message, fg=typer.colors.CYAN)
