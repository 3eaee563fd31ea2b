"""Validate command for configuration files.

Validates configuration file syntax and semantics.
"""

from pathlib import Path

import typer

from subwatch.cli.utils import display_error, display_success, handle_errors
from subwatch.services.config_manager import ConfigManager, ConfigValidationError


@handle_errors
def validate_command(
    config_path: Path = typer.Argument(..., help="Config file to validate"),
):
    """Validate configuration file syntax and semantics."""
    try:
        config = ConfigManager(config_path=str(config_path)).load_config()
    except (FileNotFoundError, ConfigValidationError) as e:
        display_error(f"Validation failed: {e}")
        raise typer.Exit(code=1)

    display_success("Configuration is valid!")
    typer.echo(f"  Delivery: {config.delivery.method}")
    typer.echo(f"  Sweep interval: {config.scheduler.sweep_interval_seconds}s")
    typer.echo(f"  Notifications: {config.storage.notifications_path}")
