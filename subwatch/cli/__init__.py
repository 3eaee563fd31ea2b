"""subwatch CLI Package.

Provides command-line interface for subscription duplicate detection and
notification scheduling.

Usage:
    python -m subwatch.cli validate config/subwatch.yaml
    python -m subwatch.cli dedup scan subscriptions.json
    python -m subwatch.cli notify schedule --user u1 --title ... --at 2026-01-01T09:00
    python -m subwatch.cli notify list --user u1
    python -m subwatch.cli schedule start
"""

import typer

from subwatch.cli.dedup import dedup_app
from subwatch.cli.notify import notify_app
from subwatch.cli.schedule import schedule_app
from subwatch.cli.validate import validate_command

# Create main app
app = typer.Typer(help="subwatch: subscription duplicate detection and notification scheduling")

# Register individual commands
app.command(name="validate")(validate_command)

# Register sub-applications
app.add_typer(dedup_app, name="dedup")
app.add_typer(notify_app, name="notify")
app.add_typer(schedule_app, name="schedule")

__all__ = [
    "app",
    "validate_command",
    "dedup_app",
    "notify_app",
    "schedule_app",
]
