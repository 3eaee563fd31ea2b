"""CLI entry point.

Allows running the CLI as a module: python -m subwatch.cli
"""

from subwatch.cli import app

if __name__ == "__main__":
    app()
