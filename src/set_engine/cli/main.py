"""
CLI entry point using Typer.

Provides commands for running advanced sets:
- run: Execute a drop set, myo-reps, MAV or rest-pause set interactively
- defaults: Show the effective tunables
- check-config: Validate a YAML set configuration
"""

from .app import app
from .commands import session, tunables  # noqa: F401  (registers commands)

__all__ = ["app"]


if __name__ == "__main__":
    app()
