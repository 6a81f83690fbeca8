"""Command-line interface for projectsync.

This module provides the main CLI entry point and assembles all commands.

Commands:
- login: Store the session key and select an organization
- init: Choose the workspace folder
- sync: Synchronize the workspace with the remote projects
- diff: Preview differences without changing anything
- status: Show the project-to-folder mapping and last sync
- settings: Show or change workspace sync settings
"""

from __future__ import annotations

import logging

import click

from projectsync.client.cli.account import login
from projectsync.client.cli.config import (
    get_config_dir,
    get_config_file,
    get_remote_config,
    get_session_key,
    get_workspace_folder,
    load_config,
    save_config,
)
from projectsync.client.cli.sync import diff, sync
from projectsync.client.cli.workspace import init, settings, status


class ClickEchoHandler(logging.Handler):
    """Logging handler writing through click.echo to stderr."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            click.echo(self.format(record), err=True)
        except Exception:
            self.handleError(record)


def configure_logging(verbose: bool) -> None:
    """Route projectsync log records to the terminal."""
    handler = ClickEchoHandler()
    if verbose:
        handler.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))
    else:
        handler.setFormatter(logging.Formatter("%(message)s"))

    # Replace handlers so repeated invocations don't stack them
    projectsync_logger = logging.getLogger("projectsync")
    for existing in projectsync_logger.handlers[:]:
        projectsync_logger.removeHandler(existing)
    projectsync_logger.addHandler(handler)
    projectsync_logger.setLevel(logging.DEBUG if verbose else logging.WARNING)
    projectsync_logger.propagate = False


@click.group()
@click.version_option()
@click.option("-v", "--verbose", is_flag=True, help="Show debug logging.")
def cli(verbose: bool) -> None:
    """projectsync - Mirror remote projects into a local workspace."""
    configure_logging(verbose)


# Account commands
cli.add_command(login)

# Workspace commands
cli.add_command(init)
cli.add_command(status)
cli.add_command(settings)

# Sync commands
cli.add_command(sync)
cli.add_command(diff)


def main() -> None:
    """Entry point for the CLI."""
    cli()


__all__ = [
    # Main entry points
    "cli",
    "main",
    # Config utilities
    "get_config_dir",
    "get_config_file",
    "get_remote_config",
    "get_session_key",
    "get_workspace_folder",
    "load_config",
    "save_config",
]
