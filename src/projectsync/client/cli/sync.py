"""Sync commands for the projectsync CLI.

Commands:
- sync: Synchronize the workspace with the remote projects
- diff: Preview differences without changing anything
"""

from __future__ import annotations

import signal
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

import click

from projectsync.client.api import APIError, HTTPClient
from projectsync.client.cli.config import (
    get_remote_config,
    get_workspace_folder,
    load_config,
    open_client,
)
from projectsync.client.sync import (
    CancelToken,
    SyncOrchestrator,
    SyncProgress,
    SyncResult,
    WorkspaceDiff,
)
from projectsync.core.types import ConflictStrategy, SyncMode, SyncPhase

STRATEGY_CHOICES = [strategy.value for strategy in ConflictStrategy]


def require_setup() -> tuple[HTTPClient, Path, str]:
    """Open the API client for the configured workspace and organization.

    Exits with an error message when login or init has not been done.
    """
    remote_config = get_remote_config()
    if remote_config is None:
        click.echo("Error: Not logged in. Run 'projectsync login' first.", err=True)
        sys.exit(1)

    org_id = load_config().get("org_id")
    if not org_id:
        click.echo("Error: No organization selected. Run 'projectsync login' first.", err=True)
        sys.exit(1)

    workspace = get_workspace_folder()
    if workspace is None:
        click.echo("Error: No workspace. Run 'projectsync init FOLDER' first.", err=True)
        sys.exit(1)

    return open_client(remote_config), workspace, org_id


@contextmanager
def cancel_on_interrupt() -> Iterator[CancelToken]:
    """Turn Ctrl+C into a cancellation request for the running pass."""
    token = CancelToken()

    def _handler(signum: int, frame: Any) -> None:
        click.echo("\nCancelling after the current file...")
        token.cancel()

    previous = signal.signal(signal.SIGINT, _handler)
    try:
        yield token
    finally:
        signal.signal(signal.SIGINT, previous)


def print_progress(progress: SyncProgress) -> None:
    """Print one line per completed project."""
    if progress.phase is SyncPhase.SYNCING and progress.current_project:
        click.echo(
            f"  [{progress.completed_projects}/{progress.total_projects}] "
            f"{progress.current_project}"
        )
    elif progress.phase is SyncPhase.FETCHING:
        click.echo(progress.message)


def display_summary(result: SyncResult, dry_run: bool) -> None:
    """Display sync results summary."""
    stats = result.stats
    if result.errors:
        click.echo(click.style("\nErrors:", fg="red"))
        for error in result.errors:
            click.echo(f"  ✗ {error}")

    prefix = "Dry run" if dry_run else "Sync complete"
    if result.cancelled:
        prefix = "Sync cancelled"
    click.echo(
        f"\n{prefix}: {stats.created} created, {stats.updated} updated, "
        f"{stats.skipped} skipped, {stats.uploaded} uploaded, "
        f"{stats.conflicts} conflicts, {stats.errors} errors"
    )
    if stats.chats:
        click.echo(f"Exported {stats.chats} conversation(s)")


@click.command()
@click.option(
    "--bidirectional/--download",
    "bidirectional",
    default=None,
    help="Sync both directions, or only download (default: workspace setting).",
)
@click.option(
    "--strategy",
    type=click.Choice(STRATEGY_CHOICES),
    default=None,
    help="Conflict strategy for bidirectional sync (default: workspace setting).",
)
@click.option("--dry-run", is_flag=True, help="Show what would change without writing.")
def sync(bidirectional: bool | None, strategy: str | None, dry_run: bool) -> None:
    """Synchronize the workspace with the remote projects.

    Downloads projects into the workspace folder. With --bidirectional,
    local changes are uploaded as well.
    """
    client, workspace, org_id = require_setup()

    if bidirectional is None:
        mode = None
    else:
        mode = SyncMode.BIDIRECTIONAL if bidirectional else SyncMode.DOWNLOAD

    click.echo(f"Workspace: {workspace}")
    try:
        orchestrator = SyncOrchestrator(client, workspace, progress_callback=print_progress)
        with cancel_on_interrupt() as token:
            result = orchestrator.run(
                mode,
                org_id,
                dry_run=dry_run,
                conflict_strategy=strategy,
                cancel=token,
            )
    finally:
        client.close()

    display_summary(result, dry_run)
    if not result.success:
        sys.exit(1)


def display_diff(diff: WorkspaceDiff) -> None:
    """Print a workspace diff."""
    summary = diff.summary
    click.echo(
        f"{summary['remote_projects']} remote projects, "
        f"{summary['local_folders']} local folders: "
        f"{summary['matched']} matched, {summary['remote_only']} remote only, "
        f"{summary['local_only']} local only"
    )

    for project in diff.remote_only:
        count = "?" if project.file_count is None else project.file_count
        click.echo(f"  + {project.sanitized_name} (remote only, {count} files)")

    for folder in diff.local_only:
        click.echo(f"  - {folder} (local only)")

    for project in diff.matched:
        if not project.has_differences:
            click.echo(f"  = {project.folder}")
            continue
        click.echo(f"  ~ {project.folder}")
        for name in project.remote_only_files:
            click.echo(f"      ↓ {name}")
        for name in project.local_only_files:
            click.echo(f"      ↑ {name}")
        for name in project.modified_files:
            info = project.modified_files_info.get(name)
            newer = "local newer" if info and info.is_local_newer else "remote newer"
            click.echo(f"      ! {name} ({newer})")

    for project_id, error in diff.failed.items():
        click.echo(click.style(f"  ✗ {project_id}: {error}", fg="red"))


@click.command()
def diff() -> None:
    """Preview differences between the workspace and the remote projects."""
    client, workspace, org_id = require_setup()
    try:
        workspace_diff = SyncOrchestrator(client, workspace).get_workspace_diff(org_id)
    except APIError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    finally:
        client.close()

    display_diff(workspace_diff)
