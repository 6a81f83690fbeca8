"""Workspace commands for the projectsync CLI.

Commands:
- init: Choose the workspace folder
- status: Show the project-to-folder mapping and last sync
- settings: Show or change workspace sync settings
"""

from __future__ import annotations

import sys
from pathlib import Path

import click

from projectsync.client.cli.config import get_workspace_folder, load_config, save_config
from projectsync.client.workspace import WorkspaceConfigStore, read_project_metadata
from projectsync.core.types import ConflictStrategy


def require_workspace() -> Path:
    """Return the workspace folder, exiting if init has not been run."""
    workspace = get_workspace_folder()
    if workspace is None:
        click.echo("Error: No workspace. Run 'projectsync init FOLDER' first.", err=True)
        sys.exit(1)
    return workspace


@click.command()
@click.argument("folder", type=click.Path(file_okay=False, path_type=Path))
def init(folder: Path) -> None:
    """Use FOLDER as the workspace, creating it if needed."""
    workspace = folder.expanduser().resolve()
    try:
        workspace.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        click.echo(f"Error: Cannot create {workspace}: {e}", err=True)
        sys.exit(1)

    store = WorkspaceConfigStore(workspace)
    if not store.path.exists():
        store.save()

    config = load_config()
    config["workspace"] = str(workspace)
    save_config(config)

    click.echo(f"Workspace: {workspace}")


@click.command()
def status() -> None:
    """Show which folder each project is synced to."""
    workspace = require_workspace()
    config = WorkspaceConfigStore(workspace).load()

    click.echo(f"Workspace: {workspace}")
    if config.last_sync_at is None:
        click.echo("Last sync: never")
    else:
        click.echo(f"Last sync: {config.last_sync_at.isoformat(timespec='seconds')}")

    settings = config.settings
    click.echo(
        f"Mode: {'bidirectional' if settings.bidirectional else 'download'}, "
        f"strategy: {settings.conflict_strategy.value}, "
        f"chats: {'on' if settings.sync_chats else 'off'}"
    )

    if not config.project_map:
        click.echo("\nNo projects synced yet.")
        return

    click.echo(f"\nProjects ({len(config.project_map)}):")
    for project_id, folder in sorted(config.project_map.items(), key=lambda item: item[1]):
        project_dir = workspace / folder
        if not project_dir.is_dir():
            click.echo(f"  {folder}  {project_id}  " + click.style("(missing)", fg="yellow"))
            continue
        metadata = read_project_metadata(project_dir)
        synced = metadata.synced_at.isoformat(timespec="seconds") if metadata else "-"
        name = metadata.name if metadata else ""
        click.echo(f"  {folder}  {project_id}  {name}  synced {synced}")


@click.command()
@click.option(
    "--sync-chats/--no-sync-chats",
    default=None,
    help="Export conversations as markdown transcripts.",
)
@click.option(
    "--strategy",
    type=click.Choice([strategy.value for strategy in ConflictStrategy]),
    default=None,
    help="Conflict strategy for bidirectional sync.",
)
@click.option(
    "--bidirectional/--download",
    "bidirectional",
    default=None,
    help="Default sync mode.",
)
def settings(sync_chats: bool | None, strategy: str | None, bidirectional: bool | None) -> None:
    """Show or change the workspace sync settings."""
    workspace = require_workspace()
    store = WorkspaceConfigStore(workspace)
    store.load()

    changes: dict[str, object] = {}
    if sync_chats is not None:
        changes["sync_chats"] = sync_chats
    if strategy is not None:
        changes["conflict_strategy"] = ConflictStrategy(strategy)
    if bidirectional is not None:
        changes["bidirectional"] = bidirectional

    current = store.update_settings(**changes) if changes else store.config.settings

    click.echo(f"sync_chats: {str(current.sync_chats).lower()}")
    click.echo(f"conflict_strategy: {current.conflict_strategy.value}")
    click.echo(f"bidirectional: {str(current.bidirectional).lower()}")
