"""Account command for the projectsync CLI.

Commands:
- login: Store the session key and select an organization
"""

from __future__ import annotations

import sys

import click

from projectsync.client.api import APIError, AuthenticationError
from projectsync.client.cli.config import load_config, open_client, save_config
from projectsync.core.config import DEFAULT_BASE_URL, RemoteConfig


@click.command()
@click.option(
    "--session-key",
    prompt="Session key",
    hide_input=True,
    help="Session cookie value of a logged-in browser session.",
)
@click.option("--org", "org_id", default=None, help="Organization UUID (default: ask).")
@click.option("--base-url", default=None, help=f"API base URL (default: {DEFAULT_BASE_URL}).")
def login(session_key: str, org_id: str | None, base_url: str | None) -> None:
    """Log in with a session key and select the organization to sync."""
    config = load_config()
    base_url = base_url or config.get("base_url") or DEFAULT_BASE_URL

    if org_id is None:
        remote_config = RemoteConfig(session_key=session_key, base_url=base_url)
        try:
            with open_client(remote_config) as client:
                organizations = client.list_organizations()
        except AuthenticationError:
            click.echo("Error: Invalid or expired session key.", err=True)
            sys.exit(1)
        except APIError as e:
            click.echo(f"Error: Could not list organizations: {e}", err=True)
            sys.exit(1)

        if not organizations:
            click.echo("Error: No organizations found for this account.", err=True)
            sys.exit(1)

        if len(organizations) == 1:
            org_id = organizations[0].uuid
        else:
            click.echo("Organizations:")
            for index, organization in enumerate(organizations, start=1):
                click.echo(f"  {index}. {organization.name} ({organization.uuid})")
            choice = click.prompt(
                "Select organization",
                type=click.IntRange(1, len(organizations)),
                default=1,
            )
            org_id = organizations[choice - 1].uuid

    config["session_key"] = session_key
    config["org_id"] = org_id
    config["base_url"] = base_url.rstrip("/")
    save_config(config)

    click.echo("Logged in.")
    click.echo(f"Organization: {org_id}")
