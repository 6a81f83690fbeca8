"""Configuration utilities for the projectsync CLI.

This module provides shared configuration functions used across CLI commands.
"""

from __future__ import annotations

import json
import os
from pathlib import Path

from projectsync.client.api import HTTPClient
from projectsync.core.config import DEFAULT_BASE_URL, RemoteConfig

SESSION_KEY_ENV = "PROJECTSYNC_SESSION_KEY"


def get_config_dir() -> Path:
    """Get the configuration directory for projectsync.

    Returns:
        Path to ~/.projectsync or equivalent.
    """
    return Path.home() / ".projectsync"


def get_config_file() -> Path:
    """Get the path to the config file."""
    return get_config_dir() / "config.json"


def load_config() -> dict[str, str]:
    """Load configuration from config file."""
    config_file = get_config_file()
    if config_file.exists():
        return dict(json.loads(config_file.read_text()))
    return {}


def save_config(config: dict[str, str]) -> None:
    """Save configuration to config file."""
    config_file = get_config_file()
    config_file.parent.mkdir(parents=True, exist_ok=True)
    config_file.write_text(json.dumps(config, indent=2))
    # The session key is a credential
    config_file.chmod(0o600)


def get_workspace_folder() -> Path | None:
    """Get the workspace folder path.

    Returns:
        Path to the configured workspace, or None if not initialized.
    """
    config = load_config()
    if config.get("workspace"):
        return Path(config["workspace"]).expanduser().resolve()
    return None


def get_session_key() -> str | None:
    """Get the session key, the environment variable taking precedence."""
    return os.environ.get(SESSION_KEY_ENV) or load_config().get("session_key")


def get_remote_config() -> RemoteConfig | None:
    """Build the RemoteConfig from stored settings.

    Returns:
        RemoteConfig, or None if no session key is available.
    """
    session_key = get_session_key()
    if not session_key:
        return None
    config = load_config()
    return RemoteConfig(
        session_key=session_key,
        base_url=config.get("base_url") or DEFAULT_BASE_URL,
    )


def open_client(remote_config: RemoteConfig) -> HTTPClient:
    """Open an API client for the given remote settings."""
    return HTTPClient(remote_config)
