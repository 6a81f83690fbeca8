"""Shared configuration classes for projectsync.

This module defines configuration classes used by the HTTP client and the CLI.
"""

from __future__ import annotations

from dataclasses import dataclass

DEFAULT_BASE_URL = "https://claude.ai/api"


@dataclass
class RemoteConfig:
    """Configuration for connecting to the remote project store.

    Attributes:
        session_key: Session cookie value used to authenticate requests.
        base_url: Base URL of the API (e.g., "https://claude.ai/api").
        timeout: Request timeout in seconds.
        max_retries: Retries for rate-limited or failed requests.
    """

    session_key: str
    base_url: str = DEFAULT_BASE_URL
    timeout: float = 30.0
    max_retries: int = 3

    def __post_init__(self) -> None:
        """Normalize base URL."""
        self.base_url = self.base_url.rstrip("/")

    @property
    def cookie_header(self) -> str:
        """Get the Cookie header value carrying the session key."""
        return f"sessionKey={self.session_key}"

    @property
    def is_secure(self) -> bool:
        """Check if using HTTPS.

        Returns:
            True if the API is served over HTTPS.
        """
        return self.base_url.startswith("https://")
