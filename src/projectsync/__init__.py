"""projectsync - Keep a local workspace in sync with remote projects."""

__version__ = "0.1.0"
