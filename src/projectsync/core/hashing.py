"""Content hashing for change detection.

This module provides:
- compute_content_hash: SHA-256 of a text blob
- contents_match: Digest equality of two text blobs

Hashes are only used to decide whether content changed, never for security.
"""

import hashlib


def compute_content_hash(content: str) -> str:
    """Compute SHA-256 hash of text content.

    Args:
        content: Text to hash (encoded as UTF-8).

    Returns:
        Hexadecimal SHA-256 hash string.
    """
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


def contents_match(first: str, second: str) -> bool:
    """Check whether two text blobs have the same digest."""
    return compute_content_hash(first) == compute_content_hash(second)
