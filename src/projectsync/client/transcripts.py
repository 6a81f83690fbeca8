"""Conversation transcript export.

This module provides:
- transcript_filename: Stable file name for a conversation transcript
- format_transcript: Markdown transcript with YAML frontmatter
"""

from __future__ import annotations

import re
from typing import Any

import yaml

from projectsync.client.api import Conversation

EXPORTER = "projectsync"
MAX_TITLE_LENGTH = 100


def transcript_filename(conversation: Conversation) -> str:
    """Build the file name a conversation is exported to.

    The name is derived from the title and the conversation id only, so
    re-exports overwrite the same file.
    """
    title = re.sub(r"[^\w\s-]", "_", conversation.name, flags=re.UNICODE)
    title = re.sub(r"\s+", "_", title).strip("_")[:MAX_TITLE_LENGTH] or "Untitled"
    return f"{title}_{conversation.uuid[:8]}.md"


def format_transcript(conversation: Conversation) -> str:
    """Render a conversation as Markdown with YAML frontmatter.

    Human turns are numbered second-level headings, assistant turns are
    third-level headings followed by a horizontal rule.
    """
    frontmatter: dict[str, Any] = {
        "title": conversation.name,
        "conversation_id": conversation.uuid,
        "message_count": len(conversation.messages),
        "exporter": EXPORTER,
    }
    if conversation.created_at:
        frontmatter["date"] = conversation.created_at.isoformat()
    if conversation.updated_at:
        frontmatter["updated"] = conversation.updated_at.isoformat()
    if conversation.project_uuid:
        frontmatter["project_id"] = conversation.project_uuid

    parts = [
        "---\n",
        yaml.safe_dump(frontmatter, sort_keys=False, allow_unicode=True),
        "---\n\n",
        f"# {conversation.name}\n\n",
    ]

    human_turns = 0
    for message in conversation.messages:
        if message.sender == "human":
            human_turns += 1
            parts.append(f"## {human_turns}. User\n\n{message.text}\n\n")
        else:
            parts.append(f"### Assistant\n\n{message.text}\n\n---\n\n")

    return "".join(parts)
