"""Task-context digest from the tail of a conversation."""

import re
from typing import Any

from compaction_guard.agent.extractor import extract_text_content

RECENT_WINDOW = 20  # Messages scanned from the end of history
USER_MAX_CHARS = 500
ASSISTANT_MAX_CHARS = 300
MAX_PASSAGES = 5
ELLIPSIS = "..."

# Assistant turns that describe what the agent is doing
TASK_PATTERN = re.compile(
    r"working on|creating|building|fixing|implementing|investigating",
    re.IGNORECASE,
)


def truncate(text: str, limit: int) -> str:
    """Cut text to ``limit`` chars, appending an ellipsis if anything was dropped."""
    if len(text) > limit:
        return text[:limit] + ELLIPSIS
    return text


def summarize_passages(messages: Any) -> list[str]:
    """Return the labeled passages worth preserving, oldest first.

    Only the last RECENT_WINDOW messages are considered and at most
    MAX_PASSAGES passages are returned (the most recent ones).
    """
    if not isinstance(messages, (list, tuple)) or not messages:
        return []

    passages: list[str] = []
    for msg in messages[-RECENT_WINDOW:]:
        if isinstance(msg, dict):
            role = msg.get("role")
            content = msg.get("content")
        elif hasattr(msg, "role"):
            role = getattr(msg, "role", None)
            content = getattr(msg, "content", None)
        else:
            continue

        if role == "user" and isinstance(content, str):
            passages.append(f"User: {truncate(content, USER_MAX_CHARS)}")
        elif role == "assistant":
            text = extract_text_content(content)
            if text and TASK_PATTERN.search(text):
                passages.append(f"Assistant: {truncate(text, ASSISTANT_MAX_CHARS)}")

    return passages[-MAX_PASSAGES:]


def extract_task_context(messages: Any) -> str | None:
    """Build the digest of what the agent is currently doing, or None."""
    passages = summarize_passages(messages)
    if not passages:
        return None
    return "\n\n".join(passages)
