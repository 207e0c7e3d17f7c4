"""Plain-text extraction from heterogeneous message content."""

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class TextContent:
    """Content that is already a plain string."""

    text: str


@dataclass(frozen=True)
class BlockContent:
    """Content given as an ordered sequence of typed blocks."""

    blocks: tuple[Any, ...]


@dataclass(frozen=True)
class UnsupportedContent:
    """Any other shape; carries no extractable text."""

    raw: Any = None


Content = TextContent | BlockContent | UnsupportedContent


def classify_content(value: Any) -> Content:
    """Tag a raw content value with its shape."""
    if isinstance(value, str):
        return TextContent(value)
    if isinstance(value, (list, tuple)):
        return BlockContent(tuple(value))
    return UnsupportedContent(value)


def _block_text(block: Any) -> str | None:
    """Return the payload of a text block, or None for any other block."""
    if isinstance(block, dict):
        block_type = block.get("type")
        text = block.get("text")
    elif block is not None and not isinstance(block, (str, bytes, int, float)):
        # SDK block objects expose type/text as attributes
        block_type = getattr(block, "type", None)
        text = getattr(block, "text", None)
    else:
        return None

    if block_type == "text" and isinstance(text, str):
        return text
    return None


def extract_text_content(value: Any) -> str | None:
    """Extract plain text from message content.

    Strings come back unchanged. Block sequences yield the ``text`` blocks
    joined by newlines, in order. Everything else (and a sequence without
    text) yields None.
    """
    content = classify_content(value)

    if isinstance(content, TextContent):
        return content.text

    if isinstance(content, BlockContent):
        parts = []
        for block in content.blocks:
            text = _block_text(block)
            if text is not None:
                parts.append(text)
        return "\n".join(parts) or None

    return None
