"""Event types for the compaction lifecycle hooks."""

import math
from dataclasses import dataclass
from typing import Any


def _field(payload: Any, *names: str) -> Any:
    """Read the first present field from a dict or attribute-style payload."""
    if payload is None:
        return None
    for name in names:
        if isinstance(payload, dict):
            if name in payload:
                return payload[name]
        elif hasattr(payload, name):
            return getattr(payload, name)
    return None


def _session_key(payload: Any) -> str | None:
    key = _field(payload, "session_key", "sessionKey")
    if key is None:
        return None
    key = key if isinstance(key, str) else str(key)
    return key or None


@dataclass
class BeforeCompactionEvent:
    """Fired by the host right before it compacts a conversation."""

    message_count: int = 0
    messages: list[Any] | None = None  # Host-owned, never mutated

    @classmethod
    def from_payload(cls, payload: Any) -> "BeforeCompactionEvent":
        if isinstance(payload, cls):
            return payload

        count = _field(payload, "message_count", "messageCount")
        # bool is an int subclass; a flag is not a count
        if isinstance(count, bool) or not isinstance(count, (int, float)):
            count = 0
        elif isinstance(count, float):
            count = int(count) if math.isfinite(count) else 0

        messages = _field(payload, "messages")
        if not isinstance(messages, (list, tuple)):
            messages = None

        return cls(message_count=count, messages=list(messages) if messages is not None else None)


@dataclass
class AfterCompactionEvent:
    """Fired by the host once compaction has finished."""

    session_key: str | None = None

    @classmethod
    def from_payload(cls, payload: Any) -> "AfterCompactionEvent":
        if isinstance(payload, cls):
            return payload
        return cls(session_key=_session_key(payload))


@dataclass
class BeforeAgentStartEvent:
    """Fired by the host before the agent starts its next turn."""

    session_key: str | None = None

    @classmethod
    def from_payload(cls, payload: Any) -> "BeforeAgentStartEvent":
        if isinstance(payload, cls):
            return payload
        return cls(session_key=_session_key(payload))


@dataclass
class AgentStartResult:
    """Context to splice in front of the upcoming turn."""

    prepend_context: str

    def to_dict(self) -> dict[str, str]:
        """Wire shape expected by the host."""
        return {"prependContext": self.prepend_context}
