"""Hook payload types exchanged with the host runtime."""

from compaction_guard.bus.events import (
    AfterCompactionEvent,
    AgentStartResult,
    BeforeAgentStartEvent,
    BeforeCompactionEvent,
)

__all__ = [
    "AfterCompactionEvent",
    "AgentStartResult",
    "BeforeAgentStartEvent",
    "BeforeCompactionEvent",
]
