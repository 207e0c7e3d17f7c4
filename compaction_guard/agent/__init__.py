"""Core compaction recovery components."""

from compaction_guard.agent.guard import CompactionGuard
from compaction_guard.agent.state import RecoveryTracker
from compaction_guard.agent.store import ContextStore

__all__ = ["CompactionGuard", "ContextStore", "RecoveryTracker"]
