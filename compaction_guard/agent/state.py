"""Recovery state machine shared across hook invocations."""

import time
from typing import Callable

DEFAULT_SESSION_KEY = "default"
STALE_AFTER_SECONDS = 60


class RecoveryTracker:
    """
    Tracks whether a compaction just happened and which sessions owe a
    recovery injection.

    Per session: Clean -> PendingRecovery (after_compaction) -> Clean
    (before_agent_start). The process-wide ``compaction_just_happened`` flag
    is a time-boxed fallback for sessions whose key did not survive the
    compaction boundary.

    Sessions without a key all share DEFAULT_SESSION_KEY, so their recovery
    state is shared too. Hosts that run several anonymous sessions at once
    should pass unique keys.

    Every transition is synchronous: callers in async hooks must finish the
    check-and-clear before awaiting anything.
    """

    def __init__(
        self,
        stale_after: float = STALE_AFTER_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        self.stale_after = stale_after
        self._clock = clock
        self.compaction_just_happened = False
        self.last_compaction_time = 0.0
        self.compaction_count = 0
        self.saved_context: str | None = None
        self._pending: set[str] = set()

    def mark_compaction(self) -> int:
        """Record a qualifying compaction and return its number."""
        self.compaction_count += 1
        self.compaction_just_happened = True
        self.last_compaction_time = self._clock()
        return self.compaction_count

    def mark_pending(self, session_key: str | None) -> str:
        """Flag a session as owing recovery. Returns the key actually used."""
        key = session_key or DEFAULT_SESSION_KEY
        self._pending.add(key)
        return key

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def is_pending(self, session_key: str | None) -> bool:
        return (session_key or DEFAULT_SESSION_KEY) in self._pending

    def check_and_clear(self, session_key: str | None) -> bool:
        """Consume recovery state for a session.

        Returns True if the session should receive recovery context: it was
        pending, or a compaction happened within ``stale_after`` seconds.
        On True, the session's pending entry and the process-wide flag are
        both cleared.
        """
        key = session_key or DEFAULT_SESSION_KEY

        if key not in self._pending:
            elapsed = self._clock() - self.last_compaction_time
            if not self.compaction_just_happened or elapsed > self.stale_after:
                return False

        self._pending.discard(key)
        self.compaction_just_happened = False
        return True

