"""Lifecycle hooks that carry task context across memory compaction."""

from pathlib import Path
from typing import Any

from loguru import logger

from compaction_guard.agent.state import DEFAULT_SESSION_KEY, RecoveryTracker
from compaction_guard.agent.store import ContextStore
from compaction_guard.agent.summarizer import extract_task_context
from compaction_guard.bus.events import (
    AfterCompactionEvent,
    AgentStartResult,
    BeforeAgentStartEvent,
    BeforeCompactionEvent,
)
from compaction_guard.config.loader import load_config, resolve_context_path
from compaction_guard.config.schema import GuardConfig
from compaction_guard.errors import ContextStoreError
from compaction_guard.prompts.recovery import RECOVERY_PROMPT, SAVED_CONTEXT_HEADING

HOOK_BEFORE_COMPACTION = "before_compaction"
HOOK_AFTER_COMPACTION = "after_compaction"
HOOK_BEFORE_AGENT_START = "before_agent_start"


def build_recovery_content(saved_context: str | None) -> str:
    """Recovery prompt, followed by the saved snapshot when there is one."""
    content = RECOVERY_PROMPT
    if saved_context:
        content += f"\n\n---\n\n{SAVED_CONTEXT_HEADING}\n\n{saved_context}"
    return content


class CompactionGuard:
    """
    Preserves task context across memory compaction.

    1. ``before_compaction``: snapshot the current task state to disk
    2. ``after_compaction``: mark the session as owing recovery
    3. ``before_agent_start``: inject the recovery prompt and snapshot once
    """

    id = "compaction-guard"
    name = "Compaction Guard"
    description = "Preserves task context across memory compaction"

    def __init__(
        self,
        config: GuardConfig | None = None,
        tracker: RecoveryTracker | None = None,
        store: ContextStore | None = None,
    ):
        self.config = config or load_config()
        self.tracker = tracker or RecoveryTracker()
        self.store = store or ContextStore(resolve_context_path(self.config))

    @classmethod
    def from_plugin_config(cls, plugin_config: dict[str, Any] | None) -> "CompactionGuard":
        return cls(config=load_config(plugin_config or {}))

    @property
    def context_path(self) -> Path:
        return self.store.path

    @property
    def min_messages(self) -> int:
        return self.config.min_messages_for_snapshot

    @property
    def inject_recovery(self) -> bool:
        return self.config.recovery_prompt

    # ── hooks ───────────────────────────────────────────────────

    async def before_compaction(self, event: Any) -> None:
        """Snapshot task context if the conversation is big enough."""
        event = BeforeCompactionEvent.from_payload(event)
        message_count = event.message_count

        if message_count < self.min_messages:
            logger.debug(
                f"[compaction-guard] Skipping snapshot "
                f"({message_count} < {self.min_messages} messages)"
            )
            return

        count = self.tracker.mark_compaction()
        logger.info(
            f"[compaction-guard] Compaction #{count} starting ({message_count} messages)"
        )

        if not event.messages:
            return

        context = extract_task_context(event.messages)
        if not context:
            return

        try:
            self.store.save(context, count)
        except ContextStoreError as e:
            logger.warning(f"[compaction-guard] Failed to save context: {e}")
            return

        self.tracker.saved_context = context
        logger.info(f"[compaction-guard] Saved task context to {self.context_path}")

    async def after_compaction(self, event: Any) -> None:
        """Mark the compacted session as owing a recovery injection."""
        event = AfterCompactionEvent.from_payload(event)
        key = self.tracker.mark_pending(event.session_key)
        logger.info(
            f"[compaction-guard] Compaction complete, marking recovery for session: {key} "
            f"({self.tracker.pending_count} pending)"
        )

    async def before_agent_start(self, event: Any) -> AgentStartResult | None:
        """Return recovery context if this session was just compacted."""
        event = BeforeAgentStartEvent.from_payload(event)

        # Consume state before touching the file system
        if not self.tracker.check_and_clear(event.session_key):
            return None

        if not self.inject_recovery:
            return None

        key = event.session_key or DEFAULT_SESSION_KEY
        logger.info(f"[compaction-guard] Injecting recovery context for session: {key}")

        return AgentStartResult(prepend_context=build_recovery_content(self.store.load()))

    # ── host wiring ─────────────────────────────────────────────

    async def _on_before_agent_start(self, event: Any) -> dict[str, str] | None:
        result = await self.before_agent_start(event)
        return result.to_dict() if result else None

    def register(self, api: Any) -> "CompactionGuard":
        """Subscribe the hooks on a host exposing ``on(event_name, handler)``."""
        logger.info(f"Compaction guard enabled (contextPath: {self.context_path})")
        api.on(HOOK_BEFORE_COMPACTION, self.before_compaction)
        api.on(HOOK_AFTER_COMPACTION, self.after_compaction)
        api.on(HOOK_BEFORE_AGENT_START, self._on_before_agent_start)
        return self


def register(api: Any) -> CompactionGuard:
    """Plugin entry point: build a guard from the host's plugin config and wire it."""
    plugin_config = getattr(api, "plugin_config", None)
    if plugin_config is None:
        plugin_config = getattr(api, "pluginConfig", None)
    return CompactionGuard.from_plugin_config(plugin_config).register(api)
