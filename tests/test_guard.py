"""Tests for the compaction lifecycle hooks."""

import asyncio
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from compaction_guard.agent.guard import (
    CompactionGuard,
    build_recovery_content,
    register,
)
from compaction_guard.agent.state import STALE_AFTER_SECONDS, RecoveryTracker
from compaction_guard.agent.store import ContextStore
from compaction_guard.agent.summarizer import extract_task_context
from compaction_guard.bus.events import AgentStartResult
from compaction_guard.config.schema import GuardConfig
from compaction_guard.errors import ContextStoreError
from compaction_guard.prompts.recovery import RECOVERY_PROMPT, SAVED_CONTEXT_HEADING


class FakeClock:
    def __init__(self, now: float = 5_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


class FakeHost:
    """Host API stand-in that records hook subscriptions."""

    def __init__(self, plugin_config=None):
        self.plugin_config = plugin_config
        self.handlers = {}

    def on(self, name, handler):
        self.handlers[name] = handler


def _make_guard(tmp_path, clock=None, **config):
    config.setdefault("workspace", str(tmp_path))
    guard = CompactionGuard(
        config=GuardConfig(**config),
        tracker=RecoveryTracker(clock=clock or FakeClock()),
    )
    return guard


def _history(n_pairs=5):
    """Task request, task-describing reply, then filler pairs that yield no passages."""
    messages = [
        {"role": "user", "content": "Fix the login bug"},
        {"role": "assistant", "content": "I'm investigating the login bug now"},
    ]
    for i in range(n_pairs - 1):
        messages.append({"role": "user", "content": [{"type": "text", "text": f"ok {i}"}]})
        messages.append({"role": "assistant", "content": f"noted {i}"})
    return messages


def _before(messages, count=None):
    return {"messageCount": len(messages) if count is None else count, "messages": messages}


# ── before_compaction ───────────────────────────────────────────


class TestBeforeCompaction:
    @pytest.mark.asyncio
    async def test_below_gate_changes_nothing(self, tmp_path):
        guard = _make_guard(tmp_path)
        await guard.before_compaction(_before(_history(), count=5))
        assert not guard.context_path.exists()
        assert guard.tracker.compaction_count == 0
        assert guard.tracker.compaction_just_happened is False

    def test_history_digest_keeps_both_lines(self):
        messages = _history()
        assert len(messages) == 10
        assert extract_task_context(messages) == (
            "User: Fix the login bug\n\n"
            "Assistant: I'm investigating the login bug now"
        )

    @pytest.mark.asyncio
    async def test_saves_digest(self, tmp_path):
        guard = _make_guard(tmp_path)
        await guard.before_compaction(_before(_history()))
        saved = guard.store.load()
        assert "User: Fix the login bug" in saved
        assert "Assistant: I'm investigating the login bug now" in saved
        assert "*Compaction #1*" in saved
        assert guard.tracker.saved_context.startswith("User: Fix the login bug")

    @pytest.mark.asyncio
    async def test_default_path_under_workspace(self, tmp_path):
        guard = _make_guard(tmp_path)
        await guard.before_compaction(_before(_history()))
        assert guard.context_path == tmp_path / "memory" / "compaction-context.md"
        assert guard.context_path.exists()

    @pytest.mark.asyncio
    async def test_counter_matches_qualifying_compactions(self, tmp_path):
        guard = _make_guard(tmp_path)
        await guard.before_compaction(_before(_history()))
        await guard.before_compaction(_before(_history(), count=3))  # below gate
        await guard.before_compaction(_before(_history()))
        assert guard.tracker.compaction_count == 2
        assert "*Compaction #2*" in guard.store.load()

    @pytest.mark.asyncio
    async def test_missing_messages_still_marks(self, tmp_path):
        guard = _make_guard(tmp_path)
        await guard.before_compaction({"messageCount": 50})
        assert guard.tracker.compaction_count == 1
        assert guard.tracker.compaction_just_happened is True
        assert not guard.context_path.exists()

    @pytest.mark.asyncio
    async def test_nothing_relevant_keeps_previous_snapshot(self, tmp_path):
        guard = _make_guard(tmp_path)
        await guard.before_compaction(_before(_history()))
        chatter = [{"role": "assistant", "content": "Sure."}] * 12
        await guard.before_compaction(_before(chatter))
        assert "*Compaction #1*" in guard.store.load()
        assert guard.tracker.compaction_count == 2

    @pytest.mark.asyncio
    async def test_save_failure_is_not_fatal(self, tmp_path):
        store = MagicMock(spec=ContextStore)
        store.path = tmp_path / "ctx.md"
        store.save.side_effect = ContextStoreError("read-only file system")
        guard = CompactionGuard(
            config=GuardConfig(workspace=str(tmp_path)),
            tracker=RecoveryTracker(clock=FakeClock()),
            store=store,
        )
        await guard.before_compaction(_before(_history()))
        assert guard.tracker.compaction_count == 1
        assert guard.tracker.saved_context is None

    @pytest.mark.asyncio
    async def test_custom_gate(self, tmp_path):
        guard = _make_guard(tmp_path, min_messages_for_snapshot=2)
        messages = _history(1)
        await guard.before_compaction(_before(messages))
        assert guard.context_path.exists()


# ── after_compaction / before_agent_start ───────────────────────


class TestRecoveryInjection:
    @pytest.mark.asyncio
    async def test_full_cycle(self, tmp_path):
        guard = _make_guard(tmp_path)
        await guard.before_compaction(_before(_history()))
        await guard.after_compaction({"sessionKey": "s1"})

        result = await guard.before_agent_start({"sessionKey": "s1"})

        assert isinstance(result, AgentStartResult)
        assert "COMPACTION RECOVERY" in result.prepend_context
        assert SAVED_CONTEXT_HEADING in result.prepend_context
        assert "User: Fix the login bug" in result.prepend_context
        assert "Assistant: I'm investigating the login bug now" in result.prepend_context

    @pytest.mark.asyncio
    async def test_second_start_gets_nothing(self, tmp_path):
        guard = _make_guard(tmp_path)
        await guard.before_compaction(_before(_history()))
        await guard.after_compaction({"sessionKey": "s1"})
        assert await guard.before_agent_start({"sessionKey": "s1"}) is not None
        assert await guard.before_agent_start({"sessionKey": "s1"}) is None

    @pytest.mark.asyncio
    async def test_pending_without_snapshot_injects_prompt_only(self, tmp_path):
        guard = _make_guard(tmp_path)
        await guard.after_compaction({"sessionKey": "s1"})
        result = await guard.before_agent_start({"sessionKey": "s1"})
        assert result.prepend_context == RECOVERY_PROMPT

    @pytest.mark.asyncio
    async def test_missing_session_key_uses_default(self, tmp_path):
        guard = _make_guard(tmp_path)
        await guard.after_compaction({})
        assert guard.tracker.is_pending("default")
        assert await guard.before_agent_start(SimpleNamespace()) is not None

    @pytest.mark.asyncio
    async def test_recovery_prompt_disabled_still_consumes(self, tmp_path):
        guard = _make_guard(tmp_path, recovery_prompt=False)
        await guard.before_compaction(_before(_history()))
        await guard.after_compaction({"sessionKey": "s1"})
        assert await guard.before_agent_start({"sessionKey": "s1"}) is None
        assert not guard.tracker.is_pending("s1")
        assert guard.tracker.compaction_just_happened is False

    @pytest.mark.asyncio
    async def test_unseen_session_within_window(self, tmp_path):
        clock = FakeClock()
        guard = _make_guard(tmp_path, clock=clock)
        await guard.before_compaction(_before(_history()))
        clock.now += 30
        assert await guard.before_agent_start({"sessionKey": "other"}) is not None

    @pytest.mark.asyncio
    async def test_unseen_session_after_window(self, tmp_path):
        clock = FakeClock()
        guard = _make_guard(tmp_path, clock=clock)
        await guard.before_compaction(_before(_history()))
        clock.now += STALE_AFTER_SECONDS + 1
        assert await guard.before_agent_start({}) is None

    @pytest.mark.asyncio
    async def test_below_gate_then_start_gets_nothing(self, tmp_path):
        guard = _make_guard(tmp_path)
        await guard.before_compaction(_before(_history(), count=5))
        assert await guard.before_agent_start({"sessionKey": "s1"}) is None
        assert await guard.before_agent_start({}) is None

    @pytest.mark.asyncio
    async def test_never_compacted_gets_nothing(self, tmp_path):
        guard = _make_guard(tmp_path)
        assert await guard.before_agent_start({"sessionKey": "s1"}) is None


# ── host wiring ─────────────────────────────────────────────────


class TestRegister:
    def test_subscribes_three_hooks(self, tmp_path):
        host = FakeHost()
        guard = _make_guard(tmp_path).register(host)
        assert set(host.handlers) == {
            "before_compaction",
            "after_compaction",
            "before_agent_start",
        }
        assert host.handlers["before_compaction"] == guard.before_compaction

    @pytest.mark.asyncio
    async def test_start_handler_returns_wire_shape(self, tmp_path):
        host = FakeHost()
        _make_guard(tmp_path).register(host)
        await host.handlers["after_compaction"]({"sessionKey": "s1"})
        result = await host.handlers["before_agent_start"]({"sessionKey": "s1"})
        assert set(result) == {"prependContext"}
        assert await host.handlers["before_agent_start"]({"sessionKey": "s1"}) is None

    def test_module_register_reads_plugin_config(self, tmp_path):
        host = FakeHost(plugin_config={
            "contextFile": str(tmp_path / "snap.md"),
            "recoveryPrompt": False,
            "minMessagesForSnapshot": 3,
        })
        guard = register(host)
        assert guard.context_path == tmp_path / "snap.md"
        assert guard.inject_recovery is False
        assert guard.min_messages == 3
        assert len(host.handlers) == 3


class TestBuildRecoveryContent:
    def test_without_saved_context(self):
        assert build_recovery_content(None) == RECOVERY_PROMPT

    def test_with_saved_context(self):
        content = build_recovery_content("# Snapshot")
        assert content == f"{RECOVERY_PROMPT}\n\n---\n\n**Saved Context:**\n\n# Snapshot"


class TestConcurrentSessions:
    @pytest.mark.asyncio
    async def test_interleaved_sessions_each_served_once(self, tmp_path):
        guard = _make_guard(tmp_path)
        await guard.before_compaction(_before(_history()))
        await asyncio.gather(
            guard.after_compaction({"sessionKey": "a"}),
            guard.after_compaction({"sessionKey": "b"}),
        )

        results = await asyncio.gather(
            guard.before_agent_start({"sessionKey": "a"}),
            guard.before_agent_start({"sessionKey": "b"}),
            guard.before_agent_start({"sessionKey": "a"}),
        )

        assert results[0] is not None
        assert results[1] is not None
        assert results[2] is None


# ── host payload quirks ─────────────────────────────────────────


class TestHostPayloads:
    @pytest.mark.asyncio
    async def test_float_message_count_qualifies(self, tmp_path):
        guard = _make_guard(tmp_path)
        await guard.before_compaction({"messageCount": 10.0, "messages": _history()})
        assert guard.tracker.compaction_count == 1
        assert guard.context_path.exists()

    @pytest.mark.asyncio
    async def test_numeric_session_key_not_shared_with_default(self, tmp_path):
        guard = _make_guard(tmp_path)
        await guard.after_compaction({"sessionKey": 123})
        assert guard.tracker.is_pending("123")
        assert not guard.tracker.is_pending("default")
        assert await guard.before_agent_start({"sessionKey": 123}) is not None

    @pytest.mark.asyncio
    async def test_pending_count_tracks_sessions(self, tmp_path):
        guard = _make_guard(tmp_path)
        await guard.after_compaction({"sessionKey": "a"})
        await guard.after_compaction({"sessionKey": "b"})
        await guard.after_compaction({"sessionKey": "a"})
        assert guard.tracker.pending_count == 2
        await guard.before_agent_start({"sessionKey": "a"})
        assert guard.tracker.pending_count == 1

    def test_bad_env_does_not_break_registration(self, monkeypatch):
        monkeypatch.setenv("COMPACTION_GUARD_RECOVERY_PROMPT", "maybe")
        host = FakeHost(plugin_config={})
        guard = register(host)
        assert guard.inject_recovery is True
        assert guard.min_messages == 10
        assert len(host.handlers) == 3
