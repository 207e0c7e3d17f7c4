"""Recovery prompt and snapshot template for compaction recovery."""

from datetime import datetime, timezone

RECOVERY_PROMPT = """## ⚠️ COMPACTION RECOVERY

Memory compaction just ran. Your previous context was compressed.

**What to do:**
1. Check `memory/compaction-context.md` for saved task state
2. Check `memory/session-context.md` for current task info
3. If mid-task, review what you were doing and continue
4. If unclear, ask: "I think compaction just ran. What were we working on?"

**Do not** pretend you know what was happening if context is unclear."""

SAVED_CONTEXT_HEADING = "**Saved Context:**"

SNAPSHOT_TEMPLATE = """# Compaction Recovery Context

*Auto-saved at: {timestamp}*
*Compaction #{count}*

## Recent Activity

{context}

---

**Note:** This context was automatically saved before memory compaction.
If you're reading this, compaction just ran. Review the above to understand
what was happening before context was compressed.
"""


def format_timestamp(now: datetime | None = None) -> str:
    """ISO-8601 UTC timestamp with millisecond precision, e.g. 2026-02-09T12:00:00.000Z."""
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    now = now.astimezone(timezone.utc)
    return now.strftime("%Y-%m-%dT%H:%M:%S.") + f"{now.microsecond // 1000:03d}Z"


def render_snapshot(context: str, compaction_count: int, now: datetime | None = None) -> str:
    """Render the digest into the Markdown snapshot document."""
    return SNAPSHOT_TEMPLATE.format(
        timestamp=format_timestamp(now),
        count=compaction_count,
        context=context,
    )
