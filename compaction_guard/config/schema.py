"""Configuration schema using Pydantic."""

import os
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Workspace variable exported by the host runtime
HOST_WORKSPACE_ENV = "OPENCLAW_WORKSPACE"
DEFAULT_WORKSPACE = "~/.openclaw/workspace"
DEFAULT_CONTEXT_FILE = Path("memory") / "compaction-context.md"


class GuardConfig(BaseSettings):
    """Plugin configuration for compaction-guard."""

    model_config = SettingsConfigDict(
        env_prefix="COMPACTION_GUARD_",
        extra="ignore",
    )

    context_file: str | None = None  # Snapshot location, see resolve_context_path()
    recovery_prompt: bool = True  # False: still consume recovery state, inject nothing
    min_messages_for_snapshot: int = Field(default=10, ge=0)
    workspace: str | None = None  # Falls back to $OPENCLAW_WORKSPACE, then DEFAULT_WORKSPACE

    @property
    def workspace_path(self) -> Path:
        """Get expanded workspace path."""
        root = self.workspace or os.environ.get(HOST_WORKSPACE_ENV) or DEFAULT_WORKSPACE
        return Path(root).expanduser()
