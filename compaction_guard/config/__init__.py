"""Configuration for compaction-guard."""

from compaction_guard.config.loader import load_config, resolve_context_path
from compaction_guard.config.schema import GuardConfig

__all__ = ["GuardConfig", "load_config", "resolve_context_path"]
