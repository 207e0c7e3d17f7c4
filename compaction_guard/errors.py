"""Exceptions raised by compaction-guard."""


class CompactionGuardError(Exception):
    """Base class for compaction-guard errors."""


class ContextStoreError(CompactionGuardError):
    """Raised when the context snapshot cannot be written."""
