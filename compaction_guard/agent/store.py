"""Single-slot persistence for the compaction context snapshot."""

import os
import uuid
from datetime import datetime
from pathlib import Path

from loguru import logger

from compaction_guard.errors import ContextStoreError
from compaction_guard.prompts.recovery import render_snapshot


class ContextStore:
    """
    Reads and writes the context snapshot file.

    There is exactly one snapshot: every save replaces the previous one.
    Saves go through a temp file and ``os.replace`` so a concurrent reader
    sees either the old or the new document, never a partial one.
    """

    def __init__(self, path: Path):
        self.path = Path(path)

    def exists(self) -> bool:
        return self.path.is_file()

    def save(self, context: str, compaction_count: int, now: datetime | None = None) -> None:
        """
        Render and persist the snapshot.

        Args:
            context: Digest text produced by the summarizer.
            compaction_count: Compaction number recorded in the snapshot.
            now: Timestamp override, defaults to the current UTC time.

        Raises:
            ContextStoreError: If the file cannot be written.
        """
        content = render_snapshot(context, compaction_count, now=now)
        tmp_path = self.path.with_name(f".{self.path.name}.{uuid.uuid4().hex[:6]}.tmp")

        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(content, encoding="utf-8")
            os.replace(tmp_path, self.path)
        except (OSError, UnicodeError) as e:
            try:
                tmp_path.unlink(missing_ok=True)
            except OSError:
                pass
            raise ContextStoreError(f"Failed to write {self.path}: {e}") from e

    def load(self) -> str | None:
        """Return the snapshot text, or None if missing or unreadable."""
        try:
            return self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as e:
            logger.debug(f"[compaction-guard] Could not read {self.path}: {e}")
            return None

    def clear(self) -> None:
        """Delete the snapshot; a missing file is fine."""
        try:
            self.path.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.debug(f"[compaction-guard] Could not delete {self.path}: {e}")
