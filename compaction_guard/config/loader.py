"""Configuration loading and snapshot path resolution."""

import json
import re
from pathlib import Path
from typing import Any

from loguru import logger
from pydantic import ValidationError

from compaction_guard.config.schema import DEFAULT_CONTEXT_FILE, GuardConfig


def camel_to_snake(name: str) -> str:
    """Convert camelCase to snake_case."""
    return re.sub(r"(?<!^)(?=[A-Z])", "_", name).lower()


def convert_keys(data: Any) -> Any:
    """Recursively convert dict keys from camelCase to snake_case."""
    if isinstance(data, dict):
        return {camel_to_snake(k): convert_keys(v) for k, v in data.items()}
    if isinstance(data, list):
        return [convert_keys(item) for item in data]
    return data


def load_config(source: dict[str, Any] | str | Path | None = None) -> GuardConfig:
    """Load configuration from the host's plugin config or a JSON file.

    Args:
        source: Plugin config dict (camelCase or snake_case keys), a path to
            a JSON file, or None for defaults plus environment.

    Returns:
        A validated GuardConfig. Invalid input logs a warning and yields
        the defaults.
    """
    data: Any = {}

    if isinstance(source, (str, Path)):
        path = Path(source).expanduser()
        if path.exists():
            try:
                data = json.loads(path.read_text(encoding="utf-8"))
            except (OSError, json.JSONDecodeError) as e:
                logger.warning(f"[compaction-guard] Failed to read config {path}: {e}")
                data = {}
        else:
            logger.debug(f"[compaction-guard] Config file {path} not found, using defaults")
    elif source is not None:
        data = source

    if not isinstance(data, dict):
        logger.warning("[compaction-guard] Plugin config is not an object, using defaults")
        data = {}

    try:
        return GuardConfig(**convert_keys(data))
    except (ValidationError, TypeError) as e:
        logger.warning(f"[compaction-guard] Invalid config, using defaults: {e}")
        # Bypass settings sources: the bad value may come from the environment
        return GuardConfig.model_construct()


def resolve_context_path(config: GuardConfig) -> Path:
    """Resolve where the context snapshot lives.

    An explicit ``context_file`` wins: ``~/`` paths expand against the home
    directory, absolute paths are used as-is, anything else is relative to
    the workspace. Without one, ``<workspace>/memory/compaction-context.md``.
    """
    workspace = config.workspace_path

    if not config.context_file:
        return workspace / DEFAULT_CONTEXT_FILE

    if config.context_file.startswith("~/"):
        return Path.home() / config.context_file[2:]

    path = Path(config.context_file)
    if path.is_absolute():
        return path

    return workspace / path
