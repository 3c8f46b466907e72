"""Load optional engine configuration from `.taskboard/config.yaml`."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

from loguru import logger

from .board.model import EnergyLevel, TaskPriority, TaskStatus
from .constants import (
    CONFIG_FILE,
    DEFAULT_ESTIMATED_DURATION,
    DEFAULT_LOG_LEVEL,
    MIN_ESTIMATED_DURATION,
    STATE_DIR_NAME,
)
from .io_utils import _load_data_with_error
from .logging_utils import configure_logging

VALID_LOG_LEVELS = {"TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"}


def load_engine_config(project_dir: Path) -> tuple[dict[str, Any], str | None]:
    """Load the optional engine config file.

    Args:
        project_dir: Directory holding the `.taskboard/` state directory.

    Returns:
        A tuple of `(config, error_message)`. If the file is missing, returns `({}, None)`.
    """
    project_dir = project_dir.resolve()
    path = project_dir / STATE_DIR_NAME / CONFIG_FILE
    if not path.exists():
        return {}, None
    data, err = _load_data_with_error(path, {})
    if err:
        return {}, err
    return data, None


def _get_nested(config: dict[str, Any], *keys: str) -> Any:
    cur: Any = config
    for key in keys:
        if not isinstance(cur, dict):
            return None
        cur = cur.get(key)
    return cur


def get_validation_config(config: dict[str, Any]) -> dict[str, Any]:
    """Extract the validation configuration block.

    Args:
        config: Engine configuration dictionary.

    Returns:
        The `validation` config mapping, or an empty dict if not present.
    """
    raw = _get_nested(config, "validation")
    return raw if isinstance(raw, dict) else {}


def get_logging_level(config: dict[str, Any]) -> str:
    """Extract the log level from the engine config.

    Args:
        config: Engine configuration dictionary.

    Returns:
        An upper-cased loguru level name; the default level if unset or invalid.
    """
    raw = _get_nested(config, "logging", "level")
    if isinstance(raw, str) and raw.upper() in VALID_LOG_LEVELS:
        return raw.upper()
    return DEFAULT_LOG_LEVEL


def _int_setting(block: dict[str, Any], key: str, default: int) -> int:
    raw = block.get(key)
    if raw is None:
        return default
    if isinstance(raw, bool) or not isinstance(raw, (int, float)):
        logger.warning("Ignoring non-numeric config value {}={!r}", key, raw)
        return default
    return int(raw)


@dataclass(frozen=True)
class EngineSettings:
    """Resolved settings consumed by the validator and the coordinator."""

    default_priority: str = "medium"
    default_energy_level: str = "m"
    default_status: str = "not_started"
    default_estimated_duration: int = DEFAULT_ESTIMATED_DURATION
    min_estimated_duration: int = MIN_ESTIMATED_DURATION
    log_level: str = DEFAULT_LOG_LEVEL

    @classmethod
    def from_config(cls, config: dict[str, Any]) -> "EngineSettings":
        """Build settings from a raw config mapping, falling back per key."""
        block = get_validation_config(config)

        def _enum_setting(key: str, enum_cls: Any, default: str) -> str:
            raw = block.get(key)
            if raw is None:
                return default
            value = str(raw).strip().lower()
            if value not in {e.value for e in enum_cls}:
                logger.warning("Ignoring invalid config value {}={!r}", key, raw)
                return default
            return value

        min_duration = max(1, _int_setting(block, "min_estimated_duration", MIN_ESTIMATED_DURATION))
        default_duration = max(
            min_duration,
            _int_setting(block, "default_estimated_duration", DEFAULT_ESTIMATED_DURATION),
        )
        return cls(
            default_priority=_enum_setting("default_priority", TaskPriority, "medium"),
            default_energy_level=_enum_setting("default_energy_level", EnergyLevel, "m"),
            default_status=_enum_setting("default_status", TaskStatus, "not_started"),
            default_estimated_duration=default_duration,
            min_estimated_duration=min_duration,
            log_level=get_logging_level(config),
        )

    @classmethod
    def load(cls, project_dir: Path) -> "EngineSettings":
        """Load settings from *project_dir*; a broken file yields defaults."""
        config, err = load_engine_config(project_dir)
        if err:
            logger.warning("Failed to load engine config, using defaults: {}", err)
        return cls.from_config(config)


def load_settings(project_dir: Path, *, sink: Any = None) -> EngineSettings:
    """Resolve settings for *project_dir* and apply its logging level.

    This is the usual setup call for an application embedding the engine:
    the returned settings are meant to be passed to ``BoardCoordinator``.
    """
    settings = EngineSettings.load(project_dir)
    configure_logging(settings.log_level, sink=sink)
    logger.debug("Engine settings: {}", settings)
    return settings
