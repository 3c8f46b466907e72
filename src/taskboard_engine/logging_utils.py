"""Configure loguru output and format engine objects for log lines."""

from __future__ import annotations

import json
import sys
from typing import Any

from loguru import logger

from .constants import DEFAULT_LOG_LEVEL

LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{module}</cyan>:<cyan>{line}</cyan>\n"
    "{message}"
)


def configure_logging(level: str = DEFAULT_LOG_LEVEL, sink: Any = None) -> int:
    """Configure the loguru logger with the specified level.

    Args:
        level: Minimum level name (case-insensitive).
        sink: Destination for log records; defaults to stderr.

    Returns:
        The loguru handler id of the installed sink.
    """
    logger.remove()
    return logger.add(
        sink if sink is not None else sys.stderr,
        level=level.upper(),
        format=LOG_FORMAT,
    )


def summarize_task(task: Any) -> dict[str, Any]:
    """Render a compact, JSON-friendly summary of a task for logging.

    Args:
        task: Task instance (or None).

    Returns:
        A dictionary with the placement and dependency fields of the task.
    """
    if task is None:
        return {"task": None}
    d: dict[str, Any] = {"task": getattr(task, "id", None)}
    number = getattr(task, "task_number", None)
    if number:
        d["number"] = number
    for attr in ("column_id", "position", "parent_id"):
        d[attr] = getattr(task, attr, None)
    for attr in ("status", "dependency_status"):
        value = getattr(task, attr, None)
        d[attr] = getattr(value, "value", value)
    sub_tasks = getattr(task, "sub_tasks", None) or []
    if sub_tasks:
        d["sub_tasks"] = f"{sum(1 for s in sub_tasks if s.is_completed)}/{len(sub_tasks)}"
    return d


def pretty(obj: Any, *, indent: int = 2) -> str:
    """Serialize an object as JSON for readable logs.

    Args:
        obj: Object to serialize.
        indent: Indentation level for JSON output.

    Returns:
        A JSON string when possible; otherwise `str(obj)`.
    """
    try:
        return json.dumps(obj, indent=indent, default=str)
    except (TypeError, ValueError):
        return str(obj)
