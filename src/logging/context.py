# src/logging/context.py — v1
"""Contextual logging support — attach task name and input path to log records."""

from __future__ import annotations

import contextvars
from dataclasses import dataclass
from typing import Any

# Context variables for structured logging — set per task run / per input.
_task: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "task", default=None
)
_input_path: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "input_path", default=None
)


@dataclass
class LogContext:
    """Immutable snapshot of current logging context."""

    task: str | None = None
    input_path: str | None = None

    def as_dict(self) -> dict[str, Any]:
        """Return non-None fields as dict for JSON log injection."""
        return {k: v for k, v in self.__dict__.items() if v is not None}


def get_context() -> LogContext:
    """Snapshot current context variables."""
    return LogContext(task=_task.get(), input_path=_input_path.get())


def set_task_context(task: str) -> None:
    """Set task-level context (called once per task run)."""
    _task.set(task)
    _input_path.set(None)


def set_input_context(input_path: str | None) -> None:
    """Set input-level context (called per processed input)."""
    _input_path.set(input_path)


def clear_context() -> None:
    """Reset all context variables."""
    _task.set(None)
    _input_path.set(None)
