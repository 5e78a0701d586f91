# src/tasks/errors.py — v1
"""Exception hierarchy for build tasks.

Only MissingToolError and InputRootError abort a task run. Everything that
goes wrong for a single input is converted into an InputFailure by the
engine and the batch keeps going.
"""

from __future__ import annotations

from pathlib import Path


class TaskError(Exception):
    """Base class for all build task errors."""


class MissingToolError(TaskError):
    """Raised when the configured external tool does not exist."""

    def __init__(self, task_name: str, tool_path: Path) -> None:
        self.task_name = task_name
        self.tool_path = tool_path
        super().__init__(
            f"Task '{task_name}': no tool binary found at {tool_path}. "
            "Ensure Filament has been built/installed before building assets."
        )


class InputRootError(TaskError):
    """Raised when the declared input file or directory does not exist."""


class SnapshotError(TaskError):
    """Raised when a persisted build snapshot cannot be decoded."""


class ToolInvocationError(TaskError):
    """An external tool failed for one input."""

    def __init__(
        self,
        message: str,
        reason: str = "tool_failed",
        stderr: list[str] | None = None,
    ) -> None:
        self.reason = reason
        self.stderr = list(stderr or [])
        super().__init__(message)
