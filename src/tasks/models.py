# src/tasks/models.py — v1
"""Build task domain models: configuration, fingerprints, snapshots, outcomes.

Paths are stored as strings so snapshots serialize to plain JSON.
"""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from types import MappingProxyType
from typing import Any, Literal, Mapping

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator

TaskKind = Literal["material", "ibl", "mesh"]

FailureReason = Literal[
    "tool_failed",
    "tool_not_started",
    "missing_output",
    "filesystem_error",
    "output_conflict",
]


# === CONFIGURATION ===


class TaskConfig(BaseModel):
    """Immutable per-task configuration, set once at construction."""

    model_config = ConfigDict(frozen=True)

    name: str
    kind: TaskKind
    tool_path: Path
    input_root: Path
    output_dir: Path
    input_pattern: str = "*"
    recursive: bool = False
    tool_options: Mapping[str, Any] = Field(default_factory=dict, validate_default=True)

    @field_validator("tool_options", mode="after")
    @classmethod
    def _freeze_tool_options(cls, v: Mapping[str, Any]) -> Mapping[str, Any]:
        return MappingProxyType(dict(v))

    @field_serializer("tool_options")
    def _dump_tool_options(self, v: Mapping[str, Any]) -> dict[str, Any]:
        return dict(v)


# === CHANGE DETECTION ===


class InputFingerprint(BaseModel):
    """Content signature of a single input file."""

    path: str
    content_hash: str
    size_bytes: int
    mtime_ns: int

    def matches(self, other: InputFingerprint | None) -> bool:
        """True when both fingerprints describe the same file content.

        Modification time is informational only: a touched file with
        identical bytes is not rebuilt.
        """
        if other is None:
            return False
        return (
            self.content_hash == other.content_hash
            and self.size_bytes == other.size_bytes
        )


class SnapshotEntry(BaseModel):
    """One input recorded in a snapshot, with the outputs it produced."""

    fingerprint: InputFingerprint
    outputs: list[str] = Field(default_factory=list)


class BuildSnapshot(BaseModel):
    """Inputs, fingerprints and outputs recorded by the previous run."""

    task_name: str
    task_kind: TaskKind
    output_dir: str
    entries: dict[str, SnapshotEntry] = Field(default_factory=dict)
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )

    def input_paths(self) -> set[str]:
        """Return the set of recorded input paths."""
        return set(self.entries)


class DeltaResult(BaseModel):
    """Difference between the current input set and the previous snapshot."""

    changed: list[InputFingerprint] = Field(default_factory=list)
    removed: list[str] = Field(default_factory=list)
    unchanged: list[str] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.changed and not self.removed


# === PROCESS EXECUTION ===


class ProcessResult(BaseModel):
    """Result of one external tool invocation."""

    executable: str
    args: list[str]
    exit_code: int | None = None
    stdout_lines: list[str] = Field(default_factory=list)
    stderr_lines: list[str] = Field(default_factory=list)
    start_error: str | None = None
    timed_out: bool = False
    duration_ms: int = 0

    @property
    def ok(self) -> bool:
        return self.start_error is None and self.exit_code == 0


# === OUTCOME ===


class InputFailure(BaseModel):
    """A single input that could not be processed."""

    input_path: str
    reason: FailureReason
    message: str
    stderr: list[str] = Field(default_factory=list)


class TaskOutcome(BaseModel):
    """Summary of one task run."""

    task_name: str
    full_rebuild: bool = False
    processed: list[str] = Field(default_factory=list)
    skipped: list[str] = Field(default_factory=list)
    removed: list[str] = Field(default_factory=list)
    deleted_outputs: list[str] = Field(default_factory=list)
    failures: list[InputFailure] = Field(default_factory=list)
    duration_seconds: float = 0.0

    @property
    def success(self) -> bool:
        return not self.failures
