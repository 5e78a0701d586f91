# src/tasks/engine.py — v1
"""Incremental task engine — one driver for every task binding.

Walks the delta between the current inputs and the previous snapshot:

  - no previous snapshot: delete every output matching the binding's
    clean pattern, then treat every input as changed
  - changed inputs: map outputs, run the tool(s) into a private staging
    directory, move outputs into place only when every run succeeded
  - removed inputs: delete the mapped (and recorded) outputs, no tool run,
    except outputs that a current input owns
  - unchanged inputs: skipped

Two current inputs never share an output: the first one to claim a path
keeps it, the others fail with an output conflict.

A failing input never aborts the others. Failed inputs keep their previous
snapshot entry, so they are retried on the next run and their outputs stay
deletable.
"""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
import time
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Callable

from filabuild.logging.context import set_input_context, set_task_context
from filabuild.tasks.bindings import TaskBinding, get_binding
from filabuild.tasks.errors import MissingToolError, ToolInvocationError
from filabuild.tasks.models import (
    BuildSnapshot,
    InputFailure,
    InputFingerprint,
    ProcessResult,
    SnapshotEntry,
    TaskConfig,
    TaskOutcome,
)
from filabuild.tasks.process_runner import LogSink, run_process
from filabuild.tasks.scanner import InputScanner

logger = logging.getLogger(__name__)

ProcessRunner = Callable[..., ProcessResult]

STAGING_PREFIX = ".staging-"


class IncrementalTaskEngine:
    """Run a TaskConfig against the previous snapshot.

    Args:
        max_workers: Number of inputs processed concurrently. 1 keeps the
            run strictly sequential.
        tool_timeout: Seconds before a hung tool is killed. None waits forever.
        log_sink: Receives tool output lines. Defaults to the tool logger.
        runner: Process runner, replaceable for tests.
    """

    def __init__(
        self,
        max_workers: int = 1,
        tool_timeout: float | None = None,
        log_sink: LogSink | None = None,
        runner: ProcessRunner = run_process,
    ) -> None:
        if max_workers < 1:
            raise ValueError("max_workers must be >= 1")
        self._max_workers = max_workers
        self._tool_timeout = tool_timeout
        self._log_sink = log_sink
        self._runner = runner

    def run(
        self,
        config: TaskConfig,
        previous: BuildSnapshot | None,
    ) -> tuple[BuildSnapshot, TaskOutcome]:
        """Execute one task run.

        Returns:
            The snapshot to persist for the next run and the run outcome.

        Raises:
            MissingToolError: If the tool binary does not exist. Raised
                before anything on disk is touched.
            InputRootError: If the input root does not exist.
        """
        t0 = time.perf_counter()
        binding = get_binding(config.kind)
        set_task_context(config.name)

        if not config.tool_path.is_file():
            raise MissingToolError(config.name, config.tool_path)

        output_dir = config.output_dir.resolve()
        previous = self._usable_snapshot(config, output_dir, previous)
        outcome = TaskOutcome(task_name=config.name, full_rebuild=previous is None)

        delta, unreadable = InputScanner(config).compute_delta(previous)

        output_dir.mkdir(parents=True, exist_ok=True)
        _sweep_staging(output_dir)
        if previous is None:
            logger.info(
                "Task '%s': no previous state, full rebuild of %s",
                config.name, output_dir,
            )
            outcome.deleted_outputs.extend(
                _clean_outputs(output_dir, binding.clean_pattern)
            )

        old_entries = previous.entries if previous is not None else {}
        entries: dict[str, SnapshotEntry] = {
            path: old_entries[path] for path in delta.unchanged
        }
        outcome.skipped.extend(delta.unchanged)

        for path, message in sorted(unreadable.items()):
            outcome.failures.append(InputFailure(
                input_path=path, reason="filesystem_error", message=message,
            ))
            if path in old_entries:
                entries[path] = old_entries[path]

        claimed, conflicts = _claim_outputs(binding, output_dir, entries, delta.changed)
        for failure in conflicts:
            outcome.failures.append(failure)
            if failure.input_path in old_entries:
                entries[failure.input_path] = old_entries[failure.input_path]

        for fp, result in self._process_all(binding, config, output_dir, claimed):
            if isinstance(result, InputFailure):
                outcome.failures.append(result)
                if fp.path in old_entries:
                    entries[fp.path] = old_entries[fp.path]
            else:
                entries[fp.path] = SnapshotEntry(
                    fingerprint=fp, outputs=[str(p) for p in result],
                )
                outcome.processed.append(fp.path)

        owned = {out for entry in entries.values() for out in entry.outputs}
        for path in delta.removed:
            try:
                deleted = self._remove_outputs(
                    binding, output_dir, path, old_entries[path], owned,
                )
            except OSError as exc:
                logger.error("Cannot delete outputs of removed input %s: %s", path, exc)
                outcome.failures.append(InputFailure(
                    input_path=path, reason="filesystem_error", message=str(exc),
                ))
                entries[path] = old_entries[path]
                continue
            outcome.removed.append(path)
            outcome.deleted_outputs.extend(deleted)

        snapshot = BuildSnapshot(
            task_name=config.name,
            task_kind=config.kind,
            output_dir=str(output_dir),
            entries=dict(sorted(entries.items())),
        )
        outcome.duration_seconds = round(time.perf_counter() - t0, 3)

        if outcome.success:
            logger.info(
                "Task '%s' done: processed=%d, skipped=%d, removed=%d",
                config.name, len(outcome.processed),
                len(outcome.skipped), len(outcome.removed),
            )
        else:
            logger.error(
                "Task '%s' failed for %d input(s): %s",
                config.name, len(outcome.failures),
                ", ".join(f.input_path for f in outcome.failures),
            )
        return snapshot, outcome

    # --- changed inputs ---

    def _process_all(
        self,
        binding: TaskBinding,
        config: TaskConfig,
        output_dir: Path,
        changed: list[tuple[InputFingerprint, list[Path]]],
    ) -> list[tuple[InputFingerprint, list[Path] | InputFailure]]:
        """Process every changed input, sequentially or on a thread pool."""
        if self._max_workers == 1 or len(changed) < 2:
            return [
                (fp, self._process_one(binding, config, output_dir, fp, outputs))
                for fp, outputs in changed
            ]

        with ThreadPoolExecutor(
            max_workers=self._max_workers, thread_name_prefix=config.name,
        ) as pool:
            futures = [
                (fp, pool.submit(
                    self._process_one, binding, config, output_dir, fp, outputs,
                ))
                for fp, outputs in changed
            ]
            return [(fp, future.result()) for fp, future in futures]

    def _process_one(
        self,
        binding: TaskBinding,
        config: TaskConfig,
        output_dir: Path,
        fp: InputFingerprint,
        outputs: list[Path],
    ) -> list[Path] | InputFailure:
        """Compile one input. Returns its outputs, or the failure."""
        set_task_context(config.name)
        set_input_context(fp.path)
        input_path = Path(fp.path)
        logger.info("%s %s", binding.header, input_path)

        try:
            return self._compile(binding, config, output_dir, input_path, outputs)
        except ToolInvocationError as exc:
            logger.error("%s failed: %s", input_path.name, exc)
            return InputFailure(
                input_path=fp.path,
                reason=exc.reason,
                message=str(exc),
                stderr=exc.stderr,
            )
        except OSError as exc:
            logger.error("Filesystem error while processing %s: %s", input_path, exc)
            return InputFailure(
                input_path=fp.path, reason="filesystem_error", message=str(exc),
            )
        finally:
            set_input_context(None)

    def _compile(
        self,
        binding: TaskBinding,
        config: TaskConfig,
        output_dir: Path,
        input_path: Path,
        outputs: list[Path],
    ) -> list[Path]:
        staging = Path(tempfile.mkdtemp(prefix=STAGING_PREFIX, dir=output_dir))
        try:
            staged = [staging / out.relative_to(output_dir) for out in outputs]
            for args in binding.arguments(
                input_path, staging, staged, config.tool_options,
            ):
                result = self._runner(
                    config.tool_path,
                    args,
                    log_sink=self._log_sink,
                    timeout=self._tool_timeout,
                )
                _raise_for_result(result)

            missing = [p.name for p in staged if not p.exists()]
            if missing:
                raise ToolInvocationError(
                    f"{binding.tool_name} exited successfully but did not "
                    f"produce {', '.join(missing)}",
                    reason="missing_output",
                )

            for src, dst in zip(staged, outputs):
                _delete_path(dst)
                dst.parent.mkdir(parents=True, exist_ok=True)
                os.replace(src, dst)
        finally:
            shutil.rmtree(staging, ignore_errors=True)
        return outputs

    # --- removed inputs ---

    def _remove_outputs(
        self,
        binding: TaskBinding,
        output_dir: Path,
        input_path: str,
        entry: SnapshotEntry,
        owned: set[str],
    ) -> list[str]:
        """Delete the outputs of an input that no longer exists.

        Paths in owned belong to a current input (for example ball.fbx
        replacing ball.obj) and are left in place.
        """
        set_input_context(input_path)
        try:
            targets = {str(p) for p in binding.mapper(Path(input_path), output_dir)}
            targets.update(entry.outputs)
            targets -= owned
            deleted = [t for t in sorted(targets) if _delete_path(Path(t))]
            logger.info(
                "Removed input %s: deleted %d output(s)", input_path, len(deleted),
            )
            return deleted
        finally:
            set_input_context(None)

    # --- helpers ---

    @staticmethod
    def _usable_snapshot(
        config: TaskConfig,
        output_dir: Path,
        previous: BuildSnapshot | None,
    ) -> BuildSnapshot | None:
        """Discard a snapshot recorded for another task kind or output dir."""
        if previous is None:
            return None
        if previous.task_kind != config.kind or previous.output_dir != str(output_dir):
            logger.warning(
                "Task '%s': previous state was recorded for %s in %s, ignoring it",
                config.name, previous.task_kind, previous.output_dir,
            )
            return None
        return previous


def _raise_for_result(result: ProcessResult) -> None:
    """Turn a failed ProcessResult into a ToolInvocationError."""
    if result.start_error is not None:
        raise ToolInvocationError(
            result.start_error, reason="tool_not_started",
            stderr=result.stderr_lines,
        )
    if result.exit_code != 0:
        detail = "timed out" if result.timed_out else f"exited with status {result.exit_code}"
        raise ToolInvocationError(
            f"{Path(result.executable).name} {detail}",
            reason="tool_failed",
            stderr=result.stderr_lines,
        )


def _claim_outputs(
    binding: TaskBinding,
    output_dir: Path,
    entries: dict[str, SnapshotEntry],
    changed: list[InputFingerprint],
) -> tuple[list[tuple[InputFingerprint, list[Path]]], list[InputFailure]]:
    """Map changed inputs to outputs, rejecting paths another input owns.

    Carried-over entries claim their recorded outputs first, then changed
    inputs claim theirs in path order.

    Returns:
        The changed inputs that may be compiled, with their mapped outputs,
        and one output_conflict failure per rejected input.
    """
    owners: dict[str, str] = {}
    for path, entry in sorted(entries.items()):
        for out in entry.outputs:
            owners.setdefault(out, path)

    claimed: list[tuple[InputFingerprint, list[Path]]] = []
    conflicts: list[InputFailure] = []
    for fp in changed:
        outputs = binding.mapper(Path(fp.path), output_dir)
        taken = [(str(p), owners[str(p)]) for p in outputs if str(p) in owners]
        if taken:
            out, owner = taken[0]
            message = f"{Path(fp.path).name} maps to {out}, already produced by {owner}"
            logger.error("Output conflict: %s", message)
            conflicts.append(InputFailure(
                input_path=fp.path, reason="output_conflict", message=message,
            ))
            continue
        for p in outputs:
            owners[str(p)] = fp.path
        claimed.append((fp, outputs))
    return claimed, conflicts


def _sweep_staging(output_dir: Path) -> None:
    """Delete staging directories left behind by an interrupted run."""
    for path in sorted(output_dir.glob(f"{STAGING_PREFIX}*")):
        logger.warning("Removing leftover staging directory %s", path)
        _delete_path(path)


def _clean_outputs(output_dir: Path, pattern: str) -> list[str]:
    """Delete every entry of output_dir matching pattern (non-recursive)."""
    deleted: list[str] = []
    for path in sorted(output_dir.glob(pattern)):
        if _delete_path(path):
            deleted.append(str(path))
    if deleted:
        logger.info("Deleted %d stale output(s) from %s", len(deleted), output_dir)
    return deleted


def _delete_path(path: Path) -> bool:
    """Delete a file or directory tree. Returns False if nothing was there."""
    if path.is_dir() and not path.is_symlink():
        shutil.rmtree(path)
        return True
    if path.exists() or path.is_symlink():
        path.unlink()
        return True
    return False
