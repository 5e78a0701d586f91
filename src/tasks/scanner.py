# src/tasks/scanner.py — v1
"""Input scanner — enumerate task inputs and diff them against a snapshot.

An input root is either a single file or a directory scanned with a glob
pattern (recursive if enabled).
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

from filabuild.tasks.errors import InputRootError
from filabuild.tasks.fingerprint import compute_fingerprint
from filabuild.tasks.models import DeltaResult

if TYPE_CHECKING:
    from filabuild.tasks.models import BuildSnapshot, TaskConfig

logger = logging.getLogger(__name__)


def list_inputs(
    input_root: Path,
    pattern: str = "*",
    recursive: bool = False,
) -> list[Path]:
    """Discover all input files under input_root.

    Args:
        input_root: Single input file or directory to scan.
        pattern: Glob pattern applied when input_root is a directory.
        recursive: If True, scan subdirectories recursively.

    Returns:
        Sorted list of resolved file paths.

    Raises:
        InputRootError: If input_root does not exist.
    """
    if input_root.is_file():
        return [input_root.resolve()]
    if not input_root.is_dir():
        msg = f"Input root does not exist: {input_root}"
        raise InputRootError(msg)

    pattern_fn = input_root.rglob if recursive else input_root.glob
    files = [p.resolve() for p in pattern_fn(pattern) if p.is_file()]
    files.sort()

    logger.debug(
        "Scanned %s: %d inputs matching %r (recursive=%s)",
        input_root, len(files), pattern, recursive,
    )
    return files


class InputScanner:
    """Compute the delta between the current inputs and a previous snapshot.

    Workflow:
        1. List all files under the task's input root
        2. Fingerprint each file
        3. Compare against the snapshot entry recorded for the same path
        4. Snapshot entries with no file on disk are reported as removed
    """

    def __init__(self, config: TaskConfig) -> None:
        self._config = config

    def compute_delta(
        self, previous: BuildSnapshot | None,
    ) -> tuple[DeltaResult, dict[str, str]]:
        """Diff the current input set against previous.

        Returns:
            The DeltaResult and a map of input path to error message for
            files that exist but could not be fingerprinted. Unreadable
            inputs are neither changed nor removed.
        """
        files = list_inputs(
            self._config.input_root,
            self._config.input_pattern,
            self._config.recursive,
        )
        recorded = previous.entries if previous is not None else {}

        delta = DeltaResult()
        unreadable: dict[str, str] = {}
        seen: set[str] = set()

        for path in files:
            key = str(path)
            seen.add(key)
            try:
                fp = compute_fingerprint(path)
            except OSError as exc:
                logger.warning("Cannot fingerprint %s: %s", path, exc)
                unreadable[key] = str(exc)
                continue

            entry = recorded.get(key)
            if entry is not None and fp.matches(entry.fingerprint):
                delta.unchanged.append(key)
            else:
                delta.changed.append(fp)

        delta.removed = sorted(p for p in recorded if p not in seen)

        logger.info(
            "Task '%s': %d changed, %d unchanged, %d removed",
            self._config.name,
            len(delta.changed), len(delta.unchanged), len(delta.removed),
        )
        return delta, unreadable
