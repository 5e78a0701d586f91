# src/tasks/state_store.py — v1
"""JSON file-based snapshot store.

Stores one BuildSnapshot per task name as an individual JSON file under
the state root. The engine itself never touches this store; callers load
before a run and save after it.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path

from pydantic import ValidationError

from filabuild.tasks.errors import SnapshotError
from filabuild.tasks.models import BuildSnapshot

logger = logging.getLogger(__name__)


class JsonSnapshotStore:
    """File-based snapshot store using JSON files."""

    def __init__(self, state_root: Path | str) -> None:
        self._root = Path(state_root).expanduser()

    @property
    def root(self) -> Path:
        return self._root

    def load(self, task_name: str) -> BuildSnapshot | None:
        """Load the snapshot of a task.

        A missing file means no prior state. A corrupt file is logged and
        also treated as no prior state, which forces a full rebuild.
        """
        try:
            return self.load_strict(task_name)
        except SnapshotError as exc:
            logger.warning("%s; falling back to a full rebuild", exc)
            return None

    def load_strict(self, task_name: str) -> BuildSnapshot | None:
        """Like load(), but raise SnapshotError on a corrupt file."""
        path = self._entry_path(task_name)
        if not path.exists():
            return None
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
            return BuildSnapshot.model_validate(data)
        except (json.JSONDecodeError, ValidationError, OSError) as e:
            raise SnapshotError(f"Corrupt build state {path}: {e}") from e

    def save(self, snapshot: BuildSnapshot) -> Path:
        """Store a snapshot, replacing the previous one atomically."""
        path = self._entry_path(snapshot.task_name)
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.with_suffix(".json.tmp")
        tmp.write_text(snapshot.model_dump_json(indent=2), encoding="utf-8")
        os.replace(tmp, path)
        logger.debug("Saved build state for '%s' to %s", snapshot.task_name, path)
        return path

    def clear(self, task_name: str) -> bool:
        """Forget the state of a task. Returns True if state existed."""
        path = self._entry_path(task_name)
        if not path.exists():
            return False
        path.unlink()
        return True

    def _entry_path(self, task_name: str) -> Path:
        """Return file path for a task name."""
        safe_key = task_name.replace("/", "_").replace("\\", "_")
        return self._root / f"{safe_key}.json"
