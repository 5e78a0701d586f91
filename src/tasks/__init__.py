"""Incremental build tasks: material, IBL and mesh compilation."""

from filabuild.tasks.bindings import IBL, MATERIAL, MESH, TaskBinding, create_task_config
from filabuild.tasks.engine import IncrementalTaskEngine
from filabuild.tasks.errors import MissingToolError, TaskError
from filabuild.tasks.models import BuildSnapshot, TaskConfig, TaskOutcome
from filabuild.tasks.state_store import JsonSnapshotStore

__all__ = [
    "IBL",
    "MATERIAL",
    "MESH",
    "BuildSnapshot",
    "IncrementalTaskEngine",
    "JsonSnapshotStore",
    "MissingToolError",
    "TaskBinding",
    "TaskConfig",
    "TaskError",
    "TaskOutcome",
    "create_task_config",
]
