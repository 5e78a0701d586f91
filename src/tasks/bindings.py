# src/tasks/bindings.py — v1
"""Task bindings: material, IBL and mesh configurations of the engine.

A binding is a plain record (tool name, argument template, output mapper,
full-rebuild clean pattern). There is no per-task subclass; the engine
is the same for all three.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable, Mapping

from filabuild.tasks.models import TaskConfig, TaskKind
from filabuild.tasks.output_mapper import OutputMapper, map_ibl, map_material, map_mesh

if TYPE_CHECKING:
    from filabuild.config.settings import Settings

# (input_path, target_dir, outputs, tool_options) -> argument lists, one per tool run
ArgumentTemplate = Callable[[Path, Path, list[Path], Mapping[str, Any]], list[list[str]]]


@dataclass(frozen=True)
class TaskBinding:
    """Static description of one task kind."""

    kind: TaskKind
    tool_name: str
    header: str
    clean_pattern: str
    input_pattern: str
    arguments: ArgumentTemplate
    mapper: OutputMapper


def _material_args(
    input_path: Path, target_dir: Path, outputs: list[Path], options: Mapping[str, Any],
) -> list[list[str]]:
    profile = options.get("profile", "mobile")
    return [["-O", "-p", profile, "-o", str(outputs[0]), str(input_path)]]


def _ibl_args(
    input_path: Path, target_dir: Path, outputs: list[Path], options: Mapping[str, Any],
) -> list[list[str]]:
    fmt = options.get("format", "rgbm")
    blur = options.get("blur", 0.08)
    return [
        ["-x", str(target_dir), str(input_path)],
        [
            f"--format={fmt}",
            f"--extract-blur={blur}",
            f"--extract={target_dir.absolute()}",
            str(input_path),
        ],
    ]


def _mesh_args(
    input_path: Path, target_dir: Path, outputs: list[Path], options: Mapping[str, Any],
) -> list[list[str]]:
    return [[str(input_path), str(outputs[0])]]


MATERIAL = TaskBinding(
    kind="material",
    tool_name="matc",
    header="Compiling material",
    clean_pattern="*.filamat",
    input_pattern="*.mat",
    arguments=_material_args,
    mapper=map_material,
)

IBL = TaskBinding(
    kind="ibl",
    tool_name="cmgen",
    header="Generating IBL",
    clean_pattern="*",
    input_pattern="*",
    arguments=_ibl_args,
    mapper=map_ibl,
)

MESH = TaskBinding(
    kind="mesh",
    tool_name="filamesh",
    header="Compiling mesh",
    clean_pattern="*.filamesh",
    input_pattern="*",
    arguments=_mesh_args,
    mapper=map_mesh,
)

BINDINGS: dict[str, TaskBinding] = {b.kind: b for b in (MATERIAL, IBL, MESH)}


def get_binding(kind: TaskKind) -> TaskBinding:
    """Return the binding for a task kind."""
    try:
        return BINDINGS[kind]
    except KeyError:
        raise ValueError(f"Unknown task kind: {kind!r}") from None


def create_task_config(
    kind: TaskKind,
    input_root: Path,
    output_dir: Path,
    settings: Settings | None = None,
    name: str | None = None,
) -> TaskConfig:
    """Build the TaskConfig for a binding from resolved settings.

    Tool paths and tool options come from settings, resolved once at
    startup and passed in explicitly.
    """
    from filabuild.config.settings import Settings

    settings = settings or Settings()
    binding = get_binding(kind)

    options: dict[str, Any]
    if kind == "material":
        options = {"profile": settings.material_profile}
    elif kind == "ibl":
        options = {"format": settings.ibl_format, "blur": settings.ibl_blur}
    else:
        options = {}

    return TaskConfig(
        name=name or kind,
        kind=kind,
        tool_path=settings.tool_path(binding.tool_name),
        input_root=input_root,
        output_dir=output_dir,
        input_pattern=binding.input_pattern,
        recursive=False,
        tool_options=options,
    )
