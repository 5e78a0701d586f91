# src/tasks/output_mapper.py — v1
"""Output mapping: input path + output directory -> output path(s).

Pure functions, no I/O. The same mapping is used to name outputs when an
input is compiled and to find them again when the input is removed.
"""

from __future__ import annotations

from pathlib import Path
from typing import Callable

from filabuild.tasks.models import TaskKind

OutputMapper = Callable[[Path, Path], list[Path]]

MATERIAL_EXTENSION = ".filamat"
MESH_EXTENSION = ".filamesh"


def strip_extension(filename: str) -> str:
    """Remove the text after the last dot of a file name.

    Names without a dot, or whose only dot is the leading one
    (".hidden"), are returned unchanged.
    """
    dot = filename.rfind(".")
    if dot <= 0:
        return filename
    return filename[:dot]


def map_material(input_path: Path, output_dir: Path) -> list[Path]:
    """lit.mat -> <output_dir>/lit.filamat"""
    return [output_dir / (strip_extension(input_path.name) + MATERIAL_EXTENSION)]


def map_ibl(input_path: Path, output_dir: Path) -> list[Path]:
    """venetian.hdr -> <output_dir>/venetian/ (populated by cmgen)."""
    return [output_dir / strip_extension(input_path.name)]


def map_mesh(input_path: Path, output_dir: Path) -> list[Path]:
    """shader_ball.obj -> <output_dir>/shader_ball.filamesh"""
    return [output_dir / (strip_extension(input_path.name) + MESH_EXTENSION)]


_MAPPERS: dict[str, OutputMapper] = {
    "material": map_material,
    "ibl": map_ibl,
    "mesh": map_mesh,
}


def get_mapper(kind: TaskKind) -> OutputMapper:
    """Return the output mapper registered for a task kind."""
    try:
        return _MAPPERS[kind]
    except KeyError:
        raise ValueError(f"Unknown task kind: {kind!r}") from None


def map_outputs(input_path: Path, output_dir: Path, kind: TaskKind) -> list[Path]:
    """Map an input file to the output path(s) a task of this kind produces."""
    return get_mapper(kind)(input_path, output_dir)
