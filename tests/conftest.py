# tests/conftest.py — v1
"""Shared test fixtures for all unit tests.

Provides fake matc / cmgen / filamesh executables and sample input trees.
The fake tools are small Python scripts: they record every invocation in
<tool>.calls (one JSON argv per line) and fail when the input contains the
word FAIL.
"""

from __future__ import annotations

import json
import stat
import sys
from pathlib import Path

import pytest

from filabuild.config.settings import Settings
from filabuild.logging.context import clear_context

_FAKE_TOOL = '''#!{python}
import json
import sys
from pathlib import Path

tool = Path(__file__).name
argv = sys.argv[1:]
with open(__file__ + ".calls", "a", encoding="utf-8") as fh:
    fh.write(json.dumps(argv) + "\\n")

source = Path(argv[-1] if tool != "filamesh" else argv[0])
data = source.read_text(encoding="utf-8")
print(f"{{tool}}: processing {{source.name}}")
if "FAIL" in data:
    print(f"error: cannot compile {{source.name}}", file=sys.stderr)
    sys.exit(3)
if "NOOUT" in data:
    sys.exit(0)

base = source.name.rsplit(".", 1)[0] if "." in source.name[1:] else source.name
if tool == "matc":
    out = Path(argv[argv.index("-o") + 1])
    out.write_text("filamat:" + data, encoding="utf-8")
elif tool == "filamesh":
    Path(argv[1]).write_text("filamesh:" + data, encoding="utf-8")
elif tool == "cmgen":
    if argv[0] == "-x":
        target = Path(argv[1]) / base
        target.mkdir(parents=True, exist_ok=True)
        (target / "sh.txt").write_text("sh", encoding="utf-8")
        (target / "m0_px.rgbm").write_text("m0", encoding="utf-8")
    else:
        extract = [a for a in argv if a.startswith("--extract=")][0].split("=", 1)[1]
        target = Path(extract) / base
        target.mkdir(parents=True, exist_ok=True)
        (target / "blurred.rgbm").write_text("blur", encoding="utf-8")
print("done")
'''


def _write_tool(bin_dir: Path, name: str) -> Path:
    path = bin_dir / name
    path.write_text(_FAKE_TOOL.format(python=sys.executable), encoding="utf-8")
    path.chmod(path.stat().st_mode | stat.S_IEXEC | stat.S_IXGRP | stat.S_IXOTH)
    return path


def tool_calls(tool: Path) -> list[list[str]]:
    """Return the argv of every recorded invocation of a fake tool."""
    calls_file = Path(f"{tool}.calls")
    if not calls_file.exists():
        return []
    lines = calls_file.read_text(encoding="utf-8").splitlines()
    return [json.loads(line) for line in lines if line]


# === FIXTURES: Fake tools ===


@pytest.fixture
def tools_dir(tmp_path: Path) -> Path:
    """Filament-like install dir with fake bin/matc, bin/cmgen, bin/filamesh."""
    root = tmp_path / "filament"
    bin_dir = root / "bin"
    bin_dir.mkdir(parents=True)
    for name in ("matc", "cmgen", "filamesh"):
        _write_tool(bin_dir, name)
    return root


@pytest.fixture
def settings(tools_dir: Path, tmp_path: Path) -> Settings:
    """Settings pointing at the fake tools and a temporary state dir."""
    return Settings(
        _env_file=None,
        tools_dir=tools_dir,
        state_dir=tmp_path / "state",
    )


# === FIXTURES: Sample inputs ===


@pytest.fixture
def materials_dir(tmp_path: Path) -> Path:
    """Directory with two material sources and one unrelated file."""
    src = tmp_path / "materials"
    src.mkdir()
    (src / "lit.mat").write_text("material { name : lit }", encoding="utf-8")
    (src / "unlit.mat").write_text("material { name : unlit }", encoding="utf-8")
    (src / "README.txt").write_text("not a material", encoding="utf-8")
    return src


@pytest.fixture
def tmp_output_dir(tmp_path: Path) -> Path:
    """Temporary output directory."""
    out = tmp_path / "output"
    out.mkdir()
    return out


@pytest.fixture(autouse=True)
def _reset_log_context():
    clear_context()
    yield
    clear_context()


@pytest.fixture
def read_calls():
    """Accessor for fake tool invocations."""
    return tool_calls
