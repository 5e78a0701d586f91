# tests/unit/tasks/test_scanner.py — v1
"""Tests for tasks/scanner.py and tasks/fingerprint.py — change detection."""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from filabuild.tasks.errors import InputRootError
from filabuild.tasks.fingerprint import compute_fingerprint
from filabuild.tasks.models import BuildSnapshot, SnapshotEntry, TaskConfig
from filabuild.tasks.scanner import InputScanner, list_inputs


def _config(input_root: Path, tmp_path: Path, pattern: str = "*.mat") -> TaskConfig:
    return TaskConfig(
        name="materials",
        kind="material",
        tool_path=tmp_path / "matc",
        input_root=input_root,
        output_dir=tmp_path / "out",
        input_pattern=pattern,
    )


def _snapshot(*paths: Path) -> BuildSnapshot:
    return BuildSnapshot(
        task_name="materials",
        task_kind="material",
        output_dir="/unused",
        entries={
            str(p.resolve()): SnapshotEntry(fingerprint=compute_fingerprint(p))
            for p in paths
        },
    )


class TestComputeFingerprint:
    def test_fields(self, tmp_path: Path):
        f = tmp_path / "a.mat"
        f.write_bytes(b"abc")
        fp = compute_fingerprint(f)
        assert fp.path == str(f.resolve())
        assert fp.size_bytes == 3
        assert fp.content_hash == (
            "ba7816bf8f01cfea414140de5dae2223b00361a396177a9cb410ff61f20015ad"
        )

    def test_touch_without_change_still_matches(self, tmp_path: Path):
        f = tmp_path / "a.mat"
        f.write_bytes(b"abc")
        before = compute_fingerprint(f)
        os.utime(f, ns=(before.mtime_ns + 10**9, before.mtime_ns + 10**9))
        after = compute_fingerprint(f)
        assert after.mtime_ns != before.mtime_ns
        assert after.matches(before)

    def test_content_change_does_not_match(self, tmp_path: Path):
        f = tmp_path / "a.mat"
        f.write_bytes(b"abc")
        before = compute_fingerprint(f)
        f.write_bytes(b"abd")
        assert not compute_fingerprint(f).matches(before)

    def test_none_never_matches(self, tmp_path: Path):
        f = tmp_path / "a.mat"
        f.write_bytes(b"abc")
        assert not compute_fingerprint(f).matches(None)


class TestListInputs:
    def test_directory_with_pattern(self, materials_dir: Path):
        names = [p.name for p in list_inputs(materials_dir, "*.mat")]
        assert names == ["lit.mat", "unlit.mat"]

    def test_single_file(self, materials_dir: Path):
        f = materials_dir / "lit.mat"
        assert list_inputs(f, "*.mat") == [f.resolve()]

    def test_recursive(self, materials_dir: Path):
        nested = materials_dir / "sub" / "deep.mat"
        nested.parent.mkdir()
        nested.write_text("x", encoding="utf-8")
        assert nested.resolve() not in list_inputs(materials_dir, "*.mat")
        assert nested.resolve() in list_inputs(materials_dir, "*.mat", recursive=True)

    def test_missing_root_raises(self, tmp_path: Path):
        with pytest.raises(InputRootError, match="does not exist"):
            list_inputs(tmp_path / "nope")


class TestInputScanner:
    def test_no_snapshot_everything_changed(self, materials_dir: Path, tmp_path: Path):
        delta, unreadable = InputScanner(_config(materials_dir, tmp_path)).compute_delta(None)
        assert [Path(fp.path).name for fp in delta.changed] == ["lit.mat", "unlit.mat"]
        assert delta.removed == []
        assert delta.unchanged == []
        assert unreadable == {}

    def test_added_unchanged_removed(self, tmp_path: Path):
        src = tmp_path / "src"
        src.mkdir()
        b = src / "b.mat"
        b.write_text("b", encoding="utf-8")
        c = src / "c.mat"
        c.write_text("c", encoding="utf-8")
        previous = _snapshot(b, c)
        c.unlink()
        (src / "a.mat").write_text("a", encoding="utf-8")

        delta, _ = InputScanner(_config(src, tmp_path)).compute_delta(previous)

        assert [Path(fp.path).name for fp in delta.changed] == ["a.mat"]
        assert [Path(p).name for p in delta.unchanged] == ["b.mat"]
        assert [Path(p).name for p in delta.removed] == ["c.mat"]
        assert not delta.is_empty

    def test_modified_is_changed(self, tmp_path: Path):
        src = tmp_path / "src"
        src.mkdir()
        a = src / "a.mat"
        a.write_text("v1", encoding="utf-8")
        previous = _snapshot(a)
        a.write_text("v2", encoding="utf-8")

        delta, _ = InputScanner(_config(src, tmp_path)).compute_delta(previous)
        assert [Path(fp.path).name for fp in delta.changed] == ["a.mat"]

    def test_nothing_changed_is_empty(self, materials_dir: Path, tmp_path: Path):
        previous = _snapshot(materials_dir / "lit.mat", materials_dir / "unlit.mat")
        delta, _ = InputScanner(_config(materials_dir, tmp_path)).compute_delta(previous)
        assert delta.is_empty
        assert len(delta.unchanged) == 2
