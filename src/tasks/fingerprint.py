# src/tasks/fingerprint.py — v1
"""Input file fingerprinting for change detection.

A fingerprint is the SHA-256 of the raw file bytes plus size and mtime.
Size and hash decide staleness; mtime is kept for diagnostics.
"""

from __future__ import annotations

import hashlib
from pathlib import Path

from filabuild.tasks.models import InputFingerprint

_READ_CHUNK = 1024 * 1024


def compute_fingerprint(path: Path) -> InputFingerprint:
    """Fingerprint a single input file.

    Args:
        path: Input file. Must exist and be readable.

    Returns:
        InputFingerprint keyed by the resolved path.

    Raises:
        OSError: If the file cannot be read.
    """
    resolved = path.resolve()
    stat = resolved.stat()
    return InputFingerprint(
        path=str(resolved),
        content_hash=_content_hash(resolved),
        size_bytes=stat.st_size,
        mtime_ns=stat.st_mtime_ns,
    )


def _content_hash(path: Path) -> str:
    """SHA-256 on raw file bytes, read in chunks."""
    digest = hashlib.sha256()
    with path.open("rb") as fh:
        for block in iter(lambda: fh.read(_READ_CHUNK), b""):
            digest.update(block)
    return digest.hexdigest()
