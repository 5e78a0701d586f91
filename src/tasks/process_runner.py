# src/tasks/process_runner.py — v1
"""Synchronous external tool invocation with live log streaming.

stdout and stderr are drained by one reader thread each, so lines reach
the log sink while the tool is still running and ordering is preserved
within each stream.
"""

from __future__ import annotations

import contextvars
import logging
import subprocess
import threading
import time
from pathlib import Path
from typing import IO, Callable, Literal, Sequence

from filabuild.tasks.models import ProcessResult

StreamName = Literal["stdout", "stderr"]
LogSink = Callable[[StreamName, str], None]

tool_logger = logging.getLogger("filabuild.tool")


def logger_sink(
    target: logging.Logger | None = None,
    stdout_level: int = logging.INFO,
    stderr_level: int = logging.ERROR,
) -> LogSink:
    """Build a sink that forwards tool output lines to a logger."""
    log = target or tool_logger

    def _sink(stream: StreamName, line: str) -> None:
        level = stdout_level if stream == "stdout" else stderr_level
        log.log(level, "%s", line)

    return _sink


def run_process(
    executable: Path | str,
    args: Sequence[str | Path],
    log_sink: LogSink | None = None,
    timeout: float | None = None,
    cwd: Path | None = None,
) -> ProcessResult:
    """Run an external executable and wait for it to exit.

    Args:
        executable: Tool binary to run.
        args: Arguments passed after the executable.
        log_sink: Receives every output line as it is produced. Defaults to
            the ``filabuild.tool`` logger (stdout at INFO, stderr at ERROR).
        timeout: Seconds to wait before killing the tool. None waits forever.
        cwd: Working directory for the tool.

    Returns:
        ProcessResult. Never raises for a missing binary or a non-zero exit;
        check ``result.ok``.
    """
    sink = log_sink or logger_sink()
    argv = [str(executable), *(str(a) for a in args)]
    result = ProcessResult(executable=argv[0], args=argv[1:])
    start = time.monotonic()

    try:
        proc = subprocess.Popen(
            argv,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            stdin=subprocess.DEVNULL,
            cwd=str(cwd) if cwd else None,
            text=True,
            encoding="utf-8",
            errors="replace",
            bufsize=1,
        )
    except OSError as exc:
        result.start_error = f"Cannot start {argv[0]}: {exc}"
        sink("stderr", result.start_error)
        return result

    readers = [
        threading.Thread(
            target=contextvars.copy_context().run,
            args=(_pump, proc.stdout, "stdout", sink, result.stdout_lines),
            daemon=True,
        ),
        threading.Thread(
            target=contextvars.copy_context().run,
            args=(_pump, proc.stderr, "stderr", sink, result.stderr_lines),
            daemon=True,
        ),
    ]
    for reader in readers:
        reader.start()

    try:
        result.exit_code = proc.wait(timeout=timeout)
    except subprocess.TimeoutExpired:
        proc.kill()
        result.exit_code = proc.wait()
        result.timed_out = True
        message = f"{argv[0]} timed out after {timeout}s and was killed"
        result.stderr_lines.append(message)
        sink("stderr", message)
    finally:
        for reader in readers:
            reader.join()

    result.duration_ms = int((time.monotonic() - start) * 1000)
    return result


def _pump(
    pipe: IO[str] | None,
    stream: StreamName,
    sink: LogSink,
    collected: list[str],
) -> None:
    """Forward lines from one pipe until EOF."""
    if pipe is None:
        return
    with pipe:
        for raw in pipe:
            line = raw.rstrip("\r\n")
            collected.append(line)
            sink(stream, line)
