# src/main.py — v1
"""CLI entry point — materials, ibl, mesh, clean commands.

Usage:
    filabuild materials <input_dir> -o <output_dir>
    filabuild ibl <input_file> -o <output_dir>
    filabuild mesh <input_file> -o <output_dir>
    filabuild clean <task> -o <output_dir>
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from filabuild.version import __version__

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_MISSING_TOOL = 2

_COMMAND_KINDS = {"materials": "material", "ibl": "ibl", "mesh": "mesh"}


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if not hasattr(args, "func"):
        parser.print_help()
        return EXIT_FAILED

    from filabuild.config.settings import ConfigurationError

    try:
        settings = _load_settings(args)
    except (ConfigurationError, ValueError) as exc:
        print(f"Invalid configuration: {exc}", file=sys.stderr)
        return EXIT_FAILED

    _setup_logging(settings, args.verbose)

    try:
        return args.func(args, settings)
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130


def _build_parser() -> argparse.ArgumentParser:
    """Build CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="filabuild",
        description=f"filabuild v{__version__} — incremental Filament asset compiler",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Enable debug logging",
    )
    parser.add_argument(
        "--tools-dir", type=Path, default=None,
        help="Filament install directory containing bin/matc, bin/cmgen, bin/filamesh",
    )
    parser.add_argument(
        "--state-dir", type=Path, default=None,
        help="Directory holding incremental build state",
    )
    parser.add_argument(
        "-j", "--jobs", type=int, default=None,
        help="Number of inputs compiled in parallel (default: 1)",
    )

    subparsers = parser.add_subparsers(dest="command")

    p_materials = subparsers.add_parser(
        "materials", help="Compile *.mat files with matc",
    )
    p_materials.add_argument("input", type=Path, help="Directory of .mat files")
    _add_output_args(p_materials)
    p_materials.set_defaults(func=_cmd_build)

    p_ibl = subparsers.add_parser(
        "ibl", help="Generate IBL data from an environment map with cmgen",
    )
    p_ibl.add_argument("input", type=Path, help="Environment map file")
    _add_output_args(p_ibl)
    p_ibl.set_defaults(func=_cmd_build)

    p_mesh = subparsers.add_parser(
        "mesh", help="Compile a mesh with filamesh",
    )
    p_mesh.add_argument("input", type=Path, help="Mesh file")
    _add_output_args(p_mesh)
    p_mesh.set_defaults(func=_cmd_build)

    p_clean = subparsers.add_parser(
        "clean", help="Forget build state so the next run is a full rebuild",
    )
    p_clean.add_argument("task", choices=sorted(_COMMAND_KINDS), help="Task to reset")
    _add_output_args(p_clean)
    p_clean.set_defaults(func=_cmd_clean)

    return parser


def _add_output_args(sub: argparse.ArgumentParser) -> None:
    sub.add_argument(
        "-o", "--output", type=Path, required=True,
        help="Output directory",
    )
    sub.add_argument(
        "--name", default=None,
        help="Task name used to key build state (default: derived from output)",
    )


def _cmd_build(args: argparse.Namespace, settings) -> int:
    """Run one incremental build task."""
    from filabuild.tasks.bindings import create_task_config
    from filabuild.tasks.engine import IncrementalTaskEngine
    from filabuild.tasks.errors import InputRootError, MissingToolError
    from filabuild.tasks.state_store import JsonSnapshotStore

    kind = _COMMAND_KINDS[args.command]
    config = create_task_config(
        kind,
        input_root=args.input,
        output_dir=args.output,
        settings=settings,
        name=_task_name(args),
    )
    store = JsonSnapshotStore(settings.state_dir)
    engine = IncrementalTaskEngine(
        max_workers=settings.max_workers,
        tool_timeout=settings.tool_timeout_seconds,
    )

    try:
        snapshot, outcome = engine.run(config, store.load(config.name))
    except MissingToolError as exc:
        logger.error("%s", exc)
        return EXIT_MISSING_TOOL
    except InputRootError as exc:
        logger.error("%s", exc)
        return EXIT_FAILED

    store.save(snapshot)
    _print_outcome(outcome)
    return EXIT_OK if outcome.success else EXIT_FAILED


def _cmd_clean(args: argparse.Namespace, settings) -> int:
    """Drop the stored snapshot of a task."""
    from filabuild.tasks.state_store import JsonSnapshotStore

    store = JsonSnapshotStore(settings.state_dir)
    name = _task_name(args)
    if store.clear(name):
        print(f"Cleared build state for '{name}'")
    else:
        print(f"No build state for '{name}'")
    return EXIT_OK


def _task_name(args: argparse.Namespace) -> str:
    """Task name: explicit --name, else <command>-<output dir name>."""
    if args.name:
        return args.name
    command = getattr(args, "task", None) or args.command
    return f"{command}-{args.output.resolve().name}"


def _load_settings(args: argparse.Namespace):
    from filabuild.config.settings import load_settings

    overrides: dict[str, object] = {}
    if args.tools_dir is not None:
        overrides["tools_dir"] = args.tools_dir
    if args.state_dir is not None:
        overrides["state_dir"] = args.state_dir
    if args.jobs is not None:
        overrides["max_workers"] = args.jobs
    return load_settings(**overrides)


def _print_outcome(outcome: object) -> None:
    """Print a human-readable summary of a TaskOutcome."""
    mode = "full rebuild" if outcome.full_rebuild else "incremental"
    print(f"\nTask '{outcome.task_name}' ({mode}):")
    print(f"  Processed:  {len(outcome.processed)}")
    print(f"  Skipped:    {len(outcome.skipped)}")
    print(f"  Removed:    {len(outcome.removed)}")
    print(f"  Failed:     {len(outcome.failures)}")
    print(f"  Duration:   {outcome.duration_seconds:.1f}s")
    for failure in outcome.failures:
        print(f"  ✗ {failure.input_path}: {failure.message}")
        for line in failure.stderr:
            print(f"      {line}")


def _setup_logging(settings, verbose: bool) -> None:
    """Configure logging for CLI usage."""
    from filabuild.logging.logger import setup_logging

    level = "DEBUG" if verbose else settings.log_level
    setup_logging(
        level=level,
        log_format=settings.log_format,
        log_file=str(settings.log_file) if settings.log_file else None,
        rotation=settings.log_rotation,
        retention=settings.log_retention,
    )


if __name__ == "__main__":
    sys.exit(main())
