# File: blueprintc/cli.py
"""
Blueprintc - Command-Line Interface
=====================================

Built with the standard-library ``argparse`` module.

Usage examples::

    # Build everything the draft describes
    blueprintc build draft.yaml

    # Only the ORM models, overwriting files that changed
    blueprintc build draft.yaml --only models --overwrite

    # Check a draft without writing anything
    blueprintc validate draft.yaml

    # Undo the last build / list the models the manifest knows about
    blueprintc erase
    blueprintc trace

Exit codes:
    0 — success
    1 — validation error
    2 — generation error
    3 — manifest error
    4 — input/argument error
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import Any, Dict, List, NoReturn, Optional, Sequence

from blueprintc.errors import BlueprintError, GenerationError, ParsingError, ValidationError
from blueprintc.filesystem import FileSystem, LocalFileSystem
from blueprintc.recovery import ErrorHandlingManager, ErrorHandlingResult

# ---------------------------------------------------------------------------
# Logger (configured in _setup_logging)
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("blueprintc")


# ---------------------------------------------------------------------------
# Exit codes
# ---------------------------------------------------------------------------

EXIT_SUCCESS: int = 0
EXIT_VALIDATION_ERROR: int = 1
EXIT_GENERATION_ERROR: int = 2
EXIT_MANIFEST_ERROR: int = 3
EXIT_INPUT_ERROR: int = 4


# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------


def _setup_logging(verbosity: int) -> None:
    """
    Configure the ``blueprintc`` logger based on verbosity level.

    Args:
        verbosity: 0 = WARNING, 1 = INFO, 2+ = DEBUG.
    """
    if verbosity >= 2:
        level = logging.DEBUG
    elif verbosity >= 1:
        level = logging.INFO
    else:
        level = logging.WARNING

    handler: logging.StreamHandler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)

    fmt: str = "%(asctime)s │ %(levelname)-8s │ %(name)s │ %(message)s"
    datefmt: str = "%H:%M:%S"
    handler.setFormatter(logging.Formatter(fmt, datefmt=datefmt))

    root_logger: logging.Logger = logging.getLogger("blueprintc")
    root_logger.setLevel(level)
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.propagate = False


# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------


def _category_list(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


def _build_parser() -> argparse.ArgumentParser:
    """Build and return the argument parser."""
    from blueprintc import __version__

    parser: argparse.ArgumentParser = argparse.ArgumentParser(
        prog="blueprintc",
        description=(
            "blueprintc — declarative draft compiler.\n\n"
            "Turns a YAML draft of models and controllers into ORM models, "
            "schemas and routers, tracking output in a manifest."
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  %(prog)s build draft.yaml\n"
            "  %(prog)s build draft.yaml --only models --overwrite\n"
            "  %(prog)s validate draft.yaml\n"
            "  %(prog)s erase\n"
        ),
    )
    parser.add_argument("--version", action="version", version=f"blueprintc v{__version__}")

    # --- Shared options ---
    shared = argparse.ArgumentParser(add_help=False)
    location_group = shared.add_argument_group("locations")
    location_group.add_argument(
        "--root",
        type=str,
        default=".",
        metavar="DIR",
        help="Project directory all paths are relative to (default: current directory).",
    )
    location_group.add_argument(
        "--manifest",
        type=str,
        default=None,
        metavar="PATH",
        help="Manifest file (default: .blueprint).",
    )
    location_group.add_argument(
        "--output-root",
        type=str,
        default=None,
        metavar="DIR",
        help="Directory generated files are written under (default: app).",
    )

    verbosity_group = shared.add_argument_group("verbosity")
    verbosity_group.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Increase verbosity (-v for INFO, -vv for DEBUG).",
    )
    verbosity_group.add_argument(
        "-q", "--quiet",
        action="store_true",
        default=False,
        help="Suppress all logging.",
    )
    verbosity_group.add_argument(
        "--recover",
        action="store_true",
        default=False,
        help="On failure, try the recovery strategies and report what they found.",
    )

    commands = parser.add_subparsers(dest="command", metavar="COMMAND")
    commands.required = True

    build = commands.add_parser("build", parents=[shared], help="Compile a draft into files.")
    build.add_argument("draft", nargs="?", default="draft.yaml", help="Draft file (default: draft.yaml).")
    build.add_argument(
        "--only",
        type=_category_list,
        default=[],
        metavar="CATEGORIES",
        help="Comma separated emitter categories to run (e.g. models,schemas).",
    )
    build.add_argument(
        "--skip",
        type=_category_list,
        default=[],
        metavar="CATEGORIES",
        help="Comma separated emitter categories to leave out.",
    )
    build.add_argument(
        "--overwrite",
        action="store_true",
        default=False,
        help="Overwrite generated files that already exist with different content.",
    )
    build.add_argument(
        "--prune-stale",
        action="store_true",
        default=None,
        help="Delete files from the previous build that this build no longer produces.",
    )

    validate = commands.add_parser("validate", parents=[shared], help="Check a draft without writing.")
    validate.add_argument("draft", nargs="?", default="draft.yaml", help="Draft file (default: draft.yaml).")

    commands.add_parser("erase", parents=[shared], help="Delete the files created by the last build.")
    commands.add_parser("trace", parents=[shared], help="List the models known from the manifest.")

    return parser


def _build_overrides(args: argparse.Namespace) -> Dict[str, Any]:
    """Option overrides from CLI flags; these win over the draft's settings."""
    overrides: Dict[str, Any] = {}
    if args.manifest is not None:
        overrides["manifest_path"] = args.manifest
    if args.output_root is not None:
        overrides["output_root"] = args.output_root
    if getattr(args, "prune_stale", None):
        overrides["prune_stale"] = True
    return overrides


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


def _run_build(blueprint: Any, args: argparse.Namespace) -> int:
    report = blueprint.build(args.draft, only=args.only, skip=args.skip, overwrite=args.overwrite)
    print(report.summary())
    return EXIT_SUCCESS


def _run_validate(blueprint: Any, args: argparse.Namespace) -> int:
    from blueprintc.manifest import load_manifest
    from blueprintc.utils import Timer

    filesystem: FileSystem = blueprint.filesystem
    if not filesystem.exists(args.draft):
        raise FileNotFoundError(f"Draft file not found: {args.draft}")

    with Timer("validation") as t:
        document = blueprint.parse(filesystem.read(args.draft), file_path=args.draft)
        options = blueprint.resolve_options(document.settings)
        cache = load_manifest(filesystem, options.manifest_path).models
        registry = blueprint.analyze(document, cache, options)
        result = blueprint.validate(registry, options, models=document.models)

    print(f"\n{'=' * 50}")
    print("  Draft Validation Report")
    print(f"{'=' * 50}")
    print(f"  File:        {args.draft}")
    print(f"  Models:      {len(registry.entities)}")
    print(f"  Controllers: {len(registry.action_entities)}")
    print(f"  Time:        {t.elapsed:.3f}s")
    print(result.format_report())
    if not result.warnings:
        print("\n  ✅ All validations passed!")
    print(f"{'=' * 50}\n")
    return EXIT_SUCCESS if result.is_valid else EXIT_VALIDATION_ERROR


def _run_erase(blueprint: Any, args: argparse.Namespace) -> int:
    report = blueprint.erase()
    for path in report.deleted:
        print(f"  - deleted {path}")
    for path in report.not_erasable:
        print(f"  ! kept    {path} (updated, not created, by the last build)")
    if not report.manifest_deleted:
        print("  Nothing to erase.")
    return EXIT_SUCCESS


def _run_trace(blueprint: Any, args: argparse.Namespace) -> int:
    entities = blueprint.trace()
    if not entities:
        print("  No models recorded in the manifest.")
        return EXIT_SUCCESS
    for name, entity in entities.items():
        print(f"{name} ({entity.table_name})")
        for column in entity.columns.values():
            print(f"    {column.name}: {column.to_definition()}")
        for relationship in entity.all_relationships():
            print(f"    {relationship.kind} {relationship.reference}")
    return EXIT_SUCCESS


_COMMANDS = {
    "build": _run_build,
    "validate": _run_validate,
    "erase": _run_erase,
    "trace": _run_trace,
}


def _exit_code_for(error: BlueprintError, command: str) -> int:
    if isinstance(error, ValidationError):
        return EXIT_VALIDATION_ERROR
    if isinstance(error, ParsingError):
        return EXIT_MANIFEST_ERROR if command in ("erase", "trace") else EXIT_INPUT_ERROR
    if isinstance(error, GenerationError):
        return EXIT_GENERATION_ERROR
    return EXIT_GENERATION_ERROR


# ---------------------------------------------------------------------------
# Main entry point
# ---------------------------------------------------------------------------


def run(argv: Optional[Sequence[str]] = None, filesystem: Optional[FileSystem] = None) -> int:
    """
    Parse *argv*, run the command and return its exit code.

    *filesystem* replaces the ``--root`` directory (used by tests).
    """
    from blueprintc.generator import Blueprint

    parser: argparse.ArgumentParser = _build_parser()
    args: argparse.Namespace = parser.parse_args(argv)

    if args.quiet:
        verbosity: int = -1
        logging.getLogger("blueprintc").disabled = True
    else:
        verbosity = args.verbose
        logging.getLogger("blueprintc").disabled = False
    _setup_logging(verbosity)

    if filesystem is None:
        filesystem = LocalFileSystem(args.root)
    handler: ErrorHandlingManager = ErrorHandlingManager(
        logging.getLogger("blueprintc.errors"), filesystem, auto_recovery=args.recover
    )
    handler.error_logger.enabled = verbosity >= 1

    try:
        blueprint: Blueprint = Blueprint(filesystem, overrides=_build_overrides(args))
        exit_code: int = _COMMANDS[args.command](blueprint, args)
    except FileNotFoundError as exc:
        logger.error("%s", exc)
        print(f"Error: {exc}", file=sys.stderr)
        return EXIT_INPUT_ERROR
    except BlueprintError as exc:
        result: ErrorHandlingResult = handler.handle_exception(exc)
        print(result.formatted_message(), file=sys.stderr)
        if result.recovery_successful and result.recovery_result is not None:
            fixed: Optional[str] = result.recovery_result.get("fixed_content")
            if fixed:
                print("\nSuggested draft after automatic fixes:\n", file=sys.stderr)
                print(fixed, file=sys.stderr)
        return _exit_code_for(exc, args.command)

    if exit_code == EXIT_SUCCESS:
        logger.info("%s completed successfully.", args.command.capitalize())
    else:
        logger.error("%s failed with exit code %d.", args.command.capitalize(), exit_code)
    return exit_code


def cli_main(argv: Optional[Sequence[str]] = None) -> NoReturn:
    """
    Main CLI entry point.

    Can be called from ``__main__.py`` or directly for testing.
    """
    sys.exit(run(argv))


def main() -> None:
    cli_main()


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "run",
    "cli_main",
    "main",
    "EXIT_SUCCESS",
    "EXIT_VALIDATION_ERROR",
    "EXIT_GENERATION_ERROR",
    "EXIT_MANIFEST_ERROR",
    "EXIT_INPUT_ERROR",
]

logger.debug("blueprintc.cli loaded.")
