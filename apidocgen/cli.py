"""CLI entrypoints for apidocgen commands."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from .compiler import Compiler
from .config import OUTPUT_FORMATS
from .errors import CompilationCancelled, ConfigurationError, Severity
from .logging import configure_logging, get_logger, log_diagnostics


def _add_verbose_option(
    parser: argparse.ArgumentParser, *, suppress_default: bool = False
) -> None:
    kwargs: dict[str, object] = {
        "action": "store_true",
        "help": "Increase log verbosity for troubleshooting.",
    }
    if suppress_default:
        kwargs["default"] = argparse.SUPPRESS
    else:
        kwargs["default"] = False
    parser.add_argument(
        "-v",
        "--verbose",
        **kwargs,
    )


def _add_path_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "path",
        nargs="?",
        default=".",
        help="Project root or .apidocgen.yml file (defaults to current directory).",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="apidocgen",
        description="Compile source annotations into an OpenAPI document.",
    )
    _add_verbose_option(parser)
    subparsers = parser.add_subparsers(dest="command", required=True)

    build_parser = subparsers.add_parser(
        "build",
        help="Compile annotations and write the API document.",
    )
    _add_verbose_option(build_parser, suppress_default=True)
    _add_path_argument(build_parser)
    build_parser.add_argument(
        "-o",
        "--output",
        type=Path,
        default=None,
        help="Write the document here instead of the configured output path.",
    )
    build_parser.add_argument(
        "--format",
        choices=OUTPUT_FORMATS,
        default=None,
        help="Output format (defaults to the configured format).",
    )
    build_parser.add_argument(
        "--no-cache",
        action="store_true",
        help="Ignore and do not update the annotation cache.",
    )
    build_parser.add_argument(
        "--workers",
        type=int,
        default=None,
        help="Number of worker threads for extraction and parsing.",
    )

    check_parser = subparsers.add_parser(
        "check",
        help="Compile annotations and report diagnostics without writing.",
    )
    _add_verbose_option(check_parser, suppress_default=True)
    _add_path_argument(check_parser)

    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for apidocgen commands."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    configure_logging(verbose=bool(args.verbose))
    logger = get_logger("cli")
    compiler = Compiler()

    if args.command == "build":
        if args.workers is not None and args.workers < 1:
            parser.exit(1, "--workers must be a positive integer\n")
        try:
            result = compiler.compile(
                args.path,
                write=True,
                use_cache=False if args.no_cache else None,
                output_format=args.format,
                output_path=args.output,
                workers=args.workers,
            )
        except ConfigurationError as exc:
            parser.exit(1, f"apidocgen build failed: {exc}\n")
        except CompilationCancelled:
            parser.exit(1, "apidocgen build cancelled\n")
        log_diagnostics(logger, result.diagnostics)
        if not result.ok:
            parser.exit(1, f"Document refused with {len(result.errors)} error(s).\n")
        print(f"API document written to {_relativize(result.output_path)}")
    elif args.command == "check":
        try:
            result = compiler.compile(args.path, write=False)
        except ConfigurationError as exc:
            parser.exit(1, f"apidocgen check failed: {exc}\n")
        log_diagnostics(logger, result.diagnostics)
        if not result.ok:
            parser.exit(1, f"Document refused with {len(result.errors)} error(s).\n")
        errors = sum(1 for d in result.diagnostics if d.severity is Severity.ERROR)
        warnings = len(result.diagnostics) - errors
        print(
            f"OK: {result.stats.operations} operation(s), {result.stats.schemas} schema(s), "
            f"{errors} error(s), {warnings} warning(s)"
        )
    else:  # pragma: no cover - argparse enforces choices
        parser.exit(1, "Unknown command\n")


def _relativize(path: Path | None) -> str:
    if path is None:
        return "<not written>"
    try:
        return str(path.relative_to(Path.cwd()))
    except ValueError:
        return str(path)


if __name__ == "__main__":
    main(sys.argv[1:])
