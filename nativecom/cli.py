"""CLI entrypoints for nativecom commands."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from .diagnostics import Severity, format_diagnostic
from .identifiers import IdentifierError
from .logging import configure_logging
from .orchestrator import GenerationResult, Orchestrator


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
        help="Path to the project root (defaults to current directory).",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="nativecom",
        description="Generate in-process COM server glue for annotated class factories.",
    )
    _add_verbose_option(parser)
    subparsers = parser.add_subparsers(dest="command", required=True)

    generate_parser = subparsers.add_parser(
        "generate",
        help="Validate factory declarations and write the generated units.",
    )
    _add_verbose_option(generate_parser, suppress_default=True)
    _add_path_argument(generate_parser)
    generate_parser.add_argument(
        "--output",
        help="Directory receiving generated units (overrides generation.output_dir).",
    )
    generate_parser.add_argument(
        "--no-entry-points",
        action="store_true",
        help="Skip the DllGetClassObject/DllCanUnloadNow dispatch unit.",
    )
    generate_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Report which units would change without writing them.",
    )

    check_parser = subparsers.add_parser(
        "check",
        help="Validate factory declarations without writing anything.",
    )
    _add_verbose_option(check_parser, suppress_default=True)
    _add_path_argument(check_parser)

    lookup_parser = subparsers.add_parser(
        "lookup",
        help="Show which factory serves a class identifier.",
    )
    _add_verbose_option(lookup_parser, suppress_default=True)
    _add_path_argument(lookup_parser)
    lookup_parser.add_argument("clsid", help="Class identifier in 8-4-4-4-12 form.")

    serve_parser = subparsers.add_parser(
        "serve",
        help="Run the HTTP service exposing check and generate.",
    )
    _add_verbose_option(serve_parser, suppress_default=True)
    serve_parser.add_argument("--host", default="127.0.0.1")
    serve_parser.add_argument("--port", type=int, default=8000)

    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for nativecom commands."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    configure_logging(verbose=bool(args.verbose))

    orchestrator = Orchestrator()

    if args.command == "generate":
        dry_run = bool(getattr(args, "dry_run", False))
        try:
            outcome = orchestrator.run_generate(
                args.path,
                output_dir=args.output,
                dry_run=dry_run,
                emit_entry_points=False if args.no_entry_points else None,
            )
        except FileNotFoundError as exc:
            parser.exit(1, f"{exc}\n")
        except RuntimeError as exc:
            parser.exit(1, f"nativecom generate failed: {exc}\nRun with --verbose for more details.\n")
        _print_diagnostics(outcome.result)
        if not outcome.result.aborted:
            report = outcome.report
            verb = "Would write" if dry_run else "Wrote"
            for path in report.written:
                print(f"{verb} {_relativize(path)}")
            for path in report.removed:
                print(f"{'Would remove' if dry_run else 'Removed'} {_relativize(path)}")
            suffix = " (dry-run)" if dry_run else ""
            print(
                f"{len(outcome.result.units)} units in {_relativize(outcome.output_dir)}: "
                f"{len(report.written)} written, {len(report.unchanged)} unchanged, "
                f"{len(report.removed)} removed{suffix}"
            )
        _exit_on_errors(parser, outcome.result)
    elif args.command == "check":
        try:
            result = orchestrator.run_check(args.path)
        except FileNotFoundError as exc:
            parser.exit(1, f"{exc}\n")
        except RuntimeError as exc:
            parser.exit(1, f"nativecom check failed: {exc}\nRun with --verbose for more details.\n")
        _print_diagnostics(result)
        if not result.aborted:
            print(
                f"{len(result.validated)} of {len(result.declarations)} factory declarations are valid"
            )
        _exit_on_errors(parser, result)
    elif args.command == "lookup":
        try:
            found = orchestrator.lookup(args.path, args.clsid)
        except (FileNotFoundError, IdentifierError) as exc:
            parser.exit(1, f"{exc}\n")
        except RuntimeError as exc:
            parser.exit(1, f"nativecom lookup failed: {exc}\nRun with --verbose for more details.\n")
        if found.index is None:
            parser.exit(
                1,
                f"{found.identifier} is not served by this module (HRESULT {found.hresult})\n",
            )
        print(f"{found.identifier} -> [{found.index}] {found.factory} (creates {found.target})")
    elif args.command == "serve":
        from .service import run_service

        try:
            run_service(host=args.host, port=args.port)
        except RuntimeError as exc:
            parser.exit(1, f"{exc}\n")
    else:  # pragma: no cover - argparse enforces choices
        parser.exit(1, "Unknown command\n")


def _print_diagnostics(result: GenerationResult) -> None:
    for diagnostic in result.diagnostics:
        print(format_diagnostic(diagnostic), file=sys.stderr)


def _exit_on_errors(parser: argparse.ArgumentParser, result: GenerationResult) -> None:
    if result.has_errors:
        count = sum(1 for d in result.diagnostics if d.severity is Severity.ERROR)
        parser.exit(1, f"nativecom reported {count} error(s)\n")


def _relativize(path: Path) -> str:
    try:
        return str(path.relative_to(Path.cwd()))
    except ValueError:
        return str(path)


if __name__ == "__main__":
    main(sys.argv[1:])
