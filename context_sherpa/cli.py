"""CLI entrypoints for context-sherpa commands."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from .config import load_settings
from .errors import ConfigError, EngineUnavailableError
from .logging import configure_logging
from .models import ToolResult
from .orchestrator import Orchestrator


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


def _add_timeout_option(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Abort the operation after this many seconds.",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="context-sherpa",
        description="Scan code with ast-grep rules and manage the project ruleset.",
    )
    _add_verbose_option(parser)
    parser.add_argument(
        "--project-root",
        type=Path,
        default=None,
        help="Directory to start the sgconfig.yml search from (defaults to the working directory).",
    )
    parser.add_argument(
        "--max-file-size",
        type=int,
        default=None,
        help="Skip files larger than this many bytes (default 1 MiB).",
    )
    parser.add_argument("--registry-url", default=None, help="Community rule registry base URL.")
    parser.add_argument(
        "--cache-ttl",
        type=float,
        default=None,
        help="Seconds to reuse the fetched community index (default 300).",
    )
    parser.add_argument("--ast-grep", default=None, help="Path to the ast-grep executable.")
    parser.add_argument("--log-file", type=Path, default=None, help="Also write logs to this file.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    serve_parser = subparsers.add_parser("serve", help="Run the HTTP service for agents.")
    _add_verbose_option(serve_parser, suppress_default=True)
    serve_parser.add_argument("--host", default="127.0.0.1", help="Interface to bind.")
    serve_parser.add_argument("--port", type=int, default=8000, help="Port to listen on.")

    init_parser = subparsers.add_parser(
        "init",
        help="Create sgconfig.yml and a rules/ directory in the project root.",
    )
    _add_verbose_option(init_parser, suppress_default=True)

    scan_parser = subparsers.add_parser(
        "scan",
        help="Scan a file, directory or glob pattern relative to the project root.",
    )
    _add_verbose_option(scan_parser, suppress_default=True)
    _add_timeout_option(scan_parser)
    scan_parser.add_argument("path", nargs="?", default=".", help="Path or glob to scan.")
    scan_parser.add_argument("--language", default=None, help="Only scan files of this language.")
    scan_parser.add_argument("--sgconfig", default=None, help="Alternate sgconfig.yml to use.")

    search_parser = subparsers.add_parser("search", help="Search the community rule registry.")
    _add_verbose_option(search_parser, suppress_default=True)
    _add_timeout_option(search_parser)
    search_parser.add_argument("query", nargs="?", default="", help="Free-text query.")
    search_parser.add_argument("--language", default=None, help="Language to filter by.")
    search_parser.add_argument(
        "--tags", default=None, help="Comma-separated tags that must all be present."
    )

    show_parser = subparsers.add_parser("show", help="Show a community rule and its YAML.")
    _add_verbose_option(show_parser, suppress_default=True)
    _add_timeout_option(show_parser)
    show_parser.add_argument("rule_id")

    import_parser = subparsers.add_parser(
        "import", help="Import a community rule into the local rule directory."
    )
    _add_verbose_option(import_parser, suppress_default=True)
    _add_timeout_option(import_parser)
    import_parser.add_argument("rule_id")

    remove_parser = subparsers.add_parser("remove", help="Remove a local rule.")
    _add_verbose_option(remove_parser, suppress_default=True)
    remove_parser.add_argument("rule_id")

    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for context-sherpa commands."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    configure_logging(verbose=bool(args.verbose), log_file=args.log_file)

    try:
        settings = load_settings(
            project_root=args.project_root,
            max_file_size=args.max_file_size,
            registry_url=args.registry_url,
            cache_ttl=args.cache_ttl,
            ast_grep=args.ast_grep,
        )
    except ConfigError as exc:
        parser.exit(2, f"context-sherpa: {exc}\n")

    orchestrator = Orchestrator(settings)

    if args.command == "serve":
        from .service import run_service

        run_service(args.host, args.port, orchestrator)
        return

    try:
        result = _dispatch(orchestrator, args)
    except EngineUnavailableError as exc:
        parser.exit(1, f"{exc}\nInstall ast-grep or pass --ast-grep with its location.\n")
    except OSError as exc:
        parser.exit(1, f"context-sherpa {args.command} failed: {exc}\n")

    for skipped in result.skipped:
        print(f"skipped {skipped.path} ({skipped.size} bytes)", file=sys.stderr)
    print(result.text)
    if not result.success:
        sys.exit(1)


def _dispatch(orchestrator: Orchestrator, args: argparse.Namespace) -> ToolResult:
    if args.command == "init":
        return orchestrator.initialize_project()
    if args.command == "scan":
        return orchestrator.scan_path(
            args.path, sgconfig=args.sgconfig, language=args.language, timeout=args.timeout
        )
    if args.command == "search":
        return orchestrator.search_community_rules(
            args.query, language=args.language, tags=args.tags, timeout=args.timeout
        )
    if args.command == "show":
        return orchestrator.get_community_rule_details(args.rule_id, timeout=args.timeout)
    if args.command == "import":
        return orchestrator.import_community_rule(args.rule_id, timeout=args.timeout)
    if args.command == "remove":
        return orchestrator.remove_rule(args.rule_id)
    raise ValueError(f"Unknown command: {args.command}")  # pragma: no cover - argparse enforces choices


if __name__ == "__main__":
    main(sys.argv[1:])
