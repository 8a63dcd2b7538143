"""CLI entrypoints for repodoc commands."""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path

from .config import RepoDocConfig, load_config
from .errors import RepoDocError
from .logging import configure_logging
from .pipeline import DocumentationPipeline


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


def _add_project_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("-p", "--project", help="Path to the repository to document.")
    parser.add_argument("-c", "--config", help="Path to a .repodoc.yml configuration file.")
    parser.add_argument("-o", "--output", help="Output directory (defaults to <project>/docs).")
    parser.add_argument("-m", "--model", help="Ollama model name (default: deepseek-coder).")
    parser.add_argument("--base-url", help="Base URL of a local Ollama server.")
    parser.add_argument(
        "--max-tags",
        type=int,
        help="Only include the newest N tags in the changelog.",
    )
    parser.add_argument("--log-file", help="Also write logs to this file.")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="repodoc",
        description="Generate documentation and changelogs for a repository with a local Ollama model.",
    )
    _add_verbose_option(parser)
    subparsers = parser.add_subparsers(dest="command", required=True)

    generate_parser = subparsers.add_parser(
        "generate",
        help="Generate overview, per-file docs, changelog and summary.",
    )
    _add_verbose_option(generate_parser, suppress_default=True)
    _add_project_options(generate_parser)
    generate_parser.add_argument(
        "-t",
        "--temperature",
        type=float,
        help="Sampling temperature (default: 0.1).",
    )
    generate_parser.add_argument(
        "--batch-size",
        type=int,
        help="Number of files documented per batch (default: 10).",
    )
    generate_parser.add_argument(
        "--batch-delay",
        type=float,
        help="Seconds to wait between batches (default: 2).",
    )
    generate_parser.add_argument(
        "--max-files",
        type=int,
        help="Only analyze the first N source files.",
    )
    generate_parser.add_argument(
        "--exclude",
        action="append",
        default=None,
        metavar="GLOB",
        help="Exclude paths matching this glob (repeatable).",
    )
    generate_parser.add_argument(
        "--overview-only",
        action="store_true",
        help="Skip per-file documentation.",
    )

    changelog_parser = subparsers.add_parser(
        "changelog",
        help="Generate only CHANGELOG.md from version-control history.",
    )
    _add_verbose_option(changelog_parser, suppress_default=True)
    _add_project_options(changelog_parser)
    changelog_parser.add_argument(
        "--stdout",
        action="store_true",
        help="Print the changelog instead of writing CHANGELOG.md.",
    )

    serve_parser = subparsers.add_parser(
        "serve",
        help="Run the HTTP service exposing repodoc operations.",
    )
    _add_verbose_option(serve_parser, suppress_default=True)
    serve_parser.add_argument("--host", default="127.0.0.1", help="Interface to bind.")
    serve_parser.add_argument("--port", type=int, default=8000, help="Port to listen on.")

    return parser


def _load_config(parser: argparse.ArgumentParser, args: argparse.Namespace) -> RepoDocConfig:
    if not args.project and not args.config:
        parser.print_usage(sys.stderr)
        parser.exit(1, "repodoc: error: a project path (--project) or config file (--config) is required\n")

    if args.config:
        config_file = Path(args.config).expanduser()
        if not config_file.is_file():
            parser.print_usage(sys.stderr)
            parser.exit(1, f"repodoc: error: config file not found: {config_file}\n")
        config = load_config(config_file)
    else:
        config = load_config(Path(args.project))

    overrides = {
        "project_path": args.project,
        "output_path": args.output,
        "llm__model": args.model,
        "llm__base_url": args.base_url,
        "changelog__max_tags": args.max_tags,
    }
    if args.command == "generate":
        overrides.update(
            {
                "llm__temperature": args.temperature,
                "batch__size": args.batch_size,
                "batch__delay": args.batch_delay,
                "max_files": args.max_files,
                "exclude_paths": [*config.exclude_paths, *args.exclude] if args.exclude else None,
                "overview_only": True if args.overview_only else None,
            }
        )
    config = config.with_overrides(**overrides)

    if not config.project_path.is_dir():
        parser.exit(1, f"repodoc: error: project path not found: {config.project_path}\n")
    return config


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for repodoc commands."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    log_file = getattr(args, "log_file", None)
    configure_logging(
        verbose=bool(getattr(args, "verbose", False)),
        log_file=Path(log_file) if log_file else None,
    )

    if args.command == "serve":
        from .service import run_service

        run_service(host=args.host, port=args.port)
        return

    try:
        config = _load_config(parser, args)
        pipeline = DocumentationPipeline(config)
    except RepoDocError as exc:
        parser.exit(1, f"repodoc: configuration error: {exc}\n")

    if args.command == "generate":
        try:
            bundle = asyncio.run(pipeline.run())
        except Exception as exc:
            parser.exit(1, f"repodoc generate failed: {exc}\nRun with --verbose for more details.\n")
        output = _relativize(config.resolved_output_path)
        print(f"Documentation written to {output}")
        if bundle.metadata.files_failed:
            print(f"{bundle.metadata.files_failed} file(s) could not be documented; see their Markdown for details")
    elif args.command == "changelog":
        try:
            changelog = asyncio.run(pipeline.run_changelog())
        except Exception as exc:
            parser.exit(1, f"repodoc changelog failed: {exc}\nRun with --verbose for more details.\n")
        if args.stdout:
            sys.stdout.write(changelog)
            return
        output_dir = config.resolved_output_path
        try:
            output_dir.mkdir(parents=True, exist_ok=True)
            target = output_dir / "CHANGELOG.md"
            target.write_text(changelog, encoding="utf-8")
        except OSError as exc:
            parser.exit(1, f"repodoc changelog failed: {exc}\n")
        print(f"Changelog written to {_relativize(target)}")
    else:  # pragma: no cover - argparse enforces choices
        parser.exit(1, "Unknown command\n")


def _relativize(path: Path) -> str:
    try:
        return str(path.resolve().relative_to(Path.cwd()))
    except ValueError:
        return str(path)


if __name__ == "__main__":
    main(sys.argv[1:])
