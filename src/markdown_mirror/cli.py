"""CLI commands for markdown-mirror.

This module provides command-line utilities for:
- Validating configuration
- Dumping configuration (with secrets redacted)
- Converting a local HTML file to markdown
- Running the HTTP service
"""
from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from markdown_mirror.adapters.markdown.converter import convert_html_to_markdown
from markdown_mirror.config.load import load_settings
from markdown_mirror.config.redact import redact_settings_dict
from markdown_mirror.config.settings import ConverterOptions
from markdown_mirror.config.validate import ConfigValidationError


def _config_path(args: argparse.Namespace) -> str | None:
    return getattr(args, "config", None)


def cmd_validate_config(args: argparse.Namespace) -> int:
    """Validate configuration and exit with appropriate code.

    Exit codes:
        0: Configuration is valid
        1: Configuration is invalid
    """
    try:
        settings = load_settings(config_path=_config_path(args))
    except ConfigValidationError as e:
        print(f"✗ Configuration is invalid: {e}", file=sys.stderr)
        return 1

    pipeline = settings.pipeline
    print("✓ Configuration is valid")
    print(f"  - Listen: {settings.server.host}:{settings.server.port}")
    print(f"  - Max upstream size: {pipeline.max_request_size} bytes")
    print(f"  - Fetch timeout: {pipeline.fetch_timeout_ms} ms")
    print(f"  - Exclusion rules: {len(pipeline.exclude.paths)}")
    print(f"  - Cache enabled: {pipeline.cache.enabled}")
    print(f"  - Router enabled: {settings.router.enabled}")
    print(f"  - Metrics enabled: {settings.observability.metrics_enabled}")
    return 0


def cmd_dump_config(args: argparse.Namespace) -> int:
    """Dump current configuration as JSON (with secrets redacted)."""
    try:
        settings = load_settings(config_path=_config_path(args))
    except ConfigValidationError as e:
        print(f"✗ Failed to load configuration: {e}", file=sys.stderr)
        return 1

    redacted = redact_settings_dict(settings.model_dump(mode="json"))
    print(json.dumps(redacted, indent=2, default=str))
    return 0


def _converter_options(args: argparse.Namespace) -> ConverterOptions | None:
    values = {
        "heading_style": args.heading_style,
        "code_block_style": args.code_block_style,
        "bullet_list_marker": args.bullet,
    }
    chosen = {key: value for key, value in values.items() if value is not None}
    return ConverterOptions(**chosen) if chosen else None


def cmd_convert(args: argparse.Namespace) -> int:
    """Convert a local HTML file (or stdin with '-') to markdown on stdout."""
    try:
        if args.file == "-":
            html = sys.stdin.read()
        else:
            html = Path(args.file).read_text(encoding="utf-8", errors="replace")
    except OSError as e:
        print(f"✗ Unable to read {args.file}: {e}", file=sys.stderr)
        return 1

    markdown = convert_html_to_markdown(html, args.base_url, _converter_options(args))
    sys.stdout.write(markdown)
    if markdown and not markdown.endswith("\n"):
        sys.stdout.write("\n")
    return 0


def cmd_serve(args: argparse.Namespace) -> int:
    """Run the HTTP service with uvicorn."""
    from markdown_mirror.runtime import serve

    try:
        settings = load_settings(config_path=_config_path(args))
    except ConfigValidationError as e:
        print(f"✗ Configuration is invalid: {e}", file=sys.stderr)
        return 1
    return serve(settings)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="markdown-mirror",
        description="Serve HTML pages as markdown under their .md twin paths",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to a YAML config file (default: CONFIG_PATH or config/config.yaml)",
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    validate_parser = subparsers.add_parser(
        "validate-config",
        help="Validate configuration and exit",
    )
    validate_parser.set_defaults(func=cmd_validate_config)

    dump_parser = subparsers.add_parser(
        "dump-config",
        help="Dump configuration as JSON (secrets redacted)",
    )
    dump_parser.set_defaults(func=cmd_dump_config)

    convert_parser = subparsers.add_parser(
        "convert",
        help="Convert a local HTML file to markdown",
    )
    convert_parser.add_argument("file", help="HTML file to convert, or '-' for stdin")
    convert_parser.add_argument(
        "--base-url",
        required=True,
        help="Absolute URL the document is resolved against (e.g. https://example.com/docs/page)",
    )
    convert_parser.add_argument("--heading-style", choices=("atx", "setext"), default=None)
    convert_parser.add_argument(
        "--code-block-style", choices=("fenced", "indented"), default=None
    )
    convert_parser.add_argument("--bullet", choices=("-", "+", "*"), default=None)
    convert_parser.set_defaults(func=cmd_convert)

    serve_parser = subparsers.add_parser("serve", help="Run the HTTP service")
    serve_parser.set_defaults(func=cmd_serve)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
