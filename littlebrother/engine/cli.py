"""CLI entry point for offline inspection.

Usage:
    littlebrother config --directory ~/project
    littlebrother scan build.log
    some-command | littlebrother scan
    littlebrother parse reply.txt
"""
from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

import yaml

from .decision_parser import parse_decision
from .policies.sanitizer import sanitize_locally
from .yaml_config import find_config_file, load_config


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="littlebrother",
        description="Inspect LittleBrother supervisor configuration and policies",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable debug logging",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    config_cmd = sub.add_parser(
        "config", help="Print the resolved configuration as YAML",
    )
    config_cmd.add_argument(
        "--directory", "-d",
        default=".",
        help="Project directory containing .opencode/ (default: current dir)",
    )

    scan_cmd = sub.add_parser(
        "scan",
        help="Truncate and redact secrets from text (no supervisor call)",
    )
    scan_cmd.add_argument(
        "file", nargs="?", default=None,
        help="File to scan (default: stdin)",
    )
    scan_cmd.add_argument(
        "--directory", "-d",
        default=".",
        help="Project directory whose sanitizer settings apply",
    )

    parse_cmd = sub.add_parser(
        "parse", help="Parse a supervisor reply and print the decision",
    )
    parse_cmd.add_argument(
        "file", nargs="?", default=None,
        help="File holding the reply text (default: stdin)",
    )

    args = parser.parse_args(argv)

    level = logging.DEBUG if args.verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
        datefmt="%H:%M:%S",
    )

    if args.command == "config":
        return _cmd_config(args.directory)
    if args.command == "scan":
        return _cmd_scan(args.file, args.directory)
    return _cmd_parse(args.file)


def _read_input(file_path: str | None) -> str:
    if file_path is None:
        return sys.stdin.read()
    p = Path(file_path)
    if not p.is_file():
        print(f"Error: File not found: {file_path}", file=sys.stderr)
        sys.exit(1)
    return p.read_text(encoding="utf-8", errors="replace")


def _cmd_config(directory: str) -> int:
    source = find_config_file(directory)
    config = load_config(directory)
    print(f"# source: {source or 'defaults'}")
    print(yaml.safe_dump(config.summary(), sort_keys=False), end="")
    return 0


def _cmd_scan(file_path: str | None, directory: str) -> int:
    config = load_config(directory)
    result = sanitize_locally(_read_input(file_path), config.sanitizer)
    sys.stdout.write(result.content)
    if result.truncated:
        print(
            f"truncated to {config.sanitizer.max_output_chars} characters",
            file=sys.stderr,
        )
    print(f"redacted {len(result.redactions)} potential secret(s)", file=sys.stderr)
    return 1 if result.redactions else 0


def _cmd_parse(file_path: str | None) -> int:
    decision = parse_decision(_read_input(file_path))
    payload = {"status": decision.kind.value, "reason": decision.reason}
    if decision.replacement is not None:
        payload["replacement"] = decision.replacement
    print(json.dumps(payload, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
