"""
CLI entry point for guidelint.

Usage:
    guidelint [root]                     Lint Python and Markdown files under root
    guidelint --json                     Machine-readable output
    guidelint --errors-only              Only report ERROR findings
    guidelint --files a.py b.md          Lint only these files
    guidelint --files-from files.json    Lint files listed in a JSON manifest
    guidelint --select LAYER,QUERY-01    Only run these rules (ids or prefixes)
    guidelint --ignore DOC-EXAMPLE       Skip these rules
    guidelint --list-rules               Show the rule catalog
    guidelint --watch                    Re-lint files as they change

Exit codes: 0 no errors, 1 errors found, 2 configuration or usage error.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import replace
from pathlib import Path
from typing import Optional, Sequence

from . import __version__
from .config import ConfigError, load_config
from .patterns import RULE_CATALOG
from .runner import run

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FINDINGS = 1
EXIT_USAGE = 2


def _split_ids(values: Optional[list[str]]) -> tuple[str, ...]:
    ids: list[str] = []
    for value in values or []:
        ids.extend(v.strip().upper() for v in value.split(",") if v.strip())
    return tuple(ids)


def _check_ids(ids: tuple[str, ...]) -> None:
    for rule_id in ids:
        prefix = rule_id.rstrip("-") + "-"
        if rule_id not in RULE_CATALOG and not any(r.startswith(prefix) for r in RULE_CATALOG):
            raise ConfigError(f"Unknown rule id or prefix: {rule_id}")


def read_manifest(manifest_path: Path) -> tuple[Path, ...]:
    """Read a JSON manifest: an array of paths or {"files": [...]}."""
    try:
        data = json.loads(manifest_path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigError(f"Cannot read manifest {manifest_path}: {e}") from e

    if isinstance(data, dict):
        data = data.get("files")
    if not isinstance(data, list):
        raise ConfigError(f"{manifest_path}: expected a list of paths or {{\"files\": [...]}}")
    return tuple(Path(f).resolve() for f in data)


def render_rules() -> str:
    lines = []
    for rule_id, (severity, description) in RULE_CATALOG.items():
        lines.append(f"{rule_id:<12} {severity:<6} {description}")
    return "\n".join(lines)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="guidelint",
        description=f"guidelint v{__version__} - web-application convention linter",
    )
    parser.add_argument(
        "root",
        nargs="?",
        default=".",
        help="Root directory to scan (default: current directory)",
    )
    parser.add_argument("--json", action="store_true", help="Output as JSON")
    parser.add_argument("--errors-only", action="store_true", help="Only show ERROR severity")
    parser.add_argument("--config", metavar="PATH", help="YAML config file (default: guidelint.yaml at root)")
    parser.add_argument(
        "--select",
        action="append",
        metavar="IDS",
        help="Comma-separated rule ids or prefixes to run (repeatable)",
    )
    parser.add_argument(
        "--ignore",
        action="append",
        metavar="IDS",
        help="Comma-separated rule ids or prefixes to skip (repeatable)",
    )
    parser.add_argument(
        "--files",
        nargs="*",
        metavar="FILE",
        help="Lint only these specific files (disables directory scan)",
    )
    parser.add_argument(
        "--files-from",
        metavar="MANIFEST",
        help="Read file list from JSON manifest (array of paths)",
    )
    parser.add_argument("--list-rules", action="store_true", help="List rules and exit")
    parser.add_argument("--watch", action="store_true", help="Watch root and lint files as they change")
    parser.add_argument(
        "--interval",
        type=float,
        default=0.75,
        help="Watch poll interval in seconds (default: 0.75)",
    )
    parser.add_argument(
        "--full-scan-mins",
        type=int,
        default=45,
        help="Watch full scan interval in minutes (default: 45, 0 disables)",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    parser.add_argument("--version", action="version", version=f"guidelint {__version__}")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    if args.list_rules:
        print(render_rules())
        return EXIT_OK

    root = Path(args.root).resolve()
    if not root.is_dir():
        print(f"guidelint: root is not a directory: {root}", file=sys.stderr)
        return EXIT_USAGE

    try:
        cfg = load_config(root, Path(args.config) if args.config else None)

        select, ignore = _split_ids(args.select), _split_ids(args.ignore)
        _check_ids(select + ignore + cfg.select + cfg.ignore + tuple(cfg.allow_paths))

        explicit_files = None
        if args.files:
            explicit_files = tuple(Path(f).resolve() for f in args.files)
        elif args.files_from:
            explicit_files = read_manifest(Path(args.files_from))
    except ConfigError as e:
        print(f"guidelint: {e}", file=sys.stderr)
        return EXIT_USAGE

    cfg = replace(
        cfg,
        select=select or cfg.select,
        ignore=cfg.ignore + ignore,
        json_output=args.json,
        errors_only=args.errors_only or cfg.errors_only,
        explicit_files=explicit_files,
    )
    logger.debug(f"Effective config: {cfg}")

    if args.watch:
        from .watch import run_watch
        logging.getLogger("guidelint").setLevel(logging.DEBUG if args.verbose else logging.INFO)
        return run_watch(
            cfg,
            interval=max(0.1, args.interval),
            full_scan_mins=max(0, args.full_scan_mins),
        )

    reporter = run(root, cfg)

    if cfg.json_output:
        print(reporter.render_json())
    else:
        print(reporter.render_human())

    return EXIT_FINDINGS if reporter.errors else EXIT_OK


if __name__ == "__main__":
    raise SystemExit(main())
