"""
guidelint - Main runner.

Orchestrates all lint checks over a tree or a single file.
"""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Optional

from .analysis import build_index
from .config import LintConfig, path_allowed, rule_enabled
from .docs import DOC_RULES
from .reporting import Finding, Reporter
from .rules import PYTHON_RULES, check_parse_error
from .scanner import DOC, PYTHON, SourceFile, file_kind, get_line, is_waived, load_sources

logger = logging.getLogger(__name__)


def _apply_filters(cfg: LintConfig, src: SourceFile, findings: list[Finding]) -> list[Finding]:
    kept: list[Finding] = []
    for f in findings:
        if not rule_enabled(cfg, f.rule_id):
            continue
        if path_allowed(cfg, f.rule_id, f.path):
            continue
        if is_waived(get_line(src.lines, f.line), f.rule_id):
            continue
        kept.append(f)
    return kept


def lint_source(cfg: LintConfig, src: SourceFile) -> list[Finding]:
    """Run every applicable check on one file."""
    findings: list[Finding] = []

    kind = file_kind(cfg, src.path)
    if kind == PYTHON:
        idx = build_index(src, cfg.principal_exprs)
        if idx.parse_error is not None:
            logger.debug(f"Parse failure in {src.path}: {idx.parse_error}")
            findings.extend(check_parse_error(cfg, src, idx))
        else:
            for rule in PYTHON_RULES:
                findings.extend(rule(cfg, src, idx))
    elif kind == DOC:
        for rule in DOC_RULES:
            findings.extend(rule(cfg, src))

    return _apply_filters(cfg, src, findings)


def run(root: Path, cfg: Optional[LintConfig] = None) -> Reporter:
    """Run all lint checks and return a Reporter with findings."""
    cfg = cfg or LintConfig(root=root)
    reporter = Reporter()
    started = time.perf_counter()

    sources = load_sources(cfg)
    reporter.files_scanned = len(sources)

    for src in sources:
        reporter.extend(lint_source(cfg, src))

    if cfg.errors_only:
        reporter.only_errors()

    elapsed = time.perf_counter() - started
    logger.info(
        f"Scanned {len(sources)} files under {cfg.root} in {elapsed:.2f}s: "
        f"{len(reporter.errors)} errors, {len(reporter.warnings)} warnings"
    )
    return reporter
