"""
guidelint - Reporting and output formatting.

Handles:
- Finding dataclass
- Human-readable output
- JSON output
"""

from __future__ import annotations

import json
from collections import Counter
from dataclasses import asdict, dataclass
from typing import Iterable, Optional

from . import __version__


@dataclass
class Finding:
    """A single lint finding."""
    rule_id: str
    severity: str  # "ERROR", "WARN", "INFO"
    path: str
    line: int
    col: int
    message: str
    evidence: str = ""
    symbol: Optional[str] = None
    suggested_fix: Optional[str] = None
    is_doc: bool = False

    def __str__(self) -> str:
        loc = f"{self.path}:{self.line}:{self.col}"
        sym = f" [{self.symbol}]" if self.symbol else ""
        return f"{self.severity} {self.rule_id} {loc}{sym} - {self.message}"


def _sort_key(f: Finding) -> tuple:
    return (f.severity != "ERROR", f.path, f.line, f.col, f.rule_id)


class Reporter:
    """Collects and formats findings."""

    def __init__(self) -> None:
        self.findings: list[Finding] = []
        self.files_scanned = 0

    def add(self, finding: Finding) -> None:
        """Add a finding."""
        self.findings.append(finding)

    def extend(self, findings: Iterable[Finding]) -> None:
        for f in findings:
            self.add(f)

    @property
    def errors(self) -> list[Finding]:
        return [f for f in self.findings if f.severity == "ERROR"]

    @property
    def warnings(self) -> list[Finding]:
        return [f for f in self.findings if f.severity == "WARN"]

    def only_errors(self) -> None:
        """Drop everything below ERROR severity."""
        self.findings = self.errors

    def counts_by_rule(self) -> dict[str, int]:
        return dict(sorted(Counter(f.rule_id for f in self.findings).items()))

    def render_human(self) -> str:
        """Render findings as human-readable text."""
        if not self.findings:
            return f"guidelint v{__version__}: OK - no findings in {self.files_scanned} files"

        lines = [
            f"guidelint v{__version__}",
            f"Files: {self.files_scanned}  Errors: {len(self.errors)}  Warnings: {len(self.warnings)}",
            "",
        ]

        for f in sorted(self.findings, key=_sort_key):
            lines.append(str(f))
            if f.evidence:
                lines.append(f"    {f.evidence}")
            if f.suggested_fix:
                lines.append(f"    -> {f.suggested_fix}")

        return "\n".join(lines)

    def render_json(self) -> str:
        """Render findings as JSON."""
        payload = {
            "version": __version__,
            "summary": {
                "files": self.files_scanned,
                "errors": len(self.errors),
                "warnings": len(self.warnings),
                "by_rule": self.counts_by_rule(),
            },
            "findings": [asdict(f) for f in sorted(self.findings, key=_sort_key)],
        }
        return json.dumps(payload, indent=2, default=str)
