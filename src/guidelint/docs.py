"""
guidelint - Style-guide document checks.

Checks the Markdown documents of a "don't do this / do this" style guide:
- every fenced code block is closed
- every "Don't" section is followed by an "Instead" section
- every "Instead" section answers a "Don't"
- every Don't/Do section carries a code example
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterator, Optional

from .config import LintConfig
from .patterns import DO_MARKER_RX, DONT_MARKER_RX, MARKER_MAX_LEN, RULE_CATALOG
from .reporting import Finding
from .scanner import SourceFile, relpath_str

# Leading whitespace is ignored so fences nested in list items count
_RX_FENCE_OPEN = re.compile(r"^\s*(?P<fence>`{3,}|~{3,})(?P<info>.*)$")
_RX_FENCE_CLOSE = re.compile(r"^\s*(?P<fence>`{3,}|~{3,})\s*$")
_RX_HEADING = re.compile(r"^\s{0,3}(?P<hashes>#{1,6})(?:\s+|$)(?P<text>.*?)\s*#*\s*$")
_RX_LEAD = re.compile(r"^\s*(?:>\s*)*(?:[-*+]\s+|\d+[.)]\s+)?")
_RX_HTML_COMMENT = re.compile(r"<!--.*?-->")

DONT = "dont"
DO = "do"


@dataclass(frozen=True)
class Fence:
    """A fenced code block. close_line is None when never closed."""
    open_line: int
    close_line: Optional[int]
    char: str
    length: int
    info: str


@dataclass(frozen=True)
class Marker:
    """A Don't or Do section marker."""
    kind: str
    line: int
    text: str
    heading_level: Optional[int] = None


def iter_fences(lines: list[str]) -> Iterator[Fence]:
    """Yield fenced code blocks in order (1-based line numbers)."""
    current: Optional[tuple[int, str, int, str]] = None

    for i, line in enumerate(lines, start=1):
        if current is None:
            m = _RX_FENCE_OPEN.match(line)
            if m is None:
                continue
            fence, info = m.group("fence"), m.group("info").strip()
            # A backtick fence may not carry backticks in its info string
            if fence[0] == "`" and "`" in info:
                continue
            current = (i, fence[0], len(fence), info)
        else:
            m = _RX_FENCE_CLOSE.match(line)
            if m is None:
                continue
            fence = m.group("fence")
            open_line, char, length, info = current
            if fence[0] == char and len(fence) >= length:
                yield Fence(open_line, i, char, length, info)
                current = None

    if current is not None:
        open_line, char, length, info = current
        yield Fence(open_line, None, char, length, info)


def fenced_lines(lines: list[str]) -> set[int]:
    """Line numbers inside (or delimiting) fenced code blocks."""
    inside: set[int] = set()
    for fence in iter_fences(lines):
        end = fence.close_line if fence.close_line is not None else len(lines)
        inside.update(range(fence.open_line, end + 1))
    return inside


def heading_level(line: str) -> Optional[int]:
    m = _RX_HEADING.match(line)
    return len(m.group("hashes")) if m else None


def marker_text(line: str) -> Optional[str]:
    """
    Return the bare text of a marker-shaped line, or None.

    Marker-shaped means a heading, a fully emphasised lead line
    ("**Don't do this**") or a short line ending in a colon
    ("Instead, do this:").
    """
    line = _RX_HTML_COMMENT.sub("", line)
    m = _RX_HEADING.match(line)
    if m:
        text = m.group("text")
    else:
        body = _RX_LEAD.sub("", line, count=1).strip()
        if not body:
            return None
        emphasised = body[0] in "*_" and body.rstrip(":").endswith(body[0])
        if not (emphasised or body.endswith(":")):
            return None
        text = body

    text = text.strip().strip("*_").strip().rstrip(":").strip().strip("*_").strip()
    if not text or len(text) > MARKER_MAX_LEN:
        return None
    return text


def find_markers(lines: list[str]) -> list[Marker]:
    """Collect Don't/Do markers outside fenced code."""
    skip = fenced_lines(lines)
    markers: list[Marker] = []

    for i, line in enumerate(lines, start=1):
        if i in skip:
            continue
        text = marker_text(line)
        if text is None:
            continue
        if DONT_MARKER_RX.match(text):
            kind = DONT
        elif DO_MARKER_RX.match(text):
            kind = DO
        else:
            continue
        markers.append(Marker(kind=kind, line=i, text=text, heading_level=heading_level(line)))

    return markers


def _finding(rule_id: str, rel: str, line: int, message: str, evidence: str = "",
             suggested_fix: Optional[str] = None) -> Finding:
    return Finding(
        rule_id=rule_id,
        severity=RULE_CATALOG[rule_id][0],
        path=rel,
        line=line,
        col=0,
        message=message,
        evidence=evidence.strip()[:240],
        suggested_fix=suggested_fix,
        is_doc=True,
    )


# =============================================================================
# Rule Functions
# =============================================================================

def check_fences(cfg: LintConfig, src: SourceFile) -> list[Finding]:
    """DOC-FENCE: every opened fence is closed."""
    rel = relpath_str(cfg.root, src.path)
    findings: list[Finding] = []

    for fence in iter_fences(src.lines):
        if fence.close_line is not None:
            continue
        findings.append(_finding(
            "DOC-FENCE", rel, fence.open_line,
            message=f"Code fence '{fence.char * fence.length}' opened here is never closed.",
            evidence=src.lines[fence.open_line - 1],
            suggested_fix=f"Close the block with a line of at least {fence.length} '{fence.char}'.",
        ))
    return findings


def check_pairing(cfg: LintConfig, src: SourceFile) -> list[Finding]:
    """DOC-PAIR / DOC-ORPHAN: Don't and Instead sections come in pairs."""
    rel = relpath_str(cfg.root, src.path)
    findings: list[Finding] = []
    markers = find_markers(src.lines)
    marker_lines = {m.line for m in markers}
    skip = fenced_lines(src.lines)

    pending: Optional[Marker] = None
    seen_dont_in_section = False
    section_start = 0
    cursor = 0

    for marker in markers:
        # A plain heading between markers starts a new section
        for i in range(cursor + 1, marker.line):
            if i not in skip and i not in marker_lines and heading_level(src.lines[i - 1]):
                section_start = i
                seen_dont_in_section = False
        cursor = marker.line

        if marker.kind == DONT:
            if pending is not None:
                findings.append(_unpaired(rel, src, pending))
            pending = marker
            seen_dont_in_section = True
            continue

        if pending is not None:
            pending = None
        elif not seen_dont_in_section:
            findings.append(_finding(
                "DOC-ORPHAN", rel, marker.line,
                message=f"'{marker.text}' has no preceding \"Don't\" section"
                        + (f" since the heading at line {section_start}." if section_start else "."),
                evidence=src.lines[marker.line - 1],
            ))

    if pending is not None:
        findings.append(_unpaired(rel, src, pending))

    return findings


def _unpaired(rel: str, src: SourceFile, marker: Marker) -> Finding:
    return _finding(
        "DOC-PAIR", rel, marker.line,
        message=f"'{marker.text}' is not followed by an \"Instead, do this\" section.",
        evidence=src.lines[marker.line - 1],
        suggested_fix="Follow every counter-example with the recommended form.",
    )


def _section_end(lines: list[str], markers: list[Marker], idx: int, skip: set[int]) -> int:
    """Last line (inclusive) of the section opened by markers[idx]."""
    marker = markers[idx]
    next_marker = markers[idx + 1].line if idx + 1 < len(markers) else len(lines) + 1
    for i in range(marker.line + 1, next_marker):
        if i in skip:
            continue
        level = heading_level(lines[i - 1])
        if level is None:
            continue
        if marker.heading_level is None or level <= marker.heading_level:
            return i - 1
    return next_marker - 1


def check_examples(cfg: LintConfig, src: SourceFile) -> list[Finding]:
    """DOC-EXAMPLE: every Don't/Do section shows code."""
    rel = relpath_str(cfg.root, src.path)
    findings: list[Finding] = []
    markers = find_markers(src.lines)
    skip = fenced_lines(src.lines)
    fence_starts = [f.open_line for f in iter_fences(src.lines)]

    for idx, marker in enumerate(markers):
        end = _section_end(src.lines, markers, idx, skip)
        if any(marker.line < start <= end for start in fence_starts):
            continue
        label = "counter-example" if marker.kind == DONT else "example"
        findings.append(_finding(
            "DOC-EXAMPLE", rel, marker.line,
            message=f"'{marker.text}' section has no fenced {label}.",
            evidence=src.lines[marker.line - 1],
        ))
    return findings


DOC_RULES = (
    check_fences,
    check_pairing,
    check_examples,
)
