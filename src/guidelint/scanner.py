"""
guidelint - File scanning and source loading.

Handles:
- Directory walking with exclusions
- Source file loading
- Inline waiver detection
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Optional

from .config import LintConfig, should_exclude_path
from .patterns import WAIVER_RX

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SourceFile:
    """A loaded source file with content."""
    path: Path
    text: str
    lines: list[str]


PYTHON = "python"
DOC = "doc"


def file_kind(cfg: LintConfig, path: Path) -> Optional[str]:
    """Return PYTHON or DOC by the configured extensions, else None."""
    suffix = path.suffix.lower()
    if suffix in {e.lower() for e in cfg.python_exts}:
        return PYTHON
    if suffix in {e.lower() for e in cfg.docs_exts}:
        return DOC
    return None


def load_source(path: Path) -> SourceFile:
    """Load a single source file."""
    text = path.read_text(encoding="utf-8", errors="replace")
    return SourceFile(path=path, text=text, lines=text.splitlines())


def iter_files(cfg: LintConfig) -> Iterator[Path]:
    """Iterate over all relevant files under root (or explicit list)."""
    if cfg.explicit_files is not None:
        for path in cfg.explicit_files:
            if path.is_file():
                yield path
            else:
                logger.warning(f"Skipping {path}: not a file")
        return

    for path in sorted(cfg.root.rglob("*")):
        if not path.is_file():
            continue
        if should_exclude_path(cfg, path.relative_to(cfg.root)):
            continue
        if file_kind(cfg, path) is not None:
            yield path


def load_sources(cfg: LintConfig) -> list[SourceFile]:
    """Load all source files under root."""
    sources: list[SourceFile] = []
    for path in iter_files(cfg):
        try:
            sources.append(load_source(path))
        except OSError as e:
            logger.warning(f"Error reading {path}: {e}")
    logger.debug(f"Loaded {len(sources)} files under {cfg.root}")
    return sources


def relpath_str(root: Path, p: Path) -> str:
    """Get relative path as posix string."""
    try:
        return p.relative_to(root).as_posix()
    except ValueError:
        return p.as_posix()


def get_line(lines: list[str], line_no: int) -> str:
    """Get line by 1-based line number."""
    if line_no <= 0 or line_no > len(lines):
        return ""
    return lines[line_no - 1]


# =============================================================================
# Waivers
# =============================================================================

def waived_rules(line_text: str) -> Optional[frozenset[str]]:
    """
    Parse an inline waiver on a line.

    Returns None when the line has no waiver, an empty frozenset for a
    blanket "# guidelint: ignore", or the set of listed rule ids.
    """
    m = WAIVER_RX.search(line_text)
    if m is None:
        return None
    ids = m.group("ids")
    if ids is None:
        return frozenset()
    return frozenset(i.strip().upper() for i in ids.split(",") if i.strip())


def is_waived(line_text: str, rule_id: str) -> bool:
    """Check if rule_id is waived on this line."""
    waived = waived_rules(line_text)
    if waived is None:
        return False
    return not waived or rule_id in waived
