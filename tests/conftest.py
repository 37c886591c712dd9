"""
Pytest configuration and shared fixtures.
"""

import sys
import textwrap
from pathlib import Path

import pytest

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from guidelint.config import CONFIG_ENV_VAR, LintConfig
from guidelint.runner import lint_source
from guidelint.scanner import load_source


REPO_ROOT = Path(__file__).parent.parent


@pytest.fixture(autouse=True)
def _no_config_env(monkeypatch):
    """Keep a developer's GUIDELINT_CONFIG out of the tests."""
    monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)


# =============================================================================
# FILE FIXTURES
# =============================================================================

@pytest.fixture
def write_file(tmp_path):
    """Write a dedented file under tmp_path, return its path."""
    def _write(rel: str, text: str) -> Path:
        path = tmp_path / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(textwrap.dedent(text).lstrip("\n"), encoding="utf-8")
        return path
    return _write


@pytest.fixture
def lint(tmp_path, write_file):
    """Write one file and lint it with a LintConfig rooted at tmp_path."""
    def _lint(rel: str, text: str, **overrides):
        path = write_file(rel, text)
        cfg = LintConfig(root=tmp_path, **overrides)
        return lint_source(cfg, load_source(path))
    return _lint

