"""
guidelint - Layer classification.

Maps a file to the architectural layer it belongs to:
web (controllers, views, routes), persistence (repositories, models, db)
or context (the service boundary the web layer is meant to call).
"""

from __future__ import annotations

import fnmatch
from typing import Optional

from .config import LintConfig
from .patterns import PERSISTENCE_MODULE_SEGMENTS

WEB = "web"
PERSISTENCE = "persistence"
CONTEXT = "context"


def _glob_match(rel_path: str, globs: tuple[str, ...]) -> bool:
    # "*/views.py" should also match a top-level "views.py"
    candidates = (rel_path, "/" + rel_path)
    return any(fnmatch.fnmatch(c, g) for g in globs for c in candidates)


def classify_layer(cfg: LintConfig, rel_path: str) -> Optional[str]:
    """Return the layer of a POSIX relative path, or None if unclassified."""
    rel_path = rel_path.replace("\\", "/")
    if _glob_match(rel_path, cfg.web_globs):
        return WEB
    if _glob_match(rel_path, cfg.persistence_globs):
        return PERSISTENCE
    if _glob_match(rel_path, cfg.context_globs):
        return CONTEXT
    return None


def is_persistence_module(cfg: LintConfig, module: str) -> bool:
    """
    Check if an imported module belongs to the persistence layer.

    True for configured third-party prefixes (sqlalchemy, django.db, ...)
    and for in-project modules with a repository/db segment
    (myapp.repo, .repositories.users, ..db).
    """
    bare = module.lstrip(".")
    for prefix in cfg.persistence_modules:
        if bare == prefix or bare.startswith(prefix + "."):
            return True
    segments = [s for s in bare.split(".") if s]
    return any(s in PERSISTENCE_MODULE_SEGMENTS for s in segments)
