"""
guidelint - Configuration.

Runtime configuration, YAML config file loading and environment overrides.
For rule and marker definitions, see patterns.py.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Optional

import yaml

from . import patterns

logger = logging.getLogger(__name__)

# Config files looked up at the lint root (checked in order)
CONFIG_FILENAMES = ("guidelint.yaml", ".guidelint.yaml")

CONFIG_ENV_VAR = "GUIDELINT_CONFIG"


class ConfigError(ValueError):
    """Raised when a configuration file cannot be used."""


@dataclass
class LintConfig:
    """Runtime configuration for guidelint."""

    root: Path

    # File extensions
    python_exts: tuple[str, ...] = (".py",)
    docs_exts: tuple[str, ...] = (".md", ".markdown")

    # Directory exclusions
    exclude_dirs: tuple[str, ...] = (
        ".git",
        ".venv",
        "venv",
        "__pycache__",
        ".mypy_cache",
        ".pytest_cache",
        ".tox",
        "node_modules",
        "dist",
        "build",
    )

    # Layer classification (fnmatch globs over POSIX relative paths)
    web_globs: tuple[str, ...] = patterns.DEFAULT_WEB_GLOBS
    persistence_globs: tuple[str, ...] = patterns.DEFAULT_PERSISTENCE_GLOBS
    context_globs: tuple[str, ...] = patterns.DEFAULT_CONTEXT_GLOBS

    # Persistence markers
    persistence_modules: tuple[str, ...] = patterns.PERSISTENCE_MODULES
    persistence_roots: tuple[str, ...] = patterns.PERSISTENCE_ROOTS

    # Argument ordering
    scope_params: tuple[str, ...] = patterns.SCOPE_PARAMS

    # Authenticated handlers
    principal_exprs: tuple[str, ...] = patterns.PRINCIPAL_EXPRS
    auth_decorators: tuple[str, ...] = patterns.AUTH_DECORATORS
    route_decorators: tuple[str, ...] = patterns.ROUTE_DECORATORS
    max_principal_reads: int = 1

    # Rule selection (ids or id prefixes)
    select: tuple[str, ...] = ()
    ignore: tuple[str, ...] = ()

    # Per-rule path allowlists: rule id or prefix -> path substrings
    allow_paths: dict[str, tuple[str, ...]] = field(default_factory=dict)

    # Output settings
    json_output: bool = False
    errors_only: bool = False

    # Explicit file list (disables directory scan)
    explicit_files: Optional[tuple[Path, ...]] = None


# Keys a config file may not set
_RESERVED_KEYS = frozenset({"root", "explicit_files", "json_output"})


def _coerce(name: str, value: Any, default: Any) -> Any:
    """Coerce a YAML value onto the type of the dataclass default."""
    if isinstance(default, dict):
        if not isinstance(value, dict):
            raise ConfigError(f"'{name}' must be a mapping of rule id to paths")
        return {str(k).strip().upper(): _coerce(f"{name}.{k}", v, ()) for k, v in value.items()}
    if isinstance(default, tuple):
        if isinstance(value, str):
            return (value,)
        if not isinstance(value, (list, tuple)):
            raise ConfigError(f"'{name}' must be a list, got {type(value).__name__}")
        return tuple(str(v) for v in value)
    if isinstance(default, bool):
        if not isinstance(value, bool):
            raise ConfigError(f"'{name}' must be true or false")
        return value
    if isinstance(default, int):
        if isinstance(value, bool) or not isinstance(value, int):
            raise ConfigError(f"'{name}' must be an integer")
        return value
    return value


def apply_overrides(cfg: LintConfig, data: dict[str, Any], source: str = "<config>") -> LintConfig:
    """Return a copy of cfg with the given mapping applied."""
    known = {f.name: f for f in fields(cfg)}
    updates: dict[str, Any] = {}

    for key, value in data.items():
        name = str(key).replace("-", "_")
        if name not in known or name in _RESERVED_KEYS:
            raise ConfigError(f"{source}: unknown config key '{key}'")
        try:
            updates[name] = _coerce(name, value, getattr(cfg, name))
        except ConfigError as e:
            raise ConfigError(f"{source}: {e}") from None
        if name in ("select", "ignore"):
            updates[name] = tuple(i.strip().upper() for i in updates[name])

    return replace(cfg, **updates)


def find_config_file(root: Path) -> Optional[Path]:
    """Locate the config file for a root, honoring the environment override."""
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return Path(env_path)

    for name in CONFIG_FILENAMES:
        candidate = root / name
        if candidate.is_file():
            return candidate
    return None


def load_config(root: Path, explicit_path: Optional[Path] = None) -> LintConfig:
    """Build a LintConfig for root from defaults and an optional YAML file."""
    cfg = LintConfig(root=root)

    config_path = explicit_path or find_config_file(root)
    if config_path is None:
        logger.debug(f"No config file under {root}, using defaults")
        return cfg

    if not config_path.is_file():
        raise ConfigError(f"Config file not found: {config_path}")

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"{config_path}: invalid YAML: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"{config_path}: top level must be a mapping")

    logger.info(f"Loaded config from {config_path}")
    return apply_overrides(cfg, data, source=str(config_path))


def should_exclude_path(cfg: LintConfig, path: Path) -> bool:
    """Check if path should be excluded from scanning."""
    return any(d in path.parts for d in cfg.exclude_dirs)


def in_allowlist(path_str: str, allow: tuple[str, ...] | list[str]) -> bool:
    """Check if path contains any allowlist pattern."""
    path_norm = path_str.replace("\\", "/")
    return any(s in path_norm for s in allow)


def _matches_any(rule_id: str, ids: tuple[str, ...]) -> bool:
    return any(rule_id == i or rule_id.startswith(i.rstrip("-") + "-") for i in ids)


def rule_enabled(cfg: LintConfig, rule_id: str) -> bool:
    """Check selection: ignore wins over select, empty select means all."""
    if _matches_any(rule_id, cfg.ignore):
        return False
    if cfg.select:
        return _matches_any(rule_id, cfg.select)
    return True


def path_allowed(cfg: LintConfig, rule_id: str, path_str: str) -> bool:
    """Check if rule_id is allowlisted for this path via allow_paths."""
    return any(
        in_allowlist(path_str, allow)
        for ids, allow in cfg.allow_paths.items()
        if _matches_any(rule_id, (ids,))
    )
