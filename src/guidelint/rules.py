"""
guidelint - Python rule implementations.

This module applies patterns (from patterns.py) to Python source files.
Each rule function takes a source file plus its ModuleIndex and returns
findings. Waivers and rule selection are applied by the runner.
"""

from __future__ import annotations

from typing import Optional

from .analysis import FunctionInfo, ModuleIndex
from .config import LintConfig
from .layers import CONTEXT, WEB, classify_layer, is_persistence_module
from .patterns import (
    ORM_MANAGER_ATTRS,
    QUERY_BUILDER_CALLS,
    QUERY_BUILDER_METHODS,
    REQUEST_NAMES,
    RULE_CATALOG,
    WEB_FRAMEWORK_MODULES,
)
from .reporting import Finding
from .scanner import SourceFile, get_line, relpath_str


def _finding(
    rule_id: str,
    src: SourceFile,
    rel: str,
    line: int,
    col: int,
    message: str,
    symbol: Optional[str] = None,
    suggested_fix: Optional[str] = None,
) -> Finding:
    return Finding(
        rule_id=rule_id,
        severity=RULE_CATALOG[rule_id][0],
        path=rel,
        line=line,
        col=col,
        message=message,
        evidence=get_line(src.lines, line).strip()[:240],
        symbol=symbol,
        suggested_fix=suggested_fix,
    )


# =============================================================================
# Persistence / web layering
# =============================================================================

def check_web_imports(cfg: LintConfig, src: SourceFile, idx: ModuleIndex) -> list[Finding]:
    """LAYER-01: web-layer modules must not import persistence modules."""
    rel = relpath_str(cfg.root, src.path)
    if classify_layer(cfg, rel) != WEB:
        return []

    findings: list[Finding] = []
    for module, line, col in idx.imports:
        if not is_persistence_module(cfg, module):
            continue
        findings.append(_finding(
            "LAYER-01", src, rel, line, col,
            message=f"Web layer imports persistence module '{module}'.",
            symbol=module,
            suggested_fix="Call a context function instead of reaching into persistence.",
        ))
    return findings


def _from_web_framework(module: str) -> bool:
    return any(module == m or module.startswith(m + ".") for m in WEB_FRAMEWORK_MODULES)


def is_persistence_call(cfg: LintConfig, dotted: str, imported_names: Optional[dict[str, str]] = None) -> bool:
    """Check if a dotted call executes a persistence operation."""
    parts = dotted.split(".")
    if len(parts) < 2:
        return False
    source = (imported_names or {}).get(parts[0])
    from_web = source is not None and _from_web_framework(source)
    if parts[0] in cfg.persistence_roots:
        return not from_web
    # request.query.get("q") is a query string, not an ORM manager
    if from_web or parts[0] in REQUEST_NAMES or (parts[0] == "self" and parts[1] in REQUEST_NAMES):
        return False
    # Model.objects.filter(...), Model.query.get(...)
    return any(p in ORM_MANAGER_ATTRS for p in parts[1:-1])


def check_web_persistence_calls(cfg: LintConfig, src: SourceFile, idx: ModuleIndex) -> list[Finding]:
    """LAYER-02: web-layer modules must not call persistence symbols."""
    rel = relpath_str(cfg.root, src.path)
    if classify_layer(cfg, rel) != WEB:
        return []

    findings: list[Finding] = []
    for dotted, line, col in idx.dotted_calls:
        if not is_persistence_call(cfg, dotted, idx.imported_names):
            continue
        findings.append(_finding(
            "LAYER-02", src, rel, line, col,
            message=f"Web layer calls persistence symbol '{dotted}(...)'.",
            symbol=dotted,
            suggested_fix="Move the persistence call into a context function and call that.",
        ))
    return findings


# =============================================================================
# Argument ordering
# =============================================================================

def _scope_param(cfg: LintConfig, fn: FunctionInfo) -> Optional[str]:
    for name in fn.params + fn.kwonly:
        if name in cfg.scope_params:
            return name
    return None


def check_argument_order(cfg: LintConfig, src: SourceFile, idx: ModuleIndex) -> list[Finding]:
    """ARG-01: context functions take their scope argument first."""
    rel = relpath_str(cfg.root, src.path)
    if classify_layer(cfg, rel) != CONTEXT:
        return []

    findings: list[Finding] = []
    for fn in idx.functions:
        if fn.name.startswith("_"):
            continue
        scope = _scope_param(cfg, fn)
        if scope is None:
            continue
        if fn.params and fn.params[0] == scope:
            continue
        # Another scope-like name may already be first (e.g. scope, user)
        if fn.params and fn.params[0] in cfg.scope_params:
            continue
        findings.append(_finding(
            "ARG-01", src, rel, fn.line, fn.col,
            message=f"'{fn.qualname}' takes scope argument '{scope}' but not as its first parameter.",
            symbol=fn.qualname,
            suggested_fix=f"Reorder the signature so '{scope}' comes first.",
        ))
    return findings


# =============================================================================
# Query composition
# =============================================================================

def check_sql_assembly(cfg: LintConfig, src: SourceFile, idx: ModuleIndex) -> list[Finding]:
    """QUERY-01: SQL must not be assembled by string interpolation."""
    rel = relpath_str(cfg.root, src.path)
    findings: list[Finding] = []
    seen: set[tuple[int, int]] = set()

    for kind, line, col in idx.sql_builds:
        # Nested concatenations share their start position
        if (line, col) in seen:
            continue
        seen.add((line, col))
        findings.append(_finding(
            "QUERY-01", src, rel, line, col,
            message=f"SQL assembled with {kind}.",
            suggested_fix="Compose the query with bound parameters or a query builder.",
        ))
    return findings


def check_inline_queries(cfg: LintConfig, src: SourceFile, idx: ModuleIndex) -> list[Finding]:
    """QUERY-02: the web layer must not build queries inline."""
    rel = relpath_str(cfg.root, src.path)
    if classify_layer(cfg, rel) != WEB:
        return []

    findings: list[Finding] = []
    seen_lines: set[int] = set()

    sites = [(name, line, col) for name, line, col in idx.calls if name in QUERY_BUILDER_CALLS]
    sites += [(f".{name}", line, col) for name, line, col in idx.method_calls
              if name in QUERY_BUILDER_METHODS]

    for name, line, col in sorted(sites, key=lambda s: (s[1], s[2])):
        # One finding per line for chained builders
        if line in seen_lines:
            continue
        seen_lines.add(line)
        findings.append(_finding(
            "QUERY-02", src, rel, line, col,
            message=f"Query built inline with '{name}(...)' in the web layer.",
            symbol=name,
            suggested_fix="Compose the query in the context layer and expose it as a function.",
        ))
    return findings


# =============================================================================
# Authenticated handlers
# =============================================================================

def _has_decorator(fn: FunctionInfo, names: tuple[str, ...]) -> bool:
    return any(d.rsplit(".", 1)[-1] in names for d in fn.decorators)


def check_principal_reads(cfg: LintConfig, src: SourceFile, idx: ModuleIndex) -> list[Finding]:
    """AUTH-01: a handler resolves the authenticated principal once."""
    rel = relpath_str(cfg.root, src.path)
    if classify_layer(cfg, rel) != WEB:
        return []

    findings: list[Finding] = []
    for fn in idx.functions:
        reads = fn.principal_reads
        if len(reads) <= cfg.max_principal_reads:
            continue
        expr, line, col = reads[cfg.max_principal_reads]
        findings.append(_finding(
            "AUTH-01", src, rel, line, col,
            message=f"'{fn.qualname}' reads the authenticated principal {len(reads)} times "
                    f"(first: '{reads[0][0]}' at line {reads[0][1]}).",
            symbol=fn.qualname,
            suggested_fix="Bind the principal once at the top of the handler and pass it on.",
        ))
    return findings


def check_unguarded_handlers(cfg: LintConfig, src: SourceFile, idx: ModuleIndex) -> list[Finding]:
    """AUTH-02: route handlers reading the principal carry an auth guard."""
    rel = relpath_str(cfg.root, src.path)
    if classify_layer(cfg, rel) != WEB:
        return []

    findings: list[Finding] = []
    for fn in idx.functions:
        if not fn.principal_reads:
            continue
        if not _has_decorator(fn, cfg.route_decorators):
            continue
        if _has_decorator(fn, cfg.auth_decorators):
            continue
        expr = fn.principal_reads[0][0]
        findings.append(_finding(
            "AUTH-02", src, rel, fn.line, fn.col,
            message=f"Route handler '{fn.qualname}' reads '{expr}' without an auth guard.",
            symbol=fn.qualname,
            suggested_fix=f"Add one of: {', '.join(cfg.auth_decorators[:3])}.",
        ))
    return findings


def check_parse_error(cfg: LintConfig, src: SourceFile, idx: ModuleIndex) -> list[Finding]:
    """PARSE-01: report files that could not be parsed."""
    if idx.parse_error is None:
        return []
    rel = relpath_str(cfg.root, src.path)
    line = 1
    if idx.parse_error.startswith("line "):
        head = idx.parse_error[5:].split(":", 1)[0]
        if head.isdigit():
            line = int(head)
    return [_finding(
        "PARSE-01", src, rel, line, 0,
        message=f"Could not parse file: {idx.parse_error}",
    )]


# =============================================================================
# Registry
# =============================================================================

PYTHON_RULES = (
    check_web_imports,
    check_web_persistence_calls,
    check_argument_order,
    check_sql_assembly,
    check_inline_queries,
    check_principal_reads,
    check_unguarded_handlers,
)
