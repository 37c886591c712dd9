"""
guidelint - Pattern definitions.

This module contains PURE DATA: the rule catalog, layer globs and the
markers each rule looks for. Edit this file to adjust the conventions.
No logic here.

Organization:
1. RULE_CATALOG - Rule ids, default severity, one-line description
2. LAYER GLOBS - Default web / persistence / context file patterns
3. PERSISTENCE MARKERS - Modules and call roots that touch storage
4. QUERY MARKERS - SQL keywords and query-builder calls
5. SCOPE PARAMS - Names of the argument that scopes a context call
6. AUTH MARKERS - Principal reads, auth guards, route decorators
7. DOC MARKERS - Don't / Do phrases in style-guide documents
8. WAIVER TAG - Inline suppression comment
"""

from __future__ import annotations

import re

# =============================================================================
# 1. RULE CATALOG
# =============================================================================
# Dict: rule_id -> (severity, description)

RULE_CATALOG: dict[str, tuple[str, str]] = {
    "LAYER-01": ("ERROR", "Web layer imports a persistence module"),
    "LAYER-02": ("ERROR", "Web layer calls a persistence symbol directly"),
    "ARG-01": ("WARN", "Scope argument is not the first parameter of a context function"),
    "QUERY-01": ("ERROR", "SQL text assembled by interpolation or concatenation"),
    "QUERY-02": ("WARN", "Query constructed inline in the web layer"),
    "AUTH-01": ("WARN", "Handler reads the authenticated principal more than once"),
    "AUTH-02": ("WARN", "Route handler reads the principal without an auth guard"),
    "PARSE-01": ("WARN", "Python file could not be parsed"),
    "DOC-FENCE": ("ERROR", "Fenced code block is never closed"),
    "DOC-PAIR": ("ERROR", "\"Don't\" section is not followed by an \"Instead\" section"),
    "DOC-ORPHAN": ("WARN", "\"Instead\" section without a preceding \"Don't\" section"),
    "DOC-EXAMPLE": ("WARN", "Don't/Do section has no code example"),
}


# =============================================================================
# 2. LAYER GLOBS
# =============================================================================
# Matched against POSIX paths relative to the lint root.
# Checked in order: web, persistence, context.

DEFAULT_WEB_GLOBS: tuple[str, ...] = (
    "*/views.py",
    "*/views/*",
    "*/controllers/*",
    "*/controller.py",
    "*/routes.py",
    "*/routes/*",
    "*/handlers/*",
    "*/web/*",
    "*/api/*",
    "*/endpoints/*",
)

DEFAULT_PERSISTENCE_GLOBS: tuple[str, ...] = (
    "*/repo.py",
    "*/repos/*",
    "*/repository.py",
    "*/repositories/*",
    "*/db/*",
    "*/db.py",
    "*/models.py",
    "*/models/*",
    "*/migrations/*",
)

DEFAULT_CONTEXT_GLOBS: tuple[str, ...] = (
    "*/services/*",
    "*/service.py",
    "*/contexts/*",
    "*/context.py",
    "*/domain/*",
    "*/accounts.py",
)


# =============================================================================
# 3. PERSISTENCE MARKERS
# =============================================================================

# Import prefixes that belong to the persistence layer
PERSISTENCE_MODULES: tuple[str, ...] = (
    "sqlalchemy",
    "sqlmodel",
    "psycopg",
    "psycopg2",
    "asyncpg",
    "sqlite3",
    "pymongo",
    "motor",
    "peewee",
    "pony.orm",
    "tortoise",
    "django.db",
    "flask_sqlalchemy",
)

# Module path segments that mark an in-project persistence package
PERSISTENCE_MODULE_SEGMENTS: frozenset[str] = frozenset({
    "repo",
    "repos",
    "repository",
    "repositories",
    "db",
    "database",
})

# Names whose dotted calls execute persistence operations
PERSISTENCE_ROOTS: tuple[str, ...] = (
    "Repo",
    "repo",
    "session",
    "db",
    "cursor",
    "conn",
    "connection",
    "engine",
)

# Frameworks whose names shadow persistence roots (flask.session is a cookie)
WEB_FRAMEWORK_MODULES: frozenset[str] = frozenset({
    "flask",
    "quart",
    "werkzeug",
    "starlette",
    "fastapi",
    "django.http",
    "django.contrib.sessions",
    "aiohttp",
})

# Names bound to the incoming request in handlers
REQUEST_NAMES: frozenset[str] = frozenset({"request", "req"})

# ORM manager attributes: Model.objects.filter(), Model.query.get()
ORM_MANAGER_ATTRS: frozenset[str] = frozenset({"objects", "query"})


# =============================================================================
# 4. QUERY MARKERS
# =============================================================================

SQL_STATEMENT_RX = re.compile(
    r"\b(SELECT\s.+?\sFROM|INSERT\s+INTO|UPDATE\s+\w+\s+SET|DELETE\s+FROM)\b",
    re.IGNORECASE | re.DOTALL,
)

# Clause fragments appended to a statement (uppercase only, prose is not SQL)
SQL_FRAGMENT_RX = re.compile(r"\b(WHERE|ORDER BY|GROUP BY|LIMIT|JOIN|VALUES)\s")

# Bare-name calls that start a query
QUERY_BUILDER_CALLS: frozenset[str] = frozenset({"select", "update", "delete", "insert"})

# Method names that build a query
QUERY_BUILDER_METHODS: frozenset[str] = frozenset({
    "where",
    "filter",
    "filter_by",
    "order_by",
    "group_by",
    "outerjoin",
    "having",
    "exclude",
    "annotate",
})


# =============================================================================
# 5. SCOPE PARAMS
# =============================================================================

SCOPE_PARAMS: tuple[str, ...] = (
    "scope",
    "current_scope",
    "current_user",
    "user",
    "actor",
    "principal",
)


# =============================================================================
# 6. AUTH MARKERS
# =============================================================================

# Dotted expressions that read the authenticated principal
PRINCIPAL_EXPRS: tuple[str, ...] = (
    "request.user",
    "self.request.user",
    "request.state.user",
    "g.user",
    "flask.g.user",
    "current_user",
    "flask_login.current_user",
    "session.user_id",
)

# Subscripts of these names with these keys also read the principal
PRINCIPAL_SUBSCRIPTS: dict[str, frozenset[str]] = {
    "session": frozenset({"user_id", "user", "uid"}),
    "request.session": frozenset({"user_id", "user", "uid"}),
}

AUTH_DECORATORS: tuple[str, ...] = (
    "login_required",
    "requires_auth",
    "require_auth",
    "authenticated",
    "auth_required",
    "permission_required",
    "permission_classes",
    "jwt_required",
)

# Decorator name suffixes that mark a function as a route handler
ROUTE_DECORATORS: tuple[str, ...] = (
    "route",
    "get",
    "post",
    "put",
    "patch",
    "delete",
    "api_view",
    "websocket",
)


# =============================================================================
# 7. DOC MARKERS
# =============================================================================
# Matched against a line with heading hashes, list bullets, emphasis and
# blockquote markers stripped.

DONT_MARKER_RX = re.compile(
    r"^(don'?t|don’t|do\s+not|avoid|bad)\b",
    re.IGNORECASE,
)

DO_MARKER_RX = re.compile(
    r"^(instead|do(?!\s+not\b)|prefer|good)\b",
    re.IGNORECASE,
)

# Lead lines longer than this are prose, not section markers
MARKER_MAX_LEN = 80


# =============================================================================
# 8. WAIVER TAG
# =============================================================================
# "# guidelint: ignore" or "# guidelint: ignore[LAYER-02, QUERY-01]".
# Markdown uses an HTML comment: "<!-- guidelint: ignore[DOC-EXAMPLE] -->"

WAIVER_RX = re.compile(r"(?:#|<!--)\s*guidelint:\s*ignore(?:\[(?P<ids>[^\]]*)\])?", re.IGNORECASE)
