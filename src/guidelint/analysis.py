"""
guidelint - AST analysis and module indexing.

Handles:
- Python AST parsing
- Import and call site extraction
- Function signatures, decorators and principal reads
- Dynamically assembled SQL strings
"""

from __future__ import annotations

import ast
from dataclasses import dataclass, field
from typing import Iterable, Optional

from .patterns import (
    PRINCIPAL_EXPRS,
    PRINCIPAL_SUBSCRIPTS,
    SQL_FRAGMENT_RX,
    SQL_STATEMENT_RX,
)
from .scanner import SourceFile


@dataclass
class FunctionInfo:
    """A function or method definition."""
    name: str
    qualname: str
    params: list[str]          # positional params, self/cls dropped for methods
    kwonly: list[str]
    decorators: list[str]      # dotted names, calls unwrapped
    line: int
    col: int
    is_method: bool = False
    principal_reads: list[tuple[str, int, int]] = field(default_factory=list)


@dataclass
class ModuleIndex:
    """Index of a Python module's structure."""
    imports: list[tuple[str, int, int]]         # (module, line, col)
    imported_names: dict[str, str]              # local name -> source module
    calls: list[tuple[str, int, int]]           # (callee, line, col) for Name() calls
    dotted_calls: list[tuple[str, int, int]]    # (dotted, line, col) for Attribute() calls
    method_calls: list[tuple[str, int, int]]    # (attr, line, col) for any x.attr() call
    functions: list[FunctionInfo]
    sql_builds: list[tuple[str, int, int]]      # (kind, line, col)
    parse_error: Optional[str] = None


def dotted_name(node: ast.AST) -> Optional[str]:
    """Return 'a.b.c' for a Name/Attribute chain, else None."""
    parts = []
    cur = node
    while isinstance(cur, ast.Attribute):
        parts.append(cur.attr)
        cur = cur.value
    if not isinstance(cur, ast.Name):
        return None
    parts.append(cur.id)
    return ".".join(reversed(parts))


def _decorator_name(node: ast.expr) -> Optional[str]:
    if isinstance(node, ast.Call):
        node = node.func
    return dotted_name(node)


def looks_like_sql(text: str) -> bool:
    """Check if a string fragment reads as SQL."""
    return bool(SQL_STATEMENT_RX.search(text) or SQL_FRAGMENT_RX.search(text))


def _str_const(node: ast.AST) -> Optional[str]:
    if isinstance(node, ast.Constant) and isinstance(node.value, str):
        return node.value
    return None


class _Collector(ast.NodeVisitor):
    """AST visitor to collect imports, calls, functions and SQL builds."""

    def __init__(self, principal_exprs: Iterable[str]) -> None:
        self.principal_exprs = frozenset(principal_exprs)
        self.imports: list[tuple[str, int, int]] = []
        self.imported_names: dict[str, str] = {}
        self.calls: list[tuple[str, int, int]] = []
        self.dotted_calls: list[tuple[str, int, int]] = []
        self.method_calls: list[tuple[str, int, int]] = []
        self.functions: list[FunctionInfo] = []
        self.sql_builds: list[tuple[str, int, int]] = []
        self._scope: list[ast.AST] = []
        self._func_stack: list[FunctionInfo] = []
        self._param_stack: list[frozenset[str]] = []

    # -- imports -------------------------------------------------------------

    def visit_Import(self, node: ast.Import) -> None:
        for alias in node.names:
            self.imports.append((alias.name, node.lineno, node.col_offset))
            local = alias.asname or alias.name.split(".")[0]
            self.imported_names[local] = alias.name if alias.asname else local

    def visit_ImportFrom(self, node: ast.ImportFrom) -> None:
        module = "." * node.level + (node.module or "")
        if node.module is None:
            # from . import repo
            for alias in node.names:
                self.imports.append((module + alias.name, node.lineno, node.col_offset))
                self.imported_names[alias.asname or alias.name] = module + alias.name
        else:
            self.imports.append((module, node.lineno, node.col_offset))
            for alias in node.names:
                self.imported_names[alias.asname or alias.name] = module

    # -- scopes --------------------------------------------------------------

    def visit_ClassDef(self, node: ast.ClassDef) -> None:
        self._scope.append(node)
        self.generic_visit(node)
        self._scope.pop()

    def _visit_function(self, node: ast.FunctionDef | ast.AsyncFunctionDef) -> None:
        is_method = bool(self._scope) and isinstance(self._scope[-1], ast.ClassDef)
        params = [a.arg for a in node.args.posonlyargs + node.args.args]
        if is_method and params and params[0] in ("self", "cls"):
            params = params[1:]
        kwonly = [a.arg for a in node.args.kwonlyargs]

        qual = [getattr(s, "name", "") for s in self._scope] + [node.name]
        info = FunctionInfo(
            name=node.name,
            qualname=".".join(qual),
            params=params,
            kwonly=kwonly,
            decorators=[d for d in map(_decorator_name, node.decorator_list) if d],
            line=node.lineno,
            col=node.col_offset,
            is_method=is_method,
        )
        self.functions.append(info)

        # Decorators and defaults belong to the enclosing scope
        for d in node.decorator_list:
            self.visit(d)
        for d in node.args.defaults + [k for k in node.args.kw_defaults if k is not None]:
            self.visit(d)

        self._scope.append(node)
        self._func_stack.append(info)
        self._param_stack.append(frozenset(params + kwonly))
        for stmt in node.body:
            self.visit(stmt)
        self._param_stack.pop()
        self._func_stack.pop()
        self._scope.pop()

    visit_FunctionDef = _visit_function
    visit_AsyncFunctionDef = _visit_function

    # -- principal reads -----------------------------------------------------

    def _record_principal(self, expr: str, node: ast.AST) -> None:
        if self._func_stack:
            self._func_stack[-1].principal_reads.append((expr, node.lineno, node.col_offset))

    def visit_Name(self, node: ast.Name) -> None:
        if isinstance(node.ctx, ast.Load) and node.id in self.principal_exprs:
            # A parameter of the same name was passed in explicitly
            if not (self._param_stack and node.id in self._param_stack[-1]):
                self._record_principal(node.id, node)

    def visit_Attribute(self, node: ast.Attribute) -> None:
        if isinstance(node.ctx, ast.Load):
            dotted = dotted_name(node)
            if dotted is not None and dotted in self.principal_exprs:
                self._record_principal(dotted, node)
                return
        self.generic_visit(node)

    def visit_Subscript(self, node: ast.Subscript) -> None:
        if isinstance(node.ctx, ast.Load):
            base = dotted_name(node.value)
            key = _str_const(node.slice)
            if base in PRINCIPAL_SUBSCRIPTS and key in PRINCIPAL_SUBSCRIPTS[base]:
                self._record_principal(f"{base}[{key!r}]", node)
                return
        self.generic_visit(node)

    # -- calls ---------------------------------------------------------------

    def visit_Call(self, node: ast.Call) -> None:
        fn = node.func
        if isinstance(fn, ast.Name):
            self.calls.append((fn.id, node.lineno, node.col_offset))
        elif isinstance(fn, ast.Attribute):
            self.method_calls.append((fn.attr, node.lineno, node.col_offset))
            dotted = dotted_name(fn)
            if dotted is not None:
                self.dotted_calls.append((dotted, node.lineno, node.col_offset))
                # session.get("user_id")
                base, _, attr = dotted.rpartition(".")
                if attr == "get" and base in PRINCIPAL_SUBSCRIPTS and node.args:
                    key = _str_const(node.args[0])
                    if key in PRINCIPAL_SUBSCRIPTS[base]:
                        self._record_principal(f"{base}.get({key!r})", node)
            # "... WHERE id = {}".format(x)
            if fn.attr == "format":
                template = _str_const(fn.value)
                if template is not None and looks_like_sql(template):
                    self.sql_builds.append(("str.format()", node.lineno, node.col_offset))
        self.generic_visit(node)

    # -- SQL assembly --------------------------------------------------------

    def visit_JoinedStr(self, node: ast.JoinedStr) -> None:
        has_value = any(isinstance(v, ast.FormattedValue) for v in node.values)
        text = "".join(v.value for v in node.values
                       if isinstance(v, ast.Constant) and isinstance(v.value, str))
        if has_value and looks_like_sql(text):
            self.sql_builds.append(("f-string", node.lineno, node.col_offset))
        self.generic_visit(node)

    def visit_BinOp(self, node: ast.BinOp) -> None:
        left, right = _str_const(node.left), _str_const(node.right)
        if isinstance(node.op, ast.Add):
            # Exactly one literal side: the other side is a runtime value
            for lit, other in ((left, node.right), (right, node.left)):
                if lit is not None and _str_const(other) is None and looks_like_sql(lit):
                    self.sql_builds.append(("concatenation", node.lineno, node.col_offset))
                    break
        elif isinstance(node.op, ast.Mod) and left is not None and looks_like_sql(left):
            self.sql_builds.append(("%-formatting", node.lineno, node.col_offset))
        self.generic_visit(node)


def build_index(src: SourceFile, principal_exprs: Iterable[str] = PRINCIPAL_EXPRS) -> ModuleIndex:
    """Build a ModuleIndex from a Python source file."""
    collector = _Collector(principal_exprs)
    try:
        tree = ast.parse(src.text, filename=str(src.path))
        # Deeply nested expressions can exhaust the stack here as well
        collector.visit(tree)
    except (SyntaxError, ValueError, RecursionError, MemoryError) as e:
        if isinstance(e, SyntaxError):
            message = f"line {e.lineno}: {e.msg}"
        else:
            message = f"{type(e).__name__}: {e}"
        return ModuleIndex(
            imports=[], imported_names={}, calls=[], dotted_calls=[], method_calls=[],
            functions=[], sql_builds=[],
            parse_error=message,
        )

    return ModuleIndex(
        imports=collector.imports,
        imported_names=collector.imported_names,
        calls=collector.calls,
        dotted_calls=collector.dotted_calls,
        method_calls=collector.method_calls,
        functions=collector.functions,
        sql_builds=collector.sql_builds,
    )
