"""
Tests for AST indexing.
"""

import textwrap
from pathlib import Path

import pytest

from guidelint import analysis
from guidelint.analysis import build_index, looks_like_sql
from guidelint.scanner import SourceFile


def _index(text: str):
    text = textwrap.dedent(text).lstrip("\n")
    return build_index(SourceFile(path=Path("mod.py"), text=text, lines=text.splitlines()))


class TestImports:
    """Import extraction."""

    def test_import_forms(self):
        idx = _index('''
            import os.path
            from . import repo
            from ..db import session as s
            from sqlalchemy.orm import Session
        ''')
        assert [m for m, _, _ in idx.imports] == ["os.path", ".repo", "..db", "sqlalchemy.orm"]
        assert idx.imported_names == {
            "os": "os",
            "repo": ".repo",
            "s": "..db",
            "Session": "sqlalchemy.orm",
        }


class TestFunctions:
    """Function signatures and decorators."""

    def test_methods_drop_self(self):
        idx = _index('''
            class Views:
                @app.route("/x")
                @login_required
                def show(self, post_id, *, user):
                    pass
        ''')
        (fn,) = idx.functions
        assert fn.qualname == "Views.show"
        assert fn.is_method
        assert fn.params == ["post_id"]
        assert fn.kwonly == ["user"]
        assert fn.decorators == ["app.route", "login_required"]
        assert fn.line == 4

    def test_async_functions(self):
        idx = _index('''
            async def handler(request):
                return request
        ''')
        assert [f.name for f in idx.functions] == ["handler"]
        assert idx.functions[0].params == ["request"]


class TestPrincipalReads:
    """Reads of the authenticated principal."""

    def test_read_forms(self):
        idx = _index('''
            def handler(request):
                request.user = load()
                a = request.user
                b = session["user_id"]
                c = session.get("user_id")
                d = session.get("theme")
                return a, b, c, d
        ''')
        reads = idx.functions[0].principal_reads
        assert [(expr, line) for expr, line, _ in reads] == [
            ("request.user", 3),
            ("session['user_id']", 4),
            ("session.get('user_id')", 5),
        ]

    def test_reads_belong_to_innermost_function(self):
        idx = _index('''
            def outer():
                def inner():
                    return g.user
                return inner
        ''')
        outer, inner = idx.functions
        assert outer.principal_reads == []
        assert [e for e, _, _ in inner.principal_reads] == ["g.user"]

    def test_module_level_reads_are_ignored(self):
        idx = _index('''
            user = current_user
        ''')
        assert idx.functions == []


class TestSqlBuilds:
    """Dynamically assembled SQL."""

    def test_constant_sql_is_fine(self):
        idx = _index('''
            QUERY = "SELECT id FROM users " + "WHERE active"
            cursor.execute("SELECT * FROM t WHERE id = %s", (1,))
        ''')
        assert idx.sql_builds == []

    def test_kinds(self):
        idx = _index('''
            a = f"DELETE FROM t WHERE id = {x}"
            b = "UPDATE t SET name = '%s'" % name
        ''')
        assert [k for k, _, _ in idx.sql_builds] == ["f-string", "%-formatting"]

    @pytest.mark.parametrize("text, expected", [
        ("SELECT id FROM t", True),
        ("insert into t values (1)", True),
        (" WHERE id = ", True),
        ("where are you", False),
        ("Update the README", False),
        ("Hello {name}", False),
    ])
    def test_looks_like_sql(self, text, expected):
        assert looks_like_sql(text) is expected


class TestParseError:
    """Unparseable sources."""

    def test_parse_error_yields_empty_index(self):
        idx = _index('''
            def broken(:
                pass
        ''')
        assert idx.parse_error is not None
        assert idx.parse_error.startswith("line 1")
        assert idx.functions == []
        assert idx.imports == []

    def test_stack_exhaustion_yields_empty_index(self, monkeypatch):
        def _too_deep(*args, **kwargs):
            raise RecursionError("maximum recursion depth exceeded")

        monkeypatch.setattr(analysis.ast, "parse", _too_deep)
        idx = _index("x = 1\n")
        assert idx.parse_error == "RecursionError: maximum recursion depth exceeded"
        assert idx.functions == []
