"""
Tests for the Python convention rules.

Tests cover:
1. Persistence imports and calls from the web layer
2. Scope argument ordering in context modules
3. SQL assembly and inline query construction
4. Authenticated handler patterns
5. Parse failures
"""


def _only(findings, rule_id):
    return [f for f in findings if f.rule_id == rule_id]


class TestWebPersistenceImports:
    """LAYER-01: web modules must not import persistence modules."""

    SOURCE = '''
        from flask import render_template
        from sqlalchemy import select
        import psycopg2
        from .repositories.users import UserRepo
        from app import blog
    '''

    def test_flags_persistence_imports_in_views(self, lint):
        findings = _only(lint("app/views.py", self.SOURCE), "LAYER-01")
        assert [f.symbol for f in findings] == ["sqlalchemy", "psycopg2", ".repositories.users"]
        assert all(f.severity == "ERROR" for f in findings)
        assert findings[0].line == 2

    def test_bare_relative_import(self, lint):
        findings = lint("app/views.py", '''
            from . import repo, forms
        ''')
        assert [f.symbol for f in _only(findings, "LAYER-01")] == [".repo"]

    def test_context_modules_may_import_persistence(self, lint):
        findings = lint("app/services/users.py", self.SOURCE)
        assert _only(findings, "LAYER-01") == []

    def test_unclassified_modules_are_ignored(self, lint):
        findings = lint("app/util.py", self.SOURCE)
        assert _only(findings, "LAYER-01") == []


class TestWebPersistenceCalls:
    """LAYER-02: web modules must not call persistence symbols."""

    def test_flags_session_and_manager_calls(self, lint):
        findings = lint("app/views.py", '''
            from app.extensions import db
            from app.models import Post

            def create(form):
                post = Post(title=form["title"])
                db.session.add(post)
                db.session.commit()
                return Post.query.get(post.id)
        ''')
        calls = _only(findings, "LAYER-02")
        assert [f.symbol for f in calls] == ["db.session.add", "db.session.commit", "Post.query.get"]
        assert [f.line for f in calls] == [6, 7, 8]

    def test_django_objects_manager(self, lint):
        findings = lint("shop/views.py", '''
            def detail(request, pk):
                return Product.objects.get(pk=pk)
        ''')
        assert [f.symbol for f in _only(findings, "LAYER-02")] == ["Product.objects.get"]

    def test_flask_cookie_session_is_not_persistence(self, lint):
        findings = lint("app/views.py", '''
            from flask import session, redirect

            def logout():
                session.pop("user_id", None)
                return redirect("/")
        ''')
        assert _only(findings, "LAYER-02") == []

    def test_context_calls_are_fine(self, lint):
        findings = lint("app/views.py", '''
            from app import blog

            def show(post_id):
                return blog.get_post(post_id)
        ''')
        assert findings == []

    def test_request_query_string_is_not_orm(self, lint):
        findings = lint("app/views.py", '''
            async def search(request):
                return request.query.get("q")

            class SearchView:
                def get(self):
                    return self.request.query.get("q")
        ''')
        assert _only(findings, "LAYER-02") == []

    def test_persistence_calls_allowed_outside_web(self, lint):
        findings = lint("app/services/blog.py", '''
            def get_post(post_id):
                return session.get(Post, post_id)
        ''')
        assert _only(findings, "LAYER-02") == []


class TestArgumentOrder:
    """ARG-01: context functions take their scope first."""

    SOURCE = '''
        def list_posts(status, current_user):
            ...

        def get_post(current_user, post_id):
            ...

        def _helper(limit, scope):
            ...

        def count(*, scope):
            ...

        class Blog:
            def archive(self, post_id, user):
                ...
    '''

    def test_flags_misplaced_scope(self, lint):
        findings = _only(lint("app/services/posts.py", self.SOURCE), "ARG-01")
        assert [f.symbol for f in findings] == ["list_posts", "count", "Blog.archive"]
        assert all(f.severity == "WARN" for f in findings)
        assert "current_user" in findings[0].message

    def test_only_context_layer_is_checked(self, lint):
        findings = lint("app/views.py", self.SOURCE)
        assert _only(findings, "ARG-01") == []

    def test_custom_scope_names(self, lint):
        findings = lint("app/services/posts.py", '''
            def list_posts(status, tenant):
                ...
        ''', scope_params=("tenant",))
        assert [f.symbol for f in _only(findings, "ARG-01")] == ["list_posts"]


class TestSqlAssembly:
    """QUERY-01: SQL must not be built by interpolation."""

    SOURCE = '''
        def by_name(cursor, name):
            cursor.execute(f"SELECT * FROM users WHERE name = '{name}'")

        def by_id(cursor, user_id):
            cursor.execute("SELECT * FROM users WHERE id = " + str(user_id))

        def by_email(cursor, email):
            cursor.execute("SELECT * FROM users WHERE email = '%s'" % email)

        def by_org(cursor, org):
            cursor.execute("SELECT * FROM users WHERE org = {}".format(org))

        def safe(cursor, name):
            cursor.execute("SELECT * FROM users WHERE name = %s", (name,))

        def greeting(name):
            return f"Hello {name}, where have you been?"
    '''

    def test_flags_every_interpolation_style(self, lint):
        findings = _only(lint("app/util.py", self.SOURCE), "QUERY-01")
        assert [f.line for f in findings] == [2, 5, 8, 11]
        messages = " ".join(f.message for f in findings)
        for kind in ("f-string", "concatenation", "%-formatting", "str.format()"):
            assert kind in messages

    def test_nested_concatenation_reported_once(self, lint):
        findings = lint("app/util.py", '''
            def run(cursor, a):
                cursor.execute("SELECT * FROM t WHERE a = " + a + " LIMIT 1")
        ''')
        assert len(_only(findings, "QUERY-01")) == 1

    def test_waiver_silences_finding(self, lint):
        findings = lint("app/util.py", '''
            def run(cursor, a):
                cursor.execute(f"SELECT * FROM t WHERE a = {a}")  # guidelint: ignore[QUERY-01]
        ''')
        assert findings == []


class TestInlineQueries:
    """QUERY-02: the web layer must not build queries."""

    SOURCE = '''
        from app import blog

        def index(request):
            query = select(Post).where(Post.published).order_by(Post.created_at)
            names = ", ".join(p.title for p in blog.recent())
            return names
    '''

    def test_one_finding_per_chained_line(self, lint):
        findings = _only(lint("app/views.py", self.SOURCE), "QUERY-02")
        assert [f.line for f in findings] == [4]
        assert findings[0].symbol == "select"

    def test_context_may_build_queries(self, lint):
        findings = lint("app/services/blog.py", self.SOURCE)
        assert _only(findings, "QUERY-02") == []


class TestPrincipalReads:
    """AUTH-01: handlers read the principal once."""

    SOURCE = '''
        from flask_login import current_user, login_required

        @bp.post("/posts")
        @login_required
        def create():
            if current_user.is_banned:
                abort(403)
            blog.create_post(current_user, request.form)
            return redirect(url_for("posts.index", author=current_user.name))
    '''

    def test_flags_repeated_reads(self, lint):
        findings = _only(lint("app/views.py", self.SOURCE), "AUTH-01")
        assert len(findings) == 1
        assert findings[0].line == 8
        assert "3 times" in findings[0].message

    def test_threshold_is_configurable(self, lint):
        findings = lint("app/views.py", self.SOURCE, max_principal_reads=3)
        assert _only(findings, "AUTH-01") == []

    def test_parameter_of_same_name_is_explicit(self, lint):
        findings = lint("app/views.py", '''
            def render_profile(current_user):
                return current_user.name + current_user.email
        ''')
        assert _only(findings, "AUTH-01") == []

    def test_binding_once_is_fine(self, lint):
        findings = lint("app/views.py", '''
            @bp.post("/posts")
            @login_required
            def create():
                user = current_user
                blog.create_post(user, request.form)
                return user.name
        ''')
        assert findings == []

    def test_session_reads_count(self, lint):
        findings = lint("app/views.py", '''
            from flask import session

            @bp.get("/me")
            @login_required
            def me():
                uid = session["user_id"]
                return jsonify(user=load(session.get("user_id")))
        ''')
        reads = _only(findings, "AUTH-01")
        assert len(reads) == 1
        assert reads[0].line == 7
        assert "2 times" in reads[0].message
        assert "session['user_id']" in reads[0].message


class TestUnguardedHandlers:
    """AUTH-02: route handlers that read the principal carry a guard."""

    def test_flags_unguarded_route(self, lint):
        findings = lint("app/views.py", '''
            @app.route("/me")
            def me():
                return jsonify(name=g.user.name)

            @app.route("/settings")
            @login_required
            def settings():
                return jsonify(theme=g.user.theme)

            def helper():
                return g.user
        ''')
        unguarded = _only(findings, "AUTH-02")
        assert [f.symbol for f in unguarded] == ["me"]
        assert "g.user" in unguarded[0].message
        assert unguarded[0].line == 2

    def test_custom_guard_decorator(self, lint):
        findings = lint("app/views.py", '''
            @app.get("/me")
            @members_only
            def me():
                return g.user.name
        ''', auth_decorators=("members_only",))
        assert _only(findings, "AUTH-02") == []


class TestParseErrors:
    """PARSE-01: broken files are reported, not crashed on."""

    def test_syntax_error(self, lint):
        findings = lint("app/views.py", '''
            def broken(:
                pass
        ''')
        assert [f.rule_id for f in findings] == ["PARSE-01"]
        assert findings[0].severity == "WARN"
        assert findings[0].line == 1
