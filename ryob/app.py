import logging
import secrets
from functools import wraps
from typing import Any, Iterable, Mapping, Optional

from flask import (
    Flask,
    abort,
    g,
    redirect,
    render_template,
    request,
    session,
    url_for,
)
from sqlalchemy import text
from sqlalchemy.engine import Connection
from werkzeug.exceptions import HTTPException

from . import content, rendering, sessions, users
from .config import load_config
from .database import Database
from .errors import BadLogin, ForumError, NameAlreadyInUse
from .ids import TopicId
from .validation import (
    LoginForm,
    RegistrationForm,
    Violation,
    sanitize_login,
    sanitize_registration,
    validate_post,
    validate_registration,
    validate_topic,
)


def create_app(config: Optional[Mapping[str, Any]] = None) -> Flask:
    settings = load_config(config)

    # Logging configuration
    logging.basicConfig(level=settings["LOG_LEVEL"],
                        format="%(asctime)s %(levelname)s %(name)s - %(message)s")

    app = Flask(
        __name__,
        static_folder="static",
        template_folder="templates",
    )
    app.config.update(settings)
    app.logger.setLevel(settings["LOG_LEVEL"])

    # The pool lives as long as the app; handlers reach it through get_db.
    database = Database(app.config["DATABASE_URL"], pool_size=app.config["POOL_SIZE"])
    database.create_all()

    def get_db() -> Connection:
        if "db" not in g:
            g.db = database.connect()
        return g.db

    def close_db(_: Optional[BaseException] = None) -> None:
        conn = g.pop("db", None)
        if conn is not None:
            conn.close()

    app.teardown_appcontext(close_db)

    rendering.init_app(app)

    # CSRF protection minimal and session bootstrap
    @app.before_request
    def csrf_and_session_bootstrap() -> None:
        if "csrf_token" not in session:
            session["csrf_token"] = secrets.token_hex(16)

        if request.method == "POST":
            token_form = request.form.get("csrf_token", "")
            token_sess = session.get("csrf_token", "")
            if not token_form or not secrets.compare_digest(token_form, token_sess):
                app.logger.warning("Rejected %s %s: bad CSRF token", request.method, request.path)
                abort(400, description="Invalid CSRF token")

    @app.before_request
    def load_current_user() -> None:
        g.user = None
        if request.endpoint in {"static", "healthz"}:
            return
        g.user = sessions.resolve_current_user(session, get_db())

    @app.context_processor
    def inject_user():
        return {"user": g.get("user")}

    @app.after_request
    def set_security_headers(resp):
        resp.headers.setdefault("X-Content-Type-Options", "nosniff")
        resp.headers.setdefault("X-Frame-Options", "DENY")
        resp.headers.setdefault("Referrer-Policy", "no-referrer")
        # CSP allows only same-origin resources
        resp.headers.setdefault(
            "Content-Security-Policy",
            "default-src 'self'; img-src 'self' data:; style-src 'self'; script-src 'none'",
        )
        return resp

    @app.errorhandler(ForumError)
    def handle_forum_error(error: ForumError):
        if error.status_code >= 500:
            app.logger.error(
                "%s while handling %s %s", type(error).__name__, request.method, request.path,
                exc_info=error,
            )
            message = "Something went wrong"
        else:
            message = error.message
        return render_template("error.html", status=error.status_code, message=message), error.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(error: HTTPException):
        status = error.code or 500
        message = error.description if status < 500 else "Something went wrong"
        return render_template("error.html", status=status, message=message), status

    def login_required(fn):
        @wraps(fn)
        def _wrap(*args, **kwargs):
            if g.get("user") is None:
                return redirect(url_for("login"))
            return fn(*args, **kwargs)
        return _wrap

    # Utilities
    def page_arg(total_pages: int) -> int:
        try:
            page = int(request.args.get("page", "1"))
        except ValueError:
            return 1
        return min(max(page, 1), total_pages)

    def page_count(total: int, per_page: int) -> int:
        return max((total + per_page - 1) // per_page, 1)

    def messages(violations: Iterable[Violation]) -> list:
        return [v.message for v in violations]

    def render_index(errors=(), previous=None, status: int = 200):
        conn = get_db()
        per_page = app.config["TOPICS_PER_PAGE"]
        total_pages = page_count(content.count_topics(conn), per_page)
        page = page_arg(total_pages)

        topics = content.list_topics(conn, (page - 1) * per_page, per_page)
        return render_template(
            "index.html",
            topics=topics,
            page=page,
            total_pages=total_pages,
            errors=list(errors),
            previous=previous or {},
        ), status

    def render_topic(topic_id: TopicId, errors=(), previous=None, status: int = 200):
        conn = get_db()
        topic = content.find_topic(conn, topic_id)
        per_page = app.config["POSTS_PER_PAGE"]
        total_pages = page_count(content.count_posts_in_topic(conn, topic.id), per_page)
        page = page_arg(total_pages)

        posts = content.list_posts_in_topic(conn, topic.id, (page - 1) * per_page, per_page)
        creator = users.find_by_id(conn, topic.created_by)
        return render_template(
            "topic.html",
            topic=topic,
            creator=creator,
            posts=posts,
            page=page,
            total_pages=total_pages,
            errors=list(errors),
            previous=previous or {},
        ), status

    # Routes
    @app.route("/")
    def index():
        return render_index()

    @app.route("/register", methods=["GET", "POST"])
    @app.route("/users/register", methods=["GET", "POST"])
    def register():
        if request.method == "GET":
            return render_template("register.html", errors=[], previous={})

        form = sanitize_registration(RegistrationForm(
            user_name=request.form.get("user_name", ""),
            password=request.form.get("password", ""),
            confirm_password=request.form.get("confirm_password", ""),
        ))
        previous = {"user_name": form.user_name}
        violations = validate_registration(form)
        if violations:
            app.logger.info('Failed to register user "%s": invalid form', form.user_name)
            return render_template("register.html", errors=messages(violations), previous=previous), 400

        try:
            user = users.register(
                get_db(), form.user_name, form.password,
                method=app.config["PASSWORD_HASH_METHOD"],
            )
        except NameAlreadyInUse as error:
            return render_template(
                "register.html", errors=["Username is already in use"], previous=previous,
            ), error.status_code

        sessions.attach_user(session, user)
        return redirect(url_for("index"))

    @app.route("/users/login", methods=["GET", "POST"])
    def login():
        if request.method == "GET":
            return render_template("login.html", errors=[], previous={})

        form = sanitize_login(LoginForm(
            user_name=request.form.get("user_name", ""),
            password=request.form.get("password", ""),
        ))
        try:
            user = users.login(get_db(), form.user_name, form.password)
        except BadLogin as error:
            app.logger.info('Failed login attempt for "%s"', form.user_name)
            return render_template(
                "login.html",
                errors=["Incorrect username or password"],
                previous={"user_name": form.user_name},
            ), error.status_code

        sessions.attach_user(session, user)
        return redirect(url_for("index"))

    @app.route("/users/logout", methods=["POST"])
    def logout():
        sessions.detach_user(session)
        return redirect(url_for("index"))

    @app.route("/topics", methods=["POST"])
    @login_required
    def create_topic():
        title = (request.form.get("title") or "").strip()
        violations = validate_topic(title)
        if violations:
            return render_index(messages(violations), {"title": title}, 400)

        topic = content.create_topic(get_db(), g.user.id, title)
        return redirect(url_for("topic_view", topic_id=topic.id))

    @app.route("/topics/<int:topic_id>")
    def topic_view(topic_id: int):
        return render_topic(TopicId(topic_id))

    @app.route("/topics/<int:topic_id>/posts", methods=["POST"])
    @login_required
    def reply(topic_id: int):
        topic = content.find_topic(get_db(), TopicId(topic_id))
        body = (request.form.get("content") or "").strip()
        violations = validate_post(body)
        if violations:
            return render_topic(topic.id, messages(violations), {"content": body}, 400)

        content.create_post(get_db(), g.user.id, topic.id, body)
        return redirect(url_for("topic_view", topic_id=topic.id))

    # Health check (useful for quick smoke test)
    @app.route("/healthz")
    def healthz():
        get_db().execute(text("SELECT 1"))
        return {"ok": True}, 200

    # Expose helpers for tests
    app.database = database  # type: ignore[attr-defined]
    app.get_db = get_db  # type: ignore[attr-defined]

    return app
