"""Flask application factory, CLI entry points, and database bootstrap."""

import json
import logging
from logging.handlers import RotatingFileHandler
import os
import sqlite3
import uuid
from datetime import date
from pathlib import Path

import click
from flask import Flask, g, has_request_context, jsonify, redirect, render_template, request, url_for, flash
from flask_compress import Compress
from flask_talisman import Talisman
from sqlalchemy import event, func
from sqlalchemy.engine import Engine

from dotenv import load_dotenv; load_dotenv()

from config import Config, INSTANCE_DIR as CONFIG_INSTANCE_DIR
from extensions import db, migrate, cache, csrf, limiter, login_manager, generate_csrf
from services.exceptions import NotFoundError


class RequestIdFilter(logging.Filter):
    """Inject request-scoped metadata into log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        if has_request_context():
            record.request_id = getattr(g, "request_id", "n/a")
            record.path = request.path
            record.method = request.method
        else:
            record.request_id = getattr(record, "request_id", "startup")
            record.path = getattr(record, "path", "")
            record.method = getattr(record, "method", "")
        return True


class JsonRequestFormatter(logging.Formatter):
    """Simple JSON formatter for logfmt-friendly ingestion."""

    def format(self, record: logging.LogRecord) -> str:
        base = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "request_id": getattr(record, "request_id", "n/a"),
            "path": getattr(record, "path", ""),
            "method": getattr(record, "method", ""),
        }
        if record.exc_info:
            base["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(base, ensure_ascii=False)


def _configure_login_manager(app: Flask) -> None:
    """Bind Flask-Login to the admin sign-in page."""
    login_manager.init_app(app)
    login_manager.login_view = "views.login"
    login_manager.login_message_category = "warning"
    login_manager.session_protection = "strong"

    @login_manager.user_loader
    def _load_user(user_id: str):
        from models import User

        try:
            return db.session.get(User, int(user_id))
        except (TypeError, ValueError):
            return None

    @login_manager.unauthorized_handler
    def _unauthorized():
        from routes.base import _wants_json

        if _wants_json():
            return jsonify({"error": "authentication_required"}), 401
        flash("Please sign in to continue.", "warning")
        return redirect(url_for("views.login", next=request.full_path.rstrip("?")))


# ---------------------------------------------------------------------------
# Extension bootstrap helpers
# ---------------------------------------------------------------------------

def _safe_init_sqlalchemy(app: Flask):
    """Initialise SQLAlchemy only if it has not been bound yet."""
    if not getattr(app, "extensions", None) or "sqlalchemy" not in app.extensions:
        db.init_app(app)


def _safe_init_migrate(app: Flask):
    """Bind Flask-Migrate, using batch mode so SQLite ALTERs work."""
    if not getattr(app, "extensions", None) or "migrate" not in app.extensions:
        migrate.init_app(app, db, render_as_batch=True)


def _safe_init_cache(app: Flask):
    """Register the cache extension, falling back to SimpleCache if the configured backend fails."""
    try:
        cache.init_app(app)
    except Exception as exc:
        app.logger.warning("Primary cache init failed (%s); falling back to SimpleCache.", exc)
        fallback_cfg = {
            "CACHE_TYPE": "SimpleCache",
            "CACHE_DEFAULT_TIMEOUT": 600,
        }
        try:
            cache.init_app(app, config=fallback_cfg)
        except Exception:
            app.logger.exception("Cache fallback failed; aborting startup.")
            raise


def _configure_logging(app: Flask) -> None:
    """Configure structured logging with request IDs."""
    stream_handler = logging.StreamHandler()
    stream_handler.addFilter(RequestIdFilter())
    stream_handler.setFormatter(JsonRequestFormatter())
    stream_handler.setLevel(logging.INFO)

    handlers = [stream_handler]

    try:
        logs_dir = Path(app.instance_path) / "logs"
        logs_dir.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            logs_dir / "app.log",
            maxBytes=5 * 1024 * 1024,
            backupCount=5,
            encoding="utf-8",
        )
        file_handler.addFilter(RequestIdFilter())
        file_handler.setFormatter(JsonRequestFormatter())
        file_handler.setLevel(logging.INFO)
        handlers.append(file_handler)
    except OSError as exc:
        app.logger.warning("Falling back to stream-only logging (file handler unavailable): %s", exc)

    app.logger.handlers = handlers
    app.logger.setLevel(logging.INFO)
    for name in ("werkzeug", "services", "routes"):
        logging.getLogger(name).handlers = handlers
        logging.getLogger(name).setLevel(logging.INFO)


def _register_error_handlers(app: Flask) -> None:
    from routes.base import _wants_json

    def _json_error(code: str, detail: str, status: int):
        return jsonify({"error": code, "detail": detail}), status

    @app.errorhandler(403)
    def forbidden(e):
        if _wants_json():
            return _json_error("forbidden", "You do not have access to this resource.", 403)
        return render_template("shared/system/403.html", e=e), 403

    @app.errorhandler(404)
    def not_found(e):
        """Render a friendly 404 page while keeping the error for debugging."""
        if _wants_json():
            return _json_error("not_found", "Resource not found.", 404)
        return render_template("shared/system/404.html", e=e), 404

    @app.errorhandler(NotFoundError)
    def not_found_error(e):
        return not_found(e)

    @app.errorhandler(500)
    def internal(e):
        """Roll back broken transactions, record the failure, and return the standard 500 view."""
        from services.error_log import record_error

        db.session.rollback()
        record_error(getattr(e, "original_exception", None) or e, {"endpoint": request.endpoint})
        if _wants_json():
            return _json_error("server_error", "A server error occurred.", 500)
        return render_template("shared/system/500.html", e=e, message="Something went wrong. Please try again."), 500


def _register_cli(app: Flask) -> None:
    from models import Console, Handheld, User
    from routes.auth import MIN_PASSWORD_LENGTH
    from services.slugs import unique_slug

    @app.cli.command("init-db")
    def init_db():
        """Create all tables (development shortcut; use `flask db upgrade` elsewhere)."""
        db.create_all()
        click.echo("Database tables created.")

    @app.cli.command("seed-demo")
    def seed_demo():
        """Insert a handful of consoles and handhelds for local browsing."""
        consoles = [
            ("PlayStation 2", "Sony", date(2000, 3, 4)),
            ("GameCube", "Nintendo", date(2001, 9, 14)),
            ("Dreamcast", "Sega", date(1998, 11, 27)),
        ]
        handhelds = [
            ("Steam Deck OLED", "Valve", "$549-$649", "7.4 in OLED", "AMD Zen 2 APU", "16 GB", "512 GB / 1 TB"),
            ("ROG Ally", "ASUS", "$499-$699", "7 in IPS", "AMD Z1 Extreme", "16 GB", "512 GB"),
            ("Retroid Pocket 4 Pro", "Retroid", "$199", "4.7 in IPS", "Dimensity 1100", "8 GB", "128 GB"),
        ]
        created = 0
        for name, manufacturer, released in consoles:
            if Console.query.filter(func.lower(Console.name) == name.lower()).first():
                continue
            db.session.add(
                Console(name=name, slug=unique_slug(Console, name), manufacturer=manufacturer, release_date=released)
            )
            created += 1
        for name, manufacturer, price_range, screen, cpu, ram, storage in handhelds:
            if Handheld.query.filter(func.lower(Handheld.name) == name.lower()).first():
                continue
            db.session.add(
                Handheld(
                    name=name,
                    slug=unique_slug(Handheld, name),
                    manufacturer=manufacturer,
                    price_range=price_range,
                    screen_size=screen,
                    processor=cpu,
                    ram=ram,
                    storage=storage,
                )
            )
            created += 1
        db.session.commit()
        click.echo(f"Seeded {created} catalog rows.")

    @app.cli.group("users")
    def users_cli():
        """Manage admin accounts."""

    @users_cli.command("create")
    @click.argument("username")
    @click.argument("email")
    @click.option("--password", prompt=True, hide_input=True, confirmation_prompt=True)
    @click.option("--display-name", default=None, help="Optional label shown in the UI")
    @click.option("--admin/--no-admin", default=True, help="Grant admin rights")
    def create_user(username, email, password, display_name, admin):
        normalized = email.strip().lower()
        if not normalized:
            raise click.ClickException("Email is required.")
        if User.query.filter(func.lower(User.email) == normalized).first():
            raise click.ClickException(f"User {normalized} already exists.")
        username_clean = username.strip().lower()
        if not username_clean:
            raise click.ClickException("Username is required.")
        if User.query.filter(func.lower(User.username) == username_clean).first():
            raise click.ClickException(f"Username {username_clean} already exists.")
        if len(password.strip()) < MIN_PASSWORD_LENGTH:
            raise click.ClickException(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long.")
        user = User(email=normalized, username=username_clean, display_name=display_name)
        user.set_password(password)
        user.is_admin = admin
        db.session.add(user)
        db.session.commit()
        click.echo(f"Created user {normalized}/{username_clean} (admin={admin}).")

    @users_cli.command("set-password")
    @click.argument("email")
    @click.option("--password", prompt=True, hide_input=True, confirmation_prompt=True)
    def set_user_password(email, password):
        normalized = email.strip().lower()
        user = User.query.filter(func.lower(User.email) == normalized).first()
        if not user:
            raise click.ClickException(f"User {normalized} not found.")
        if len(password.strip()) < MIN_PASSWORD_LENGTH:
            raise click.ClickException(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long.")
        user.set_password(password)
        db.session.commit()
        click.echo(f"Password updated for {normalized}.")


# ---------------------------------------------------------------------------
# Application factory
# ---------------------------------------------------------------------------

def create_app():
    """Create, configure, and return a fully-initialised Flask app."""
    app = Flask(
        __name__,
        instance_path=str(CONFIG_INSTANCE_DIR),
        instance_relative_config=False,
    )
    app.config.from_object(Config)
    os.makedirs(app.instance_path, exist_ok=True)
    _configure_logging(app)

    # If no DB URI provided, store SQLite DB in instance/
    if not app.config.get("SQLALCHEMY_DATABASE_URI"):
        app.config["SQLALCHEMY_DATABASE_URI"] = f"sqlite:///{os.path.join(app.instance_path, 'database.db')}"

    # --- Core extensions ---
    _safe_init_sqlalchemy(app)
    _safe_init_migrate(app)
    _safe_init_cache(app)
    _configure_login_manager(app)
    csrf.init_app(app)
    app.jinja_env.globals["csrf_token"] = generate_csrf
    Compress(app)
    limiter.init_app(app)

    if app.config.get("ENABLE_TALISMAN", True):
        Talisman(
            app,
            content_security_policy=app.config.get("CONTENT_SECURITY_POLICY"),
            force_https=app.config.get("TALISMAN_FORCE_HTTPS", not app.debug),
            session_cookie_secure=app.config.get("SESSION_COOKIE_SECURE", True),
            session_cookie_samesite=app.config.get("SESSION_COOKIE_SAMESITE", "Lax"),
        )

    app.config["TEMPLATES_AUTO_RELOAD"] = bool(app.debug)

    # Blueprints
    from routes import views
    app.register_blueprint(views)

    @app.context_processor
    def inject_site():
        return {"site_name": app.config.get("SITE_NAME", "Emulators.wtf")}

    @app.context_processor
    def inject_compare():
        from services.compare_session import get_compare_store
        from viewmodels import CompareBar, CompareToggle

        store = get_compare_store()

        def compare_toggle(item_id, label=False):
            return CompareToggle(store, item_id, show_label=label).render()

        return {"compare_bar": CompareBar(store).render(), "compare_toggle": compare_toggle}

    _register_error_handlers(app)
    _register_cli(app)

    @app.before_request
    def assign_request_id():
        g.request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
        # g outlives the request when an app context was already pushed.
        g.pop("compare_store", None)

    @app.after_request
    def attach_request_id(resp):
        rid = getattr(g, "request_id", None)
        if rid:
            resp.headers.setdefault("X-Request-ID", rid)
        return resp

    @app.after_request
    def security_headers(resp):
        """Attach a minimal set of security-related HTTP headers to each response."""
        resp.headers.setdefault("X-Content-Type-Options", "nosniff")
        resp.headers.setdefault("Referrer-Policy", "no-referrer-when-downgrade")
        resp.headers.setdefault("X-Frame-Options", "DENY")
        return resp

    return app


if __name__ == "__main__":
    _app = create_app()
    _app.run(host="127.0.0.1", port=5000, debug=True)


# Single SQLite PRAGMA hook (avoid duplicate listeners)
_SQLITE_PRAGMA_STATEMENTS = (
    "PRAGMA foreign_keys=ON;",
    "PRAGMA journal_mode=WAL;",
    "PRAGMA synchronous=NORMAL;",
)


def _apply_sqlite_pragmas(dbapi_connection) -> None:
    """Execute the configured PRAGMAs if this is a SQLite connection."""
    if not isinstance(dbapi_connection, sqlite3.Connection):
        return
    cur = dbapi_connection.cursor()
    try:
        for statement in _SQLITE_PRAGMA_STATEMENTS:
            cur.execute(statement)
    except sqlite3.Error as exc:
        logging.getLogger(__name__).warning("SQLite PRAGMA setup failed: %s", exc)
    finally:
        cur.close()


@event.listens_for(Engine, "connect")
def _sqlite_pragmas(dbapi_connection, _) -> None:
    """Apply pragmatic performance/safety PRAGMAs each time SQLite opens a connection."""
    _apply_sqlite_pragmas(dbapi_connection)
