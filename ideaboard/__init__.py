"""
IdeaBoard
Flask Application Factory.

Usage:
    from ideaboard import create_app
    app = create_app()           # defaults to APP_ENV or "development"
    app = create_app("testing")  # explicit config
"""

import logging
import os

from flask import Flask, request
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_migrate import Migrate
from sqlalchemy import event as _sa_event, engine as _sa_engine

from ideaboard.auth import init_auth
from ideaboard.config import config
from ideaboard.core.exceptions import (
    BusinessRuleError, ConflictError, NotFoundError, StoreError, ValidationError,
)
from ideaboard.middleware.logging_config import configure_logging
from ideaboard.middleware.rate_limiter import init_rate_limits
from ideaboard.middleware.timing import init_request_timing
from ideaboard.models import db
from ideaboard.utils.errors import E, api_error

logger = logging.getLogger(__name__)


# ── SQLite FK enforcement (global engine event) ─────────────────────────
@_sa_event.listens_for(_sa_engine.Engine, "connect")
def _enable_sqlite_fk(dbapi_conn, connection_record):
    """Enable foreign key enforcement for SQLite connections."""
    if "sqlite" in type(dbapi_conn).__module__:
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


migrate = Migrate()
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[],                     # no global limit - apply per-blueprint
    storage_uri=os.getenv("REDIS_URL", "memory://"),
)


def create_app(config_name=None):
    """
    Create and configure the Flask application.

    Args:
        config_name: One of "development", "testing", "production".
                     Defaults to APP_ENV env var, or "development" if unset.

    Returns:
        Configured Flask application instance.
    """
    if config_name is None:
        config_name = os.getenv("APP_ENV", "development")

    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(config[config_name]())

    # ── Structured logging (must be first) ───────────────────────────────
    configure_logging(app)

    if app.config["SQLALCHEMY_DATABASE_URI"].startswith("sqlite:///") and ":memory:" not in \
            app.config["SQLALCHEMY_DATABASE_URI"]:
        os.makedirs(app.instance_path, exist_ok=True)

    # ── Extensions ───────────────────────────────────────────────────────
    db.init_app(app)
    migrate.init_app(app, db)
    limiter.init_app(app)
    cors_origins = app.config.get("CORS_ORIGINS", "*")
    if cors_origins and cors_origins != "*":
        CORS(app, origins=[o.strip() for o in cors_origins.split(",") if o.strip()])
    else:
        CORS(app)

    # ── Request timing, then auth (timing must see every request) ───────
    init_request_timing(app)
    init_auth(app)

    app.config.setdefault("MAX_CONTENT_LENGTH", 1 * 1024 * 1024)  # 1 MB

    # ── Models, derived columns, change feed ────────────────────────────
    from ideaboard.models import idea as _idea_models          # noqa: F401
    from ideaboard.models import milestone as _milestone_models  # noqa: F401
    from ideaboard.models import project as _project_models    # noqa: F401
    from ideaboard.models import activity as _activity_models  # noqa: F401
    from ideaboard.models import _priority_sync
    from ideaboard.services.change_feed import init_change_feed

    _priority_sync.register_all()
    init_change_feed(app)

    # ── Auto-create tables (CREATE IF NOT EXISTS) ────────────────────────
    with app.app_context():
        db.create_all()
        app.logger.info("db.create_all() completed successfully")

    # ── Blueprints ───────────────────────────────────────────────────────
    from ideaboard.blueprints.health_bp import health_bp
    from ideaboard.blueprints.idea_bp import idea_bp
    from ideaboard.blueprints.milestone_bp import milestone_bp
    from ideaboard.blueprints.profile_bp import profile_bp
    from ideaboard.blueprints.project_bp import project_bp
    from ideaboard.blueprints.webhook_bp import webhook_bp

    app.register_blueprint(health_bp)
    app.register_blueprint(idea_bp)
    app.register_blueprint(milestone_bp)
    app.register_blueprint(project_bp)
    app.register_blueprint(profile_bp)
    app.register_blueprint(webhook_bp)

    _register_error_handlers(app)
    _register_cli(app)

    # ── Rate limiting (after blueprints registered) ──────────────────────
    init_rate_limits(app, limiter)

    return app


def _register_error_handlers(app):
    """Map domain exceptions and HTTP errors to JSON bodies."""

    @app.errorhandler(NotFoundError)
    def _not_found_error(error):
        logger.info("Not found: %s", error)
        return api_error(E.NOT_FOUND, f"{error.resource} not found")

    @app.errorhandler(ValidationError)
    def _validation_error(error):
        db.session.rollback()
        code = E.TRANSITION_BLOCKED if isinstance(error, BusinessRuleError) else E.VALIDATION_INVALID
        return api_error(code, str(error), status=error.status_code, details=error.details)

    @app.errorhandler(ConflictError)
    def _conflict_error(error):
        db.session.rollback()
        return api_error(E.CONFLICT_DUPLICATE, str(error), details={error.field: error.value})

    @app.errorhandler(StoreError)
    def _store_error(error):
        return api_error(E.DATABASE, str(error), details={"operation": error.operation})

    @app.errorhandler(404)
    def not_found(e):
        return {"error": "Not found", "path": request.path}, 404

    @app.errorhandler(405)
    def method_not_allowed(e):
        return {"error": "Method not allowed"}, 405

    @app.errorhandler(413)
    def too_large(e):
        return {"error": "Request body too large"}, 413

    @app.errorhandler(429)
    def rate_limited(e):
        return {"error": "Too many requests", "retry_after": e.description}, 429

    @app.errorhandler(500)
    def server_error(e):
        logger.error("500 error: %s", e, exc_info=True)
        db.session.rollback()
        return api_error(E.INTERNAL, "Internal server error")


def _register_cli(app):

    @app.cli.command("seed-demo")
    def seed_demo_cmd():
        """Insert a demo idea with a few milestones for DEFAULT_USER_ID."""
        from ideaboard.context import UserContext
        from ideaboard.services import idea_service, milestone_service

        ctx = UserContext(user_id=app.config["DEFAULT_USER_ID"], source="cli")
        idea = idea_service.create_idea(ctx, {
            "title": "Habit tracker with streak sharing",
            "description": "Track daily habits and share streaks with friends.",
            "category": "tech",
            "tags": ["mobile", "social"],
            "impact_score": 8,
            "effort_score": 4,
            "excitement_score": 9,
        })
        for title in ("Sketch core screens", "Build streak API", "Invite beta users"):
            milestone_service.create_milestone(ctx, idea.id, {"title": title})
        db.session.commit()
        logger.info("Seeded demo idea %s (priority %s)", idea.id, idea.priority_score)
