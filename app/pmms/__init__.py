import logging
import os

from dotenv import load_dotenv
from flask import Flask, g, jsonify, request, session
from sqlalchemy.exc import IntegrityError
from werkzeug.exceptions import HTTPException

from app.pmms.auth import bp as auth_bp, load_current_user
from app.pmms.config import load_config
from app.pmms.db import init_db, teardown_db_session
from app.pmms.errors import PMMSError
from app.pmms.logging_config import configure_logging
from app.pmms.modules.communications.admin import bp as communications_bp
from app.pmms.modules.dashboard.admin import bp as dashboard_bp
from app.pmms.modules.disciplinary.admin import bp as disciplinary_bp
from app.pmms.modules.events.admin import bp as events_bp
from app.pmms.modules.members.admin import bp as members_bp
from app.pmms.modules.members.public import bp as public_bp
from app.pmms.modules.membership_cards.admin import bp as cards_bp
from app.pmms.modules.reports.admin import bp as reports_bp
from app.pmms.routes import bp as routes_bp

logger = logging.getLogger(__name__)

_UNGUARDED_PREFIXES = ("/static/", "/health", "/healthz")


def create_app() -> Flask:
    load_dotenv()
    app = Flask(__name__, template_folder="templates", static_folder="static")
    app.config.from_mapping(load_config())
    app.json.sort_keys = False
    configure_logging(app.config.get("LOG_LEVEL") or "INFO")

    @app.before_request
    def _load_user_wrapper():
        if request.path.startswith(_UNGUARDED_PREFIXES):
            g.current_user = None
            return None
        return load_current_user()

    # CSRF protection (minimal)
    from app.pmms.security import ensure_csrf_token, validate_csrf

    @app.before_request
    def _csrf_guard():
        if request.path.startswith(_UNGUARDED_PREFIXES):
            return None
        ensure_csrf_token()
        session.permanent = True
        if request.method in ("POST", "PUT", "PATCH", "DELETE"):
            # Login/logout and public registration carry no session yet
            if (request.endpoint or "").startswith(("auth.", "public.")):
                return None
            if not validate_csrf(request):
                return jsonify({"error": "csrf", "message": "CSRF token missing or invalid."}), 400
        return None

    # Production guardrails (fail fast with clear logs)
    env = (app.config.get("ENV") or "").strip().lower()
    if env in ("prod", "production"):
        if not app.config.get("DATABASE_URL") or str(app.config["DATABASE_URL"]).strip() == "":
            raise RuntimeError("DATABASE_URL is required in production.")
        if str(app.config["DATABASE_URL"]).startswith("sqlite"):
            raise RuntimeError("DATABASE_URL must be Postgres in production (not sqlite).")
        if not app.config.get("SECRET_KEY") or str(app.config["SECRET_KEY"]) in ("", "change-me"):
            raise RuntimeError("SECRET_KEY must be set to a strong value in production (not default).")

    init_db(app)

    def _dispose_engine_on_fork() -> None:
        if hasattr(os, "register_at_fork"):
            def _after_fork_child():
                engine = app.extensions.get("sqlalchemy_engine")
                if engine:
                    engine.dispose()
                    app.logger.info("Disposed DB engine after fork (pid=%s)", os.getpid())

            os.register_at_fork(after_in_child=_after_fork_child)

    _dispose_engine_on_fork()

    # Storage config check (evidence uploads fail later otherwise)
    if app.config.get("STORAGE_BACKEND") == "s3":
        missing_s3 = [
            key
            for key in ("S3_ENDPOINT", "S3_BUCKET", "S3_ACCESS_KEY_ID", "S3_SECRET_ACCESS_KEY")
            if not app.config.get(key)
        ]
        if missing_s3:
            app.logger.error("STORAGE CONFIG ERROR: Missing required S3 env vars: %s", ", ".join(missing_s3))

    app.register_blueprint(routes_bp)
    app.register_blueprint(auth_bp, url_prefix="/auth")
    app.register_blueprint(public_bp, url_prefix="/api")
    app.register_blueprint(members_bp, url_prefix="/api")
    app.register_blueprint(disciplinary_bp, url_prefix="/api")
    app.register_blueprint(events_bp, url_prefix="/api")
    app.register_blueprint(communications_bp, url_prefix="/api")
    app.register_blueprint(cards_bp, url_prefix="/api")
    app.register_blueprint(dashboard_bp, url_prefix="/api")
    app.register_blueprint(reports_bp, url_prefix="/api")

    app.teardown_appcontext(teardown_db_session)

    @app.errorhandler(PMMSError)
    def _err_domain(e: PMMSError):  # type: ignore[no-redef]
        if e.status_code == 403:
            app.logger.warning(
                "Forbidden: missing_permission=%s request_id=%s",
                getattr(e, "permission", None),
                getattr(g, "request_id", None),
            )
        return jsonify(e.to_dict()), e.status_code

    @app.errorhandler(IntegrityError)
    def _err_integrity(e: IntegrityError):  # type: ignore[no-redef]
        app.logger.warning("Integrity error (request_id=%s): %s", getattr(g, "request_id", None), e.orig)
        return jsonify({"error": "duplicate", "message": "A record with these details already exists."}), 409

    @app.errorhandler(HTTPException)
    def _err_http(e: HTTPException):  # type: ignore[no-redef]
        return jsonify({"error": (e.name or "error").lower().replace(" ", "_"), "message": e.description}), e.code

    @app.errorhandler(500)
    def _err_500(e):  # type: ignore[no-redef]
        app.logger.exception("Unhandled 500 (request_id=%s)", getattr(g, "request_id", None))
        return jsonify({"error": "internal_error", "message": "Internal server error."}), 500

    logger.info("create_app() complete; app ready to serve")

    return app
