import logging
from datetime import timedelta

from flask import Flask, g, request, session
from dotenv import load_dotenv
from werkzeug.exceptions import HTTPException

from app.dashflow.config import load_config, production_config_errors
from app.dashflow.db import init_db, teardown_db_session
from app.dashflow.cache import init_cache
from app.dashflow.auth import bp as auth_bp, load_current_user
from app.dashflow.routes import bp as routes_bp
from app.dashflow.modules.users.admin import bp as users_bp
from app.dashflow.modules.orders.admin import bp as orders_bp
from app.dashflow.modules.login_records.admin import bp as login_records_bp
from app.dashflow.responses import fail


def _configure_logging(app: Flask) -> None:
    level = getattr(logging, app.config.get("LOG_LEVEL", "INFO"), logging.INFO)
    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(
            level=level,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )
    logging.getLogger("app.dashflow").setLevel(level)
    app.logger.setLevel(level)


def create_app() -> Flask:
    load_dotenv()
    app = Flask(__name__)
    app.config.from_mapping(load_config())
    app.config["PERMANENT_SESSION_LIFETIME"] = timedelta(hours=8)
    app.config["SESSION_REFRESH_EACH_REQUEST"] = True
    app.json.sort_keys = False

    _configure_logging(app)

    problems = production_config_errors(app.config)
    if problems:
        for problem in problems:
            app.logger.critical(problem)
        raise RuntimeError(" ".join(problems))

    init_db(app)
    init_cache(app)

    from app.dashflow.security import ensure_csrf_token, validate_csrf

    @app.before_request
    def _csrf_guard():
        if request.path.startswith(("/health", "/healthz")):
            return None
        ensure_csrf_token()
        session.permanent = True
        if request.method in ("POST", "PUT", "PATCH", "DELETE"):
            # Auth endpoints run before a token can be fetched by new clients.
            if (request.endpoint or "").startswith("auth."):
                return None
            if not validate_csrf(request):
                return fail("CSRF token missing or invalid.", 403)

    app.before_request(load_current_user)
    app.teardown_appcontext(teardown_db_session)

    app.register_blueprint(routes_bp)
    app.register_blueprint(auth_bp, url_prefix="/auth")
    app.register_blueprint(users_bp, url_prefix="/api")
    app.register_blueprint(orders_bp, url_prefix="/api")
    app.register_blueprint(login_records_bp, url_prefix="/api")

    @app.errorhandler(HTTPException)
    def _err_http(e: HTTPException):  # type: ignore[no-redef]
        if e.code and e.code >= 500:
            app.logger.error("HTTP %s (request_id=%s): %s", e.code, getattr(g, "request_id", None), e.description)
        return fail(e.description or e.name, e.code or 500)

    @app.errorhandler(Exception)
    def _err_500(e: Exception):  # type: ignore[no-redef]
        app.logger.exception("Unhandled 500 (request_id=%s)", getattr(g, "request_id", None))
        return fail("Internal server error", 500)

    app.logger.info("dashflow ready env=%s db=%s", app.config["ENV"], app.config["DATABASE_URL"].split("@")[-1])

    return app
