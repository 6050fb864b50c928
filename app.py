"""Application factory."""

import json
import logging
import os
import time
import uuid
from datetime import datetime, timezone
from typing import Optional

from flask import Flask, g, jsonify, request
from werkzeug.exceptions import HTTPException, NotFound

from config import Config, validate_runtime_config
from extensions import cors, jwt, limiter, migrate
from models import db
from routes.auth import auth_bp
from routes.users import users_bp
from security import RiskEvaluator, init_security
from utils.log_config import configure_logging
from utils.session import init_session

logger = logging.getLogger(__name__)

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "SAMEORIGIN",
    "Referrer-Policy": "no-referrer",
    "Cross-Origin-Opener-Policy": "same-origin",
    "X-DNS-Prefetch-Control": "off",
}


def create_app(
    config_class: type[Config] = Config,
    risk_evaluator: Optional[RiskEvaluator] = None,
) -> Flask:
    """Create and configure the Flask application."""
    app = Flask(__name__)
    app.config.from_object(config_class)
    validate_runtime_config(app.config)

    configure_logging(app.config.get("LOG_LEVEL", "info"), app.config.get("LOG_DIR"))

    # Core subsystems
    db.init_app(app)
    migrate.init_app(app, db)
    init_session(app, jwt)
    limiter.init_app(app)

    # CORS
    cors.init_app(
        app,
        resources={r"/*": {"origins": app.config.get("CORS_ORIGINS", "*")}},
        supports_credentials=True,
    )

    # Request ids and errors first, so every later hook can log the id
    _register_error_handlers(app)
    _register_request_logging(app)
    init_security(app, risk_evaluator)

    # Blueprints
    app.register_blueprint(auth_bp, url_prefix="/api/auth")
    app.register_blueprint(users_bp, url_prefix="/api/users")

    started_at = time.monotonic()

    @app.route("/", methods=["GET"])
    def index():
        logger.info("Hello from Acquisitions API!")
        return "Hello from Acquisitions API!", 200, {"Content-Type": "text/plain; charset=utf-8"}

    @app.route("/health", methods=["GET"])
    def health_check():
        return jsonify(
            {
                "status": "OK",
                "timestamp": datetime.now(timezone.utc).isoformat(),
                "uptime": time.monotonic() - started_at,
            }
        )

    @app.route("/api", methods=["GET"])
    def api_status():
        return jsonify({"message": "Acquisitions API is running!"})

    return app


def _register_request_logging(app: Flask) -> None:
    """Write one access line per request and baseline security headers."""

    @app.before_request
    def _start_timer():
        g.request_started = time.perf_counter()

    @app.after_request
    def _log_request(response):
        for header, value in SECURITY_HEADERS.items():
            response.headers.setdefault(header, value)
        started = g.get("request_started")
        duration_ms = (time.perf_counter() - started) * 1000 if started else 0.0
        logger.info(
            "%s %s %s %.1fms ip=%s request_id=%s",
            request.method,
            request.full_path.rstrip("?"),
            response.status_code,
            duration_ms,
            request.remote_addr,
            g.get("request_id"),
        )
        return response


def _register_error_handlers(app: Flask) -> None:
    """Register JSON error handlers with request IDs."""

    @app.before_request
    def _assign_request_id():
        g.request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())

    @app.after_request
    def _add_request_id_header(response):
        request_id = g.get("request_id")
        if request_id:
            response.headers.setdefault("X-Request-ID", request_id)
        return response

    @app.errorhandler(NotFound)
    def _handle_not_found(error: NotFound):
        if request.url_rule is None:
            request_id = g.get("request_id") or str(uuid.uuid4())
            response = jsonify({"error": "Route not found", "request_id": request_id})
            response.status_code = 404
            response.headers.setdefault("X-Request-ID", request_id)
            return response
        return _handle_http_exception(error)

    @app.errorhandler(HTTPException)
    def _handle_http_exception(error: HTTPException):
        request_id = g.get("request_id") or str(uuid.uuid4())
        if error.code and error.code >= 500:
            logger.error("HTTP %s on %s %s: %s", error.code, request.method, request.path, error.description)
        response = error.get_response()
        payload = {
            "error": getattr(error, "name", "Error"),
            "detail": error.description,
            "request_id": request_id,
        }
        response.data = json.dumps(payload)
        response.content_type = "application/json"
        response.headers.setdefault("X-Request-ID", request_id)
        return response

    @app.errorhandler(Exception)
    def _handle_unexpected(error: Exception):
        request_id = g.get("request_id") or str(uuid.uuid4())
        logger.exception(
            "Unhandled application error: method=%s path=%s request_id=%s",
            request.method,
            request.path,
            request_id,
            exc_info=error,
        )
        db.session.rollback()
        payload = {
            "error": "Internal Server Error",
            "detail": "An unexpected error occurred.",
            "request_id": request_id,
        }
        response = jsonify(payload)
        response.status_code = 500
        response.headers.setdefault("X-Request-ID", request_id)
        return response


if __name__ == "__main__":
    application = create_app()
    application.run(host="0.0.0.0", port=int(os.environ.get("PORT", application.config["PORT"])))
