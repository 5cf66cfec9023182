from __future__ import annotations

import importlib
import logging
from datetime import timedelta
from typing import Optional

from dotenv import load_dotenv
from flask import Flask, jsonify
from mysql.connector import Error as MySQLError
from werkzeug.exceptions import HTTPException

from .attendance.controller import register as register_attendance
from .cohorts.controller import register as register_cohorts
from .config import get_settings_module
from .container import Container, build_container
from .core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    DomainError,
    NotFoundError,
    UpstreamError,
    ValidationError,
)
from .lti.controller import register as register_lti
from .moodle.controller import register as register_moodle
from .semesters.controller import register as register_semesters

logger = logging.getLogger(__name__)

_STATUS_BY_ERROR = (
    (ValidationError, 400),
    (AuthenticationError, 401),
    (AuthorizationError, 403),
    (NotFoundError, 404),
    (UpstreamError, 502),
)


def setup_logging(app: Flask) -> None:
    level = getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO)
    root = logging.getLogger("lti_attendance")
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
        )
        root.addHandler(handler)
    root.setLevel(level)
    app.logger.setLevel(level)


def register_error_handlers(app: Flask) -> None:
    def error_response(message: str, details: str, status: int):
        return jsonify({"error": message, "details": details}), status

    @app.errorhandler(DomainError)
    def handle_domain_error(e: DomainError):
        for error_type, status in _STATUS_BY_ERROR:
            if isinstance(e, error_type):
                break
        else:
            status = 400
        if status >= 500:
            logger.error("Upstream failure: %s", e)
        return error_response(type(e).__name__, str(e), status)

    @app.errorhandler(MySQLError)
    def handle_database_error(e: MySQLError):
        logger.exception("Moodle database error")
        return error_response("DatabaseError", "Failed to read from the Moodle database", 502)

    @app.errorhandler(HTTPException)
    def handle_http_error(e: HTTPException):
        return error_response(e.name, e.description or "", e.code or 500)

    @app.errorhandler(Exception)
    def handle_unexpected(e: Exception):
        logger.exception("Unhandled error")
        return error_response("InternalServerError", "Unexpected server error", 500)


def create_app(container: Optional[Container] = None) -> Flask:
    load_dotenv(override=False)
    app = Flask(__name__)

    settings_module = get_settings_module()
    settings = importlib.import_module(settings_module)
    app.secret_key = getattr(settings, "SECRET_KEY")
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))
    app.config["TESTING"] = bool(getattr(settings, "TESTING", False))
    app.config["LOG_LEVEL"] = getattr(settings, "LOG_LEVEL", "INFO")
    app.config["SESSION_COOKIE_NAME"] = getattr(settings, "SESSION_COOKIE_NAME", "session")
    app.config["SESSION_COOKIE_SECURE"] = bool(getattr(settings, "SESSION_COOKIE_SECURE", False))
    app.config["SESSION_COOKIE_SAMESITE"] = getattr(settings, "SESSION_COOKIE_SAMESITE", "Lax")
    app.config["SESSION_COOKIE_HTTPONLY"] = True
    app.config["PERMANENT_SESSION_LIFETIME"] = timedelta(hours=int(getattr(settings, "SESSION_LIFETIME_HOURS", 24)))

    setup_logging(app)

    if container is None:
        db_config = getattr(settings, "DB_CONFIG")
        logger.info(
            "settings=%s db=%s@%s:%s/%s",
            settings_module,
            db_config.get("user"),
            db_config.get("host"),
            db_config.get("port", 3306),
            db_config.get("database"),
        )
        container = build_container(
            db_config=db_config,
            moodle_base_url=getattr(settings, "MOODLE_BASE_URL", ""),
            moodle_token=getattr(settings, "MOODLE_ATTENDANCE_TOKEN", ""),
            moodle_timeout=getattr(settings, "MOODLE_TIMEOUT", 60),
            lti_consumer_key=getattr(settings, "LTI_CONSUMER_KEY", None),
            landing_paths=getattr(settings, "LANDING_PATHS", None),
            status_acronyms=getattr(settings, "STATUS_ACRONYMS", None),
            display_timezone=getattr(settings, "DISPLAY_TIMEZONE", None),
        )

    register_error_handlers(app)

    @app.route("/health", methods=["GET"], endpoint="health")
    def health():
        return jsonify({"status": "ok"})

    register_lti(app, container)
    register_attendance(app, container)
    register_cohorts(app, container)
    register_semesters(app, container)
    register_moodle(app, container)

    return app
