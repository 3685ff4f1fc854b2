import logging
import os

from flask import Flask, jsonify, request
from flask_caching import Cache
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_login import LoginManager
from flask_sqlalchemy import SQLAlchemy
from werkzeug.exceptions import HTTPException

from config import config

logger = logging.getLogger(__name__)

db = SQLAlchemy()
login_manager = LoginManager()
cache = Cache()


def get_real_ip():
    """
    Get the real client IP address, accounting for reverse proxies.
    Checks X-Forwarded-For, X-Real-IP, and falls back to remote_addr.
    """
    if request.headers.get("X-Forwarded-For"):
        # Leftmost entry is the original client
        return request.headers.get("X-Forwarded-For").split(",")[0].strip()
    if request.headers.get("X-Real-IP"):
        return request.headers.get("X-Real-IP")
    return get_remote_address()


limiter = Limiter(
    key_func=get_real_ip,
    default_limits=["10000 per day", "1000 per hour"],
)

ERROR_MESSAGES = {
    400: "Bad request",
    401: "Unauthorized",
    403: "Access forbidden",
    404: "Resource not found",
    405: "Method not allowed",
    429: "Too many requests",
    500: "Internal server error",
}


def create_app(config_name=None):
    app = Flask(__name__)

    if config_name is None:
        config_name = os.environ.get("FLASK_CONFIG", "default")

    app.config.from_object(config[config_name]())

    db.init_app(app)
    login_manager.init_app(app)
    cache.init_app(app)
    limiter.init_app(app)

    # Bearer-token authentication for the JSON API
    from gridiron.utils.auth import register_auth

    register_auth(login_manager)

    from gridiron.routes.api import bp as api_bp

    app.register_blueprint(api_bp, url_prefix="/api")

    register_error_handlers(app)

    from gridiron.utils.logging_config import setup_logging

    setup_logging(app)

    show_config_warnings(app, config_name)

    with app.app_context():
        db.create_all()

    # Background refreshes run in the web process, never under tests
    if not app.config.get("TESTING", False):
        from gridiron.services.scheduler_service import scheduler_service

        scheduler_service.init_app(app)

    return app


def show_config_warnings(app, config_name):
    """Log configuration warnings and status"""
    logger.info(f"Gridiron Picks starting with '{config_name}' configuration")

    if config_name == "production" and app.config.get("DEBUG"):
        logger.warning("DEBUG mode is enabled in production!")

    if not os.environ.get("SECRET_KEY") and not app.testing:
        logger.warning(
            "Using auto-generated SECRET_KEY. Run: python3 generate_secrets.py"
        )

    db_url = app.config.get("SQLALCHEMY_DATABASE_URI", "")
    logger.info(
        f"Using database: {db_url.split('://')[0] if '://' in db_url else 'Unknown'}"
    )
    logger.info(
        f"Upstream: {app.config.get('NFL_API_BASE_URL')} "
        f"(cooldown {app.config.get('SCORE_UPDATE_INTERVAL')}s)"
    )


def register_error_handlers(app):
    """Every error leaves the API as {"error": message} JSON"""

    @app.after_request
    def after_request(response):
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"

        if not app.config.get("DEBUG"):
            response.headers["Strict-Transport-Security"] = (
                "max-age=31536000; includeSubDomains"
            )

        return response

    @app.errorhandler(HTTPException)
    def http_error(error):
        message = ERROR_MESSAGES.get(error.code, error.name)
        if error.code == 400:
            app.logger.warning(
                f"400 Bad Request: {error.description} - Path: {request.path} - Method: {request.method}"
            )
        return jsonify({"error": message}), error.code

    @app.errorhandler(500)
    def internal_error(error):
        db.session.rollback()
        logger.error(f"Unhandled error on {request.method} {request.path}: {error}")
        return jsonify({"error": ERROR_MESSAGES[500]}), 500


from gridiron import models  # noqa: F401, E402 - imported for model registration
