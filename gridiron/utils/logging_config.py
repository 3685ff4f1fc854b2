"""
Logging configuration for the Gridiron Picks application

Console output plus three rotating files under LOG_DIR:
    gridiron.log   everything at LOG_LEVEL, with request context
    errors.log     ERROR and above, with source location
    scheduler.log  background refresh runs (scheduler and pipeline loggers)
"""

import logging
import logging.handlers
import os

from flask import g, has_request_context, request

DATEFMT = "%Y-%m-%d %H:%M:%S"
BASE_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

# Loggers whose records also go to scheduler.log
SCHEDULER_LOGGERS = ("gridiron.services.scheduler_service", "gridiron.services.pipeline")

QUIET_LOGGERS = ("werkzeug", "urllib3", "requests", "flask_limiter", "apscheduler")


class RequestContextFilter(logging.Filter):
    """Attach request method, path, client address and API user to records"""

    def filter(self, record):
        record.method = record.path = record.remote_addr = record.api_user = "-"
        if has_request_context():
            record.method = request.method
            record.path = request.full_path.rstrip("?")
            record.remote_addr = request.remote_addr
            # Only a user Flask-Login already loaded; never trigger the loader here
            user = g.get("_login_user")
            if getattr(user, "is_authenticated", False):
                record.api_user = user.username
        return True


class ColoredFormatter(logging.Formatter):
    """Colored level names for console output"""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record):
        color = self.COLORS.get(record.levelname)
        if color:
            record = logging.makeLogRecord(record.__dict__)
            record.levelname = f"{color}{record.levelname}{self.RESET}"
        return super().format(record)


def _rotating_handler(path, level, fmt, max_mb, backups):
    handler = logging.handlers.RotatingFileHandler(
        path, maxBytes=max_mb * 1024 * 1024, backupCount=backups
    )
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt, datefmt=DATEFMT))
    handler.addFilter(RequestContextFilter())
    return handler


def setup_logging(app):
    """
    Setup logging for the Flask application

    Args:
        app: Flask application instance
    """
    log_level = getattr(logging, app.config.get("LOG_LEVEL", "INFO").upper())

    # Leave the test runner's capture handlers alone
    if app.testing:
        logging.getLogger("gridiron").setLevel(log_level)
        return

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    if app.config.get("LOG_TO_CONSOLE", True):
        console_handler = logging.StreamHandler()
        console_handler.setLevel(log_level)
        if app.debug:
            console_handler.setFormatter(
                ColoredFormatter(f"{BASE_FORMAT} [%(filename)s:%(lineno)d]", datefmt="%H:%M:%S")
            )
        else:
            console_handler.setFormatter(logging.Formatter(BASE_FORMAT, datefmt=DATEFMT))
        root_logger.addHandler(console_handler)

    if app.config.get("LOG_TO_FILE", True):
        log_dir = app.config.get("LOG_DIR", "logs")
        os.makedirs(log_dir, exist_ok=True)

        root_logger.addHandler(
            _rotating_handler(
                os.path.join(log_dir, "gridiron.log"),
                log_level,
                f"{BASE_FORMAT} [%(method)s %(path)s] [%(remote_addr)s] [%(api_user)s]",
                max_mb=10,
                backups=5,
            )
        )
        root_logger.addHandler(
            _rotating_handler(
                os.path.join(log_dir, "errors.log"),
                logging.ERROR,
                f"{BASE_FORMAT} [%(pathname)s:%(lineno)d] [%(method)s %(path)s]",
                max_mb=5,
                backups=3,
            )
        )

        scheduler_handler = _rotating_handler(
            os.path.join(log_dir, "scheduler.log"), logging.INFO, BASE_FORMAT, max_mb=5, backups=3
        )
        for name in SCHEDULER_LOGGERS:
            logging.getLogger(name).addHandler(scheduler_handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    app.logger.info(f"Logging configured - Level: {logging.getLevelName(log_level)}")
