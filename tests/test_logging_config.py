import logging
from types import SimpleNamespace

import pytest
from flask import g

from gridiron.utils.logging_config import SCHEDULER_LOGGERS, RequestContextFilter, setup_logging


@pytest.fixture
def restore_logging():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for handler in root.handlers[:]:
        root.removeHandler(handler)
        handler.close()
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)
    for name in SCHEDULER_LOGGERS:
        for handler in logging.getLogger(name).handlers[:]:
            logging.getLogger(name).removeHandler(handler)
            handler.close()


def record():
    return logging.LogRecord("gridiron.test", logging.INFO, __file__, 1, "hello", None, None)


def test_filter_outside_request():
    rec = record()
    assert RequestContextFilter().filter(rec)
    assert (rec.method, rec.path, rec.api_user) == ("-", "-", "-")


def test_filter_adds_request_and_user(app, user):
    with app.test_request_context("/api/picks?year=2025", method="POST"):
        g._login_user = user
        rec = record()
        RequestContextFilter().filter(rec)

    assert rec.method == "POST"
    assert rec.path == "/api/picks?year=2025"
    assert rec.api_user == "alice"


def test_setup_logging_writes_rotating_files(tmp_path, restore_logging):
    fake_app = SimpleNamespace(
        testing=False,
        debug=False,
        config={"LOG_LEVEL": "INFO", "LOG_TO_CONSOLE": False, "LOG_TO_FILE": True, "LOG_DIR": str(tmp_path)},
        logger=logging.getLogger("gridiron.app"),
    )

    setup_logging(fake_app)
    logging.getLogger("gridiron.services.pipeline").info("refresh finished")
    logging.getLogger("gridiron.other").error("boom")
    for handler in logging.getLogger().handlers + logging.getLogger(SCHEDULER_LOGGERS[1]).handlers:
        handler.flush()

    assert "refresh finished" in (tmp_path / "scheduler.log").read_text()
    assert "boom" in (tmp_path / "errors.log").read_text()
    assert "boom" not in (tmp_path / "scheduler.log").read_text()
    assert "Logging configured" in (tmp_path / "gridiron.log").read_text()
