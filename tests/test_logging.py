"""
Tests for logging helpers in microbatcher.logging.
"""

import logging

import structlog

from microbatcher.logging import logging_context, setup_logging


def test_setup_logging_configures_structlog(monkeypatch):
    configured = {}
    monkeypatch.setattr(structlog, "configure", lambda **kwargs: configured.update(kwargs))
    logger = logging.getLogger("microbatcher")
    monkeypatch.setattr(logger, "level", logger.level)

    setup_logging(level=logging.INFO)

    assert logger.level == logging.INFO
    assert configured["wrapper_class"] is structlog.stdlib.BoundLogger
    assert structlog.contextvars.merge_contextvars in configured["processors"]


def test_setup_logging_renders_json(monkeypatch):
    configured = {}
    monkeypatch.setattr(structlog, "configure", lambda **kwargs: configured.update(kwargs))
    logger = logging.getLogger("microbatcher")
    monkeypatch.setattr(logger, "level", logger.level)

    setup_logging(json_logs=True)

    assert isinstance(configured["processors"][-1], structlog.processors.JSONRenderer)


def test_setup_logging_renders_console_by_default(monkeypatch):
    configured = {}
    monkeypatch.setattr(structlog, "configure", lambda **kwargs: configured.update(kwargs))
    logger = logging.getLogger("microbatcher")
    monkeypatch.setattr(logger, "level", logger.level)

    setup_logging(colors=False)

    assert logger.level == logging.INFO
    assert isinstance(configured["processors"][-1], structlog.dev.ConsoleRenderer)


def test_logging_context_binds_and_restores():
    structlog.contextvars.clear_contextvars()

    with logging_context(group_id="g-1"):
        assert structlog.contextvars.get_contextvars() == {"group_id": "g-1"}

    assert structlog.contextvars.get_contextvars() == {}


def test_logging_context_keeps_existing_bindings():
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(group_id="outer")
    try:
        with logging_context(group_id="inner", call_id="c-1"):
            assert structlog.contextvars.get_contextvars() == {
                "group_id": "outer",
                "call_id": "c-1",
            }
    finally:
        structlog.contextvars.clear_contextvars()
