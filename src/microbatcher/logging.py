"""
structlog setup for applications embedding microbatcher.

Library modules only call ``structlog.get_logger``; configuring output is left
to the host application, which may call ``setup_logging`` once at startup.
"""

import logging
from collections.abc import Iterator
from contextlib import contextmanager

import structlog

_LOGGER_NAME = "microbatcher"


def _build_renderer(*, json_logs: bool, colors: bool) -> structlog.typing.Processor:
    if json_logs:
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=colors)


def setup_logging(
    level: int = logging.INFO,
    *,
    json_logs: bool = False,
    colors: bool = True,
) -> None:
    """
    Route structlog events through the stdlib ``microbatcher`` logger.

    Parameters
    ----------
    level : int, optional
        Level of the ``microbatcher`` logger. Group and call events are
        emitted at ``DEBUG``, resolver failures at ``ERROR``.
    json_logs : bool, optional
        Render one JSON object per event instead of console lines.
    colors : bool, optional
        Colorize console output. Ignored with ``json_logs``.
    """
    logging.getLogger(_LOGGER_NAME).setLevel(level)
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            _build_renderer(json_logs=json_logs, colors=colors),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


@contextmanager
def logging_context(**context) -> Iterator[None]:
    """
    Bind contextvars for a block, leaving keys already bound untouched.

    Each group task binds its ``group_id`` this way, so every event logged
    while the group resolves carries it.
    """
    to_bind = {
        key: value
        for key, value in context.items()
        if key not in structlog.contextvars.get_contextvars()
    }
    if not to_bind:
        yield
        return
    with structlog.contextvars.bound_contextvars(**to_bind):
        yield
