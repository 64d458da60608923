"""Structured logging setup for ragcore.

:func:`configure_logging` installs one structlog processor chain and renders
it either as coloured console lines (development) or as JSON (production,
selected from ``APP_ENV`` or forced with ``json_output``).
It replaces the root handlers, so only entry points (the CLI) call it;
library modules just take ``structlog.get_logger(logger_name=__name__)``.

Standard-library records from the SDKs ragcore talks to (openai, httpx,
aiosqlite) are routed through the same formatter.  Those loggers are held at
WARNING unless ragcore itself runs at DEBUG, since every embedding call
would otherwise produce an INFO line per HTTP request.

Fields bound with :func:`bind_request_context` (``user_id``, ``command``...)
are merged into every event logged inside the ``with`` block, including
events from concurrently gathered tasks started there.
"""

import logging
import os
import sys
from collections.abc import Iterator
from contextlib import contextmanager

import structlog

_SDK_LOGGERS = ("openai", "httpx", "httpcore", "aiosqlite")


def _shared_processors() -> list[structlog.types.Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.TimeStamper(fmt="iso"),
    ]


def _select_renderer(json_output: bool) -> structlog.types.Processor:
    if json_output or os.environ.get("APP_ENV", "development") == "production":
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())


def configure_logging(log_level: str = "INFO", json_output: bool = False) -> structlog.BoundLogger:
    """Configure structlog and the stdlib bridge.

    Args:
        log_level: Level name for ragcore events (DEBUG, INFO, WARNING, ERROR).
        json_output: Force JSON rendering regardless of ``APP_ENV``.

    Returns:
        The root structlog logger.
    """
    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    processors = _shared_processors()
    renderer = _select_renderer(json_output)

    structlog.configure(
        processors=[*processors, renderer],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                *processors,
                renderer,
            ],
        )
    )
    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(level)

    sdk_level = level if level <= logging.DEBUG else max(level, logging.WARNING)
    for name in _SDK_LOGGERS:
        logging.getLogger(name).setLevel(sdk_level)

    return structlog.get_logger()


@contextmanager
def bind_request_context(**fields: object) -> Iterator[None]:
    """Bind *fields* to every event logged inside the block.

    ``None`` values are dropped so optional identifiers can be passed
    through unconditionally.
    """
    present = {key: value for key, value in fields.items() if value is not None}
    with structlog.contextvars.bound_contextvars(**present):
        yield
