"""Structured logging for docqa, built on structlog.

One processor chain serves two renderers: a coloured console for local work
and JSON lines when ``APP_ENV=production`` (or ``json_output=True``).  The
standard-library root logger is pointed at the same chain, so uvicorn and the
SDK clients log in the same shape as docqa itself.

Context that spans several components is carried in structlog contextvars:
:func:`document_context` tags every event emitted while one document is
being ingested (including provider and store events) with its
``document_id``, and the request middleware binds a ``request_id``.
"""

import logging
import os
import sys
from collections.abc import Iterator
from contextlib import contextmanager

import structlog

# Chatty per-request loggers from the HTTP and database clients.
_NOISY_LOGGERS = ("httpx", "httpcore", "openai", "anthropic", "aiosqlite", "multipart")


def _shared_processors() -> list[structlog.types.Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]


def configure_logging(log_level: str = "INFO", json_output: bool = False) -> structlog.BoundLogger:
    """Configure structlog and the stdlib root logger.

    Args:
        log_level: DEBUG, INFO, WARNING or ERROR.
        json_output: Force JSON lines regardless of ``APP_ENV``.

    Returns:
        The root docqa logger.
    """
    level = logging.getLevelName(log_level.upper())
    use_json = json_output or os.environ.get("APP_ENV", "development") == "production"
    renderer: structlog.types.Processor = (
        structlog.processors.JSONRenderer() if use_json else structlog.dev.ConsoleRenderer(colors=True)
    )
    processors = _shared_processors()

    structlog.configure(
        processors=[*processors, renderer],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )

    handler = logging.StreamHandler(sys.stderr)
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

    # Library chatter only surfaces when docqa itself runs at DEBUG.
    library_level = logging.DEBUG if level == logging.DEBUG else logging.WARNING
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(library_level)

    return structlog.get_logger(logger_name="docqa")


def get_logger(name: str) -> structlog.BoundLogger:
    """Return a logger tagged with *name*, configuring defaults on first use."""
    if not structlog.is_configured():
        configure_logging()
    return structlog.get_logger(logger_name=name)


@contextmanager
def document_context(document_id: str) -> Iterator[None]:
    """Bind ``document_id`` to every log event emitted inside the block."""
    with structlog.contextvars.bound_contextvars(document_id=document_id):
        yield
