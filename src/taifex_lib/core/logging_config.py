"""
structlog setup shared by the API process and the night refresh.

``setup_logging()`` runs once at startup.  After it, both structlog
loggers (``get_logger``) and plain ``logging.getLogger`` callers (the
parsers, the HTTP client, uvicorn) write through one stderr handler, so a
walk over thirty report dates reads as one consistent stream::

    setup_logging(service="closes-service")
    log = get_logger("closes", symbol="TX")
    log.info("walk_finished", points=30, attempts=44)
    # 2025-06-01T06:23:01Z [info] walk_finished  attempts=44 points=30 service=closes-service symbol=TX

``LOG_FORMAT=console`` (default) renders for a terminal, ``LOG_FORMAT=json``
emits one JSON object per line with CJK text left unescaped.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import Any

import structlog

# Chatty at INFO: one line per HTTP request or uvicorn access.
QUIET_LOGGERS: tuple[str, ...] = ("uvicorn.access", "httpx", "httpcore", "urllib3")


def _pre_chain() -> list[structlog.types.Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.ExtraAdder(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]


def _renderer(log_format: str) -> structlog.types.Processor:
    if log_format == "json":
        return structlog.processors.JSONRenderer(ensure_ascii=False)
    return structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty(), pad_event_to=30)


def setup_logging(
    *,
    service: str = "taifex",
    level: str | None = None,
    log_format: str | None = None,
) -> None:
    """Route structlog and stdlib logging through one formatter.

    Parameters
    ----------
    service:
        Bound to every event, e.g. ``"closes-service"``.
    level:
        Root level name; defaults to ``LOG_LEVEL`` or ``"INFO"``.
    log_format:
        ``"console"`` or ``"json"``; defaults to ``LOG_FORMAT`` or
        ``"console"``.
    """
    level = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    log_format = (log_format or os.getenv("LOG_FORMAT", "console")).lower()
    pre_chain = _pre_chain()

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                _renderer(log_format),
            ],
            foreign_pre_chain=pre_chain,
        )
    )
    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(getattr(logging, level, logging.INFO))

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    structlog.configure(
        processors=[
            *pre_chain,
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(service=service)


def get_logger(name: str | None = None, **initial_binds: Any) -> structlog.stdlib.BoundLogger:
    """structlog logger named *name*, with *initial_binds* on every event."""
    log = structlog.get_logger(name)
    return log.bind(**initial_binds) if initial_binds else log
