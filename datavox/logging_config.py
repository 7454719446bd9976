"""
Logging setup for the API, the poller worker and the CLI.

Correlation fields live in structlog's context (``structlog.contextvars``):
``request_context`` binds the API request id as ``trace_id`` and
``process_context`` binds the process being advanced, so every event
logged inside those blocks carries them without passing them around.

Usage:
    from datavox.logging_config import get_logger, process_context

    logger = get_logger(__name__)
    with process_context("p-123", transcript_id="tx-9"):
        logger.info("extraction_started", template_id="meeting-notes")
"""

from __future__ import annotations

import logging
import sys
import uuid
from contextlib import AbstractContextManager
from typing import Any

import structlog

from datavox.config import get_settings

# Chatty per-request loggers from the HTTP, upload and storage clients
_QUIET_LOGGERS = (
    "httpx",
    "httpcore",
    "hpack",
    "multipart",
    "python_multipart",
    "redis",
    "postgrest",
    "uvicorn.access",
)


def generate_trace_id() -> str:
    return uuid.uuid4().hex[:12]


def request_context(request_id: str) -> AbstractContextManager[Any]:
    """Bind ``trace_id`` for the duration of one API request."""
    return structlog.contextvars.bound_contextvars(trace_id=request_id)


def process_context(process_id: str, **fields: Any) -> AbstractContextManager[Any]:
    """Bind ``process_id`` (plus any extra fields, e.g. ``transcript_id``) while a process is handled."""
    extra = {key: value for key, value in fields.items() if value is not None}
    return structlog.contextvars.bound_contextvars(process_id=process_id, **extra)


def _use_json(settings) -> bool:
    if settings.log_json is not None:
        return settings.log_json
    return settings.is_production


def setup_logging() -> None:
    """
    Route structlog and stdlib logging through one stdout handler.

    JSON lines in production (or with ``LOG_JSON=true``), colored
    console output otherwise.
    """
    settings = get_settings()
    as_json = _use_json(settings)

    pre_chain: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]
    if as_json:
        pre_chain.append(structlog.processors.format_exc_info)
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())

    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=pre_chain,
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        )
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(settings.log_level.upper())

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)
