"""
Structured logging for the field sync service.

structlog renders JSON in production and colored console output in
development. Two context variables tag every entry: ``trace_id`` for the
webhook delivery that started the work, and ``record_id`` for the record
a reconciliation pass is updating.

Usage:
    from fieldsync.logging_config import get_logger, pass_context

    logger = get_logger(__name__)
    with pass_context("contact-123"):
        logger.info("pass_started", call_id="call-456")
"""

from __future__ import annotations

import logging
import sys
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any, Iterator, Optional

import structlog

from fieldsync.config import get_settings

trace_id_var: ContextVar[str] = ContextVar("trace_id", default="")
record_id_var: ContextVar[str] = ContextVar("record_id", default="")

QUIET_LOGGERS = ("httpx", "httpcore", "urllib3", "asyncio")


def generate_trace_id() -> str:
    return uuid.uuid4().hex[:12]


@contextmanager
def pass_context(record_id: str) -> Iterator[None]:
    """Tag every entry logged inside the block with ``record_id``."""
    token = record_id_var.set(record_id)
    try:
        yield
    finally:
        record_id_var.reset(token)


def _add_correlation_ids(
    logger: Any, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    for key, var in (("trace_id", trace_id_var), ("record_id", record_id_var)):
        value = var.get("")
        if value:
            event_dict.setdefault(key, value)
    return event_dict


def _processor_chain() -> list[structlog.types.Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        _add_correlation_ids,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]


def _renderer(json_output: bool) -> structlog.types.Processor:
    if json_output:
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=True)


def setup_logging(level: Optional[str] = None) -> None:
    """
    Configure structlog and route stdlib logging through it.

    Args:
        level: Overrides ``settings.log_level`` when given.
    """
    settings = get_settings()

    structlog.configure(
        processors=[
            *_processor_chain(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    # uvicorn and httpx log through stdlib; give them the same renderer.
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            _renderer(settings.is_production),
        ],
    ))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel((level or settings.log_level).upper())

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Named structured logger; pass the calling module's ``__name__``."""
    return structlog.get_logger(name)
