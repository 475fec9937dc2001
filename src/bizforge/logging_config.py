"""Structured logging for bizforge.

Events are rendered by structlog through the standard library root logger:
JSON lines when shipped to a log store, colored key/value output locally.

Request and pipeline context travel in contextvars, so every event emitted
while handling a request carries its ``correlation_id`` and, inside a stage
run, the ``version_id`` and ``stage`` being driven.

Usage:
    from bizforge.logging_config import pipeline_context, setup_logging

    setup_logging(service_name="bizforge")
    with pipeline_context(version_id, "Brand kit"):
        structlog.get_logger(__name__).info("stage_started")
"""

from collections.abc import Iterator
from contextlib import contextmanager
import logging
import os
import sys
from typing import Literal
import uuid

import structlog
from structlog.types import Processor

CORRELATION_HEADER = "X-Correlation-ID"

LogFormat = Literal["json", "console"]


def _processors(log_format: str) -> list[Processor]:
    chain: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.CallsiteParameterAdder(
            {
                structlog.processors.CallsiteParameter.FUNC_NAME,
                structlog.processors.CallsiteParameter.LINENO,
            }
        ),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]
    if log_format == "json":
        chain.append(structlog.processors.JSONRenderer())
    else:
        chain.append(
            structlog.dev.ConsoleRenderer(exception_formatter=structlog.dev.plain_traceback)
        )
    return chain


def setup_logging(
    service_name: str | None = None,
    log_format: LogFormat | None = None,
    log_level: str | None = None,
) -> None:
    """Route structlog through the stdlib root logger on stdout.

    Unset arguments fall back to SERVICE_NAME, LOG_FORMAT and LOG_LEVEL, then
    to "bizforge", "console" and "INFO". The service name is bound to every
    event as ``service``.
    """
    service_name = service_name or os.getenv("SERVICE_NAME", "bizforge")
    log_format = log_format or os.getenv("LOG_FORMAT", "console")
    log_level = (log_level or os.getenv("LOG_LEVEL", "INFO")).upper()

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, log_level, logging.INFO),
        force=True,
    )
    structlog.configure(
        processors=_processors(log_format),
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    structlog.contextvars.bind_contextvars(service=service_name)

    structlog.get_logger(__name__).info(
        "logging_initialized", log_format=log_format, log_level=log_level
    )


def new_correlation_id() -> str:
    return f"req_{uuid.uuid4().hex[:8]}"


def bind_request(correlation_id: str, method: str, path: str) -> None:
    """Bind the request's correlation id, method and path for its lifetime."""
    structlog.contextvars.bind_contextvars(
        correlation_id=correlation_id, method=method, path=path
    )


def get_correlation_id() -> str | None:
    return structlog.contextvars.get_contextvars().get("correlation_id")


def clear_request() -> None:
    """Drop request-scoped context. The service name survives."""
    structlog.contextvars.unbind_contextvars("correlation_id", "method", "path")


@contextmanager
def pipeline_context(version_id: str, stage: str) -> Iterator[None]:
    """Tag every event inside the block with the version and stage being run."""
    with structlog.contextvars.bound_contextvars(version_id=version_id, stage=stage):
        yield
