"""Structured logging and OpenTelemetry spans for floe-hive.

This module provides:
- Structured logging setup via structlog
- OpenTelemetry span helpers for procedure and metastore calls
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import TYPE_CHECKING, Any, Iterator

import structlog
from opentelemetry import trace
from opentelemetry.trace import SpanKind, Status, StatusCode

if TYPE_CHECKING:
    from opentelemetry.trace import Span, Tracer
    from structlog.stdlib import BoundLogger

# Module-level logger and tracer
_logger: BoundLogger | None = None
_tracer: Tracer | None = None

# Tracer name for OpenTelemetry
TRACER_NAME = "floe.hive"


def get_logger() -> BoundLogger:
    """Get the module logger, creating it if necessary.

    Returns:
        Configured structlog BoundLogger instance.

    Example:
        >>> logger = get_logger()
        >>> logger.info("partition_registered", table="web.sales")
    """
    global _logger
    if _logger is None:
        _logger = structlog.get_logger(TRACER_NAME)
    assert _logger is not None  # Type narrowing for mypy
    return _logger


def get_tracer() -> Tracer:
    """Get the OpenTelemetry tracer for floe-hive."""
    global _tracer
    if _tracer is None:
        _tracer = trace.get_tracer(TRACER_NAME)
    return _tracer


@contextmanager
def span(
    name: str,
    *,
    kind: SpanKind = SpanKind.INTERNAL,
    attributes: dict[str, Any] | None = None,
    log_start: bool = True,
    log_end: bool = True,
) -> Iterator[Span]:
    """Create an OpenTelemetry span with structured logging.

    Failures are recorded on the span, logged once and re-raised.

    Args:
        name: Span name (e.g., "hive.create_empty_partition").
        kind: Span kind (INTERNAL, CLIENT, SERVER, PRODUCER, CONSUMER).
        attributes: Optional span attributes.
        log_start: If True, log span start.
        log_end: If True, log span end.

    Yields:
        OpenTelemetry Span instance.
    """
    tracer = get_tracer()
    logger = get_logger()
    attrs = attributes or {}

    with tracer.start_as_current_span(name, kind=kind, attributes=attrs) as s:
        if log_start:
            logger.debug(f"{name}_started", **attrs)
        try:
            yield s
            s.set_status(Status(StatusCode.OK))
            if log_end:
                logger.info(f"{name}_completed", **attrs)
        except Exception as exc:
            s.set_status(Status(StatusCode.ERROR, str(exc)))
            s.record_exception(exc)
            logger.error(f"{name}_failed", error=str(exc), error_type=type(exc).__name__, **attrs)
            raise


@contextmanager
def procedure_operation(
    procedure: str,
    *,
    schema_name: str | None = None,
    table_name: str | None = None,
    partition_name: str | None = None,
) -> Iterator[Span]:
    """Create a span for a catalog procedure with standard attributes.

    Args:
        procedure: Procedure name (e.g., "create_empty_partition").
        schema_name: Target schema.
        table_name: Target table.
        partition_name: Canonical partition name, when known.

    Yields:
        OpenTelemetry Span instance.

    Example:
        >>> with procedure_operation("create_empty_partition", schema_name="web", table_name="sales"):
        ...     run()
    """
    attrs: dict[str, Any] = {"hive.procedure": procedure}
    if schema_name:
        attrs["hive.schema"] = schema_name
    if table_name:
        attrs["hive.table"] = table_name
    if partition_name:
        attrs["hive.partition"] = partition_name

    with span(f"hive.{procedure}", kind=SpanKind.INTERNAL, attributes=attrs) as s:
        yield s


@contextmanager
def transaction_step(
    step: str,
    *,
    transaction_id: str | None = None,
    table: str | None = None,
) -> Iterator[Span]:
    """Create a client span for one metastore transaction step.

    Args:
        step: Step name (begin_insert, finish_insert, commit).
        transaction_id: Transaction identifier, once known.
        table: Fully qualified table name.

    Yields:
        OpenTelemetry Span instance.
    """
    attrs: dict[str, Any] = {"hive.transaction.step": step}
    if transaction_id:
        attrs["hive.transaction.id"] = transaction_id
    if table:
        attrs["hive.table"] = table

    with span(f"hive.transaction.{step}", kind=SpanKind.CLIENT, attributes=attrs, log_end=False) as s:
        yield s


def log_partition_registered(
    table: str,
    partition_name: str,
    target_path: str,
    transaction_id: str,
) -> None:
    """Log a successfully committed empty partition."""
    logger = get_logger()
    logger.info(
        "partition_registered",
        table=table,
        partition=partition_name,
        target_path=target_path,
        transaction_id=transaction_id,
    )
