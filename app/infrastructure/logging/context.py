"""Escalation context binding for structured logging.

Binds run-scoped identifiers (correlation ID, incident ID, run ID, level)
to structlog's context variables so every log line emitted while a run is
being evaluated or dispatched carries them.

Usage:
    from infrastructure.logging import bind_escalation_context

    with bind_escalation_context(run_id=run.id, incident_id=run.incident.id):
        logger.info("escalation_level_dispatched", level=2)

Dependencies:
    - structlog.contextvars
"""

import uuid
from contextlib import contextmanager
from typing import Optional, Any, Generator
import structlog


@contextmanager
def bind_escalation_context(
    correlation_id: Optional[str] = None,
    incident_id: Optional[str] = None,
    run_id: Optional[str] = None,
    level: Optional[int] = None,
    **extra_context: Any,
) -> Generator[None, None, None]:
    """Bind escalation-scoped context to all logs within the block.

    Args:
        correlation_id: Unique identifier for this unit of work. Auto-generated
            if not provided.
        incident_id: Incident being escalated.
        run_id: Escalation run identifier.
        level: Escalation level being evaluated or dispatched.
        **extra_context: Additional key-value pairs to include in logs.

    Yields:
        None - context is bound to structlog's context vars for the block.
    """
    context: dict[str, Any] = {}
    context["correlation_id"] = correlation_id or str(uuid.uuid4())

    if incident_id is not None:
        context["incident_id"] = incident_id

    if run_id is not None:
        context["run_id"] = run_id

    if level is not None:
        context["level"] = level

    context.update(extra_context)

    structlog.contextvars.bind_contextvars(**context)
    try:
        yield
    finally:
        structlog.contextvars.unbind_contextvars(*context.keys())


def get_correlation_id() -> Optional[str]:
    """Get the current correlation ID from the logging context.

    Returns:
        The correlation ID if set, None otherwise.
    """
    ctx = structlog.contextvars.get_contextvars()
    return ctx.get("correlation_id")


def set_correlation_id(correlation_id: str) -> None:
    """Set the correlation ID in the current logging context."""
    structlog.contextvars.bind_contextvars(correlation_id=correlation_id)


def clear_escalation_context() -> None:
    """Clear all bound context.

    Worker threads call this after finishing a job so context does not leak
    into the next job picked up by the same thread.
    """
    structlog.contextvars.clear_contextvars()
