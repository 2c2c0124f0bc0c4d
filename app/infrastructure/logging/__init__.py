"""Structured logging infrastructure.

This package provides centralized logging configuration and utilities
for the escalation engine using structlog.

Public API:
    - configure_logging(): Initialize logging for the application
    - get_logger(): Get a logger instance with a specific name
    - get_module_logger(): Get a logger for the calling module
    - bind_escalation_context(): Context manager for run-scoped logging
    - get_correlation_id(): Get current correlation ID from context
    - set_correlation_id(): Set correlation ID in context
    - clear_escalation_context(): Clear all bound context

Formatters:
    - add_app_info(): Processor to add app name/version
    - mask_sensitive_data(): Processor to redact sensitive fields
    - truncate_large_values(): Processor to limit string lengths
    - mask_address(): Mask an email, phone number or push endpoint

Example:
    from infrastructure.logging import get_module_logger, bind_escalation_context

    logger = get_module_logger()

    with bind_escalation_context(run_id="run-1", incident_id="inc-9"):
        logger.info("escalation_level_dispatched", level=1)
"""

from infrastructure.logging.setup import (
    configure_logging,
    get_logger,
    get_module_logger,
)

from infrastructure.logging.context import (
    bind_escalation_context,
    get_correlation_id,
    set_correlation_id,
    clear_escalation_context,
)

from infrastructure.logging.formatters import (
    add_app_info,
    mask_sensitive_data,
    truncate_large_values,
    mask_address,
    mask_email,
    mask_phone,
    SENSITIVE_PATTERNS,
)

__all__ = [
    # Setup
    "configure_logging",
    "get_logger",
    "get_module_logger",
    # Context
    "bind_escalation_context",
    "get_correlation_id",
    "set_correlation_id",
    "clear_escalation_context",
    # Formatters
    "add_app_info",
    "mask_sensitive_data",
    "truncate_large_values",
    "mask_address",
    "mask_email",
    "mask_phone",
    "SENSITIVE_PATTERNS",
]
