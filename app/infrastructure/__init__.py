"""Infrastructure modules for the escalation engine.

Centralized infrastructure components:
- configuration: Settings management (settings, RetrySettings)
- logging: Structured logging (get_module_logger, logger)
- operations: Operation results and error classification
- idempotency: Idempotency cache for at-most-once dispatch
- notifications: Delivery pipeline (queue, retry controller, batch dispatcher)
"""

# Configuration
from infrastructure.configuration import settings

# Logging
from infrastructure.logging import get_module_logger

logger = get_module_logger()

# Operations
from infrastructure.operations.result import OperationResult
from infrastructure.operations.status import OperationStatus

__all__ = [
    # Configuration
    "settings",
    # Logging
    "get_module_logger",
    "logger",
    # Operations
    "OperationResult",
    "OperationStatus",
]
