"""Operation result types and status enums.

This module contains standardized result types for provider calls,
including status enums, result dataclasses, and error classifiers for HTTP
responses and transport exceptions.
"""

from infrastructure.operations.classifiers import (
    classify_http_status,
    classify_transport_error,
    parse_retry_after,
)
from infrastructure.operations.result import OperationResult
from infrastructure.operations.status import OperationStatus

__all__ = [
    "OperationResult",
    "OperationStatus",
    "classify_http_status",
    "classify_transport_error",
    "parse_retry_after",
]
