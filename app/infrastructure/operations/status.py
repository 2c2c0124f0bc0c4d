"""Operation status enumeration.

Status codes for operation results, used to classify the outcome of a
provider call so the retry controller knows whether to try again.
"""

from enum import Enum


class OperationStatus(Enum):
    """Status codes for operation results.

    Attributes:
        SUCCESS: Operation completed successfully
        TRANSIENT_ERROR: Retryable error (network, timeout, rate limit, 5xx)
        PERMANENT_ERROR: Non-retryable error (validation, bad address, payload)
        UNAUTHORIZED: Provider rejected our credentials
        NOT_FOUND: Destination no longer exists (e.g. expired push endpoint)
    """

    SUCCESS = "success"
    TRANSIENT_ERROR = "transient_error"
    PERMANENT_ERROR = "permanent_error"
    UNAUTHORIZED = "unauthorized"
    NOT_FOUND = "not_found"

    @property
    def is_retryable(self) -> bool:
        return self is OperationStatus.TRANSIENT_ERROR
