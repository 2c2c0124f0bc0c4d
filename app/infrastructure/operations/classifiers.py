"""Error classifiers for provider responses and transport failures.

Converts raw HTTP status codes and ``requests`` exceptions into
standardized OperationResult objects. Every channel sender funnels its
outcome through these functions so the retry controller only ever looks at
``OperationStatus``.

Key Functions:
- classify_http_status(): HTTP status code (+ Retry-After) → OperationResult
- classify_transport_error(): requests / socket exceptions → OperationResult
- parse_retry_after(): Retry-After header value → seconds

Usage:
    from infrastructure.operations.classifiers import (
        classify_http_status,
        classify_transport_error,
    )

    try:
        response = requests.post(url, json=body, timeout=10)
    except requests.RequestException as exc:
        return classify_transport_error(exc)
    return classify_http_status(response.status_code, response.headers.get("Retry-After"))
"""

from typing import Optional, Union

import requests

from infrastructure.operations.result import OperationResult
from infrastructure.operations.status import OperationStatus

# Status codes that are worth retrying besides 5xx
TRANSIENT_STATUS_CODES = frozenset({408, 425, 429})

DEFAULT_RATE_LIMIT_RETRY_AFTER = 60.0


def parse_retry_after(value: Union[str, int, float, None]) -> Optional[float]:
    """Parse a Retry-After header expressed in seconds.

    HTTP-date values and malformed headers are ignored.
    """
    if value is None:
        return None
    try:
        seconds = float(value)
    except (ValueError, TypeError):
        return None
    if seconds < 0:
        return None
    return seconds


def classify_http_status(
    status_code: Optional[int],
    message: str = "",
    retry_after: Union[str, int, float, None] = None,
) -> OperationResult:
    """Classify a provider HTTP status code into an OperationResult.

    Status Code Mapping:
    - 2xx: SUCCESS
    - 429: Rate limiting → TRANSIENT_ERROR with retry_after
    - 408, 425, 5xx: TRANSIENT_ERROR
    - 401: UNAUTHORIZED (not retried)
    - 403: PERMANENT_ERROR (forbidden)
    - 404, 410: NOT_FOUND (endpoint gone, not retried)
    - 413: PERMANENT_ERROR (payload too large)
    - Other 4xx: PERMANENT_ERROR
    - No status (request never completed): TRANSIENT_ERROR

    Args:
        status_code: HTTP status returned by the provider, or None
        message: Provider message to keep on the result for debugging
        retry_after: Raw Retry-After header value, if any

    Returns:
        OperationResult with status, error_code and optional retry_after
    """
    if status_code is None:
        return OperationResult.transient_error(
            message or "No response from provider",
            error_code="NO_RESPONSE",
        )

    if 200 <= status_code < 300:
        return OperationResult.success(message=message or "ok")

    detail = message or f"HTTP {status_code}"

    if status_code == 429:
        return OperationResult.error(
            OperationStatus.TRANSIENT_ERROR,
            detail,
            error_code="RATE_LIMITED",
            retry_after=parse_retry_after(retry_after)
            or DEFAULT_RATE_LIMIT_RETRY_AFTER,
        )

    if status_code in TRANSIENT_STATUS_CODES:
        return OperationResult.transient_error(detail, error_code="TIMEOUT")

    if 500 <= status_code < 600:
        return OperationResult.transient_error(
            detail,
            error_code="SERVER_ERROR",
            retry_after=parse_retry_after(retry_after),
        )

    if status_code == 401:
        return OperationResult.error(
            OperationStatus.UNAUTHORIZED, detail, error_code="UNAUTHORIZED"
        )

    if status_code == 403:
        return OperationResult.permanent_error(detail, error_code="FORBIDDEN")

    if status_code in (404, 410):
        return OperationResult.error(
            OperationStatus.NOT_FOUND, detail, error_code="ENDPOINT_GONE"
        )

    if status_code == 413:
        return OperationResult.permanent_error(
            detail, error_code="PAYLOAD_TOO_LARGE"
        )

    if 400 <= status_code < 500:
        return OperationResult.permanent_error(detail, error_code="INVALID_REQUEST")

    # 1xx / 3xx are not expected from provider APIs
    return OperationResult.permanent_error(detail, error_code="UNEXPECTED_STATUS")


def classify_transport_error(exc: Exception) -> OperationResult:
    """Classify an exception raised while talking to a provider.

    Timeouts and connection failures are transient. Errors that indicate a
    malformed request on our side (invalid URL, missing schema) are
    permanent. Anything else is treated as transient, since the provider
    never gave a definitive answer.
    """
    if isinstance(exc, requests.Timeout):
        return OperationResult.transient_error(
            f"Provider request timed out: {exc}", error_code="TIMEOUT"
        )

    if isinstance(exc, requests.ConnectionError):
        return OperationResult.transient_error(
            f"Connection error: {exc}", error_code="CONNECTION_ERROR"
        )

    if isinstance(exc, (requests.exceptions.InvalidURL, requests.exceptions.MissingSchema)):
        return OperationResult.permanent_error(
            f"Invalid provider URL: {exc}", error_code="INVALID_ENDPOINT"
        )

    return OperationResult.transient_error(
        f"Transport error: {type(exc).__name__}: {exc}",
        error_code="TRANSPORT_ERROR",
    )
