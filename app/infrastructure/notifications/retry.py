"""Retry controller: drives one job to a final outcome.

A job is sent through its channel's sender up to ``job.max_attempts``
times. Transient failures are retried with exponential backoff, permanent
failures stop immediately. Backoff sleeps happen in the calling thread,
which is the worker thread that owns the job.
"""

import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional, TYPE_CHECKING

from infrastructure.logging import get_module_logger, mask_address
from infrastructure.notifications.channels.base import ChannelSender
from infrastructure.notifications.models import (
    Channel,
    DeliveryResult,
    JobStatus,
    NotificationJob,
)
from infrastructure.operations import (
    OperationResult,
    OperationStatus,
    classify_transport_error,
)

if TYPE_CHECKING:
    from infrastructure.configuration import Settings

logger = get_module_logger()


@dataclass
class RetryConfig:
    """Backoff configuration for the retry controller.

    Attributes:
        base_delay_seconds: Delay before the first retry
        max_delay_seconds: Cap for any single delay, including provider hints

    Example:
        config = RetryConfig(base_delay_seconds=0.5, max_delay_seconds=30)
    """

    base_delay_seconds: float = 1.0
    max_delay_seconds: float = 60.0

    def __post_init__(self) -> None:
        """Validate configuration values."""
        if self.base_delay_seconds < 0:
            raise ValueError("base_delay_seconds must not be negative")
        if self.max_delay_seconds < self.base_delay_seconds:
            raise ValueError("max_delay_seconds must be >= base_delay_seconds")

    @classmethod
    def from_settings(cls, settings: "Settings") -> "RetryConfig":
        return cls(
            base_delay_seconds=settings.retry.RETRY_BASE_DELAY_SECONDS,
            max_delay_seconds=settings.retry.RETRY_MAX_DELAY_SECONDS,
        )

    def delay_for(self, attempt: int, retry_after: Optional[float] = None) -> float:
        """Delay after the given (1-based) failed attempt.

        Uses ``base * 2^(attempt-1)``; a larger provider hint wins. Both are
        capped at ``max_delay_seconds``.
        """
        delay = self.base_delay_seconds * (2 ** (attempt - 1))
        if retry_after is not None and retry_after > delay:
            delay = retry_after
        return min(delay, self.max_delay_seconds)


class RetryController:
    """Send a job with bounded retries.

    Attempt state lives on the job only, so the controller itself is
    stateless and safe to share between worker threads.
    """

    def __init__(
        self,
        senders: Dict[Channel, ChannelSender],
        config: Optional[RetryConfig] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.senders = senders
        self.config = config or RetryConfig()
        self._sleep = sleep

    def send(self, job: NotificationJob) -> DeliveryResult:
        """Deliver ``job`` or give up; never raises for provider failures.

        Returns:
            DeliveryResult with the number of attempts made
        """
        sender = self.senders.get(job.channel)
        if sender is None:
            job.status = JobStatus.ABANDONED
            logger.error("delivery_no_sender", channel=job.channel.value, job_id=job.id)
            return self._result(
                job,
                OperationResult.permanent_error(
                    f"No sender configured for {job.channel.value}",
                    error_code="NO_SENDER",
                ),
                provider_status=None,
            )

        job.status = JobStatus.IN_FLIGHT
        recipient = mask_address(job.address)

        while True:
            job.attempts += 1
            provider_status: Optional[int] = None
            try:
                response = sender.send(job.address, job.payload)
                provider_status = response.status_code
                outcome = sender.classify(response)
            except Exception as exc:  # transport failures surface as exceptions
                outcome = classify_transport_error(exc)

            if outcome.is_success:
                job.status = JobStatus.SENT
                logger.info(
                    "delivery_succeeded",
                    job_id=job.id,
                    channel=job.channel.value,
                    recipient=recipient,
                    attempts=job.attempts,
                )
                return self._result(job, outcome, provider_status)

            if not outcome.is_transient:
                job.status = JobStatus.ABANDONED
                logger.warning(
                    "delivery_failed_permanently",
                    job_id=job.id,
                    channel=job.channel.value,
                    recipient=recipient,
                    attempts=job.attempts,
                    error_code=outcome.error_code,
                    error=outcome.message,
                )
                return self._result(job, outcome, provider_status)

            if job.attempts >= job.max_attempts:
                job.status = JobStatus.FAILED
                logger.error(
                    "delivery_retries_exhausted",
                    job_id=job.id,
                    channel=job.channel.value,
                    recipient=recipient,
                    attempts=job.attempts,
                    error_code=outcome.error_code,
                    error=outcome.message,
                )
                exhausted = OperationResult.transient_error(
                    f"exhausted {job.attempts} attempts: "
                    f"[{outcome.error_code or 'UNKNOWN_ERROR'}] {outcome.message}",
                    error_code="RETRIES_EXHAUSTED",
                )
                return self._result(job, exhausted, provider_status)

            delay = self.config.delay_for(job.attempts, outcome.retry_after)
            logger.info(
                "delivery_attempt_failed",
                job_id=job.id,
                channel=job.channel.value,
                recipient=recipient,
                attempt=job.attempts,
                max_attempts=job.max_attempts,
                error_code=outcome.error_code,
                retry_in_seconds=delay,
            )
            self._sleep(delay)

    @staticmethod
    def _result(
        job: NotificationJob,
        outcome: OperationResult,
        provider_status: Optional[int],
    ) -> DeliveryResult:
        return DeliveryResult(
            job_id=job.id,
            channel=job.channel,
            recipient=job.address,
            success=outcome.is_success,
            classification=outcome.status,
            attempts=job.attempts,
            provider_status=provider_status,
            error=None if outcome.is_success else outcome.message,
            error_code=None if outcome.is_success else outcome.error_code,
            user_id=job.user_id,
            batch_key=job.batch_key,
        )


def failed_result(job: NotificationJob, exc: BaseException) -> DeliveryResult:
    """Result for a job whose worker died with an unexpected exception."""
    job.status = JobStatus.FAILED
    return DeliveryResult(
        job_id=job.id,
        channel=job.channel,
        recipient=job.address,
        success=False,
        classification=OperationStatus.PERMANENT_ERROR,
        attempts=job.attempts,
        error=f"{type(exc).__name__}: {exc}",
        error_code="UNEXPECTED_ERROR",
        user_id=job.user_id,
        batch_key=job.batch_key,
    )
