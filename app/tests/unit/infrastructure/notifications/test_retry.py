"""Unit tests for the retry controller and backoff configuration."""

import pytest
import requests

from infrastructure.notifications import (
    Channel,
    JobStatus,
    ProviderResponse,
    RetryConfig,
    RetryController,
)
from infrastructure.notifications.retry import failed_result
from infrastructure.operations import OperationStatus

pytestmark = pytest.mark.unit


class RecordingSleep:
    def __init__(self):
        self.delays = []

    def __call__(self, seconds):
        self.delays.append(seconds)


@pytest.fixture
def sleep():
    return RecordingSleep()


def _controller(sender, sleep, **config):
    return RetryController(
        {sender.channel_name: sender},
        RetryConfig(**config) if config else RetryConfig(),
        sleep=sleep,
    )


class TestRetryConfig:
    def test_exponential_delays(self):
        config = RetryConfig(base_delay_seconds=1.0, max_delay_seconds=60.0)

        assert [config.delay_for(n) for n in (1, 2, 3, 4)] == [1.0, 2.0, 4.0, 8.0]

    def test_delay_capped(self):
        config = RetryConfig(base_delay_seconds=10.0, max_delay_seconds=30.0)

        assert config.delay_for(5) == 30.0

    def test_retry_after_hint_wins_when_larger(self):
        config = RetryConfig(base_delay_seconds=1.0, max_delay_seconds=60.0)

        assert config.delay_for(1, retry_after=15.0) == 15.0
        assert config.delay_for(3, retry_after=0.5) == 4.0

    def test_retry_after_hint_is_capped(self):
        config = RetryConfig(base_delay_seconds=1.0, max_delay_seconds=60.0)

        assert config.delay_for(1, retry_after=600.0) == 60.0

    @pytest.mark.parametrize(
        "kwargs", [{"base_delay_seconds": -1}, {"base_delay_seconds": 5, "max_delay_seconds": 1}]
    )
    def test_invalid_config(self, kwargs):
        with pytest.raises(ValueError):
            RetryConfig(**kwargs)

    def test_from_settings(self, settings_factory):
        config = RetryConfig.from_settings(settings_factory())

        assert config.base_delay_seconds == 1.0
        assert config.max_delay_seconds == 60.0


class TestRetryController:
    def test_success_first_try(self, job_factory, fake_sender_factory, sleep):
        sender = fake_sender_factory(responses=[ProviderResponse(status_code=202)])
        job = job_factory()

        result = _controller(sender, sleep).send(job)

        assert result.success
        assert result.attempts == 1
        assert result.classification is OperationStatus.SUCCESS
        assert job.status is JobStatus.SENT
        assert sleep.delays == []

    def test_transient_then_success(self, job_factory, fake_sender_factory, sleep):
        sender = fake_sender_factory(
            responses=[
                ProviderResponse(status_code=503),
                ProviderResponse(status_code=503),
                ProviderResponse(status_code=202),
            ]
        )

        result = _controller(sender, sleep).send(job_factory(max_attempts=3))

        assert result.success
        assert result.attempts == 3
        assert len(sender.calls) == 3
        assert sleep.delays == [1.0, 2.0]

    def test_permanent_failure_is_not_retried(self, job_factory, fake_sender_factory, sleep):
        sender = fake_sender_factory(
            responses=[ProviderResponse(status_code=401, message="bad key")]
        )
        job = job_factory()

        result = _controller(sender, sleep).send(job)

        assert not result.success
        assert result.attempts == 1
        assert len(sender.calls) == 1
        assert result.classification is OperationStatus.UNAUTHORIZED
        assert result.provider_status == 401
        assert job.status is JobStatus.ABANDONED
        assert sleep.delays == []

    def test_always_transient_exhausts_attempts(self, job_factory, fake_sender_factory, sleep):
        sender = fake_sender_factory(responses=[ProviderResponse(status_code=500)])
        job = job_factory(max_attempts=3)

        result = _controller(sender, sleep).send(job)

        assert not result.success
        assert result.attempts == 3
        assert len(sender.calls) == 3
        assert result.error_code == "RETRIES_EXHAUSTED"
        assert result.error.startswith("exhausted 3 attempts: [SERVER_ERROR]")
        assert job.status is JobStatus.FAILED
        # No sleep after the final attempt
        assert sleep.delays == [1.0, 2.0]

    def test_rate_limit_uses_retry_after(self, job_factory, fake_sender_factory, sleep):
        sender = fake_sender_factory(
            responses=[
                ProviderResponse(status_code=429, retry_after="5"),
                ProviderResponse(status_code=202),
            ]
        )

        result = _controller(sender, sleep).send(job_factory())

        assert result.success
        assert sleep.delays == [5.0]

    def test_transport_exception_is_retried(self, job_factory, fake_sender_factory, sleep):
        sender = fake_sender_factory(
            responses=[requests.Timeout("slow"), ProviderResponse(status_code=202)]
        )

        result = _controller(sender, sleep).send(job_factory())

        assert result.success
        assert result.attempts == 2

    def test_locally_rejected_address_is_permanent(
        self, job_factory, fake_sender_factory, sleep
    ):
        sender = fake_sender_factory(
            channel=Channel.SMS,
            responses=[
                ProviderResponse(
                    status_code=None,
                    message="Invalid phone number",
                    error_code="INVALID_PHONE_NUMBER",
                )
            ],
        )

        result = _controller(sender, sleep).send(
            job_factory(channel=Channel.SMS, address="not-a-number")
        )

        assert not result.success
        assert result.attempts == 1
        assert result.error_code == "INVALID_PHONE_NUMBER"

    def test_single_attempt_job(self, job_factory, fake_sender_factory, sleep):
        sender = fake_sender_factory(responses=[ProviderResponse(status_code=503)])

        result = _controller(sender, sleep).send(job_factory(max_attempts=1))

        assert result.attempts == 1
        assert sleep.delays == []

    def test_missing_sender(self, job_factory, fake_sender_factory, sleep):
        sender = fake_sender_factory(channel=Channel.EMAIL)
        job = job_factory(channel=Channel.PUSH, address="https://fcm.googleapis.com/x")

        result = _controller(sender, sleep).send(job)

        assert not result.success
        assert result.error_code == "NO_SENDER"
        assert result.attempts == 0
        assert job.status is JobStatus.ABANDONED

    def test_result_carries_job_metadata(self, job_factory, fake_sender_factory, sleep):
        sender = fake_sender_factory()
        job = job_factory(user_id="u1", batch_key=("run-1", 2))

        result = _controller(sender, sleep).send(job)

        assert result.job_id == job.id
        assert result.user_id == "u1"
        assert result.batch_key == ("run-1", 2)
        assert result.recipient == "oncall@example.com"


class TestFailedResult:
    def test_failed_result(self, job_factory):
        job = job_factory()

        result = failed_result(job, RuntimeError("boom"))

        assert not result.success
        assert result.error_code == "UNEXPECTED_ERROR"
        assert "boom" in result.error
        assert job.status is JobStatus.FAILED
