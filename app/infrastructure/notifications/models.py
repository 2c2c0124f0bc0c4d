"""Delivery pipeline core models.

Channel-agnostic models for queued notification delivery. The escalation
domain builds jobs, the delivery pipeline owns them from enqueue onwards.

- ``NotificationPayload`` is a pydantic model: it is built from user and
  incident data and validated once.
- ``NotificationJob`` is a mutable dataclass: attempt count and status
  change while the retry controller works on it.
- ``DeliveryResult`` / ``DeliveryStats`` are what callers get back.
"""

import uuid
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, Field, field_validator

from infrastructure.operations import OperationStatus


class Channel(Enum):
    """Delivery channels supported by the engine."""

    EMAIL = "email"
    SMS = "sms"
    VOICE = "voice"
    PUSH = "push"

    @classmethod
    def parse(cls, value: "str | Channel") -> "Channel":
        """Parse a channel name, accepting legacy aliases.

        ``slack`` maps to push and ``call`` maps to voice.

        Raises:
            ValueError: unknown channel name
        """
        if isinstance(value, Channel):
            return value
        name = str(value).strip().lower()
        name = CHANNEL_ALIASES.get(name, name)
        return cls(name)


CHANNEL_ALIASES = {
    "slack": "push",
    "call": "voice",
    "phone": "voice",
}


class Priority(Enum):
    """Notification priority levels, highest first."""

    CRITICAL = "critical"
    HIGH = "high"
    NORMAL = "normal"
    LOW = "low"

    @property
    def rank(self) -> int:
        """0 for the most urgent tier."""
        return PRIORITY_ORDER.index(self)

    @classmethod
    def from_severity(cls, severity: Optional[str]) -> "Priority":
        """Map an incident severity to a delivery priority.

        Unknown or missing severities are delivered at normal priority.
        """
        if not severity:
            return cls.NORMAL
        return SEVERITY_PRIORITY.get(severity.strip().lower(), cls.NORMAL)


PRIORITY_ORDER = (Priority.CRITICAL, Priority.HIGH, Priority.NORMAL, Priority.LOW)

SEVERITY_PRIORITY = {
    "critical": Priority.CRITICAL,
    "high": Priority.HIGH,
    "medium": Priority.NORMAL,
    "normal": Priority.NORMAL,
    "low": Priority.LOW,
    "info": Priority.LOW,
    "maintenance": Priority.LOW,
}


class JobStatus(Enum):
    """Lifecycle of a notification job inside the pipeline.

    ABANDONED means the provider gave a permanent answer and the job was
    never retried; FAILED means retries were exhausted.
    """

    QUEUED = "queued"
    IN_FLIGHT = "in_flight"
    SENT = "sent"
    FAILED = "failed"
    ABANDONED = "abandoned"


class NotificationPayload(BaseModel):
    """Message content handed to a channel sender.

    Attributes:
        subject: Subject line (email), notification title (push), ignored (SMS)
        body: Plain text message body (required)
        severity: Incident severity, used for SMS prefixes and voice urgency
        url: Link back to the incident, if any
        html_body: Optional HTML version for the email channel
        data: Structured context (incident_id, run_id, level, ...)
    """

    subject: str
    body: str
    severity: str = "medium"
    url: Optional[str] = None
    html_body: Optional[str] = None
    data: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("body")
    @classmethod
    def validate_body(cls, v: str) -> str:
        """Ensure body is not empty."""
        if not v or not v.strip():
            raise ValueError("Notification body cannot be empty")
        return v


def _new_job_id() -> str:
    return uuid.uuid4().hex


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class NotificationJob:
    """One message to one address over one channel.

    ``attempts`` counts provider calls made so far; it is only ever mutated
    by the retry controller working on this job.
    """

    channel: Channel
    address: str
    payload: NotificationPayload
    priority: Priority = Priority.NORMAL
    max_attempts: int = 3
    batch_key: Optional[Tuple[str, int]] = None
    user_id: Optional[str] = None
    id: str = field(default_factory=_new_job_id)
    attempts: int = 0
    status: JobStatus = JobStatus.QUEUED
    created_at: datetime = field(default_factory=_utcnow)

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.channel = Channel.parse(self.channel)


@dataclass
class ProviderResponse:
    """Raw outcome of a single provider call.

    Attributes:
        status_code: HTTP status, or None if no HTTP exchange happened
        message: Provider message / response text excerpt
        retry_after: Retry-After header value, if the provider sent one
        provider_id: Provider message/call id on success
        error_code: Set when the sender decided the outcome without the
            provider (e.g. invalid phone number)
    """

    status_code: Optional[int]
    message: str = ""
    retry_after: Optional[str] = None
    provider_id: Optional[str] = None
    error_code: Optional[str] = None


@dataclass
class DeliveryResult:
    """Final outcome of a job after the retry controller is done with it."""

    job_id: str
    channel: Channel
    recipient: str
    success: bool
    classification: OperationStatus
    attempts: int
    provider_status: Optional[int] = None
    error: Optional[str] = None
    error_code: Optional[str] = None
    user_id: Optional[str] = None
    batch_key: Optional[Tuple[str, int]] = None
    timestamp: datetime = field(default_factory=_utcnow)


@dataclass
class DeliveryStats:
    """Aggregate of one dispatch call.

    ``errors`` is keyed by stable error code so stats from different
    providers aggregate cleanly.
    """

    total: int = 0
    successful: int = 0
    failed: int = 0
    success_rate: float = 0.0
    errors: Dict[str, int] = field(default_factory=dict)
    results: List[DeliveryResult] = field(default_factory=list)

    @classmethod
    def from_results(cls, results: List[DeliveryResult]) -> "DeliveryStats":
        total = len(results)
        successful = sum(1 for r in results if r.success)
        failed = total - successful
        errors = Counter(
            r.error_code or "UNKNOWN_ERROR" for r in results if not r.success
        )
        return cls(
            total=total,
            successful=successful,
            failed=failed,
            success_rate=(successful / total * 100.0) if total else 0.0,
            errors=dict(errors),
            results=list(results),
        )

    def merge(self, other: "DeliveryStats") -> "DeliveryStats":
        """Combine two stats objects into a new one."""
        return DeliveryStats.from_results(self.results + other.results)

    def to_dict(self) -> Dict[str, Any]:
        """Summary without per-job results, for logs and reports."""
        return {
            "total": self.total,
            "successful": self.successful,
            "failed": self.failed,
            "success_rate": round(self.success_rate, 2),
            "errors": dict(self.errors),
        }
