"""Escalation domain models.

Key distinctions:
  - Policies, steps, targets, schedules and directory records are pydantic
    models: they arrive from storage or callers and are validated once.
    Policies and steps are frozen so a running escalation can never see an
    edit made after it started.
  - EscalationRun is a plain mutable dataclass owned by the scheduler and
    only mutated while holding its ``lock``.
"""

import threading
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Tuple, Union

import pytz
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from infrastructure.notifications.models import Channel, DeliveryStats


class Participant(BaseModel):
    """A user taking part in an on-call rotation."""

    model_config = ConfigDict(frozen=True)

    user_id: str
    name: Optional[str] = None


class RotationType(Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    MONTHLY = "monthly"
    CUSTOM = "custom"


class OnCallSchedule(BaseModel):
    """A rotation of participants over fixed-length shifts.

    Attributes:
        participants: rotation order; may be empty (no one on call)
        rotation_type: shift length preset
        interval_hours: explicit shift length, overrides the preset;
            required for ``custom``
        start: first shift start; naive values are local to ``timezone``
        end: optional end of the rotation
        timezone: IANA timezone name
    """

    model_config = ConfigDict(frozen=True)

    id: str
    name: str = ""
    participants: Tuple[Participant, ...] = ()
    rotation_type: RotationType = RotationType.WEEKLY
    interval_hours: Optional[float] = Field(default=None, gt=0)
    start: datetime
    end: Optional[datetime] = None
    timezone: str = "UTC"

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v: str) -> str:
        try:
            pytz.timezone(v)
        except pytz.UnknownTimeZoneError:
            raise ValueError(f"Unknown timezone: {v}")
        return v

    @model_validator(mode="after")
    def validate_interval(self) -> "OnCallSchedule":
        if self.rotation_type is RotationType.CUSTOM and self.interval_hours is None:
            raise ValueError("custom rotations require interval_hours")
        return self


class UserTarget(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["user"] = "user"
    id: str


class TeamTarget(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["team"] = "team"
    id: str


class ScheduleTarget(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["schedule"] = "schedule"
    id: str


Target = Annotated[
    Union[UserTarget, TeamTarget, ScheduleTarget], Field(discriminator="kind")
]


class EscalationStep(BaseModel):
    """One level of an escalation policy.

    Attributes:
        level: 1-based level number
        delay: wait between the start of this level and its dispatch
        channels: delivery channels, in the order jobs are created
        targets: who to notify, in declaration order
        renotify_interval: repeat the last level this often until someone
            acknowledges; ignored on earlier levels
    """

    model_config = ConfigDict(frozen=True)

    level: int = Field(ge=1)
    delay: timedelta = timedelta(0)
    channels: Tuple[Channel, ...]
    targets: Tuple[Target, ...] = ()
    renotify_interval: Optional[timedelta] = None

    @model_validator(mode="before")
    @classmethod
    def accept_delay_minutes(cls, data: Any) -> Any:
        """Policies stored by the web app express delays in minutes."""
        if isinstance(data, dict) and "delay_minutes" in data and "delay" not in data:
            data = dict(data)
            data["delay"] = timedelta(minutes=data.pop("delay_minutes") or 0)
        return data

    @field_validator("channels", mode="before")
    @classmethod
    def normalize_channels(cls, v: Any) -> Tuple[Channel, ...]:
        if isinstance(v, (str, Channel)):
            v = [v]
        channels: List[Channel] = []
        for raw in v or ():
            channel = Channel.parse(raw)
            if channel not in channels:
                channels.append(channel)
        if not channels:
            raise ValueError("An escalation step needs at least one channel")
        return tuple(channels)

    @field_validator("delay")
    @classmethod
    def validate_delay(cls, v: timedelta) -> timedelta:
        if v < timedelta(0):
            raise ValueError("delay must not be negative")
        return v

    @field_validator("renotify_interval")
    @classmethod
    def validate_renotify(cls, v: Optional[timedelta]) -> Optional[timedelta]:
        if v is not None and v <= timedelta(0):
            raise ValueError("renotify_interval must be positive")
        return v


class EscalationPolicy(BaseModel):
    """Ordered escalation levels for an incident.

    Levels must be unique, strictly increasing and start at 1. A policy
    with no steps is representable but cannot start a run.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    name: str = ""
    steps: Tuple[EscalationStep, ...] = ()

    @field_validator("steps")
    @classmethod
    def validate_levels(
        cls, v: Tuple[EscalationStep, ...]
    ) -> Tuple[EscalationStep, ...]:
        if not v:
            return v
        levels = [step.level for step in v]
        if levels[0] != 1:
            raise ValueError("The first escalation level must be 1")
        if any(b <= a for a, b in zip(levels, levels[1:])):
            raise ValueError("Escalation levels must be unique and increasing")
        return v

    def step_for_level(self, level: int) -> Optional[EscalationStep]:
        for step in self.steps:
            if step.level == level:
                return step
        return None

    def next_step(self, level: int) -> Optional[EscalationStep]:
        for step in self.steps:
            if step.level > level:
                return step
        return None

    @property
    def last_level(self) -> int:
        return self.steps[-1].level if self.steps else 0


class Incident(BaseModel):
    """Snapshot of the incident being escalated."""

    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    description: str = ""
    severity: str = "medium"
    url: Optional[str] = None
    service_name: Optional[str] = None

    @field_validator("severity")
    @classmethod
    def normalize_severity(cls, v: str) -> str:
        return (v or "medium").strip().lower()


class NotificationPreferences(BaseModel):
    """Per-channel opt-in flags; absent preferences mean enabled."""

    email: bool = True
    sms: bool = True
    voice: bool = True
    push: bool = True

    def allows(self, channel: Channel) -> bool:
        return bool(getattr(self, channel.value))


class UserContact(BaseModel):
    """Directory record for a person who can be notified."""

    id: str
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    push_endpoints: List[str] = Field(default_factory=list)
    preferences: NotificationPreferences = Field(
        default_factory=NotificationPreferences
    )

    @property
    def display_name(self) -> str:
        return self.name or self.email or self.id


class RunStatus(Enum):
    PENDING = "pending"
    ESCALATING = "escalating"
    ACKNOWLEDGED = "acknowledged"
    RESOLVED = "resolved"
    EXHAUSTED = "exhausted"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset(
    {RunStatus.ACKNOWLEDGED, RunStatus.RESOLVED, RunStatus.EXHAUSTED}
)


@dataclass
class DispatchRecord:
    """One dispatch of one level, kept in the run history."""

    level: int
    repeat: int
    dispatched_at: datetime
    job_count: int = 0
    warnings: List[str] = field(default_factory=list)
    error: Optional[str] = None


@dataclass
class EscalationRun:
    """State of one incident's escalation through its policy.

    ``current_level`` is 0 until the run starts. ``dispatched_levels`` maps
    a level to the number of times it has been dispatched (more than one
    only for renotified last levels).
    """

    id: str
    incident: Incident
    policy: EscalationPolicy
    started_at: datetime
    status: RunStatus = RunStatus.PENDING
    current_level: int = 0
    level_started_at: Optional[datetime] = None
    last_dispatched_at: Optional[datetime] = None
    ended_at: Optional[datetime] = None
    dispatched_levels: Dict[int, int] = field(default_factory=dict)
    history: List[DispatchRecord] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    stats: Dict[int, DeliveryStats] = field(default_factory=dict)
    lock: Any = field(
        default_factory=threading.RLock, repr=False, compare=False
    )

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    def dispatch_count(self, level: int) -> int:
        return self.dispatched_levels.get(level, 0)

    def record_stats(self, level: int, stats: DeliveryStats) -> None:
        """Accumulate delivery stats for a level across its dispatches."""
        existing = self.stats.get(level)
        self.stats[level] = existing.merge(stats) if existing else stats

    def snapshot(self) -> Dict[str, Any]:
        """JSON-friendly view of the run for debug tooling."""
        return {
            "id": self.id,
            "incident_id": self.incident.id,
            "policy_id": self.policy.id,
            "status": self.status.value,
            "current_level": self.current_level,
            "started_at": self.started_at.isoformat(),
            "level_started_at": _iso(self.level_started_at),
            "last_dispatched_at": _iso(self.last_dispatched_at),
            "ended_at": _iso(self.ended_at),
            "dispatched_levels": dict(self.dispatched_levels),
            "warnings": list(self.warnings),
            "errors": list(self.errors),
            "stats": {level: s.to_dict() for level, s in self.stats.items()},
        }


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None
