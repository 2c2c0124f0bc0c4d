"""Determine who is on call for a schedule at a given instant.

Everything here is a pure function of the schedule and the instant asked
about; nothing is cached, so a schedule edit takes effect on the next
lookup.
"""

from datetime import datetime, timedelta
from typing import Optional

import pytz

from modules.escalation.models import OnCallSchedule, Participant, RotationType

ROTATION_HOURS = {
    RotationType.DAILY: 24,
    RotationType.WEEKLY: 24 * 7,
    RotationType.BIWEEKLY: 24 * 14,
    # Fixed 30-day shifts; calendar months are not modelled
    RotationType.MONTHLY: 24 * 30,
}


def rotation_interval(schedule: OnCallSchedule) -> timedelta:
    """Length of one shift.

    An explicit ``interval_hours`` always wins over the rotation preset.

    Raises:
        ValueError: custom rotation without ``interval_hours``
    """
    if schedule.interval_hours is not None:
        return timedelta(hours=schedule.interval_hours)
    hours = ROTATION_HOURS.get(schedule.rotation_type)
    if hours is None:
        raise ValueError(
            f"Schedule {schedule.id} uses a custom rotation without interval_hours"
        )
    return timedelta(hours=hours)


def _as_aware(value: datetime, tz) -> datetime:
    """Naive datetimes are wall-clock times in the schedule's timezone."""
    if value.tzinfo is None or value.utcoffset() is None:
        return tz.localize(value)
    return value


def resolve_current_participant(
    schedule: OnCallSchedule, at: datetime
) -> Optional[Participant]:
    """Return the participant on call at ``at``, or None.

    None is returned when the schedule has no participants, ``at`` is
    before the rotation start, or after its end.

    Args:
        schedule: the rotation to evaluate
        at: instant to evaluate; naive values are local to the schedule

    Returns:
        The on-call participant or None
    """
    if not schedule.participants:
        return None

    tz = pytz.timezone(schedule.timezone)
    at = _as_aware(at, tz)
    start = _as_aware(schedule.start, tz)
    if at < start:
        return None
    if schedule.end is not None and at > _as_aware(schedule.end, tz):
        return None

    shifts = (at - start) // rotation_interval(schedule)
    return schedule.participants[shifts % len(schedule.participants)]


def next_handoff(schedule: OnCallSchedule, at: datetime) -> Optional[datetime]:
    """Instant at which on-call next changes hands after ``at``.

    Returns None when the rotation has no participants or no further
    boundary exists before its end. The result is expressed in the
    schedule's timezone.
    """
    if not schedule.participants:
        return None

    tz = pytz.timezone(schedule.timezone)
    at = _as_aware(at, tz)
    start = _as_aware(schedule.start, tz)
    end = _as_aware(schedule.end, tz) if schedule.end is not None else None

    if at < start:
        boundary = start
    else:
        interval = rotation_interval(schedule)
        boundary = start + interval * ((at - start) // interval + 1)

    if end is not None and boundary > end:
        return None
    return tz.normalize(boundary.astimezone(tz))
