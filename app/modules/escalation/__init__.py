"""Escalation module.

Decides who is notified about an open incident, when, and through which
channels, and feeds the resulting jobs into the delivery pipeline.

Public API:
    - EscalationScheduler: per-incident escalation state machine
    - TargetResolver: step targets -> recipients and warnings
    - resolve_current_participant / next_handoff: on-call lookups
    - lifecycle hooks: on_incident_opened / _acknowledged / _resolved
    - debug.test_escalation_step: manual dispatch of one policy step
"""

from modules.escalation.directory import Directory, InMemoryDirectory
from modules.escalation.errors import (
    EscalationConfigurationError,
    EscalationError,
    SchedulerNotConfiguredError,
)
from modules.escalation.lifecycle import (
    on_incident_acknowledged,
    on_incident_opened,
    on_incident_resolved,
)
from modules.escalation.models import (
    EscalationPolicy,
    EscalationRun,
    EscalationStep,
    Incident,
    NotificationPreferences,
    OnCallSchedule,
    Participant,
    RotationType,
    RunStatus,
    ScheduleTarget,
    TeamTarget,
    UserContact,
    UserTarget,
)
from modules.escalation.on_call import (
    next_handoff,
    resolve_current_participant,
    rotation_interval,
)
from modules.escalation.scheduler import EscalationScheduler
from modules.escalation.targets import (
    Recipient,
    ResolutionWarning,
    TargetResolution,
    TargetResolver,
)

__all__ = [
    "Directory",
    "InMemoryDirectory",
    "EscalationError",
    "EscalationConfigurationError",
    "SchedulerNotConfiguredError",
    "EscalationPolicy",
    "EscalationStep",
    "EscalationRun",
    "Incident",
    "NotificationPreferences",
    "OnCallSchedule",
    "Participant",
    "RotationType",
    "RunStatus",
    "UserContact",
    "UserTarget",
    "TeamTarget",
    "ScheduleTarget",
    "resolve_current_participant",
    "next_handoff",
    "rotation_interval",
    "EscalationScheduler",
    "TargetResolver",
    "TargetResolution",
    "Recipient",
    "ResolutionWarning",
    "on_incident_opened",
    "on_incident_acknowledged",
    "on_incident_resolved",
]
