"""Incident lifecycle hooks.

The incident-management side of the application calls these when an
incident is opened, acknowledged or resolved. ``init`` attaches the
process's scheduler at startup.
"""

from typing import Any, Mapping, Optional, Union

from infrastructure.logging import get_module_logger
from modules.escalation.errors import SchedulerNotConfiguredError
from modules.escalation.models import EscalationRun, Incident
from modules.escalation.scheduler import EscalationScheduler

logger = get_module_logger()

_scheduler: Optional[EscalationScheduler] = None


def init(scheduler: EscalationScheduler) -> None:
    global _scheduler
    _scheduler = scheduler
    logger.info("escalation_lifecycle_initialized")


def reset() -> None:
    """Detach the scheduler (for testing only)."""
    global _scheduler
    _scheduler = None


def get_scheduler() -> EscalationScheduler:
    if _scheduler is None:
        raise SchedulerNotConfiguredError(
            "No escalation scheduler attached; call lifecycle.init() first"
        )
    return _scheduler


def on_incident_opened(
    incident: Union[Incident, Mapping[str, Any]], policy_id: str
) -> EscalationRun:
    """Start escalating a newly opened incident.

    Raises:
        EscalationConfigurationError: missing policy or policy without steps
    """
    if not isinstance(incident, Incident):
        incident = Incident.model_validate(incident)
    return get_scheduler().start(incident, policy_id)


def on_incident_acknowledged(incident_id: str) -> Optional[EscalationRun]:
    return get_scheduler().acknowledge(incident_id)


def on_incident_resolved(incident_id: str) -> Optional[EscalationRun]:
    return get_scheduler().resolve_incident(incident_id)
