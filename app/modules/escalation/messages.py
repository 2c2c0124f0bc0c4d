"""Notification content and job construction for escalation levels."""

from typing import List, Optional, Tuple

from infrastructure.notifications.models import (
    NotificationJob,
    NotificationPayload,
    Priority,
)
from modules.escalation.models import EscalationPolicy, EscalationStep, Incident
from modules.escalation.targets import Recipient


def incident_url(incident: Incident, app_url: str) -> str:
    return incident.url or f"{app_url.rstrip('/')}/incidents/{incident.id}"


def build_escalation_payload(
    incident: Incident,
    level: int,
    app_url: str,
    run_id: Optional[str] = None,
    repeat: int = 0,
) -> NotificationPayload:
    """Message sent when a level is dispatched for a live incident."""
    url = incident_url(incident, app_url)
    if level == 1 and repeat == 0:
        subject = f"[{incident.severity.upper()}] {incident.title}"
        headline = "A new incident needs your attention."
    else:
        subject = f"ESCALATED: {incident.title} - Level {level}"
        headline = (
            f"This incident has been escalated to level {level} "
            "because it has not been acknowledged."
        )
    body = (
        f"{headline}\n\n"
        f"Incident: {incident.title}\n"
        f"Severity: {incident.severity.upper()}\n"
        f"Description: {incident.description or 'No description provided'}\n\n"
        f"Please acknowledge: {url}"
    )
    return NotificationPayload(
        subject=subject,
        body=body,
        severity=incident.severity,
        url=url,
        data={
            "incident_id": incident.id,
            "run_id": run_id,
            "level": level,
            "repeat": repeat,
            "type": "escalation",
        },
    )


def build_test_payload(
    incident: Incident, policy: EscalationPolicy, level: int, app_url: str
) -> NotificationPayload:
    """Message sent by the manual step test; clearly marked as a test."""
    return NotificationPayload(
        subject=f"TEST: Escalation Policy - {incident.title}",
        body=(
            "TEST ESCALATION POLICY\n\n"
            f"Policy: {policy.name or policy.id}\n"
            f"Step: {level}\n"
            f"Incident: {incident.title}\n"
            f"Severity: {incident.severity.upper()}\n\n"
            "This is a test of your escalation policy configuration."
        ),
        severity=incident.severity,
        url=incident_url(incident, app_url),
        data={
            "incident_id": incident.id,
            "policy_id": policy.id,
            "level": level,
            "type": "escalation_test",
        },
    )


def build_level_jobs(
    recipients: List[Recipient],
    step: EscalationStep,
    payload: NotificationPayload,
    priority: Priority,
    max_attempts: int,
    batch_key: Optional[Tuple[str, int]] = None,
) -> List[NotificationJob]:
    """One job per recipient, channel and address.

    Jobs follow recipient (target declaration) order, then the step's
    channel order.
    """
    jobs: List[NotificationJob] = []
    for recipient in recipients:
        for channel in step.channels:
            for address in recipient.addresses_for(channel):
                jobs.append(
                    NotificationJob(
                        channel=channel,
                        address=address,
                        payload=payload,
                        priority=priority,
                        max_attempts=max_attempts,
                        batch_key=batch_key,
                        user_id=recipient.user_id,
                    )
                )
    return jobs
