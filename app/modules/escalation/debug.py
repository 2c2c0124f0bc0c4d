"""Manual dispatch of a single escalation step.

Lets an operator check that a policy step reaches the right people on the
right channels without opening a real incident. The step goes through the
same target resolution and batch dispatch as production, but on a private
queue, so test jobs never mix with live escalation batches.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Union

from infrastructure.logging import bind_escalation_context, get_module_logger
from infrastructure.notifications.models import DeliveryStats, Priority
from infrastructure.notifications.queue import DeliveryQueue
from modules.escalation import lifecycle
from modules.escalation.messages import build_level_jobs, build_test_payload
from modules.escalation.models import Incident
from modules.escalation.scheduler import EscalationScheduler

logger = get_module_logger()

DEFAULT_TEST_INCIDENT = {
    "id": "test-incident",
    "title": "Test Incident - Escalation Policy Check",
    "description": "This is a test incident to verify escalation policy configuration.",
    "severity": "high",
}


@dataclass
class StepTestReport:
    """Outcome of a manual step test."""

    policy_id: str
    step_index: int
    level: Optional[int] = None
    notifications_attempted: int = 0
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    stats: DeliveryStats = field(default_factory=DeliveryStats)

    @property
    def ok(self) -> bool:
        return not self.errors and self.stats.failed == 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "policy_id": self.policy_id,
            "step_index": self.step_index,
            "level": self.level,
            "notifications_attempted": self.notifications_attempted,
            "errors": list(self.errors),
            "warnings": list(self.warnings),
            "stats": self.stats.to_dict(),
        }


def test_escalation_step(
    policy_id: str,
    step_index: int,
    sample_incident: Union[Incident, Mapping[str, Any], None] = None,
    scheduler: Optional[EscalationScheduler] = None,
    now: Optional[datetime] = None,
) -> StepTestReport:
    """Dispatch one step of a policy right now and report what happened.

    Problems (unknown policy, index out of range, nobody to notify) are
    reported in ``errors`` rather than raised.

    Args:
        policy_id: policy to test
        step_index: 0-based position of the step within the policy
        sample_incident: incident used for message content
        scheduler: scheduler whose directory, resolver and dispatcher to use;
            defaults to the one attached through ``lifecycle.init``
        now: evaluation time for on-call lookups
    """
    scheduler = scheduler or lifecycle.get_scheduler()
    now = now or datetime.now(timezone.utc)
    report = StepTestReport(policy_id=policy_id, step_index=step_index)

    policy = scheduler.directory.get_escalation_policy(policy_id)
    if policy is None:
        report.errors.append(f"Escalation policy {policy_id} not found")
        return report
    if step_index < 0 or step_index >= len(policy.steps):
        report.errors.append(
            f"Step index {step_index} out of range; policy has {len(policy.steps)} steps"
        )
        return report

    if sample_incident is None:
        incident = Incident.model_validate(DEFAULT_TEST_INCIDENT)
    elif isinstance(sample_incident, Incident):
        incident = sample_incident
    else:
        incident = Incident.model_validate(sample_incident)

    step = policy.steps[step_index]
    report.level = step.level

    with bind_escalation_context(incident_id=incident.id, level=step.level, test=True):
        resolution = scheduler.resolver.resolve(step, now)
        report.warnings.extend(str(w) for w in resolution.warnings)

        jobs = build_level_jobs(
            resolution.recipients,
            step,
            build_test_payload(incident, policy, step.level, scheduler.app_url),
            Priority.from_severity(incident.severity),
            scheduler.max_attempts,
        )
        report.notifications_attempted = len(jobs)
        if not jobs:
            report.errors.append("No recipients could be resolved for this step")
            logger.warning("escalation_step_test_no_recipients", policy_id=policy_id)
            return report

        queue = DeliveryQueue()
        queue.enqueue_batch(jobs)
        report.stats = scheduler.dispatcher.drain_queue(queue)

        for result in report.stats.results:
            if not result.success:
                report.errors.append(
                    f"{result.channel.value} to {result.user_id or 'unknown'} failed: {result.error}"
                )

        logger.info(
            "escalation_step_tested",
            policy_id=policy_id,
            step_index=step_index,
            **report.stats.to_dict(),
        )
    return report
