"""Escalation scheduler: the per-incident escalation state machine.

Each open incident gets an EscalationRun that walks its policy level by
level:

    pending -> escalating(1) -> escalating(2) -> ... -> exhausted
                     \\________________\\___________-> acknowledged | resolved

Timing:
    - Level 1 starts when the run starts.
    - A level is dispatched once ``delay`` has elapsed since it started.
    - Dispatching level L starts level L+1 at that same instant, so a
      following level with no delay is dispatched in the same evaluation.
    - The last level is repeated every ``renotify_interval`` when set.
      Otherwise the run is exhausted once the exhaust window (the last
      step's delay, or ``exhaust_after`` when that delay is 0) has passed
      since its dispatch.

Every dispatch of a (run, level, repeat) happens at most once: the run's
dispatch history and the idempotency cache are both checked and updated
under the run's lock before any job is queued.
"""

import threading
import uuid
from collections import OrderedDict, defaultdict
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional, Tuple, TYPE_CHECKING

from infrastructure.idempotency import (
    IdempotencyCache,
    IdempotencyKeyBuilder,
    InMemoryCache,
    get_cache,
)
from infrastructure.logging import bind_escalation_context, get_module_logger
from infrastructure.notifications.dispatcher import BatchDispatcher
from infrastructure.notifications.models import DeliveryResult, DeliveryStats, Priority
from infrastructure.notifications.queue import DeliveryQueue
from modules.escalation.directory import Directory
from modules.escalation.errors import EscalationConfigurationError
from modules.escalation.messages import build_escalation_payload, build_level_jobs
from modules.escalation.models import (
    DispatchRecord,
    EscalationRun,
    EscalationStep,
    Incident,
    RunStatus,
)
from modules.escalation.targets import TargetResolver

if TYPE_CHECKING:
    from infrastructure.configuration import Settings
    from infrastructure.notifications.service import DeliveryService

logger = get_module_logger()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_run_id() -> str:
    return f"run-{uuid.uuid4().hex[:12]}"


class EscalationScheduler:
    """Owns all escalation runs and advances them on every tick.

    Runs are evaluated under their own lock; the registry lock is held only
    to insert, look up or archive runs. Dispatch work is handed to the
    dispatcher's background executor, so ``tick`` never waits on providers
    or on directory lookups.

    Attributes:
        directory: source of policies, users, teams and schedules
        queue: delivery queue jobs are submitted to
        dispatcher: drains the queue in the background
    """

    def __init__(
        self,
        directory: Directory,
        queue: DeliveryQueue,
        dispatcher: BatchDispatcher,
        resolver: Optional[TargetResolver] = None,
        idempotency_cache: Optional[IdempotencyCache] = None,
        idempotency_ttl_seconds: int = 86400,
        max_attempts: int = 3,
        exhaust_after: timedelta = timedelta(seconds=900),
        archive_size: int = 1000,
        app_url: str = "http://localhost:3000",
        clock: Callable[[], datetime] = _utcnow,
        id_factory: Callable[[], str] = _new_run_id,
    ):
        self.directory = directory
        self.queue = queue
        self.dispatcher = dispatcher
        self.resolver = resolver or TargetResolver(directory)
        self.idempotency_cache = idempotency_cache or InMemoryCache()
        self.idempotency_ttl_seconds = idempotency_ttl_seconds
        self.max_attempts = max_attempts
        self.exhaust_after = exhaust_after
        self.archive_size = archive_size
        self.app_url = app_url
        self._clock = clock
        self._new_id = id_factory
        self._keys = IdempotencyKeyBuilder(namespace="escalation")

        self._registry_lock = threading.Lock()
        self._active: Dict[str, EscalationRun] = {}
        self._by_incident: Dict[str, str] = {}
        self._archive: "OrderedDict[str, EscalationRun]" = OrderedDict()

    @classmethod
    def from_settings(
        cls,
        settings: "Settings",
        directory: Directory,
        delivery: "DeliveryService",
        **overrides,
    ) -> "EscalationScheduler":
        """Build a scheduler that feeds the given delivery service."""
        options = dict(
            idempotency_cache=get_cache(),
            idempotency_ttl_seconds=settings.idempotency.IDEMPOTENCY_TTL_SECONDS,
            max_attempts=delivery.max_attempts,
            exhaust_after=timedelta(
                seconds=settings.escalation.ESCALATION_EXHAUST_AFTER_SECONDS
            ),
            archive_size=settings.escalation.ESCALATION_ARCHIVE_SIZE,
            app_url=settings.escalation.ESCALATION_APP_URL,
        )
        options.update(overrides)
        return cls(directory, delivery.queue, delivery.dispatcher, **options)

    # Lifecycle

    def start(
        self, incident: Incident, policy_id: str, now: Optional[datetime] = None
    ) -> EscalationRun:
        """Start escalating ``incident`` under policy ``policy_id``.

        Level 1 is evaluated immediately, so a level with no delay is
        dispatched before this returns. Starting an incident that already
        has an active run returns the existing run.

        Raises:
            EscalationConfigurationError: the policy does not exist or has no steps
        """
        now = now or self._clock()

        policy = self.directory.get_escalation_policy(policy_id)
        if policy is None:
            logger.error(
                "escalation_policy_not_found",
                incident_id=incident.id,
                policy_id=policy_id,
            )
            raise EscalationConfigurationError(
                f"Escalation policy {policy_id} not found", policy_id=policy_id
            )
        if not policy.steps:
            logger.error(
                "escalation_policy_has_no_steps",
                incident_id=incident.id,
                policy_id=policy_id,
            )
            raise EscalationConfigurationError(
                f"Escalation policy {policy_id} has no steps", policy_id=policy_id
            )

        with self._registry_lock:
            existing_id = self._by_incident.get(incident.id)
            if existing_id is not None:
                logger.info(
                    "escalation_run_already_active",
                    incident_id=incident.id,
                    run_id=existing_id,
                )
                return self._active[existing_id]

            run = EscalationRun(
                id=self._new_id(),
                incident=incident,
                policy=policy,
                started_at=now,
            )
            self._active[run.id] = run
            self._by_incident[incident.id] = run.id

        with run.lock:
            run.status = RunStatus.ESCALATING
            run.current_level = policy.steps[0].level
            run.level_started_at = now

        logger.info(
            "escalation_run_started",
            run_id=run.id,
            incident_id=incident.id,
            policy_id=policy.id,
            levels=len(policy.steps),
        )
        self._evaluate(run, now)
        return run

    def acknowledge(
        self, incident_id: str, now: Optional[datetime] = None
    ) -> Optional[EscalationRun]:
        """Stop escalating an incident because someone acknowledged it.

        Idempotent: unknown incidents and finished runs are left untouched.
        Jobs already handed to delivery are not cancelled.
        """
        return self._finish(incident_id, RunStatus.ACKNOWLEDGED, now)

    def resolve_incident(
        self, incident_id: str, now: Optional[datetime] = None
    ) -> Optional[EscalationRun]:
        """Stop escalating an incident because it was resolved. Idempotent."""
        return self._finish(incident_id, RunStatus.RESOLVED, now)

    def tick(self, now: Optional[datetime] = None) -> int:
        """Evaluate every active run once.

        Returns:
            Number of level dispatches triggered by this tick
        """
        now = now or self._clock()
        with self._registry_lock:
            runs = list(self._active.values())

        dispatched = 0
        for run in runs:
            dispatched += self._evaluate(run, now)
            with run.lock:
                terminal = run.is_terminal
            if terminal:
                self._archive_run(run)

        if dispatched:
            logger.info("escalation_tick_completed", active_runs=len(runs), dispatches=dispatched)
        return dispatched

    # Queries

    def get_run(self, run_id: str) -> Optional[EscalationRun]:
        with self._registry_lock:
            return self._active.get(run_id) or self._archive.get(run_id)

    def get_run_for_incident(self, incident_id: str) -> Optional[EscalationRun]:
        """Active run for the incident, else its most recent archived run."""
        with self._registry_lock:
            run_id = self._by_incident.get(incident_id)
            if run_id is not None:
                return self._active[run_id]
            for run in reversed(self._archive.values()):
                if run.incident.id == incident_id:
                    return run
        return None

    def list_runs(self, include_archived: bool = False) -> List[EscalationRun]:
        with self._registry_lock:
            runs = list(self._active.values())
            if include_archived:
                runs.extend(self._archive.values())
        return runs

    # Internals

    def _finish(
        self, incident_id: str, status: RunStatus, now: Optional[datetime]
    ) -> Optional[EscalationRun]:
        now = now or self._clock()
        with self._registry_lock:
            run_id = self._by_incident.get(incident_id)
            run = self._active.get(run_id) if run_id else None

        if run is None:
            logger.info(
                "escalation_run_not_active",
                incident_id=incident_id,
                requested_status=status.value,
            )
            return self.get_run_for_incident(incident_id)

        with run.lock:
            if run.is_terminal:
                logger.info(
                    "escalation_run_already_finished",
                    run_id=run.id,
                    status=run.status.value,
                    requested_status=status.value,
                )
                return run
            run.status = status
            run.ended_at = now

        logger.info(
            "escalation_run_finished",
            run_id=run.id,
            incident_id=incident_id,
            status=status.value,
            level=run.current_level,
        )
        self._archive_run(run)
        return run

    def _evaluate(self, run: EscalationRun, now: datetime) -> int:
        dispatched = 0
        with run.lock, bind_escalation_context(
            incident_id=run.incident.id, run_id=run.id
        ):
            if run.is_terminal:
                logger.debug("escalation_tick_on_finished_run", status=run.status.value)
                return 0

            while True:
                step = run.policy.step_for_level(run.current_level)
                if step is None:
                    logger.error("escalation_level_missing", level=run.current_level)
                    return dispatched

                if run.dispatch_count(step.level) == 0:
                    if now - run.level_started_at < step.delay:
                        return dispatched
                    if self._dispatch(run, step, 0, now):
                        dispatched += 1
                    next_step = run.policy.next_step(step.level)
                    if next_step is None:
                        return dispatched
                    run.current_level = next_step.level
                    run.level_started_at = now
                    continue

                # Last level, already dispatched at least once
                last_dispatched = run.last_dispatched_at or run.level_started_at
                if step.renotify_interval is not None:
                    if now - last_dispatched >= step.renotify_interval:
                        repeat = run.dispatch_count(step.level)
                        if self._dispatch(run, step, repeat, now):
                            dispatched += 1
                    return dispatched

                window = step.delay if step.delay > timedelta(0) else self.exhaust_after
                if now - last_dispatched >= window:
                    run.status = RunStatus.EXHAUSTED
                    run.ended_at = now
                    logger.warning(
                        "escalation_run_exhausted",
                        level=step.level,
                        dispatches=sum(run.dispatched_levels.values()),
                    )
                return dispatched

    def _dispatch(
        self, run: EscalationRun, step: EscalationStep, repeat: int, now: datetime
    ) -> bool:
        """Record one level dispatch and hand its delivery to the background.

        Caller holds ``run.lock``. Target resolution goes through the
        directory, so it runs on the dispatcher's executor together with
        the send, never on the ticking thread.

        Returns:
            False if this (run, level, repeat) was already dispatched
        """
        key = self._keys.build(
            "dispatch_level", run_id=run.id, level=step.level, repeat=repeat
        )
        if run.dispatch_count(step.level) > repeat or self.idempotency_cache.get(key):
            logger.warning(
                "escalation_duplicate_dispatch_skipped", level=step.level, repeat=repeat
            )
            return False

        self.idempotency_cache.set(
            key,
            {"run_id": run.id, "level": step.level, "dispatched_at": now.isoformat()},
            ttl_seconds=self.idempotency_ttl_seconds,
        )
        run.dispatched_levels[step.level] = repeat + 1
        run.last_dispatched_at = now
        record = DispatchRecord(level=step.level, repeat=repeat, dispatched_at=now)
        run.history.append(record)

        try:
            self.dispatcher.submit(self._deliver_level, run, step, record, now)
        except RuntimeError as e:
            record.error = str(e)
            run.errors.append(f"level {step.level}: {e}")
            logger.error("escalation_delivery_submit_failed", level=step.level, error=str(e))
            return True

        logger.info("escalation_level_dispatched", level=step.level, repeat=repeat)
        return True

    def _deliver_level(
        self,
        run: EscalationRun,
        step: EscalationStep,
        record: DispatchRecord,
        now: datetime,
    ) -> DeliveryStats:
        """Resolve targets, queue the level's jobs as one batch and send them."""
        try:
            stats = self._resolve_and_send(run, step, record, now)
        except Exception as e:
            logger.error(
                "escalation_level_delivery_failed",
                run_id=run.id,
                level=step.level,
                error=str(e),
                exc_info=True,
            )
            raise
        self._record_delivery(stats)
        return stats

    def _resolve_and_send(
        self,
        run: EscalationRun,
        step: EscalationStep,
        record: DispatchRecord,
        now: datetime,
    ) -> DeliveryStats:
        with bind_escalation_context(
            incident_id=run.incident.id, run_id=run.id, level=step.level
        ):
            resolution = self.resolver.resolve(step, now)
            payload = build_escalation_payload(
                run.incident, step.level, self.app_url, run_id=run.id, repeat=record.repeat
            )
            jobs = build_level_jobs(
                resolution.recipients,
                step,
                payload,
                Priority.from_severity(run.incident.severity),
                self.max_attempts,
                batch_key=(run.id, step.level),
            )

            with run.lock:
                record.job_count = len(jobs)
                for warning in resolution.warnings:
                    record.warnings.append(str(warning))
                    run.warnings.append(f"level {step.level}: {warning}")
                if not jobs:
                    record.error = "no recipients"
                    run.errors.append(f"level {step.level}: no recipients")

            for warning in resolution.warnings:
                logger.warning("escalation_target_warning", warning=str(warning))
            if not jobs:
                logger.error("escalation_level_has_no_recipients", repeat=record.repeat)
                return DeliveryStats()

            self.queue.enqueue_batch(jobs)
            logger.info(
                "escalation_level_queued",
                repeat=record.repeat,
                recipients=len(resolution.recipients),
                jobs=len(jobs),
                warnings=len(resolution.warnings),
            )
            return self.dispatcher.drain_queue(self.queue)

    def _record_delivery(self, stats: DeliveryStats) -> None:
        """Attach delivery outcomes to the runs whose jobs they were."""
        grouped: Dict[Tuple[str, int], List[DeliveryResult]] = defaultdict(list)
        for result in stats.results:
            if result.batch_key is not None:
                grouped[tuple(result.batch_key)].append(result)

        for (run_id, level), results in grouped.items():
            run = self.get_run(run_id)
            if run is None:
                logger.warning("escalation_delivery_for_unknown_run", run_id=run_id)
                continue
            level_stats = DeliveryStats.from_results(results)
            with run.lock:
                run.record_stats(level, level_stats)
            logger.info(
                "escalation_level_delivery_completed",
                run_id=run_id,
                level=level,
                **level_stats.to_dict(),
            )

    def _archive_run(self, run: EscalationRun) -> None:
        with self._registry_lock:
            if self._active.pop(run.id, None) is None:
                return
            if self._by_incident.get(run.incident.id) == run.id:
                del self._by_incident[run.incident.id]
            self._archive[run.id] = run
            while len(self._archive) > self.archive_size:
                self._archive.popitem(last=False)
