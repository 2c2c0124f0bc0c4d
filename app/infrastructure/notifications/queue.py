"""Priority delivery queue.

Jobs leave the queue strictly by priority (critical, high, normal, low) and
first-in first-out within a priority tier. The queue is an ordinary object
created by whoever wires the pipeline and handed to the components that
need it; there is no process-wide queue.
"""

import threading
from collections import deque
from typing import Deque, Dict, Iterable, List

from infrastructure.logging import get_module_logger
from infrastructure.notifications.models import (
    JobStatus,
    NotificationJob,
    PRIORITY_ORDER,
    Priority,
)

logger = get_module_logger()


class DeliveryQueue:
    """Thread-safe priority queue of notification jobs.

    One deque per priority tier behind a single lock. ``enqueue_batch`` is
    atomic: a concurrent drain sees either none or all of the batch.

    Example:
        queue = DeliveryQueue()
        queue.enqueue_batch(jobs)
        next_chunk = queue.drain_batch(100)
    """

    def __init__(self) -> None:
        self._tiers: Dict[Priority, Deque[NotificationJob]] = {
            priority: deque() for priority in PRIORITY_ORDER
        }
        self._lock = threading.Lock()

    def enqueue(self, job: NotificationJob) -> None:
        with self._lock:
            job.status = JobStatus.QUEUED
            self._tiers[job.priority].append(job)

    def enqueue_batch(self, jobs: Iterable[NotificationJob]) -> int:
        """Add several jobs in one step, preserving their relative order.

        Returns:
            Number of jobs added.
        """
        jobs = list(jobs)
        with self._lock:
            for job in jobs:
                job.status = JobStatus.QUEUED
                self._tiers[job.priority].append(job)
        if jobs:
            logger.debug("delivery_batch_enqueued", job_count=len(jobs))
        return len(jobs)

    def drain_batch(self, max_size: int) -> List[NotificationJob]:
        """Remove and return up to ``max_size`` jobs, most urgent first."""
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        drained: List[NotificationJob] = []
        with self._lock:
            for priority in PRIORITY_ORDER:
                tier = self._tiers[priority]
                while tier and len(drained) < max_size:
                    drained.append(tier.popleft())
                if len(drained) >= max_size:
                    break
        return drained

    def drain_all(self) -> List[NotificationJob]:
        """Remove and return every queued job, most urgent first."""
        drained: List[NotificationJob] = []
        with self._lock:
            for priority in PRIORITY_ORDER:
                tier = self._tiers[priority]
                drained.extend(tier)
                tier.clear()
        return drained

    def counts(self) -> Dict[str, int]:
        """Queued jobs per priority tier."""
        with self._lock:
            return {p.value: len(self._tiers[p]) for p in PRIORITY_ORDER}

    def __len__(self) -> int:
        with self._lock:
            return sum(len(tier) for tier in self._tiers.values())
