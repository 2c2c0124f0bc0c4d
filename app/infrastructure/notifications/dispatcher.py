"""Batch dispatcher: sends many jobs with bounded concurrency.

Jobs are processed in chunks. Each chunk runs on a thread pool, every job
in it handled by the retry controller in its own worker thread, and all of
the chunk's jobs settle before the next chunk starts. Between chunks the
dispatcher sleeps ``inter_batch_delay`` to throttle provider traffic.

Usage Example:
    from infrastructure.notifications import BatchDispatcher, DeliveryQueue

    dispatcher = BatchDispatcher(retry_controller, batch_size=50)

    stats = dispatcher.dispatch_all(jobs)
    logger.info("delivered", **stats.to_dict())

    # Or hand a queue to the background executor
    future = dispatcher.submit_queue_drain(queue, callback=record_stats)
"""

import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable, Iterable, List, Optional, Protocol, TypeVar

from infrastructure.logging import clear_escalation_context, get_module_logger, mask_address
from infrastructure.notifications.models import (
    Channel,
    DeliveryResult,
    DeliveryStats,
    NotificationJob,
)
from infrastructure.notifications.queue import DeliveryQueue
from infrastructure.notifications.retry import RetryController, failed_result
from infrastructure.operations import OperationStatus

logger = get_module_logger()

ResultHook = Callable[[DeliveryResult], None]
T = TypeVar("T")


class BatchDispatcher:
    """Chunked, throttled, concurrent delivery of notification jobs.

    Attributes:
        retry_controller: Sends individual jobs with retries
        batch_size: Default number of jobs per chunk
        inter_batch_delay: Default pause between chunks, in seconds
        concurrency_per_batch: Default worker count per chunk (None = chunk size)
        on_result: Optional hook called with every DeliveryResult once it settles
    """

    def __init__(
        self,
        retry_controller: RetryController,
        batch_size: int = 100,
        inter_batch_delay: float = 0.1,
        concurrency_per_batch: Optional[int] = None,
        background_workers: int = 4,
        on_result: Optional[ResultHook] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        self.retry_controller = retry_controller
        self.batch_size = batch_size
        self.inter_batch_delay = inter_batch_delay
        self.concurrency_per_batch = concurrency_per_batch
        self.on_result = on_result
        self._sleep = sleep
        self._background = ThreadPoolExecutor(
            max_workers=background_workers, thread_name_prefix="delivery-drain"
        )
        self._shutdown_lock = threading.Lock()
        self._is_shutdown = False

    def dispatch_all(
        self,
        jobs: Iterable[NotificationJob],
        batch_size: Optional[int] = None,
        inter_batch_delay: Optional[float] = None,
        concurrency_per_batch: Optional[int] = None,
    ) -> DeliveryStats:
        """Send every job and aggregate the outcome.

        Args:
            jobs: Jobs to send, in the order they should be attempted
            batch_size: Jobs per chunk (defaults to the dispatcher's)
            inter_batch_delay: Seconds to pause between chunks
            concurrency_per_batch: Worker threads per chunk

        Returns:
            DeliveryStats over all jobs; an empty input yields zeroed stats
        """
        jobs = list(jobs)
        size = batch_size or self.batch_size
        delay = self.inter_batch_delay if inter_batch_delay is None else inter_batch_delay

        results: List[DeliveryResult] = []
        for start in range(0, len(jobs), size):
            if start:
                self._sleep(delay)
            chunk = jobs[start : start + size]
            results.extend(self._run_chunk(chunk, concurrency_per_batch))

        stats = DeliveryStats.from_results(results)
        if jobs:
            logger.info("delivery_dispatch_completed", **stats.to_dict())
        return stats

    def drain_queue(self, queue: DeliveryQueue) -> DeliveryStats:
        """Dispatch everything in ``queue`` until it is empty.

        The queue is drained one chunk at a time, so jobs enqueued while a
        chunk is in flight still overtake lower-priority leftovers.
        """
        results: List[DeliveryResult] = []
        while True:
            chunk = queue.drain_batch(self.batch_size)
            if not chunk:
                break
            if results:
                self._sleep(self.inter_batch_delay)
            results.extend(self._run_chunk(chunk, None))

        stats = DeliveryStats.from_results(results)
        if results:
            logger.info("delivery_queue_drained", **stats.to_dict())
        return stats

    def submit_queue_drain(
        self,
        queue: DeliveryQueue,
        callback: Optional[Callable[[DeliveryStats], None]] = None,
    ) -> "Future[DeliveryStats]":
        """Drain ``queue`` on the background executor.

        Args:
            queue: Queue to drain
            callback: Called with the resulting stats in the background thread

        Returns:
            Future resolving to the DeliveryStats of the drain
        """

        def _drain() -> DeliveryStats:
            stats = self.drain_queue(queue)
            if callback is not None:
                try:
                    callback(stats)
                except Exception as e:
                    logger.error("delivery_callback_failed", error=str(e), exc_info=True)
            return stats

        return self.submit(_drain)

    def submit(self, fn: Callable[..., T], *args: Any, **kwargs: Any) -> "Future[T]":
        """Run ``fn`` on the background executor.

        Raises:
            RuntimeError: the dispatcher has been shut down
        """
        with self._shutdown_lock:
            if self._is_shutdown:
                raise RuntimeError("dispatcher has been shut down")
            return self._background.submit(fn, *args, **kwargs)

    def shutdown(self, wait: bool = True) -> None:
        """Stop accepting background drains; in-flight drains finish."""
        with self._shutdown_lock:
            self._is_shutdown = True
        self._background.shutdown(wait=wait)

    def _run_chunk(
        self,
        chunk: List[NotificationJob],
        concurrency: Optional[int],
    ) -> List[DeliveryResult]:
        workers = max(1, min(concurrency or self.concurrency_per_batch or len(chunk), len(chunk)))
        with ThreadPoolExecutor(
            max_workers=workers, thread_name_prefix="delivery-worker"
        ) as pool:
            futures = [(job, pool.submit(self._send_one, job)) for job in chunk]
            results = []
            for job, future in futures:
                try:
                    result = future.result()
                except Exception as e:
                    logger.error(
                        "delivery_job_crashed",
                        job_id=job.id,
                        error=str(e),
                        exc_info=True,
                    )
                    result = failed_result(job, e)
                results.append(result)

        for result in results:
            self._notify(result)
        return results

    def _send_one(self, job: NotificationJob) -> DeliveryResult:
        try:
            return self.retry_controller.send(job)
        finally:
            clear_escalation_context()

    def _notify(self, result: DeliveryResult) -> None:
        if self.on_result is None:
            return
        try:
            self.on_result(result)
        except Exception as e:
            logger.error(
                "delivery_result_hook_failed",
                job_id=result.job_id,
                error=str(e),
                exc_info=True,
            )


class PushEndpointStore(Protocol):
    def deactivate_push_endpoint(self, user_id: str, endpoint: str) -> None: ...


class DeadEndpointHook:
    """Result hook that retires push subscriptions the push service rejected.

    A 404 or 410 from a push service means the browser subscription is gone;
    sending to it again can never succeed.
    """

    DEAD_STATUSES = frozenset({404, 410})

    def __init__(self, store: PushEndpointStore):
        self.store = store

    def __call__(self, result: DeliveryResult) -> None:
        if result.channel is not Channel.PUSH or result.success:
            return
        if (
            result.provider_status not in self.DEAD_STATUSES
            and result.classification is not OperationStatus.NOT_FOUND
        ):
            return
        if not result.user_id:
            return
        self.store.deactivate_push_endpoint(result.user_id, result.recipient)
        logger.info(
            "push_endpoint_deactivated",
            user_id=result.user_id,
            endpoint=mask_address(result.recipient),
            provider_status=result.provider_status,
        )


def chain_hooks(*hooks: Optional[ResultHook]) -> Optional[ResultHook]:
    """Combine several result hooks into one, skipping ``None``."""
    active = [h for h in hooks if h is not None]
    if not active:
        return None
    if len(active) == 1:
        return active[0]

    def _chained(result: DeliveryResult) -> None:
        for hook in active:
            hook(result)

    return _chained
