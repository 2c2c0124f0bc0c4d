"""Unit tests for the batch dispatcher and result hooks."""

import threading
from unittest.mock import MagicMock

import pytest

from infrastructure.notifications import (
    BatchDispatcher,
    Channel,
    DeadEndpointHook,
    DeliveryQueue,
    DeliveryResult,
    Priority,
    ProviderResponse,
    RetryController,
    chain_hooks,
)
from infrastructure.operations import OperationStatus

pytestmark = pytest.mark.unit


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def dispatcher_factory(fake_sender_factory, sleeps):
    created = []

    def _factory(sender=None, **kwargs):
        sender = sender or fake_sender_factory()
        controller = RetryController(
            {sender.channel_name: sender}, sleep=lambda s: None
        )
        kwargs.setdefault("sleep", sleeps.append)
        dispatcher = BatchDispatcher(controller, **kwargs)
        created.append(dispatcher)
        return dispatcher

    yield _factory
    for dispatcher in created:
        dispatcher.shutdown(wait=True)


class TestDispatchAll:
    def test_all_jobs_sent(self, dispatcher_factory, job_factory):
        dispatcher = dispatcher_factory(batch_size=10)

        stats = dispatcher.dispatch_all([job_factory() for _ in range(25)])

        assert stats.total == 25
        assert stats.successful == 25
        assert stats.success_rate == 100.0

    def test_sleeps_only_between_chunks(self, dispatcher_factory, job_factory, sleeps):
        dispatcher = dispatcher_factory(batch_size=10, inter_batch_delay=0.5)

        dispatcher.dispatch_all([job_factory() for _ in range(25)])

        assert sleeps == [0.5, 0.5]

    def test_single_chunk_does_not_sleep(self, dispatcher_factory, job_factory, sleeps):
        dispatcher = dispatcher_factory(batch_size=10)

        dispatcher.dispatch_all([job_factory() for _ in range(10)])

        assert sleeps == []

    def test_call_overrides(self, dispatcher_factory, job_factory, sleeps):
        dispatcher = dispatcher_factory(batch_size=100, inter_batch_delay=0.1)

        dispatcher.dispatch_all(
            [job_factory() for _ in range(4)], batch_size=2, inter_batch_delay=2.0
        )

        assert sleeps == [2.0]

    def test_empty_input(self, dispatcher_factory):
        stats = dispatcher_factory().dispatch_all([])

        assert stats.total == 0
        assert stats.success_rate == 0.0

    def test_mixed_outcomes_aggregate(self, dispatcher_factory, fake_sender_factory, job_factory):
        sender = fake_sender_factory()

        def send(address, payload):
            if address.startswith("bad"):
                return ProviderResponse(status_code=400, message="invalid")
            return ProviderResponse(status_code=202)

        sender.send = send
        dispatcher = dispatcher_factory(sender=sender)

        stats = dispatcher.dispatch_all(
            [job_factory(address="bad@example.com"), job_factory(address="ok@example.com")]
        )

        assert stats.successful == 1
        assert stats.failed == 1
        assert stats.errors == {"INVALID_REQUEST": 1}

    def test_crashed_worker_becomes_failed_result(self, dispatcher_factory, job_factory):
        dispatcher = dispatcher_factory()
        dispatcher.retry_controller = MagicMock()
        dispatcher.retry_controller.send.side_effect = RuntimeError("worker died")

        stats = dispatcher.dispatch_all([job_factory()])

        assert stats.failed == 1
        assert stats.errors == {"UNEXPECTED_ERROR": 1}

    def test_concurrency_is_bounded(self, dispatcher_factory, fake_sender_factory, job_factory):
        lock = threading.Lock()
        state = {"active": 0, "peak": 0}
        sender = fake_sender_factory()

        def send(address, payload):
            with lock:
                state["active"] += 1
                state["peak"] = max(state["peak"], state["active"])
            threading.Event().wait(0.01)
            with lock:
                state["active"] -= 1
            return ProviderResponse(status_code=202)

        sender.send = send
        dispatcher = dispatcher_factory(sender=sender, concurrency_per_batch=2)

        dispatcher.dispatch_all([job_factory() for _ in range(8)])

        assert state["peak"] <= 2

    def test_result_hook_called_per_job(self, dispatcher_factory, job_factory):
        seen = []
        dispatcher = dispatcher_factory(on_result=seen.append)

        dispatcher.dispatch_all([job_factory(), job_factory()])

        assert len(seen) == 2

    def test_failing_hook_does_not_break_dispatch(self, dispatcher_factory, job_factory):
        dispatcher = dispatcher_factory(on_result=MagicMock(side_effect=RuntimeError("x")))

        stats = dispatcher.dispatch_all([job_factory()])

        assert stats.successful == 1

    def test_invalid_batch_size(self, fake_sender_factory):
        with pytest.raises(ValueError):
            BatchDispatcher(MagicMock(), batch_size=0)


class TestQueueDrain:
    def test_drain_queue(self, dispatcher_factory, job_factory):
        dispatcher = dispatcher_factory(batch_size=2)
        queue = DeliveryQueue()
        queue.enqueue_batch(job_factory() for _ in range(5))

        stats = dispatcher.drain_queue(queue)

        assert stats.total == 5
        assert len(queue) == 0

    def test_drain_queue_sends_urgent_first(
        self, dispatcher_factory, fake_sender_factory, job_factory
    ):
        sender = fake_sender_factory()
        dispatcher = dispatcher_factory(sender=sender, batch_size=1)
        queue = DeliveryQueue()
        queue.enqueue(job_factory(address="low@example.com", priority=Priority.LOW))
        queue.enqueue(job_factory(address="crit@example.com", priority=Priority.CRITICAL))

        dispatcher.drain_queue(queue)

        assert [address for address, _ in sender.calls] == [
            "crit@example.com",
            "low@example.com",
        ]

    def test_submit_queue_drain_invokes_callback(self, dispatcher_factory, job_factory):
        dispatcher = dispatcher_factory()
        queue = DeliveryQueue()
        queue.enqueue_batch([job_factory(), job_factory()])
        callback = MagicMock()

        stats = dispatcher.submit_queue_drain(queue, callback=callback).result(timeout=5)

        assert stats.total == 2
        callback.assert_called_once_with(stats)

    def test_callback_error_is_contained(self, dispatcher_factory, job_factory):
        dispatcher = dispatcher_factory()
        queue = DeliveryQueue()
        queue.enqueue(job_factory())

        future = dispatcher.submit_queue_drain(
            queue, callback=MagicMock(side_effect=RuntimeError("callback"))
        )

        assert future.result(timeout=5).total == 1

    def test_submit_after_shutdown_raises(self, dispatcher_factory):
        dispatcher = dispatcher_factory()
        dispatcher.shutdown()

        with pytest.raises(RuntimeError):
            dispatcher.submit_queue_drain(DeliveryQueue())

    def test_submit_runs_work_in_background(self, dispatcher_factory):
        dispatcher = dispatcher_factory()
        caller = threading.current_thread()

        future = dispatcher.submit(lambda x, y=0: (threading.current_thread(), x + y), 1, y=2)
        worker, value = future.result(timeout=5)

        assert value == 3
        assert worker is not caller

    def test_generic_submit_after_shutdown_raises(self, dispatcher_factory):
        dispatcher = dispatcher_factory()
        dispatcher.shutdown()

        with pytest.raises(RuntimeError):
            dispatcher.submit(lambda: None)


def _push_result(success=False, provider_status=410, user_id="u1", channel=Channel.PUSH):
    return DeliveryResult(
        job_id="job",
        channel=channel,
        recipient="https://fcm.googleapis.com/fcm/send/abc",
        success=success,
        classification=(
            OperationStatus.SUCCESS if success else OperationStatus.NOT_FOUND
        ),
        attempts=1,
        provider_status=provider_status,
        user_id=user_id,
    )


class TestDeadEndpointHook:
    def test_gone_endpoint_is_deactivated(self):
        store = MagicMock()

        DeadEndpointHook(store)(_push_result())

        store.deactivate_push_endpoint.assert_called_once_with(
            "u1", "https://fcm.googleapis.com/fcm/send/abc"
        )

    @pytest.mark.parametrize(
        "result",
        [
            _push_result(success=True, provider_status=201),
            _push_result(user_id=None),
            _push_result(channel=Channel.EMAIL),
        ],
    )
    def test_ignored_results(self, result):
        store = MagicMock()

        DeadEndpointHook(store)(result)

        store.deactivate_push_endpoint.assert_not_called()

    def test_server_error_is_ignored(self):
        store = MagicMock()
        result = _push_result(provider_status=500)
        result.classification = OperationStatus.TRANSIENT_ERROR

        DeadEndpointHook(store)(result)

        store.deactivate_push_endpoint.assert_not_called()


class TestChainHooks:
    def test_none_when_no_hooks(self):
        assert chain_hooks(None, None) is None

    def test_single_hook_returned_as_is(self):
        hook = MagicMock()

        assert chain_hooks(None, hook) is hook

    def test_all_hooks_called_in_order(self):
        calls = []
        chained = chain_hooks(lambda r: calls.append("a"), lambda r: calls.append("b"))

        chained(_push_result())

        assert calls == ["a", "b"]
