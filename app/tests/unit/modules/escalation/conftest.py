"""Fixtures for escalation tests: a small organisation and a scheduler."""

from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest

from infrastructure.idempotency import InMemoryCache
from infrastructure.notifications import DeliveryQueue, DeliveryStats
from modules.escalation import (
    EscalationPolicy,
    EscalationScheduler,
    Incident,
    InMemoryDirectory,
    OnCallSchedule,
    UserContact,
)


@pytest.fixture
def users():
    return [
        UserContact(
            id="alice",
            name="Alice",
            email="alice@example.com",
            phone="+15550000001",
            push_endpoints=["https://fcm.googleapis.com/fcm/send/alice"],
        ),
        UserContact(id="bob", name="Bob", email="bob@example.com", phone="+15550000002"),
        UserContact(id="carol", name="Carol", email="carol@example.com"),
        UserContact(id="dave", name="Dave", email="dave@example.com", phone="+15550000004"),
        UserContact(id="erin", name="Erin", email="erin@example.com"),
    ]


@pytest.fixture
def rotation():
    return OnCallSchedule(
        id="primary",
        name="Primary on-call",
        participants=[{"user_id": "alice"}, {"user_id": "bob"}, {"user_id": "dave"}],
        rotation_type="weekly",
        start=datetime(2024, 3, 4, 9, 0, tzinfo=timezone.utc),
    )


@pytest.fixture
def policy():
    return EscalationPolicy(
        id="default",
        name="Default",
        steps=[
            {
                "level": 1,
                "delay": timedelta(0),
                "channels": ["email"],
                "targets": [{"kind": "schedule", "id": "primary"}],
            },
            {
                "level": 2,
                "delay": timedelta(minutes=5),
                "channels": ["email", "sms"],
                "targets": [{"kind": "team", "id": "sre"}],
            },
            {
                "level": 3,
                "delay": timedelta(minutes=10),
                "channels": ["voice"],
                "targets": [{"kind": "user", "id": "dave"}],
            },
        ],
    )


@pytest.fixture
def directory(users, rotation, policy):
    return InMemoryDirectory(
        users=users,
        teams={"sre": ["alice", "bob", "carol", "dave", "erin"], "empty": []},
        schedules=[rotation],
        policies=[policy],
    )


@pytest.fixture
def incident():
    return Incident(
        id="inc-1",
        title="Database down",
        description="Primary database is not accepting connections.",
        severity="critical",
    )


@pytest.fixture
def dispatcher():
    """Dispatcher double that runs background work inline and sends nothing.

    Jobs stay in the queue so tests can inspect what a level produced.
    """
    mock = MagicMock()
    mock.submit.side_effect = lambda fn, *args, **kwargs: fn(*args, **kwargs)
    mock.drain_queue.return_value = DeliveryStats()
    return mock


@pytest.fixture
def scheduler_factory(directory, dispatcher, fixed_now):
    def _factory(**overrides):
        scheduler_dispatcher = overrides.pop("dispatcher", dispatcher)
        options = dict(
            idempotency_cache=InMemoryCache(),
            app_url="https://app.example.com",
            clock=lambda: fixed_now,
        )
        options.update(overrides)
        return EscalationScheduler(directory, DeliveryQueue(), scheduler_dispatcher, **options)

    return _factory


@pytest.fixture
def scheduler(scheduler_factory):
    return scheduler_factory()
