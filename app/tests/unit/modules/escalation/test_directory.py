"""Unit tests for the in-memory directory."""

import json

import pytest

from modules.escalation import Directory, InMemoryDirectory, UserContact

pytestmark = pytest.mark.unit


SEED = {
    "users": [
        {
            "id": "alice",
            "name": "Alice",
            "email": "alice@example.com",
            "push_endpoints": ["https://fcm.googleapis.com/fcm/send/a1"],
        }
    ],
    "teams": {"sre": ["alice"]},
    "schedules": [
        {
            "id": "primary",
            "participants": [{"user_id": "alice"}],
            "start": "2024-01-01T09:00:00+00:00",
        }
    ],
    "policies": [
        {
            "id": "default",
            "steps": [
                {
                    "level": 1,
                    "delay_minutes": 0,
                    "channels": ["email", "push"],
                    "targets": [{"kind": "team", "id": "sre"}],
                }
            ],
        }
    ],
}


class TestInMemoryDirectory:
    def test_satisfies_protocol(self):
        assert isinstance(InMemoryDirectory(), Directory)

    def test_from_dict(self):
        directory = InMemoryDirectory.from_dict(SEED)

        assert directory.get_user("alice").name == "Alice"
        assert directory.get_team_members("sre") == ["alice"]
        assert directory.get_schedule("primary").participants[0].user_id == "alice"
        assert directory.get_escalation_policy("default").steps[0].level == 1

    def test_from_file(self, tmp_path):
        path = tmp_path / "directory.json"
        path.write_text(json.dumps(SEED), encoding="utf-8")

        directory = InMemoryDirectory.from_file(str(path))

        assert directory.get_user("alice") is not None

    def test_unknown_ids(self):
        directory = InMemoryDirectory()

        assert directory.get_user("x") is None
        assert directory.get_team_members("x") is None
        assert directory.get_schedule("x") is None
        assert directory.get_escalation_policy("x") is None

    def test_team_members_are_copied(self):
        directory = InMemoryDirectory(teams={"sre": ["alice"]})

        directory.get_team_members("sre").append("mallory")

        assert directory.get_team_members("sre") == ["alice"]

    def test_put_user_replaces(self):
        directory = InMemoryDirectory()
        directory.put_user(UserContact(id="u", name="Old"))
        directory.put_user(UserContact(id="u", name="New"))

        assert directory.get_user("u").name == "New"

    def test_deactivate_push_endpoint(self):
        directory = InMemoryDirectory.from_dict(SEED)

        directory.deactivate_push_endpoint("alice", "https://fcm.googleapis.com/fcm/send/a1")

        assert directory.get_user("alice").push_endpoints == []

    def test_deactivate_unknown_endpoint_is_noop(self):
        directory = InMemoryDirectory.from_dict(SEED)

        directory.deactivate_push_endpoint("alice", "https://other.example/1")
        directory.deactivate_push_endpoint("ghost", "https://other.example/1")

        assert len(directory.get_user("alice").push_endpoints) == 1
