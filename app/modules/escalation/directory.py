"""Directory port: where the escalation engine reads users, teams,
schedules and policies from.

The engine never owns this data. Production wiring provides an adapter
over the application's database; ``InMemoryDirectory`` serves tests and
embedding.
"""

import json
import threading
from typing import (
    Any,
    Dict,
    Iterable,
    List,
    Mapping,
    Optional,
    Protocol,
    runtime_checkable,
)

from infrastructure.logging import get_module_logger, mask_address
from modules.escalation.models import (
    EscalationPolicy,
    OnCallSchedule,
    UserContact,
)

logger = get_module_logger()


@runtime_checkable
class Directory(Protocol):
    """Read access to the organisation's people and escalation config.

    Lookups return None (or None for a missing team) rather than raising
    when the id is unknown.
    """

    def get_user(self, user_id: str) -> Optional[UserContact]: ...

    def get_team_members(self, team_id: str) -> Optional[List[str]]: ...

    def get_schedule(self, schedule_id: str) -> Optional[OnCallSchedule]: ...

    def get_escalation_policy(self, policy_id: str) -> Optional[EscalationPolicy]: ...


class InMemoryDirectory:
    """Dict-backed Directory.

    Also implements ``deactivate_push_endpoint`` so it can back a
    DeadEndpointHook.
    """

    def __init__(
        self,
        users: Iterable[UserContact] = (),
        teams: Optional[Dict[str, List[str]]] = None,
        schedules: Iterable[OnCallSchedule] = (),
        policies: Iterable[EscalationPolicy] = (),
    ):
        self._lock = threading.Lock()
        self._users: Dict[str, UserContact] = {u.id: u for u in users}
        self._teams: Dict[str, List[str]] = dict(teams or {})
        self._schedules: Dict[str, OnCallSchedule] = {s.id: s for s in schedules}
        self._policies: Dict[str, EscalationPolicy] = {p.id: p for p in policies}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "InMemoryDirectory":
        """Build a directory from plain data (e.g. a JSON seed file).

        Expected keys: ``users``, ``teams`` (team id -> member ids),
        ``schedules`` and ``policies``; all optional.
        """
        return cls(
            users=[UserContact.model_validate(u) for u in data.get("users", [])],
            teams={k: list(v) for k, v in data.get("teams", {}).items()},
            schedules=[
                OnCallSchedule.model_validate(s) for s in data.get("schedules", [])
            ],
            policies=[
                EscalationPolicy.model_validate(p) for p in data.get("policies", [])
            ],
        )

    @classmethod
    def from_file(cls, path: str) -> "InMemoryDirectory":
        with open(path, encoding="utf-8") as f:
            directory = cls.from_dict(json.load(f))
        logger.info("directory_loaded", path=path, users=len(directory._users))
        return directory

    def get_user(self, user_id: str) -> Optional[UserContact]:
        with self._lock:
            return self._users.get(user_id)

    def get_team_members(self, team_id: str) -> Optional[List[str]]:
        with self._lock:
            members = self._teams.get(team_id)
            return list(members) if members is not None else None

    def get_schedule(self, schedule_id: str) -> Optional[OnCallSchedule]:
        with self._lock:
            return self._schedules.get(schedule_id)

    def get_escalation_policy(self, policy_id: str) -> Optional[EscalationPolicy]:
        with self._lock:
            return self._policies.get(policy_id)

    def put_user(self, user: UserContact) -> None:
        with self._lock:
            self._users[user.id] = user

    def put_team(self, team_id: str, member_ids: List[str]) -> None:
        with self._lock:
            self._teams[team_id] = list(member_ids)

    def put_schedule(self, schedule: OnCallSchedule) -> None:
        with self._lock:
            self._schedules[schedule.id] = schedule

    def put_policy(self, policy: EscalationPolicy) -> None:
        """Store or replace a policy; runs already started keep their copy."""
        with self._lock:
            self._policies[policy.id] = policy

    def deactivate_push_endpoint(self, user_id: str, endpoint: str) -> None:
        with self._lock:
            user = self._users.get(user_id)
            if user is None or endpoint not in user.push_endpoints:
                return
            remaining = [e for e in user.push_endpoints if e != endpoint]
            self._users[user_id] = user.model_copy(update={"push_endpoints": remaining})
        logger.info(
            "push_endpoint_removed",
            user_id=user_id,
            endpoint=mask_address(endpoint),
        )
