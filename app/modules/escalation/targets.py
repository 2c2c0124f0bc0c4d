"""Turn an escalation step's targets into concrete recipients.

Resolution happens at dispatch time, so team membership, on-call rotation
and contact details are always current. Configuration gaps never abort a
dispatch: they become ``ResolutionWarning`` entries next to whatever
recipients could be resolved.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Dict, List, Optional

from infrastructure.logging import get_module_logger
from infrastructure.notifications.models import Channel
from modules.escalation.directory import Directory
from modules.escalation.models import (
    EscalationStep,
    OnCallSchedule,
    Participant,
    ScheduleTarget,
    TeamTarget,
    UserContact,
    UserTarget,
)
from modules.escalation.on_call import resolve_current_participant

logger = get_module_logger()


def describe_target(target) -> str:
    return f"{target.kind}:{target.id}"


@dataclass(frozen=True)
class ResolutionWarning:
    """A target, user or channel that could not be resolved."""

    target: str
    message: str
    user_id: Optional[str] = None
    channel: Optional[Channel] = None

    def __str__(self) -> str:
        return f"{self.target}: {self.message}"


@dataclass
class Recipient:
    """A person to notify, with the addresses usable for this step."""

    user_id: str
    name: str
    source: str
    addresses: Dict[Channel, List[str]] = field(default_factory=dict)

    def addresses_for(self, channel: Channel) -> List[str]:
        return self.addresses.get(channel, [])


@dataclass
class TargetResolution:
    recipients: List[Recipient] = field(default_factory=list)
    warnings: List[ResolutionWarning] = field(default_factory=list)


def contact_addresses(user: UserContact, channel: Channel) -> List[str]:
    """Addresses a user has for a channel, ignoring preferences."""
    if channel is Channel.EMAIL:
        return [user.email] if user.email else []
    if channel in (Channel.SMS, Channel.VOICE):
        return [user.phone] if user.phone else []
    if channel is Channel.PUSH:
        return [e for e in user.push_endpoints if e]
    return []


class TargetResolver:
    """Resolve step targets against a Directory.

    Example:
        resolver = TargetResolver(directory)
        resolution = resolver.resolve(step, now)
        for warning in resolution.warnings:
            logger.warning("escalation_target_warning", warning=str(warning))
    """

    def __init__(
        self,
        directory: Directory,
        on_call: Callable[
            [OnCallSchedule, datetime], Optional[Participant]
        ] = resolve_current_participant,
    ):
        self.directory = directory
        self._on_call = on_call

    def resolve(self, step: EscalationStep, now: datetime) -> TargetResolution:
        """Resolve every target of ``step``; never raises.

        Recipients reached through several targets appear once, at the
        position of their first occurrence.
        """
        resolution = TargetResolution()
        seen: set = set()

        for target in step.targets:
            source = describe_target(target)
            try:
                user_ids = self._expand(target, now, resolution)
            except Exception as e:
                logger.warning(
                    "escalation_target_lookup_failed",
                    target=source,
                    error=str(e),
                )
                resolution.warnings.append(
                    ResolutionWarning(source, f"directory lookup failed: {e}")
                )
                continue

            for user_id in user_ids:
                if user_id in seen:
                    continue
                seen.add(user_id)
                recipient = self._resolve_user(user_id, source, step, resolution)
                if recipient is not None:
                    resolution.recipients.append(recipient)

        return resolution

    def _expand(
        self, target, now: datetime, resolution: TargetResolution
    ) -> List[str]:
        source = describe_target(target)

        if isinstance(target, UserTarget):
            return [target.id]

        if isinstance(target, TeamTarget):
            members = self.directory.get_team_members(target.id)
            if members is None:
                resolution.warnings.append(ResolutionWarning(source, "team not found"))
                return []
            if not members:
                resolution.warnings.append(ResolutionWarning(source, "team has no members"))
            return members

        if isinstance(target, ScheduleTarget):
            schedule = self.directory.get_schedule(target.id)
            if schedule is None:
                resolution.warnings.append(
                    ResolutionWarning(source, "schedule not found")
                )
                return []
            participant = self._on_call(schedule, now)
            if participant is None:
                resolution.warnings.append(ResolutionWarning(source, "no one on call"))
                return []
            return [participant.user_id]

        resolution.warnings.append(ResolutionWarning(source, "unsupported target"))
        return []

    def _resolve_user(
        self,
        user_id: str,
        source: str,
        step: EscalationStep,
        resolution: TargetResolution,
    ) -> Optional[Recipient]:
        try:
            user = self.directory.get_user(user_id)
        except Exception as e:
            logger.warning(
                "escalation_user_lookup_failed", user_id=user_id, error=str(e)
            )
            resolution.warnings.append(
                ResolutionWarning(source, f"user lookup failed: {e}", user_id=user_id)
            )
            return None

        if user is None:
            resolution.warnings.append(
                ResolutionWarning(source, f"user {user_id} not found", user_id=user_id)
            )
            return None

        addresses: Dict[Channel, List[str]] = {}
        for channel in step.channels:
            if not user.preferences.allows(channel):
                resolution.warnings.append(
                    ResolutionWarning(
                        source,
                        f"{user.display_name} has disabled {channel.value} notifications",
                        user_id=user.id,
                        channel=channel,
                    )
                )
                continue
            found = contact_addresses(user, channel)
            if not found:
                resolution.warnings.append(
                    ResolutionWarning(
                        source,
                        f"{user.display_name} has no {channel.value} contact",
                        user_id=user.id,
                        channel=channel,
                    )
                )
                continue
            addresses[channel] = found

        if not addresses:
            return None
        return Recipient(
            user_id=user.id,
            name=user.display_name,
            source=source,
            addresses=addresses,
        )
