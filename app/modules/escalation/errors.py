"""Errors for the escalation module."""


class EscalationError(Exception):
    """Base class for escalation errors."""


class EscalationConfigurationError(EscalationError):
    """Raised when a run cannot start because its policy is missing or unusable.

    Attributes:
        policy_id: the policy the caller asked for
    """

    def __init__(self, message: str, policy_id: str | None = None):
        super().__init__(message)
        self.policy_id = policy_id


class SchedulerNotConfiguredError(EscalationError):
    """Raised when lifecycle hooks are used before a scheduler is attached."""
