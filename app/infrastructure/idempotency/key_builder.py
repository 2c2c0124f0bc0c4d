"""Idempotency key builder for consistent key generation."""

import hashlib
from typing import Any


class IdempotencyKeyBuilder:
    """Build deterministic idempotency keys.

    Provides consistent key format with namespace isolation and collision
    prevention.

    Example:
        >>> builder = IdempotencyKeyBuilder(namespace="escalation")
        >>> key = builder.build(
        ...     operation="dispatch_level",
        ...     run_id="run-42",
        ...     level=2,
        ...     repeat=0,
        ... )
        >>> key
        'escalation:dispatch_level:a1b2c3d4e5f6a7b8'
    """

    def __init__(self, namespace: str):
        self.namespace = namespace

    def build(self, operation: str, **components: Any) -> str:
        """Build idempotency key from components.

        Component order does not matter; keys are sorted before hashing.
        """
        sorted_components = sorted(components.items())

        key_parts = [self.namespace, operation]
        key_parts.extend(f"{k}={v}" for k, v in sorted_components)
        key_string = "|".join(str(part) for part in key_parts)

        key_hash = hashlib.sha256(key_string.encode()).hexdigest()[:16]

        return f"{self.namespace}:{operation}:{key_hash}"
