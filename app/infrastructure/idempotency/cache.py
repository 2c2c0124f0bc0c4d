"""Idempotency cache abstract base class."""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional


class IdempotencyCache(ABC):
    """Abstract base class for idempotency cache implementations.

    Records which operations have already been performed so that a retried
    or duplicated trigger (a second scheduler tick, a replayed lifecycle
    event) does not perform them again.
    """

    @abstractmethod
    def get(self, key: str) -> Optional[Dict[str, Any]]:
        """Get the cached record for an idempotency key.

        Args:
            key: Idempotency key (see IdempotencyKeyBuilder).

        Returns:
            Cached record dict or None if not found/expired.
        """
        pass

    @abstractmethod
    def set(self, key: str, response: Dict[str, Any], ttl_seconds: int) -> None:
        """Cache a record for the given idempotency key.

        Args:
            key: Idempotency key.
            response: Record dict to cache.
            ttl_seconds: Time-to-live in seconds.
        """
        pass

    @abstractmethod
    def clear(self) -> None:
        """Clear all cached entries (for testing)."""
        pass

    @abstractmethod
    def get_stats(self) -> Dict[str, Any]:
        """Get cache statistics.

        Returns:
            Dict with cache statistics (implementation-specific).
        """
        pass
