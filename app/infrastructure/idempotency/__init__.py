"""Infrastructure idempotency cache.

Guards operations that must happen at most once (dispatching an escalation
level) against duplicated triggers.

Usage:

    from infrastructure.idempotency import get_cache, IdempotencyKeyBuilder

    cache = get_cache()
    key = IdempotencyKeyBuilder("escalation").build("dispatch_level", run_id=run_id, level=2)

    if cache.get(key):
        return  # already done

    cache.set(key, {"dispatched_at": now.isoformat()}, ttl_seconds=86400)
"""

from infrastructure.idempotency.cache import IdempotencyCache
from infrastructure.idempotency.factory import get_cache, reset_cache
from infrastructure.idempotency.memory import InMemoryCache
from infrastructure.idempotency.key_builder import IdempotencyKeyBuilder

__all__ = [
    "IdempotencyCache",
    "get_cache",
    "reset_cache",
    "InMemoryCache",
    "IdempotencyKeyBuilder",
]
