"""Regeneration usage limits."""

import redis

from backend.app.db.repositories import UsageDecision, make_usage_key


class RedisUsageLimiter:
    """Redis-based usage limiter using the INCR pattern.

    Counters have no window: the quota is a lifetime budget per (trip, member).
    A denied call gives its increment back so ``used`` never exceeds ``limit``.
    """

    def __init__(self, redis_client: redis.Redis, limit: int, prefix: str = "usage") -> None:
        """Initialize usage limiter.

        Args:
            redis_client: Redis client
            limit: Regenerations allowed per trip member
            prefix: Key namespace
        """
        self._redis = redis_client
        self._limit = limit
        self._prefix = prefix

    def check_and_increment(self, trip_id: str, member_id: str) -> UsageDecision:
        """Consume one regeneration if quota remains.

        Uses Redis INCR for atomic counting.
        """
        redis_key = f"{self._prefix}:{make_usage_key(trip_id, member_id)}"

        # Atomic increment
        count = int(self._redis.incr(redis_key))

        if count > self._limit:
            self._redis.decr(redis_key)
            return UsageDecision(allowed=False, used=self._limit, limit=self._limit)

        return UsageDecision(allowed=True, used=count, limit=self._limit)
