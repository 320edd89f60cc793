"""
Sliding Window Counter

Uses Redis Sorted Sets (ZSETs) for sliding window counts.
ZSETs allow efficient:
- Adding events with timestamps as scores
- Counting events within a time window
- Cleaning up expired events

Key format: {prefix}{entity_type}:{entity_id}:{metric}
Example: referral:ip:203.0.113.7:signups
"""

import time
from typing import Optional

import redis.asyncio as redis


class SlidingWindowCounter:
    """
    Sliding window counter using Redis ZSETs.

    Each counter is a ZSET where:
    - Members are unique event identifiers (user ids)
    - Scores are Unix timestamps (milliseconds)
    """

    def __init__(
        self,
        redis_client: redis.Redis,
        key_prefix: str = "referral:",
        default_ttl_seconds: int = 2592000,  # 30 days
    ):
        """
        Initialize counter.

        Args:
            redis_client: Async Redis client
            key_prefix: Prefix for all Redis keys
            default_ttl_seconds: Default TTL for keys
        """
        self.redis = redis_client
        self.prefix = key_prefix
        self.default_ttl = default_ttl_seconds

    def make_key(self, entity_type: str, entity_id: str, metric: str) -> str:
        """Construct the Redis key for a counter."""
        return f"{self.prefix}{entity_type}:{entity_id}:{metric}"

    async def add(
        self,
        entity_type: str,
        entity_id: str,
        metric: str,
        member: str,
        timestamp_ms: Optional[int] = None,
        ttl_seconds: Optional[int] = None,
    ) -> int:
        """
        Add an event to the counter.

        Returns:
            Number of elements added (0 if member already exists)
        """
        key = self.make_key(entity_type, entity_id, metric)
        ts = timestamp_ms if timestamp_ms is not None else int(time.time() * 1000)
        ttl = ttl_seconds or self.default_ttl

        # Use pipeline for atomic operation
        pipe = self.redis.pipeline()
        pipe.zadd(key, {member: ts})
        pipe.expire(key, ttl)

        results = await pipe.execute()
        return results[0]

    async def count(
        self,
        entity_type: str,
        entity_id: str,
        metric: str,
        window_seconds: float,
        as_of_ms: Optional[int] = None,
    ) -> int:
        """
        Count events in the window (as_of - window, as_of].

        Args:
            entity_type: Type of entity
            entity_id: Entity identifier
            metric: Metric name
            window_seconds: Window size in seconds
            as_of_ms: Window end in milliseconds (default: now)
        """
        key = self.make_key(entity_type, entity_id, metric)
        now_ms = as_of_ms if as_of_ms is not None else int(time.time() * 1000)
        window_start_ms = now_ms - int(window_seconds * 1000)

        # Exclusive lower bound
        return await self.redis.zcount(key, f"({window_start_ms}", now_ms)

    async def cleanup_expired(
        self,
        entity_type: str,
        entity_id: str,
        metric: str,
        max_age_seconds: int,
    ) -> int:
        """
        Remove events older than max_age_seconds.

        Returns:
            Number of elements removed
        """
        key = self.make_key(entity_type, entity_id, metric)
        cutoff_ms = int(time.time() * 1000) - (max_age_seconds * 1000)
        return await self.redis.zremrangebyscore(key, "-inf", cutoff_ms)
