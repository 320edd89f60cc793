"""
Redis Evidence Repository

Hot evidence lives in Redis:
- Users per device hash: ZSET (member=user_id, score=first seen ms)
- Vendor first seen: string set with NX (first writer wins)
- Signups per IP / referrals per referrer: sliding-window ZSETs
- Referred -> referrer edge: string set with NX
- Accounts per normalized email: SET

Assessments and review state go to the PostgreSQL archive.

Key format: {prefix}{entity_type}:{entity_id}:{metric}
Example: referral:device:9f2c...:users
"""

import time
from datetime import datetime, timedelta, UTC
from typing import Optional

import redis.asyncio as redis

from ..config import settings
from ..metrics import metrics
from ..schemas import DeviceFingerprint, DeviceMatch, FraudAssessment
from ..utils import ensure_utc
from .archive import AssessmentArchive
from .repository import EvidenceRepository
from .windows import SlidingWindowCounter


def _to_ms(ts: datetime) -> int:
    return int(ensure_utc(ts).timestamp() * 1000)


def _from_ms(value) -> datetime:
    return datetime.fromtimestamp(int(float(value)) / 1000, tz=UTC)


class RedisEvidenceRepository(EvidenceRepository):
    """
    Evidence repository backed by Redis plus the assessment archive.

    The Redis client must be created with decode_responses=True.
    """

    def __init__(
        self,
        redis_client: redis.Redis,
        archive: AssessmentArchive,
        key_prefix: Optional[str] = None,
        ttl_days: Optional[int] = None,
    ):
        """
        Initialize repository.

        Args:
            redis_client: Async Redis client
            archive: Assessment archive for persisted assessments
            key_prefix: Prefix for all Redis keys (default from settings)
            ttl_days: TTL for window keys (default from settings)
        """
        self.redis = redis_client
        self.archive = archive
        self.prefix = settings.redis_key_prefix if key_prefix is None else key_prefix
        self.ttl_seconds = (settings.evidence_ttl_days if ttl_days is None else ttl_days) * 86400
        self.windows = SlidingWindowCounter(redis_client, self.prefix, self.ttl_seconds)

    def _key(self, entity_type: str, entity_id: str, metric: str) -> str:
        return self.windows.make_key(entity_type, entity_id, metric)

    # =========================================================================
    # Detector reads
    # =========================================================================

    async def find_device_matches(self, fingerprint_hash: str, limit: int = 5) -> list[DeviceMatch]:
        started_at = time.perf_counter()
        rows = await self.redis.zrange(
            self._key("device", fingerprint_hash, "users"),
            0,
            limit - 1,
            withscores=True,
        )
        metrics.redis_latency.observe((time.perf_counter() - started_at) * 1000)
        return [
            DeviceMatch(user_id=user_id, first_seen_at=_from_ms(score))
            for user_id, score in rows
        ]

    async def vendor_first_seen(self, vendor_id: str) -> Optional[datetime]:
        value = await self.redis.get(self._key("vendor", vendor_id, "first_seen"))
        return _from_ms(value) if value is not None else None

    async def recent_signups_by_ip(self, ip_address: str, within: timedelta, as_of: datetime) -> int:
        started_at = time.perf_counter()
        count = await self.windows.count(
            "ip", ip_address, "signups", within.total_seconds(), as_of_ms=_to_ms(as_of)
        )
        metrics.redis_latency.observe((time.perf_counter() - started_at) * 1000)
        return count

    async def recent_referrals_by_referrer(self, referrer_id: str, within: timedelta, as_of: datetime) -> int:
        started_at = time.perf_counter()
        count = await self.windows.count(
            "referrer", referrer_id, "referrals", within.total_seconds(), as_of_ms=_to_ms(as_of)
        )
        metrics.redis_latency.observe((time.perf_counter() - started_at) * 1000)
        return count

    async def similar_email_accounts(self, normalized_email: str, exclude_user_id: Optional[str] = None) -> int:
        key = self._key("email", normalized_email, "accounts")

        pipe = self.redis.pipeline()
        pipe.scard(key)
        pipe.sismember(key, exclude_user_id or "")
        total, excluded = await pipe.execute()

        return int(total) - (1 if exclude_user_id and excluded else 0)

    async def find_referrer_of(self, user_id: str) -> Optional[str]:
        return await self.redis.get(self._key("referred", user_id, "referrer"))

    # =========================================================================
    # Assessor writes
    # =========================================================================

    async def persist_assessment(self, assessment: FraudAssessment) -> None:
        await self.archive.store(assessment)

    async def persist_fingerprint(self, fingerprint: DeviceFingerprint, user_id: str) -> None:
        created_ms = _to_ms(fingerprint.created_at)
        device_key = self._key("device", fingerprint.hash, "users")

        pipe = self.redis.pipeline()
        pipe.hset(
            self._key("fingerprint", fingerprint.fingerprint_id, "record"),
            mapping={
                "user_id": user_id,
                "hash": fingerprint.hash,
                "device_model": fingerprint.device_model,
                "system_version": fingerprint.system_version,
                "vendor_id": fingerprint.vendor_id,
                "is_simulator": int(fingerprint.is_simulator),
                "is_jailbroken": int(fingerprint.is_jailbroken),
                "created_at": created_ms,
            },
        )
        # Keep the earliest sighting per user
        pipe.zadd(device_key, {user_id: created_ms}, nx=True)
        pipe.set(self._key("vendor", fingerprint.vendor_id, "first_seen"), created_ms, nx=True)

        started_at = time.perf_counter()
        await pipe.execute()
        metrics.redis_latency.observe((time.perf_counter() - started_at) * 1000)

    # =========================================================================
    # Review queries
    # =========================================================================

    async def assessment_history(self, user_id: str, limit: int = 10) -> list[FraudAssessment]:
        return await self.archive.history(user_id, limit=limit)

    async def flagged_assessments(self, limit: int = 50) -> list[FraudAssessment]:
        return await self.archive.flagged(limit=limit)

    async def mark_reviewed(self, assessment_id: str, approved: bool, reviewer_notes: str = "") -> bool:
        return await self.archive.mark_reviewed(assessment_id, approved, reviewer_notes)

    # =========================================================================
    # Host writes
    # =========================================================================

    async def record_signup(self, user_id: str, ip_address: str, occurred_at: datetime) -> None:
        await self.windows.add("ip", ip_address, "signups", user_id, timestamp_ms=_to_ms(occurred_at))
        await self.windows.cleanup_expired("ip", ip_address, "signups", self.ttl_seconds)

    async def record_referral(self, referrer_id: str, referred_id: str, created_at: datetime) -> None:
        await self.windows.add(
            "referrer", referrer_id, "referrals", referred_id, timestamp_ms=_to_ms(created_at)
        )
        await self.windows.cleanup_expired("referrer", referrer_id, "referrals", self.ttl_seconds)
        # First recorded referrer wins
        await self.redis.set(self._key("referred", referred_id, "referrer"), referrer_id, nx=True)

    async def record_account(self, user_id: str, normalized_email: str) -> None:
        await self.redis.sadd(self._key("email", normalized_email, "accounts"), user_id)
