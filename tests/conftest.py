"""
Pytest Configuration and Fixtures - Referral Fraud

Provides shared fixtures for referral fraud tests. Everything runs
against the in-memory evidence repository with a fixed clock; only
the Redis adapter tests need live infrastructure.
"""

from datetime import datetime, timedelta, UTC
from typing import AsyncGenerator, Callable

import pytest
import pytest_asyncio
import redis.asyncio as redis
from httpx import AsyncClient, ASGITransport

from referral_fraud.api.main import create_app
from referral_fraud.assessment import ReferralFraudAssessor
from referral_fraud.config import settings
from referral_fraud.evidence import InMemoryEvidenceRepository
from referral_fraud.features import FingerprintNormalizer
from referral_fraud.metrics import AssessmentTelemetry
from referral_fraud.schemas import DeviceAttributes, DeviceFingerprint, SignupContext

# Midday UTC, so default fixtures never land in the unusual-hours window
FIXED_NOW = datetime(2025, 3, 14, 12, 0, tzinfo=UTC)


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: unit tests (no infrastructure)")
    config.addinivalue_line("markers", "integration: integration tests (requires Redis)")


@pytest.fixture
def now() -> datetime:
    return FIXED_NOW


@pytest.fixture
def clock() -> Callable[[], datetime]:
    return lambda: FIXED_NOW


@pytest.fixture
def repository() -> InMemoryEvidenceRepository:
    return InMemoryEvidenceRepository()


@pytest.fixture
def normalizer(clock) -> FingerprintNormalizer:
    return FingerprintNormalizer(clock=clock)


@pytest.fixture
def device_attributes() -> DeviceAttributes:
    """An ordinary, untampered phone."""
    return DeviceAttributes(
        device_model="iPhone15,2",
        system_version="17.4.1",
        screen_resolution=(1179, 2556),
        timezone="UTC",
        language="en-US",
        carrier="Verizon",
        is_simulator=False,
        is_jailbroken=False,
        vendor_id="6F9619FF-8B86-D011-B42D-00C04FC964FF",
    )


@pytest.fixture
def fingerprint(normalizer, device_attributes) -> DeviceFingerprint:
    return normalizer.normalize(device_attributes)


@pytest.fixture
def make_context(fingerprint, now) -> Callable[..., SignupContext]:
    """Factory for signup contexts with sensible defaults."""

    def _make(**overrides) -> SignupContext:
        fields = {
            "candidate_user_id": "user_new",
            "referrer_id": None,
            "email": "new.user@example.com",
            "ip_address": None,
            "fingerprint": fingerprint,
            "occurred_at": now,
        }
        fields.update(overrides)
        return SignupContext(**fields)

    return _make


@pytest.fixture
def audit_sink() -> AssessmentTelemetry:
    return AssessmentTelemetry(maxlen=100)


@pytest.fixture
def assessor(repository, clock, audit_sink) -> ReferralFraudAssessor:
    return ReferralFraudAssessor(repository, clock=clock, audit_sink=audit_sink)


@pytest.fixture
def seed_device(repository):
    """Persist a fingerprint for an existing user as if seen at `first_seen`."""

    async def _seed(
        attributes: DeviceAttributes,
        user_id: str,
        first_seen: datetime,
    ) -> DeviceFingerprint:
        existing = FingerprintNormalizer(clock=lambda: first_seen).normalize(attributes)
        await repository.persist_fingerprint(existing, user_id)
        return existing

    return _seed


@pytest.fixture
def seed_referrals(repository, now):
    """Record one referral per entry, each `minutes_ago` before now."""

    async def _seed(referrer_id: str, minutes_ago: list[int]) -> None:
        for i, minutes in enumerate(minutes_ago):
            await repository.record_referral(
                referrer_id, f"{referrer_id}_friend_{i}", now - timedelta(minutes=minutes)
            )

    return _seed


@pytest_asyncio.fixture
async def redis_client() -> AsyncGenerator[redis.Redis, None]:
    """
    Get Redis client for tests.

    Uses a test-specific key prefix to avoid conflicts.
    """
    client = redis.Redis(
        host=settings.redis_host,
        port=settings.redis_port,
        db=settings.redis_db,
        decode_responses=True,
    )

    try:
        await client.ping()
    except Exception:
        await client.aclose()
        pytest.skip("Redis not available")

    yield client

    keys = await client.keys("referral_test:*")
    if keys:
        await client.delete(*keys)
    await client.aclose()


@pytest_asyncio.fixture
async def api_client(repository) -> AsyncGenerator[AsyncClient, None]:
    """
    Get async HTTP client for API tests.

    The app is wired to the in-memory repository, so no lifespan or
    external services are involved.
    """
    app = create_app(repository=repository)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
