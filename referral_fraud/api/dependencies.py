"""
API Dependencies

Builds the shared clients on startup and hands the wired services to
request handlers through FastAPI dependency injection.
"""

from typing import Optional

import redis.asyncio as redis
from fastapi import HTTPException, Request, status

from ..assessment import ReferralFraudAssessor
from ..config import settings, ReferenceDataLoader
from ..evidence import EvidenceRepository


def create_redis_client(url: Optional[str] = None) -> redis.Redis:
    """Redis client backed by a bounded connection pool."""
    pool = redis.ConnectionPool.from_url(
        url or settings.redis_url,
        decode_responses=True,
        max_connections=20,
    )
    return redis.Redis(connection_pool=pool)


def get_assessor(request: Request) -> ReferralFraudAssessor:
    """Assessor wired at startup (503 until then)."""
    assessor = getattr(request.app.state, "assessor", None)
    if assessor is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Service not ready")
    return assessor


def get_repository(request: Request) -> EvidenceRepository:
    return get_assessor(request).repository


def get_reference_loader(request: Request) -> ReferenceDataLoader:
    return get_assessor(request).reference
