"""
Assessment Archive

Durable store for completed fraud assessments in PostgreSQL.
Serves:
1. Audit trail of every referral decision
2. Human review queue (flagged assessments)
3. Per-user assessment history

Assessments are immutable once archived; reviewers only update the
review columns.
"""

import json
import logging
import time
from datetime import datetime, UTC
from typing import Any, Mapping, Optional

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker

from ..config import settings
from ..metrics import metrics
from ..schemas import FraudAssessment

logger = logging.getLogger("referral_fraud.archive")


SCHEMA_STATEMENTS = (
    """
    CREATE TABLE IF NOT EXISTS referral_fraud_assessments (
        assessment_id VARCHAR(64) PRIMARY KEY,
        user_id VARCHAR(128) NOT NULL,
        referral_code VARCHAR(64),
        risk_score DOUBLE PRECISION NOT NULL,
        risk_level VARCHAR(16) NOT NULL,
        decision VARCHAR(32) NOT NULL,
        review_required BOOLEAN NOT NULL DEFAULT FALSE,
        signal_count INTEGER NOT NULL DEFAULT 0,
        signal_types JSONB NOT NULL DEFAULT '[]'::jsonb,
        signals JSONB NOT NULL DEFAULT '[]'::jsonb,
        ip_address VARCHAR(64),
        device_hash VARCHAR(64) NOT NULL,
        device_fingerprint JSONB NOT NULL,
        degraded BOOLEAN NOT NULL DEFAULT FALSE,
        failed_categories JSONB NOT NULL DEFAULT '[]'::jsonb,
        assessed_at TIMESTAMPTZ NOT NULL,
        reviewed_at TIMESTAMPTZ,
        review_approved BOOLEAN,
        reviewer_notes TEXT
    )
    """,
    """
    CREATE INDEX IF NOT EXISTS idx_rfa_user_assessed
        ON referral_fraud_assessments (user_id, assessed_at DESC)
    """,
    """
    CREATE INDEX IF NOT EXISTS idx_rfa_review_queue
        ON referral_fraud_assessments (assessed_at DESC)
        WHERE review_required
    """,
)


class AssessmentArchive:
    """
    PostgreSQL-backed archive of fraud assessments.

    Uses raw SQL through an async SQLAlchemy engine (asyncpg driver).
    """

    def __init__(self, database_url: str):
        """
        Initialize archive.

        Args:
            database_url: PostgreSQL connection URL
        """
        self.database_url = database_url
        self.engine = None
        self.session_factory = None

    async def initialize(self) -> None:
        """Initialize database connection."""
        try:
            self.engine = create_async_engine(
                self.database_url,
                echo=settings.app_debug,
                pool_size=5,
                max_overflow=10,
                pool_pre_ping=True,
            )
            self.session_factory = async_sessionmaker(
                bind=self.engine,
                class_=AsyncSession,
                expire_on_commit=False,
            )
        except Exception as e:
            logger.warning("Database initialization failed: %s", e)

    async def close(self) -> None:
        """Close database connections."""
        if self.engine:
            await self.engine.dispose()

    def _require_session_factory(self):
        if not self.session_factory:
            raise RuntimeError("Assessment archive not initialized")
        return self.session_factory

    async def health_check(self) -> bool:
        """Check database connectivity."""
        session_factory = self._require_session_factory()

        async with session_factory() as session:
            result = await session.execute(text("SELECT 1"))
            return result.scalar() == 1

    async def create_schema(self) -> None:
        """Create the assessments table and indexes if missing."""
        session_factory = self._require_session_factory()

        async with session_factory() as session:
            for statement in SCHEMA_STATEMENTS:
                await session.execute(text(statement))
            await session.commit()

    async def store(self, assessment: FraudAssessment) -> None:
        """
        Archive an assessment.

        Re-storing the same assessment id is a no-op.

        Raises:
            RuntimeError: If the archive is not initialized
        """
        session_factory = self._require_session_factory()

        async with session_factory() as session:
            started_at = time.perf_counter()
            await session.execute(
                text("""
                    INSERT INTO referral_fraud_assessments (
                        assessment_id,
                        user_id,
                        referral_code,
                        risk_score,
                        risk_level,
                        decision,
                        review_required,
                        signal_count,
                        signal_types,
                        signals,
                        ip_address,
                        device_hash,
                        device_fingerprint,
                        degraded,
                        failed_categories,
                        assessed_at
                    ) VALUES (
                        :assessment_id,
                        :user_id,
                        :referral_code,
                        :risk_score,
                        :risk_level,
                        :decision,
                        :review_required,
                        :signal_count,
                        CAST(:signal_types AS jsonb),
                        CAST(:signals AS jsonb),
                        :ip_address,
                        :device_hash,
                        CAST(:device_fingerprint AS jsonb),
                        :degraded,
                        CAST(:failed_categories AS jsonb),
                        :assessed_at
                    )
                    ON CONFLICT (assessment_id) DO NOTHING
                """),
                self._to_params(assessment),
            )
            await session.commit()
            metrics.postgres_latency.observe((time.perf_counter() - started_at) * 1000)

    async def history(self, user_id: str, limit: int = 10) -> list[FraudAssessment]:
        """A user's archived assessments, newest first."""
        session_factory = self._require_session_factory()

        async with session_factory() as session:
            started_at = time.perf_counter()
            result = await session.execute(
                text("""
                    SELECT *
                    FROM referral_fraud_assessments
                    WHERE user_id = :user_id
                    ORDER BY assessed_at DESC
                    LIMIT :limit
                """),
                {"user_id": user_id, "limit": limit},
            )
            metrics.postgres_latency.observe((time.perf_counter() - started_at) * 1000)
            return [self._from_row(row) for row in result.mappings().all()]

    async def flagged(self, limit: int = 50) -> list[FraudAssessment]:
        """Assessments awaiting review, newest first."""
        session_factory = self._require_session_factory()

        async with session_factory() as session:
            started_at = time.perf_counter()
            result = await session.execute(
                text("""
                    SELECT *
                    FROM referral_fraud_assessments
                    WHERE review_required
                    ORDER BY assessed_at DESC
                    LIMIT :limit
                """),
                {"limit": limit},
            )
            metrics.postgres_latency.observe((time.perf_counter() - started_at) * 1000)
            return [self._from_row(row) for row in result.mappings().all()]

    async def mark_reviewed(
        self,
        assessment_id: str,
        approved: bool,
        reviewer_notes: str = "",
    ) -> bool:
        """
        Record a reviewer outcome.

        Returns:
            False if no assessment has this id
        """
        session_factory = self._require_session_factory()

        async with session_factory() as session:
            result = await session.execute(
                text("""
                    UPDATE referral_fraud_assessments
                    SET review_required = FALSE,
                        reviewed_at = :reviewed_at,
                        review_approved = :approved,
                        reviewer_notes = :reviewer_notes
                    WHERE assessment_id = :assessment_id
                """),
                {
                    "assessment_id": assessment_id,
                    "reviewed_at": datetime.now(UTC),
                    "approved": approved,
                    "reviewer_notes": reviewer_notes,
                },
            )
            await session.commit()
            return (result.rowcount or 0) > 0

    @staticmethod
    def _to_params(assessment: FraudAssessment) -> dict[str, Any]:
        payload = assessment.model_dump(mode="json")
        return {
            "assessment_id": assessment.assessment_id,
            "user_id": assessment.user_id,
            "referral_code": assessment.referral_code,
            "risk_score": assessment.risk_score,
            "risk_level": assessment.risk_level.value,
            "decision": assessment.decision.value,
            "review_required": assessment.review_required,
            "signal_count": len(assessment.signals),
            "signal_types": json.dumps([t.value for t in assessment.signal_types]),
            "signals": json.dumps(payload["signals"]),
            "ip_address": assessment.ip_address,
            "device_hash": assessment.device_fingerprint.hash,
            "device_fingerprint": json.dumps(payload["device_fingerprint"]),
            "degraded": assessment.degraded,
            "failed_categories": json.dumps(payload["failed_categories"]),
            "assessed_at": assessment.assessed_at,
        }

    @staticmethod
    def _from_row(row: Mapping[str, Any]) -> FraudAssessment:
        def _json(value: Any) -> Any:
            return json.loads(value) if isinstance(value, str) else value

        return FraudAssessment.model_validate({
            "assessment_id": row["assessment_id"],
            "user_id": row["user_id"],
            "referral_code": row["referral_code"],
            "risk_score": row["risk_score"],
            "signals": _json(row["signals"]) or [],
            "device_fingerprint": _json(row["device_fingerprint"]),
            "ip_address": row["ip_address"],
            "assessed_at": row["assessed_at"],
            "decision": row["decision"],
            "review_required": row["review_required"],
            "degraded": row["degraded"],
            "failed_categories": _json(row["failed_categories"]) or [],
        })


def archive_from_settings(database_url: Optional[str] = None) -> AssessmentArchive:
    """Build an archive for the configured PostgreSQL database."""
    return AssessmentArchive(database_url or settings.postgres_url)
