"""
Referral Fraud Assessor

Orchestrates one signup assessment end to end:
1. Normalize the device fingerprint (once)
2. Run all detectors concurrently against the evidence repository
3. Score, classify and decide
4. Persist the fingerprint association and the assessment (best effort)
5. Emit an audit summary (fire-and-forget)

`assess_signup` never raises. A failed detector degrades its category;
a failed write is logged and counted; anything unexpected returns a
conservative manual-review assessment instead of silently allowing.
That fallback is persisted and audited like any other assessment so it
reaches the review queue.
"""

import asyncio
import logging
import time
import uuid
from collections.abc import Awaitable, Callable, Mapping
from datetime import datetime, UTC
from typing import Any, Optional, Union

from ..config import ReferenceDataLoader
from ..detection import BaseDetector, DetectionEngine, default_detectors
from ..evidence import EvidenceRepository
from ..features import FingerprintNormalizer
from ..metrics import AuditSink, metrics, telemetry
from ..policy import DecisionPolicy
from ..schemas import (
    DeviceAttributes,
    DeviceFingerprint,
    FraudAssessment,
    FraudDecision,
    NetworkClassification,
    SignalCategory,
    SignupContext,
)
from ..scoring import RiskScorer
from ..utils import ensure_utc

logger = logging.getLogger("referral_fraud.assessment")


class ReferralFraudAssessor:
    """
    Main entry point of the engine.

    All collaborators are injected; the repository is the only one
    with I/O. Tests wire an InMemoryEvidenceRepository, the API wires
    the Redis/Postgres adapter.
    """

    def __init__(
        self,
        repository: EvidenceRepository,
        detectors: Optional[list[BaseDetector]] = None,
        scorer: Optional[RiskScorer] = None,
        policy: Optional[DecisionPolicy] = None,
        normalizer: Optional[FingerprintNormalizer] = None,
        reference: Optional[ReferenceDataLoader] = None,
        audit_sink: Optional[AuditSink] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """
        Initialize assessor.

        Args:
            repository: Evidence source and sink
            detectors: Detector instances (defaults to one per category)
            scorer: Risk scorer
            policy: Decision policy
            normalizer: Fingerprint normalizer
            reference: Reference data loader shared by the default detectors
            audit_sink: Receives one summary per assessment (defaults to telemetry)
            clock: Returns the current time (defaults to UTC now)
        """
        self.repository = repository
        self.reference = reference if reference is not None else ReferenceDataLoader()
        self.clock = clock if clock is not None else (lambda: datetime.now(UTC))
        self.detection_engine = DetectionEngine(
            detectors if detectors is not None else default_detectors(self.reference)
        )
        self.scorer = scorer if scorer is not None else RiskScorer()
        self.policy = policy if policy is not None else DecisionPolicy()
        self.normalizer = (
            normalizer if normalizer is not None else FingerprintNormalizer(clock=self.clock)
        )
        self.audit_sink = audit_sink if audit_sink is not None else telemetry

        # Strong references keep pending audit tasks from being collected
        self._background_tasks: set[asyncio.Task] = set()

    async def assess_signup(
        self,
        candidate_user_id: str,
        email: str,
        device_attributes: Union[DeviceAttributes, Mapping[str, Any], None],
        referrer_id: Optional[str] = None,
        referral_code: Optional[str] = None,
        ip_address: Optional[str] = None,
        network: Optional[NetworkClassification] = None,
        occurred_at: Optional[datetime] = None,
    ) -> FraudAssessment:
        """
        Assess one referral signup.

        Args:
            candidate_user_id: User being created
            email: Email the user signed up with
            device_attributes: Raw client device attributes
            referrer_id: Referring user, if any
            referral_code: Referral code used, if any
            ip_address: Signup IP, if known
            network: External IP classification, if available
            occurred_at: Signup time (defaults to now)

        Returns:
            FraudAssessment (never raises)
        """
        start_time = time.perf_counter()
        fingerprint: Optional[DeviceFingerprint] = None
        # Only a successfully evaluated signup is recorded as device evidence
        device_evidence: Optional[DeviceFingerprint] = None

        try:
            # =======================================================================
            # Step 1: Normalize inputs
            # =======================================================================
            fingerprint = self.normalizer.normalize(device_attributes)
            signup_time = ensure_utc(occurred_at) if occurred_at else self.clock()

            context = SignupContext(
                candidate_user_id=candidate_user_id,
                referrer_id=referrer_id or None,
                referral_code=referral_code,
                email=email or "",
                ip_address=ip_address or None,
                fingerprint=fingerprint,
                network=network,
                occurred_at=signup_time,
            )

            # =======================================================================
            # Step 2: Run detectors
            # =======================================================================
            detection_start = time.perf_counter()
            outcome = await self.detection_engine.run_detection(context, self.repository)
            metrics.detection_latency.observe((time.perf_counter() - detection_start) * 1000)

            # =======================================================================
            # Step 3: Score and decide
            # =======================================================================
            breakdown = self.scorer.score(outcome.signals)
            decision, review_required = self.policy.evaluate(breakdown.risk_score, outcome.signals)

            assessment = FraudAssessment(
                assessment_id=str(uuid.uuid4()),
                user_id=candidate_user_id,
                referral_code=referral_code,
                risk_score=breakdown.risk_score,
                signals=outcome.signals,
                device_fingerprint=fingerprint,
                ip_address=context.ip_address,
                assessed_at=self.clock(),
                decision=decision,
                review_required=review_required,
                degraded=outcome.degraded,
                failed_categories=outcome.failed_categories,
            )
            device_evidence = fingerprint

        except Exception:
            logger.exception("Assessment failed for user %s, returning safe default", candidate_user_id)
            metrics.errors_total.labels(error_type="assessment").inc()
            metrics.fallback_assessments.inc()
            assessment = self._safe_default(
                candidate_user_id, referral_code, ip_address, device_attributes, fingerprint
            )

        # =======================================================================
        # Step 4: Persist (best effort, decision unchanged on failure)
        # =======================================================================
        if device_evidence is not None:
            await self._persist(
                "fingerprint",
                assessment,
                lambda: self.repository.persist_fingerprint(device_evidence, candidate_user_id),
            )
        await self._persist(
            "assessment",
            assessment,
            lambda: self.repository.persist_assessment(assessment),
        )

        # =======================================================================
        # Step 5: Audit and metrics (never replaces the stored decision)
        # =======================================================================
        total_time = (time.perf_counter() - start_time) * 1000
        try:
            self._emit(assessment, total_time)
            self._record_metrics(assessment, total_time)
        except Exception as e:
            logger.error("Audit/metrics failed for assessment %s: %s", assessment.assessment_id, e)

        logger.info(
            "Assessed user %s: level=%s score=%.3f decision=%s signals=%d%s",
            candidate_user_id,
            assessment.risk_level.value,
            assessment.risk_score,
            assessment.decision.value,
            len(assessment.signals),
            " (degraded)" if assessment.degraded else "",
        )
        return assessment

    async def _persist(
        self,
        target: str,
        assessment: FraudAssessment,
        write: Callable[[], Awaitable[None]],
    ) -> None:
        """Run one repository write, logging and counting failures."""
        try:
            await write()
        except Exception as e:
            logger.error(
                "Failed to persist %s for assessment %s: %s",
                target,
                assessment.assessment_id,
                e,
            )
            metrics.persistence_errors.labels(target=target).inc()

    def _emit(self, assessment: FraudAssessment, latency_ms: float) -> None:
        """Hand the audit summary to the sink without waiting for it."""
        task = asyncio.create_task(self.audit_sink.emit(assessment.summary(latency_ms)))
        self._background_tasks.add(task)

        def _on_done(task_ref: asyncio.Task) -> None:
            self._background_tasks.discard(task_ref)
            if task_ref.cancelled():
                return
            exc = task_ref.exception()
            if exc is not None:
                logger.warning("Audit sink failed for %s: %s", assessment.assessment_id, exc)

        task.add_done_callback(_on_done)

    async def drain(self) -> None:
        """Wait for pending audit emissions (used on shutdown and in tests)."""
        if self._background_tasks:
            await asyncio.gather(*list(self._background_tasks), return_exceptions=True)

    def _record_metrics(self, assessment: FraudAssessment, latency_ms: float) -> None:
        metrics.assessment_latency.observe(latency_ms)
        metrics.assessments_total.labels(decision=assessment.decision.value).inc()
        metrics.risk_score_distribution.observe(assessment.risk_score)
        for signal in assessment.signals:
            metrics.signals_total.labels(signal_type=signal.signal_type.value).inc()
        if assessment.review_required:
            metrics.review_required_total.inc()
        if assessment.degraded:
            metrics.degraded_assessments.inc()

    def _safe_default(
        self,
        candidate_user_id: str,
        referral_code: Optional[str],
        ip_address: Optional[str],
        device_attributes: Any,
        fingerprint: Optional[DeviceFingerprint],
    ) -> FraudAssessment:
        """
        Conservative assessment used when the pipeline itself fails.

        Never allows: the signup is held for manual review.
        """
        if fingerprint is None:
            try:
                fingerprint = self.normalizer.normalize(device_attributes)
            except Exception:
                fingerprint = self.normalizer.normalize(None)

        return FraudAssessment(
            assessment_id=str(uuid.uuid4()),
            user_id=candidate_user_id,
            referral_code=referral_code,
            risk_score=0.0,
            signals=[],
            device_fingerprint=fingerprint,
            ip_address=ip_address,
            assessed_at=datetime.now(UTC),
            decision=FraudDecision.MANUAL_REVIEW,
            review_required=True,
            degraded=True,
            failed_categories=list(SignalCategory),
        )
