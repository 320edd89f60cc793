"""
Pattern Signal Detection

Detects coordinated referral schemes:
1. Referral rings (the candidate already sits up the referrer's chain)
2. Batch signups (one referrer converting a block of accounts)
"""

from datetime import timedelta
from typing import Optional

from ..config import settings
from ..evidence import EvidenceRepository
from ..schemas import FraudSignal, FraudSignalType, SignalCategory, SignupContext
from .detector import BaseDetector
from .ring import ReferralRingDetector


class PatternDetector(BaseDetector):
    """Detects referral-ring and batch-signup signals."""

    category = SignalCategory.PATTERN

    def __init__(
        self,
        ring_detector: Optional[ReferralRingDetector] = None,
        batch_window: Optional[timedelta] = None,
        batch_threshold: Optional[int] = None,
    ):
        self.ring_detector = (
            ring_detector if ring_detector is not None
            else ReferralRingDetector(settings.ring_max_depth)
        )
        self.batch_window = (
            timedelta(minutes=settings.batch_signup_window_minutes)
            if batch_window is None else batch_window
        )
        self.batch_threshold = (
            settings.batch_signup_threshold if batch_threshold is None else batch_threshold
        )

    async def detect(
        self,
        context: SignupContext,
        repository: EvidenceRepository,
    ) -> list[FraudSignal]:
        """Run pattern detection for referred signups."""
        if not context.is_referred:
            return []

        now = context.occurred_at
        signals: list[FraudSignal] = []

        # =======================================================================
        # Check 1: Referral ring
        # =======================================================================
        in_ring = await self.ring_detector.detect_ring(
            context.candidate_user_id, context.referrer_id, repository
        )

        if in_ring:
            signals.append(FraudSignal.create(
                FraudSignalType.REFERRAL_RING,
                "Circular referral pattern detected",
                now,
                {"referrer_id": context.referrer_id},
            ))

        # =======================================================================
        # Check 2: Batch signups under one referrer
        # =======================================================================
        batch_count = await repository.recent_referrals_by_referrer(
            context.referrer_id, self.batch_window, now
        )

        if batch_count >= self.batch_threshold:
            window_hours = self.batch_window.total_seconds() / 3600
            signals.append(FraudSignal.create(
                FraudSignalType.BATCH_SIGNUPS,
                f"{batch_count} signups in {window_hours:g} hours",
                now,
                {"referrer_id": context.referrer_id, "batch_count": str(batch_count)},
            ))

        return signals
