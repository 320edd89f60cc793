"""
Behavioral Signal Detection

Detects referral behavior that doesn't look human:
1. A referrer converting many invites in a short burst
2. Signups at odd hours of the device's local night

Only referred signups are checked; organic signups carry no referral
behavior to judge.
"""

from datetime import datetime, timedelta
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from ..config import settings
from ..evidence import EvidenceRepository
from ..schemas import FraudSignal, FraudSignalType, SignalCategory, SignupContext
from .detector import BaseDetector


def local_hour(occurred_at: datetime, timezone_name: str) -> int:
    """Hour of day in the device timezone, UTC when the zone is unknown."""
    try:
        zone = ZoneInfo(timezone_name)
    except (ZoneInfoNotFoundError, ValueError):
        zone = ZoneInfo("UTC")
    return occurred_at.astimezone(zone).hour


class BehavioralDetector(BaseDetector):
    """Detects rapid-referral and unusual-hour signals."""

    category = SignalCategory.BEHAVIORAL

    def __init__(
        self,
        rapid_window: Optional[timedelta] = None,
        rapid_threshold: Optional[int] = None,
        unusual_hour_start: Optional[int] = None,
        unusual_hour_end: Optional[int] = None,
    ):
        """
        Initialize detector.

        Args:
            rapid_window: Window for counting a referrer's conversions
            rapid_threshold: Conversions within the window that trigger a signal
            unusual_hour_start: First unusual local hour (inclusive)
            unusual_hour_end: Last unusual local hour (inclusive)
        """
        self.rapid_window = (
            timedelta(minutes=settings.rapid_referral_window_minutes)
            if rapid_window is None else rapid_window
        )
        self.rapid_threshold = (
            settings.rapid_referral_threshold if rapid_threshold is None else rapid_threshold
        )
        self.unusual_hour_start = (
            settings.unusual_hour_start if unusual_hour_start is None else unusual_hour_start
        )
        self.unusual_hour_end = (
            settings.unusual_hour_end if unusual_hour_end is None else unusual_hour_end
        )

    async def detect(
        self,
        context: SignupContext,
        repository: EvidenceRepository,
    ) -> list[FraudSignal]:
        """Run behavioral detection for referred signups."""
        if not context.is_referred:
            return []

        now = context.occurred_at
        signals: list[FraudSignal] = []

        # =======================================================================
        # Check 1: Rapid referrals by the same referrer
        # =======================================================================
        referral_count = await repository.recent_referrals_by_referrer(
            context.referrer_id, self.rapid_window, now
        )

        if referral_count >= self.rapid_threshold:
            window_minutes = int(self.rapid_window.total_seconds() // 60)
            signals.append(FraudSignal.create(
                FraudSignalType.RAPID_REFERRALS,
                f"{referral_count} referrals in {window_minutes} minutes",
                now,
                {"referrer_id": context.referrer_id, "referral_count": str(referral_count)},
                scale=referral_count / max(self.rapid_threshold, 1),
            ))

        # =======================================================================
        # Check 2: Unusual local signup hour
        # =======================================================================
        hour = local_hour(now, context.fingerprint.timezone)

        if self.unusual_hour_start <= hour <= self.unusual_hour_end:
            signals.append(FraudSignal.create(
                FraudSignalType.UNUSUAL_SIGNUP_TIME,
                "Signup at unusual hour",
                now,
                {"local_hour": str(hour)},
            ))

        return signals
