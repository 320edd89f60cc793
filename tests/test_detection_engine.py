"""
Detection Engine Tests - Referral Fraud

Tests for the DetectionEngine orchestrator: concurrent execution,
category ordering and per-detector failure isolation.
"""

import asyncio

import pytest

from referral_fraud.detection import BaseDetector, DetectionEngine, default_detectors
from referral_fraud.schemas import FraudSignal, FraudSignalType, SignalCategory


# =============================================================================
# Mock Detectors for Testing Engine Behavior
# =============================================================================

class FixedSignalDetector(BaseDetector):
    """Mock detector returning one signal after an optional delay."""

    def __init__(self, category, signal_type, delay=0.0):
        self.category = category
        self.signal_type = signal_type
        self.delay = delay

    async def detect(self, context, repository):
        if self.delay:
            await asyncio.sleep(self.delay)
        return [FraudSignal.create(self.signal_type, "fixed", context.occurred_at)]


class FailingDetector(BaseDetector):
    """Mock detector whose repository read blows up."""

    def __init__(self, category):
        self.category = category

    async def detect(self, context, repository):
        raise ConnectionError("repository unavailable")


class TestDetectionEngine:
    """Tests for DetectionEngine."""

    @pytest.mark.asyncio
    async def test_signals_in_category_order(self, make_context, repository):
        """Slow device detector still reports before fast pattern detector."""
        engine = DetectionEngine([
            FixedSignalDetector(SignalCategory.PATTERN, FraudSignalType.BATCH_SIGNUPS),
            FixedSignalDetector(SignalCategory.ACCOUNT, FraudSignalType.DISPOSABLE_EMAIL, delay=0.01),
            FixedSignalDetector(SignalCategory.DEVICE, FraudSignalType.DUPLICATE_DEVICE, delay=0.02),
        ])

        outcome = await engine.run_detection(make_context(), repository)

        assert [s.signal_type for s in outcome.signals] == [
            FraudSignalType.DUPLICATE_DEVICE,
            FraudSignalType.DISPOSABLE_EMAIL,
            FraudSignalType.BATCH_SIGNUPS,
        ]
        assert outcome.degraded is False

    @pytest.mark.asyncio
    async def test_failing_detector_degrades_category(self, make_context, repository):
        engine = DetectionEngine([
            FixedSignalDetector(SignalCategory.DEVICE, FraudSignalType.SIMULATOR_USAGE),
            FailingDetector(SignalCategory.NETWORK),
            FixedSignalDetector(SignalCategory.PATTERN, FraudSignalType.BATCH_SIGNUPS),
        ])

        outcome = await engine.run_detection(make_context(), repository)

        assert [s.signal_type for s in outcome.signals] == [
            FraudSignalType.SIMULATOR_USAGE,
            FraudSignalType.BATCH_SIGNUPS,
        ]
        assert outcome.failed_categories == [SignalCategory.NETWORK]
        assert outcome.degraded is True

    @pytest.mark.asyncio
    async def test_all_detectors_fail(self, make_context, repository):
        engine = DetectionEngine([FailingDetector(c) for c in SignalCategory])

        outcome = await engine.run_detection(make_context(), repository)

        assert outcome.signals == []
        assert outcome.failed_categories == list(SignalCategory)

    @pytest.mark.asyncio
    async def test_no_detectors(self, make_context, repository):
        outcome = await DetectionEngine([]).run_detection(make_context(), repository)

        assert outcome.signals == []
        assert outcome.degraded is False

    def test_default_detectors_cover_every_category(self):
        categories = [d.category for d in default_detectors()]

        assert categories == list(SignalCategory)
