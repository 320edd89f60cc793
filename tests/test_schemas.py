"""
Schema Tests

Tests for signal taxonomy, risk levels and assessment records.
"""

from datetime import datetime, timedelta, timezone, UTC

import pytest
from pydantic import ValidationError

from referral_fraud.schemas import (
    AssessmentRequest,
    FraudAssessment,
    FraudDecision,
    FraudRiskLevel,
    FraudSignal,
    FraudSignalType,
    NetworkClassification,
    ReferralEvent,
    SignalCategory,
    SignupEvent,
)


class TestSignalTaxonomy:
    """Tests for FraudSignalType weights and categories."""

    def test_every_type_has_weight_and_category(self):
        for signal_type in FraudSignalType:
            assert 0.0 < signal_type.base_weight <= 1.0
            assert isinstance(signal_type.category, SignalCategory)

    def test_known_weights(self):
        assert FraudSignalType.DUPLICATE_DEVICE.base_weight == 0.9
        assert FraudSignalType.REFERRAL_RING.base_weight == 0.95
        assert FraudSignalType.UNUSUAL_SIGNUP_TIME.base_weight == 0.2

    def test_category_order(self):
        assert [c.order for c in SignalCategory] == [0, 1, 2, 3, 4]
        assert SignalCategory.DEVICE.order < SignalCategory.PATTERN.order


class TestFraudSignal:
    """Tests for FraudSignal creation."""

    def test_create_uses_base_weight(self, now):
        signal = FraudSignal.create(FraudSignalType.VPN_DETECTED, "vpn", now)

        assert signal.weight == 0.3
        assert signal.category == SignalCategory.NETWORK
        assert signal.metadata == {}

    def test_scaled_weight_capped(self, now):
        signal = FraudSignal.create(FraudSignalType.DUPLICATE_DEVICE, "dup", now, scale=3)

        assert signal.weight == 1.0

    def test_weight_out_of_range_rejected(self, now):
        with pytest.raises(ValidationError):
            FraudSignal(
                signal_type=FraudSignalType.VPN_DETECTED,
                weight=1.2,
                description="bad",
                detected_at=now,
            )

    def test_immutable(self, now):
        signal = FraudSignal.create(FraudSignalType.VPN_DETECTED, "vpn", now)

        with pytest.raises(ValidationError):
            signal.weight = 0.9


class TestRiskLevel:
    """Tests for FraudRiskLevel partitioning."""

    @pytest.mark.parametrize("score,level", [
        (0.0, FraudRiskLevel.LOW),
        (0.2999, FraudRiskLevel.LOW),
        (0.3, FraudRiskLevel.MEDIUM),
        (0.6, FraudRiskLevel.HIGH),
        (0.8499, FraudRiskLevel.HIGH),
        (0.85, FraudRiskLevel.BLOCKED),
        (1.0, FraudRiskLevel.BLOCKED),
    ])
    def test_from_score(self, score, level):
        assert FraudRiskLevel.from_score(score) == level


class TestNetworkClassification:
    """Tests for country mismatch."""

    def test_mismatch_case_insensitive(self):
        assert NetworkClassification(ip_country="us", declared_country="US").country_mismatch is False
        assert NetworkClassification(ip_country="DE", declared_country="US").country_mismatch is True

    def test_missing_country_is_not_mismatch(self):
        assert NetworkClassification(ip_country="DE").country_mismatch is False


class TestFraudAssessment:
    """Tests for FraudAssessment."""

    def test_risk_level_derived(self, fingerprint, now):
        assessment = FraudAssessment(
            assessment_id="a1",
            user_id="user_new",
            risk_score=0.7,
            device_fingerprint=fingerprint,
            assessed_at=now,
            decision=FraudDecision.REQUIRE_VERIFICATION,
        )

        assert assessment.risk_level == FraudRiskLevel.HIGH
        assert assessment.should_flag_for_review
        assert not assessment.should_block

    def test_summary(self, fingerprint, now):
        signal = FraudSignal.create(FraudSignalType.REFERRAL_RING, "ring", now)
        assessment = FraudAssessment(
            assessment_id="a2",
            user_id="user_new",
            risk_score=1.0,
            signals=[signal],
            device_fingerprint=fingerprint,
            assessed_at=now,
            decision=FraudDecision.BLOCK,
            review_required=True,
        )

        summary = assessment.summary(latency_ms=12.5)

        assert summary.signal_types == [FraudSignalType.REFERRAL_RING]
        assert summary.risk_level == FraudRiskLevel.BLOCKED
        assert summary.latency_ms == 12.5
        assert summary.review_required is True

    def test_score_out_of_range_rejected(self, fingerprint):
        with pytest.raises(ValidationError):
            FraudAssessment(
                assessment_id="a3",
                user_id="user_new",
                risk_score=1.5,
                device_fingerprint=fingerprint,
                decision=FraudDecision.BLOCK,
            )


class TestRequestTimestamps:
    """Request timestamps are normalized to UTC."""

    def test_naive_timestamps_taken_as_utc(self):
        naive = datetime(2025, 3, 14, 12, 0)

        assert SignupEvent(user_id="u", occurred_at=naive).occurred_at == naive.replace(tzinfo=UTC)
        assert ReferralEvent(referrer_id="a", referred_id="b", created_at=naive).created_at.tzinfo == UTC
        assert AssessmentRequest(user_id="u", occurred_at=naive).occurred_at.tzinfo == UTC

    def test_offset_timestamps_converted(self):
        plus_two = datetime(2025, 3, 14, 14, 0, tzinfo=timezone(timedelta(hours=2)))

        event = SignupEvent(user_id="u", occurred_at=plus_two)

        assert event.occurred_at == datetime(2025, 3, 14, 12, 0, tzinfo=UTC)
        assert event.occurred_at.utcoffset() == timedelta(0)

    def test_missing_timestamp_stays_none(self):
        assert ReferralEvent(referrer_id="a", referred_id="b").created_at is None
