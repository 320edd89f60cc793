"""
Assessment Tests - Referral Fraud

End-to-end tests for ReferralFraudAssessor against the in-memory
repository: full scenarios, degraded detection, persistence failures
and the conservative fallback.
"""

from datetime import timedelta

import pytest

from referral_fraud.assessment import ReferralFraudAssessor
from referral_fraud.evidence import InMemoryEvidenceRepository
from referral_fraud.metrics import AuditSink
from referral_fraud.schemas import (
    FraudDecision,
    FraudRiskLevel,
    FraudSignalType,
    SignalCategory,
)


class FlakyReadRepository(InMemoryEvidenceRepository):
    """IP lookups fail, everything else works."""

    async def recent_signups_by_ip(self, ip_address, within, as_of):
        raise ConnectionError("redis timeout")


class FailingWriteRepository(InMemoryEvidenceRepository):
    """Reads work, every write fails."""

    async def persist_assessment(self, assessment):
        raise RuntimeError("Assessment archive not initialized")

    async def persist_fingerprint(self, fingerprint, user_id):
        raise ConnectionError("redis down")


class ExplodingScorer:
    def score(self, signals):
        raise ValueError("unexpected")


class OfflineSink(AuditSink):
    """Fails as soon as a summary is handed over."""

    def emit(self, summary):
        raise RuntimeError("sink offline")


class TestEndToEndScenarios:
    """Full assessment scenarios."""

    @pytest.mark.asyncio
    async def test_clean_signup(self, assessor, device_attributes):
        """No referrer and no history: nothing to see."""
        assessment = await assessor.assess_signup(
            candidate_user_id="user_new",
            email="alice@example.com",
            device_attributes=device_attributes,
        )

        assert assessment.signals == []
        assert assessment.risk_score == 0.0
        assert assessment.risk_level == FraudRiskLevel.LOW
        assert assessment.decision == FraudDecision.ALLOW
        assert assessment.review_required is False
        assert assessment.degraded is False

    @pytest.mark.asyncio
    async def test_self_referral_farm(self, assessor, repository, seed_device, seed_referrals, device_attributes, now):
        """
        Aliased gmail, shared device, referrer with 6 referrals in 2h.

        Weights 0.9, 0.7, 0.5 give base 143/190 and multiplier 1.15,
        i.e. a score of about 0.8655.
        """
        await repository.record_account("user_old", "john@gmail.com")
        await seed_device(device_attributes, "user_old", now - timedelta(days=3))
        # Spread over two hours, none in the last 30 minutes
        await seed_referrals("referrer_1", [40, 55, 70, 85, 100, 115])

        assessment = await assessor.assess_signup(
            candidate_user_id="user_new",
            email="john+test@gmail.com",
            device_attributes=device_attributes,
            referrer_id="referrer_1",
            referral_code="REF-123",
            occurred_at=now,
        )

        assert assessment.signal_types == [
            FraudSignalType.DUPLICATE_DEVICE,
            FraudSignalType.SIMILAR_USERNAMES,
            FraudSignalType.BATCH_SIGNUPS,
        ]
        assert assessment.risk_score == pytest.approx(143 / 190 * 1.15)
        assert assessment.risk_level == FraudRiskLevel.BLOCKED
        assert assessment.decision == FraudDecision.BLOCK
        assert assessment.review_required is True
        assert assessment.referral_code == "REF-123"

    @pytest.mark.asyncio
    async def test_referral_ring_blocks(self, assessor, repository, device_attributes, now):
        await repository.record_referral("user_new", "a", now - timedelta(days=2))
        await repository.record_referral("a", "b", now - timedelta(days=1))

        assessment = await assessor.assess_signup(
            candidate_user_id="user_new",
            email="ring@example.com",
            device_attributes=device_attributes,
            referrer_id="b",
            occurred_at=now,
        )

        assert assessment.signal_types == [FraudSignalType.REFERRAL_RING]
        assert assessment.decision == FraudDecision.BLOCK
        assert assessment.should_block is True
        assert assessment.review_required is True

    @pytest.mark.asyncio
    async def test_disposable_email_from_datacenter(self, assessor, device_attributes, now):
        assessment = await assessor.assess_signup(
            candidate_user_id="user_new",
            email="bot@mailinator.com",
            device_attributes=device_attributes,
            ip_address="159.89.10.10",
            occurred_at=now,
        )

        assert assessment.signal_types == [
            FraudSignalType.DATACENTER_IP,
            FraudSignalType.DISPOSABLE_EMAIL,
        ]
        # Two 0.8 signals: base 0.8, multiplier 1.1
        assert assessment.risk_score == pytest.approx(0.88)
        assert assessment.decision == FraudDecision.BLOCK
        # Neither weight is above 0.8
        assert assessment.review_required is False


class TestAssessmentSideEffects:
    """Persistence, audit and never-raise behavior."""

    @pytest.mark.asyncio
    async def test_persists_fingerprint_and_assessment(self, assessor, repository, device_attributes):
        assessment = await assessor.assess_signup(
            candidate_user_id="user_new",
            email="alice@example.com",
            device_attributes=device_attributes,
        )

        assert repository.assessments[assessment.assessment_id] == assessment
        matches = await repository.find_device_matches(assessment.device_fingerprint.hash)
        assert [m.user_id for m in matches] == ["user_new"]

    @pytest.mark.asyncio
    async def test_second_account_on_device_flagged(self, assessor, device_attributes, now):
        """The first signup's fingerprint becomes evidence for the next."""
        await assessor.assess_signup(
            candidate_user_id="first",
            email="first@example.com",
            device_attributes=device_attributes,
            occurred_at=now - timedelta(days=1),
        )

        second = await assessor.assess_signup(
            candidate_user_id="second",
            email="second@example.com",
            device_attributes=device_attributes,
            occurred_at=now,
        )

        assert FraudSignalType.DUPLICATE_DEVICE in second.signal_types
        assert second.review_required is True

    @pytest.mark.asyncio
    async def test_emits_audit_summary(self, assessor, audit_sink, device_attributes):
        assessment = await assessor.assess_signup(
            candidate_user_id="user_new",
            email="alice@example.com",
            device_attributes=device_attributes,
        )
        await assessor.drain()

        assert assessor.audit_sink is audit_sink
        assert len(audit_sink) == 1
        snapshot = audit_sink.snapshot(hours=24 * 365 * 100)
        assert snapshot["total"] == 1
        assert snapshot["counts"] == {assessment.decision.value: 1}

    @pytest.mark.asyncio
    async def test_degraded_when_detector_read_fails(self, clock, audit_sink, device_attributes, now):
        repository = FlakyReadRepository()
        await repository.record_account("user_old", "john@gmail.com")
        assessor = ReferralFraudAssessor(repository, clock=clock, audit_sink=audit_sink)

        assessment = await assessor.assess_signup(
            candidate_user_id="user_new",
            email="john+x@gmail.com",
            device_attributes=device_attributes,
            ip_address="203.0.113.7",
            occurred_at=now,
        )

        assert assessment.degraded is True
        assert assessment.failed_categories == [SignalCategory.NETWORK]
        # Other categories still contribute
        assert assessment.signal_types == [FraudSignalType.SIMILAR_USERNAMES]

    @pytest.mark.asyncio
    async def test_write_failure_keeps_decision(self, clock, audit_sink, device_attributes, now):
        assessor = ReferralFraudAssessor(FailingWriteRepository(), clock=clock, audit_sink=audit_sink)

        assessment = await assessor.assess_signup(
            candidate_user_id="user_new",
            email="bot@mailinator.com",
            device_attributes=device_attributes,
            occurred_at=now,
        )

        assert assessment.signal_types == [FraudSignalType.DISPOSABLE_EMAIL]
        assert assessment.decision == FraudDecision.REQUIRE_VERIFICATION
        assert assessment.degraded is False

    @pytest.mark.asyncio
    async def test_unexpected_error_returns_safe_default(self, repository, clock, audit_sink, device_attributes):
        assessor = ReferralFraudAssessor(
            repository, scorer=ExplodingScorer(), clock=clock, audit_sink=audit_sink
        )

        assessment = await assessor.assess_signup(
            candidate_user_id="user_new",
            email="alice@example.com",
            device_attributes=device_attributes,
        )

        assert assessment.decision == FraudDecision.MANUAL_REVIEW
        assert assessment.review_required is True
        assert assessment.degraded is True
        assert assessment.risk_score == 0.0
        assert assessment.user_id == "user_new"

    @pytest.mark.asyncio
    async def test_malformed_inputs_never_raise(self, assessor):
        assessment = await assessor.assess_signup(
            candidate_user_id="user_new",
            email="not-an-email",
            device_attributes={"screen_resolution": ("x", None)},
            ip_address="",
        )

        assert assessment.decision == FraudDecision.ALLOW
        assert assessment.degraded is False

    @pytest.mark.asyncio
    async def test_safe_default_is_persisted_and_audited(self, repository, clock, audit_sink, device_attributes):
        """The fallback lands in the review queue and can be reviewed."""
        assessor = ReferralFraudAssessor(
            repository, scorer=ExplodingScorer(), clock=clock, audit_sink=audit_sink
        )

        assessment = await assessor.assess_signup(
            candidate_user_id="user_new",
            email="alice@example.com",
            device_attributes=device_attributes,
        )
        await assessor.drain()

        flagged = await repository.flagged_assessments()
        assert [a.assessment_id for a in flagged] == [assessment.assessment_id]
        assert len(audit_sink) == 1
        # No device evidence is recorded for a signup that was never evaluated
        assert repository.device_users == {}
        assert await repository.mark_reviewed(assessment.assessment_id, approved=True) is True

    @pytest.mark.asyncio
    async def test_audit_failure_keeps_stored_decision(self, repository, clock, device_attributes, now):
        assessor = ReferralFraudAssessor(repository, clock=clock, audit_sink=OfflineSink())

        assessment = await assessor.assess_signup(
            candidate_user_id="user_new",
            email="bot@mailinator.com",
            device_attributes=device_attributes,
            occurred_at=now,
        )

        assert assessment.decision == FraudDecision.REQUIRE_VERIFICATION
        assert list(repository.assessments) == [assessment.assessment_id]
        assert repository.assessments[assessment.assessment_id].decision == assessment.decision


class TestTimestampHandling:
    """Naive and aware timestamps share one timeline."""

    @pytest.mark.asyncio
    async def test_naive_evidence_timestamps_are_utc(self, assessor, repository, device_attributes, now):
        naive_now = now.replace(tzinfo=None)
        for i in range(6):
            await repository.record_referral("ref", f"friend_{i}", naive_now - timedelta(minutes=i + 1))
        for i in range(2):
            await repository.record_signup(f"old_{i}", "203.0.113.7", naive_now - timedelta(hours=i + 1))

        assessment = await assessor.assess_signup(
            candidate_user_id="user_new",
            email="alice@example.com",
            device_attributes=device_attributes,
            referrer_id="ref",
            ip_address="203.0.113.7",
            occurred_at=now,
        )

        assert assessment.degraded is False
        assert FraudSignalType.DUPLICATE_IP in assessment.signal_types
        assert FraudSignalType.RAPID_REFERRALS in assessment.signal_types
        assert FraudSignalType.BATCH_SIGNUPS in assessment.signal_types

    @pytest.mark.asyncio
    async def test_naive_occurred_at_treated_as_utc(self, assessor, repository, seed_referrals, device_attributes, now):
        await seed_referrals("ref", [5, 10, 20])

        assessment = await assessor.assess_signup(
            candidate_user_id="user_new",
            email="alice@example.com",
            device_attributes=device_attributes,
            referrer_id="ref",
            occurred_at=now.replace(tzinfo=None),
        )

        assert assessment.degraded is False
        assert FraudSignalType.RAPID_REFERRALS in assessment.signal_types
