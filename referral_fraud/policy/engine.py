"""
Decision Policy

Maps a risk score and signal set to an actionable decision.

Decision flow (first match wins):
1. Referral ring present (immediate BLOCK, whatever the score)
2. Score >= 0.85 -> BLOCK
3. Score >= 0.6 -> REQUIRE_VERIFICATION
4. Score >= 0.45 -> MANUAL_REVIEW
5. Score >= 0.3 -> ALLOW_WITH_MONITORING
6. Otherwise ALLOW

The review flag is computed independently of the decision branch.
The policy is a total function: every score in [0, 1] and every signal
combination, including none, has a decision.
"""

from collections.abc import Sequence

from ..schemas import FraudDecision, FraudSignal, FraudSignalType

BLOCK_THRESHOLD = 0.85
VERIFICATION_THRESHOLD = 0.6
MANUAL_REVIEW_THRESHOLD = 0.45
MONITORING_THRESHOLD = 0.3

# Any single signal stronger than this routes the assessment to a human
REVIEW_WEIGHT_THRESHOLD = 0.8


class DecisionPolicy:
    """Threshold policy for referral signups."""

    def decide(self, risk_score: float, signals: Sequence[FraudSignal]) -> FraudDecision:
        """
        Pick the decision for a scored signup.

        Args:
            risk_score: Aggregated score in [0, 1]
            signals: Signals behind the score

        Returns:
            FraudDecision
        """
        if _has_ring(signals):
            return FraudDecision.BLOCK

        if risk_score >= BLOCK_THRESHOLD:
            return FraudDecision.BLOCK
        if risk_score >= VERIFICATION_THRESHOLD:
            return FraudDecision.REQUIRE_VERIFICATION
        if risk_score >= MANUAL_REVIEW_THRESHOLD:
            return FraudDecision.MANUAL_REVIEW
        if risk_score >= MONITORING_THRESHOLD:
            return FraudDecision.ALLOW_WITH_MONITORING
        return FraudDecision.ALLOW

    def review_required(self, signals: Sequence[FraudSignal]) -> bool:
        return _has_ring(signals) or any(
            signal.weight > REVIEW_WEIGHT_THRESHOLD for signal in signals
        )

    def evaluate(
        self,
        risk_score: float,
        signals: Sequence[FraudSignal],
    ) -> tuple[FraudDecision, bool]:
        """Decision and review flag in one call."""
        return self.decide(risk_score, signals), self.review_required(signals)


def _has_ring(signals: Sequence[FraudSignal]) -> bool:
    return any(signal.signal_type == FraudSignalType.REFERRAL_RING for signal in signals)
