"""
Risk Scoring Engine

Combines the signals from all detectors into one risk score in [0, 1].

Signals are ranked by weight and averaged with a diminishing-returns
discount, so the strongest signal dominates and a pile of weak,
possibly correlated signals can't sum past it. A small multiplier then
rewards corroboration across several signals.
"""

from collections.abc import Sequence

from ..schemas import FraudSignal, RiskScoreBreakdown

# k-th ranked signal (0-indexed) is discounted by 1 / DIMINISHING_BASE ** k
DIMINISHING_BASE = 1.5

# multiplier = min(1 + COUNT_STEP * n, MULTIPLIER_CAP)
COUNT_STEP = 0.05
MULTIPLIER_CAP = 1.3


class RiskScorer:
    """Rule-based scorer over a signal list."""

    def __init__(
        self,
        diminishing_base: float = DIMINISHING_BASE,
        count_step: float = COUNT_STEP,
        multiplier_cap: float = MULTIPLIER_CAP,
    ):
        self.diminishing_base = diminishing_base
        self.count_step = count_step
        self.multiplier_cap = multiplier_cap

    def discount(self, rank: int) -> float:
        return 1.0 / (self.diminishing_base ** rank)

    def score(self, signals: Sequence[FraudSignal]) -> RiskScoreBreakdown:
        """
        Compute the risk score for a set of signals.

        Args:
            signals: Signals in any order

        Returns:
            RiskScoreBreakdown with base score, multiplier and final score
        """
        if not signals:
            return RiskScoreBreakdown()

        weights = sorted((signal.weight for signal in signals), reverse=True)
        discounts = [self.discount(rank) for rank in range(len(weights))]

        weighted_sum = sum(w * d for w, d in zip(weights, discounts))
        base_score = weighted_sum / sum(discounts)

        multiplier = min(1.0 + self.count_step * len(weights), self.multiplier_cap)
        risk_score = min(base_score * multiplier, 1.0)

        return RiskScoreBreakdown(
            base_score=min(base_score, 1.0),
            multiplier=multiplier,
            risk_score=risk_score,
            signal_count=len(weights),
        )

    def calculate_risk_score(self, signals: Sequence[FraudSignal]) -> float:
        """Final score only."""
        return self.score(signals).risk_score
