# Scoring modules
from .risk_scorer import RiskScorer, DIMINISHING_BASE, COUNT_STEP, MULTIPLIER_CAP

__all__ = [
    "RiskScorer",
    "DIMINISHING_BASE",
    "COUNT_STEP",
    "MULTIPLIER_CAP",
]
