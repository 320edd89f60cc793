# Decision policy
from .engine import (
    DecisionPolicy,
    BLOCK_THRESHOLD,
    VERIFICATION_THRESHOLD,
    MANUAL_REVIEW_THRESHOLD,
    MONITORING_THRESHOLD,
    REVIEW_WEIGHT_THRESHOLD,
)

__all__ = [
    "DecisionPolicy",
    "BLOCK_THRESHOLD",
    "VERIFICATION_THRESHOLD",
    "MANUAL_REVIEW_THRESHOLD",
    "MONITORING_THRESHOLD",
    "REVIEW_WEIGHT_THRESHOLD",
]
