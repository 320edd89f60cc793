"""
Assessment Schemas

Defines risk levels, decisions and the assessment record returned
to callers. Decisions follow a hierarchy:
ALLOW < ALLOW_WITH_MONITORING < MANUAL_REVIEW < REQUIRE_VERIFICATION < BLOCK
"""

from datetime import datetime, UTC
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field

from .device import DeviceFingerprint
from .signals import FraudSignal, FraudSignalType, SignalCategory


def _utc_now() -> datetime:
    """Return current UTC time (timezone-aware)."""
    return datetime.now(UTC)


class FraudRiskLevel(str, Enum):
    """
    Discrete risk level.

    Partitions [0, 1] with no gaps or overlaps:
    [0, 0.3) low, [0.3, 0.6) medium, [0.6, 0.85) high, [0.85, 1.0] blocked.
    """
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    BLOCKED = "blocked"

    @property
    def threshold(self) -> float:
        """Upper bound of the level's score range."""
        return {
            FraudRiskLevel.LOW: 0.3,
            FraudRiskLevel.MEDIUM: 0.6,
            FraudRiskLevel.HIGH: 0.85,
            FraudRiskLevel.BLOCKED: 1.0,
        }[self]

    @classmethod
    def from_score(cls, score: float) -> "FraudRiskLevel":
        if score < 0.3:
            return cls.LOW
        if score < 0.6:
            return cls.MEDIUM
        if score < 0.85:
            return cls.HIGH
        return cls.BLOCKED


class FraudDecision(str, Enum):
    """
    Actionable outcome for a referral signup.

    - ALLOW: Proceed, reward the referral
    - ALLOW_WITH_MONITORING: Proceed, keep the account under watch
    - REQUIRE_VERIFICATION: Hold the reward until the user verifies (phone, ID)
    - MANUAL_REVIEW: Hold for an analyst
    - BLOCK: Reject the referral
    """
    ALLOW = "allow"
    ALLOW_WITH_MONITORING = "allow_with_monitoring"
    REQUIRE_VERIFICATION = "require_verification"
    MANUAL_REVIEW = "manual_review"
    BLOCK = "block"


class RiskScoreBreakdown(BaseModel):
    """Intermediate values of the risk computation, kept for explainability."""
    model_config = ConfigDict(frozen=True)

    base_score: float = Field(default=0.0, ge=0.0, le=1.0)
    multiplier: float = Field(default=1.0, ge=1.0)
    risk_score: float = Field(default=0.0, ge=0.0, le=1.0)
    signal_count: int = Field(default=0, ge=0)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def risk_level(self) -> FraudRiskLevel:
        return FraudRiskLevel.from_score(self.risk_score)


class FraudAssessment(BaseModel):
    """
    Complete fraud assessment for one referral signup.

    Created exactly once per evaluation and immutable afterwards.
    `risk_level` is always derived from `risk_score`.
    """
    model_config = ConfigDict(frozen=True)

    assessment_id: str = Field(..., description="Unique assessment id")
    user_id: str = Field(..., description="Candidate (referred) user id")
    referral_code: Optional[str] = Field(default=None, description="Referral code used at signup")
    risk_score: float = Field(..., ge=0.0, le=1.0, description="Aggregated risk score")
    signals: list[FraudSignal] = Field(
        default_factory=list,
        description="Signals in category order (device, network, account, behavioral, pattern)",
    )
    device_fingerprint: DeviceFingerprint
    ip_address: Optional[str] = None
    assessed_at: datetime = Field(default_factory=_utc_now)
    decision: FraudDecision
    review_required: bool = False

    # Degraded assessments had at least one detector category fail
    degraded: bool = Field(default=False, description="True if some evidence could not be gathered")
    failed_categories: list[SignalCategory] = Field(default_factory=list)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def risk_level(self) -> FraudRiskLevel:
        return FraudRiskLevel.from_score(self.risk_score)

    @property
    def signal_types(self) -> list[FraudSignalType]:
        return [signal.signal_type for signal in self.signals]

    @property
    def should_block(self) -> bool:
        return self.decision == FraudDecision.BLOCK or self.risk_level == FraudRiskLevel.BLOCKED

    @property
    def should_flag_for_review(self) -> bool:
        return self.review_required or self.risk_level == FraudRiskLevel.HIGH

    def summary(self, latency_ms: float = 0.0) -> "AssessmentSummary":
        """Build the audit summary event for this assessment."""
        return AssessmentSummary(
            assessment_id=self.assessment_id,
            user_id=self.user_id,
            signal_types=self.signal_types,
            risk_score=self.risk_score,
            risk_level=self.risk_level,
            decision=self.decision,
            review_required=self.review_required,
            degraded=self.degraded,
            assessed_at=self.assessed_at,
            latency_ms=latency_ms,
        )


class AssessmentSummary(BaseModel):
    """Audit/analytics event emitted once per assessment."""
    model_config = ConfigDict(frozen=True)

    assessment_id: str
    user_id: str
    signal_types: list[FraudSignalType] = Field(default_factory=list)
    risk_score: float
    risk_level: FraudRiskLevel
    decision: FraudDecision
    review_required: bool
    degraded: bool = False
    assessed_at: datetime
    latency_ms: float = 0.0
