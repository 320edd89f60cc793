# Data schemas for the Referral Fraud Engine
from .signals import SignalCategory, FraudSignalType, FraudSignal
from .device import DeviceAttributes, DeviceFingerprint, DeviceMatch, UNKNOWN
from .signup import NetworkClassification, SignupContext
from .assessment import (
    FraudRiskLevel,
    FraudDecision,
    RiskScoreBreakdown,
    FraudAssessment,
    AssessmentSummary,
)
from .requests import AssessmentRequest, SignupEvent, ReferralEvent, ReviewRequest

__all__ = [
    # Signals
    "SignalCategory",
    "FraudSignalType",
    "FraudSignal",
    # Device
    "DeviceAttributes",
    "DeviceFingerprint",
    "DeviceMatch",
    "UNKNOWN",
    # Signup
    "NetworkClassification",
    "SignupContext",
    # Assessment
    "FraudRiskLevel",
    "FraudDecision",
    "RiskScoreBreakdown",
    "FraudAssessment",
    "AssessmentSummary",
    # Requests
    "AssessmentRequest",
    "SignupEvent",
    "ReferralEvent",
    "ReviewRequest",
]
