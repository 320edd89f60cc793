"""
Fraud Signal Schemas

Defines the closed taxonomy of evidence signals the engine can emit.
Each signal type carries a static base weight (a hand-specified prior,
not learned and not tunable at runtime) and belongs to exactly one
category. Detectors run per category, and signals are reported in
category order for reproducible audit trails.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class SignalCategory(str, Enum):
    """
    Evidence categories, in reporting order.

    Signals are always concatenated in this order regardless of which
    detector finished first.
    """
    DEVICE = "device"
    NETWORK = "network"
    ACCOUNT = "account"
    BEHAVIORAL = "behavioral"
    PATTERN = "pattern"

    @property
    def order(self) -> int:
        return _CATEGORY_ORDER.index(self)


_CATEGORY_ORDER = list(SignalCategory)


class FraudSignalType(str, Enum):
    """
    Fraud signal taxonomy.

    Some types have no active detector in this engine (their upstream
    data is not collected); they are still valid values so stored
    assessments from other producers stay readable.
    """
    # Device
    DUPLICATE_DEVICE = "duplicate_device"
    JAILBROKEN_DEVICE = "jailbroken_device"
    SIMULATOR_USAGE = "simulator_usage"
    SUSPICIOUS_DEVICE_AGE = "suspicious_device_age"

    # Network
    DUPLICATE_IP = "duplicate_ip"
    VPN_DETECTED = "vpn_detected"
    DATACENTER_IP = "datacenter_ip"
    PROXY_DETECTED = "proxy_detected"
    IP_COUNTRY_MISMATCH = "ip_country_mismatch"

    # Behavioral
    RAPID_REFERRALS = "rapid_referrals"
    UNUSUAL_SIGNUP_TIME = "unusual_signup_time"
    SAME_WIFI_NETWORK = "same_wifi_network"
    SHORT_SESSION_DURATION = "short_session_duration"
    NO_APP_ENGAGEMENT = "no_app_engagement"
    IMMEDIATE_UNINSTALL = "immediate_uninstall"

    # Account
    DISPOSABLE_EMAIL = "disposable_email"
    SIMILAR_USERNAMES = "similar_usernames"
    INCOMPLETE_PROFILE = "incomplete_profile"
    NO_PROFILE_PHOTO = "no_profile_photo"
    SUSPICIOUS_PHONE_NUMBER = "suspicious_phone_number"

    # Pattern
    REFERRAL_RING = "referral_ring"
    BATCH_SIGNUPS = "batch_signups"
    GEOGRAPHIC_ANOMALY = "geographic_anomaly"

    @property
    def base_weight(self) -> float:
        """Static prior weight for this signal type."""
        return _BASE_WEIGHTS[self]

    @property
    def category(self) -> SignalCategory:
        """Category this signal type is reported under."""
        return _CATEGORIES[self]


_BASE_WEIGHTS: dict[FraudSignalType, float] = {
    FraudSignalType.DUPLICATE_DEVICE: 0.9,
    FraudSignalType.JAILBROKEN_DEVICE: 0.4,
    FraudSignalType.SIMULATOR_USAGE: 0.8,
    FraudSignalType.SUSPICIOUS_DEVICE_AGE: 0.3,
    FraudSignalType.DUPLICATE_IP: 0.7,
    FraudSignalType.VPN_DETECTED: 0.3,
    FraudSignalType.DATACENTER_IP: 0.8,
    FraudSignalType.PROXY_DETECTED: 0.5,
    FraudSignalType.IP_COUNTRY_MISMATCH: 0.4,
    FraudSignalType.RAPID_REFERRALS: 0.6,
    FraudSignalType.UNUSUAL_SIGNUP_TIME: 0.2,
    FraudSignalType.SAME_WIFI_NETWORK: 0.5,
    FraudSignalType.SHORT_SESSION_DURATION: 0.4,
    FraudSignalType.NO_APP_ENGAGEMENT: 0.5,
    FraudSignalType.IMMEDIATE_UNINSTALL: 0.7,
    FraudSignalType.DISPOSABLE_EMAIL: 0.8,
    FraudSignalType.SIMILAR_USERNAMES: 0.5,
    FraudSignalType.INCOMPLETE_PROFILE: 0.3,
    FraudSignalType.NO_PROFILE_PHOTO: 0.2,
    FraudSignalType.SUSPICIOUS_PHONE_NUMBER: 0.6,
    FraudSignalType.REFERRAL_RING: 0.95,
    FraudSignalType.BATCH_SIGNUPS: 0.7,
    FraudSignalType.GEOGRAPHIC_ANOMALY: 0.4,
}

_CATEGORIES: dict[FraudSignalType, SignalCategory] = {
    FraudSignalType.DUPLICATE_DEVICE: SignalCategory.DEVICE,
    FraudSignalType.JAILBROKEN_DEVICE: SignalCategory.DEVICE,
    FraudSignalType.SIMULATOR_USAGE: SignalCategory.DEVICE,
    FraudSignalType.SUSPICIOUS_DEVICE_AGE: SignalCategory.DEVICE,
    FraudSignalType.DUPLICATE_IP: SignalCategory.NETWORK,
    FraudSignalType.VPN_DETECTED: SignalCategory.NETWORK,
    FraudSignalType.DATACENTER_IP: SignalCategory.NETWORK,
    FraudSignalType.PROXY_DETECTED: SignalCategory.NETWORK,
    FraudSignalType.IP_COUNTRY_MISMATCH: SignalCategory.NETWORK,
    FraudSignalType.RAPID_REFERRALS: SignalCategory.BEHAVIORAL,
    FraudSignalType.UNUSUAL_SIGNUP_TIME: SignalCategory.BEHAVIORAL,
    FraudSignalType.SAME_WIFI_NETWORK: SignalCategory.BEHAVIORAL,
    FraudSignalType.SHORT_SESSION_DURATION: SignalCategory.BEHAVIORAL,
    FraudSignalType.NO_APP_ENGAGEMENT: SignalCategory.BEHAVIORAL,
    FraudSignalType.IMMEDIATE_UNINSTALL: SignalCategory.BEHAVIORAL,
    FraudSignalType.DISPOSABLE_EMAIL: SignalCategory.ACCOUNT,
    FraudSignalType.SIMILAR_USERNAMES: SignalCategory.ACCOUNT,
    FraudSignalType.INCOMPLETE_PROFILE: SignalCategory.ACCOUNT,
    FraudSignalType.NO_PROFILE_PHOTO: SignalCategory.ACCOUNT,
    FraudSignalType.SUSPICIOUS_PHONE_NUMBER: SignalCategory.ACCOUNT,
    FraudSignalType.REFERRAL_RING: SignalCategory.PATTERN,
    FraudSignalType.BATCH_SIGNUPS: SignalCategory.PATTERN,
    FraudSignalType.GEOGRAPHIC_ANOMALY: SignalCategory.PATTERN,
}


class FraudSignal(BaseModel):
    """
    A single piece of fraud evidence.

    `weight` is the effective weight: the type's base weight, possibly
    scaled by the detector (e.g. by match count) and capped at 1.0.
    Immutable once created.
    """
    model_config = ConfigDict(frozen=True)

    signal_type: FraudSignalType = Field(
        ...,
        description="Signal type from the closed taxonomy",
    )
    weight: float = Field(
        ...,
        ge=0.0,
        le=1.0,
        description="Effective weight used by the risk scorer",
    )
    description: str = Field(
        ...,
        description="Human-readable rationale",
    )
    detected_at: datetime = Field(
        ...,
        description="When the signal was detected",
    )
    metadata: dict[str, str] = Field(
        default_factory=dict,
        description="Audit details (counts, matched ids, etc.)",
    )

    @property
    def category(self) -> SignalCategory:
        return self.signal_type.category

    @classmethod
    def create(
        cls,
        signal_type: FraudSignalType,
        description: str,
        detected_at: datetime,
        metadata: Optional[dict[str, str]] = None,
        scale: float = 1.0,
    ) -> "FraudSignal":
        """
        Build a signal from its type's base weight.

        Args:
            signal_type: Signal type
            description: Human-readable rationale
            detected_at: Detection timestamp
            metadata: Optional audit metadata
            scale: Multiplier applied to the base weight (result capped at 1.0)
        """
        return cls(
            signal_type=signal_type,
            weight=min(signal_type.base_weight * scale, 1.0),
            description=description,
            detected_at=detected_at,
            metadata=metadata or {},
        )
