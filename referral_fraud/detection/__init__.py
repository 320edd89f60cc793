# Detection modules for the Referral Fraud Engine
from typing import Optional

from ..config import ReferenceDataLoader
from .detector import BaseDetector, DetectionEngine, DetectionOutcome
from .device import DeviceDetector
from .network import NetworkDetector
from .account import AccountDetector
from .behavioral import BehavioralDetector
from .pattern import PatternDetector
from .ring import ReferralRingDetector


def default_detectors(reference: Optional[ReferenceDataLoader] = None) -> list[BaseDetector]:
    """One detector per evidence category, wired to the given reference data."""
    return [
        DeviceDetector(),
        NetworkDetector(reference=reference),
        AccountDetector(reference=reference),
        BehavioralDetector(),
        PatternDetector(),
    ]


__all__ = [
    "BaseDetector",
    "DetectionEngine",
    "DetectionOutcome",
    "DeviceDetector",
    "NetworkDetector",
    "AccountDetector",
    "BehavioralDetector",
    "PatternDetector",
    "ReferralRingDetector",
    "default_detectors",
]
