"""
Detection Engine

Orchestrates all detection modules and combines their signals.
Each detector covers one evidence category and runs independently
against the shared, read-only signup context.

Design goals:
- Run detectors concurrently (they only read)
- Report signals in a fixed category order, never completion order
- A failing detector degrades its category to zero signals instead
  of aborting the assessment
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from ..evidence import EvidenceRepository
from ..metrics import metrics
from ..schemas import FraudSignal, SignalCategory, SignupContext

logger = logging.getLogger("referral_fraud.detection")


@dataclass
class DetectionOutcome:
    """
    Combined result of one detection run.

    Signals are in category order; failed categories contributed none.
    """
    signals: list[FraudSignal] = field(default_factory=list)
    failed_categories: list[SignalCategory] = field(default_factory=list)

    @property
    def degraded(self) -> bool:
        return bool(self.failed_categories)


class BaseDetector(ABC):
    """
    Base class for all signal detectors.

    Each detector focuses on one evidence category:
    - DeviceDetector: Simulators, jailbreaks, shared or brand-new devices
    - NetworkDetector: Shared IPs, datacenter and anonymized networks
    - AccountDetector: Disposable and aliased email addresses
    - BehavioralDetector: Referral velocity, odd signup hours
    - PatternDetector: Referral rings, batch signups
    """

    category: SignalCategory

    @abstractmethod
    async def detect(
        self,
        context: SignupContext,
        repository: EvidenceRepository,
    ) -> list[FraudSignal]:
        """
        Run detection logic.

        Must not write to the repository.

        Args:
            context: Signup under evaluation
            repository: Evidence source (reads only)

        Returns:
            Signals found (possibly empty)
        """


class DetectionEngine:
    """
    Orchestrates all detection modules.

    Runs detectors concurrently and concatenates their signals in
    category order.
    """

    def __init__(self, detectors: list[BaseDetector]):
        """
        Initialize detection engine.

        Args:
            detectors: List of detector instances
        """
        self.detectors = detectors

    async def run_detection(
        self,
        context: SignupContext,
        repository: EvidenceRepository,
    ) -> DetectionOutcome:
        """
        Run all detectors and collect their signals.

        Args:
            context: Signup under evaluation
            repository: Evidence source

        Returns:
            DetectionOutcome with ordered signals and failed categories
        """
        # Run all detectors concurrently
        tasks = [
            detector.detect(context, repository)
            for detector in self.detectors
        ]

        results = await asyncio.gather(*tasks, return_exceptions=True)

        outcome = DetectionOutcome()
        ordered = sorted(
            zip(self.detectors, results),
            key=lambda pair: pair[0].category.order,
        )

        for detector, result in ordered:
            if isinstance(result, BaseException):
                # Detector failed - log and continue with no signals from it
                logger.warning(
                    "Detector %s failed for user %s: %s",
                    detector.__class__.__name__,
                    context.candidate_user_id,
                    result,
                )
                metrics.detector_failures.labels(category=detector.category.value).inc()
                if detector.category not in outcome.failed_categories:
                    outcome.failed_categories.append(detector.category)
                continue

            outcome.signals.extend(result)

        return outcome
