"""
Device Signal Detection

Detects device-level evidence of referral abuse:
1. Emulated devices (farms of simulators creating accounts)
2. Jailbroken/rooted devices (tampering tools, spoofed identifiers)
3. One device behind several accounts (self-referral)
4. Brand-new vendor identifiers (reinstall to reset the device id)

The raw probes run on the client; this detector only reads the
resulting fingerprint and the repository.
"""

from datetime import timedelta
from typing import Optional

from ..config import settings
from ..evidence import EvidenceRepository
from ..schemas import FraudSignal, FraudSignalType, SignalCategory, SignupContext, UNKNOWN
from .detector import BaseDetector


class DeviceDetector(BaseDetector):
    """Detects simulator, jailbreak, duplicate-device and new-device signals."""

    category = SignalCategory.DEVICE

    def __init__(
        self,
        match_limit: Optional[int] = None,
        new_device_window: Optional[timedelta] = None,
    ):
        """
        Initialize detector.

        Args:
            match_limit: Max device-hash matches to inspect
            new_device_window: Vendor ids first seen within this window count as new
        """
        self.match_limit = settings.device_match_limit if match_limit is None else match_limit
        self.new_device_window = (
            timedelta(minutes=settings.new_device_window_minutes)
            if new_device_window is None else new_device_window
        )

    async def detect(
        self,
        context: SignupContext,
        repository: EvidenceRepository,
    ) -> list[FraudSignal]:
        """
        Run device detection.

        Checks:
        1. Simulator flag
        2. Jailbreak/root flag
        3. Fingerprint hash shared with other users
        4. Vendor id age
        """
        fingerprint = context.fingerprint
        now = context.occurred_at
        signals: list[FraudSignal] = []

        # =======================================================================
        # Check 1: Simulator
        # =======================================================================
        if fingerprint.is_simulator:
            signals.append(FraudSignal.create(
                FraudSignalType.SIMULATOR_USAGE,
                "Signup from a simulator or emulator",
                now,
                {"device_model": fingerprint.device_model},
            ))

        # =======================================================================
        # Check 2: Jailbroken/rooted device
        # =======================================================================
        if fingerprint.is_jailbroken:
            signals.append(FraudSignal.create(
                FraudSignalType.JAILBROKEN_DEVICE,
                "Jailbroken or rooted device",
                now,
            ))

        # =======================================================================
        # Check 3: Duplicate device fingerprint
        # =======================================================================
        matches = await repository.find_device_matches(fingerprint.hash, limit=self.match_limit)
        other_users = sorted({m.user_id for m in matches} - {context.candidate_user_id})

        if other_users:
            signals.append(FraudSignal.create(
                FraudSignalType.DUPLICATE_DEVICE,
                f"Device fingerprint matches {len(other_users)} other account(s)",
                now,
                {
                    "matched_accounts": str(len(other_users)),
                    "matched_user_ids": ",".join(other_users),
                },
                scale=len(other_users),
            ))

        # =======================================================================
        # Check 4: Brand-new vendor identifier
        # =======================================================================
        if fingerprint.vendor_id != UNKNOWN:
            first_seen = await repository.vendor_first_seen(fingerprint.vendor_id)
            if first_seen is not None:
                age = now - first_seen
                # Signups backfilled from before the first sighting are not new devices
                if timedelta(0) <= age < self.new_device_window:
                    hours = age.total_seconds() / 3600
                    signals.append(FraudSignal.create(
                        FraudSignalType.SUSPICIOUS_DEVICE_AGE,
                        "Brand new device identifier",
                        now,
                        {"hours_since_first_seen": f"{hours:.2f}"},
                    ))

        return signals
