"""
Network Signal Detection

Detects network-level evidence:
1. Many signups from one IP (account farming behind one connection)
2. Datacenter/hosting IPs (scripts running in the cloud)
3. VPN, proxy and country mismatch (only when the host supplies an
   external IP classification; the engine never geolocates)
"""

from datetime import timedelta
from typing import Optional

from ..config import settings, ReferenceDataLoader
from ..evidence import EvidenceRepository
from ..schemas import FraudSignal, FraudSignalType, SignalCategory, SignupContext
from .detector import BaseDetector


class NetworkDetector(BaseDetector):
    """Detects shared-IP, datacenter and anonymized network signals."""

    category = SignalCategory.NETWORK

    def __init__(
        self,
        reference: Optional[ReferenceDataLoader] = None,
        duplicate_ip_window: Optional[timedelta] = None,
    ):
        """
        Initialize detector.

        Args:
            reference: Loader holding datacenter IP prefixes (defaults to built-ins)
            duplicate_ip_window: Window for counting signups per IP
        """
        self.reference = reference if reference is not None else ReferenceDataLoader()
        self.duplicate_ip_window = (
            timedelta(hours=settings.duplicate_ip_window_hours)
            if duplicate_ip_window is None else duplicate_ip_window
        )

    async def detect(
        self,
        context: SignupContext,
        repository: EvidenceRepository,
    ) -> list[FraudSignal]:
        """Run network detection. No IP means nothing to check."""
        ip = (context.ip_address or "").strip()
        if not ip:
            return []

        now = context.occurred_at
        network = context.network
        signals: list[FraudSignal] = []

        # =======================================================================
        # Check 1: Several signups from the same IP
        # =======================================================================
        signup_count = await repository.recent_signups_by_ip(ip, self.duplicate_ip_window, now)

        if signup_count > 1:
            window_hours = int(self.duplicate_ip_window.total_seconds() // 3600)
            signals.append(FraudSignal.create(
                FraudSignalType.DUPLICATE_IP,
                f"{signup_count} signups from same IP in {window_hours}h",
                now,
                {"ip_address": ip, "signup_count": str(signup_count)},
                scale=signup_count - 1,
            ))

        # =======================================================================
        # Check 2: Datacenter / hosting IP
        # =======================================================================
        if self.reference.data.is_datacenter_ip(ip) or (network and network.is_datacenter):
            signals.append(FraudSignal.create(
                FraudSignalType.DATACENTER_IP,
                "IP appears to be from datacenter or VPN",
                now,
                {"ip_address": ip},
            ))

        # =======================================================================
        # Check 3: External classification
        # =======================================================================
        if network is not None:
            if network.is_vpn:
                signals.append(FraudSignal.create(
                    FraudSignalType.VPN_DETECTED,
                    "IP classified as VPN exit",
                    now,
                    {"ip_address": ip},
                ))

            if network.is_proxy:
                signals.append(FraudSignal.create(
                    FraudSignalType.PROXY_DETECTED,
                    "IP classified as proxy",
                    now,
                    {"ip_address": ip},
                ))

            if network.country_mismatch:
                signals.append(FraudSignal.create(
                    FraudSignalType.IP_COUNTRY_MISMATCH,
                    f"IP country {network.ip_country} differs from declared {network.declared_country}",
                    now,
                    {
                        "ip_country": network.ip_country or "",
                        "declared_country": network.declared_country or "",
                    },
                ))

        return signals
