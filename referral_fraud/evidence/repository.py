"""
Evidence Repository Port

Abstract read/write interface to historical evidence:
device hashes, IP signup history, referral edges, the normalized
email index, and stored assessments.

The engine only depends on this interface. Reads are point-in-time
snapshots; a record written microseconds before a read may not be
visible yet (an accepted false-negative source).
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from typing import Optional

from ..schemas import DeviceFingerprint, DeviceMatch, FraudAssessment


class EvidenceRepository(ABC):
    """
    Port used by the detectors (reads) and the assessor (writes).

    Host-side writes (`record_*`) are not used by the assessment
    pipeline; they let the host application feed the evidence the
    detectors query.
    """

    # =========================================================================
    # Detector reads
    # =========================================================================

    @abstractmethod
    async def find_device_matches(
        self,
        fingerprint_hash: str,
        limit: int = 5,
    ) -> list[DeviceMatch]:
        """Users seen with this fingerprint hash, oldest first, at most `limit`."""

    @abstractmethod
    async def vendor_first_seen(self, vendor_id: str) -> Optional[datetime]:
        """When this vendor/install id was first seen, if ever."""

    @abstractmethod
    async def recent_signups_by_ip(
        self,
        ip_address: str,
        within: timedelta,
        as_of: datetime,
    ) -> int:
        """Signups from this IP in the window (as_of - within, as_of]."""

    @abstractmethod
    async def recent_referrals_by_referrer(
        self,
        referrer_id: str,
        within: timedelta,
        as_of: datetime,
    ) -> int:
        """Referrals made by this referrer in the window (as_of - within, as_of]."""

    @abstractmethod
    async def similar_email_accounts(
        self,
        normalized_email: str,
        exclude_user_id: Optional[str] = None,
    ) -> int:
        """Accounts registered under this normalized email."""

    @abstractmethod
    async def find_referrer_of(self, user_id: str) -> Optional[str]:
        """Who referred this user, if anyone."""

    # =========================================================================
    # Assessor writes
    # =========================================================================

    @abstractmethod
    async def persist_assessment(self, assessment: FraudAssessment) -> None:
        """Store a completed assessment."""

    @abstractmethod
    async def persist_fingerprint(self, fingerprint: DeviceFingerprint, user_id: str) -> None:
        """Associate a fingerprint with a user."""

    # =========================================================================
    # Review queries
    # =========================================================================

    @abstractmethod
    async def assessment_history(self, user_id: str, limit: int = 10) -> list[FraudAssessment]:
        """A user's assessments, newest first."""

    @abstractmethod
    async def flagged_assessments(self, limit: int = 50) -> list[FraudAssessment]:
        """Assessments still awaiting review, newest first."""

    @abstractmethod
    async def mark_reviewed(
        self,
        assessment_id: str,
        approved: bool,
        reviewer_notes: str = "",
    ) -> bool:
        """
        Record a reviewer outcome and clear the review flag.

        Returns:
            False if the assessment does not exist
        """

    # =========================================================================
    # Host writes
    # =========================================================================

    @abstractmethod
    async def record_signup(self, user_id: str, ip_address: str, occurred_at: datetime) -> None:
        """Record a signup from an IP."""

    @abstractmethod
    async def record_referral(self, referrer_id: str, referred_id: str, created_at: datetime) -> None:
        """Record a referral edge (referrer -> referred)."""

    @abstractmethod
    async def record_account(self, user_id: str, normalized_email: str) -> None:
        """Index an account under its normalized email."""
