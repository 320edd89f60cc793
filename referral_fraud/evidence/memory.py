"""
In-memory Evidence Repository

Dict-backed implementation of the repository port. Used by the
test-suite and for local runs without Redis/PostgreSQL. Not shared
across processes.
"""

from collections import defaultdict
from datetime import datetime, timedelta, UTC
from typing import Optional

from ..schemas import DeviceFingerprint, DeviceMatch, FraudAssessment
from ..utils import ensure_utc
from .repository import EvidenceRepository


def _in_window(ts: datetime, within: timedelta, as_of: datetime) -> bool:
    as_of = ensure_utc(as_of)
    return as_of - within < ts <= as_of


class InMemoryEvidenceRepository(EvidenceRepository):
    """Evidence repository holding everything in process memory."""

    def __init__(self):
        # fingerprint hash -> {user_id: first_seen}
        self.device_users: dict[str, dict[str, datetime]] = defaultdict(dict)
        self.vendor_seen: dict[str, datetime] = {}
        self.fingerprints: dict[str, tuple[DeviceFingerprint, str]] = {}

        self.ip_signups: dict[str, list[tuple[str, datetime]]] = defaultdict(list)
        self.referrals_by_referrer: dict[str, list[tuple[str, datetime]]] = defaultdict(list)
        self.referrer_of: dict[str, str] = {}
        self.email_accounts: dict[str, set[str]] = defaultdict(set)

        self.assessments: dict[str, FraudAssessment] = {}
        self.reviews: dict[str, dict] = {}

    # =========================================================================
    # Detector reads
    # =========================================================================

    async def find_device_matches(self, fingerprint_hash: str, limit: int = 5) -> list[DeviceMatch]:
        users = self.device_users.get(fingerprint_hash, {})
        ordered = sorted(users.items(), key=lambda item: item[1])
        return [
            DeviceMatch(user_id=user_id, first_seen_at=first_seen)
            for user_id, first_seen in ordered[:limit]
        ]

    async def vendor_first_seen(self, vendor_id: str) -> Optional[datetime]:
        return self.vendor_seen.get(vendor_id)

    async def recent_signups_by_ip(self, ip_address: str, within: timedelta, as_of: datetime) -> int:
        return sum(
            1 for _, ts in self.ip_signups.get(ip_address, [])
            if _in_window(ts, within, as_of)
        )

    async def recent_referrals_by_referrer(self, referrer_id: str, within: timedelta, as_of: datetime) -> int:
        return sum(
            1 for _, ts in self.referrals_by_referrer.get(referrer_id, [])
            if _in_window(ts, within, as_of)
        )

    async def similar_email_accounts(self, normalized_email: str, exclude_user_id: Optional[str] = None) -> int:
        accounts = self.email_accounts.get(normalized_email, set())
        return len(accounts - {exclude_user_id}) if exclude_user_id else len(accounts)

    async def find_referrer_of(self, user_id: str) -> Optional[str]:
        return self.referrer_of.get(user_id)

    # =========================================================================
    # Assessor writes
    # =========================================================================

    async def persist_assessment(self, assessment: FraudAssessment) -> None:
        self.assessments[assessment.assessment_id] = assessment

    async def persist_fingerprint(self, fingerprint: DeviceFingerprint, user_id: str) -> None:
        self.fingerprints[fingerprint.fingerprint_id] = (fingerprint, user_id)
        self.device_users[fingerprint.hash].setdefault(user_id, fingerprint.created_at)

        first_seen = self.vendor_seen.get(fingerprint.vendor_id)
        if first_seen is None or fingerprint.created_at < first_seen:
            self.vendor_seen[fingerprint.vendor_id] = fingerprint.created_at

    # =========================================================================
    # Review queries
    # =========================================================================

    async def assessment_history(self, user_id: str, limit: int = 10) -> list[FraudAssessment]:
        matching = [a for a in self.assessments.values() if a.user_id == user_id]
        matching.sort(key=lambda a: a.assessed_at, reverse=True)
        return matching[:limit]

    async def flagged_assessments(self, limit: int = 50) -> list[FraudAssessment]:
        flagged = [a for a in self.assessments.values() if a.review_required]
        flagged.sort(key=lambda a: a.assessed_at, reverse=True)
        return flagged[:limit]

    async def mark_reviewed(self, assessment_id: str, approved: bool, reviewer_notes: str = "") -> bool:
        assessment = self.assessments.get(assessment_id)
        if assessment is None:
            return False

        self.assessments[assessment_id] = assessment.model_copy(update={"review_required": False})
        self.reviews[assessment_id] = {
            "reviewed_at": datetime.now(UTC),
            "review_approved": approved,
            "reviewer_notes": reviewer_notes,
        }
        return True

    # =========================================================================
    # Host writes
    # =========================================================================

    async def record_signup(self, user_id: str, ip_address: str, occurred_at: datetime) -> None:
        self.ip_signups[ip_address].append((user_id, ensure_utc(occurred_at)))

    async def record_referral(self, referrer_id: str, referred_id: str, created_at: datetime) -> None:
        self.referrals_by_referrer[referrer_id].append((referred_id, ensure_utc(created_at)))
        # First recorded referrer wins
        self.referrer_of.setdefault(referred_id, referrer_id)

    async def record_account(self, user_id: str, normalized_email: str) -> None:
        self.email_accounts[normalized_email].add(user_id)
