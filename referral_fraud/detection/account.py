"""
Account Signal Detection

Detects account-level evidence:
1. Disposable email domains (throwaway mailboxes)
2. Aliased emails (john+1@gmail.com, j.ohn@gmail.com) pointing at a
   mailbox that already owns an account
"""

from typing import Optional

from ..config import ReferenceDataLoader
from ..evidence import EvidenceRepository
from ..features import email_domain, normalize_email, split_email
from ..schemas import FraudSignal, FraudSignalType, SignalCategory, SignupContext
from .detector import BaseDetector

# The candidate plus at least one existing account
MIN_SHARED_ACCOUNTS = 2


class AccountDetector(BaseDetector):
    """Detects disposable and look-alike email signals."""

    category = SignalCategory.ACCOUNT

    def __init__(self, reference: Optional[ReferenceDataLoader] = None):
        self.reference = reference if reference is not None else ReferenceDataLoader()

    async def detect(
        self,
        context: SignupContext,
        repository: EvidenceRepository,
    ) -> list[FraudSignal]:
        """Run account detection. Malformed emails are not applicable."""
        if split_email(context.email) is None:
            return []

        now = context.occurred_at
        signals: list[FraudSignal] = []

        domain = email_domain(context.email)
        if self.reference.data.is_disposable_domain(domain):
            signals.append(FraudSignal.create(
                FraudSignalType.DISPOSABLE_EMAIL,
                "Disposable email domain detected",
                now,
                {"domain": domain},
            ))

        normalized = normalize_email(context.email)
        existing = await repository.similar_email_accounts(
            normalized, exclude_user_id=context.candidate_user_id
        )
        shared = existing + 1

        if shared >= MIN_SHARED_ACCOUNTS:
            signals.append(FraudSignal.create(
                FraudSignalType.SIMILAR_USERNAMES,
                "Similar email pattern detected",
                now,
                {"normalized_email": normalized, "similar_count": str(shared)},
            ))

        return signals
