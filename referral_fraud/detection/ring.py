"""
Referral Ring Detection

Detects circular referral rings (A refers B, B refers C, C refers A)
by walking the referral chain backwards from the proposed referrer.

The walk is breadth-first over `find_referrer_of`, bounded by a fixed
number of hops, so it costs at most one repository read per hop.
A visited set guards against malformed data (self-loops, duplicated
edges) sending the walk round in circles.
"""

from collections import deque

from ..evidence import EvidenceRepository


class ReferralRingDetector:
    """Bounded-depth cycle detection over the referral graph."""

    def __init__(self, max_depth: int = 3):
        """
        Initialize ring detector.

        Args:
            max_depth: Max hops walked up the referrer chain
        """
        self.max_depth = max_depth

    async def detect_ring(
        self,
        candidate_user_id: str,
        referrer_id: str,
        repository: EvidenceRepository,
    ) -> bool:
        """
        Check whether accepting this referral would close a ring.

        Args:
            candidate_user_id: User being referred
            referrer_id: Proposed referrer
            repository: Source of referral edges

        Returns:
            True if the candidate appears up the referrer's chain
        """
        # Self-referral is the smallest possible ring
        if referrer_id == candidate_user_id:
            return True

        visited: set[str] = set()
        queue = deque([referrer_id])

        for _ in range(self.max_depth):
            if not queue:
                break

            current = queue.popleft()
            if current in visited:
                continue
            visited.add(current)

            if current == candidate_user_id and len(visited) > 1:
                return True

            next_referrer = await repository.find_referrer_of(current)
            if next_referrer is not None and next_referrer not in visited:
                queue.append(next_referrer)

        return False
