"""
Referral Ring Detection Tests

Tests for bounded-depth cycle detection over the referral graph.
"""

import pytest

from referral_fraud.detection import ReferralRingDetector
from referral_fraud.evidence import InMemoryEvidenceRepository


def _graph(edges: dict[str, str]) -> InMemoryEvidenceRepository:
    """Build a repository from {referred: referrer} edges."""
    repository = InMemoryEvidenceRepository()
    repository.referrer_of.update(edges)
    return repository


class TestReferralRingDetector:
    """Tests for ReferralRingDetector."""

    @pytest.mark.asyncio
    async def test_three_node_cycle(self):
        """A refers B, B refers C, C refers A: C referring A closes the ring."""
        repository = _graph({"B": "A", "C": "B", "A": "C"})

        assert await ReferralRingDetector(max_depth=3).detect_ring("A", "C", repository) is True

    @pytest.mark.asyncio
    async def test_linear_chain_no_ring(self):
        repository = _graph({"E": "D", "F": "E", "G": "F"})

        assert await ReferralRingDetector(max_depth=3).detect_ring("X", "G", repository) is False

    @pytest.mark.asyncio
    async def test_ring_beyond_depth_not_found(self):
        """The candidate sits five hops up; a 3-hop walk stops short."""
        repository = _graph({"B": "A", "C": "B", "D": "C", "E": "D"})

        assert await ReferralRingDetector(max_depth=3).detect_ring("A", "E", repository) is False
        assert await ReferralRingDetector(max_depth=5).detect_ring("A", "E", repository) is True

    @pytest.mark.asyncio
    async def test_self_referral_at_depth_one(self):
        repository = _graph({"A": "A"})

        assert await ReferralRingDetector(max_depth=1).detect_ring("A", "A", repository) is True

    @pytest.mark.asyncio
    async def test_self_loop_data_terminates(self):
        """A malformed self-loop elsewhere in the graph can't spin the walk."""
        repository = _graph({"X": "X"})

        assert await ReferralRingDetector(max_depth=3).detect_ring("A", "X", repository) is False

    @pytest.mark.asyncio
    async def test_chain_end_stops_walk(self):
        repository = _graph({})

        assert await ReferralRingDetector(max_depth=3).detect_ring("A", "B", repository) is False

    @pytest.mark.asyncio
    async def test_repository_calls_bounded_by_depth(self):
        """One referrer lookup per hop at most."""

        class CountingRepository(InMemoryEvidenceRepository):
            def __init__(self):
                super().__init__()
                self.calls = 0

            async def find_referrer_of(self, user_id):
                self.calls += 1
                return await super().find_referrer_of(user_id)

        repository = CountingRepository()
        repository.referrer_of.update({f"n{i}": f"n{i + 1}" for i in range(20)})

        await ReferralRingDetector(max_depth=3).detect_ring("candidate", "n0", repository)

        assert repository.calls <= 3
