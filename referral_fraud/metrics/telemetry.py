"""
Audit sinks for assessment summaries.

Every assessment emits one AssessmentSummary. Sinks receive it
fire-and-forget; a slow or failing sink never delays a decision.
The default sink is a lightweight in-memory ring buffer used by the
/metrics/summary endpoint.
"""

from abc import ABC, abstractmethod
from collections import deque
from datetime import datetime, UTC, timedelta
from statistics import mean
from typing import Deque, Dict

from ..config import settings
from ..schemas import AssessmentSummary


class AuditSink(ABC):
    """Receives one summary event per assessment."""

    @abstractmethod
    async def emit(self, summary: AssessmentSummary) -> None:
        ...


class AssessmentTelemetry(AuditSink):
    """Ring buffer of recent assessment summaries for dashboarding."""

    def __init__(self, maxlen: int = 2000) -> None:
        self._events: Deque[AssessmentSummary] = deque(maxlen=maxlen)

    async def emit(self, summary: AssessmentSummary) -> None:
        self.record(summary)

    def record(self, summary: AssessmentSummary) -> None:
        self._events.append(summary)

    def snapshot(self, hours: int = 24) -> dict:
        cutoff = datetime.now(UTC) - timedelta(hours=hours)
        events = [e for e in self._events if e.assessed_at >= cutoff]

        latencies = [e.latency_ms for e in events]
        decisions: Dict[str, int] = {}
        signal_counts: Dict[str, int] = {}
        for e in events:
            decisions[e.decision.value] = decisions.get(e.decision.value, 0) + 1
            for signal_type in e.signal_types:
                signal_counts[signal_type.value] = signal_counts.get(signal_type.value, 0) + 1

        p95 = None
        if latencies:
            latencies_sorted = sorted(latencies)
            index = int(round(0.95 * (len(latencies_sorted) - 1)))
            p95 = latencies_sorted[index]

        return {
            "window_hours": hours,
            "total": len(events),
            "counts": decisions,
            "signals": signal_counts,
            "review_required": sum(1 for e in events if e.review_required),
            "degraded": sum(1 for e in events if e.degraded),
            "avg_risk_score": mean(e.risk_score for e in events) if events else None,
            "avg_latency_ms": mean(latencies) if latencies else None,
            "p95_latency_ms": p95,
        }

    def __len__(self) -> int:
        return len(self._events)


telemetry = AssessmentTelemetry(maxlen=settings.telemetry_buffer_size)
