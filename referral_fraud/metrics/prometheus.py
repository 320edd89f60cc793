"""
Prometheus Metrics

Defines all metrics exposed by the referral fraud engine.
Metrics cover:
- Assessment volume and outcomes
- Latency of the assessment pipeline and its stores
- Signal mix and detector health
- Persistence failures (decisions still returned)
"""

import logging

from prometheus_client import Counter, Histogram, Gauge, start_http_server

from ..config import settings

logger = logging.getLogger("referral_fraud.metrics")


class ReferralFraudMetrics:
    """
    Container for all Prometheus metrics.

    Organized by category:
    - Request metrics
    - Latency metrics
    - Decision metrics
    - Signal metrics
    - System metrics
    """

    def __init__(self):
        """Initialize all metrics."""

        # =====================================================================
        # Request Metrics
        # =====================================================================
        self.requests_total = Counter(
            "referral_fraud_requests_total",
            "Total number of API requests",
            labelnames=["endpoint"],
        )

        self.errors_total = Counter(
            "referral_fraud_errors_total",
            "Total number of errors",
            labelnames=["error_type"],
        )

        # =====================================================================
        # Latency Metrics
        # =====================================================================
        self.assessment_latency = Histogram(
            "referral_fraud_assessment_latency_ms",
            "End-to-end assessment latency in milliseconds",
            buckets=[5, 10, 25, 50, 75, 100, 150, 200, 300, 500, 1000],
        )

        self.detection_latency = Histogram(
            "referral_fraud_detection_latency_ms",
            "Concurrent detector fan-out latency in milliseconds",
            buckets=[2, 5, 10, 20, 30, 50, 75, 100, 250],
        )

        self.redis_latency = Histogram(
            "referral_fraud_redis_latency_ms",
            "Redis evidence operation latency in milliseconds",
            buckets=[1, 2, 5, 10, 20, 50],
        )

        self.postgres_latency = Histogram(
            "referral_fraud_postgres_latency_ms",
            "Assessment archive operation latency in milliseconds",
            buckets=[5, 10, 25, 50, 100, 250],
        )

        # =====================================================================
        # Decision Metrics
        # =====================================================================
        self.assessments_total = Counter(
            "referral_fraud_assessments_total",
            "Total number of assessments by decision",
            labelnames=["decision"],
        )

        self.review_required_total = Counter(
            "referral_fraud_review_required_total",
            "Assessments routed to human review",
        )

        self.degraded_assessments = Counter(
            "referral_fraud_degraded_assessments_total",
            "Assessments produced with at least one failed detector",
        )

        self.fallback_assessments = Counter(
            "referral_fraud_fallback_assessments_total",
            "Assessments replaced by the conservative default after an unexpected error",
        )

        self.risk_score_distribution = Histogram(
            "referral_fraud_risk_score",
            "Distribution of risk scores",
            buckets=[0.1, 0.2, 0.3, 0.4, 0.5, 0.6, 0.7, 0.8, 0.85, 0.9, 1.0],
        )

        # =====================================================================
        # Signal Metrics
        # =====================================================================
        self.signals_total = Counter(
            "referral_fraud_signals_total",
            "Number of signals emitted by type",
            labelnames=["signal_type"],
        )

        self.detector_failures = Counter(
            "referral_fraud_detector_failures_total",
            "Detector failures by category (category contributes no signals)",
            labelnames=["category"],
        )

        # =====================================================================
        # System Metrics
        # =====================================================================
        self.persistence_errors = Counter(
            "referral_fraud_persistence_errors_total",
            "Failed evidence writes after a decision was made",
            labelnames=["target"],
        )

        self.component_health = Gauge(
            "referral_fraud_component_health",
            "Component health status (1=healthy, 0=unhealthy)",
            labelnames=["component"],
        )


# Global metrics instance
metrics = ReferralFraudMetrics()


def setup_metrics() -> None:
    """
    Setup standalone Prometheus metrics server.

    Starts HTTP server on configured port to expose metrics.
    """
    if settings.metrics_enabled and settings.metrics_external_enabled:
        try:
            start_http_server(settings.metrics_port)
            logger.info("Metrics server started on port %d", settings.metrics_port)
        except Exception as e:
            logger.warning("Failed to start metrics server: %s", e)
