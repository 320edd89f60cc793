# Metrics Module
from .prometheus import metrics, setup_metrics
from .telemetry import AuditSink, AssessmentTelemetry, telemetry

__all__ = ["metrics", "setup_metrics", "AuditSink", "AssessmentTelemetry", "telemetry"]
