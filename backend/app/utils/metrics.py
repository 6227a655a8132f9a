"""Prometheus metrics for document operations and the data stream."""

from prometheus_client import Counter, Histogram

# Document handler metrics
document_operation_latency_ms = Histogram(
    "document_operation_latency_ms",
    "Document create/update latency in milliseconds",
    ["kind", "operation", "outcome"],
    buckets=[50, 100, 250, 500, 1000, 2000, 4000, 8000, 16000, 32000],
)

document_versions_saved_total = Counter(
    "document_versions_saved_total",
    "Total document versions persisted",
    ["kind"],
)

# Stream metrics
stream_events_total = Counter(
    "stream_events_total",
    "Total data stream events written",
    ["type"],
)

suggestions_generated_total = Counter(
    "suggestions_generated_total",
    "Total suggestions generated for documents",
)


class PrometheusDocumentMetrics:
    """Prometheus-based document metrics implementation."""

    def record_latency(self, kind: str, operation: str, outcome: str, latency_ms: float) -> None:
        """Record document operation latency."""
        document_operation_latency_ms.labels(kind=kind, operation=operation, outcome=outcome).observe(latency_ms)

    def inc_version_saved(self, kind: str) -> None:
        """Increment saved-version counter."""
        document_versions_saved_total.labels(kind=kind).inc()

    def inc_stream_event(self, event_type: str) -> None:
        """Increment stream event counter."""
        stream_events_total.labels(type=event_type).inc()

    def inc_suggestions(self, count: int = 1) -> None:
        """Increment generated-suggestion counter."""
        suggestions_generated_total.inc(count)
