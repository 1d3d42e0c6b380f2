"""Prometheus metrics for itinerary generation and enrichment."""

from prometheus_client import Counter, Histogram

generation_latency_ms = Histogram(
    "itinerary_generation_latency_ms",
    "End-to-end itinerary generation latency in milliseconds",
    ["outcome"],
    buckets=[500, 1000, 2000, 5000, 10000, 20000, 40000, 80000],
)

generations_total = Counter(
    "itinerary_generations_total",
    "Total itinerary generation runs",
    ["outcome"],
)

stream_events_total = Counter(
    "itinerary_stream_events_total",
    "Total stream events emitted",
    ["kind"],
)

photo_resolutions_total = Counter(
    "itinerary_photo_resolutions_total",
    "Total photo resolution attempts",
    ["source", "outcome"],
)

enrichment_soft_failures_total = Counter(
    "itinerary_enrichment_soft_failures_total",
    "Total absorbed enrichment step failures",
    ["step"],
)


class PrometheusPipelineMetrics:
    """Prometheus-based pipeline metrics implementation."""

    def record_generation(self, outcome: str, latency_ms: float) -> None:
        """Record a finished generation run."""
        generations_total.labels(outcome=outcome).inc()
        generation_latency_ms.labels(outcome=outcome).observe(latency_ms)

    def inc_event(self, kind: str) -> None:
        """Increment emitted event counter."""
        stream_events_total.labels(kind=kind).inc()

    def inc_photo(self, source: str, outcome: str) -> None:
        """Increment photo resolution counter."""
        photo_resolutions_total.labels(source=source, outcome=outcome).inc()

    def inc_soft_failure(self, step: str) -> None:
        """Increment enrichment soft failure counter."""
        enrichment_soft_failures_total.labels(step=step).inc()


pipeline_metrics = PrometheusPipelineMetrics()
