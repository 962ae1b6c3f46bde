"""
Prometheus metrics of the Graphite readers and publishers.
Collected in the global REGISTRY; import this module at app startup.
"""

from prometheus_client import Counter, Histogram


# --- Poll Metrics ---

POLL_RECEIVED_RECORDS_TOTAL = Counter(
    "graphite_poll_received_records_total",
    "Total number of series received by the Graphite polling readers",
    ["reader"],
)

POLL_TIME_TO_RESPONSE_SECONDS = Histogram(
    "graphite_poll_time_to_response_seconds",
    "Duration of a render API query issued by a polling reader",
    ["reader"],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1, 2.5, 5, 10],
)

POLL_FAILURES_TOTAL = Counter(
    "graphite_poll_failures_total",
    "Total number of failed poll cycles",
    ["reader"],
)


# --- Publish Metrics ---

PUBLISH_RECORDS_TOTAL = Counter(
    "graphite_publish_records_total",
    "Total number of records sent to Carbon",
    ["protocol"],
)

PUBLISH_LATENCY_SECONDS = Histogram(
    "graphite_publish_latency_seconds",
    "Duration of a batch send to Carbon, pool checkout included",
    ["protocol"],
    buckets=[0.001, 0.0025, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1, 2.5],
)

PUBLISH_FAILURES_TOTAL = Counter(
    "graphite_publish_failures_total",
    "Total number of batches that could not be sent to Carbon",
    ["protocol"],
)


class MetricsRegistry:
    """Centralized metrics registry for the Graphite components.

    Readers and publishers take an optional instance; passing None disables
    recording.
    """

    poll_received_records_total = POLL_RECEIVED_RECORDS_TOTAL
    poll_time_to_response_seconds = POLL_TIME_TO_RESPONSE_SECONDS
    poll_failures_total = POLL_FAILURES_TOTAL
    publish_records_total = PUBLISH_RECORDS_TOTAL
    publish_latency_seconds = PUBLISH_LATENCY_SECONDS
    publish_failures_total = PUBLISH_FAILURES_TOTAL


# Singleton instance
metrics_registry = MetricsRegistry()
