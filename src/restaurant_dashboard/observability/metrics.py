"""Custom metrics for the dashboard client."""

from opentelemetry import metrics

meter = metrics.get_meter("dashboard-client")

refresh_success_counter = meter.create_counter(
    name="display_refresh_success_total",
    description="Successful display-screen collection refreshes by collection",
    unit="1",
)

refresh_failure_counter = meter.create_counter(
    name="display_refresh_failure_total",
    description="Failed display-screen collection refreshes by collection",
    unit="1",
)

refresh_duration_histogram = meter.create_histogram(
    name="display_refresh_duration_seconds",
    description="Duration of display-screen collection refreshes",
    unit="s",
)

api_call_duration_histogram = meter.create_histogram(
    name="dashboard_api_call_duration_seconds",
    description="Response time of dashboard API calls by operation",
    unit="s",
)

cache_hit_counter = meter.create_counter(
    name="query_cache_hits_total",
    description="Queries answered from cache or joined to an in-flight request",
    unit="1",
)


def record_refresh_success(collection: str, duration_seconds: float) -> None:
    """Record a successful refresh of one display collection.

    Args:
        collection: Collection name (products, categories, offers, discounts)
        duration_seconds: Duration in seconds
    """
    refresh_success_counter.add(1, {"collection": collection})
    refresh_duration_histogram.record(duration_seconds, {"collection": collection})


def record_refresh_failure(collection: str, error_type: str) -> None:
    """Record a failed refresh of one display collection."""
    refresh_failure_counter.add(1, {"collection": collection, "error_type": error_type})


def record_api_call(method: str, path: str, duration_seconds: float) -> None:
    """Record the duration of a dashboard API call.

    Args:
        method: HTTP method
        path: Request path template, without ids
        duration_seconds: Duration in seconds
    """
    api_call_duration_histogram.record(duration_seconds, {"method": method, "path": path})


def record_cache_hit(kind: str) -> None:
    """Record a query served without a new request ("fresh" or "in_flight")."""
    cache_hit_counter.add(1, {"kind": kind})
