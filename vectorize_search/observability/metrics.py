"""Prometheus metrics for the Vectorize search engine.

Provides metrics instrumentation for:
- Cloudflare API call latency and counts
- Embedding request latency
- Search results (matches, scores)
- Flush sweeps (vectors deleted, iterations)

The host application exposes them with ``get_metrics()``.
"""

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    Counter,
    Histogram,
    generate_latest,
)

# Cloudflare API Metrics
REMOTE_CALL_DURATION = Histogram(
    "vectorize_remote_call_duration_seconds",
    "Cloudflare API call duration in seconds",
    ["operation", "status"],
    buckets=[0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

REMOTE_CALL_TOTAL = Counter(
    "vectorize_remote_calls_total",
    "Total Cloudflare API calls",
    ["operation", "status"],
)

# Embedding Metrics
EMBEDDING_REQUEST_DURATION = Histogram(
    "vectorize_embedding_request_duration_seconds",
    "Embedding request duration in seconds",
    ["model", "status"],
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0],
)

EMBEDDING_REQUEST_TOTAL = Counter(
    "vectorize_embedding_requests_total",
    "Total embedding requests",
    ["model", "status"],
)

# Search Metrics
SEARCH_MATCHES_RETURNED = Histogram(
    "vectorize_search_matches_returned",
    "Number of matches returned per search",
    buckets=[0, 1, 2, 5, 10, 20, 50, 100],
)

SEARCH_TOP_SCORE = Histogram(
    "vectorize_search_top_score",
    "Top similarity score per search",
    buckets=[0.1, 0.2, 0.3, 0.4, 0.5, 0.6, 0.7, 0.8, 0.9, 1.0],
)

# Flush Metrics
FLUSH_VECTORS_DELETED = Counter(
    "vectorize_flush_vectors_deleted_total",
    "Vectors deleted by flush sweeps",
    ["collection"],
)

FLUSH_ITERATIONS = Histogram(
    "vectorize_flush_iterations",
    "Sweep iterations per flush",
    buckets=[1, 2, 5, 10, 25, 50, 100, 500],
)


def get_metrics() -> bytes:
    """Generate Prometheus metrics output."""
    return generate_latest()


def get_metrics_content_type() -> str:
    """Get the content type for metrics response."""
    return CONTENT_TYPE_LATEST


def track_remote_call(
    operation: str,
    duration: float,
    success: bool = True,
) -> None:
    """Track a Cloudflare API call.

    Args:
        operation: Client operation name (insert, query, ...).
        duration: Call duration in seconds.
        success: Whether the call succeeded.
    """
    status = "success" if success else "error"

    REMOTE_CALL_DURATION.labels(operation=operation, status=status).observe(duration)
    REMOTE_CALL_TOTAL.labels(operation=operation, status=status).inc()


def track_embedding_request(
    model: str,
    duration: float,
    success: bool = True,
) -> None:
    """Track embedding request metrics.

    Args:
        model: Embedding model name.
        duration: Request duration in seconds.
        success: Whether the request succeeded.
    """
    status = "success" if success else "error"

    EMBEDDING_REQUEST_DURATION.labels(model=model, status=status).observe(duration)
    EMBEDDING_REQUEST_TOTAL.labels(model=model, status=status).inc()


def track_search_request(
    matches_returned: int,
    top_score: float,
) -> None:
    """Track search request metrics.

    Args:
        matches_returned: Number of matches returned.
        top_score: Highest similarity score.
    """
    SEARCH_MATCHES_RETURNED.observe(matches_returned)
    if top_score > 0:
        SEARCH_TOP_SCORE.observe(top_score)


def track_flush(
    collection: str,
    vectors_deleted: int,
    iterations: int,
) -> None:
    """Track a completed flush sweep.

    Args:
        collection: Flushed collection name.
        vectors_deleted: Vectors deleted by the sweep.
        iterations: Query/delete iterations performed.
    """
    FLUSH_VECTORS_DELETED.labels(collection=collection).inc(vectors_deleted)
    FLUSH_ITERATIONS.observe(iterations)
