"""Observability module for metrics and monitoring."""

from vectorize_search.observability.metrics import (
    get_metrics,
    track_embedding_request,
    track_flush,
    track_remote_call,
    track_search_request,
)

__all__ = [
    "get_metrics",
    "track_embedding_request",
    "track_flush",
    "track_remote_call",
    "track_search_request",
]
