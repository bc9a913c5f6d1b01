"""Cloudflare Vectorize search engine for searchable records."""

from vectorize_search.engine import (
    MappingRecord,
    RecordRepository,
    SearchableRecord,
    SearchQuery,
    SearchResults,
    TextMappingRecord,
    TextSearchableRecord,
    VectorizeEngine,
)
from vectorize_search.vectorstore import VectorizeClient

__version__ = "0.1.0"

__all__ = [
    "MappingRecord",
    "RecordRepository",
    "SearchQuery",
    "SearchResults",
    "SearchableRecord",
    "TextMappingRecord",
    "TextSearchableRecord",
    "VectorizeClient",
    "VectorizeEngine",
    "__version__",
]
