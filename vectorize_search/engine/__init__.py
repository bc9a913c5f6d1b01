"""Search engine adapter module."""

from vectorize_search.engine.engine import VectorizeEngine, flatten_fields
from vectorize_search.engine.query import SearchQuery, SearchResults
from vectorize_search.engine.records import (
    MappingRecord,
    RecordRepository,
    SearchableRecord,
    TextMappingRecord,
    TextSearchableRecord,
    vector_id,
)

__all__ = [
    "MappingRecord",
    "RecordRepository",
    "SearchQuery",
    "SearchResults",
    "SearchableRecord",
    "TextMappingRecord",
    "TextSearchableRecord",
    "VectorizeEngine",
    "flatten_fields",
    "vector_id",
]
