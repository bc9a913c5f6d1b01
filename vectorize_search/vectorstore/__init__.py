"""Vector store module."""

from vectorize_search.vectorstore.client import VectorizeClient
from vectorize_search.vectorstore.models import (
    Document,
    IndexDescription,
    Match,
    MetadataIndex,
    VectorRecord,
)

__all__ = [
    "Document",
    "IndexDescription",
    "Match",
    "MetadataIndex",
    "VectorRecord",
    "VectorizeClient",
]
