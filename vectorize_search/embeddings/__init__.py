"""Embedding service module."""

from vectorize_search.embeddings.models import EmbeddingResult
from vectorize_search.embeddings.service import (
    DEFAULT_DIMENSIONS,
    MODEL_DIMENSIONS,
    EmbeddingService,
    WorkersAIEmbeddingService,
    dimensions_for_model,
)

__all__ = [
    "DEFAULT_DIMENSIONS",
    "MODEL_DIMENSIONS",
    "EmbeddingResult",
    "EmbeddingService",
    "WorkersAIEmbeddingService",
    "dimensions_for_model",
]
