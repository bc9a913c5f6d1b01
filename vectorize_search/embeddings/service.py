"""Embedding service interface and Workers AI implementation."""

import time
from abc import ABC, abstractmethod

import httpx

from vectorize_search.cloudflare import (
    account_url,
    auth_headers,
    build_http_client,
    format_errors,
    upstream_errors,
)
from vectorize_search.config import CloudflareSettings, get_settings
from vectorize_search.embeddings.models import EmbeddingResult
from vectorize_search.exceptions import EmbeddingError, ErrorCode
from vectorize_search.logging_config import get_logger
from vectorize_search.observability.metrics import track_embedding_request

logger = get_logger(__name__)

# Known Workers AI model dimensions; the Vectorize index must match.
MODEL_DIMENSIONS = {
    "@cf/baai/bge-small-en-v1.5": 384,
    "@cf/baai/bge-base-en-v1.5": 768,
    "@cf/baai/bge-large-en-v1.5": 1024,
}

DEFAULT_DIMENSIONS = 768


def dimensions_for_model(model: str) -> int:
    """Vector dimensions produced by an embedding model.

    Unknown models are assumed to produce the base model's 768 dimensions.
    """
    return MODEL_DIMENSIONS.get(model, DEFAULT_DIMENSIONS)


class EmbeddingService(ABC):
    """Abstract base class for embedding services.

    Defines the interface for generating text embeddings.
    """

    @abstractmethod
    async def embed(self, text: str) -> EmbeddingResult:
        """Generate embedding for a single text.

        Args:
            text: Text to embed.

        Returns:
            EmbeddingResult with vector.

        Raises:
            EmbeddingError: If embedding fails.
        """
        ...

    @property
    @abstractmethod
    def model_name(self) -> str:
        """Get the model name used for embeddings."""
        ...

    @property
    @abstractmethod
    def dimensions(self) -> int:
        """Get the embedding dimensions."""
        ...


class WorkersAIEmbeddingService(EmbeddingService):
    """Embedding service backed by Cloudflare Workers AI.

    Sends one text per request to ``/ai/run/{model}``.
    """

    def __init__(
        self,
        settings: CloudflareSettings | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the Workers AI embedding service.

        Args:
            settings: Cloudflare configuration. Uses defaults if not provided.
            client: HTTP client. Creates new one if not provided.
        """
        self._settings = settings or get_settings().cloudflare
        self._client = client
        self._owns_client = client is None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = build_http_client(self._settings)
        return self._client

    async def close(self) -> None:
        """Close the HTTP client if we own it."""
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    @property
    def model_name(self) -> str:
        """Get the model name."""
        return self._settings.embedding_model

    @property
    def dimensions(self) -> int:
        """Get embedding dimensions."""
        return dimensions_for_model(self._settings.embedding_model)

    @property
    def url(self) -> str:
        """Workers AI endpoint for the configured model."""
        return f"{account_url(self._settings)}/ai/run/{self._settings.embedding_model}"

    async def embed(self, text: str) -> EmbeddingResult:
        """Generate embedding for a single text.

        Args:
            text: Text to embed.

        Returns:
            EmbeddingResult with vector.

        Raises:
            EmbeddingError: If the request fails or the response has no vector.
        """
        client = await self._get_client()
        model = self._settings.embedding_model
        started = time.perf_counter()

        try:
            response = await client.post(
                self.url,
                json={"text": [text]},
                headers=auth_headers(self._settings),
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            errors = upstream_errors(e.response)
            track_embedding_request(model, time.perf_counter() - started, success=False)
            logger.error(
                f"Embedding request failed: {status}",
                extra={"status": status, "text_length": len(text)},
            )
            message = f"Workers AI returned {status}"
            if errors:
                message = f"{message}: {format_errors(errors)}"
            raise EmbeddingError(
                message,
                code=ErrorCode.EMBEDDING_SERVICE_ERROR,
                details={"status_code": status, "errors": errors},
            ) from e
        except httpx.RequestError as e:
            track_embedding_request(model, time.perf_counter() - started, success=False)
            logger.error(
                f"Embedding request error: {e}",
                extra={"text_length": len(text)},
            )
            raise EmbeddingError(
                f"Failed to connect to Workers AI: {e}",
                code=ErrorCode.EMBEDDING_SERVICE_ERROR,
                details={"url": self.url},
            ) from e

        try:
            data = response.json()
            embedding = data["result"]["data"][0]
            result = EmbeddingResult(text=text, embedding=embedding, model=model)
        except (KeyError, IndexError, TypeError, ValueError) as e:
            track_embedding_request(model, time.perf_counter() - started, success=False)
            raise EmbeddingError(
                "Invalid response format from Workers AI",
                code=ErrorCode.EMBEDDING_SERVICE_ERROR,
                details={"error": str(e)},
            ) from e

        track_embedding_request(model, time.perf_counter() - started)
        return result
