"""Tests for embedding service."""

import json
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from tests.helpers import RecordingHandler, failure, ok
from vectorize_search.config import CloudflareSettings
from vectorize_search.embeddings.models import EmbeddingResult
from vectorize_search.embeddings.service import (
    WorkersAIEmbeddingService,
    dimensions_for_model,
)
from vectorize_search.exceptions import EmbeddingError, ErrorCode

MODEL_SUFFIX = "/ai/run/@cf/baai/bge-base-en-v1.5"


class TestEmbeddingResult:
    """Tests for EmbeddingResult model."""

    def test_dimensions_follow_vector(self) -> None:
        """Dimensions are the vector length."""
        result = EmbeddingResult(text="test", embedding=[0.1, 0.2, 0.3], model="test-model")
        assert result.dimensions == 3

    def test_empty_vector_rejected(self) -> None:
        """An empty vector is invalid."""
        with pytest.raises(ValueError, match="empty"):
            EmbeddingResult(text="test", embedding=[], model="test-model")


class TestDimensionsForModel:
    """Tests for the model dimension table."""

    @pytest.mark.parametrize(
        ("model", "expected"),
        [
            ("@cf/baai/bge-small-en-v1.5", 384),
            ("@cf/baai/bge-base-en-v1.5", 768),
            ("@cf/baai/bge-large-en-v1.5", 1024),
            ("@cf/unknown/model", 768),
        ],
    )
    def test_known_and_unknown_models(self, model: str, expected: int) -> None:
        """Known models map to their size; unknown models get 768."""
        assert dimensions_for_model(model) == expected


class TestWorkersAIEmbeddingService:
    """Tests for WorkersAIEmbeddingService."""

    def test_model_name(self, cloudflare_settings: CloudflareSettings) -> None:
        """Service returns configured model name."""
        service = WorkersAIEmbeddingService(settings=cloudflare_settings)
        assert service.model_name == "@cf/baai/bge-base-en-v1.5"
        assert service.dimensions == 768

    def test_url(self, cloudflare_settings: CloudflareSettings) -> None:
        """Endpoint is the account's Workers AI run URL for the model."""
        service = WorkersAIEmbeddingService(settings=cloudflare_settings)
        assert service.url == (
            "https://api.test/client/v4/accounts/acct-123/ai/run/@cf/baai/bge-base-en-v1.5"
        )

    @pytest.mark.asyncio
    async def test_embed_single(self, cloudflare_settings: CloudflareSettings) -> None:
        """Single text embedding works."""
        mock_response = MagicMock()
        mock_response.json.return_value = {
            "success": True,
            "result": {"shape": [1, 3], "data": [[0.1, 0.2, 0.3]]},
        }
        mock_response.raise_for_status = MagicMock()

        mock_client = AsyncMock(spec=httpx.AsyncClient)
        mock_client.post.return_value = mock_response

        service = WorkersAIEmbeddingService(settings=cloudflare_settings, client=mock_client)
        result = await service.embed("test text")

        assert result.text == "test text"
        assert result.embedding == [0.1, 0.2, 0.3]
        assert result.model == "@cf/baai/bge-base-en-v1.5"

        _, kwargs = mock_client.post.call_args
        assert kwargs["json"] == {"text": ["test text"]}
        assert kwargs["headers"] == {"Authorization": "Bearer test-token"}

    @pytest.mark.asyncio
    async def test_embed_sends_request_to_model_endpoint(
        self,
        cloudflare_settings: CloudflareSettings,
        make_http_client,
    ) -> None:
        """The request goes to the model's run endpoint with one text."""
        handler = RecordingHandler({MODEL_SUFFIX: ok({"data": [[0.5, 0.5]]})})
        service = WorkersAIEmbeddingService(
            settings=cloudflare_settings,
            client=make_http_client(handler),
        )

        result = await service.embed("hello")

        assert result.embedding == [0.5, 0.5]
        request = handler.requests[0]
        assert request.method == "POST"
        assert request.url.path.endswith(MODEL_SUFFIX)
        assert json.loads(request.content) == {"text": ["hello"]}

    @pytest.mark.asyncio
    async def test_http_error_carries_upstream_errors(
        self,
        cloudflare_settings: CloudflareSettings,
        make_http_client,
    ) -> None:
        """Non-2xx responses raise EmbeddingError with status and errors."""
        handler = RecordingHandler({MODEL_SUFFIX: failure(400, "Input too long")})
        service = WorkersAIEmbeddingService(
            settings=cloudflare_settings,
            client=make_http_client(handler),
        )

        with pytest.raises(EmbeddingError) as exc_info:
            await service.embed("text")

        error = exc_info.value
        assert error.code == ErrorCode.EMBEDDING_SERVICE_ERROR
        assert error.status_code == 400
        assert error.errors == [{"code": 1000, "message": "Input too long"}]
        assert "Input too long" in error.message

    @pytest.mark.asyncio
    async def test_connection_error(self, cloudflare_settings: CloudflareSettings) -> None:
        """Connection errors raise EmbeddingError."""
        mock_client = AsyncMock(spec=httpx.AsyncClient)
        mock_client.post.side_effect = httpx.ConnectError("Connection refused")

        service = WorkersAIEmbeddingService(settings=cloudflare_settings, client=mock_client)

        with pytest.raises(EmbeddingError, match="Failed to connect"):
            await service.embed("test")

    @pytest.mark.parametrize(
        "body",
        [
            {"success": True, "result": {}},
            {"success": True, "result": {"data": []}},
            {"success": True, "result": None},
            {"success": True, "result": {"data": [["not", "numbers"]]}},
        ],
    )
    @pytest.mark.asyncio
    async def test_invalid_response_format(
        self,
        cloudflare_settings: CloudflareSettings,
        body: dict,
    ) -> None:
        """Responses without a vector raise EmbeddingError."""
        mock_response = MagicMock()
        mock_response.json.return_value = body
        mock_response.raise_for_status = MagicMock()

        mock_client = AsyncMock(spec=httpx.AsyncClient)
        mock_client.post.return_value = mock_response

        service = WorkersAIEmbeddingService(settings=cloudflare_settings, client=mock_client)

        with pytest.raises(EmbeddingError, match="Invalid response format"):
            await service.embed("test")

    @pytest.mark.asyncio
    async def test_close_leaves_injected_client_open(
        self,
        cloudflare_settings: CloudflareSettings,
    ) -> None:
        """An injected client is not closed by the service."""
        mock_client = AsyncMock(spec=httpx.AsyncClient)
        service = WorkersAIEmbeddingService(settings=cloudflare_settings, client=mock_client)

        await service.close()

        mock_client.aclose.assert_not_called()
