"""Cloudflare Vectorize client.

One HTTP call per operation, no retries and no client-side batching. Every
failure (non-2xx status, transport error, malformed body) surfaces as a
VectorStoreError carrying the upstream status and ``errors`` array.
"""

import time
from typing import Any

import httpx

from vectorize_search.cloudflare import (
    account_url,
    auth_headers,
    build_http_client,
    format_errors,
    upstream_errors,
)
from vectorize_search.config import CloudflareSettings, get_settings
from vectorize_search.embeddings.service import (
    EmbeddingService,
    WorkersAIEmbeddingService,
)
from vectorize_search.exceptions import (
    ErrorCode,
    RemoteCallError,
    VectorStoreError,
)
from vectorize_search.logging_config import get_logger
from vectorize_search.observability.metrics import track_remote_call
from vectorize_search.vectorstore.models import (
    Document,
    IndexDescription,
    Match,
    MetadataIndex,
    VectorRecord,
)

logger = get_logger(__name__)


class VectorizeClient:
    """Client for one Vectorize index plus its Workers AI embedding model."""

    def __init__(
        self,
        settings: CloudflareSettings | None = None,
        client: httpx.AsyncClient | None = None,
        embedding_service: EmbeddingService | None = None,
    ) -> None:
        """Initialize the Vectorize client.

        Args:
            settings: Cloudflare configuration.
            client: HTTP client (for testing). Shared with the default
                embedding service.
            embedding_service: Embedding backend. Defaults to Workers AI.
        """
        self._settings = settings or get_settings().cloudflare
        self._client = client
        self._owns_client = client is None
        self._embedding_service = embedding_service

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = build_http_client(self._settings)
        return self._client

    async def _get_embedding_service(self) -> EmbeddingService:
        if self._embedding_service is None:
            self._embedding_service = WorkersAIEmbeddingService(
                settings=self._settings,
                client=await self._get_client(),
            )
        return self._embedding_service

    async def close(self) -> None:
        """Close the HTTP client if we own it."""
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "VectorizeClient":
        return self

    async def __aexit__(self, *_exc: object) -> None:
        await self.close()

    @property
    def index_name(self) -> str:
        return self._settings.vectorize_index

    @property
    def embedding_model(self) -> str:
        return self._settings.embedding_model

    @property
    def indexes_url(self) -> str:
        """Collection URL for all Vectorize indexes of the account."""
        return f"{account_url(self._settings)}/vectorize/v2/indexes"

    @property
    def base_url(self) -> str:
        """URL of the configured index."""
        return f"{self.indexes_url}/{self.index_name}"

    async def _request(
        self,
        operation: str,
        method: str,
        url: str,
        payload: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Issue one API call and return the decoded JSON body.

        Raises:
            VectorStoreError: On any HTTP, transport or body failure.
        """
        client = await self._get_client()
        started = time.perf_counter()

        try:
            response = await client.request(
                method,
                url,
                json=payload,
                headers=auth_headers(self._settings),
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            track_remote_call(operation, time.perf_counter() - started, success=False)
            status = e.response.status_code
            errors = upstream_errors(e.response)
            logger.error(
                f"Vectorize {operation} failed: {status}",
                extra={"operation": operation, "status": status},
            )
            message = f"Vectorize {operation} returned {status}"
            if errors:
                message = f"{message}: {format_errors(errors)}"
            code = (
                ErrorCode.INDEX_NOT_FOUND
                if status == 404
                else ErrorCode.VECTOR_STORE_ERROR
            )
            raise VectorStoreError(
                message,
                code=code,
                details={
                    "operation": operation,
                    "status_code": status,
                    "errors": errors,
                },
            ) from e
        except httpx.RequestError as e:
            track_remote_call(operation, time.perf_counter() - started, success=False)
            logger.error(
                f"Vectorize {operation} error: {e}",
                extra={"operation": operation},
            )
            raise VectorStoreError(
                f"Failed to connect to Vectorize: {e}",
                details={"operation": operation, "url": url},
            ) from e

        try:
            body = response.json()
        except ValueError as e:
            track_remote_call(operation, time.perf_counter() - started, success=False)
            raise VectorStoreError(
                f"Invalid response from Vectorize {operation}: {e}",
                details={"operation": operation, "status_code": response.status_code},
            ) from e

        if not isinstance(body, dict) or body.get("success") is False:
            track_remote_call(operation, time.perf_counter() - started, success=False)
            errors = body.get("errors", []) if isinstance(body, dict) else []
            raise VectorStoreError(
                f"Vectorize {operation} failed: {format_errors(errors) or 'unexpected body'}",
                details={
                    "operation": operation,
                    "status_code": response.status_code,
                    "errors": errors,
                },
            )

        track_remote_call(operation, time.perf_counter() - started)
        return body

    @staticmethod
    def _result(body: dict[str, Any], operation: str) -> dict[str, Any]:
        """The ``result`` object of a response body; absent means empty."""
        result = body.get("result")
        if result is None:
            return {}
        if not isinstance(result, dict):
            raise VectorStoreError(
                f"Invalid response from Vectorize {operation}: result is not an object",
                details={"operation": operation, "result_type": type(result).__name__},
            )
        return result

    async def generate_embedding(self, text: str) -> list[float]:
        """Embed one text with the configured Workers AI model."""
        service = await self._get_embedding_service()
        try:
            result = await service.embed(text)
        except RemoteCallError:
            logger.error(
                "Error generating embedding",
                extra={"text_length": len(text)},
            )
            raise
        return result.embedding

    async def insert_vectors(self, vectors: list[VectorRecord]) -> dict[str, Any]:
        """Insert or overwrite vectors in one call.

        The caller must stay within the per-request batch limit.
        """
        body = await self._request(
            "insert",
            "POST",
            f"{self.base_url}/insert",
            {"vectors": [vector.model_dump() for vector in vectors]},
        )
        logger.debug(
            f"Inserted {len(vectors)} vectors",
            extra={"index": self.index_name},
        )
        return body

    async def upsert_document(
        self,
        id: str,
        text: str,
        metadata: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Embed and insert a single document."""
        return await self.batch_upsert(
            [Document(id=id, text=text, metadata=metadata or {})]
        )

    async def batch_upsert(self, documents: list[Document]) -> dict[str, Any]:
        """Embed each document, then insert all vectors in one call.

        Embedding calls are made one document at a time. A failure partway
        aborts the batch without inserting anything.
        """
        if not documents:
            return {}

        vectors = []
        for document in documents:
            values = await self.generate_embedding(document.text)
            vectors.append(
                VectorRecord(
                    id=document.id,
                    values=values,
                    metadata=document.metadata,
                )
            )

        return await self.insert_vectors(vectors)

    async def query_vectors(
        self,
        vector: list[float],
        top_k: int = 5,
        filter: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Run a similarity query and return the raw response body.

        An empty or missing filter is left out of the payload entirely.
        """
        payload: dict[str, Any] = {
            "vector": vector,
            "topK": top_k,
            "returnMetadata": "all",
        }
        if filter:
            payload["filter"] = filter

        return await self._request("query", "POST", f"{self.base_url}/query", payload)

    async def query(
        self,
        vector: list[float],
        top_k: int = 5,
        filter: dict[str, Any] | None = None,
    ) -> list[Match]:
        """Run a similarity query and return its matches in rank order."""
        body = await self.query_vectors(vector, top_k, filter)
        matches = self._result(body, "query").get("matches") or []

        try:
            return [
                Match(
                    id=match["id"],
                    score=match.get("score") or 0.0,
                    metadata=match.get("metadata") or {},
                )
                for match in matches
            ]
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise VectorStoreError(
                f"Invalid match in Vectorize query response: {e}",
                details={"operation": "query", "error": str(e)},
            ) from e

    async def search(
        self,
        query: str,
        top_k: int = 5,
        filter: dict[str, Any] | None = None,
    ) -> list[Match]:
        """Embed a text query and return the most similar vectors."""
        vector = await self.generate_embedding(query)
        return await self.query(vector, top_k, filter)

    async def delete_vectors(self, ids: list[str]) -> dict[str, Any]:
        """Delete vectors by id in one call."""
        body = await self._request(
            "delete",
            "POST",
            f"{self.base_url}/delete_by_ids",
            {"ids": ids},
        )
        logger.debug(
            f"Deleted {len(ids)} vectors",
            extra={"index": self.index_name},
        )
        return body

    async def get_index_info(self) -> dict[str, Any]:
        """Fetch the index description."""
        return await self._request("get_index", "GET", self.base_url)

    async def describe_index(self) -> IndexDescription:
        """Fetch and parse the index name, dimensions and metric."""
        body = await self.get_index_info()
        result = self._result(body, "get_index")

        try:
            return IndexDescription.from_api(result)
        except (TypeError, ValueError) as e:
            raise VectorStoreError(
                f"Invalid index description from Vectorize: {e}",
                details={"operation": "get_index", "error": str(e)},
            ) from e

    async def index_exists(self) -> bool:
        """Check whether the configured index exists.

        A 404 means the index does not exist; any other failure raises.
        """
        try:
            await self.get_index_info()
        except VectorStoreError as e:
            if e.status_code == 404:
                return False
            raise
        return True

    async def create_index(
        self,
        name: str,
        dimensions: int,
        metric: str = "cosine",
        description: str | None = None,
    ) -> dict[str, Any]:
        """Create a new Vectorize index."""
        payload: dict[str, Any] = {
            "name": name,
            "config": {"dimensions": dimensions, "metric": metric},
        }
        if description:
            payload["description"] = description

        body = await self._request("create_index", "POST", self.indexes_url, payload)
        logger.info(
            f"Created index: {name}",
            extra={"dimensions": dimensions, "metric": metric},
        )
        return body

    async def delete_index(self) -> dict[str, Any]:
        """Delete the configured index and all of its vectors."""
        body = await self._request("delete_index", "DELETE", self.base_url)
        logger.info(f"Deleted index: {self.index_name}")
        return body

    async def create_metadata_index(
        self,
        property_name: str,
        index_type: str,
    ) -> dict[str, Any]:
        """Create a metadata index on one property."""
        return await self._request(
            "create_metadata_index",
            "POST",
            f"{self.base_url}/metadata_index/create",
            {"propertyName": property_name, "indexType": index_type},
        )

    async def delete_metadata_index(self, property_name: str) -> dict[str, Any]:
        """Delete the metadata index on one property."""
        return await self._request(
            "delete_metadata_index",
            "POST",
            f"{self.base_url}/metadata_index/delete",
            {"propertyName": property_name},
        )

    async def list_metadata_indexes(self) -> list[MetadataIndex]:
        """List the metadata indexes of the configured index."""
        body = await self._request(
            "list_metadata_indexes",
            "GET",
            f"{self.base_url}/metadata_index/list",
        )
        result = self._result(body, "list_metadata_indexes")
        entries = result.get("metadataIndexes", result.get("metadata_indexes")) or []

        try:
            return [MetadataIndex.from_api(entry) for entry in entries]
        except (TypeError, ValueError) as e:
            raise VectorStoreError(
                f"Invalid metadata index in Vectorize listing: {e}",
                details={"operation": "list_metadata_indexes", "error": str(e)},
            ) from e
