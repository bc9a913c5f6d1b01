"""Search engine adapter backed by Cloudflare Vectorize.

Records are flattened to text, embedded through Workers AI and upserted with
``model``/``key`` metadata into one shared index. Searches are similarity
queries filtered by ``model``; results map back to records through the
``key`` stored in metadata, preserving rank order.
"""

import inspect
from collections.abc import AsyncIterator, Callable, Iterable, Mapping, Sequence
from typing import Any

from vectorize_search.config import SearchSettings, get_settings
from vectorize_search.embeddings.service import dimensions_for_model
from vectorize_search.engine.query import SearchQuery, SearchResults
from vectorize_search.engine.records import (
    FieldValue,
    RecordRepository,
    SearchableRecord,
    TextSearchableRecord,
    vector_id,
)
from vectorize_search.exceptions import FlushIncompleteError
from vectorize_search.logging_config import get_logger
from vectorize_search.observability.metrics import track_flush, track_search_request
from vectorize_search.vectorstore.client import VectorizeClient
from vectorize_search.vectorstore.models import Document, Match, MetadataValue

logger = get_logger(__name__)

RESERVED_METADATA = ("model", "key")


def flatten_fields(fields: Mapping[str, FieldValue]) -> str:
    """Join a field map into embedding text.

    Falsy values are dropped, list and mapping values are joined with spaces
    and the remaining values are joined with ``". "`` in field order.
    """
    parts: list[str] = []
    for value in fields.values():
        if not value:
            continue
        if isinstance(value, Mapping):
            value = list(value.values())
        if isinstance(value, Sequence) and not isinstance(value, str | bytes):
            value = " ".join(str(item) for item in value if item)
            if not value:
                continue
        parts.append(str(value))
    return ". ".join(parts)


def _scalar(value: Any) -> MetadataValue:
    if isinstance(value, str | int | float | bool):
        return value
    return str(value)


def _rank(positions: Mapping[Any, int], record: SearchableRecord) -> int | None:
    """Rank of a record's key; keys stored as strings also match by ``str``."""
    key = record.get_key()
    if key in positions:
        return positions[key]
    return positions.get(str(key))


def _matches(results: Any) -> list[Any]:
    """Matches from an engine result or a callback's mapping."""
    if isinstance(results, SearchResults):
        return results.results
    if isinstance(results, Mapping):
        return list(results.get("results") or [])
    return list(getattr(results, "results", None) or [])


def _match_metadata(match: Any) -> Mapping[str, Any]:
    if isinstance(match, Match):
        return match.metadata
    if isinstance(match, Mapping):
        return match.get("metadata") or {}
    return getattr(match, "metadata", None) or {}


class VectorizeEngine:
    """Indexes and searches searchable records in a Vectorize index."""

    def __init__(
        self,
        client: VectorizeClient,
        settings: SearchSettings | None = None,
    ) -> None:
        """Initialize the engine.

        Args:
            client: Vectorize client for the shared index.
            settings: Search configuration.
        """
        self._client = client
        self._settings = settings or get_settings().search

    @property
    def client(self) -> VectorizeClient:
        return self._client

    def searchable_text(self, record: SearchableRecord) -> str:
        """Embedding text for a record; precomputed text wins."""
        if isinstance(record, TextSearchableRecord):
            return record.to_searchable_text()
        return flatten_fields(record.to_searchable_dict())

    def _to_document(self, record: SearchableRecord) -> Document | None:
        fields = record.to_searchable_dict()
        if not fields:
            return None

        collection = record.collection_name
        key = record.get_key()
        metadata: dict[str, MetadataValue] = {
            "model": collection,
            "key": _scalar(key),
        }
        for name in self._settings.metadata_fields:
            value = fields.get(name)
            if name in RESERVED_METADATA or value is None:
                continue
            if isinstance(value, str | int | float | bool):
                metadata[name] = value

        return Document(
            id=vector_id(collection, key),
            text=self.searchable_text(record),
            metadata=metadata,
        )

    async def update(self, records: Iterable[SearchableRecord]) -> int:
        """Embed and upsert records.

        Records with an empty field map are skipped. Nothing is sent when no
        record produces a document.

        Returns:
            Number of documents upserted.
        """
        documents = [
            document
            for document in map(self._to_document, records)
            if document is not None
        ]
        if not documents:
            return 0

        await self._client.batch_upsert(documents)
        logger.debug(
            f"Upserted {len(documents)} documents",
            extra={"index": self._client.index_name},
        )
        return len(documents)

    async def delete(self, records: Iterable[SearchableRecord]) -> int:
        """Delete the vectors of the given records in one call."""
        ids = [vector_id(record.collection_name, record.get_key()) for record in records]
        if not ids:
            return 0

        await self._client.delete_vectors(ids)
        return len(ids)

    def build_filter(self, query: SearchQuery) -> dict[str, MetadataValue]:
        """Metadata filter for a query, always scoped to its collection."""
        wheres = {k: v for k, v in query.wheres.items() if k != "model"}
        return {"model": query.collection, **wheres}

    async def search(self, query: SearchQuery) -> Any:
        """Run a search capped at the query limit (default 10)."""
        return await self._perform_search(
            query,
            limit=self._settings.default_limit if query.limit is None else query.limit,
        )

    async def paginate(self, query: SearchQuery, per_page: int, page: int) -> Any:
        """Search for everything up to the end of the requested page.

        Vectorize returns a top-k list rather than a seekable cursor, so this
        requests ``per_page * page`` matches (capped) and returns the whole
        window. Use ``page_window`` to cut out one page.
        """
        return await self._perform_search(
            query,
            limit=min(per_page * page, self._settings.paginate_cap),
        )

    async def _perform_search(self, query: SearchQuery, limit: int) -> Any:
        search_filter = self.build_filter(query)

        if query.callback is not None:
            result = query.callback(
                self._client,
                query.query,
                {"limit": limit, "filter": search_filter},
            )
            if inspect.isawaitable(result):
                result = await result
            return result

        matches = await self._client.search(query.query, top_k=limit, filter=search_filter)
        track_search_request(len(matches), matches[0].score if matches else 0.0)

        return SearchResults(results=matches, total=len(matches))

    @staticmethod
    def page_window(results: Any, per_page: int, page: int) -> SearchResults:
        """Slice one page out of a paginate window."""
        matches = _matches(results)
        start = max(page - 1, 0) * per_page
        return SearchResults(
            results=matches[start : start + per_page],
            total=VectorizeEngine.get_total_count(results),
        )

    @staticmethod
    def map_ids(
        results: Any,
        key_type: Callable[[Any], Any] | None = None,
    ) -> list[Any]:
        """Record keys of the matches, in rank order.

        Keys come from ``metadata.key``; matches without one are dropped.
        """
        keys = []
        for match in _matches(results):
            key = _match_metadata(match).get("key")
            if key is None:
                continue
            keys.append(key_type(key) if key_type else key)
        return keys

    def _positions(
        self,
        results: Any,
        repository: RecordRepository,
    ) -> tuple[list[Any], dict[Any, int]]:
        """Matched keys and the rank of each, first occurrence wins."""
        keys = self.map_ids(results, repository.key_type)
        positions: dict[Any, int] = {}
        for rank, key in enumerate(keys):
            positions.setdefault(key, rank)
        return keys, positions

    async def map(
        self,
        query: SearchQuery,
        results: Any,
        repository: RecordRepository,
    ) -> list[SearchableRecord]:
        """Fetch the matched records and order them by similarity rank."""
        if not _matches(results):
            return []

        keys, positions = self._positions(results, repository)
        records = await repository.get_by_keys(query, keys)

        ranked = []
        for record in records:
            rank = _rank(positions, record)
            if rank is not None:
                ranked.append((rank, record))
        ranked.sort(key=lambda item: item[0])
        return [record for _, record in ranked]

    async def lazy_map(
        self,
        query: SearchQuery,
        results: Any,
        repository: RecordRepository,
    ) -> AsyncIterator[SearchableRecord]:
        """Stream the matched records in similarity rank order.

        Ordering needs every fetched record, so the stream is drained before
        the first record is yielded.
        """
        if not _matches(results):
            return

        keys, positions = self._positions(results, repository)
        ranked = []
        async for record in repository.stream_by_keys(query, keys):
            rank = _rank(positions, record)
            if rank is not None:
                ranked.append((rank, record))
        ranked.sort(key=lambda item: item[0])

        for _, record in ranked:
            yield record

    @staticmethod
    def get_total_count(results: Any) -> int:
        """Total stashed with a result by search, paginate or a callback."""
        if isinstance(results, Mapping):
            return int(results.get("total") or 0)
        return int(getattr(results, "total", 0) or 0)

    async def flush(self, collection: str) -> int:
        """Delete every vector of a collection from the shared index.

        Vectorize has no delete-by-filter, so this sweeps with an all-zero query
        vector filtered by ``model`` and deletes each batch of matches. The
        sweep stops when a query returns nothing, or returns only ids that
        were already deleted (deletes may not be visible yet).

        Returns:
            Number of vectors deleted.

        Raises:
            FlushIncompleteError: If the iteration cap is reached first.
        """
        dimensions = dimensions_for_model(self._client.embedding_model)
        zero_vector = [0.0] * dimensions
        search_filter = {"model": collection}
        deleted: set[str] = set()
        max_iterations = self._settings.flush_max_iterations

        for iteration in range(1, max_iterations + 1):
            matches = await self._client.query(
                zero_vector,
                top_k=self._settings.flush_batch_size,
                filter=search_filter,
            )
            if not matches:
                break

            ids = list(dict.fromkeys(m.id for m in matches if m.id not in deleted))
            if not ids:
                logger.warning(
                    "Flush sweep only returned deleted vectors, stopping",
                    extra={"collection": collection, "deleted": len(deleted)},
                )
                break

            await self._client.delete_vectors(ids)
            deleted.update(ids)
        else:
            raise FlushIncompleteError(
                f"Flush of {collection} stopped after {max_iterations} iterations",
                details={"collection": collection, "deleted": len(deleted)},
            )

        track_flush(collection, len(deleted), iteration)
        logger.info(
            f"Flushed {len(deleted)} vectors",
            extra={"collection": collection, "iterations": iteration},
        )
        return len(deleted)

    async def create_index(self, name: str, **options: Any) -> None:
        """No-op: Vectorize indexes are created with the create-index command."""
        logger.debug(f"Ignoring create_index for {name}; manage indexes with the CLI")

    async def delete_index(self, name: str) -> None:
        """No-op: Vectorize indexes are dropped with the drop-index command."""
        logger.debug(f"Ignoring delete_index for {name}; manage indexes with the CLI")
