"""Tests for the Vectorize search engine."""

import uuid
from collections.abc import AsyncIterator, Sequence
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from vectorize_search.config import SearchSettings
from vectorize_search.engine.engine import VectorizeEngine, flatten_fields
from vectorize_search.engine.query import SearchQuery, SearchResults
from vectorize_search.engine.records import (
    MappingRecord,
    RecordRepository,
    SearchableRecord,
    TextMappingRecord,
)
from vectorize_search.exceptions import FlushIncompleteError
from vectorize_search.vectorstore.client import VectorizeClient
from vectorize_search.vectorstore.models import Match

PRODUCT = "App\\Models\\Product"


def create_mock_client(matches: list[Match] | None = None) -> MagicMock:
    """Create a mock Vectorize client."""
    client = MagicMock(spec=VectorizeClient)
    client.index_name = "products"
    client.embedding_model = "@cf/baai/bge-base-en-v1.5"
    client.batch_upsert = AsyncMock(return_value={"success": True})
    client.delete_vectors = AsyncMock(return_value={"success": True})
    client.search = AsyncMock(return_value=matches or [])
    client.query = AsyncMock(return_value=[])
    return client


def match(key: Any, score: float = 0.5, collection: str = PRODUCT) -> Match:
    return Match(
        id=f"App_Models_Product_{key}",
        score=score,
        metadata={"model": collection, "key": key},
    )


class ListRepository(RecordRepository):
    """Repository that returns every record it holds, in storage order."""

    def __init__(self, records: Sequence[SearchableRecord], key_type=None) -> None:
        self.records = list(records)
        self.key_type = key_type
        self.get_calls: list[list[Any]] = []

    async def get_by_keys(self, query: SearchQuery, keys: list[Any]) -> list[SearchableRecord]:
        self.get_calls.append(keys)
        return self.records

    async def stream_by_keys(
        self,
        query: SearchQuery,
        keys: list[Any],
    ) -> AsyncIterator[SearchableRecord]:
        self.get_calls.append(keys)
        for record in self.records:
            yield record


class FakeStore:
    """In-memory stand-in for the client's flush operations.

    With ``lagging`` set, deletes are acknowledged but never become visible.
    """

    def __init__(self, count: int, model: str = "@cf/baai/bge-base-en-v1.5", lagging: bool = False):
        self.ids = [f"Post_{i}" for i in range(count)]
        self.embedding_model = model
        self.index_name = "products"
        self.lagging = lagging
        self.queries: list[dict[str, Any]] = []
        self.deletes: list[list[str]] = []

    async def query(self, vector, top_k=5, filter=None) -> list[Match]:
        self.queries.append({"dimensions": len(vector), "top_k": top_k, "filter": filter})
        return [Match(id=vid, metadata={"model": "Post"}) for vid in self.ids[:top_k]]

    async def delete_vectors(self, ids: list[str]) -> dict[str, Any]:
        self.deletes.append(ids)
        if not self.lagging:
            self.ids = [vid for vid in self.ids if vid not in set(ids)]
        return {"success": True}


class TestFlattenFields:
    """Tests for embedding text construction."""

    def test_joins_values_in_order(self) -> None:
        """Values are joined with '. ' in field order."""
        text = flatten_fields({"title": "Red Shoes", "description": "Comfortable", "price": 49})
        assert text == "Red Shoes. Comfortable. 49"

    def test_drops_falsy_values(self) -> None:
        """Empty, null and falsy values are skipped."""
        text = flatten_fields({"title": "Hat", "body": "", "summary": None, "count": 0})
        assert text == "Hat"

    def test_lists_joined_with_spaces(self) -> None:
        """List values are joined with spaces before the outer join."""
        text = flatten_fields({"title": "Hat", "tags": ["summer", "", "sale"]})
        assert text == "Hat. summer sale"

    def test_empty_lists_dropped(self) -> None:
        """Lists with nothing left after filtering are skipped."""
        assert flatten_fields({"tags": [], "more": [None, ""], "title": "Cap"}) == "Cap"

    def test_mappings_joined_with_spaces(self) -> None:
        """Mapping values are flattened like lists."""
        text = flatten_fields(
            {"title": "Hat", "attributes": {"color": "red", "size": "", "fit": "slim"}}
        )
        assert text == "Hat. red slim"

    def test_empty_mappings_dropped(self) -> None:
        """Mappings with no truthy values are skipped."""
        assert flatten_fields({"attributes": {"size": None}, "extra": {}, "title": "Cap"}) == "Cap"


class TestUpdate:
    """Tests for indexing records."""

    @pytest.mark.asyncio
    async def test_update_builds_namespaced_documents(self, search_settings) -> None:
        """Documents get namespaced ids and model/key metadata."""
        client = create_mock_client()
        engine = VectorizeEngine(client, settings=search_settings)

        count = await engine.update(
            [MappingRecord(PRODUCT, 123, {"title": "Red Shoes", "tags": ["sale"]})]
        )

        assert count == 1
        client.batch_upsert.assert_awaited_once()
        (documents,) = client.batch_upsert.await_args.args
        assert documents[0].id == "App_Models_Product_123"
        assert documents[0].text == "Red Shoes. sale"
        assert documents[0].metadata == {"model": PRODUCT, "key": 123}

    @pytest.mark.asyncio
    async def test_update_skips_records_without_fields(self, search_settings) -> None:
        """Records with an empty field map are not indexed."""
        client = create_mock_client()
        engine = VectorizeEngine(client, settings=search_settings)

        count = await engine.update(
            [
                MappingRecord("Post", 1, {"title": "Hello"}),
                MappingRecord("Post", 2, {}),
                MappingRecord("Post", 3, {"title": "World"}),
            ]
        )

        assert count == 2
        (documents,) = client.batch_upsert.await_args.args
        assert [d.id for d in documents] == ["Post_1", "Post_3"]

    @pytest.mark.asyncio
    async def test_update_with_nothing_to_index_sends_nothing(self, search_settings) -> None:
        """No call is made when every record is excluded."""
        client = create_mock_client()
        engine = VectorizeEngine(client, settings=search_settings)

        assert await engine.update([MappingRecord("Post", 1, {})]) == 0
        assert await engine.update([]) == 0
        client.batch_upsert.assert_not_called()

    @pytest.mark.asyncio
    async def test_precomputed_text_wins(self, search_settings) -> None:
        """A record's own text replaces the flattened field map."""
        client = create_mock_client()
        engine = VectorizeEngine(client, settings=search_settings)

        await engine.update(
            [TextMappingRecord("Post", 1, {"title": "ignored"}, "Custom embedding text")]
        )

        (documents,) = client.batch_upsert.await_args.args
        assert documents[0].text == "Custom embedding text"

    @pytest.mark.asyncio
    async def test_precomputed_text_still_needs_fields(self, search_settings) -> None:
        """An empty field map excludes a record even with its own text."""
        client = create_mock_client()
        engine = VectorizeEngine(client, settings=search_settings)

        assert await engine.update([TextMappingRecord("Post", 1, {}, "text")]) == 0

    @pytest.mark.asyncio
    async def test_metadata_fields_are_opt_in(self) -> None:
        """Configured scalar fields are copied into metadata."""
        client = create_mock_client()
        settings = SearchSettings(metadata_fields=["category", "model", "tags", "missing"])
        engine = VectorizeEngine(client, settings=settings)

        await engine.update(
            [
                MappingRecord(
                    "Post",
                    7,
                    {"title": "Hi", "category": "news", "model": "other", "tags": ["a"]},
                )
            ]
        )

        (documents,) = client.batch_upsert.await_args.args
        assert documents[0].metadata == {"model": "Post", "key": 7, "category": "news"}


class TestDelete:
    """Tests for removing records."""

    @pytest.mark.asyncio
    async def test_delete_by_namespaced_ids(self, search_settings) -> None:
        """All ids are deleted in one call."""
        client = create_mock_client()
        engine = VectorizeEngine(client, settings=search_settings)

        count = await engine.delete(
            [MappingRecord(PRODUCT, 1, {}), MappingRecord("blog/Post.v2", "abc", {})]
        )

        assert count == 2
        client.delete_vectors.assert_awaited_once_with(["App_Models_Product_1", "blog_Post_v2_abc"])

    @pytest.mark.asyncio
    async def test_delete_nothing(self, search_settings) -> None:
        """An empty delete sends nothing."""
        client = create_mock_client()
        engine = VectorizeEngine(client, settings=search_settings)

        assert await engine.delete([]) == 0
        client.delete_vectors.assert_not_called()


class TestSearch:
    """Tests for search and paginate."""

    @pytest.mark.asyncio
    async def test_search_filters_by_collection_and_wheres(self, search_settings) -> None:
        """Filter always carries the collection plus equality wheres."""
        client = create_mock_client([match(1, 0.9), match(2, 0.8)])
        engine = VectorizeEngine(client, settings=search_settings)
        query = SearchQuery(collection=PRODUCT, query="shoes").where("status", "active")

        results = await engine.search(query)

        client.search.assert_awaited_once_with(
            "shoes",
            top_k=10,
            filter={"model": PRODUCT, "status": "active"},
        )
        assert isinstance(results, SearchResults)
        assert results.total == 2
        assert [m.id for m in results.results] == ["App_Models_Product_1", "App_Models_Product_2"]

    @pytest.mark.asyncio
    async def test_where_cannot_override_collection(self, search_settings) -> None:
        """A 'model' where clause does not replace the collection filter."""
        engine = VectorizeEngine(create_mock_client(), settings=search_settings)
        query = SearchQuery(collection="Post").where("model", "Other")

        assert engine.build_filter(query) == {"model": "Post"}

    @pytest.mark.asyncio
    async def test_search_uses_query_limit(self, search_settings) -> None:
        """An explicit limit becomes topK."""
        client = create_mock_client()
        engine = VectorizeEngine(client, settings=search_settings)

        await engine.search(SearchQuery(collection="Post", query="q").take(3))

        assert client.search.await_args.kwargs["top_k"] == 3

    @pytest.mark.asyncio
    async def test_search_keeps_zero_limit(self, search_settings) -> None:
        """A limit of zero is sent as is instead of the default."""
        client = create_mock_client()
        engine = VectorizeEngine(client, settings=search_settings)

        await engine.search(SearchQuery(collection="Post", query="q").take(0))

        assert client.search.await_args.kwargs["top_k"] == 0

    @pytest.mark.asyncio
    async def test_sync_callback_replaces_search(self, search_settings) -> None:
        """A callback gets the client, query text and options; its result is returned."""
        client = create_mock_client()
        engine = VectorizeEngine(client, settings=search_settings)
        calls = []

        def callback(cb_client, text, options):
            calls.append((cb_client, text, options))
            return {"results": [], "total": 99}

        results = await engine.search(
            SearchQuery(collection="Post", query="hello", callback=callback)
        )

        assert results == {"results": [], "total": 99}
        assert calls == [(client, "hello", {"limit": 10, "filter": {"model": "Post"}})]
        client.search.assert_not_called()

    @pytest.mark.asyncio
    async def test_async_callback_is_awaited(self, search_settings) -> None:
        """An async callback's result is awaited."""
        client = create_mock_client()
        engine = VectorizeEngine(client, settings=search_settings)

        async def callback(cb_client, text, options):
            return SearchResults(results=[match(5)], total=1)

        results = await engine.search(SearchQuery(collection=PRODUCT, callback=callback))

        assert engine.map_ids(results) == [5]

    @pytest.mark.parametrize(
        ("per_page", "page", "expected"),
        [(15, 3, 45), (50, 3, 100), (10, 1, 10)],
    )
    @pytest.mark.asyncio
    async def test_paginate_limit(self, search_settings, per_page, page, expected) -> None:
        """Paginate requests everything up to the page end, capped at 100."""
        client = create_mock_client()
        engine = VectorizeEngine(client, settings=search_settings)

        await engine.paginate(SearchQuery(collection="Post", query="q"), per_page, page)

        assert client.search.await_args.kwargs["top_k"] == expected

    def test_page_window(self) -> None:
        """A page is sliced out of the paginate window."""
        window = SearchResults(results=[match(i) for i in range(1, 8)], total=7)

        page = VectorizeEngine.page_window(window, per_page=3, page=2)

        assert VectorizeEngine.map_ids(page) == [4, 5, 6]
        assert page.total == 7

    def test_page_window_past_the_end(self) -> None:
        """A page beyond the window is empty."""
        window = SearchResults(results=[match(1)], total=1)
        assert VectorizeEngine.page_window(window, per_page=10, page=3).results == []


class TestResultMapping:
    """Tests for mapping matches back to records."""

    def test_map_ids_skips_matches_without_key(self) -> None:
        """Keys come from metadata; matches without one are dropped."""
        results = SearchResults(
            results=[match(1), Match(id="orphan", metadata={"model": PRODUCT}), match(3)],
            total=3,
        )
        assert VectorizeEngine.map_ids(results) == [1, 3]

    def test_map_ids_from_mapping(self) -> None:
        """Callback results shaped as mappings are accepted."""
        results = {"results": [{"id": "x", "metadata": {"key": "7"}}], "total": 1}
        assert VectorizeEngine.map_ids(results, key_type=int) == [7]

    def test_map_ids_empty(self) -> None:
        """Empty results give no keys."""
        assert VectorizeEngine.map_ids(SearchResults()) == []

    @pytest.mark.asyncio
    async def test_map_orders_by_rank_and_drops_extras(self, search_settings) -> None:
        """Records are re-sorted by rank and unrequested ones removed."""
        engine = VectorizeEngine(create_mock_client(), settings=search_settings)
        repository = ListRepository(
            [
                MappingRecord(PRODUCT, 1, {"title": "one"}),
                MappingRecord(PRODUCT, 9, {"title": "nine"}),
                MappingRecord(PRODUCT, 2, {"title": "two"}),
            ]
        )
        results = SearchResults(results=[match(2, 0.9), match(1, 0.8)], total=2)
        query = SearchQuery(collection=PRODUCT, query="q")

        records = await engine.map(query, results, repository)

        assert [r.get_key() for r in records] == [2, 1]
        assert repository.get_calls == [[2, 1]]

    @pytest.mark.asyncio
    async def test_map_coerces_keys(self, search_settings) -> None:
        """A repository key type converts stored keys before lookup."""
        engine = VectorizeEngine(create_mock_client(), settings=search_settings)
        repository = ListRepository([MappingRecord("Post", 4, {"t": "x"})], key_type=int)
        results = {"results": [{"id": "Post_4", "metadata": {"key": "4"}}]}

        records = await engine.map(SearchQuery(collection="Post"), results, repository)

        assert [r.get_key() for r in records] == [4]

    @pytest.mark.asyncio
    async def test_map_matches_keys_stored_as_strings(self, search_settings) -> None:
        """Non-scalar keys are stored as strings and still map back without a key type."""
        first, second = uuid.uuid4(), uuid.uuid4()
        engine = VectorizeEngine(create_mock_client(), settings=search_settings)
        repository = ListRepository(
            [MappingRecord(PRODUCT, first, {"t": "a"}), MappingRecord(PRODUCT, second, {"t": "b"})]
        )
        results = SearchResults(results=[match(str(second)), match(str(first))], total=2)

        records = await engine.map(SearchQuery(collection=PRODUCT), results, repository)

        assert [r.get_key() for r in records] == [second, first]

    @pytest.mark.asyncio
    async def test_lazy_map_matches_keys_stored_as_strings(self, search_settings) -> None:
        """The lazy variant falls back to string keys too."""
        key = uuid.uuid4()
        engine = VectorizeEngine(create_mock_client(), settings=search_settings)
        repository = ListRepository([MappingRecord(PRODUCT, key, {"t": "a"})])
        results = SearchResults(results=[match(str(key))], total=1)

        records = [
            record
            async for record in engine.lazy_map(SearchQuery(collection=PRODUCT), results, repository)
        ]

        assert [r.get_key() for r in records] == [key]

    @pytest.mark.asyncio
    async def test_map_empty_results_fetches_nothing(self, search_settings) -> None:
        """No fetch is made for empty results."""
        engine = VectorizeEngine(create_mock_client(), settings=search_settings)
        repository = ListRepository([MappingRecord("Post", 1, {"t": "x"})])

        records = await engine.map(SearchQuery(collection="Post"), SearchResults(), repository)

        assert records == []
        assert repository.get_calls == []

    @pytest.mark.asyncio
    async def test_lazy_map_yields_in_rank_order(self, search_settings) -> None:
        """The lazy variant yields the same order as map."""
        engine = VectorizeEngine(create_mock_client(), settings=search_settings)
        repository = ListRepository(
            [MappingRecord(PRODUCT, key, {"t": str(key)}) for key in (1, 2, 3)]
        )
        results = SearchResults(results=[match(3), match(1)], total=2)

        records = [
            record
            async for record in engine.lazy_map(SearchQuery(collection=PRODUCT), results, repository)
        ]

        assert [r.get_key() for r in records] == [3, 1]

    @pytest.mark.asyncio
    async def test_lazy_map_empty(self, search_settings) -> None:
        """The lazy variant yields nothing for empty results."""
        engine = VectorizeEngine(create_mock_client(), settings=search_settings)
        repository = ListRepository([MappingRecord("Post", 1, {"t": "x"})])

        records = [
            record
            async for record in engine.lazy_map(SearchQuery(collection="Post"), {}, repository)
        ]

        assert records == []
        assert repository.get_calls == []

    @pytest.mark.parametrize(
        ("results", "expected"),
        [
            (SearchResults(results=[], total=42), 42),
            ({"total": 42}, 42),
            ({}, 0),
            (object(), 0),
        ],
    )
    def test_get_total_count(self, results, expected) -> None:
        """The stashed total is read back; missing totals are 0."""
        assert VectorizeEngine.get_total_count(results) == expected


class TestFlush:
    """Tests for flushing a collection."""

    @pytest.mark.asyncio
    async def test_flush_sweeps_until_empty(self, search_settings) -> None:
        """Batches are deleted until a query comes back empty."""
        store = FakeStore(250)
        engine = VectorizeEngine(store, settings=search_settings)

        deleted = await engine.flush("Post")

        assert deleted == 250
        assert len(store.queries) == 4
        assert [len(ids) for ids in store.deletes] == [100, 100, 50]
        assert store.ids == []

    @pytest.mark.asyncio
    async def test_flush_query_shape(self, search_settings) -> None:
        """Sweep queries match the model's dimensions and filter by collection."""
        store = FakeStore(1, model="@cf/baai/bge-small-en-v1.5")
        engine = VectorizeEngine(store, settings=search_settings)

        await engine.flush("Post")

        assert store.queries[0] == {
            "dimensions": 384,
            "top_k": 100,
            "filter": {"model": "Post"},
        }

    @pytest.mark.asyncio
    async def test_flush_stops_when_deletes_lag(self, search_settings) -> None:
        """Only already-deleted ids coming back ends the sweep."""
        store = FakeStore(30, lagging=True)
        engine = VectorizeEngine(store, settings=search_settings)

        deleted = await engine.flush("Post")

        assert deleted == 30
        assert len(store.queries) == 2
        assert len(store.deletes) == 1

    @pytest.mark.asyncio
    async def test_flush_empty_collection(self, search_settings) -> None:
        """Flushing nothing makes one query and no deletes."""
        store = FakeStore(0)
        engine = VectorizeEngine(store, settings=search_settings)

        assert await engine.flush("Post") == 0
        assert store.deletes == []

    @pytest.mark.asyncio
    async def test_flush_iteration_cap(self) -> None:
        """Reaching the iteration cap raises."""
        store = FakeStore(500)
        settings = SearchSettings(flush_batch_size=100, flush_max_iterations=2)
        engine = VectorizeEngine(store, settings=settings)

        with pytest.raises(FlushIncompleteError) as exc_info:
            await engine.flush("Post")

        assert exc_info.value.details == {"collection": "Post", "deleted": 200}
        assert len(store.deletes) == 2


class TestIndexManagement:
    """Tests for engine-level index hooks."""

    @pytest.mark.asyncio
    async def test_create_and_delete_index_are_noops(self, search_settings) -> None:
        """Index hooks make no remote calls."""
        client = create_mock_client()
        engine = VectorizeEngine(client, settings=search_settings)

        assert await engine.create_index("products", primaryKey="id") is None
        assert await engine.delete_index("products") is None
        assert client.method_calls == []
