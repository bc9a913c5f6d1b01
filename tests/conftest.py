"""Pytest configuration and shared fixtures."""

from collections.abc import Callable

import httpx
import pytest
from pydantic import SecretStr

from tests.helpers import API_BASE, RecordingHandler
from vectorize_search.config import CloudflareSettings, SearchSettings


@pytest.fixture
def cloudflare_settings() -> CloudflareSettings:
    """Cloudflare settings pointing at a fake API host."""
    return CloudflareSettings(
        account_id="acct-123",
        api_token=SecretStr("test-token"),
        vectorize_index="products",
        embedding_model="@cf/baai/bge-base-en-v1.5",
        api_base_url=API_BASE,
    )


@pytest.fixture
def search_settings() -> SearchSettings:
    """Search settings with defaults, independent of the environment."""
    return SearchSettings(
        default_limit=10,
        paginate_cap=100,
        flush_batch_size=100,
        flush_max_iterations=10_000,
        metadata_fields=[],
        import_chunk_size=100,
    )


@pytest.fixture
def make_http_client() -> Callable[[RecordingHandler], httpx.AsyncClient]:
    """Factory for an AsyncClient backed by a RecordingHandler."""

    def factory(handler: RecordingHandler) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(handler))

    return factory
