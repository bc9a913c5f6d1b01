"""Search query and result models."""

from collections.abc import Callable
from typing import Any

from pydantic import BaseModel, Field

from vectorize_search.vectorstore.models import Match, MetadataValue


class SearchQuery(BaseModel):
    """A search against one collection.

    Attributes:
        collection: Logical collection to search.
        query: Query text to embed.
        wheres: Equality constraints on metadata, passed through verbatim.
        limit: Maximum matches; the engine default applies when unset.
        callback: Replaces the built-in search. Called with the client, the
            query text and the effective options; may be async.
    """

    collection: str = Field(description="Collection name")
    query: str = Field(default="", description="Query text")
    wheres: dict[str, MetadataValue] = Field(
        default_factory=dict,
        description="Metadata equality filters",
    )
    limit: int | None = Field(default=None, description="Maximum matches")
    callback: Callable[..., Any] | None = Field(
        default=None,
        description="Custom search procedure",
        exclude=True,
    )

    def where(self, field: str, value: MetadataValue) -> "SearchQuery":
        """Return a copy with an additional equality constraint."""
        return self.model_copy(update={"wheres": {**self.wheres, field: value}})

    def take(self, limit: int) -> "SearchQuery":
        """Return a copy with a result limit."""
        return self.model_copy(update={"limit": limit})


class SearchResults(BaseModel):
    """Raw engine result: ranked matches and the count stashed with them.

    ``total`` is the number of matches returned, not a count of every
    relevant vector in the index.
    """

    results: list[Match] = Field(default_factory=list)
    total: int = Field(default=0)
