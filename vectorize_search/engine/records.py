"""Searchable record contracts.

The engine never inspects records for optional methods. A record that supplies
its own embedding text implements ``TextSearchableRecord``; every other record
implements ``SearchableRecord`` and has its field map flattened.
"""

import re
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Callable, Mapping, Sequence
from typing import Any

from vectorize_search.engine.query import SearchQuery

FieldValue = str | int | float | bool | None | Sequence[Any] | Mapping[str, Any]

_SEPARATORS = re.compile(r"[\\/.]")


def vector_id(collection: str, key: Any) -> str:
    """Namespaced vector id for a record.

    ``App\\Models\\Product`` and key ``123`` give ``App_Models_Product_123``.
    The key is never recovered from this id; it is stored in metadata.
    """
    return f"{_SEPARATORS.sub('_', collection)}_{key}"


class SearchableRecord(ABC):
    """A record that can be indexed by its flattened field map."""

    @property
    def collection_name(self) -> str:
        """Logical collection the record belongs to.

        Defaults to the dotted path of the record's class.
        """
        cls = type(self)
        return f"{cls.__module__}.{cls.__qualname__}"

    @abstractmethod
    def get_key(self) -> Any:
        """Key that is unique within the record's collection."""
        ...

    @abstractmethod
    def to_searchable_dict(self) -> Mapping[str, FieldValue]:
        """Ordered field map to embed; an empty map excludes the record."""
        ...


class TextSearchableRecord(SearchableRecord):
    """A record that supplies its own embedding text.

    The text replaces the flattened field map, but an empty field map still
    excludes the record from indexing.
    """

    @abstractmethod
    def to_searchable_text(self) -> str:
        ...


class MappingRecord(SearchableRecord):
    """Record backed by a plain field mapping."""

    def __init__(
        self,
        collection: str,
        key: Any,
        fields: Mapping[str, FieldValue],
    ) -> None:
        self._collection = collection
        self._key = key
        self._fields = dict(fields)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._collection!r}, {self._key!r})"

    @property
    def collection_name(self) -> str:
        return self._collection

    def get_key(self) -> Any:
        return self._key

    def to_searchable_dict(self) -> Mapping[str, FieldValue]:
        return self._fields


class TextMappingRecord(MappingRecord, TextSearchableRecord):
    """Mapping record with precomputed embedding text."""

    def __init__(
        self,
        collection: str,
        key: Any,
        fields: Mapping[str, FieldValue],
        text: str,
    ) -> None:
        super().__init__(collection, key, fields)
        self._text = text

    def to_searchable_text(self) -> str:
        return self._text


class RecordRepository(ABC):
    """Fetches records by key for result mapping.

    Neither method has to preserve the order of ``keys`` or restrict its
    output to them; the engine filters and re-sorts by rank.
    """

    #: Converts a stored ``metadata.key`` back to the records' key type.
    key_type: Callable[[Any], Any] | None = None

    @abstractmethod
    async def get_by_keys(
        self,
        query: SearchQuery,
        keys: list[Any],
    ) -> Sequence[SearchableRecord]:
        """Fetch the records with the given keys in one batch."""
        ...

    @abstractmethod
    def stream_by_keys(
        self,
        query: SearchQuery,
        keys: list[Any],
    ) -> AsyncIterator[SearchableRecord]:
        """Stream the records with the given keys."""
        ...
