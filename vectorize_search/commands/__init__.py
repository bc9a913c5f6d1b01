"""Operator commands for index and metadata index lifecycle."""

from vectorize_search.commands.collection import flush_collection, import_records
from vectorize_search.commands.console import Console
from vectorize_search.commands.index import clear_index, create_index, drop_index, index_info
from vectorize_search.commands.metadata_index import (
    MAX_METADATA_INDEXES,
    create_metadata_index,
    delete_metadata_index,
    ensure_can_create,
    list_metadata_indexes,
)

__all__ = [
    "MAX_METADATA_INDEXES",
    "Console",
    "clear_index",
    "create_index",
    "create_metadata_index",
    "delete_metadata_index",
    "drop_index",
    "ensure_can_create",
    "flush_collection",
    "import_records",
    "index_info",
    "list_metadata_indexes",
]
