"""Collection commands: import records from a file and flush a collection."""

import json
from collections.abc import Iterator
from pathlib import Path
from typing import Any

from vectorize_search.commands.common import EXIT_FAILURE, EXIT_SUCCESS, report_error
from vectorize_search.commands.console import Console
from vectorize_search.engine.engine import VectorizeEngine
from vectorize_search.engine.records import MappingRecord, TextMappingRecord
from vectorize_search.exceptions import ValidationError, VectorizeSearchError
from vectorize_search.logging_config import get_logger

logger = get_logger(__name__)


def record_from_json(collection: str, data: dict[str, Any]) -> MappingRecord:
    """Build a record from one ``{"key", "fields", "text"?}`` object."""
    if "key" not in data:
        raise ValidationError("Record is missing 'key'", details={"record": data})
    fields = data.get("fields") or {}
    if not isinstance(fields, dict):
        raise ValidationError("Record 'fields' must be an object", details={"key": data["key"]})

    if data.get("text"):
        return TextMappingRecord(collection, data["key"], fields, str(data["text"]))
    return MappingRecord(collection, data["key"], fields)


def read_records(collection: str, path: Path) -> Iterator[MappingRecord]:
    """Read records from a JSON Lines file, skipping blank lines."""
    with path.open(encoding="utf-8") as handle:
        for line_number, line in enumerate(handle, start=1):
            if not line.strip():
                continue
            try:
                data = json.loads(line)
            except json.JSONDecodeError as e:
                raise ValidationError(
                    f"Invalid JSON on line {line_number}: {e.msg}",
                    details={"path": str(path), "line": line_number},
                ) from e
            if not isinstance(data, dict):
                raise ValidationError(
                    f"Line {line_number} is not a JSON object",
                    details={"path": str(path), "line": line_number},
                )
            yield record_from_json(collection, data)


def _chunks(records: Iterator[MappingRecord], size: int) -> Iterator[list[MappingRecord]]:
    chunk: list[MappingRecord] = []
    for record in records:
        chunk.append(record)
        if len(chunk) >= size:
            yield chunk
            chunk = []
    if chunk:
        yield chunk


async def import_records(
    engine: VectorizeEngine,
    collection: str,
    path: Path,
    console: Console,
    chunk_size: int = 100,
) -> int:
    """Index every record of a JSON Lines file into a collection."""
    if not path.is_file():
        console.error(f"File not found: {path}")
        return EXIT_FAILURE

    indexed = 0
    try:
        for chunk in _chunks(read_records(collection, path), chunk_size):
            indexed += await engine.update(chunk)
            console.info(f"Imported [{collection}] records up to key: {chunk[-1].get_key()}")
    except VectorizeSearchError as e:
        return report_error(console, f"Error importing into {collection}", e)

    logger.info(f"Imported {indexed} records", extra={"collection": collection})
    console.info(f"All [{collection}] records have been imported ({indexed} indexed).")
    return EXIT_SUCCESS


async def flush_collection(
    engine: VectorizeEngine,
    collection: str,
    console: Console,
) -> int:
    """Remove every vector of a collection from the index."""
    try:
        deleted = await engine.flush(collection)
    except VectorizeSearchError as e:
        return report_error(console, f"Error flushing {collection}", e)

    console.info(f"All [{collection}] records have been flushed ({deleted} vectors deleted).")
    return EXIT_SUCCESS
