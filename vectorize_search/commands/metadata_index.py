"""Metadata index lifecycle commands.

Vectorize allows at most ten metadata indexes per index. Both the cap and
duplicate property names are checked against a fresh listing before anything
is created, and a failed listing aborts the command.
"""

import re

from vectorize_search.commands.common import EXIT_SUCCESS, report_error
from vectorize_search.commands.console import Console
from vectorize_search.exceptions import ErrorCode, ValidationError, VectorizeSearchError
from vectorize_search.vectorstore.client import VectorizeClient
from vectorize_search.vectorstore.models import MetadataIndex

MAX_METADATA_INDEXES = 10
INDEX_TYPES = ("string", "number", "boolean")

_PROPERTY_NAME = re.compile(r"^[a-zA-Z0-9_-]+$")


def validate_property_name(property_name: str) -> str:
    if not _PROPERTY_NAME.match(property_name):
        raise ValidationError(
            "Invalid property name. Only alphanumeric characters, "
            "underscores, and hyphens are allowed.",
            details={"property_name": property_name},
        )
    return property_name


def validate_index_type(index_type: str) -> str:
    normalized = index_type.lower()
    if normalized not in INDEX_TYPES:
        raise ValidationError(
            f"Invalid type: {index_type}. Valid options: {', '.join(INDEX_TYPES)}",
            details={"index_type": index_type},
        )
    return normalized


def ensure_can_create(existing: list[MetadataIndex], property_name: str) -> None:
    """Refuse a new metadata index past the cap or for an indexed property.

    Raises:
        ValidationError: If the cap is reached or the property is indexed.
    """
    if len(existing) >= MAX_METADATA_INDEXES:
        raise ValidationError(
            "Cannot create metadata index: Maximum limit of "
            f"{MAX_METADATA_INDEXES} metadata indexes has been reached.",
            code=ErrorCode.METADATA_INDEX_LIMIT,
            details={"existing": len(existing)},
        )
    if any(index.property_name == property_name for index in existing):
        raise ValidationError(
            f"Metadata index for property '{property_name}' already exists.",
            code=ErrorCode.METADATA_INDEX_EXISTS,
            details={"property_name": property_name},
        )


def find_metadata_index(
    existing: list[MetadataIndex],
    property_name: str,
) -> MetadataIndex:
    for index in existing:
        if index.property_name == property_name:
            return index
    raise ValidationError(
        f"Metadata index for property '{property_name}' does not exist.",
        code=ErrorCode.METADATA_INDEX_NOT_FOUND,
        details={"property_name": property_name},
    )


async def create_metadata_index(
    client: VectorizeClient,
    property_name: str,
    index_type: str,
    console: Console,
    assume_yes: bool = False,
) -> int:
    """Create a metadata index after checking the cap and duplicates."""
    try:
        validate_property_name(property_name)
        index_type = validate_index_type(index_type)

        console.info(f"Checking existing metadata indexes for '{client.index_name}'...")
        existing = await client.list_metadata_indexes()
        ensure_can_create(existing, property_name)

        console.info(
            f"Creating metadata index for property '{property_name}' with type "
            f"'{index_type}' on index '{client.index_name}'..."
        )
        if not assume_yes and not console.confirm("Do you want to continue?"):
            console.info("Operation cancelled.")
            return EXIT_SUCCESS

        await client.create_metadata_index(property_name, index_type)
    except ValidationError as e:
        status = report_error(console, "Cannot create metadata index", e)
        if e.code in (ErrorCode.METADATA_INDEX_LIMIT, ErrorCode.METADATA_INDEX_EXISTS):
            console.info("Use 'vectorize-search list-metadata-indexes' to see existing indexes.")
        return status
    except VectorizeSearchError as e:
        return report_error(console, "Error creating metadata index", e)

    console.info(f"Created metadata index for property '{property_name}'")
    console.line(f"  Property: {property_name}")
    console.line(f"  Type: {index_type}")
    console.line(f"  Index: {client.index_name}")
    console.line()
    console.info("Vectors inserted before now are not indexed; re-import to filter on them.")
    return EXIT_SUCCESS


async def list_metadata_indexes(client: VectorizeClient, console: Console) -> int:
    """Print the metadata indexes and how much of the cap they use."""
    console.info(f"Listing metadata indexes for '{client.index_name}'...")
    try:
        existing = await client.list_metadata_indexes()
    except VectorizeSearchError as e:
        return report_error(console, "Failed to list metadata indexes", e)

    if not existing:
        console.info(f"No metadata indexes found for '{client.index_name}'")
        console.info("Create one with: vectorize-search create-metadata-index <property> <type>")
        return EXIT_SUCCESS

    console.table(
        ["Property", "Type", "Created At"],
        [
            [
                index.property_name,
                index.index_type or "Unknown",
                index.created_at or "Unknown",
            ]
            for index in existing
        ],
    )
    console.line()
    console.info(f"Total metadata indexes: {len(existing)}/{MAX_METADATA_INDEXES}")
    if len(existing) >= MAX_METADATA_INDEXES:
        console.warn(
            f"You have reached the maximum limit of {MAX_METADATA_INDEXES} metadata indexes."
        )
    return EXIT_SUCCESS


async def delete_metadata_index(
    client: VectorizeClient,
    property_name: str,
    console: Console,
    force: bool = False,
) -> int:
    """Delete a metadata index.

    Unless forced, the operator confirms and then re-types the property name.
    """
    try:
        console.info(f"Checking for metadata index '{property_name}' in '{client.index_name}'...")
        existing = await client.list_metadata_indexes()
        target = find_metadata_index(existing, property_name)

        console.info("Found metadata index:")
        console.line(f"  Property: {target.property_name}")
        console.line(f"  Type: {target.index_type or 'Unknown'}")
        console.line(f"  Created: {target.created_at or 'Unknown'}")
        console.line()
        console.warn("This will permanently delete the metadata index.")
        console.warn("Filters on this property will stop working. This cannot be undone.")

        if force:
            console.info("--force given, skipping confirmation prompts.")
        else:
            if not console.confirm("Are you sure you want to delete this metadata index?"):
                console.info("Operation cancelled.")
                return EXIT_SUCCESS

            confirmation = console.ask(f"Type the property name '{property_name}' to confirm:")
            if confirmation != property_name:
                raise ValidationError(
                    "Confirmation failed. Property name does not match.",
                    code=ErrorCode.CONFIRMATION_MISMATCH,
                )

        console.info(f"Deleting metadata index for property '{property_name}'...")
        await client.delete_metadata_index(property_name)
    except VectorizeSearchError as e:
        return report_error(console, "Error deleting metadata index", e)

    console.info(f"Deleted metadata index for property '{property_name}'")
    return EXIT_SUCCESS
