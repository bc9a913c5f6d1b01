"""Vectorize index lifecycle commands."""

from vectorize_search.commands.common import EXIT_FAILURE, EXIT_SUCCESS, report_error
from vectorize_search.commands.console import Console
from vectorize_search.embeddings.service import dimensions_for_model
from vectorize_search.exceptions import ErrorCode, ValidationError, VectorizeSearchError
from vectorize_search.vectorstore.client import VectorizeClient

METRICS = ("cosine", "euclidean", "dotproduct")

# Vectorize spells the dot product metric with a hyphen
_API_METRICS = {"dotproduct": "dot-product"}


def validate_metric(metric: str) -> str:
    """Return the API name of a metric option."""
    if metric not in METRICS:
        raise ValidationError(
            f"Invalid metric: {metric}. Valid options: {', '.join(METRICS)}",
            details={"metric": metric},
        )
    return _API_METRICS.get(metric, metric)


async def create_index(
    client: VectorizeClient,
    name: str,
    dimensions: int,
    metric: str,
    embedding_model: str,
    console: Console,
    assume_yes: bool = False,
) -> int:
    """Create a Vectorize index sized for an embedding model."""
    try:
        api_metric = validate_metric(metric)
    except ValidationError as e:
        return report_error(console, "Cannot create index", e)

    expected = dimensions_for_model(embedding_model)
    if dimensions != expected:
        console.warn(
            f"Dimensions {dimensions} may not match embedding model "
            f"{embedding_model} (expected {expected})"
        )

    console.info(f"Creating Vectorize index '{name}'...")
    console.line(f"Dimensions: {dimensions}")
    console.line(f"Metric: {metric}")
    console.line(f"Embedding Model: {embedding_model}")

    if not assume_yes and not console.confirm("Do you want to continue?"):
        console.info("Operation cancelled.")
        return EXIT_SUCCESS

    try:
        await client.create_index(name, dimensions, api_metric)
    except VectorizeSearchError as e:
        return report_error(console, "Error creating Vectorize index", e)

    console.info(f"Created Vectorize index '{name}'")
    console.line()
    console.info("Next steps:")
    console.line(f"1. Set CLOUDFLARE_VECTORIZE_INDEX={name}")
    console.line(f"2. Set CLOUDFLARE_EMBEDDING_MODEL={embedding_model}")
    console.line("3. Import your records: vectorize-search import <collection> <file>")
    return EXIT_SUCCESS


async def drop_index(
    client: VectorizeClient,
    console: Console,
    force: bool = False,
) -> int:
    """Delete the configured index and every vector in it.

    Unless forced, the operator confirms and then re-types the index name.
    """
    name = client.index_name
    console.warn(f"This will permanently delete the Vectorize index '{name}' and all its vectors!")
    console.line("This action cannot be undone.")

    try:
        if not force:
            if not console.confirm("Are you absolutely sure you want to continue?"):
                console.info("Operation cancelled.")
                return EXIT_SUCCESS

            confirmation = console.ask(f"To confirm, type the index name '{name}':")
            if confirmation != name:
                raise ValidationError(
                    "Index name confirmation does not match. Operation cancelled.",
                    code=ErrorCode.CONFIRMATION_MISMATCH,
                )

        console.info(f"Checking if index '{name}' exists...")
        if not await client.index_exists():
            console.error(f"Vectorize index '{name}' does not exist.")
            return EXIT_FAILURE

        console.info(f"Deleting Vectorize index '{name}'...")
        await client.delete_index()
    except VectorizeSearchError as e:
        return report_error(console, "Error deleting Vectorize index", e)

    console.info(f"Deleted Vectorize index '{name}'")
    return EXIT_SUCCESS


async def index_info(client: VectorizeClient, console: Console) -> int:
    """Print the configured index's description."""
    try:
        info = await client.describe_index()
    except VectorizeSearchError as e:
        return report_error(console, "Error fetching index info", e)

    console.info(f"Index: {info.name or client.index_name}")
    console.line(f"  Dimensions: {info.dimensions}")
    console.line(f"  Metric: {info.metric}")
    console.line(f"  Created: {info.created_on or 'Unknown'}")
    console.line(f"  Embedding Model: {client.embedding_model}")
    return EXIT_SUCCESS


async def clear_index(
    client: VectorizeClient,
    console: Console,
    force: bool = False,
) -> int:
    """Remove every vector from the configured index, keeping its configuration.

    Vectorize cannot truncate an index, so it is deleted and recreated with
    the same name, dimensions, metric and description. Metadata indexes do
    not survive and must be created again.
    """
    name = client.index_name
    console.warn(f"This will delete every vector in the Vectorize index '{name}'!")
    console.line("The index is dropped and recreated; metadata indexes are lost.")

    try:
        if not force:
            if not console.confirm("Are you absolutely sure you want to continue?"):
                console.info("Operation cancelled.")
                return EXIT_SUCCESS

            confirmation = console.ask(f"To confirm, type the index name '{name}':")
            if confirmation != name:
                raise ValidationError(
                    "Index name confirmation does not match. Operation cancelled.",
                    code=ErrorCode.CONFIRMATION_MISMATCH,
                )

        info = await client.describe_index()
        console.info(f"Deleting Vectorize index '{name}'...")
        await client.delete_index()
        console.info(
            f"Recreating Vectorize index '{name}' "
            f"({info.dimensions} dimensions, {info.metric})..."
        )
        await client.create_index(name, info.dimensions, info.metric, info.description)
    except VectorizeSearchError as e:
        return report_error(console, "Error clearing Vectorize index", e)

    console.info(f"Cleared Vectorize index '{name}'")
    console.info("Recreate metadata indexes with: vectorize-search create-metadata-index")
    return EXIT_SUCCESS
