"""Command line entry point.

Usage:
    vectorize-search create-index [name] --dimensions 768 --metric cosine
    vectorize-search clear-index
    vectorize-search create-metadata-index category string
    vectorize-search import "app.models.Product" products.jsonl
    vectorize-search flush "app.models.Product"

Credentials come from CLOUDFLARE_* environment variables (or .env).
"""

import argparse
import asyncio
import sys
from pathlib import Path

from vectorize_search import __version__
from vectorize_search.commands import (
    Console,
    clear_index,
    create_index,
    create_metadata_index,
    delete_metadata_index,
    drop_index,
    flush_collection,
    import_records,
    index_info,
    list_metadata_indexes,
)
from vectorize_search.commands.common import EXIT_FAILURE, report_error
from vectorize_search.commands.index import METRICS
from vectorize_search.config import Settings, get_settings
from vectorize_search.embeddings.service import dimensions_for_model
from vectorize_search.engine.engine import VectorizeEngine
from vectorize_search.exceptions import ConfigurationError
from vectorize_search.logging_config import get_logger, setup_logging
from vectorize_search.vectorstore.client import VectorizeClient

logger = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="vectorize-search",
        description="Manage Cloudflare Vectorize indexes for vectorize-search",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("--version", action="version", version=__version__)
    parser.add_argument(
        "--index-name",
        default=None,
        help="Vectorize index (defaults to CLOUDFLARE_VECTORIZE_INDEX)",
    )
    parser.add_argument("--log-level", default=None, help="Logging level")

    subparsers = parser.add_subparsers(dest="command", required=True)

    create = subparsers.add_parser("create-index", help="Create a Vectorize index")
    create.add_argument("name", nargs="?", default=None, help="Index name")
    create.add_argument("--dimensions", type=int, default=None, help="Vector dimensions")
    create.add_argument("--metric", default="cosine", choices=METRICS, help="Distance metric")
    create.add_argument("--embedding-model", default=None, help="Workers AI embedding model")
    create.add_argument("-y", "--yes", action="store_true", help="Skip confirmation")

    drop = subparsers.add_parser("drop-index", help="Delete a Vectorize index")
    drop.add_argument("name", nargs="?", default=None, help="Index name")
    drop.add_argument("--force", action="store_true", help="Skip confirmation prompts")

    clear = subparsers.add_parser(
        "clear-index",
        help="Delete every vector by recreating the index with the same configuration",
    )
    clear.add_argument("name", nargs="?", default=None, help="Index name")
    clear.add_argument("--force", action="store_true", help="Skip confirmation prompts")

    subparsers.add_parser("index-info", help="Show index details")

    create_meta = subparsers.add_parser(
        "create-metadata-index",
        help="Create a metadata index for filtering",
    )
    create_meta.add_argument("property_name", help="Metadata property to index")
    create_meta.add_argument("type", help="Property type (string, number, boolean)")
    create_meta.add_argument("-y", "--yes", action="store_true", help="Skip confirmation")

    subparsers.add_parser("list-metadata-indexes", help="List metadata indexes")

    delete_meta = subparsers.add_parser(
        "delete-metadata-index",
        help="Delete a metadata index",
    )
    delete_meta.add_argument("property_name", help="Metadata property to delete")
    delete_meta.add_argument("--force", action="store_true", help="Skip confirmation prompts")

    importer = subparsers.add_parser("import", help="Index records from a JSON Lines file")
    importer.add_argument("collection", help="Collection name")
    importer.add_argument("path", type=Path, help="File of {key, fields, text?} objects")
    importer.add_argument("--chunk-size", type=int, default=None, help="Records per update")

    flush = subparsers.add_parser("flush", help="Delete every vector of a collection")
    flush.add_argument("collection", help="Collection name")

    return parser


async def run(args: argparse.Namespace, settings: Settings, console: Console) -> int:
    """Validate configuration and dispatch one command."""
    cloudflare = settings.cloudflare
    index_name = getattr(args, "name", None) or args.index_name
    if index_name:
        cloudflare = cloudflare.model_copy(update={"vectorize_index": index_name})
    if args.command == "create-index" and args.embedding_model:
        cloudflare = cloudflare.model_copy(update={"embedding_model": args.embedding_model})

    try:
        cloudflare.require_credentials()
    except ConfigurationError as e:
        return report_error(console, "Configuration error", e)

    async with VectorizeClient(settings=cloudflare) as client:
        if args.command == "create-index":
            model = cloudflare.embedding_model
            return await create_index(
                client,
                name=cloudflare.vectorize_index,
                dimensions=args.dimensions or dimensions_for_model(model),
                metric=args.metric,
                embedding_model=model,
                console=console,
                assume_yes=args.yes,
            )
        if args.command == "drop-index":
            return await drop_index(client, console, force=args.force)
        if args.command == "clear-index":
            return await clear_index(client, console, force=args.force)
        if args.command == "index-info":
            return await index_info(client, console)
        if args.command == "create-metadata-index":
            return await create_metadata_index(
                client,
                args.property_name,
                args.type,
                console,
                assume_yes=args.yes,
            )
        if args.command == "list-metadata-indexes":
            return await list_metadata_indexes(client, console)
        if args.command == "delete-metadata-index":
            return await delete_metadata_index(
                client,
                args.property_name,
                console,
                force=args.force,
            )

        engine = VectorizeEngine(client, settings=settings.search)
        if args.command == "import":
            return await import_records(
                engine,
                args.collection,
                args.path,
                console,
                chunk_size=args.chunk_size or settings.search.import_chunk_size,
            )
        if args.command == "flush":
            return await flush_collection(engine, args.collection, console)

    console.error(f"Unknown command: {args.command}")
    return EXIT_FAILURE


def main(argv: list[str] | None = None) -> None:
    """Main entry point."""
    args = build_parser().parse_args(argv)
    settings = get_settings()
    setup_logging(level=args.log_level)
    logger.debug(f"Running {args.command}", extra={"command": args.command})

    sys.exit(asyncio.run(run(args, settings, Console())))


if __name__ == "__main__":
    main()
