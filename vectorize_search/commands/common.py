"""Helpers shared by operator commands."""

from vectorize_search.cloudflare import format_errors
from vectorize_search.commands.console import Console
from vectorize_search.exceptions import RemoteCallError, VectorizeSearchError
from vectorize_search.logging_config import get_logger

logger = get_logger(__name__)

EXIT_SUCCESS = 0
EXIT_FAILURE = 1


def report_error(console: Console, action: str, error: VectorizeSearchError) -> int:
    """Print a failed command's error and return the failure status."""
    logger.debug(
        f"{action} failed",
        extra={"code": error.code.value, "details": error.details},
    )
    console.error(f"{action}: {error.message}")
    if isinstance(error, RemoteCallError) and error.errors:
        for upstream in error.errors:
            console.line(f"  - {format_errors([upstream])}")
    return EXIT_FAILURE
