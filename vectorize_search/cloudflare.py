"""Helpers shared by the Cloudflare API clients."""

from typing import Any

import httpx

from vectorize_search.config import CloudflareSettings


def build_http_client(settings: CloudflareSettings) -> httpx.AsyncClient:
    """Create an HTTP client with the configured connect/read timeouts."""
    return httpx.AsyncClient(
        timeout=httpx.Timeout(settings.timeout, connect=settings.connect_timeout),
    )


def auth_headers(settings: CloudflareSettings) -> dict[str, str]:
    """Bearer authorization header for the configured API token."""
    token = settings.api_token.get_secret_value() if settings.api_token else ""
    return {"Authorization": f"Bearer {token}"}


def account_url(settings: CloudflareSettings) -> str:
    """Base URL for account-scoped endpoints."""
    return f"{settings.api_base_url.rstrip('/')}/accounts/{settings.account_id}"


def upstream_errors(response: httpx.Response) -> list[Any]:
    """Extract the ``errors`` array from a Cloudflare response body.

    Returns an empty list when the body is not JSON or has no errors.
    """
    try:
        body = response.json()
    except ValueError:
        return []
    if isinstance(body, dict) and isinstance(body.get("errors"), list):
        return body["errors"]
    return []


def format_errors(errors: list[Any]) -> str:
    """Join upstream error messages into one line."""
    messages = []
    for error in errors:
        if isinstance(error, dict):
            messages.append(str(error.get("message", error)))
        else:
            messages.append(str(error))
    return "; ".join(messages)
