"""Fake Cloudflare API responses for client tests."""

from typing import Any

import httpx

API_BASE = "https://api.test/client/v4"
INDEXES_PATH = "/client/v4/accounts/acct-123/vectorize/v2/indexes"
INDEX_PATH = f"{INDEXES_PATH}/products"


def ok(result: Any = None) -> dict[str, Any]:
    """Cloudflare success envelope."""
    return {"success": True, "errors": [], "messages": [], "result": result}


def failure(status: int, *messages: str, code: int = 1000) -> httpx.Response:
    """Cloudflare error response with one error entry per message."""
    return httpx.Response(
        status,
        json={
            "success": False,
            "errors": [{"code": code, "message": message} for message in messages],
            "messages": [],
            "result": None,
        },
    )


class RecordingHandler:
    """httpx.MockTransport handler that records requests.

    A route matches when the request path ends with its key; the first
    matching route wins. Route values may be a JSON body (served with 200),
    an ``httpx.Response`` or a callable taking the request. Unmatched paths
    return 404.
    """

    def __init__(self, routes: dict[str, Any] | None = None) -> None:
        self.routes: dict[str, Any] = routes or {}
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        for suffix, route in self.routes.items():
            if not request.url.path.endswith(suffix):
                continue
            if isinstance(route, httpx.Response):
                return route
            if callable(route):
                return route(request)
            return httpx.Response(200, json=route)
        return failure(404, "Not found")

    def paths(self) -> list[str]:
        return [request.url.path for request in self.requests]
