"""
Test helpers — simulated provider responses.
"""

from typing import Any, Dict, List, Optional

import httpx
import jwt

_ID_TOKEN_KEY = "id-token-signing-key-for-tests-only-0123456789"


def make_id_token(claims: Dict[str, Any]) -> str:
    """Signed with a throwaway key: the broker never verifies it."""
    return jwt.encode(claims, _ID_TOKEN_KEY, algorithm="HS256")


def json_transport(
    body: Any,
    status_code: int = 200,
    calls: Optional[List[httpx.Request]] = None,
) -> httpx.MockTransport:
    """A transport that answers every request with ``body`` as JSON."""

    def handler(request: httpx.Request) -> httpx.Response:
        if calls is not None:
            calls.append(request)
        return httpx.Response(status_code, json=body)

    return httpx.MockTransport(handler)


def failing_transport(calls: Optional[List[httpx.Request]] = None) -> httpx.MockTransport:
    """A transport whose every request fails to connect."""

    def handler(request: httpx.Request) -> httpx.Response:
        if calls is not None:
            calls.append(request)
        raise httpx.ConnectError("connection refused", request=request)

    return httpx.MockTransport(handler)
