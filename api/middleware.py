"""
Global middleware.
"""

from __future__ import annotations

import logging
import time
from urllib.parse import parse_qsl, urlencode

from fastapi import FastAPI, Request

logger = logging.getLogger(__name__)

# never written to logs verbatim
_SENSITIVE_PARAMS = {"code", "state", "refresh_token", "access_token", "id_token"}


def redact_query(query: str) -> str:
    """Query string with sensitive parameter values masked."""
    pairs = [
        (key, "***" if key in _SENSITIVE_PARAMS else value)
        for key, value in parse_qsl(query, keep_blank_values=True)
    ]
    return urlencode(pairs)


def register_middleware(app: FastAPI) -> None:
    """Attach any app-level middleware."""

    @app.middleware("http")
    async def oauth2_request_log(request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        elapsed = time.perf_counter() - start
        response.headers["X-Process-Time"] = f"{elapsed:.4f}"
        # redirect targets carry codes and relay state
        response.headers["Cache-Control"] = "no-store"
        logger.info(
            "%s %s?%s → %s (%.3fs)",
            request.method,
            request.url.path,
            redact_query(request.url.query),
            response.status_code,
            elapsed,
        )
        return response
