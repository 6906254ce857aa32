"""
OAuth2 request router — authorize / authenticate entry points.

Route prefix: ``config.server_path`` (default ``/service/extension/oauth2``)

  GET {prefix}/authorize/{client}[?state=...]
  GET {prefix}/authenticate/{client}?code=...[&state=...]

Both end in a redirect. Handler failures never render an error page: they
redirect to the landing page with an ``error`` query parameter instead.
The endpoints are plain ``def`` so each request runs on its own worker
thread, alongside the blocking token exchange.
"""

from __future__ import annotations

import logging
from typing import Dict, Optional

from fastapi import APIRouter, HTTPException, Request, status
from fastapi.responses import RedirectResponse

from api.redirects import OAuth2ErrorCode, error_code_for, error_redirect_url
from config.settings import config
from handlers.base import OAuth2Handler
from handlers.errors import GenericOAuthError
from handlers.models import OAuthInfo
from handlers.registry import get_handler

logger = logging.getLogger(__name__)

router = APIRouter(tags=["oauth2"])

_ACTIONS = ("authorize", "authenticate")


# ── Path parsing ───────────────────────────────────────────────────────


def is_valid_path(path: str) -> bool:
    """True if the path is one serviced by this router."""
    lowered = path.lower()
    return "authenticate/" in lowered or "authorize/" in lowered


def parse_request_path(path: str) -> Dict[str, str]:
    """
    Pull ``action`` and ``client`` out of ``.../{action}/{client}``.

    Keys are omitted when the matching segment is not usable.
    """
    params: Dict[str, str] = {}
    parts = path.split("/")
    if len(parts) < 2:
        return params
    action, client = parts[-2].lower(), parts[-1]
    if action in _ACTIONS:
        params["action"] = action
    if client:
        params["client"] = client
    return params


def _auth_token(request: Request) -> Optional[str]:
    """Mailbox auth token from the Authorization header, else the auth cookie."""
    header = request.headers.get("Authorization")
    if header:
        scheme, _, value = header.partition(" ")
        if scheme.lower() == "bearer":
            return value.strip() or None
        return header.strip()
    return request.cookies.get(config.auth_cookie_name)


def _redirect(location: str) -> RedirectResponse:
    return RedirectResponse(location, status_code=status.HTTP_302_FOUND)


# ── Actions ────────────────────────────────────────────────────────────


def _authenticate(handler: OAuth2Handler, request: Request, params: Dict[str, str]) -> str:
    landing = config.default_success_redirect

    # the provider sends the user back with ?error=... when consent fails
    provider_error = params.get("error")
    if provider_error:
        logger.info(
            "%s redirected back with error '%s': %s",
            handler.client_name,
            provider_error,
            params.get("error_description"),
        )
        if provider_error == "access_denied":
            return error_redirect_url(landing, OAuth2ErrorCode.ACCESS_DENIED)
        return error_redirect_url(landing, OAuth2ErrorCode.UNHANDLED_ERROR)

    if not params.get("code"):
        logger.debug("Authenticate request for %s without a code", handler.client_name)
        return error_redirect_url(landing, OAuth2ErrorCode.INVALID_AUTH_CODE)

    auth_token = _auth_token(request)
    if not auth_token:
        logger.debug("Authenticate request for %s without a mailbox auth token", handler.client_name)
        return error_redirect_url(landing, OAuth2ErrorCode.INVALID_AUTH_TOKEN)

    info = OAuthInfo(params=params, auth_token=auth_token)
    handler.authenticate(info)
    return landing


# ── Routes ─────────────────────────────────────────────────────────────


@router.get("/{path:path}")
def dispatch(path: str, request: Request) -> RedirectResponse:
    """Route ``authorize`` / ``authenticate`` requests to the client's handler."""
    path = "/" + path.rstrip("/")
    if not is_valid_path(path):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid OAuth2 path")

    path_params = parse_request_path(path)
    action = path_params.get("action")
    client = path_params.get("client")
    if action is None or client is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid OAuth2 path")

    params = dict(request.query_params)
    try:
        handler = get_handler(client)
        if action == "authorize":
            location = handler.authorize(params.get("state"))
        else:
            location = _authenticate(handler, request, params)
    except GenericOAuthError as exc:
        logger.warning(
            "An oauth application error occurred (%s %s): %s [%s]",
            action,
            client,
            exc,
            exc.kind.value,
        )
        return _redirect(
            error_redirect_url(config.default_success_redirect, error_code_for(exc))
        )
    except Exception:
        logger.exception("Unexpected failure handling %s for %s", action, client)
        return _redirect(
            error_redirect_url(config.default_success_redirect, OAuth2ErrorCode.UNHANDLED_ERROR)
        )

    logger.debug("Redirecting %s %s to %s", action, client, location)
    return _redirect(location)
