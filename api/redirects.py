"""
Redirect helpers — error codes shown to the client and query-string building.
"""

from __future__ import annotations

from enum import Enum
from typing import Mapping
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from handlers.errors import ErrorKind, GenericOAuthError


class OAuth2ErrorCode(str, Enum):
    ACCESS_DENIED = "access_denied"
    INVALID_CLIENT = "invalid_client"
    INVALID_AUTH_CODE = "invalid_auth_code"
    INVALID_AUTH_TOKEN = "invalid_auth_token"
    UNHANDLED_ERROR = "unhandled_error"


QUERY_ERROR = "error"


def error_code_for(exc: GenericOAuthError) -> OAuth2ErrorCode:
    """Short code a failed flow is reported to the client with."""
    if exc.kind == ErrorKind.USER_FORBIDDEN:
        return OAuth2ErrorCode.ACCESS_DENIED
    if exc.kind == ErrorKind.CONFIGURATION:
        return OAuth2ErrorCode.INVALID_CLIENT
    return OAuth2ErrorCode.UNHANDLED_ERROR


def add_query_params(url: str, params: Mapping[str, str]) -> str:
    """Append ``params`` to ``url``, keeping any query it already has."""
    scheme, netloc, path, query, fragment = urlsplit(url)
    pairs = parse_qsl(query, keep_blank_values=True) + list(params.items())
    return urlunsplit((scheme, netloc, path, urlencode(pairs), fragment))


def error_redirect_url(landing_page: str, code: OAuth2ErrorCode) -> str:
    return add_query_params(landing_page, {QUERY_ERROR: code.value})
