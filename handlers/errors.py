"""
Error taxonomy shared by every provider handler.

Each provider speaks its own error vocabulary in token responses; handlers
translate those codes into one of the ``ErrorKind`` values below by raising
the matching ``GenericOAuthError`` subclass. Unknown codes fail closed as
``UserUnauthorized``.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Dict, Iterable, Mapping, Type

logger = logging.getLogger(__name__)


class ErrorKind(str, Enum):
    INVALID_OPERATION = "InvalidOperation"
    CONFIGURATION = "Configuration"
    USER_FORBIDDEN = "UserForbidden"
    USER_UNAUTHORIZED = "UserUnauthorized"
    INVALID_RESPONSE = "InvalidResponse"
    GENERIC = "Generic"


class GenericOAuthError(Exception):
    """Base for every failure raised by the OAuth2 flow."""

    kind: ErrorKind = ErrorKind.GENERIC


class InvalidOperationError(GenericOAuthError):
    """The request cannot be performed as asked (bad params, no stored token)."""

    kind = ErrorKind.INVALID_OPERATION


class ConfigurationError(GenericOAuthError):
    """Client id/secret, redirect URI or provider registration is wrong."""

    kind = ErrorKind.CONFIGURATION


class UserForbiddenError(GenericOAuthError):
    """The resource owner declined consent."""

    kind = ErrorKind.USER_FORBIDDEN


class UserUnauthorizedError(GenericOAuthError):
    """The user could not be authenticated, or a token could not be acquired."""

    kind = ErrorKind.USER_UNAUTHORIZED


class InvalidResponseError(GenericOAuthError):
    """The provider answered with something we cannot use."""

    kind = ErrorKind.INVALID_RESPONSE


_ERRORS_BY_KIND: Dict[ErrorKind, Type[GenericOAuthError]] = {
    cls.kind: cls
    for cls in (
        GenericOAuthError,
        InvalidOperationError,
        ConfigurationError,
        UserForbiddenError,
        UserUnauthorizedError,
        InvalidResponseError,
    )
}

_MESSAGES: Dict[ErrorKind, str] = {
    ErrorKind.INVALID_OPERATION: "The authentication request parameters are invalid.",
    ErrorKind.CONFIGURATION: "The specified client details provided to oauth2 server are invalid.",
    ErrorKind.USER_FORBIDDEN: "User did not provide authorization for this service.",
    ErrorKind.INVALID_RESPONSE: "There was an issue with the remote oauth2 server.",
    ErrorKind.USER_UNAUTHORIZED: "Unable to authenticate the user.",
    ErrorKind.GENERIC: "An oauth application error occurred.",
}

# Consent denial is the user's call; configuration defects need an operator.
_LOG_LEVELS: Dict[ErrorKind, int] = {
    ErrorKind.CONFIGURATION: logging.WARNING,
    ErrorKind.USER_FORBIDDEN: logging.INFO,
    ErrorKind.INVALID_RESPONSE: logging.DEBUG,
    ErrorKind.INVALID_OPERATION: logging.WARNING,
}


def error_for_kind(kind: ErrorKind) -> Type[GenericOAuthError]:
    return _ERRORS_BY_KIND[kind]


def classify_error(code: str, error_kinds: Mapping[str, ErrorKind]) -> ErrorKind:
    """Map a provider error code to an ``ErrorKind`` (unknown → UserUnauthorized)."""
    return error_kinds.get(code, ErrorKind.USER_UNAUTHORIZED)


def validate_token_response(
    response: Mapping[str, Any],
    error_kinds: Mapping[str, ErrorKind],
    required: Iterable[str] = ("access_token", "refresh_token"),
) -> None:
    """
    Raise the typed error a token response calls for, if any.

    The ``error`` field is checked first; a response carrying one is never
    inspected for token fields. Without an error, every ``required`` field
    must be present.
    """
    if "error" in response:
        code = str(response.get("error"))
        description = response.get("error_description")
        kind = classify_error(code, error_kinds)
        known = code in error_kinds
        level = _LOG_LEVELS.get(kind, logging.DEBUG) if known else logging.WARNING
        logger.log(level, "OAuth2 server returned error '%s': %s", code, description)
        raise error_for_kind(kind)(_MESSAGES[kind])

    missing = [field for field in required if field not in response]
    if missing:
        logger.debug("Token response is missing fields: %s", missing)
        raise InvalidResponseError("Unexpected response from mail server.")
