"""
GoogleOAuth2Handler — OAuth2 web flow for Gmail.

Google only returns a refresh token on the first consent, so the authorize
URL forces offline access + consent, and refresh responses are accepted
without one (the stored token stays valid).
"""

from __future__ import annotations

from typing import Any, Dict, Mapping, Tuple

from handlers.base import OAuth2Handler
from handlers.errors import ErrorKind

# Google OAuth2 endpoints
_GOOGLE_AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"
_GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"

_GOOGLE_ERRORS: Dict[str, ErrorKind] = {
    "invalid_request": ErrorKind.INVALID_OPERATION,
    "invalid_client": ErrorKind.CONFIGURATION,
    "unauthorized_client": ErrorKind.CONFIGURATION,
    "access_denied": ErrorKind.USER_FORBIDDEN,
    "invalid_grant": ErrorKind.USER_UNAUTHORIZED,
    "unsupported_grant_type": ErrorKind.INVALID_OPERATION,
    "unsupported_response_type": ErrorKind.INVALID_OPERATION,
    "invalid_scope": ErrorKind.INVALID_OPERATION,
    "server_error": ErrorKind.INVALID_RESPONSE,
    "temporarily_unavailable": ErrorKind.INVALID_RESPONSE,
}


class GoogleOAuth2Handler(OAuth2Handler):
    """OAuth2 handler for Gmail."""

    @property
    def client_name(self) -> str:
        return "google"

    @property
    def host(self) -> str:
        return "gmail.com"

    @property
    def authorize_endpoint(self) -> str:
        return _GOOGLE_AUTH_URL

    @property
    def token_endpoint(self) -> str:
        return _GOOGLE_TOKEN_URL

    @property
    def required_scopes(self) -> str:
        return "email"

    @property
    def error_kinds(self) -> Mapping[str, ErrorKind]:
        return _GOOGLE_ERRORS

    @property
    def extra_authorize_params(self) -> Dict[str, str]:
        return {
            "access_type": "offline",   # gets refresh_token
            "prompt": "consent",        # force consent to always get refresh_token
        }

    @property
    def refresh_required_fields(self) -> Tuple[str, ...]:
        return ("access_token",)

    def get_primary_email(self, credentials: Mapping[str, Any]) -> str:
        return self.email_from_id_token(credentials)
