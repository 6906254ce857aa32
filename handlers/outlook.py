"""
OutlookOAuth2Handler — OAuth2 web flow for Outlook / Azure AD (v2.0 endpoint).
"""

from __future__ import annotations

from typing import Any, Dict, Mapping

from handlers.base import OAuth2Handler
from handlers.errors import ErrorKind

# Azure AD v2.0 endpoints
_OUTLOOK_AUTH_URL = "https://login.microsoftonline.com/common/oauth2/v2.0/authorize"
_OUTLOOK_TOKEN_URL = "https://login.microsoftonline.com/common/oauth2/v2.0/token"

_OUTLOOK_ERRORS: Dict[str, ErrorKind] = {
    # protocol error, such as a missing required parameter
    "invalid_request": ErrorKind.INVALID_OPERATION,
    # client application is not permitted to request a code
    "unauthorized_client": ErrorKind.CONFIGURATION,
    # resource owner denied consent
    "access_denied": ErrorKind.USER_FORBIDDEN,
    "server_error": ErrorKind.INVALID_RESPONSE,
    "temporarily_unavailable": ErrorKind.INVALID_RESPONSE,
    # target resource does not exist or is not correctly configured
    "invalid_resource": ErrorKind.USER_UNAUTHORIZED,
    "unsupported_response_type": ErrorKind.INVALID_OPERATION,
}


class OutlookOAuth2Handler(OAuth2Handler):
    """OAuth2 handler for Outlook."""

    @property
    def client_name(self) -> str:
        return "outlook"

    @property
    def host(self) -> str:
        return "microsoftonline.com"

    @property
    def authorize_endpoint(self) -> str:
        return _OUTLOOK_AUTH_URL

    @property
    def token_endpoint(self) -> str:
        return _OUTLOOK_TOKEN_URL

    @property
    def required_scopes(self) -> str:
        return "email"

    @property
    def error_kinds(self) -> Mapping[str, ErrorKind]:
        return _OUTLOOK_ERRORS

    def get_primary_email(self, credentials: Mapping[str, Any]) -> str:
        return self.email_from_id_token(credentials)
