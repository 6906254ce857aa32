"""
YahooOAuth2Handler — OAuth2 web flow for Yahoo Mail.

Yahoo does not send an id token with the scopes we ask for; the token
response names the user's GUID and the email comes from the profile API.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Mapping

from handlers.base import OAuth2Handler
from handlers.errors import ErrorKind, InvalidResponseError

logger = logging.getLogger(__name__)

# Yahoo OAuth2 endpoints
_YAHOO_AUTH_URL = "https://api.login.yahoo.com/oauth2/request_auth"
_YAHOO_TOKEN_URL = "https://api.login.yahoo.com/oauth2/get_token"
_YAHOO_PROFILE_URL = "https://social.yahooapis.com/v1/user/{guid}/profile?format=json"

_YAHOO_ERRORS: Dict[str, ErrorKind] = {
    "ACCOUNT_NOT_AUTHORIZED": ErrorKind.USER_FORBIDDEN,
    "INVALID_CLIENT_ID": ErrorKind.CONFIGURATION,
    "INVALID_CLIENT_SECRET": ErrorKind.CONFIGURATION,
    "INVALID_REDIRECT_URI": ErrorKind.CONFIGURATION,
    "INVALID_CALLBACK_URI": ErrorKind.CONFIGURATION,
    "INVALID_AUTHORIZATION_CODE": ErrorKind.INVALID_OPERATION,
    "INVALID_REFRESH_TOKEN": ErrorKind.INVALID_OPERATION,
    "INVALID_INPUT": ErrorKind.INVALID_OPERATION,
    "TOKEN_EXPIRED": ErrorKind.USER_UNAUTHORIZED,
    "INTERNAL_ERROR": ErrorKind.INVALID_RESPONSE,
}


class YahooOAuth2Handler(OAuth2Handler):
    """OAuth2 handler for Yahoo Mail."""

    @property
    def client_name(self) -> str:
        return "yahoo"

    @property
    def host(self) -> str:
        return "yahoo.com"

    @property
    def authorize_endpoint(self) -> str:
        return _YAHOO_AUTH_URL

    @property
    def token_endpoint(self) -> str:
        return _YAHOO_TOKEN_URL

    @property
    def required_scopes(self) -> str:
        return "sdps-r"

    @property
    def error_kinds(self) -> Mapping[str, ErrorKind]:
        return _YAHOO_ERRORS

    def get_primary_email(self, credentials: Mapping[str, Any]) -> str:
        guid = credentials.get("xoauth_yahoo_guid")
        if not guid:
            raise InvalidResponseError("Authentication response is missing the user guid.")

        profile = self.exchange.get_json(
            _YAHOO_PROFILE_URL.format(guid=guid), credentials["access_token"]
        )
        details = profile.get("profile")
        if not isinstance(details, dict):
            raise InvalidResponseError("Authentication response is missing the user profile.")
        emails = details.get("emails") or []
        if not isinstance(emails, list):
            emails = []
        emails = [e for e in emails if isinstance(e, dict)]
        primary = next((e for e in emails if e.get("primary")), None)
        if primary is None and emails:
            primary = emails[0]
        if not primary or not primary.get("handle"):
            raise InvalidResponseError("Authentication response is missing primary email.")
        logger.debug("Resolved yahoo identity %s", primary["handle"])
        return primary["handle"]
