"""
OAuth2Handler — abstract interface for all provider handlers.

Every provider (Outlook, Yahoo, Google, …) subclasses this, supplies its
endpoints, scopes and error vocabulary, and implements identity extraction.
The three contract operations (``authorize``, ``authenticate``, ``refresh``)
share one flow defined here.

Handler instances are cached for the process lifetime and shared between
request threads, so nothing request-specific may be stored on ``self``:
per-request state lives in the ``OAuthInfo`` passed in.
"""

from __future__ import annotations

import logging
import re
from abc import ABC, abstractmethod
from typing import Any, Dict, Mapping, Optional, Tuple
from urllib.parse import quote, unquote_plus, urlencode

import jwt

from auth.mailbox import resolve_mailbox
from config.configuration import Configuration
from config.settings import config
from handlers.data_source import OAuthDataSource
from handlers.errors import (
    ErrorKind,
    InvalidOperationError,
    InvalidResponseError,
    validate_token_response,
)
from handlers.exchange import CredentialExchangeClient
from handlers.models import OAuthInfo, ProviderConfig

logger = logging.getLogger(__name__)

_MALFORMED_ESCAPE = re.compile(r"%(?![0-9A-Fa-f]{2})")


def decode_unverified_claims(token: str) -> Dict[str, Any]:
    """
    Decode a JWT's claims WITHOUT verifying its signature.

    Only for reading identity claims out of a token we just received from
    the provider over TLS. Never use this as an authentication check.
    """
    try:
        return jwt.decode(token, options={"verify_signature": False})
    except jwt.InvalidTokenError as exc:
        raise InvalidResponseError("Authentication response has a malformed id token.") from exc


class OAuth2Handler(ABC):
    """Abstract base for all provider handlers."""

    relay_key = "state"
    response_type = "code"

    def __init__(self, configuration: Configuration) -> None:
        self.provider_config = ProviderConfig.from_configuration(configuration)
        self.scope = "+".join(
            part for part in (self.required_scopes, self.provider_config.scope) if part
        )
        self.data_source = OAuthDataSource(self.client_name, self.host)
        self.exchange = CredentialExchangeClient(
            self.token_endpoint, timeout=config.oauth_http_timeout
        )

    # ── Identity ────────────────────────────────────────────────────────

    @property
    @abstractmethod
    def client_name(self) -> str:
        """Unique slug used in request paths: 'outlook', 'yahoo', 'google'."""
        ...

    @property
    @abstractmethod
    def host(self) -> str:
        """Mail host the linked data source points at."""
        ...

    # ── Protocol constants ──────────────────────────────────────────────

    @property
    @abstractmethod
    def authorize_endpoint(self) -> str:
        ...

    @property
    @abstractmethod
    def token_endpoint(self) -> str:
        ...

    @property
    @abstractmethod
    def required_scopes(self) -> str:
        """Minimum scope, always sent ahead of any configured scopes."""
        ...

    @property
    @abstractmethod
    def error_kinds(self) -> Mapping[str, ErrorKind]:
        """Provider error code → ErrorKind."""
        ...

    @property
    def extra_authorize_params(self) -> Dict[str, str]:
        return {}

    @property
    def refresh_required_fields(self) -> Tuple[str, ...]:
        """Fields a refresh-grant response must carry."""
        return ("access_token", "refresh_token")

    # ── Contract ────────────────────────────────────────────────────────

    def authorize(self, relay_state: Optional[str]) -> str:
        """
        Build the provider's authorization URL.

        A non-empty ``relay_state`` is decoded, re-encoded and sent as the
        ``state`` parameter.

        Raises
        ------
        InvalidOperationError – ``relay_state`` cannot be decoded
        """
        url = (
            f"{self.authorize_endpoint}"
            f"?client_id={quote(self.provider_config.client_id, safe='')}"
            f"&redirect_uri={quote(self.provider_config.redirect_uri, safe='')}"
            f"&response_type={self.response_type}"
            f"&scope={self.scope}"
        )
        if self.extra_authorize_params:
            url += "&" + urlencode(self.extra_authorize_params)

        relay = relay_state or ""
        if relay:
            if _MALFORMED_ESCAPE.search(relay):
                raise InvalidOperationError("Unable to decode relay parameter.")
            try:
                relay = unquote_plus(relay, errors="strict")
            except UnicodeDecodeError as exc:
                raise InvalidOperationError("Unable to decode relay parameter.") from exc
            url += f"&{self.relay_key}={quote(relay, safe='')}"
        return url

    def authenticate(self, info: OAuthInfo) -> bool:
        """
        Exchange the authorization ``code`` in ``info`` for credentials and
        link the external account to the caller's mailbox.

        Returns True; every failure raises a ``GenericOAuthError``.
        """
        info.client_id = self.provider_config.client_id
        info.client_secret = self.provider_config.client_secret
        credentials = self.authenticate_request(info)

        mailbox = resolve_mailbox(info.auth_token)

        info.username = self.get_primary_email(credentials)
        info.refresh_token = credentials["refresh_token"]
        self.data_source.update_credentials(mailbox, info)
        logger.info("Linked %s account for mailbox %s", self.client_name, mailbox.account_id)
        return True

    def refresh(self, info: OAuthInfo) -> bool:
        """
        Renew the stored credentials for ``info.username``.

        Raises
        ------
        InvalidOperationError – no refresh token stored for the user
        """
        info.client_id = self.provider_config.client_id
        info.client_secret = self.provider_config.client_secret

        mailbox = resolve_mailbox(info.auth_token)

        refresh_token = self.data_source.get_refresh_token(mailbox, info.username)
        if not refresh_token:
            raise InvalidOperationError("The specified user has no stored refresh token.")

        info.refresh_token = refresh_token
        credentials = self.authenticate_request(info, required=self.refresh_required_fields)

        # providers may rotate the refresh token
        info.refresh_token = credentials.get("refresh_token") or refresh_token
        self.data_source.update_credentials(mailbox, info)
        logger.info("Refreshed %s credentials for mailbox %s", self.client_name, mailbox.account_id)
        return True

    # ── Helpers ─────────────────────────────────────────────────────────

    def authenticate_request(
        self,
        info: OAuthInfo,
        required: Tuple[str, ...] = ("access_token", "refresh_token"),
    ) -> Dict[str, Any]:
        """Run the token exchange and validate the response."""
        credentials = self.exchange.exchange(info, self.provider_config.redirect_uri)
        validate_token_response(credentials, self.error_kinds, required)
        return credentials

    def email_from_id_token(self, credentials: Mapping[str, Any]) -> str:
        """Read the ``email`` claim out of the response's id token."""
        id_token = credentials.get("id_token")
        if not id_token:
            raise InvalidResponseError("Authentication response is missing the id token.")
        email = decode_unverified_claims(id_token).get("email")
        if not email:
            raise InvalidResponseError("Authentication response is missing primary email.")
        logger.debug("Resolved %s identity %s", self.client_name, email)
        return email

    @abstractmethod
    def get_primary_email(self, credentials: Mapping[str, Any]) -> str:
        """
        Return the external account's primary email.

        Raises
        ------
        InvalidResponseError – the identity is missing from the response
        """
        ...
