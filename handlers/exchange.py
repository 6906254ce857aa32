"""
Credential exchange — POST to a provider's token endpoint and parse the JSON.

Blocking ``httpx.Client`` calls; each request runs on the server worker
thread that is serving it. There is no retry: a failed exchange fails the
request.
"""

from __future__ import annotations

import base64
import logging
from typing import Any, Dict, List, Optional, Tuple

import httpx

from handlers.errors import InvalidResponseError, UserUnauthorizedError
from handlers.models import OAuthInfo

logger = logging.getLogger(__name__)


def basic_auth_header(client_id: str, client_secret: str) -> str:
    token = base64.b64encode(f"{client_id}:{client_secret}".encode()).decode()
    return f"Basic {token}"


class CredentialExchangeClient:
    """Talks to one provider's token endpoint."""

    def __init__(
        self,
        token_url: str,
        timeout: float = 10.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.token_url = token_url
        self.timeout = timeout
        self._transport = transport

    def _client(self) -> httpx.Client:
        return httpx.Client(timeout=self.timeout, transport=self._transport)

    @staticmethod
    def build_form(info: OAuthInfo, redirect_uri: str) -> List[Tuple[str, str]]:
        """
        Form body for the token request.

        A refresh token on ``info`` selects the refresh grant; otherwise the
        authorization ``code`` param is exchanged.
        """
        if info.refresh_token:
            form = [
                ("grant_type", "refresh_token"),
                ("refresh_token", info.refresh_token),
            ]
        else:
            form = [
                ("grant_type", "authorization_code"),
                ("code", info.get_param("code") or ""),
            ]
        form += [
            ("redirect_uri", redirect_uri),
            ("client_secret", info.client_secret or ""),
            ("client_id", info.client_id or ""),
        ]
        return form

    def exchange(self, info: OAuthInfo, redirect_uri: str) -> Dict[str, Any]:
        """
        Run the token request and return the parsed body.

        The body is returned whatever the HTTP status: providers report
        grant errors as JSON on 4xx responses and the caller classifies them.

        Raises
        ------
        UserUnauthorizedError – transport failure or a body that is not JSON
        """
        headers = {
            "Content-Type": "application/x-www-form-urlencoded",
            "Authorization": basic_auth_header(info.client_id or "", info.client_secret or ""),
        }
        grant = "refresh_token" if info.refresh_token else "authorization_code"
        try:
            with self._client() as client:
                resp = client.post(
                    self.token_url,
                    data=dict(self.build_form(info, redirect_uri)),
                    headers=headers,
                )
            body = resp.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.error(
                "There was an issue acquiring the authorization token (%s grant): %s",
                grant,
                exc,
            )
            raise UserUnauthorizedError(
                "There was an issue acquiring an authorization token for this user."
            ) from exc

        if not isinstance(body, dict):
            raise UserUnauthorizedError(
                "There was an issue acquiring an authorization token for this user."
            )
        logger.debug(
            "Token exchange finished | url=%s grant=%s status=%s",
            self.token_url,
            grant,
            resp.status_code,
        )
        return body

    def get_json(self, url: str, access_token: str) -> Dict[str, Any]:
        """
        Authenticated GET used for provider profile lookups.

        Raises
        ------
        UserUnauthorizedError – transport failure
        InvalidResponseError  – non-2xx status, or a body that is not a JSON object
        """
        try:
            with self._client() as client:
                resp = client.get(
                    url,
                    headers={
                        "Authorization": f"Bearer {access_token}",
                        "Accept": "application/json",
                    },
                )
        except httpx.HTTPError as exc:
            logger.error("Profile request failed for %s: %s", url, exc)
            raise UserUnauthorizedError(
                "There was an issue acquiring the profile for this user."
            ) from exc

        if resp.status_code >= 400:
            logger.warning("Profile request to %s returned %s", url, resp.status_code)
            raise InvalidResponseError("Unexpected response from profile server.")
        try:
            body = resp.json()
        except ValueError as exc:
            raise InvalidResponseError("Unexpected response from profile server.") from exc
        if not isinstance(body, dict):
            logger.warning("Profile response from %s is not an object", url)
            raise InvalidResponseError("Unexpected response from profile server.")
        return body
