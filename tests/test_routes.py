"""
Tests for the OAuth2 request router.
"""

from unittest.mock import MagicMock, patch
from urllib.parse import parse_qs, urlsplit

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import select

from api.middleware import redact_query
from api.routes import is_valid_path, parse_request_path
from auth.jwt import create_token
from database.models import DataSource
from database.session import session_factory
from handlers.errors import ConfigurationError, UserUnauthorizedError
from handlers.exchange import CredentialExchangeClient
from handlers.registry import get_handler
from main import create_app

from helpers import json_transport, make_id_token

_BASE = "/service/extension/oauth2"
_LANDING = "https://mail.example.com/"


@pytest.fixture
def client():
    return TestClient(create_app(), follow_redirects=False)


def _query(location: str) -> dict:
    return parse_qs(urlsplit(location).query)


def _stub_exchange(body, calls=None):
    handler = get_handler("outlook")
    handler.exchange = CredentialExchangeClient(
        handler.token_endpoint, transport=json_transport(body, calls=calls)
    )
    return handler


class TestPathParsing:
    def test_valid_paths(self):
        assert is_valid_path("/authorize/outlook")
        assert is_valid_path("/oauth2/AUTHENTICATE/yahoo")
        assert not is_valid_path("/bogus/path")
        assert not is_valid_path("/authorize")

    def test_parse_action_and_client(self):
        assert parse_request_path("/oauth2/Authorize/outlook") == {
            "action": "authorize",
            "client": "outlook",
        }
        assert parse_request_path("/authorize/outlook/extra") == {"client": "extra"}


class TestAuthorizeRoute:
    def test_redirects_to_provider(self, client):
        resp = client.get(f"{_BASE}/authorize/outlook")

        assert resp.status_code == 302
        location = resp.headers["location"]
        assert location.startswith("https://login.microsoftonline.com/")
        query = _query(location)
        assert query["client_id"] == ["outlook-client-id"]
        assert "redirect_uri" in query
        assert query["response_type"] == ["code"]
        assert "scope" in query
        assert "state" not in query

    def test_state_is_forwarded(self, client):
        resp = client.get(f"{_BASE}/authorize/outlook", params={"state": "foo bar"})
        assert _query(resp.headers["location"])["state"] == ["foo bar"]

    def test_trailing_slash_is_ignored(self, client):
        resp = client.get(f"{_BASE}/authorize/outlook/")
        assert resp.status_code == 302
        assert resp.headers["location"].startswith("https://login.microsoftonline.com/")

    def test_bogus_path_is_bad_request_without_registry(self, client):
        with patch("api.routes.get_handler") as registry_lookup:
            resp = client.get(f"{_BASE}/bogus/path")
        assert resp.status_code == 400
        registry_lookup.assert_not_called()

    def test_unknown_action_is_bad_request(self, client):
        with patch("api.routes.get_handler") as registry_lookup:
            resp = client.get(f"{_BASE}/authorize/outlook/extra")
        assert resp.status_code == 400
        registry_lookup.assert_not_called()

    def test_unknown_client_redirects_with_invalid_client(self, client):
        resp = client.get(f"{_BASE}/authorize/myspace")
        assert resp.status_code == 302
        location = resp.headers["location"]
        assert location.startswith(_LANDING)
        assert _query(location)["error"] == ["invalid_client"]

    def test_unexpected_failure_still_redirects(self, client):
        with patch("api.routes.get_handler", side_effect=RuntimeError("boom")):
            resp = client.get(f"{_BASE}/authorize/outlook")
        assert resp.status_code == 302
        assert _query(resp.headers["location"])["error"] == ["unhandled_error"]


class TestAuthenticateRoute:
    def test_consent_denied_by_token_endpoint(self, client):
        handler = _stub_exchange({"error": "access_denied"})
        handler.data_source = MagicMock()

        resp = client.get(
            f"{_BASE}/authenticate/outlook",
            params={"code": "c"},
            headers={"Authorization": "Bearer tok"},
        )

        assert resp.status_code == 302
        location = resp.headers["location"]
        assert location.startswith(_LANDING)
        assert _query(location)["error"] == ["access_denied"]
        handler.data_source.update_credentials.assert_not_called()

    def test_provider_error_param_on_callback(self, client):
        with patch("api.routes.get_handler") as registry_lookup:
            handler = registry_lookup.return_value
            resp = client.get(
                f"{_BASE}/authenticate/outlook",
                params={"error": "access_denied", "error_description": "no"},
            )
        assert _query(resp.headers["location"])["error"] == ["access_denied"]
        handler.authenticate.assert_not_called()

    def test_missing_code(self, client):
        resp = client.get(f"{_BASE}/authenticate/outlook", headers={"Authorization": "Bearer tok"})
        assert _query(resp.headers["location"])["error"] == ["invalid_auth_code"]

    def test_missing_auth_token(self, client):
        resp = client.get(f"{_BASE}/authenticate/outlook", params={"code": "c"})
        assert _query(resp.headers["location"])["error"] == ["invalid_auth_token"]

    def test_empty_bearer_is_missing_auth_token(self, client):
        with patch("api.routes.get_handler") as registry_lookup:
            handler = registry_lookup.return_value
            resp = client.get(
                f"{_BASE}/authenticate/outlook",
                params={"code": "c"},
                headers={"Authorization": "Bearer"},
            )
        assert _query(resp.headers["location"])["error"] == ["invalid_auth_token"]
        handler.authenticate.assert_not_called()

    def test_configuration_failure_maps_to_invalid_client(self, client):
        with patch("api.routes.get_handler") as registry_lookup:
            registry_lookup.return_value.authenticate.side_effect = ConfigurationError("bad")
            resp = client.get(
                f"{_BASE}/authenticate/outlook",
                params={"code": "c"},
                headers={"Authorization": "Bearer tok"},
            )
        assert _query(resp.headers["location"])["error"] == ["invalid_client"]

    def test_other_failures_map_to_unhandled(self, client):
        with patch("api.routes.get_handler") as registry_lookup:
            registry_lookup.return_value.authenticate.side_effect = UserUnauthorizedError("no")
            resp = client.get(
                f"{_BASE}/authenticate/outlook",
                params={"code": "c"},
                headers={"Authorization": "Bearer tok"},
            )
        assert _query(resp.headers["location"])["error"] == ["unhandled_error"]

    def test_auth_token_from_cookie(self, client):
        with patch("api.routes.get_handler") as registry_lookup:
            handler = registry_lookup.return_value
            client.cookies.set("ZM_AUTH_TOKEN", "cookie-token")
            resp = client.get(
                f"{_BASE}/authenticate/outlook", params={"code": "c", "state": "relay-1"}
            )
        assert resp.headers["location"] == _LANDING
        info = handler.authenticate.call_args.args[0]
        assert info.auth_token == "cookie-token"
        assert info.get_param("code") == "c"
        assert info.get_param("state") == "relay-1"

    def test_end_to_end_links_data_source(self, client, db):
        calls = []
        _stub_exchange(
            {
                "access_token": "at",
                "refresh_token": "rt",
                "id_token": make_id_token({"email": "user@outlook.com"}),
            },
            calls=calls,
        )
        token = create_token("acct-42")

        resp = client.get(
            f"{_BASE}/authenticate/outlook",
            params={"code": "the-code", "state": "s"},
            headers={"Authorization": f"Bearer {token}"},
        )

        assert resp.status_code == 302
        assert resp.headers["location"] == _LANDING
        assert len(calls) == 1
        with session_factory() as session:
            source = session.execute(select(DataSource)).scalar_one()
        assert source.mailbox_id == "acct-42"
        assert source.client == "outlook"
        assert source.host == "microsoftonline.com"
        assert source.username == "user@outlook.com"
        assert source.refresh_token == "rt"

    def test_invalid_mailbox_token_redirects(self, client, db):
        _stub_exchange(
            {
                "access_token": "at",
                "refresh_token": "rt",
                "id_token": make_id_token({"email": "user@outlook.com"}),
            }
        )
        resp = client.get(
            f"{_BASE}/authenticate/outlook",
            params={"code": "c"},
            headers={"Authorization": "Bearer not-a-valid-token"},
        )
        assert _query(resp.headers["location"])["error"] == ["unhandled_error"]


class TestMiddleware:
    def test_redirects_are_not_cached(self, client):
        resp = client.get(f"{_BASE}/authorize/outlook")
        assert resp.headers["Cache-Control"] == "no-store"
        assert "X-Process-Time" in resp.headers

    def test_redact_query(self):
        redacted = redact_query("code=secret&state=s&client=outlook")
        assert "secret" not in redacted
        assert "client=outlook" in redacted
