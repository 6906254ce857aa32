"""
Tests for mailbox resolution and the data source gateway (in-memory SQLite).
"""

from unittest.mock import patch

import jwt
import pytest
from cryptography.fernet import Fernet
from sqlalchemy import select

from auth import jwt as jwt_tokens
from auth.jwt import create_token, verify_token
from auth.mailbox import resolve_mailbox
from database.models import DataSource, Mailbox
from database.session import session_factory
from handlers import encryption
from handlers.data_source import OAuthDataSource
from handlers.errors import InvalidOperationError, UserUnauthorizedError
from handlers.models import OAuthInfo


class TestAuthToken:
    def test_round_trip(self):
        assert verify_token(create_token("acct-1")) == "acct-1"

    def test_token_is_hs256_jwt_naming_the_account(self):
        token = create_token("acct-1")
        assert jwt.get_unverified_header(token)["alg"] == "HS256"
        claims = jwt.decode(token, options={"verify_signature": False})
        assert claims["sub"] == "acct-1"
        assert claims["exp"] > claims["iat"]

    def test_tampered_token_is_rejected(self):
        header, payload, sig = create_token("acct-1").split(".")
        with pytest.raises(UserUnauthorizedError):
            verify_token(f"{header}.{payload}.{sig[::-1]}")

    def test_token_signed_with_other_secret_is_rejected(self):
        forged = jwt.encode(
            {"sub": "acct-1", "iat": 0, "exp": 4102444800},
            "some-other-secret-that-is-long-enough-0123",
            algorithm="HS256",
        )
        with pytest.raises(UserUnauthorizedError):
            verify_token(forged)

    def test_expired_token_is_rejected(self):
        with patch.object(jwt_tokens.config, "jwt_expiry_seconds", -60):
            token = create_token("acct-1")
        with pytest.raises(UserUnauthorizedError):
            verify_token(token)

    def test_token_without_expiry_is_rejected(self):
        token = jwt.encode({"sub": "acct-1", "iat": 0}, jwt_tokens.config.jwt_secret, algorithm="HS256")
        with pytest.raises(UserUnauthorizedError):
            verify_token(token)


class TestResolveMailbox:
    def test_creates_mailbox_once(self, db):
        token = create_token("acct-1")
        first = resolve_mailbox(token)
        second = resolve_mailbox(token)

        assert first.account_id == second.account_id == "acct-1"
        with session_factory() as session:
            assert len(session.execute(select(Mailbox)).scalars().all()) == 1

    def test_row_created_concurrently_is_reused(self, db):
        with session_factory() as other:
            other.add(Mailbox(account_id="acct-1"))
            other.commit()

        session = session_factory()
        real_get = session.get
        lookups = []

        def get_after_lost_race(model, key):
            lookups.append(key)
            # the first lookup ran before the other request committed
            return None if len(lookups) == 1 else real_get(model, key)

        with patch.object(session, "get", side_effect=get_after_lost_race), patch(
            "auth.mailbox.session_factory", return_value=session
        ):
            mailbox = resolve_mailbox(create_token("acct-1"))

        assert mailbox.account_id == "acct-1"
        assert lookups == ["acct-1", "acct-1"]
        with session_factory() as check:
            assert len(check.execute(select(Mailbox)).scalars().all()) == 1

    def test_missing_token(self, db):
        with pytest.raises(UserUnauthorizedError):
            resolve_mailbox(None)

    def test_invalid_token(self, db):
        with pytest.raises(UserUnauthorizedError):
            resolve_mailbox("garbage")


class TestOAuthDataSource:
    def _mailbox(self) -> Mailbox:
        return resolve_mailbox(create_token("acct-1"))

    def test_no_token_stored(self, db):
        source = OAuthDataSource("outlook", "microsoftonline.com")
        assert source.get_refresh_token(self._mailbox(), "user@outlook.com") is None
        assert source.get_refresh_token(self._mailbox(), None) is None

    def test_create_then_update(self, db):
        mailbox = self._mailbox()
        source = OAuthDataSource("outlook", "microsoftonline.com")

        source.update_credentials(mailbox, OAuthInfo(username="user@outlook.com", refresh_token="rt-1"))
        assert source.get_refresh_token(mailbox, "user@outlook.com") == "rt-1"

        source.update_credentials(mailbox, OAuthInfo(username="user@outlook.com", refresh_token="rt-2"))
        assert source.get_refresh_token(mailbox, "user@outlook.com") == "rt-2"

        with session_factory() as session:
            rows = session.execute(select(DataSource)).scalars().all()
        assert len(rows) == 1

    def test_sources_are_scoped_by_client(self, db):
        mailbox = self._mailbox()
        outlook = OAuthDataSource("outlook", "microsoftonline.com")
        yahoo = OAuthDataSource("yahoo", "yahoo.com")

        outlook.update_credentials(mailbox, OAuthInfo(username="same@example.com", refresh_token="rt"))
        assert yahoo.get_refresh_token(mailbox, "same@example.com") is None

    def test_update_requires_username_and_token(self, db):
        source = OAuthDataSource("outlook", "microsoftonline.com")
        with pytest.raises(InvalidOperationError):
            source.update_credentials(self._mailbox(), OAuthInfo(username="user@outlook.com"))

    def test_refresh_token_encrypted_at_rest(self, db):
        key = Fernet.generate_key().decode()
        encryption.reset()
        with patch.object(encryption.config, "token_encryption_key", key):
            mailbox = self._mailbox()
            source = OAuthDataSource("outlook", "microsoftonline.com")
            source.update_credentials(
                mailbox, OAuthInfo(username="user@outlook.com", refresh_token="rt-secret")
            )

            with session_factory() as session:
                stored = session.execute(select(DataSource)).scalar_one().refresh_token
            assert stored != "rt-secret"
            assert source.get_refresh_token(mailbox, "user@outlook.com") == "rt-secret"
        encryption.reset()
