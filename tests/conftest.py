"""
Shared fixtures. Settings are read at import time, so the environment is
set up before any project module is imported.
"""

import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET"] = "test-jwt-secret-for-mailbox-auth-tokens"
os.environ["TOKEN_ENCRYPTION_KEY"] = ""
os.environ["DEFAULT_SUCCESS_REDIRECT"] = "https://mail.example.com/"
for _client in ("outlook", "yahoo", "google"):
    os.environ[f"{_client.upper()}_CLIENT_ID"] = f"{_client}-client-id"
    os.environ[f"{_client.upper()}_CLIENT_SECRET"] = f"{_client}-client-secret"
    os.environ[f"{_client.upper()}_CLIENT_REDIRECT_URI"] = (
        f"https://mail.example.com/service/extension/oauth2/authenticate/{_client}"
    )
os.environ["OUTLOOK_SCOPE"] = "offline_access"

import pytest

from database.models import Base
from database.session import engine
from handlers import encryption
from handlers.registry import HandlerRegistry


@pytest.fixture(autouse=True)
def reset_registry():
    HandlerRegistry.reset()
    yield
    HandlerRegistry.reset()


@pytest.fixture
def db():
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    encryption.reset()
