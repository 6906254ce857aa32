"""
Application settings loaded from environment variables.
"""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # ── Outlook OAuth2 ──────────────────────────────────────────────────
    outlook_client_id: str = ""
    outlook_client_secret: str = ""
    outlook_client_redirect_uri: str = ""
    outlook_scope: str = ""             # extra scopes, '+'-joined after the required ones

    # ── Yahoo OAuth2 ────────────────────────────────────────────────────
    yahoo_client_id: str = ""
    yahoo_client_secret: str = ""
    yahoo_client_redirect_uri: str = ""
    yahoo_scope: str = ""

    # ── Google OAuth2 ───────────────────────────────────────────────────
    google_client_id: str = ""
    google_client_secret: str = ""
    google_client_redirect_uri: str = ""
    google_scope: str = ""

    # ── Broker ──────────────────────────────────────────────────────────
    server_path: str = "/service/extension/oauth2"
    default_success_redirect: str = "/"
    auth_cookie_name: str = "ZM_AUTH_TOKEN"
    oauth_http_timeout: float = 10.0

    # ── Security Secrets ────────────────────────────────────────────────
    jwt_secret: str = "change-me-jwt-secret-key"       # HMAC secret for mailbox auth tokens
    jwt_expiry_seconds: int = 604800                    # 7 days
    token_encryption_key: str = ""                       # Fernet key for encrypting refresh tokens at rest

    # ── Database ────────────────────────────────────────────────────────
    database_url: str = "sqlite:///./oauth2_broker.db"

    # ── Server ──────────────────────────────────────────────────────────
    port: int = 8000
    host: str = "0.0.0.0"
    debug: bool = False

    model_config = {
        "env_file": ".env",
        "case_sensitive": False,
    }


config = Settings()
