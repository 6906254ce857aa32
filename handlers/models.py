"""
Data carried through an OAuth2 flow.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Optional

from config.configuration import Configuration


@dataclass(frozen=True)
class ProviderConfig:
    """Static per-deployment settings for one provider."""

    client_id: str
    client_secret: str
    redirect_uri: str
    scope: str = ""

    @classmethod
    def from_configuration(cls, configuration: Configuration) -> "ProviderConfig":
        """Read the mandatory keys; a missing one raises ``ConfigurationError``."""
        return cls(
            client_id=configuration.get_string("client_id"),
            client_secret=configuration.get_string("client_secret"),
            redirect_uri=configuration.get_string("client_redirect_uri"),
            scope=configuration.get_string("scope", ""),
        )


@dataclass
class OAuthInfo:
    """
    Per-request context.

    Created by the router for one inbound request and filled in by the
    handler as the flow progresses. Never shared between requests.
    """

    params: Dict[str, str] = field(default_factory=dict)
    auth_token: Optional[str] = None
    client_id: Optional[str] = None
    client_secret: Optional[str] = None
    username: Optional[str] = None
    refresh_token: Optional[str] = None

    def get_param(self, key: str) -> Optional[str]:
        return self.params.get(key)
