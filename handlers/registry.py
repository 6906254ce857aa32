"""
HandlerRegistry — resolves a provider name to its cached handler instance.

Handlers are built lazily on first use and kept for the life of the process:
there is no eviction and no invalidation. A restart (or ``reset()`` in tests)
is the only way to pick up new provider configuration.
"""

from __future__ import annotations

import logging
import threading
from typing import Dict, List, Optional, Type

from config.configuration import build_configuration
from handlers.base import OAuth2Handler
from handlers.errors import ConfigurationError
from handlers.google import GoogleOAuth2Handler
from handlers.outlook import OutlookOAuth2Handler
from handlers.yahoo import YahooOAuth2Handler

logger = logging.getLogger(__name__)

# ── All known handlers — add new ones here ───────────────────────────────

_HANDLER_CLASSES: Dict[str, Type[OAuth2Handler]] = {
    "outlook": OutlookOAuth2Handler,
    "yahoo": YahooOAuth2Handler,
    "google": GoogleOAuth2Handler,
}


class HandlerRegistry:
    """Process-wide singleton mapping provider name → handler instance."""

    _instance: Optional["HandlerRegistry"] = None
    _instance_lock = threading.Lock()

    def __new__(cls) -> "HandlerRegistry":
        with cls._instance_lock:
            if cls._instance is None:
                inst = super().__new__(cls)
                inst._handlers: Dict[str, OAuth2Handler] = {}
                inst._lock = threading.Lock()
                cls._instance = inst
        return cls._instance

    def get_handler(self, client: str) -> OAuth2Handler:
        """
        Return the handler for ``client``, constructing it on first use.

        Raises
        ------
        ConfigurationError – no handler registered for ``client``, or its
                             configuration is incomplete (nothing is cached)
        """
        handler = self._handlers.get(client)
        if handler is not None:
            return handler

        with self._lock:
            handler = self._handlers.get(client)
            if handler is not None:
                return handler

            handler_cls = _HANDLER_CLASSES.get(client)
            if handler_cls is None:
                logger.warning("No OAuth2 handler registered for client '%s'", client)
                raise ConfigurationError(f"Unsupported client: '{client}'.")

            handler = handler_cls(build_configuration(client))
            self._handlers[client] = handler
            logger.info("OAuth2 handler registered: %s (%s)", client, handler_cls.__name__)
            return handler

    def list_providers(self) -> List[str]:
        """Names of every provider with a registered implementation."""
        return list(_HANDLER_CLASSES.keys())

    def list_cached(self) -> List[str]:
        return list(self._handlers.keys())

    # ── reset (for tests) ──────────────────────────────────────────────

    @classmethod
    def reset(cls) -> None:
        """Destroy singleton — only useful in test teardown."""
        with cls._instance_lock:
            cls._instance = None


def get_handler(client: str) -> OAuth2Handler:
    return HandlerRegistry().get_handler(client)
