"""
Per-client configuration lookup.

Handlers never read ``Settings`` directly; they receive a ``Configuration``
scoped to their client name, so ``get_string("client_id")`` on the
``outlook`` view reads ``outlook_client_id``.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Optional

from config.settings import Settings, config
from handlers.errors import ConfigurationError

logger = logging.getLogger(__name__)

_MISSING = object()


class Configuration:
    """Immutable key/value snapshot for one OAuth client."""

    def __init__(self, client: str, values: Mapping[str, Any]) -> None:
        self._client = client
        self._values: Dict[str, Any] = dict(values)

    @property
    def client(self) -> str:
        return self._client

    def get_string(self, key: str, default: Any = _MISSING) -> str:
        """
        Return the value for ``key`` in this client's namespace.

        Empty values count as absent. Raises ``ConfigurationError`` when the
        key is absent and no default is given.
        """
        value = self._values.get(f"{self._client}_{key}")
        if value is None or value == "":
            if default is _MISSING:
                logger.warning(
                    "Missing config key '%s' for client '%s'", key, self._client
                )
                raise ConfigurationError(
                    f"Missing config key '{key}' for client '{self._client}'."
                )
            return default
        return str(value)


def build_configuration(client: str, settings: Optional[Settings] = None) -> Configuration:
    """Snapshot the current settings into a ``Configuration`` for ``client``."""
    settings = settings or config
    return Configuration(client, settings.model_dump())
