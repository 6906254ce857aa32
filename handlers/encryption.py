"""
Refresh-token encryption at rest.

Uses Fernet (AES-128-CBC + HMAC-SHA256) from the ``cryptography`` library.
The key is loaded from ``config.token_encryption_key``
(env var: ``TOKEN_ENCRYPTION_KEY``).

If no key is configured, encryption is **disabled** and refresh tokens are
stored as plaintext (with a startup warning).  Generate a key with::

    python -c "from cryptography.fernet import Fernet; print(Fernet.generate_key().decode())"
"""

from __future__ import annotations

import logging
import threading
from typing import Optional

from cryptography.fernet import Fernet, InvalidToken

from config.settings import config

logger = logging.getLogger(__name__)

_fernet: Optional[Fernet] = None
_initialised = False
_init_lock = threading.Lock()


def _init_fernet() -> None:
    """Lazy-initialise the Fernet cipher once."""
    global _fernet, _initialised

    with _init_lock:
        if _initialised:
            return
        key = config.token_encryption_key
        if not key:
            logger.warning(
                "TOKEN_ENCRYPTION_KEY not set — refresh tokens will be stored as plaintext."
            )
        else:
            try:
                _fernet = Fernet(key.encode())
                logger.info("Refresh token encryption enabled (Fernet)")
            except ValueError as exc:
                logger.error("Failed to initialise Fernet with provided key: %s", exc)
                _fernet = None
        _initialised = True


def encrypt_token(plaintext: str) -> str:
    """
    Encrypt a refresh token for database storage.

    If encryption is disabled, returns the plaintext unchanged.
    """
    if not _initialised:
        _init_fernet()
    if _fernet is None:
        return plaintext
    return _fernet.encrypt(plaintext.encode()).decode()


def decrypt_token(ciphertext: str) -> str:
    """
    Decrypt a refresh token read from the database.

    Rows written before encryption was enabled are not valid Fernet tokens
    and are returned as-is.
    """
    if not _initialised:
        _init_fernet()
    if _fernet is None:
        return ciphertext
    try:
        return _fernet.decrypt(ciphertext.encode()).decode()
    except InvalidToken:
        return ciphertext


def reset() -> None:
    """Forget the cipher so the next call re-reads the key (tests only)."""
    global _fernet, _initialised
    with _init_lock:
        _fernet = None
        _initialised = False
