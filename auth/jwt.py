"""
Mailbox auth tokens.

The internal mail client authenticates the callback with an HS256 JWT whose
``sub`` claim is the mailbox account id. Signed with ``config.jwt_secret``
(env var: ``JWT_SECRET``), valid for ``config.jwt_expiry_seconds``.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

import jwt

from config.settings import config
from handlers.errors import UserUnauthorizedError

logger = logging.getLogger(__name__)

_ALGORITHM = "HS256"
_REQUIRED_CLAIMS = ["sub", "exp", "iat"]


def create_token(account_id: str) -> str:
    issued = datetime.now(timezone.utc)
    claims = {
        "sub": account_id,
        "iat": issued,
        "exp": issued + timedelta(seconds=config.jwt_expiry_seconds),
    }
    return jwt.encode(claims, config.jwt_secret, algorithm=_ALGORITHM)


def verify_token(token: str) -> str:
    """
    Return the account id a mailbox auth token was issued for.

    Raises ``UserUnauthorizedError`` when the token is malformed, badly
    signed, expired, or has no account id.
    """
    try:
        claims = jwt.decode(
            token,
            config.jwt_secret,
            algorithms=[_ALGORITHM],
            options={"require": _REQUIRED_CLAIMS},
        )
    except jwt.ExpiredSignatureError as exc:
        logger.info("Rejected expired mailbox auth token")
        raise UserUnauthorizedError("The mailbox auth token has expired.") from exc
    except jwt.InvalidTokenError as exc:
        logger.warning("Rejected mailbox auth token: %s", exc)
        raise UserUnauthorizedError("Invalid mailbox auth token.") from exc

    account_id = claims["sub"]
    if not isinstance(account_id, str) or not account_id:
        raise UserUnauthorizedError("Mailbox auth token does not name an account.")
    return account_id
