"""
Resolve the internal mailbox an auth token belongs to.
"""

from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from auth.jwt import verify_token
from database.models import Mailbox
from database.session import session_factory
from handlers.errors import GenericOAuthError, UserUnauthorizedError

logger = logging.getLogger(__name__)


def resolve_mailbox(auth_token: Optional[str], *, db_session: Optional[Session] = None) -> Mailbox:
    """
    Return the ``Mailbox`` for ``auth_token``, creating the row on first sight.

    Raises
    ------
    UserUnauthorizedError – missing, invalid or expired token
    GenericOAuthError     – storage failure
    """
    if not auth_token:
        raise UserUnauthorizedError("No auth token provided for the mailbox.")
    account_id = verify_token(auth_token)

    own_session = db_session is None
    session = db_session or session_factory()
    try:
        mailbox = session.get(Mailbox, account_id)
        if mailbox is None:
            mailbox = _create_mailbox(session, account_id, own_session)
        return mailbox
    except SQLAlchemyError as exc:
        logger.error("Unable to resolve mailbox for account %s: %s", account_id, exc)
        if own_session:
            session.rollback()
        raise GenericOAuthError("Unable to resolve the mailbox.") from exc
    finally:
        if own_session:
            session.close()


def _create_mailbox(session: Session, account_id: str, own_session: bool) -> Mailbox:
    created = Mailbox(account_id=account_id)
    try:
        if own_session:
            session.add(created)
            session.commit()
        else:
            with session.begin_nested():
                session.add(created)
    except IntegrityError:
        # a concurrent request created the row first
        if own_session:
            session.rollback()
        mailbox = session.get(Mailbox, account_id)
        if mailbox is None:
            raise
        logger.debug("Mailbox for account %s was created concurrently", account_id)
        return mailbox
    logger.info("Created mailbox for account %s", account_id)
    return created
