"""
Data source gateway — read / write the refresh token a mailbox holds for one
external provider account.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from database.models import DataSource, Mailbox
from database.session import session_factory
from handlers.encryption import decrypt_token, encrypt_token
from handlers.errors import GenericOAuthError, InvalidOperationError
from handlers.models import OAuthInfo

logger = logging.getLogger(__name__)


class OAuthDataSource:
    """Data source storage for one provider (``client`` + mail ``host``)."""

    def __init__(self, client: str, host: str) -> None:
        self.client = client
        self.host = host

    def _find(self, session: Session, mailbox: Mailbox, username: str) -> Optional[DataSource]:
        result = session.execute(
            select(DataSource).where(
                DataSource.mailbox_id == mailbox.account_id,
                DataSource.client == self.client,
                DataSource.username == username,
            )
        )
        return result.scalar_one_or_none()

    def get_refresh_token(
        self,
        mailbox: Mailbox,
        username: Optional[str],
        *,
        db_session: Optional[Session] = None,
    ) -> Optional[str]:
        """Return the stored refresh token for ``username``, or None."""
        if not username:
            return None
        own_session = db_session is None
        session = db_session or session_factory()
        try:
            source = self._find(session, mailbox, username)
            if source is None or not source.refresh_token:
                return None
            return decrypt_token(source.refresh_token)
        except SQLAlchemyError as exc:
            logger.error("Unable to read %s data source for %s: %s", self.client, username, exc)
            raise GenericOAuthError("Unable to read the data source.") from exc
        finally:
            if own_session:
                session.close()

    def update_credentials(
        self,
        mailbox: Mailbox,
        info: OAuthInfo,
        *,
        db_session: Optional[Session] = None,
    ) -> None:
        """
        Create or update the data source for ``info.username`` with
        ``info.refresh_token``.
        """
        if not info.username or not info.refresh_token:
            raise InvalidOperationError("Username and refresh token are required.")

        own_session = db_session is None
        session = db_session or session_factory()
        try:
            source = self._find(session, mailbox, info.username)
            if source is None:
                source = DataSource(
                    mailbox_id=mailbox.account_id,
                    client=self.client,
                    host=self.host,
                    username=info.username,
                    refresh_token=encrypt_token(info.refresh_token),
                )
                session.add(source)
                logger.info(
                    "Created %s data source for account %s", self.client, mailbox.account_id
                )
            else:
                source.refresh_token = encrypt_token(info.refresh_token)
                source.host = self.host
                source.updated_at = datetime.now(timezone.utc)
                logger.info(
                    "Updated %s data source for account %s", self.client, mailbox.account_id
                )
            if own_session:
                session.commit()
            else:
                session.flush()
        except SQLAlchemyError as exc:
            logger.error(
                "Unable to store %s credentials for account %s: %s",
                self.client,
                mailbox.account_id,
                exc,
            )
            if own_session:
                session.rollback()
            raise GenericOAuthError("Unable to store the data source credentials.") from exc
        finally:
            if own_session:
                session.close()
