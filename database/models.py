"""
SQLAlchemy ORM models for mailboxes and their linked OAuth data sources.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Column,
    DateTime,
    ForeignKey,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import DeclarativeBase, relationship


class Base(DeclarativeBase):
    pass


class Mailbox(Base):
    __tablename__ = "mailboxes"

    account_id = Column(String(64), primary_key=True)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    data_sources = relationship("DataSource", back_populates="mailbox", cascade="all, delete-orphan")


class DataSource(Base):
    __tablename__ = "data_sources"
    __table_args__ = (
        UniqueConstraint("mailbox_id", "client", "username", name="uq_data_source_account"),
    )

    data_source_id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    mailbox_id = Column(String(64), ForeignKey("mailboxes.account_id", ondelete="CASCADE"), nullable=False)
    client = Column(String(32), nullable=False)
    host = Column(String(255), nullable=False)
    username = Column(String(255), nullable=False)
    refresh_token = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    mailbox = relationship("Mailbox", back_populates="data_sources")
