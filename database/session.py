"""
SQLAlchemy engine and session factory.
"""

from __future__ import annotations

from typing import Any, Dict

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from config.settings import config
from database.models import Base


def _engine_options(url: str) -> Dict[str, Any]:
    if url.startswith("sqlite"):
        options: Dict[str, Any] = {"connect_args": {"check_same_thread": False}}
        # An in-memory database only lives as long as its single connection.
        if url in ("sqlite://", "sqlite:///:memory:"):
            options["poolclass"] = StaticPool
        return options
    return {"pool_size": 10, "max_overflow": 20, "pool_recycle": 3600}


engine = create_engine(config.database_url, echo=False, **_engine_options(config.database_url))

session_factory = sessionmaker(engine, expire_on_commit=False)


def init_db() -> None:
    """Create any missing tables."""
    Base.metadata.create_all(engine)
