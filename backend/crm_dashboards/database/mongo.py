"""
MongoDB client, FastAPI database dependency and transaction helpers.

One ``MongoClient`` is shared by the whole process and created on first use,
so importing the app never opens a connection.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager, nullcontext
from typing import ContextManager, Iterator, Optional

from pymongo import MongoClient
from pymongo.client_session import ClientSession
from pymongo.database import Database

logger = logging.getLogger(__name__)

_client: Optional[MongoClient] = None


def get_client() -> MongoClient:
    global _client
    if _client is None:
        from crm_dashboards.config import settings

        logger.info(f"Connecting to MongoDB database {settings.MONGODB_DB_NAME!r}")
        _client = MongoClient(settings.MONGODB_URI, tz_aware=True)
    return _client


def get_database() -> Database:
    from crm_dashboards.config import settings

    return get_client()[settings.MONGODB_DB_NAME]


def get_db() -> Iterator[Database]:
    """Request-scoped database handle; pooling is left to pymongo."""
    yield get_database()


@contextmanager
def get_transaction(client: Optional[MongoClient] = None) -> Iterator[ClientSession]:
    """
    Run the enclosed writes in one multi-document transaction.

    Commits when the block exits normally and aborts when it raises. Needs a
    replica set or sharded cluster; standalone servers reject transactions.
    """
    client = client or get_client()
    with client.start_session() as session:
        with session.start_transaction():
            yield session


def maybe_transaction(db: Database, enabled: bool) -> ContextManager[Optional[ClientSession]]:
    """A transaction on ``db``'s client when enabled, otherwise a no-op yielding None."""
    if not enabled:
        return nullcontext(None)
    return get_transaction(db.client)
