"""
core/db.py -- Engine construction and connection handling shared by every store.

Both repositories (auth/store.py and expenses/store.py) open connections
through connect() so a failing database surfaces the same way everywhere:
the SQLAlchemy exception is logged with full detail and re-raised as
StoreError, which the API layer turns into an opaque 500.

Errors raised by the repository itself inside the with-block (ConflictError,
NotFoundError) are not SQLAlchemy errors and pass through untouched.

Layer rule: core/ is the kernel. No imports from api/, auth/ or expenses/.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import SQLAlchemyError

from core.errors import StoreError

logger = logging.getLogger("expenseapi.store")


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode for concurrent read safety.

    WAL (Write-Ahead Logging) allows readers to proceed without blocking
    during writes. Set per-connection because SQLite PRAGMAs are not
    inherited by new connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def make_engine(db_url: str) -> Engine:
    """Create an Engine for db_url with the SQLite tweaks every store needs.

    check_same_thread=False is required because FastAPI runs sync route
    handlers in a thread pool, so one pooled connection is used by many threads.
    """
    connect_args: dict = {}
    if db_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    engine = create_engine(db_url, connect_args=connect_args)
    if db_url.startswith("sqlite"):
        event.listen(engine, "connect", _set_wal_mode)
    return engine


@contextmanager
def connect(engine: Engine) -> Iterator[Connection]:
    """Yield a connection; translate driver failures into StoreError."""
    try:
        with engine.connect() as conn:
            yield conn
    except SQLAlchemyError as exc:
        logger.error("Store operation failed: %s", exc, exc_info=True)
        raise StoreError() from exc
