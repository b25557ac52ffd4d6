"""
db/connection.py
----------------
Connection sources a DatabaseContext draws from.

A source hands out one connection per transaction or direct query through
``getconn()`` and takes it back through ``putconn(conn)``. The process-wide
PostgreSQL pool (psycopg2's ThreadedConnectionPool) already has that shape;
ConnectionFactory gives it to any other DB-API ``connect`` callable.
"""

from typing import Any, Callable

import psycopg2
from psycopg2 import pool

from bccdata.config import DATABASE_URL, DB_POOL_MAX, DB_POOL_MIN
from bccdata.db.context import DatabaseContext
from bccdata.utils.logger import get_logger

logger = get_logger(__name__)

_pool: pool.ThreadedConnectionPool | None = None


def init_pool(
    min_conn: int = DB_POOL_MIN, max_conn: int = DB_POOL_MAX
) -> pool.ThreadedConnectionPool:
    """
    Create the shared PostgreSQL pool on first call and return it.

    Args:
        min_conn: Connections opened up front.
        max_conn: Upper bound on connections checked out at once, which is
            also the number of concurrent transactions a context can run.

    Raises:
        psycopg2.OperationalError: If the database is unreachable.
    """
    global _pool
    if _pool is None:
        try:
            _pool = pool.ThreadedConnectionPool(min_conn, max_conn, DATABASE_URL)
            logger.info(f"PostgreSQL pool ready ({min_conn}-{max_conn} connections).")
        except psycopg2.OperationalError as e:
            logger.error(f"Failed to initialize database pool: {e}")
            raise
    return _pool


def close_pool() -> None:
    """Close every pooled connection; contexts built on the pool stop working."""
    global _pool
    if _pool is not None:
        _pool.closeall()
        _pool = None
        logger.info("PostgreSQL pool closed.")


def open_context(paramstyle: str | None = None) -> DatabaseContext:
    """Build a DatabaseContext over the shared pool, creating it if needed."""
    return DatabaseContext(init_pool(), paramstyle=paramstyle)


class ConnectionFactory:
    """
    Unpooled connection source: a fresh connection per checkout.

    Example::

        source = ConnectionFactory(sqlite3.connect, "app.db")
        context = DatabaseContext(source)
    """

    def __init__(self, connect: Callable[..., Any], *args: Any, **kwargs: Any):
        self._connect = connect
        self._args = args
        self._kwargs = kwargs

    def getconn(self) -> Any:
        return self._connect(*self._args, **self._kwargs)

    def putconn(self, conn: Any) -> None:
        conn.close()
