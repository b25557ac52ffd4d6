"""
db/transaction.py
-----------------
Transaction and prepared-statement handles the CRUD engine works against.

A Transaction checks out its own connection from the context's connection
source and holds it until commit() or rollback(), so two transactions
never share uncommitted work. Autocommit connections are switched to
manual commit (or given an explicit BEGIN) for the transaction's lifetime.
"""

from contextlib import closing, contextmanager
from typing import Any, Iterator, Sequence

from bccdata.errors import DataStoreError
from bccdata.utils.logger import get_logger

logger = get_logger(__name__)


class PreparedStatement:
    """
    Statement text owned by an EntityDescription and bound to a connection source.

    The statement is shared by every create() call on the description, so
    it holds no cursor itself; each call binds it to its own transaction.
    """

    def __init__(self, sql: str, source: Any):
        self.sql = sql
        self.source = source

    def __repr__(self) -> str:
        return f"PreparedStatement({self.sql!r})"


class BoundStatement:
    """A PreparedStatement bound to one transaction through its own cursor."""

    def __init__(self, statement: PreparedStatement, cursor: Any):
        self.statement = statement
        self.cursor = cursor

    def execute(self, *args: Any) -> Any:
        """
        Run the statement and return the key generated for the new row.

        Statements that return rows (``INSERT ... RETURNING id``) yield the
        first column of the first row; others fall back to ``lastrowid``.

        Raises:
            DataStoreError: If the driver reports no generated key.
        """
        logger.debug(f"Executing {self.statement.sql} with {args}")
        self.cursor.execute(self.statement.sql, args)
        if self.cursor.description is not None:
            row = self.cursor.fetchone()
            if row is not None:
                return row[0]
        elif self.cursor.lastrowid is not None:
            return self.cursor.lastrowid
        raise DataStoreError(
            f"Statement reported no generated key: {self.statement.sql}"
        )

    def close(self) -> None:
        """Close the cursor; the shared PreparedStatement stays usable."""
        self.cursor.close()


class Transaction:
    """
    A unit of work on a connection checked out from `source`.

    The connection goes back to the source when the transaction commits or
    rolls back; the transaction cannot be used after that. Used as a
    context manager it commits on a clean exit and rolls back otherwise.

    Args:
        source: Connection source with ``getconn()`` / ``putconn(conn)``,
            such as a psycopg2 pool or a ConnectionFactory.
    """

    def __init__(self, source: Any):
        self.source = source
        self.connection = source.getconn()
        self._restore_autocommit = False
        try:
            self._begin()
        except Exception:
            self._release(self.connection)
            raise

    def _begin(self) -> None:
        conn = self.connection
        autocommit = getattr(conn, "autocommit", None)
        if isinstance(autocommit, bool):
            # psycopg2, and sqlite3 on Python 3.12+ with autocommit set
            if autocommit:
                conn.autocommit = False
                self._restore_autocommit = True
        elif getattr(conn, "isolation_level", "") is None:
            # sqlite3 legacy transaction control in autocommit mode
            with closing(conn.cursor()) as cur:
                cur.execute("BEGIN")

    def __enter__(self) -> "Transaction":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if self.connection is None:
            return
        if exc_type is None:
            self.commit()
        else:
            self.rollback()

    @property
    def active(self) -> bool:
        return self.connection is not None

    def _checked_out(self) -> Any:
        if self.connection is None:
            raise DataStoreError("Transaction has already been committed or rolled back")
        return self.connection

    def stmt(self, statement: PreparedStatement) -> BoundStatement:
        """Bind a prepared statement to this transaction."""
        return BoundStatement(statement, self._checked_out().cursor())

    def execute(self, sql: str, params: Sequence[Any] = ()) -> int:
        """
        Run a statement that returns no rows.

        Returns:
            The driver-reported row count.
        """
        logger.debug(f"Executing {sql} with {tuple(params)}")
        with closing(self._checked_out().cursor()) as cur:
            cur.execute(sql, tuple(params))
            return cur.rowcount

    @contextmanager
    def query(self, sql: str, params: Sequence[Any] = ()) -> Iterator[Any]:
        """Run a query and yield its cursor, closed on exit."""
        with closing(run_query(self._checked_out(), sql, params)) as cur:
            yield cur

    def commit(self) -> None:
        conn = self._checked_out()
        try:
            conn.commit()
        finally:
            self._release(conn)

    def rollback(self) -> None:
        """Roll back and release the connection; a no-op once released."""
        if self.connection is None:
            return
        conn = self.connection
        try:
            conn.rollback()
        finally:
            self._release(conn)

    def _release(self, conn: Any) -> None:
        self.connection = None
        try:
            if self._restore_autocommit:
                conn.autocommit = True
        finally:
            self.source.putconn(conn)


def run_query(connection: Any, sql: str, params: Sequence[Any] = ()) -> Any:
    """Execute `sql` on a fresh cursor of `connection` and return the cursor."""
    logger.debug(f"Querying {sql} with {tuple(params)}")
    cur = connection.cursor()
    try:
        cur.execute(sql, tuple(params))
    except Exception:
        cur.close()
        raise
    return cur
