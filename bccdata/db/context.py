"""
db/context.py
-------------
The DatabaseContext: registry of every EntityDescription sharing one
datastore connection source.

Descriptions are registered once, at startup, before any CRUD call. The
registry takes no locks; registering while other threads look names up
must be serialized by the caller.
"""

import sys
from contextlib import closing, contextmanager
from typing import Any, Iterator, Optional, Sequence

from bccdata.config import DB_PARAMSTYLE
from bccdata.db.transaction import PreparedStatement, Transaction, run_query
from bccdata.errors import ConfigurationError
from bccdata.models.entity import EntityDescription
from bccdata.utils.logger import get_logger

logger = get_logger(__name__)

# DB-API paramstyle -> anonymous positional marker.
PLACEHOLDERS: dict[str, str] = {
    "qmark": "?",
    "format": "%s",
    "pyformat": "%s",
}


def detect_paramstyle(connection: Any) -> str:
    """
    Read the DB-API ``paramstyle`` of the driver that owns `connection`.

    Subclassed connections are traced back through their bases to the
    driver. Falls back to ``qmark`` when no driver module is found.
    """
    for cls in type(connection).__mro__:
        module = sys.modules.get(cls.__module__.split(".")[0])
        paramstyle = getattr(module, "paramstyle", None)
        if paramstyle:
            return paramstyle
    return "qmark"


class DatabaseContext:
    """
    Root registry mapping entity-type names to EntityDescriptions.

    Args:
        database: Connection source with ``getconn()`` / ``putconn(conn)``:
            a psycopg2 pool, or a ConnectionFactory around any DB-API
            ``connect``. Every transaction and every direct query checks
            out its own connection.
        paramstyle: Overrides the driver's paramstyle (``qmark``,
            ``format`` or ``pyformat``). Defaults to DB_PARAMSTYLE, then
            to whatever the driver declares.

    Raises:
        ConfigurationError: If the paramstyle has no positional marker.
    """

    def __init__(self, database: Any, paramstyle: Optional[str] = None):
        self.database = database
        self.entity_descriptions: Optional[dict[str, EntityDescription]] = None

        style = paramstyle or DB_PARAMSTYLE
        if not style:
            with self.connection() as conn:
                style = detect_paramstyle(conn)
        if style not in PLACEHOLDERS:
            raise ConfigurationError(f"Unsupported paramstyle: {style!r}")
        self.paramstyle = style
        self.placeholder = PLACEHOLDERS[style]

    # ── REGISTRY ──────────────────────────────────────────

    def register_entity_description(self, description: EntityDescription) -> None:
        """
        Register `description` under its name, replacing any previous entry.

        Stamps the description's context back-reference and prepares its
        insert statement against this context's connection source.
        """
        if self.entity_descriptions is None:
            self.entity_descriptions = {}

        description.context = self
        description.insert_statement = self.prepare(description.insert_sql)

        self.entity_descriptions[description.name] = description
        logger.info(
            f"Registered entity '{description.name}' -> table {description.table_name}"
        )

    def entity_description_for_name(self, name: str) -> Optional[EntityDescription]:
        """Return the description registered as `name`, or None."""
        if self.entity_descriptions is None:
            return None
        return self.entity_descriptions.get(name)

    # ── DATASTORE ACCESS ──────────────────────────────────

    @contextmanager
    def connection(self) -> Iterator[Any]:
        """Check out a connection for the duration of the block."""
        conn = self.database.getconn()
        try:
            yield conn
        finally:
            self.database.putconn(conn)

    def begin(self) -> Transaction:
        """Start a transaction on a connection of its own."""
        return Transaction(self.database)

    def prepare(self, sql: str) -> PreparedStatement:
        """Bind statement text to the context's connection source."""
        return PreparedStatement(sql, self.database)

    @contextmanager
    def query(self, sql: str, params: Sequence[Any] = ()) -> Iterator[Any]:
        """Run a query outside any transaction and yield its cursor."""
        with self.connection() as conn:
            with closing(run_query(conn, sql, params)) as cur:
                yield cur
