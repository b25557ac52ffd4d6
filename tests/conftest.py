"""
Shared fixtures: a file-backed SQLite schema of lists, placemarks and the
lists_placemarks join table, a connection source handing out a separate
connection per checkout, and dataclass entities that scan the rows.
"""

import sqlite3
from dataclasses import dataclass
from typing import Optional

import pytest

from bccdata.db.connection import ConnectionFactory
from bccdata.db.context import DatabaseContext
from bccdata.models.entity import EntityDescription, EntityRelationship
from bccdata.repositories.entity_repo import EntityRepository

SCHEMA_SQL = """
CREATE TABLE lists (
    id          INTEGER PRIMARY KEY AUTOINCREMENT,
    name        TEXT NOT NULL,
    owner       TEXT,
    createdDate INTEGER
);

CREATE TABLE placemarks (
    id          INTEGER PRIMARY KEY AUTOINCREMENT,
    title       TEXT NOT NULL,
    createdDate INTEGER
);

CREATE TABLE lists_placemarks (
    id           INTEGER PRIMARY KEY AUTOINCREMENT,
    listsID      INTEGER NOT NULL,
    placemarksID INTEGER NOT NULL
);
"""


# =============================================================================
# Entities
# =============================================================================


@dataclass
class PlaceList:
    id: Optional[int] = None
    name: Optional[str] = None
    owner: Optional[str] = None
    created_date: Optional[int] = None

    def scan_from_row(self, cursor) -> bool:
        row = cursor.fetchone()
        if row is None:
            return False
        self.id, self.name, self.owner, self.created_date = row
        return True


@dataclass
class Placemark:
    id: Optional[int] = None
    title: Optional[str] = None
    created_date: Optional[int] = None

    def scan_from_row(self, cursor) -> bool:
        row = cursor.fetchone()
        if row is None:
            return False
        self.id, self.title, self.created_date = row
        return True


# =============================================================================
# Connections
# =============================================================================


class RecordingConnection(sqlite3.Connection):
    """SQLite connection that counts commits and rollbacks."""

    fail_rollback = False

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.commits = 0
        self.rollbacks = 0

    def commit(self):
        self.commits += 1
        super().commit()

    def rollback(self):
        self.rollbacks += 1
        if self.fail_rollback:
            raise sqlite3.OperationalError("disk I/O error")
        super().rollback()


class CountingFactory(ConnectionFactory):
    """ConnectionFactory that remembers what it handed out."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.handed_out = []
        self.checked_out = 0

    def getconn(self):
        conn = super().getconn()
        self.handed_out.append(conn)
        self.checked_out += 1
        return conn

    def putconn(self, conn):
        self.checked_out -= 1
        super().putconn(conn)


def count_rows(conn: sqlite3.Connection, table: str) -> int:
    return conn.execute(f"SELECT COUNT(*) FROM {table}").fetchall()[0][0]


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def db_path(tmp_path) -> str:
    path = str(tmp_path / "bccdata.db")
    conn = sqlite3.connect(path)
    conn.executescript(SCHEMA_SQL)
    conn.close()
    return path


@pytest.fixture
def sqlite_conn(db_path):
    """Autocommit connection for test setup and for checking committed state."""
    conn = sqlite3.connect(db_path, isolation_level=None)
    yield conn
    conn.close()


@pytest.fixture
def source(db_path) -> CountingFactory:
    return CountingFactory(sqlite3.connect, db_path, timeout=1, factory=RecordingConnection)


@pytest.fixture
def context(source) -> DatabaseContext:
    return DatabaseContext(source)


@pytest.fixture
def list_description() -> EntityDescription:
    description = EntityDescription(
        name="lists",
        table_name="lists",
        primary_key="id",
        insert_sql="INSERT INTO lists (name, owner) VALUES (?, ?)",
        create_zero_instance=PlaceList,
    )
    description.register_relationship(
        EntityRelationship(
            entity_name="placemarks",
            join_table_name="lists_placemarks",
            foreign_key="placemarksID",
            target_key="id",
        )
    )
    return description


@pytest.fixture
def placemark_description() -> EntityDescription:
    return EntityDescription(
        name="placemarks",
        table_name="placemarks",
        primary_key="id",
        insert_sql="INSERT INTO placemarks (title) VALUES (?)",
        create_zero_instance=Placemark,
    )


@pytest.fixture
def registered(context, list_description, placemark_description) -> DatabaseContext:
    context.register_entity_description(list_description)
    context.register_entity_description(placemark_description)
    return context


@pytest.fixture
def lists_repo(registered, list_description) -> EntityRepository:
    return EntityRepository(list_description)


@pytest.fixture
def placemarks_repo(registered, placemark_description) -> EntityRepository:
    return EntityRepository(placemark_description)
