"""
repositories/entity_repo.py
---------------------------
Generic CRUD engine over EntityDescription metadata.

Every statement is built from the description (table, key column,
relationships) and every row is materialized through the description's
factory and the entity's own `scan_from_row`.
"""

import time
from typing import Any, Optional

from bccdata.config import CREATED_DATE_COLUMN, ROW_ID_COLUMN
from bccdata.db.context import DatabaseContext
from bccdata.db.transaction import Transaction
from bccdata.errors import ConfigurationError, ScanError
from bccdata.models.entity import Entity, EntityDescription
from bccdata.utils.logger import get_logger

logger = get_logger(__name__)


class EntityRepository:
    """
    CRUD operations for one registered entity description.

    Every method takes an optional `transaction`. Without one, create()
    begins, and commits or rolls back, a transaction on a connection of its
    own; reads check out a connection just for the query. A caller-supplied
    transaction is never committed or rolled back here.
    """

    def __init__(self, description: EntityDescription):
        if description.context is None:
            raise ConfigurationError(
                f"Entity '{description.name}' is not registered in a DatabaseContext"
            )
        self.description = description

    @property
    def context(self) -> DatabaseContext:
        return self.description.context

    # ── CREATE ────────────────────────────────────────────

    def create(self, *args: Any, transaction: Optional[Transaction] = None) -> Entity:
        """
        Insert a row, stamp its creation time and return it materialized.

        Args:
            *args: Positional values for the description's insert statement.
            transaction: Optional caller-owned transaction.

        Returns:
            The new entity, re-read from the datastore.

        Raises:
            ScanError: If the inserted row cannot be read back.
            DataStoreError: If the insert reports no generated key.
        """
        description = self.description
        ph = self.context.placeholder
        owns_transaction = transaction is None
        if owns_transaction:
            transaction = self.context.begin()

        try:
            statement = transaction.stmt(description.insert_statement)
            try:
                object_id = statement.execute(*args)
            finally:
                statement.close()

            created_time = int(time.time())
            transaction.execute(
                f"UPDATE {description.table_name} SET {CREATED_DATE_COLUMN}={ph} "
                f"WHERE {ROW_ID_COLUMN}={ph}",
                (created_time, object_id),
            )

            select_sql = f"SELECT * FROM {description.table_name} WHERE {ROW_ID_COLUMN}={ph}"
            with transaction.query(select_sql, (object_id,)) as rows:
                entity = description.create_zero_instance()
                if not entity.scan_from_row(rows):
                    raise ScanError(
                        f"Created {description.name} #{object_id} could not be read back"
                    )

            if owns_transaction:
                transaction.commit()
        except Exception as e:
            logger.error(f"Failed to create {description.name}: {e}")
            if owns_transaction:
                self._rollback_quietly(transaction)
            raise

        logger.info(f"Created {description.name} #{object_id}")
        return entity

    def create_from_rows(self, cursor: Any) -> list[Entity]:
        """
        Drain `cursor` into entities, in the order the rows arrive.

        Scanning stops when the entity reports the cursor exhausted.
        """
        entities = []
        while True:
            entity = self.description.create_zero_instance()
            if not entity.scan_from_row(cursor):
                break
            entities.append(entity)
        return entities

    # ── READ ──────────────────────────────────────────────

    def find_entities(
        self,
        value: Any,
        key_name: Optional[str] = None,
        transaction: Optional[Transaction] = None,
    ) -> list[Entity]:
        """
        Fetch every row whose `key_name` column equals `value`.

        Args:
            value: Value to match.
            key_name: Column to filter on (default: the primary key).
            transaction: Optional transaction to read through.

        Returns:
            Matching entities in datastore order; empty when nothing matches.
        """
        column = key_name or self.description.primary_key
        sql = (
            f"SELECT * FROM {self.description.table_name} "
            f"WHERE {column}={self.context.placeholder}"
        )
        with self._reader(transaction).query(sql, (value,)) as rows:
            return self.create_from_rows(rows)

    def find_entity(
        self,
        value: Any,
        key_name: Optional[str] = None,
        transaction: Optional[Transaction] = None,
    ) -> Optional[Entity]:
        """
        Fetch the first row whose `key_name` column equals `value`.

        Returns:
            The first matching entity, or None when nothing matches.
        """
        entities = self.find_entities(value, key_name, transaction)
        return entities[0] if entities else None

    def find_related(
        self,
        target_entity_name: str,
        query_key: str,
        query_value: Any,
        transaction: Optional[Transaction] = None,
    ) -> list[Entity]:
        """
        Fetch target entities linked through a join table.

        Joins the relationship's join table LEFT OUTER to the target table,
        so a join row whose target is missing still yields a row, with
        every target column NULL; the target's scan_from_row decides what
        that row becomes.

        Args:
            target_entity_name: Registered name of the related entity.
            query_key: Join-table column to filter on.
            query_value: Value `query_key` must equal.
            transaction: Optional transaction to read through.

        Raises:
            ConfigurationError: If the relationship or target entity is not
                registered.
        """
        relationship = self.description.relationship_for_name(target_entity_name)
        if relationship is None:
            raise ConfigurationError(
                f"Entity '{self.description.name}' has no relationship "
                f"to '{target_entity_name}'"
            )
        target = self.context.entity_description_for_name(target_entity_name)
        if target is None:
            raise ConfigurationError(f"Entity '{target_entity_name}' is not registered")

        join_table = relationship.join_table_name
        target_table = target.table_name
        sql = (
            f"SELECT {target_table}.* FROM {join_table} "
            f"LEFT OUTER JOIN {target_table} "
            f"ON {join_table}.{relationship.foreign_key}={target_table}.{relationship.target_key} "
            f"WHERE {join_table}.{query_key}={self.context.placeholder}"
        )
        with self._reader(transaction).query(sql, (query_value,)) as rows:
            return EntityRepository(target).create_from_rows(rows)

    # ── HELPERS ───────────────────────────────────────────

    def _reader(self, transaction: Optional[Transaction]) -> Any:
        return transaction if transaction is not None else self.context

    def _rollback_quietly(self, transaction: Transaction) -> None:
        """Roll back an owned transaction without masking the error in flight."""
        try:
            transaction.rollback()
        except Exception as e:
            logger.error(f"Rollback of {self.description.name} create failed: {e}")
