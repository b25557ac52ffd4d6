"""
models/entity.py
----------------
Metadata describing how a Python type maps onto a table.

An EntityDescription binds an entity-type name to its physical table, its
primary-key column, a factory for blank instances and the insert statement
used by `EntityRepository.create`. EntityRelationship describes a
many-to-many link to another registered entity through a join table.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable, Optional, Protocol, runtime_checkable

if TYPE_CHECKING:
    from bccdata.db.context import DatabaseContext
    from bccdata.db.transaction import PreparedStatement


@runtime_checkable
class Entity(Protocol):
    """
    Capability every mapped type implements.

    `scan_from_row` consumes the next row of a DB-API cursor and populates
    the instance from it. It returns True when a row was consumed and False
    when the cursor is exhausted; a row that cannot be scanned raises.
    """

    def scan_from_row(self, cursor: Any) -> bool:
        ...


@dataclass(frozen=True)
class EntityRelationship:
    """
    Many-to-many edge through a join table.

    Attributes:
        entity_name: Registered name of the target entity type.
        join_table_name: Table holding the key pairs.
        foreign_key: Join-table column matched against the target table.
        target_key: Target-table column the foreign key points at.
    """
    entity_name: str
    join_table_name: str
    foreign_key: str
    target_key: str


@dataclass
class EntityDescription:
    """
    Mapping metadata for one table.

    Attributes:
        name: Entity-type name, unique within a DatabaseContext.
        table_name: Physical table name.
        primary_key: Primary-key column, the default lookup column.
        insert_sql: Parameterized INSERT text run by create().
        create_zero_instance: Factory producing a blank Entity.
        relationships: Outgoing relationships keyed by target entity name.
        insert_statement: Prepared from insert_sql on registration.
        context: Owning DatabaseContext, stamped on registration.
    """
    name: str
    table_name: str
    primary_key: str
    insert_sql: str
    create_zero_instance: Callable[[], Entity]
    relationships: Optional[dict[str, EntityRelationship]] = None
    insert_statement: Optional["PreparedStatement"] = field(default=None, repr=False, compare=False)
    context: Optional["DatabaseContext"] = field(default=None, repr=False, compare=False)

    def register_relationship(self, relationship: EntityRelationship) -> None:
        """Add a relationship, replacing any previous one to the same target."""
        if self.relationships is None:
            self.relationships = {}
        self.relationships[relationship.entity_name] = relationship

    def relationship_for_name(self, entity_name: str) -> Optional[EntityRelationship]:
        """Return the relationship to `entity_name`, or None if there is none."""
        if self.relationships is None:
            return None
        return self.relationships.get(entity_name)
