"""
bccdata
=======
Metadata-driven relational mapping over DB-API connections.

Register EntityDescriptions (table, key column, factory, relationships)
in a DatabaseContext, then create and query entities through an
EntityRepository without writing per-type SQL.
"""

from bccdata.db.connection import ConnectionFactory
from bccdata.db.context import DatabaseContext
from bccdata.db.transaction import Transaction
from bccdata.errors import BccDataError, ConfigurationError, DataStoreError, ScanError
from bccdata.models.entity import Entity, EntityDescription, EntityRelationship
from bccdata.repositories.entity_repo import EntityRepository

__all__ = [
    "BccDataError",
    "ConnectionFactory",
    "ConfigurationError",
    "DataStoreError",
    "DatabaseContext",
    "Entity",
    "EntityDescription",
    "EntityRelationship",
    "EntityRepository",
    "ScanError",
    "Transaction",
]
