"""
repositories/ - Data Access Layer
==================================
One generic repository drives create/find/join queries for any registered
entity, building its SQL from the entity's description instead of
hand-written statements per type.
"""

from bccdata.repositories.entity_repo import EntityRepository

__all__ = ["EntityRepository"]
