"""
models/ - Mapping metadata
==========================
Entity descriptions, relationships and the Entity capability that every
mapped type implements. Nothing in this layer talks to the database.
"""

from bccdata.models.entity import Entity, EntityDescription, EntityRelationship

__all__ = ["Entity", "EntityDescription", "EntityRelationship"]
