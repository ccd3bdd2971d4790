"""
Base Entity class for all domain entities.

Entities have identity and lifecycle.
Two entities are equal if they have the same ID.
"""

from __future__ import annotations
from abc import ABC
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional
from uuid import UUID, uuid4


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(kw_only=True, eq=False)
class Entity(ABC):
    """
    Base class for all domain entities.

    Entities are objects that have a distinct identity that runs through time
    and different representations. They are defined by their identity, not their attributes.
    """

    id: UUID = field(default_factory=uuid4)
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, Entity):
            return False
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} id={self.id}>"


@dataclass(kw_only=True, eq=False)
class VersionedEntity(Entity):
    """
    Entity with optimistic locking support.
    Used for entities that need concurrent modification protection.
    """

    version: int = 1

    def increment_version(self) -> None:
        """Increment version for optimistic locking."""
        self.version += 1
        self.updated_at = utcnow()


@dataclass(kw_only=True, eq=False)
class AuditableEntity(VersionedEntity):
    """
    Entity with audit trail support.
    Tracks who created and last modified the entity (opaque user names).
    """

    created_by: Optional[str] = None
    updated_by: Optional[str] = None

    def touch(self, user: Optional[str]) -> None:
        """Record a modification by ``user``."""
        self.updated_by = user
        self.increment_version()
