"""
Domain Events.

Domain events are records of significant business occurrences.
The application layer writes them to the audit tables in the same
transaction as the change they describe.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional
from uuid import UUID, uuid4

from .base_entity import utcnow


@dataclass(frozen=True, kw_only=True)
class DomainEvent:
    """
    Base class for all domain events.

    Domain events are immutable records of something that happened in the domain.
    They are used for:
    - Audit trail
    - Rollup cache invalidation (``affected_part_ids``)
    """

    event_id: UUID = field(default_factory=uuid4)
    occurred_at: datetime = field(default_factory=utcnow)
    actor: Optional[str] = None

    @property
    def event_type(self) -> str:
        """Get the event type name."""
        return self.__class__.__name__

    @property
    def affected_part_ids(self) -> tuple:
        """Parts whose rolled cost may change because of this event."""
        return ()


# =============================================================================
# PART EVENTS
# =============================================================================

@dataclass(frozen=True, kw_only=True)
class PartCreated(DomainEvent):
    part_id: UUID
    sku: str
    part_type: str


@dataclass(frozen=True, kw_only=True)
class PartUpdated(DomainEvent):
    """Raised for plain attribute edits; ``changes`` maps field -> (old, new)."""

    part_id: UUID
    changes: Dict[str, Any] = field(default_factory=dict)
    reason: Optional[str] = None

    @property
    def affected_part_ids(self) -> tuple:
        # precision and conversion factor feed the rollup of every parent
        return (self.part_id,)


@dataclass(frozen=True, kw_only=True)
class PartCostChanged(DomainEvent):
    part_id: UUID
    old_cost: Optional[str]
    new_cost: str
    reason: str

    @property
    def affected_part_ids(self) -> tuple:
        return (self.part_id,)


@dataclass(frozen=True, kw_only=True)
class PartLifecycleChanged(DomainEvent):
    part_id: UUID
    old_status: str
    new_status: str
    reason: str
    override: bool = False


# =============================================================================
# BOM EVENTS
# =============================================================================

@dataclass(frozen=True, kw_only=True)
class BOMLineAdded(DomainEvent):
    line_id: UUID
    parent_part_id: UUID
    child_part_id: UUID
    qty_per: str
    uom: str
    reason: str = "BOM line added"

    @property
    def affected_part_ids(self) -> tuple:
        return (self.parent_part_id,)


@dataclass(frozen=True, kw_only=True)
class BOMLineUpdated(DomainEvent):
    line_id: UUID
    parent_part_id: UUID
    changes: Dict[str, Any] = field(default_factory=dict)
    previous_parent_id: Optional[UUID] = None

    @property
    def affected_part_ids(self) -> tuple:
        if self.previous_parent_id and self.previous_parent_id != self.parent_part_id:
            return (self.parent_part_id, self.previous_parent_id)
        return (self.parent_part_id,)


@dataclass(frozen=True, kw_only=True)
class BOMLineDeactivated(DomainEvent):
    line_id: UUID
    parent_part_id: UUID
    child_part_id: UUID

    @property
    def affected_part_ids(self) -> tuple:
        return (self.parent_part_id,)


@dataclass(frozen=True, kw_only=True)
class BOMSubtreeCloned(DomainEvent):
    source_part_id: UUID
    target_part_id: UUID
    source_sku: str
    lines_cloned: int
    lines_reused: int = 0

    @property
    def affected_part_ids(self) -> tuple:
        return (self.target_part_id,)
