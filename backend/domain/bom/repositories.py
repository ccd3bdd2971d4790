"""
BOM Domain - Repository Interfaces (Ports).

These are abstract interfaces that define how the engine interacts with persistence.
The Django implementations are in the infrastructure layer.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Dict, Iterable, List, Optional
from uuid import UUID

from .entities import BOMLine, CostHistoryEntry, Part


class PartRepository(ABC):
    """Repository interface for parts (the node arena, indexed by id)."""

    @abstractmethod
    def get(self, part_id: UUID) -> Optional[Part]:
        """Get part by ID."""

    @abstractmethod
    def get_many(self, part_ids: Iterable[UUID]) -> Dict[UUID, Part]:
        """Get several parts at once, keyed by id. Missing ids are omitted."""

    @abstractmethod
    def get_by_sku(self, sku: str) -> Optional[Part]:
        """Get part by SKU."""

    @abstractmethod
    def search(
        self,
        query: str = "",
        part_type: Optional[str] = None,
        lifecycle_status: Optional[str] = None,
    ) -> List[Part]:
        """Search parts by SKU, name or description, ordered by SKU."""

    @abstractmethod
    def add(self, part: Part) -> Part:
        """Insert a new part."""

    @abstractmethod
    def save(self, part: Part) -> Part:
        """Update an existing part."""


class BOMLineRepository(ABC):
    """Repository interface for the edge relation."""

    @abstractmethod
    def get(self, line_id: UUID) -> Optional[BOMLine]:
        """Get line by ID."""

    @abstractmethod
    def children_of(self, part_id: UUID, include_inactive: bool = False) -> List[BOMLine]:
        """Lines whose parent is ``part_id``, ordered by sort order then creation time."""

    @abstractmethod
    def parents_of(self, part_id: UUID, include_inactive: bool = False) -> List[BOMLine]:
        """Lines whose child is ``part_id``."""

    @abstractmethod
    def find_active(self, parent_part_id: UUID, child_part_id: UUID) -> Optional[BOMLine]:
        """The active line for a (parent, child) pair, if any."""

    @abstractmethod
    def is_referenced(self, part_id: UUID) -> bool:
        """Whether any line, active or not, uses the part as parent or child."""

    @abstractmethod
    def all_active(self) -> List[BOMLine]:
        """Every active line (integrity sweeps only)."""

    @abstractmethod
    def add(self, line: BOMLine) -> BOMLine:
        """Insert a new line."""

    @abstractmethod
    def save(self, line: BOMLine) -> BOMLine:
        """Update an existing line."""


class CostHistoryRepository(ABC):
    """Append-only storage for cost history. No update or delete exists."""

    @abstractmethod
    def append(self, entry: CostHistoryEntry) -> CostHistoryEntry:
        """Persist a new entry."""

    @abstractmethod
    def history_of(self, part_id: UUID, limit: int) -> List[CostHistoryEntry]:
        """Entries for a part, newest effective date first."""

    @abstractmethod
    def latest_effective(self, part_id: UUID, at: datetime) -> Optional[CostHistoryEntry]:
        """The most recent entry with ``effective_date <= at``."""

    @abstractmethod
    def earliest(self, part_id: UUID) -> Optional[CostHistoryEntry]:
        """The oldest entry for a part."""
