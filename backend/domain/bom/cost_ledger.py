"""
BOM Domain - Cost history ledger.

Append-only audit trail of standard-cost changes.
"""

from __future__ import annotations
from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from domain.shared.base_entity import utcnow
from domain.shared.exceptions import EmptyReasonException, ValidationException

from .entities import CostHistoryEntry, Part
from .repositories import CostHistoryRepository


class CostHistoryLedger:

    def __init__(self, history: CostHistoryRepository, default_limit: int = 50):
        self._history = history
        self._default_limit = default_limit

    def append(
        self,
        part_id: UUID,
        old_cost: Optional[Decimal],
        new_cost: Decimal,
        reason: str,
        effective_date: Optional[datetime] = None,
        source_reference: str = "",
        created_by: Optional[str] = None,
    ) -> CostHistoryEntry:
        """Write one entry. Entries are never updated or deleted afterwards."""
        if not reason or not reason.strip():
            raise EmptyReasonException("change_reason")
        if new_cost is None or new_cost < 0:
            raise ValidationException("Cost cannot be negative", "new_cost", new_cost)
        entry = CostHistoryEntry(
            part_id=part_id,
            old_cost=old_cost,
            new_cost=new_cost,
            change_reason=reason.strip(),
            effective_date=effective_date or utcnow(),
            source_reference=source_reference,
            created_by=created_by,
        )
        return self._history.append(entry)

    def history_of(self, part_id: UUID, limit: Optional[int] = None) -> List[CostHistoryEntry]:
        """Entries for a part, newest first."""
        if limit is None:
            limit = self._default_limit
        if limit < 0:
            raise ValidationException("Limit cannot be negative", "limit", limit)
        return self._history.history_of(part_id, limit)

    def cost_as_of(self, part: Part, at: datetime) -> Optional[Decimal]:
        """
        The part's standard cost effective at ``at``.

        Latest entry with ``effective_date <= at``; failing that the
        baseline, which is the cost the earliest entry replaced, or the
        current cost when the part has no history at all.
        """
        entry = self._history.latest_effective(part.id, at)
        if entry is not None:
            return entry.new_cost
        first = self._history.earliest(part.id)
        if first is None:
            return part.std_cost
        return first.old_cost
