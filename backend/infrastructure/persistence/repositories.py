"""
Django implementations of the BOM repository ports.

Convert between ORM rows and domain entities. Nothing outside this
module hands ORM instances to the domain layer.
"""

from datetime import datetime
from typing import Dict, Iterable, List, Optional
from uuid import UUID

from domain.bom.entities import BOMLine, CostHistoryEntry, Part
from domain.bom.repositories import (
    BOMLineRepository,
    CostHistoryRepository,
    PartRepository,
)

from . import models
from .filters import PartFilterSet


# =============================================================================
# MAPPING
# =============================================================================

PART_FIELDS = (
    'id', 'sku', 'name', 'description', 'part_type', 'uom', 'purchase_uom',
    'conversion_factor', 'std_cost', 'decimal_precision', 'lifecycle_status',
    'obsolete_date', 'min_quantity', 'max_quantity',
    'created_at', 'updated_at', 'created_by', 'updated_by', 'version',
)

LINE_FIELDS = (
    'id', 'parent_part_id', 'child_part_id', 'qty_per', 'uom', 'scrap_pct',
    'sort_order', 'is_active', 'notes',
    'created_at', 'updated_at', 'created_by', 'updated_by', 'version',
)


def part_to_domain(obj: models.Part) -> Part:
    return Part(**{name: getattr(obj, name) for name in PART_FIELDS})


def part_to_model(part: Part) -> models.Part:
    values = {name: getattr(part, name) for name in PART_FIELDS}
    values['part_type'] = part.part_type.value
    values['lifecycle_status'] = part.lifecycle_status.value
    return models.Part(**values)


def line_to_domain(obj: models.BOMLine) -> BOMLine:
    return BOMLine(**{name: getattr(obj, name) for name in LINE_FIELDS})


def line_to_model(line: BOMLine) -> models.BOMLine:
    return models.BOMLine(**{name: getattr(line, name) for name in LINE_FIELDS})


def entry_to_domain(obj: models.CostHistoryEntry) -> CostHistoryEntry:
    return CostHistoryEntry(
        id=obj.id,
        part_id=obj.part_id,
        old_cost=obj.old_cost,
        new_cost=obj.new_cost,
        change_reason=obj.change_reason,
        source_reference=obj.source_reference,
        effective_date=obj.effective_date,
        created_by=obj.created_by,
        created_at=obj.created_at,
    )


# =============================================================================
# REPOSITORIES
# =============================================================================

class DjangoPartRepository(PartRepository):

    def get(self, part_id: UUID) -> Optional[Part]:
        obj = models.Part.objects.filter(pk=part_id).first()
        return part_to_domain(obj) if obj else None

    def get_many(self, part_ids: Iterable[UUID]) -> Dict[UUID, Part]:
        return {
            obj.id: part_to_domain(obj)
            for obj in models.Part.objects.filter(pk__in=list(part_ids))
        }

    def get_by_sku(self, sku: str) -> Optional[Part]:
        obj = models.Part.objects.filter(sku=sku).first()
        return part_to_domain(obj) if obj else None

    def search(
        self,
        query: str = "",
        part_type: Optional[str] = None,
        lifecycle_status: Optional[str] = None,
    ) -> List[Part]:
        data = {
            key: value
            for key, value in (
                ('q', query),
                ('part_type', part_type),
                ('lifecycle_status', lifecycle_status),
            )
            if value
        }
        filterset = PartFilterSet(data=data, queryset=models.Part.objects.all())
        return [part_to_domain(obj) for obj in filterset.qs.order_by('sku')]

    def add(self, part: Part) -> Part:
        part_to_model(part).save(force_insert=True)
        return part

    def save(self, part: Part) -> Part:
        part_to_model(part).save(force_update=True)
        return part


class DjangoBOMLineRepository(BOMLineRepository):

    ORDERING = ('sort_order', 'created_at', 'id')

    def _queryset(self, include_inactive: bool):
        return models.BOMLine.objects if include_inactive else models.BOMLine.active

    def get(self, line_id: UUID) -> Optional[BOMLine]:
        obj = models.BOMLine.objects.filter(pk=line_id).first()
        return line_to_domain(obj) if obj else None

    def children_of(self, part_id: UUID, include_inactive: bool = False) -> List[BOMLine]:
        qs = self._queryset(include_inactive).filter(parent_part_id=part_id).order_by(*self.ORDERING)
        return [line_to_domain(obj) for obj in qs]

    def parents_of(self, part_id: UUID, include_inactive: bool = False) -> List[BOMLine]:
        qs = self._queryset(include_inactive).filter(child_part_id=part_id).order_by(*self.ORDERING)
        return [line_to_domain(obj) for obj in qs]

    def find_active(self, parent_part_id: UUID, child_part_id: UUID) -> Optional[BOMLine]:
        obj = models.BOMLine.active.filter(
            parent_part_id=parent_part_id,
            child_part_id=child_part_id,
        ).first()
        return line_to_domain(obj) if obj else None

    def is_referenced(self, part_id: UUID) -> bool:
        return models.BOMLine.objects.filter(parent_part_id=part_id).exists() or \
            models.BOMLine.objects.filter(child_part_id=part_id).exists()

    def all_active(self) -> List[BOMLine]:
        return [line_to_domain(obj) for obj in models.BOMLine.active.order_by('parent_part_id', *self.ORDERING)]

    def add(self, line: BOMLine) -> BOMLine:
        line_to_model(line).save(force_insert=True)
        return line

    def save(self, line: BOMLine) -> BOMLine:
        line_to_model(line).save(force_update=True)
        return line


class DjangoCostHistoryRepository(CostHistoryRepository):

    def append(self, entry: CostHistoryEntry) -> CostHistoryEntry:
        models.CostHistoryEntry(
            id=entry.id,
            part_id=entry.part_id,
            old_cost=entry.old_cost,
            new_cost=entry.new_cost,
            change_reason=entry.change_reason,
            source_reference=entry.source_reference,
            effective_date=entry.effective_date,
            created_by=entry.created_by,
            created_at=entry.created_at,
        ).save()
        return entry

    def history_of(self, part_id: UUID, limit: int) -> List[CostHistoryEntry]:
        qs = models.CostHistoryEntry.objects.filter(part_id=part_id).order_by('-effective_date', '-created_at')
        return [entry_to_domain(obj) for obj in qs[:limit]]

    def latest_effective(self, part_id: UUID, at: datetime) -> Optional[CostHistoryEntry]:
        obj = (
            models.CostHistoryEntry.objects
            .filter(part_id=part_id, effective_date__lte=at)
            .order_by('-effective_date', '-created_at')
            .first()
        )
        return entry_to_domain(obj) if obj else None

    def earliest(self, part_id: UUID) -> Optional[CostHistoryEntry]:
        obj = (
            models.CostHistoryEntry.objects
            .filter(part_id=part_id)
            .order_by('effective_date', 'created_at')
            .first()
        )
        return entry_to_domain(obj) if obj else None
