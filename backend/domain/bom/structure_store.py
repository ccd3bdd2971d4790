"""
BOM Domain - Structure store.

Stores the directed edges (BOM lines) between parts. Every mutating call
validates completely before its single write, so a rejected call leaves
the store untouched.
"""

from __future__ import annotations
import dataclasses
import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional
from uuid import UUID

from domain.shared.event_recorder import EventRecorder
from domain.shared.events import BOMLineAdded, BOMLineDeactivated, BOMLineUpdated
from domain.shared.exceptions import (
    DuplicateLineException,
    LineNotFoundException,
    ObsoletePartException,
    QuantityOutOfBoundsException,
    SelfReferenceException,
    ValidationException,
)
from domain.shared.value_objects import to_percent, to_quantity

from .cycle_guard import CycleGuard
from .entities import BOMLine, Part
from .part_registry import PartRegistry
from .read_models import WhereUsedEntry
from .repositories import BOMLineRepository

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = frozenset({
    "qty_per",
    "scrap_pct",
    "uom",
    "sort_order",
    "notes",
    "is_active",
    "parent_part_id",
})


class StructureStore(EventRecorder):

    def __init__(
        self,
        lines: BOMLineRepository,
        registry: PartRegistry,
        guard: CycleGuard,
    ):
        super().__init__()
        self._lines = lines
        self._registry = registry
        self._guard = guard

    # =========================================================================
    # QUERIES
    # =========================================================================

    def get_line(self, line_id: UUID) -> BOMLine:
        line = self._lines.get(line_id)
        if line is None:
            raise LineNotFoundException(line_id)
        return line

    def children_of(self, part_id: UUID, include_inactive: bool = False) -> List[BOMLine]:
        self._registry.get(part_id)
        return self._lines.children_of(part_id, include_inactive)

    def parents_of(self, part_id: UUID, include_inactive: bool = False) -> List[BOMLine]:
        self._registry.get(part_id)
        return self._lines.parents_of(part_id, include_inactive)

    def where_used(self, part_id: UUID) -> List[WhereUsedEntry]:
        """Active lines using ``part_id`` as a component, with their parents."""
        lines = self.parents_of(part_id)
        parents = self._registry.get_many(line.parent_part_id for line in lines)
        return [WhereUsedEntry(line=line, parent_part=parents[line.parent_part_id]) for line in lines]

    # =========================================================================
    # VALIDATION
    # =========================================================================

    def check_edge(
        self,
        parent: Part,
        child: Part,
        qty_per: Decimal,
        allow_obsolete: bool = False,
        ignore_line_id: Optional[UUID] = None,
    ) -> None:
        """
        Every rule an active edge parent -> child must satisfy.

        Order: lifecycle gate, quantity bounds, duplicate pair, cycle.
        """
        if parent.id == child.id:
            raise SelfReferenceException(child.id)
        if child.lifecycle_status.is_retired and not allow_obsolete:
            raise ObsoletePartException(child.sku, child.lifecycle_status.value)
        if not child.accepts_quantity(qty_per):
            raise QuantityOutOfBoundsException(child.sku, qty_per, child.min_quantity, child.max_quantity)
        existing = self._lines.find_active(parent.id, child.id)
        if existing is not None and existing.id != ignore_line_id:
            raise DuplicateLineException(parent.id, child.id)
        self._guard.ensure_acyclic(parent.id, child.id)

    # =========================================================================
    # COMMANDS
    # =========================================================================

    def add_line(
        self,
        parent_id: UUID,
        child_id: UUID,
        qty_per: Any,
        scrap_pct: Any = 0,
        uom: Optional[str] = None,
        sort_order: Optional[int] = None,
        notes: str = "",
        allow_obsolete: bool = False,
        created_by: Optional[str] = None,
    ) -> BOMLine:
        """
        Add an edge parent -> child.

        ``allow_obsolete`` lets data-migration tooling reference retired
        parts; interactive edit paths never set it.
        """
        if parent_id == child_id:
            raise SelfReferenceException(child_id)

        parent = self._registry.get(parent_id)
        child = self._registry.get(child_id)

        if sort_order is None:
            sort_order = len(self._lines.children_of(parent_id, include_inactive=True)) + 1

        line = BOMLine(
            parent_part_id=parent.id,
            child_part_id=child.id,
            qty_per=qty_per,
            scrap_pct=scrap_pct if scrap_pct is not None else 0,
            uom=uom or child.uom,
            sort_order=sort_order,
            notes=notes or "",
            created_by=created_by,
            updated_by=created_by,
        )
        self.check_edge(parent, child, line.qty_per, allow_obsolete=allow_obsolete)
        self._warn_on_uom_mismatch(line, child)

        line = self._lines.add(line)
        self.add_domain_event(BOMLineAdded(
            line_id=line.id,
            parent_part_id=parent.id,
            child_part_id=child.id,
            qty_per=str(line.qty_per),
            uom=line.uom,
            reason=f"BOM line added ({child.sku})",
            actor=created_by,
        ))
        logger.info("Added line %s: %s -> %s x%s", line.id, parent.sku, child.sku, line.qty_per)
        return line

    def update_line(
        self,
        line_id: UUID,
        fields: Dict[str, Any],
        allow_obsolete: bool = False,
        updated_by: Optional[str] = None,
    ) -> BOMLine:
        """
        Change quantity, scrap, unit, order, notes, activity or parent.

        Re-parenting and re-activation are re-validated through the cycle
        guard exactly like a new line.
        """
        unknown = set(fields) - UPDATABLE_FIELDS
        if unknown:
            raise ValidationException(
                f"Fields cannot be updated: {', '.join(sorted(unknown))}",
                field=sorted(unknown)[0],
            )

        # work on a copy so a rejected update leaves the stored line untouched
        line = dataclasses.replace(self.get_line(line_id))
        previous_parent_id = line.parent_part_id

        changes = {}
        for name, value in fields.items():
            if name == "qty_per":
                value = to_quantity(value, name)
            elif name == "scrap_pct":
                value = to_percent(value, name)
            if getattr(line, name) != value:
                changes[name] = (str(getattr(line, name)), str(value))
                setattr(line, name, value)
        if not changes:
            return line

        line.validate()
        if line.is_active:
            parent = self._registry.get(line.parent_part_id)
            child = self._registry.get(line.child_part_id)
            edge_changed = "parent_part_id" in changes or "is_active" in changes
            if edge_changed:
                self.check_edge(parent, child, line.qty_per, allow_obsolete, ignore_line_id=line.id)
            elif not child.accepts_quantity(line.qty_per):
                raise QuantityOutOfBoundsException(
                    child.sku, line.qty_per, child.min_quantity, child.max_quantity,
                )
            if "uom" in changes:
                self._warn_on_uom_mismatch(line, child)

        line.touch(updated_by)
        line = self._lines.save(line)
        self.add_domain_event(BOMLineUpdated(
            line_id=line.id,
            parent_part_id=line.parent_part_id,
            changes=changes,
            previous_parent_id=previous_parent_id,
            actor=updated_by,
        ))
        return line

    def move_line(
        self,
        line_id: UUID,
        new_parent_id: UUID,
        updated_by: Optional[str] = None,
    ) -> BOMLine:
        """Re-parent a line under ``new_parent_id``."""
        self._registry.get(new_parent_id)
        return self.update_line(line_id, {"parent_part_id": new_parent_id}, updated_by=updated_by)

    def deactivate_line(self, line_id: UUID, updated_by: Optional[str] = None) -> BOMLine:
        """Soft-delete a line. Deactivating an inactive line is a no-op."""
        line = self.get_line(line_id)
        if not line.is_active:
            return line
        line.deactivate(updated_by)
        line = self._lines.save(line)
        self.add_domain_event(BOMLineDeactivated(
            line_id=line.id,
            parent_part_id=line.parent_part_id,
            child_part_id=line.child_part_id,
            actor=updated_by,
        ))
        return line

    @staticmethod
    def _warn_on_uom_mismatch(line: BOMLine, child: Part) -> None:
        if line.uom not in (child.uom, child.purchase_uom):
            logger.warning(
                "UoM mismatch: BOM line %s uses %s, part %s uses %s",
                line.id, line.uom, child.sku, child.uom,
            )
