"""
BOM Domain - Part registry.

Authoritative store of parts and their lifecycle state. Every standard
cost mutation goes through ``set_cost`` so that it is paired with a
cost history entry.
"""

from __future__ import annotations
import dataclasses
import logging
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional
from uuid import UUID

from domain.shared.base_entity import utcnow
from domain.shared.event_recorder import EventRecorder
from domain.shared.events import (
    PartCostChanged,
    PartCreated,
    PartLifecycleChanged,
    PartUpdated,
)
from domain.shared.exceptions import (
    DuplicateSkuException,
    EmptyReasonException,
    InvalidTransitionException,
    PartNotFoundException,
    SkuImmutableException,
    ValidationException,
)
from domain.shared.value_objects import LifecycleStatus, PartType, Sku, to_amount, to_quantity

from .cost_ledger import CostHistoryLedger
from .entities import Part
from .repositories import BOMLineRepository, PartRepository

logger = logging.getLogger(__name__)

# Fields editable through ``update``; cost and lifecycle have their own paths.
EDITABLE_FIELDS = frozenset({
    "sku",
    "name",
    "description",
    "part_type",
    "uom",
    "purchase_uom",
    "conversion_factor",
    "decimal_precision",
    "min_quantity",
    "max_quantity",
})


class PartRegistry(EventRecorder):

    def __init__(
        self,
        parts: PartRepository,
        lines: BOMLineRepository,
        ledger: CostHistoryLedger,
    ):
        super().__init__()
        self._parts = parts
        self._lines = lines
        self._ledger = ledger

    # =========================================================================
    # QUERIES
    # =========================================================================

    def get(self, part_id: UUID) -> Part:
        part = self._parts.get(part_id)
        if part is None:
            raise PartNotFoundException(part_id)
        return part

    def get_many(self, part_ids: Iterable[UUID]) -> Dict[UUID, Part]:
        """Load several parts; every requested id must exist."""
        wanted = set(part_ids)
        found = self._parts.get_many(wanted)
        missing = wanted - found.keys()
        if missing:
            raise PartNotFoundException(sorted(missing, key=str)[0])
        return found

    def search(
        self,
        query: str = "",
        part_type: Optional[str] = None,
        lifecycle_status: Optional[str] = None,
    ) -> List[Part]:
        if part_type:
            part_type = _coerce(PartType, part_type, "part_type").value
        if lifecycle_status:
            lifecycle_status = _coerce(LifecycleStatus, lifecycle_status, "lifecycle_status").value
        return self._parts.search(query.strip(), part_type, lifecycle_status)

    # =========================================================================
    # COMMANDS
    # =========================================================================

    def create(self, part: Part, created_by: Optional[str] = None) -> Part:
        """
        Register a new part.

        A part created with a standard cost gets an initial history entry
        so that historical rollups have a baseline.
        """
        if self._parts.get_by_sku(part.sku) is not None:
            raise DuplicateSkuException(part.sku)

        part.created_by = created_by
        part.updated_by = created_by
        part = self._parts.add(part)

        if part.std_cost is not None:
            self._ledger.append(
                part.id,
                None,
                part.std_cost,
                "Initial cost",
                effective_date=part.created_at,
                source_reference="Part creation",
                created_by=created_by,
            )

        self.add_domain_event(PartCreated(
            part_id=part.id,
            sku=part.sku,
            part_type=part.part_type.value,
            actor=created_by,
        ))
        logger.info("Created part %s (%s)", part.sku, part.id)
        return part

    def update(
        self,
        part_id: UUID,
        patch: Dict[str, Any],
        reason: Optional[str] = None,
        updated_by: Optional[str] = None,
        override: bool = False,
    ) -> Part:
        """
        Apply a partial update.

        ``std_cost`` and ``lifecycle_status`` in the patch are routed
        through ``set_cost`` and ``set_lifecycle`` so they stay audited.
        """
        patch = dict(patch)
        new_cost = patch.pop("std_cost", None)
        new_status = patch.pop("lifecycle_status", None)

        unknown = set(patch) - EDITABLE_FIELDS
        if unknown:
            raise ValidationException(
                f"Fields cannot be updated: {', '.join(sorted(unknown))}",
                field=sorted(unknown)[0],
            )

        part = self.get(part_id)
        new_cost = to_amount(new_cost, "std_cost")

        if patch:
            part = self._apply_patch(part, patch, reason, updated_by)
        if new_cost is not None:
            part = self.set_cost(part_id, new_cost, reason, updated_by=updated_by)
        if new_status is not None:
            part = self.set_lifecycle(part_id, new_status, reason, override=override, updated_by=updated_by)
        return part

    def _apply_patch(
        self,
        part: Part,
        patch: Dict[str, Any],
        reason: Optional[str],
        updated_by: Optional[str],
    ) -> Part:
        if "sku" in patch and patch["sku"] != part.sku:
            Sku(patch["sku"])
            if self._lines.is_referenced(part.id):
                raise SkuImmutableException(part.sku)
            if self._parts.get_by_sku(patch["sku"]) is not None:
                raise DuplicateSkuException(patch["sku"])

        if "conversion_factor" in patch:
            patch["conversion_factor"] = to_amount(patch["conversion_factor"], "conversion_factor")
        for name in ("min_quantity", "max_quantity"):
            if name in patch:
                patch[name] = to_quantity(patch[name], name)

        if "uom" in patch and "purchase_uom" not in patch and part.purchase_uom == part.uom:
            # a purchase unit equal to the usage unit follows it
            patch["purchase_uom"] = patch["uom"]

        if ("uom" in patch or "purchase_uom" in patch) and "conversion_factor" not in patch:
            uom = patch.get("uom", part.uom)
            purchase_uom = patch.get("purchase_uom", part.purchase_uom) or uom
            if purchase_uom != uom:
                raise ValidationException(
                    "Conversion factor is required when purchase UoM differs from usage UoM",
                    "conversion_factor",
                )
            patch["conversion_factor"] = Decimal("1")

        changes = {
            name: (_plain(getattr(part, name)), _plain(value))
            for name, value in patch.items()
            if getattr(part, name) != value
        }
        if not changes:
            return part

        # replace() re-runs __post_init__, so the patched part is fully revalidated
        updated = dataclasses.replace(part, **patch)
        updated.touch(updated_by)
        updated = self._parts.save(updated)

        self.add_domain_event(PartUpdated(
            part_id=part.id,
            changes=changes,
            reason=reason or "Manual update",
            actor=updated_by,
        ))
        return updated

    def set_cost(
        self,
        part_id: UUID,
        new_cost: Any,
        reason: Optional[str],
        effective_date: Optional[datetime] = None,
        updated_by: Optional[str] = None,
        source_reference: str = "Manual update",
    ) -> Part:
        """Change the standard cost and append exactly one history entry."""
        if not reason or not reason.strip():
            raise EmptyReasonException("reason")
        new_cost = to_amount(new_cost, "std_cost")
        if new_cost is None:
            raise ValidationException("Standard cost is required", "std_cost")
        if new_cost < 0:
            raise ValidationException("Standard cost cannot be negative", "std_cost", new_cost)

        part = self.get(part_id)
        old_cost = part.std_cost

        self._ledger.append(
            part.id,
            old_cost,
            new_cost,
            reason,
            effective_date=effective_date,
            source_reference=source_reference,
            created_by=updated_by,
        )
        part.std_cost = new_cost
        part.touch(updated_by)
        part = self._parts.save(part)

        self.add_domain_event(PartCostChanged(
            part_id=part.id,
            old_cost=str(old_cost) if old_cost is not None else None,
            new_cost=str(new_cost),
            reason=reason.strip(),
            actor=updated_by,
        ))
        logger.info("Cost of %s changed %s -> %s (%s)", part.sku, old_cost, new_cost, reason)
        return part

    def set_lifecycle(
        self,
        part_id: UUID,
        new_status: Any,
        reason: Optional[str] = None,
        override: bool = False,
        updated_by: Optional[str] = None,
    ) -> Part:
        """
        Move a part along ACTIVE -> PHASE_OUT -> OBSOLETE -> DISCONTINUED.

        Backward moves need ``override`` and a reason and are audited like
        a cost change.
        """
        target = _coerce(LifecycleStatus, new_status, "lifecycle_status")
        part = self.get(part_id)
        current = part.lifecycle_status

        if target == current:
            return part

        forward = current.is_forward_to(target)
        if forward:
            if (
                current == LifecycleStatus.ACTIVE
                and target.is_retired
                and self._lines.parents_of(part.id)
            ):
                raise InvalidTransitionException(
                    "Part", current.value, target.value,
                    [LifecycleStatus.PHASE_OUT.value],
                    message=(
                        f"Cannot retire part {part.sku} while it is used in active BOMs; "
                        f"phase it out first"
                    ),
                )
            reason = (reason or "").strip() or f"Lifecycle changed to {target.value}"
        else:
            if not override:
                raise InvalidTransitionException(
                    "Part", current.value, target.value,
                    [s.value for s in current.forward_transitions()],
                )
            if not reason or not reason.strip():
                raise EmptyReasonException("reason")
            reason = reason.strip()
            logger.warning(
                "Lifecycle override on %s: %s -> %s (%s)", part.sku, current.value, target.value, reason,
            )

        part.lifecycle_status = target
        if target == LifecycleStatus.OBSOLETE and part.obsolete_date is None:
            part.obsolete_date = utcnow()
        elif not target.is_retired:
            part.obsolete_date = None
        part.touch(updated_by)
        part = self._parts.save(part)

        self.add_domain_event(PartLifecycleChanged(
            part_id=part.id,
            old_status=current.value,
            new_status=target.value,
            reason=reason,
            override=not forward,
            actor=updated_by,
        ))
        return part


def _coerce(enum_cls, value, field_name):
    try:
        return enum_cls(value)
    except ValueError:
        raise ValidationException(
            f"'{value}' is not a valid {field_name}",
            field=field_name,
            value=value,
        ) from None


def _plain(value):
    if isinstance(value, Decimal):
        return str(value)
    if hasattr(value, "value"):
        return value.value
    return value
