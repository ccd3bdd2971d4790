"""
BOM Domain - Entities.

Part is a node of the product structure, BOMLine a directed edge from a
parent part to a child part. Parts and lines reference each other only
by id; the graph lives in the line relation, never in object references.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID, uuid4

from domain.shared.base_entity import AuditableEntity, utcnow
from domain.shared.exceptions import (
    InvalidBoundsException,
    SelfReferenceException,
    ValidationException,
)
from domain.shared.value_objects import (
    LifecycleStatus,
    PartType,
    Sku,
    round_quantity,
    to_amount,
    to_percent,
    to_quantity,
)


@dataclass(kw_only=True, eq=False)
class Part(AuditableEntity):
    """
    A purchasable, manufacturable or phantom item.

    ``std_cost`` is expressed per one ``uom``. Purchased quantities convert
    to usage quantities as ``purchased * conversion_factor``.
    """

    sku: str
    name: str
    part_type: PartType = PartType.MANUFACTURED
    description: str = ""

    # Units
    uom: str = "EA"
    purchase_uom: Optional[str] = None
    conversion_factor: Optional[Decimal] = None

    # Costing
    std_cost: Optional[Decimal] = None
    decimal_precision: int = 3

    # Lifecycle
    lifecycle_status: LifecycleStatus = LifecycleStatus.ACTIVE
    obsolete_date: Optional[datetime] = None

    # Bounds a BOM line's qty_per must satisfy when this part is the child
    min_quantity: Optional[Decimal] = None
    max_quantity: Optional[Decimal] = None

    def __post_init__(self):
        Sku(self.sku)
        if not self.name or not self.name.strip():
            raise ValidationException("Part name is required", "name")
        self.part_type = PartType(self.part_type)
        self.lifecycle_status = LifecycleStatus(self.lifecycle_status)
        self.std_cost = to_amount(self.std_cost, "std_cost")
        self.conversion_factor = to_amount(self.conversion_factor, "conversion_factor")
        self.min_quantity = to_quantity(self.min_quantity, "min_quantity")
        self.max_quantity = to_quantity(self.max_quantity, "max_quantity")
        if not self.purchase_uom:
            self.purchase_uom = self.uom
        self.validate()

    def validate(self) -> None:
        """Check part invariants; raises on the first violation."""
        if self.std_cost is not None and self.std_cost < 0:
            raise ValidationException("Standard cost cannot be negative", "std_cost", self.std_cost)
        if not 0 <= self.decimal_precision <= 6:
            raise ValidationException(
                "Decimal precision must be between 0 and 6",
                "decimal_precision",
                self.decimal_precision,
            )
        if self.conversion_factor is None:
            if self.purchase_uom != self.uom:
                raise ValidationException(
                    "Conversion factor is required when purchase UoM differs from usage UoM",
                    "conversion_factor",
                )
            self.conversion_factor = Decimal("1")
        if self.conversion_factor <= 0:
            raise ValidationException(
                "Conversion factor must be greater than zero",
                "conversion_factor",
                self.conversion_factor,
            )
        if (
            self.min_quantity is not None
            and self.max_quantity is not None
            and self.min_quantity > self.max_quantity
        ):
            raise InvalidBoundsException(self.min_quantity, self.max_quantity)

    # =========================================================================
    # QUERIES
    # =========================================================================

    def accepts_quantity(self, qty_per: Decimal) -> bool:
        """Whether ``qty_per`` satisfies this part's min/max bounds."""
        if self.min_quantity is not None and qty_per < self.min_quantity:
            return False
        if self.max_quantity is not None and qty_per > self.max_quantity:
            return False
        return True

    def usage_quantity(self, qty: Decimal, line_uom: Optional[str]) -> Decimal:
        """
        Convert a line quantity to this part's usage unit and precision.

        A line expressed in the purchase unit is multiplied by the
        conversion factor.
        """
        qty = round_quantity(qty, self.decimal_precision)
        if line_uom and line_uom != self.uom and line_uom == self.purchase_uom:
            return qty * self.conversion_factor
        return qty


@dataclass(kw_only=True, eq=False)
class BOMLine(AuditableEntity):
    """
    A directed edge: ``qty_per`` units of the child per one unit of parent.

    Lines are soft-deleted (``is_active = False``) so historical rollups
    keep working.
    """

    parent_part_id: UUID
    child_part_id: UUID
    qty_per: Decimal
    uom: str
    scrap_pct: Decimal = Decimal("0")
    sort_order: int = 0
    is_active: bool = True
    notes: str = ""

    def __post_init__(self):
        self.qty_per = to_quantity(self.qty_per, "qty_per")
        self.scrap_pct = to_percent(self.scrap_pct, "scrap_pct")
        self.validate()

    def validate(self) -> None:
        if self.parent_part_id == self.child_part_id:
            raise SelfReferenceException(self.child_part_id)
        if self.qty_per is None or self.qty_per <= 0:
            raise ValidationException("Quantity per must be greater than zero", "qty_per", self.qty_per)
        if self.scrap_pct is None or not (0 <= self.scrap_pct < 100):
            raise ValidationException(
                "Scrap percentage must be at least 0 and below 100",
                "scrap_pct",
                self.scrap_pct,
            )
        if not self.uom:
            raise ValidationException("Unit of measure is required", "uom")

    @property
    def scrap_factor(self) -> Decimal:
        return 1 + self.scrap_pct / Decimal(100)

    @property
    def extended_quantity(self) -> Decimal:
        """Quantity including expected scrap."""
        return self.qty_per * self.scrap_factor

    def deactivate(self, user: Optional[str] = None) -> None:
        self.is_active = False
        self.touch(user)


@dataclass(frozen=True, kw_only=True)
class CostHistoryEntry:
    """
    One immutable row of the standard-cost audit trail.

    ``old_cost`` is ``None`` for the initial cost recorded at part creation.
    """

    part_id: UUID
    new_cost: Decimal
    change_reason: str
    effective_date: datetime
    old_cost: Optional[Decimal] = None
    source_reference: str = ""
    created_by: Optional[str] = None
    id: UUID = field(default_factory=uuid4)
    created_at: datetime = field(default_factory=utcnow)
