"""
BOM Domain - Read models.

Derived, read-only views handed to collaborators. They are rebuilt on
every request from the flat line relation and never stored.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from .entities import BOMLine, Part


@dataclass(frozen=True)
class BOMTreeNode:
    """One line of the unrolled tree with its resolved child subtree."""

    line: BOMLine
    child_part: Part
    quantity: Decimal  # in the child's usage unit and precision
    # None when a line reached only through inactive lines has no price
    unit_cost: Optional[Decimal]
    extended_cost: Optional[Decimal]
    children: List["BOMTreeNode"] = field(default_factory=list)
    level: int = 1

    @property
    def is_active(self) -> bool:
        return self.line.is_active


@dataclass(frozen=True)
class BOMTree:
    root_part: Part
    children: List[BOMTreeNode]
    total_cost: Decimal
    currency: str
    as_of: Optional[datetime] = None

    def walk(self):
        """Yield every node depth-first, in display order."""
        stack = list(reversed(self.children))
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))


@dataclass(frozen=True)
class CostRollup:
    part_id: UUID
    rolled_cost: Decimal
    currency: str
    calculated_at: datetime
    as_of: Optional[datetime] = None


@dataclass(frozen=True)
class CloneReport:
    source_part_id: UUID
    target_part_id: UUID
    cloned_lines: int
    reused_lines: int = 0
    created_line_ids: List[UUID] = field(default_factory=list)


@dataclass(frozen=True)
class WhereUsedEntry:
    line: BOMLine
    parent_part: Part

    @property
    def extended_quantity(self) -> Decimal:
        return self.line.extended_quantity
