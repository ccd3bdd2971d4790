"""
BOM Domain - Cost rollup.

Computes the extended cost of every line and the rolled cost of any root
by bottom-up, memoised evaluation over the DAG of active lines. A shared
sub-assembly is evaluated once per request however many parents use it.

    rolled(part) = own(part) + sum(rolled(child) * qty * (1 + scrap/100))

``own`` is zero for phantom parts. Values stay unrounded until they are
placed in a read model.
"""

from __future__ import annotations
import logging
from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional, Set
from uuid import UUID

from domain.shared.base_entity import utcnow
from domain.shared.exceptions import CorruptStructureException, MissingCostException
from domain.shared.value_objects import PartType, round_money

from .cost_ledger import CostHistoryLedger
from .entities import BOMLine, Part
from .part_registry import PartRegistry
from .read_models import BOMTree, BOMTreeNode, CostRollup
from .repositories import BOMLineRepository

logger = logging.getLogger(__name__)

WHITE, GREY, BLACK = 0, 1, 2


class RollupEngine:

    def __init__(
        self,
        lines: BOMLineRepository,
        registry: PartRegistry,
        ledger: CostHistoryLedger,
        currency: str = "USD",
        money_places: int = 2,
    ):
        self._lines = lines
        self._registry = registry
        self._ledger = ledger
        self.currency = currency
        self.money_places = money_places

    def rolled_cost(self, part_id: UUID, as_of: Optional[datetime] = None) -> Decimal:
        """Unrounded rolled cost of one unit of ``part_id``."""
        return _RollupRun(self, as_of).rolled(part_id)

    def cost_rollup(self, part_id: UUID, as_of: Optional[datetime] = None) -> CostRollup:
        cost = self.rolled_cost(part_id, as_of)
        return CostRollup(
            part_id=part_id,
            rolled_cost=round_money(cost, self.money_places),
            currency=self.currency,
            calculated_at=utcnow(),
            as_of=as_of,
        )

    def build_tree(
        self,
        part_id: UUID,
        include_inactive: bool = False,
        as_of: Optional[datetime] = None,
    ) -> BOMTree:
        """
        Materialise the DAG under ``part_id`` as a tree.

        Shared sub-assemblies appear once under every parent that uses
        them. Inactive lines are shown when requested but never counted
        into a parent's cost.
        """
        run = _RollupRun(self, as_of)
        total = run.rolled(part_id)
        root = run.part(part_id)
        children = run.expand(part_id, include_inactive, path={part_id}, level=1)
        return BOMTree(
            root_part=root,
            children=children,
            total_cost=round_money(total, self.money_places),
            currency=self.currency,
            as_of=as_of,
        )

    def unit_cost(self, part: Part, as_of: Optional[datetime]) -> Optional[Decimal]:
        """A part's own standard cost, current or historical."""
        if as_of is None:
            return part.std_cost
        return self._ledger.cost_as_of(part, as_of)


class _RollupRun:
    """State of one rollup request: memo, part and line caches."""

    def __init__(self, engine: RollupEngine, as_of: Optional[datetime]):
        self._engine = engine
        self._as_of = as_of
        self._rolled: Dict[UUID, Decimal] = {}
        self._parts: Dict[UUID, Part] = {}
        self._children: Dict[UUID, List[BOMLine]] = {}

    def part(self, part_id: UUID) -> Part:
        if part_id not in self._parts:
            self._parts[part_id] = self._engine._registry.get(part_id)
        return self._parts[part_id]

    def children(self, part_id: UUID, include_inactive: bool = False) -> List[BOMLine]:
        if include_inactive:
            return self._engine._lines.children_of(part_id, include_inactive=True)
        if part_id not in self._children:
            self._children[part_id] = self._engine._lines.children_of(part_id)
        return self._children[part_id]

    # =========================================================================
    # EVALUATION
    # =========================================================================

    def rolled(self, root_id: UUID) -> Decimal:
        if root_id not in self._rolled:
            order = self._topological_order(root_id)
            self._prefetch(order)
            for part_id in order:
                if part_id not in self._rolled:
                    self._rolled[part_id] = self._evaluate(part_id)
        return self._rolled[root_id]

    def _topological_order(self, root_id: UUID) -> List[UUID]:
        """
        Post-order of every part reachable from ``root_id`` over active lines.

        Children always precede their parents. Parts already evaluated in
        this run are not re-entered. A back edge means the stored structure
        has a cycle, which the cycle guard should have made impossible.
        """
        order: List[UUID] = []
        color: Dict[UUID, int] = {root_id: GREY}
        path = [root_id]
        stack = [iter(self.children(root_id))]

        while stack:
            line = next(stack[-1], None)
            if line is None:
                stack.pop()
                node = path.pop()
                color[node] = BLACK
                order.append(node)
                continue
            child_id = line.child_part_id
            if child_id in self._rolled:
                continue
            state = color.get(child_id, WHITE)
            if state == GREY:
                cycle = path[path.index(child_id):] + [child_id]
                logger.critical("Cycle found in stored BOM structure: %s", cycle)
                raise CorruptStructureException(cycle)
            if state == BLACK:
                continue
            color[child_id] = GREY
            path.append(child_id)
            stack.append(iter(self.children(child_id)))
        return order

    def _prefetch(self, part_ids: List[UUID]) -> None:
        missing = [pid for pid in part_ids if pid not in self._parts]
        if missing:
            self._parts.update(self._engine._registry.get_many(missing))

    def _evaluate(self, part_id: UUID) -> Decimal:
        part = self.part(part_id)
        lines = self.children(part_id)
        total = self._own_cost(part, has_children=bool(lines))
        for line in lines:
            total += self.extended_cost(line)
        return total

    def _own_cost(self, part: Part, has_children: bool) -> Decimal:
        if not part.part_type.has_own_cost:
            return Decimal("0")
        cost = self._engine.unit_cost(part, self._as_of)
        if cost is None:
            # an unpriced part is never silently free; only an assembly may
            # take its whole cost from its components
            if part.part_type == PartType.PURCHASED or not has_children:
                raise MissingCostException(part.id, part.sku)
            return Decimal("0")
        return cost

    def extended_cost(self, line: BOMLine) -> Decimal:
        child = self.part(line.child_part_id)
        quantity = child.usage_quantity(line.qty_per, line.uom)
        return self.rolled(child.id) * quantity * line.scrap_factor

    # =========================================================================
    # TREE
    # =========================================================================

    def expand(
        self,
        part_id: UUID,
        include_inactive: bool,
        path: Set[UUID],
        level: int,
        counted: bool = True,
    ) -> List[BOMTreeNode]:
        """
        Tree nodes under ``part_id``.

        Below an inactive line nothing is counted, so a missing cost there
        leaves the node unpriced instead of failing the whole tree.
        """
        places = self._engine.money_places
        nodes = []
        for line in self.children(part_id, include_inactive):
            child = self.part(line.child_part_id)
            line_counted = counted and line.is_active
            if line.child_part_id in path:
                # only reachable through an inactive line; do not descend
                sub_nodes = []
            else:
                sub_nodes = self.expand(
                    child.id, include_inactive, path | {child.id}, level + 1, line_counted,
                )
            if line_counted:
                unit_cost = self.rolled(child.id)
                extended_cost = self.extended_cost(line)
            else:
                unit_cost = self._rolled_or_none(child.id)
                extended_cost = None if unit_cost is None else self.extended_cost(line)
            nodes.append(BOMTreeNode(
                line=line,
                child_part=child,
                quantity=child.usage_quantity(line.qty_per, line.uom),
                unit_cost=None if unit_cost is None else round_money(unit_cost, places),
                extended_cost=None if extended_cost is None else round_money(extended_cost, places),
                children=sub_nodes,
                level=level,
            ))
        return nodes

    def _rolled_or_none(self, part_id: UUID) -> Optional[Decimal]:
        try:
            return self.rolled(part_id)
        except MissingCostException:
            return None
