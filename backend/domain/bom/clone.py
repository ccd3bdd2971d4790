"""
BOM Domain - Subtree cloning.

Copies the active structure under a source part onto a target part.
Cloning is structural: child parts are shared, only edges are created.
"""

from __future__ import annotations
import logging
from collections import deque
from dataclasses import dataclass
from typing import List, Optional, Set
from uuid import UUID

from domain.shared.event_recorder import EventRecorder
from domain.shared.events import BOMSubtreeCloned
from domain.shared.exceptions import SameSubtreeException, WouldCreateCycleException

from .cycle_guard import CycleGuard
from .entities import BOMLine
from .part_registry import PartRegistry
from .read_models import CloneReport
from .repositories import BOMLineRepository
from .structure_store import StructureStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _PlannedLine:
    source_line: BOMLine
    reuse: bool


class CloneService(EventRecorder):
    """
    Breadth-first clone of a source subtree.

    The direct children of the source hang off the target after the
    clone. Deeper levels are reached through the shared child parts, so
    their edges already exist and are reused rather than duplicated.
    Running the same clone twice creates nothing the second time.
    """

    def __init__(
        self,
        store: StructureStore,
        registry: PartRegistry,
        guard: CycleGuard,
        lines: BOMLineRepository,
    ):
        super().__init__()
        self._store = store
        self._registry = registry
        self._guard = guard
        self._lines = lines

    def clone(
        self,
        source_part_id: UUID,
        target_part_id: UUID,
        created_by: Optional[str] = None,
    ) -> CloneReport:
        if source_part_id == target_part_id:
            raise SameSubtreeException(source_part_id)

        source = self._registry.get(source_part_id)
        target = self._registry.get(target_part_id)

        plan, deeper_edges = self._plan(source.id, target.id)

        created: List[UUID] = []
        for step in plan:
            if step.reuse:
                continue
            line = step.source_line
            new_line = self._store.add_line(
                target.id,
                line.child_part_id,
                line.qty_per,
                scrap_pct=line.scrap_pct,
                uom=line.uom,
                sort_order=line.sort_order,
                notes=f"Cloned from {source.sku}",
                created_by=created_by,
            )
            created.append(new_line.id)

        reused = len(plan) - len(created) + deeper_edges
        self.add_domain_event(BOMSubtreeCloned(
            source_part_id=source.id,
            target_part_id=target.id,
            source_sku=source.sku,
            lines_cloned=len(created),
            lines_reused=reused,
            actor=created_by,
        ))
        logger.info(
            "Cloned %s onto %s: %d lines created, %d reused",
            source.sku, target.sku, len(created), reused,
        )
        return CloneReport(
            source_part_id=source.id,
            target_part_id=target.id,
            cloned_lines=len(created),
            reused_lines=reused,
            created_line_ids=created,
        )

    def _plan(self, source_id: UUID, target_id: UUID):
        """
        Walk the source subtree and validate every edge the clone needs.

        Nothing is written here; any violation aborts the whole clone.
        Returns the direct-line plan and the number of deeper edges.
        """
        subtree = self._walk(source_id)
        if target_id in subtree:
            path = self._guard.ancestry_path(target_id, source_id) or [target_id, source_id]
            raise WouldCreateCycleException(target_id, source_id, path)

        target = self._registry.get(target_id)
        plan: List[_PlannedLine] = []
        for line in self._lines.children_of(source_id):
            existing = self._lines.find_active(target_id, line.child_part_id)
            if existing is not None:
                plan.append(_PlannedLine(source_line=line, reuse=True))
                continue
            child = self._registry.get(line.child_part_id)
            self._store.check_edge(target, child, line.qty_per)
            plan.append(_PlannedLine(source_line=line, reuse=False))

        deeper_edges = sum(
            len(self._lines.children_of(part_id))
            for part_id in subtree
        )
        return plan, deeper_edges

    def _walk(self, root_id: UUID) -> Set[UUID]:
        """Every part below ``root_id`` over active lines, breadth first."""
        seen: Set[UUID] = set()
        queue = deque([root_id])
        while queue:
            for line in self._lines.children_of(queue.popleft()):
                if line.child_part_id not in seen:
                    seen.add(line.child_part_id)
                    queue.append(line.child_part_id)
        return seen
