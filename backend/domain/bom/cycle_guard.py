"""
BOM Domain - Cycle guard.

Decides, before an edge ``parent -> child`` is committed, whether it would
close a cycle. Active lines must always form a DAG over part ids.
"""

from __future__ import annotations
import logging
from typing import Dict, Iterable, List, Optional, Set
from uuid import UUID

from domain.shared.exceptions import CorruptStructureException, WouldCreateCycleException

from .entities import BOMLine
from .repositories import BOMLineRepository

logger = logging.getLogger(__name__)

WHITE, GREY, BLACK = 0, 1, 2


class CycleGuard:
    """
    Walks the ancestor set of a prospective parent.

    An edge ``parent -> child`` creates a cycle exactly when ``child`` is
    already ``parent`` itself or one of its transitive ancestors. The
    search only visits ancestors of ``parent``, so single-edge checks stay
    cheap in large structures.
    """

    def __init__(self, lines: BOMLineRepository):
        self._lines = lines

    def would_create_cycle(self, parent_id: UUID, child_id: UUID) -> bool:
        return self._path_up(parent_id, child_id) is not None

    def ensure_acyclic(self, parent_id: UUID, child_id: UUID) -> None:
        """Raise WouldCreateCycleException when ``parent -> child`` closes a loop."""
        path = self._path_up(parent_id, child_id)
        if path is not None:
            logger.info("Rejected edge %s -> %s: cycle through %s", parent_id, child_id, path)
            raise WouldCreateCycleException(parent_id, child_id, path)

    def _path_up(self, parent_id: UUID, child_id: UUID) -> Optional[List[UUID]]:
        """
        Three-colour DFS upward from ``parent_id`` looking for ``child_id``.

        Returns the path parent -> ... -> child (following parent links)
        when found. Meeting a grey node means the stored graph already
        contains a cycle.
        """
        if parent_id == child_id:
            return [parent_id]

        color: Dict[UUID, int] = {parent_id: GREY}
        path: List[UUID] = [parent_id]
        stack = [iter(self._parent_ids(parent_id))]

        while stack:
            node = next(stack[-1], None)
            if node is None:
                stack.pop()
                color[path.pop()] = BLACK
                continue
            if node == child_id:
                return path + [node]
            state = color.get(node, WHITE)
            if state == GREY:
                raise CorruptStructureException(path[path.index(node):] + [node])
            if state == BLACK:
                continue
            color[node] = GREY
            path.append(node)
            stack.append(iter(self._parent_ids(node)))
        return None

    def ancestry_path(self, part_id: UUID, ancestor_id: UUID) -> Optional[List[UUID]]:
        """Parent links from ``part_id`` up to ``ancestor_id``, or None."""
        return self._path_up(part_id, ancestor_id)

    def _parent_ids(self, part_id: UUID) -> List[UUID]:
        return [line.parent_part_id for line in self._lines.parents_of(part_id)]

    def _child_ids(self, part_id: UUID) -> List[UUID]:
        return [line.child_part_id for line in self._lines.children_of(part_id)]

    # =========================================================================
    # CLOSURES
    # =========================================================================

    def ancestors_of(self, part_id: UUID) -> Set[UUID]:
        """Every part that transitively contains ``part_id`` over active lines."""
        return self._closure(part_id, self._parent_ids)

    def descendants_of(self, part_id: UUID) -> Set[UUID]:
        """Every part transitively contained in ``part_id`` over active lines."""
        return self._closure(part_id, self._child_ids)

    @staticmethod
    def _closure(start: UUID, neighbours) -> Set[UUID]:
        seen: Set[UUID] = set()
        stack = [start]
        while stack:
            for nxt in neighbours(stack.pop()):
                if nxt not in seen:
                    seen.add(nxt)
                    stack.append(nxt)
        seen.discard(start)
        return seen

    # =========================================================================
    # WHOLE-GRAPH CHECK
    # =========================================================================

    @staticmethod
    def find_cycle(lines: Iterable[BOMLine]) -> Optional[List[UUID]]:
        """
        Scan a whole edge set for a cycle.

        Returns the part ids along the first cycle found (first id repeated
        at the end), or None when the edges form a DAG.
        """
        adjacency: Dict[UUID, List[UUID]] = {}
        for line in lines:
            adjacency.setdefault(line.parent_part_id, []).append(line.child_part_id)
            adjacency.setdefault(line.child_part_id, [])

        color: Dict[UUID, int] = {}
        for root in adjacency:
            if color.get(root, WHITE) != WHITE:
                continue
            color[root] = GREY
            path = [root]
            stack = [iter(adjacency[root])]
            while stack:
                node = next(stack[-1], None)
                if node is None:
                    stack.pop()
                    color[path.pop()] = BLACK
                    continue
                state = color.get(node, WHITE)
                if state == GREY:
                    return path[path.index(node):] + [node]
                if state == WHITE:
                    color[node] = GREY
                    path.append(node)
                    stack.append(iter(adjacency[node]))
        return None
