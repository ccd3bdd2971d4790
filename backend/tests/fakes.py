"""
In-memory repositories for domain tests.

Rows are stored and returned as deep copies so a component can never
change stored state without calling ``add`` or ``save``.
"""

import copy
from collections import Counter

from domain.bom.repositories import (
    BOMLineRepository,
    CostHistoryRepository,
    PartRepository,
)


class InMemoryPartRepository(PartRepository):

    def __init__(self):
        self.rows = {}
        self.writes = 0

    def get(self, part_id):
        row = self.rows.get(part_id)
        return copy.deepcopy(row) if row is not None else None

    def get_many(self, part_ids):
        return {pid: copy.deepcopy(self.rows[pid]) for pid in part_ids if pid in self.rows}

    def get_by_sku(self, sku):
        for row in self.rows.values():
            if row.sku == sku:
                return copy.deepcopy(row)
        return None

    def search(self, query="", part_type=None, lifecycle_status=None):
        needle = query.lower()
        found = [
            row for row in self.rows.values()
            if needle in row.sku.lower() or needle in row.name.lower() or needle in row.description.lower()
        ]
        if part_type:
            found = [row for row in found if row.part_type.value == part_type]
        if lifecycle_status:
            found = [row for row in found if row.lifecycle_status.value == lifecycle_status]
        return [copy.deepcopy(row) for row in sorted(found, key=lambda row: row.sku)]

    def add(self, part):
        self.rows[part.id] = copy.deepcopy(part)
        self.writes += 1
        return part

    def save(self, part):
        self.rows[part.id] = copy.deepcopy(part)
        self.writes += 1
        return part


class InMemoryBOMLineRepository(BOMLineRepository):

    def __init__(self):
        self.rows = {}
        self.writes = 0

    def _select(self, predicate, include_inactive):
        found = [
            row for row in self.rows.values()
            if predicate(row) and (include_inactive or row.is_active)
        ]
        found.sort(key=lambda row: (row.sort_order, row.created_at))
        return [copy.deepcopy(row) for row in found]

    def get(self, line_id):
        row = self.rows.get(line_id)
        return copy.deepcopy(row) if row is not None else None

    def children_of(self, part_id, include_inactive=False):
        return self._select(lambda row: row.parent_part_id == part_id, include_inactive)

    def parents_of(self, part_id, include_inactive=False):
        return self._select(lambda row: row.child_part_id == part_id, include_inactive)

    def find_active(self, parent_part_id, child_part_id):
        for row in self.rows.values():
            if row.is_active and row.parent_part_id == parent_part_id and row.child_part_id == child_part_id:
                return copy.deepcopy(row)
        return None

    def is_referenced(self, part_id):
        return any(part_id in (row.parent_part_id, row.child_part_id) for row in self.rows.values())

    def all_active(self):
        return self._select(lambda row: True, include_inactive=False)

    def add(self, line):
        self.rows[line.id] = copy.deepcopy(line)
        self.writes += 1
        return line

    def save(self, line):
        self.rows[line.id] = copy.deepcopy(line)
        self.writes += 1
        return line

    def snapshot(self):
        """Comparable view of the stored edges."""
        return Counter(
            (row.parent_part_id, row.child_part_id, row.qty_per, row.scrap_pct, row.is_active)
            for row in self.rows.values()
        )


class InMemoryCostHistoryRepository(CostHistoryRepository):

    def __init__(self):
        self.entries = []

    def append(self, entry):
        self.entries.append(entry)
        return entry

    def _of(self, part_id):
        return [entry for entry in self.entries if entry.part_id == part_id]

    def history_of(self, part_id, limit):
        ordered = sorted(self._of(part_id), key=lambda e: (e.effective_date, e.created_at), reverse=True)
        return ordered[:limit]

    def latest_effective(self, part_id, at):
        candidates = [entry for entry in self._of(part_id) if entry.effective_date <= at]
        if not candidates:
            return None
        return max(candidates, key=lambda e: (e.effective_date, e.created_at))

    def earliest(self, part_id):
        entries = self._of(part_id)
        if not entries:
            return None
        return min(entries, key=lambda e: (e.effective_date, e.created_at))
