"""
BOM Engine.

Operation surface of the structural engine for API views, tasks and any
other collaborator. Wires the domain components to the Django
repositories and wraps every mutation in one structural transaction:
validation, write, audit rows and cache invalidation commit together.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

import sentry_sdk
from django.conf import settings
from django.db import transaction

from domain.bom import (
    BOMLine,
    BOMTree,
    CloneReport,
    CloneService,
    CostHistoryEntry,
    CostHistoryLedger,
    CostRollup,
    CycleGuard,
    Part,
    PartRegistry,
    RollupEngine,
    StructureStore,
    WhereUsedEntry,
)
from domain.shared.exceptions import CorruptStructureException
from infrastructure.persistence.audit_writer import AuditWriter
from infrastructure.persistence.cache import RollupCache
from infrastructure.persistence.models import BOMAuditLog, PartAuditLog
from infrastructure.persistence.repositories import (
    DjangoBOMLineRepository,
    DjangoCostHistoryRepository,
    DjangoPartRepository,
)
from infrastructure.persistence.transactions import (
    run_with_contention_retry,
    structure_transaction,
)

logger = logging.getLogger(__name__)

DEFAULTS = {
    'CURRENCY': 'USD',
    'MONEY_DECIMAL_PLACES': 2,
    'CONTENTION_RETRIES': 3,
    'CONTENTION_BACKOFF_SECONDS': 0.05,
    'LOCK_TIMEOUT_MS': 5000,
    'ROLLUP_CACHE_TTL': 300,
    'COST_HISTORY_DEFAULT_LIMIT': 50,
    'COST_HISTORY_MAX_LIMIT': 100,
}


def engine_settings() -> Dict[str, Any]:
    return {**DEFAULTS, **getattr(settings, 'BOM_ENGINE', {})}


class BOMEngine:
    """
    Facade over the six engine components.

    Instances hold pending domain events between a write and its commit,
    so use one instance per request or task.
    """

    def __init__(
        self,
        parts=None,
        lines=None,
        history=None,
        cache: Optional[RollupCache] = None,
        audit: Optional[AuditWriter] = None,
    ):
        self.config = engine_settings()
        self._parts = parts or DjangoPartRepository()
        self._lines = lines or DjangoBOMLineRepository()
        self._history = history or DjangoCostHistoryRepository()
        self.cache = cache or RollupCache(self.config['ROLLUP_CACHE_TTL'])
        self.audit = audit or AuditWriter()

        self.ledger = CostHistoryLedger(self._history, self.config['COST_HISTORY_DEFAULT_LIMIT'])
        self.guard = CycleGuard(self._lines)
        self.registry = PartRegistry(self._parts, self._lines, self.ledger)
        self.store = StructureStore(self._lines, self.registry, self.guard)
        self.rollup = RollupEngine(
            self._lines,
            self.registry,
            self.ledger,
            currency=self.config['CURRENCY'],
            money_places=self.config['MONEY_DECIMAL_PLACES'],
        )
        self.cloner = CloneService(self.store, self.registry, self.guard, self._lines)

    # =========================================================================
    # PARTS
    # =========================================================================

    def get_part(self, part_id: UUID) -> Part:
        return self.registry.get(part_id)

    def search_parts(
        self,
        query: str = '',
        part_type: Optional[str] = None,
        lifecycle_status: Optional[str] = None,
    ) -> List[Part]:
        return self.registry.search(query, part_type, lifecycle_status)

    def create_part(self, data: Dict[str, Any], created_by: Optional[str] = None) -> Part:
        return self._mutate('create_part', lambda: self.registry.create(Part(**data), created_by))

    def update_part(
        self,
        part_id: UUID,
        patch: Dict[str, Any],
        reason: Optional[str] = None,
        override: bool = False,
        updated_by: Optional[str] = None,
    ) -> Part:
        return self._mutate(
            'update_part',
            lambda: self.registry.update(part_id, patch, reason, updated_by=updated_by, override=override),
        )

    def set_part_cost(
        self,
        part_id: UUID,
        new_cost: Any,
        reason: str,
        effective_date: Optional[datetime] = None,
        updated_by: Optional[str] = None,
    ) -> Part:
        return self._mutate(
            'set_part_cost',
            lambda: self.registry.set_cost(
                part_id, new_cost, reason, effective_date=effective_date, updated_by=updated_by,
            ),
        )

    def set_lifecycle(
        self,
        part_id: UUID,
        new_status: str,
        reason: Optional[str] = None,
        override: bool = False,
        updated_by: Optional[str] = None,
    ) -> Part:
        return self._mutate(
            'set_lifecycle',
            lambda: self.registry.set_lifecycle(
                part_id, new_status, reason, override=override, updated_by=updated_by,
            ),
        )

    def cost_history(self, part_id: UUID, limit: Optional[int] = None) -> List[CostHistoryEntry]:
        self.registry.get(part_id)
        if limit is None:
            limit = self.config['COST_HISTORY_DEFAULT_LIMIT']
        return self.ledger.history_of(part_id, min(limit, self.config['COST_HISTORY_MAX_LIMIT']))

    def part_audit_log(self, part_id: UUID):
        self.registry.get(part_id)
        return PartAuditLog.objects.filter(part_id=part_id).order_by('-timestamp')

    # =========================================================================
    # STRUCTURE
    # =========================================================================

    def get_line(self, line_id: UUID) -> BOMLine:
        return self.store.get_line(line_id)

    def children_of(self, part_id: UUID, include_inactive: bool = False) -> List[BOMLine]:
        return self.store.children_of(part_id, include_inactive)

    def add_line(
        self,
        parent_id: UUID,
        child_id: UUID,
        qty_per: Any,
        scrap_pct: Any = 0,
        uom: Optional[str] = None,
        sort_order: Optional[int] = None,
        notes: str = '',
        created_by: Optional[str] = None,
    ) -> BOMLine:
        return self._mutate(
            'add_line',
            lambda: self.store.add_line(
                parent_id,
                child_id,
                qty_per,
                scrap_pct=scrap_pct,
                uom=uom,
                sort_order=sort_order,
                notes=notes,
                created_by=created_by,
            ),
        )

    def update_line(
        self,
        line_id: UUID,
        fields: Dict[str, Any],
        updated_by: Optional[str] = None,
    ) -> BOMLine:
        return self._mutate(
            'update_line',
            lambda: self.store.update_line(line_id, fields, updated_by=updated_by),
        )

    def move_line(self, line_id: UUID, new_parent_id: UUID, updated_by: Optional[str] = None) -> BOMLine:
        return self._mutate(
            'move_line',
            lambda: self.store.move_line(line_id, new_parent_id, updated_by=updated_by),
        )

    def deactivate_line(self, line_id: UUID, updated_by: Optional[str] = None) -> None:
        self._mutate('deactivate_line', lambda: self.store.deactivate_line(line_id, updated_by=updated_by))

    def clone_subtree(
        self,
        source_part_id: UUID,
        target_part_id: UUID,
        created_by: Optional[str] = None,
    ) -> CloneReport:
        return self._mutate(
            'clone_subtree',
            lambda: self.cloner.clone(source_part_id, target_part_id, created_by=created_by),
        )

    def where_used(self, part_id: UUID) -> List[WhereUsedEntry]:
        return self.store.where_used(part_id)

    def line_audit_log(self, line_id: UUID):
        self.store.get_line(line_id)
        return BOMAuditLog.objects.filter(line_id=line_id).order_by('-timestamp')

    # =========================================================================
    # ROLLUP
    # =========================================================================

    def get_tree(
        self,
        part_id: UUID,
        include_inactive: bool = False,
        as_of: Optional[datetime] = None,
    ) -> BOMTree:
        return self._read(lambda: self.rollup.build_tree(part_id, include_inactive, as_of))

    def cost_rollup(self, part_id: UUID, as_of: Optional[datetime] = None) -> CostRollup:
        """Rolled cost of one unit; current-cost results are cached."""
        if as_of is not None:
            return self._read(lambda: self.rollup.cost_rollup(part_id, as_of))
        cached = self.cache.get(part_id)
        if cached is not None:
            return cached
        rollup = self._read(lambda: self.rollup.cost_rollup(part_id))
        self.cache.set(rollup)
        return rollup

    # =========================================================================
    # INTEGRITY
    # =========================================================================

    def check_integrity(self) -> Dict[str, Any]:
        """
        Scan every active line for cycles, duplicate pairs and self edges.

        These states are impossible through the engine; finding one means
        the store was written around it.
        """
        lines = self._lines.all_active()
        seen = {}
        duplicates = []
        self_references = []
        for line in lines:
            pair = (line.parent_part_id, line.child_part_id)
            if line.parent_part_id == line.child_part_id:
                self_references.append(str(line.id))
            if pair in seen:
                duplicates.append([str(seen[pair]), str(line.id)])
            else:
                seen[pair] = line.id
        cycle = CycleGuard.find_cycle(lines)
        return {
            'lines_checked': len(lines),
            'cycle': [str(part_id) for part_id in cycle] if cycle else None,
            'duplicate_pairs': duplicates,
            'self_references': self_references,
            'ok': cycle is None and not duplicates and not self_references,
        }

    # =========================================================================
    # PLUMBING
    # =========================================================================

    def _mutate(self, operation: str, func):
        """
        Run ``func`` in a structural transaction with contention retry.

        Pending events are written to the audit tables before commit;
        cached rollups of every affected part and its ancestors are
        dropped now and again once the transaction commits.
        """
        def attempt():
            self._drain_events()
            try:
                with structure_transaction(self.config['LOCK_TIMEOUT_MS']):
                    result = func()
                    events = self._drain_events()
                    self.audit.write(events)
                    affected = self._affected_parts(events)
                    self.cache.invalidate(affected)
                    transaction.on_commit(lambda: self.cache.invalidate(affected))
            except Exception:
                self._drain_events()
                raise
            return result

        try:
            return run_with_contention_retry(
                operation,
                attempt,
                retries=self.config['CONTENTION_RETRIES'],
                backoff_seconds=self.config['CONTENTION_BACKOFF_SECONDS'],
            )
        except CorruptStructureException as exc:
            self._report_corruption(operation, exc)
            raise

    def _read(self, func):
        try:
            return func()
        except CorruptStructureException as exc:
            self._report_corruption('read', exc)
            raise

    def _drain_events(self):
        events = []
        for component in (self.registry, self.store, self.cloner):
            events.extend(component.clear_domain_events())
        events.sort(key=lambda event: event.occurred_at)
        return events

    def _affected_parts(self, events) -> set:
        direct = set()
        for event in events:
            direct.update(event.affected_part_ids)
        affected = set(direct)
        for part_id in direct:
            affected |= self.guard.ancestors_of(part_id)
        return affected

    @staticmethod
    def _report_corruption(operation: str, exc: CorruptStructureException) -> None:
        logger.critical("Corrupt BOM structure during %s: %s", operation, exc.message)
        sentry_sdk.capture_exception(exc)
