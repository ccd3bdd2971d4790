from decimal import Decimal
from unittest import mock

import pytest
from django.db import OperationalError
from django.utils import timezone

from application.services import BOMEngine, bom_engine
from domain.shared.exceptions import (
    ContentionException,
    CorruptStructureException,
    InvalidNumberException,
    WouldCreateCycleException,
)
from infrastructure.persistence import models

pytestmark = pytest.mark.django_db


def create(engine, sku, std_cost=None, **extra):
    data = {'sku': sku, 'name': sku.title(), **extra}
    if std_cost is not None:
        data['std_cost'] = std_cost
    return engine.create_part(data, created_by='tester')


@pytest.fixture
def assembly(engine):
    """ASSY -> 4 x BOLT at 1.00."""
    assy = create(engine, 'ASSY')
    bolt = create(engine, 'BOLT', '1', part_type='PURCHASED')
    line = engine.add_line(assy.id, bolt.id, 4, created_by='tester')
    return assy, bolt, line


class TestPersistence:

    def test_part_round_trip(self, engine):
        created = create(engine, 'MOTOR-24V', '120.5', part_type='PURCHASED', uom='EA')

        loaded = engine.get_part(created.id)

        assert loaded.sku == 'MOTOR-24V'
        assert loaded.std_cost == Decimal('120.5')
        assert loaded.part_type.value == 'PURCHASED'
        assert loaded.created_by == 'tester'
        assert models.CostHistoryEntry.objects.filter(part_id=created.id).count() == 1

    def test_search(self, engine):
        create(engine, 'BOLT-M6', description='Hex bolt')
        create(engine, 'NUT-M6')

        assert [p.sku for p in engine.search_parts('hex')] == ['BOLT-M6']
        assert [p.sku for p in engine.search_parts('m6')] == ['BOLT-M6', 'NUT-M6']

    def test_lines_and_tree(self, engine, assembly):
        assy, bolt, line = assembly

        [stored] = engine.children_of(assy.id)
        tree = engine.get_tree(assy.id)

        assert stored.id == line.id
        assert stored.sort_order == 1
        assert tree.total_cost == Decimal('4.00')
        assert tree.children[0].child_part.id == bolt.id
        assert [entry.parent_part.sku for entry in engine.where_used(bolt.id)] == ['ASSY']

    def test_deactivated_line_kept_for_history(self, engine, assembly):
        assy, _, line = assembly

        engine.deactivate_line(line.id)

        assert engine.children_of(assy.id) == []
        assert models.BOMLine.objects.filter(pk=line.id, is_active=False).exists()

    def test_stored_line_matches_returned_line(self, engine, assembly):
        assy, _, _ = assembly
        washer = create(engine, 'WASHER', '0.123456', part_type='PURCHASED')

        for scrap_pct in ('12.345', '99.999'):
            with pytest.raises(InvalidNumberException):
                engine.add_line(assy.id, washer.id, 1, scrap_pct=scrap_pct)
        assert not models.BOMLine.objects.filter(child_part_id=washer.id).exists()

        line = engine.add_line(assy.id, washer.id, '2.654321', scrap_pct='99.99')
        stored = engine.get_line(line.id)

        assert (stored.qty_per, stored.scrap_pct) == (line.qty_per, line.scrap_pct)
        assert engine.get_part(washer.id).std_cost == Decimal('0.123456')


class TestAudit:

    def test_part_audit_rows(self, engine, assembly):
        _, bolt, _ = assembly

        engine.set_part_cost(bolt.id, '1.25', 'Supplier increase', updated_by='bob')

        rows = list(engine.part_audit_log(bolt.id))
        assert [row.action for row in rows] == ['COST_CHANGE', 'CREATE']
        assert rows[0].reason == 'Supplier increase'
        assert rows[0].user == 'bob'
        assert Decimal(rows[0].new_value) == Decimal('1.25')

    def test_line_audit_rows(self, engine, assembly):
        _, _, line = assembly

        engine.update_line(line.id, {'qty_per': 6})

        actions = [row.action for row in engine.line_audit_log(line.id)]
        assert actions == ['UPDATE_LINE', 'ADD_LINE']

    def test_override_is_flagged(self, engine):
        part = create(engine, 'OLD')
        engine.set_lifecycle(part.id, 'DISCONTINUED')

        engine.set_lifecycle(part.id, 'ACTIVE', 'Spare parts order', override=True)

        actions = [row.action for row in engine.part_audit_log(part.id)]
        assert actions[0] == 'LIFECYCLE_OVERRIDE'

    def test_rejected_write_leaves_no_trace(self, engine, assembly):
        assy, bolt, _ = assembly
        lines_before = models.BOMLine.objects.count()
        audit_before = models.BOMAuditLog.objects.count()

        with pytest.raises(WouldCreateCycleException):
            engine.add_line(bolt.id, assy.id, 1)

        assert models.BOMLine.objects.count() == lines_before
        assert models.BOMAuditLog.objects.count() == audit_before

    def test_clone_is_audited(self, engine, assembly):
        assy, _, _ = assembly
        target = create(engine, 'ASSY-B')

        report = engine.clone_subtree(assy.id, target.id, created_by='carol')

        assert report.cloned_lines == 1
        row = models.BOMAuditLog.objects.get(action='CLONE_BOM')
        assert row.parent_part_id == target.id
        assert row.changes['lines_cloned'] == 1


class TestRollupCache:

    def test_cost_change_invalidates_ancestors(self, engine, assembly):
        assy, bolt, _ = assembly
        top = create(engine, 'TOP')
        engine.add_line(top.id, assy.id, 2)

        assert engine.cost_rollup(top.id).rolled_cost == Decimal('8.00')
        assert engine.cache.get(top.id) is not None

        engine.set_part_cost(bolt.id, '2', 'Supplier increase')

        assert engine.cache.get(top.id) is None
        assert engine.cache.get(assy.id) is None
        assert engine.cost_rollup(top.id).rolled_cost == Decimal('16.00')

    def test_historical_rollups_bypass_cache(self, engine, assembly):
        assy, _, _ = assembly
        with mock.patch.object(engine.cache, 'set') as cache_set:
            engine.cost_rollup(assy.id, as_of=timezone.now())
        cache_set.assert_not_called()


class TestContention:

    def test_retries_then_gives_up(self, engine):
        with mock.patch.object(
            bom_engine, 'structure_transaction', side_effect=OperationalError('lock timeout'),
        ) as locked:
            with pytest.raises(ContentionException) as exc_info:
                create(engine, 'BUSY')

        assert locked.call_count == engine.config['CONTENTION_RETRIES'] + 1
        assert exc_info.value.retryable
        assert not models.Part.objects.filter(sku='BUSY').exists()

    def test_succeeds_after_transient_failure(self, engine):
        real = bom_engine.structure_transaction
        attempts = []

        def flaky(*args, **kwargs):
            attempts.append(1)
            if len(attempts) == 1:
                raise OperationalError('lock timeout')
            return real(*args, **kwargs)

        with mock.patch.object(bom_engine, 'structure_transaction', side_effect=flaky):
            part = create(engine, 'BUSY')

        assert len(attempts) == 2
        assert models.PartAuditLog.objects.filter(part_id=part.id, action='CREATE').count() == 1


def test_cost_history_limit_is_clamped(db, settings):
    settings.BOM_ENGINE = {**settings.BOM_ENGINE, 'COST_HISTORY_MAX_LIMIT': 2}
    engine = BOMEngine()
    part = create(engine, 'BOLT', '1')
    for cost in ('2', '3', '4'):
        engine.set_part_cost(part.id, cost, 'Price review')

    assert len(engine.cost_history(part.id, limit=50)) == 2
    assert len(engine.cost_history(part.id)) == 2
    assert engine.cost_history(part.id, limit=0) == []


def test_corruption_reaches_sentry(engine, assembly):
    assy, bolt, _ = assembly
    models.BOMLine(parent_part_id=bolt.id, child_part_id=assy.id, qty_per=1, uom='EA').save()

    with mock.patch.object(bom_engine.sentry_sdk, 'capture_exception') as capture:
        with pytest.raises(CorruptStructureException):
            engine.get_tree(assy.id)

    capture.assert_called_once()


def test_integrity_check(engine, assembly):
    report = engine.check_integrity()
    assert report['ok']
    assert report['lines_checked'] == 1
