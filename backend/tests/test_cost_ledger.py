from datetime import datetime, timedelta, timezone
from decimal import Decimal
from uuid import uuid4

import pytest

from domain.bom import CostHistoryLedger, Part
from domain.shared.exceptions import EmptyReasonException, ValidationException

T0 = datetime(2024, 1, 1, tzinfo=timezone.utc)


def test_append_requires_reason(ledger):
    with pytest.raises(EmptyReasonException):
        ledger.append(uuid4(), None, Decimal('1'), '   ')


def test_append_rejects_negative_cost(ledger):
    with pytest.raises(ValidationException):
        ledger.append(uuid4(), None, Decimal('-1'), 'typo')


def test_history_is_newest_first_and_limited(ledger):
    part_id = uuid4()
    for day in range(5):
        ledger.append(part_id, None, Decimal(day), f"day {day}", effective_date=T0 + timedelta(days=day))

    history = ledger.history_of(part_id, limit=3)

    assert [entry.new_cost for entry in history] == [Decimal(4), Decimal(3), Decimal(2)]


def test_zero_limit_is_not_the_default(history):
    ledger = CostHistoryLedger(history, default_limit=2)
    part_id = uuid4()
    for day in range(3):
        ledger.append(part_id, None, Decimal(day), f"day {day}", effective_date=T0 + timedelta(days=day))

    assert ledger.history_of(part_id, limit=0) == []
    assert len(ledger.history_of(part_id)) == 2
    with pytest.raises(ValidationException):
        ledger.history_of(part_id, limit=-1)


def test_cost_as_of_picks_latest_effective_entry(ledger):
    part = Part(sku='BOLT', name='Bolt', std_cost=Decimal('3'))
    ledger.append(part.id, None, Decimal('1'), 'initial', effective_date=T0)
    ledger.append(part.id, Decimal('1'), Decimal('2'), 'supplier change', effective_date=T0 + timedelta(days=10))
    ledger.append(part.id, Decimal('2'), Decimal('3'), 'inflation', effective_date=T0 + timedelta(days=20))

    assert ledger.cost_as_of(part, T0 + timedelta(days=15)) == Decimal('2')
    assert ledger.cost_as_of(part, T0 + timedelta(days=20)) == Decimal('3')
    assert ledger.cost_as_of(part, T0) == Decimal('1')


def test_cost_as_of_before_history_uses_baseline(ledger):
    part = Part(sku='NUT', name='Nut', std_cost=Decimal('5'))
    ledger.append(part.id, Decimal('4'), Decimal('5'), 'first tracked change', effective_date=T0)

    assert ledger.cost_as_of(part, T0 - timedelta(days=1)) == Decimal('4')


def test_cost_as_of_without_history_is_current_cost(ledger):
    part = Part(sku='WASHER', name='Washer', std_cost=Decimal('0.10'))
    assert ledger.cost_as_of(part, T0) == Decimal('0.10')
