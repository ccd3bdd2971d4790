"""
Shared fixtures.

Domain components are wired to in-memory repositories; tests marked
``django_db`` use the real engine against the test database.
"""

from decimal import Decimal

import pytest

from domain.bom import (
    CloneService,
    CostHistoryLedger,
    CycleGuard,
    Part,
    PartRegistry,
    RollupEngine,
    StructureStore,
)
from domain.shared.value_objects import PartType

from .fakes import (
    InMemoryBOMLineRepository,
    InMemoryCostHistoryRepository,
    InMemoryPartRepository,
)


@pytest.fixture
def parts():
    return InMemoryPartRepository()


@pytest.fixture
def lines():
    return InMemoryBOMLineRepository()


@pytest.fixture
def history():
    return InMemoryCostHistoryRepository()


@pytest.fixture
def ledger(history):
    return CostHistoryLedger(history)


@pytest.fixture
def registry(parts, lines, ledger):
    return PartRegistry(parts, lines, ledger)


@pytest.fixture
def guard(lines):
    return CycleGuard(lines)


@pytest.fixture
def store(lines, registry, guard):
    return StructureStore(lines, registry, guard)


@pytest.fixture
def rollup(lines, registry, ledger):
    return RollupEngine(lines, registry, ledger)


@pytest.fixture
def cloner(store, registry, guard, lines):
    return CloneService(store, registry, guard, lines)


@pytest.fixture
def make_part(registry):
    """Create and register a part; ``std_cost`` given as str or Decimal."""

    def _make(sku, std_cost=None, part_type=PartType.MANUFACTURED, **kwargs):
        kwargs.setdefault('name', sku.replace('-', ' ').title())
        if std_cost is not None:
            std_cost = Decimal(str(std_cost))
        return registry.create(Part(sku=sku, part_type=part_type, std_cost=std_cost, **kwargs))

    return _make


@pytest.fixture
def engine(db):
    from application.services import BOMEngine
    from django.core.cache import cache

    cache.clear()
    return BOMEngine()
