from unittest import mock

import pytest

from application.tasks import bom_tasks
from application.tasks.bom_tasks import validate_structure_integrity
from infrastructure.persistence import models

pytestmark = pytest.mark.django_db


@pytest.fixture
def pair(engine):
    a = engine.create_part({'sku': 'A', 'name': 'A'})
    b = engine.create_part({'sku': 'B', 'name': 'B', 'std_cost': '1'})
    engine.add_line(a.id, b.id, 1)
    return a, b


def test_clean_structure(pair):
    with mock.patch.object(bom_tasks.sentry_sdk, 'capture_message') as capture:
        report = validate_structure_integrity.delay().get()

    assert report['ok']
    assert report['lines_checked'] == 1
    capture.assert_not_called()


def test_cycle_written_around_engine_is_reported(pair):
    a, b = pair
    models.BOMLine(parent_part_id=b.id, child_part_id=a.id, qty_per=1, uom='EA').save()

    with mock.patch.object(bom_tasks.sentry_sdk, 'capture_message') as capture:
        report = validate_structure_integrity()

    assert not report['ok']
    assert set(report['cycle']) == {str(a.id), str(b.id)}
    capture.assert_called_once()
