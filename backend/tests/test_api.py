from decimal import Decimal
from unittest import mock
from uuid import uuid4

import pytest
from django.db import OperationalError
from rest_framework import status
from rest_framework.test import APIClient

from application.services import bom_engine

pytestmark = pytest.mark.django_db

API = '/api/v1'


@pytest.fixture
def client(engine):
    return APIClient()


def post_part(client, sku, **data):
    response = client.post(f'{API}/parts/', {'sku': sku, 'name': sku.title(), **data}, format='json')
    assert response.status_code == status.HTTP_201_CREATED, response.data
    return response.data


def post_line(client, parent, child, qty_per, **data):
    return client.post(
        f'{API}/bom-lines/',
        {'parent_part_id': parent['id'], 'child_part_id': child['id'], 'qty_per': qty_per, **data},
        format='json',
    )


@pytest.fixture
def gearbox(client):
    """GEARBOX -> 2 x SHAFT (10.00, 50% scrap)."""
    gearbox = post_part(client, 'GEARBOX')
    shaft = post_part(client, 'SHAFT', std_cost='10')
    line = post_line(client, gearbox, shaft, '2', scrap_pct='50').data
    return gearbox, shaft, line


class TestParts:

    def test_create_and_get(self, client):
        created = post_part(client, 'BRKT-100', std_cost='4.5', part_type='PURCHASED')

        response = client.get(f"{API}/parts/{created['id']}/")

        assert response.status_code == status.HTTP_200_OK
        assert response.data['sku'] == 'BRKT-100'
        assert Decimal(response.data['std_cost']) == Decimal('4.5')
        assert response.data['part_type'] == 'PURCHASED'
        assert response.data['lifecycle_status'] == 'ACTIVE'

    def test_search(self, client):
        post_part(client, 'BOLT-M6')
        post_part(client, 'NUT-M6', part_type='PURCHASED', std_cost='0.1')

        response = client.get(f'{API}/parts/', {'q': 'm6', 'part_type': 'PURCHASED'})

        assert response.data['count'] == 1
        assert response.data['results'][0]['sku'] == 'NUT-M6'

    def test_duplicate_sku(self, client):
        post_part(client, 'BOLT')
        response = client.post(f'{API}/parts/', {'sku': 'BOLT', 'name': 'Bolt'}, format='json')

        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.data['error'] == 'DUPLICATE_SKU'

    def test_invalid_sku(self, client):
        response = client.post(f'{API}/parts/', {'sku': 'bolt m6', 'name': 'Bolt'}, format='json')
        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_unknown_part(self, client):
        response = client.get(f'{API}/parts/{uuid4()}/')
        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.data['error'] == 'PART_NOT_FOUND'

    def test_cost_change_and_history(self, client):
        part = post_part(client, 'BOLT', std_cost='1')

        response = client.post(
            f"{API}/parts/{part['id']}/cost/", {'new_cost': '1.2', 'reason': 'Supplier increase'}, format='json',
        )
        history = client.get(f"{API}/parts/{part['id']}/cost-history/").data

        assert response.status_code == status.HTTP_200_OK
        assert Decimal(response.data['std_cost']) == Decimal('1.2')
        assert [entry['change_reason'] for entry in history] == ['Supplier increase', 'Initial cost']

    def test_cost_change_needs_reason(self, client):
        part = post_part(client, 'BOLT', std_cost='1')

        response = client.post(f"{API}/parts/{part['id']}/cost/", {'new_cost': '2', 'reason': ''}, format='json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['error'] == 'EMPTY_REASON'

    def test_backward_lifecycle_needs_override(self, client):
        part = post_part(client, 'BOLT')
        client.post(f"{API}/parts/{part['id']}/lifecycle/", {'status': 'OBSOLETE'}, format='json')

        refused = client.post(f"{API}/parts/{part['id']}/lifecycle/", {'status': 'ACTIVE'}, format='json')
        allowed = client.post(
            f"{API}/parts/{part['id']}/lifecycle/",
            {'status': 'ACTIVE', 'reason': 'Customer order', 'override': True},
            format='json',
        )

        assert refused.status_code == status.HTTP_409_CONFLICT
        assert refused.data['error'] == 'INVALID_TRANSITION'
        assert allowed.data['lifecycle_status'] == 'ACTIVE'

    def test_sku_rename_blocked_once_used(self, client, gearbox):
        _, shaft, _ = gearbox
        response = client.patch(f"{API}/parts/{shaft['id']}/", {'sku': 'SHAFT-2'}, format='json')
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['error'] == 'SKU_IMMUTABLE'

    def test_where_used_and_audit_log(self, client, gearbox):
        _, shaft, _ = gearbox

        used = client.get(f"{API}/parts/{shaft['id']}/where-used/").data
        audit = client.get(f"{API}/parts/{shaft['id']}/audit-log/").data

        assert [entry['parent_part']['sku'] for entry in used] == ['GEARBOX']
        assert [row['action'] for row in audit] == ['CREATE']


class TestStructure:

    def test_tree_and_rollup(self, client, gearbox):
        root, _, _ = gearbox

        tree = client.get(f"{API}/bom/{root['id']}/tree/").data
        rollup = client.get(f"{API}/parts/{root['id']}/rollup/").data

        assert tree['total_cost'] == '30.00'
        assert tree['children'][0]['extended_cost'] == '30.00'
        assert tree['children'][0]['child_part']['sku'] == 'SHAFT'
        assert rollup['rolled_cost'] == '30.00'
        assert rollup['currency'] == 'USD'

    def test_cycle_rejected(self, client, gearbox):
        root, shaft, _ = gearbox

        response = post_line(client, shaft, root, '1')

        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.data['error'] == 'WOULD_CREATE_CYCLE'
        assert response.data['details']['path'] == [shaft['id'], root['id']]

    def test_missing_cost(self, client):
        assy = post_part(client, 'ASSY')
        nut = post_part(client, 'NUT', part_type='PURCHASED')
        post_line(client, assy, nut, '1')

        response = client.get(f"{API}/bom/{assy['id']}/tree/")

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
        assert response.data['error'] == 'MISSING_COST'

    def test_update_move_and_deactivate(self, client, gearbox):
        root, _, line = gearbox
        other = post_part(client, 'GEARBOX-B', std_cost='5')

        patched = client.patch(f"{API}/bom-lines/{line['id']}/", {'qty_per': '3'}, format='json')
        moved = client.post(f"{API}/bom-lines/{line['id']}/move/", {'new_parent_id': other['id']}, format='json')
        deactivated = client.post(f"{API}/bom-lines/{line['id']}/deactivate/")

        assert Decimal(patched.data['qty_per']) == Decimal('3')
        assert moved.data['parent_part_id'] == other['id']
        assert deactivated.data['is_active'] is False
        tree = client.get(f"{API}/bom/{other['id']}/tree/", {'include_inactive': 'true'}).data
        assert tree['children'][0]['is_active'] is False
        assert tree['total_cost'] == '5.00'

    def test_line_validation(self, client, gearbox):
        root, _, _ = gearbox
        bolt = post_part(client, 'BOLT', std_cost='1')

        response = post_line(client, root, bolt, '0')

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_scale_finer_than_storage_rejected(self, client, gearbox):
        root, _, _ = gearbox
        bolt = post_part(client, 'BOLT', std_cost='1')

        response = post_line(client, root, bolt, '1', scrap_pct='12.345')

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert 'scrap_pct' in response.data

    def test_retired_unpriced_line_keeps_tree_readable(self, client):
        assy = post_part(client, 'ASSY', std_cost='1')
        nut = post_part(client, 'NUT', part_type='PURCHASED')
        line = post_line(client, assy, nut, '1').data
        client.post(f"{API}/bom-lines/{line['id']}/deactivate/")

        response = client.get(f"{API}/bom/{assy['id']}/tree/", {'include_inactive': 'true'})

        assert response.status_code == status.HTTP_200_OK
        assert response.data['children'][0]['unit_cost'] is None
        assert response.data['children'][0]['extended_cost'] is None
        assert response.data['total_cost'] == '1.00'

    def test_clone(self, client, gearbox):
        root, _, _ = gearbox
        target = post_part(client, 'GEARBOX-B')

        first = client.post(f"{API}/bom/{target['id']}/clone/", {'source_part_id': root['id']}, format='json')
        second = client.post(f"{API}/bom/{target['id']}/clone/", {'source_part_id': root['id']}, format='json')

        assert first.status_code == status.HTTP_201_CREATED
        assert first.data['cloned_lines'] == 1
        assert second.data['cloned_lines'] == 0
        assert second.data['reused_lines'] == 1

    def test_clone_onto_itself(self, client, gearbox):
        root, _, _ = gearbox
        response = client.post(f"{API}/bom/{root['id']}/clone/", {'source_part_id': root['id']}, format='json')
        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.data['error'] == 'SAME_SUBTREE'

    def test_contention_is_retryable(self, client, gearbox):
        root, _, _ = gearbox
        pin = post_part(client, 'PIN', std_cost='1')

        with mock.patch.object(bom_engine, 'structure_transaction', side_effect=OperationalError('lock timeout')):
            response = post_line(client, root, pin, '1')

        assert response.status_code == status.HTTP_503_SERVICE_UNAVAILABLE
        assert response['Retry-After'] == '1'
        assert response.data['error'] == 'CONTENTION'
