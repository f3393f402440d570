"""Wastage tests: order-linked (floored at zero) and direct (bounded by stock)."""

import pytest

from kioskpos.extensions import db
from kioskpos.models import KioskItem, Order, WastageRecord, DIRECT_WASTAGE_ORDER_ID


def _make_order(client, headers, row, quantity):
    response = client.post('/api/sales', json={
        'payment_type': 'Cash',
        'items': [{'item_id': row.id, 'quantity': quantity}],
    }, headers=headers)
    return response.json['order']


class TestOrderWastage:

    def test_floors_stock_at_zero(self, client, kiosk_a_headers, kiosk_a, make_kiosk_item):
        row = make_kiosk_item(kiosk_a, 'Samosa', 30, 2500)
        order = _make_order(client, kiosk_a_headers, row, 20)

        response = client.post(f"/api/wastage/order/{order['id']}", json={
            'item_name': 'Samosa', 'quantity': 15, 'reason': 'Broken',
        }, headers=kiosk_a_headers)

        assert response.status_code == 201
        assert response.json['wastage']['order_id'] == order['id']
        assert response.json['kiosk_item']['stock'] == 0
        assert response.json['kiosk_item']['status'] == 'Out of Stock'

        # The order itself is untouched
        assert db.session.get(Order, order['id']).total_cents == 50000

    def test_item_must_be_on_the_order(self, client, kiosk_a_headers, kiosk_a, make_kiosk_item):
        row = make_kiosk_item(kiosk_a, 'Samosa', 30, 2500)
        make_kiosk_item(kiosk_a, 'Vada Pav', 30, 3000)
        order = _make_order(client, kiosk_a_headers, row, 1)

        response = client.post(f"/api/wastage/order/{order['id']}", json={
            'item_name': 'Vada Pav', 'quantity': 1, 'reason': 'Broken',
        }, headers=kiosk_a_headers)
        assert response.status_code == 400

    def test_other_kiosks_order_is_404(self, client, kiosk_a_headers, kiosk_b_headers, kiosk_a, make_kiosk_item):
        row = make_kiosk_item(kiosk_a, 'Samosa', 30, 2500)
        order = _make_order(client, kiosk_a_headers, row, 1)

        response = client.post(f"/api/wastage/order/{order['id']}", json={
            'item_name': 'Samosa', 'quantity': 1, 'reason': 'Broken',
        }, headers=kiosk_b_headers)
        assert response.status_code == 404


class TestDirectWastage:

    def test_records_with_sentinel_order(self, client, kiosk_a_headers, kiosk_a, make_kiosk_item):
        row = make_kiosk_item(kiosk_a, 'Samosa', 10, 2500)

        response = client.post(f'/api/wastage/inventory/{row.id}', json={
            'quantity': 4, 'reason': 'Bad Quality',
        }, headers=kiosk_a_headers)

        assert response.status_code == 201
        assert response.json['wastage']['direct'] is True
        assert response.json['kiosk_item']['stock'] == 6
        assert response.json['kiosk_item']['status'] == 'Low Stock'

        record = db.session.query(WastageRecord).one()
        assert record.order_id == DIRECT_WASTAGE_ORDER_ID

    def test_quantity_above_stock_rejected(self, client, kiosk_a_headers, kiosk_a, make_kiosk_item):
        row = make_kiosk_item(kiosk_a, 'Samosa', 10, 2500)

        response = client.post(f'/api/wastage/inventory/{row.id}', json={
            'quantity': 15, 'reason': 'Broken',
        }, headers=kiosk_a_headers)

        assert response.status_code == 400
        assert response.json['details']['available'] == 10
        assert db.session.get(KioskItem, row.id).stock == 10
        assert db.session.query(WastageRecord).count() == 0

    @pytest.mark.parametrize("payload", [
        {'quantity': 0, 'reason': 'Broken'},
        {'quantity': 1, 'reason': 'Dropped it'},
        {'reason': 'Broken'},
    ])
    def test_invalid_payload_rejected(self, client, kiosk_a_headers, kiosk_a, make_kiosk_item, payload):
        row = make_kiosk_item(kiosk_a, 'Samosa', 10, 2500)
        response = client.post(f'/api/wastage/inventory/{row.id}', json=payload, headers=kiosk_a_headers)
        assert response.status_code == 400

    def test_list_is_scoped(self, client, kiosk_a_headers, kiosk_b_headers, manager_headers,
                            kiosk_a, kiosk_b, make_kiosk_item):
        row_a = make_kiosk_item(kiosk_a, 'Samosa', 10, 2500)
        row_b = make_kiosk_item(kiosk_b, 'Samosa', 10, 2500)
        client.post(f'/api/wastage/inventory/{row_a.id}', json={'quantity': 1, 'reason': 'Broken'},
                    headers=kiosk_a_headers)
        client.post(f'/api/wastage/inventory/{row_b.id}', json={'quantity': 1, 'reason': 'Broken'},
                    headers=kiosk_b_headers)

        own = client.get('/api/wastage', headers=kiosk_a_headers).json['wastage']
        assert [w['kiosk_id'] for w in own] == [kiosk_a.id]
        assert len(client.get('/api/wastage', headers=manager_headers).json['wastage']) == 2
