"""
Sales workflow tests.

A sale records the order, decrements stock and raises replenishment in one
transaction; any failure leaves nothing behind.
"""

import pytest

from kioskpos.extensions import db
from kioskpos.models import KioskItem, Order, PurchaseOrder
from kioskpos.services import sales_service, purchase_order_service
from kioskpos.services.sales_service import SaleError


def _sell(client, headers, row, quantity, payment_type='Cash', **extra):
    payload = {'payment_type': payment_type, 'items': [{'item_id': row.id, 'quantity': quantity}]}
    payload.update(extra)
    return client.post('/api/sales', json=payload, headers=headers)


class TestSubmitOrder:

    def test_sale_decrements_stock_and_raises_replenishment(self, client, kiosk_a_headers, kiosk_a, make_kiosk_item):
        row = make_kiosk_item(kiosk_a, 'Pani Puri', 12, 4000)

        response = _sell(client, kiosk_a_headers, row, 5)

        assert response.status_code == 201
        order = response.json['order']
        assert order['total_cents'] == 20000
        assert order['payment_type'] == 'Cash'
        assert order['items'] == [{'id': row.id, 'name': 'Pani Puri', 'quantity': 5, 'price_cents': 4000}]

        updated = db.session.get(KioskItem, row.id)
        assert updated.stock == 7
        assert updated.status == 'Low Stock'

        po = response.json['purchase_order']
        assert po['items'] == [{'name': 'Pani Puri', 'quantity': 43}]
        assert po['status'] == 'Preparing'
        assert po['auto_generated'] is True

    def test_no_replenishment_at_threshold(self, client, kiosk_a_headers, kiosk_a, make_kiosk_item):
        row = make_kiosk_item(kiosk_a, 'Samosa', 20, 2500)

        response = _sell(client, kiosk_a_headers, row, 10, payment_type='UPI')

        assert response.status_code == 201
        assert response.json['purchase_order'] is None
        assert db.session.get(KioskItem, row.id).status == 'In Stock'
        assert db.session.query(PurchaseOrder).count() == 0

    def test_replenishment_merges_into_open_order(self, client, kiosk_a_headers, kiosk_a, make_kiosk_item):
        pani = make_kiosk_item(kiosk_a, 'Pani Puri', 12, 4000)
        vada = make_kiosk_item(kiosk_a, 'Vada Pav', 11, 3000)

        first = _sell(client, kiosk_a_headers, pani, 5).json['purchase_order']
        second = _sell(client, kiosk_a_headers, pani, 2).json['purchase_order']
        third = _sell(client, kiosk_a_headers, vada, 3).json['purchase_order']

        assert first['id'] == second['id'] == third['id']
        # Same item: quantity reset to the current shortfall (50 - 5)
        assert third['items'] == [
            {'name': 'Pani Puri', 'quantity': 45},
            {'name': 'Vada Pav', 'quantity': 42},
        ]
        assert db.session.query(PurchaseOrder).count() == 1

    def test_closed_order_starts_a_new_one(self, client, kiosk_a_headers, kiosk_a, make_kiosk_item):
        row = make_kiosk_item(kiosk_a, 'Pani Puri', 12, 4000)
        first = _sell(client, kiosk_a_headers, row, 5).json['purchase_order']

        po = db.session.get(PurchaseOrder, first['id'])
        purchase_order_service.set_status(po, 'Out for Delivery')

        second = _sell(client, kiosk_a_headers, row, 1).json['purchase_order']
        assert second['id'] != first['id']
        assert second['items'] == [{'name': 'Pani Puri', 'quantity': 44}]

    def test_oversell_rejected_without_side_effects(self, client, kiosk_a_headers, kiosk_a, make_kiosk_item):
        row = make_kiosk_item(kiosk_a, 'Samosa', 3, 2500)

        response = _sell(client, kiosk_a_headers, row, 4)

        assert response.status_code == 400
        assert response.json['error'] == 'Cannot add more than available stock'
        assert response.json['details']['items'][0]['available'] == 3
        assert db.session.get(KioskItem, row.id).stock == 3
        assert db.session.query(Order).count() == 0

    def test_duplicate_lines_are_merged_before_stock_check(self, client, kiosk_a_headers, kiosk_a, make_kiosk_item):
        row = make_kiosk_item(kiosk_a, 'Samosa', 5, 2500)
        response = client.post('/api/sales', json={
            'payment_type': 'Cash',
            'items': [{'item_id': row.id, 'quantity': 3}, {'item_id': row.id, 'quantity': 3}],
        }, headers=kiosk_a_headers)

        assert response.status_code == 400
        assert response.json['details']['items'][0]['requested_quantity'] == 6

    def test_empty_cart_rejected(self, client, kiosk_a_headers):
        response = client.post('/api/sales', json={'payment_type': 'Cash', 'items': []}, headers=kiosk_a_headers)
        assert response.status_code == 400
        assert response.json['error'] == 'Add items to order first'

    def test_unknown_payment_type_rejected(self, client, kiosk_a_headers, kiosk_a, make_kiosk_item):
        row = make_kiosk_item(kiosk_a, 'Samosa', 5, 2500)
        assert _sell(client, kiosk_a_headers, row, 1, payment_type='Card').status_code == 400

    def test_cannot_sell_another_kiosks_item(self, client, kiosk_a_headers, kiosk_b, make_kiosk_item):
        row = make_kiosk_item(kiosk_b, 'Samosa', 5, 2500)
        response = _sell(client, kiosk_a_headers, row, 1)
        assert response.status_code == 400
        assert response.json['error'] == 'Item not found'
        assert db.session.get(KioskItem, row.id).stock == 5

    def test_kiosk_cannot_target_another_kiosk(self, client, kiosk_a_headers, kiosk_b, make_kiosk_item):
        row = make_kiosk_item(kiosk_b, 'Samosa', 5, 2500)
        response = _sell(client, kiosk_a_headers, row, 1, kiosk_id=kiosk_b.id)
        assert response.status_code == 404

    def test_manager_sells_on_behalf_of_kiosk(self, client, manager_headers, kiosk_a, make_kiosk_item):
        row = make_kiosk_item(kiosk_a, 'Samosa', 5, 2500)
        response = _sell(client, manager_headers, row, 2, kiosk_id=kiosk_a.id)
        assert response.status_code == 201
        assert response.json['order']['kiosk_id'] == kiosk_a.id

    def test_failure_after_stock_update_rolls_back_everything(self, app, monkeypatch, kiosk_a, make_kiosk_item):
        row = make_kiosk_item(kiosk_a, 'Pani Puri', 12, 4000)

        def _boom(**kwargs):
            raise RuntimeError("replenishment unavailable")

        monkeypatch.setattr(purchase_order_service, 'request_replenishment', _boom)

        with pytest.raises(RuntimeError):
            sales_service.submit_order(
                kiosk_id=kiosk_a.id,
                cart=[{'item_id': row.id, 'quantity': 5}],
                payment_type='Cash',
            )

        assert db.session.query(Order).count() == 0
        assert db.session.get(KioskItem, row.id).stock == 12

    def test_order_lines_are_frozen(self, client, kiosk_a_headers, manager_headers, kiosk_a, make_kiosk_item):
        row = make_kiosk_item(kiosk_a, 'Samosa', 20, 2500)
        order_id = _sell(client, kiosk_a_headers, row, 2).json['order']['id']

        client.patch(f'/api/catalog/kiosk/{row.id}', json={'price_cents': 9900}, headers=manager_headers)

        order = client.get(f'/api/sales/{order_id}', headers=kiosk_a_headers).json['order']
        assert order['items'][0]['price_cents'] == 2500
        assert order['total_cents'] == 5000


class TestSaleErrorsFromService:

    def test_insufficient_stock_lists_every_offending_item(self, kiosk_a, make_kiosk_item):
        a = make_kiosk_item(kiosk_a, 'Samosa', 1, 2500)
        b = make_kiosk_item(kiosk_a, 'Vada Pav', 2, 3000)

        with pytest.raises(SaleError) as exc:
            sales_service.submit_order(
                kiosk_id=kiosk_a.id,
                cart=[{'item_id': a.id, 'quantity': 2}, {'item_id': b.id, 'quantity': 3}],
                payment_type='UPI',
            )
        assert {item['name'] for item in exc.value.details['items']} == {'Samosa', 'Vada Pav'}


class TestOrderVisibility:

    def test_kiosk_lists_only_own_orders(self, client, kiosk_a_headers, kiosk_b_headers, kiosk_a, kiosk_b,
                                         make_kiosk_item):
        row_a = make_kiosk_item(kiosk_a, 'Samosa', 20, 2500)
        row_b = make_kiosk_item(kiosk_b, 'Samosa', 20, 2500)
        _sell(client, kiosk_a_headers, row_a, 1)
        order_b = _sell(client, kiosk_b_headers, row_b, 1).json['order']

        orders = client.get('/api/sales', headers=kiosk_a_headers).json['orders']
        assert [o['kiosk_id'] for o in orders] == [kiosk_a.id]

        # Foreign rows look missing
        assert client.get(f"/api/sales/{order_b['id']}", headers=kiosk_a_headers).status_code == 404

    def test_manager_sees_all_and_filters(self, client, manager_headers, kiosk_a_headers, kiosk_b_headers,
                                          kiosk_a, kiosk_b, make_kiosk_item):
        row_a = make_kiosk_item(kiosk_a, 'Samosa', 20, 2500)
        row_b = make_kiosk_item(kiosk_b, 'Samosa', 20, 2500)
        _sell(client, kiosk_a_headers, row_a, 1)
        _sell(client, kiosk_b_headers, row_b, 1)

        assert len(client.get('/api/sales', headers=manager_headers).json['orders']) == 2
        filtered = client.get(f'/api/sales?kiosk_id={kiosk_b.id}', headers=manager_headers).json['orders']
        assert [o['kiosk_id'] for o in filtered] == [kiosk_b.id]

    def test_invalid_date_rejected(self, client, kiosk_a_headers):
        assert client.get('/api/sales?date=yesterday', headers=kiosk_a_headers).status_code == 400

    def test_only_manager_deletes(self, client, manager_headers, kiosk_a_headers, kiosk_a, make_kiosk_item):
        row = make_kiosk_item(kiosk_a, 'Samosa', 20, 2500)
        order_id = _sell(client, kiosk_a_headers, row, 1).json['order']['id']

        assert client.delete(f'/api/sales/{order_id}', headers=kiosk_a_headers).status_code == 403
        assert client.delete(f'/api/sales/{order_id}', headers=manager_headers).status_code == 200
        assert db.session.get(Order, order_id) is None

    def test_delete_failure_is_logged_as_500(self, client, manager_headers, kiosk_a_headers, kiosk_a,
                                             make_kiosk_item, monkeypatch, caplog):
        row = make_kiosk_item(kiosk_a, 'Samosa', 20, 2500)
        order_id = _sell(client, kiosk_a_headers, row, 1).json['order']['id']

        def broken(order):
            raise RuntimeError('disk full')

        monkeypatch.setattr(sales_service, 'delete_order', broken)
        response = client.delete(f'/api/sales/{order_id}', headers=manager_headers)

        assert response.status_code == 500
        assert response.json == {'error': 'Internal server error'}
        assert 'Failed to delete order' in caplog.text
