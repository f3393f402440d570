"""
Factory and kiosk catalog tests: CRUD, allocation, image propagation and the
predefined-menu overlay.
"""

import io

import pytest

from kioskpos.extensions import db
from kioskpos.menu import PREDEFINED_MENU
from kioskpos.models import FactoryItem, KioskItem
from kioskpos.services import catalog_service
from kioskpos.services.catalog_service import CatalogError


PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32


class TestFactoryCatalog:

    def test_create_parses_decimal_price(self, client, manager_headers):
        response = client.post('/api/catalog/factory', json={'name': 'Gulab Jamun', 'price': '120.00'},
                               headers=manager_headers)

        assert response.status_code == 201
        item = response.json['item']
        assert item['price_cents'] == 12000
        assert item['stock'] == 999999
        assert item['status'] == 'In Stock'

    def test_duplicate_name_is_case_insensitive(self, client, manager_headers, make_factory_item):
        make_factory_item('Vada Pav', 3000)
        response = client.post('/api/catalog/factory', json={'name': 'vada pav', 'price_cents': 3500},
                               headers=manager_headers)
        assert response.status_code == 409

    @pytest.mark.parametrize("payload", [
        {'price': '10'},
        {'name': 'Samosa'},
        {'name': 'Samosa', 'price': 'abc'},
        {'name': 'Samosa', 'price': -1},
        {'name': 'Samosa', 'price_cents': 100, 'status': 'In Stock'},
    ])
    def test_invalid_payload_rejected(self, client, manager_headers, payload):
        response = client.post('/api/catalog/factory', json=payload, headers=manager_headers)
        assert response.status_code == 400

    def test_kiosk_cannot_write_factory(self, client, kiosk_a_headers):
        response = client.post('/api/catalog/factory', json={'name': 'Samosa', 'price': 25},
                               headers=kiosk_a_headers)
        assert response.status_code == 403

    def test_kiosk_can_read_factory(self, client, kiosk_a_headers, make_factory_item):
        make_factory_item('Samosa', 2500)
        response = client.get('/api/catalog/factory', headers=kiosk_a_headers)
        assert response.status_code == 200
        assert [i['name'] for i in response.json['items']] == ['Samosa']

    def test_update_and_delete(self, client, manager_headers, make_factory_item):
        item = make_factory_item('Samosa', 2500)

        response = client.patch(f'/api/catalog/factory/{item.id}', json={'price_cents': 2700},
                                headers=manager_headers)
        assert response.status_code == 200
        assert response.json['item']['price_cents'] == 2700

        assert client.delete(f'/api/catalog/factory/{item.id}', headers=manager_headers).status_code == 200
        assert db.session.get(FactoryItem, item.id) is None

    def test_delete_failure_is_logged_as_500(self, client, manager_headers, make_factory_item,
                                             monkeypatch, caplog):
        item = make_factory_item('Samosa', 2500)

        def broken(item_id):
            raise RuntimeError('disk full')

        monkeypatch.setattr(catalog_service, 'delete_factory_item', broken)
        response = client.delete(f'/api/catalog/factory/{item.id}', headers=manager_headers)

        assert response.status_code == 500
        assert 'Failed to delete factory item' in caplog.text

    def test_update_missing_item_is_404(self, client, manager_headers):
        response = client.patch('/api/catalog/factory/nope', json={'price_cents': 1}, headers=manager_headers)
        assert response.status_code == 404


class TestImagePropagation:

    def test_image_edit_reaches_matching_kiosk_rows(self, client, manager_headers, kiosk_a, kiosk_b,
                                                    make_factory_item, make_kiosk_item):
        item = make_factory_item('Samosa', 2500)
        row_a = make_kiosk_item(kiosk_a, 'samosa', 5, 2500)
        row_b = make_kiosk_item(kiosk_b, 'SAMOSA', 5, 2500)
        other = make_kiosk_item(kiosk_a, 'Vada Pav', 5, 3000)

        response = client.patch(f'/api/catalog/factory/{item.id}', json={'image_url': '/img/samosa.png'},
                                headers=manager_headers)
        assert response.status_code == 200

        assert db.session.get(KioskItem, row_a.id).image_url == '/img/samosa.png'
        assert db.session.get(KioskItem, row_b.id).image_url == '/img/samosa.png'
        assert db.session.get(KioskItem, other.id).image_url is None

    def test_clearing_image_clears_kiosk_rows(self, client, manager_headers, kiosk_a,
                                               make_factory_item, make_kiosk_item):
        item = make_factory_item('Samosa', 2500)
        row = make_kiosk_item(kiosk_a, 'Samosa', 5, 2500)
        client.patch(f'/api/catalog/factory/{item.id}', json={'image_url': '/img/samosa.png'},
                     headers=manager_headers)

        response = client.patch(f'/api/catalog/factory/{item.id}', json={'image_url': None},
                                headers=manager_headers)

        assert response.status_code == 200
        assert response.json['item']['image_url'] is None
        assert db.session.get(KioskItem, row.id).image_url is None

    def test_rename_without_image_keeps_kiosk_image(self, client, manager_headers, kiosk_a,
                                                    make_factory_item, make_kiosk_item):
        item = make_factory_item('Samosa', 2500)
        row = make_kiosk_item(kiosk_a, 'Punjabi Samosa', 5, 2500)
        row.image_url = '/img/own.png'
        db.session.commit()

        client.patch(f'/api/catalog/factory/{item.id}', json={'name': 'Punjabi Samosa'},
                     headers=manager_headers)

        assert db.session.get(KioskItem, row.id).image_url == '/img/own.png'

    def test_rename_pushes_image_to_rows_with_new_name(self, client, manager_headers, kiosk_a,
                                                       make_factory_item, make_kiosk_item):
        item = make_factory_item('Samosa', 2500)
        item.image_url = '/img/samosa.png'
        db.session.commit()
        row = make_kiosk_item(kiosk_a, 'Punjabi Samosa', 5, 2500)

        response = client.patch(f'/api/catalog/factory/{item.id}', json={'name': 'Punjabi Samosa'},
                                headers=manager_headers)
        assert response.status_code == 200
        assert db.session.get(KioskItem, row.id).image_url == '/img/samosa.png'

    def test_upload_stores_and_serves_image(self, client, manager_headers, kiosk_a,
                                            make_factory_item, make_kiosk_item):
        item = make_factory_item('Samosa', 2500)
        row = make_kiosk_item(kiosk_a, 'Samosa', 5, 2500)

        response = client.post(
            f'/api/catalog/factory/{item.id}/image',
            data={'file': (io.BytesIO(PNG_BYTES), 'samosa.png', 'image/png')},
            headers=manager_headers,
            content_type='multipart/form-data',
        )
        assert response.status_code == 200
        url = response.json['item']['image_url']
        assert url.startswith('/api/storage/item-images/')
        assert db.session.get(KioskItem, row.id).image_url == url

        served = client.get(url)
        assert served.status_code == 200
        assert served.data == PNG_BYTES

    def test_upload_rejects_unsupported_type(self, client, manager_headers, make_factory_item):
        item = make_factory_item('Samosa', 2500)
        response = client.post(
            f'/api/catalog/factory/{item.id}/image',
            data={'file': (io.BytesIO(b'hello'), 'notes.txt', 'text/plain')},
            headers=manager_headers,
            content_type='multipart/form-data',
        )
        assert response.status_code == 400


class TestSendToKiosk:

    def test_send_creates_row_with_factory_price(self, client, manager_headers, kiosk_a, make_factory_item):
        item = make_factory_item('Gulab Jamun', 12000)

        response = client.post(f'/api/catalog/factory/{item.id}/send',
                               json={'kiosk_id': kiosk_a.id, 'quantity': 30}, headers=manager_headers)

        assert response.status_code == 200
        row = response.json['kiosk_item']
        assert row['item_name'] == 'Gulab Jamun'
        assert row['stock'] == 30
        assert row['price_cents'] == 12000
        assert row['status'] == 'In Stock'

    def test_send_increments_existing_row(self, client, manager_headers, kiosk_a,
                                          make_factory_item, make_kiosk_item):
        item = make_factory_item('Gulab Jamun', 12000)
        existing = make_kiosk_item(kiosk_a, 'gulab jamun', 3, 11000)

        response = client.post(f'/api/catalog/factory/{item.id}/send',
                               json={'kiosk_id': kiosk_a.id, 'quantity': 4}, headers=manager_headers)

        assert response.status_code == 200
        assert response.json['kiosk_item']['id'] == existing.id
        assert response.json['kiosk_item']['stock'] == 7
        assert response.json['kiosk_item']['status'] == 'Low Stock'
        # Existing price is kept
        assert response.json['kiosk_item']['price_cents'] == 11000

    @pytest.mark.parametrize("quantity", [0, -3, 'abc', 2.5])
    def test_quantity_must_be_positive_integer(self, client, manager_headers, kiosk_a, make_factory_item, quantity):
        item = make_factory_item('Gulab Jamun', 12000)
        response = client.post(f'/api/catalog/factory/{item.id}/send',
                               json={'kiosk_id': kiosk_a.id, 'quantity': quantity}, headers=manager_headers)
        assert response.status_code == 400

    def test_unknown_kiosk_is_404(self, client, manager_headers, make_factory_item):
        item = make_factory_item('Gulab Jamun', 12000)
        response = client.post(f'/api/catalog/factory/{item.id}/send',
                               json={'kiosk_id': 'missing', 'quantity': 1}, headers=manager_headers)
        assert response.status_code == 404

    def test_unlimited_policy_never_decrements_factory(self, app, kiosk_a, make_factory_item):
        item = make_factory_item('Samosa', 2500)
        catalog_service.send_to_kiosk(factory_item_id=item.id, kiosk_id=kiosk_a.id, quantity=500)
        assert db.session.get(FactoryItem, item.id).stock == 999999

    def test_finite_policy_blocks_and_decrements(self, app, monkeypatch, kiosk_a, make_factory_item):
        monkeypatch.setitem(app.config, 'FACTORY_STOCK_POLICY', 'finite')
        item = make_factory_item('Samosa', 2500, stock=10)

        with pytest.raises(CatalogError) as exc:
            catalog_service.send_to_kiosk(factory_item_id=item.id, kiosk_id=kiosk_a.id, quantity=11)
        assert str(exc.value) == 'Insufficient factory stock'
        assert exc.value.details['available'] == 10

        row = catalog_service.send_to_kiosk(factory_item_id=item.id, kiosk_id=kiosk_a.id, quantity=4)
        assert row.stock == 4

        factory = db.session.get(FactoryItem, item.id)
        assert factory.stock == 6
        assert factory.status == 'Low Stock'


class TestKioskCatalog:

    def test_placeholders_fill_predefined_menu(self, client, kiosk_a_headers, kiosk_a, make_kiosk_item):
        make_kiosk_item(kiosk_a, 'pani puri', 12, 4000)

        response = client.get('/api/catalog/kiosk', headers=kiosk_a_headers)
        assert response.status_code == 200
        items = response.json['items']

        names = [i['item_name'].lower() for i in items]
        assert names.count('pani puri') == 1
        assert len(items) == len(PREDEFINED_MENU)

        real = next(i for i in items if i['item_name'] == 'pani puri')
        assert real['placeholder'] is False

        placeholder = next(i for i in items if i['item_name'] == 'Vada Pav')
        assert placeholder['id'] is None
        assert placeholder['stock'] == 0
        assert placeholder['status'] == 'Out of Stock'
        assert placeholder['placeholder'] is True

    def test_placeholders_can_be_hidden(self, client, kiosk_a_headers):
        response = client.get('/api/catalog/kiosk?placeholders=false', headers=kiosk_a_headers)
        assert response.json['items'] == []

    def test_kiosk_cannot_read_another_kiosk(self, client, kiosk_a_headers, kiosk_b):
        response = client.get(f'/api/catalog/kiosk?kiosk_id={kiosk_b.id}', headers=kiosk_a_headers)
        assert response.status_code == 404

    def test_manager_must_name_a_kiosk(self, client, manager_headers):
        assert client.get('/api/catalog/kiosk', headers=manager_headers).status_code == 400

    @pytest.mark.parametrize("stock,status", [(0, 'Out of Stock'), (1, 'Low Stock'), (9, 'Low Stock'), (10, 'In Stock')])
    def test_manager_edit_recomputes_status(self, client, manager_headers, kiosk_a, make_kiosk_item, stock, status):
        row = make_kiosk_item(kiosk_a, 'Samosa', 50, 2500)
        response = client.patch(f'/api/catalog/kiosk/{row.id}', json={'stock': stock}, headers=manager_headers)
        assert response.status_code == 200
        assert response.json['item']['stock'] == stock
        assert response.json['item']['status'] == status

    def test_manager_edit_rejects_negative_stock(self, client, manager_headers, kiosk_a, make_kiosk_item):
        row = make_kiosk_item(kiosk_a, 'Samosa', 5, 2500)
        response = client.patch(f'/api/catalog/kiosk/{row.id}', json={'stock': -1}, headers=manager_headers)
        assert response.status_code == 400

    def test_kiosk_cannot_edit_rows(self, client, kiosk_a_headers, kiosk_a, make_kiosk_item):
        row = make_kiosk_item(kiosk_a, 'Samosa', 5, 2500)
        response = client.patch(f'/api/catalog/kiosk/{row.id}', json={'stock': 50}, headers=kiosk_a_headers)
        assert response.status_code == 403

    def test_manager_deletes_row(self, client, manager_headers, kiosk_a, make_kiosk_item):
        row = make_kiosk_item(kiosk_a, 'Samosa', 5, 2500)
        assert client.delete(f'/api/catalog/kiosk/{row.id}', headers=manager_headers).status_code == 200
        assert db.session.get(KioskItem, row.id) is None

    def test_delete_failure_is_logged_as_500(self, client, manager_headers, kiosk_a, make_kiosk_item,
                                             monkeypatch, caplog):
        row = make_kiosk_item(kiosk_a, 'Samosa', 5, 2500)

        def broken(row):
            raise RuntimeError('disk full')

        monkeypatch.setattr(catalog_service, 'delete_kiosk_item', broken)
        response = client.delete(f'/api/catalog/kiosk/{row.id}', headers=manager_headers)

        assert response.status_code == 500
        assert 'Failed to delete kiosk item' in caplog.text


class TestStockTotals:

    def test_totals_group_by_name_across_kiosks(self, client, manager_headers, kiosk_a, kiosk_b,
                                                make_factory_item, make_kiosk_item):
        item = make_factory_item('Samosa', 2500)
        make_kiosk_item(kiosk_a, 'Samosa', 5, 2500)
        make_kiosk_item(kiosk_b, 'samosa', 7, 2500)
        make_kiosk_item(kiosk_b, 'Vada Pav', 3, 3000)

        response = client.get('/api/catalog/factory/stock-totals', headers=manager_headers)
        assert response.status_code == 200
        totals = {entry['item_name'].lower(): entry for entry in response.json['items']}
        assert totals['samosa']['total_stock'] == 12
        assert len(totals['samosa']['kiosks']) == 2
        assert totals['vada pav']['total_stock'] == 3

        breakdown = client.get(f'/api/catalog/factory/{item.id}/breakdown', headers=manager_headers)
        assert breakdown.status_code == 200
        assert breakdown.json['total_stock'] == 12
        assert [k['kiosk_name'] for k in breakdown.json['kiosks']] == ['Market Square', 'Station Road']
