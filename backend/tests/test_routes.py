# Overview: Pytest coverage for the HTTP API (tenant context, status codes, payloads).

from decimal import Decimal

from conftest import tenant_headers
from docstock.services.allocator_service import AllocationExhausted


class TestTenantContext:
    def test_missing_tenant_header(self, client, db_session):
        response = client.get('/api/numbering/fac/current')
        assert response.status_code == 401

    def test_invalid_tenant_header(self, client, db_session):
        response = client.get('/api/numbering/fac/current', headers={'X-Tenant-Id': 'abc'})
        assert response.status_code == 401

    def test_unknown_tenant(self, client, db_session):
        response = client.get('/api/numbering/fac/current', headers={'X-Tenant-Id': '9999'})
        assert response.status_code == 404


class TestHealth:
    def test_health(self, client, db_session):
        response = client.get('/health')
        assert response.status_code == 200
        assert response.json['checks']['database']['status'] == 'healthy'


class TestNumberingRoutes:
    def test_preview_and_current(self, client, tenant_a):
        headers = tenant_headers(tenant_a)

        preview = client.get('/api/numbering/fac/preview', headers=headers)
        current = client.get('/api/numbering/fac/current', headers=headers)

        assert preview.status_code == 200
        assert preview.json['number'].endswith('-00001')
        assert current.json['value'] == 0

    def test_preview_unknown_series(self, client, tenant_a):
        response = client.get('/api/numbering/nope/preview', headers=tenant_headers(tenant_a))
        assert response.status_code == 500
        assert 'nope' in response.json['error']


class TestPaymentRoutes:
    def test_create_and_list(self, client, tenant_a):
        headers = tenant_headers(tenant_a, user='accountant')

        response = client.post('/api/payments/', json={
            'supplier_name': 'ACME Supplies',
            'amount': '150.5',
            'method': 'CHECK',
        }, headers=headers)

        assert response.status_code == 201
        payment = response.json['payment']
        assert payment['number'].startswith('PAFO-')
        assert payment['amount'] == '150.500'
        assert payment['created_by'] == 'accountant'

        listing = client.get('/api/payments/', headers=headers)
        assert listing.json['total'] == 1
        assert listing.json['items'][0]['number'] == payment['number']

    def test_validation_error(self, client, tenant_a):
        response = client.post('/api/payments/', json={'supplier_name': 'ACME'}, headers=tenant_headers(tenant_a))
        assert response.status_code == 400
        assert 'amount' in response.json['error']

    def test_exhaustion_is_conflict(self, client, tenant_a, monkeypatch):
        def exhausted(**kwargs):
            raise AllocationExhausted("Could not allocate a document number. Please retry.", attempts=50)

        monkeypatch.setattr('docstock.services.payment_service.allocate_unique', exhausted)

        response = client.post('/api/payments/', json={
            'supplier_name': 'ACME Supplies', 'amount': '10',
        }, headers=tenant_headers(tenant_a))

        assert response.status_code == 409
        assert response.json['retryable'] is True

    def test_payments_are_tenant_scoped(self, client, tenant_a, tenant_b):
        client.post('/api/payments/', json={'supplier_name': 'ACME', 'amount': '5'}, headers=tenant_headers(tenant_a))

        listing = client.get('/api/payments/', headers=tenant_headers(tenant_b))
        assert listing.json['total'] == 0


class TestStockRoutes:
    def test_receive_adjust_balance(self, client, tenant_a, product, main_warehouse):
        headers = tenant_headers(tenant_a)

        received = client.post('/api/stock/receive', json={
            'product_id': product.id, 'quantity': 100, 'warehouse_id': main_warehouse.id,
        }, headers=headers)
        adjusted = client.post('/api/stock/adjust', json={
            'product_id': product.id, 'quantity_delta': -5,
        }, headers=headers)

        assert received.status_code == 201
        assert adjusted.status_code == 201

        balance = client.get(f'/api/stock/{product.id}/balance?warehouse_id={main_warehouse.id}', headers=headers)
        assert balance.status_code == 200
        assert Decimal(balance.json['balance']) == Decimal('95')

        movements = client.get(f'/api/stock/{product.id}/movements', headers=headers)
        assert len(movements.json['movements']) == 2

    def test_transfer_shortfall_payload(self, client, tenant_a, product, main_warehouse, annex_warehouse):
        response = client.post('/api/stock/transfer', json={
            'product_id': product.id,
            'quantity': 11,
            'from_warehouse_id': main_warehouse.id,
            'to_warehouse_id': annex_warehouse.id,
        }, headers=tenant_headers(tenant_a))

        assert response.status_code == 400
        assert response.json['code'] == 'INSUFFICIENT_STOCK'
        assert response.json['product_label'] == 'Widget'
        assert Decimal(response.json['available']) == Decimal('0')
        assert Decimal(response.json['requested']) == Decimal('11')

    def test_invalid_quantity(self, client, tenant_a, product):
        response = client.post('/api/stock/receive', json={
            'product_id': product.id, 'quantity': -1,
        }, headers=tenant_headers(tenant_a))
        assert response.status_code == 400

    def test_foreign_product_not_found(self, client, tenant_b, product):
        headers = tenant_headers(tenant_b)

        assert client.get(f'/api/stock/{product.id}/balance', headers=headers).status_code == 404
        response = client.post('/api/stock/receive', json={'product_id': product.id, 'quantity': 1}, headers=headers)
        assert response.status_code == 404

    def test_bulk_balances(self, client, tenant_a, product, service_product, add_movement):
        add_movement(tenant_a.id, product.id, 7)

        response = client.get(
            f'/api/stock/balances?product_ids={product.id},{service_product.id}',
            headers=tenant_headers(tenant_a),
        )

        assert response.status_code == 200
        assert Decimal(response.json['balances'][str(product.id)]) == Decimal('7')
        assert Decimal(response.json['balances'][str(service_product.id)]) == Decimal('0')


class TestReturnRoutes:
    def test_create_validate_and_get(self, client, tenant_a, product, add_movement):
        add_movement(tenant_a.id, product.id, 10)
        headers = tenant_headers(tenant_a, user='buyer')

        created = client.post('/api/returns/', json={
            'supplier_name': 'ACME Supplies',
            'lines': [{'product_id': product.id, 'quantity': 3}],
        }, headers=headers)
        assert created.status_code == 201
        return_id = created.json['return']['id']
        assert created.json['return']['number'].startswith('RETA-')

        validated = client.post(f'/api/returns/{return_id}/validate', headers=headers)
        assert validated.status_code == 200
        assert validated.json['return']['status'] == 'VALIDATED'
        assert validated.json['return']['validated_by'] == 'buyer'

        again = client.post(f'/api/returns/{return_id}/validate', headers=headers)
        assert again.status_code == 400

        fetched = client.get(f'/api/returns/{return_id}', headers=headers)
        assert fetched.json['return']['status'] == 'VALIDATED'

    def test_validate_shortfall(self, client, tenant_a, product):
        headers = tenant_headers(tenant_a)
        created = client.post('/api/returns/', json={
            'lines': [{'product_id': product.id, 'quantity': 2}],
        }, headers=headers)

        response = client.post(f"/api/returns/{created.json['return']['id']}/validate", headers=headers)

        assert response.status_code == 400
        assert response.json['code'] == 'INSUFFICIENT_STOCK'

    def test_unknown_return(self, client, tenant_a):
        response = client.get('/api/returns/424242', headers=tenant_headers(tenant_a))
        assert response.status_code == 404

    def test_taken_return_numbers_answer_conflict(self, client, tenant_a, product, monkeypatch):
        def exhausted(**kwargs):
            raise AllocationExhausted("Could not allocate a purchase return number. Please retry.", attempts=50)

        monkeypatch.setattr('docstock.services.return_service.create_purchase_return', exhausted)

        response = client.post('/api/returns/', json={
            'lines': [{'product_id': product.id, 'quantity': 1}],
        }, headers=tenant_headers(tenant_a))

        assert response.status_code == 409
        assert response.json['retryable'] is True
