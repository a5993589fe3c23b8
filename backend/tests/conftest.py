"""
Pytest fixtures for docstock backend tests.

Provides test database setup, two tenants with warehouses and products,
and a test client.
"""

import pytest
from docstock import create_app
from docstock.extensions import db
from docstock.models import Tenant, Warehouse, Product, NumberingTemplate
from docstock.models.inventory import MOVEMENT_IN, SOURCE_RECEIPT
from docstock.services import stock_service


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'ALLOCATOR_RETRY_DELAY_MS': 0,
        'STORAGE_RETRY_BACKOFF': 0,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def tenant_a(db_session):
    """Tenant A (first tenant, FORBID policy)."""
    tenant = Tenant(name="Tenant A - Acme Corp", code="ACME", negative_stock_policy="FORBID", is_active=True)
    db_session.add(tenant)
    db_session.commit()
    return tenant


@pytest.fixture(scope='function')
def tenant_b(db_session):
    """Tenant B (second tenant)."""
    tenant = Tenant(name="Tenant B - Beta Inc", code="BETA", is_active=True)
    db_session.add(tenant)
    db_session.commit()
    return tenant


@pytest.fixture(scope='function')
def main_warehouse(db_session, tenant_a):
    """Default warehouse of tenant A."""
    warehouse = Warehouse(tenant_id=tenant_a.id, name="Main", code="MAIN", is_default=True)
    db_session.add(warehouse)
    db_session.commit()
    return warehouse


@pytest.fixture(scope='function')
def annex_warehouse(db_session, tenant_a):
    """Second (non-default) warehouse of tenant A."""
    warehouse = Warehouse(tenant_id=tenant_a.id, name="Annex", code="ANX", is_default=False)
    db_session.add(warehouse)
    db_session.commit()
    return warehouse


@pytest.fixture(scope='function')
def product(db_session, tenant_a):
    """Stock-tracked product of tenant A."""
    product = Product(tenant_id=tenant_a.id, sku="WID-001", name="Widget", is_stock_tracked=True)
    db_session.add(product)
    db_session.commit()
    return product


@pytest.fixture(scope='function')
def service_product(db_session, tenant_a):
    """Non-stock-tracked service item of tenant A."""
    product = Product(tenant_id=tenant_a.id, sku="SRV-001", name="Installation", is_stock_tracked=False)
    db_session.add(product)
    db_session.commit()
    return product


@pytest.fixture(scope='function')
def product_b(db_session, tenant_b):
    """Stock-tracked product of tenant B."""
    product = Product(tenant_id=tenant_b.id, sku="WID-001", name="Beta Widget", is_stock_tracked=True)
    db_session.add(product)
    db_session.commit()
    return product


@pytest.fixture(scope='function')
def add_movement(db_session):
    """Append a committed movement; defaults to an IN receipt."""
    def _add(tenant_id, product_id, quantity, movement_type=MOVEMENT_IN, warehouse_id=None,
             source_kind=SOURCE_RECEIPT):
        movement = stock_service.record_movement(
            tenant_id=tenant_id,
            product_id=product_id,
            movement_type=movement_type,
            quantity=quantity,
            source_kind=source_kind,
            warehouse_id=warehouse_id,
        )
        db_session.commit()
        return movement
    return _add


@pytest.fixture(scope='function')
def set_template(db_session):
    """Configure a tenant numbering template."""
    def _set(tenant_id, series_code, pattern, starting_value=0):
        template = NumberingTemplate(
            tenant_id=tenant_id,
            series_code=series_code,
            pattern=pattern,
            starting_value=starting_value,
        )
        db_session.add(template)
        db_session.commit()
        return template
    return _set


def tenant_headers(tenant, user: str = "clerk") -> dict:
    """Helper to create tenant context headers."""
    return {'X-Tenant-Id': str(tenant.id), 'X-User': user}
