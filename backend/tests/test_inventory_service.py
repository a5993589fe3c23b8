# Overview: Pytest coverage for receipts, adjustments and inter-warehouse transfers.

from decimal import Decimal

import pytest

from docstock.models import StockMovement
from docstock.models.inventory import SOURCE_ADJUSTMENT, SOURCE_TRANSFER
from docstock.services import inventory_service, stock_service
from docstock.services.availability_service import InsufficientStock
from docstock.services.stock_service import StockError


class TestReceiveAndAdjust:
    def test_receive_adds_stock(self, db_session, tenant_a, product, main_warehouse):
        movement = inventory_service.receive_stock(
            tenant_id=tenant_a.id, product_id=product.id, quantity=8,
            warehouse_id=main_warehouse.id, source_id="BR-2025-00001",
        )

        assert movement.type == "IN"
        assert stock_service.balance_of(tenant_a.id, product.id, main_warehouse.id) == Decimal("8")

    def test_adjust_may_lower_below_zero(self, db_session, tenant_a, product):
        """Adjustments reconcile with a count; the guard does not apply."""
        movement = inventory_service.adjust_stock(
            tenant_id=tenant_a.id, product_id=product.id, quantity_delta=-2, notes="Breakage",
        )

        assert movement.source_kind == SOURCE_ADJUSTMENT
        assert stock_service.balance_of(tenant_a.id, product.id) == Decimal("-2")

    def test_adjust_zero_rejected(self, db_session, tenant_a, product):
        with pytest.raises(StockError):
            inventory_service.adjust_stock(tenant_id=tenant_a.id, product_id=product.id, quantity_delta=0)


class TestTransfer:
    def test_transfer_moves_stock(self, db_session, tenant_a, product, main_warehouse, annex_warehouse, add_movement):
        add_movement(tenant_a.id, product.id, 10, warehouse_id=main_warehouse.id)

        out_mv, in_mv = inventory_service.transfer_stock(
            tenant_id=tenant_a.id, product_id=product.id, quantity=4,
            from_warehouse_id=main_warehouse.id, to_warehouse_id=annex_warehouse.id,
        )

        assert (out_mv.type, in_mv.type) == ("OUT", "IN")
        assert out_mv.source_kind == in_mv.source_kind == SOURCE_TRANSFER
        assert out_mv.source_id == in_mv.source_id
        assert stock_service.balance_of(tenant_a.id, product.id, main_warehouse.id) == Decimal("6")
        assert stock_service.balance_of(tenant_a.id, product.id, annex_warehouse.id) == Decimal("4")
        assert stock_service.balance_of(tenant_a.id, product.id) == Decimal("10")

    def test_transfer_shortfall_writes_nothing(
        self, db_session, tenant_a, product, main_warehouse, annex_warehouse, add_movement
    ):
        add_movement(tenant_a.id, product.id, 3, warehouse_id=annex_warehouse.id)

        with pytest.raises(InsufficientStock):
            inventory_service.transfer_stock(
                tenant_id=tenant_a.id, product_id=product.id, quantity=5,
                from_warehouse_id=annex_warehouse.id, to_warehouse_id=main_warehouse.id,
            )
        assert db_session.query(StockMovement).count() == 1

    def test_same_warehouse_rejected(self, db_session, tenant_a, product, main_warehouse):
        with pytest.raises(StockError):
            inventory_service.transfer_stock(
                tenant_id=tenant_a.id, product_id=product.id, quantity=1,
                from_warehouse_id=main_warehouse.id, to_warehouse_id=main_warehouse.id,
            )
