# Overview: Pytest coverage for purchase return numbering and validation.

"""
Purchase Return Tests

Validation must be all-or-nothing: a shortfall on any line leaves the return
in DRAFT with no movement written.
"""

from datetime import date
from decimal import Decimal

import pytest

from docstock.models import Product, PurchaseReturn, StockMovement
from docstock.models.inventory import MOVEMENT_OUT, SOURCE_RETURN
from docstock.services import numbering_service, return_service, stock_service
from docstock.services.allocator_service import AllocationExhausted
from docstock.services.availability_service import InsufficientStock
from docstock.services.numbering_service import SERIES_PURCHASE_RETURN
from docstock.services.return_service import ReturnError


DAY = date(2025, 4, 1)


def _create(tenant, lines, **kwargs):
    return return_service.create_purchase_return(
        tenant_id=tenant.id, lines=lines, today=DAY, created_by="buyer", **kwargs
    )


class TestCreateReturn:
    def test_draft_with_reta_number(self, db_session, tenant_a, product):
        return_doc = _create(tenant_a, [{"product_id": product.id, "quantity": 2}])

        assert return_doc.number == "RETA-2025-0001"
        assert return_doc.status == "DRAFT"
        assert return_doc.lines[0].label == "Widget"
        assert db_session.query(StockMovement).count() == 0

    def test_numbers_increase(self, db_session, tenant_a, product):
        first = _create(tenant_a, [{"product_id": product.id, "quantity": 1}])
        second = _create(tenant_a, [{"product_id": product.id, "quantity": 1}])

        assert (first.number, second.number) == ("RETA-2025-0001", "RETA-2025-0002")

    @pytest.mark.parametrize("lines", [
        [],
        [{"quantity": 1}],
        [{"product_id": 1, "quantity": 0}],
    ])
    def test_invalid_lines(self, db_session, tenant_a, product, lines):
        with pytest.raises(ReturnError):
            _create(tenant_a, lines)

    def test_foreign_product_rejected(self, db_session, tenant_a, product_b):
        with pytest.raises(ReturnError):
            _create(tenant_a, [{"product_id": product_b.id, "quantity": 1}])

    def test_foreign_warehouse_rejected(self, db_session, tenant_b, product_b, main_warehouse):
        with pytest.raises(ReturnError):
            _create(tenant_b, [{"product_id": product_b.id, "quantity": 1}], warehouse_id=main_warehouse.id)

    def test_imported_number_is_skipped_not_reissued(self, db_session, tenant_a, product):
        db_session.add(PurchaseReturn(tenant_id=tenant_a.id, number="RETA-2025-0001", status="DRAFT"))
        db_session.commit()

        first = _create(tenant_a, [{"product_id": product.id, "quantity": 1}])
        second = _create(tenant_a, [{"product_id": product.id, "quantity": 1}])

        assert (first.number, second.number) == ("RETA-2025-0002", "RETA-2025-0003")
        assert numbering_service.current_value(tenant_a.id, SERIES_PURCHASE_RETURN) == 3

    def test_exhausted_when_every_number_is_taken(self, db_session, tenant_a, product, app, monkeypatch):
        monkeypatch.setitem(app.config, "ALLOCATOR_MAX_ATTEMPTS", 3)
        db_session.add(PurchaseReturn(tenant_id=tenant_a.id, number="RETA-2025-0001", status="DRAFT"))
        db_session.commit()
        monkeypatch.setattr(return_service, "next_number", lambda *args, **kwargs: "RETA-2025-0001")

        with pytest.raises(AllocationExhausted) as exc_info:
            _create(tenant_a, [{"product_id": product.id, "quantity": 1}])

        assert exc_info.value.attempts == 3
        assert exc_info.value.last_candidate == "RETA-2025-0001"
        assert db_session.query(PurchaseReturn).filter_by(tenant_id=tenant_a.id).count() == 1


class TestValidateReturn:
    def test_validate_writes_out_movements(self, db_session, tenant_a, product, service_product, add_movement):
        add_movement(tenant_a.id, product.id, 10)
        return_doc = _create(tenant_a, [
            {"product_id": product.id, "quantity": 4},
            {"product_id": service_product.id, "quantity": 1},
        ])

        validated = return_service.validate_purchase_return(return_doc.id, tenant_a.id, validated_by="manager")

        assert validated.status == "VALIDATED"
        assert validated.validated_by == "manager"
        assert validated.validated_at is not None
        outs = db_session.query(StockMovement).filter_by(type=MOVEMENT_OUT).all()
        assert len(outs) == 1
        assert outs[0].source_kind == SOURCE_RETURN
        assert outs[0].source_id == return_doc.number
        assert stock_service.balance_of(tenant_a.id, product.id) == Decimal("6")

    def test_shortfall_writes_nothing(self, db_session, tenant_a, product, add_movement):
        second = Product(tenant_id=tenant_a.id, sku="GAD-001", name="Gadget")
        db_session.add(second)
        db_session.commit()
        add_movement(tenant_a.id, product.id, 10)
        add_movement(tenant_a.id, second.id, 1)
        return_doc = _create(tenant_a, [
            {"product_id": product.id, "quantity": 5},
            {"product_id": second.id, "quantity": 3},
        ])

        with pytest.raises(InsufficientStock) as exc_info:
            return_service.validate_purchase_return(return_doc.id, tenant_a.id)

        assert exc_info.value.product_label == "Gadget"
        assert db_session.query(StockMovement).filter_by(type=MOVEMENT_OUT).count() == 0
        assert return_service.get_purchase_return(return_doc.id, tenant_a.id).status == "DRAFT"
        assert stock_service.balance_of(tenant_a.id, product.id) == Decimal("10")

    def test_cannot_validate_twice(self, db_session, tenant_a, product, add_movement):
        add_movement(tenant_a.id, product.id, 10)
        return_doc = _create(tenant_a, [{"product_id": product.id, "quantity": 1}])
        return_service.validate_purchase_return(return_doc.id, tenant_a.id)

        with pytest.raises(ReturnError):
            return_service.validate_purchase_return(return_doc.id, tenant_a.id)
        assert stock_service.balance_of(tenant_a.id, product.id) == Decimal("9")

    def test_stale_draft_is_not_validated_again(self, db_session, tenant_a, product, add_movement):
        """Another session validated the return after this one loaded it as DRAFT."""
        add_movement(tenant_a.id, product.id, 10)
        return_doc = _create(tenant_a, [{"product_id": product.id, "quantity": 5}])
        assert return_doc.status == "DRAFT"
        db_session.query(PurchaseReturn).filter_by(id=return_doc.id).update(
            {"status": "VALIDATED"}, synchronize_session=False
        )

        with pytest.raises(ReturnError):
            return_service.validate_purchase_return(return_doc.id, tenant_a.id)

        assert db_session.query(StockMovement).filter_by(type=MOVEMENT_OUT).count() == 0
        assert stock_service.balance_of(tenant_a.id, product.id) == Decimal("10")

    def test_other_tenant_cannot_see_return(self, db_session, tenant_a, tenant_b, product):
        return_doc = _create(tenant_a, [{"product_id": product.id, "quantity": 1}])

        with pytest.raises(ReturnError):
            return_service.get_purchase_return(return_doc.id, tenant_b.id)
