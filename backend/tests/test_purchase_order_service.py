# Overview: Pytest coverage for purchase orders, status transitions and receiving.

from datetime import date
from decimal import Decimal

import pytest
from salepilot.errors import (
    ConflictError,
    CrossTenantError,
    PermissionDeniedError,
    ValidationError,
)
from salepilot.models import AuditEvent, Product, PurchaseOrder, StockMovement, Supplier
from salepilot.services import purchase_order_service as po_service
from salepilot.services.tenant_service import TenantScope
from salepilot.time_utils import utcnow


def _order(scope, supplier, product, qty="100", cost="8.00", **extra):
    request = {
        "supplier_id": supplier.id,
        "items": [{"product_id": product.id, "quantity": qty, "cost_price": cost}],
    }
    request.update(extra)
    return po_service.create_purchase_order(scope, request)


def _ordered(scope, supplier, product, **kwargs):
    po = _order(scope, supplier, product, **kwargs)
    return po_service.update_status(scope, po.id, "ORDERED")


class TestWeightedAverageCost:

    def test_blends_on_hand_and_received(self):
        assert po_service.weighted_average_cost(
            Decimal("50"), Decimal("6.00"), Decimal("50"), Decimal("8.00"),
        ) == Decimal("7.00")

    def test_rounds_half_up_to_cents(self):
        # (50*6 + 60*8) / 110 = 7.0909...
        assert po_service.weighted_average_cost(
            Decimal("50"), Decimal("6.00"), Decimal("60"), Decimal("8.00"),
        ) == Decimal("7.09")

    @pytest.mark.parametrize("on_hand,current", [
        (Decimal("0"), Decimal("6.00")),
        (Decimal("-5"), Decimal("6.00")),
        (Decimal("10"), None),
    ])
    def test_takes_received_cost_without_usable_stock(self, on_hand, current):
        assert po_service.weighted_average_cost(
            on_hand, current, Decimal("10"), Decimal("8.00"),
        ) == Decimal("8.00")


class TestCreatePurchaseOrder:

    def test_draft_with_totals_and_snapshots(self, db_session, scope_a, supplier_a, product_a):
        po = _order(scope_a, supplier_a, product_a, qty="10", cost="8.00",
                    shipping_cost="5.00", tax="2.50", expected_delivery_date=date(2026, 11, 1))

        assert po.status == "DRAFT"
        assert po.po_number == f"PO-{utcnow().year}-0001"
        assert po.supplier_name == "Acme Wholesale"
        assert po.subtotal == Decimal("80.00")
        assert po.total == Decimal("87.50")

        items = po_service.get_purchase_order_items(scope_a, po.id)
        assert len(items) == 1
        assert items[0].sku == "WIDGET-A"
        assert items[0].received_quantity == 0

    def test_po_numbers_are_sequential_per_tenant(self, db_session, scope_a, scope_b, supplier_a,
                                                   product_a, product_b):
        first = _order(scope_a, supplier_a, product_a)
        second = _order(scope_a, supplier_a, product_a)
        supplier_b = Supplier(tenant_id=scope_b.get(), name="Beta Supply")
        db_session.add(supplier_b)
        db_session.commit()
        other = _order(scope_b, supplier_b, product_b)

        year = utcnow().year
        assert first.po_number == f"PO-{year}-0001"
        assert second.po_number == f"PO-{year}-0002"
        assert other.po_number == f"PO-{year}-0001"

    def test_cost_defaults_to_product_cost(self, db_session, scope_a, supplier_a, product_a):
        po = po_service.create_purchase_order(scope_a, {
            "supplier_id": supplier_a.id,
            "items": [{"product_id": product_a.id, "quantity": 4}],
        })
        assert po.subtotal == Decimal("24.00")

    def test_missing_cost_rejected(self, db_session, scope_a, supplier_a, make_product, store_a):
        costless = make_product(store_a, "NOCOST", cost=None)
        with pytest.raises(ValidationError):
            po_service.create_purchase_order(scope_a, {
                "supplier_id": supplier_a.id,
                "items": [{"product_id": costless.id, "quantity": 1}],
            })

    def test_duplicate_product_lines_rejected(self, db_session, scope_a, supplier_a, product_a):
        with pytest.raises(ValidationError):
            po_service.create_purchase_order(scope_a, {
                "supplier_id": supplier_a.id,
                "items": [
                    {"product_id": product_a.id, "quantity": 1},
                    {"product_id": product_a.id, "quantity": 2},
                ],
            })
        assert db_session.query(PurchaseOrder).count() == 0

    def test_requires_items(self, db_session, scope_a, supplier_a):
        with pytest.raises(ValidationError):
            po_service.create_purchase_order(scope_a, {"supplier_id": supplier_a.id, "items": []})

    def test_cross_tenant_supplier_rejected(self, db_session, scope_b, supplier_a, product_b):
        with pytest.raises(CrossTenantError):
            _order(scope_b, supplier_a, product_b)

    def test_cross_tenant_product_rejected(self, db_session, scope_a, supplier_a, product_b):
        with pytest.raises(CrossTenantError):
            _order(scope_a, supplier_a, product_b)
        assert db_session.query(PurchaseOrder).count() == 0


class TestStatusTransitions:

    def test_draft_to_ordered_stamps_ordered_at(self, db_session, scope_a, supplier_a, product_a):
        po = _ordered(scope_a, supplier_a, product_a)
        assert po.status == "ORDERED"
        assert po.ordered_at is not None

    @pytest.mark.parametrize("order_first", [False, True])
    def test_cancel_before_receiving(self, db_session, scope_a, supplier_a, product_a, order_first):
        po = _ordered(scope_a, supplier_a, product_a) if order_first else _order(scope_a, supplier_a, product_a)
        po = po_service.update_status(scope_a, po.id, "canceled")
        assert po.status == "CANCELED"

    def test_cannot_cancel_after_partial_receipt(self, db_session, scope_a, supplier_a, product_a):
        po = _ordered(scope_a, supplier_a, product_a)
        po_service.receive_inventory(scope_a, po.id, {product_a.id: 10})
        with pytest.raises(ConflictError):
            po_service.update_status(scope_a, po.id, "CANCELED")

    def test_final_statuses_cannot_change(self, db_session, scope_a, supplier_a, product_a):
        po = _order(scope_a, supplier_a, product_a)
        po_service.update_status(scope_a, po.id, "CANCELED")
        with pytest.raises(ConflictError):
            po_service.update_status(scope_a, po.id, "ORDERED")

    def test_receiving_statuses_not_settable_by_hand(self, db_session, scope_a, supplier_a, product_a):
        po = _ordered(scope_a, supplier_a, product_a)
        with pytest.raises(ConflictError):
            po_service.update_status(scope_a, po.id, "RECEIVED")

    def test_unknown_status_rejected(self, db_session, scope_a, supplier_a, product_a):
        po = _order(scope_a, supplier_a, product_a)
        with pytest.raises(ValidationError):
            po_service.update_status(scope_a, po.id, "SHIPPED")


class TestReceiveInventory:

    def test_partial_then_full_receipt(self, db_session, scope_a, supplier_a, product_a):
        po = _ordered(scope_a, supplier_a, product_a, qty="100", cost="8.00")

        po = po_service.receive_inventory(scope_a, po.id, {product_a.id: 60})
        assert po.status == "PARTIALLY_RECEIVED"
        product = db_session.get(Product, product_a.id)
        assert product.stock == Decimal("110")
        assert product.cost_price == Decimal("7.09")

        po = po_service.receive_inventory(scope_a, po.id, {str(product_a.id): "40"})
        assert po.status == "RECEIVED"
        assert po.received_at is not None
        product = db_session.get(Product, product_a.id)
        assert product.stock == Decimal("150")
        # (110 * 7.09 + 40 * 8.00) / 150
        assert product.cost_price == Decimal("7.33")

        items = po_service.get_purchase_order_items(scope_a, po.id)
        assert items[0].received_quantity == Decimal("100")
        assert items[0].fully_received

        movements = db_session.query(StockMovement).filter_by(product_id=product_a.id).all()
        assert [m.movement_type for m in movements] == ["RECEIVE", "RECEIVE"]
        assert all(m.reference == po.po_number for m in movements)

    def test_weighted_average_on_receipt(self, db_session, scope_a, supplier_a, product_a):
        po = _ordered(scope_a, supplier_a, product_a, qty="50", cost="8.00")
        po_service.receive_inventory(scope_a, po.id, {product_a.id: 50})
        assert db_session.get(Product, product_a.id).cost_price == Decimal("7.00")

    def test_last_cost_method_overwrites(self, app, db_session, scope_a, supplier_a, product_a, monkeypatch):
        monkeypatch.setitem(app.config, "COST_METHOD", "LAST")
        po = _ordered(scope_a, supplier_a, product_a, qty="50", cost="8.00")
        po_service.receive_inventory(scope_a, po.id, {product_a.id: 10})
        assert db_session.get(Product, product_a.id).cost_price == Decimal("8.00")

    def test_over_receive_conflicts(self, db_session, scope_a, supplier_a, product_a):
        po = _ordered(scope_a, supplier_a, product_a, qty="10")
        po_service.receive_inventory(scope_a, po.id, {product_a.id: 8})
        with pytest.raises(ConflictError):
            po_service.receive_inventory(scope_a, po.id, {product_a.id: 3})

        assert db_session.get(Product, product_a.id).stock == Decimal("58")
        items = po_service.get_purchase_order_items(scope_a, po.id)
        assert items[0].received_quantity == Decimal("8")

    def test_over_receive_allowed_when_configured(self, app, db_session, scope_a, supplier_a,
                                                  product_a, monkeypatch):
        monkeypatch.setitem(app.config, "ALLOW_OVER_RECEIVE", True)
        po = _ordered(scope_a, supplier_a, product_a, qty="10")
        po = po_service.receive_inventory(scope_a, po.id, {product_a.id: 12})
        assert po.status == "RECEIVED"
        assert db_session.get(Product, product_a.id).stock == Decimal("62")

    def test_zero_quantity_skips_line(self, db_session, scope_a, supplier_a, product_a, make_product, store_a):
        gadget = make_product(store_a, "GADGET-A", stock="0")
        po = po_service.create_purchase_order(scope_a, {
            "supplier_id": supplier_a.id,
            "items": [
                {"product_id": product_a.id, "quantity": 5, "cost_price": "6.00"},
                {"product_id": gadget.id, "quantity": 5, "cost_price": "4.00"},
            ],
        })
        po_service.update_status(scope_a, po.id, "ORDERED")
        po = po_service.receive_inventory(scope_a, po.id, {product_a.id: 5, gadget.id: 0})
        assert po.status == "PARTIALLY_RECEIVED"
        assert db_session.get(Product, gadget.id).stock == 0

    def test_receiving_draft_conflicts(self, db_session, scope_a, supplier_a, product_a):
        po = _order(scope_a, supplier_a, product_a)
        with pytest.raises(ConflictError):
            po_service.receive_inventory(scope_a, po.id, {product_a.id: 1})

    def test_product_not_on_order_rejected(self, db_session, scope_a, supplier_a, product_a,
                                           make_product, store_a):
        stranger = make_product(store_a, "STRANGER")
        po = _ordered(scope_a, supplier_a, product_a)
        with pytest.raises(ValidationError):
            po_service.receive_inventory(scope_a, po.id, {product_a.id: 1, stranger.id: 1})
        assert db_session.get(Product, product_a.id).stock == Decimal("50")

    def test_empty_receipt_rejected(self, db_session, scope_a, supplier_a, product_a):
        po = _ordered(scope_a, supplier_a, product_a)
        with pytest.raises(ValidationError):
            po_service.receive_inventory(scope_a, po.id, {})

    @pytest.mark.parametrize("received", [[1, 2], "10", 5])
    def test_non_mapping_receipt_rejected(self, db_session, scope_a, supplier_a, product_a, received):
        po = _ordered(scope_a, supplier_a, product_a)
        with pytest.raises(ValidationError):
            po_service.receive_inventory(scope_a, po.id, received)

    def test_all_zero_receipt_changes_nothing(self, db_session, scope_a, supplier_a, product_a):
        po = _ordered(scope_a, supplier_a, product_a)
        po = po_service.receive_inventory(scope_a, po.id, {product_a.id: 0})

        assert po.status == "ORDERED"
        assert db_session.get(Product, product_a.id).stock == Decimal("50")
        assert db_session.query(StockMovement).count() == 0
        events = db_session.query(AuditEvent).filter_by(event_type="purchase_order.received").all()
        assert events == []

    def test_requires_receive_capability(self, db_session, store_a, scope_a, supplier_a, product_a):
        po = _ordered(scope_a, supplier_a, product_a)
        buyer = TenantScope(store_a.id, capabilities={"MANAGE_PURCHASE_ORDERS"})
        with pytest.raises(PermissionDeniedError):
            po_service.receive_inventory(buyer, po.id, {product_a.id: 1})

    def test_list_by_status(self, db_session, scope_a, supplier_a, product_a):
        draft = _order(scope_a, supplier_a, product_a)
        ordered = _ordered(scope_a, supplier_a, product_a)
        assert [p.id for p in po_service.list_purchase_orders(scope_a, status="ordered")] == [ordered.id]
        assert {p.id for p in po_service.list_purchase_orders(scope_a, supplier_id=supplier_a.id)} == {
            draft.id, ordered.id,
        }
