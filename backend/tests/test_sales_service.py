# Overview: Pytest coverage for sale creation and payment application.

"""
Sale Orchestrator Tests

Covers the sale total identity, payment status transitions, store credit
use, customer receivables, and all-or-nothing rollback on failure.
"""

from decimal import Decimal

import pytest
from salepilot.errors import (
    ConflictError,
    CrossTenantError,
    InsufficientCreditError,
    InvalidAmountError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from salepilot.models import Customer, Payment, Product, Sale, StockMovement, AuditEvent
from salepilot.services import customer_service, sales_service
from salepilot.services.tenant_service import TenantScope


def _two_widgets(product, **extra):
    request = {"items": [{"product_id": product.id, "quantity": 2}], "tax": "1.00", "discount": "0"}
    request.update(extra)
    return request


class TestCreateSale:

    def test_sale_paid_in_full(self, db_session, scope_a, product_a):
        sale = sales_service.create_sale(scope_a, _two_widgets(product_a, amount_paid="21.00"))

        assert sale.subtotal == Decimal("20.00")
        assert sale.total == Decimal("21.00")
        assert sale.amount_paid == Decimal("21.00")
        assert sale.balance_due == 0
        assert sale.payment_status == "PAID"
        assert sale.refund_status == "NONE"
        assert sale.transaction_id.startswith("TRX-")
        assert db_session.get(Product, product_a.id).stock == Decimal("48")

        payments = sales_service.get_sale_payments(scope_a, sale.id)
        assert len(payments) == 1
        assert payments[0].amount == Decimal("21.00")
        assert payments[0].method == "Cash"

    def test_partial_payment_with_customer(self, db_session, scope_a, product_a, customer_a):
        sale = sales_service.create_sale(
            scope_a, _two_widgets(product_a, amount_paid="10.00", customer_id=customer_a.id),
        )

        assert sale.balance_due == Decimal("11.00")
        assert sale.payment_status == "PARTIALLY_PAID"
        assert db_session.get(Customer, customer_a.id).account_balance == Decimal("-11.00")

    def test_partial_payment_without_customer(self, db_session, scope_a, product_a):
        sale = sales_service.create_sale(scope_a, _two_widgets(product_a, amount_paid="10.00"))
        assert sale.balance_due == Decimal("11.00")
        assert sale.payment_status == "PARTIALLY_PAID"

    def test_unpaid_sale_records_no_payment(self, db_session, scope_a, product_a, customer_a):
        sale = sales_service.create_sale(scope_a, _two_widgets(product_a, customer_id=customer_a.id))
        assert sale.payment_status == "UNPAID"
        assert sales_service.get_sale_payments(scope_a, sale.id) == []
        assert db_session.get(Customer, customer_a.id).account_balance == Decimal("-21.00")

    def test_fully_discounted_sale_is_paid(self, db_session, scope_a, product_a):
        sale = sales_service.create_sale(scope_a, {
            "items": [{"product_id": product_a.id, "quantity": 1}],
            "discount": "10.00",
        })
        assert sale.total == 0
        assert sale.payment_status == "PAID"

    def test_price_override_and_cost_snapshot(self, db_session, scope_a, product_a):
        sale = sales_service.create_sale(scope_a, {
            "items": [{"product_id": product_a.id, "quantity": 3, "price": "7.50"}],
            "amount_paid": "22.50",
        })
        items = sales_service.get_sale_items(scope_a, sale.id)
        assert len(items) == 1
        assert items[0].price_at_sale == Decimal("7.50")
        assert items[0].cost_at_sale == Decimal("6.00")
        assert items[0].line_total == Decimal("22.50")
        assert sale.total == Decimal("22.50")

        # Later price changes do not touch the snapshot
        product = db_session.get(Product, product_a.id)
        product.price = Decimal("99.00")
        db_session.commit()
        assert sales_service.get_sale_items(scope_a, sale.id)[0].price_at_sale == Decimal("7.50")

    def test_store_credit_counts_toward_amount_paid(self, db_session, scope_b, product_b, customer_b):
        sale = sales_service.create_sale(scope_b, _two_widgets(
            product_b, customer_id=customer_b.id, store_credit_used="5.00", amount_paid="16.00",
        ))
        assert sale.amount_paid == Decimal("21.00")
        assert sale.store_credit_used == Decimal("5.00")
        assert sale.payment_status == "PAID"
        assert db_session.get(Customer, customer_b.id).store_credit == Decimal("20.00")

        # Only the cash portion is a Payment row
        payments = sales_service.get_sale_payments(scope_b, sale.id)
        assert [p.amount for p in payments] == [Decimal("16.00")]

    def test_sale_writes_audit_event_and_movement(self, db_session, scope_a, product_a):
        sale = sales_service.create_sale(scope_a, _two_widgets(product_a, amount_paid="21.00"))
        event = db_session.query(AuditEvent).filter_by(event_type="sale.created").one()
        assert event.entity_id == sale.id
        assert event.actor_user_id == scope_a.user_id
        movement = db_session.query(StockMovement).one()
        assert movement.reference == sale.transaction_id


class TestCreateSaleValidation:

    def test_no_items(self, db_session, scope_a):
        with pytest.raises(ValidationError):
            sales_service.create_sale(scope_a, {"items": []})

    def test_store_credit_requires_customer(self, db_session, scope_a, product_a):
        with pytest.raises(ValidationError):
            sales_service.create_sale(scope_a, _two_widgets(product_a, store_credit_used="1.00"))

    def test_discount_above_subtotal_rejected(self, db_session, scope_a, product_a):
        with pytest.raises(InvalidAmountError):
            sales_service.create_sale(scope_a, _two_widgets(product_a, discount="20.01"))
        assert db_session.get(Product, product_a.id).stock == Decimal("50")

    def test_negative_tax_rejected(self, db_session, scope_a, product_a):
        with pytest.raises(InvalidAmountError):
            sales_service.create_sale(scope_a, _two_widgets(product_a, tax="-1.00"))

    def test_requires_create_sale_capability(self, db_session, store_a, product_a):
        viewer = TenantScope(store_a.id, capabilities={"VIEW_SALES"})
        with pytest.raises(PermissionDeniedError):
            sales_service.create_sale(viewer, _two_widgets(product_a))

    @pytest.mark.parametrize("field", ["tax", "discount", "amount_paid"])
    def test_oversized_amount_rejected(self, db_session, scope_a, product_a, field):
        with pytest.raises(InvalidAmountError):
            sales_service.create_sale(scope_a, _two_widgets(product_a, **{field: "1e30"}))
        assert db_session.get(Product, product_a.id).stock == Decimal("50")

    def test_oversized_quantity_rejected(self, db_session, scope_a, product_a):
        with pytest.raises(InvalidAmountError):
            sales_service.create_sale(scope_a, {"items": [{"product_id": product_a.id, "quantity": "1e30"}]})
        assert db_session.get(Product, product_a.id).stock == Decimal("50")

    def test_store_credit_above_total_rejected(self, db_session, scope_b, product_b, customer_b):
        with pytest.raises(InvalidAmountError):
            sales_service.create_sale(scope_b, _two_widgets(
                product_b, customer_id=customer_b.id, store_credit_used="21.01",
            ))
        assert db_session.get(Customer, customer_b.id).store_credit == Decimal("25.00")
        assert db_session.get(Product, product_b.id).stock == Decimal("50")

    def test_store_credit_equal_to_total_is_paid(self, db_session, scope_b, product_b, customer_b):
        sale = sales_service.create_sale(scope_b, _two_widgets(
            product_b, customer_id=customer_b.id, store_credit_used="21.00",
        ))
        assert sale.payment_status == "PAID"
        assert db_session.get(Customer, customer_b.id).store_credit == Decimal("4.00")

    def test_cashier_can_sell_without_balance_capabilities(self, db_session, store_a, product_a, customer_a):
        cashier = TenantScope(store_a.id, capabilities={"CREATE_SALE"})
        sale = sales_service.create_sale(
            cashier, _two_widgets(product_a, customer_id=customer_a.id, amount_paid="1.00"),
        )
        assert sale.payment_status == "PARTIALLY_PAID"


class TestCreateSaleRollback:
    """A failure anywhere leaves no stock, balance or payment change behind."""

    def test_insufficient_store_credit_rolls_back_stock(self, db_session, scope_b, product_b, customer_b):
        with pytest.raises(InsufficientCreditError):
            sales_service.create_sale(scope_b, {
                "items": [{"product_id": product_b.id, "quantity": 4}],
                "customer_id": customer_b.id,
                "store_credit_used": "30.00",
            })
        assert db_session.get(Product, product_b.id).stock == Decimal("50")
        assert db_session.get(Customer, customer_b.id).store_credit == Decimal("25.00")
        assert db_session.query(Sale).count() == 0
        assert db_session.query(StockMovement).count() == 0

    def test_missing_second_product_rolls_back_first(self, db_session, scope_a, product_a):
        with pytest.raises(NotFoundError):
            sales_service.create_sale(scope_a, {
                "items": [
                    {"product_id": product_a.id, "quantity": 2},
                    {"product_id": 999999, "quantity": 1},
                ],
            })
        assert db_session.get(Product, product_a.id).stock == Decimal("50")
        assert db_session.query(Sale).count() == 0

    def test_cross_tenant_product_rejected(self, db_session, scope_a, product_a, product_b):
        with pytest.raises(CrossTenantError):
            sales_service.create_sale(scope_a, {
                "items": [
                    {"product_id": product_a.id, "quantity": 1},
                    {"product_id": product_b.id, "quantity": 1},
                ],
            })
        assert db_session.get(Product, product_a.id).stock == Decimal("50")
        assert db_session.get(Product, product_b.id).stock == Decimal("50")

    def test_cross_tenant_customer_rejected(self, db_session, scope_a, product_a, customer_b):
        with pytest.raises(CrossTenantError):
            sales_service.create_sale(scope_a, _two_widgets(product_a, customer_id=customer_b.id))
        assert db_session.get(Product, product_a.id).stock == Decimal("50")


class TestAddPayment:

    def _open_sale(self, scope, product, customer=None):
        extra = {"amount_paid": "10.00"}
        if customer is not None:
            extra["customer_id"] = customer.id
        return sales_service.create_sale(scope, _two_widgets(product, **extra))

    def test_payment_settles_balance(self, db_session, scope_a, product_a, customer_a):
        sale = self._open_sale(scope_a, product_a, customer_a)
        payment = sales_service.add_payment(scope_a, sale.id, "11.00", "Card", reference="AUTH-1")

        assert payment.amount == Decimal("11.00")
        sale = sales_service.get_sale(scope_a, sale.id)
        assert sale.amount_paid == Decimal("21.00")
        assert sale.balance_due == 0
        assert sale.payment_status == "PAID"
        assert db_session.get(Customer, customer_a.id).account_balance == 0
        assert len(sales_service.get_sale_payments(scope_a, sale.id)) == 2

    def test_partial_payment_keeps_partially_paid(self, db_session, scope_a, product_a):
        sale = self._open_sale(scope_a, product_a)
        sales_service.add_payment(scope_a, sale.id, "5.00", "Cash")
        sale = sales_service.get_sale(scope_a, sale.id)
        assert sale.payment_status == "PARTIALLY_PAID"
        assert sale.balance_due == Decimal("6.00")

    def test_unpaid_sale_moves_to_partially_paid(self, db_session, scope_a, product_a):
        sale = sales_service.create_sale(scope_a, _two_widgets(product_a))
        assert sale.payment_status == "UNPAID"
        sales_service.add_payment(scope_a, sale.id, "1.00", "Cash")
        assert sales_service.get_sale(scope_a, sale.id).payment_status == "PARTIALLY_PAID"

    def test_overpayment_rejected(self, db_session, scope_a, product_a):
        sale = self._open_sale(scope_a, product_a)
        with pytest.raises(InvalidAmountError):
            sales_service.add_payment(scope_a, sale.id, "11.01", "Cash")
        assert db_session.query(Payment).count() == 1

    def test_payment_on_paid_sale_conflicts(self, db_session, scope_a, product_a):
        sale = sales_service.create_sale(scope_a, _two_widgets(product_a, amount_paid="21.00"))
        with pytest.raises(ConflictError):
            sales_service.add_payment(scope_a, sale.id, "1.00", "Cash")

    @pytest.mark.parametrize("amount", ["0", "-3.00"])
    def test_non_positive_payment_rejected(self, db_session, scope_a, product_a, amount):
        sale = self._open_sale(scope_a, product_a)
        with pytest.raises(InvalidAmountError):
            sales_service.add_payment(scope_a, sale.id, amount, "Cash")

    def test_method_required(self, db_session, scope_a, product_a):
        sale = self._open_sale(scope_a, product_a)
        with pytest.raises(ValidationError):
            sales_service.add_payment(scope_a, sale.id, "1.00", "  ")
        assert sales_service.get_sale(scope_a, sale.id).amount_paid == Decimal("10.00")

    def test_cross_tenant_sale_rejected(self, db_session, scope_a, scope_b, product_b):
        sale = sales_service.create_sale(scope_b, _two_widgets(product_b))
        with pytest.raises(CrossTenantError):
            sales_service.add_payment(scope_a, sale.id, "1.00", "Cash")


class TestSaleQueries:

    def test_list_sales_filters(self, db_session, scope_a, scope_b, product_a, product_b, customer_a):
        paid = sales_service.create_sale(scope_a, _two_widgets(product_a, amount_paid="21.00"))
        open_sale = sales_service.create_sale(scope_a, _two_widgets(product_a, customer_id=customer_a.id))
        sales_service.create_sale(scope_b, _two_widgets(product_b))

        assert {s.id for s in sales_service.list_sales(scope_a)} == {paid.id, open_sale.id}
        assert [s.id for s in sales_service.list_sales(scope_a, payment_status="UNPAID")] == [open_sale.id]
        assert [s.id for s in sales_service.list_sales(scope_a, customer_id=customer_a.id)] == [open_sale.id]

    def test_lookup_by_transaction_id(self, db_session, scope_a, scope_b, product_a):
        sale = sales_service.create_sale(scope_a, _two_widgets(product_a))
        assert sales_service.get_sale_by_transaction_id(scope_a, sale.transaction_id).id == sale.id
        assert sales_service.get_sale_by_transaction_id(scope_b, sale.transaction_id) is None

    def test_to_dict_serializes_money_as_strings(self, db_session, scope_a, product_a):
        sale = sales_service.create_sale(scope_a, _two_widgets(product_a, amount_paid="10.00"))
        data = sale.to_dict()
        assert data["total"] == "21.00"
        assert data["balance_due"] == "11.00"
        assert data["payment_status"] == "PARTIALLY_PAID"

    def test_readers_require_view_sales(self, db_session, store_a, scope_a, product_a):
        sale = sales_service.create_sale(scope_a, _two_widgets(product_a, amount_paid="21.00"))
        cashier = TenantScope(store_a.id, capabilities={"CREATE_SALE"})
        for read in (
            lambda: sales_service.get_sale(cashier, sale.id),
            lambda: sales_service.get_sale_by_transaction_id(cashier, sale.transaction_id),
            lambda: sales_service.get_sale_items(cashier, sale.id),
            lambda: sales_service.get_sale_payments(cashier, sale.id),
            lambda: sales_service.list_sales(cashier),
        ):
            with pytest.raises(PermissionDeniedError):
                read()

        viewer = TenantScope(store_a.id, capabilities={"VIEW_SALES"})
        assert sales_service.get_sale(viewer, sale.id).id == sale.id
        assert [s.id for s in sales_service.list_sales(viewer)] == [sale.id]
