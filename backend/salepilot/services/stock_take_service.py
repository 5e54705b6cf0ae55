# Overview: Service-layer operations for stock takes (physical counts).

"""
Stock Take Service

LIFECYCLE:
1. start_stock_take: snapshot expected stock for every active product
   (one ACTIVE session per tenant)
2. update_item_count: record counted quantities
3. finalize_stock_take: overwrite stock for every counted item whose count
   differs from the snapshot, then mark COMPLETED

Uncounted items are left alone on finalize.
"""

from __future__ import annotations

import logging

from ..extensions import db
from ..errors import ConflictError, NotFoundError
from ..models import Product, StockTake, StockTakeItem
from ..models.stock_takes import STOCK_TAKE_ACTIVE, STOCK_TAKE_COMPLETED
from ..money import quantity
from salepilot.time_utils import utcnow
from . import stock_service
from .audit_service import append_audit_event
from .concurrency import run_in_transaction
from .tenant_service import TenantScope, get_owned, scoped_query

logger = logging.getLogger(__name__)


def get_active_stock_take(scope: TenantScope) -> StockTake | None:
    return scoped_query(scope, StockTake).filter(StockTake.status == STOCK_TAKE_ACTIVE).first()


def start_stock_take(scope: TenantScope, notes: str | None = None) -> StockTake:
    scope.require_capability("RUN_STOCK_TAKE")

    def _op():
        tenant_id = scope.require()
        if get_active_stock_take(scope) is not None:
            raise ConflictError("A stock take is already in progress")

        stock_take = StockTake(
            tenant_id=tenant_id,
            status=STOCK_TAKE_ACTIVE,
            notes=notes,
            started_by_user_id=scope.user_id,
        )
        db.session.add(stock_take)

        products = (
            scoped_query(scope, Product)
            .filter(Product.is_active.is_(True))
            .order_by(Product.sku)
            .all()
        )
        for product in products:
            db.session.add(StockTakeItem(
                tenant_id=tenant_id,
                stock_take=stock_take,
                product_id=product.id,
                sku=product.sku,
                product_name=product.name,
                expected=product.stock,
            ))

        db.session.flush()
        append_audit_event(
            scope,
            event_type="stock_take.started",
            event_category="inventory",
            entity_type="stock_take",
            entity_id=stock_take.id,
            note=f"{len(products)} products snapshotted",
        )
        return stock_take

    return run_in_transaction(_op)


def _load_active(scope: TenantScope, stock_take_id: int) -> StockTake:
    stock_take = get_owned(scope, StockTake, stock_take_id, lock=True)
    if stock_take.status != STOCK_TAKE_ACTIVE:
        raise ConflictError(
            "Stock take is already completed",
            details={"stock_take_id": stock_take.id},
        )
    return stock_take


def update_item_count(scope: TenantScope, stock_take_id: int, item_id: int, counted) -> StockTakeItem:
    scope.require_capability("RUN_STOCK_TAKE")
    counted = quantity(counted, "counted", allow_zero=True)

    def _op():
        stock_take = _load_active(scope, stock_take_id)
        item = get_owned(scope, StockTakeItem, item_id)
        if item.stock_take_id != stock_take.id:
            raise NotFoundError(
                f"Item {item_id} is not part of stock take {stock_take.id}",
            )
        item.counted = counted
        return item

    return run_in_transaction(_op)


def finalize_stock_take(scope: TenantScope, stock_take_id: int) -> StockTake:
    scope.require_capability("RUN_STOCK_TAKE")

    def _op():
        stock_take = _load_active(scope, stock_take_id)
        items = (
            scoped_query(scope, StockTakeItem)
            .filter(StockTakeItem.stock_take_id == stock_take.id)
            .all()
        )
        adjusted = 0
        for item in items:
            if item.counted is None or item.counted == item.expected:
                continue
            stock_service.overwrite(
                scope,
                item.product_id,
                item.counted,
                reference=f"STOCK-TAKE-{stock_take.id}",
                movement_type=stock_service.MOVEMENT_STOCK_TAKE,
                commit=False,
            )
            adjusted += 1

        stock_take.status = STOCK_TAKE_COMPLETED
        stock_take.end_date = utcnow()

        append_audit_event(
            scope,
            event_type="stock_take.completed",
            event_category="inventory",
            entity_type="stock_take",
            entity_id=stock_take.id,
            note=f"{adjusted} products adjusted",
        )
        logger.info("Stock take %s finalized: %d products adjusted", stock_take.id, adjusted)
        return stock_take

    return run_in_transaction(_op)


def get_stock_take(scope: TenantScope, stock_take_id: int) -> StockTake:
    return get_owned(scope, StockTake, stock_take_id)


def list_stock_takes(scope: TenantScope) -> list[StockTake]:
    return scoped_query(scope, StockTake).order_by(StockTake.id.desc()).all()
