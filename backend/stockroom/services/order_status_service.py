# Overview: Order status rollup: derive an order's status from its products' statuses.

"""
Order Status Rollup

An order's status is never authored by a user. It is derived from the
multiset of its non-deleted products' product_status values:

1. No products -> no change.
2. Take the product with the lowest precedence rank (first one wins a tie).
   Unknown statuses rank with the in-production tier.
3. Map that product's status to an order status (PRODUCT_TO_ORDER_STATUS,
   anything unmapped -> in_progress).
4. If every product is delivered or completed, the order is completed,
   whatever step 3 produced.
5. Persist.

The function is idempotent: recomputing an unchanged product set writes the
same status again. That is what lets a failed recomputation self-heal on the
next product status change (or via `flask orders recalc-status`).
"""

from __future__ import annotations

from typing import Iterable

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import Order, OrderProduct
from ..statuses import (
    OrderStatus,
    ProductStatus,
    PRODUCT_TO_ORDER_STATUS,
    TERMINAL_PRODUCT_STATUSES,
    product_status_rank,
)
from ..errors import NotFoundError, StockroomError, ValidationError
from ..actor import Actor, require_actor
from .concurrency import run_with_retry


def _status_value(status) -> str | None:
    return getattr(status, "value", status)


def rollup_order_status(statuses: Iterable[str]) -> OrderStatus | None:
    """
    Pure rollup over product statuses.

    Returns None for an empty collection (the caller leaves the order alone).
    """
    values = [_status_value(s) for s in statuses]
    if not values:
        return None

    lowest = min(values, key=product_status_rank)

    try:
        mapped = PRODUCT_TO_ORDER_STATUS.get(ProductStatus(lowest), OrderStatus.IN_PROGRESS)
    except ValueError:
        mapped = OrderStatus.IN_PROGRESS

    if all(v in TERMINAL_PRODUCT_STATUSES for v in values):
        return OrderStatus.COMPLETED
    return mapped


def active_products(order_id: int) -> list[OrderProduct]:
    return (
        OrderProduct.query
        .filter(OrderProduct.order_id == order_id, OrderProduct.deleted_at.is_(None))
        .order_by(OrderProduct.id)
        .all()
    )


def recalculate_order_status(order_id: int) -> OrderStatus | None:
    """
    Recompute and store one order's status.

    Flushes but does not commit; the caller owns the unit of work.

    Raises:
        NotFoundError: order does not exist
    """
    order = db.session.get(Order, order_id)
    if order is None:
        raise NotFoundError(f"Order {order_id} not found")

    products = active_products(order_id)
    new_status = rollup_order_status(p.product_status for p in products)
    if new_status is None:
        current_app.logger.info("Order %s has no active products; status left as %s", order_id, order.status)
        return None

    if order.status != new_status.value:
        current_app.logger.info("Order %s status %s -> %s", order_id, order.status, new_status.value)
    order.status = new_status.value
    db.session.flush()
    return new_status


def recalculate_order_status_safely(order_id: int) -> OrderStatus | None:
    """
    Recompute inside a SAVEPOINT so a failure cannot undo the caller's work.

    Used as a side effect of receive: the error is logged and the stale order
    status is repaired by the next recomputation.
    """
    try:
        with db.session.begin_nested():
            return recalculate_order_status(order_id)
    except (SQLAlchemyError, StockroomError):
        current_app.logger.exception("Order status recalculation failed for order %s", order_id)
        return None


def set_product_status(order_product_id: int, status, *, actor: Actor) -> tuple[OrderProduct, OrderStatus | None]:
    """
    Change one order product's status and roll the order status up.

    Raises:
        ValidationError: status is not a known ProductStatus
        NotFoundError: order product does not exist
    """
    actor = require_actor(actor)
    try:
        new_status = ProductStatus(_status_value(status))
    except ValueError:
        raise ValidationError(f"Unknown product status '{status}'", field="product_status")

    def _op():
        product = db.session.get(OrderProduct, order_product_id, populate_existing=True)
        if product is None:
            raise NotFoundError(f"Order product {order_product_id} not found")
        product.product_status = new_status.value
        db.session.flush()
        order_status = recalculate_order_status(product.order_id)
        db.session.commit()
        return product, order_status

    product, order_status = run_with_retry(_op)

    current_app.logger.info(
        "Order product %s status set to %s by %s", order_product_id, new_status.value, actor.display_name
    )
    return product, order_status


def recalculate_all_order_statuses() -> int:
    """Recompute every order (repair tool). Returns how many orders were recomputed."""
    def _op():
        count = 0
        for (order_id,) in db.session.query(Order.id).order_by(Order.id).all():
            if recalculate_order_status(order_id) is not None:
                count += 1
        db.session.commit()
        return count

    return run_with_retry(_op)
