# Overview: Incoming inventory: persisted incoming records plus virtual records derived from order products.

"""
Virtual incoming records

An order product that is in production or shipped, and that has no inventory
record of any status yet, is shown as an incoming record before anyone has
created one. That record is VIRTUAL: it is derived on read and has no id.

VirtualIncoming is its own type so nothing can treat it as persisted; the
only way to make it real is lifecycle_service.receive_inventory(), which
persists it. Once any record exists for the order product it is never
derived again.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Union

from sqlalchemy import func

from ..extensions import db
from ..models import InventoryRecord, Order, OrderProduct
from ..statuses import InventoryStatus, INCOMING_PRODUCT_STATUSES
from ..errors import NotFoundError, ConstraintError


@dataclass(frozen=True)
class VirtualItem:
    order_item_id: int
    variant_combo: str
    expected_quantity: int

    def to_dict(self) -> dict:
        return {
            "id": None,
            "order_item_id": self.order_item_id,
            "variant_combo": self.variant_combo,
            "expected_quantity": self.expected_quantity,
            "verified": False,
            "verified_at": None,
        }


@dataclass(frozen=True)
class VirtualIncoming:
    order_product_id: int
    order_id: int
    client_id: int | None
    product_order_number: str | None
    product_name: str
    order_number: str | None
    client_name: str | None
    product_status: str
    tracking_number: str | None = None
    shipping_carrier: str | None = None
    items: tuple[VirtualItem, ...] = field(default_factory=tuple)

    status = InventoryStatus.INCOMING

    @property
    def key(self) -> str:
        return f"prod-{self.order_product_id}"

    @property
    def total_quantity(self) -> int:
        return sum(i.expected_quantity for i in self.items)

    def to_dict(self) -> dict:
        return {
            "id": None,
            "key": self.key,
            "is_virtual": True,
            "order_product_id": self.order_product_id,
            "order_id": self.order_id,
            "client_id": self.client_id,
            "product_order_number": self.product_order_number,
            "product_name": self.product_name,
            "order_number": self.order_number,
            "client_name": self.client_name,
            "status": InventoryStatus.INCOMING.value,
            "product_status": self.product_status,
            "tracking_number": self.tracking_number,
            "shipping_carrier": self.shipping_carrier,
            "total_quantity": self.total_quantity,
            "items": [i.to_dict() for i in self.items],
        }


IncomingEntry = Union[InventoryRecord, VirtualIncoming]


def _virtual_from_product(product: OrderProduct) -> VirtualIncoming:
    order = product.order
    return VirtualIncoming(
        order_product_id=product.id,
        order_id=product.order_id,
        client_id=order.client_id if order else None,
        product_order_number=product.product_order_number,
        product_name=product.product_name or product.product_order_number or "",
        order_number=order.order_number if order else None,
        client_name=order.client_name if order else None,
        product_status=product.product_status,
        tracking_number=product.tracking_number,
        shipping_carrier=product.shipping_carrier,
        items=tuple(
            VirtualItem(
                order_item_id=i.id,
                variant_combo=i.variant_combo or "Default",
                expected_quantity=i.quantity or 0,
            )
            for i in product.items
        ),
    )


def _products_without_inventory_query(client_id: int | None = None):
    has_record = (
        db.session.query(InventoryRecord.id)
        .filter(InventoryRecord.order_product_id == OrderProduct.id)
        .exists()
    )
    q = (
        OrderProduct.query
        .join(Order, Order.id == OrderProduct.order_id)
        .filter(
            OrderProduct.product_status.in_(INCOMING_PRODUCT_STATUSES),
            OrderProduct.deleted_at.is_(None),
            ~has_record,
        )
    )
    if client_id is not None:
        q = q.filter(Order.client_id == client_id)
    return q


def has_inventory_record(order_product_id: int) -> bool:
    return db.session.query(
        db.session.query(InventoryRecord.id).filter_by(order_product_id=order_product_id).exists()
    ).scalar()


def list_virtual_incoming(client_id: int | None = None) -> list[VirtualIncoming]:
    products = (
        _products_without_inventory_query(client_id)
        .order_by(OrderProduct.created_at.desc(), OrderProduct.id.desc())
        .all()
    )
    return [_virtual_from_product(p) for p in products]


def get_virtual_incoming(order_product_id: int) -> VirtualIncoming:
    """
    Raises:
        NotFoundError: order product does not exist
        ConstraintError: order product already has an inventory record, or is
            not in a status that surfaces as incoming
    """
    product = db.session.get(OrderProduct, order_product_id)
    if product is None or product.deleted_at is not None:
        raise NotFoundError(f"Order product {order_product_id} not found")
    if has_inventory_record(order_product_id):
        raise ConstraintError(f"Order product {order_product_id} already has an inventory record")
    if product.product_status not in INCOMING_PRODUCT_STATUSES:
        raise ConstraintError(
            f"Order product {order_product_id} is '{product.product_status}', not in production or shipped"
        )
    return _virtual_from_product(product)


def list_incoming(client_id: int | None = None) -> list[IncomingEntry]:
    """Persisted incoming records (newest first), then virtual ones."""
    q = InventoryRecord.query.filter_by(status=InventoryStatus.INCOMING.value)
    if client_id is not None:
        q = q.filter_by(client_id=client_id)
    persisted = q.order_by(InventoryRecord.created_at.desc(), InventoryRecord.id.desc()).all()
    return [*persisted, *list_virtual_incoming(client_id)]


def get_inventory_stats() -> dict:
    """Record counts per status; virtual records count as incoming."""
    rows = (
        db.session.query(InventoryRecord.status, func.count(InventoryRecord.id))
        .group_by(InventoryRecord.status)
        .all()
    )
    counts = {status: count for status, count in rows}
    virtual = _products_without_inventory_query().count()
    return {
        "incoming": counts.get(InventoryStatus.INCOMING.value, 0) + virtual,
        "in_stock": counts.get(InventoryStatus.IN_STOCK.value, 0),
        "archived": counts.get(InventoryStatus.ARCHIVED.value, 0),
        "virtual_incoming": virtual,
    }
