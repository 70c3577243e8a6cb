# Overview: Closed status vocabularies for inventory records, order products and orders.

"""
Status vocabularies

InventoryStatus:
    INCOMING -> IN_STOCK -> ARCHIVED   (ARCHIVED -> IN_STOCK to correct an erroneous archive)

ProductStatus precedence:
    The workflow order is PRODUCT_STATUS_PRECEDENCE, a list of tiers. A status's
    rank is the index of its tier, so inserting a status means inserting it
    into the list, never renumbering a map by hand.

OrderStatus:
    Derived only. Orders never have their status authored directly; it is
    recomputed from the product statuses (see order_status_service).
"""

from __future__ import annotations

from enum import Enum


class InventoryStatus(str, Enum):
    INCOMING = "incoming"
    IN_STOCK = "in_stock"
    ARCHIVED = "archived"


class TransactionType(str, Enum):
    PICKUP = "pickup"
    RESTOCK = "restock"
    ADJUSTMENT = "adjustment"
    MANUAL = "manual"

    @property
    def sign(self) -> int:
        # Only restock adds stock; every other entry removes it.
        return 1 if self is TransactionType.RESTOCK else -1


class ProductStatus(str, Enum):
    DRAFT = "draft"
    PENDING = "pending"
    PENDING_ADMIN = "pending_admin"
    SENT_TO_MANUFACTURER = "sent_to_manufacturer"
    SUBMITTED_TO_MANUFACTURER = "submitted_to_manufacturer"
    SAMPLE_REQUESTED = "sample_requested"
    IN_PRODUCTION = "in_production"
    SAMPLE_IN_PRODUCTION = "sample_in_production"
    APPROVED_FOR_PRODUCTION = "approved_for_production"
    PENDING_CLIENT_APPROVAL = "pending_client_approval"
    CLIENT_APPROVED = "client_approved"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    COMPLETED = "completed"


class OrderStatus(str, Enum):
    IN_PROGRESS = "in_progress"
    SENT_TO_MANUFACTURER = "sent_to_manufacturer"
    SUBMITTED_TO_MANUFACTURER = "submitted_to_manufacturer"
    IN_PRODUCTION = "in_production"
    COMPLETED = "completed"


# Earliest workflow stage first. Statuses sharing a tier share a rank.
PRODUCT_STATUS_PRECEDENCE: list[tuple[ProductStatus, ...]] = [
    (ProductStatus.DRAFT,),
    (ProductStatus.PENDING,),
    (ProductStatus.PENDING_ADMIN,),
    (ProductStatus.SENT_TO_MANUFACTURER, ProductStatus.SUBMITTED_TO_MANUFACTURER),
    (ProductStatus.SAMPLE_REQUESTED,),
    (ProductStatus.IN_PRODUCTION, ProductStatus.SAMPLE_IN_PRODUCTION),
    (ProductStatus.APPROVED_FOR_PRODUCTION,),
    (ProductStatus.PENDING_CLIENT_APPROVAL,),
    (ProductStatus.CLIENT_APPROVED,),
    (ProductStatus.SHIPPED,),
    (ProductStatus.DELIVERED,),
    (ProductStatus.COMPLETED,),
]

PRODUCT_STATUS_RANK: dict[str, int] = {
    status.value: rank
    for rank, tier in enumerate(PRODUCT_STATUS_PRECEDENCE)
    for status in tier
}

# Unrecognized product statuses sit at the in-production tier.
UNKNOWN_STATUS_RANK = PRODUCT_STATUS_RANK[ProductStatus.IN_PRODUCTION.value]

PRODUCT_TO_ORDER_STATUS: dict[ProductStatus, OrderStatus] = {
    ProductStatus.PENDING: OrderStatus.IN_PROGRESS,
    ProductStatus.PENDING_ADMIN: OrderStatus.IN_PROGRESS,
    ProductStatus.SENT_TO_MANUFACTURER: OrderStatus.SENT_TO_MANUFACTURER,
    ProductStatus.SUBMITTED_TO_MANUFACTURER: OrderStatus.SUBMITTED_TO_MANUFACTURER,
    ProductStatus.SAMPLE_REQUESTED: OrderStatus.IN_PROGRESS,
    ProductStatus.IN_PRODUCTION: OrderStatus.IN_PRODUCTION,
    ProductStatus.SAMPLE_IN_PRODUCTION: OrderStatus.IN_PRODUCTION,
    ProductStatus.APPROVED_FOR_PRODUCTION: OrderStatus.IN_PRODUCTION,
    ProductStatus.PENDING_CLIENT_APPROVAL: OrderStatus.IN_PROGRESS,
    ProductStatus.CLIENT_APPROVED: OrderStatus.IN_PROGRESS,
    ProductStatus.SHIPPED: OrderStatus.IN_PROGRESS,
    ProductStatus.DELIVERED: OrderStatus.COMPLETED,
    ProductStatus.COMPLETED: OrderStatus.COMPLETED,
}

TERMINAL_PRODUCT_STATUSES = frozenset({ProductStatus.DELIVERED.value, ProductStatus.COMPLETED.value})

# Order products in these statuses surface as virtual incoming records.
INCOMING_PRODUCT_STATUSES = (
    ProductStatus.IN_PRODUCTION.value,
    ProductStatus.SAMPLE_IN_PRODUCTION.value,
    ProductStatus.SHIPPED.value,
)


def product_status_rank(status: str | None) -> int:
    if status is None:
        return UNKNOWN_STATUS_RANK
    return PRODUCT_STATUS_RANK.get(str(getattr(status, "value", status)), UNKNOWN_STATUS_RANK)
