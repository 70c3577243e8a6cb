from __future__ import annotations

from ..extensions import db
from stockroom.time_utils import to_utc_z


class Order(db.Model):
    """
    Customer order (owned by the order-management side of the system).

    status is DERIVED: it is recomputed from the non-deleted products'
    product_status values by order_status_service and never authored directly.
    """
    __tablename__ = "orders"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    order_number = db.Column(db.String(64), nullable=False, unique=True)
    client_id = db.Column(db.Integer, nullable=True, index=True)
    client_name = db.Column(db.String(255), nullable=True)

    status = db.Column(db.String(32), nullable=False, default="in_progress", index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    products = db.relationship("OrderProduct", back_populates="order", order_by="OrderProduct.id")

    def __repr__(self) -> str:
        return f"<Order id={self.id} number={self.order_number!r} status={self.status!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_number": self.order_number,
            "client_id": self.client_id,
            "client_name": self.client_name,
            "status": self.status,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class OrderProduct(db.Model):
    """
    One product line of an order.

    This core writes product_status and the two inventory-linkage fields
    (inventory_status, inventory_id) when the goods are received.
    Soft-deleted rows (deleted_at set) are ignored by the status rollup.
    """
    __tablename__ = "order_products"
    __table_args__ = (
        db.Index("ix_order_products_order_status", "order_id", "product_status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)

    product_order_number = db.Column(db.String(64), nullable=True)
    product_name = db.Column(db.String(255), nullable=True)
    product_status = db.Column(db.String(32), nullable=False, default="pending", index=True)

    tracking_number = db.Column(db.String(128), nullable=True)
    shipping_carrier = db.Column(db.String(64), nullable=True)

    inventory_status = db.Column(db.String(32), nullable=True)
    # Plain integer; lifecycle_service guards deletes of linked records
    inventory_id = db.Column(db.Integer, nullable=True, index=True)

    deleted_at = db.Column(db.DateTime(timezone=True), nullable=True)

    # Receiving a virtual record claims inventory_id under this version check
    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    order = db.relationship("Order", back_populates="products")
    items = db.relationship("OrderItem", back_populates="order_product", order_by="OrderItem.id")

    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "product_order_number": self.product_order_number,
            "product_name": self.product_name,
            "product_status": self.product_status,
            "tracking_number": self.tracking_number,
            "shipping_carrier": self.shipping_carrier,
            "inventory_status": self.inventory_status,
            "inventory_id": self.inventory_id,
            "deleted_at": to_utc_z(self.deleted_at),
        }


class OrderItem(db.Model):
    """Variant line of an order product (what virtual incoming items are derived from)."""
    __tablename__ = "order_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    order_product_id = db.Column(db.Integer, db.ForeignKey("order_products.id"), nullable=False, index=True)
    variant_combo = db.Column(db.String(255), nullable=True)
    quantity = db.Column(db.Integer, nullable=False, default=0)

    order_product = db.relationship("OrderProduct", back_populates="items")


class User(db.Model):
    """
    Staff directory entry.

    Authentication lives elsewhere; this core only reads users to resolve
    arrival-notification recipients.
    """
    __tablename__ = "users"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    email = db.Column(db.String(255), nullable=True, unique=True)
    role = db.Column(db.String(32), nullable=False, index=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def __repr__(self) -> str:
        return f"<User id={self.id} name={self.name!r} role={self.role!r}>"
