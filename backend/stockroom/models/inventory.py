from __future__ import annotations

from sqlalchemy import event

from ..extensions import db
from ..statuses import InventoryStatus
from stockroom.time_utils import to_utc_z


class InventoryRecord(db.Model):
    """
    One shipped/manufactured product line tracked through the warehouse.

    LIFECYCLE:
    - incoming: not yet confirmed in the warehouse
    - in_stock: received and placed on a rack (received_at is always set)
    - archived: picked up (archived_at and picked_up_by are always set)

    ORDER LINKAGE:
    order_product_id/order_id/client_id point back at the originating order
    line. They are unset for manually created records. A partial pickup copies
    them onto the archived split, so order_product_id is indexed, not unique;
    the "one record per order product" guard lives in the service layer.
    """
    __tablename__ = "inventory"
    __table_args__ = (
        db.Index("ix_inventory_status_created", "status", "created_at"),
        db.CheckConstraint(
            "status IN ('incoming', 'in_stock', 'archived')",
            name="ck_inventory_status",
        ),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    order_product_id = db.Column(db.Integer, db.ForeignKey("order_products.id"), nullable=True, index=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=True, index=True)
    client_id = db.Column(db.Integer, nullable=True, index=True)

    # Denormalized so manual and archived records read without joins
    product_order_number = db.Column(db.String(64), nullable=True)
    product_name = db.Column(db.String(255), nullable=False)
    order_number = db.Column(db.String(64), nullable=True)
    client_name = db.Column(db.String(255), nullable=True)

    status = db.Column(db.String(16), nullable=False, default=InventoryStatus.INCOMING.value, index=True)

    received_at = db.Column(db.DateTime(timezone=True), nullable=True)
    received_by = db.Column(db.Integer, nullable=True)
    rack_location = db.Column(db.String(128), nullable=True)

    archived_at = db.Column(db.DateTime(timezone=True), nullable=True)
    archived_by = db.Column(db.Integer, nullable=True)
    picked_up_by = db.Column(db.String(255), nullable=True)

    notes = db.Column(db.Text, nullable=True)

    # Set on the archived half of a partial pickup
    split_from_id = db.Column(db.Integer, db.ForeignKey("inventory.id", ondelete="SET NULL"), nullable=True, index=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    items = db.relationship(
        "InventoryItem",
        back_populates="record",
        cascade="all, delete-orphan",
        order_by="InventoryItem.id",
    )
    media = db.relationship(
        "InventoryMedia",
        back_populates="record",
        cascade="all, delete-orphan",
        order_by="InventoryMedia.id",
    )

    __mapper_args__ = {"version_id_col": version_id}

    @property
    def total_quantity(self) -> int:
        return sum(item.expected_quantity or 0 for item in self.items)

    def __repr__(self) -> str:
        return f"<InventoryRecord id={self.id} status={self.status!r} product={self.product_name!r}>"

    def to_dict(self, *, include_items: bool = True) -> dict:
        data = {
            "id": self.id,
            "key": str(self.id),
            "is_virtual": False,
            "order_product_id": self.order_product_id,
            "order_id": self.order_id,
            "client_id": self.client_id,
            "product_order_number": self.product_order_number,
            "product_name": self.product_name,
            "order_number": self.order_number,
            "client_name": self.client_name,
            "status": self.status,
            "received_at": to_utc_z(self.received_at),
            "received_by": self.received_by,
            "rack_location": self.rack_location,
            "archived_at": to_utc_z(self.archived_at),
            "archived_by": self.archived_by,
            "picked_up_by": self.picked_up_by,
            "notes": self.notes,
            "split_from_id": self.split_from_id,
            "total_quantity": self.total_quantity,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
        if include_items:
            data["items"] = [item.to_dict() for item in self.items]
            data["media"] = [m.to_dict() for m in self.media]
        return data


class InventoryItem(db.Model):
    """
    One variant (size/color combination) within an InventoryRecord.

    expected_quantity is a projection of the item's transaction ledger: when
    any transaction exists it equals the latest quantity_after. version_id
    makes every projection write a compare-and-swap.
    """
    __tablename__ = "inventory_items"
    __table_args__ = (
        db.CheckConstraint("expected_quantity >= 0", name="ck_inventory_items_qty_nonneg"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    inventory_id = db.Column(db.Integer, db.ForeignKey("inventory.id"), nullable=False, index=True)
    order_item_id = db.Column(db.Integer, db.ForeignKey("order_items.id"), nullable=True, index=True)

    variant_combo = db.Column(db.String(255), nullable=False, default="Default")
    expected_quantity = db.Column(db.Integer, nullable=False, default=0)

    verified = db.Column(db.Boolean, nullable=False, default=False)
    verified_at = db.Column(db.DateTime(timezone=True), nullable=True)
    verified_by = db.Column(db.Integer, nullable=True)

    notes = db.Column(db.Text, nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    record = db.relationship("InventoryRecord", back_populates="items")
    transactions = db.relationship(
        "InventoryTransaction",
        back_populates="item",
        cascade="all, delete-orphan",
        order_by="InventoryTransaction.id",
    )

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<InventoryItem id={self.id} variant={self.variant_combo!r} qty={self.expected_quantity}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "inventory_id": self.inventory_id,
            "order_item_id": self.order_item_id,
            "variant_combo": self.variant_combo,
            "expected_quantity": self.expected_quantity,
            "verified": self.verified,
            "verified_at": to_utc_z(self.verified_at),
            "verified_by": self.verified_by,
            "notes": self.notes,
            "version_id": self.version_id,
        }


class InventoryTransaction(db.Model):
    """
    One quantity-changing event on an InventoryItem.

    APPEND-ONLY: rows are written once and never updated. They disappear only
    together with their owning item when a whole record is deleted.
    """
    __tablename__ = "inventory_transactions"
    __table_args__ = (
        db.CheckConstraint(
            "quantity_after = quantity_before + quantity_change",
            name="ck_invtx_quantity_arithmetic",
        ),
        db.CheckConstraint("quantity_after >= 0", name="ck_invtx_quantity_after_nonneg"),
        db.CheckConstraint(
            "transaction_type IN ('pickup', 'restock', 'adjustment', 'manual')",
            name="ck_invtx_type",
        ),
        db.Index("ix_invtx_item_created", "inventory_item_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    inventory_item_id = db.Column(db.Integer, db.ForeignKey("inventory_items.id"), nullable=False, index=True)

    transaction_type = db.Column(db.String(16), nullable=False, index=True)

    quantity_change = db.Column(db.Integer, nullable=False)
    quantity_before = db.Column(db.Integer, nullable=False)
    quantity_after = db.Column(db.Integer, nullable=False)

    # Counterpart, e.g. the driver who collected the goods
    picked_up_by = db.Column(db.String(255), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    created_by = db.Column(db.Integer, nullable=True)
    created_by_name = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    item = db.relationship("InventoryItem", back_populates="transactions")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "inventory_item_id": self.inventory_item_id,
            "transaction_type": self.transaction_type,
            "quantity_change": self.quantity_change,
            "quantity_before": self.quantity_before,
            "quantity_after": self.quantity_after,
            "picked_up_by": self.picked_up_by,
            "notes": self.notes,
            "created_by": self.created_by,
            "created_by_name": self.created_by_name,
            "created_at": to_utc_z(self.created_at),
        }


@event.listens_for(InventoryTransaction, "before_update")
def _reject_transaction_update(mapper, connection, target):
    raise ValueError(f"InventoryTransaction {target.id} is immutable")


class InventoryMedia(db.Model):
    """Photo or document evidence attached to an InventoryRecord."""
    __tablename__ = "inventory_media"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    inventory_id = db.Column(db.Integer, db.ForeignKey("inventory.id"), nullable=False, index=True)

    file_url = db.Column(db.String(1024), nullable=False)
    file_name = db.Column(db.String(255), nullable=True)
    file_type = db.Column(db.String(16), nullable=False, default="other")  # image, pdf, other

    uploaded_by = db.Column(db.Integer, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    record = db.relationship("InventoryRecord", back_populates="media")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "inventory_id": self.inventory_id,
            "file_url": self.file_url,
            "file_name": self.file_name,
            "file_type": self.file_type,
            "uploaded_by": self.uploaded_by,
            "created_at": to_utc_z(self.created_at),
        }
