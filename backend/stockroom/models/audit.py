from __future__ import annotations

from ..extensions import db
from stockroom.time_utils import to_utc_z


class InventoryAuditEvent(db.Model):
    """
    Append-only log of inventory lifecycle actions.

    Complements the per-item transaction ledger: structural changes that are
    not quantity events (receive, archive, partial pickup split, delete) are
    recorded here with their details. Rows are never updated or deleted, and
    inventory_id is kept as a plain integer so history survives deletes.
    """
    __tablename__ = "inventory_audit_events"
    __table_args__ = (
        db.Index("ix_inv_audit_inventory_occurred", "inventory_id", "occurred_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    action = db.Column(db.String(64), nullable=False, index=True)
    inventory_id = db.Column(db.Integer, nullable=True, index=True)

    actor_id = db.Column(db.Integer, nullable=True)
    actor_name = db.Column(db.String(255), nullable=True)

    duration_ms = db.Column(db.Integer, nullable=True)
    details = db.Column(db.JSON, nullable=True)

    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "action": self.action,
            "inventory_id": self.inventory_id,
            "actor_id": self.actor_id,
            "actor_name": self.actor_name,
            "duration_ms": self.duration_ms,
            "details": self.details or {},
            "occurred_at": to_utc_z(self.occurred_at),
        }


class ArrivalNotification(db.Model):
    """
    Per-user "goods arrived" alert written by the arrival fan-out.

    Each admin-class user gets their own row and dismisses it independently.
    """
    __tablename__ = "arrival_notifications"
    __table_args__ = (
        db.Index("ix_arrival_user_dismissed", "user_id", "dismissed"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    inventory_id = db.Column(db.Integer, nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)

    product_name = db.Column(db.String(255), nullable=True)
    order_number = db.Column(db.String(64), nullable=True)
    client_name = db.Column(db.String(255), nullable=True)
    received_at = db.Column(db.DateTime(timezone=True), nullable=True)
    received_by_name = db.Column(db.String(255), nullable=True)
    rack_location = db.Column(db.String(128), nullable=True)
    total_quantity = db.Column(db.Integer, nullable=False, default=0)

    dismissed = db.Column(db.Boolean, nullable=False, default=False)
    dismissed_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "inventory_id": self.inventory_id,
            "user_id": self.user_id,
            "product_name": self.product_name,
            "order_number": self.order_number,
            "client_name": self.client_name,
            "received_at": to_utc_z(self.received_at),
            "received_by_name": self.received_by_name,
            "rack_location": self.rack_location,
            "total_quantity": self.total_quantity,
            "dismissed": self.dismissed,
            "dismissed_at": to_utc_z(self.dismissed_at),
            "created_at": to_utc_z(self.created_at),
        }
