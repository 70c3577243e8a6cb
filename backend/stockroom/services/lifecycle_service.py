# Overview: Service-layer operations for the inventory record lifecycle; encapsulates business logic and database work.

"""
Inventory Record Lifecycle Service

================================================================================
PURPOSE: Enforce incoming -> in_stock -> archived for inventory records
================================================================================

STATE MACHINE:
    INCOMING -> IN_STOCK -> ARCHIVED
                    ^           |
                    +-----------+   (unarchive, to correct an erroneous archive)

    INCOMING: virtual or persisted, goods not yet confirmed in the warehouse
    IN_STOCK: received and placed on a rack
    ARCHIVED: picked up and gone

RULES:
1. Receive is the only way out of INCOMING, and the only way a virtual record
   becomes persisted.
2. Full pickup requires the name of whoever picked up; quantities stay as they
   were (they describe what left).
3. Partial pickup forks the record (see pickup_service).
4. Delete is allowed from any state and never touches order statuses.
5. Each operation is one DB transaction. Side effects that cannot be rolled
   back by the database are ordered around it:
     - media files are uploaded inside the operation and discarded again if
       it fails;
     - arrival notifications go out only after the commit, best-effort.
6. The order status rollup triggered by a receive runs in a SAVEPOINT; if it
   fails the receive still commits and the next recomputation repairs it.

================================================================================
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Mapping, Union

from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..extensions import db, get_notification_service
from ..models import InventoryRecord, InventoryItem, OrderProduct, Order, OrderItem
from ..statuses import InventoryStatus, ProductStatus, OrderStatus
from ..errors import ValidationError, NotFoundError, ConstraintError
from ..actor import Actor, require_actor
from stockroom.time_utils import utcnow
from .concurrency import get_locked, run_with_retry
from .audit_service import Timer, log_inventory_action
from .incoming_service import VirtualIncoming, has_inventory_record
from .media_service import MediaFile, MediaUploadResult, upload_media, discard_files, validate_files
from .notification_service import admin_recipients
from .order_status_service import recalculate_order_status_safely


ALLOWED_TRANSITIONS = {
    (InventoryStatus.INCOMING, InventoryStatus.IN_STOCK),   # receive
    (InventoryStatus.IN_STOCK, InventoryStatus.ARCHIVED),   # full or partial pickup
    (InventoryStatus.ARCHIVED, InventoryStatus.IN_STOCK),   # unarchive
}

ReceiveTarget = Union[int, VirtualIncoming]


def parse_status(value) -> InventoryStatus:
    try:
        return InventoryStatus(getattr(value, "value", value))
    except ValueError:
        allowed = ", ".join(s.value for s in InventoryStatus)
        raise ValidationError(f"Invalid status '{value}'. Must be one of: {allowed}", field="status")


def can_transition(from_status, to_status) -> bool:
    return (parse_status(from_status), parse_status(to_status)) in ALLOWED_TRANSITIONS


def ensure_transition(record: InventoryRecord, to_status: InventoryStatus) -> None:
    if not can_transition(record.status, to_status):
        raise ValidationError(
            f"Cannot move inventory record {record.id} from '{record.status}' to '{to_status.value}'",
            field="status",
        )


def require_picked_up_by(picked_up_by: str | None) -> str:
    name = (picked_up_by or "").strip()
    if not name:
        raise ValidationError("Please enter who picked up the items", field="picked_up_by")
    return name


@dataclass
class ReceiveResult:
    record: InventoryRecord
    media: MediaUploadResult
    order_status: OrderStatus | None = None


def _materialize_virtual(target: VirtualIncoming) -> InventoryRecord:
    """
    Persist a virtual incoming record from the current order product state.

    The product row is locked and its inventory_id is claimed in the same
    flush, so a second receive of the same product either waits on the lock
    or fails the version check and retries into the ConstraintError.
    """
    product = get_locked(OrderProduct, target.order_product_id, label="Order product")
    if product.deleted_at is not None:
        raise NotFoundError(f"Order product {target.order_product_id} not found")
    if product.inventory_id is not None or has_inventory_record(product.id):
        raise ConstraintError(f"Order product {product.id} already has an inventory record")

    order = db.session.get(Order, product.order_id)
    record = InventoryRecord(
        order_product_id=product.id,
        order_id=product.order_id,
        client_id=order.client_id if order else None,
        product_order_number=product.product_order_number,
        product_name=product.product_name or product.product_order_number or target.product_name,
        order_number=order.order_number if order else None,
        client_name=order.client_name if order else None,
        status=InventoryStatus.INCOMING.value,
    )
    for oi in OrderItem.query.filter_by(order_product_id=product.id).order_by(OrderItem.id).all():
        record.items.append(InventoryItem(
            order_item_id=oi.id,
            variant_combo=oi.variant_combo or "Default",
            expected_quantity=oi.quantity or 0,
            verified=False,
        ))
    db.session.add(record)
    db.session.flush()
    product.inventory_id = record.id
    db.session.flush()
    return record


def _apply_verification(
    record: InventoryRecord,
    verified_items: Mapping[int, bool] | None,
    *,
    key_of,
    actor: Actor,
    now,
) -> int:
    """Set verified flags per item. Returns the verified count."""
    flags = dict(verified_items or {})
    known = {key_of(item) for item in record.items}
    unknown = [k for k in flags if k not in known]
    if unknown:
        raise ValidationError(f"Unknown inventory items: {sorted(unknown)}", field="verified_items")

    verified_count = 0
    for item in record.items:
        verified = bool(flags.get(key_of(item), False))
        item.verified = verified
        item.verified_at = now if verified else None
        item.verified_by = actor.id if verified else None
        verified_count += int(verified)
    return verified_count


def _mark_order_product_delivered(record: InventoryRecord) -> OrderStatus | None:
    if record.order_product_id is None:
        return None
    product = db.session.get(OrderProduct, record.order_product_id)
    if product is None:
        current_app.logger.warning(
            "Inventory %s references missing order product %s", record.id, record.order_product_id
        )
        return None

    product.product_status = ProductStatus.DELIVERED.value
    product.inventory_status = "received"
    product.inventory_id = record.id
    db.session.flush()
    return recalculate_order_status_safely(product.order_id)


def receive_inventory(
    target: ReceiveTarget,
    *,
    rack_location: str | None = None,
    verified_items: Mapping[int, bool] | None = None,
    photos: Iterable[MediaFile] | None = None,
    actor: Actor,
) -> ReceiveResult:
    """
    Mark goods as received (INCOMING -> IN_STOCK).

    Args:
        target: persisted record id, or a VirtualIncoming to persist
        rack_location: where the goods were put (may be empty)
        verified_items: {item id: verified} for persisted records,
            {order item id: verified} for virtual ones; missing items are
            recorded as not verified
        photos: evidence to attach; failures are reported, not raised
        actor: who received the goods

    Returns:
        ReceiveResult with the record, media outcome and new order status

    Raises:
        ValidationError: record not incoming, unknown items, too many photos
        NotFoundError: record or order product does not exist
        ConstraintError: virtual target already has an inventory record
    """
    actor = require_actor(actor)
    photos = list(photos or [])
    validate_files(photos)
    is_virtual = isinstance(target, VirtualIncoming)
    timer = Timer()
    uploaded_urls: list[str] = []

    def _op():
        discard_files(uploaded_urls)
        uploaded_urls.clear()

        if is_virtual:
            record = _materialize_virtual(target)
            key_of = lambda item: item.order_item_id  # noqa: E731
        else:
            record = get_locked(InventoryRecord, target, label="Inventory record")
            key_of = lambda item: item.id  # noqa: E731

        ensure_transition(record, InventoryStatus.IN_STOCK)

        now = utcnow()
        record.status = InventoryStatus.IN_STOCK.value
        record.received_at = now
        record.received_by = actor.id
        record.rack_location = (rack_location or "").strip() or None
        verified_count = _apply_verification(record, verified_items, key_of=key_of, actor=actor, now=now)
        db.session.flush()

        media = upload_media(record, photos, actor=actor, uploaded_urls=uploaded_urls)
        order_status = _mark_order_product_delivered(record)

        log_inventory_action(
            action="inventory_received",
            actor=actor,
            inventory_id=record.id,
            duration_ms=timer.elapsed(),
            details={
                "product_name": record.product_name,
                "order_number": record.order_number,
                "rack_location": record.rack_location,
                "items_verified": verified_count,
                "total_items": len(record.items),
                "photos_added": media.uploaded_count,
                "photos_failed": media.failed_count,
                "was_virtual": is_virtual,
                "order_status": order_status.value if order_status else None,
            },
        )

        db.session.commit()
        return ReceiveResult(record=record, media=media, order_status=order_status)

    try:
        result = run_with_retry(_op)
    except Exception:
        discard_files(uploaded_urls)
        raise

    fan_out_arrival(result.record, actor)
    return result


def fan_out_arrival(record: InventoryRecord, actor: Actor) -> None:
    """Best-effort "goods arrived" fan-out to admin-class users; never raises."""
    try:
        recipients = admin_recipients()
        get_notification_service().fan_out_arrival(
            record, recipients, received_by_name=actor.display_name
        )
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Arrival notification fan-out failed for inventory %s", record.id)


def apply_archive(record: InventoryRecord, *, picked_up_by: str, actor: Actor) -> None:
    """Stamp archive fields (no commit)."""
    ensure_transition(record, InventoryStatus.ARCHIVED)
    record.status = InventoryStatus.ARCHIVED.value
    record.archived_at = utcnow()
    record.archived_by = actor.id
    record.picked_up_by = picked_up_by


def archive_record(record: InventoryRecord, *, picked_up_by: str, actor: Actor, timer: Timer) -> None:
    """Full pickup of a locked record plus its audit event (no commit)."""
    apply_archive(record, picked_up_by=picked_up_by, actor=actor)
    log_inventory_action(
        action="inventory_archived",
        actor=actor,
        inventory_id=record.id,
        duration_ms=timer.elapsed(),
        details={
            "product_name": record.product_name,
            "order_number": record.order_number,
            "picked_up_by": picked_up_by,
            "rack_location": record.rack_location,
            "total_quantity": record.total_quantity,
        },
    )


def archive_inventory(record_id: int, *, picked_up_by: str, actor: Actor) -> InventoryRecord:
    """
    Full pickup (IN_STOCK -> ARCHIVED). Quantities are left as they are.

    Raises:
        ValidationError: missing picked_up_by, or record not in stock
        NotFoundError: record does not exist
    """
    actor = require_actor(actor)
    name = require_picked_up_by(picked_up_by)
    timer = Timer()

    def _op():
        record = get_locked(InventoryRecord, record_id, label="Inventory record")
        archive_record(record, picked_up_by=name, actor=actor, timer=timer)
        db.session.commit()
        return record

    return run_with_retry(_op)


def unarchive_inventory(record_id: int, *, actor: Actor) -> InventoryRecord:
    """
    ARCHIVED -> IN_STOCK, clearing archive fields. No quantity change.

    Raises:
        ValidationError: record is not archived
        NotFoundError: record does not exist
    """
    actor = require_actor(actor)
    timer = Timer()

    def _op():
        record = get_locked(InventoryRecord, record_id, label="Inventory record")
        apply_unarchive(record)
        log_inventory_action(
            action="inventory_unarchived",
            actor=actor,
            inventory_id=record.id,
            duration_ms=timer.elapsed(),
            details={
                "product_name": record.product_name,
                "order_number": record.order_number,
                "rack_location": record.rack_location,
            },
        )
        db.session.commit()
        return record

    return run_with_retry(_op)


def apply_unarchive(record: InventoryRecord) -> None:
    ensure_transition(record, InventoryStatus.IN_STOCK)
    if record.received_at is None:
        # Records only reach ARCHIVED from IN_STOCK, so this means corrupt data
        raise ConstraintError(f"Inventory record {record.id} has no receipt timestamp")
    record.status = InventoryStatus.IN_STOCK.value
    record.archived_at = None
    record.archived_by = None
    record.picked_up_by = None


def delete_inventory(record_id: int, *, actor: Actor, detach_order_product: bool = False) -> None:
    """
    Delete a record with its items, their transactions and its media.

    Order statuses are not recomputed. An order product that still points at
    this record (inventory_id) blocks the delete unless detach_order_product
    is set, which clears only that product's linkage fields.

    Raises:
        NotFoundError: record does not exist
        ConstraintError: record still linked to an order product
    """
    actor = require_actor(actor)
    timer = Timer()

    def _op():
        record = get_locked(InventoryRecord, record_id, label="Inventory record")

        linked = OrderProduct.query.filter_by(inventory_id=record.id).all()
        if linked and not detach_order_product:
            raise ConstraintError(
                f"Inventory record {record.id} is still linked to order product "
                f"{', '.join(str(p.id) for p in linked)}"
            )
        for product in linked:
            product.inventory_id = None
            product.inventory_status = None

        media_urls = [m.file_url for m in record.media]
        details = {
            "product_name": record.product_name,
            "order_number": record.order_number,
            "product_order_number": record.product_order_number,
            "client_name": record.client_name,
            "status": record.status,
            "item_count": len(record.items),
            "media_count": len(media_urls),
            "total_quantity": record.total_quantity,
            "detached_order_products": [p.id for p in linked],
        }

        db.session.delete(record)
        try:
            db.session.flush()
        except IntegrityError as exc:
            raise ConstraintError(f"Inventory record {record_id} is still referenced elsewhere") from exc

        log_inventory_action(
            action="inventory_delete",
            actor=actor,
            inventory_id=record_id,
            duration_ms=timer.elapsed(),
            details=details,
        )
        db.session.commit()
        return media_urls

    media_urls = run_with_retry(_op)
    discard_files(media_urls)
