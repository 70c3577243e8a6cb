# Overview: Service-layer operations for inventory records outside the receive/pickup transitions.

# backend/stockroom/services/inventory_service.py

from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Iterable, Sequence

from sqlalchemy import or_

from ..extensions import db
from ..models import InventoryRecord, InventoryItem
from ..statuses import InventoryStatus
from ..errors import ValidationError, NotFoundError
from ..actor import Actor, require_actor
from stockroom.time_utils import utcnow
from .concurrency import get_locked, run_with_retry
from .audit_service import Timer, log_inventory_action
from .lifecycle_service import apply_unarchive, parse_status
from .media_service import MediaFile, MediaUploadResult, upload_media, discard_files, validate_files

"""
Manual records

Goods that did not come through an order (walk-ins, returns, leftovers) are
entered by hand. They skip INCOMING: a manual record is created IN_STOCK with
received_at set and every variant verified.

Editable fields are descriptive only. Quantities change through the ledger
(ledger_service.record_transaction), never by rewriting items.
"""

MANUAL_ORDER_NUMBER = "MANUAL"
MANUAL_CLIENT_NAME = "Manual Entry"

EDITABLE_FIELDS = (
    "product_order_number",
    "product_name",
    "order_number",
    "client_id",
    "client_name",
    "rack_location",
    "notes",
)


def _check_field_types(changes: dict) -> None:
    for key, value in changes.items():
        if value is None:
            continue
        if key == "client_id":
            if isinstance(value, bool) or not isinstance(value, int):
                raise ValidationError("client_id must be an integer", field="client_id")
        elif not isinstance(value, str):
            raise ValidationError(f"{key} must be a string", field=key)


@dataclass(frozen=True)
class VariantInput:
    variant_combo: str
    expected_quantity: int


def generate_manual_number(now=None, rng: random.Random | None = None) -> str:
    """MAN-MMDDHHMM-NN"""
    now = now or utcnow()
    seq = (rng or random).randrange(100)
    return f"MAN-{now:%m%d%H%M}-{seq:02d}"


def _clean_variants(variants: Iterable[VariantInput]) -> list[VariantInput]:
    """Keep rows with a name or a quantity; unnamed rows become 'Default'."""
    cleaned = []
    for v in variants:
        name = v.variant_combo or ""
        if not isinstance(name, str):
            raise ValidationError("variant_combo must be a string", field="variants")
        name = name.strip()
        qty = v.expected_quantity or 0
        if isinstance(qty, bool) or not isinstance(qty, int):
            raise ValidationError("expected_quantity must be an integer", field="variants")
        if qty < 0:
            raise ValidationError("expected_quantity cannot be negative", field="variants")
        if name or qty > 0:
            cleaned.append(VariantInput(variant_combo=name or "Default", expected_quantity=qty))
    return cleaned


def create_manual_record(
    *,
    product_name: str,
    variants: Sequence[VariantInput] = (),
    product_order_number: str | None = None,
    order_number: str | None = None,
    client_id: int | None = None,
    client_name: str | None = None,
    rack_location: str | None = None,
    notes: str | None = None,
    photos: Iterable[MediaFile] | None = None,
    actor: Actor,
) -> tuple[InventoryRecord, MediaUploadResult]:
    """
    Create an IN_STOCK record that has no originating order line.

    Raises:
        ValidationError: missing product name or bad variant quantities
    """
    actor = require_actor(actor)
    _check_field_types({
        "product_name": product_name,
        "product_order_number": product_order_number,
        "order_number": order_number,
        "client_id": client_id,
        "client_name": client_name,
        "rack_location": rack_location,
        "notes": notes,
    })
    name = (product_name or "").strip()
    if not name:
        raise ValidationError("Product name is required", field="product_name")
    cleaned = _clean_variants(variants)
    photos = list(photos or [])
    validate_files(photos)
    timer = Timer()
    uploaded_urls: list[str] = []

    def _op():
        discard_files(uploaded_urls)
        uploaded_urls.clear()

        now = utcnow()
        record = InventoryRecord(
            product_order_number=(product_order_number or "").strip() or generate_manual_number(now),
            product_name=name,
            order_number=(order_number or "").strip() or MANUAL_ORDER_NUMBER,
            client_id=client_id,
            client_name=client_name or MANUAL_CLIENT_NAME,
            status=InventoryStatus.IN_STOCK.value,
            rack_location=(rack_location or "").strip() or None,
            notes=notes,
            received_at=now,
            received_by=actor.id,
        )
        for v in cleaned:
            record.items.append(InventoryItem(
                variant_combo=v.variant_combo,
                expected_quantity=v.expected_quantity,
                verified=True,
                verified_at=now,
                verified_by=actor.id,
            ))
        db.session.add(record)
        db.session.flush()

        media = upload_media(record, photos, actor=actor, uploaded_urls=uploaded_urls)
        log_inventory_action(
            action="inventory_create",
            actor=actor,
            inventory_id=record.id,
            duration_ms=timer.elapsed(),
            details={
                "product_name": record.product_name,
                "order_number": record.order_number,
                "client_name": record.client_name,
                "rack_location": record.rack_location,
                "variant_count": len(cleaned),
                "total_quantity": sum(v.expected_quantity for v in cleaned),
                "photos_uploaded": media.uploaded_count,
            },
        )
        db.session.commit()
        return record, media

    try:
        return run_with_retry(_op)
    except Exception:
        discard_files(uploaded_urls)
        raise


def update_record(record_id: int, *, changes: dict, restore: bool = False, actor: Actor) -> InventoryRecord:
    """
    Edit descriptive fields of a record.

    restore=True on an archived record also moves it back to IN_STOCK.

    Raises:
        ValidationError: unknown field, empty product name, restore on a
            non-archived record
        NotFoundError: record does not exist
    """
    actor = require_actor(actor)
    unknown = sorted(set(changes) - set(EDITABLE_FIELDS))
    if unknown:
        raise ValidationError(f"Fields not editable: {', '.join(unknown)}", field=unknown[0])
    _check_field_types(changes)
    if "product_name" in changes and not (changes["product_name"] or "").strip():
        raise ValidationError("Product name is required", field="product_name")
    timer = Timer()

    def _op():
        record = get_locked(InventoryRecord, record_id, label="Inventory record")
        was_archived = record.status == InventoryStatus.ARCHIVED.value
        for key, value in changes.items():
            if isinstance(value, str):
                value = value.strip() or None
            setattr(record, key, value)
        if restore:
            apply_unarchive(record)

        log_inventory_action(
            action="inventory_unarchived" if restore and was_archived else "inventory_update",
            actor=actor,
            inventory_id=record.id,
            duration_ms=timer.elapsed(),
            details={"changed_fields": sorted(changes), "restored": bool(restore)},
        )
        db.session.commit()
        return record

    return run_with_retry(_op)


def get_record(record_id: int) -> InventoryRecord:
    record = db.session.get(InventoryRecord, record_id)
    if record is None:
        raise NotFoundError(f"Inventory record {record_id} not found")
    return record


def get_item(item_id: int) -> InventoryItem:
    item = db.session.get(InventoryItem, item_id)
    if item is None:
        raise NotFoundError(f"Inventory item {item_id} not found")
    return item


def list_inventory(
    *,
    status=None,
    client_id: int | None = None,
    search: str | None = None,
    limit: int = 100,
    offset: int = 0,
) -> tuple[list[InventoryRecord], int]:
    """Persisted records, newest first. A search ignores the status filter."""
    q = InventoryRecord.query
    term = (search or "").strip()
    if term:
        like = f"%{term}%"
        q = q.filter(or_(
            InventoryRecord.product_name.ilike(like),
            InventoryRecord.product_order_number.ilike(like),
            InventoryRecord.order_number.ilike(like),
            InventoryRecord.client_name.ilike(like),
            InventoryRecord.rack_location.ilike(like),
        ))
    elif status is not None:
        q = q.filter(InventoryRecord.status == parse_status(status).value)
    if client_id is not None:
        q = q.filter(InventoryRecord.client_id == client_id)

    total = q.count()
    rows = (
        q.order_by(InventoryRecord.created_at.desc(), InventoryRecord.id.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )
    return rows, total
