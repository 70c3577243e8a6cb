# backend/stockroom/routes/inventory.py
"""
Inventory record routes.

Lifecycle:
- POST /api/inventory/<id>/receive - INCOMING -> IN_STOCK (persisted record)
- POST /api/inventory/incoming/<order_product_id>/receive - receive a virtual record
- POST /api/inventory/<id>/pickup - full or partial pickup
- POST /api/inventory/<id>/unarchive - ARCHIVED -> IN_STOCK

Quantities:
- POST/GET /api/inventory/items/<item_id>/transactions - ledger append / history

ACTOR: every route requires X-Actor-Name (see decorators.require_actor).
The actor is passed explicitly into the service layer.

Receive and media endpoints accept JSON or multipart/form-data with one or
more "photos" files. Media failures do not fail the request; they are
reported as media_failed_count.
"""

import json

from flask import Blueprint, request, g

from ..errors import StockroomError, ValidationError
from ..decorators import require_actor
from ..services import (
    audit_service,
    incoming_service,
    inventory_service,
    ledger_service,
    lifecycle_service,
    media_service,
    pickup_service,
)
from .responses import (
    error_response,
    unexpected_error,
    request_payload,
    request_photos,
    parse_int,
    parse_bool,
    parse_verified_items,
    media_summary,
)


inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/inventory")


@inventory_bp.get("")
@require_actor
def list_inventory_route():
    """
    List persisted records.

    Query params: status, client_id, search, limit (default 100), offset
    """
    try:
        records, total = inventory_service.list_inventory(
            status=request.args.get("status") or None,
            client_id=parse_int(request.args.get("client_id"), field="client_id"),
            search=request.args.get("search"),
            limit=min(parse_int(request.args.get("limit"), field="limit") or 100, 500),
            offset=parse_int(request.args.get("offset"), field="offset") or 0,
        )
        return {"items": [r.to_dict() for r in records], "count": total}, 200
    except StockroomError as e:
        return error_response(e)
    except Exception:
        return unexpected_error("Failed to list inventory")


@inventory_bp.get("/stats")
@require_actor
def inventory_stats_route():
    try:
        return {"stats": incoming_service.get_inventory_stats()}, 200
    except Exception:
        return unexpected_error("Failed to compute inventory stats")


@inventory_bp.get("/incoming")
@require_actor
def list_incoming_route():
    """Persisted INCOMING records followed by virtual ones."""
    try:
        client_id = parse_int(request.args.get("client_id"), field="client_id")
        entries = incoming_service.list_incoming(client_id=client_id)
        return {"items": [e.to_dict() for e in entries], "count": len(entries)}, 200
    except StockroomError as e:
        return error_response(e)
    except Exception:
        return unexpected_error("Failed to list incoming inventory")


@inventory_bp.post("")
@require_actor
def create_manual_record_route():
    """
    Manually add an IN_STOCK record.

    Body (JSON or multipart):
        product_name (required), product_order_number, order_number,
        client_id, client_name, rack_location, notes,
        variants: [{"variant_combo": "M", "expected_quantity": 3}, ...]
    Multipart sends variants JSON-encoded.
    """
    try:
        payload = request_payload()
        variants = payload.get("variants") or []
        if isinstance(variants, str):
            variants = _decode_json_field(variants, "variants")
        if not isinstance(variants, list):
            raise ValidationError("variants must be a list", field="variants")
        if not all(isinstance(v, dict) for v in variants):
            raise ValidationError("Each variant must be an object", field="variants")

        record, media = inventory_service.create_manual_record(
            product_name=payload.get("product_name"),
            variants=[
                inventory_service.VariantInput(
                    variant_combo=v.get("variant_combo") or "",
                    expected_quantity=parse_int(v.get("expected_quantity"), field="variants") or 0,
                )
                for v in variants
            ],
            product_order_number=payload.get("product_order_number"),
            order_number=payload.get("order_number"),
            client_id=parse_int(payload.get("client_id"), field="client_id"),
            client_name=payload.get("client_name"),
            rack_location=payload.get("rack_location"),
            notes=payload.get("notes"),
            photos=request_photos(),
            actor=g.actor,
        )
        return {"record": record.to_dict(), **media_summary(media)}, 201
    except StockroomError as e:
        return error_response(e)
    except Exception:
        return unexpected_error("Failed to create inventory record")


@inventory_bp.get("/<int:record_id>")
@require_actor
def get_record_route(record_id: int):
    try:
        record = inventory_service.get_record(record_id)
        return {"record": record.to_dict()}, 200
    except StockroomError as e:
        return error_response(e)
    except Exception:
        return unexpected_error("Failed to load inventory record %s", record_id)


@inventory_bp.patch("/<int:record_id>")
@require_actor
def update_record_route(record_id: int):
    """
    Edit descriptive fields. {"restore": true} on an archived record also
    unarchives it.
    """
    try:
        payload = dict(request_payload())
        restore = parse_bool(payload.pop("restore", False))
        if "client_id" in payload:
            payload["client_id"] = parse_int(payload["client_id"], field="client_id")
        record = inventory_service.update_record(record_id, changes=payload, restore=restore, actor=g.actor)
        return {"record": record.to_dict()}, 200
    except StockroomError as e:
        return error_response(e)
    except Exception:
        return unexpected_error("Failed to update inventory record %s", record_id)


@inventory_bp.delete("/<int:record_id>")
@require_actor
def delete_record_route(record_id: int):
    """
    Delete a record. ?detach=true clears the linkage on the order product
    instead of refusing with 409.
    """
    try:
        lifecycle_service.delete_inventory(
            record_id,
            actor=g.actor,
            detach_order_product=parse_bool(request.args.get("detach")),
        )
        return {"deleted": record_id}, 200
    except StockroomError as e:
        return error_response(e)
    except Exception:
        return unexpected_error("Failed to delete inventory record %s", record_id)


@inventory_bp.post("/<int:record_id>/receive")
@require_actor
def receive_record_route(record_id: int):
    """
    Receive a persisted INCOMING record.

    Body: rack_location, verified_items ({item_id: bool} or [item_id, ...]),
    plus optional "photos" files.
    """
    return _receive(record_id)


@inventory_bp.post("/incoming/<int:order_product_id>/receive")
@require_actor
def receive_virtual_route(order_product_id: int):
    """
    Receive a virtual record; verified_items are keyed by order item id.
    """
    try:
        target = incoming_service.get_virtual_incoming(order_product_id)
    except StockroomError as e:
        return error_response(e)
    except Exception:
        return unexpected_error("Failed to load incoming order product %s", order_product_id)
    return _receive(target)


def _receive(target):
    try:
        payload = request_payload()
        result = lifecycle_service.receive_inventory(
            target,
            rack_location=payload.get("rack_location"),
            verified_items=parse_verified_items(payload.get("verified_items")),
            photos=request_photos(),
            actor=g.actor,
        )
        return {
            "record": result.record.to_dict(),
            "order_status": result.order_status.value if result.order_status else None,
            **media_summary(result.media),
        }, 200
    except StockroomError as e:
        return error_response(e)
    except Exception:
        return unexpected_error("Failed to receive inventory")


@inventory_bp.post("/<int:record_id>/pickup")
@require_actor
def pickup_route(record_id: int):
    """
    Body: picked_up_by (required), pickup_quantity (optional; omitted means all).

    Response for a partial pickup includes both records and the split plan.
    """
    try:
        payload = request_payload()
        result = pickup_service.pickup_inventory(
            record_id,
            picked_up_by=payload.get("picked_up_by"),
            pickup_quantity=parse_int(payload.get("pickup_quantity"), field="pickup_quantity"),
            actor=g.actor,
        )
        body = {
            "partial": result.is_partial,
            "archived_record": result.archived_record.to_dict(),
            "remaining_record": result.remaining_record.to_dict() if result.remaining_record else None,
        }
        if result.plan is not None:
            body["drift"] = result.plan.drift
        return body, 200
    except StockroomError as e:
        return error_response(e)
    except Exception:
        return unexpected_error("Failed to pick up inventory record %s", record_id)


@inventory_bp.post("/<int:record_id>/unarchive")
@require_actor
def unarchive_route(record_id: int):
    try:
        record = lifecycle_service.unarchive_inventory(record_id, actor=g.actor)
        return {"record": record.to_dict()}, 200
    except StockroomError as e:
        return error_response(e)
    except Exception:
        return unexpected_error("Failed to unarchive inventory record %s", record_id)


@inventory_bp.post("/<int:record_id>/media")
@require_actor
def attach_media_route(record_id: int):
    try:
        photos = request_photos()
        if not photos:
            raise ValidationError("No files uploaded", field="photos")
        result = media_service.attach_media(record_id, photos, actor=g.actor)
        return media_summary(result), 201 if result.uploaded_count else 200
    except StockroomError as e:
        return error_response(e)
    except Exception:
        return unexpected_error("Failed to attach media to inventory record %s", record_id)


@inventory_bp.post("/items/<int:item_id>/transactions")
@require_actor
def record_transaction_route(item_id: int):
    """
    Body: transaction_type (pickup|restock|adjustment|manual), quantity (> 0),
    picked_up_by (optional counterpart), notes.
    """
    try:
        payload = request_payload()
        tx = ledger_service.record_transaction(
            item_id,
            payload.get("transaction_type"),
            parse_int(payload.get("quantity"), field="quantity", required=True),
            counterpart_name=payload.get("picked_up_by"),
            notes=payload.get("notes"),
            actor=g.actor,
        )
        item = inventory_service.get_item(item_id)
        return {"transaction": tx.to_dict(), "item": item.to_dict()}, 201
    except StockroomError as e:
        return error_response(e)
    except Exception:
        return unexpected_error("Failed to record transaction for item %s", item_id)


@inventory_bp.get("/items/<int:item_id>/transactions")
@require_actor
def transaction_history_route(item_id: int):
    try:
        history = ledger_service.get_history(item_id)
        return {"transactions": [t.to_dict() for t in history], "count": len(history)}, 200
    except StockroomError as e:
        return error_response(e)
    except Exception:
        return unexpected_error("Failed to load history for item %s", item_id)


@inventory_bp.get("/audit")
@require_actor
def audit_events_route():
    try:
        events = audit_service.list_audit_events(
            inventory_id=parse_int(request.args.get("inventory_id"), field="inventory_id"),
            action=request.args.get("action") or None,
            limit=min(parse_int(request.args.get("limit"), field="limit") or 100, 500),
        )
        return {"events": [e.to_dict() for e in events], "count": len(events)}, 200
    except StockroomError as e:
        return error_response(e)
    except Exception:
        return unexpected_error("Failed to load audit events")


def _decode_json_field(value: str, field: str):
    try:
        return json.loads(value)
    except ValueError:
        raise ValidationError(f"{field} must be valid JSON", field=field)
