"""
Inventory lifecycle: transitions, receive side effects, archive/unarchive, delete.
"""

import pytest
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from stockroom.extensions import db
from stockroom.errors import ValidationError, NotFoundError, ConstraintError
from stockroom.models import (
    InventoryRecord,
    InventoryItem,
    InventoryTransaction,
    InventoryMedia,
    InventoryAuditEvent,
    Order,
    OrderProduct,
)
from stockroom.statuses import InventoryStatus, OrderStatus
from stockroom.services import incoming_service, lifecycle_service, ledger_service, order_status_service
from stockroom.services.media_service import MediaFile


def _photo(name):
    return MediaFile(filename=name, content=b"\xff\xd8\xff", content_type="image/jpeg")


@pytest.mark.parametrize("from_status,to_status,allowed", [
    ("incoming", "in_stock", True),
    ("in_stock", "archived", True),
    ("archived", "in_stock", True),
    ("incoming", "archived", False),
    ("in_stock", "incoming", False),
    ("archived", "incoming", False),
    ("in_stock", "in_stock", False),
])
def test_transition_table(from_status, to_status, allowed):
    assert lifecycle_service.can_transition(from_status, to_status) is allowed


def test_unknown_status_is_a_validation_error():
    with pytest.raises(ValidationError):
        lifecycle_service.parse_status("lost")


def test_receive_persisted_record(make_product, make_record, admins, notifier, actor):
    product = make_product(status="shipped")
    record = make_record(status="incoming", product=product)
    first, second = record.items

    result = lifecycle_service.receive_inventory(
        record.id,
        rack_location="  C-2 ",
        verified_items={first.id: True, second.id: False},
        actor=actor,
    )

    rec = result.record
    assert rec.status == InventoryStatus.IN_STOCK.value
    assert rec.received_at is not None
    assert rec.received_by == actor.id
    assert rec.rack_location == "C-2"
    assert [i.verified for i in rec.items] == [True, False]
    assert rec.items[0].verified_by == actor.id
    assert rec.items[1].verified_at is None

    op = db.session.get(OrderProduct, product.id)
    assert op.product_status == "delivered"
    assert op.inventory_status == "received"
    assert op.inventory_id == rec.id
    assert result.order_status == OrderStatus.COMPLETED
    assert db.session.get(Order, product.order_id).status == "completed"

    assert notifier.calls == [{
        "inventory_id": rec.id,
        "recipient_ids": [admins[0].id, admins[1].id],
        "received_by_name": "Dock Clerk",
    }]
    event = InventoryAuditEvent.query.filter_by(action="inventory_received").one()
    assert event.details["items_verified"] == 1
    assert event.details["was_virtual"] is False


def test_receive_virtual_record_persists_it(make_product, actor):
    product = make_product(status="shipped")
    virtual = incoming_service.get_virtual_incoming(product.id)
    assert virtual.key == f"prod-{product.id}"
    assert [i.expected_quantity for i in virtual.items] == [10, 20]

    result = lifecycle_service.receive_inventory(
        virtual,
        rack_location="D-1",
        verified_items={virtual.items[0].order_item_id: True},
        actor=actor,
    )

    rec = result.record
    assert rec.id is not None
    assert rec.order_product_id == product.id
    assert rec.status == InventoryStatus.IN_STOCK.value
    assert [(i.variant_combo, i.expected_quantity, i.verified) for i in rec.items] == [
        ("S", 10, True),
        ("M", 20, False),
    ]
    assert incoming_service.list_virtual_incoming() == []
    with pytest.raises(ConstraintError):
        incoming_service.get_virtual_incoming(product.id)


def test_receiving_same_virtual_twice_is_a_conflict(make_product, actor):
    product = make_product(status="in_production")
    virtual = incoming_service.get_virtual_incoming(product.id)
    lifecycle_service.receive_inventory(virtual, actor=actor)

    with pytest.raises(ConstraintError):
        lifecycle_service.receive_inventory(virtual, actor=actor)
    assert InventoryRecord.query.filter_by(order_product_id=product.id).count() == 1


def test_racing_receives_of_one_product_persist_one_record(make_product, actor, monkeypatch):
    # Both requests got past the existence lookup before either committed
    product = make_product(status="shipped")
    virtual = incoming_service.get_virtual_incoming(product.id)
    monkeypatch.setattr(lifecycle_service, "has_inventory_record", lambda _pid: False)

    first = lifecycle_service.receive_inventory(virtual, actor=actor)
    with pytest.raises(ConstraintError):
        lifecycle_service.receive_inventory(virtual, actor=actor)

    assert InventoryRecord.query.filter_by(order_product_id=product.id).count() == 1
    assert db.session.get(OrderProduct, product.id).inventory_id == first.record.id


def test_concurrent_claim_of_order_product_is_retried(make_product, actor, monkeypatch):
    product = make_product(status="shipped")
    virtual = incoming_service.get_virtual_incoming(product.id)
    lookups = []

    def lookup_while_another_writer_commits(order_product_id):
        lookups.append(order_product_id)
        if len(lookups) == 1:
            db.session.execute(
                text("UPDATE order_products SET version_id = version_id + 1 WHERE id = :id"),
                {"id": order_product_id},
            )
        return False

    monkeypatch.setattr(lifecycle_service, "has_inventory_record", lookup_while_another_writer_commits)
    monkeypatch.setattr("stockroom.services.concurrency.time.sleep", lambda _s: None)

    result = lifecycle_service.receive_inventory(virtual, actor=actor)

    assert len(lookups) == 2
    assert InventoryRecord.query.filter_by(order_product_id=product.id).count() == 1
    assert db.session.get(OrderProduct, product.id).inventory_id == result.record.id


def test_receive_rejects_unknown_items(make_record, actor):
    record = make_record(status="incoming")
    with pytest.raises(ValidationError) as exc:
        lifecycle_service.receive_inventory(record.id, verified_items={9999: True}, actor=actor)
    assert exc.value.field == "verified_items"
    db.session.expire_all()
    assert db.session.get(InventoryRecord, record.id).status == InventoryStatus.INCOMING.value


def test_receive_twice_is_rejected(make_record, actor):
    record = make_record(status="in_stock")
    with pytest.raises(ValidationError):
        lifecycle_service.receive_inventory(record.id, actor=actor)


def test_receive_missing_record(app, actor):
    with pytest.raises(NotFoundError):
        lifecycle_service.receive_inventory(4040, actor=actor)


def test_notification_failure_does_not_undo_receive(make_record, admins, notifier, actor):
    notifier.fail = True
    record = make_record(status="incoming")

    result = lifecycle_service.receive_inventory(record.id, rack_location="A-9", actor=actor)

    db.session.expire_all()
    assert db.session.get(InventoryRecord, result.record.id).status == InventoryStatus.IN_STOCK.value
    assert notifier.calls == []


def test_media_partial_failure_is_reported(make_record, media_store, actor):
    media_store.fail_names = {"blurry.jpg"}
    record = make_record(status="incoming")

    result = lifecycle_service.receive_inventory(
        record.id, photos=[_photo("label.jpg"), _photo("blurry.jpg")], actor=actor
    )

    assert result.media.uploaded_count == 1
    assert result.media.failed_count == 1
    assert result.media.failure.failed_names == ["blurry.jpg"]
    assert result.media.failure.message == "1 of 2 files failed to upload"
    assert InventoryMedia.query.count() == 1
    assert InventoryMedia.query.one().file_type == "image"
    assert result.record.status == InventoryStatus.IN_STOCK.value


def test_failed_receive_discards_uploaded_files(make_record, media_store, actor, monkeypatch):
    record = make_record(status="incoming")

    def broken_log(**kwargs):
        raise RuntimeError("audit table unavailable")

    monkeypatch.setattr(lifecycle_service, "log_inventory_action", broken_log)

    with pytest.raises(RuntimeError):
        lifecycle_service.receive_inventory(record.id, photos=[_photo("label.jpg")], actor=actor)

    assert media_store.uploaded
    assert media_store.live == []
    db.session.expire_all()
    assert db.session.get(InventoryRecord, record.id).status == InventoryStatus.INCOMING.value
    assert InventoryMedia.query.count() == 0


def test_too_many_photos_rejected_before_anything_happens(make_record, media_store, actor):
    record = make_record(status="incoming")
    with pytest.raises(ValidationError) as exc:
        lifecycle_service.receive_inventory(
            record.id, photos=[_photo(f"{n}.jpg") for n in range(6)], actor=actor
        )
    assert exc.value.field == "photos"
    assert media_store.uploaded == []


def test_rollup_failure_during_receive_is_swallowed(make_product, make_record, actor, monkeypatch):
    product = make_product(status="shipped")
    record = make_record(status="incoming", product=product)

    def broken(order_id):
        raise SQLAlchemyError("lock timeout")

    monkeypatch.setattr(order_status_service, "recalculate_order_status", broken)
    result = lifecycle_service.receive_inventory(record.id, actor=actor)

    assert result.order_status is None
    assert result.record.status == InventoryStatus.IN_STOCK.value
    assert db.session.get(OrderProduct, product.id).product_status == "delivered"
    assert db.session.get(Order, product.order_id).status == "in_progress"

    # Next recomputation repairs the stale order status
    monkeypatch.undo()
    assert order_status_service.recalculate_order_status(product.order_id) == OrderStatus.COMPLETED


def test_archive_requires_picked_up_by(make_record, actor):
    record = make_record()
    with pytest.raises(ValidationError) as exc:
        lifecycle_service.archive_inventory(record.id, picked_up_by="", actor=actor)
    assert exc.value.field == "picked_up_by"


def test_archive_then_unarchive(make_record, actor):
    record = make_record()

    archived = lifecycle_service.archive_inventory(record.id, picked_up_by=" Client Rep ", actor=actor)
    assert archived.status == InventoryStatus.ARCHIVED.value
    assert archived.picked_up_by == "Client Rep"
    assert archived.archived_at is not None
    assert [i.expected_quantity for i in archived.items] == [10, 20]

    restored = lifecycle_service.unarchive_inventory(record.id, actor=actor)
    assert restored.status == InventoryStatus.IN_STOCK.value
    assert restored.archived_at is None
    assert restored.archived_by is None
    assert restored.picked_up_by is None
    assert restored.received_at is not None


def test_unarchive_requires_archived_record(make_record, actor):
    record = make_record()
    with pytest.raises(ValidationError):
        lifecycle_service.unarchive_inventory(record.id, actor=actor)


def test_delete_cascades_and_discards_media(make_record, media_store, actor):
    record = make_record(status="incoming")
    lifecycle_service.receive_inventory(record.id, photos=[_photo("label.jpg")], actor=actor)
    ledger_service.record_transaction(record.items[0].id, "pickup", 2, actor=actor)

    lifecycle_service.delete_inventory(record.id, actor=actor)

    assert db.session.get(InventoryRecord, record.id) is None
    assert InventoryItem.query.count() == 0
    assert InventoryTransaction.query.count() == 0
    assert InventoryMedia.query.count() == 0
    assert media_store.live == []
    event = InventoryAuditEvent.query.filter_by(action="inventory_delete").one()
    assert event.inventory_id == record.id


def test_delete_linked_record_requires_detach(make_product, actor):
    product = make_product(status="shipped")
    received = lifecycle_service.receive_inventory(incoming_service.get_virtual_incoming(product.id), actor=actor)
    record_id = received.record.id

    with pytest.raises(ConstraintError):
        lifecycle_service.delete_inventory(record_id, actor=actor)
    assert db.session.get(InventoryRecord, record_id) is not None

    lifecycle_service.delete_inventory(record_id, actor=actor, detach_order_product=True)
    op = db.session.get(OrderProduct, product.id)
    assert op.inventory_id is None
    assert op.inventory_status is None
    # Delete never triggers the rollup
    assert op.product_status == "delivered"
    assert db.session.get(Order, product.order_id).status == "completed"


def test_delete_missing_record(app, actor):
    with pytest.raises(NotFoundError):
        lifecycle_service.delete_inventory(31337, actor=actor)
