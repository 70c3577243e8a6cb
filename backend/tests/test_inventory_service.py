"""
Manual records, edits, listing and incoming derivation.
"""

import random
import re
from datetime import datetime

import pytest

from stockroom.extensions import db
from stockroom.errors import ValidationError, NotFoundError
from stockroom.models import InventoryAuditEvent, OrderProduct
from stockroom.statuses import InventoryStatus
from stockroom.services import inventory_service, incoming_service, lifecycle_service
from stockroom.services.incoming_service import VirtualIncoming
from stockroom.services.inventory_service import VariantInput
from stockroom.time_utils import utcnow


def test_manual_number_format():
    number = inventory_service.generate_manual_number(datetime(2026, 3, 4, 5, 6), rng=random.Random(1))
    assert re.fullmatch(r"MAN-03040506-\d{2}", number)


def test_create_manual_record_defaults(app, actor):
    record, media = inventory_service.create_manual_record(
        product_name="  Tote Bag ",
        variants=[
            VariantInput("Black", 4),
            VariantInput("", 2),
            VariantInput("", 0),
        ],
        rack_location="Z-1",
        actor=actor,
    )

    assert record.status == InventoryStatus.IN_STOCK.value
    assert record.product_name == "Tote Bag"
    assert record.received_at is not None
    assert record.received_by == actor.id
    assert record.order_number == "MANUAL"
    assert record.client_name == "Manual Entry"
    assert re.fullmatch(r"MAN-\d{8}-\d{2}", record.product_order_number)
    assert [(i.variant_combo, i.expected_quantity, i.verified) for i in record.items] == [
        ("Black", 4, True),
        ("Default", 2, True),
    ]
    assert media.uploaded_count == 0
    assert InventoryAuditEvent.query.filter_by(action="inventory_create", inventory_id=record.id).count() == 1


def test_create_manual_record_requires_name(app, actor):
    with pytest.raises(ValidationError) as exc:
        inventory_service.create_manual_record(product_name="  ", actor=actor)
    assert exc.value.field == "product_name"


def test_create_manual_record_rejects_negative_quantity(app, actor):
    with pytest.raises(ValidationError):
        inventory_service.create_manual_record(
            product_name="Cap", variants=[VariantInput("One size", -1)], actor=actor
        )


def test_update_record_fields(make_record, actor):
    record = make_record()
    updated = inventory_service.update_record(
        record.id, changes={"rack_location": " F-3 ", "notes": "top shelf"}, actor=actor
    )
    assert updated.rack_location == "F-3"
    assert updated.notes == "top shelf"
    assert InventoryAuditEvent.query.filter_by(action="inventory_update").count() == 1


def test_update_record_rejects_quantity_fields(make_record, actor):
    record = make_record()
    with pytest.raises(ValidationError) as exc:
        inventory_service.update_record(record.id, changes={"status": "archived"}, actor=actor)
    assert exc.value.field == "status"


@pytest.mark.parametrize("changes,field", [
    ({"product_name": 42}, "product_name"),
    ({"notes": ["a", "b"]}, "notes"),
    ({"client_id": "7"}, "client_id"),
])
def test_update_record_rejects_wrong_field_types(make_record, actor, changes, field):
    record = make_record()
    with pytest.raises(ValidationError) as exc:
        inventory_service.update_record(record.id, changes=changes, actor=actor)
    assert exc.value.field == field


def test_create_manual_record_rejects_non_string_names(app, actor):
    with pytest.raises(ValidationError) as exc:
        inventory_service.create_manual_record(product_name=123, actor=actor)
    assert exc.value.field == "product_name"

    with pytest.raises(ValidationError) as exc:
        inventory_service.create_manual_record(
            product_name="Cap", variants=[VariantInput(5, 2)], actor=actor
        )
    assert exc.value.field == "variants"


def test_update_with_restore_unarchives(make_record, actor):
    record = make_record(status="archived")
    updated = inventory_service.update_record(
        record.id, changes={"notes": "archived by mistake"}, restore=True, actor=actor
    )
    assert updated.status == InventoryStatus.IN_STOCK.value
    assert updated.picked_up_by is None
    assert InventoryAuditEvent.query.filter_by(action="inventory_unarchived").count() == 1


def test_get_record_missing(app):
    with pytest.raises(NotFoundError):
        inventory_service.get_record(77)


def test_list_inventory_filters(make_record):
    make_record(name="Crew Tee")
    make_record(name="Hoodie", status="archived")
    make_record(name="Beanie", status="incoming")

    in_stock, total = inventory_service.list_inventory(status="in_stock")
    assert total == 1
    assert in_stock[0].product_name == "Crew Tee"

    found, total = inventory_service.list_inventory(status="in_stock", search="hood")
    assert total == 1
    assert found[0].product_name == "Hoodie"

    with pytest.raises(ValidationError):
        inventory_service.list_inventory(status="lost")


def test_incoming_lists_persisted_then_virtual(make_product, make_record):
    persisted = make_record(status="incoming", name="Jacket")
    shipped = make_product(status="shipped")
    make_product(status="sample_in_production")
    make_product(status="pending")  # not incoming
    deleted = make_product(status="shipped")
    deleted.deleted_at = utcnow()
    db.session.commit()

    entries = incoming_service.list_incoming()

    assert entries[0].id == persisted.id
    virtual = entries[1:]
    assert len(virtual) == 2
    assert all(isinstance(v, VirtualIncoming) for v in virtual)
    assert f"prod-{shipped.id}" in {v.key for v in virtual}
    assert all(v.to_dict()["id"] is None and v.to_dict()["is_virtual"] for v in virtual)


def test_incoming_filtered_by_client(make_order, make_product):
    make_product(order=make_order(client_id=1))
    other = make_product(order=make_order(client_id=2, client_name="Other Co"))

    entries = incoming_service.list_incoming(client_id=2)
    assert [e.order_product_id for e in entries] == [other.id]


def test_product_with_any_record_is_not_virtual(make_product, make_record):
    product = make_product(status="shipped")
    make_record(status="archived", product=product)
    assert incoming_service.list_virtual_incoming() == []


def test_stats_count_virtual_as_incoming(make_product, make_record, actor):
    make_record(status="incoming")
    make_record(status="in_stock")
    make_record(status="archived")
    product = make_product(status="shipped")

    assert incoming_service.get_inventory_stats() == {
        "incoming": 2,
        "in_stock": 1,
        "archived": 1,
        "virtual_incoming": 1,
    }

    lifecycle_service.receive_inventory(incoming_service.get_virtual_incoming(product.id), actor=actor)
    stats = incoming_service.get_inventory_stats()
    assert stats["incoming"] == 1
    assert stats["in_stock"] == 2
    assert stats["virtual_incoming"] == 0
    assert db.session.get(OrderProduct, product.id).inventory_status == "received"
