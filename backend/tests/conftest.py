"""
Pytest fixtures for stockroom backend tests.

Provides an app on in-memory SQLite, recording fakes for the media store and
notification collaborators, and factories for orders, order products and
inventory records.
"""

import pytest

from stockroom import create_app
from stockroom.actor import Actor
from stockroom.extensions import db
from stockroom.models import (
    Order,
    OrderProduct,
    OrderItem,
    User,
    InventoryRecord,
    InventoryItem,
)
from stockroom.statuses import InventoryStatus
from stockroom.time_utils import utcnow


class RecordingMediaStore:
    """MediaStore fake: remembers uploads/deletes, fails for chosen file names."""

    def __init__(self):
        self.uploaded = []
        self.deleted = []
        self.fail_names = set()

    def upload(self, owner_id, file):
        if file.filename in self.fail_names:
            raise IOError(f"storage rejected {file.filename}")
        url = f"/media/{owner_id}/{len(self.uploaded) + 1}_{file.filename}"
        self.uploaded.append(url)
        return url

    def delete(self, url):
        self.deleted.append(url)

    @property
    def live(self):
        return [u for u in self.uploaded if u not in self.deleted]


class RecordingNotifier:
    """NotificationService fake; set fail=True to simulate a broken backend."""

    def __init__(self):
        self.calls = []
        self.fail = False

    def fan_out_arrival(self, record, recipients, *, received_by_name):
        if self.fail:
            raise RuntimeError("notification backend unavailable")
        self.calls.append({
            "inventory_id": record.id,
            "recipient_ids": [u.id for u in recipients],
            "received_by_name": received_by_name,
        })


@pytest.fixture(scope='function')
def media_store():
    return RecordingMediaStore()


@pytest.fixture(scope='function')
def notifier():
    return RecordingNotifier()


@pytest.fixture(scope='function')
def app(media_store, notifier, tmp_path):
    """Create application for testing."""
    app = create_app(
        {
            'TESTING': True,
            'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
            'SQLALCHEMY_TRACK_MODIFICATIONS': False,
            'MEDIA_ROOT': str(tmp_path / "media"),
            'MEDIA_MAX_FILES': 5,
            'MEDIA_MAX_FILE_SIZE': 64 * 1024,
        },
        media_store=media_store,
        notification_service=notifier,
    )

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    yield db.session
    db.session.rollback()


@pytest.fixture
def actor():
    return Actor(id=7, name="Dock Clerk", role="warehouse")


@pytest.fixture
def actor_headers():
    return {"X-Actor-Id": "7", "X-Actor-Name": "Dock Clerk", "X-Actor-Role": "warehouse"}


@pytest.fixture
def admins(db_session):
    """Two active admin-class users, one inactive admin and one regular user."""
    users = [
        User(name="Admin One", email="admin1@example.com", role="admin", is_active=True),
        User(name="Super Admin", email="super@example.com", role="super_admin", is_active=True),
        User(name="Former Admin", email="former@example.com", role="admin", is_active=False),
        User(name="Picker", email="picker@example.com", role="warehouse", is_active=True),
    ]
    db_session.add_all(users)
    db_session.commit()
    return users


@pytest.fixture
def make_order(db_session):
    counter = {"n": 0}

    def _make(*, client_id=1, client_name="Acme Apparel", status="in_progress"):
        counter["n"] += 1
        order = Order(
            order_number=f"ORD-{1000 + counter['n']}",
            client_id=client_id,
            client_name=client_name,
            status=status,
        )
        db_session.add(order)
        db_session.commit()
        return order

    return _make


@pytest.fixture
def make_product(db_session, make_order):
    """Order product with one OrderItem per (variant, quantity) pair."""
    counter = {"n": 0}

    def _make(*, order=None, status="shipped", variants=(("S", 10), ("M", 20)), name="Crew Tee"):
        order = order or make_order()
        counter["n"] += 1
        product = OrderProduct(
            order_id=order.id,
            product_order_number=f"{order.order_number}-P{counter['n']}",
            product_name=name,
            product_status=status,
        )
        db_session.add(product)
        db_session.flush()
        for variant, qty in variants:
            db_session.add(OrderItem(order_product_id=product.id, variant_combo=variant, quantity=qty))
        db_session.commit()
        return product

    return _make


@pytest.fixture
def make_record(db_session):
    """Persisted inventory record, optionally linked to an order product."""

    def _make(*, status=InventoryStatus.IN_STOCK, variants=(("S", 10), ("M", 20)), product=None,
              name="Crew Tee", rack_location="A-1"):
        status = InventoryStatus(status)
        record = InventoryRecord(
            product_name=product.product_name if product else name,
            status=status.value,
            rack_location=rack_location if status != InventoryStatus.INCOMING else None,
        )
        if product is not None:
            record.order_product_id = product.id
            record.order_id = product.order_id
            record.product_order_number = product.product_order_number
            record.order_number = product.order.order_number
            record.client_id = product.order.client_id
            record.client_name = product.order.client_name
        if status != InventoryStatus.INCOMING:
            record.received_at = utcnow()
            record.received_by = 1
        if status == InventoryStatus.ARCHIVED:
            record.archived_at = utcnow()
            record.archived_by = 1
            record.picked_up_by = "Courier"

        order_items = list(product.items) if product is not None else []
        for idx, (variant, qty) in enumerate(variants):
            record.items.append(InventoryItem(
                variant_combo=variant,
                expected_quantity=qty,
                order_item_id=order_items[idx].id if idx < len(order_items) else None,
            ))
        db_session.add(record)
        db_session.commit()
        return record

    return _make
