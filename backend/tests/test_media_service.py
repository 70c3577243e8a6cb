import io
import os

import pytest
from werkzeug.datastructures import FileStorage

from stockroom.errors import NotFoundError, ValidationError
from stockroom.models import InventoryAuditEvent, InventoryMedia
from stockroom.services import media_service
from stockroom.services.media_service import LocalMediaStore, MediaFile, classify_file_type


def test_local_store_round_trip(tmp_path):
    store = LocalMediaStore(str(tmp_path), "/media/")
    url = store.upload(12, MediaFile(filename="../label photo.jpg", content=b"abc"))

    assert url.startswith("/media/12/")
    assert url.endswith("_label_photo.jpg")
    stored = tmp_path / "12" / url.rsplit("/", 1)[1]
    assert stored.read_bytes() == b"abc"

    store.delete(url)
    assert not os.path.exists(stored)


def test_local_store_refuses_foreign_urls(tmp_path):
    store = LocalMediaStore(str(tmp_path), "/media")
    with pytest.raises(ValueError):
        store.delete("https://cdn.example.com/1/a.jpg")


def test_media_file_from_storage():
    storage = FileStorage(stream=io.BytesIO(b"12345"), filename="slip.pdf", content_type="application/pdf")
    f = MediaFile.from_storage(storage)
    assert (f.filename, f.content_type, f.size) == ("slip.pdf", "application/pdf", 5)


def test_media_file_from_storage_stops_at_size_limit():
    storage = FileStorage(stream=io.BytesIO(b"x" * 50), filename="huge.mov")
    with pytest.raises(ValidationError) as excinfo:
        MediaFile.from_storage(storage, max_size=10)
    assert excinfo.value.field == "photos"
    assert storage.stream.tell() == 11

    at_limit = FileStorage(stream=io.BytesIO(b"x" * 10), filename="ok.mov")
    assert MediaFile.from_storage(at_limit, max_size=10).size == 10


@pytest.mark.parametrize("name,content_type,expected", [
    ("a.JPG", None, "image"),
    ("scan", "image/png", "image"),
    ("slip.pdf", None, "pdf"),
    ("notes.txt", "text/plain", "other"),
])
def test_classify_file_type(name, content_type, expected):
    assert classify_file_type(name, content_type) == expected


def test_attach_media_to_archived_record(make_record, media_store, actor):
    record = make_record(status="archived")
    media_store.fail_names = {"b.jpg"}

    result = media_service.attach_media(
        record.id,
        [MediaFile("a.jpg", b"1"), MediaFile("b.jpg", b"2")],
        actor=actor,
    )

    assert result.uploaded_count == 1
    assert result.failed_count == 1
    assert InventoryMedia.query.filter_by(inventory_id=record.id).count() == 1
    event = InventoryAuditEvent.query.filter_by(action="photo_upload_complete").one()
    assert event.details["failed_count"] == 1


def test_attach_media_all_failed_is_logged_as_failure(make_record, media_store, actor):
    record = make_record()
    media_store.fail_names = {"a.jpg"}
    result = media_service.attach_media(record.id, [MediaFile("a.jpg", b"1")], actor=actor)
    assert result.uploaded_count == 0
    assert InventoryAuditEvent.query.filter_by(action="photo_upload_failed").count() == 1


def test_attach_media_missing_record(app, media_store, actor):
    with pytest.raises(NotFoundError):
        media_service.attach_media(55, [MediaFile("a.jpg", b"1")], actor=actor)
    assert media_store.uploaded == []


def test_oversize_file_rejects_the_whole_batch_before_uploading(app, make_record, media_store, actor):
    record = make_record()
    limit = app.config["MEDIA_MAX_FILE_SIZE"]

    with pytest.raises(ValidationError) as excinfo:
        media_service.attach_media(
            record.id,
            [MediaFile("small.jpg", b"1"), MediaFile("big.jpg", b"x" * (limit + 1))],
            actor=actor,
        )

    assert excinfo.value.field == "photos"
    assert "big.jpg" in str(excinfo.value)
    assert media_store.uploaded == []
    assert InventoryMedia.query.filter_by(inventory_id=record.id).count() == 0
