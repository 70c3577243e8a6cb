# Overview: Media collaborator boundary: MediaStore protocol, filesystem store, partial-failure uploader.

"""
Media Collaborator

The core does not own photo/document storage. It talks to a MediaStore:

    upload(owner_id, file) -> url      (raises on failure)
    delete(url) -> None                (raises on failure)

upload_media() calls the store once per file and tolerates partial failure:
files that fail are counted and reported back as a PartialFailure, the
successful ones become InventoryMedia rows, and the enclosing operation
continues. URLs written during an operation that later rolls back are
removed again with discard_files() (compensating action).
"""

from __future__ import annotations

import os
import uuid
from dataclasses import dataclass, field
from typing import Iterable, Protocol

from flask import current_app
from werkzeug.datastructures import FileStorage
from werkzeug.utils import secure_filename

from ..extensions import db, get_media_store
from ..models import InventoryRecord, InventoryMedia
from ..errors import PartialFailure, ValidationError
from ..actor import Actor
from .concurrency import get_locked, run_with_retry
from .audit_service import Timer, log_inventory_action


IMAGE_EXTENSIONS = (".jpg", ".jpeg", ".png", ".gif", ".webp", ".heic")
DEFAULT_MAX_FILE_SIZE = 1024 * 1024 * 1024


@dataclass(frozen=True)
class MediaFile:
    """An uploaded file held in memory, so a retried operation can re-send it."""
    filename: str
    content: bytes
    content_type: str | None = None

    @classmethod
    def from_storage(cls, storage: FileStorage, *, max_size: int | None = None) -> "MediaFile":
        """Read an upload; at most max_size + 1 bytes are buffered."""
        filename = storage.filename or "upload"
        if max_size is None:
            content = storage.read()
        else:
            content = storage.read(max_size + 1)
            if len(content) > max_size:
                raise file_too_large(filename, max_size)
        return cls(filename=filename, content=content, content_type=storage.mimetype or None)

    @property
    def size(self) -> int:
        return len(self.content)


class MediaStore(Protocol):
    def upload(self, owner_id: int, file: MediaFile) -> str: ...

    def delete(self, url: str) -> None: ...


class LocalMediaStore:
    """Stores files under MEDIA_ROOT/<owner_id>/ and serves them from MEDIA_URL_PREFIX."""

    def __init__(self, root: str, url_prefix: str = "/media"):
        self.root = root
        self.url_prefix = url_prefix.rstrip("/")

    def upload(self, owner_id: int, file: MediaFile) -> str:
        name = f"{uuid.uuid4().hex}_{secure_filename(file.filename) or 'upload'}"
        directory = os.path.join(self.root, str(owner_id))
        os.makedirs(directory, exist_ok=True)
        with open(os.path.join(directory, name), "wb") as fh:
            fh.write(file.content)
        return f"{self.url_prefix}/{owner_id}/{name}"

    def delete(self, url: str) -> None:
        if not url.startswith(self.url_prefix + "/"):
            raise ValueError(f"URL {url!r} is not managed by this store")
        relative = url[len(self.url_prefix) + 1:]
        os.remove(os.path.join(self.root, *relative.split("/")))


def classify_file_type(filename: str | None, content_type: str | None = None) -> str:
    """image, pdf or other."""
    name = (filename or "").lower()
    if (content_type or "").startswith("image") or name.endswith(IMAGE_EXTENSIONS):
        return "image"
    if "pdf" in (content_type or "") or name.endswith(".pdf"):
        return "pdf"
    return "other"


@dataclass
class MediaUploadResult:
    media: list[InventoryMedia] = field(default_factory=list)
    failure: PartialFailure | None = None

    @property
    def uploaded_count(self) -> int:
        return len(self.media)

    @property
    def failed_count(self) -> int:
        return self.failure.failed if self.failure else 0


def max_file_size() -> int:
    return current_app.config.get("MEDIA_MAX_FILE_SIZE", DEFAULT_MAX_FILE_SIZE)


def file_too_large(filename: str, limit: int) -> ValidationError:
    return ValidationError(
        f"File \"{filename}\" is too large. Maximum size is {limit / (1024 * 1024):g}MB",
        field="photos",
    )


def validate_files(files: list) -> None:
    """Count and per-file size limits, checked before anything is uploaded."""
    limit = current_app.config.get("MEDIA_MAX_FILES", 20)
    if len(files) > limit:
        raise ValidationError(f"At most {limit} files may be attached at once", field="photos")
    size_limit = max_file_size()
    for f in files:
        if f.size > size_limit:
            raise file_too_large(f.filename, size_limit)


def upload_media(
    record: InventoryRecord,
    files: Iterable[MediaFile],
    *,
    actor: Actor,
    uploaded_urls: list[str] | None = None,
) -> MediaUploadResult:
    """
    Upload files for a persisted record and stage InventoryMedia rows.

    Does not commit. Each successful URL is appended to uploaded_urls so the
    caller can discard the files if its transaction fails.
    """
    files = list(files)
    result = MediaUploadResult()
    if not files:
        return result

    store = get_media_store()
    failed_names = []
    for f in files:
        try:
            url = store.upload(record.id, f)
        except Exception as exc:
            current_app.logger.warning(
                "Media upload failed for inventory %s file %r: %s", record.id, f.filename, exc
            )
            failed_names.append(f.filename)
            continue
        if uploaded_urls is not None:
            uploaded_urls.append(url)
        m = InventoryMedia(
            file_url=url,
            file_name=f.filename,
            file_type=classify_file_type(f.filename, f.content_type),
            uploaded_by=actor.id,
        )
        record.media.append(m)
        result.media.append(m)

    db.session.flush()
    if failed_names:
        result.failure = PartialFailure(failed=len(failed_names), total=len(files), failed_names=failed_names)
    return result


def discard_files(urls: Iterable[str]) -> int:
    """Best-effort delete of stored files. Returns how many could not be removed."""
    store = get_media_store()
    failures = 0
    for url in urls:
        try:
            store.delete(url)
        except Exception as exc:
            failures += 1
            current_app.logger.warning("Could not delete media %s: %s", url, exc)
    return failures


def attach_media(record_id: int, files: Iterable[MediaFile], *, actor: Actor) -> MediaUploadResult:
    """
    Attach photos/documents to an existing record in any state.

    Raises:
        NotFoundError: record does not exist
        ValidationError: too many files
    """
    files = list(files)
    validate_files(files)
    timer = Timer()
    uploaded_urls: list[str] = []

    def _op():
        discard_files(uploaded_urls)
        uploaded_urls.clear()

        record = get_locked(InventoryRecord, record_id, label="Inventory record")
        result = upload_media(record, files, actor=actor, uploaded_urls=uploaded_urls)
        log_inventory_action(
            action="photo_upload_failed" if result.uploaded_count == 0 and files else "photo_upload_complete",
            actor=actor,
            inventory_id=record.id,
            duration_ms=timer.elapsed(),
            details={
                "file_count": len(files),
                "success_count": result.uploaded_count,
                "failed_count": result.failed_count,
                "total_size_bytes": sum(f.size for f in files),
            },
        )
        db.session.commit()
        return result

    try:
        return run_with_retry(_op)
    except Exception:
        discard_files(uploaded_urls)
        raise
