# Overview: Shared request parsing and error mapping for API routes.

import json

from flask import request, current_app
from werkzeug.exceptions import RequestEntityTooLarge

from ..errors import StockroomError, ValidationError, NotFoundError, ConstraintError
from ..services.media_service import MediaFile, max_file_size


UNEXPECTED_ERROR = "Unexpected error, please retry"


def error_response(exc: StockroomError):
    """Map a domain error to a JSON body and status code."""
    if isinstance(exc, ValidationError):
        return {"error": str(exc), "field": exc.field}, 400
    if isinstance(exc, NotFoundError):
        return {"error": str(exc)}, 404
    if isinstance(exc, ConstraintError):
        return {"error": str(exc)}, 409
    return {"error": str(exc)}, 400


def unexpected_error(message: str, *args):
    current_app.logger.exception(message, *args)
    return {"error": UNEXPECTED_ERROR}, 500


def request_payload() -> dict:
    """JSON body, or the form fields of a multipart request."""
    try:
        payload = request.get_json(silent=True)
        if payload is not None:
            if not isinstance(payload, dict):
                raise ValidationError("Request body must be a JSON object")
            return payload
        return request.form.to_dict()
    except RequestEntityTooLarge:
        raise _request_too_large()


def request_photos() -> list[MediaFile]:
    """Uploaded "photos" files; one over MEDIA_MAX_FILE_SIZE is a ValidationError."""
    try:
        uploads = request.files.getlist("photos")
    except RequestEntityTooLarge:
        raise _request_too_large()
    limit = max_file_size()
    return [MediaFile.from_storage(f, max_size=limit) for f in uploads if f and f.filename]


def _request_too_large() -> ValidationError:
    limit = current_app.config.get("MAX_CONTENT_LENGTH")
    return ValidationError(f"Upload exceeds the request limit of {limit} bytes", field="photos")


def parse_int(value, *, field: str, required: bool = False):
    if value is None or value == "":
        if required:
            raise ValidationError(f"{field} is required", field=field)
        return None
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer", field=field)
    if isinstance(value, int):
        return value
    try:
        return int(str(value).strip())
    except ValueError:
        raise ValidationError(f"{field} must be an integer", field=field)


def parse_bool(value) -> bool:
    if isinstance(value, bool):
        return value
    return str(value or "").strip().lower() in {"1", "true", "yes", "on"}


def parse_verified_items(value) -> dict[int, bool]:
    """
    Accept {"<key>": bool} or a list of verified keys.

    Multipart requests send the same structure JSON-encoded in a form field.
    """
    if value is None or value == "":
        return {}
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except ValueError:
            raise ValidationError("verified_items must be valid JSON", field="verified_items")
    if isinstance(value, list):
        return {parse_int(k, field="verified_items"): True for k in value}
    if isinstance(value, dict):
        return {parse_int(k, field="verified_items"): parse_bool(v) for k, v in value.items()}
    raise ValidationError("verified_items must be an object or a list", field="verified_items")


def media_summary(result) -> dict:
    return {
        "media": [m.to_dict() for m in result.media],
        "media_uploaded_count": result.uploaded_count,
        "media_failed_count": result.failed_count,
        "media_failed_files": result.failure.failed_names if result.failure else [],
        "media_message": result.failure.message if result.failure else None,
    }
