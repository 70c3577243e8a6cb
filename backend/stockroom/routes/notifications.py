# backend/stockroom/routes/notifications.py
"""
Arrival notification routes (per-user "goods arrived" alerts).

- GET /api/notifications/arrivals?include_dismissed=&limit=
- POST /api/notifications/arrivals/dismiss  {"ids": [...]} or {} for all
"""

from flask import Blueprint, request, g

from ..errors import StockroomError, ValidationError
from ..decorators import require_actor
from ..services import notification_service
from .responses import error_response, unexpected_error, request_payload, parse_int, parse_bool


notifications_bp = Blueprint("notifications", __name__, url_prefix="/api/notifications")


def _actor_user_id() -> int:
    if g.actor.id is None:
        raise ValidationError("X-Actor-Id is required for notifications", field="actor")
    return g.actor.id


@notifications_bp.get("/arrivals")
@require_actor
def list_arrivals_route():
    try:
        items = notification_service.list_arrivals(
            _actor_user_id(),
            include_dismissed=parse_bool(request.args.get("include_dismissed")),
            limit=min(parse_int(request.args.get("limit"), field="limit") or 50, 200),
        )
        return {"notifications": [n.to_dict() for n in items], "count": len(items)}, 200
    except StockroomError as e:
        return error_response(e)
    except Exception:
        return unexpected_error("Failed to list arrival notifications")


@notifications_bp.post("/arrivals/dismiss")
@require_actor
def dismiss_arrivals_route():
    try:
        payload = request_payload()
        ids = payload.get("ids")
        if ids is not None and not isinstance(ids, list):
            raise ValidationError("ids must be a list", field="ids")
        dismissed = notification_service.dismiss_arrivals(
            _actor_user_id(),
            [parse_int(i, field="ids", required=True) for i in ids] if ids else None,
        )
        return {"dismissed": dismissed}, 200
    except StockroomError as e:
        return error_response(e)
    except Exception:
        return unexpected_error("Failed to dismiss arrival notifications")
