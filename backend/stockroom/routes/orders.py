# backend/stockroom/routes/orders.py
"""
Order status routes.

- PATCH /api/orders/products/<id>/status  {"status": "<product status>"}
  Writes the product status and rolls the order status up.
- POST /api/orders/<id>/recalculate-status
  Recompute an order's status from its products (repair).
"""

from flask import Blueprint, g

from ..errors import StockroomError
from ..extensions import db
from ..decorators import require_actor
from ..services import order_status_service
from .responses import error_response, unexpected_error, request_payload


orders_bp = Blueprint("orders", __name__, url_prefix="/api/orders")


@orders_bp.patch("/products/<int:order_product_id>/status")
@require_actor
def set_product_status_route(order_product_id: int):
    try:
        payload = request_payload()
        product, order_status = order_status_service.set_product_status(
            order_product_id,
            payload.get("status") or payload.get("product_status"),
            actor=g.actor,
        )
        return {
            "product": product.to_dict(),
            "order_status": order_status.value if order_status else None,
        }, 200
    except StockroomError as e:
        return error_response(e)
    except Exception:
        return unexpected_error("Failed to update order product %s", order_product_id)


@orders_bp.post("/<int:order_id>/recalculate-status")
@require_actor
def recalculate_status_route(order_id: int):
    try:
        status = order_status_service.recalculate_order_status(order_id)
        db.session.commit()
        return {"order_id": order_id, "status": status.value if status else None}, 200
    except StockroomError as e:
        db.session.rollback()
        return error_response(e)
    except Exception:
        db.session.rollback()
        return unexpected_error("Failed to recalculate order %s", order_id)
