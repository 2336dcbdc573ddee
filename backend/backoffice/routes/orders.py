# Overview: Flask API routes for orders; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g, current_app

from ..services import order_service
from ..validation import ServiceError, StorageError, coerce_int
from ..decorators import require_auth, require_permission_level


orders_bp = Blueprint("orders", __name__, url_prefix="/api/orders")


@orders_bp.post("/")
@require_auth
def create_order_route():
    """
    Create a paid order.

    Body: {lines: [{name, quantity, unit_price_cents}], subtotal_cents,
           discount_amount_cents, total_cents, customer_id?, discount_id?, note?}
    """
    try:
        data = request.get_json(silent=True) or {}
        payload = order_service.parse_order_payload(data)

        order = order_service.create_order(staff_id=g.current_staff.id, **payload)
        return jsonify({"order_id": order.id, "order": order.to_dict()}), 201

    except StorageError as e:
        current_app.logger.exception("Storage failure while creating order")
        return jsonify(e.to_dict()), e.status_code
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create order")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.get("/")
@require_auth
@require_permission_level("VOID_MIN_PERMISSION_LEVEL")
def list_orders_route():
    """Recent orders (jobs history). ?status=paid|void|open|all, default paid."""
    try:
        orders = order_service.list_orders(request.args.get("status", "paid"))
        return jsonify({"orders": [order.to_dict() for order in orders]}), 200
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code


@orders_bp.get("/<int:order_id>")
@require_auth
@require_permission_level("VOID_MIN_PERMISSION_LEVEL")
def get_order_route(order_id: int):
    try:
        order, lines = order_service.get_order(order_id)
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code

    return jsonify({
        "order": order.to_dict(),
        "lines": [line.to_dict() for line in lines],
    }), 200


@orders_bp.post("/void")
@require_auth
@require_permission_level("VOID_MIN_PERMISSION_LEVEL")
def void_order_route():
    """
    Void an order and all of its lines.

    Body: {order_id, reason}
    """
    try:
        data = request.get_json(silent=True) or {}
        order_id = coerce_int(data.get("order_id"), "order_id", minimum=1)

        order = order_service.void_order(
            order_id,
            reason=data.get("reason"),
            staff_id=g.current_staff.id,
        )
        current_app.logger.info("Order %s voided by staff %s", order_id, g.current_staff.id)

        return jsonify({"success": True, "order": order.to_dict()}), 200

    except StorageError as e:
        current_app.logger.exception("Storage failure while voiding order")
        return jsonify(e.to_dict()), e.status_code
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to void order")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.post("/void-line")
@require_auth
@require_permission_level("VOID_MIN_PERMISSION_LEVEL")
def void_order_line_route():
    """
    Void one order line and reprice the order.

    Body: {order_id, line_id, reason}
    """
    try:
        data = request.get_json(silent=True) or {}
        order_id = coerce_int(data.get("order_id"), "order_id", minimum=1)
        line_id = coerce_int(data.get("line_id"), "line_id", minimum=1)

        order, order_voided = order_service.void_order_line(
            order_id,
            line_id,
            reason=data.get("reason"),
            staff_id=g.current_staff.id,
        )
        current_app.logger.info(
            "Order line %s on order %s voided by staff %s", line_id, order_id, g.current_staff.id
        )

        return jsonify({"success": True, "order": order.to_dict(), "order_voided": order_voided}), 200

    except StorageError as e:
        current_app.logger.exception("Storage failure while voiding order line")
        return jsonify(e.to_dict()), e.status_code
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to void order line")
        return jsonify({"error": "Internal server error"}), 500
