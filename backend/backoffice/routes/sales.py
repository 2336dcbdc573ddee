# Overview: Flask API routes for sales; parses input and returns JSON responses.

# backend/backoffice/routes/sales.py
"""Sales API routes: create, read and void"""

from flask import Blueprint, request, jsonify, g, current_app

from ..services import sales_service
from ..validation import ServiceError, StorageError, coerce_int, clean_text
from ..decorators import require_auth, require_permission_level


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


def _parse_bool(value: str | None) -> bool | None:
    if value is None or value == "":
        return None
    return value.strip().lower() in {"1", "true", "yes"}


@sales_bp.post("/")
@require_auth
def create_sale_route():
    """
    Record a completed sale.

    Body: {cart: [{item_id, quantity, price_cents}], payment_method,
           original_total_cents, final_total_cents,
           customer_id?, discount_id?, tab_id?}
    """
    try:
        data = request.get_json(silent=True) or {}
        payload = sales_service.parse_sale_payload(data)

        sale = sales_service.record_sale(staff_id=g.current_staff.id, **payload)

        return jsonify({"success": True, "sale_id": sale.id, "sale": sale.to_dict()}), 201

    except StorageError as e:
        current_app.logger.exception("Storage failure while recording sale")
        return jsonify(e.to_dict()), e.status_code
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to record sale")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.get("/")
@require_auth
def list_sales_route():
    try:
        limit = coerce_int(request.args.get("limit", "100"), "limit", minimum=1)
        staff_id = coerce_int(request.args.get("staff_id"), "staff_id", required=False)
        sales = sales_service.list_sales(
            limit=limit,
            voided=_parse_bool(request.args.get("voided")),
            staff_id=staff_id,
        )
        return jsonify({"sales": [sale.to_dict() for sale in sales]}), 200

    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code


@sales_bp.get("/<int:sale_id>")
@require_auth
def get_sale_route(sale_id: int):
    try:
        sale, lines = sales_service.get_sale_details(sale_id)
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code

    return jsonify({
        "sale": sale.to_dict(),
        "items": [line.to_dict() for line in lines],
    }), 200


@sales_bp.post("/void-item")
@require_auth
@require_permission_level("VOID_MIN_PERMISSION_LEVEL")
def void_item_route():
    """
    Void one unit of a sale line.

    Body: {item_id} where item_id is the sale item (line) id.
    """
    try:
        data = request.get_json(silent=True) or {}
        sale_item_id = coerce_int(data.get("item_id"), "item_id", minimum=1)

        line = sales_service.void_sale_item(sale_item_id, staff_id=g.current_staff.id)
        current_app.logger.info(
            "Sale item %s (sale %s) voided by staff %s", line.id, line.sale_id, g.current_staff.id
        )

        return jsonify({"success": True}), 200

    except StorageError as e:
        current_app.logger.exception("Storage failure while voiding sale item")
        return jsonify(e.to_dict()), e.status_code
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to void sale item")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.post("/void-sale")
@require_auth
@require_permission_level("VOID_MIN_PERMISSION_LEVEL")
def void_sale_route():
    """
    Void a whole sale, restoring stock and tab balance.

    Body: {sale_id, reason?}
    """
    try:
        data = request.get_json(silent=True) or {}
        sale_id = coerce_int(data.get("sale_id"), "sale_id", minimum=1)

        sales_service.void_sale(
            sale_id,
            staff_id=g.current_staff.id,
            reason=clean_text(data.get("reason")),
        )
        current_app.logger.info("Sale %s voided by staff %s", sale_id, g.current_staff.id)

        return jsonify({"success": True}), 200

    except StorageError as e:
        current_app.logger.exception("Storage failure while voiding sale")
        return jsonify(e.to_dict()), e.status_code
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to void sale")
        return jsonify({"error": "Internal server error"}), 500
