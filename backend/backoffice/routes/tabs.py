# Overview: Flask API routes for tab balances (read-only).

from flask import Blueprint, request, jsonify

from ..services import tab_service
from ..validation import ServiceError
from ..decorators import require_auth


tabs_bp = Blueprint("tabs", __name__, url_prefix="/api/tabs")


@tabs_bp.get("/")
@require_auth
def list_tabs_route():
    """?active=true limits the list to tabs that can still be charged."""
    active = request.args.get("active")
    active_filter = None if active is None else active.strip().lower() == "true"
    tabs = tab_service.list_tabs(active=active_filter)
    return jsonify({"tabs": [tab.to_dict() for tab in tabs]}), 200


@tabs_bp.get("/<int:tab_id>")
@require_auth
def get_tab_route(tab_id: int):
    try:
        tab = tab_service.get_tab(tab_id)
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    return jsonify({"tab": tab.to_dict()}), 200
