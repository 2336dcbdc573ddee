# Overview: Flask API routes for the caller's own session (whoami, logout).

from flask import Blueprint, jsonify, g, current_app

from ..services import session_service
from ..decorators import SESSION_COOKIE, require_auth, token_from_request


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.get("/session")
@require_auth
def session_route():
    """Who the presented token belongs to, for the POS client to show."""
    context = g.session_context
    return jsonify({
        "staff": context.staff.to_dict(),
        "permissions_level": context.permissions_level,
        "session": context.session.to_dict(),
    }), 200


@auth_bp.post("/logout")
@require_auth
def logout_route():
    """
    Revoke the presented session and clear the session cookie.

    Sessions are issued elsewhere; this only ends one.
    """
    try:
        session_service.revoke_session(token_from_request(), reason="Logout")
        current_app.logger.info("Staff %s logged out", g.current_staff.id)

        response = jsonify({"success": True})
        response.delete_cookie(SESSION_COOKIE)
        return response, 200

    except Exception:
        current_app.logger.exception("Failed to logout staff")
        return jsonify({"error": "Internal server error"}), 500
