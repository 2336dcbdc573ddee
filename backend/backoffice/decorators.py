# Overview: Request authentication and permission-level decorators for API routes.

from functools import wraps
from flask import current_app, request, jsonify, g

from .permissions import has_level
from .services import session_service


SESSION_COOKIE = "session_id"


def token_from_request() -> str | None:
    auth_header = request.headers.get("Authorization")
    if auth_header and auth_header.startswith("Bearer "):
        return auth_header.split(" ", 1)[1].strip()
    return request.cookies.get(SESSION_COOKIE)


def require_auth(f):
    """
    Require a valid staff session.

    The token comes from "Authorization: Bearer <token>" or the session_id
    cookie of this request. The resolved SessionContext is kept on flask.g,
    which lives for the current request only:
    - g.session_context: the full SessionContext
    - g.current_staff: the authenticated Staff

    Returns 401 when no valid session is presented.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        context = session_service.validate_session(token_from_request())
        if not context:
            return jsonify({"error": "Not authenticated"}), 401

        g.session_context = context
        g.current_staff = context.staff

        return f(*args, **kwargs)

    return decorated_function


def require_permission_level(minimum):
    """
    Require the caller's role permissions_level to be at least minimum.

    minimum is either a number or the name of a config key holding one
    (e.g. "VOID_MIN_PERMISSION_LEVEL"), read per request.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            context = getattr(g, "session_context", None)
            if context is None:
                return jsonify({"error": "Not authenticated"}), 401

            required = current_app.config[minimum] if isinstance(minimum, str) else minimum
            if not has_level(context.permissions_level, required):
                current_app.logger.warning(
                    "Permission denied: staff %s (level %s) needs level %s for %s %s",
                    context.staff_id, context.permissions_level, required, request.method, request.path,
                )
                return jsonify({
                    "error": "Forbidden",
                    "required_level": required,
                }), 403

            return f(*args, **kwargs)

        return decorated_function
    return decorator
