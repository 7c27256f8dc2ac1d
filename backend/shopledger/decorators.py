# Overview: Request identity and role decorators for API routes.

from functools import wraps
from flask import current_app, request, jsonify, g

from .extensions import db
from .models import User

USER_HEADER = "X-User-Id"


def require_user(f):
    """
    Resolve the acting user supplied by the session layer.

    Sets g.current_user to an active User. Returns 401 if the X-User-Id
    header is missing, malformed, or names an unknown/inactive user.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        raw = (request.headers.get(USER_HEADER) or "").strip()
        # ASCII digits only; int() rejects superscripts that isdigit() accepts
        if not (raw.isascii() and raw.isdigit()) or len(raw) > 18:
            return jsonify({"error": "Authentication required", "code": "UNAUTHENTICATED", "details": {}}), 401

        user = db.session.get(User, int(raw))
        if user is None or not user.is_active:
            return jsonify({"error": "Unknown or inactive user", "code": "UNAUTHENTICATED", "details": {}}), 401

        g.current_user = user
        return f(*args, **kwargs)

    return decorated_function


def require_role(role: str):
    """
    Require the acting user to hold a role.

    Must be applied after @require_user.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            user = getattr(g, "current_user", None)
            if user is None:
                return jsonify({"error": "Authentication required", "code": "UNAUTHENTICATED", "details": {}}), 401

            if user.role != role:
                current_app.logger.warning(
                    "Permission denied: user_id=%s role=%s required=%s path=%s",
                    user.id, user.role, role, request.path,
                )
                return jsonify({
                    "error": "Permission denied",
                    "code": "FORBIDDEN",
                    "details": {"required_role": role},
                }), 403

            return f(*args, **kwargs)

        return decorated_function

    return decorator
