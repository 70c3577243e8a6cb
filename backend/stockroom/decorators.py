# Overview: Request decorators for API routes.

from functools import wraps
from flask import request, jsonify, g

from .actor import Actor


def _header_int(name: str):
    raw = (request.headers.get(name) or "").strip()
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError:
        return None


def require_actor(f):
    """
    Establish who is acting on this request.

    Authentication happens upstream; the gateway forwards the caller as
    headers and this decorator turns them into an explicit Actor:
    - X-Actor-Id: numeric user id (optional)
    - X-Actor-Name: display name (required)
    - X-Actor-Role: role name (optional)

    Sets g.actor. Returns 401 if no actor name is supplied.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        name = (request.headers.get("X-Actor-Name") or "").strip()
        if not name:
            return jsonify({"error": "Actor required"}), 401

        g.actor = Actor(
            id=_header_int("X-Actor-Id"),
            name=name,
            role=(request.headers.get("X-Actor-Role") or "").strip() or None,
        )
        return f(*args, **kwargs)

    return decorated_function
