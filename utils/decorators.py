from __future__ import annotations
from functools import wraps
from flask import request, g, current_app

from services.exceptions import InvalidToken


def bearer_token() -> str:
    auth = request.headers.get("Authorization", "")
    if not auth.startswith("Bearer "):
        raise InvalidToken("Missing or invalid Authorization header")
    return auth.split(" ", 1)[1].strip()


def jwt_required():
    """Require a valid access token; the resolved user lands on g.current_user."""
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            token = bearer_token()
            manager = current_app.extensions["session_manager"]
            g.current_user = manager.authenticate_access(token)
            return fn(*args, **kwargs)

        return wrapper

    return decorator
