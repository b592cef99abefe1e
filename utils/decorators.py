from __future__ import annotations
from functools import wraps
from flask import request, g

from api.errors import UnauthorizedError
from api.tokens import ACCESS_COOKIE
from utils.security import decode_token, TokenError
from models import storage
from models.user import User


def _incoming_access_token() -> str | None:
    token = request.cookies.get(ACCESS_COOKIE)
    if token:
        return token
    auth = request.headers.get("Authorization", "")
    if auth.startswith("Bearer "):
        return auth.split(" ", 1)[1].strip() or None
    return None


def jwt_required():
    """Gate a view behind a valid access token (cookie or Bearer header)."""
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            token = _incoming_access_token()
            if not token:
                raise UnauthorizedError("Unauthorized request")
            try:
                decoded = decode_token(token, expected_type="access")
            except TokenError as e:
                raise UnauthorizedError(str(e))

            user = storage.get(User, decoded.get("sub"))
            if not user:
                raise UnauthorizedError("Invalid access token")
            g.current_user = user
            return fn(*args, **kwargs)

        return wrapper

    return decorator
