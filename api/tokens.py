"""
Session lifecycle: issue, rotate and revoke the access/refresh token pair.

The refresh token is stateful. A user holds exactly one refresh token in
``User.refresh_token``; issuing a new pair overwrites it, logout clears it, and
a presented refresh token is honoured only while it equals the stored value.
"""
from __future__ import annotations

import hmac
import logging
from typing import NamedTuple

from sqlalchemy.exc import SQLAlchemyError

from api.errors import BadRequestError, UnauthorizedError, ServerFaultError
from models import storage
from models.user import User
from utils.security import create_access_token, create_refresh_token, decode_token, TokenError

logger = logging.getLogger(__name__)

ACCESS_COOKIE = "accessToken"
REFRESH_COOKIE = "refreshToken"
COOKIE_OPTIONS = {"httponly": True, "secure": True}


class TokenPair(NamedTuple):
    access_token: str
    refresh_token: str


def issue_tokens(user_id: str) -> TokenPair:
    """Mint a pair for ``user_id`` and store the refresh token in its slot."""
    try:
        user = storage.get(User, user_id)
        if user is None:
            raise LookupError(f"user {user_id} not found")
        access_token = create_access_token(user)
        refresh_token = create_refresh_token(user)

        # No schema validation here: a partial record must not block a login
        user.refresh_token = refresh_token
        storage.new(user)
        storage.save()
    except (SQLAlchemyError, LookupError) as exc:
        raise ServerFaultError("Something went wrong while generating refresh and access token") from exc

    return TokenPair(access_token, refresh_token)


def rotate_tokens(incoming: str | None) -> TokenPair:
    """Exchange a refresh token that matches the stored slot for a fresh pair."""
    if not incoming:
        raise UnauthorizedError("Invalid access token")

    try:
        decoded = decode_token(incoming, expected_type="refresh")
    except TokenError as exc:
        raise BadRequestError(str(exc)) from exc

    user = storage.get(User, decoded.get("sub"))
    if user is None:
        raise UnauthorizedError("Invalid refresh token")
    if not hmac.compare_digest((user.refresh_token or "").encode(), incoming.encode()):
        logger.warning("Stale refresh token presented for user %s", user.id)
        raise UnauthorizedError("Refresh token is expired or used")

    return issue_tokens(user.id)


def revoke_tokens(user_id: str) -> None:
    """Clear the refresh slot; a second call is a no-op."""
    session = storage.get_session()
    session.query(User).filter(User.id == user_id).update(
        {User.refresh_token: None}, synchronize_session="fetch"
    )
    storage.save()


def set_auth_cookies(response, tokens: TokenPair):
    response.set_cookie(ACCESS_COOKIE, tokens.access_token, **COOKIE_OPTIONS)
    response.set_cookie(REFRESH_COOKIE, tokens.refresh_token, **COOKIE_OPTIONS)
    return response


def clear_auth_cookies(response):
    response.delete_cookie(ACCESS_COOKIE, **COOKIE_OPTIONS)
    response.delete_cookie(REFRESH_COOKIE, **COOKIE_OPTIONS)
    return response
