"""
security helpers:
- Argon2 password hashing via argon2-cffi
- JWT creation/verification via PyJWT (separate secrets for access and refresh tokens)
- JTI generation for token identifiers
"""
from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Dict, Any

import jwt
from argon2 import PasswordHasher
from argon2.exceptions import VerificationError, InvalidHashError

from flask import current_app

ph = PasswordHasher()

_SECRETS = {
    "access": "ACCESS_TOKEN_SECRET",
    "refresh": "REFRESH_TOKEN_SECRET",
}


class TokenError(Exception):
    """A token failed signature, expiry or type verification."""


def hash_password(password: str) -> str:
    """Hash a plaintext password using Argon2
    """
    return ph.hash(password)


def verify_password(password: str, password_hash: str | None) -> bool:
    """ Verify a plaintext password using argon2; never raises.
    """
    if not password or not password_hash:
        return False
    try:
        return ph.verify(password_hash, password)
    except (VerificationError, InvalidHashError):
        return False


def generate_jti() -> str:
    """Generate a unique JTI (JWT ID).
    """
    return str(uuid.uuid4())


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _encode(payload: Dict[str, Any], token_type: str) -> str:
    cfg = current_app.config
    now = _now()
    expires = cfg["ACCESS_TOKEN_EXPIRES"] if token_type == "access" else cfg["REFRESH_TOKEN_EXPIRES"]
    claims = {
        "iss": cfg.get("JWT_ISSUER", "videotube-api"),
        "iat": int(now.timestamp()),
        "exp": int((now + expires).timestamp()),
        "type": token_type,
        "jti": generate_jti(),
    }
    claims.update(payload)
    return jwt.encode(claims, cfg[_SECRETS[token_type]], algorithm=cfg["JWT_ALGORITHM"])


def create_access_token(user) -> str:
    """Short-lived token carrying the identity claims of ``user``."""
    return _encode(
        {
            "sub": str(user.id),
            "username": user.username,
            "email": user.email,
            "full_name": user.full_name,
        },
        "access",
    )


def create_refresh_token(user) -> str:
    """Longer-lived token carrying only the user id."""
    return _encode({"sub": str(user.id)}, "refresh")


def decode_token(token: str, expected_type: str = "access") -> Dict[str, Any]:
    """
    Decode and validate a JWT. Raises TokenError on invalid signature/expired jwt.
    expected type must be "access" or "refresh".
    """
    cfg = current_app.config
    try:
        decoded = jwt.decode(
            token,
            cfg[_SECRETS[expected_type]],
            algorithms=[cfg["JWT_ALGORITHM"]],
            issuer=cfg.get("JWT_ISSUER", "videotube-api"),
            options={"require": ["exp", "sub", "iss"]},
        )
    except jwt.ExpiredSignatureError:
        raise TokenError("Token expired")
    except jwt.InvalidTokenError as exc:
        raise TokenError(f"Invalid token: {exc}") from exc

    if decoded.get("type") != expected_type:
        raise TokenError("Wrong token type")
    return decoded
