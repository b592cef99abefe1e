"""
Users blueprint (mounted at /api/v1/users):
- POST  /register          multipart form + avatar (required) / coverImage (optional)
- POST  /login             sets accessToken/refreshToken cookies
- POST  /logout            clears cookies and the stored refresh token
- POST  /refresh-token     rotates the token pair
- POST  /change-password
- GET   /current-user
- PATCH /update-account
- PATCH /avatar
- GET   /c/<username>      channel profile with subscription counts
- GET   /history           watch history with video owners
"""
from __future__ import annotations

import logging
from typing import Optional, Tuple

from flask import Blueprint, request, g
from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError

from api.errors import api_response, BadRequestError, UnauthorizedError, NotFoundError, ConflictError, ServerFaultError
from api.tokens import (
    REFRESH_COOKIE,
    issue_tokens,
    rotate_tokens,
    revoke_tokens,
    set_auth_cookies,
    clear_auth_cookies,
)
from models import storage
from models.user import User
from models.queries import channel_profile, watch_history
from models.schemas.user import (
    UserRegisterSchema,
    UserLoginSchema,
    UserUpdateSchema,
    PasswordChangeSchema,
    UserOutSchema,
    ChannelProfileSchema,
    WatchedVideoSchema,
)
from utils.decorators import jwt_required
from utils.security import hash_password
from utils.uploads import has_file, store_upload, discard_upload

logger = logging.getLogger(__name__)

MAX_LIMIT = 100

bp = Blueprint("users", __name__)

user_register_schema = UserRegisterSchema()
user_login_schema = UserLoginSchema()
user_update_schema = UserUpdateSchema()
password_change_schema = PasswordChangeSchema()
user_out_schema = UserOutSchema()
channel_profile_schema = ChannelProfileSchema()
watched_videos_schema = WatchedVideoSchema(many=True)


def _payload() -> dict:
    """JSON body, falling back to form fields."""
    payload = request.get_json(silent=True)
    if isinstance(payload, dict):
        return payload
    return request.form.to_dict()


def parse_pagination() -> Tuple[int, Optional[int]]:
    """(offset, limit) from ?page=&limit=; (0, None) when neither is given."""
    if "page" not in request.args and "limit" not in request.args:
        return 0, None
    try:
        page = int(request.args.get("page", "1"))
        limit = int(request.args.get("limit", str(MAX_LIMIT)))
    except ValueError:
        raise BadRequestError("page and limit must be integers")
    page = max(page, 1)
    limit = max(1, min(limit, MAX_LIMIT))
    return (page - 1) * limit, limit


def _identity_taken(username: str | None, email: str | None, exclude_id: str | None = None) -> bool:
    clauses = []
    if username:
        clauses.append(User.username == username)
    if email:
        clauses.append(User.email == email)
    if not clauses:
        return False
    query = storage.get_session().query(User).filter(or_(*clauses))
    if exclude_id:
        query = query.filter(User.id != exclude_id)
    return query.first() is not None


@bp.post("/register")
def register():
    """
    Register a new user.
    ---
    tags:
      - Users
    consumes:
      - multipart/form-data
    parameters:
      - { in: formData, name: fullName, type: string, required: true }
      - { in: formData, name: email, type: string, required: true }
      - { in: formData, name: username, type: string, required: true }
      - { in: formData, name: password, type: string, required: true }
      - { in: formData, name: avatar, type: file, required: true }
      - { in: formData, name: coverImage, type: file, required: false }
    responses:
      201:
        description: Created
      400:
        description: Missing field or avatar
      409:
        description: Username or email already registered
    """
    data = user_register_schema.load(request.form.to_dict() or _payload())

    if _identity_taken(data["username"], data["email"]):
        raise ConflictError("User with email or username already exists")

    avatar = request.files.get("avatar")
    if not has_file(avatar):
        raise BadRequestError("Avatar file is required")
    cover_image = request.files.get("coverImage")

    avatar_path = store_upload(avatar, "avatars")
    cover_path = store_upload(cover_image, "covers") if has_file(cover_image) else None
    user = User(
        full_name=data["full_name"],
        email=data["email"],
        username=data["username"],
        password_hash=hash_password(data["password"]),
        avatar=avatar_path,
        cover_image=cover_path,
        watch_history=[],
    )
    try:
        storage.new(user)
        storage.save()
    except SQLAlchemyError:
        # The record never landed, so its files would be orphans
        discard_upload(avatar_path)
        discard_upload(cover_path)
        raise

    created = storage.get(User, user.id)
    if created is None:
        raise ServerFaultError("Something went wrong while registering the user")

    logger.info("Registered user %s (%s)", created.username, created.id)
    return api_response(201, user_out_schema.dump(created), "User registered successfully")


@bp.post("/login")
def login():
    """
    Login with username or email; returns and sets the token pair.
    ---
    tags:
      - Users
    consumes:
      - application/json
    parameters:
      - in: body
        name: body
        schema:
          type: object
          properties:
            email: { type: string }
            username: { type: string }
            password: { type: string }
    responses:
      200:
        description: OK (cookies set, tokens in body)
      400:
        description: Missing identifier or password
      401:
        description: Wrong password
      404:
        description: Unknown user
    """
    data = user_login_schema.load(_payload())
    email = data.get("email")
    username = data.get("username")
    if not (email or username):
        raise BadRequestError("username or email is required")

    clauses = []
    if username:
        clauses.append(User.username == username)
    if email:
        clauses.append(User.email == email)
    user = storage.get_session().query(User).filter(or_(*clauses)).first()
    if user is None:
        raise NotFoundError("User does not exist")

    if not user.is_password_correct(data["password"]):
        raise UnauthorizedError("Invalid user credentials")

    tokens = issue_tokens(user.id)
    logger.info("User %s logged in", user.id)

    response, status = api_response(
        200,
        {
            "user": user_out_schema.dump(user),
            "accessToken": tokens.access_token,
            "refreshToken": tokens.refresh_token,
        },
        "User logged in successfully",
    )
    set_auth_cookies(response, tokens)
    return response, status


@bp.post("/logout")
@jwt_required()
def logout():
    """
    Logout: clears the stored refresh token and both cookies.
    ---
    tags:
      - Users
    security:
      - Bearer: []
    responses:
      200:
        description: Logged out
      401:
        description: Unauthorized
    """
    revoke_tokens(g.current_user.id)
    logger.info("User %s logged out", g.current_user.id)

    response, status = api_response(200, {}, "User logged out")
    clear_auth_cookies(response)
    return response, status


@bp.post("/refresh-token")
def refresh_token():
    """
    Rotate the token pair using the refresh token (cookie or body).
    ---
    tags:
      - Users
    consumes:
      - application/json
    parameters:
      - in: body
        name: body
        schema:
          type: object
          properties:
            refreshToken: { type: string }
    responses:
      200:
        description: New token pair
      400:
        description: Token signature or expiry invalid
      401:
        description: Missing, revoked or superseded token
    """
    incoming = request.cookies.get(REFRESH_COOKIE) or _payload().get("refreshToken")
    tokens = rotate_tokens(incoming)

    response, status = api_response(
        200,
        {"accessToken": tokens.access_token, "refreshToken": tokens.refresh_token},
        "Access token refreshed",
    )
    set_auth_cookies(response, tokens)
    return response, status


@bp.post("/change-password")
@jwt_required()
def change_password():
    """
    Change the current user's password.
    ---
    tags:
      - Users
    security:
      - Bearer: []
    parameters:
      - in: body
        name: body
        schema:
          type: object
          properties:
            oldPassword: { type: string }
            newPassword: { type: string }
    responses:
      200:
        description: Password changed
      401:
        description: Old password does not match
    """
    data = password_change_schema.load(_payload())
    user = g.current_user
    if not user.is_password_correct(data["old_password"]):
        raise UnauthorizedError("Invalid old password")

    user.password_hash = hash_password(data["new_password"])
    user.save()
    return api_response(200, {}, "Password changed successfully")


@bp.get("/current-user")
@jwt_required()
def current_user():
    """
    Get the authenticated user.
    ---
    tags:
      - Users
    security:
      - Bearer: []
    responses:
      200:
        description: OK
      401:
        description: Unauthorized
    """
    return api_response(200, user_out_schema.dump(g.current_user), "Current user fetched successfully")


@bp.patch("/update-account")
@jwt_required()
def update_account():
    """
    Update fullName, email and/or username (at least one).
    ---
    tags:
      - Users
    security:
      - Bearer: []
    parameters:
      - in: body
        name: body
        schema:
          type: object
          properties:
            fullName: { type: string }
            email: { type: string }
            username: { type: string }
    responses:
      200:
        description: Updated user
      400:
        description: No field supplied
      409:
        description: Username or email taken
    """
    data = user_update_schema.load(_payload())
    user = g.current_user
    if _identity_taken(data.get("username"), data.get("email"), exclude_id=user.id):
        raise ConflictError("User with email or username already exists")

    for key, value in data.items():
        setattr(user, key, value)
    user.save()
    return api_response(200, user_out_schema.dump(user), "Account details updated successfully")


@bp.patch("/avatar")
@jwt_required()
def update_avatar():
    """
    Replace the current user's avatar.
    ---
    tags:
      - Users
    security:
      - Bearer: []
    consumes:
      - multipart/form-data
    parameters:
      - { in: formData, name: avatar, type: file, required: true }
    responses:
      200:
        description: Updated user
      400:
        description: Avatar file missing
    """
    avatar = request.files.get("avatar")
    if not has_file(avatar):
        raise BadRequestError("Avatar file is missing")

    user = g.current_user
    user.avatar = store_upload(avatar, "avatars")
    user.save()
    return api_response(200, user_out_schema.dump(user), "Avatar image updated successfully")


@bp.get("/c/<username>")
@jwt_required()
def get_channel_profile(username: str):
    """
    Channel profile with subscriber counts.
    ---
    tags:
      - Channels
    security:
      - Bearer: []
    parameters:
      - { in: path, name: username, type: string, required: true }
    responses:
      200:
        description: fullName, username, email, subscriberCount, channelSubscribedToCount, isSubscribed
      404:
        description: Channel does not exist
    """
    if not username.strip():
        raise BadRequestError("username is missing")

    profile = channel_profile(storage.get_session(), username, g.current_user.id)
    if profile is None:
        raise NotFoundError("Channel does not exist")
    return api_response(200, channel_profile_schema.dump(profile), "User channel fetched successfully")


@bp.get("/history")
@jwt_required()
def get_watch_history():
    """
    Watch history of the current user in stored order, each video with its owner.
    ---
    tags:
      - Users
    security:
      - Bearer: []
    parameters:
      - { in: query, name: page, type: integer, required: false }
      - { in: query, name: limit, type: integer, required: false }
    responses:
      200:
        description: Ordered list of videos
    """
    offset, limit = parse_pagination()
    videos = watch_history(storage.get_session(), g.current_user.id, offset=offset, limit=limit)
    return api_response(200, watched_videos_schema.dump(videos), "Watch history fetched successfully")
