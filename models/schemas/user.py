from marshmallow import Schema, fields, pre_load, validates, validates_schema, ValidationError, EXCLUDE

from models.schemas.common import (
    REQUIRED_MESSAGE,
    strip_strings,
    normalize_identifier,
    not_blank,
    min_password_length,
)

_REQUIRED = {"required": REQUIRED_MESSAGE, "null": REQUIRED_MESSAGE}


class UserRegisterSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    full_name = fields.String(data_key="fullName", required=True, validate=not_blank, error_messages=_REQUIRED)
    email = fields.Email(required=True, validate=not_blank, error_messages=_REQUIRED)
    username = fields.String(required=True, validate=not_blank, error_messages=_REQUIRED)
    password = fields.String(required=True, load_only=True, validate=not_blank, error_messages=_REQUIRED)

    @pre_load
    def normalize(self, data, **kwargs):
        if not isinstance(data, dict):
            return data
        data = strip_strings(data)
        for key in ("email", "username"):
            if key in data:
                data[key] = normalize_identifier(data[key])
        return data

    @validates("password")
    def validate_password(self, value, **kwargs):
        min_password_length(value)


class UserLoginSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    email = fields.String(allow_none=True)
    username = fields.String(allow_none=True)
    password = fields.String(
        required=True, validate=not_blank, error_messages={"required": "password is required"}
    )

    @pre_load
    def normalize(self, data, **kwargs):
        if not isinstance(data, dict):
            return data
        data = strip_strings(data)
        for key in ("email", "username"):
            if key in data:
                data[key] = normalize_identifier(data[key]) or None
        return data


class UserUpdateSchema(Schema):
    """Partial account update; at least one field must be present."""

    class Meta:
        unknown = EXCLUDE

    full_name = fields.String(data_key="fullName", validate=not_blank)
    email = fields.Email(validate=not_blank)
    username = fields.String(validate=not_blank)

    @pre_load
    def normalize(self, data, **kwargs):
        if not isinstance(data, dict):
            return data
        # Treat empty strings as "not supplied"
        data = {k: v for k, v in strip_strings(data).items() if v not in (None, "")}
        for key in ("email", "username"):
            if key in data:
                data[key] = normalize_identifier(data[key])
        return data

    @validates_schema
    def require_one(self, data, **kwargs):
        if not data:
            raise ValidationError("At least one field is required")


class PasswordChangeSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    old_password = fields.String(data_key="oldPassword", required=True, validate=not_blank, error_messages=_REQUIRED)
    new_password = fields.String(data_key="newPassword", required=True, validate=not_blank, error_messages=_REQUIRED)

    @validates("new_password")
    def validate_new_password(self, value, **kwargs):
        min_password_length(value)


class UserOutSchema(Schema):
    """Public view of a user: never includes the password hash or refresh token."""

    id = fields.String()
    full_name = fields.String(data_key="fullName")
    username = fields.String()
    email = fields.String()
    avatar = fields.String()
    cover_image = fields.String(data_key="coverImage", allow_none=True)
    watch_history = fields.List(fields.String(), data_key="watchHistory")
    created_at = fields.DateTime(data_key="createdAt")
    updated_at = fields.DateTime(data_key="updatedAt")


class ChannelProfileSchema(Schema):
    full_name = fields.String(data_key="fullName")
    username = fields.String()
    subscriber_count = fields.Integer(data_key="subscriberCount")
    channel_subscribed_to_count = fields.Integer(data_key="channelSubscribedToCount")
    is_subscribed = fields.Boolean(data_key="isSubscribed")
    email = fields.String()


class VideoOwnerSchema(Schema):
    full_name = fields.String(data_key="fullName")
    email = fields.String()
    username = fields.String()


class WatchedVideoSchema(Schema):
    id = fields.String()
    video_file = fields.String(data_key="videoFile")
    thumbnail = fields.String()
    title = fields.String()
    description = fields.String()
    duration = fields.Float()
    views = fields.Integer()
    is_published = fields.Boolean(data_key="isPublished")
    owner = fields.Nested(VideoOwnerSchema)
    created_at = fields.DateTime(data_key="createdAt", allow_none=True)
    updated_at = fields.DateTime(data_key="updatedAt", allow_none=True)
