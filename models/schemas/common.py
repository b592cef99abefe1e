from marshmallow import ValidationError

REQUIRED_MESSAGE = "All fields are required"


def strip_strings(data: dict) -> dict:
    """Copy of ``data`` with surrounding whitespace removed from string values."""
    return {k: (v.strip() if isinstance(v, str) else v) for k, v in data.items()}


def normalize_identifier(value):
    """Usernames and emails are matched and stored lower-case."""
    return value.strip().lower() if isinstance(value, str) else value


def not_blank(value) -> None:
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValidationError(REQUIRED_MESSAGE)


def min_password_length(value) -> None:
    if value is not None and len(value) < 8:
        raise ValidationError("Password must be at least 8 characters long.")
