from flask import jsonify, current_app
from werkzeug.exceptions import HTTPException
from marshmallow import ValidationError
from sqlalchemy.exc import IntegrityError
import logging


class ApiError(Exception):
    """Base for failures a handler raises on purpose; carries its HTTP status."""

    status_code = 500
    default_message = "Something went wrong"

    def __init__(self, message: str | None = None, errors: list | None = None):
        self.message = message or self.default_message
        self.errors = errors or []
        super().__init__(self.message)


class BadRequestError(ApiError):
    status_code = 400
    default_message = "Bad request"


class UnauthorizedError(ApiError):
    status_code = 401
    default_message = "Unauthorized request"


class NotFoundError(ApiError):
    status_code = 404
    default_message = "Resource not found"


class ConflictError(ApiError):
    status_code = 409
    default_message = "Conflict"


class ServerFaultError(ApiError):
    status_code = 500


def api_response(status: int, data, message: str = "Success"):
    """Success envelope shared by every endpoint."""
    payload = {
        "statusCode": status,
        "data": data,
        "message": message,
        "success": status < 400,
    }
    return jsonify(payload), status


def error_response(message: str, status: int, errors: list | None = None):
    payload = {
        "statusCode": status,
        "message": message,
        "success": False,
        "errors": errors or [],
    }
    return jsonify(payload), status


def _flatten_messages(messages, prefix: str = "") -> list:
    """Turn marshmallow's nested messages dict into a flat list of field errors."""
    if isinstance(messages, dict):
        out = []
        for key, value in messages.items():
            field = f"{prefix}.{key}" if prefix else str(key)
            out.extend(_flatten_messages(value, field))
        return out
    if isinstance(messages, (list, tuple)):
        return [{"field": prefix or "_schema", "message": str(m)} for m in messages]
    return [{"field": prefix or "_schema", "message": str(messages)}]


def register_error_handlers(app):
    @app.errorhandler(ApiError)
    def handle_api_error(err: ApiError):
        if err.status_code >= 500:
            logging.exception("Server fault", exc_info=err)
        return error_response(err.message, err.status_code, err.errors)

    # Marshmallow validation errors are client input problems
    @app.errorhandler(ValidationError)
    def handle_validation_error(err: ValidationError):
        if current_app and current_app.debug:
            logging.exception("Validation failed", exc_info=err)
        errors = _flatten_messages(err.messages)
        distinct = {e["message"] for e in errors}
        message = distinct.pop() if len(distinct) == 1 else "Invalid input"
        return error_response(message, 400, errors)

    # Unique username/email races that slip past the explicit checks
    @app.errorhandler(IntegrityError)
    def handle_integrity_error(err: IntegrityError):
        message = str(getattr(err, "orig", err))
        if current_app and current_app.debug:
            logging.exception("Integrity error", exc_info=err)
        if "unique" in message.lower():
            return error_response("User with email or username already exists", 409)
        return error_response("Integrity error", 400, [{"field": "_db", "message": message}])

    # Werkzeug HTTPExceptions (unknown route, wrong method, body too large) keep their codes
    @app.errorhandler(HTTPException)
    def handle_http_exception(err: HTTPException):
        return error_response(err.description or err.name, err.code or 400)

    # 500 Internal Error (catch-all)
    @app.errorhandler(Exception)
    def internal_error(err: Exception):
        logging.exception("Unhandled exception", exc_info=err)
        errors = []
        if current_app and current_app.debug:
            errors = [{"type": err.__class__.__name__, "message": str(err)}]
        return error_response("An unexpected error occurred", 500, errors)
