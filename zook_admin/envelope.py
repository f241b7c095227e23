"""
Uniform response envelope – {status, message, data} for every HTTP reply.
"""

import sys
import traceback
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Optional

import pydantic
from flask import jsonify
from sqlalchemy.exc import IntegrityError
from werkzeug.exceptions import HTTPException

from zook_admin.errors import ApiError


def to_json(value: Any) -> Any:
    """Recursively convert DB values into JSON-safe primitives."""
    if isinstance(value, dict):
        return {k: to_json(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_json(v) for v in value]
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return value


def success_response(data: Any = None, message: str = "Success", status: int = 200):
    return jsonify({
        "status": "success",
        "message": message,
        "data": to_json(data),
    }), status


def error_response(message: str, status: int, errors: Optional[Any] = None):
    return jsonify({
        "status": "error",
        "message": message,
        "data": to_json(errors),
    }), status


def pydantic_errors(exc: pydantic.ValidationError):
    """Flatten pydantic errors into [{field, message}]."""
    out = []
    for err in exc.errors():
        field = ".".join(str(p) for p in err.get("loc", ())) or "body"
        out.append({"field": field, "message": err.get("msg", "invalid value")})
    return out


def register_error_handlers(app) -> None:
    """Map every failure kind onto the envelope."""

    @app.errorhandler(ApiError)
    def handle_api_error(e: ApiError):
        if e.status >= 500:
            print(f"[ERROR] {type(e).__name__}: {e.message}", file=sys.stderr)
        return error_response(e.message, e.status, e.errors)

    @app.errorhandler(pydantic.ValidationError)
    def handle_pydantic_error(e: pydantic.ValidationError):
        return error_response("Validation failed", 400, pydantic_errors(e))

    @app.errorhandler(IntegrityError)
    def handle_integrity_error(e: IntegrityError):
        print(f"[WARN] Integrity violation: {e.orig}", file=sys.stderr)
        return error_response("Resource already exists or violates a constraint", 409)

    @app.errorhandler(HTTPException)
    def handle_http_error(e: HTTPException):
        messages = {
            400: "Malformed request",
            404: "Endpoint not found",
            405: "Method not allowed",
        }
        return error_response(messages.get(e.code, e.name), e.code)

    @app.errorhandler(Exception)
    def handle_unexpected(e: Exception):
        print(f"[ERROR] Unhandled exception: {e}", file=sys.stderr)
        traceback.print_exc()
        return error_response("Internal server error", 500)
