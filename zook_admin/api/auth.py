"""
JWT authentication helpers and role gates for the Flask API.
"""

from datetime import datetime, timedelta, timezone
from functools import wraps
from typing import Any, Dict, Optional

import jwt
from flask import request

from zook_admin.config import SECRET_KEY, TOKEN_EXPIRY_HOURS
from zook_admin.envelope import error_response
from zook_admin.errors import UnauthorizedError
from zook_admin.rbac import principal_from_claims


def generate_token(admin: Dict[str, Any]) -> str:
    """Sign a token carrying the admin's id, role, and location."""
    now = datetime.now(timezone.utc)
    payload = {
        "id": admin["id"],
        "role": admin["role"],
        "country_id": admin.get("country_id"),
        "city_id": admin.get("city_id"),
        "iat": now,
        "exp": now + timedelta(hours=TOKEN_EXPIRY_HOURS),
    }
    return jwt.encode(payload, SECRET_KEY, algorithm="HS256")


def verify_token(token: str) -> Optional[Dict[str, Any]]:
    """Verify a JWT token and return the decoded payload (or None)."""
    try:
        return jwt.decode(token, SECRET_KEY, algorithms=["HS256"])
    except jwt.ExpiredSignatureError:
        return None
    except jwt.InvalidTokenError:
        return None


def token_required(f):
    """Decorator that attaches the verified Principal as request.principal."""
    @wraps(f)
    def decorated(*args, **kwargs):
        token = None

        if "Authorization" in request.headers:
            parts = request.headers["Authorization"].split(" ")
            if len(parts) != 2 or parts[0].lower() != "bearer":
                return error_response("Invalid authorization header format", 401)
            token = parts[1]

        if not token:
            return error_response("Authentication token is missing", 401)

        claims = verify_token(token)
        if not claims:
            return error_response("Invalid or expired token", 401)

        try:
            request.principal = principal_from_claims(claims)
        except UnauthorizedError as e:
            return error_response(e.message, 401)

        return f(*args, **kwargs)

    return decorated


def roles_required(*roles):
    """Restrict an endpoint to the given roles; apply after token_required."""
    def wrapper(f):
        @wraps(f)
        def decorated(*args, **kwargs):
            principal = getattr(request, "principal", None)
            if principal is None:
                return error_response("Authentication required", 401)
            if principal.role not in roles:
                return error_response("Insufficient permissions for this action", 403)
            return f(*args, **kwargs)
        return decorated
    return wrapper
