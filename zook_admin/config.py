"""
Centralised configuration constants and environment helpers.
"""

import os
import sys

from dotenv import load_dotenv

load_dotenv()

# ── Roles ────────────────────────────────────────────────────────────
ROLE_SUPER_ADMIN = "super_admin"
ROLE_ADMIN = "admin"
ROLE_FINANCE = "finance"
ROLE_SUPPORT = "support"
ROLE_OPERATOR = "operator"

ALL_ROLES = {ROLE_SUPER_ADMIN, ROLE_ADMIN, ROLE_FINANCE, ROLE_SUPPORT, ROLE_OPERATOR}

# Route gates
READ_ROLES = (ROLE_SUPER_ADMIN, ROLE_ADMIN, ROLE_OPERATOR)
WRITE_ROLES = (ROLE_SUPER_ADMIN, ROLE_ADMIN)
OPERATOR_WRITE_ROLES = (ROLE_SUPER_ADMIN, ROLE_ADMIN, ROLE_OPERATOR)
SUPPORT_ROLES = (ROLE_SUPER_ADMIN, ROLE_ADMIN, ROLE_SUPPORT, ROLE_OPERATOR)
FINANCE_READ_ROLES = (ROLE_SUPER_ADMIN, ROLE_ADMIN, ROLE_FINANCE, ROLE_OPERATOR)

# ── Pagination ───────────────────────────────────────────────────────
DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10
MAX_PAGE_LIMIT = 100

# ── Media metadata limits ────────────────────────────────────────────
MEDIA_LIMITS = {
    "image": {"max_bytes": 5 * 1024 * 1024, "mime_types": {"image/jpeg", "image/png"}},
    "video": {"max_bytes": 100 * 1024 * 1024, "mime_types": {"video/mp4"}},
    "gif": {"max_bytes": 10 * 1024 * 1024, "mime_types": {"image/gif"}},
}

# ── Orders ───────────────────────────────────────────────────────────
ORDER_TRANSITIONS = {
    "pending": {"preparing", "cancelled"},
    "preparing": {"done_preparing", "cancelled"},
    "done_preparing": {"on_way", "cancelled"},
    "on_way": {"delivered", "cancelled"},
    "delivered": set(),
    "cancelled": set(),
}

# ── API server ───────────────────────────────────────────────────────
SECRET_KEY = os.getenv("JWT_SECRET_KEY", "dev-secret-key-change-in-production")
TOKEN_EXPIRY_HOURS = 24
SERVICE_NAME = "Zook Admin API"
SERVICE_VERSION = "1.0.0"


def get_env(name: str) -> str:
    """Return an environment variable or exit with an error message."""
    value = os.getenv(name)
    if not value:
        print(f"ERROR: env var {name} is not set", file=sys.stderr)
        sys.exit(1)
    return value
