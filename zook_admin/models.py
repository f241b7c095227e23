"""
Domain dataclasses used across the application.
"""

from dataclasses import dataclass
from typing import Optional

from zook_admin.config import ROLE_SUPER_ADMIN

SCOPE_UNRESTRICTED = "unrestricted"
SCOPE_COUNTRY = "country"
SCOPE_CITY = "city"


@dataclass(frozen=True)
class Principal:
    """The authenticated admin identity attached to a request."""
    id: str
    role: str                  # one of config.ALL_ROLES
    country_id: Optional[str]  # None only for super_admin
    city_id: Optional[str]     # None for super_admin and country-level admins

    @property
    def is_super_admin(self) -> bool:
        return self.role == ROLE_SUPER_ADMIN


@dataclass(frozen=True)
class AccessScope:
    """Location boundary derived from a Principal for a single request."""
    kind: str
    country_id: Optional[str] = None
    city_id: Optional[str] = None

    @property
    def unrestricted(self) -> bool:
        return self.kind == SCOPE_UNRESTRICTED


@dataclass
class PageSpec:
    """Validated sort/page request."""
    page: int
    limit: int
    sort_by: str
    sort_order: str

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


@dataclass
class PaymentResult:
    """Outcome of a payment validation call."""
    success: bool
    message: str
    status: str                # "paid" or "not_paid"
    transaction_id: Optional[str] = None
