"""
Role-Based Access Control – building principals and location scopes.
"""

from typing import Any, Dict, List, Optional

from sqlalchemy import or_

from zook_admin.config import ALL_ROLES, ROLE_SUPER_ADMIN
from zook_admin.errors import ForbiddenError, UnauthorizedError
from zook_admin.models import (
    SCOPE_CITY,
    SCOPE_COUNTRY,
    SCOPE_UNRESTRICTED,
    AccessScope,
    Principal,
)


def principal_from_claims(claims: Dict[str, Any]) -> Principal:
    """Build a Principal from verified token claims."""
    admin_id = claims.get("id")
    if not admin_id:
        raise UnauthorizedError("Token is missing the admin id")

    role = str(claims.get("role") or "").strip().lower()
    if role not in ALL_ROLES:
        raise UnauthorizedError(f"Unsupported role '{claims.get('role')}' in token")

    country_id = claims.get("country_id")
    city_id = claims.get("city_id")

    if role == ROLE_SUPER_ADMIN:
        if country_id or city_id:
            raise UnauthorizedError("Super admin token must not carry a location")
    elif not country_id:
        raise UnauthorizedError(f"Role '{role}' requires a country assignment")

    return Principal(id=str(admin_id), role=role, country_id=country_id, city_id=city_id)


def resolve_scope(principal: Principal, country_id: Optional[str] = None,
                  city_id: Optional[str] = None) -> AccessScope:
    """
    Derive the read scope for a request.
    Location overrides are honoured for super admins only; every other
    role is pinned to its own country (and city, when assigned).
    """
    if principal.is_super_admin:
        return AccessScope(SCOPE_UNRESTRICTED, country_id or None, city_id or None)
    if principal.city_id:
        return AccessScope(SCOPE_CITY, principal.country_id, principal.city_id)
    return AccessScope(SCOPE_COUNTRY, principal.country_id)


def scope_predicates(scope: AccessScope, country_col, city_col=None,
                     country_wide: bool = False) -> List:
    """Return the WHERE predicates a query must carry under *scope*."""
    preds = []
    if scope.country_id:
        preds.append(country_col == scope.country_id)
    if scope.city_id and city_col is not None:
        if country_wide and not scope.unrestricted:
            preds.append(or_(city_col == scope.city_id, city_col.is_(None)))
        else:
            preds.append(city_col == scope.city_id)
    return preds


def authorize_mutation(principal: Principal, country_id: Optional[str],
                       city_id: Optional[str] = None, *, country_wide: bool = False,
                       city_scoped: bool = True) -> None:
    """
    Raise ForbiddenError unless *principal* may write a row located at
    (country_id, city_id).
    """
    if principal.is_super_admin:
        return

    if country_id != principal.country_id:
        raise ForbiddenError("Cannot modify resources from a different country",
                             kind=ForbiddenError.WRONG_COUNTRY)

    if not principal.city_id or not city_scoped:
        return

    if city_id is None:
        if country_wide:
            return
        raise ForbiddenError("Cannot modify country-level resources from a city account",
                             kind=ForbiddenError.WRONG_CITY)

    if city_id != principal.city_id:
        raise ForbiddenError("Cannot modify resources from a different city",
                             kind=ForbiddenError.WRONG_CITY)


def require_super_admin(principal: Principal, action: str = "perform this action") -> None:
    if not principal.is_super_admin:
        raise ForbiddenError(f"Only super admins can {action}")


# ── Admin account management ─────────────────────────────────────────

def guard_admin_target(principal: Principal, target_role: str) -> None:
    """Only a super admin may touch an existing super admin account."""
    if target_role == ROLE_SUPER_ADMIN and not principal.is_super_admin:
        raise ForbiddenError("Only super admins can manage super admin accounts")


def guard_role_assignment(principal: Principal, new_role: Optional[str]) -> None:
    """Only a super admin may grant the super admin role."""
    if new_role == ROLE_SUPER_ADMIN and not principal.is_super_admin:
        raise ForbiddenError("Only super admins can grant the super admin role")


def forbid_self_delete(principal: Principal, target_id: str) -> None:
    if principal.id == target_id:
        raise ForbiddenError("You cannot delete your own account")


def authorize_admin_management(principal: Principal, target_role: Optional[str],
                               new_role: Optional[str] = None) -> None:
    guard_admin_target(principal, target_role)
    guard_role_assignment(principal, new_role)
