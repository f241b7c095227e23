"""
Unit tests for RBAC – principals, read scopes, and write authorization.
"""

import pytest

from zook_admin.errors import ForbiddenError, UnauthorizedError
from zook_admin.models import SCOPE_CITY, SCOPE_COUNTRY, SCOPE_UNRESTRICTED, Principal
from zook_admin.rbac import (
    authorize_admin_management,
    authorize_mutation,
    forbid_self_delete,
    principal_from_claims,
    require_super_admin,
    resolve_scope,
    scope_predicates,
)
from zook_admin.schema import stores

SUPER = Principal(id="s", role="super_admin", country_id=None, city_id=None)
COUNTRY_ADMIN = Principal(id="c", role="admin", country_id="A", city_id=None)
CITY_ADMIN = Principal(id="t", role="admin", country_id="A", city_id="A1")


# ── Tests: principal_from_claims ─────────────────────────────────────

def test_principal_from_claims_city_admin():
    p = principal_from_claims({"id": "x", "role": "Operator", "country_id": "A", "city_id": "A1"})
    assert p.role == "operator"
    assert p.country_id == "A"
    assert p.city_id == "A1"
    assert not p.is_super_admin


def test_principal_from_claims_super_admin():
    p = principal_from_claims({"id": "x", "role": "super_admin"})
    assert p.is_super_admin
    assert p.country_id is None


@pytest.mark.parametrize("claims", [
    {"role": "admin", "country_id": "A"},
    {"id": "x", "role": "janitor", "country_id": "A"},
    {"id": "x", "role": "admin"},
    {"id": "x", "role": "super_admin", "country_id": "A"},
])
def test_principal_from_claims_rejects(claims):
    with pytest.raises(UnauthorizedError):
        principal_from_claims(claims)


# ── Tests: resolve_scope ─────────────────────────────────────────────

def test_scope_super_admin_unrestricted_with_override():
    scope = resolve_scope(SUPER, country_id="B")
    assert scope.kind == SCOPE_UNRESTRICTED
    assert scope.country_id == "B"
    assert scope.city_id is None


def test_scope_ignores_override_for_regular_admin():
    scope = resolve_scope(COUNTRY_ADMIN, country_id="B", city_id="B1")
    assert scope.kind == SCOPE_COUNTRY
    assert scope.country_id == "A"
    assert scope.city_id is None


def test_scope_city_admin():
    scope = resolve_scope(CITY_ADMIN)
    assert scope.kind == SCOPE_CITY
    assert (scope.country_id, scope.city_id) == ("A", "A1")


def test_scope_predicates_count():
    assert scope_predicates(resolve_scope(SUPER), stores.c.country_id, stores.c.city_id) == []
    assert len(scope_predicates(resolve_scope(COUNTRY_ADMIN), stores.c.country_id,
                                stores.c.city_id)) == 1
    assert len(scope_predicates(resolve_scope(CITY_ADMIN), stores.c.country_id,
                                stores.c.city_id)) == 2


# ── Tests: authorize_mutation ────────────────────────────────────────

def test_super_admin_may_write_anywhere():
    authorize_mutation(SUPER, "B", "B1")
    authorize_mutation(SUPER, None, None)


def test_wrong_country_is_forbidden():
    with pytest.raises(ForbiddenError) as e:
        authorize_mutation(COUNTRY_ADMIN, "B", None)
    assert e.value.kind == ForbiddenError.WRONG_COUNTRY


def test_wrong_city_is_forbidden():
    with pytest.raises(ForbiddenError) as e:
        authorize_mutation(CITY_ADMIN, "A", "A2")
    assert e.value.kind == ForbiddenError.WRONG_CITY


def test_city_admin_country_level_row():
    with pytest.raises(ForbiddenError):
        authorize_mutation(CITY_ADMIN, "A", None)
    authorize_mutation(CITY_ADMIN, "A", None, country_wide=True)


def test_city_admin_not_city_scoped_entity():
    authorize_mutation(CITY_ADMIN, "A", None, city_scoped=False)


def test_country_admin_any_city_of_country():
    authorize_mutation(COUNTRY_ADMIN, "A", "A2")
    authorize_mutation(COUNTRY_ADMIN, "A", None)


# ── Tests: admin management guards ───────────────────────────────────

def test_only_super_admin_touches_super_accounts():
    with pytest.raises(ForbiddenError):
        authorize_admin_management(COUNTRY_ADMIN, "super_admin")
    with pytest.raises(ForbiddenError):
        authorize_admin_management(COUNTRY_ADMIN, "admin", new_role="super_admin")
    authorize_admin_management(COUNTRY_ADMIN, "operator", new_role="finance")
    authorize_admin_management(SUPER, "super_admin", new_role="super_admin")


def test_forbid_self_delete():
    with pytest.raises(ForbiddenError):
        forbid_self_delete(COUNTRY_ADMIN, "c")
    forbid_self_delete(COUNTRY_ADMIN, "other")


def test_require_super_admin_message():
    with pytest.raises(ForbiddenError) as e:
        require_super_admin(COUNTRY_ADMIN, "create countries")
    assert e.value.message == "Only super admins can create countries"
