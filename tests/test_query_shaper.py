"""
Unit tests for the query shaper – page specs, value parsing, and windowed reads.
"""

from datetime import datetime

import pytest

from zook_admin.controllers.catalog import StoreController
from zook_admin.errors import ValidationError
from zook_admin.models import PageSpec
from zook_admin.query_shaper import (
    EntityQuery,
    like_pattern,
    paginated,
    parse_bool,
    parse_datetime,
    parse_number,
    parse_page_spec,
    shape_query,
)
from zook_admin.rbac import resolve_scope

ENTITY = EntityQuery(
    key="things",
    source=None,
    columns=[],
    id_col=None,
    sort_fields={"created_at": None, "name": None},
)


# ── Tests: parse_page_spec ───────────────────────────────────────────

def test_page_spec_defaults():
    spec = parse_page_spec({}, ENTITY)
    assert (spec.page, spec.limit, spec.sort_by, spec.sort_order) == (1, 10, "created_at", "desc")
    assert spec.offset == 0


def test_page_spec_clamps_limit():
    spec = parse_page_spec({"limit": "500", "page": "3"}, ENTITY)
    assert spec.limit == 100
    assert spec.offset == 200


def test_page_spec_sort_order_case_insensitive():
    assert parse_page_spec({"sort_order": "ASC", "sort_by": "name"}, ENTITY).sort_order == "asc"


@pytest.mark.parametrize("args", [
    {"page": "0"},
    {"page": "-2"},
    {"limit": "abc"},
    {"sort_by": "password"},
    {"sort_order": "up"},
])
def test_page_spec_rejects(args):
    with pytest.raises(ValidationError):
        parse_page_spec(args, ENTITY)


# ── Tests: value parsing ─────────────────────────────────────────────

def test_parse_bool_literals_only():
    assert parse_bool("is_active", "true") is True
    assert parse_bool("is_active", "FALSE") is False
    with pytest.raises(ValidationError):
        parse_bool("is_active", "yes")


def test_parse_number():
    assert parse_number("min_price", "12.5") == 12.5
    with pytest.raises(ValidationError):
        parse_number("min_price", "cheap")


def test_parse_datetime_normalises_to_naive_utc():
    value = parse_datetime("from_date", "2024-05-01T12:00:00+02:00")
    assert value == datetime(2024, 5, 1, 10, 0, 0)
    assert value.tzinfo is None
    with pytest.raises(ValidationError):
        parse_datetime("from_date", "yesterday")


def test_like_pattern_escapes_wildcards():
    assert like_pattern("50%_off") == "%50\\%\\_off%"
    assert like_pattern("a\\b") == "%a\\\\b%"


# ── Tests: paginated ─────────────────────────────────────────────────

def test_paginated_total_pages():
    spec = PageSpec(page=1, limit=10, sort_by="created_at", sort_order="desc")
    assert paginated("things", [], 0, spec)["totalPages"] == 0
    out = paginated("things", [{"id": 1}], 21, spec)
    assert out["totalPages"] == 3
    assert out["things"] == [{"id": 1}]
    assert (out["total"], out["page"], out["limit"]) == (21, 1, 10)


# ── Tests: shape_query against a database ────────────────────────────

def test_shape_query_page_past_end(engine, world):
    entity = StoreController.entity
    spec = parse_page_spec({"page": "9"}, entity)
    with engine.connect() as conn:
        rows, total = shape_query(conn, entity, {}, resolve_scope(world.super), spec)
    assert rows == []
    assert total == 2


def test_shape_query_scope_and_sort(engine, world):
    entity = StoreController.entity
    spec = parse_page_spec({"sort_by": "name", "sort_order": "asc"}, entity)
    with engine.connect() as conn:
        rows, total = shape_query(conn, entity, {}, resolve_scope(world.admin_a), spec)
        city_rows, city_total = shape_query(conn, entity, {}, resolve_scope(world.admin_a1), spec)
    assert [r["name"] for r in rows] == ["Burger Barn", "Pizza Place"]
    assert total == 2
    assert [r["id"] for r in city_rows] == [world.store_a1]
    assert city_total == 1


def test_shape_query_search_treats_wildcards_literally(engine, world):
    entity = StoreController.entity
    spec = parse_page_spec({}, entity)
    with engine.connect() as conn:
        _, total = shape_query(conn, entity, {"search": "%"}, resolve_scope(world.super), spec)
        _, found = shape_query(conn, entity, {"search": "pizza"}, resolve_scope(world.super), spec)
    assert total == 0
    assert found == 1


def test_shape_query_bad_filter_value(engine, world):
    entity = StoreController.entity
    spec = parse_page_spec({}, entity)
    with engine.connect() as conn:
        with pytest.raises(ValidationError):
            shape_query(conn, entity, {"is_active": "maybe"}, resolve_scope(world.super), spec)
