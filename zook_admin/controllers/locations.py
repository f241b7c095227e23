"""
Countries, cities, and the delivery zones embedded in each city.
"""

from typing import Any, Dict, List

from sqlalchemy import func, select

from zook_admin.controllers.base import BaseController
from zook_admin.errors import ConflictError, NotFoundError
from zook_admin.models import Principal
from zook_admin.query_shaper import EntityQuery, boolean, equals, search
from zook_admin.rbac import authorize_mutation, require_super_admin
from zook_admin.schema import (
    admins,
    banners,
    categories,
    cities,
    countries,
    drivers,
    media,
    new_id,
    orders,
    promo_codes,
    ratings,
    stores,
    support_tickets,
    users,
)
from zook_admin.schemas.locations import (
    CityCreate,
    CityUpdate,
    CountryCreate,
    CountryUpdate,
    ZoneCreate,
    ZoneUpdate,
)


# Rows that pin a city in place, checked in this order before a delete.
CITY_DEPENDANTS = (
    (admins, "admins"),
    (users, "users"),
    (drivers, "drivers"),
    (stores, "stores"),
    (orders, "orders"),
    (support_tickets, "support tickets"),
    (categories, "categories"),
    (banners, "banners"),
    (promo_codes, "promo codes"),
    (ratings, "ratings"),
    (media, "media"),
)


def _count_of(table):
    return (
        select(func.count())
        .select_from(table)
        .where(table.c.country_id == countries.c.id)
        .scalar_subquery()
    )


# ── Countries ────────────────────────────────────────────────────────

class CountryController(BaseController):
    table = countries
    label = "Country"
    entity = EntityQuery(
        key="countries",
        source=countries,
        columns=[
            countries,
            _count_of(cities).label("total_cities"),
            _count_of(admins).label("total_admins"),
            _count_of(users).label("total_users"),
        ],
        id_col=countries.c.id,
        country_col=countries.c.id,
        sort_fields={"name": countries.c.name, "created_at": countries.c.created_at},
        filters=[
            search("search", countries.c.name, countries.c.code),
            boolean("is_active", countries.c.is_active),
            equals("delivery_fee_type", countries.c.delivery_fee_type,
                   choices=("zone", "fixed", "distance")),
        ],
    )

    def create(self, principal: Principal, body: CountryCreate) -> Dict[str, Any]:
        require_super_admin(principal, "create countries")
        with self.engine.begin() as conn:
            self.ensure_unique(conn, "Country with this code already exists",
                               countries.c.code == body.code)
            row_id = self.insert_row(conn, body.model_dump())
            return self.detail(conn, row_id)

    def update(self, principal: Principal, row_id: str, body: CountryUpdate) -> Dict[str, Any]:
        require_super_admin(principal, "update countries")
        changes = body.changes()
        with self.engine.begin() as conn:
            self.fetch_or_404(conn, row_id)
            if "code" in changes:
                self.ensure_unique(conn, "Country with this code already exists",
                                   countries.c.code == changes["code"], exclude_id=row_id)
            self.update_row(conn, row_id, changes)
            return self.detail(conn, row_id)

    def delete(self, principal: Principal, row_id: str) -> None:
        require_super_admin(principal, "delete countries")
        self.remove(principal, row_id)

    def before_delete(self, conn, principal, row):
        for table, what in ((cities, "cities"), (admins, "admins"), (users, "users")):
            self.ensure_no_dependants(
                conn, f"Cannot delete country with associated {what}",
                table, table.c.country_id == row["id"],
            )


# ── Cities ───────────────────────────────────────────────────────────

class CityController(BaseController):
    table = cities
    label = "City"
    entity = EntityQuery(
        key="cities",
        source=cities.join(countries, cities.c.country_id == countries.c.id),
        columns=[cities, countries.c.name.label("country_name")],
        id_col=cities.c.id,
        country_col=cities.c.country_id,
        city_col=cities.c.id,
        sort_fields={"name": cities.c.name, "created_at": cities.c.created_at},
        filters=[
            search("search", cities.c.name),
            boolean("is_active", cities.c.is_active),
            boolean("has_delivery", cities.c.has_delivery),
        ],
    )

    def create(self, principal: Principal, body: CityCreate) -> Dict[str, Any]:
        country_id = body.country_id or principal.country_id
        # creating a city is a country-level action
        authorize_mutation(principal, country_id, None)
        values = body.model_dump()
        values["country_id"] = country_id
        values["zones"] = [dict(z, id=new_id()) for z in values["zones"]]
        with self.engine.begin() as conn:
            self.check_country(conn, country_id)
            self.ensure_unique(conn, "City with this name already exists in this country",
                               cities.c.country_id == country_id, cities.c.name == body.name)
            row_id = self.insert_row(conn, values)
            return self.detail(conn, row_id)

    def update(self, principal: Principal, row_id: str, body: CityUpdate) -> Dict[str, Any]:
        changes = body.changes()
        with self.engine.begin() as conn:
            row = self.fetch_or_404(conn, row_id)
            self.authorize(conn, principal, row)
            if "name" in changes:
                self.ensure_unique(conn, "City with this name already exists in this country",
                                   cities.c.country_id == row["country_id"],
                                   cities.c.name == changes["name"], exclude_id=row_id)
            self.update_row(conn, row_id, changes)
            return self.detail(conn, row_id)

    def locate(self, conn, row):
        return row["country_id"], row["id"]

    def delete(self, principal: Principal, row_id: str) -> None:
        with self.engine.begin() as conn:
            row = self.fetch_or_404(conn, row_id)
            self.authorize(conn, principal, row)
            for table, what in CITY_DEPENDANTS:
                self.ensure_no_dependants(conn, f"Cannot delete city with associated {what}",
                                          table, table.c.city_id == row_id)
            self.delete_row(conn, row_id)

    # ── Zones ────────────────────────────────────────────────────────

    def list_zones(self, principal: Principal, city_id: str) -> List[Dict[str, Any]]:
        with self.engine.connect() as conn:
            return list(self.fetch_visible(conn, principal, city_id)["zones"] or [])

    def add_zone(self, principal: Principal, city_id: str, body: ZoneCreate) -> Dict[str, Any]:
        with self.engine.begin() as conn:
            row = self.fetch_or_404(conn, city_id)
            self.authorize(conn, principal, row)
            zones = list(row["zones"] or [])
            _ensure_zone_name_free(zones, body.name)
            zone = dict(body.model_dump(), id=new_id())
            zones.append(zone)
            self.update_row(conn, city_id, {"zones": zones})
            return zone

    def update_zone(self, principal: Principal, city_id: str, zone_id: str,
                    body: ZoneUpdate) -> Dict[str, Any]:
        with self.engine.begin() as conn:
            row = self.fetch_or_404(conn, city_id)
            self.authorize(conn, principal, row)
            zones = list(row["zones"] or [])
            idx = _zone_index(zones, zone_id)
            changes = body.changes()
            if "name" in changes and changes["name"] != zones[idx]["name"]:
                _ensure_zone_name_free(zones, changes["name"], skip=idx)
            zones[idx] = dict(zones[idx], **changes)
            self.update_row(conn, city_id, {"zones": zones})
            return zones[idx]

    def delete_zone(self, principal: Principal, city_id: str, zone_id: str) -> None:
        with self.engine.begin() as conn:
            row = self.fetch_or_404(conn, city_id)
            self.authorize(conn, principal, row)
            zones = list(row["zones"] or [])
            idx = _zone_index(zones, zone_id)
            del zones[idx]
            self.update_row(conn, city_id, {"zones": zones})


def _zone_index(zones: List[Dict], zone_id: str) -> int:
    for i, zone in enumerate(zones):
        if zone.get("id") == zone_id:
            return i
    raise NotFoundError("Zone not found")


def _ensure_zone_name_free(zones: List[Dict], name: str, skip: int = -1) -> None:
    for i, zone in enumerate(zones):
        if i != skip and zone.get("name", "").lower() == name.lower():
            raise ConflictError("Zone with this name already exists in this city")
