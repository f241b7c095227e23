"""
Banners, payment options, and promo codes.
"""

from typing import Any, Dict

from sqlalchemy import and_, or_, select, update

from zook_admin.controllers.base import BaseController, placement, same_or_null
from zook_admin.errors import ConflictError, ValidationError
from zook_admin.models import Principal
from zook_admin.positions import next_position, reposition
from zook_admin.query_shaper import (
    EntityQuery,
    boolean,
    custom,
    equals,
    parse_bool,
    search,
)
from zook_admin.rbac import authorize_mutation
from zook_admin.schema import (
    banners,
    cities,
    countries,
    media,
    orders,
    payment_options,
    promo_codes,
    stores,
    utcnow,
)
from zook_admin.schemas.marketing import (
    BannerCreate,
    BannerUpdate,
    PaymentOptionCreate,
    PaymentOptionUpdate,
    PromoCodeCreate,
    PromoCodeUpdate,
    check_promo_amounts,
    check_window,
)


# ── Banners ──────────────────────────────────────────────────────────

class BannerController(BaseController):
    table = banners
    label = "Banner"
    country_wide = True
    entity = EntityQuery(
        key="banners",
        source=banners
        .join(countries, banners.c.country_id == countries.c.id)
        .outerjoin(cities, banners.c.city_id == cities.c.id)
        .outerjoin(stores, banners.c.store_id == stores.c.id)
        .join(media, banners.c.media_id == media.c.id),
        columns=[
            banners,
            countries.c.name.label("country_name"),
            cities.c.name.label("city_name"),
            stores.c.name.label("store_name"),
            media.c.url.label("media_url"),
            media.c.type.label("media_type"),
        ],
        id_col=banners.c.id,
        country_col=banners.c.country_id,
        city_col=banners.c.city_id,
        country_wide=True,
        sort_fields={
            "position": banners.c.position,
            "name": banners.c.name,
            "created_at": banners.c.created_at,
            "start_date": banners.c.start_date,
        },
        default_sort="position",
        default_order="asc",
        filters=[
            search("search", banners.c.name),
            boolean("is_promotion", banners.c.is_promotion),
            boolean("is_active", banners.c.is_active),
            equals("store_id", banners.c.store_id),
        ],
    )

    @staticmethod
    def _group(country_id, city_id):
        return [banners.c.country_id == country_id, same_or_null(banners.c.city_id, city_id)]

    def _check_store(self, conn, store_id, country_id, city_id):
        if not store_id:
            return
        row = conn.execute(
            select(stores.c.country_id, stores.c.city_id).where(stores.c.id == store_id)
        ).mappings().first()
        if row is None or row["country_id"] != country_id:
            raise ValidationError("Invalid store_id for this country")
        if city_id is not None and row["city_id"] != city_id:
            raise ValidationError("Invalid store_id for this city")

    def create(self, principal: Principal, body: BannerCreate) -> Dict[str, Any]:
        values = body.model_dump()
        country_id, city_id = placement(principal, body.country_id, body.city_id)
        authorize_mutation(principal, country_id, city_id, country_wide=True)
        values.update(country_id=country_id, city_id=city_id)
        requested = values.pop("position")

        with self.engine.begin() as conn:
            self.check_country(conn, country_id)
            self.check_city(conn, country_id, city_id)
            self.check_media(conn, body.media_id, "banner", country_id, city_id)
            self._check_store(conn, body.store_id, country_id, city_id)
            group = self._group(country_id, city_id)
            self.ensure_unique(conn, "Banner name already exists in this location",
                               banners.c.name == body.name, *group)
            values["position"] = next_position(conn, banners, group)
            row_id = self.insert_row(conn, values)
            if requested is not None:
                reposition(conn, banners, row_id, requested, group)
            return self.detail(conn, row_id)

    def update(self, principal: Principal, row_id: str, body: BannerUpdate) -> Dict[str, Any]:
        changes = body.changes()
        with self.engine.begin() as conn:
            row = self.fetch_or_404(conn, row_id)
            self.authorize(conn, principal, row)
            country_id, city_id = row["country_id"], row["city_id"]
            try:
                check_window(changes.get("start_date", row["start_date"]),
                             changes.get("end_date", row["end_date"]))
            except ValueError as e:
                raise ValidationError(str(e))
            if "media_id" in changes:
                self.check_media(conn, changes["media_id"], "banner", country_id, city_id)
            if "store_id" in changes:
                self._check_store(conn, changes["store_id"], country_id, city_id)
            if "name" in changes:
                self.ensure_unique(conn, "Banner name already exists in this location",
                                   banners.c.name == changes["name"],
                                   *self._group(country_id, city_id), exclude_id=row_id)
            self.update_row(conn, row_id, changes)
            return self.detail(conn, row_id)

    def move(self, principal: Principal, row_id: str, position: int) -> Dict[str, Any]:
        with self.engine.begin() as conn:
            row = self.fetch_or_404(conn, row_id)
            self.authorize(conn, principal, row)
            reposition(conn, banners, row_id, position,
                       self._group(row["country_id"], row["city_id"]))
            return self.detail(conn, row_id)

    def delete(self, principal: Principal, row_id: str) -> None:
        self.remove(principal, row_id)


# ── Payment options ──────────────────────────────────────────────────

class PaymentOptionController(BaseController):
    table = payment_options
    label = "Payment option"
    city_scoped = False
    entity = EntityQuery(
        key="payment_options",
        source=payment_options
        .join(countries, payment_options.c.country_id == countries.c.id)
        .outerjoin(media, payment_options.c.logo_media_id == media.c.id),
        columns=[
            payment_options,
            countries.c.name.label("country_name"),
            media.c.url.label("logo_url"),
        ],
        id_col=payment_options.c.id,
        country_col=payment_options.c.country_id,
        sort_fields={
            "name": payment_options.c.name,
            "position": payment_options.c.position,
            "created_at": payment_options.c.created_at,
        },
        default_sort="position",
        default_order="asc",
        filters=[
            search("search", payment_options.c.name),
            equals("type", payment_options.c.type, choices=("cash", "card", "wallet")),
            equals("status", payment_options.c.status,
                   choices=("active", "disabled", "testing")),
            boolean("is_default", payment_options.c.is_default),
        ],
    )

    def locate(self, conn, row):
        return row["country_id"], None

    def _clear_default(self, conn, country_id, keep_id=None):
        stmt = update(payment_options).where(
            payment_options.c.country_id == country_id,
            payment_options.c.is_default.is_(True),
        )
        if keep_id is not None:
            stmt = stmt.where(payment_options.c.id != keep_id)
        conn.execute(stmt.values(is_default=False))

    def create(self, principal: Principal, body: PaymentOptionCreate) -> Dict[str, Any]:
        values = body.model_dump()
        country_id = body.country_id or principal.country_id
        authorize_mutation(principal, country_id, None, city_scoped=False)
        values["country_id"] = country_id
        requested = values.pop("position")

        with self.engine.begin() as conn:
            self.check_country(conn, country_id)
            self.check_media(conn, body.logo_media_id, "payment_logo", country_id,
                             field="logo_media_id")
            group = [payment_options.c.country_id == country_id]
            self.ensure_unique(conn, "Payment option with this name already exists in this country",
                               payment_options.c.name == body.name, *group)
            if body.is_default:
                self._clear_default(conn, country_id)
            values["position"] = next_position(conn, payment_options, group)
            row_id = self.insert_row(conn, values)
            if requested is not None:
                reposition(conn, payment_options, row_id, requested, group)
            return self.detail(conn, row_id)

    def update(self, principal: Principal, row_id: str,
               body: PaymentOptionUpdate) -> Dict[str, Any]:
        changes = body.changes()
        with self.engine.begin() as conn:
            row = self.fetch_or_404(conn, row_id)
            self.authorize(conn, principal, row)
            low = changes.get("minimum_amount", row["minimum_amount"])
            high = changes.get("maximum_amount", row["maximum_amount"])
            if low is not None and high is not None and low >= high:
                raise ValidationError("minimum_amount must be less than maximum_amount")
            if "logo_media_id" in changes:
                self.check_media(conn, changes["logo_media_id"], "payment_logo",
                                 row["country_id"], field="logo_media_id")
            if "name" in changes:
                self.ensure_unique(conn,
                                   "Payment option with this name already exists in this country",
                                   payment_options.c.name == changes["name"],
                                   payment_options.c.country_id == row["country_id"],
                                   exclude_id=row_id)
            if changes.get("is_default"):
                self._clear_default(conn, row["country_id"], keep_id=row_id)
            self.update_row(conn, row_id, changes)
            return self.detail(conn, row_id)

    def move(self, principal: Principal, row_id: str, position: int) -> Dict[str, Any]:
        with self.engine.begin() as conn:
            row = self.fetch_or_404(conn, row_id)
            self.authorize(conn, principal, row)
            reposition(conn, payment_options, row_id, position,
                       [payment_options.c.country_id == row["country_id"]])
            return self.detail(conn, row_id)

    def delete(self, principal: Principal, row_id: str) -> None:
        self.remove(principal, row_id)

    def before_delete(self, conn, principal, row):
        if row["is_default"] and row["status"] == "active":
            raise ConflictError(
                "Cannot delete active default payment option. Make another option default first."
            )
        self.ensure_no_dependants(conn, "Cannot delete payment option used by orders",
                                  orders, orders.c.payment_option_id == row["id"])


# ── Promo codes ──────────────────────────────────────────────────────

def _expired_filter(raw):
    now = utcnow()
    if parse_bool("is_expired", raw):
        return and_(promo_codes.c.end_date.isnot(None), promo_codes.c.end_date < now)
    return or_(promo_codes.c.end_date.is_(None), promo_codes.c.end_date >= now)


class PromoCodeController(BaseController):
    table = promo_codes
    label = "Promo code"
    country_wide = True
    entity = EntityQuery(
        key="promo_codes",
        source=promo_codes
        .join(countries, promo_codes.c.country_id == countries.c.id)
        .outerjoin(cities, promo_codes.c.city_id == cities.c.id),
        columns=[
            promo_codes,
            countries.c.name.label("country_name"),
            cities.c.name.label("city_name"),
        ],
        id_col=promo_codes.c.id,
        country_col=promo_codes.c.country_id,
        city_col=promo_codes.c.city_id,
        country_wide=True,
        sort_fields={
            "code": promo_codes.c.code,
            "created_at": promo_codes.c.created_at,
            "start_date": promo_codes.c.start_date,
            "end_date": promo_codes.c.end_date,
        },
        filters=[
            search("search", promo_codes.c.code, promo_codes.c.description),
            equals("type", promo_codes.c.type, choices=("percentage", "fixed")),
            boolean("is_active", promo_codes.c.is_active),
            custom("is_expired", _expired_filter),
        ],
    )

    def present(self, row):
        now = utcnow()
        row["is_expired"] = bool(row["end_date"] and row["end_date"] < now)
        row["is_started"] = not row["start_date"] or row["start_date"] <= now
        row["is_limit_reached"] = bool(row["usage_limit"]
                                       and row["used_count"] >= row["usage_limit"])
        return row

    def _check_code(self, conn, code, country_id, city_id, exclude_id=None):
        self.ensure_unique(conn, "Promo code already exists for this location",
                           promo_codes.c.code == code,
                           promo_codes.c.country_id == country_id,
                           same_or_null(promo_codes.c.city_id, city_id),
                           exclude_id=exclude_id)

    def create(self, principal: Principal, body: PromoCodeCreate) -> Dict[str, Any]:
        values = body.model_dump()
        country_id, city_id = placement(principal, body.country_id, body.city_id)
        authorize_mutation(principal, country_id, city_id, country_wide=True)
        values.update(country_id=country_id, city_id=city_id, used_count=0)
        with self.engine.begin() as conn:
            self.check_country(conn, country_id)
            self.check_city(conn, country_id, city_id)
            self._check_code(conn, body.code, country_id, city_id)
            row_id = self.insert_row(conn, values)
            return self.detail(conn, row_id)

    def update(self, principal: Principal, row_id: str, body: PromoCodeUpdate) -> Dict[str, Any]:
        changes = body.changes()
        with self.engine.begin() as conn:
            row = self.fetch_or_404(conn, row_id)
            self.authorize(conn, principal, row)
            merged = dict(row, **changes)
            try:
                check_promo_amounts(merged["type"], merged["discount_amount"],
                                    merged["maximum_discount"])
                check_window(merged["start_date"], merged["end_date"])
            except ValueError as e:
                raise ValidationError(str(e))
            if "code" in changes:
                self._check_code(conn, changes["code"], row["country_id"], row["city_id"],
                                 exclude_id=row_id)
            self.update_row(conn, row_id, changes)
            return self.detail(conn, row_id)

    def delete(self, principal: Principal, row_id: str) -> None:
        self.remove(principal, row_id)

    def before_delete(self, conn, principal, row):
        if row["used_count"] > 0:
            raise ConflictError("Cannot delete promo code that has been used. Deactivate it instead.")
