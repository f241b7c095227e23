"""
Ratings – customer reviews of stores and items, moderation, and target summaries.
"""

from typing import Any, Dict

from sqlalchemy import select, update

from zook_admin.controllers.base import BaseController
from zook_admin.errors import ValidationError
from zook_admin.models import Principal
from zook_admin.query_shaper import EntityQuery, boolean, custom, equals
from zook_admin.rbac import authorize_mutation
from zook_admin.schema import (
    admins,
    cities,
    countries,
    ratings,
    store_items,
    stores,
    users,
    utcnow,
)
from zook_admin.schemas.support import RatingCreate, RatingModeration, RatingUpdate
from zook_admin.stats import rating_stats, ratings_summary

TARGET_TABLES = {"store": stores, "item": store_items}


def _star(raw) -> int:
    try:
        value = int(raw)
    except (TypeError, ValueError):
        value = 0
    if not 1 <= value <= 5:
        raise ValidationError("star_count must be an integer between 1 and 5")
    return value


class RatingController(BaseController):
    table = ratings
    label = "Rating"
    country_wide = True
    entity = EntityQuery(
        key="ratings",
        source=ratings
        .join(users, ratings.c.user_id == users.c.id)
        .join(countries, ratings.c.country_id == countries.c.id)
        .outerjoin(cities, ratings.c.city_id == cities.c.id)
        .outerjoin(admins, ratings.c.moderated_by == admins.c.id),
        columns=[
            ratings,
            users.c.username.label("user_name"),
            countries.c.name.label("country_name"),
            cities.c.name.label("city_name"),
            admins.c.username.label("moderator_name"),
        ],
        id_col=ratings.c.id,
        country_col=ratings.c.country_id,
        city_col=ratings.c.city_id,
        country_wide=True,
        sort_fields={
            "star_count": ratings.c.star_count,
            "created_at": ratings.c.created_at,
            "status": ratings.c.status,
        },
        filters=[
            equals("target_type", ratings.c.target_type, choices=("store", "item")),
            equals("target_id", ratings.c.target_id),
            equals("user_id", ratings.c.user_id),
            equals("status", ratings.c.status,
                   choices=("pending", "approved", "rejected", "reported")),
            custom("star_count", lambda raw: ratings.c.star_count == _star(raw)),
            boolean("is_active", ratings.c.is_active),
        ],
    )

    def list(self, principal: Principal, args) -> Dict[str, Any]:
        result = super().list(principal, args)
        target_type, target_id = args.get("target_type"), args.get("target_id")
        if target_type and target_id:
            with self.engine.connect() as conn:
                result["stats"] = rating_stats(self._approved(conn, target_type, target_id))
        return result

    @staticmethod
    def _approved(conn, target_type, target_id):
        rows = conn.execute(
            select(ratings.c.star_count).where(
                ratings.c.target_type == target_type,
                ratings.c.target_id == target_id,
                ratings.c.status == "approved",
                ratings.c.is_active.is_(True),
            )
        ).mappings()
        return [dict(r) for r in rows]

    def _refresh_target(self, conn, target_type, target_id):
        """Recompute the {count, summary} blob stored on the rated row."""
        table = TARGET_TABLES[target_type]
        summary = ratings_summary(self._approved(conn, target_type, target_id))
        conn.execute(update(table).where(table.c.id == target_id).values(ratings=summary))

    def _target_location(self, conn, target_type, target_id):
        if target_type == "store":
            stmt = select(stores.c.country_id, stores.c.city_id).where(stores.c.id == target_id)
        else:
            stmt = (
                select(stores.c.country_id, stores.c.city_id)
                .select_from(store_items.join(stores, store_items.c.store_id == stores.c.id))
                .where(store_items.c.id == target_id)
            )
        row = conn.execute(stmt).mappings().first()
        if row is None:
            raise ValidationError(f"Invalid target_id: {target_type} not found")
        return row["country_id"], row["city_id"]

    def create(self, principal: Principal, body: RatingCreate) -> Dict[str, Any]:
        values = body.model_dump()
        with self.engine.begin() as conn:
            if not self.exists(conn, users, users.c.id == body.user_id):
                raise ValidationError("Invalid user_id")
            country_id, city_id = self._target_location(conn, body.target_type, body.target_id)
            authorize_mutation(principal, country_id, city_id, country_wide=True)
            self.ensure_unique(conn, "User has already rated this target",
                               ratings.c.user_id == body.user_id,
                               ratings.c.target_type == body.target_type,
                               ratings.c.target_id == body.target_id)
            values.update(country_id=country_id, city_id=city_id,
                          status="pending", is_active=True)
            row_id = self.insert_row(conn, values)
            return self.detail(conn, row_id)

    def update(self, principal: Principal, row_id: str, body: RatingUpdate) -> Dict[str, Any]:
        changes = body.changes()
        with self.engine.begin() as conn:
            row = self.fetch_or_404(conn, row_id)
            self.authorize(conn, principal, row)
            if row["status"] in ("reported", "rejected"):
                raise ValidationError("Rating cannot be updated")
            self.update_row(conn, row_id, changes)
            if row["status"] == "approved":
                self._refresh_target(conn, row["target_type"], row["target_id"])
            return self.detail(conn, row_id)

    def moderate(self, principal: Principal, row_id: str,
                 body: RatingModeration) -> Dict[str, Any]:
        with self.engine.begin() as conn:
            row = self.fetch_or_404(conn, row_id)
            self.authorize(conn, principal, row)
            self.update_row(conn, row_id, {
                "status": body.status,
                "report_reason": body.report_reason,
                "moderated_by": principal.id,
                "moderated_at": utcnow(),
            })
            self._refresh_target(conn, row["target_type"], row["target_id"])
            return self.detail(conn, row_id)

    def delete(self, principal: Principal, row_id: str) -> None:
        with self.engine.begin() as conn:
            row = self.fetch_or_404(conn, row_id)
            self.authorize(conn, principal, row)
            self.delete_row(conn, row_id)
            self._refresh_target(conn, row["target_type"], row["target_id"])
