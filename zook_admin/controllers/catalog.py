"""
Marketplace catalog – categories, stores, store menu sections, and items.
"""

import re
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import delete, select, update
from werkzeug.security import generate_password_hash

from zook_admin.controllers.base import BaseController, placement, same_or_null
from zook_admin.errors import NotFoundError, ValidationError
from zook_admin.models import Principal
from zook_admin.positions import next_position, reposition
from zook_admin.query_shaper import EntityQuery, boolean, equals, gte, lte, search
from zook_admin.rbac import authorize_mutation
from zook_admin.schema import (
    banners,
    categories,
    cities,
    countries,
    media,
    orders,
    store_item_categories,
    store_item_photos,
    store_items,
    stores,
)
from zook_admin.schemas.catalog import (
    CategoryCreate,
    CategoryUpdate,
    PhotosAdd,
    StoreCreate,
    StoreItemCategoryCreate,
    StoreItemCategoryUpdate,
    StoreItemCreate,
    StoreItemUpdate,
    StoreUpdate,
)

ITEM_PHOTO_PURPOSE = "store_item"


def slugify(name: str) -> str:
    slug = re.sub(r"\s+", "-", name.strip().lower())
    return re.sub(r"[^a-z0-9-]", "", slug)


def store_location(conn, store_id: str, missing=NotFoundError) -> Dict[str, Any]:
    """(id, country_id, city_id) of a store; *missing* is raised when absent."""
    row = conn.execute(
        select(stores.c.id, stores.c.country_id, stores.c.city_id)
        .where(stores.c.id == store_id)
    ).mappings().first()
    if row is None:
        if missing is ValidationError:
            raise ValidationError("Invalid store_id")
        raise missing("Store not found")
    return dict(row)


# ── Marketplace categories ───────────────────────────────────────────

class CategoryController(BaseController):
    table = categories
    label = "Category"
    country_wide = True
    entity = EntityQuery(
        key="categories",
        source=categories
        .join(countries, categories.c.country_id == countries.c.id)
        .outerjoin(cities, categories.c.city_id == cities.c.id)
        .outerjoin(media, categories.c.media_id == media.c.id),
        columns=[
            categories,
            countries.c.name.label("country_name"),
            cities.c.name.label("city_name"),
            media.c.url.label("media_url"),
        ],
        id_col=categories.c.id,
        country_col=categories.c.country_id,
        city_col=categories.c.city_id,
        country_wide=True,
        sort_fields={
            "position": categories.c.position,
            "name": categories.c.name,
            "created_at": categories.c.created_at,
        },
        default_sort="position",
        default_order="asc",
        filters=[
            search("search", categories.c.name),
            boolean("is_active", categories.c.is_active),
        ],
    )

    @staticmethod
    def _group(country_id, city_id):
        return [categories.c.country_id == country_id, same_or_null(categories.c.city_id, city_id)]

    def create(self, principal: Principal, body: CategoryCreate) -> Dict[str, Any]:
        values = body.model_dump()
        country_id, city_id = placement(principal, body.country_id, body.city_id)
        authorize_mutation(principal, country_id, city_id, country_wide=True)
        values.update(country_id=country_id, city_id=city_id)
        requested = values.pop("position")

        with self.engine.begin() as conn:
            self.check_country(conn, country_id)
            self.check_city(conn, country_id, city_id)
            self.check_media(conn, body.media_id, "category_image", country_id, city_id)
            group = self._group(country_id, city_id)
            self.ensure_unique(conn, "Category with this name already exists in this location",
                               categories.c.name == body.name, *group)
            values["position"] = next_position(conn, categories, group)
            row_id = self.insert_row(conn, values)
            if requested is not None:
                reposition(conn, categories, row_id, requested, group)
            return self.detail(conn, row_id)

    def update(self, principal: Principal, row_id: str, body: CategoryUpdate) -> Dict[str, Any]:
        changes = body.changes()
        with self.engine.begin() as conn:
            row = self.fetch_or_404(conn, row_id)
            self.authorize(conn, principal, row)
            if "media_id" in changes:
                self.check_media(conn, changes["media_id"], "category_image",
                                 row["country_id"], row["city_id"])
            if "name" in changes:
                self.ensure_unique(conn, "Category with this name already exists in this location",
                                   categories.c.name == changes["name"],
                                   *self._group(row["country_id"], row["city_id"]),
                                   exclude_id=row_id)
            self.update_row(conn, row_id, changes)
            return self.detail(conn, row_id)

    def move(self, principal: Principal, row_id: str, position: int) -> Dict[str, Any]:
        with self.engine.begin() as conn:
            row = self.fetch_or_404(conn, row_id)
            self.authorize(conn, principal, row)
            reposition(conn, categories, row_id, position,
                       self._group(row["country_id"], row["city_id"]))
            return self.detail(conn, row_id)

    def delete(self, principal: Principal, row_id: str) -> None:
        self.remove(principal, row_id)

    def before_delete(self, conn, principal, row):
        self.ensure_no_dependants(conn, "Cannot delete category with associated stores",
                                  stores, stores.c.category_id == row["id"])


# ── Stores ───────────────────────────────────────────────────────────

logo_media = media.alias("logo_media")
cover_media = media.alias("cover_media")


class StoreController(BaseController):
    table = stores
    label = "Store"
    entity = EntityQuery(
        key="stores",
        source=stores
        .join(countries, stores.c.country_id == countries.c.id)
        .outerjoin(cities, stores.c.city_id == cities.c.id)
        .join(categories, stores.c.category_id == categories.c.id)
        .outerjoin(logo_media, stores.c.logo_media_id == logo_media.c.id)
        .outerjoin(cover_media, stores.c.cover_media_id == cover_media.c.id),
        columns=[
            stores,
            countries.c.name.label("country_name"),
            cities.c.name.label("city_name"),
            categories.c.name.label("category_name"),
            logo_media.c.url.label("logo_url"),
            cover_media.c.url.label("cover_url"),
        ],
        id_col=stores.c.id,
        country_col=stores.c.country_id,
        city_col=stores.c.city_id,
        sort_fields={
            "name": stores.c.name,
            "created_at": stores.c.created_at,
            "preparation_time_minutes": stores.c.preparation_time_minutes,
        },
        filters=[
            search("search", stores.c.name, stores.c.description),
            boolean("is_sponsored", stores.c.is_sponsored),
            boolean("is_active", stores.c.is_active),
            boolean("is_busy", stores.c.is_busy),
            equals("category_id", stores.c.category_id),
        ],
    )

    def present(self, row):
        auth = row.get("auth_details") or {}
        row["auth_details"] = {"username": auth.get("username")}
        return row

    def _check_category(self, conn, category_id, country_id, city_id):
        row = conn.execute(
            select(categories.c.country_id, categories.c.city_id)
            .where(categories.c.id == category_id)
        ).mappings().first()
        if row is None or row["country_id"] != country_id:
            raise ValidationError("Invalid category_id for this country")
        if row["city_id"] is not None and row["city_id"] != city_id:
            raise ValidationError("Invalid category_id for this city")

    def _check_name(self, conn, name, country_id, city_id, exclude_id=None):
        group = (stores.c.country_id == country_id, same_or_null(stores.c.city_id, city_id))
        self.ensure_unique(conn, "Store with this name already exists in this location",
                           stores.c.name == name, *group, exclude_id=exclude_id)
        self.ensure_unique(conn, "Store with this slug already exists in this location",
                           stores.c.slug == slugify(name), *group, exclude_id=exclude_id)

    def create(self, principal: Principal, body: StoreCreate) -> Dict[str, Any]:
        values = body.model_dump()
        country_id, city_id = placement(principal, body.country_id, body.city_id)
        authorize_mutation(principal, country_id, city_id)
        values.update(country_id=country_id, city_id=city_id, slug=slugify(body.name))
        values["auth_details"] = {
            "username": body.auth_details.username,
            "password_hash": generate_password_hash(body.auth_details.password),
        }

        with self.engine.begin() as conn:
            self.check_country(conn, country_id)
            self.check_city(conn, country_id, city_id)
            self._check_category(conn, body.category_id, country_id, city_id)
            self.check_media(conn, body.logo_media_id, "store_logo", country_id, city_id,
                             field="logo_media_id")
            self.check_media(conn, body.cover_media_id, "store_cover", country_id, city_id,
                             field="cover_media_id")
            self._check_name(conn, body.name, country_id, city_id)
            row_id = self.insert_row(conn, values)
            return self.detail(conn, row_id)

    def update(self, principal: Principal, row_id: str, body: StoreUpdate) -> Dict[str, Any]:
        changes = body.changes()
        with self.engine.begin() as conn:
            row = self.fetch_or_404(conn, row_id)
            self.authorize(conn, principal, row)
            country_id, city_id = row["country_id"], row["city_id"]

            if "category_id" in changes:
                self._check_category(conn, changes["category_id"], country_id, city_id)
            if "logo_media_id" in changes:
                self.check_media(conn, changes["logo_media_id"], "store_logo",
                                 country_id, city_id, field="logo_media_id")
            if "cover_media_id" in changes:
                self.check_media(conn, changes["cover_media_id"], "store_cover",
                                 country_id, city_id, field="cover_media_id")
            if "name" in changes:
                self._check_name(conn, changes["name"], country_id, city_id, exclude_id=row_id)
                changes["slug"] = slugify(changes["name"])
            if "auth_details" in changes:
                auth = dict(row["auth_details"] or {})
                creds = changes["auth_details"]
                if creds.get("username"):
                    auth["username"] = creds["username"]
                if creds.get("password"):
                    auth["password_hash"] = generate_password_hash(creds["password"])
                changes["auth_details"] = auth

            self.update_row(conn, row_id, changes)
            return self.detail(conn, row_id)

    def toggle(self, principal: Principal, row_id: str, flag: str) -> Dict[str, Any]:
        """Flip is_busy or is_active."""
        with self.engine.begin() as conn:
            row = self.fetch_or_404(conn, row_id)
            self.authorize(conn, principal, row)
            self.update_row(conn, row_id, {flag: not row[flag]})
            return self.detail(conn, row_id)

    def delete(self, principal: Principal, row_id: str) -> None:
        self.remove(principal, row_id)

    def before_delete(self, conn, principal, row):
        self.ensure_no_dependants(conn, "Cannot delete store with associated items",
                                  store_items, store_items.c.store_id == row["id"])
        self.ensure_no_dependants(conn, "Cannot delete store with associated orders",
                                  orders, orders.c.store_id == row["id"])
        conn.execute(delete(store_item_categories)
                     .where(store_item_categories.c.store_id == row["id"]))
        conn.execute(update(banners).where(banners.c.store_id == row["id"])
                     .values(store_id=None))


# ── Store menu sections ──────────────────────────────────────────────

class StoreItemCategoryController(BaseController):
    table = store_item_categories
    label = "Store item category"
    entity = EntityQuery(
        key="categories",
        source=store_item_categories.join(stores, store_item_categories.c.store_id == stores.c.id),
        columns=[store_item_categories, stores.c.name.label("store_name")],
        id_col=store_item_categories.c.id,
        country_col=stores.c.country_id,
        city_col=stores.c.city_id,
        sort_fields={
            "name": store_item_categories.c.name,
            "position": store_item_categories.c.position,
            "created_at": store_item_categories.c.created_at,
        },
        default_sort="position",
        default_order="asc",
        filters=[
            search("search", store_item_categories.c.name),
            equals("store_id", store_item_categories.c.store_id),
            boolean("is_active", store_item_categories.c.is_active),
        ],
    )

    def locate(self, conn, row):
        store = store_location(conn, row["store_id"])
        return store["country_id"], store["city_id"]

    def _check_names(self, conn, store_id, name=None, slug=None, exclude_id=None):
        same_store = store_item_categories.c.store_id == store_id
        if name is not None:
            self.ensure_unique(conn, "Category name already exists in this store",
                               same_store, store_item_categories.c.name == name,
                               exclude_id=exclude_id)
        if slug is not None:
            self.ensure_unique(conn, "Category slug already exists in this store",
                               same_store, store_item_categories.c.slug == slug,
                               exclude_id=exclude_id)

    def create(self, principal: Principal, body: StoreItemCategoryCreate) -> Dict[str, Any]:
        values = body.model_dump()
        values["slug"] = body.slug or slugify(body.name)
        with self.engine.begin() as conn:
            store = store_location(conn, body.store_id, missing=ValidationError)
            authorize_mutation(principal, store["country_id"], store["city_id"])
            self._check_names(conn, body.store_id, body.name, values["slug"])
            group = [store_item_categories.c.store_id == body.store_id]
            requested = values.pop("position")
            values["position"] = next_position(conn, store_item_categories, group)
            row_id = self.insert_row(conn, values)
            if requested:
                reposition(conn, store_item_categories, row_id, requested, group)
            return self.detail(conn, row_id)

    def update(self, principal: Principal, row_id: str,
               body: StoreItemCategoryUpdate) -> Dict[str, Any]:
        changes = body.changes()
        with self.engine.begin() as conn:
            row = self.fetch_or_404(conn, row_id)
            self.authorize(conn, principal, row)
            if "name" in changes and "slug" not in changes:
                changes["slug"] = slugify(changes["name"])
            self._check_names(conn, row["store_id"], changes.get("name"), changes.get("slug"),
                              exclude_id=row_id)
            position = changes.pop("position", None)
            self.update_row(conn, row_id, changes)
            if position is not None:
                reposition(conn, store_item_categories, row_id, position,
                           [store_item_categories.c.store_id == row["store_id"]])
            return self.detail(conn, row_id)

    def delete(self, principal: Principal, row_id: str) -> None:
        self.remove(principal, row_id)

    def before_delete(self, conn, principal, row):
        self.ensure_no_dependants(conn, "Cannot delete category with associated items",
                                  store_items, store_items.c.category_id == row["id"])


# ── Store items ──────────────────────────────────────────────────────

class StoreItemController(BaseController):
    table = store_items
    label = "Store item"
    entity = EntityQuery(
        key="items",
        source=store_items
        .join(stores, store_items.c.store_id == stores.c.id)
        .join(store_item_categories, store_items.c.category_id == store_item_categories.c.id),
        columns=[
            store_items,
            stores.c.name.label("store_name"),
            store_item_categories.c.name.label("category_name"),
        ],
        id_col=store_items.c.id,
        country_col=stores.c.country_id,
        city_col=stores.c.city_id,
        sort_fields={
            "name": store_items.c.name,
            "price": store_items.c.price,
            "created_at": store_items.c.created_at,
        },
        filters=[
            search("search", store_items.c.name, store_items.c.description),
            equals("store_id", store_items.c.store_id),
            equals("category_id", store_items.c.category_id),
            boolean("is_active", store_items.c.is_active),
            gte("min_price", store_items.c.price),
            lte("max_price", store_items.c.price),
        ],
    )

    def locate(self, conn, row):
        store = store_location(conn, row["store_id"])
        return store["country_id"], store["city_id"]

    def attach(self, conn, rows):
        if not rows:
            return rows
        photos = self._photos(conn, [r["id"] for r in rows])
        for row in rows:
            row["photos"] = photos.get(row["id"], [])
        return rows

    def _photos(self, conn, item_ids: List[str]) -> Dict[str, List[Dict]]:
        stmt = (
            select(
                store_item_photos.c.id,
                store_item_photos.c.store_item_id,
                store_item_photos.c.media_id,
                store_item_photos.c.position,
                media.c.url,
                media.c.thumbnail_url,
                media.c.type,
            )
            .join(media, store_item_photos.c.media_id == media.c.id)
            .where(store_item_photos.c.store_item_id.in_(item_ids))
            .order_by(store_item_photos.c.position, store_item_photos.c.id)
        )
        out: Dict[str, List[Dict]] = {}
        for photo in conn.execute(stmt).mappings():
            photo = dict(photo)
            out.setdefault(photo.pop("store_item_id"), []).append(photo)
        return out

    def _check_section(self, conn, category_id, store_id):
        if not self.exists(conn, store_item_categories,
                           store_item_categories.c.id == category_id,
                           store_item_categories.c.store_id == store_id):
            raise ValidationError("Category does not belong to this store")

    def _check_photo_media(self, conn, media_ids, location: Tuple[Optional[str], Optional[str]]):
        for media_id in media_ids:
            self.check_media(conn, media_id, ITEM_PHOTO_PURPOSE, *location, field="media_ids")

    def create(self, principal: Principal, body: StoreItemCreate) -> Dict[str, Any]:
        values = body.model_dump()
        photo_ids = values.pop("photo_media_ids")
        with self.engine.begin() as conn:
            store = store_location(conn, body.store_id, missing=ValidationError)
            location = (store["country_id"], store["city_id"])
            authorize_mutation(principal, *location)
            self._check_section(conn, body.category_id, body.store_id)
            self._check_photo_media(conn, photo_ids, location)
            self.ensure_unique(conn, "Item name already exists in this store",
                               store_items.c.store_id == body.store_id,
                               store_items.c.name == body.name)
            row_id = self.insert_row(conn, values)
            for position, media_id in enumerate(photo_ids):
                self.insert_row(conn, {"store_item_id": row_id, "media_id": media_id,
                                       "position": position}, table=store_item_photos)
            return self.detail(conn, row_id)

    def update(self, principal: Principal, row_id: str, body: StoreItemUpdate) -> Dict[str, Any]:
        changes = body.changes()
        with self.engine.begin() as conn:
            row = self.fetch_or_404(conn, row_id)
            self.authorize(conn, principal, row)
            if "category_id" in changes:
                self._check_section(conn, changes["category_id"], row["store_id"])
            if "name" in changes:
                self.ensure_unique(conn, "Item name already exists in this store",
                                   store_items.c.store_id == row["store_id"],
                                   store_items.c.name == changes["name"], exclude_id=row_id)
            self.update_row(conn, row_id, changes)
            return self.detail(conn, row_id)

    def toggle_active(self, principal: Principal, row_id: str) -> Dict[str, Any]:
        with self.engine.begin() as conn:
            row = self.fetch_or_404(conn, row_id)
            self.authorize(conn, principal, row)
            self.update_row(conn, row_id, {"is_active": not row["is_active"]})
            return self.detail(conn, row_id)

    def delete(self, principal: Principal, row_id: str) -> None:
        self.remove(principal, row_id)

    def before_delete(self, conn, principal, row):
        conn.execute(delete(store_item_photos)
                     .where(store_item_photos.c.store_item_id == row["id"]))

    # ── Photos ───────────────────────────────────────────────────────

    def add_photos(self, principal: Principal, row_id: str, body: PhotosAdd) -> List[Dict]:
        with self.engine.begin() as conn:
            row = self.fetch_or_404(conn, row_id)
            location = self.locate(conn, row)
            self.authorize(conn, principal, row)
            self._check_photo_media(conn, body.media_ids, location)
            for media_id in body.media_ids:
                self.ensure_unique(conn, "Photo already attached to this item",
                                   store_item_photos.c.store_item_id == row_id,
                                   store_item_photos.c.media_id == media_id,
                                   table=store_item_photos)
            group = [store_item_photos.c.store_item_id == row_id]
            start = next_position(conn, store_item_photos, group)
            for i, media_id in enumerate(body.media_ids):
                position = body.positions[i] if body.positions else start + i
                self.insert_row(conn, {"store_item_id": row_id, "media_id": media_id,
                                       "position": position}, table=store_item_photos)
            return self._photos(conn, [row_id]).get(row_id, [])

    def _fetch_photo(self, conn, row_id, photo_id):
        photo = conn.execute(
            select(store_item_photos.c.id).where(
                store_item_photos.c.id == photo_id,
                store_item_photos.c.store_item_id == row_id,
            )
        ).first()
        if photo is None:
            raise NotFoundError("Photo not found")

    def move_photo(self, principal: Principal, row_id: str, photo_id: str,
                   position: int) -> List[Dict]:
        with self.engine.begin() as conn:
            row = self.fetch_or_404(conn, row_id)
            self.authorize(conn, principal, row)
            self._fetch_photo(conn, row_id, photo_id)
            reposition(conn, store_item_photos, photo_id, position,
                       [store_item_photos.c.store_item_id == row_id])
            return self._photos(conn, [row_id]).get(row_id, [])

    def delete_photo(self, principal: Principal, row_id: str, photo_id: str) -> None:
        with self.engine.begin() as conn:
            row = self.fetch_or_404(conn, row_id)
            self.authorize(conn, principal, row)
            self._fetch_photo(conn, row_id, photo_id)
            self.delete_row(conn, photo_id, table=store_item_photos)
