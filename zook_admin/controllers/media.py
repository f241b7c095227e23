"""
Media metadata – registration of already-uploaded files.
"""

from typing import Any, Dict

from zook_admin.controllers.base import BaseController, placement
from zook_admin.models import Principal
from zook_admin.query_shaper import EntityQuery, boolean, equals, search
from zook_admin.rbac import authorize_mutation
from zook_admin.schema import banners, categories, media, payment_options, stores, store_item_photos
from zook_admin.schemas.media import MediaCreate, MediaUpdate


class MediaController(BaseController):
    table = media
    label = "Media"
    country_wide = True
    entity = EntityQuery(
        key="media",
        source=media,
        columns=[media],
        id_col=media.c.id,
        country_col=media.c.country_id,
        city_col=media.c.city_id,
        country_wide=True,
        sort_fields={
            "created_at": media.c.created_at,
            "size_in_bytes": media.c.size_in_bytes,
            "title": media.c.title,
        },
        filters=[
            search("search", media.c.original_name, media.c.title, media.c.alt_text),
            equals("type", media.c.type, choices=("image", "video", "gif")),
            equals("purpose", media.c.purpose),
            boolean("is_active", media.c.is_active),
        ],
    )

    def create(self, principal: Principal, body: MediaCreate) -> Dict[str, Any]:
        values = body.model_dump()
        values["country_id"], values["city_id"] = placement(
            principal, body.country_id, body.city_id)
        authorize_mutation(principal, values["country_id"], values["city_id"],
                           country_wide=True)
        with self.engine.begin() as conn:
            self.check_country(conn, values["country_id"])
            self.check_city(conn, values["country_id"], values["city_id"])
            row_id = self.insert_row(conn, values)
            return self.detail(conn, row_id)

    def update(self, principal: Principal, row_id: str, body: MediaUpdate) -> Dict[str, Any]:
        with self.engine.begin() as conn:
            row = self.fetch_or_404(conn, row_id)
            self.authorize(conn, principal, row)
            self.update_row(conn, row_id, body.changes())
            return self.detail(conn, row_id)

    def delete(self, principal: Principal, row_id: str) -> None:
        self.remove(principal, row_id)

    def before_delete(self, conn, principal, row):
        refs = (
            (categories, categories.c.media_id),
            (banners, banners.c.media_id),
            (stores, stores.c.logo_media_id),
            (stores, stores.c.cover_media_id),
            (payment_options, payment_options.c.logo_media_id),
            (store_item_photos, store_item_photos.c.media_id),
        )
        for table, col in refs:
            self.ensure_no_dependants(conn, "Media is still in use", table, col == row["id"])
