"""
Tests for media metadata registration.
"""

import pydantic
import pytest

from zook_admin.controllers.media import MediaController
from zook_admin.errors import ConflictError, ForbiddenError
from zook_admin.schema import categories
from zook_admin.schemas.media import MediaCreate, MediaUpdate

from conftest import add, add_media

IMAGE = {
    "file_name": "abc.png",
    "original_name": "logo.png",
    "type": "image",
    "mime_type": "image/png",
    "purpose": "store_logo",
    "url": "https://cdn.test/abc.png",
    "size_in_bytes": 2048,
    "width": 64,
    "height": 64,
    "folder_path": "/stores",
}


def test_register_media_in_admin_city(engine, world):
    row = MediaController(engine).create(world.admin_a1, MediaCreate(**IMAGE))
    assert (row["country_id"], row["city_id"]) == (world.country_a, world.city_a1)
    assert row["purpose"] == "store_logo"


def test_register_media_other_country(engine, world):
    with pytest.raises(ForbiddenError):
        MediaController(engine).create(world.admin_a,
                                       MediaCreate(**IMAGE, country_id=world.country_b))


@pytest.mark.parametrize("overrides", [
    {"mime_type": "image/gif"},
    {"size_in_bytes": 6 * 1024 * 1024},
    {"type": "video", "mime_type": "video/mp4", "thumbnail_url": "https://cdn.test/t.png"},
    {"type": "gif", "mime_type": "image/gif"},
])
def test_media_kind_rules(overrides):
    with pytest.raises(pydantic.ValidationError):
        MediaCreate(**dict(IMAGE, **overrides))


def test_media_in_use_cannot_be_deleted(engine, world):
    media_id = add_media(engine, world.country_a, "category_image")
    add(engine, categories, country_id=world.country_a, name="Drinks", media_id=media_id)
    with pytest.raises(ConflictError) as e:
        MediaController(engine).delete(world.admin_a, media_id)
    assert e.value.message == "Media is still in use"


def test_media_update_and_filters(engine, world):
    ctl = MediaController(engine)
    media_id = add_media(engine, world.country_a, "banner")
    row = ctl.update(world.admin_a, media_id, MediaUpdate(title="Summer sale"))
    assert row["title"] == "Summer sale"
    assert ctl.list(world.admin_a1, {"search": "summer"})["total"] == 1
    assert ctl.list(world.admin_a1, {"purpose": "store_logo"})["total"] == 0
