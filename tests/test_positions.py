"""
Unit tests for positional ordering inside a group.
"""

import pytest
from sqlalchemy import select

from zook_admin.errors import NotFoundError, ValidationError
from zook_admin.positions import next_position, reposition
from zook_admin.schema import banners

from conftest import add, add_media


@pytest.fixture
def rows(engine, world):
    """Four banners at positions 0..3 in country A, plus one in country B."""
    media_a = add_media(engine, world.country_a, "banner")
    media_b = add_media(engine, world.country_b, "banner")
    ids = [
        add(engine, banners, country_id=world.country_a, name=f"b{i}", media_id=media_a,
            position=i)
        for i in range(4)
    ]
    add(engine, banners, country_id=world.country_b, name="other", media_id=media_b, position=0)
    return ids


def group(world):
    return [banners.c.country_id == world.country_a, banners.c.city_id.is_(None)]


def order(engine, world):
    with engine.connect() as conn:
        return [r.id for r in conn.execute(
            select(banners.c.id).where(*group(world)).order_by(banners.c.position)
        )]


def positions(engine, world):
    with engine.connect() as conn:
        return sorted(conn.execute(select(banners.c.position).where(*group(world))).scalars())


def test_next_position(engine, world, rows):
    with engine.connect() as conn:
        assert next_position(conn, banners, group(world)) == 4
        assert next_position(conn, banners, [banners.c.country_id == "nowhere"]) == 0


def test_move_up(engine, world, rows):
    with engine.begin() as conn:
        assert reposition(conn, banners, rows[3], 1, group(world)) == 1
    assert order(engine, world) == [rows[0], rows[3], rows[1], rows[2]]
    assert positions(engine, world) == [0, 1, 2, 3]


def test_move_down(engine, world, rows):
    with engine.begin() as conn:
        reposition(conn, banners, rows[0], 2, group(world))
    assert order(engine, world) == [rows[1], rows[2], rows[0], rows[3]]
    assert positions(engine, world) == [0, 1, 2, 3]


def test_target_clamped_to_last_slot(engine, world, rows):
    with engine.begin() as conn:
        assert reposition(conn, banners, rows[1], 99, group(world)) == 3
    assert order(engine, world)[-1] == rows[1]
    assert positions(engine, world) == [0, 1, 2, 3]


def test_same_position_is_noop(engine, world, rows):
    with engine.begin() as conn:
        assert reposition(conn, banners, rows[2], 2, group(world)) == 2
    assert order(engine, world) == rows


def test_other_group_untouched(engine, world, rows):
    with engine.begin() as conn:
        reposition(conn, banners, rows[3], 0, group(world))
    with engine.connect() as conn:
        other = conn.execute(
            select(banners.c.position).where(banners.c.country_id == world.country_b)
        ).scalar_one()
    assert other == 0


def test_negative_position_rejected(engine, world, rows):
    with engine.begin() as conn:
        with pytest.raises(ValidationError):
            reposition(conn, banners, rows[0], -1, group(world))


def test_unknown_row(engine, world, rows):
    with engine.begin() as conn:
        with pytest.raises(NotFoundError):
            reposition(conn, banners, "missing", 0, group(world))
