"""
Tests for support tickets, the message thread, and ratings.
"""

from datetime import datetime

import pytest
from sqlalchemy import insert, select

from zook_admin.controllers.feedback import RatingController
from zook_admin.controllers.support import MessageController, TicketController, next_ticket_number
from zook_admin.errors import ConflictError, ForbiddenError, ValidationError
from zook_admin.models import Principal
from zook_admin.schema import admins, stores, support_tickets
from zook_admin.schemas.support import (
    MessageCreate,
    RatingCreate,
    RatingModeration,
    RatingUpdate,
    TicketCreate,
    TicketUpdate,
)

from conftest import add


# ── Tests: ticket numbers ────────────────────────────────────────────

def test_next_ticket_number_per_year(engine, world):
    now = datetime(2025, 6, 1)
    with engine.begin() as conn:
        assert next_ticket_number(conn, now) == "2025-00001"
        for number in ("2025-00007", "2024-00099"):
            conn.execute(insert(support_tickets).values(
                id=number, country_id=world.country_a, user_id=world.user_a1,
                ticket_number=number, subject="Old", description="Old"))
        assert next_ticket_number(conn, now) == "2025-00008"


# ── Tests: tickets ───────────────────────────────────────────────────

@pytest.fixture
def ticket(engine, world):
    return TicketController(engine).create(world.admin_a1, TicketCreate(
        user_id=world.user_a1, subject="Late order", description="Where is my food?",
        priority="high"))


def test_ticket_takes_user_location(ticket, world):
    assert ticket["country_id"] == world.country_a
    assert ticket["city_id"] == world.city_a1
    assert ticket["status"] == "open"
    assert ticket["user_name"] == "alice"
    assert ticket["total_messages_count"] == 0


def test_ticket_unknown_user(engine, world):
    with pytest.raises(ValidationError):
        TicketController(engine).create(world.super, TicketCreate(
            user_id="ghost", subject="Hello", description="x"))


def test_ticket_assignee_must_share_country(engine, world, ticket):
    other = add(engine, admins, username="beta_support", password="x", role="support",
                country_id=world.country_b)
    ctl = TicketController(engine)
    with pytest.raises(ValidationError):
        ctl.update(world.admin_a, ticket["id"], TicketUpdate(assigned_to=other))
    row = ctl.update(world.admin_a, ticket["id"], TicketUpdate(assigned_to=world.admin_a1_id))
    assert row["assigned_to_name"] == "alpha_city_admin"


def test_ticket_resolution_stamps_time(engine, world, ticket):
    row = TicketController(engine).update(world.admin_a, ticket["id"], TicketUpdate(
        status="resolved", resolution_note="Refunded"))
    assert row["resolved_at"] is not None


def test_reopened_ticket_drops_resolution_times(engine, world, ticket):
    ctl = TicketController(engine)
    ctl.update(world.admin_a, ticket["id"], TicketUpdate(status="resolved",
                                                         resolution_note="Refunded"))
    ctl.update(world.admin_a, ticket["id"], TicketUpdate(status="closed"))
    row = ctl.update(world.admin_a, ticket["id"], TicketUpdate(status="reopened"))
    assert row["resolved_at"] is None
    assert row["closed_at"] is None
    stats = ctl.stats(world.admin_a, {})
    assert stats["reopened_tickets"] == 1
    assert stats["average_resolution_time_hours"] == 0


def test_ticket_list_includes_stats(engine, world, ticket):
    out = TicketController(engine).list(world.admin_a, {})
    assert out["total"] == 1
    assert out["stats"]["open_tickets"] == 1
    assert out["stats"]["priority_distribution"]["high"] == 1
    assert "stats" not in TicketController(engine).list(world.admin_a,
                                                        {"user_id": world.user_a1})


def test_ticket_hidden_from_other_country(engine, world, ticket):
    beta = Principal(id="b", role="support", country_id=world.country_b, city_id=None)
    assert TicketController(engine).list(beta, {})["total"] == 0


# ── Tests: messages ──────────────────────────────────────────────────

def test_messages_and_mark_read(engine, world, ticket):
    messages = MessageController(engine)
    admin_msg = messages.create(world.admin_a1, MessageCreate(
        ticket_id=ticket["id"], message="Looking into it"))
    user_msg = messages.create(world.admin_a1, MessageCreate(
        ticket_id=ticket["id"], sender_type="user", message="Thanks"))
    assert admin_msg["sender_id"] == world.admin_a1_id
    assert user_msg["sender_id"] == world.user_a1

    tickets = TicketController(engine)
    assert tickets.get(world.admin_a1, ticket["id"])["unread_messages_count"] == 2
    stats = tickets.message_stats(world.admin_a1, ticket["id"])
    assert (stats["total_messages"], stats["admin_messages"], stats["user_messages"]) == (2, 1, 1)

    assert messages.mark_read(world.admin_a1, ticket["id"]) == 2
    assert tickets.get(world.admin_a1, ticket["id"])["unread_messages_count"] == 0


def test_message_unknown_ticket(engine, world):
    with pytest.raises(ValidationError):
        MessageController(engine).create(world.super, MessageCreate(
            ticket_id="missing", message="hi"))


def test_delete_ticket_removes_messages(engine, world, ticket):
    messages = MessageController(engine)
    messages.create(world.admin_a, MessageCreate(ticket_id=ticket["id"], message="hi"))
    TicketController(engine).delete(world.admin_a, ticket["id"])
    assert messages.list(world.super, {})["total"] == 0


# ── Tests: ratings ───────────────────────────────────────────────────

def store_ratings(engine, store_id):
    with engine.connect() as conn:
        return conn.execute(select(stores.c.ratings).where(stores.c.id == store_id)).scalar_one()


def test_rating_flow_updates_store_summary(engine, world):
    ctl = RatingController(engine)
    rating = ctl.create(world.admin_a1, RatingCreate(
        user_id=world.user_a1, target_type="store", target_id=world.store_a1, star_count=4))
    assert rating["status"] == "pending"
    assert rating["city_id"] == world.city_a1

    moderated = ctl.moderate(world.admin_a, rating["id"], RatingModeration(status="approved"))
    assert moderated["moderator_name"] == "alpha_admin"
    assert store_ratings(engine, world.store_a1) == {"count": 1, "summary": 4.0}

    ctl.update(world.admin_a, rating["id"], RatingUpdate(star_count=2))
    assert store_ratings(engine, world.store_a1) == {"count": 1, "summary": 2.0}

    out = ctl.list(world.admin_a, {"target_type": "store", "target_id": world.store_a1})
    assert out["stats"]["rating_distribution"]["2"] == 1

    ctl.delete(world.admin_a, rating["id"])
    assert store_ratings(engine, world.store_a1) == {"count": 0, "summary": 0}


def test_rating_once_per_user_and_target(engine, world):
    ctl = RatingController(engine)
    body = RatingCreate(user_id=world.user_a1, target_type="item", target_id=world.item_a1,
                        star_count=5)
    ctl.create(world.admin_a, body)
    with pytest.raises(ConflictError):
        ctl.create(world.admin_a, body)


def test_rejected_rating_is_frozen(engine, world):
    ctl = RatingController(engine)
    rating = ctl.create(world.admin_a, RatingCreate(
        user_id=world.user_a1, target_type="store", target_id=world.store_a1, star_count=1))
    ctl.moderate(world.admin_a, rating["id"], RatingModeration(status="rejected"))
    with pytest.raises(ValidationError):
        ctl.update(world.admin_a, rating["id"], RatingUpdate(star_count=5))


def test_rating_outside_city_forbidden(engine, world):
    with pytest.raises(ForbiddenError):
        RatingController(engine).create(world.admin_a1, RatingCreate(
            user_id=world.user_a1, target_type="store", target_id=world.store_a2, star_count=3))


def test_rating_star_filter(engine, world):
    ctl = RatingController(engine)
    ctl.create(world.admin_a, RatingCreate(
        user_id=world.user_a1, target_type="store", target_id=world.store_a1, star_count=3))
    assert ctl.list(world.admin_a, {"star_count": "3"})["total"] == 1
    assert ctl.list(world.admin_a, {"star_count": "4"})["total"] == 0
    with pytest.raises(ValidationError):
        ctl.list(world.admin_a, {"star_count": "9"})
