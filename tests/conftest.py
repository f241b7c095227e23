"""
Shared fixtures: an in-memory database seeded with two countries, their
cities, and a small catalog, plus principals at each access level.
"""

from types import SimpleNamespace

import pytest
from sqlalchemy import create_engine, insert
from sqlalchemy.pool import StaticPool
from werkzeug.security import generate_password_hash

from zook_admin.api.app import create_app
from zook_admin.api.auth import generate_token
from zook_admin.database import create_schema
from zook_admin.models import PaymentResult, Principal
from zook_admin.schema import (
    admins,
    categories,
    cities,
    countries,
    drivers,
    media,
    new_id,
    payment_options,
    promo_codes,
    store_item_categories,
    store_items,
    stores,
    users,
)

PASSWORD = "correct-horse-42"


# ── Helpers / Fakes ──────────────────────────────────────────────────

class FakePaymentGateway:
    """Records calls and answers with a fixed outcome."""
    def __init__(self, success=True):
        self.success = success
        self.calls = []

    def validate_payment(self, amount, payment_option_id, user_id, order_id):
        self.calls.append((amount, payment_option_id, user_id, order_id))
        if self.success:
            return PaymentResult(True, "Payment validated successfully", "paid", "TRANS_TEST")
        return PaymentResult(False, "Card declined", "not_paid")


def add(engine, table, **values):
    values.setdefault("id", new_id())
    with engine.begin() as conn:
        conn.execute(insert(table).values(**values))
    return values["id"]


def add_country(engine, name, code):
    return add(engine, countries, name=name, code=code, phone_code="+1",
               currency_code="USD", currency_symbol="$", timezone="UTC",
               default_language="en")


def add_media(engine, country_id, purpose, city_id=None):
    return add(engine, media, country_id=country_id, city_id=city_id,
               file_name=f"{purpose}.png", original_name=f"{purpose}.png", type="image",
               mime_type="image/png", purpose=purpose, url=f"https://cdn.test/{purpose}.png",
               size_in_bytes=1024, folder_path="/uploads")


def add_store(engine, country_id, city_id, category_id, name, **extra):
    values = dict(
        country_id=country_id, city_id=city_id, category_id=category_id,
        name=name, slug=name.lower().replace(" ", "-"),
        location={"latitude": 1.0, "longitude": 2.0, "street_name": "Main"},
        auth_details={"username": name.lower().replace(" ", ""),
                      "password_hash": generate_password_hash("store-pass-1")},
        is_active=True,
    )
    values.update(extra)
    return add(engine, stores, **values)


# ── Fixtures ─────────────────────────────────────────────────────────

@pytest.fixture
def engine():
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    create_schema(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def world(engine):
    """Country A (cities A1, A2) and country B (city B1) with a catalog in A."""
    w = SimpleNamespace()
    w.country_a = add_country(engine, "Alpha", "AA")
    w.country_b = add_country(engine, "Beta", "BB")
    w.city_a1 = add(engine, cities, country_id=w.country_a, name="A One")
    w.city_a2 = add(engine, cities, country_id=w.country_a, name="A Two")
    w.city_b1 = add(engine, cities, country_id=w.country_b, name="B One")

    w.user_a1 = add(engine, users, country_id=w.country_a, city_id=w.city_a1,
                    username="alice", phone_number="+100000001", email="alice@example.com")

    w.category_a = add(engine, categories, country_id=w.country_a, name="Food")
    w.store_a1 = add_store(engine, w.country_a, w.city_a1, w.category_a, "Burger Barn")
    w.store_a2 = add_store(engine, w.country_a, w.city_a2, w.category_a, "Pizza Place")

    w.section_a1 = add(engine, store_item_categories, store_id=w.store_a1,
                       name="Mains", slug="mains")
    w.item_a1 = add(engine, store_items, store_id=w.store_a1, category_id=w.section_a1,
                    name="Burger", price=50,
                    options=[{"title": "Size", "is_required": True, "is_single": True,
                              "items": [{"name": "Large"}, {"name": "Small"}]}],
                    extras=[{"name": "Cheese", "price": 5}])

    w.payment_a = add(engine, payment_options, country_id=w.country_a, name="Cash",
                      type="cash", status="active")
    w.promo_a = add(engine, promo_codes, country_id=w.country_a, code="SAVE20",
                    type="percentage", discount_amount=20, maximum_discount=10)
    w.driver_a1 = add(engine, drivers, country_id=w.country_a, city_id=w.city_a1,
                      full_name="Dan Driver", phone_number="+100000009")
    w.driver_b1 = add(engine, drivers, country_id=w.country_b, city_id=w.city_b1,
                      full_name="Bo Driver", phone_number="+200000009")

    w.super_id = add(engine, admins, username="root", password=generate_password_hash(PASSWORD),
                     role="super_admin")
    w.admin_a_id = add(engine, admins, username="alpha_admin",
                       password=generate_password_hash(PASSWORD), role="admin",
                       country_id=w.country_a)
    w.admin_a1_id = add(engine, admins, username="alpha_city_admin",
                        password=generate_password_hash(PASSWORD), role="admin",
                        country_id=w.country_a, city_id=w.city_a1)

    w.super = Principal(id=w.super_id, role="super_admin", country_id=None, city_id=None)
    w.admin_a = Principal(id=w.admin_a_id, role="admin", country_id=w.country_a, city_id=None)
    w.admin_a1 = Principal(id=w.admin_a1_id, role="admin", country_id=w.country_a,
                           city_id=w.city_a1)
    return w


@pytest.fixture
def gateway():
    return FakePaymentGateway()


@pytest.fixture
def app(engine, world, gateway):
    application = create_app(engine=engine, payment_gateway=gateway)
    application.config["TESTING"] = True
    return application


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def auth_header(world):
    """Build an Authorization header for any principal."""
    def build(principal):
        token = generate_token({
            "id": principal.id,
            "role": principal.role,
            "country_id": principal.country_id,
            "city_id": principal.city_id,
        })
        return {"Authorization": f"Bearer {token}"}
    return build
