"""
Relational schema for the admin backend (SQLAlchemy Core tables).
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    MetaData,
    Numeric,
    String,
    Table,
    Text,
    UniqueConstraint,
)

metadata = MetaData()


def new_id() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    """Naive UTC timestamp; all stored datetimes are naive UTC."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _id():
    return Column("id", String(36), primary_key=True, default=new_id)


def _timestamps():
    return (
        Column("created_at", DateTime, nullable=False, default=utcnow),
        Column("updated_at", DateTime, nullable=False, default=utcnow, onupdate=utcnow),
    )


def _money(name, **kw):
    return Column(name, Numeric(10, 2, asdecimal=False), **kw)


# ── Locations ────────────────────────────────────────────────────────

countries = Table(
    "countries", metadata,
    _id(),
    Column("name", String(100), nullable=False),
    Column("code", String(2), nullable=False, unique=True),
    Column("phone_code", String(5), nullable=False),
    Column("currency_code", String(3), nullable=False),
    Column("currency_symbol", String(5), nullable=False),
    Column("timezone", String(50), nullable=False),
    Column("default_language", String(2), nullable=False),
    Column("has_delivery", Boolean, nullable=False, default=True),
    Column("has_pickup", Boolean, nullable=False, default=True),
    _money("min_order_amount", nullable=False, default=0),
    Column("delivery_fee_type", String(20), nullable=False, default="zone"),
    _money("default_delivery_fee", nullable=False, default=0),
    Column("app_share_text", Text),
    Column("support_phone", String(20)),
    Column("support_email", String(255)),
    Column("facebook_url", Text),
    Column("instagram_url", Text),
    Column("twitter_url", Text),
    Column("is_active", Boolean, nullable=False, default=True),
    *_timestamps(),
)

cities = Table(
    "cities", metadata,
    _id(),
    Column("country_id", String(36), ForeignKey("countries.id"), nullable=False),
    Column("name", String(100), nullable=False),
    Column("latitude", Numeric(10, 8, asdecimal=False)),
    Column("longitude", Numeric(11, 8, asdecimal=False)),
    Column("has_delivery", Boolean, nullable=False, default=True),
    _money("delivery_fee"),
    _money("min_order_amount"),
    Column("operating_hours", JSON, nullable=False, default=list),
    Column("zones", JSON, nullable=False, default=list),
    Column("is_active", Boolean, nullable=False, default=True),
    *_timestamps(),
    UniqueConstraint("country_id", "name", name="cities_unique_name_country"),
)

# ── Accounts ─────────────────────────────────────────────────────────

admins = Table(
    "admins", metadata,
    _id(),
    Column("username", String(50), nullable=False, unique=True),
    Column("password", String(255), nullable=False),
    Column("email", String(255), unique=True),
    Column("role", String(20), nullable=False),
    Column("country_id", String(36), ForeignKey("countries.id")),
    Column("city_id", String(36), ForeignKey("cities.id")),
    Column("full_name", String(100)),
    Column("phone_number", String(20)),
    Column("photo_media_id", String(36)),
    Column("is_active", Boolean, nullable=False, default=True),
    Column("last_login_at", DateTime),
    *_timestamps(),
)

users = Table(
    "users", metadata,
    _id(),
    Column("country_id", String(36), ForeignKey("countries.id"), nullable=False),
    Column("city_id", String(36), ForeignKey("cities.id")),
    Column("username", String(100), unique=True),
    Column("phone_number", String(20), nullable=False, unique=True),
    Column("email", String(255), unique=True),
    Column("login_type", String(20), nullable=False, default="phone"),
    Column("addresses", JSON, nullable=False, default=list),
    Column("is_active", Boolean, nullable=False, default=True),
    *_timestamps(),
)

drivers = Table(
    "drivers", metadata,
    _id(),
    Column("country_id", String(36), ForeignKey("countries.id"), nullable=False),
    Column("city_id", String(36), ForeignKey("cities.id")),
    Column("full_name", String(100), nullable=False),
    Column("phone_number", String(20), nullable=False),
    Column("vehicle_type", String(20), nullable=False, default="motorcycle"),
    Column("is_online", Boolean, nullable=False, default=False),
    Column("is_busy", Boolean, nullable=False, default=False),
    Column("is_active", Boolean, nullable=False, default=True),
    *_timestamps(),
)

# ── Media ────────────────────────────────────────────────────────────

media = Table(
    "media", metadata,
    _id(),
    Column("country_id", String(36), ForeignKey("countries.id"), nullable=False),
    Column("city_id", String(36), ForeignKey("cities.id")),
    Column("file_name", String(255), nullable=False),
    Column("original_name", String(255), nullable=False),
    Column("type", String(10), nullable=False),
    Column("mime_type", String(100), nullable=False),
    Column("purpose", String(30), nullable=False, default="other"),
    Column("url", Text, nullable=False),
    Column("thumbnail_url", Text),
    Column("size_in_bytes", BigInteger, nullable=False),
    Column("width", Integer),
    Column("height", Integer),
    Column("duration", Integer),
    Column("folder_path", Text, nullable=False),
    Column("alt_text", String(255)),
    Column("title", String(255)),
    Column("description", Text),
    Column("is_active", Boolean, nullable=False, default=True),
    *_timestamps(),
)

# ── Marketing / payments ─────────────────────────────────────────────

payment_options = Table(
    "payment_options", metadata,
    _id(),
    Column("country_id", String(36), ForeignKey("countries.id"), nullable=False),
    Column("name", String(100), nullable=False),
    Column("type", String(10), nullable=False),
    Column("logo_media_id", String(36), ForeignKey("media.id")),
    Column("config", JSON, nullable=False, default=dict),
    Column("test_config", JSON),
    _money("minimum_amount"),
    _money("maximum_amount"),
    _money("transaction_fee", nullable=False, default=0),
    Column("fee_type", String(20), nullable=False, default="fixed"),
    Column("processing_time", String(50)),
    Column("status", String(10), nullable=False, default="testing"),
    Column("is_default", Boolean, nullable=False, default=False),
    Column("position", Integer, nullable=False, default=0),
    Column("description", Text),
    Column("instructions", Text),
    Column("support_phone", String(20)),
    Column("support_email", String(255)),
    *_timestamps(),
    UniqueConstraint("country_id", "name", name="payment_options_unique_name_country"),
)

promo_codes = Table(
    "promo_codes", metadata,
    _id(),
    Column("country_id", String(36), ForeignKey("countries.id"), nullable=False),
    Column("city_id", String(36), ForeignKey("cities.id")),
    Column("code", String(50), nullable=False),
    Column("type", String(20), nullable=False, default="fixed"),
    _money("discount_amount", nullable=False),
    _money("minimum_order_amount"),
    _money("maximum_discount"),
    Column("usage_limit", Integer),
    Column("used_count", Integer, nullable=False, default=0),
    Column("description", Text),
    Column("start_date", DateTime),
    Column("end_date", DateTime),
    Column("is_active", Boolean, nullable=False, default=True),
    *_timestamps(),
)

banners = Table(
    "banners", metadata,
    _id(),
    Column("country_id", String(36), ForeignKey("countries.id"), nullable=False),
    Column("city_id", String(36), ForeignKey("cities.id")),
    Column("store_id", String(36), ForeignKey("stores.id")),
    Column("name", String(100), nullable=False),
    Column("description", Text),
    Column("media_id", String(36), ForeignKey("media.id"), nullable=False),
    Column("is_promotion", Boolean, nullable=False, default=False),
    Column("start_date", DateTime),
    Column("end_date", DateTime),
    Column("position", Integer, nullable=False, default=0),
    Column("is_active", Boolean, nullable=False, default=True),
    *_timestamps(),
)

# ── Catalog ──────────────────────────────────────────────────────────

categories = Table(
    "categories", metadata,
    _id(),
    Column("country_id", String(36), ForeignKey("countries.id"), nullable=False),
    Column("city_id", String(36), ForeignKey("cities.id")),
    Column("name", String(100), nullable=False),
    Column("description", Text),
    Column("media_id", String(36), ForeignKey("media.id")),
    Column("position", Integer, nullable=False, default=0),
    Column("is_active", Boolean, nullable=False, default=True),
    *_timestamps(),
)

stores = Table(
    "stores", metadata,
    _id(),
    Column("country_id", String(36), ForeignKey("countries.id"), nullable=False),
    Column("city_id", String(36), ForeignKey("cities.id")),
    Column("category_id", String(36), ForeignKey("categories.id"), nullable=False),
    Column("logo_media_id", String(36), ForeignKey("media.id")),
    Column("cover_media_id", String(36), ForeignKey("media.id")),
    Column("name", String(100), nullable=False),
    Column("slug", String(150), nullable=False),
    Column("description", Text),
    Column("tags", JSON, nullable=False, default=list),
    Column("cover_type", String(10), nullable=False, default="image"),
    Column("operating_hours", JSON, nullable=False, default=list),
    Column("location", JSON, nullable=False),
    Column("preparation_time_minutes", Integer, nullable=False, default=0),
    _money("special_delivery_fee"),
    Column("special_discount_percentage", Numeric(5, 2, asdecimal=False)),
    Column("is_sponsored", Boolean, nullable=False, default=False),
    Column("auth_details", JSON, nullable=False),
    Column("ratings", JSON, nullable=False, default=lambda: {"count": 0, "summary": 0}),
    Column("is_active", Boolean, nullable=False, default=False),
    Column("is_busy", Boolean, nullable=False, default=False),
    *_timestamps(),
)

store_item_categories = Table(
    "store_item_categories", metadata,
    _id(),
    Column("store_id", String(36), ForeignKey("stores.id"), nullable=False),
    Column("name", String(100), nullable=False),
    Column("slug", String(150), nullable=False),
    Column("position", Integer, nullable=False, default=0),
    Column("is_active", Boolean, nullable=False, default=True),
    *_timestamps(),
    UniqueConstraint("store_id", "name", name="store_item_categories_unique_name"),
    UniqueConstraint("store_id", "slug", name="store_item_categories_unique_slug"),
)

store_items = Table(
    "store_items", metadata,
    _id(),
    Column("store_id", String(36), ForeignKey("stores.id"), nullable=False),
    Column("category_id", String(36), ForeignKey("store_item_categories.id"), nullable=False),
    Column("name", String(100), nullable=False),
    Column("description", Text),
    _money("price", nullable=False),
    Column("options", JSON, nullable=False, default=list),
    Column("extras", JSON, nullable=False, default=list),
    Column("ratings", JSON, nullable=False, default=lambda: {"count": 0, "summary": 0}),
    Column("is_active", Boolean, nullable=False, default=True),
    *_timestamps(),
    UniqueConstraint("store_id", "name", name="store_items_unique_name_store"),
)

store_item_photos = Table(
    "store_item_photos", metadata,
    _id(),
    Column("store_item_id", String(36), ForeignKey("store_items.id", ondelete="CASCADE"), nullable=False),
    Column("media_id", String(36), ForeignKey("media.id"), nullable=False),
    Column("position", Integer, nullable=False, default=0),
    Column("created_at", DateTime, nullable=False, default=utcnow),
    UniqueConstraint("store_item_id", "media_id", name="store_item_photos_unique_media"),
)

# ── Feedback / support ───────────────────────────────────────────────

ratings = Table(
    "ratings", metadata,
    _id(),
    Column("country_id", String(36), ForeignKey("countries.id"), nullable=False),
    Column("city_id", String(36), ForeignKey("cities.id")),
    Column("user_id", String(36), ForeignKey("users.id"), nullable=False),
    Column("target_type", String(10), nullable=False),
    Column("target_id", String(36), nullable=False),
    Column("star_count", Integer, nullable=False),
    Column("description", Text),
    Column("status", String(10), nullable=False, default="pending"),
    Column("report_reason", Text),
    Column("moderated_by", String(36), ForeignKey("admins.id")),
    Column("moderated_at", DateTime),
    Column("is_active", Boolean, nullable=False, default=True),
    *_timestamps(),
    UniqueConstraint("user_id", "target_type", "target_id", name="ratings_unique_user_target"),
)

support_tickets = Table(
    "support_tickets", metadata,
    _id(),
    Column("country_id", String(36), ForeignKey("countries.id"), nullable=False),
    Column("city_id", String(36), ForeignKey("cities.id")),
    Column("user_id", String(36), ForeignKey("users.id"), nullable=False),
    Column("assigned_to", String(36), ForeignKey("admins.id")),
    Column("ticket_number", String(20), nullable=False, unique=True),
    Column("subject", String(255), nullable=False),
    Column("description", Text, nullable=False),
    Column("category", String(20), nullable=False, default="general"),
    Column("priority", String(10), nullable=False, default="medium"),
    Column("status", String(15), nullable=False, default="open"),
    Column("resolution_note", Text),
    Column("is_active", Boolean, nullable=False, default=True),
    *_timestamps(),
    Column("resolved_at", DateTime),
    Column("closed_at", DateTime),
)

support_messages = Table(
    "support_messages", metadata,
    _id(),
    Column("ticket_id", String(36), ForeignKey("support_tickets.id", ondelete="CASCADE"), nullable=False),
    Column("sender_type", String(10), nullable=False),
    Column("sender_id", String(36), nullable=False),
    Column("message", Text, nullable=False),
    Column("attachments", JSON),
    Column("is_internal", Boolean, nullable=False, default=False),
    Column("is_read", Boolean, nullable=False, default=False),
    Column("read_at", DateTime),
    *_timestamps(),
)

# ── Orders ───────────────────────────────────────────────────────────

orders = Table(
    "orders", metadata,
    _id(),
    Column("country_id", String(36), ForeignKey("countries.id"), nullable=False),
    Column("city_id", String(36), ForeignKey("cities.id")),
    Column("store_id", String(36), ForeignKey("stores.id"), nullable=False),
    Column("driver_id", String(36), ForeignKey("drivers.id")),
    Column("payment_option_id", String(36), ForeignKey("payment_options.id")),
    Column("promo_code_id", String(36), ForeignKey("promo_codes.id")),
    Column("user_id", String(36), ForeignKey("users.id"), nullable=False),
    Column("customer_name", String(100), nullable=False),
    Column("customer_phone", String(20), nullable=False),
    Column("customer_email", String(255)),
    Column("items", JSON, nullable=False, default=list),
    Column("total_item_quantity", Integer, nullable=False),
    _money("total_item_price", nullable=False),
    _money("discount_amount", nullable=False, default=0),
    _money("final_price", nullable=False),
    Column("extra_note", Text),
    Column("delivery_address", JSON, nullable=False),
    Column("payment_status", String(10), nullable=False, default="not_paid"),
    Column("order_status", String(20), nullable=False, default="pending"),
    Column("transaction_id", String(100)),
    *_timestamps(),
)
