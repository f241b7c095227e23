"""
Request bodies for countries, cities, and delivery zones.
"""

from typing import List, Literal, Optional

from pydantic import EmailStr, Field, field_validator

from zook_admin.schemas.common import Money, Payload, WeeklyHours

DeliveryFeeType = Literal["zone", "fixed", "distance"]


class CountryCreate(Payload):
    name: str = Field(min_length=1, max_length=100)
    code: str = Field(min_length=2, max_length=2)
    phone_code: str = Field(min_length=1, max_length=5)
    currency_code: str = Field(min_length=3, max_length=3)
    currency_symbol: str = Field(min_length=1, max_length=5)
    timezone: str = Field(min_length=1, max_length=50)
    default_language: str = Field(min_length=2, max_length=2)
    has_delivery: bool = True
    has_pickup: bool = True
    min_order_amount: Money = 0
    delivery_fee_type: DeliveryFeeType = "zone"
    default_delivery_fee: Money = 0
    app_share_text: Optional[str] = None
    support_phone: Optional[str] = Field(default=None, max_length=20)
    support_email: Optional[EmailStr] = None
    facebook_url: Optional[str] = None
    instagram_url: Optional[str] = None
    twitter_url: Optional[str] = None
    is_active: bool = True

    @field_validator("code", "currency_code")
    @classmethod
    def _upper(cls, v: str) -> str:
        return v.upper()


class CountryUpdate(Payload):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    code: Optional[str] = Field(default=None, min_length=2, max_length=2)
    phone_code: Optional[str] = Field(default=None, min_length=1, max_length=5)
    currency_code: Optional[str] = Field(default=None, min_length=3, max_length=3)
    currency_symbol: Optional[str] = Field(default=None, min_length=1, max_length=5)
    timezone: Optional[str] = Field(default=None, min_length=1, max_length=50)
    default_language: Optional[str] = Field(default=None, min_length=2, max_length=2)
    has_delivery: Optional[bool] = None
    has_pickup: Optional[bool] = None
    min_order_amount: Optional[Money] = None
    delivery_fee_type: Optional[DeliveryFeeType] = None
    default_delivery_fee: Optional[Money] = None
    app_share_text: Optional[str] = None
    support_phone: Optional[str] = Field(default=None, max_length=20)
    support_email: Optional[EmailStr] = None
    facebook_url: Optional[str] = None
    instagram_url: Optional[str] = None
    twitter_url: Optional[str] = None
    is_active: Optional[bool] = None

    @field_validator("code", "currency_code")
    @classmethod
    def _upper(cls, v):
        return v.upper() if v else v


# ── Cities / zones ───────────────────────────────────────────────────

class ZoneCreate(Payload):
    name: str = Field(min_length=2, max_length=100)
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)
    delivery_price: Money


class ZoneUpdate(Payload):
    name: Optional[str] = Field(default=None, min_length=2, max_length=100)
    latitude: Optional[float] = Field(default=None, ge=-90, le=90)
    longitude: Optional[float] = Field(default=None, ge=-180, le=180)
    delivery_price: Optional[Money] = None


class CityCreate(Payload):
    country_id: Optional[str] = None  # defaults to the caller's country
    name: str = Field(min_length=1, max_length=100)
    latitude: Optional[float] = Field(default=None, ge=-90, le=90)
    longitude: Optional[float] = Field(default=None, ge=-180, le=180)
    has_delivery: bool = True
    delivery_fee: Optional[Money] = None
    min_order_amount: Optional[Money] = None
    operating_hours: WeeklyHours = Field(default_factory=list)
    zones: List[ZoneCreate] = Field(default_factory=list)
    is_active: bool = True

    @field_validator("zones")
    @classmethod
    def _zone_names_unique(cls, zones):
        names = [z.name.lower() for z in zones]
        if len(names) != len(set(names)):
            raise ValueError("zone names must be unique within a city")
        return zones


class CityUpdate(Payload):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    latitude: Optional[float] = Field(default=None, ge=-90, le=90)
    longitude: Optional[float] = Field(default=None, ge=-180, le=180)
    has_delivery: Optional[bool] = None
    delivery_fee: Optional[Money] = None
    min_order_amount: Optional[Money] = None
    operating_hours: Optional[WeeklyHours] = None
    is_active: Optional[bool] = None
