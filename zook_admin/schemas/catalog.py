"""
Request bodies for categories, stores, and the store menu.
"""

from typing import ClassVar, List, Literal, Optional, Set

from pydantic import Field, field_validator, model_validator

from zook_admin.schemas.common import Location, Money, Payload, WeeklyHours

CoverType = Literal["image", "video", "gif"]


# ── Marketplace categories ───────────────────────────────────────────

class CategoryCreate(Payload):
    country_id: Optional[str] = None
    city_id: Optional[str] = None
    name: str = Field(min_length=1, max_length=100)
    description: Optional[str] = None
    media_id: Optional[str] = None
    position: Optional[int] = Field(default=None, ge=0)
    is_active: bool = True


class CategoryUpdate(Payload):
    clearable: ClassVar[Set[str]] = {"description", "media_id"}

    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = None
    media_id: Optional[str] = None
    is_active: Optional[bool] = None


# ── Stores ───────────────────────────────────────────────────────────

class StoreCredentials(Payload):
    username: str = Field(min_length=3, max_length=50)
    password: str = Field(min_length=8, max_length=128)


class StoreCredentialsUpdate(Payload):
    username: Optional[str] = Field(default=None, min_length=3, max_length=50)
    password: Optional[str] = Field(default=None, min_length=8, max_length=128)


class StoreCreate(Payload):
    country_id: Optional[str] = None
    city_id: Optional[str] = None
    category_id: str
    logo_media_id: Optional[str] = None
    cover_media_id: Optional[str] = None
    name: str = Field(min_length=1, max_length=100)
    description: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    cover_type: CoverType = "image"
    operating_hours: WeeklyHours = Field(default_factory=list)
    location: Location
    preparation_time_minutes: int = Field(default=0, ge=0)
    special_delivery_fee: Optional[Money] = None
    special_discount_percentage: Optional[float] = Field(default=None, ge=0, le=100)
    is_sponsored: bool = False
    auth_details: StoreCredentials


class StoreUpdate(Payload):
    clearable: ClassVar[Set[str]] = {
        "logo_media_id", "cover_media_id", "description",
        "special_delivery_fee", "special_discount_percentage",
    }

    category_id: Optional[str] = None
    logo_media_id: Optional[str] = None
    cover_media_id: Optional[str] = None
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = None
    tags: Optional[List[str]] = None
    cover_type: Optional[CoverType] = None
    operating_hours: Optional[WeeklyHours] = None
    location: Optional[Location] = None
    preparation_time_minutes: Optional[int] = Field(default=None, ge=0)
    special_delivery_fee: Optional[Money] = None
    special_discount_percentage: Optional[float] = Field(default=None, ge=0, le=100)
    is_sponsored: Optional[bool] = None
    is_active: Optional[bool] = None
    is_busy: Optional[bool] = None
    auth_details: Optional[StoreCredentialsUpdate] = None


# ── Store menu sections ──────────────────────────────────────────────

class StoreItemCategoryCreate(Payload):
    store_id: str
    name: str = Field(min_length=1, max_length=100)
    slug: Optional[str] = Field(default=None, max_length=150, pattern=r"^[a-z0-9-]+$")
    position: int = Field(default=0, ge=0)
    is_active: bool = True


class StoreItemCategoryUpdate(Payload):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    slug: Optional[str] = Field(default=None, max_length=150, pattern=r"^[a-z0-9-]+$")
    position: Optional[int] = Field(default=None, ge=0)
    is_active: Optional[bool] = None


# ── Store items ──────────────────────────────────────────────────────

class OptionChoice(Payload):
    name: str = Field(min_length=1, max_length=100)


class OptionGroup(Payload):
    title: str = Field(min_length=1, max_length=100)
    is_required: bool = False
    is_single: bool = True
    items: List[OptionChoice] = Field(min_length=1)


class Extra(Payload):
    name: str = Field(min_length=1, max_length=100)
    price: Money


def _unique_extra_names(extras):
    if extras is None:
        return extras
    names = [e.name for e in extras]
    if len(names) != len(set(names)):
        raise ValueError("extra names must be unique")
    return extras


class StoreItemCreate(Payload):
    store_id: str
    category_id: str
    name: str = Field(min_length=1, max_length=100)
    description: Optional[str] = None
    price: Money
    options: List[OptionGroup] = Field(default_factory=list)
    extras: List[Extra] = Field(default_factory=list)
    is_active: bool = True
    photo_media_ids: List[str] = Field(default_factory=list)

    @field_validator("extras")
    @classmethod
    def _extras(cls, v):
        return _unique_extra_names(v)


class StoreItemUpdate(Payload):
    clearable: ClassVar[Set[str]] = {"description"}

    category_id: Optional[str] = None
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = None
    price: Optional[Money] = None
    options: Optional[List[OptionGroup]] = None
    extras: Optional[List[Extra]] = None
    is_active: Optional[bool] = None

    @field_validator("extras")
    @classmethod
    def _extras(cls, v):
        return _unique_extra_names(v)


class PhotosAdd(Payload):
    media_ids: List[str] = Field(min_length=1)
    positions: Optional[List[int]] = None

    @model_validator(mode="after")
    def _positions(self):
        if self.positions is not None and len(self.positions) != len(self.media_ids):
            raise ValueError("positions must match media_ids one to one")
        if len(set(self.media_ids)) != len(self.media_ids):
            raise ValueError("media_ids must not repeat")
        return self
