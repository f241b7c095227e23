"""
Request bodies for banners, payment options, and promo codes.
"""

from typing import Any, ClassVar, Dict, Literal, Optional, Set

from pydantic import EmailStr, Field, model_validator

from zook_admin.schemas.common import Money, Payload, UtcDatetime


def check_window(start, end):
    if start is not None and end is not None and start >= end:
        raise ValueError("start_date must be before end_date")


# ── Banners ──────────────────────────────────────────────────────────

class BannerCreate(Payload):
    country_id: Optional[str] = None
    city_id: Optional[str] = None
    store_id: Optional[str] = None
    name: str = Field(min_length=1, max_length=100)
    description: Optional[str] = None
    media_id: str
    is_promotion: bool = False
    start_date: Optional[UtcDatetime] = None
    end_date: Optional[UtcDatetime] = None
    position: Optional[int] = Field(default=None, ge=0)
    is_active: bool = True

    @model_validator(mode="after")
    def _dates(self):
        check_window(self.start_date, self.end_date)
        return self


class BannerUpdate(Payload):
    clearable: ClassVar[Set[str]] = {"store_id", "description", "start_date", "end_date"}

    store_id: Optional[str] = None
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = None
    media_id: Optional[str] = None
    is_promotion: Optional[bool] = None
    start_date: Optional[UtcDatetime] = None
    end_date: Optional[UtcDatetime] = None
    is_active: Optional[bool] = None


# ── Payment options ──────────────────────────────────────────────────

PaymentType = Literal["cash", "card", "wallet"]
PaymentStatus = Literal["active", "disabled", "testing"]
FeeType = Literal["fixed", "percentage"]


class PaymentOptionCreate(Payload):
    country_id: Optional[str] = None
    name: str = Field(min_length=1, max_length=100)
    type: PaymentType
    logo_media_id: Optional[str] = None
    config: Dict[str, Any] = Field(default_factory=dict)
    test_config: Optional[Dict[str, Any]] = None
    minimum_amount: Optional[Money] = None
    maximum_amount: Optional[Money] = None
    transaction_fee: Money = 0
    fee_type: FeeType = "fixed"
    processing_time: Optional[str] = Field(default=None, max_length=50)
    status: PaymentStatus = "testing"
    is_default: bool = False
    position: Optional[int] = Field(default=None, ge=0)
    description: Optional[str] = None
    instructions: Optional[str] = None
    support_phone: Optional[str] = Field(default=None, max_length=20)
    support_email: Optional[EmailStr] = None

    @model_validator(mode="after")
    def _amounts(self):
        if (self.minimum_amount is not None and self.maximum_amount is not None
                and self.minimum_amount >= self.maximum_amount):
            raise ValueError("minimum_amount must be less than maximum_amount")
        return self


class PaymentOptionUpdate(Payload):
    clearable: ClassVar[Set[str]] = {
        "logo_media_id", "test_config", "minimum_amount", "maximum_amount",
        "processing_time", "description", "instructions", "support_phone", "support_email",
    }

    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    type: Optional[PaymentType] = None
    logo_media_id: Optional[str] = None
    config: Optional[Dict[str, Any]] = None
    test_config: Optional[Dict[str, Any]] = None
    minimum_amount: Optional[Money] = None
    maximum_amount: Optional[Money] = None
    transaction_fee: Optional[Money] = None
    fee_type: Optional[FeeType] = None
    processing_time: Optional[str] = Field(default=None, max_length=50)
    status: Optional[PaymentStatus] = None
    is_default: Optional[bool] = None
    description: Optional[str] = None
    instructions: Optional[str] = None
    support_phone: Optional[str] = Field(default=None, max_length=20)
    support_email: Optional[EmailStr] = None


# ── Promo codes ──────────────────────────────────────────────────────

PromoType = Literal["percentage", "fixed"]


def check_promo_amounts(promo_type, discount_amount, maximum_discount):
    """Shared by create and by update once merged with the stored row."""
    if discount_amount is not None and discount_amount <= 0:
        raise ValueError("discount_amount must be greater than 0")
    if promo_type == "percentage" and discount_amount is not None and discount_amount > 100:
        raise ValueError("percentage discount cannot exceed 100")
    if maximum_discount is not None:
        if maximum_discount <= 0:
            raise ValueError("maximum_discount must be greater than 0")
        if promo_type == "fixed" and discount_amount is not None and maximum_discount < discount_amount:
            raise ValueError("maximum_discount must be at least discount_amount for fixed codes")


class PromoCodeCreate(Payload):
    country_id: Optional[str] = None
    city_id: Optional[str] = None
    code: str = Field(min_length=3, max_length=50)
    type: PromoType = "fixed"
    discount_amount: float
    minimum_order_amount: Optional[float] = Field(default=None, gt=0)
    maximum_discount: Optional[float] = None
    usage_limit: Optional[int] = Field(default=None, gt=0)
    description: Optional[str] = None
    start_date: Optional[UtcDatetime] = None
    end_date: Optional[UtcDatetime] = None
    is_active: bool = True

    @model_validator(mode="after")
    def _rules(self):
        self.code = self.code.upper()
        check_promo_amounts(self.type, self.discount_amount, self.maximum_discount)
        check_window(self.start_date, self.end_date)
        return self


class PromoCodeUpdate(Payload):
    clearable: ClassVar[Set[str]] = {
        "minimum_order_amount", "maximum_discount", "usage_limit",
        "description", "start_date", "end_date",
    }

    code: Optional[str] = Field(default=None, min_length=3, max_length=50)
    type: Optional[PromoType] = None
    discount_amount: Optional[float] = None
    minimum_order_amount: Optional[float] = Field(default=None, gt=0)
    maximum_discount: Optional[float] = None
    usage_limit: Optional[int] = Field(default=None, gt=0)
    description: Optional[str] = None
    start_date: Optional[UtcDatetime] = None
    end_date: Optional[UtcDatetime] = None
    is_active: Optional[bool] = None

    @model_validator(mode="after")
    def _upper(self):
        if self.code:
            self.code = self.code.upper()
        return self

