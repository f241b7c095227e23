"""
Request bodies for orders.
"""

from typing import ClassVar, List, Literal, Optional, Set

from pydantic import EmailStr, Field

from zook_admin.schemas.common import Money, Payload

OrderStatus = Literal["pending", "preparing", "done_preparing", "on_way", "delivered", "cancelled"]
PaymentState = Literal["paid", "not_paid"]


class ChosenOption(Payload):
    name: str = Field(min_length=1)
    value: Optional[str] = None


class ChosenExtra(Payload):
    name: str = Field(min_length=1)
    price: Money


class OrderLine(Payload):
    id: str
    quantity: int = Field(gt=0)
    options: List[ChosenOption] = Field(default_factory=list)
    extras: List[ChosenExtra] = Field(default_factory=list)


class DeliveryAddress(Payload):
    name: str = Field(min_length=1, max_length=100)
    type: Literal["house", "apartment", "work"] = "house"
    street: str = Field(min_length=1)
    city: str = Field(min_length=1)
    description: str = ""
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)


class OrderCreate(Payload):
    user_id: str
    store_id: str
    payment_option_id: Optional[str] = None
    promo_code_id: Optional[str] = None
    items: List[OrderLine] = Field(min_length=1)
    extra_note: Optional[str] = None
    delivery_address: DeliveryAddress
    customer_name: Optional[str] = Field(default=None, max_length=100)
    customer_phone: Optional[str] = Field(default=None, max_length=20)
    customer_email: Optional[EmailStr] = None


class OrderUpdate(Payload):
    clearable: ClassVar[Set[str]] = {"extra_note"}

    payment_option_id: Optional[str] = None
    extra_note: Optional[str] = None
    delivery_address: Optional[DeliveryAddress] = None
    transaction_id: Optional[str] = Field(default=None, max_length=100)


class StatusChange(Payload):
    status: OrderStatus


class PaymentStatusChange(Payload):
    status: PaymentState
    transaction_id: Optional[str] = Field(default=None, max_length=100)


class DriverAssignment(Payload):
    driver_id: str
