"""
Request bodies for admin accounts and authentication.
"""

from typing import ClassVar, Literal, Optional, Set

from pydantic import EmailStr, Field

from zook_admin.schemas.common import Payload

AdminRole = Literal["super_admin", "admin", "finance", "support", "operator"]


class LoginRequest(Payload):
    username: str = Field(min_length=1, max_length=50)
    password: str = Field(min_length=1)


class AdminCreate(Payload):
    username: str = Field(min_length=3, max_length=50, pattern=r"^[A-Za-z0-9_.-]+$")
    password: str = Field(min_length=8, max_length=128)
    email: Optional[EmailStr] = None
    role: AdminRole
    country_id: Optional[str] = None
    city_id: Optional[str] = None
    full_name: Optional[str] = Field(default=None, max_length=100)
    phone_number: Optional[str] = Field(default=None, max_length=20)
    photo_media_id: Optional[str] = None
    is_active: bool = True


class AdminUpdate(Payload):
    clearable: ClassVar[Set[str]] = {"email", "city_id", "full_name", "phone_number", "photo_media_id"}

    password: Optional[str] = Field(default=None, min_length=8, max_length=128)
    email: Optional[EmailStr] = None
    role: Optional[AdminRole] = None
    country_id: Optional[str] = None
    city_id: Optional[str] = None
    full_name: Optional[str] = Field(default=None, max_length=100)
    phone_number: Optional[str] = Field(default=None, max_length=20)
    photo_media_id: Optional[str] = None
    is_active: Optional[bool] = None
