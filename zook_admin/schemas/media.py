"""
Request bodies for media metadata registration.
"""

from typing import ClassVar, Literal, Optional, Set

from pydantic import Field, model_validator

from zook_admin.config import MEDIA_LIMITS
from zook_admin.schemas.common import Payload

MediaType = Literal["image", "video", "gif"]
MediaPurpose = Literal[
    "store_logo", "store_cover", "product_image", "store_item", "category_image",
    "banner", "profile_photo", "payment_logo", "other",
]


class MediaCreate(Payload):
    country_id: Optional[str] = None
    city_id: Optional[str] = None
    file_name: str = Field(min_length=1, max_length=255)
    original_name: str = Field(min_length=1, max_length=255)
    type: MediaType
    mime_type: str = Field(min_length=1, max_length=100)
    purpose: MediaPurpose = "other"
    url: str = Field(min_length=1)
    thumbnail_url: Optional[str] = None
    size_in_bytes: int = Field(gt=0)
    width: int = Field(gt=0)
    height: int = Field(gt=0)
    duration: Optional[int] = Field(default=None, gt=0)
    folder_path: str = Field(min_length=1)
    alt_text: Optional[str] = Field(default=None, max_length=255)
    title: Optional[str] = Field(default=None, max_length=255)
    description: Optional[str] = None
    is_active: bool = True

    @model_validator(mode="after")
    def _check_media_kind(self):
        limits = MEDIA_LIMITS[self.type]
        if self.mime_type not in limits["mime_types"]:
            allowed = ", ".join(sorted(limits["mime_types"]))
            raise ValueError(f"{self.type} media must use one of: {allowed}")
        if self.size_in_bytes > limits["max_bytes"]:
            mb = limits["max_bytes"] // (1024 * 1024)
            raise ValueError(f"{self.type} media must not exceed {mb}MB")
        if self.type == "video" and self.duration is None:
            raise ValueError("duration is required for video media")
        if self.type in ("video", "gif") and not self.thumbnail_url:
            raise ValueError(f"thumbnail_url is required for {self.type} media")
        return self


class MediaUpdate(Payload):
    clearable: ClassVar[Set[str]] = {"alt_text", "title", "description"}

    purpose: Optional[MediaPurpose] = None
    alt_text: Optional[str] = Field(default=None, max_length=255)
    title: Optional[str] = Field(default=None, max_length=255)
    description: Optional[str] = None
    is_active: Optional[bool] = None
