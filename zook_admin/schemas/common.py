"""
Shared request-body building blocks.
"""

from datetime import datetime, timezone
from typing import Annotated, Any, ClassVar, Dict, List, Optional, Set

from pydantic import AfterValidator, BaseModel, ConfigDict, Field

from zook_admin.errors import ValidationError


def naive_utc(value: datetime) -> datetime:
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


UtcDatetime = Annotated[datetime, AfterValidator(naive_utc)]
Money = Annotated[float, Field(ge=0)]

class Payload(BaseModel):
    """Base for every request body: unknown fields are ignored."""
    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    # fields a client may reset to null on update
    clearable: ClassVar[Set[str]] = set()

    def changes(self) -> Dict[str, Any]:
        """Only the fields the client actually sent (nulls dropped unless clearable)."""
        return {
            k: v for k, v in self.model_dump(exclude_unset=True).items()
            if v is not None or k in self.clearable
        }


class OperatingHours(Payload):
    day: int = Field(ge=0, le=6)  # 0 = Sunday
    open: Optional[str] = Field(default=None, pattern=r"^([01]\d|2[0-3]):[0-5]\d$")
    close: Optional[str] = Field(default=None, pattern=r"^([01]\d|2[0-3]):[0-5]\d$")
    is_closed: bool = False


class Location(Payload):
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)
    street_name: str = Field(min_length=1, max_length=255)


def unique_days(value):
    days = [h.day for h in value]
    if len(days) != len(set(days)):
        raise ValueError("operating_hours must list each day at most once")
    return value


WeeklyHours = Annotated[List[OperatingHours], Field(max_length=7), AfterValidator(unique_days)]


class PositionBody(Payload):
    position: int = Field(ge=0)


def parse_body(model, data):
    """Validate a JSON body; an absent or non-object body is a 400."""
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return model.model_validate(data)