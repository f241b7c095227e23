"""
Request bodies for ratings and the support desk.
"""

from typing import ClassVar, List, Literal, Optional, Set

from pydantic import Field, model_validator

from zook_admin.schemas.common import Payload

TargetType = Literal["store", "item"]
RatingStatus = Literal["pending", "approved", "rejected", "reported"]


# ── Ratings ──────────────────────────────────────────────────────────

class RatingCreate(Payload):
    user_id: str
    target_type: TargetType
    target_id: str
    star_count: int = Field(ge=1, le=5)
    description: Optional[str] = None


class RatingUpdate(Payload):
    clearable: ClassVar[Set[str]] = {"description"}

    star_count: Optional[int] = Field(default=None, ge=1, le=5)
    description: Optional[str] = None
    is_active: Optional[bool] = None


class RatingModeration(Payload):
    status: Literal["approved", "rejected", "reported"]
    report_reason: Optional[str] = Field(default=None, max_length=1000)

    @model_validator(mode="after")
    def _reason(self):
        if self.status == "reported" and not self.report_reason:
            raise ValueError("report_reason is required when reporting a rating")
        if self.status != "reported":
            self.report_reason = None
        return self


# ── Support tickets ──────────────────────────────────────────────────

TicketCategory = Literal["general", "technical", "billing", "feature_request", "complaint"]
TicketPriority = Literal["low", "medium", "high", "urgent"]
TicketStatus = Literal["open", "in_progress", "resolved", "closed", "reopened"]


class TicketCreate(Payload):
    user_id: str
    subject: str = Field(min_length=3, max_length=255)
    description: str = Field(min_length=1)
    category: TicketCategory = "general"
    priority: TicketPriority = "medium"
    assigned_to: Optional[str] = None


class TicketUpdate(Payload):
    clearable: ClassVar[Set[str]] = {"assigned_to"}

    subject: Optional[str] = Field(default=None, min_length=3, max_length=255)
    description: Optional[str] = Field(default=None, min_length=1)
    category: Optional[TicketCategory] = None
    priority: Optional[TicketPriority] = None
    status: Optional[TicketStatus] = None
    assigned_to: Optional[str] = None
    resolution_note: Optional[str] = None
    is_active: Optional[bool] = None

    @model_validator(mode="after")
    def _resolution(self):
        if self.status == "resolved" and not self.resolution_note:
            raise ValueError("resolution_note is required when resolving a ticket")
        return self


# ── Support messages ─────────────────────────────────────────────────

class Attachment(Payload):
    name: str = Field(min_length=1, max_length=255)
    url: str = Field(min_length=1)
    type: str = Field(min_length=1, max_length=100)
    size: int = Field(ge=0)


class MessageCreate(Payload):
    ticket_id: str
    sender_type: Literal["user", "admin"] = "admin"
    message: str = Field(min_length=1)
    attachments: Optional[List[Attachment]] = None
    is_internal: bool = False

    @model_validator(mode="after")
    def _internal(self):
        if self.is_internal and self.sender_type != "admin":
            raise ValueError("only admins can post internal messages")
        return self


class MessageUpdate(Payload):
    clearable: ClassVar[Set[str]] = {"attachments"}

    message: Optional[str] = Field(default=None, min_length=1)
    attachments: Optional[List[Attachment]] = None
    is_internal: Optional[bool] = None
    is_read: Optional[bool] = None
