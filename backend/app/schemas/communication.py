"""Communication Schemas — announcements, events, messages and notifications."""

from datetime import datetime
from uuid import UUID

from pydantic import Field

from app.core.domain_types import AnnouncementPriority, NotificationType, UserRole
from app.schemas.common import CamelModel, RequiredStr, UpdateModel


class AnnouncementCreate(CamelModel):
    title: RequiredStr = Field(max_length=200)
    school_id: UUID | None = None
    content: RequiredStr
    target_role: UserRole | None = None
    target_class: str | None = None
    priority: AnnouncementPriority = AnnouncementPriority.NORMAL
    published_at: datetime | None = None
    is_active: bool = True


class AnnouncementUpdate(UpdateModel):
    nullable_fields = frozenset({"target_role", "target_class", "published_at"})

    title: RequiredStr | None = Field(None, max_length=200)
    content: RequiredStr | None = None
    target_role: UserRole | None = None
    target_class: str | None = None
    priority: AnnouncementPriority | None = None
    published_at: datetime | None = None
    is_active: bool | None = None


class AnnouncementRead(CamelModel):
    id: UUID
    school_id: UUID
    author_id: UUID | None
    title: str
    content: str
    target_role: str | None
    target_class: str | None
    priority: AnnouncementPriority
    published_at: datetime | None
    is_active: bool
    created_at: datetime


class EventCreate(CamelModel):
    title: RequiredStr = Field(max_length=200)
    school_id: UUID | None = None
    description: str | None = None
    event_date: datetime
    location: str | None = None
    organizer: str | None = None
    is_public: bool = True
    is_active: bool = True


class EventUpdate(UpdateModel):
    nullable_fields = frozenset({"description", "location", "organizer"})

    title: RequiredStr | None = Field(None, max_length=200)
    description: str | None = None
    event_date: datetime | None = None
    location: str | None = None
    organizer: str | None = None
    is_public: bool | None = None
    is_active: bool | None = None


class EventRead(CamelModel):
    id: UUID
    school_id: UUID
    title: str
    description: str | None
    event_date: datetime
    location: str | None
    organizer: str | None
    is_public: bool
    is_active: bool


class MessageCreate(CamelModel):
    receiver_id: UUID
    subject: RequiredStr = Field(max_length=200)
    content: RequiredStr


class MessageRead(CamelModel):
    id: UUID
    sender_id: UUID
    receiver_id: UUID
    subject: str
    content: str
    is_read: bool
    read_at: datetime | None
    created_at: datetime


class NotificationRead(CamelModel):
    id: UUID
    title: str
    message: str
    type: NotificationType
    link: str | None
    is_read: bool
    created_at: datetime


class NotificationCreate(CamelModel):
    user_id: UUID
    title: RequiredStr = Field(max_length=200)
    message: RequiredStr
    type: NotificationType = NotificationType.INFO
    link: str | None = Field(None, max_length=500)
