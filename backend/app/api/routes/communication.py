"""Communication Routes — announcements, events, direct messages and notifications.

Invariants:
    - Announcements and events are tenant-owned rows like any other resource
    - Messages and notifications belong to users: callers only ever see their own
    - A message or notification can only target a user of the caller's school
    - Only the receiver can mark a message read; read_at is set once
"""

from datetime import datetime, timezone
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import list_query, require_module
from app.core.domain_types import AnnouncementPriority, AuditAction
from app.core.envelope import paginated_response, success_response
from app.core.errors import ResourceNotFoundError, ValidationFailedError
from app.core.pagination import ListQuery, parse_bool_flag
from app.core.tenancy import CurrentUser, in_scope, resolve_school_id
from app.infrastructure.database import get_db
from app.models.communication import Announcement, Event, Message, Notification
from app.models.user import User
from app.schemas.communication import (
    AnnouncementCreate, AnnouncementRead, AnnouncementUpdate, EventCreate, EventRead,
    EventUpdate, MessageCreate, MessageRead, NotificationCreate, NotificationRead,
)
from app.schemas.common import CountResult
from app.services.audit import record_audit, snapshot
from app.services.querying import (
    apply_changes, apply_search, apply_sort, get_scoped_or_404, paginate, scope_to_school,
)

router = APIRouter(prefix="/api/communication", tags=["communication"])


def _role_value(changes: dict) -> dict:
    if changes.get("target_role") is not None:
        changes["target_role"] = changes["target_role"].value
    return changes


async def _recipient(
    db: AsyncSession, user: CurrentUser, user_id: UUID, field_name: str,
) -> User:
    recipient = await db.get(User, user_id)
    if recipient is None or not recipient.is_active or not in_scope(user, recipient.school_id):
        raise ValidationFailedError.single(field_name, "Recipient not found")
    return recipient


# ─── ANNOUNCEMENTS ──────────────────────────────────────────────

@router.get("/announcements")
async def list_announcements(
    query: ListQuery = Depends(list_query),
    priority: AnnouncementPriority | None = Query(None),
    is_active: str | None = Query(None, alias="isActive"),
    user: CurrentUser = Depends(require_module("communication")),
    db: AsyncSession = Depends(get_db),
):
    stmt = scope_to_school(select(Announcement), Announcement, user)
    stmt = apply_search(stmt, query.search, [Announcement.title, Announcement.content])
    if priority:
        stmt = stmt.where(Announcement.priority == priority)
    active = parse_bool_flag(is_active)
    if active is not None:
        stmt = stmt.where(Announcement.is_active == active)
    stmt = apply_sort(stmt, query, {
        "createdAt": Announcement.created_at, "publishedAt": Announcement.published_at,
        "title": Announcement.title,
    })
    rows, total = await paginate(db, stmt, query)
    return paginated_response(
        [AnnouncementRead.model_validate(a) for a in rows], total, query.pagination,
    )


@router.post("/announcements", status_code=status.HTTP_201_CREATED)
async def create_announcement(
    body: AnnouncementCreate,
    user: CurrentUser = Depends(require_module("communication")),
    db: AsyncSession = Depends(get_db),
):
    school_id = resolve_school_id(user, body.school_id)
    announcement = Announcement(
        **_role_value(body.model_dump(exclude={"school_id"})),
        school_id=school_id, author_id=user.id,
    )
    if announcement.published_at is None:
        announcement.published_at = datetime.now(timezone.utc)
    db.add(announcement)
    await db.flush()
    record_audit(
        db, user, AuditAction.CREATE, "Announcement", announcement.id,
        school_id=school_id, new_value=snapshot(announcement),
    )
    await db.commit()
    return success_response(
        AnnouncementRead.model_validate(announcement), "Announcement created successfully",
    )


@router.get("/announcements/{announcement_id}")
async def get_announcement(
    announcement_id: UUID,
    user: CurrentUser = Depends(require_module("communication")),
    db: AsyncSession = Depends(get_db),
):
    announcement = await get_scoped_or_404(
        db, Announcement, announcement_id, user, "Announcement",
    )
    return success_response(AnnouncementRead.model_validate(announcement))


@router.put("/announcements/{announcement_id}")
async def update_announcement(
    announcement_id: UUID,
    body: AnnouncementUpdate,
    user: CurrentUser = Depends(require_module("communication")),
    db: AsyncSession = Depends(get_db),
):
    announcement = await get_scoped_or_404(
        db, Announcement, announcement_id, user, "Announcement",
    )
    before = snapshot(announcement)
    apply_changes(announcement, _role_value(body.model_dump(exclude_unset=True)))
    await db.flush()
    record_audit(
        db, user, AuditAction.UPDATE, "Announcement", announcement.id,
        school_id=announcement.school_id, old_value=before, new_value=snapshot(announcement),
    )
    await db.commit()
    return success_response(
        AnnouncementRead.model_validate(announcement), "Announcement updated successfully",
    )


@router.delete("/announcements/{announcement_id}")
async def delete_announcement(
    announcement_id: UUID,
    user: CurrentUser = Depends(require_module("communication")),
    db: AsyncSession = Depends(get_db),
):
    announcement = await get_scoped_or_404(
        db, Announcement, announcement_id, user, "Announcement",
    )
    announcement.is_active = False
    record_audit(
        db, user, AuditAction.DELETE, "Announcement", announcement.id,
        school_id=announcement.school_id,
        old_value={"isActive": True}, new_value={"isActive": False},
    )
    await db.commit()
    return success_response({"id": str(announcement.id)}, "Announcement deleted successfully")


# ─── EVENTS ─────────────────────────────────────────────────────

@router.get("/events")
async def list_events(
    query: ListQuery = Depends(list_query),
    upcoming: str | None = Query(None),
    is_active: str | None = Query(None, alias="isActive"),
    user: CurrentUser = Depends(require_module("communication")),
    db: AsyncSession = Depends(get_db),
):
    stmt = scope_to_school(select(Event), Event, user)
    stmt = apply_search(stmt, query.search, [Event.title, Event.location])
    if parse_bool_flag(upcoming):
        stmt = stmt.where(Event.event_date >= datetime.now(timezone.utc))
    active = parse_bool_flag(is_active)
    if active is not None:
        stmt = stmt.where(Event.is_active == active)
    if query.sort_by:
        stmt = apply_sort(stmt, query, {
            "eventDate": Event.event_date, "createdAt": Event.created_at, "title": Event.title,
        })
    else:
        stmt = stmt.order_by(Event.event_date.asc())
    rows, total = await paginate(db, stmt, query)
    return paginated_response(
        [EventRead.model_validate(e) for e in rows], total, query.pagination,
    )


@router.post("/events", status_code=status.HTTP_201_CREATED)
async def create_event(
    body: EventCreate,
    user: CurrentUser = Depends(require_module("communication")),
    db: AsyncSession = Depends(get_db),
):
    school_id = resolve_school_id(user, body.school_id)
    event = Event(**body.model_dump(exclude={"school_id"}), school_id=school_id)
    db.add(event)
    await db.flush()
    record_audit(
        db, user, AuditAction.CREATE, "Event", event.id,
        school_id=school_id, new_value=snapshot(event),
    )
    await db.commit()
    return success_response(EventRead.model_validate(event), "Event created successfully")


@router.get("/events/{event_id}")
async def get_event(
    event_id: UUID,
    user: CurrentUser = Depends(require_module("communication")),
    db: AsyncSession = Depends(get_db),
):
    event = await get_scoped_or_404(db, Event, event_id, user, "Event")
    return success_response(EventRead.model_validate(event))


@router.put("/events/{event_id}")
async def update_event(
    event_id: UUID,
    body: EventUpdate,
    user: CurrentUser = Depends(require_module("communication")),
    db: AsyncSession = Depends(get_db),
):
    event = await get_scoped_or_404(db, Event, event_id, user, "Event")
    before = snapshot(event)
    apply_changes(event, body.model_dump(exclude_unset=True))
    await db.flush()
    record_audit(
        db, user, AuditAction.UPDATE, "Event", event.id, school_id=event.school_id,
        old_value=before, new_value=snapshot(event),
    )
    await db.commit()
    return success_response(EventRead.model_validate(event), "Event updated successfully")


@router.delete("/events/{event_id}")
async def delete_event(
    event_id: UUID,
    user: CurrentUser = Depends(require_module("communication")),
    db: AsyncSession = Depends(get_db),
):
    event = await get_scoped_or_404(db, Event, event_id, user, "Event")
    event.is_active = False
    record_audit(
        db, user, AuditAction.DELETE, "Event", event.id, school_id=event.school_id,
        old_value={"isActive": True}, new_value={"isActive": False},
    )
    await db.commit()
    return success_response({"id": str(event.id)}, "Event deleted successfully")


# ─── MESSAGES ───────────────────────────────────────────────────

@router.get("/messages")
async def list_messages(
    query: ListQuery = Depends(list_query),
    box: str = Query("inbox", alias="type"),
    user: CurrentUser = Depends(require_module("communication")),
    db: AsyncSession = Depends(get_db),
):
    """Caller's inbox (default) or sent messages, newest first."""
    owner = Message.sender_id if box == "sent" else Message.receiver_id
    stmt = select(Message).where(owner == user.id)
    stmt = apply_search(stmt, query.search, [Message.subject, Message.content])
    stmt = stmt.order_by(Message.created_at.desc())
    rows, total = await paginate(db, stmt, query)
    return paginated_response(
        [MessageRead.model_validate(m) for m in rows], total, query.pagination,
    )


@router.post("/messages", status_code=status.HTTP_201_CREATED)
async def send_message(
    body: MessageCreate,
    user: CurrentUser = Depends(require_module("communication")),
    db: AsyncSession = Depends(get_db),
):
    recipient = await _recipient(db, user, body.receiver_id, "receiverId")
    message = Message(**body.model_dump(), sender_id=user.id)
    db.add(message)
    await db.flush()
    record_audit(
        db, user, AuditAction.CREATE, "Message", message.id,
        school_id=recipient.school_id, new_value={"receiverId": str(recipient.id)},
    )
    await db.commit()
    return success_response(MessageRead.model_validate(message), "Message sent successfully")


@router.get("/messages/{message_id}")
async def get_message(
    message_id: UUID,
    user: CurrentUser = Depends(require_module("communication")),
    db: AsyncSession = Depends(get_db),
):
    message = await db.get(Message, message_id)
    if message is None or user.id not in (message.sender_id, message.receiver_id):
        raise ResourceNotFoundError("Message", str(message_id))
    return success_response(MessageRead.model_validate(message))


@router.put("/messages/{message_id}/read")
async def mark_message_read(
    message_id: UUID,
    user: CurrentUser = Depends(require_module("communication")),
    db: AsyncSession = Depends(get_db),
):
    message = await db.get(Message, message_id)
    if message is None or message.receiver_id != user.id:
        raise ResourceNotFoundError("Message", str(message_id))
    if not message.is_read:
        message.is_read = True
        message.read_at = datetime.now(timezone.utc)
        await db.commit()
    return success_response(MessageRead.model_validate(message), "Message marked as read")


# ─── NOTIFICATIONS ──────────────────────────────────────────────

@router.get("/notifications")
async def list_notifications(
    query: ListQuery = Depends(list_query),
    is_read: str | None = Query(None, alias="isRead"),
    user: CurrentUser = Depends(require_module("communication")),
    db: AsyncSession = Depends(get_db),
):
    stmt = select(Notification).where(Notification.user_id == user.id)
    read = parse_bool_flag(is_read)
    if read is not None:
        stmt = stmt.where(Notification.is_read == read)
    stmt = stmt.order_by(Notification.created_at.desc())
    rows, total = await paginate(db, stmt, query)
    return paginated_response(
        [NotificationRead.model_validate(n) for n in rows], total, query.pagination,
    )


@router.post("/notifications", status_code=status.HTTP_201_CREATED)
async def create_notification(
    body: NotificationCreate,
    user: CurrentUser = Depends(require_module("communication")),
    db: AsyncSession = Depends(get_db),
):
    recipient = await _recipient(db, user, body.user_id, "userId")
    notification = Notification(**body.model_dump())
    db.add(notification)
    await db.flush()
    record_audit(
        db, user, AuditAction.CREATE, "Notification", notification.id,
        school_id=recipient.school_id, new_value=snapshot(notification),
    )
    await db.commit()
    return success_response(
        NotificationRead.model_validate(notification), "Notification created successfully",
    )


@router.put("/notifications/read-all")
async def mark_all_notifications_read(
    user: CurrentUser = Depends(require_module("communication")),
    db: AsyncSession = Depends(get_db),
):
    result = await db.execute(
        update(Notification)
        .where(Notification.user_id == user.id, Notification.is_read.is_(False))
        .values(is_read=True)
        .execution_options(synchronize_session=False),
    )
    await db.commit()
    count = result.rowcount or 0
    return success_response(
        CountResult(message=f"{count} notifications marked as read", count=count),
    )


@router.put("/notifications/{notification_id}/read")
async def mark_notification_read(
    notification_id: UUID,
    user: CurrentUser = Depends(require_module("communication")),
    db: AsyncSession = Depends(get_db),
):
    notification = await db.get(Notification, notification_id)
    if notification is None or notification.user_id != user.id:
        raise ResourceNotFoundError("Notification", str(notification_id))
    if not notification.is_read:
        notification.is_read = True
        await db.commit()
    return success_response(
        NotificationRead.model_validate(notification), "Notification marked as read",
    )
