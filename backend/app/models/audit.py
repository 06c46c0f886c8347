"""Security ORM — audit trail, backup requests and compliance records.

Invariants:
    - AuditLog rows are append-only; nothing updates or deletes them
    - old_value/new_value hold JSON-safe snapshots (no password hashes)
    - A compliance record counts as compliant only while its status is COMPLIANT
"""

import uuid
from datetime import date, datetime

from sqlalchemy import JSON, Boolean, Date, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID

from app.core.domain_types import AuditAction, BackupStatus, BackupType, ComplianceStatus
from app.db.base import Base, Timestamps, UUIDPrimaryKey, enum_column, utcnow


class AuditLog(UUIDPrimaryKey, Base):
    __tablename__ = "audit_logs"

    school_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("schools.id", ondelete="SET NULL"), index=True,
    )
    user_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"),
    )
    action: Mapped[AuditAction] = mapped_column(enum_column(AuditAction), nullable=False)
    entity: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    entity_id: Mapped[str | None] = mapped_column(String(64))
    old_value: Mapped[dict | None] = mapped_column(JSON)
    new_value: Mapped[dict | None] = mapped_column(JSON)
    ip_address: Mapped[str | None] = mapped_column(String(64))
    user_agent: Mapped[str | None] = mapped_column(String(500))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow,
    )


class DataBackup(UUIDPrimaryKey, Timestamps, Base):
    __tablename__ = "data_backups"

    school_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("schools.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    requested_by: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"),
    )
    filename: Mapped[str] = mapped_column(String(255), nullable=False)
    size: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    status: Mapped[BackupStatus] = mapped_column(
        enum_column(BackupStatus), nullable=False, default=BackupStatus.PENDING,
    )
    type: Mapped[BackupType] = mapped_column(
        enum_column(BackupType), nullable=False, default=BackupType.FULL,
    )
    notes: Mapped[str | None] = mapped_column(Text)


class ComplianceRecord(UUIDPrimaryKey, Timestamps, Base):
    __tablename__ = "compliance_records"

    school_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("schools.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    compliance_type: Mapped[str] = mapped_column(String(50), nullable=False, default="GDPR")
    description: Mapped[str | None] = mapped_column(Text)
    status: Mapped[ComplianceStatus] = mapped_column(
        enum_column(ComplianceStatus), nullable=False, default=ComplianceStatus.ACTIVE,
    )
    valid_from: Mapped[date] = mapped_column(Date, nullable=False)
    valid_until: Mapped[date | None] = mapped_column(Date)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
