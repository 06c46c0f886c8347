"""Admission ORM — prospective students moving through the admission pipeline.

Invariants:
    - inquiry_number is unique within a school
    - student_id is set only once the admission is ADMITTED
"""

import uuid
from datetime import date, datetime

from sqlalchemy import (
    JSON, Date, DateTime, Float, ForeignKey, String, Text, UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID

from app.core.domain_types import AdmissionStatus, Gender
from app.db.base import Base, Timestamps, UUIDPrimaryKey, enum_column


class Admission(UUIDPrimaryKey, Timestamps, Base):
    __tablename__ = "admissions"
    __table_args__ = (UniqueConstraint("school_id", "inquiry_number"),)

    school_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("schools.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    student_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("students.id", ondelete="SET NULL"),
    )
    inquiry_number: Mapped[str] = mapped_column(String(50), nullable=False)
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    date_of_birth: Mapped[date | None] = mapped_column(Date)
    gender: Mapped[Gender | None] = mapped_column(enum_column(Gender))
    applied_class: Mapped[str] = mapped_column(String(100), nullable=False)
    previous_school: Mapped[str | None] = mapped_column(String(200))
    parent_name: Mapped[str] = mapped_column(String(200), nullable=False)
    parent_phone: Mapped[str] = mapped_column(String(30), nullable=False)
    parent_email: Mapped[str | None] = mapped_column(String(255))
    address: Mapped[str | None] = mapped_column(Text)
    status: Mapped[AdmissionStatus] = mapped_column(
        enum_column(AdmissionStatus), nullable=False, default=AdmissionStatus.INQUIRY,
    )
    test_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    test_score: Mapped[float | None] = mapped_column(Float)
    interview_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    interview_notes: Mapped[str | None] = mapped_column(Text)
    documents: Mapped[dict | None] = mapped_column(JSON)
