"""Student ORM — enrolled students and their guardians.

Invariants:
    - admission_number is unique within a school (not globally)
    - school_id and admission_number never change after creation
    - Deletion is soft: is_active=False keeps fee, library and order history intact

Design Decisions:
    - guardians loaded with selectin: every student response embeds them
"""

import uuid
from datetime import date

from sqlalchemy import (
    JSON, Boolean, Date, ForeignKey, String, Text, UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.dialects.postgresql import UUID

from app.core.domain_types import BloodGroup, Gender
from app.db.base import Base, Timestamps, UUIDPrimaryKey, enum_column


class Student(UUIDPrimaryKey, Timestamps, Base):
    __tablename__ = "students"
    __table_args__ = (UniqueConstraint("school_id", "admission_number"),)

    school_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("schools.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    branch_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("branches.id", ondelete="SET NULL"),
    )
    class_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("classes.id", ondelete="RESTRICT"),
        nullable=False, index=True,
    )
    section_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("sections.id", ondelete="SET NULL"),
    )
    admission_number: Mapped[str] = mapped_column(String(50), nullable=False)
    roll_number: Mapped[str | None] = mapped_column(String(50))
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str | None] = mapped_column(String(255))
    phone: Mapped[str | None] = mapped_column(String(30))
    date_of_birth: Mapped[date | None] = mapped_column(Date)
    gender: Mapped[Gender] = mapped_column(
        enum_column(Gender), nullable=False, default=Gender.MALE,
    )
    blood_group: Mapped[BloodGroup | None] = mapped_column(enum_column(BloodGroup))
    nationality: Mapped[str | None] = mapped_column(String(100))
    religion: Mapped[str | None] = mapped_column(String(100))
    address: Mapped[str | None] = mapped_column(Text)
    city: Mapped[str | None] = mapped_column(String(100))
    state: Mapped[str | None] = mapped_column(String(100))
    pincode: Mapped[str | None] = mapped_column(String(20))
    admission_date: Mapped[date | None] = mapped_column(Date)
    previous_school: Mapped[str | None] = mapped_column(String(200))
    medical_info: Mapped[dict | None] = mapped_column(JSON)
    photo: Mapped[str | None] = mapped_column(String(500))
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    guardians: Mapped[list["Guardian"]] = relationship(
        "Guardian", back_populates="student",
        cascade="all, delete-orphan", lazy="selectin",
    )


class Guardian(UUIDPrimaryKey, Timestamps, Base):
    __tablename__ = "guardians"

    student_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("students.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    relation: Mapped[str] = mapped_column(String(50), nullable=False)
    phone: Mapped[str] = mapped_column(String(30), nullable=False, default="")
    email: Mapped[str | None] = mapped_column(String(255))
    occupation: Mapped[str | None] = mapped_column(String(100))
    address: Mapped[str | None] = mapped_column(Text)
    is_primary: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    student: Mapped["Student"] = relationship("Student", back_populates="guardians")
