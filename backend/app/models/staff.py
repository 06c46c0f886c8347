"""Staff ORM — employees, daily attendance, leave requests and payroll.

Invariants:
    - employee_id is unique within a school; email is globally unique
    - salary and bank_details are sensitive: only PRINCIPAL and above read them
    - One attendance row per staff member per date
    - Attendance, leave and payroll rows carry school_id for direct tenant filtering
    - One payroll entry per staff member per month and year
"""

import uuid
import datetime as dt

from sqlalchemy import (
    JSON, Boolean, Date, DateTime, Float, ForeignKey, Integer, String, Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.dialects.postgresql import UUID

from app.core.domain_types import (
    AttendanceStatus, BloodGroup, Gender, LeaveStatus, PaymentMode, StaffType,
)
from app.db.base import Base, Timestamps, UUIDPrimaryKey, enum_column


class Staff(UUIDPrimaryKey, Timestamps, Base):
    __tablename__ = "staff"
    __table_args__ = (UniqueConstraint("school_id", "employee_id"),)

    school_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("schools.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    branch_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("branches.id", ondelete="SET NULL"),
    )
    employee_id: Mapped[str] = mapped_column(String(50), nullable=False)
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    phone: Mapped[str] = mapped_column(String(30), nullable=False)
    date_of_birth: Mapped[dt.date | None] = mapped_column(Date)
    gender: Mapped[Gender] = mapped_column(enum_column(Gender), nullable=False)
    blood_group: Mapped[BloodGroup | None] = mapped_column(enum_column(BloodGroup))
    address: Mapped[str | None] = mapped_column(Text)
    city: Mapped[str | None] = mapped_column(String(100))
    state: Mapped[str | None] = mapped_column(String(100))
    pincode: Mapped[str | None] = mapped_column(String(20))
    staff_type: Mapped[StaffType] = mapped_column(enum_column(StaffType), nullable=False)
    designation: Mapped[str] = mapped_column(String(100), nullable=False)
    department: Mapped[str | None] = mapped_column(String(100))
    joining_date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    qualification: Mapped[str | None] = mapped_column(String(200))
    experience: Mapped[int | None] = mapped_column(Integer)
    salary: Mapped[float | None] = mapped_column(Float)
    bank_details: Mapped[dict | None] = mapped_column(JSON)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class StaffAttendance(UUIDPrimaryKey, Timestamps, Base):
    __tablename__ = "staff_attendance"
    __table_args__ = (UniqueConstraint("staff_id", "date"),)

    school_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("schools.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    staff_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("staff.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    status: Mapped[AttendanceStatus] = mapped_column(
        enum_column(AttendanceStatus), nullable=False,
    )
    check_in: Mapped[dt.datetime | None] = mapped_column(DateTime(timezone=True))
    check_out: Mapped[dt.datetime | None] = mapped_column(DateTime(timezone=True))
    remarks: Mapped[str | None] = mapped_column(Text)


class LeaveRequest(UUIDPrimaryKey, Timestamps, Base):
    __tablename__ = "leave_requests"

    school_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("schools.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    staff_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("staff.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    start_date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    end_date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    leave_type: Mapped[str] = mapped_column(String(50), nullable=False)
    reason: Mapped[str] = mapped_column(String(500), nullable=False)
    status: Mapped[LeaveStatus] = mapped_column(
        enum_column(LeaveStatus), nullable=False, default=LeaveStatus.PENDING,
    )
    decided_by: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"),
    )
    decided_at: Mapped[dt.datetime | None] = mapped_column(DateTime(timezone=True))


class Payroll(UUIDPrimaryKey, Timestamps, Base):
    __tablename__ = "payrolls"
    __table_args__ = (UniqueConstraint("staff_id", "month", "year"),)

    school_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("schools.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    staff_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("staff.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    month: Mapped[int] = mapped_column(Integer, nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    basic_salary: Mapped[float] = mapped_column(Float, nullable=False)
    allowances: Mapped[dict | None] = mapped_column(JSON)
    deductions: Mapped[dict | None] = mapped_column(JSON)
    net_salary: Mapped[float] = mapped_column(Float, nullable=False)
    is_paid: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    payment_date: Mapped[dt.date | None] = mapped_column(Date)
    payment_mode: Mapped[PaymentMode | None] = mapped_column(enum_column(PaymentMode))

    staff: Mapped["Staff"] = relationship("Staff", lazy="selectin")
