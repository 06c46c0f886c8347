"""Finance ORM — fee structures, per-student fee payments and school expenses.

Invariants:
    - Fee.amount > 0; a fee with class_id applies to that class only
    - 0 <= FeePayment.paid_amount <= FeePayment.amount
    - status is derived from paid_amount by core.ledger.apply_collection
    - Expense.amount > 0; approved_by names a user of the same school
"""

import uuid
from datetime import date, datetime

from sqlalchemy import Boolean, Date, DateTime, Float, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID

from app.core.domain_types import FeeFrequency, FeeType, PaymentMode, PaymentStatus
from app.db.base import Base, Timestamps, UUIDPrimaryKey, enum_column


class Fee(UUIDPrimaryKey, Timestamps, Base):
    __tablename__ = "fees"

    school_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("schools.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    class_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("classes.id", ondelete="SET NULL"),
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    type: Mapped[FeeType] = mapped_column(enum_column(FeeType), nullable=False)
    amount: Mapped[float] = mapped_column(Float, nullable=False)
    frequency: Mapped[FeeFrequency] = mapped_column(
        enum_column(FeeFrequency), nullable=False,
    )
    description: Mapped[str | None] = mapped_column(Text)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class FeePayment(UUIDPrimaryKey, Timestamps, Base):
    __tablename__ = "fee_payments"

    school_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("schools.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    student_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("students.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    fee_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("fees.id", ondelete="RESTRICT"), nullable=False,
    )
    amount: Mapped[float] = mapped_column(Float, nullable=False)
    paid_amount: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    due_date: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[PaymentStatus] = mapped_column(
        enum_column(PaymentStatus), nullable=False, default=PaymentStatus.PENDING,
    )
    payment_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    payment_mode: Mapped[PaymentMode | None] = mapped_column(enum_column(PaymentMode))
    transaction_id: Mapped[str | None] = mapped_column(String(100))
    receipt_number: Mapped[str | None] = mapped_column(String(50))
    notes: Mapped[str | None] = mapped_column(Text)


class Expense(UUIDPrimaryKey, Timestamps, Base):
    __tablename__ = "expenses"

    school_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("schools.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    category: Mapped[str] = mapped_column(String(100), nullable=False)
    amount: Mapped[float] = mapped_column(Float, nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    expense_date: Mapped[date] = mapped_column(Date, nullable=False)
    paid_to: Mapped[str | None] = mapped_column(String(200))
    payment_mode: Mapped[PaymentMode | None] = mapped_column(enum_column(PaymentMode))
    bill_number: Mapped[str | None] = mapped_column(String(100))
    approved_by: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"),
    )
