"""Canteen ORM — menu, orders, and prepaid student wallets.

Invariants:
    - One SmartWallet per student; balance never negative
    - Every balance change writes a WalletTransaction with balance_before/after
    - CanteenOrderItem.price is the menu price at order time
"""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.dialects.postgresql import UUID

from app.core.domain_types import OrderStatus, PaymentMode, TransactionType
from app.db.base import Base, Timestamps, UUIDPrimaryKey, enum_column, utcnow


class MenuItem(UUIDPrimaryKey, Timestamps, Base):
    __tablename__ = "menu_items"

    school_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("schools.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    category: Mapped[str] = mapped_column(String(100), nullable=False)
    price: Mapped[float] = mapped_column(Float, nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    image: Mapped[str | None] = mapped_column(String(500))
    is_vegetarian: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_available: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class CanteenOrder(UUIDPrimaryKey, Timestamps, Base):
    __tablename__ = "canteen_orders"

    school_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("schools.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    student_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("students.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    order_number: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    total_amount: Mapped[float] = mapped_column(Float, nullable=False)
    status: Mapped[OrderStatus] = mapped_column(
        enum_column(OrderStatus), nullable=False, default=OrderStatus.PENDING,
    )
    payment_mode: Mapped[PaymentMode | None] = mapped_column(enum_column(PaymentMode))
    paid_from_wallet: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    notes: Mapped[str | None] = mapped_column(Text)

    items: Mapped[list["CanteenOrderItem"]] = relationship(
        "CanteenOrderItem", cascade="all, delete-orphan", lazy="selectin",
    )


class CanteenOrderItem(UUIDPrimaryKey, Base):
    __tablename__ = "canteen_order_items"

    order_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("canteen_orders.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    menu_item_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("menu_items.id", ondelete="RESTRICT"),
        nullable=False,
    )
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    price: Mapped[float] = mapped_column(Float, nullable=False)


class SmartWallet(UUIDPrimaryKey, Timestamps, Base):
    __tablename__ = "smart_wallets"

    school_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("schools.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    student_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("students.id", ondelete="CASCADE"),
        nullable=False, unique=True,
    )
    balance: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class WalletTransaction(UUIDPrimaryKey, Base):
    __tablename__ = "wallet_transactions"

    wallet_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("smart_wallets.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    type: Mapped[TransactionType] = mapped_column(
        enum_column(TransactionType), nullable=False,
    )
    amount: Mapped[float] = mapped_column(Float, nullable=False)
    description: Mapped[str | None] = mapped_column(String(255))
    reference_id: Mapped[str | None] = mapped_column(String(100))
    balance_before: Mapped[float] = mapped_column(Float, nullable=False)
    balance_after: Mapped[float] = mapped_column(Float, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow,
    )
