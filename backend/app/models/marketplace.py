"""Marketplace ORM — school shop products and student orders.

Invariants:
    - Product.stock >= 0 at every commit
    - An order's items and the matching stock decrements commit together or not at all
    - Orders are tenant-scoped through their student's school
    - MarketplaceOrderItem.price is the product price at order time

Design Decisions:
    - No school_id on orders: the student row is the single owner of tenancy
    - items loaded with selectin: order responses always embed their lines
"""

import uuid

from sqlalchemy import Boolean, Float, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.dialects.postgresql import UUID

from app.core.domain_types import MarketplaceOrderStatus, PaymentMode, ProductCategory
from app.db.base import Base, Timestamps, UUIDPrimaryKey, enum_column


class Product(UUIDPrimaryKey, Timestamps, Base):
    __tablename__ = "products"
    __table_args__ = (UniqueConstraint("school_id", "sku"),)

    school_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("schools.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    category: Mapped[ProductCategory] = mapped_column(
        enum_column(ProductCategory), nullable=False,
    )
    price: Mapped[float] = mapped_column(Float, nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    image: Mapped[str | None] = mapped_column(String(500))
    stock: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    sku: Mapped[str | None] = mapped_column(String(100))
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class MarketplaceOrder(UUIDPrimaryKey, Timestamps, Base):
    __tablename__ = "marketplace_orders"

    student_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("students.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    order_number: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    total_amount: Mapped[float] = mapped_column(Float, nullable=False)
    status: Mapped[MarketplaceOrderStatus] = mapped_column(
        enum_column(MarketplaceOrderStatus), nullable=False,
        default=MarketplaceOrderStatus.PENDING,
    )
    payment_mode: Mapped[PaymentMode | None] = mapped_column(enum_column(PaymentMode))
    shipping_address: Mapped[str | None] = mapped_column(Text)
    notes: Mapped[str | None] = mapped_column(Text)

    items: Mapped[list["MarketplaceOrderItem"]] = relationship(
        "MarketplaceOrderItem", cascade="all, delete-orphan", lazy="selectin",
    )


class MarketplaceOrderItem(UUIDPrimaryKey, Base):
    __tablename__ = "marketplace_order_items"

    order_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("marketplace_orders.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    product_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("products.id", ondelete="RESTRICT"),
        nullable=False,
    )
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    price: Mapped[float] = mapped_column(Float, nullable=False)
