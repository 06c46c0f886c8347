"""Canteen Schemas — menu, orders and wallets."""

from datetime import datetime
from uuid import UUID

from pydantic import Field

from app.core.domain_types import OrderStatus, PaymentMode, TransactionType
from app.schemas.common import CamelModel, RequiredStr, UpdateModel


class MenuItemCreate(CamelModel):
    name: RequiredStr = Field(max_length=200)
    school_id: UUID | None = None
    category: RequiredStr = Field(max_length=100)
    price: float = Field(gt=0)
    description: str | None = None
    image: str | None = None
    is_vegetarian: bool = False
    is_available: bool = True


class MenuItemUpdate(UpdateModel):
    nullable_fields = frozenset({"description", "image"})

    name: RequiredStr | None = Field(None, max_length=200)
    category: RequiredStr | None = Field(None, max_length=100)
    price: float | None = Field(None, gt=0)
    description: str | None = None
    image: str | None = None
    is_vegetarian: bool | None = None
    is_available: bool | None = None


class MenuItemRead(CamelModel):
    id: UUID
    school_id: UUID
    name: str
    category: str
    price: float
    description: str | None
    is_vegetarian: bool
    is_available: bool


class CanteenLine(CamelModel):
    menu_item_id: UUID
    quantity: int = Field(gt=0)


class CanteenOrderCreate(CamelModel):
    student_id: UUID
    items: list[CanteenLine] = Field(min_length=1)
    order_number: str | None = Field(None, max_length=50)
    payment_mode: PaymentMode | None = None
    pay_from_wallet: bool = False
    notes: str | None = None


class CanteenOrderItemRead(CamelModel):
    id: UUID
    menu_item_id: UUID
    quantity: int
    price: float


class CanteenOrderRead(CamelModel):
    id: UUID
    school_id: UUID
    student_id: UUID
    order_number: str
    total_amount: float
    status: OrderStatus
    payment_mode: PaymentMode | None
    paid_from_wallet: bool
    notes: str | None
    created_at: datetime
    items: list[CanteenOrderItemRead] = Field(default_factory=list)


class WalletCreate(CamelModel):
    student_id: UUID
    balance: float = Field(0.0, ge=0)


class WalletRecharge(CamelModel):
    amount: float = Field(gt=0)
    description: str | None = None
    reference_id: str | None = None


class WalletRead(CamelModel):
    id: UUID
    school_id: UUID
    student_id: UUID
    balance: float
    is_active: bool


class WalletTransactionRead(CamelModel):
    id: UUID
    wallet_id: UUID
    type: TransactionType
    amount: float
    description: str | None
    reference_id: str | None
    balance_before: float
    balance_after: float
    created_at: datetime


class CanteenOrderUpdate(CamelModel):
    status: OrderStatus
