"""Marketplace Schemas — products and orders.

Invariants:
    - An order has at least one line; every quantity is a positive integer
    - Clients never send prices or totals: both come from the product catalogue
"""

from datetime import datetime
from uuid import UUID

from pydantic import Field

from app.core.domain_types import MarketplaceOrderStatus, PaymentMode, ProductCategory
from app.schemas.common import CamelModel, RequiredStr, UpdateModel


class ProductCreate(CamelModel):
    name: RequiredStr = Field(max_length=200)
    school_id: UUID | None = None
    category: ProductCategory
    price: float = Field(gt=0)
    description: str | None = None
    image: str | None = None
    stock: int = Field(0, ge=0)
    sku: str | None = Field(None, max_length=100)
    is_active: bool = True


class ProductUpdate(UpdateModel):
    nullable_fields = frozenset({"description", "image", "sku"})

    name: RequiredStr | None = Field(None, max_length=200)
    category: ProductCategory | None = None
    price: float | None = Field(None, gt=0)
    description: str | None = None
    image: str | None = None
    stock: int | None = Field(None, ge=0)
    sku: str | None = Field(None, max_length=100)
    is_active: bool | None = None


class ProductRead(CamelModel):
    id: UUID
    school_id: UUID
    name: str
    category: ProductCategory
    price: float
    description: str | None
    stock: int
    sku: str | None
    is_active: bool


class OrderLine(CamelModel):
    product_id: UUID
    quantity: int = Field(gt=0)


class MarketplaceOrderCreate(CamelModel):
    student_id: UUID
    items: list[OrderLine] = Field(min_length=1)
    order_number: str | None = Field(None, max_length=50)
    payment_mode: PaymentMode | None = None
    shipping_address: str | None = None
    notes: str | None = None


class MarketplaceOrderUpdate(UpdateModel):
    nullable_fields = frozenset({"payment_mode", "shipping_address", "notes"})

    status: MarketplaceOrderStatus | None = None
    payment_mode: PaymentMode | None = None
    shipping_address: str | None = None
    notes: str | None = None


class MarketplaceOrderItemRead(CamelModel):
    id: UUID
    product_id: UUID
    quantity: int
    price: float


class MarketplaceOrderRead(CamelModel):
    id: UUID
    student_id: UUID
    order_number: str
    total_amount: float
    status: MarketplaceOrderStatus
    payment_mode: PaymentMode | None
    shipping_address: str | None
    notes: str | None
    created_at: datetime
    items: list[MarketplaceOrderItemRead] = Field(default_factory=list)


class InventoryItem(CamelModel):
    id: UUID
    name: str
    category: ProductCategory
    stock: int
    price: float
    is_active: bool
    low_stock_alert: bool
    total_value: float


class InventorySummary(CamelModel):
    total_products: int
    total_value: float
    low_stock_count: int
    out_of_stock_count: int
