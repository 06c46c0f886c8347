"""Marketplace Routes — school shop catalogue, inventory view and student orders.

Invariants:
    - SKU is unique within a school
    - Order prices and totals come from the catalogue, never from the client
    - An order either commits with all its stock decrements or not at all
    - Products are never hard-deleted (order items keep referencing them)
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import list_query, require_module
from app.core.domain_types import AuditAction, MarketplaceOrderStatus
from app.core.envelope import paginated_response, success_response
from app.core.errors import ValidationFailedError
from app.core.pagination import ListQuery, parse_bool_flag
from app.core.tenancy import CurrentUser, resolve_school_id
from app.infrastructure.database import get_db
from app.models.marketplace import MarketplaceOrder, Product
from app.schemas.marketplace import (
    InventoryItem, InventorySummary, MarketplaceOrderCreate, MarketplaceOrderRead,
    MarketplaceOrderUpdate, ProductCreate, ProductRead, ProductUpdate,
)
from app.services import marketplace_orders
from app.services.audit import record_audit, snapshot
from app.services.querying import (
    apply_changes, apply_search, apply_sort, get_scoped_or_404, paginate,
    row_exists, scope_to_school,
)

router = APIRouter(prefix="/api/marketplace", tags=["marketplace"])

DEFAULT_LOW_STOCK_THRESHOLD = 10


async def _ensure_sku_free(
    db: AsyncSession, school_id: UUID, sku: str | None, exclude_id: UUID | None = None,
) -> None:
    if not sku:
        return
    criteria = [Product.school_id == school_id, Product.sku == sku]
    if exclude_id is not None:
        criteria.append(Product.id != exclude_id)
    if await row_exists(db, Product, *criteria):
        raise ValidationFailedError.single("sku", "SKU already exists in this school")


# ─── PRODUCTS ───────────────────────────────────────────────────

@router.get("/products")
async def list_products(
    query: ListQuery = Depends(list_query),
    category: str | None = Query(None),
    is_active: str | None = Query(None, alias="isActive"),
    user: CurrentUser = Depends(require_module("marketplace")),
    db: AsyncSession = Depends(get_db),
):
    stmt = scope_to_school(select(Product), Product, user)
    stmt = apply_search(stmt, query.search, [Product.name, Product.description, Product.sku])
    if category:
        stmt = stmt.where(Product.category == category)
    active = parse_bool_flag(is_active)
    if active is not None:
        stmt = stmt.where(Product.is_active == active)
    stmt = apply_sort(stmt, query, {
        "createdAt": Product.created_at, "name": Product.name,
        "price": Product.price, "stock": Product.stock,
    })
    rows, total = await paginate(db, stmt, query)
    return paginated_response(
        [ProductRead.model_validate(p) for p in rows], total, query.pagination,
    )


@router.post("/products", status_code=status.HTTP_201_CREATED)
async def create_product(
    body: ProductCreate,
    user: CurrentUser = Depends(require_module("marketplace")),
    db: AsyncSession = Depends(get_db),
):
    school_id = resolve_school_id(user, body.school_id)
    await _ensure_sku_free(db, school_id, body.sku)

    product = Product(**body.model_dump(exclude={"school_id"}), school_id=school_id)
    db.add(product)
    await db.flush()
    record_audit(
        db, user, AuditAction.CREATE, "Product", product.id,
        school_id=school_id, new_value=snapshot(product),
    )
    await db.commit()
    return success_response(ProductRead.model_validate(product), "Product created successfully")


@router.get("/inventory")
async def inventory(
    query: ListQuery = Depends(list_query),
    category: str | None = Query(None),
    low_stock: str | None = Query(None, alias="lowStock"),
    threshold: str | None = Query(None),
    user: CurrentUser = Depends(require_module("marketplace")),
    db: AsyncSession = Depends(get_db),
):
    """Active products by ascending stock, with value and low-stock flags.

    The summary block covers every matching product, not just the current page.
    """
    try:
        limit = int(threshold) if threshold else DEFAULT_LOW_STOCK_THRESHOLD
    except ValueError:
        limit = DEFAULT_LOW_STOCK_THRESHOLD

    criteria = [Product.is_active.is_(True)]
    if category:
        criteria.append(Product.category == category)
    if parse_bool_flag(low_stock):
        criteria.append(Product.stock <= limit)

    stmt = scope_to_school(select(Product).where(*criteria), Product, user)
    rows, total = await paginate(db, stmt.order_by(Product.stock.asc(), Product.name), query)

    totals_stmt = scope_to_school(
        select(
            func.coalesce(func.sum(Product.stock * Product.price), 0),
            func.count().filter(Product.stock <= limit),
            func.count().filter(Product.stock == 0),
        ).where(*criteria),
        Product, user,
    )
    total_value, low_count, out_count = (await db.execute(totals_stmt)).one()

    items = [
        InventoryItem(
            id=p.id, name=p.name, category=p.category, stock=p.stock, price=p.price,
            is_active=p.is_active, low_stock_alert=p.stock <= limit,
            total_value=round(p.stock * p.price, 2),
        )
        for p in rows
    ]
    body = paginated_response(items, total, query.pagination)
    body["summary"] = InventorySummary(
        total_products=total, total_value=round(float(total_value), 2),
        low_stock_count=int(low_count), out_of_stock_count=int(out_count),
    ).model_dump(mode="json", by_alias=True)
    return body


@router.get("/products/{product_id}")
async def get_product(
    product_id: UUID,
    user: CurrentUser = Depends(require_module("marketplace")),
    db: AsyncSession = Depends(get_db),
):
    product = await get_scoped_or_404(db, Product, product_id, user, "Product")
    return success_response(ProductRead.model_validate(product))


@router.put("/products/{product_id}")
async def update_product(
    product_id: UUID,
    body: ProductUpdate,
    user: CurrentUser = Depends(require_module("marketplace")),
    db: AsyncSession = Depends(get_db),
):
    product = await get_scoped_or_404(db, Product, product_id, user, "Product")
    changes = body.model_dump(exclude_unset=True)
    if changes.get("sku") and changes["sku"] != product.sku:
        await _ensure_sku_free(db, product.school_id, changes["sku"], exclude_id=product.id)

    before = snapshot(product)
    apply_changes(product, changes)
    await db.flush()
    record_audit(
        db, user, AuditAction.UPDATE, "Product", product.id, school_id=product.school_id,
        old_value=before, new_value=snapshot(product),
    )
    await db.commit()
    return success_response(ProductRead.model_validate(product), "Product updated successfully")


@router.delete("/products/{product_id}")
async def delete_product(
    product_id: UUID,
    user: CurrentUser = Depends(require_module("marketplace")),
    db: AsyncSession = Depends(get_db),
):
    product = await get_scoped_or_404(db, Product, product_id, user, "Product")
    product.is_active = False
    record_audit(
        db, user, AuditAction.DELETE, "Product", product.id, school_id=product.school_id,
        old_value={"isActive": True}, new_value={"isActive": False},
    )
    await db.commit()
    return success_response({"id": str(product.id)}, "Product deactivated successfully")


# ─── ORDERS ─────────────────────────────────────────────────────

@router.get("/orders")
async def list_orders(
    query: ListQuery = Depends(list_query),
    student_id: UUID | None = Query(None, alias="studentId"),
    order_status: MarketplaceOrderStatus | None = Query(None, alias="status"),
    user: CurrentUser = Depends(require_module("marketplace")),
    db: AsyncSession = Depends(get_db),
):
    stmt = marketplace_orders.scoped_orders(user)
    stmt = apply_search(stmt, query.search, [MarketplaceOrder.order_number])
    if student_id:
        stmt = stmt.where(MarketplaceOrder.student_id == student_id)
    if order_status:
        stmt = stmt.where(MarketplaceOrder.status == order_status)
    stmt = apply_sort(stmt, query, {
        "createdAt": MarketplaceOrder.created_at,
        "totalAmount": MarketplaceOrder.total_amount,
        "orderNumber": MarketplaceOrder.order_number,
    })
    rows, total = await paginate(db, stmt, query)
    return paginated_response(
        [MarketplaceOrderRead.model_validate(o) for o in rows], total, query.pagination,
    )


@router.post("/orders", status_code=status.HTTP_201_CREATED)
async def create_order(
    body: MarketplaceOrderCreate,
    user: CurrentUser = Depends(require_module("marketplace")),
    db: AsyncSession = Depends(get_db),
):
    order = await marketplace_orders.place_order(db, user, body)
    record_audit(
        db, user, AuditAction.CREATE, "MarketplaceOrder", order.id,
        school_id=await marketplace_orders.order_school_id(db, order),
        new_value=snapshot(order),
    )
    await db.commit()
    return success_response(
        MarketplaceOrderRead.model_validate(order), "Order created successfully",
    )


@router.get("/orders/{order_id}")
async def get_order(
    order_id: UUID,
    user: CurrentUser = Depends(require_module("marketplace")),
    db: AsyncSession = Depends(get_db),
):
    order = await marketplace_orders.get_order_or_404(db, user, order_id)
    return success_response(MarketplaceOrderRead.model_validate(order))


@router.put("/orders/{order_id}")
async def update_order(
    order_id: UUID,
    body: MarketplaceOrderUpdate,
    user: CurrentUser = Depends(require_module("marketplace")),
    db: AsyncSession = Depends(get_db),
):
    order = await marketplace_orders.get_order_or_404(db, user, order_id)
    before = snapshot(order)
    changes = body.model_dump(exclude_unset=True)
    new_status = changes.pop("status", None)
    if new_status is not None:
        await marketplace_orders.change_status(db, order, new_status)
    apply_changes(order, changes)
    await db.flush()
    record_audit(
        db, user, AuditAction.UPDATE, "MarketplaceOrder", order.id,
        school_id=await marketplace_orders.order_school_id(db, order),
        old_value=before, new_value=snapshot(order),
    )
    await db.commit()
    return success_response(
        MarketplaceOrderRead.model_validate(order), "Order updated successfully",
    )


@router.delete("/orders/{order_id}")
async def delete_order(
    order_id: UUID,
    user: CurrentUser = Depends(require_module("marketplace")),
    db: AsyncSession = Depends(get_db),
):
    order = await marketplace_orders.get_order_or_404(db, user, order_id)
    school_id = await marketplace_orders.order_school_id(db, order)
    before = snapshot(order)
    await marketplace_orders.remove_order(db, order)
    record_audit(
        db, user, AuditAction.DELETE, "MarketplaceOrder", order_id,
        school_id=school_id, old_value=before,
    )
    await db.commit()
    return success_response({"id": str(order_id)}, "Order deleted successfully")
