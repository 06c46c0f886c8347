"""Marketplace Orders — placing, cancelling and deleting orders against product stock.

Invariants:
    - An order is all-or-nothing: order row, item rows and every stock decrement
      commit together, or nothing is written
    - Each decrement is a conditional UPDATE (stock >= quantity); losing a race to
      another order surfaces as InsufficientStockError, never as negative stock
    - Quantities for the same product on several lines are summed before checks
    - Products must be active and belong to the ordering student's school
    - Cancelling restores stock once; deleting restores it unless already cancelled
    - Status changes are claimed with a conditional UPDATE before stock moves, so
      concurrent cancels or deletes restore stock exactly once

Design Decisions:
    - Stock is checked twice: up front for a clean error naming the product, then
      by the conditional UPDATE that actually guards against concurrent orders
"""

import logging
from datetime import date
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.domain_types import MarketplaceOrderStatus
from app.core.errors import (
    BusinessRuleError, InsufficientStockError, ResourceNotFoundError,
    ValidationFailedError,
)
from app.core.ledger import find_stock_shortfalls, merge_quantities, order_total
from app.core.numbering import new_order_number
from app.core.tenancy import CurrentUser, in_scope
from app.models.marketplace import MarketplaceOrder, MarketplaceOrderItem, Product
from app.models.student import Student
from app.schemas.marketplace import MarketplaceOrderCreate
from app.services.querying import compare_and_set, row_exists, scope_to_school

logger = logging.getLogger(__name__)


def scoped_orders(user: CurrentUser):
    """Orders visible to user (tenant through the student's school)."""
    stmt = select(MarketplaceOrder).join(Student, Student.id == MarketplaceOrder.student_id)
    return scope_to_school(stmt, Student, user)


async def get_order_or_404(
    db: AsyncSession, user: CurrentUser, order_id: UUID,
) -> MarketplaceOrder:
    stmt = scoped_orders(user).where(MarketplaceOrder.id == order_id)
    order = (await db.execute(stmt)).scalar_one_or_none()
    if order is None:
        raise ResourceNotFoundError("Order", str(order_id))
    return order


async def _adjust_stock(db: AsyncSession, product_id: UUID, delta: int) -> bool:
    stmt = update(Product).where(Product.id == product_id)
    if delta < 0:
        stmt = stmt.where(Product.stock >= -delta)
    result = await db.execute(
        stmt.values(stock=Product.stock + delta)
        .execution_options(synchronize_session=False),
    )
    return result.rowcount == 1


async def restore_stock(db: AsyncSession, order: MarketplaceOrder) -> None:
    for item in order.items:
        await _adjust_stock(db, item.product_id, item.quantity)


async def place_order(
    db: AsyncSession, user: CurrentUser, body: MarketplaceOrderCreate,
) -> MarketplaceOrder:
    """Validate, price and stage an order with its stock decrements. Caller commits."""
    student = await db.get(Student, body.student_id)
    if student is None:
        raise ValidationFailedError.single("studentId", "Student not found")
    if not in_scope(user, student.school_id):
        raise ValidationFailedError.single(
            "studentId", "You can only create orders for students in your school",
        )

    requested = merge_quantities((line.product_id, line.quantity) for line in body.items)
    products = {
        p.id: p for p in (await db.execute(
            select(Product).where(
                Product.id.in_(list(requested)),
                Product.school_id == student.school_id,
                Product.is_active.is_(True),
            ),
        )).scalars()
    }
    if len(products) != len(requested):
        raise ValidationFailedError.single(
            "items", "One or more products not found or inactive",
        )
    shortfalls = find_stock_shortfalls(requested, {pid: p.stock for pid, p in products.items()})
    if shortfalls:
        raise InsufficientStockError(products[shortfalls[0]].name)

    order_number = body.order_number or new_order_number(date.today())
    if await row_exists(db, MarketplaceOrder, MarketplaceOrder.order_number == order_number):
        raise ValidationFailedError.single("orderNumber", "Order number already exists")

    order = MarketplaceOrder(
        student_id=student.id, order_number=order_number,
        total_amount=order_total(requested, {pid: p.price for pid, p in products.items()}),
        status=MarketplaceOrderStatus.PENDING, payment_mode=body.payment_mode,
        shipping_address=body.shipping_address, notes=body.notes,
        items=[
            MarketplaceOrderItem(product_id=pid, quantity=qty, price=products[pid].price)
            for pid, qty in requested.items()
        ],
    )
    db.add(order)
    for pid, qty in requested.items():
        if not await _adjust_stock(db, pid, -qty):
            name, school_id = products[pid].name, student.school_id
            await db.rollback()
            logger.warning(
                "Stock changed while placing order",
                extra={"entity": "Product", "entity_id": pid, "school_id": school_id},
            )
            raise InsufficientStockError(name)
    await db.flush()
    return order


async def _claim_status(
    db: AsyncSession, order: MarketplaceOrder, new_status: MarketplaceOrderStatus,
) -> None:
    read_status = order.status
    if not await compare_and_set(db, order, {"status": read_status}, {"status": new_status}):
        current = await db.scalar(
            select(MarketplaceOrder.status).where(MarketplaceOrder.id == order.id),
        )
        logger.warning(
            "Order status changed concurrently",
            extra={"entity": "MarketplaceOrder", "entity_id": order.id},
        )
        if current is None:
            raise ResourceNotFoundError("Order", str(order.id))
        raise BusinessRuleError(
            f"Order status changed from {read_status.value} to {current.value}; "
            "reload and retry",
        )


async def change_status(
    db: AsyncSession, order: MarketplaceOrder, new_status: MarketplaceOrderStatus,
) -> None:
    if order.status == new_status:
        return
    if order.status == MarketplaceOrderStatus.CANCELLED:
        raise BusinessRuleError("Cancelled orders cannot be reopened")
    await _claim_status(db, order, new_status)
    if new_status == MarketplaceOrderStatus.CANCELLED:
        await restore_stock(db, order)


async def remove_order(db: AsyncSession, order: MarketplaceOrder) -> None:
    if order.status != MarketplaceOrderStatus.CANCELLED:
        # cancel first so a concurrent cancel or delete cannot restore stock again
        await _claim_status(db, order, MarketplaceOrderStatus.CANCELLED)
        await restore_stock(db, order)
    await db.delete(order)


async def order_school_id(db: AsyncSession, order: MarketplaceOrder) -> UUID | None:
    return await db.scalar(select(Student.school_id).where(Student.id == order.student_id))
