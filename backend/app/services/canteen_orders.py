"""Canteen Orders — status changes and the wallet refund on cancellation.

Invariants:
    - CANCELLED and DELIVERED are final
    - The status change is claimed with a conditional UPDATE before any refund,
      so two concurrent cancels produce one refund and one 400
"""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.domain_types import OrderStatus
from app.core.errors import BusinessRuleError
from app.models.canteen import CanteenOrder
from app.services import wallets
from app.services.querying import compare_and_set

logger = logging.getLogger(__name__)

FINAL = (OrderStatus.CANCELLED, OrderStatus.DELIVERED)


async def change_status(
    db: AsyncSession, order: CanteenOrder, new_status: OrderStatus,
) -> None:
    """Move order to new_status, refunding a wallet-paid order on cancel. Caller commits."""
    if order.status in FINAL:
        raise BusinessRuleError(f"Order is already {order.status.value}")

    read_status = order.status
    if not await compare_and_set(db, order, {"status": read_status}, {"status": new_status}):
        current = await db.scalar(
            select(CanteenOrder.status).where(CanteenOrder.id == order.id),
        )
        logger.warning(
            "Order status changed concurrently",
            extra={"entity": "CanteenOrder", "entity_id": order.id, "school_id": order.school_id},
        )
        raise BusinessRuleError(f"Order is already {current.value}")

    if new_status == OrderStatus.CANCELLED and order.paid_from_wallet:
        wallet = await wallets.lock_wallet(db, student_id=order.student_id)
        wallets.credit(
            db, wallet, order.total_amount,
            f"Refund for canteen order {order.order_number}", order.order_number,
        )
