"""Fee Collection — recording money against an assigned fee payment.

Invariants:
    - Only PENDING, PARTIAL and OVERDUE payments accept money
    - paid_amount never exceeds amount (core.ledger.apply_collection)
    - The write is conditional on the paid_amount and status this request read;
      a concurrent collection makes this one fail instead of overwriting it
"""

import logging
from datetime import date

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.domain_types import PaymentStatus
from app.core.errors import BusinessRuleError
from app.core.ledger import apply_collection
from app.core.numbering import new_receipt_number
from app.db.base import utcnow
from app.models.finance import FeePayment
from app.schemas.finance import FeeCollect
from app.services.querying import compare_and_set

logger = logging.getLogger(__name__)

OUTSTANDING = (PaymentStatus.PENDING, PaymentStatus.PARTIAL, PaymentStatus.OVERDUE)


async def collect(db: AsyncSession, payment: FeePayment, body: FeeCollect) -> None:
    """Apply one collection to payment and issue a receipt. Caller commits."""
    if payment.status not in OUTSTANDING:
        raise BusinessRuleError(f"Fee payment is already {payment.status.value}")

    paid, new_status = apply_collection(payment.amount, payment.paid_amount, body.amount)
    values = {
        "paid_amount": paid, "status": new_status,
        "payment_mode": body.payment_mode, "transaction_id": body.transaction_id,
        "payment_date": utcnow(), "receipt_number": new_receipt_number(date.today()),
    }
    if body.notes:
        values["notes"] = body.notes

    expected = {"paid_amount": payment.paid_amount, "status": payment.status}
    if not await compare_and_set(db, payment, expected, values):
        logger.warning(
            "Fee payment changed during collection",
            extra={"entity": "FeePayment", "entity_id": payment.id, "school_id": payment.school_id},
        )
        raise BusinessRuleError(
            "Fee payment was updated by another collection; reload and retry",
        )
