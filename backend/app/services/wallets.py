"""Wallet Service — balance changes that always leave a transaction row behind.

Invariants:
    - Every credit or debit writes one WalletTransaction with balance_before/after
    - Debits never push a balance below zero (InsufficientBalanceError, 400)
    - The wallet row is read FOR UPDATE so concurrent debits serialize on PostgreSQL
"""

import logging
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.domain_types import TransactionType
from app.core.errors import BusinessRuleError, ResourceNotFoundError
from app.core.ledger import credit_balance, debit_balance
from app.models.canteen import SmartWallet, WalletTransaction

logger = logging.getLogger(__name__)


async def lock_wallet(
    db: AsyncSession, *, wallet_id: UUID | None = None, student_id: UUID | None = None,
) -> SmartWallet:
    stmt = (
        select(SmartWallet).with_for_update()
        .execution_options(populate_existing=True)
    )
    if wallet_id is not None:
        stmt = stmt.where(SmartWallet.id == wallet_id)
    else:
        stmt = stmt.where(SmartWallet.student_id == student_id)
    wallet = (await db.execute(stmt)).scalar_one_or_none()
    if wallet is None:
        raise ResourceNotFoundError("Wallet", str(wallet_id or student_id))
    if not wallet.is_active:
        raise BusinessRuleError("Wallet is not active")
    return wallet


def _post(
    db: AsyncSession, wallet: SmartWallet, kind: TransactionType, amount: float,
    new_balance: float, description: str | None, reference_id: str | None,
) -> WalletTransaction:
    entry = WalletTransaction(
        wallet_id=wallet.id, type=kind, amount=amount,
        description=description, reference_id=reference_id,
        balance_before=wallet.balance, balance_after=new_balance,
    )
    wallet.balance = new_balance
    db.add(entry)
    logger.info(
        f"Wallet {kind.value.lower()}",
        extra={"entity": "SmartWallet", "entity_id": wallet.id, "school_id": wallet.school_id},
    )
    return entry


def credit(
    db: AsyncSession, wallet: SmartWallet, amount: float,
    description: str | None = None, reference_id: str | None = None,
) -> WalletTransaction:
    return _post(
        db, wallet, TransactionType.CREDIT, amount,
        credit_balance(wallet.balance, amount), description, reference_id,
    )


def debit(
    db: AsyncSession, wallet: SmartWallet, amount: float,
    description: str | None = None, reference_id: str | None = None,
) -> WalletTransaction:
    return _post(
        db, wallet, TransactionType.DEBIT, amount,
        debit_balance(wallet.balance, amount), description, reference_id,
    )
