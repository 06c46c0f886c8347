"""Ledger Rules — money and stock arithmetic shared by fees, payroll, canteen and marketplace.

Invariants:
    - Order totals are computed from catalogue prices, never trusted from clients
    - Quantities for the same product on several lines are summed before stock checks
    - A fee payment is PAID once paid_amount covers amount, PARTIAL in between
    - Collections may not push paid_amount above amount
    - Wallet balances never go negative
    - Net salary is basic + allowances - deductions and never negative
"""

from collections import Counter
from collections.abc import Iterable, Mapping
from typing import Hashable

from app.core.domain_types import PaymentStatus
from app.core.errors import BusinessRuleError, InsufficientBalanceError


def merge_quantities(lines: Iterable[tuple[Hashable, int]]) -> dict:
    """[(id, qty), ...] → {id: total_qty}, preserving first-seen order."""
    totals: Counter = Counter()
    for item_id, quantity in lines:
        totals[item_id] += quantity
    return dict(totals)


def find_stock_shortfalls(
    requested: Mapping[Hashable, int], available: Mapping[Hashable, int],
) -> list:
    """Ids whose requested quantity exceeds available stock."""
    return [
        item_id for item_id, quantity in requested.items()
        if available.get(item_id, 0) < quantity
    ]


def order_total(
    requested: Mapping[Hashable, int], prices: Mapping[Hashable, float],
) -> float:
    return round(sum(prices[item_id] * qty for item_id, qty in requested.items()), 2)


def apply_collection(
    amount_due: float, paid_so_far: float, collected: float,
) -> tuple[float, PaymentStatus]:
    """New (paid_amount, status) after collecting `collected`."""
    if collected <= 0:
        raise BusinessRuleError("Collected amount must be positive")
    paid = round(paid_so_far + collected, 2)
    if paid > amount_due + 1e-9:
        raise BusinessRuleError(
            f"Payment exceeds outstanding balance of {amount_due - paid_so_far:.2f}",
        )
    status = PaymentStatus.PAID if paid >= amount_due else PaymentStatus.PARTIAL
    return paid, status


def net_salary(
    basic: float, allowances: Mapping[str, float] | None,
    deductions: Mapping[str, float] | None,
) -> float:
    net = round(basic + sum((allowances or {}).values()) - sum((deductions or {}).values()), 2)
    if net < 0:
        raise BusinessRuleError("Deductions exceed basic salary plus allowances")
    return net


def debit_balance(balance: float, amount: float) -> float:
    if amount > balance + 1e-9:
        raise InsufficientBalanceError(balance, amount)
    return round(balance - amount, 2)


def credit_balance(balance: float, amount: float) -> float:
    if amount <= 0:
        raise BusinessRuleError("Recharge amount must be positive")
    return round(balance + amount, 2)
