"""Canteen Routes — menu, prepaid wallets and food orders.

Invariants:
    - Order totals come from current menu prices; client prices are never read
    - Ordered menu items are available and belong to the student's school
    - payFromWallet debits the wallet in the same commit as the order
      (insufficient balance → 400, nothing written)
    - Cancelling a wallet-paid order refunds it exactly once
    - Recharges write a CREDIT transaction and the new balance together
"""

from datetime import date
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import list_query, require_module
from app.core.domain_types import AuditAction, OrderStatus
from app.core.envelope import paginated_response, success_response
from app.core.errors import ValidationFailedError
from app.core.ledger import merge_quantities, order_total
from app.core.numbering import new_order_number
from app.core.pagination import ListQuery, parse_bool_flag
from app.core.tenancy import CurrentUser, resolve_school_id
from app.infrastructure.database import get_db
from app.models.canteen import (
    CanteenOrder, CanteenOrderItem, MenuItem, SmartWallet, WalletTransaction,
)
from app.models.student import Student
from app.schemas.canteen import (
    CanteenOrderCreate, CanteenOrderRead, CanteenOrderUpdate, MenuItemCreate,
    MenuItemRead, MenuItemUpdate, WalletCreate, WalletRead, WalletRecharge,
    WalletTransactionRead,
)
from app.services import canteen_orders, wallets
from app.services.audit import record_audit, snapshot
from app.services.querying import (
    apply_changes, apply_search, apply_sort, get_scoped_or_404, paginate,
    row_exists, scope_to_school,
)

router = APIRouter(prefix="/api/canteen", tags=["canteen"])


async def _student_in_scope(db: AsyncSession, user: CurrentUser, student_id: UUID) -> Student:
    stmt = scope_to_school(select(Student).where(Student.id == student_id), Student, user)
    student = (await db.execute(stmt)).scalar_one_or_none()
    if student is None or not student.is_active:
        raise ValidationFailedError.single("studentId", "Invalid student")
    return student


# ─── MENU ───────────────────────────────────────────────────────

@router.get("/menu")
async def list_menu(
    query: ListQuery = Depends(list_query),
    category: str | None = Query(None),
    is_available: str | None = Query(None, alias="isAvailable"),
    user: CurrentUser = Depends(require_module("canteen")),
    db: AsyncSession = Depends(get_db),
):
    stmt = scope_to_school(select(MenuItem), MenuItem, user)
    stmt = apply_search(stmt, query.search, [MenuItem.name, MenuItem.description])
    if category:
        stmt = stmt.where(MenuItem.category == category)
    available = parse_bool_flag(is_available)
    if available is not None:
        stmt = stmt.where(MenuItem.is_available == available)
    stmt = apply_sort(stmt, query, {
        "createdAt": MenuItem.created_at, "name": MenuItem.name, "price": MenuItem.price,
    })
    rows, total = await paginate(db, stmt, query)
    return paginated_response(
        [MenuItemRead.model_validate(m) for m in rows], total, query.pagination,
    )


@router.post("/menu", status_code=status.HTTP_201_CREATED)
async def create_menu_item(
    body: MenuItemCreate,
    user: CurrentUser = Depends(require_module("canteen")),
    db: AsyncSession = Depends(get_db),
):
    school_id = resolve_school_id(user, body.school_id)
    item = MenuItem(**body.model_dump(exclude={"school_id"}), school_id=school_id)
    db.add(item)
    await db.flush()
    record_audit(
        db, user, AuditAction.CREATE, "MenuItem", item.id,
        school_id=school_id, new_value=snapshot(item),
    )
    await db.commit()
    return success_response(MenuItemRead.model_validate(item), "Menu item created successfully")


@router.put("/menu/{item_id}")
async def update_menu_item(
    item_id: UUID,
    body: MenuItemUpdate,
    user: CurrentUser = Depends(require_module("canteen")),
    db: AsyncSession = Depends(get_db),
):
    item = await get_scoped_or_404(db, MenuItem, item_id, user, "Menu item")
    before = snapshot(item)
    apply_changes(item, body.model_dump(exclude_unset=True))
    await db.flush()
    record_audit(
        db, user, AuditAction.UPDATE, "MenuItem", item.id, school_id=item.school_id,
        old_value=before, new_value=snapshot(item),
    )
    await db.commit()
    return success_response(MenuItemRead.model_validate(item), "Menu item updated successfully")


# ─── WALLETS ────────────────────────────────────────────────────

@router.get("/wallet")
async def list_wallets(
    query: ListQuery = Depends(list_query),
    student_id: UUID | None = Query(None, alias="studentId"),
    user: CurrentUser = Depends(require_module("canteen")),
    db: AsyncSession = Depends(get_db),
):
    stmt = scope_to_school(select(SmartWallet), SmartWallet, user)
    if student_id:
        stmt = stmt.where(SmartWallet.student_id == student_id)
    stmt = apply_sort(stmt, query, {
        "createdAt": SmartWallet.created_at, "balance": SmartWallet.balance,
    })
    rows, total = await paginate(db, stmt, query)
    return paginated_response(
        [WalletRead.model_validate(w) for w in rows], total, query.pagination,
    )


@router.post("/wallet", status_code=status.HTTP_201_CREATED)
async def create_wallet(
    body: WalletCreate,
    user: CurrentUser = Depends(require_module("canteen")),
    db: AsyncSession = Depends(get_db),
):
    student = await _student_in_scope(db, user, body.student_id)
    if await row_exists(db, SmartWallet, SmartWallet.student_id == student.id):
        raise ValidationFailedError.single("studentId", "Student already has a wallet")

    wallet = SmartWallet(
        school_id=student.school_id, student_id=student.id, balance=0.0, is_active=True,
    )
    db.add(wallet)
    await db.flush()
    if body.balance > 0:
        wallets.credit(db, wallet, body.balance, "Opening balance")
    record_audit(
        db, user, AuditAction.CREATE, "SmartWallet", wallet.id,
        school_id=wallet.school_id, new_value=snapshot(wallet),
    )
    await db.commit()
    return success_response(WalletRead.model_validate(wallet), "Wallet created successfully")


@router.get("/wallet/transactions")
async def list_wallet_transactions(
    query: ListQuery = Depends(list_query),
    wallet_id: UUID | None = Query(None, alias="walletId"),
    student_id: UUID | None = Query(None, alias="studentId"),
    user: CurrentUser = Depends(require_module("canteen")),
    db: AsyncSession = Depends(get_db),
):
    stmt = select(WalletTransaction).join(
        SmartWallet, SmartWallet.id == WalletTransaction.wallet_id,
    )
    stmt = scope_to_school(stmt, SmartWallet, user)
    if wallet_id:
        stmt = stmt.where(WalletTransaction.wallet_id == wallet_id)
    if student_id:
        stmt = stmt.where(SmartWallet.student_id == student_id)
    stmt = stmt.order_by(WalletTransaction.created_at.desc())
    rows, total = await paginate(db, stmt, query)
    return paginated_response(
        [WalletTransactionRead.model_validate(t) for t in rows], total, query.pagination,
    )


@router.post("/wallet/{wallet_id}/recharge")
async def recharge_wallet(
    wallet_id: UUID,
    body: WalletRecharge,
    user: CurrentUser = Depends(require_module("canteen")),
    db: AsyncSession = Depends(get_db),
):
    await get_scoped_or_404(db, SmartWallet, wallet_id, user, "Wallet")
    wallet = await wallets.lock_wallet(db, wallet_id=wallet_id)
    entry = wallets.credit(
        db, wallet, body.amount, body.description or "Wallet recharge", body.reference_id,
    )
    await db.flush()
    record_audit(
        db, user, AuditAction.UPDATE, "SmartWallet", wallet.id, school_id=wallet.school_id,
        old_value={"balance": entry.balance_before}, new_value={"balance": entry.balance_after},
    )
    await db.commit()
    return success_response(
        {"wallet": WalletRead.model_validate(wallet),
         "transaction": WalletTransactionRead.model_validate(entry)},
        "Wallet recharged successfully",
    )


# ─── ORDERS ─────────────────────────────────────────────────────

@router.get("/orders")
async def list_orders(
    query: ListQuery = Depends(list_query),
    student_id: UUID | None = Query(None, alias="studentId"),
    order_status: OrderStatus | None = Query(None, alias="status"),
    user: CurrentUser = Depends(require_module("canteen")),
    db: AsyncSession = Depends(get_db),
):
    stmt = scope_to_school(select(CanteenOrder), CanteenOrder, user)
    if student_id:
        stmt = stmt.where(CanteenOrder.student_id == student_id)
    if order_status:
        stmt = stmt.where(CanteenOrder.status == order_status)
    stmt = apply_sort(stmt, query, {
        "createdAt": CanteenOrder.created_at, "totalAmount": CanteenOrder.total_amount,
    })
    rows, total = await paginate(db, stmt, query)
    return paginated_response(
        [CanteenOrderRead.model_validate(o) for o in rows], total, query.pagination,
    )


@router.post("/orders", status_code=status.HTTP_201_CREATED)
async def create_order(
    body: CanteenOrderCreate,
    user: CurrentUser = Depends(require_module("canteen")),
    db: AsyncSession = Depends(get_db),
):
    student = await _student_in_scope(db, user, body.student_id)
    requested = merge_quantities((line.menu_item_id, line.quantity) for line in body.items)
    menu = {
        item.id: item for item in (await db.execute(
            select(MenuItem).where(
                MenuItem.id.in_(list(requested)), MenuItem.school_id == student.school_id,
            ),
        )).scalars()
    }
    for item_id in requested:
        item = menu.get(item_id)
        if item is None or not item.is_available:
            label = item.name if item else str(item_id)
            raise ValidationFailedError.single("items", f"Menu item not available: {label}")

    order_number = body.order_number or new_order_number(date.today(), "CNT")
    if await row_exists(db, CanteenOrder, CanteenOrder.order_number == order_number):
        raise ValidationFailedError.single("orderNumber", "Order number already exists")

    total = order_total(requested, {i: menu[i].price for i in requested})
    order = CanteenOrder(
        school_id=student.school_id, student_id=student.id, order_number=order_number,
        total_amount=total, status=OrderStatus.PENDING,
        payment_mode=None if body.pay_from_wallet else body.payment_mode,
        paid_from_wallet=body.pay_from_wallet, notes=body.notes,
        items=[
            CanteenOrderItem(menu_item_id=i, quantity=qty, price=menu[i].price)
            for i, qty in requested.items()
        ],
    )
    if body.pay_from_wallet:
        wallet = await wallets.lock_wallet(db, student_id=student.id)
        wallets.debit(db, wallet, total, f"Canteen order {order_number}", order_number)
    db.add(order)
    await db.flush()
    record_audit(
        db, user, AuditAction.CREATE, "CanteenOrder", order.id,
        school_id=order.school_id, new_value=snapshot(order),
    )
    await db.commit()
    return success_response(CanteenOrderRead.model_validate(order), "Order placed successfully")


@router.get("/orders/{order_id}")
async def get_order(
    order_id: UUID,
    user: CurrentUser = Depends(require_module("canteen")),
    db: AsyncSession = Depends(get_db),
):
    order = await get_scoped_or_404(db, CanteenOrder, order_id, user, "Order")
    return success_response(CanteenOrderRead.model_validate(order))


@router.put("/orders/{order_id}")
async def update_order_status(
    order_id: UUID,
    body: CanteenOrderUpdate,
    user: CurrentUser = Depends(require_module("canteen")),
    db: AsyncSession = Depends(get_db),
):
    order = await get_scoped_or_404(db, CanteenOrder, order_id, user, "Order")
    before = snapshot(order)
    await canteen_orders.change_status(db, order, body.status)
    await db.flush()
    record_audit(
        db, user, AuditAction.UPDATE, "CanteenOrder", order.id, school_id=order.school_id,
        old_value=before, new_value=snapshot(order),
    )
    await db.commit()
    return success_response(CanteenOrderRead.model_validate(order), "Order updated successfully")
