"""Finance Routes — school expenses.

Invariants:
    - Expenses are tenant-owned; approvedBy must be a user of the same school
    - Lists are newest expense date first
"""

import datetime as dt
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import list_query, require_module
from app.core.domain_types import AuditAction
from app.core.envelope import paginated_response, success_response
from app.core.errors import ValidationFailedError
from app.core.pagination import ListQuery
from app.core.tenancy import CurrentUser, resolve_school_id
from app.infrastructure.database import get_db
from app.models.finance import Expense
from app.models.user import User
from app.schemas.finance import ExpenseCreate, ExpenseRead
from app.services.audit import record_audit, snapshot
from app.services.querying import (
    apply_search, get_scoped_or_404, paginate, row_exists, scope_to_school,
)

router = APIRouter(prefix="/api/finance", tags=["finance"])


@router.get("/expenses")
async def list_expenses(
    query: ListQuery = Depends(list_query),
    category: str | None = Query(None),
    start_date: dt.date | None = Query(None, alias="startDate"),
    end_date: dt.date | None = Query(None, alias="endDate"),
    user: CurrentUser = Depends(require_module("finance")),
    db: AsyncSession = Depends(get_db),
):
    stmt = scope_to_school(select(Expense), Expense, user)
    stmt = apply_search(stmt, query.search, [Expense.paid_to, Expense.bill_number])
    if category:
        stmt = stmt.where(func.lower(Expense.category) == category.lower())
    if start_date:
        stmt = stmt.where(Expense.expense_date >= start_date)
    if end_date:
        stmt = stmt.where(Expense.expense_date <= end_date)
    stmt = stmt.order_by(Expense.expense_date.desc(), Expense.created_at.desc())
    rows, total = await paginate(db, stmt, query)
    return paginated_response(
        [ExpenseRead.model_validate(e) for e in rows], total, query.pagination,
    )


@router.post("/expenses", status_code=status.HTTP_201_CREATED)
async def create_expense(
    body: ExpenseCreate,
    user: CurrentUser = Depends(require_module("finance")),
    db: AsyncSession = Depends(get_db),
):
    school_id = resolve_school_id(user, body.school_id)
    if body.approved_by and not await row_exists(
        db, User, User.id == body.approved_by, User.school_id == school_id,
    ):
        raise ValidationFailedError.single("approvedBy", "Approver not found in this school")

    expense = Expense(**body.model_dump(exclude={"school_id"}), school_id=school_id)
    db.add(expense)
    await db.flush()
    record_audit(
        db, user, AuditAction.CREATE, "Expense", expense.id,
        school_id=school_id, new_value=snapshot(expense),
    )
    await db.commit()
    return success_response(ExpenseRead.model_validate(expense), "Expense recorded successfully")


@router.get("/expenses/{expense_id}")
async def get_expense(
    expense_id: UUID,
    user: CurrentUser = Depends(require_module("finance")),
    db: AsyncSession = Depends(get_db),
):
    expense = await get_scoped_or_404(db, Expense, expense_id, user, "Expense")
    return success_response(ExpenseRead.model_validate(expense))
