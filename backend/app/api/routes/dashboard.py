"""Dashboard Routes — headline counts for the caller's school."""

from fastapi import APIRouter, Depends
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_user
from app.core.domain_types import PaymentStatus
from app.core.envelope import success_response
from app.core.tenancy import CurrentUser
from app.infrastructure.database import get_db
from app.models.academic import SchoolClass
from app.models.finance import FeePayment
from app.models.staff import Staff
from app.models.student import Student
from app.schemas.security import DashboardStats
from app.services.querying import scope_to_school

router = APIRouter(prefix="/api/dashboard", tags=["dashboard"])


async def _count(db: AsyncSession, model, user: CurrentUser, *criteria) -> int:
    stmt = scope_to_school(select(func.count()).select_from(model).where(*criteria), model, user)
    return int(await db.scalar(stmt) or 0)


@router.get("/stats")
async def dashboard_stats(
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Student, staff and class counts plus fees collected; SUPER_ADMIN sees all schools."""
    collected = await db.scalar(scope_to_school(
        select(func.coalesce(func.sum(FeePayment.paid_amount), 0.0))
        .where(FeePayment.status == PaymentStatus.PAID),
        FeePayment, user,
    ))
    stats = DashboardStats(
        total_students=await _count(db, Student, user),
        active_students=await _count(db, Student, user, Student.is_active.is_(True)),
        total_staff=await _count(db, Staff, user),
        active_staff=await _count(db, Staff, user, Staff.is_active.is_(True)),
        total_classes=await _count(db, SchoolClass, user),
        fee_collected=round(float(collected or 0), 2),
    )
    return success_response(stats)
