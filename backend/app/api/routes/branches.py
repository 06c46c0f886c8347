"""Branch Routes — campuses of a school."""

from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import list_query, require_module
from app.core.domain_types import AuditAction
from app.core.envelope import paginated_response, success_response
from app.core.errors import ValidationFailedError
from app.core.pagination import ListQuery
from app.core.tenancy import CurrentUser, resolve_school_id
from app.infrastructure.database import get_db
from app.models.school import Branch
from app.schemas.school import BranchCreate, BranchRead
from app.services.audit import record_audit, snapshot
from app.services.querying import (
    apply_search, apply_sort, get_scoped_or_404, paginate, row_exists, scope_to_school,
)

router = APIRouter(prefix="/api/branches", tags=["branches"])

SORTABLE = {"createdAt": Branch.created_at, "name": Branch.name, "code": Branch.code}


@router.get("")
async def list_branches(
    query: ListQuery = Depends(list_query),
    user: CurrentUser = Depends(require_module("branches")),
    db: AsyncSession = Depends(get_db),
):
    stmt = scope_to_school(select(Branch), Branch, user)
    stmt = apply_search(stmt, query.search, [Branch.name, Branch.code])
    rows, total = await paginate(db, apply_sort(stmt, query, SORTABLE), query)
    return paginated_response(
        [BranchRead.model_validate(b) for b in rows], total, query.pagination,
    )


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_branch(
    body: BranchCreate,
    user: CurrentUser = Depends(require_module("branches")),
    db: AsyncSession = Depends(get_db),
):
    school_id = resolve_school_id(user, body.school_id)
    if await row_exists(db, Branch, Branch.school_id == school_id, Branch.code == body.code):
        raise ValidationFailedError.single("code", "Branch code already exists in this school")

    branch = Branch(**body.model_dump(exclude={"school_id"}), school_id=school_id)
    db.add(branch)
    await db.flush()
    record_audit(
        db, user, AuditAction.CREATE, "Branch", branch.id,
        school_id=school_id, new_value=snapshot(branch),
    )
    await db.commit()
    return success_response(BranchRead.model_validate(branch), "Branch created successfully")


@router.get("/{branch_id}")
async def get_branch(
    branch_id: UUID,
    user: CurrentUser = Depends(require_module("branches")),
    db: AsyncSession = Depends(get_db),
):
    branch = await get_scoped_or_404(db, Branch, branch_id, user, "Branch")
    return success_response(BranchRead.model_validate(branch))


@router.delete("/{branch_id}")
async def delete_branch(
    branch_id: UUID,
    user: CurrentUser = Depends(require_module("branches")),
    db: AsyncSession = Depends(get_db),
):
    branch = await get_scoped_or_404(db, Branch, branch_id, user, "Branch")
    before = snapshot(branch)
    await db.delete(branch)
    record_audit(
        db, user, AuditAction.DELETE, "Branch", branch_id,
        school_id=branch.school_id, old_value=before,
    )
    await db.commit()
    return success_response({"message": "Branch deleted successfully"})
