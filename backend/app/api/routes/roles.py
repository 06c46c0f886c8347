"""Custom Role Routes — school-defined role labels with permission maps."""

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
from app.models.user import CustomRole
from app.schemas.user import CustomRoleCreate, CustomRoleRead, CustomRoleUpdate
from app.services.audit import record_audit, snapshot
from app.services.querying import (
    apply_changes, apply_search, apply_sort, get_scoped_or_404, paginate,
    row_exists, scope_to_school,
)

router = APIRouter(prefix="/api/roles", tags=["roles"])

SORTABLE = {"createdAt": CustomRole.created_at, "name": CustomRole.name}

_DUPLICATE = "Role with this name already exists"


@router.get("")
async def list_roles(
    query: ListQuery = Depends(list_query),
    user: CurrentUser = Depends(require_module("roles")),
    db: AsyncSession = Depends(get_db),
):
    stmt = scope_to_school(select(CustomRole), CustomRole, user)
    stmt = apply_search(stmt, query.search, [CustomRole.name, CustomRole.description])
    rows, total = await paginate(db, apply_sort(stmt, query, SORTABLE), query)
    return paginated_response(
        [CustomRoleRead.model_validate(r) for r in rows], total, query.pagination,
    )


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_role(
    body: CustomRoleCreate,
    user: CurrentUser = Depends(require_module("roles")),
    db: AsyncSession = Depends(get_db),
):
    school_id = resolve_school_id(user, body.school_id)
    if await row_exists(
        db, CustomRole, CustomRole.school_id == school_id, CustomRole.name == body.name,
    ):
        raise ValidationFailedError.single("name", _DUPLICATE)

    role = CustomRole(**body.model_dump(exclude={"school_id"}), school_id=school_id)
    db.add(role)
    await db.flush()
    record_audit(
        db, user, AuditAction.CREATE, "CustomRole", role.id,
        school_id=school_id, new_value=snapshot(role),
    )
    await db.commit()
    return success_response(CustomRoleRead.model_validate(role), "Role created successfully")


@router.get("/{role_id}")
async def get_role(
    role_id: UUID,
    user: CurrentUser = Depends(require_module("roles")),
    db: AsyncSession = Depends(get_db),
):
    role = await get_scoped_or_404(db, CustomRole, role_id, user, "Role")
    return success_response(CustomRoleRead.model_validate(role))


@router.put("/{role_id}")
async def update_role(
    role_id: UUID,
    body: CustomRoleUpdate,
    user: CurrentUser = Depends(require_module("roles")),
    db: AsyncSession = Depends(get_db),
):
    role = await get_scoped_or_404(db, CustomRole, role_id, user, "Role")
    changes = body.model_dump(exclude_unset=True)
    new_name = changes.get("name")
    if new_name and new_name != role.name and await row_exists(
        db, CustomRole, CustomRole.school_id == role.school_id,
        CustomRole.name == new_name, CustomRole.id != role.id,
    ):
        raise ValidationFailedError.single("name", _DUPLICATE)

    before = snapshot(role)
    apply_changes(role, changes)
    await db.flush()
    record_audit(
        db, user, AuditAction.UPDATE, "CustomRole", role.id, school_id=role.school_id,
        old_value=before, new_value=snapshot(role),
    )
    await db.commit()
    return success_response(CustomRoleRead.model_validate(role), "Role updated successfully")


@router.delete("/{role_id}")
async def delete_role(
    role_id: UUID,
    user: CurrentUser = Depends(require_module("roles")),
    db: AsyncSession = Depends(get_db),
):
    role = await get_scoped_or_404(db, CustomRole, role_id, user, "Role")
    before = snapshot(role)
    await db.delete(role)
    record_audit(
        db, user, AuditAction.DELETE, "CustomRole", role_id,
        school_id=role.school_id, old_value=before,
    )
    await db.commit()
    return success_response({"message": "Role deleted successfully"})
