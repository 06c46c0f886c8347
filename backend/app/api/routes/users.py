"""User Routes — login accounts managed by school administrators.

Invariants:
    - Every endpoint requires at least SCHOOL_ADMIN on top of the roles module
    - A user can only create, promote or modify accounts ranked strictly below them
    - Emails are globally unique and lowercased; passwords are stored as bcrypt hashes
    - Delete deactivates the account; nobody can deactivate themselves
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import ensure_minimum_role, list_query, require_module
from app.core.access_control import can_assign_role
from app.core.domain_types import AuditAction, UserRole
from app.core.envelope import paginated_response, success_response
from app.core.errors import BusinessRuleError, ForbiddenError, ValidationFailedError
from app.core.pagination import ListQuery, parse_bool_flag
from app.core.tenancy import CurrentUser, resolve_school_id
from app.infrastructure.database import get_db
from app.infrastructure.security import hash_password
from app.models.user import User
from app.schemas.user import UserCreate, UserRead, UserUpdate
from app.services.audit import record_audit, snapshot
from app.services.querying import (
    apply_changes, apply_search, apply_sort, get_scoped_or_404, paginate,
    row_exists, scope_to_school,
)

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/users", tags=["users"])

SORTABLE = {
    "createdAt": User.created_at, "firstName": User.first_name,
    "lastName": User.last_name, "email": User.email,
}


def split_name(name: str) -> tuple[str, str]:
    """"Jane Q Doe" → ("Jane", "Q Doe"); single words repeat as last name."""
    parts = name.split()
    return parts[0], " ".join(parts[1:]) or parts[0]


def _ensure_can_assign(actor: CurrentUser, role: UserRole, message: str) -> None:
    if not can_assign_role(actor.role, role):
        logger.warning(
            message, extra={"user_id": actor.id, "role": actor.role.value},
        )
        raise ForbiddenError(message)


@router.get("")
async def list_users(
    query: ListQuery = Depends(list_query),
    role: UserRole | None = Query(None),
    is_active: str | None = Query(None, alias="isActive"),
    user: CurrentUser = Depends(require_module("roles")),
    db: AsyncSession = Depends(get_db),
):
    ensure_minimum_role(user, UserRole.SCHOOL_ADMIN, "Only administrators can view user list")
    stmt = scope_to_school(select(User), User, user)
    stmt = apply_search(stmt, query.search, [User.first_name, User.last_name, User.email])
    if role:
        stmt = stmt.where(User.role == role)
    active = parse_bool_flag(is_active)
    if active is not None:
        stmt = stmt.where(User.is_active == active)
    rows, total = await paginate(db, apply_sort(stmt, query, SORTABLE), query)
    return paginated_response(
        [UserRead.model_validate(u) for u in rows], total, query.pagination,
    )


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_user(
    body: UserCreate,
    user: CurrentUser = Depends(require_module("roles")),
    db: AsyncSession = Depends(get_db),
):
    ensure_minimum_role(user, UserRole.SCHOOL_ADMIN, "Only administrators can create users")
    school_id = resolve_school_id(user, body.school_id)
    if await row_exists(db, User, User.email == body.email):
        raise ValidationFailedError.single("email", "User with this email already exists")
    _ensure_can_assign(user, body.role, "Cannot create user with equal or higher privileges")

    first_name, last_name = split_name(body.name)
    account = User(
        email=body.email, password=hash_password(body.password),
        first_name=first_name, last_name=last_name, phone=body.phone,
        role=body.role, school_id=school_id, is_active=body.is_active,
    )
    db.add(account)
    await db.flush()
    record_audit(
        db, user, AuditAction.CREATE, "User", account.id,
        school_id=school_id, new_value=snapshot(account),
    )
    await db.commit()
    return success_response(UserRead.model_validate(account), "User created successfully")


@router.get("/{user_id}")
async def get_user(
    user_id: UUID,
    user: CurrentUser = Depends(require_module("roles")),
    db: AsyncSession = Depends(get_db),
):
    ensure_minimum_role(user, UserRole.SCHOOL_ADMIN, "Only administrators can view users")
    account = await get_scoped_or_404(db, User, user_id, user, "User")
    return success_response(UserRead.model_validate(account))


@router.put("/{user_id}")
async def update_user(
    user_id: UUID,
    body: UserUpdate,
    user: CurrentUser = Depends(require_module("roles")),
    db: AsyncSession = Depends(get_db),
):
    ensure_minimum_role(user, UserRole.SCHOOL_ADMIN, "Only administrators can update users")
    account = await get_scoped_or_404(db, User, user_id, user, "User")
    is_self = account.id == user.id
    if not is_self:
        _ensure_can_assign(
            user, account.role, "Cannot modify user with equal or higher privileges",
        )

    changes = body.model_dump(exclude_unset=True)
    if "role" in changes and changes["role"] != account.role:
        if is_self:
            raise ForbiddenError("You cannot change your own role")
        _ensure_can_assign(user, changes["role"], "Cannot assign equal or higher privileges")
    if is_self and changes.get("is_active") is False:
        raise BusinessRuleError("You cannot deactivate your own account")
    if "name" in changes:
        name = changes.pop("name")
        if name:
            changes["first_name"], changes["last_name"] = split_name(name)

    before = snapshot(account)
    apply_changes(account, changes)
    await db.flush()
    record_audit(
        db, user, AuditAction.UPDATE, "User", account.id, school_id=account.school_id,
        old_value=before, new_value=snapshot(account),
    )
    await db.commit()
    return success_response(UserRead.model_validate(account), "User updated successfully")


@router.delete("/{user_id}")
async def deactivate_user(
    user_id: UUID,
    user: CurrentUser = Depends(require_module("roles")),
    db: AsyncSession = Depends(get_db),
):
    ensure_minimum_role(user, UserRole.SCHOOL_ADMIN, "Only administrators can delete users")
    account = await get_scoped_or_404(db, User, user_id, user, "User")
    if account.id == user.id:
        raise BusinessRuleError("You cannot deactivate your own account")
    _ensure_can_assign(user, account.role, "Cannot modify user with equal or higher privileges")

    account.is_active = False
    await db.flush()
    record_audit(
        db, user, AuditAction.DELETE, "User", account.id, school_id=account.school_id,
        old_value={"isActive": True}, new_value={"isActive": False},
    )
    await db.commit()
    return success_response({"message": "User deactivated successfully"})
