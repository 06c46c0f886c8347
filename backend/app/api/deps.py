"""Request Guards — authentication, role and module checks shared by every route.

Invariants:
    - Check order: authenticated (401) → active account/school (403) →
      required roles (403 "Insufficient permissions") → module access (403)
    - The user row is re-read on every request; token claims are never trusted
      for role or tenant
    - List endpoints read paging/sorting through list_query only

Design Decisions:
    - Guards are FastAPI dependencies rather than a decorator: FastAPI resolves
      get_db once per request, so guard and handler share one session
    - HTTPBearer(auto_error=False): missing credentials become our 401 envelope,
      not FastAPI's default 403
"""

import logging
from collections.abc import Sequence
from uuid import UUID

from fastapi import Depends, Query
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import get_settings
from app.core.access_control import has_minimum_role, has_module_access, has_role
from app.core.domain_types import UserRole
from app.core.errors import ErrorContext, ForbiddenError, UnauthorizedError
from app.core.pagination import ListQuery, parse_pagination
from app.core.tenancy import CurrentUser
from app.infrastructure.database import get_db
from app.infrastructure.security import AuthError, decode_session_token
from app.models.school import School
from app.models.user import User

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


def to_current_user(user: User) -> CurrentUser:
    return CurrentUser(
        id=user.id, email=user.email, name=user.full_name,
        role=UserRole(user.role), school_id=user.school_id,
        is_active=user.is_active,
    )


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> CurrentUser:
    """Resolve the Bearer token to an active user of an active school."""
    if credentials is None:
        raise UnauthorizedError()
    try:
        payload = decode_session_token(credentials.credentials)
    except AuthError as e:
        raise UnauthorizedError(str(e))
    try:
        user_id = UUID(str(payload["sub"]))
    except ValueError:
        raise UnauthorizedError("Invalid token payload")

    user = await db.get(User, user_id)
    if user is None:
        raise UnauthorizedError("User not found")
    if not user.is_active:
        raise ForbiddenError("Account is deactivated. Please contact administrator.")
    if user.school_id and user.role != UserRole.SUPER_ADMIN:
        school = await db.get(School, user.school_id)
        if school is None or not school.is_active:
            raise ForbiddenError("Your school's account has been deactivated")
    return to_current_user(user)


def require_module(module: str, roles: Sequence[UserRole] | None = None):
    """Dependency factory: authenticated user allowed to use `module`."""

    async def guard(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        context = ErrorContext(
            user_id=str(user.id), school_id=str(user.school_id), module=module,
        )
        if roles and not has_role(user.role, roles):
            logger.warning(
                "Role check failed",
                extra={"user_id": user.id, "role": user.role.value, "app_module": module},
            )
            raise ForbiddenError("Insufficient permissions", context)
        if not has_module_access(user.role, module):
            logger.warning(
                "Module access denied",
                extra={"user_id": user.id, "role": user.role.value, "app_module": module},
            )
            raise ForbiddenError(
                f"No access to {module} module (role: {user.role.value})", context,
            )
        return user

    return guard


def ensure_minimum_role(user: CurrentUser, minimum: UserRole, message: str) -> None:
    """Raise 403 with `message` unless user ranks at or above minimum."""
    if not has_minimum_role(user.role, minimum):
        logger.warning(
            message, extra={"user_id": user.id, "role": user.role.value},
        )
        raise ForbiddenError(message)


def list_query(
    page: str | None = Query(None),
    limit: str | None = Query(None),
    search: str | None = Query(None),
    sort_by: str | None = Query(None, alias="sortBy"),
    sort_order: str | None = Query(None, alias="sortOrder"),
) -> ListQuery:
    """Paging, free-text search and sorting for list endpoints."""
    settings = get_settings()
    return ListQuery(
        pagination=parse_pagination(
            page, limit, settings.default_page_size, settings.max_page_size,
        ),
        search=search.strip() if search and search.strip() else None,
        sort_by=sort_by,
        sort_order=sort_order,
    )
