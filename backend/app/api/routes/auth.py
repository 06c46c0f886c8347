"""Authentication Routes — web login and the current-user lookup.

Invariants:
    - Unknown email and wrong password answer the same 401 (no account probing)
    - Deactivated accounts are refused after the password check (403)
    - Successful logins stamp last_login and leave a LOGIN audit row
"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_user, to_current_user
from app.config import get_settings
from app.core.domain_types import AuditAction
from app.core.envelope import success_response
from app.core.errors import ForbiddenError, ResourceNotFoundError, UnauthorizedError
from app.core.tenancy import CurrentUser
from app.db.base import utcnow
from app.infrastructure.database import get_db
from app.infrastructure.security import create_session_token, verify_password
from app.models.user import User
from app.schemas.user import LoginRequest, LoginResponse, UserRead
from app.services.audit import record_audit

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post("/login")
async def login(body: LoginRequest, db: AsyncSession = Depends(get_db)):
    """Exchange email/password for a signed session token."""
    user = (
        await db.execute(select(User).where(User.email == body.email))
    ).scalar_one_or_none()
    if user is None or not verify_password(body.password, user.password):
        logger.warning("Failed login", extra={"entity": "User"})
        raise UnauthorizedError("Invalid email or password")
    if not user.is_active:
        raise ForbiddenError("Account is deactivated. Please contact administrator.")

    user.last_login = utcnow()
    record_audit(
        db, to_current_user(user), AuditAction.LOGIN, "User", user.id,
        school_id=user.school_id,
    )
    await db.commit()

    settings = get_settings()
    token = create_session_token(user.id, user.role.value, user.school_id)
    return success_response(
        LoginResponse(
            token=token,
            expires_in=settings.session_max_age_minutes * 60,
            user=UserRead.model_validate(user),
        ),
        "Login successful",
    )


@router.get("/me")
async def me(
    current: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    user = await db.get(User, current.id)
    if user is None:
        raise ResourceNotFoundError("User", str(current.id))
    return success_response(UserRead.model_validate(user))
