"""Mobile Login — issues the unsigned base64 token the mobile app expects.

Invariants:
    - Unknown email and wrong password both answer 401 "Invalid credentials"
    - Inactive accounts answer 403 "Account is inactive"
    - The response carries the user without password, token, expiresIn, message, timestamp
"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import to_current_user
from app.config import get_settings
from app.core.domain_types import AuditAction
from app.core.envelope import success_response
from app.core.errors import ForbiddenError, UnauthorizedError
from app.core.mobile_token import build_mobile_payload, encode_mobile_token
from app.db.base import utcnow
from app.infrastructure.database import get_db
from app.infrastructure.security import verify_password
from app.models.user import User
from app.schemas.user import LoginRequest, MobileLoginResponse, UserRead
from app.services.audit import record_audit

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/mobile/auth", tags=["mobile"])


@router.post("/login")
async def mobile_login(body: LoginRequest, db: AsyncSession = Depends(get_db)):
    user = (
        await db.execute(select(User).where(User.email == body.email))
    ).scalar_one_or_none()
    if user is None or not verify_password(body.password, user.password):
        raise UnauthorizedError("Invalid credentials")
    if not user.is_active:
        raise ForbiddenError("Account is inactive")

    now = utcnow()
    user.last_login = now
    record_audit(
        db, to_current_user(user), AuditAction.LOGIN, "User", user.id,
        school_id=user.school_id, new_value={"channel": "mobile"},
    )
    await db.commit()

    ttl = get_settings().mobile_token_ttl_seconds
    payload = build_mobile_payload(
        user.id, user.email, user.role.value, user.school_id, ttl, now=now,
    )
    logger.info("Mobile login", extra={"user_id": user.id, "school_id": user.school_id})
    return success_response(MobileLoginResponse(
        token=encode_mobile_token(payload),
        expires_in=ttl,
        user=UserRead.model_validate(user),
        message="Login successful",
        timestamp=now,
    ))
