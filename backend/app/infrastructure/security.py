"""Credentials — bcrypt password hashing and signed (PyJWT) web session tokens.

Invariants:
    - Password hashes are bcrypt; verify never raises on a malformed hash
    - Session tokens are HS256 JWTs carrying sub (user id), role, schoolId, iat, exp
    - decode_session_token raises AuthError for expired, tampered or incomplete tokens

Design Decisions:
    - Role and school in the token are informational only: get_current_user
      re-reads the user row so deactivation and role changes apply immediately
"""

from datetime import datetime, timedelta, timezone
from typing import Any
from uuid import UUID

import bcrypt
import jwt

from app.config import get_settings


class AuthError(Exception):
    pass


def hash_password(password: str) -> str:
    salt = bcrypt.gensalt(rounds=get_settings().bcrypt_rounds)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        return False


def create_session_token(
    user_id: UUID, role: str, school_id: UUID | None,
    expires_minutes: int | None = None,
) -> str:
    settings = get_settings()
    now = datetime.now(timezone.utc)
    exp_minutes = expires_minutes or settings.session_max_age_minutes
    payload: dict[str, Any] = {
        "sub": str(user_id),
        "role": role,
        "schoolId": str(school_id) if school_id else None,
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(minutes=exp_minutes)).timestamp()),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_session_token(token: str) -> dict[str, Any]:
    settings = get_settings()
    try:
        payload = jwt.decode(
            token, settings.jwt_secret, algorithms=[settings.jwt_algorithm],
        )
    except jwt.ExpiredSignatureError as exc:
        raise AuthError("Token expired") from exc
    except jwt.InvalidTokenError as exc:
        raise AuthError("Invalid token") from exc
    if "sub" not in payload:
        raise AuthError("Invalid token payload")
    return payload
