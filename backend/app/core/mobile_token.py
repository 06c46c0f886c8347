"""Mobile Token — unsigned base64 session payload for the mobile app.

Invariants:
    - Token = base64(JSON {userId, email, role, schoolId, exp}), exp in epoch milliseconds
    - Tokens are NOT signed: the web API never accepts them as credentials

Design Decisions:
    - Kept separate from the signed JWT path so the unsigned format cannot be
      mistaken for an authentication token anywhere in the request pipeline
"""

import base64
import json
from datetime import datetime, timedelta, timezone
from uuid import UUID


def build_mobile_payload(
    user_id: UUID, email: str, role: str, school_id: UUID | None,
    ttl_seconds: int, now: datetime | None = None,
) -> dict:
    now = now or datetime.now(timezone.utc)
    expires_at = now + timedelta(seconds=ttl_seconds)
    return {
        "userId": str(user_id),
        "email": email,
        "role": role,
        "schoolId": str(school_id) if school_id else None,
        "exp": int(expires_at.timestamp() * 1000),
    }


def encode_mobile_token(payload: dict) -> str:
    raw = json.dumps(payload, separators=(",", ":")).encode("utf-8")
    return base64.b64encode(raw).decode("ascii")

