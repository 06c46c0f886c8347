"""Login flows — web session token, mobile token, and the /me lookup."""

import base64
import json
import time

from sqlalchemy import select, update

from app.core.domain_types import AuditAction
from app.models.audit import AuditLog
from app.models.user import User

PASSWORD = "Passw0rd!"


async def _deactivate(session_factory, user) -> None:
    async with session_factory() as db:
        await db.execute(update(User).where(User.id == user.id).values(is_active=False))
        await db.commit()


async def test_login_returns_token_and_user(client, seed, session_factory):
    res = await client.post(
        "/api/auth/login", json={"email": "Admin@Alpha-School.edu", "password": PASSWORD},
    )
    assert res.status_code == 200
    data = res.json()["data"]
    assert data["token"]
    assert data["expiresIn"] > 0
    assert data["user"]["email"] == "admin@alpha-school.edu"
    assert "password" not in data["user"]

    me = await client.get("/api/auth/me", headers={"Authorization": f"Bearer {data['token']}"})
    assert me.status_code == 200
    assert me.json()["data"]["role"] == "SCHOOL_ADMIN"

    async with session_factory() as db:
        user = await db.scalar(select(User).where(User.email == "admin@alpha-school.edu"))
        logins = (await db.execute(
            select(AuditLog).where(
                AuditLog.user_id == user.id, AuditLog.action == AuditAction.LOGIN,
            ),
        )).scalars().all()
    assert user.last_login is not None
    assert len(logins) == 1


async def test_wrong_password_and_unknown_email_look_alike(client, seed):
    wrong = await client.post(
        "/api/auth/login", json={"email": "admin@alpha-school.edu", "password": "nope"},
    )
    unknown = await client.post(
        "/api/auth/login", json={"email": "nobody@alpha-school.edu", "password": PASSWORD},
    )
    assert wrong.status_code == unknown.status_code == 401
    assert wrong.json() == unknown.json()


async def test_inactive_account_is_refused(client, seed, session_factory):
    await _deactivate(session_factory, seed.users["teacher"])
    res = await client.post(
        "/api/auth/login", json={"email": "teacher@alpha-school.edu", "password": PASSWORD},
    )
    assert res.status_code == 403
    assert res.json()["code"] == "FORBIDDEN"


async def test_deactivated_user_token_stops_working(client, seed, auth_headers, session_factory):
    headers = auth_headers("teacher")
    await _deactivate(session_factory, seed.users["teacher"])
    res = await client.get("/api/auth/me", headers=headers)
    assert res.status_code == 403


async def test_garbage_token_is_unauthorized(client, seed):
    res = await client.get("/api/auth/me", headers={"Authorization": "Bearer not-a-token"})
    assert res.status_code == 401


# ─── MOBILE ─────────────────────────────────────────────────────

async def test_mobile_login_token_carries_user_claims(client, seed):
    before_ms = int(time.time() * 1000)
    res = await client.post(
        "/api/mobile/auth/login",
        json={"email": "teacher@alpha-school.edu", "password": PASSWORD},
    )
    assert res.status_code == 200
    data = res.json()["data"]
    assert data["message"] == "Login successful"
    assert data["expiresIn"] == 86400
    assert "password" not in data["user"]

    payload = json.loads(base64.b64decode(data["token"]))
    teacher = seed.users["teacher"]
    assert payload["userId"] == str(teacher.id)
    assert payload["email"] == "teacher@alpha-school.edu"
    assert payload["role"] == "TEACHER"
    assert payload["schoolId"] == str(seed.alpha.id)
    assert payload["exp"] > before_ms


async def test_mobile_token_is_not_an_api_credential(client, seed):
    res = await client.post(
        "/api/mobile/auth/login",
        json={"email": "admin@alpha-school.edu", "password": PASSWORD},
    )
    token = res.json()["data"]["token"]
    denied = await client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert denied.status_code == 401


async def test_mobile_login_failures(client, seed, session_factory):
    bad = await client.post(
        "/api/mobile/auth/login",
        json={"email": "teacher@alpha-school.edu", "password": "wrong-pass"},
    )
    assert bad.status_code == 401
    assert bad.json()["error"] == "Invalid credentials"

    await _deactivate(session_factory, seed.users["teacher"])
    inactive = await client.post(
        "/api/mobile/auth/login",
        json={"email": "teacher@alpha-school.edu", "password": PASSWORD},
    )
    assert inactive.status_code == 403
    assert inactive.json()["error"] == "Account is inactive"
