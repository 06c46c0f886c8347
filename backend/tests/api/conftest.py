"""API test fixtures — async DB, seeded tenants and an authenticated test client.

Invariants:
    - Every test gets a fresh in-memory SQLite database
    - get_db dependency overridden: each request opens its own session, like production
    - Two schools (alpha, beta) with one current academic year and one class each
    - One user per role the tests need; tokens minted directly, no login round-trip

Design Decisions:
    - StaticPool: every session shares the single in-memory connection, so rows
      committed by the seed are visible to request sessions
    - Seed session is closed before tests run; assertions read through a fresh
      session from session_factory
"""

from datetime import date
from types import SimpleNamespace

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import app.infrastructure.database as db_module
from app.core.domain_types import Gender, UserRole
from app.db.base import Base
from app.infrastructure.database import DatabaseSessionManager, get_db
from app.infrastructure.security import create_session_token, hash_password
from app import models  # noqa: F401  registers every table on Base.metadata
from app.main import app
from app.models.academic import SchoolClass, Section
from app.models.school import AcademicYear, School
from app.models.student import Student
from app.models.user import User

PASSWORD = "Passw0rd!"


@pytest.fixture
async def test_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:", echo=False, poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
async def session_factory(test_engine):
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def client(test_engine, session_factory):
    """FastAPI test client with DB dependency overridden."""
    manager = DatabaseSessionManager.__new__(DatabaseSessionManager)
    manager.engine = test_engine
    manager._session_factory = session_factory

    async def override_get_db():
        async with manager.session() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    original_manager = db_module.db_manager
    db_module.db_manager = manager

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test",
    ) as c:
        yield c

    app.dependency_overrides.clear()
    db_module.db_manager = original_manager


def _user(email: str, role: UserRole, school: School | None, password_hash: str) -> User:
    first, _, last = role.value.title().partition("_")
    return User(
        email=email, password=password_hash, first_name=first, last_name=last or "User",
        role=role, school_id=school.id if school else None,
    )


@pytest.fixture
async def seed(session_factory):
    """Two tenants with a class, a section and staff accounts per role."""
    password_hash = hash_password(PASSWORD)
    async with session_factory() as db:
        alpha = School(name="Alpha Public School", code="ALPHA", email="office@alpha-school.edu")
        beta = School(name="Beta Academy", code="BETA", email="office@beta-academy.edu")
        db.add_all([alpha, beta])
        await db.flush()

        years, classes = {}, {}
        for school in (alpha, beta):
            year = AcademicYear(
                school_id=school.id, name="2025-2026", is_current=True,
                start_date=date(2025, 4, 1), end_date=date(2026, 3, 31),
            )
            db.add(year)
            await db.flush()
            school_class = SchoolClass(
                school_id=school.id, academic_year_id=year.id, name="Grade 5", grade=5,
            )
            db.add(school_class)
            years[school.code], classes[school.code] = year, school_class
        await db.flush()

        section = Section(class_id=classes["ALPHA"].id, name="A")
        db.add(section)

        users = {
            "super_admin": _user("root@schoolhub.edu", UserRole.SUPER_ADMIN, None, password_hash),
            "admin": _user("admin@alpha-school.edu", UserRole.SCHOOL_ADMIN, alpha, password_hash),
            "principal": _user("principal@alpha-school.edu", UserRole.PRINCIPAL, alpha, password_hash),
            "teacher": _user("teacher@alpha-school.edu", UserRole.TEACHER, alpha, password_hash),
            "accountant": _user("accounts@alpha-school.edu", UserRole.ACCOUNTANT, alpha, password_hash),
            "librarian": _user("library@alpha-school.edu", UserRole.LIBRARIAN, alpha, password_hash),
            "beta_admin": _user("admin@beta-academy.edu", UserRole.SCHOOL_ADMIN, beta, password_hash),
        }
        db.add_all(users.values())
        await db.commit()

    return SimpleNamespace(
        alpha=alpha, beta=beta, years=years, classes=classes, section=section, users=users,
    )


@pytest.fixture
def auth_headers(seed):
    """auth_headers("admin") → Authorization header for that seeded user."""

    def build(key: str) -> dict[str, str]:
        user = seed.users[key]
        token = create_session_token(user.id, user.role.value, user.school_id)
        return {"Authorization": f"Bearer {token}"}

    return build


@pytest.fixture
def make_student(session_factory, seed):
    """Insert a student straight into the DB (alpha school by default)."""

    async def create(admission_number: str, school_code: str = "ALPHA", **fields) -> Student:
        school = seed.alpha if school_code == "ALPHA" else seed.beta
        async with session_factory() as db:
            student = Student(
                school_id=school.id, class_id=seed.classes[school_code].id,
                admission_number=admission_number,
                first_name=fields.pop("first_name", "Student"),
                last_name=fields.pop("last_name", admission_number),
                gender=fields.pop("gender", Gender.FEMALE),
                date_of_birth=fields.pop("date_of_birth", date(2014, 6, 1)),
                **fields,
            )
            db.add(student)
            await db.commit()
            return student

    return create
