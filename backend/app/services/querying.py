"""Query Helpers — tenant scoping, search, sorting and pagination over SQLAlchemy selects.

Invariants:
    - scope_to_school applies core.tenancy.school_filter verbatim (column == value)
    - Search is a case-insensitive substring match OR-ed across the given columns
    - Sorting only ever uses columns from the caller's allow-list
    - Totals are counted on the filtered statement before offset/limit
    - get_scoped_or_404 treats rows of another school exactly like missing rows
    - compare_and_set writes only while the row still holds the values the caller
      read; a lost race changes nothing and reports False

Design Decisions:
    - Out-of-tenant reads answer 404, not 403: existence of another school's
      records is not disclosed
"""

from collections.abc import Mapping, Sequence
from typing import Any, TypeVar
from uuid import UUID

from sqlalchemy import Select, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import InstrumentedAttribute

from app.core.errors import ResourceNotFoundError
from app.core.pagination import ListQuery, resolve_sort
from app.core.tenancy import CurrentUser, school_filter

ModelT = TypeVar("ModelT")


def scope_to_school(stmt: Select, model: Any, user: CurrentUser) -> Select:
    for column, value in school_filter(user).items():
        stmt = stmt.where(getattr(model, column) == value)
    return stmt


def apply_search(
    stmt: Select, term: str | None, columns: Sequence[InstrumentedAttribute],
) -> Select:
    if not term:
        return stmt
    pattern = f"%{term}%"
    return stmt.where(or_(*(column.ilike(pattern) for column in columns)))


def apply_sort(
    stmt: Select, query: ListQuery, allowed: Mapping[str, InstrumentedAttribute],
) -> Select:
    """ORDER BY the requested allow-listed column (camelCase key)."""
    field, order = resolve_sort(query.sort_by, query.sort_order, list(allowed))
    column = allowed[field]
    return stmt.order_by(column.asc() if order == "asc" else column.desc())


async def paginate(
    db: AsyncSession, stmt: Select, query: ListQuery,
) -> tuple[list, int]:
    """(rows for the requested page, total matching rows)."""
    total = await db.scalar(
        select(func.count()).select_from(stmt.order_by(None).subquery()),
    )
    result = await db.execute(
        stmt.offset(query.pagination.skip).limit(query.pagination.limit),
    )
    return list(result.scalars().all()), int(total or 0)


async def get_scoped_or_404(
    db: AsyncSession, model: type[ModelT], record_id: UUID,
    user: CurrentUser, label: str,
) -> ModelT:
    """Load a tenant-owned row by id or raise 404."""
    stmt = scope_to_school(select(model).where(model.id == record_id), model, user)
    record = (await db.execute(stmt)).scalar_one_or_none()
    if record is None:
        raise ResourceNotFoundError(label, str(record_id))
    return record


async def row_exists(db: AsyncSession, model: Any, *criteria: Any) -> bool:
    """True when at least one row of model matches all criteria."""
    stmt = select(model.id).where(*criteria).limit(1)
    return (await db.execute(stmt)).first() is not None


async def count_rows(db: AsyncSession, model: Any, *criteria: Any) -> int:
    stmt = select(func.count()).select_from(model).where(*criteria)
    return int(await db.scalar(stmt) or 0)


def apply_changes(record: Any, changes: Mapping[str, Any]) -> None:
    for key, value in changes.items():
        setattr(record, key, value)


async def compare_and_set(
    db: AsyncSession, record: Any, expected: Mapping[str, Any], values: Mapping[str, Any],
) -> bool:
    """Conditional UPDATE of record's row; True when this caller won the write.

    On success the in-memory record is refreshed from the row just written.
    """
    model = type(record)
    stmt = update(model).where(
        model.id == record.id,
        *(getattr(model, column) == value for column, value in expected.items()),
    )
    result = await db.execute(
        stmt.values(**values).execution_options(synchronize_session=False),
    )
    if result.rowcount != 1:
        return False
    await db.refresh(record)
    return True
