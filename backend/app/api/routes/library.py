"""Library Routes — book catalogue, issues, returns and overdue tracking.

Invariants:
    - Issuing decrements Book.available with a conditional UPDATE (available > 0),
      so two concurrent issues cannot take the last copy twice
    - Only ISSUED or OVERDUE issues can be closed; RETURNED puts the copy back,
      LOST and DAMAGED do not
    - Book and student of an issue belong to the same school
"""

from datetime import date
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import list_query, require_module
from app.core.domain_types import AuditAction, IssueStatus
from app.core.envelope import paginated_response, success_response
from app.core.errors import BusinessRuleError, ValidationFailedError
from app.core.pagination import ListQuery, parse_bool_flag
from app.core.tenancy import CurrentUser, resolve_school_id
from app.infrastructure.database import get_db
from app.models.library import Book, LibraryIssue
from app.models.student import Student
from app.schemas.library import BookCreate, BookRead, IssueCreate, IssueRead, IssueReturn
from app.services.audit import record_audit, snapshot
from app.services.querying import (
    apply_search, apply_sort, get_scoped_or_404, paginate, row_exists, scope_to_school,
)

router = APIRouter(prefix="/api/library", tags=["library"])

BOOK_SORTABLE = {
    "createdAt": Book.created_at, "title": Book.title, "author": Book.author,
}
OPEN_ISSUE = (IssueStatus.ISSUED, IssueStatus.OVERDUE)


def _issues(user: CurrentUser):
    return scope_to_school(select(LibraryIssue), LibraryIssue, user)


async def _issue_page(db: AsyncSession, stmt, query: ListQuery) -> dict:
    rows, total = await paginate(db, stmt, query)
    return paginated_response(
        [IssueRead.model_validate(i) for i in rows], total, query.pagination,
    )


@router.get("/books")
async def list_books(
    query: ListQuery = Depends(list_query),
    category: str | None = Query(None),
    is_active: str | None = Query(None, alias="isActive"),
    user: CurrentUser = Depends(require_module("library")),
    db: AsyncSession = Depends(get_db),
):
    stmt = scope_to_school(select(Book), Book, user)
    stmt = apply_search(stmt, query.search, [Book.title, Book.author, Book.isbn])
    if category:
        stmt = stmt.where(Book.category == category)
    active = parse_bool_flag(is_active)
    if active is not None:
        stmt = stmt.where(Book.is_active == active)
    rows, total = await paginate(db, apply_sort(stmt, query, BOOK_SORTABLE), query)
    return paginated_response(
        [BookRead.model_validate(b) for b in rows], total, query.pagination,
    )


@router.post("/books", status_code=status.HTTP_201_CREATED)
async def create_book(
    body: BookCreate,
    user: CurrentUser = Depends(require_module("library")),
    db: AsyncSession = Depends(get_db),
):
    school_id = resolve_school_id(user, body.school_id)
    book = Book(**body.model_dump(exclude={"school_id"}), school_id=school_id)
    db.add(book)
    await db.flush()
    record_audit(
        db, user, AuditAction.CREATE, "Book", book.id,
        school_id=school_id, new_value=snapshot(book),
    )
    await db.commit()
    return success_response(BookRead.model_validate(book), "Book added successfully")


@router.get("/books/{book_id}")
async def get_book(
    book_id: UUID,
    user: CurrentUser = Depends(require_module("library")),
    db: AsyncSession = Depends(get_db),
):
    book = await get_scoped_or_404(db, Book, book_id, user, "Book")
    return success_response(BookRead.model_validate(book))


@router.get("/issues")
async def list_issues(
    query: ListQuery = Depends(list_query),
    issue_status: IssueStatus | None = Query(None, alias="status"),
    student_id: UUID | None = Query(None, alias="studentId"),
    user: CurrentUser = Depends(require_module("library")),
    db: AsyncSession = Depends(get_db),
):
    stmt = _issues(user)
    if issue_status:
        stmt = stmt.where(LibraryIssue.status == issue_status)
    if student_id:
        stmt = stmt.where(LibraryIssue.student_id == student_id)
    return await _issue_page(db, stmt.order_by(LibraryIssue.created_at.desc()), query)


@router.post("/issues", status_code=status.HTTP_201_CREATED)
async def issue_book(
    body: IssueCreate,
    user: CurrentUser = Depends(require_module("library")),
    db: AsyncSession = Depends(get_db),
):
    book = await get_scoped_or_404(db, Book, body.book_id, user, "Book")
    if not book.is_active:
        raise BusinessRuleError("Book is not active")
    if not await row_exists(
        db, Student, Student.id == body.student_id, Student.school_id == book.school_id,
        Student.is_active.is_(True),
    ):
        raise ValidationFailedError.single("studentId", "Invalid student")

    taken = await db.execute(
        update(Book)
        .where(Book.id == book.id, Book.available > 0)
        .values(available=Book.available - 1)
        .execution_options(synchronize_session=False),
    )
    if taken.rowcount != 1:
        title = book.title
        await db.rollback()
        raise BusinessRuleError(f"No copies of '{title}' are available")

    issue = LibraryIssue(
        **body.model_dump(), school_id=book.school_id, status=IssueStatus.ISSUED, fine=0.0,
    )
    db.add(issue)
    await db.flush()
    record_audit(
        db, user, AuditAction.CREATE, "LibraryIssue", issue.id,
        school_id=book.school_id, new_value=snapshot(issue),
    )
    await db.commit()
    return success_response(IssueRead.model_validate(issue), "Book issued successfully")


@router.post("/issues/{issue_id}/return")
async def return_book(
    issue_id: UUID,
    body: IssueReturn,
    user: CurrentUser = Depends(require_module("library")),
    db: AsyncSession = Depends(get_db),
):
    issue = await get_scoped_or_404(db, LibraryIssue, issue_id, user, "Issue")
    if issue.status not in OPEN_ISSUE:
        raise BusinessRuleError(f"Book issue is already {issue.status.value}")

    before = snapshot(issue)
    issue.status = body.status
    issue.return_date = body.return_date or date.today()
    issue.fine = body.fine
    if body.notes:
        issue.notes = body.notes
    if body.status == IssueStatus.RETURNED:
        await db.execute(
            update(Book)
            .where(Book.id == issue.book_id, Book.available < Book.quantity)
            .values(available=Book.available + 1)
            .execution_options(synchronize_session=False),
        )
    await db.flush()
    record_audit(
        db, user, AuditAction.UPDATE, "LibraryIssue", issue.id,
        school_id=issue.school_id, old_value=before, new_value=snapshot(issue),
    )
    await db.commit()
    return success_response(IssueRead.model_validate(issue), "Book return recorded")


@router.get("/issued")
async def list_issued(
    query: ListQuery = Depends(list_query),
    user: CurrentUser = Depends(require_module("library")),
    db: AsyncSession = Depends(get_db),
):
    stmt = _issues(user).where(LibraryIssue.status == IssueStatus.ISSUED)
    return await _issue_page(db, stmt.order_by(LibraryIssue.due_date.asc()), query)


@router.get("/overdue")
async def list_overdue(
    query: ListQuery = Depends(list_query),
    user: CurrentUser = Depends(require_module("library")),
    db: AsyncSession = Depends(get_db),
):
    """Open issues whose due date has passed."""
    stmt = _issues(user).where(
        LibraryIssue.status.in_(OPEN_ISSUE), LibraryIssue.due_date < date.today(),
    )
    return await _issue_page(db, stmt.order_by(LibraryIssue.due_date.asc()), query)
