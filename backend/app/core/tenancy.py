"""Tenancy — the school predicate every data query is filtered by.

Invariants:
    - SUPER_ADMIN (and an anonymous context) sees every school: empty filter
    - Every other role is pinned to its own school_id, including None (sees nothing)
    - Tenant users can never write into another school

Design Decisions:
    - CurrentUser is a frozen dataclass snapshot of the authenticated row:
      core logic never touches ORM objects
    - school_filter returns a dict of column → value so callers can apply it to
      any model with a school_id column (and tests can assert on it directly)
"""

from dataclasses import dataclass
from uuid import UUID

from app.core.domain_types import UserRole
from app.core.errors import ForbiddenError, ValidationFailedError


@dataclass(frozen=True)
class CurrentUser:
    id: UUID
    email: str
    name: str
    role: UserRole
    school_id: UUID | None
    is_active: bool = True

    @property
    def is_super_admin(self) -> bool:
        return self.role == UserRole.SUPER_ADMIN


def school_filter(user: CurrentUser | None) -> dict[str, UUID | None]:
    """{} for SUPER_ADMIN or no user, otherwise {"school_id": user.school_id}."""
    if user is None or user.is_super_admin:
        return {}
    return {"school_id": user.school_id}


def in_scope(user: CurrentUser, school_id: UUID | None) -> bool:
    """True when a row owned by school_id is visible to user."""
    scope = school_filter(user)
    return not scope or scope["school_id"] == school_id


def resolve_school_id(user: CurrentUser, requested: UUID | None = None) -> UUID:
    """School a write should land in.

    SUPER_ADMIN may target any school but must name one when they have none
    of their own. Tenant users always write into their own school; naming a
    different one is forbidden.
    """
    if user.is_super_admin:
        school_id = requested or user.school_id
    else:
        if requested is not None and requested != user.school_id:
            raise ForbiddenError("Cannot create records for another school")
        school_id = user.school_id
    if school_id is None:
        raise ValidationFailedError.single("schoolId", "School ID is required")
    return school_id
