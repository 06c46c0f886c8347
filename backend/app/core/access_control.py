"""Access Control — role hierarchy and per-module permissions.

Invariants:
    - Every role has a numeric rank; higher rank means more privilege
    - has_minimum_role compares ranks with >= (equal rank satisfies the minimum)
    - A module missing from MODULE_PERMISSIONS is reachable by SUPER_ADMIN only
    - A user may only grant roles strictly below their own rank

Design Decisions:
    - Pure functions over a policy object: route dependencies and services call
      them directly, tests need no fixtures
    - TEACHER and ACCOUNTANT share rank 50 (peers, neither can manage the other)
"""

from collections.abc import Iterable

from app.core.domain_types import UserRole


ROLE_HIERARCHY: dict[UserRole, int] = {
    UserRole.SUPER_ADMIN: 100,
    UserRole.SCHOOL_ADMIN: 90,
    UserRole.PRINCIPAL: 80,
    UserRole.VICE_PRINCIPAL: 70,
    UserRole.HEAD_TEACHER: 60,
    UserRole.TEACHER: 50,
    UserRole.ACCOUNTANT: 50,
    UserRole.LIBRARIAN: 40,
    UserRole.TRANSPORT_MANAGER: 40,
    UserRole.HOSTEL_WARDEN: 40,
    UserRole.RECEPTIONIST: 30,
    UserRole.PARENT: 20,
    UserRole.STUDENT: 10,
}

_ADMINS = (UserRole.SUPER_ADMIN, UserRole.SCHOOL_ADMIN)

MODULE_PERMISSIONS: dict[str, frozenset[UserRole]] = {
    "students": frozenset({
        *_ADMINS, UserRole.PRINCIPAL, UserRole.VICE_PRINCIPAL,
        UserRole.HEAD_TEACHER, UserRole.TEACHER, UserRole.RECEPTIONIST,
    }),
    "staff": frozenset({*_ADMINS, UserRole.PRINCIPAL, UserRole.VICE_PRINCIPAL}),
    "admissions": frozenset({*_ADMINS, UserRole.PRINCIPAL, UserRole.RECEPTIONIST}),
    "finance": frozenset({*_ADMINS, UserRole.PRINCIPAL, UserRole.ACCOUNTANT}),
    "fees": frozenset({*_ADMINS, UserRole.PRINCIPAL, UserRole.ACCOUNTANT}),
    "library": frozenset({*_ADMINS, UserRole.LIBRARIAN}),
    "transport": frozenset({*_ADMINS, UserRole.TRANSPORT_MANAGER}),
    "communication": frozenset({
        *_ADMINS, UserRole.PRINCIPAL, UserRole.VICE_PRINCIPAL,
        UserRole.HEAD_TEACHER, UserRole.TEACHER,
    }),
    "security": frozenset(_ADMINS),
    "settings": frozenset(_ADMINS),
    "roles": frozenset(_ADMINS),
    "branches": frozenset(_ADMINS),
    "canteen": frozenset({*_ADMINS, UserRole.ACCOUNTANT}),
    "marketplace": frozenset({*_ADMINS, UserRole.ACCOUNTANT}),
    "classes": frozenset({
        *_ADMINS, UserRole.PRINCIPAL, UserRole.VICE_PRINCIPAL, UserRole.HEAD_TEACHER,
    }),
    "sections": frozenset({
        *_ADMINS, UserRole.PRINCIPAL, UserRole.VICE_PRINCIPAL, UserRole.HEAD_TEACHER,
    }),
    "subjects": frozenset({
        *_ADMINS, UserRole.PRINCIPAL, UserRole.VICE_PRINCIPAL, UserRole.HEAD_TEACHER,
    }),
    "academic-years": frozenset({*_ADMINS, UserRole.PRINCIPAL}),
    "schools": frozenset(set(UserRole) - {UserRole.PARENT, UserRole.STUDENT}),
}


def role_rank(role: UserRole | str) -> int:
    """Numeric rank of a role; unknown roles rank 0."""
    try:
        return ROLE_HIERARCHY[UserRole(role)]
    except ValueError:
        return 0


def has_role(role: UserRole | str, required_roles: Iterable[UserRole]) -> bool:
    return role in set(required_roles)


def has_minimum_role(role: UserRole | str, minimum: UserRole) -> bool:
    """True when role ranks at or above minimum."""
    return role_rank(role) >= ROLE_HIERARCHY[minimum]


def has_module_access(role: UserRole | str, module: str) -> bool:
    """True when role may use module. Unknown modules: SUPER_ADMIN only."""
    allowed = MODULE_PERMISSIONS.get(module)
    if allowed is None:
        return role == UserRole.SUPER_ADMIN
    return role in allowed


def can_assign_role(actor_role: UserRole | str, target_role: UserRole | str) -> bool:
    """True when actor may create or promote a user to target_role."""
    return role_rank(target_role) < role_rank(actor_role)
