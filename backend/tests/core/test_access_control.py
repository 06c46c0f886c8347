"""Access Control — role ranks, module gates and role assignment.

Tests:
    - Hierarchy ordering, with TEACHER and ACCOUNTANT as peers
    - Minimum-role checks accept equal rank
    - Module gates, including the SUPER_ADMIN-only default for unknown modules
    - Users can only hand out roles strictly below their own
"""

import pytest

from app.core.access_control import (
    ROLE_HIERARCHY, can_assign_role, has_minimum_role, has_module_access, has_role,
    role_rank,
)
from app.core.domain_types import UserRole


def test_every_role_is_ranked():
    assert set(ROLE_HIERARCHY) == set(UserRole)


def test_super_admin_outranks_everyone():
    top = role_rank(UserRole.SUPER_ADMIN)
    assert all(role_rank(r) < top for r in UserRole if r != UserRole.SUPER_ADMIN)


def test_teacher_and_accountant_are_peers():
    assert role_rank(UserRole.TEACHER) == role_rank(UserRole.ACCOUNTANT)
    assert not can_assign_role(UserRole.TEACHER, UserRole.ACCOUNTANT)
    assert not can_assign_role(UserRole.ACCOUNTANT, UserRole.TEACHER)


def test_unknown_role_ranks_zero():
    assert role_rank("JANITOR") == 0


def test_minimum_role_accepts_equal_rank():
    assert has_minimum_role(UserRole.PRINCIPAL, UserRole.PRINCIPAL)
    assert has_minimum_role(UserRole.SCHOOL_ADMIN, UserRole.PRINCIPAL)
    assert not has_minimum_role(UserRole.VICE_PRINCIPAL, UserRole.PRINCIPAL)


def test_minimum_role_accepts_raw_strings():
    assert has_minimum_role("SCHOOL_ADMIN", UserRole.PRINCIPAL)


def test_has_role_is_membership():
    assert has_role(UserRole.LIBRARIAN, [UserRole.LIBRARIAN, UserRole.TEACHER])
    assert not has_role(UserRole.PARENT, [UserRole.LIBRARIAN])


@pytest.mark.parametrize("role, module, allowed", [
    (UserRole.ACCOUNTANT, "fees", True),
    (UserRole.ACCOUNTANT, "library", False),
    (UserRole.LIBRARIAN, "library", True),
    (UserRole.TEACHER, "students", True),
    (UserRole.TEACHER, "staff", False),
    (UserRole.RECEPTIONIST, "admissions", True),
    (UserRole.PRINCIPAL, "security", False),
    (UserRole.SCHOOL_ADMIN, "security", True),
    (UserRole.PARENT, "schools", False),
    (UserRole.TRANSPORT_MANAGER, "transport", True),
])
def test_module_gates(role, module, allowed):
    assert has_module_access(role, module) is allowed


def test_unknown_module_is_super_admin_only():
    assert has_module_access(UserRole.SUPER_ADMIN, "hostel")
    assert not has_module_access(UserRole.SCHOOL_ADMIN, "hostel")


def test_role_assignment_is_strictly_downward():
    assert can_assign_role(UserRole.SCHOOL_ADMIN, UserRole.PRINCIPAL)
    assert not can_assign_role(UserRole.SCHOOL_ADMIN, UserRole.SCHOOL_ADMIN)
    assert not can_assign_role(UserRole.PRINCIPAL, UserRole.SUPER_ADMIN)
    assert can_assign_role(UserRole.SUPER_ADMIN, UserRole.SCHOOL_ADMIN)
