"""Role-based access control (RBAC) for learntrack.

Hierarchical roles:
- ADMIN (level 3): Full system access
- INSTRUCTOR (level 2): Manage own courses, modules and quizzes
- STUDENT (level 1): Enroll in courses and track progress
"""

from enum import Enum


class UserRole(str, Enum):
    """User roles. Higher level = more permissions."""

    STUDENT = "student"
    INSTRUCTOR = "instructor"
    ADMIN = "admin"


ROLE_HIERARCHY: dict[UserRole, int] = {
    UserRole.STUDENT: 1,
    UserRole.INSTRUCTOR: 2,
    UserRole.ADMIN: 3,
}

# Fine-grained permission strings granted per role
ROLE_PERMISSIONS: dict[UserRole, frozenset[str]] = {
    UserRole.STUDENT: frozenset(
        {"courses:read", "progress:read", "progress:write", "quizzes:take"}
    ),
    UserRole.INSTRUCTOR: frozenset(
        {
            "courses:read",
            "courses:write",
            "modules:write",
            "progress:read",
            "progress:sync",
            "quizzes:take",
            "quizzes:write",
            "students:enroll",
        }
    ),
    UserRole.ADMIN: frozenset(
        {
            "courses:read",
            "courses:write",
            "courses:delete",
            "modules:write",
            "progress:read",
            "progress:write",
            "progress:sync",
            "quizzes:take",
            "quizzes:write",
            "students:enroll",
            "users:manage",
        }
    ),
}


def _coerce(role: UserRole | str) -> UserRole | None:
    if isinstance(role, UserRole):
        return role
    try:
        return UserRole(role)
    except ValueError:
        return None


def get_role_level(role: UserRole | str) -> int:
    """Get the permission level for a role (0 for unknown roles)."""
    coerced = _coerce(role)
    return ROLE_HIERARCHY.get(coerced, 0) if coerced else 0


def has_permission(user_role: UserRole | str, required_role: UserRole | str) -> bool:
    """Check if user has at least the required permission level.

    Examples:
        >>> has_permission(UserRole.ADMIN, UserRole.INSTRUCTOR)
        True
        >>> has_permission("student", "instructor")
        False
    """
    return get_role_level(user_role) >= get_role_level(required_role)


def role_has_permission(role: UserRole | str, permission: str) -> bool:
    """Check a fine-grained permission string such as ``courses:delete``."""
    coerced = _coerce(role)
    if coerced is None:
        return False
    return permission in ROLE_PERMISSIONS[coerced]


def is_admin(role: UserRole | str) -> bool:
    return _coerce(role) == UserRole.ADMIN


def is_instructor(role: UserRole | str) -> bool:
    return _coerce(role) == UserRole.INSTRUCTOR


def is_student(role: UserRole | str) -> bool:
    return _coerce(role) == UserRole.STUDENT


def is_at_least_instructor(role: UserRole | str) -> bool:
    """Check if role is INSTRUCTOR or higher (ADMIN)."""
    return has_permission(role, UserRole.INSTRUCTOR)
