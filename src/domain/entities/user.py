"""User directory entity."""

from dataclasses import dataclass
from enum import StrEnum


class UserRole(StrEnum):
    """Organization roles known to the notification engine."""

    SUPER_ADMIN = "SuperAdmin"
    ADMIN = "Admin"
    MANAGER = "Manager"
    AGENT = "Agent"
    EMPLOYEE = "Employee"


ADMIN_ROLES = frozenset({UserRole.SUPER_ADMIN, UserRole.ADMIN})
APPROVER_ROLES = frozenset({UserRole.SUPER_ADMIN, UserRole.ADMIN, UserRole.MANAGER})


@dataclass
class User:
    """A member of the organization who can receive notifications."""

    id: int
    username: str
    email: str
    role: str = UserRole.EMPLOYEE
