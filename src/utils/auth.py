"""Authentication and authorization utilities."""

import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


class UserRole(str, Enum):
    """User role definitions for access control."""

    ADMIN = "admin"
    HR_MANAGER = "hr_manager"
    MANAGER = "manager"
    EMPLOYEE = "employee"


# Roles allowed to restructure reporting lines
HIERARCHY_EDITOR_ROLES: List[UserRole] = [UserRole.ADMIN, UserRole.HR_MANAGER]


@dataclass
class CurrentUser:
    """Represents the currently authenticated user."""

    id: uuid.UUID
    roles: List[UserRole] = field(default_factory=lambda: [UserRole.EMPLOYEE])

    def has_role(self, role: UserRole) -> bool:
        """Check if user has a specific role."""
        return role in self.roles

    @property
    def can_edit_hierarchy(self) -> bool:
        """Whether the user may validate or commit reporting-line changes."""
        return any(self.has_role(role) for role in HIERARCHY_EDITOR_ROLES)


def get_mock_current_user(
    user_id: Optional[uuid.UUID] = None,
    roles: Optional[List[UserRole]] = None,
) -> CurrentUser:
    """
    Create a mock current user for development/testing.

    In production, this should be replaced with actual authentication.
    """
    return CurrentUser(
        id=user_id or uuid.uuid4(),
        roles=roles or [UserRole.ADMIN],
    )
