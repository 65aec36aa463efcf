from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from membership.models.role import Role


@dataclass(frozen=True, slots=True)
class UserProfile:
    id: str
    display_name: str
    email: str
    created_at: datetime


@dataclass(frozen=True, slots=True)
class UserOrganization:
    """One row of "my organizations": an active membership plus the org name."""

    org_id: str
    org_name: str
    role: Role
    joined_at: datetime
    is_primary: bool


@dataclass(frozen=True, slots=True)
class UserContext:
    """Resolved (organization, role, class) for the calling user.

    Derived on demand, never persisted.
    """

    user_id: str
    org_id: str
    org_name: str
    role: Role
    class_id: str
    class_name: str
