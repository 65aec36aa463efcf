from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from uuid import uuid4

from membership.models.role import Role


def utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True, slots=True)
class Organization:
    id: str
    name: str
    owner_id: str
    created_at: datetime
    archived: bool = False
    is_default: bool = False

    @staticmethod
    def new(*, name: str, owner_id: str) -> Organization:
        return Organization(
            id=str(uuid4()), name=name, owner_id=owner_id, created_at=utcnow()
        )


class MembershipStatus(str, Enum):
    PENDING = "pending"  # org-side record written, user side not yet confirmed
    ACTIVE = "active"
    REMOVED = "removed"  # removal in progress


@dataclass(frozen=True, slots=True)
class Membership:
    org_id: str
    user_id: str
    role: Role
    status: MembershipStatus
    joined_at: datetime
    updated_at: datetime

    @property
    def is_active(self) -> bool:
        return self.status is MembershipStatus.ACTIVE
