from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from membership.models.role import Role


@dataclass(frozen=True, slots=True)
class InviteCode:
    """Single-use code binding a role to an organization.

    ``consumed_by`` is set when a redemption reserves the code; ``consumed``
    flips once the membership write has landed.  A reserved but not yet
    consumed code belongs to the reserving user only.
    """

    code: str
    org_id: str
    role: Role
    issuer_id: str
    created_at: datetime
    consumed: bool = False
    consumed_by: str | None = None
    consumed_at: datetime | None = None

    @property
    def is_open(self) -> bool:
        return not self.consumed and self.consumed_by is None


@dataclass(frozen=True, slots=True)
class InviteRedemption:
    org_id: str
    role: Role
