from __future__ import annotations

import math
from enum import Enum


class Role(str, Enum):
    """Organization-scoped role, totally ordered by privilege.

    ``UNRANKED`` stands in for any stored value that is not a known role
    name.  It ranks as unbounded and can neither act nor be acted on.
    """

    ADMIN = "Admin"
    DEVELOPER = "Developer"
    TEACHER = "Teacher"
    STUDENT = "Student"
    UNRANKED = "Unranked"

    @property
    def rank(self) -> float:
        return _RANKS.get(self, math.inf)

    @property
    def is_ranked(self) -> bool:
        return self in _RANKS


_RANKS: dict[Role, int] = {
    Role.ADMIN: 0,
    Role.DEVELOPER: 1,
    Role.TEACHER: 2,
    Role.STUDENT: 3,
}

# Most privileged first.
RANKED_ROLES: tuple[Role, ...] = tuple(sorted(_RANKS, key=_RANKS.__getitem__))


def parse_role(value: str | None) -> Role:
    """Exact, case-sensitive lookup; anything unknown becomes UNRANKED."""
    for role in RANKED_ROLES:
        if role.value == value:
            return role
    return Role.UNRANKED
