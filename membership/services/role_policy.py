"""Role hierarchy policy.

Pure functions over ``Role``.  Lower rank means more privilege
(Admin=0 ... Student=3).  An actor may affect roles at or below its own
privilege: equal rank or numerically greater.  Every authorization
decision in the services funnels through ``can_act_on``.
"""

from __future__ import annotations

from membership.models.role import RANKED_ROLES, Role

STAFF_ROLES = frozenset({Role.ADMIN, Role.DEVELOPER})
CLASS_CREATOR_ROLES = frozenset({Role.ADMIN, Role.DEVELOPER, Role.TEACHER})


def rank(role: Role) -> float:
    return role.rank


def can_act_on(actor: Role, target: Role) -> bool:
    if not (actor.is_ranked and target.is_ranked):
        return False
    return target.rank >= actor.rank


def assignable_roles(actor: Role) -> tuple[Role, ...]:
    """Roles ``actor`` may grant, most privileged first."""
    return tuple(role for role in RANKED_ROLES if can_act_on(actor, role))


def next_assignable_role(actor: Role, current: Role) -> Role:
    """Next role after ``current`` in the actor's assignable list, wrapping.

    Returns ``current`` unchanged when the actor may not touch it; callers
    treat an unchanged result as "no change allowed".
    """
    allowed = assignable_roles(actor)
    if current not in allowed:
        return current
    return allowed[(allowed.index(current) + 1) % len(allowed)]


def is_staff(role: Role | None) -> bool:
    return role in STAFF_ROLES
