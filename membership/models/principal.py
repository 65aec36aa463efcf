from __future__ import annotations

from dataclasses import dataclass

from membership.models.role import Role


@dataclass(frozen=True, slots=True)
class Principal:
    """Authenticated caller, extracted from a validated JWT.

    Identity-level fields (always set):
        user_id: subject from the token, the opaque id the auth provider issued

    Org-level fields (set by resolve_org_principal on org-scoped routes):
        org_id: organization named in the URL path
        org_role: the caller's role there, read from the Membership record
    """

    user_id: str
    org_id: str | None = None
    org_role: Role | None = None

    def has_any_org_role(self, roles: set[Role]) -> bool:
        return self.org_role in roles
