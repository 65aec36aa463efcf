"""Both halves of a membership.

Org side (``organizations/{orgId}/members/{userId}``) is authoritative
for role and status.  User side (``users/{userId}/organizations/{orgId}``)
is the per-user index the context resolver walks; it carries a role
snapshot for display only.
"""

from __future__ import annotations

from datetime import datetime

from membership.db import paths
from membership.db.store import DocumentStore
from membership.models.organization import Membership, MembershipStatus
from membership.models.role import Role, parse_role
from membership.repos.codec import from_iso, to_iso


class OrgMembershipRepo:
    def __init__(self, store: DocumentStore) -> None:
        self._store = store

    # --- org side ----------------------------------------------------------

    async def get(self, org_id: str, user_id: str) -> Membership | None:
        doc = await self._store.get(paths.org_member(org_id, user_id))
        if not doc:
            return None
        return _doc_to_membership(org_id, user_id, doc)

    async def put(self, membership: Membership) -> None:
        await self._store.set(
            paths.org_member(membership.org_id, membership.user_id),
            {
                "role": membership.role.value,
                "status": membership.status.value,
                "joinedAt": to_iso(membership.joined_at),
                "updatedAt": to_iso(membership.updated_at),
            },
        )

    async def set_status(
        self, org_id: str, user_id: str, status: MembershipStatus, at: datetime
    ) -> None:
        await self._store.update(
            paths.org_member(org_id, user_id),
            {"status": status.value, "updatedAt": to_iso(at)},
        )

    async def set_role(
        self, org_id: str, user_id: str, role: Role, at: datetime
    ) -> None:
        await self._store.update(
            paths.org_member(org_id, user_id),
            {"role": role.value, "updatedAt": to_iso(at)},
        )

    async def remove(self, org_id: str, user_id: str) -> None:
        await self._store.delete(paths.org_member(org_id, user_id))

    async def list_by_org(self, org_id: str) -> list[Membership]:
        docs = await self._store.get(paths.org_members(org_id)) or {}
        return [
            _doc_to_membership(org_id, user_id, doc) for user_id, doc in docs.items()
        ]

    # --- user side ---------------------------------------------------------

    async def has_user_side(self, user_id: str, org_id: str) -> bool:
        return await self._store.exists(paths.user_org(user_id, org_id))

    async def put_user_side(self, membership: Membership) -> None:
        await self._store.set(
            paths.user_org(membership.user_id, membership.org_id),
            {
                "roleSnapshot": membership.role.value,
                "status": MembershipStatus.ACTIVE.value,
                "joinedAt": to_iso(membership.joined_at),
                "updatedAt": to_iso(membership.updated_at),
            },
        )

    async def set_user_side_role(
        self, user_id: str, org_id: str, role: Role, at: datetime
    ) -> None:
        await self._store.update(
            paths.user_org(user_id, org_id),
            {"roleSnapshot": role.value, "updatedAt": to_iso(at)},
        )

    async def remove_user_side(self, user_id: str, org_id: str) -> None:
        await self._store.delete(paths.user_org(user_id, org_id))

    async def list_user_org_ids(self, user_id: str) -> list[str]:
        return await self._store.keys(paths.user_orgs(user_id))


def _doc_to_membership(org_id: str, user_id: str, doc: dict) -> Membership:
    try:
        status = MembershipStatus(doc.get("status", MembershipStatus.ACTIVE.value))
    except ValueError:
        status = MembershipStatus.PENDING
    joined_at = from_iso(doc.get("joinedAt"))
    return Membership(
        org_id=org_id,
        user_id=user_id,
        role=parse_role(doc.get("role")),
        status=status,
        joined_at=joined_at,
        updated_at=from_iso(doc.get("updatedAt")) if doc.get("updatedAt") else joined_at,
    )
