"""Organization records and the case-sensitive name index."""

from __future__ import annotations

from membership.db import paths
from membership.db.store import DocumentStore
from membership.models.organization import Organization
from membership.repos.codec import from_iso, to_iso


class OrgRepo:
    def __init__(self, store: DocumentStore) -> None:
        self._store = store

    async def get(self, org_id: str) -> Organization | None:
        doc = await self._store.get(paths.org_meta(org_id))
        if not doc or "name" not in doc:
            return None
        return _doc_to_org(org_id, doc)

    async def exists(self, org_id: str) -> bool:
        return await self._store.exists(paths.org_meta(org_id))

    async def add(self, org: Organization) -> None:
        await self._store.set(
            paths.org_meta(org.id),
            {
                "name": org.name,
                "ownerId": org.owner_id,
                "createdAt": to_iso(org.created_at),
                "archived": org.archived,
                "isDefault": org.is_default,
            },
        )

    async def set_archived(self, org_id: str, archived: bool) -> None:
        await self._store.set(
            paths.child(paths.org_meta(org_id), "archived"), archived
        )

    async def delete(self, org_id: str) -> None:
        """Drop the organization subtree: record, org-side members, classes."""
        await self._store.delete(paths.org(org_id))

    # --- name index --------------------------------------------------------

    async def name_owner(self, name: str) -> str | None:
        return await self._store.get(paths.org_name(name))

    async def claim_name(self, name: str, org_id: str) -> None:
        await self._store.set(paths.org_name(name), org_id)

    async def release_name(self, name: str) -> None:
        await self._store.delete(paths.org_name(name))


def _doc_to_org(org_id: str, doc: dict) -> Organization:
    return Organization(
        id=org_id,
        name=doc["name"],
        owner_id=doc.get("ownerId", ""),
        created_at=from_iso(doc.get("createdAt")),
        archived=bool(doc.get("archived", False)),
        is_default=bool(doc.get("isDefault", False)),
    )
