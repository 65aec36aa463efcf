"""Per-user records: profile plus the active organization/class pointers."""

from __future__ import annotations

from membership.db import paths
from membership.db.store import DocumentStore
from membership.models.user import UserProfile
from membership.repos.codec import from_iso, to_iso


class UserRepo:
    def __init__(self, store: DocumentStore) -> None:
        self._store = store

    async def get_profile(self, user_id: str) -> UserProfile | None:
        doc = await self._store.get(paths.user_profile(user_id))
        if not doc:
            return None
        return UserProfile(
            id=user_id,
            display_name=doc.get("displayName", ""),
            email=doc.get("email", ""),
            created_at=from_iso(doc.get("createdAt")),
        )

    async def put_profile(self, profile: UserProfile) -> None:
        await self._store.set(
            paths.user_profile(profile.id),
            {
                "displayName": profile.display_name,
                "email": profile.email,
                "createdAt": to_iso(profile.created_at),
            },
        )

    async def get_primary_org(self, user_id: str) -> str | None:
        return await self._store.get(paths.user_primary_org(user_id))

    async def set_primary_org(self, user_id: str, org_id: str) -> None:
        await self._store.set(paths.user_primary_org(user_id), org_id)

    async def clear_primary_org(self, user_id: str) -> None:
        await self._store.delete(paths.user_primary_org(user_id))

    async def get_current_class(self, user_id: str, org_id: str) -> str | None:
        return await self._store.get(paths.user_current_class(user_id, org_id))

    async def set_current_class(self, user_id: str, org_id: str, class_id: str) -> None:
        await self._store.set(paths.user_current_class(user_id, org_id), class_id)

    async def clear_current_class(self, user_id: str, org_id: str) -> None:
        await self._store.delete(paths.user_current_class(user_id, org_id))
