from __future__ import annotations

from datetime import datetime

from membership.db import paths
from membership.db.store import DocumentStore
from membership.models.invite import InviteCode
from membership.models.role import parse_role
from membership.repos.codec import from_iso, to_iso


class InviteRepo:
    def __init__(self, store: DocumentStore) -> None:
        self._store = store

    async def get(self, code: str) -> InviteCode | None:
        doc = await self._store.get(paths.invite(code))
        if not doc or "orgId" not in doc:
            return None
        return _doc_to_invite(code, doc)

    async def add(self, invite: InviteCode) -> None:
        await self._store.set(
            paths.invite(invite.code),
            {
                "orgId": invite.org_id,
                "role": invite.role.value,
                "issuerId": invite.issuer_id,
                "createdAt": to_iso(invite.created_at),
                "consumed": invite.consumed,
            },
        )

    async def reserve(self, code: str, user_id: str) -> str | None:
        """Claim the code for user_id unless someone holds it; return the holder."""
        return await self._store.set_if_absent(
            paths.invite_field(code, "consumedBy"), user_id
        )

    async def release(self, code: str) -> None:
        await self._store.delete(paths.invite_field(code, "consumedBy"))

    async def mark_consumed(self, code: str, at: datetime) -> None:
        await self._store.update(
            paths.invite(code), {"consumed": True, "consumedAt": to_iso(at)}
        )

    async def delete(self, code: str) -> None:
        await self._store.delete(paths.invite(code))

    async def list_by_org(self, org_id: str) -> list[InviteCode]:
        docs = await self._store.get(paths.INVITE_CODES) or {}
        return sorted(
            (
                _doc_to_invite(code, doc)
                for code, doc in docs.items()
                if doc.get("orgId") == org_id
            ),
            key=lambda i: (i.created_at, i.code),
        )


def _doc_to_invite(code: str, doc: dict) -> InviteCode:
    return InviteCode(
        code=code,
        org_id=doc["orgId"],
        role=parse_role(doc.get("role")),
        issuer_id=doc.get("issuerId", ""),
        created_at=from_iso(doc.get("createdAt")),
        consumed=bool(doc.get("consumed", False)),
        consumed_by=doc.get("consumedBy"),
        consumed_at=from_iso(doc["consumedAt"]) if doc.get("consumedAt") else None,
    )
