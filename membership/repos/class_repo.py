from __future__ import annotations

from membership.db import paths
from membership.db.store import DocumentStore
from membership.models.classroom import Classroom, ContentAssignment
from membership.repos.codec import from_iso, id_set, to_iso

TEACHERS = "teachers"
STUDENTS = "students"


class ClassRepo:
    def __init__(self, store: DocumentStore) -> None:
        self._store = store

    async def get(self, org_id: str, class_id: str) -> Classroom | None:
        doc = await self._store.get(paths.org_class(org_id, class_id))
        # A roster write racing a delete can leave a record without a name;
        # treat it as absent.
        if not doc or "name" not in doc:
            return None
        return _doc_to_class(org_id, class_id, doc)

    async def list_by_org(self, org_id: str) -> list[Classroom]:
        docs = await self._store.get(paths.org_classes(org_id)) or {}
        return sorted(
            (
                _doc_to_class(org_id, class_id, doc)
                for class_id, doc in docs.items()
                if "name" in doc
            ),
            key=lambda c: (not c.is_default, c.created_at, c.id),
        )

    async def list_ids(self, org_id: str) -> list[str]:
        return await self._store.keys(paths.org_classes(org_id))

    async def add(self, classroom: Classroom) -> None:
        await self._store.set(
            paths.org_class(classroom.org_id, classroom.id),
            {
                "name": classroom.name,
                "creatorId": classroom.creator_id,
                "createdAt": to_iso(classroom.created_at),
                "isDefault": classroom.is_default,
                TEACHERS: {uid: True for uid in classroom.teacher_ids},
                STUDENTS: {uid: True for uid in classroom.student_ids},
            },
        )

    async def delete(self, org_id: str, class_id: str) -> None:
        await self._store.delete(paths.org_class(org_id, class_id))

    async def add_to_roster(
        self, org_id: str, class_id: str, roster: str, user_ids: list[str]
    ) -> None:
        if user_ids:
            await self._store.update(
                paths.class_roster(org_id, class_id, roster),
                {uid: True for uid in user_ids},
            )

    async def remove_from_roster(
        self, org_id: str, class_id: str, roster: str, user_id: str
    ) -> None:
        await self._store.delete(
            paths.class_roster_entry(org_id, class_id, roster, user_id)
        )

    async def add_assignment(
        self, org_id: str, class_id: str, assignment: ContentAssignment
    ) -> None:
        await self._store.set(
            paths.class_assignment(org_id, class_id, assignment.content_id),
            {
                "assignedBy": assignment.assigned_by,
                "assignedAt": to_iso(assignment.assigned_at),
            },
        )

    async def remove_assignment(
        self, org_id: str, class_id: str, content_id: str
    ) -> None:
        await self._store.delete(paths.class_assignment(org_id, class_id, content_id))


def _doc_to_class(org_id: str, class_id: str, doc: dict) -> Classroom:
    assignments = {
        content_id: ContentAssignment(
            content_id=content_id,
            assigned_by=meta.get("assignedBy", ""),
            assigned_at=from_iso(meta.get("assignedAt")),
        )
        for content_id, meta in (doc.get("assignments") or {}).items()
    }
    return Classroom(
        id=class_id,
        org_id=org_id,
        name=doc["name"],
        creator_id=doc.get("creatorId", ""),
        created_at=from_iso(doc.get("createdAt")),
        is_default=bool(doc.get("isDefault", False)),
        teacher_ids=id_set(doc.get(TEACHERS)),
        student_ids=id_set(doc.get(STUDENTS)),
        assignments=assignments,
    )
