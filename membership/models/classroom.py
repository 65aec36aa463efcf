from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime


@dataclass(frozen=True, slots=True)
class ContentAssignment:
    content_id: str
    assigned_by: str
    assigned_at: datetime


@dataclass(frozen=True, slots=True)
class Classroom:
    id: str
    org_id: str
    name: str
    creator_id: str
    created_at: datetime
    is_default: bool = False
    teacher_ids: frozenset[str] = frozenset()
    student_ids: frozenset[str] = frozenset()
    assignments: dict[str, ContentAssignment] = field(default_factory=dict)

    def has_member(self, user_id: str) -> bool:
        return user_id in self.teacher_ids or user_id in self.student_ids
