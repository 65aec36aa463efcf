"""Classes inside an organization: creation, rosters, content, active class."""

from __future__ import annotations

import logging
from uuid import uuid4

from membership.core.config import Settings
from membership.core.exceptions import (
    ClassNotFound,
    ContentNotAssigned,
    DefaultClassUndeletable,
    Forbidden,
    InvalidName,
    NotAMember,
    OrgNotFound,
)
from membership.core.metrics import MEMBERSHIP_OPERATIONS
from membership.models.classroom import Classroom, ContentAssignment
from membership.models.organization import utcnow
from membership.models.role import Role
from membership.repos.class_repo import STUDENTS, TEACHERS, ClassRepo
from membership.repos.org_repo import OrgRepo
from membership.repos.user_repo import UserRepo
from membership.services.membership_store import MembershipStore
from membership.services.role_policy import CLASS_CREATOR_ROLES, is_staff

logger = logging.getLogger(__name__)

# Fixed id so concurrent lazy creation converges on one record.
DEFAULT_CLASS_ID = "default"


def can_view(classroom: Classroom, user_id: str, role: Role) -> bool:
    """The default class is open to every member; others need a roster seat."""
    return classroom.is_default or classroom.has_member(user_id) or is_staff(role)


class ClassService:
    def __init__(
        self,
        classes: ClassRepo,
        memberships: MembershipStore,
        orgs: OrgRepo,
        users: UserRepo,
        settings: Settings,
    ) -> None:
        self._classes = classes
        self._memberships = memberships
        self._orgs = orgs
        self._users = users
        self._settings = settings

    async def get(self, org_id: str, class_id: str) -> Classroom:
        classroom = await self._classes.get(org_id, class_id)
        if classroom is None:
            raise ClassNotFound(org_id, class_id)
        return classroom

    async def ensure_default_class(self, org_id: str) -> Classroom:
        """Return the org's default class, creating it on first use."""
        existing = await self._classes.get(org_id, DEFAULT_CLASS_ID)
        if existing is not None:
            return existing
        if not await self._orgs.exists(org_id):
            raise OrgNotFound(org_id)
        classroom = Classroom(
            id=DEFAULT_CLASS_ID,
            org_id=org_id,
            name=self._settings.default_class_name,
            creator_id=self._settings.default_org_owner,
            created_at=utcnow(),
            is_default=True,
        )
        await self._classes.add(classroom)
        logger.info("Default class created: org=%s", org_id)
        return classroom

    async def create(self, org_id: str, name: str, creator_id: str) -> Classroom:
        name = name.strip()
        if not name:
            raise InvalidName("Class name")
        if not await self._orgs.exists(org_id):
            raise OrgNotFound(org_id)
        role = await self._memberships.require_role(org_id, creator_id)
        if role not in CLASS_CREATOR_ROLES:
            logger.warning(
                "Access denied: user=%s role=%s cannot create classes in org=%s",
                creator_id,
                role.value,
                org_id,
            )
            raise Forbidden("Only Teachers, Developers, or Admins can create classes")

        await self.ensure_default_class(org_id)
        classroom = Classroom(
            id=str(uuid4()),
            org_id=org_id,
            name=name,
            creator_id=creator_id,
            created_at=utcnow(),
            teacher_ids=frozenset({creator_id}) if role is Role.TEACHER else frozenset(),
        )
        await self._classes.add(classroom)
        MEMBERSHIP_OPERATIONS.labels(operation="create_class").inc()
        logger.info(
            "Class created: org=%s class=%s by=%s", org_id, classroom.id, creator_id
        )
        return classroom

    async def delete(self, org_id: str, class_id: str, requested_by: str) -> None:
        classroom = await self.get(org_id, class_id)
        if classroom.is_default:
            raise DefaultClassUndeletable()
        await self._require_manager(classroom, requested_by)
        await self._classes.delete(org_id, class_id)
        MEMBERSHIP_OPERATIONS.labels(operation="delete_class").inc()
        logger.info("Class deleted: org=%s class=%s by=%s", org_id, class_id, requested_by)

    async def list_visible(self, org_id: str, user_id: str) -> list[Classroom]:
        role = await self._memberships.require_role(org_id, user_id)
        await self.ensure_default_class(org_id)
        classrooms = await self._classes.list_by_org(org_id)
        return [c for c in classrooms if can_view(c, user_id, role)]

    # --- rosters -----------------------------------------------------------

    async def add_students(
        self, org_id: str, class_id: str, user_ids: list[str], requested_by: str
    ) -> Classroom:
        return await self._add_to_roster(
            org_id, class_id, STUDENTS, user_ids, requested_by
        )

    async def add_teachers(
        self, org_id: str, class_id: str, user_ids: list[str], requested_by: str
    ) -> Classroom:
        return await self._add_to_roster(
            org_id, class_id, TEACHERS, user_ids, requested_by
        )

    async def _add_to_roster(
        self,
        org_id: str,
        class_id: str,
        roster: str,
        user_ids: list[str],
        requested_by: str,
    ) -> Classroom:
        classroom = await self.get(org_id, class_id)
        await self._require_manager(classroom, requested_by)
        for user_id in user_ids:
            if await self._memberships.role_of(org_id, user_id) is None:
                raise NotAMember(org_id, user_id)

        current = classroom.teacher_ids if roster == TEACHERS else classroom.student_ids
        new_ids = [uid for uid in dict.fromkeys(user_ids) if uid not in current]
        await self._classes.add_to_roster(org_id, class_id, roster, new_ids)
        if new_ids:
            MEMBERSHIP_OPERATIONS.labels(operation=f"add_{roster}").inc()
            logger.info(
                "Roster updated: org=%s class=%s %s+=%d by=%s",
                org_id,
                class_id,
                roster,
                len(new_ids),
                requested_by,
            )
        return await self.get(org_id, class_id)

    async def remove_member(
        self, org_id: str, class_id: str, user_id: str, requested_by: str
    ) -> None:
        classroom = await self.get(org_id, class_id)
        await self._require_manager(classroom, requested_by)
        if not classroom.has_member(user_id):
            raise NotAMember(class_id, user_id, scope="class")
        if user_id in classroom.teacher_ids:
            await self._classes.remove_from_roster(org_id, class_id, TEACHERS, user_id)
        if user_id in classroom.student_ids:
            await self._classes.remove_from_roster(org_id, class_id, STUDENTS, user_id)
        if await self._users.get_current_class(user_id, org_id) == class_id:
            await self._users.clear_current_class(user_id, org_id)
        MEMBERSHIP_OPERATIONS.labels(operation="remove_class_member").inc()
        logger.info(
            "Class member removed: org=%s class=%s user=%s by=%s",
            org_id,
            class_id,
            user_id,
            requested_by,
        )

    # --- content -----------------------------------------------------------

    async def assign_content(
        self,
        org_id: str,
        class_ids: list[str],
        content_ids: list[str],
        requested_by: str,
    ) -> int:
        """Assign every content id to every class; returns pairs newly added.

        All classes are loaded and authorized before anything is written.
        """
        classrooms = [await self.get(org_id, class_id) for class_id in class_ids]
        for classroom in classrooms:
            await self._require_manager(classroom, requested_by)

        added = 0
        now = utcnow()
        for classroom in classrooms:
            for content_id in dict.fromkeys(content_ids):
                if content_id in classroom.assignments:
                    continue
                await self._classes.add_assignment(
                    org_id,
                    classroom.id,
                    ContentAssignment(
                        content_id=content_id, assigned_by=requested_by, assigned_at=now
                    ),
                )
                added += 1
        if added:
            MEMBERSHIP_OPERATIONS.labels(operation="assign_content").inc()
        logger.info(
            "Content assigned: org=%s classes=%d added=%d by=%s",
            org_id,
            len(classrooms),
            added,
            requested_by,
        )
        return added

    async def remove_content(
        self, org_id: str, class_id: str, content_id: str, requested_by: str
    ) -> None:
        classroom = await self.get(org_id, class_id)
        await self._require_manager(classroom, requested_by)
        if content_id not in classroom.assignments:
            raise ContentNotAssigned(class_id, content_id)
        await self._classes.remove_assignment(org_id, class_id, content_id)
        MEMBERSHIP_OPERATIONS.labels(operation="remove_content").inc()

    # --- active class ------------------------------------------------------

    async def switch_active_class(
        self, user_id: str, org_id: str, class_id: str
    ) -> Classroom:
        role = await self._memberships.require_role(org_id, user_id)
        classroom = await self.get(org_id, class_id)
        if not can_view(classroom, user_id, role):
            raise Forbidden("You are not enrolled in this class")
        await self._users.set_current_class(user_id, org_id, class_id)
        logger.info("Active class set: user=%s org=%s class=%s", user_id, org_id, class_id)
        return classroom

    async def _require_manager(self, classroom: Classroom, user_id: str) -> Role:
        role = await self._memberships.require_role(classroom.org_id, user_id)
        if is_staff(role) or (role is Role.TEACHER and user_id in classroom.teacher_ids):
            return role
        logger.warning(
            "Access denied: user=%s role=%s cannot manage class=%s in org=%s",
            user_id,
            role.value,
            classroom.id,
            classroom.org_id,
        )
        raise Forbidden("Only Admins, Developers, or the class's teachers can manage it")
