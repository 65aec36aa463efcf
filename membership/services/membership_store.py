"""Membership adapter: keeps the org side and the user side consistent.

A membership is two records with no transaction spanning them.  Writes
follow one order so a crash leaves state the next call can finish:

    add:    org side (pending) -> user side -> org side (active)
    remove: org side (removed) -> class rosters -> user side
            -> user pointers -> org side deleted

Role and status are read from the org side only.
"""

from __future__ import annotations

import logging

from membership.core.config import Settings
from membership.core.exceptions import (
    AlreadyMember,
    DefaultOrgRemovalForbidden,
    Forbidden,
    LastAdminRequired,
    NoOpRoleChange,
    NotAMember,
    OrgNotFound,
    SelfRemovalForbidden,
)
from membership.core.metrics import MEMBERSHIP_OPERATIONS
from membership.models.organization import Membership, MembershipStatus, utcnow
from membership.models.role import Role
from membership.repos.class_repo import STUDENTS, TEACHERS, ClassRepo
from membership.repos.org_membership_repo import OrgMembershipRepo
from membership.repos.org_repo import OrgRepo
from membership.repos.user_repo import UserRepo
from membership.services.role_policy import can_act_on, is_staff, next_assignable_role
from membership.services.saga import Saga

logger = logging.getLogger(__name__)


class MembershipStore:
    def __init__(
        self,
        orgs: OrgRepo,
        memberships: OrgMembershipRepo,
        classes: ClassRepo,
        users: UserRepo,
        settings: Settings,
    ) -> None:
        self._orgs = orgs
        self._memberships = memberships
        self._classes = classes
        self._users = users
        self._settings = settings

    # --- reads -------------------------------------------------------------

    async def get_membership(self, org_id: str, user_id: str) -> Membership | None:
        return await self._memberships.get(org_id, user_id)

    async def role_of(self, org_id: str, user_id: str) -> Role | None:
        """Role of an active member, or None."""
        membership = await self._memberships.get(org_id, user_id)
        if membership is None or not membership.is_active:
            return None
        return membership.role

    async def require_role(self, org_id: str, user_id: str) -> Role:
        role = await self.role_of(org_id, user_id)
        if role is None:
            raise NotAMember(org_id, user_id)
        return role

    async def list_members(self, org_id: str) -> list[Membership]:
        """Members from the org's perspective, pending included."""
        members = await self._memberships.list_by_org(org_id)
        return sorted(
            (m for m in members if m.status is not MembershipStatus.REMOVED),
            key=lambda m: (m.joined_at, m.user_id),
        )

    async def list_user_org_ids(self, user_id: str) -> list[str]:
        return await self._memberships.list_user_org_ids(user_id)

    # --- add ---------------------------------------------------------------

    async def add_member(self, org_id: str, user_id: str, role: Role) -> Membership:
        org = await self._orgs.get(org_id)
        if org is None or org.archived:
            raise OrgNotFound(org_id)

        existing = await self._memberships.get(org_id, user_id)
        if existing is not None and existing.status is MembershipStatus.REMOVED:
            existing = None
        has_user_side = await self._memberships.has_user_side(user_id, org_id)
        if existing is not None and existing.is_active and has_user_side:
            raise AlreadyMember(org_id, user_id)

        now = utcnow()
        membership = Membership(
            org_id=org_id,
            user_id=user_id,
            role=role,
            status=MembershipStatus.PENDING,
            joined_at=existing.joined_at if existing is not None else now,
            updated_at=now,
        )

        saga = Saga("add_member")
        rewrite = existing is None or existing.role != role
        if rewrite:
            await saga.step("org_side_pending", self._memberships.put(membership))
        if not has_user_side:
            await saga.step("user_side", self._memberships.put_user_side(membership))
        if rewrite or not existing.is_active:
            await saga.step(
                "org_side_active",
                self._memberships.set_status(
                    org_id, user_id, MembershipStatus.ACTIVE, now
                ),
            )

        MEMBERSHIP_OPERATIONS.labels(operation="add_member").inc()
        logger.info(
            "Member added: org=%s user=%s role=%s", org_id, user_id, role.value
        )
        return Membership(
            org_id=org_id,
            user_id=user_id,
            role=role,
            status=MembershipStatus.ACTIVE,
            joined_at=membership.joined_at,
            updated_at=now,
        )

    # --- remove ------------------------------------------------------------

    async def remove_member(
        self,
        org_id: str,
        user_id: str,
        *,
        requested_by: str | None = None,
        force: bool = False,
    ) -> None:
        """Remove ``user_id`` from ``org_id``.

        ``requested_by`` is the acting user when one member removes another;
        None means the member is leaving on their own.  ``force`` skips the
        default-org, self-removal, authorization, and last-admin guards for
        administrative cascades.
        """
        if org_id == self._settings.default_org_id and not force:
            raise DefaultOrgRemovalForbidden()

        existing = await self._memberships.get(org_id, user_id)
        if existing is None:
            raise NotAMember(org_id, user_id)

        if not force:
            if requested_by == user_id:
                raise SelfRemovalForbidden()
            if requested_by is not None:
                requester_role = await self.require_role(org_id, requested_by)
                if not is_staff(requester_role) or not can_act_on(
                    requester_role, existing.role
                ):
                    logger.warning(
                        "Access denied: user=%s cannot remove %s (%s) from org=%s",
                        requested_by,
                        user_id,
                        existing.role.value,
                        org_id,
                    )
                    raise Forbidden(
                        f"You cannot remove a member with role '{existing.role.value}'"
                    )
            if existing.status is not MembershipStatus.REMOVED:
                await self._guard_last_admin(org_id, existing, leaving=True)

        saga = Saga("remove_member")
        now = utcnow()
        if existing.status is not MembershipStatus.REMOVED:
            await saga.step(
                "org_side_removed",
                self._memberships.set_status(
                    org_id, user_id, MembershipStatus.REMOVED, now
                ),
            )
        for classroom in await self._classes.list_by_org(org_id):
            if user_id in classroom.teacher_ids:
                await saga.step(
                    f"class_roster:{classroom.id}:{TEACHERS}",
                    self._classes.remove_from_roster(
                        org_id, classroom.id, TEACHERS, user_id
                    ),
                )
            if user_id in classroom.student_ids:
                await saga.step(
                    f"class_roster:{classroom.id}:{STUDENTS}",
                    self._classes.remove_from_roster(
                        org_id, classroom.id, STUDENTS, user_id
                    ),
                )
        await saga.step(
            "user_side", self._memberships.remove_user_side(user_id, org_id)
        )
        await saga.step(
            "current_class", self._users.clear_current_class(user_id, org_id)
        )
        if await self._users.get_primary_org(user_id) == org_id:
            await saga.step("primary_org", self._users.clear_primary_org(user_id))
        await saga.step("org_side", self._memberships.remove(org_id, user_id))

        MEMBERSHIP_OPERATIONS.labels(operation="remove_member").inc()
        logger.info(
            "Member removed: org=%s user=%s by=%s",
            org_id,
            user_id,
            requested_by or user_id,
        )

    # --- roles -------------------------------------------------------------

    async def update_role(
        self, org_id: str, user_id: str, new_role: Role, requested_by: str
    ) -> Membership:
        requester_role = await self.require_role(org_id, requested_by)
        target = await self._memberships.get(org_id, user_id)
        if target is None or not target.is_active:
            raise NotAMember(org_id, user_id)

        if not can_act_on(requester_role, target.role) or not can_act_on(
            requester_role, new_role
        ):
            logger.warning(
                "Access denied: user=%s role=%s cannot change %s from %s to %s",
                requested_by,
                requester_role.value,
                user_id,
                target.role.value,
                new_role.value,
            )
            raise Forbidden(
                f"Role '{requester_role.value}' cannot change "
                f"'{target.role.value}' to '{new_role.value}'"
            )
        if new_role == target.role:
            raise NoOpRoleChange(new_role.value)
        await self._guard_last_admin(org_id, target, new_role=new_role)

        now = utcnow()
        saga = Saga("update_role")
        await saga.step(
            "org_side_role", self._memberships.set_role(org_id, user_id, new_role, now)
        )
        await saga.step(
            "user_side_snapshot",
            self._memberships.set_user_side_role(user_id, org_id, new_role, now),
        )

        MEMBERSHIP_OPERATIONS.labels(operation="update_role").inc()
        logger.info(
            "Role changed: org=%s user=%s %s -> %s by=%s",
            org_id,
            user_id,
            target.role.value,
            new_role.value,
            requested_by,
        )
        return Membership(
            org_id=org_id,
            user_id=user_id,
            role=new_role,
            status=MembershipStatus.ACTIVE,
            joined_at=target.joined_at,
            updated_at=now,
        )

    async def cycle_role(
        self, org_id: str, user_id: str, requested_by: str
    ) -> Membership:
        """Move the target to the next role the requester may assign."""
        requester_role = await self.require_role(org_id, requested_by)
        current = await self.role_of(org_id, user_id)
        if current is None:
            raise NotAMember(org_id, user_id)
        if not can_act_on(requester_role, current):
            raise Forbidden(
                f"Role '{requester_role.value}' cannot modify '{current.value}'"
            )
        next_role = next_assignable_role(requester_role, current)
        if next_role == current:
            raise NoOpRoleChange(current.value)
        return await self.update_role(org_id, user_id, next_role, requested_by)

    async def _guard_last_admin(
        self,
        org_id: str,
        target: Membership,
        *,
        new_role: Role | None = None,
        leaving: bool = False,
    ) -> None:
        if target.role is not Role.ADMIN or new_role is Role.ADMIN:
            return
        active = [m for m in await self._memberships.list_by_org(org_id) if m.is_active]
        admins = [m for m in active if m.role is Role.ADMIN]
        if admins and any(m.user_id != target.user_id for m in admins):
            return
        others_remain = any(m.user_id != target.user_id for m in active)
        # A sole remaining member may leave; demotion always needs an Admin.
        if leaving and not others_remain:
            return
        raise LastAdminRequired(org_id)
