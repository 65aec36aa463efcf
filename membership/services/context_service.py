"""Resolves which organization, role, and class a user is acting in."""

from __future__ import annotations

import logging

from membership.core.config import Settings
from membership.core.exceptions import NotAMember, OrgNotFound
from membership.models.classroom import Classroom
from membership.models.organization import Membership, Organization
from membership.models.user import UserContext, UserOrganization
from membership.repos.class_repo import ClassRepo
from membership.repos.org_repo import OrgRepo
from membership.repos.user_repo import UserRepo
from membership.services.class_service import ClassService, can_view
from membership.services.membership_store import MembershipStore

logger = logging.getLogger(__name__)


class ContextResolver:
    def __init__(
        self,
        memberships: MembershipStore,
        orgs: OrgRepo,
        users: UserRepo,
        classes: ClassRepo,
        class_service: ClassService,
        settings: Settings,
    ) -> None:
        self._memberships = memberships
        self._orgs = orgs
        self._users = users
        self._classes = classes
        self._class_service = class_service
        self._settings = settings

    async def _active(self, user_id: str) -> list[tuple[Membership, Organization]]:
        """Memberships confirmed on both sides whose org still exists."""
        found = []
        for org_id in await self._memberships.list_user_org_ids(user_id):
            membership = await self._memberships.get_membership(org_id, user_id)
            if membership is None or not membership.is_active:
                continue
            org = await self._orgs.get(org_id)
            if org is None or org.archived:
                continue
            found.append((membership, org))
        return found

    def _fallback(
        self, active: list[tuple[Membership, Organization]]
    ) -> tuple[Membership, Organization]:
        if self._settings.context_fallback == "earliest_joined":
            return min(active, key=lambda pair: (pair[0].joined_at, pair[1].id))
        return min(active, key=lambda pair: pair[1].id)

    async def _choose(self, user_id: str) -> tuple[Membership, Organization] | None:
        active = await self._active(user_id)
        if not active:
            return None
        primary = await self._users.get_primary_org(user_id)
        for membership, org in active:
            if org.id == primary:
                return membership, org
        return self._fallback(active)

    async def active_org_id(self, user_id: str) -> str | None:
        chosen = await self._choose(user_id)
        return chosen[1].id if chosen else None

    async def resolve(self, user_id: str) -> UserContext | None:
        """Current context, or None when the user belongs to no organization.

        A primary-org pointer naming an org the user has left or that no
        longer exists is ignored in favour of the fallback ordering.
        """
        chosen = await self._choose(user_id)
        if chosen is None:
            return None
        membership, org = chosen
        classroom = await self._resolve_class(user_id, membership)
        return UserContext(
            user_id=user_id,
            org_id=org.id,
            org_name=org.name,
            role=membership.role,
            class_id=classroom.id,
            class_name=classroom.name,
        )

    async def _resolve_class(self, user_id: str, membership: Membership) -> Classroom:
        class_id = await self._users.get_current_class(user_id, membership.org_id)
        if class_id:
            classroom = await self._classes.get(membership.org_id, class_id)
            if classroom is not None and can_view(classroom, user_id, membership.role):
                return classroom
        return await self._class_service.ensure_default_class(membership.org_id)

    async def list_organizations(self, user_id: str) -> list[UserOrganization]:
        active = await self._active(user_id)
        chosen = await self._choose(user_id)
        chosen_id = chosen[1].id if chosen else None
        return [
            UserOrganization(
                org_id=org.id,
                org_name=org.name,
                role=membership.role,
                joined_at=membership.joined_at,
                is_primary=org.id == chosen_id,
            )
            for membership, org in sorted(
                active, key=lambda pair: (pair[0].joined_at, pair[1].id)
            )
        ]

    async def switch_active_organization(self, user_id: str, org_id: str) -> UserContext:
        org = await self._orgs.get(org_id)
        if org is None or org.archived:
            raise OrgNotFound(org_id)
        if await self._memberships.role_of(org_id, user_id) is None:
            raise NotAMember(org_id, user_id)
        if org_id not in await self._memberships.list_user_org_ids(user_id):
            raise NotAMember(org_id, user_id)
        await self._users.set_primary_org(user_id, org_id)
        logger.info("Active organization set: user=%s org=%s", user_id, org_id)
        context = await self.resolve(user_id)
        if context is None:
            # The membership went away between the check and the read.
            raise NotAMember(org_id, user_id)
        return context
