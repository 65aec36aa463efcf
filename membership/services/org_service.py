"""Organization lifecycle: default org, create, delete cascade, leave, admit."""

from __future__ import annotations

import logging

from membership.core.config import Settings
from membership.core.exceptions import (
    CurrentOrgUndeletable,
    DefaultOrgLeaveForbidden,
    DefaultOrgUndeletable,
    DuplicateName,
    Forbidden,
    InvalidName,
    OrgNotFound,
)
from membership.core.metrics import MEMBERSHIP_OPERATIONS
from membership.models.organization import Membership, Organization, utcnow
from membership.models.role import Role
from membership.models.user import UserProfile
from membership.repos.class_repo import ClassRepo
from membership.repos.invite_repo import InviteRepo
from membership.repos.org_membership_repo import OrgMembershipRepo
from membership.repos.org_repo import OrgRepo
from membership.repos.user_repo import UserRepo
from membership.services.context_service import ContextResolver
from membership.services.membership_store import MembershipStore
from membership.services.role_policy import can_act_on, is_staff
from membership.services.saga import Saga

logger = logging.getLogger(__name__)


class OrgService:
    def __init__(
        self,
        orgs: OrgRepo,
        members: MembershipStore,
        member_records: OrgMembershipRepo,
        classes: ClassRepo,
        invites: InviteRepo,
        users: UserRepo,
        context: ContextResolver,
        settings: Settings,
    ) -> None:
        self._orgs = orgs
        self._members = members
        self._member_records = member_records
        self._classes = classes
        self._invites = invites
        self._users = users
        self._context = context
        self._settings = settings

    # --- default organization ----------------------------------------------

    async def ensure_default_organization(self) -> Organization:
        """Create the default org and its Admin owner if either is missing."""
        settings = self._settings
        org = await self._orgs.get(settings.default_org_id)
        if org is None:
            org = Organization(
                id=settings.default_org_id,
                name=settings.default_org_name,
                owner_id=settings.default_org_owner,
                created_at=utcnow(),
                is_default=True,
            )
            await self._orgs.claim_name(org.name, org.id)
            await self._orgs.add(org)
            logger.info("Default organization created: org=%s", org.id)
        if await self._members.role_of(org.id, settings.default_org_owner) is None:
            await self._members.add_member(
                org.id, settings.default_org_owner, Role.ADMIN
            )
        return org

    async def register_user(
        self, user_id: str, display_name: str, email: str
    ) -> UserProfile:
        """Store the profile and enroll the user in the default org as Student."""
        profile = await self._users.get_profile(user_id)
        if profile is None:
            profile = UserProfile(
                id=user_id,
                display_name=display_name.strip(),
                email=email.strip(),
                created_at=utcnow(),
            )
            await self._users.put_profile(profile)
        org = await self.ensure_default_organization()
        if await self._members.role_of(org.id, user_id) is None:
            await self._members.add_member(org.id, user_id, Role.STUDENT)
            logger.info("User registered: user=%s", user_id)
        return profile

    # --- lookup ------------------------------------------------------------

    async def get(self, org_id: str) -> Organization:
        org = await self._orgs.get(org_id)
        if org is None or org.archived:
            raise OrgNotFound(org_id)
        return org

    async def find_by_name(self, name: str) -> Organization | None:
        """Exact, case-sensitive lookup through the name index."""
        org_id = await self._orgs.name_owner(name)
        if org_id is None:
            return None
        org = await self._orgs.get(org_id)
        # An index entry whose org record never landed is a free name.
        if org is None or org.name != name:
            return None
        return org

    # --- create ------------------------------------------------------------

    async def create(self, name: str, owner_id: str) -> Organization:
        name = name.strip()
        if not name:
            raise InvalidName("Organization name")
        await self.ensure_default_organization()

        existing = await self.find_by_name(name)
        if existing is not None:
            # Same owner re-running a create that stopped before the owner
            # membership landed: finish it instead of rejecting the name.
            resumable = (
                existing.owner_id == owner_id
                and not existing.archived
                and await self._members.role_of(existing.id, owner_id) is None
            )
            if not resumable:
                raise DuplicateName(name)
            org = existing
        else:
            org = Organization.new(name=name, owner_id=owner_id)

        saga = Saga("create_org")
        if existing is None:
            await saga.step("name_index", self._orgs.claim_name(name, org.id))
            await saga.step("org_record", self._orgs.add(org))
        await saga.step(
            "owner_membership", self._members.add_member(org.id, owner_id, Role.ADMIN)
        )
        primary = await self._users.get_primary_org(owner_id)
        if primary is None or primary == self._settings.default_org_id:
            await saga.step("primary_org", self._users.set_primary_org(owner_id, org.id))

        MEMBERSHIP_OPERATIONS.labels(operation="create_org").inc()
        logger.info("Organization created: org=%s name=%r owner=%s", org.id, name, owner_id)
        return org

    # --- delete ------------------------------------------------------------

    async def delete(self, org_id: str, requested_by: str) -> None:
        """Delete an organization and everything under it.

        The org is archived first so it disappears from every lookup; the
        org subtree (including the org-side member records) goes last so a
        re-run after an interruption still finds the requester's Admin
        membership.
        """
        if org_id == self._settings.default_org_id:
            raise DefaultOrgUndeletable()
        org = await self._orgs.get(org_id)
        if org is None:
            raise OrgNotFound(org_id)
        role = await self._members.role_of(org_id, requested_by)
        if role is not Role.ADMIN:
            logger.warning(
                "Access denied: user=%s role=%s cannot delete org=%s",
                requested_by,
                role.value if role else None,
                org_id,
            )
            raise Forbidden("Only Admins can delete an organization")
        if not org.archived and await self._context.active_org_id(requested_by) == org_id:
            raise CurrentOrgUndeletable(org_id)

        saga = Saga("delete_org")
        if not org.archived:
            await saga.step("archive", self._orgs.set_archived(org_id, True))
        for invite in await self._invites.list_by_org(org_id):
            if not invite.consumed:
                await saga.step(f"invite:{invite.code}", self._invites.delete(invite.code))
        for class_id in await self._classes.list_ids(org_id):
            await saga.step(f"class:{class_id}", self._classes.delete(org_id, class_id))
        for membership in await self._member_records.list_by_org(org_id):
            await self._detach_user(saga, membership)
        if await self._orgs.name_owner(org.name) == org_id:
            await saga.step("name_index", self._orgs.release_name(org.name))
        await saga.step("org_subtree", self._orgs.delete(org_id))

        MEMBERSHIP_OPERATIONS.labels(operation="delete_org").inc()
        logger.info("Organization deleted: org=%s by=%s", org_id, requested_by)

    async def _detach_user(self, saga: Saga, membership: Membership) -> None:
        user_id, org_id = membership.user_id, membership.org_id
        await saga.step(
            f"user_side:{user_id}",
            self._member_records.remove_user_side(user_id, org_id),
        )
        await saga.step(
            f"current_class:{user_id}", self._users.clear_current_class(user_id, org_id)
        )
        if await self._users.get_primary_org(user_id) == org_id:
            await saga.step(
                f"primary_org:{user_id}", self._users.clear_primary_org(user_id)
            )

    # --- membership entry and exit -----------------------------------------

    async def leave(self, org_id: str, user_id: str) -> None:
        if org_id == self._settings.default_org_id:
            raise DefaultOrgLeaveForbidden()
        await self.get(org_id)
        await self._members.remove_member(org_id, user_id)

    async def admit(
        self, org_id: str, user_id: str, role: Role, requested_by: str
    ) -> Membership:
        """Directly add a member without an invite code."""
        await self.get(org_id)
        requester_role = await self._members.require_role(org_id, requested_by)
        if not is_staff(requester_role) or not can_act_on(requester_role, role):
            logger.warning(
                "Access denied: user=%s role=%s cannot grant %s in org=%s",
                requested_by,
                requester_role.value,
                role.value,
                org_id,
            )
            raise Forbidden(f"You cannot grant role '{role.value}'")
        return await self._members.add_member(org_id, user_id, role)
