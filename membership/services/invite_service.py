"""Single-use invite codes that grant a role in an organization.

Redemption is a reserve-then-finalize sequence:

    1. reserve the code for the redeeming user (``consumedBy``)
    2. add the membership
    3. mark the code consumed

A code reserved by another user is treated as already consumed.  The
reserving user may re-run the redemption and resumes at step 2 or 3.  If
step 2 fails before writing anything the reservation is released so the
code stays usable; a half-written membership keeps it for the same user.
"""

from __future__ import annotations

import logging
import secrets

from membership.core.config import Settings
from membership.core.exceptions import (
    AlreadyMember,
    CodeAlreadyConsumed,
    CodeNotFound,
    Forbidden,
    MembershipError,
    OrgNotFound,
    PartialWriteFailure,
    StoreUnavailable,
)
from membership.core.metrics import INVITE_REDEMPTIONS, MEMBERSHIP_OPERATIONS
from membership.models.invite import InviteCode, InviteRedemption
from membership.models.organization import utcnow
from membership.models.role import Role
from membership.repos.invite_repo import InviteRepo
from membership.repos.org_repo import OrgRepo
from membership.repos.user_repo import UserRepo
from membership.services.membership_store import MembershipStore
from membership.services.role_policy import can_act_on, is_staff
from membership.services.saga import Saga

logger = logging.getLogger(__name__)


class InviteService:
    def __init__(
        self,
        invites: InviteRepo,
        members: MembershipStore,
        orgs: OrgRepo,
        users: UserRepo,
        settings: Settings,
    ) -> None:
        self._invites = invites
        self._members = members
        self._orgs = orgs
        self._users = users
        self._settings = settings

    async def generate(self, org_id: str, role: Role, issuer_id: str) -> InviteCode:
        org = await self._orgs.get(org_id)
        if org is None or org.archived:
            raise OrgNotFound(org_id)
        issuer_role = await self._members.require_role(org_id, issuer_id)
        if not can_act_on(issuer_role, role):
            logger.warning(
                "Access denied: user=%s role=%s cannot invite as %s in org=%s",
                issuer_id,
                issuer_role.value,
                role.value,
                org_id,
            )
            raise Forbidden(f"You cannot issue invites for role '{role.value}'")

        invite = InviteCode(
            code=secrets.token_urlsafe(self._settings.invite_code_bytes),
            org_id=org_id,
            role=role,
            issuer_id=issuer_id,
            created_at=utcnow(),
        )
        await self._invites.add(invite)
        MEMBERSHIP_OPERATIONS.labels(operation="generate_invite").inc()
        logger.info(
            "Invite generated: org=%s role=%s by=%s", org_id, role.value, issuer_id
        )
        return invite

    async def redeem(self, code: str, user_id: str) -> InviteRedemption:
        invite = await self._invites.get(code)
        if invite is None:
            INVITE_REDEMPTIONS.labels(result="rejected").inc()
            raise CodeNotFound(code)
        if invite.consumed or invite.consumed_by not in (None, user_id):
            INVITE_REDEMPTIONS.labels(result="rejected").inc()
            raise CodeAlreadyConsumed()
        org = await self._orgs.get(invite.org_id)
        if org is None or org.archived:
            INVITE_REDEMPTIONS.labels(result="rejected").inc()
            raise OrgNotFound(invite.org_id)

        resuming = invite.consumed_by == user_id
        already_member = await self._members.role_of(invite.org_id, user_id) is not None
        if already_member and not resuming:
            INVITE_REDEMPTIONS.labels(result="rejected").inc()
            raise AlreadyMember(invite.org_id, user_id)

        saga = Saga("redeem_invite")
        if not resuming:
            holder = await saga.step("reserve", self._invites.reserve(code, user_id))
            if holder != user_id:
                INVITE_REDEMPTIONS.labels(result="rejected").inc()
                raise CodeAlreadyConsumed()
        if not already_member:
            try:
                await self._members.add_member(invite.org_id, user_id, invite.role)
            except PartialWriteFailure as e:
                # A half-written membership keeps the reservation for this user.
                INVITE_REDEMPTIONS.labels(result="rejected").inc()
                raise saga.interrupted("membership") from e
            except MembershipError:
                await self._release(saga, code)
                INVITE_REDEMPTIONS.labels(result="rejected").inc()
                raise
            saga.completed.append("membership")
        await saga.step("consume", self._invites.mark_consumed(code, utcnow()))

        primary = await self._users.get_primary_org(user_id)
        if primary is None or primary == self._settings.default_org_id:
            await saga.step(
                "primary_org", self._users.set_primary_org(user_id, invite.org_id)
            )

        INVITE_REDEMPTIONS.labels(result="resumed" if resuming else "redeemed").inc()
        MEMBERSHIP_OPERATIONS.labels(operation="redeem_invite").inc()
        logger.info(
            "Invite redeemed: org=%s user=%s role=%s resumed=%s",
            invite.org_id,
            user_id,
            invite.role.value,
            resuming,
        )
        return InviteRedemption(org_id=invite.org_id, role=invite.role)

    async def _release(self, saga: Saga, code: str) -> None:
        try:
            await self._invites.release(code)
        except StoreUnavailable as e:
            # The code stays reserved for this user; a re-run resumes it.
            raise saga.interrupted("release") from e

    async def revoke(self, code: str, requested_by: str) -> None:
        invite = await self._invites.get(code)
        if invite is None:
            raise CodeNotFound(code)
        role = await self._members.role_of(invite.org_id, requested_by)
        if not is_staff(role):
            logger.warning(
                "Access denied: user=%s cannot revoke invites in org=%s",
                requested_by,
                invite.org_id,
            )
            raise Forbidden("Only Admins or Developers can revoke invite codes")
        if not invite.is_open:
            raise CodeAlreadyConsumed()
        await self._invites.delete(code)
        MEMBERSHIP_OPERATIONS.labels(operation="revoke_invite").inc()
        logger.info("Invite revoked: org=%s by=%s", invite.org_id, requested_by)

    async def list_active(self, org_id: str) -> list[InviteCode]:
        """Codes still open for redemption, oldest first."""
        return [i for i in await self._invites.list_by_org(org_id) if i.is_open]
