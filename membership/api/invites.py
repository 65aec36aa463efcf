"""Invite code endpoints: issue and list per org, redeem and revoke by code."""

from __future__ import annotations

from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel

from membership.api.dependencies import (
    org_id_of,
    require_any_org_role,
    require_user,
    resolve_org_principal,
    services,
)
from membership.api.orgs import RoleName
from membership.models.invite import InviteCode
from membership.models.principal import Principal
from membership.models.role import Role

router = APIRouter(tags=["invites"])

_require_staff = require_any_org_role({Role.ADMIN, Role.DEVELOPER})


class InviteCreateIn(BaseModel):
    role: RoleName = "Student"


class InviteOut(BaseModel):
    code: str
    org_id: str
    role: str
    issuer_id: str
    created_at: datetime


class RedemptionOut(BaseModel):
    org_id: str
    role: str


def _invite_out(invite: InviteCode) -> InviteOut:
    return InviteOut(
        code=invite.code,
        org_id=invite.org_id,
        role=invite.role.value,
        issuer_id=invite.issuer_id,
        created_at=invite.created_at,
    )


@router.post(
    "/v1/orgs/{org_id}/invites",
    response_model=InviteOut,
    status_code=status.HTTP_201_CREATED,
)
async def generate_invite(
    body: InviteCreateIn,
    principal: Annotated[Principal, Depends(resolve_org_principal)],
) -> InviteOut:
    """Issue a code for a role at or below the caller's own."""
    invite = await services.invites.generate(
        org_id_of(principal), Role(body.role), principal.user_id
    )
    return _invite_out(invite)


@router.get("/v1/orgs/{org_id}/invites", response_model=list[InviteOut])
async def list_invites(
    principal: Annotated[Principal, Depends(_require_staff)],
) -> list[InviteOut]:
    """Unredeemed codes for the org. Admin and Developer only."""
    invites = await services.invites.list_active(org_id_of(principal))
    return [_invite_out(i) for i in invites]


@router.post("/v1/invites/{code}/redeem", response_model=RedemptionOut)
async def redeem_invite(
    code: str,
    principal: Annotated[Principal, Depends(require_user)],
) -> RedemptionOut:
    redemption = await services.invites.redeem(code, principal.user_id)
    return RedemptionOut(org_id=redemption.org_id, role=redemption.role.value)


@router.delete("/v1/invites/{code}", status_code=status.HTTP_204_NO_CONTENT)
async def revoke_invite(
    code: str,
    principal: Annotated[Principal, Depends(require_user)],
) -> None:
    await services.invites.revoke(code, principal.user_id)
