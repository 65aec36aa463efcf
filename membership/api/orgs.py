"""Organization management endpoints.

Org context is resolved from the URL path and validated against the
caller's membership at request time.  Authorization beyond "is a member"
is decided by the services through the role hierarchy; their typed
errors become HTTP responses in api/errors.py.
"""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Literal

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel

from membership.api.dependencies import (
    org_id_of,
    require_any_org_role,
    require_user,
    resolve_org_principal,
    services,
)
from membership.models.organization import Membership, Organization
from membership.models.principal import Principal
from membership.models.role import Role

router = APIRouter(prefix="/v1/orgs", tags=["orgs"])

_require_roster_reader = require_any_org_role({Role.ADMIN, Role.DEVELOPER, Role.TEACHER})

RoleName = Literal["Admin", "Developer", "Teacher", "Student"]


# --- Pydantic schemas ---


class OrgCreateIn(BaseModel):
    name: str


class OrgOut(BaseModel):
    id: str
    name: str
    owner_id: str
    created_at: datetime
    is_default: bool


class MemberOut(BaseModel):
    user_id: str
    role: str
    status: str
    joined_at: datetime


class AddMemberIn(BaseModel):
    user_id: str
    role: RoleName = "Student"


class UpdateRoleIn(BaseModel):
    role: RoleName


def _org_out(org: Organization) -> OrgOut:
    return OrgOut(
        id=org.id,
        name=org.name,
        owner_id=org.owner_id,
        created_at=org.created_at,
        is_default=org.is_default,
    )


def _member_out(m: Membership) -> MemberOut:
    return MemberOut(
        user_id=m.user_id, role=m.role.value, status=m.status.value, joined_at=m.joined_at
    )


# --- Endpoints ---


@router.post("", response_model=OrgOut, status_code=status.HTTP_201_CREATED)
async def create_org(
    body: OrgCreateIn,
    principal: Annotated[Principal, Depends(require_user)],
) -> OrgOut:
    """Create a new organization. The creator becomes its Admin."""
    org = await services.orgs.create(body.name, principal.user_id)
    return _org_out(org)


@router.get("", response_model=OrgOut)
async def find_org(
    name: Annotated[str, Query(min_length=1)],
    _principal: Annotated[Principal, Depends(require_user)],
) -> OrgOut:
    """Look up an organization by exact, case-sensitive name."""
    org = await services.orgs.find_by_name(name)
    if org is None:
        raise HTTPException(status_code=404, detail="organization not found")
    return _org_out(org)


@router.get("/{org_id}", response_model=OrgOut)
async def get_org(
    principal: Annotated[Principal, Depends(resolve_org_principal)],
) -> OrgOut:
    """Get org details. Any member can view."""
    return _org_out(await services.orgs.get(org_id_of(principal)))


@router.delete("/{org_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_org(
    org_id: str,
    principal: Annotated[Principal, Depends(require_user)],
) -> None:
    """Delete an organization and everything under it. Admins only."""
    await services.orgs.delete(org_id, principal.user_id)


@router.post("/{org_id}/leave", status_code=status.HTTP_204_NO_CONTENT)
async def leave_org(
    principal: Annotated[Principal, Depends(resolve_org_principal)],
) -> None:
    await services.orgs.leave(org_id_of(principal), principal.user_id)


@router.get("/{org_id}/members", response_model=list[MemberOut])
async def list_members(
    principal: Annotated[Principal, Depends(_require_roster_reader)],
) -> list[MemberOut]:
    """List org members. Accessible to Admin, Developer, and Teacher."""
    members = await services.members.list_members(org_id_of(principal))
    return [_member_out(m) for m in members]


@router.post(
    "/{org_id}/members",
    response_model=MemberOut,
    status_code=status.HTTP_201_CREATED,
)
async def add_member(
    body: AddMemberIn,
    principal: Annotated[Principal, Depends(resolve_org_principal)],
) -> MemberOut:
    """Add a member directly, without an invite code."""
    membership = await services.orgs.admit(
        org_id_of(principal), body.user_id, Role(body.role), principal.user_id
    )
    return _member_out(membership)


@router.patch("/{org_id}/members/{user_id}", response_model=MemberOut)
async def update_member_role(
    user_id: str,
    body: UpdateRoleIn,
    principal: Annotated[Principal, Depends(resolve_org_principal)],
) -> MemberOut:
    membership = await services.members.update_role(
        org_id_of(principal), user_id, Role(body.role), principal.user_id
    )
    return _member_out(membership)


@router.post("/{org_id}/members/{user_id}/cycle-role", response_model=MemberOut)
async def cycle_member_role(
    user_id: str,
    principal: Annotated[Principal, Depends(resolve_org_principal)],
) -> MemberOut:
    """Advance a member to the next role the caller may assign."""
    membership = await services.members.cycle_role(
        org_id_of(principal), user_id, principal.user_id
    )
    return _member_out(membership)


@router.delete(
    "/{org_id}/members/{user_id}",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def remove_member(
    user_id: str,
    principal: Annotated[Principal, Depends(resolve_org_principal)],
) -> None:
    await services.members.remove_member(
        org_id_of(principal), user_id, requested_by=principal.user_id
    )
