"""Caller-centric endpoints: registration, resolved context, switching."""

from __future__ import annotations

from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel

from membership.api.dependencies import require_user, services
from membership.models.principal import Principal
from membership.models.user import UserContext

router = APIRouter(prefix="/v1", tags=["me"])


class RegisterIn(BaseModel):
    display_name: str = ""
    email: str = ""


class ProfileOut(BaseModel):
    id: str
    display_name: str
    email: str
    created_at: datetime


class ContextOut(BaseModel):
    user_id: str
    org_id: str
    org_name: str
    role: str
    class_id: str
    class_name: str


class UserOrganizationOut(BaseModel):
    org_id: str
    org_name: str
    role: str
    joined_at: datetime
    is_primary: bool


class ActiveOrganizationIn(BaseModel):
    org_id: str


class ActiveClassIn(BaseModel):
    org_id: str
    class_id: str


class ActiveClassOut(BaseModel):
    org_id: str
    class_id: str
    class_name: str


def _context_out(ctx: UserContext) -> ContextOut:
    return ContextOut(
        user_id=ctx.user_id,
        org_id=ctx.org_id,
        org_name=ctx.org_name,
        role=ctx.role.value,
        class_id=ctx.class_id,
        class_name=ctx.class_name,
    )


@router.post(
    "/users/me", response_model=ProfileOut, status_code=status.HTTP_201_CREATED
)
async def register(
    body: RegisterIn,
    principal: Annotated[Principal, Depends(require_user)],
) -> ProfileOut:
    """Record the caller's profile and enroll them in the default organization.

    Called once after the identity provider creates the account; repeating
    it is harmless.
    """
    profile = await services.orgs.register_user(
        principal.user_id, body.display_name, body.email
    )
    return ProfileOut(
        id=profile.id,
        display_name=profile.display_name,
        email=profile.email,
        created_at=profile.created_at,
    )


@router.get("/me/context", response_model=ContextOut | None)
async def get_context(
    principal: Annotated[Principal, Depends(require_user)],
) -> ContextOut | None:
    """Resolved (organization, role, class), or null with no memberships."""
    ctx = await services.context.resolve(principal.user_id)
    return _context_out(ctx) if ctx is not None else None


@router.get("/me/organizations", response_model=list[UserOrganizationOut])
async def list_my_organizations(
    principal: Annotated[Principal, Depends(require_user)],
) -> list[UserOrganizationOut]:
    rows = await services.context.list_organizations(principal.user_id)
    return [
        UserOrganizationOut(
            org_id=r.org_id,
            org_name=r.org_name,
            role=r.role.value,
            joined_at=r.joined_at,
            is_primary=r.is_primary,
        )
        for r in rows
    ]


@router.put("/me/active-organization", response_model=ContextOut)
async def switch_organization(
    body: ActiveOrganizationIn,
    principal: Annotated[Principal, Depends(require_user)],
) -> ContextOut:
    ctx = await services.context.switch_active_organization(
        principal.user_id, body.org_id
    )
    return _context_out(ctx)


@router.put("/me/active-class", response_model=ActiveClassOut)
async def switch_class(
    body: ActiveClassIn,
    principal: Annotated[Principal, Depends(require_user)],
) -> ActiveClassOut:
    classroom = await services.classes.switch_active_class(
        principal.user_id, body.org_id, body.class_id
    )
    return ActiveClassOut(
        org_id=classroom.org_id, class_id=classroom.id, class_name=classroom.name
    )
