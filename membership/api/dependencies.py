from __future__ import annotations

import logging
from dataclasses import replace
from typing import Annotated

import jwt
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer

from membership.core.config import SETTINGS
from membership.db.store import document_store
from membership.models.principal import Principal
from membership.models.role import Role
from membership.services import token_service
from membership.services.container import build_services

logger = logging.getLogger(__name__)

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/oauth/token")

# One service graph per process, over the configured document store.
services = build_services(document_store, SETTINGS)


def require_user(
    request: Request,
    raw_token: Annotated[str, Depends(oauth2_scheme)],
) -> Principal:
    """Extract and validate the JWT bearer token. Returns a Principal."""
    try:
        claims = token_service.decode_access_token(raw_token)
    except jwt.ExpiredSignatureError:
        logger.warning("Expired token rejected")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token expired",
            headers={"WWW-Authenticate": "Bearer"},
        ) from None
    except jwt.InvalidTokenError as e:
        logger.warning("Invalid token rejected: %s", e)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
            headers={"WWW-Authenticate": "Bearer"},
        ) from None

    principal = Principal(user_id=claims["sub"])
    request.state.user_id = principal.user_id
    logger.debug("Token validated for user=%s", principal.user_id)
    return principal


# ---------------------------------------------------------------------------
# Org-scoped access guards
# ---------------------------------------------------------------------------


async def resolve_org_principal(
    org_id: str,
    principal: Annotated[Principal, Depends(require_user)],
) -> Principal:
    """Resolve org context from the URL path param.

    Looks up the caller's active membership in ``org_id`` and returns a
    Principal enriched with org_id and org_role.  An unknown org is a 404
    (raised by the service); a non-member gets 403.

    Usage::

        @router.get("/v1/orgs/{org_id}")
        async def get_org(
            principal: Annotated[Principal, Depends(resolve_org_principal)],
        ): ...
    """
    await services.orgs.get(org_id)
    role = await services.members.role_of(org_id, principal.user_id)
    if role is None:
        logger.warning(
            "Access denied: user=%s not a member of org=%s",
            principal.user_id,
            org_id,
        )
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not a member of this organization",
        )
    return replace(principal, org_id=org_id, org_role=role)


def require_any_org_role(roles: set[Role]):
    """Dependency factory: demand at least one of the given org roles.

    Usage::

        _require_staff = require_any_org_role({Role.ADMIN, Role.DEVELOPER})
    """

    def _guard(
        principal: Annotated[Principal, Depends(resolve_org_principal)],
    ) -> Principal:
        if not principal.has_any_org_role(roles):
            logger.warning(
                "Access denied: user=%s org_role=%s required_any=%s org=%s",
                principal.user_id,
                principal.org_role.value if principal.org_role else None,
                sorted(r.value for r in roles),
                principal.org_id,
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient org permissions",
            )
        return principal

    return _guard


def org_id_of(principal: Principal) -> str:
    """Extract org_id from an org-scoped Principal, or 500 if missing.

    The org-scoped dependencies guarantee org_id is set before any
    endpoint body runs; this makes that contract explicit.
    """
    if principal.org_id is None:
        raise HTTPException(status_code=500, detail="org context not resolved")
    return principal.org_id
