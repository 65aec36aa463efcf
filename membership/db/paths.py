"""Path builders for every record the engine stores.

Layout of the document tree::

    organizations/{orgId}/meta                  organization record
    organizations/{orgId}/members/{userId}      org-side membership
    organizations/{orgId}/classes/{classId}     class record, rosters, assignments
    organizationNames/{quoted name}             name -> orgId index
    users/{userId}/profile                      display name, email
    users/{userId}/organizations/{orgId}        user-side membership
    users/{userId}/primaryOrganization          active organization pointer
    users/{userId}/currentClass/{orgId}         active class pointer per org
    inviteCodes/{code}                          invite record
"""

from __future__ import annotations

from urllib.parse import quote

from membership.core.exceptions import InvalidIdentifier

ORGANIZATIONS = "organizations"
ORGANIZATION_NAMES = "organizationNames"
USERS = "users"
INVITE_CODES = "inviteCodes"


def _check(segments: tuple[str, ...]) -> None:
    for segment in segments:
        if not segment or "/" in segment:
            raise InvalidIdentifier(segment)


def join(*segments: str) -> str:
    """Join path segments, rejecting ones that would change the tree shape."""
    _check(segments)
    return "/".join(segments)


def child(base: str, *segments: str) -> str:
    """Extend an already-built path; only the new segments are checked."""
    _check(segments)
    return "/".join((base, *segments))


def org(org_id: str) -> str:
    return join(ORGANIZATIONS, org_id)


def org_meta(org_id: str) -> str:
    return join(ORGANIZATIONS, org_id, "meta")


def org_members(org_id: str) -> str:
    return join(ORGANIZATIONS, org_id, "members")


def org_member(org_id: str, user_id: str) -> str:
    return join(ORGANIZATIONS, org_id, "members", user_id)


def org_classes(org_id: str) -> str:
    return join(ORGANIZATIONS, org_id, "classes")


def org_class(org_id: str, class_id: str) -> str:
    return join(ORGANIZATIONS, org_id, "classes", class_id)


def class_roster(org_id: str, class_id: str, roster: str) -> str:
    return join(ORGANIZATIONS, org_id, "classes", class_id, roster)


def class_roster_entry(org_id: str, class_id: str, roster: str, user_id: str) -> str:
    return join(ORGANIZATIONS, org_id, "classes", class_id, roster, user_id)


def class_assignment(org_id: str, class_id: str, content_id: str) -> str:
    return join(ORGANIZATIONS, org_id, "classes", class_id, "assignments", content_id)


def org_name(name: str) -> str:
    # Names are free text; quoting keeps '/' and friends from splitting the path.
    return join(ORGANIZATION_NAMES, quote(name, safe=""))


def user_profile(user_id: str) -> str:
    return join(USERS, user_id, "profile")


def user_orgs(user_id: str) -> str:
    return join(USERS, user_id, "organizations")


def user_org(user_id: str, org_id: str) -> str:
    return join(USERS, user_id, "organizations", org_id)


def user_primary_org(user_id: str) -> str:
    return join(USERS, user_id, "primaryOrganization")


def user_current_class(user_id: str, org_id: str) -> str:
    return join(USERS, user_id, "currentClass", org_id)


def invite(code: str) -> str:
    return join(INVITE_CODES, code)


def invite_field(code: str, name: str) -> str:
    return join(INVITE_CODES, code, name)
