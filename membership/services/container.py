"""Wires repositories and services over one document store."""

from __future__ import annotations

from dataclasses import dataclass

from membership.core.config import Settings
from membership.db.store import DocumentStore
from membership.repos.class_repo import ClassRepo
from membership.repos.invite_repo import InviteRepo
from membership.repos.org_membership_repo import OrgMembershipRepo
from membership.repos.org_repo import OrgRepo
from membership.repos.user_repo import UserRepo
from membership.services.class_service import ClassService
from membership.services.context_service import ContextResolver
from membership.services.invite_service import InviteService
from membership.services.membership_store import MembershipStore
from membership.services.org_service import OrgService


@dataclass(frozen=True, slots=True)
class Services:
    store: DocumentStore
    members: MembershipStore
    orgs: OrgService
    classes: ClassService
    invites: InviteService
    context: ContextResolver


def build_services(store: DocumentStore, settings: Settings) -> Services:
    org_repo = OrgRepo(store)
    membership_repo = OrgMembershipRepo(store)
    class_repo = ClassRepo(store)
    invite_repo = InviteRepo(store)
    user_repo = UserRepo(store)

    members = MembershipStore(org_repo, membership_repo, class_repo, user_repo, settings)
    classes = ClassService(class_repo, members, org_repo, user_repo, settings)
    context = ContextResolver(
        members, org_repo, user_repo, class_repo, classes, settings
    )
    orgs = OrgService(
        org_repo,
        members,
        membership_repo,
        class_repo,
        invite_repo,
        user_repo,
        context,
        settings,
    )
    invites = InviteService(invite_repo, members, org_repo, user_repo, settings)
    return Services(
        store=store,
        members=members,
        orgs=orgs,
        classes=classes,
        invites=invites,
        context=context,
    )
