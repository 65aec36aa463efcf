"""Typed errors raised by the membership engine.

Every error carries a ``kind`` (the category the presentation layer maps
to a user-facing message or HTTP status) and a stable ``code`` (the class
name).  Services raise these; nothing in the engine catches and discards
them.
"""

from __future__ import annotations


class MembershipError(Exception):
    """Base class for all membership engine errors."""

    kind = "error"

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)

    @property
    def code(self) -> str:
        return type(self).__name__


# --- not_found --------------------------------------------------------------


class NotFound(MembershipError):
    kind = "not_found"


class OrgNotFound(NotFound):
    def __init__(self, org_id: str) -> None:
        self.org_id = org_id
        super().__init__(f"Organization '{org_id}' not found")


class ClassNotFound(NotFound):
    def __init__(self, org_id: str, class_id: str) -> None:
        self.org_id = org_id
        self.class_id = class_id
        super().__init__(f"Class '{class_id}' not found in organization '{org_id}'")


class CodeNotFound(NotFound):
    def __init__(self, code: str) -> None:
        self.invite_code = code
        super().__init__("Invite code not found")


class NotAMember(NotFound):
    def __init__(self, org_id: str, user_id: str, scope: str = "organization") -> None:
        self.org_id = org_id
        self.user_id = user_id
        super().__init__(f"User '{user_id}' is not a member of this {scope}")


class ContentNotAssigned(NotFound):
    def __init__(self, class_id: str, content_id: str) -> None:
        self.class_id = class_id
        self.content_id = content_id
        super().__init__(f"Content '{content_id}' is not assigned to class '{class_id}'")


# --- forbidden --------------------------------------------------------------


class Forbidden(MembershipError):
    kind = "forbidden"


class SelfRemovalForbidden(Forbidden):
    def __init__(self) -> None:
        super().__init__("You cannot remove yourself from the organization")


class DefaultOrgRemovalForbidden(Forbidden):
    def __init__(self) -> None:
        super().__init__("Members cannot be removed from the default organization")


class DefaultOrgLeaveForbidden(Forbidden):
    def __init__(self) -> None:
        super().__init__("The default organization cannot be left")


# --- conflict ---------------------------------------------------------------


class Conflict(MembershipError):
    kind = "conflict"


class DuplicateName(Conflict):
    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"An organization named '{name}' already exists")


class AlreadyMember(Conflict):
    def __init__(self, org_id: str, user_id: str) -> None:
        self.org_id = org_id
        self.user_id = user_id
        super().__init__(f"User '{user_id}' is already a member of '{org_id}'")


class CodeAlreadyConsumed(Conflict):
    def __init__(self) -> None:
        super().__init__("Invite code has already been used")


class NoOpRoleChange(Conflict):
    def __init__(self, role: str) -> None:
        self.role = role
        super().__init__(f"Member already holds role '{role}'")


class CurrentOrgUndeletable(Conflict):
    def __init__(self, org_id: str) -> None:
        self.org_id = org_id
        super().__init__(
            "Cannot delete your active organization; switch to another one first"
        )


class LastAdminRequired(Conflict):
    def __init__(self, org_id: str) -> None:
        self.org_id = org_id
        super().__init__(
            "The organization must keep at least one Admin while it has members"
        )


# --- undeletable ------------------------------------------------------------


class UndeletableEntity(MembershipError):
    kind = "undeletable"


class DefaultOrgUndeletable(UndeletableEntity):
    def __init__(self) -> None:
        super().__init__("The default organization cannot be deleted")


class DefaultClassUndeletable(UndeletableEntity):
    def __init__(self) -> None:
        super().__init__("The default class cannot be deleted")


# --- invalid ----------------------------------------------------------------


class InvalidName(MembershipError):
    kind = "invalid"

    def __init__(self, what: str) -> None:
        super().__init__(f"{what} must be non-empty")


class InvalidIdentifier(MembershipError):
    """An id that is empty or contains '/' cannot address a record."""

    kind = "invalid"

    def __init__(self, identifier: str) -> None:
        self.identifier = identifier
        super().__init__(f"Invalid identifier {identifier!r}")


# --- store ------------------------------------------------------------------


class PartialWriteFailure(MembershipError):
    """A multi-step mutation stopped after some of its writes landed.

    State is left for the caller to re-run the operation, which resumes
    from the first incomplete step.
    """

    kind = "partial_write"

    def __init__(self, operation: str, completed_steps: list[str]) -> None:
        self.operation = operation
        self.completed_steps = list(completed_steps)
        done = ", ".join(completed_steps) or "none"
        super().__init__(
            f"{operation} interrupted after steps [{done}]; re-run to complete"
        )


class StoreUnavailable(MembershipError):
    kind = "store_unavailable"

    def __init__(self, detail: str) -> None:
        super().__init__(f"Store unavailable: {detail}")
