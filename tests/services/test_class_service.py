"""Class manager: default class, create/delete, rosters, content, active class."""

from __future__ import annotations

import pytest

from membership.core.exceptions import (
    ClassNotFound,
    ContentNotAssigned,
    DefaultClassUndeletable,
    Forbidden,
    InvalidName,
    NotAMember,
)
from membership.models.role import Role
from membership.services.class_service import DEFAULT_CLASS_ID
from membership.services.container import Services
from tests.conftest import run


@pytest.fixture
def org_id(svc: Services) -> str:
    """Acme: alice Admin, dev Developer, tina Teacher, sam and sue Students."""
    org = run(svc.orgs.create("Acme", "alice"))
    run(svc.members.add_member(org.id, "dev", Role.DEVELOPER))
    run(svc.members.add_member(org.id, "tina", Role.TEACHER))
    run(svc.members.add_member(org.id, "sam", Role.STUDENT))
    run(svc.members.add_member(org.id, "sue", Role.STUDENT))
    return org.id


def test_ensure_default_class_is_idempotent(svc: Services, org_id: str) -> None:
    first = run(svc.classes.ensure_default_class(org_id))
    second = run(svc.classes.ensure_default_class(org_id))
    assert first.id == second.id == DEFAULT_CLASS_ID
    assert first.is_default and first.name == "Default Class"
    defaults = [c for c in run(svc.classes.list_visible(org_id, "alice")) if c.is_default]
    assert len(defaults) == 1


def test_teacher_creator_joins_teacher_roster(svc: Services, org_id: str) -> None:
    classroom = run(svc.classes.create(org_id, "Algebra", "tina"))
    assert classroom.teacher_ids == frozenset({"tina"})
    admin_class = run(svc.classes.create(org_id, "Geometry", "alice"))
    assert admin_class.teacher_ids == frozenset()


def test_student_cannot_create_class(svc: Services, org_id: str) -> None:
    with pytest.raises(Forbidden):
        run(svc.classes.create(org_id, "Algebra", "sam"))


def test_non_member_cannot_create_class(svc: Services, org_id: str) -> None:
    with pytest.raises(NotAMember):
        run(svc.classes.create(org_id, "Algebra", "mallory"))


def test_blank_class_name(svc: Services, org_id: str) -> None:
    with pytest.raises(InvalidName):
        run(svc.classes.create(org_id, "  ", "alice"))


@pytest.mark.parametrize("user_id", ["alice", "dev", "tina", "sam"])
def test_default_class_is_undeletable_for_anyone(
    svc: Services, org_id: str, user_id: str
) -> None:
    run(svc.classes.ensure_default_class(org_id))
    with pytest.raises(DefaultClassUndeletable):
        run(svc.classes.delete(org_id, DEFAULT_CLASS_ID, user_id))


@pytest.mark.parametrize(
    "user_id,allowed",
    [
        ("alice", True),
        ("dev", True),
        ("tina", True),  # on the class teacher set
        ("tom", False),  # Teacher, but not on this class
        ("sam", False),
    ],
)
def test_delete_class_permissions(
    svc: Services, org_id: str, user_id: str, allowed: bool
) -> None:
    run(svc.members.add_member(org_id, "tom", Role.TEACHER))
    classroom = run(svc.classes.create(org_id, "Algebra", "tina"))
    if allowed:
        run(svc.classes.delete(org_id, classroom.id, user_id))
        with pytest.raises(ClassNotFound):
            run(svc.classes.get(org_id, classroom.id))
    else:
        with pytest.raises(Forbidden):
            run(svc.classes.delete(org_id, classroom.id, user_id))


def test_delete_missing_class(svc: Services, org_id: str) -> None:
    with pytest.raises(ClassNotFound):
        run(svc.classes.delete(org_id, "nope", "alice"))


def test_add_students_is_idempotent(svc: Services, org_id: str) -> None:
    classroom = run(svc.classes.create(org_id, "Algebra", "tina"))
    run(svc.classes.add_students(org_id, classroom.id, ["sam"], "tina"))
    updated = run(svc.classes.add_students(org_id, classroom.id, ["sam", "sue", "sue"], "tina"))
    assert updated.student_ids == frozenset({"sam", "sue"})


def test_add_teachers(svc: Services, org_id: str) -> None:
    classroom = run(svc.classes.create(org_id, "Algebra", "alice"))
    updated = run(svc.classes.add_teachers(org_id, classroom.id, ["tina"], "dev"))
    assert updated.teacher_ids == frozenset({"tina"})


def test_roster_ids_must_be_org_members(svc: Services, org_id: str) -> None:
    classroom = run(svc.classes.create(org_id, "Algebra", "tina"))
    with pytest.raises(NotAMember):
        run(svc.classes.add_students(org_id, classroom.id, ["sam", "outsider"], "tina"))
    assert run(svc.classes.get(org_id, classroom.id)).student_ids == frozenset()


def test_student_cannot_change_roster(svc: Services, org_id: str) -> None:
    classroom = run(svc.classes.create(org_id, "Algebra", "tina"))
    with pytest.raises(Forbidden):
        run(svc.classes.add_students(org_id, classroom.id, ["sue"], "sam"))


def test_remove_member_from_either_roster(svc: Services, org_id: str) -> None:
    classroom = run(svc.classes.create(org_id, "Algebra", "tina"))
    run(svc.classes.add_students(org_id, classroom.id, ["sam"], "tina"))
    run(svc.classes.remove_member(org_id, classroom.id, "sam", "tina"))
    run(svc.classes.remove_member(org_id, classroom.id, "tina", "alice"))
    updated = run(svc.classes.get(org_id, classroom.id))
    assert updated.student_ids == frozenset() and updated.teacher_ids == frozenset()

    with pytest.raises(NotAMember):
        run(svc.classes.remove_member(org_id, classroom.id, "sam", "alice"))


def test_assign_content_cross_product_skips_existing(svc: Services, org_id: str) -> None:
    algebra = run(svc.classes.create(org_id, "Algebra", "tina"))
    geometry = run(svc.classes.create(org_id, "Geometry", "tina"))

    added = run(
        svc.classes.assign_content(
            org_id, [algebra.id, geometry.id], ["lesson-1", "lesson-2"], "tina"
        )
    )
    assert added == 4
    added = run(
        svc.classes.assign_content(
            org_id, [algebra.id, geometry.id], ["lesson-2", "lesson-3"], "tina"
        )
    )
    assert added == 2
    assignments = run(svc.classes.get(org_id, algebra.id)).assignments
    assert sorted(assignments) == ["lesson-1", "lesson-2", "lesson-3"]
    assert assignments["lesson-1"].assigned_by == "tina"


def test_assign_content_checks_every_class_first(svc: Services, org_id: str) -> None:
    mine = run(svc.classes.create(org_id, "Algebra", "tina"))
    theirs = run(svc.classes.create(org_id, "Geometry", "alice"))
    with pytest.raises(Forbidden):
        run(svc.classes.assign_content(org_id, [mine.id, theirs.id], ["lesson-1"], "tina"))
    assert run(svc.classes.get(org_id, mine.id)).assignments == {}


def test_remove_content(svc: Services, org_id: str) -> None:
    classroom = run(svc.classes.create(org_id, "Algebra", "tina"))
    run(svc.classes.assign_content(org_id, [classroom.id], ["lesson-1"], "tina"))
    run(svc.classes.remove_content(org_id, classroom.id, "lesson-1", "tina"))
    assert run(svc.classes.get(org_id, classroom.id)).assignments == {}
    with pytest.raises(ContentNotAssigned):
        run(svc.classes.remove_content(org_id, classroom.id, "lesson-1", "tina"))


def test_switch_active_class_requires_roster_or_staff(svc: Services, org_id: str) -> None:
    classroom = run(svc.classes.create(org_id, "Algebra", "tina"))
    run(svc.classes.add_students(org_id, classroom.id, ["sam"], "tina"))

    run(svc.classes.switch_active_class("sam", org_id, classroom.id))
    run(svc.classes.switch_active_class("dev", org_id, classroom.id))
    with pytest.raises(Forbidden):
        run(svc.classes.switch_active_class("sue", org_id, classroom.id))

    # Everyone may fall back to the default class.
    run(svc.classes.ensure_default_class(org_id))
    run(svc.classes.switch_active_class("sue", org_id, DEFAULT_CLASS_ID))


def test_switch_to_class_of_another_org(svc: Services, org_id: str) -> None:
    other = run(svc.orgs.create("Other", "zoe"))
    foreign = run(svc.classes.create(other.id, "Foreign", "zoe"))
    with pytest.raises(ClassNotFound):
        run(svc.classes.switch_active_class("alice", org_id, foreign.id))


def test_list_visible_by_role(svc: Services, org_id: str) -> None:
    algebra = run(svc.classes.create(org_id, "Algebra", "tina"))
    run(svc.classes.create(org_id, "Geometry", "alice"))
    run(svc.classes.add_students(org_id, algebra.id, ["sam"], "tina"))

    def names(user_id: str) -> list[str]:
        return [c.name for c in run(svc.classes.list_visible(org_id, user_id))]

    assert names("alice") == ["Default Class", "Algebra", "Geometry"]
    assert names("dev") == ["Default Class", "Algebra", "Geometry"]
    assert names("tina") == ["Default Class", "Algebra"]
    assert names("sam") == ["Default Class", "Algebra"]
    assert names("sue") == ["Default Class"]
