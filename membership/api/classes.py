"""Class endpoints: classes, rosters, and content assignment within an org."""

from __future__ import annotations

from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field

from membership.api.dependencies import org_id_of, resolve_org_principal, services
from membership.models.classroom import Classroom
from membership.models.principal import Principal

router = APIRouter(prefix="/v1/orgs/{org_id}", tags=["classes"])


class ClassCreateIn(BaseModel):
    name: str


class ClassOut(BaseModel):
    id: str
    org_id: str
    name: str
    creator_id: str
    created_at: datetime
    is_default: bool
    teacher_ids: list[str]
    student_ids: list[str]
    content_ids: list[str]


class RosterIn(BaseModel):
    user_ids: list[str] = Field(min_length=1)


class AssignContentIn(BaseModel):
    class_ids: list[str] = Field(min_length=1)
    content_ids: list[str] = Field(min_length=1)


class AssignContentOut(BaseModel):
    added: int


def _class_out(c: Classroom) -> ClassOut:
    return ClassOut(
        id=c.id,
        org_id=c.org_id,
        name=c.name,
        creator_id=c.creator_id,
        created_at=c.created_at,
        is_default=c.is_default,
        teacher_ids=sorted(c.teacher_ids),
        student_ids=sorted(c.student_ids),
        content_ids=sorted(c.assignments),
    )


@router.get("/classes", response_model=list[ClassOut])
async def list_classes(
    principal: Annotated[Principal, Depends(resolve_org_principal)],
) -> list[ClassOut]:
    """Classes the caller can see: all for Admin/Developer, else their own."""
    classrooms = await services.classes.list_visible(
        org_id_of(principal), principal.user_id
    )
    return [_class_out(c) for c in classrooms]


@router.post("/classes", response_model=ClassOut, status_code=status.HTTP_201_CREATED)
async def create_class(
    body: ClassCreateIn,
    principal: Annotated[Principal, Depends(resolve_org_principal)],
) -> ClassOut:
    classroom = await services.classes.create(
        org_id_of(principal), body.name, principal.user_id
    )
    return _class_out(classroom)


@router.delete("/classes/{class_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_class(
    class_id: str,
    principal: Annotated[Principal, Depends(resolve_org_principal)],
) -> None:
    await services.classes.delete(org_id_of(principal), class_id, principal.user_id)


@router.post("/classes/{class_id}/students", response_model=ClassOut)
async def add_students(
    class_id: str,
    body: RosterIn,
    principal: Annotated[Principal, Depends(resolve_org_principal)],
) -> ClassOut:
    classroom = await services.classes.add_students(
        org_id_of(principal), class_id, body.user_ids, principal.user_id
    )
    return _class_out(classroom)


@router.post("/classes/{class_id}/teachers", response_model=ClassOut)
async def add_teachers(
    class_id: str,
    body: RosterIn,
    principal: Annotated[Principal, Depends(resolve_org_principal)],
) -> ClassOut:
    classroom = await services.classes.add_teachers(
        org_id_of(principal), class_id, body.user_ids, principal.user_id
    )
    return _class_out(classroom)


@router.delete(
    "/classes/{class_id}/members/{user_id}", status_code=status.HTTP_204_NO_CONTENT
)
async def remove_class_member(
    class_id: str,
    user_id: str,
    principal: Annotated[Principal, Depends(resolve_org_principal)],
) -> None:
    await services.classes.remove_member(
        org_id_of(principal), class_id, user_id, principal.user_id
    )


@router.post("/assignments", response_model=AssignContentOut)
async def assign_content(
    body: AssignContentIn,
    principal: Annotated[Principal, Depends(resolve_org_principal)],
) -> AssignContentOut:
    """Assign every content id to every class; existing pairs are skipped."""
    added = await services.classes.assign_content(
        org_id_of(principal), body.class_ids, body.content_ids, principal.user_id
    )
    return AssignContentOut(added=added)


@router.delete(
    "/classes/{class_id}/content/{content_id}",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def remove_content(
    class_id: str,
    content_id: str,
    principal: Annotated[Principal, Depends(resolve_org_principal)],
) -> None:
    await services.classes.remove_content(
        org_id_of(principal), class_id, content_id, principal.user_id
    )
