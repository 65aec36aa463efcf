from __future__ import annotations

from fastapi.testclient import TestClient

from membership.models.role import Role
from tests.conftest import add_member, auth, create_org


def test_context_is_null_without_memberships(client: TestClient) -> None:
    resp = client.get("/v1/me/context", headers=auth("nobody"))
    assert resp.status_code == 200
    assert resp.json() is None


def test_register_enrolls_in_default_org(client: TestClient) -> None:
    resp = client.post(
        "/v1/users/me",
        json={"display_name": "Dave", "email": "dave@example.com"},
        headers=auth("dave"),
    )
    assert resp.status_code == 201
    assert resp.json()["display_name"] == "Dave"

    context = client.get("/v1/me/context", headers=auth("dave")).json()
    assert context == {
        "user_id": "dave",
        "org_id": "default",
        "org_name": "Default Organization",
        "role": "Student",
        "class_id": "default",
        "class_name": "Default Class",
    }


def test_list_and_switch_organizations(client: TestClient) -> None:
    first = create_org("First", "alice")
    second = create_org("Second", "alice")

    rows = client.get("/v1/me/organizations", headers=auth("alice")).json()
    assert [(r["org_name"], r["is_primary"]) for r in rows] == [
        ("First", True),
        ("Second", False),
    ]

    resp = client.put(
        "/v1/me/active-organization", json={"org_id": second.id}, headers=auth("alice")
    )
    assert resp.status_code == 200
    assert resp.json()["org_id"] == second.id
    assert client.get("/v1/me/context", headers=auth("alice")).json()["org_id"] == second.id
    assert first.id != second.id


def test_switch_to_foreign_org_is_404(client: TestClient) -> None:
    org = create_org("Acme", "alice")
    resp = client.put(
        "/v1/me/active-organization", json={"org_id": org.id}, headers=auth("bob")
    )
    assert resp.status_code == 404
    assert resp.json()["detail"]["code"] == "NotAMember"


def test_switch_active_class(client: TestClient) -> None:
    org = create_org("Acme", "alice")
    add_member(org.id, "sam", Role.STUDENT)
    classroom = client.post(
        f"/v1/orgs/{org.id}/classes", json={"name": "Algebra"}, headers=auth("alice")
    ).json()

    body = {"org_id": org.id, "class_id": classroom["id"]}
    assert client.put("/v1/me/active-class", json=body, headers=auth("sam")).status_code == 403

    client.post(
        f"/v1/orgs/{org.id}/classes/{classroom['id']}/students",
        json={"user_ids": ["sam"]},
        headers=auth("alice"),
    )
    resp = client.put("/v1/me/active-class", json=body, headers=auth("sam"))
    assert resp.status_code == 200
    assert resp.json()["class_name"] == "Algebra"

    client.put("/v1/me/active-organization", json={"org_id": org.id}, headers=auth("sam"))
    context = client.get("/v1/me/context", headers=auth("sam")).json()
    assert context["class_id"] == classroom["id"]


def test_me_endpoints_require_token(client: TestClient) -> None:
    assert client.get("/v1/me/context").status_code == 401
    assert client.get("/v1/me/organizations").status_code == 401


def test_token_subject_with_slash_is_422(client: TestClient) -> None:
    resp = client.get("/v1/me/context", headers=auth("team/alice"))
    assert resp.status_code == 422
    assert resp.json()["detail"]["code"] == "InvalidIdentifier"
