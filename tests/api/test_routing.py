from __future__ import annotations

from fastapi.testclient import TestClient

from tests.conftest import auth

# ---- 404: undefined routes ----


def test_undefined_route_returns_404(client: TestClient) -> None:
    resp = client.get("/nonexistent")
    assert resp.status_code == 404
    assert resp.json() == {"detail": "Not Found"}


def test_undefined_nested_route_returns_404(client: TestClient) -> None:
    resp = client.get("/v2/orgs")
    assert resp.status_code == 404


# ---- 405: wrong HTTP method on existing routes ----


def test_put_health_returns_405(client: TestClient) -> None:
    resp = client.put("/health", json={"status": "bad"})
    assert resp.status_code == 405


def test_get_redeem_returns_405(client: TestClient) -> None:
    resp = client.get("/v1/invites/some-code/redeem", headers=auth("alice"))
    assert resp.status_code == 405


def test_delete_me_context_returns_405(client: TestClient) -> None:
    resp = client.delete("/v1/me/context", headers=auth("alice"))
    assert resp.status_code == 405
