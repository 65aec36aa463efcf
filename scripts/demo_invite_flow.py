"""Demo: walk the organization → invite → role change flow using TestClient.

Run with:
    python scripts/demo_invite_flow.py
"""

from __future__ import annotations

from fastapi.testclient import TestClient

from membership.main import app
from membership.services import token_service


def _as(user_id: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token_service.create_access_token(sub=user_id)}"}


def main() -> None:
    with TestClient(app) as client:
        # ── Step 1: both users register into the default org ──────────
        for user_id in ("ada", "ben"):
            r = client.post("/v1/users/me", json={"display_name": user_id}, headers=_as(user_id))
            print(f"1. POST /v1/users/me ({user_id})      → {r.status_code}")

        # ── Step 2: ada creates Acme and becomes its Admin ─────────────
        r = client.post("/v1/orgs", json={"name": "Acme"}, headers=_as("ada"))
        org_id = r.json()["id"]
        print(f"2. POST /v1/orgs                → {r.status_code}  (org {org_id})")

        # ── Step 3: ada issues a Teacher invite ───────────────────────
        r = client.post(
            f"/v1/orgs/{org_id}/invites", json={"role": "Teacher"}, headers=_as("ada")
        )
        code = r.json()["code"]
        print(f"3. POST .../invites             → {r.status_code}")

        # ── Step 4: ben redeems it, twice ─────────────────────────────
        r = client.post(f"/v1/invites/{code}/redeem", headers=_as("ben"))
        print(f"4. POST /v1/invites/…/redeem    → {r.status_code}  {r.json()}")
        r = client.post(f"/v1/invites/{code}/redeem", headers=_as("ben"))
        print(f"   again                        → {r.status_code}  ({r.json()['detail']['code']})")

        # ── Step 5: ben (Teacher) tries to demote ada (Admin) ─────────
        r = client.patch(
            f"/v1/orgs/{org_id}/members/ada", json={"role": "Student"}, headers=_as("ben")
        )
        print(f"5. PATCH .../members/ada        → {r.status_code}  (hierarchy)")

        # ── Step 6: ada promotes ben to Admin ─────────────────────────
        r = client.patch(
            f"/v1/orgs/{org_id}/members/ben", json={"role": "Admin"}, headers=_as("ada")
        )
        print(f"6. PATCH .../members/ben        → {r.status_code}  role={r.json()['role']}")

        # ── Step 7: ben's resolved context ────────────────────────────
        r = client.get("/v1/me/context", headers=_as("ben"))
        ctx = r.json()
        print(f"7. GET  /v1/me/context          → {ctx['org_name']} / {ctx['role']} / {ctx['class_name']}")


if __name__ == "__main__":
    main()
