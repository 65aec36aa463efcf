"""Tests for the request context middleware.

Verifies that every response gets:
- An X-Request-ID header (generated or echoed from the request)
- One completion log line carrying the request id and, once the token
  was validated, the caller's user id
"""

from __future__ import annotations

import logging
import uuid

import pytest
from fastapi.testclient import TestClient

from tests.conftest import auth


def test_request_id_generated_when_not_provided(client: TestClient) -> None:
    """When no X-Request-ID header is sent, one is generated."""
    resp = client.get("/health")
    req_id = resp.headers.get("x-request-id")
    assert req_id is not None
    # Should be a valid UUID
    uuid.UUID(req_id)  # raises ValueError if invalid


def test_request_id_echoed_when_provided(client: TestClient) -> None:
    """When the client sends X-Request-ID, the same value is echoed back."""
    custom_id = "my-custom-request-id-123"
    resp = client.get("/health", headers={"X-Request-ID": custom_id})
    assert resp.headers.get("x-request-id") == custom_id


def test_request_id_present_on_error_responses(client: TestClient) -> None:
    """Even error responses (401, 404) get an X-Request-ID header."""
    resp = client.get("/v1/me/context")  # No auth token → 401
    assert resp.status_code == 401
    assert resp.headers.get("x-request-id") is not None

    resp = client.post("/v1/invites/missing/redeem", headers=auth("bob"))
    assert resp.status_code == 404
    assert resp.headers.get("x-request-id") is not None


def test_completion_log_carries_user_id(
    client: TestClient, caplog: pytest.LogCaptureFixture
) -> None:
    with caplog.at_level(logging.INFO, logger="membership.middleware.request_context"):
        client.get("/v1/me/context", headers={**auth("dave"), "X-Request-ID": "req-42"})

    records = [
        r for r in caplog.records
        if r.name == "membership.middleware.request_context"
    ]
    assert records, "expected a completion log line"
    record = records[-1]
    assert record.request_id == "req-42"
    assert record.user_id == "dave"
    assert record.status_code == 200
