from __future__ import annotations

import asyncio
from collections.abc import Coroutine
from typing import Any, TypeVar

import pytest
from fastapi.testclient import TestClient

from membership.api.dependencies import services as app_services
from membership.core.config import Settings
from membership.core.exceptions import StoreUnavailable
from membership.db.store import InMemoryDocumentStore, document_store
from membership.main import app
from membership.models.organization import Organization
from membership.models.role import Role
from membership.services import token_service
from membership.services.container import Services, build_services

T = TypeVar("T")


def run(coro: Coroutine[Any, Any, T]) -> T:
    """Drive one service call to completion from a sync test."""
    return asyncio.run(coro)


def make_settings(**overrides: Any) -> Settings:
    values: dict[str, Any] = {
        "app_env": "test",
        "log_level": "info",
        "log_json": False,
        "port": 8000,
        "redis_url": None,
    }
    values.update(overrides)
    return Settings(**values)


@pytest.fixture(autouse=True)
def reset_document_store() -> None:
    """Clear the app's in-memory tree between tests."""
    assert isinstance(document_store, InMemoryDocumentStore)
    document_store._root.clear()


@pytest.fixture
def store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture
def svc(store: InMemoryDocumentStore) -> Services:
    """A service graph over a private store, independent of the app's."""
    return build_services(store, make_settings())


class FlakyStore(InMemoryDocumentStore):
    """In-memory store that starts refusing writes once its budget runs out.

    ``writes_left=None`` means unlimited.  Reads always succeed so tests can
    inspect what a half-finished operation left behind.
    """

    def __init__(self) -> None:
        super().__init__()
        self.writes_left: int | None = None

    def _spend(self) -> None:
        if self.writes_left is None:
            return
        if self.writes_left <= 0:
            raise StoreUnavailable("connection refused")
        self.writes_left -= 1

    async def set(self, path: str, value: Any) -> None:
        self._spend()
        await super().set(path, value)

    async def set_if_absent(self, path: str, value: Any) -> Any:
        self._spend()
        return await super().set_if_absent(path, value)

    async def delete(self, path: str) -> None:
        self._spend()
        await super().delete(path)


@pytest.fixture
def flaky_store() -> FlakyStore:
    return FlakyStore()


@pytest.fixture
def flaky_svc(flaky_store: FlakyStore) -> Services:
    return build_services(flaky_store, make_settings())


@pytest.fixture
def client() -> TestClient:
    return TestClient(app)


def mint_token(user_id: str = "test-user") -> str:
    """Create a valid ES256 JWT for testing."""
    return token_service.create_access_token(sub=user_id)


def auth(user_id: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {mint_token(user_id)}"}


# ---------------------------------------------------------------------------
# Seeding helpers: build state through the app's own services
# ---------------------------------------------------------------------------


def create_org(
    name: str, owner_id: str, services: Services | None = None
) -> Organization:
    return run((services or app_services).orgs.create(name, owner_id))


def add_member(
    org_id: str, user_id: str, role: Role, services: Services | None = None
) -> None:
    run((services or app_services).members.add_member(org_id, user_id, role))
