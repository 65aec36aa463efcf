"""Document store semantics, checked against both implementations.

RedisDocumentStore runs over a small dict-backed stand-in for
``redis.asyncio.Redis`` that implements just the commands the store uses.
"""

from __future__ import annotations

from fnmatch import fnmatchcase

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import ResponseError

from membership.core.exceptions import InvalidIdentifier, StoreUnavailable
from membership.db import paths
from membership.db.store import DocumentStore, InMemoryDocumentStore, RedisDocumentStore
from membership.models.organization import Organization
from membership.repos.invite_repo import InviteRepo
from membership.repos.org_repo import OrgRepo
from tests.conftest import run


class _FakePipeline:
    def __init__(self, redis: FakeRedis) -> None:
        self._redis = redis
        self._ops: list[tuple[str, tuple]] = []

    async def __aenter__(self) -> _FakePipeline:
        return self

    async def __aexit__(self, *exc) -> None:
        self._ops.clear()

    def delete(self, *keys: str) -> _FakePipeline:
        self._ops.append(("delete", keys))
        return self

    def mset(self, mapping: dict[str, str]) -> _FakePipeline:
        self._ops.append(("mset", (mapping,)))
        return self

    async def execute(self) -> list:
        self._redis._check()
        for op, args in self._ops:
            if op == "delete":
                for key in args:
                    self._redis.data.pop(key, None)
            else:
                self._redis.data.update(args[0])
        return [True] * len(self._ops)


class FakeRedis:
    def __init__(self) -> None:
        self.data: dict[str, str] = {}
        self.down = False

    def _check(self) -> None:
        if self.down:
            raise RedisConnectionError("Connection refused")

    async def scan(self, cursor: int, match: str, count: int) -> tuple[int, list[str]]:
        self._check()
        return 0, [k for k in sorted(self.data) if fnmatchcase(k, match)]

    async def get(self, key: str) -> str | None:
        self._check()
        return self.data.get(key)

    async def set(self, key: str, value: str, nx: bool = False) -> bool | None:
        self._check()
        if nx and key in self.data:
            return None
        self.data[key] = value
        return True

    async def mget(self, keys: list[str]) -> list[str | None]:
        self._check()
        return [self.data.get(k) for k in keys]

    async def delete(self, *keys: str) -> int:
        self._check()
        return sum(self.data.pop(k, None) is not None for k in keys)

    async def exists(self, key: str) -> int:
        self._check()
        return int(key in self.data)

    async def ping(self) -> bool:
        self._check()
        return True

    def pipeline(self, transaction: bool = True) -> _FakePipeline:
        return _FakePipeline(self)


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture(params=["memory", "redis"])
def doc_store(request, fake_redis: FakeRedis) -> DocumentStore:
    if request.param == "memory":
        return InMemoryDocumentStore()
    return RedisDocumentStore(fake_redis)


def test_set_and_get_subtree(doc_store: DocumentStore) -> None:
    run(doc_store.set("organizations/o1", {"name": "Acme", "members": {"u1": {"role": "Admin"}}}))
    assert run(doc_store.get("organizations/o1/name")) == "Acme"
    assert run(doc_store.get("organizations/o1/members")) == {"u1": {"role": "Admin"}}
    assert run(doc_store.get("organizations/o1")) == {
        "name": "Acme",
        "members": {"u1": {"role": "Admin"}},
    }
    assert run(doc_store.get("organizations/missing")) is None


def test_set_replaces_whole_subtree(doc_store: DocumentStore) -> None:
    run(doc_store.set("inviteCodes/c1", {"orgId": "o1", "consumedBy": "u1"}))
    run(doc_store.set("inviteCodes/c1", {"orgId": "o1"}))
    assert run(doc_store.get("inviteCodes/c1")) == {"orgId": "o1"}


def test_update_leaves_siblings(doc_store: DocumentStore) -> None:
    run(doc_store.set("organizations/o1/members/u1", {"role": "Student", "status": "pending"}))
    run(doc_store.update("organizations/o1/members/u1", {"status": "active"}))
    assert run(doc_store.get("organizations/o1/members/u1")) == {
        "role": "Student",
        "status": "active",
    }


def test_none_and_empty_maps_are_pruned(doc_store: DocumentStore) -> None:
    run(doc_store.set("organizations/o1", {"name": "Acme", "classes": {}, "note": None}))
    assert run(doc_store.get("organizations/o1")) == {"name": "Acme"}
    run(doc_store.set("organizations/o1/name", None))
    assert not run(doc_store.exists("organizations/o1"))


def test_delete_removes_subtree_and_empty_parents(doc_store: DocumentStore) -> None:
    run(doc_store.set("users/u1/organizations/o1", {"roleSnapshot": "Admin"}))
    run(doc_store.set("users/u1/profile", {"displayName": "U"}))
    run(doc_store.delete("users/u1/organizations/o1"))

    assert run(doc_store.keys("users/u1")) == ["profile"]
    assert not run(doc_store.exists("users/u1/organizations"))
    run(doc_store.delete("users/u1/organizations/o1"))  # absent: no-op


def test_keys_are_sorted_immediate_children(doc_store: DocumentStore) -> None:
    run(doc_store.set("organizations/o2/name", "B"))
    run(doc_store.set("organizations/o1/members/u1/role", "Admin"))
    assert run(doc_store.keys("organizations")) == ["o1", "o2"]
    assert run(doc_store.keys("organizations/o1/members/u1/role")) == []
    assert run(doc_store.keys("nothing")) == []


def test_prefix_paths_do_not_collide(doc_store: DocumentStore) -> None:
    run(doc_store.set("organizations/o1/name", "A"))
    run(doc_store.set("organizations/o10/name", "B"))
    run(doc_store.delete("organizations/o1"))
    assert run(doc_store.get("organizations/o10/name")) == "B"


def test_quoted_name_index_paths(doc_store: DocumentStore) -> None:
    path = paths.org_name("Math/Science Club")
    run(doc_store.set(path, "o1"))
    assert run(doc_store.get(path)) == "o1"
    assert run(doc_store.keys(paths.ORGANIZATION_NAMES)) == ["Math%2FScience%20Club"]


def test_get_returns_a_copy() -> None:
    store = InMemoryDocumentStore()
    run(store.set("organizations/o1", {"name": "Acme"}))
    doc = run(store.get("organizations/o1"))
    doc["name"] = "Changed"
    assert run(store.get("organizations/o1/name")) == "Acme"


def test_redis_leaves_are_json_under_prefix(fake_redis: FakeRedis) -> None:
    store = RedisDocumentStore(fake_redis)
    run(store.set("organizations/o1", {"name": "Acme", "archived": False}))
    assert fake_redis.data == {
        "tree:organizations/o1/name": '"Acme"',
        "tree:organizations/o1/archived": "false",
    }


def test_redis_connection_errors_become_store_unavailable(fake_redis: FakeRedis) -> None:
    store = RedisDocumentStore(fake_redis)
    fake_redis.down = True
    with pytest.raises(StoreUnavailable):
        run(store.get("organizations/o1"))
    with pytest.raises(StoreUnavailable):
        run(store.set("organizations/o1/name", "Acme"))
    with pytest.raises(StoreUnavailable):
        run(store.ping())


def test_join_rejects_bad_segments() -> None:
    with pytest.raises(InvalidIdentifier):
        paths.join("users", "a/b")
    with pytest.raises(InvalidIdentifier):
        paths.join("users", "")


def test_child_checks_only_new_segments() -> None:
    assert paths.child(paths.org("o1"), "meta") == "organizations/o1/meta"
    assert paths.org_meta("o1") == "organizations/o1/meta"
    assert paths.invite_field("c1", "consumedBy") == "inviteCodes/c1/consumedBy"
    with pytest.raises(InvalidIdentifier):
        paths.child(paths.org("o1"), "unit-1/lesson-2")


def test_set_if_absent_keeps_first_writer(doc_store: DocumentStore) -> None:
    path = "inviteCodes/c1/consumedBy"
    assert run(doc_store.set_if_absent(path, "b")) == "b"
    assert run(doc_store.set_if_absent(path, "c")) == "b"
    assert run(doc_store.get(path)) == "b"

    run(doc_store.delete(path))
    assert run(doc_store.set_if_absent(path, "c")) == "c"


def test_any_redis_error_is_store_unavailable() -> None:
    class BrokenRedis(FakeRedis):
        async def get(self, key: str) -> str | None:
            raise ResponseError("WRONGTYPE Operation against a key")

    store = RedisDocumentStore(BrokenRedis())
    with pytest.raises(StoreUnavailable):
        run(store.get("organizations/o1"))


def test_org_record_round_trip(doc_store: DocumentStore) -> None:
    repo = OrgRepo(doc_store)
    org = Organization.new(name="Acme", owner_id="alice")
    run(repo.add(org))
    run(doc_store.set(paths.org_member(org.id, "alice"), {"role": "Admin"}))

    assert run(repo.get(org.id)) == org
    assert run(repo.exists(org.id))

    run(repo.set_archived(org.id, True))
    assert run(repo.get(org.id)).archived is True
    assert run(doc_store.get(paths.org_member(org.id, "alice"))) == {"role": "Admin"}


def test_invite_reservation_goes_to_first_user(doc_store: DocumentStore) -> None:
    repo = InviteRepo(doc_store)
    run(doc_store.set(paths.invite("c1"), {"orgId": "o1", "role": "Student"}))

    assert run(repo.reserve("c1", "b")) == "b"
    assert run(repo.reserve("c1", "c")) == "b"
    assert run(repo.get("c1")).consumed_by == "b"

    run(repo.release("c1"))
    assert run(repo.get("c1")).consumed_by is None
