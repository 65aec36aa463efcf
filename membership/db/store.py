"""Hierarchical document store.

The engine addresses records by slash-separated paths
(``organizations/{orgId}/members/{userId}``) and reads or replaces whole
subtrees at a path.  There are no cross-key transactions: each call is
atomic on its own, and multi-record mutations are sequenced by the
services so that a crash after any prefix of steps is recoverable.
``set_if_absent`` is the one conditional write: it claims a leaf only
when nothing is stored there (SET NX on Redis).

Two implementations share the ``DocumentStore`` protocol:

  InMemoryDocumentStore: nested dicts in process (dev, tests).
  RedisDocumentStore: each leaf value stored as a JSON string under
    ``tree:{path}``; a subtree read scans ``tree:{path}/*`` and rebuilds
    the nesting.  Replacing a subtree runs its delete and writes in one
    MULTI/EXEC pipeline so readers never observe a half-written record.

Leaves are JSON scalars (str, int, float, bool).  Sets are stored as
``{member: True}`` maps.  Writing ``None`` or an empty map deletes the
path, and emptied parents disappear with it.
"""

from __future__ import annotations

import copy
import json
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any, Protocol, runtime_checkable

from redis.exceptions import RedisError

from membership.core.exceptions import StoreUnavailable
from membership.db import paths
from membership.db.redis import redis_pool


@runtime_checkable
class DocumentStore(Protocol):
    async def get(self, path: str) -> Any | None:
        """Return the value or subtree at path, or None when absent."""
        ...

    async def set(self, path: str, value: Any) -> None:
        """Replace the subtree at path."""
        ...

    async def update(self, path: str, values: dict[str, Any]) -> None:
        """Replace the named children of path, leaving siblings untouched."""
        ...

    async def set_if_absent(self, path: str, value: Any) -> Any:
        """Write the leaf at path unless one is there; return the stored value."""
        ...

    async def delete(self, path: str) -> None:
        """Remove the subtree at path. Deleting an absent path is a no-op."""
        ...

    async def exists(self, path: str) -> bool: ...

    async def keys(self, path: str) -> list[str]:
        """Names of the immediate children of path, sorted."""
        ...

    async def ping(self) -> bool: ...


def _prune(value: Any) -> Any:
    """Drop empty maps and None leaves so they never reach the tree."""
    if isinstance(value, dict):
        pruned = {}
        for key, child in value.items():
            child = _prune(child)
            if child is not None:
                pruned[str(key)] = child
        return pruned or None
    return value


class InMemoryDocumentStore:
    """Process-local tree.  The autouse fixture in conftest.py clears it."""

    def __init__(self) -> None:
        self._root: dict[str, Any] = {}

    def _walk(self, segments: list[str]) -> Any | None:
        node: Any = self._root
        for segment in segments:
            if not isinstance(node, dict) or segment not in node:
                return None
            node = node[segment]
        return node

    async def get(self, path: str) -> Any | None:
        return copy.deepcopy(self._walk(path.split("/")))

    async def set(self, path: str, value: Any) -> None:
        value = _prune(copy.deepcopy(value))
        if value is None:
            await self.delete(path)
            return
        self._put(path, value)

    def _put(self, path: str, value: Any) -> None:
        *parents, leaf = path.split("/")
        node = self._root
        for segment in parents:
            child = node.get(segment)
            if not isinstance(child, dict):
                child = node[segment] = {}
            node = child
        node[leaf] = value

    async def set_if_absent(self, path: str, value: Any) -> Any:
        # No await between the check and the write.
        current = self._walk(path.split("/"))
        if current is not None:
            return copy.deepcopy(current)
        self._put(path, value)
        return value

    async def update(self, path: str, values: dict[str, Any]) -> None:
        for key, value in values.items():
            await self.set(paths.child(path, key), value)

    async def delete(self, path: str) -> None:
        segments = path.split("/")
        trail: list[dict[str, Any]] = []
        node: Any = self._root
        for segment in segments[:-1]:
            if not isinstance(node, dict) or segment not in node:
                return
            trail.append(node)
            node = node[segment]
        if not isinstance(node, dict):
            return
        node.pop(segments[-1], None)
        # Walk back up removing parents the delete left empty.
        for parent, segment in zip(reversed(trail), reversed(segments[:-1])):
            if parent.get(segment):
                break
            parent.pop(segment, None)

    async def exists(self, path: str) -> bool:
        return self._walk(path.split("/")) is not None

    async def keys(self, path: str) -> list[str]:
        node = self._walk(path.split("/"))
        if not isinstance(node, dict):
            return []
        return sorted(node)

    async def ping(self) -> bool:
        return True


def _flatten(path: str, value: Any) -> dict[str, Any]:
    if isinstance(value, dict):
        flat: dict[str, Any] = {}
        for key, child in value.items():
            flat.update(_flatten(f"{path}/{key}", child))
        return flat
    return {path: value}


def _glob_escape(text: str) -> str:
    for char in "\\*?[]":
        text = text.replace(char, "\\" + char)
    return text


@contextmanager
def _store_errors() -> Iterator[None]:
    try:
        yield
    except RedisError as e:
        raise StoreUnavailable(str(e)) from e


class RedisDocumentStore:
    """Redis-backed tree shared by every API instance."""

    # Key prefix keeps the tree apart from anything else sharing the instance.
    _PREFIX = "tree:"

    def __init__(self, redis_client) -> None:
        self._redis = redis_client

    def _key(self, path: str) -> str:
        return f"{self._PREFIX}{path}"

    async def _scan_subtree(self, path: str) -> list[str]:
        # SCAN rather than KEYS: it is cursor-based and never blocks the server.
        pattern = f"{self._PREFIX}{_glob_escape(path)}/*"
        found: list[str] = []
        cursor = 0
        while True:
            cursor, batch = await self._redis.scan(cursor, match=pattern, count=200)
            found.extend(batch)
            if cursor == 0:
                break
        return found

    async def get(self, path: str) -> Any | None:
        with _store_errors():
            leaf = await self._redis.get(self._key(path))
            if leaf is not None:
                return json.loads(leaf)
            keys = await self._scan_subtree(path)
            if not keys:
                return None
            raw_values = await self._redis.mget(keys)

        tree: dict[str, Any] = {}
        offset = len(self._key(path)) + 1
        for key, raw in zip(keys, raw_values):
            if raw is None:
                # Deleted between SCAN and MGET.
                continue
            *parents, leaf_name = key[offset:].split("/")
            node = tree
            for segment in parents:
                node = node.setdefault(segment, {})
            node[leaf_name] = json.loads(raw)
        return tree or None

    async def set(self, path: str, value: Any) -> None:
        value = _prune(value)
        with _store_errors():
            stale = [self._key(path), *await self._scan_subtree(path)]
            flat = {} if value is None else _flatten(path, value)
            async with self._redis.pipeline(transaction=True) as pipe:
                pipe.delete(*stale)
                if flat:
                    pipe.mset(
                        {self._key(p): json.dumps(v) for p, v in flat.items()}
                    )
                await pipe.execute()

    async def set_if_absent(self, path: str, value: Any) -> Any:
        key = self._key(path)
        with _store_errors():
            if await self._redis.set(key, json.dumps(value), nx=True):
                return value
            current = await self._redis.get(key)
        return json.loads(current) if current is not None else None

    async def update(self, path: str, values: dict[str, Any]) -> None:
        for key, value in values.items():
            await self.set(paths.child(path, key), value)

    async def delete(self, path: str) -> None:
        with _store_errors():
            stale = [self._key(path), *await self._scan_subtree(path)]
            await self._redis.delete(*stale)

    async def exists(self, path: str) -> bool:
        with _store_errors():
            if await self._redis.exists(self._key(path)):
                return True
            return bool(await self._scan_subtree(path))

    async def keys(self, path: str) -> list[str]:
        with _store_errors():
            keys = await self._scan_subtree(path)
        offset = len(self._key(path)) + 1
        return sorted({key[offset:].split("/", 1)[0] for key in keys})

    async def ping(self) -> bool:
        with _store_errors():
            return bool(await self._redis.ping())


# ---------------------------------------------------------------------------
# Module-level singleton
# ---------------------------------------------------------------------------

if redis_pool is not None:
    document_store: DocumentStore = RedisDocumentStore(redis_pool)
else:
    document_store = InMemoryDocumentStore()
