"""Health and readiness endpoints.

  /health (liveness): is the process alive?  Always 200; the ``status``
    field reports whether the document store answered.
  /ready (readiness): can this instance serve traffic?  503 while the
    store is unreachable, so the load balancer stops routing here without
    restarting the container.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Response

from membership.core.exceptions import StoreUnavailable
from membership.db.store import RedisDocumentStore, document_store

router = APIRouter(tags=["health"])

logger = logging.getLogger(__name__)


async def _store_ok() -> bool:
    try:
        return await document_store.ping()
    except StoreUnavailable as e:
        logger.warning("Store ping failed: %s", e.message)
        return False


@router.get("/health")
async def health() -> dict:
    """Liveness probe plus store status.

    Returns 200 even when degraded; a 503 here would make the orchestrator
    restart the container, which is too aggressive for a store outage.
    """
    ok = await _store_ok()
    backend = "redis" if isinstance(document_store, RedisDocumentStore) else "memory"
    return {
        "status": "ok" if ok else "degraded",
        "checks": {"store": "ok" if ok else "degraded", "backend": backend},
    }


@router.get("/ready")
async def ready() -> Response:
    return Response(status_code=200 if await _store_ok() else 503)
