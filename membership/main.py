from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from membership.api.classes import router as classes_router
from membership.api.dependencies import services
from membership.api.errors import membership_error_handler
from membership.api.health import router as health_router
from membership.api.invites import router as invites_router
from membership.api.me import router as me_router
from membership.api.metrics_endpoint import router as metrics_router
from membership.api.orgs import router as orgs_router
from membership.core.config import SETTINGS
from membership.core.exceptions import MembershipError, StoreUnavailable
from membership.core.logging import setup_logging
from membership.db.redis import lifespan_redis
from membership.middleware.metrics import MetricsMiddleware
from membership.middleware.request_context import RequestContextMiddleware

# Configure logging before anything else runs.
setup_logging(SETTINGS.log_level, json_format=SETTINGS.log_json)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    async with lifespan_redis():
        try:
            org = await services.orgs.ensure_default_organization()
            logger.info("Default organization ready: org=%s", org.id)
        except StoreUnavailable as e:
            # Created lazily on first registration once the store is back.
            logger.error("Default organization not ensured: %s", e.message)
        yield


app = FastAPI(
    title="membership-service",
    lifespan=lifespan,
    docs_url="/docs" if SETTINGS.is_dev else None,
    redoc_url="/redoc" if SETTINGS.is_dev else None,
)

app.add_exception_handler(MembershipError, membership_error_handler)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:5173"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Last-added runs first: RequestContext → Metrics → CORS → route handler,
# so every request has an id before metrics are recorded.
app.add_middleware(MetricsMiddleware)
app.add_middleware(RequestContextMiddleware)

app.include_router(metrics_router)
app.include_router(health_router)
app.include_router(me_router)
app.include_router(orgs_router)
app.include_router(classes_router)
app.include_router(invites_router)

logger.info(
    "membership-service started  env=%s log_level=%s port=%d store=%s docs=%s",
    SETTINGS.app_env,
    SETTINGS.log_level,
    SETTINGS.port,
    "redis" if SETTINGS.redis_url else "memory",
    "on" if SETTINGS.is_dev else "off",
)
