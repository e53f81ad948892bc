"""Linkly ASGI application."""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from linkly.api.errors import register_error_handlers
from linkly.api.redirect import router as redirect_router
from linkly.api.v1.router import router as v1_router
from linkly.core.config import get_settings
from linkly.core.database import init_db
from linkly.core.deps import get_geoip_service, get_store
from linkly.core.observability import (
    REQUEST_ID_HEADER,
    RequestContextMiddleware,
    setup_observability,
)
from linkly.core.rate_limit import limiter
from linkly.stores import SQLLinkStore

settings = get_settings()

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Open the link store on startup; release it and the GeoIP service on shutdown."""
    store = get_store()
    logger.info("Linkly starting", version=settings.app_version, store=type(store).__name__)

    # Development convenience; deployments run Alembic
    if settings.create_tables and isinstance(store, SQLLinkStore):
        await init_db(store.engine)
        logger.info("Link tables ensured")

    yield

    await get_geoip_service().close()
    await store.close()
    logger.info("Linkly stopped")


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Short links with click analytics",
    lifespan=lifespan,
)

setup_observability(app)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
register_error_handlers(app)

app.add_middleware(RequestContextMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type", REQUEST_ID_HEADER],
    expose_headers=[REQUEST_ID_HEADER],
)

app.include_router(v1_router)


@app.get("/", include_in_schema=False)
async def root() -> dict[str, str]:
    return {"service": settings.app_name, "version": settings.app_version}


# Catch-all /{short_id} goes last so it cannot shadow the routes above
app.include_router(redirect_router)
