"""Dependency injection utilities for FastAPI routes."""

from functools import lru_cache
from typing import Annotated

import structlog
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from linkly.core.config import get_settings
from linkly.core.database import build_engine, build_session_factory
from linkly.core.security import decode_access_token
from linkly.services import (
    AnalyticsAggregator,
    GeoIPService,
    IdentifierAllocator,
    LinkLifecycleManager,
    ResolutionEngine,
)
from linkly.stores import LinkStore, MemoryLinkStore, SQLLinkStore

logger = structlog.get_logger()

bearer_scheme = HTTPBearer(auto_error=False)


@lru_cache
def get_store() -> LinkStore:
    """Get the link store singleton for the configured backend."""
    settings = get_settings()
    if settings.store_backend == "memory":
        logger.info("Using in-memory link store")
        return MemoryLinkStore()

    engine = build_engine(settings.database_url, echo=settings.debug)
    logger.info("Using SQL link store", dialect=engine.dialect.name)
    return SQLLinkStore(build_session_factory(engine), engine=engine)


@lru_cache
def get_geoip_service() -> GeoIPService:
    """Get the GeoIP service singleton."""
    return GeoIPService()


StoreDep = Annotated[LinkStore, Depends(get_store)]


def get_allocator(store: StoreDep) -> IdentifierAllocator:
    settings = get_settings()
    return IdentifierAllocator(
        store,
        length=settings.short_id_length,
        max_attempts=settings.max_allocation_attempts,
    )


def get_lifecycle_manager(
    store: StoreDep,
    allocator: Annotated[IdentifierAllocator, Depends(get_allocator)],
) -> LinkLifecycleManager:
    return LinkLifecycleManager(store, allocator)


def get_resolution_engine(
    store: StoreDep,
    geoip: Annotated[GeoIPService, Depends(get_geoip_service)],
) -> ResolutionEngine:
    return ResolutionEngine(store, geoip)


def get_aggregator(store: StoreDep) -> AnalyticsAggregator:
    return AnalyticsAggregator(store)


async def get_current_owner(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
) -> str:
    """Get the owner reference of the authenticated caller.

    Raises HTTPException 401 if the bearer token is missing or invalid.
    """
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    token_data = decode_access_token(credentials.credentials)
    if token_data is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return token_data.owner_ref


# Type aliases for dependency injection
CurrentOwner = Annotated[str, Depends(get_current_owner)]
Lifecycle = Annotated[LinkLifecycleManager, Depends(get_lifecycle_manager)]
Resolver = Annotated[ResolutionEngine, Depends(get_resolution_engine)]
Aggregator = Annotated[AnalyticsAggregator, Depends(get_aggregator)]
