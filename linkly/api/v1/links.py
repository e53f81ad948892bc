"""Link management and analytics endpoints."""

from typing import Annotated

import structlog
from fastapi import APIRouter, Query, Request, Response, status

from linkly.core.deps import Aggregator, CurrentOwner, Lifecycle
from linkly.core.rate_limit import RATE_LIMIT_API, RATE_LIMIT_CREATE_LINK, limiter
from linkly.schemas.analytics import AnalyticsBreakdown, AnalyticsSummary
from linkly.schemas.link import LinkCreate, LinkListResponse, LinkResponse, LinkUpdate

logger = structlog.get_logger()

router = APIRouter(prefix="/links", tags=["links"])


@router.post("", response_model=LinkResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(RATE_LIMIT_CREATE_LINK)
async def create_link(
    request: Request,
    link_data: LinkCreate,
    owner: CurrentOwner,
    lifecycle: Lifecycle,
) -> LinkResponse:
    """Create a new shortened link.

    If `custom_alias` is provided it becomes the short id; otherwise a random
    6-character id is generated.
    """
    record = await lifecycle.create(
        long_url=link_data.long_url,
        owner_ref=owner,
        custom_alias=link_data.custom_alias or None,
        expires_at=link_data.expires_at,
    )
    return LinkResponse.model_validate(record)


@router.get("", response_model=LinkListResponse)
@limiter.limit(RATE_LIMIT_API)
async def list_links(
    request: Request,
    owner: CurrentOwner,
    lifecycle: Lifecycle,
) -> LinkListResponse:
    """List all links of the current owner."""
    records = await lifecycle.list_for_owner(owner)
    return LinkListResponse(
        items=[LinkResponse.model_validate(record) for record in records],
        total=len(records),
    )


@router.get("/{short_id}", response_model=LinkResponse)
@limiter.limit(RATE_LIMIT_API)
async def get_link(
    request: Request,
    short_id: str,
    owner: CurrentOwner,
    lifecycle: Lifecycle,
) -> LinkResponse:
    """Get a specific link."""
    record = await lifecycle.get(short_id, requester=owner)
    return LinkResponse.model_validate(record)


@router.patch("/{short_id}", response_model=LinkResponse)
@limiter.limit(RATE_LIMIT_API)
async def update_link(
    request: Request,
    short_id: str,
    link_data: LinkUpdate,
    owner: CurrentOwner,
    lifecycle: Lifecycle,
) -> LinkResponse:
    """Activate or deactivate a link."""
    record = await lifecycle.set_active(short_id, link_data.is_active, requester=owner)
    return LinkResponse.model_validate(record)


@router.delete("/{short_id}", status_code=status.HTTP_204_NO_CONTENT)
@limiter.limit(RATE_LIMIT_API)
async def delete_link(
    request: Request,
    short_id: str,
    owner: CurrentOwner,
    lifecycle: Lifecycle,
) -> Response:
    """Permanently delete a link and its analytics."""
    await lifecycle.delete(short_id, requester=owner)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{short_id}/analytics", response_model=AnalyticsSummary)
@limiter.limit(RATE_LIMIT_API)
async def get_link_analytics(
    request: Request,
    short_id: str,
    owner: CurrentOwner,
    lifecycle: Lifecycle,
    aggregator: Aggregator,
) -> AnalyticsSummary:
    """Get the click count and every recorded visit of a link."""
    await lifecycle.get(short_id, requester=owner)
    return await aggregator.summarize(short_id)


@router.get("/{short_id}/analytics/breakdown", response_model=AnalyticsBreakdown)
@limiter.limit(RATE_LIMIT_API)
async def get_link_breakdown(
    request: Request,
    short_id: str,
    owner: CurrentOwner,
    lifecycle: Lifecycle,
    aggregator: Aggregator,
    top: Annotated[int, Query(ge=1, le=100)] = 10,
) -> AnalyticsBreakdown:
    """Get clicks by country, referrer and day."""
    await lifecycle.get(short_id, requester=owner)
    return await aggregator.breakdown(short_id, top_n=top)
