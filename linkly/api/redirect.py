"""Redirect and preview endpoints for short links."""

from html import escape

import structlog
from fastapi import APIRouter, Request, status
from fastapi.responses import HTMLResponse, RedirectResponse

from linkly.core.deps import Lifecycle, Resolver
from linkly.core.rate_limit import RATE_LIMIT_API, RATE_LIMIT_REDIRECT, get_real_client_ip, limiter
from linkly.schemas.link import RequestContext

logger = structlog.get_logger()

router = APIRouter(tags=["redirect"])

PREVIEW_TEMPLATE = """<!DOCTYPE html>
<html>
  <head>
    <meta charset="utf-8">
    <title>Preview - {url}</title>
    <style>
      body {{ font-family: Arial, sans-serif; max-width: 800px; margin: 40px auto; padding: 20px; }}
      .preview {{ background: #f5f5f5; padding: 20px; border-radius: 8px; word-break: break-all; }}
      .button {{ background: #007bff; color: white; padding: 10px 20px; text-decoration: none; border-radius: 4px; }}
    </style>
  </head>
  <body>
    <div class="preview">
      <h2>You are about to visit:</h2>
      <p>{url}</p>
      <a href="{url}" class="button">Continue to site</a>
    </div>
  </body>
</html>
"""


@router.get("/preview/{short_id}", response_class=HTMLResponse)
@limiter.limit(RATE_LIMIT_API)
async def preview_link(
    request: Request,
    short_id: str,
    lifecycle: Lifecycle,
) -> HTMLResponse:
    """Show where a short link points without following it or counting a click."""
    record = await lifecycle.get(short_id)
    return HTMLResponse(PREVIEW_TEMPLATE.format(url=escape(record.long_url, quote=True)))


@router.get("/{short_id}")
@limiter.limit(RATE_LIMIT_REDIRECT)
async def redirect_to_long_url(
    request: Request,
    short_id: str,
    resolver: Resolver,
) -> RedirectResponse:
    """Redirect a short id to its long URL, recording the visit first.

    Missing and inactive links give 404, expired links 410. If the visit
    cannot be stored the caller gets 503 instead of a redirect.
    """
    context = RequestContext(
        source_ip=get_real_client_ip(request),
        user_agent=request.headers.get("User-Agent"),
        referrer=request.headers.get("Referer"),
    )
    target = await resolver.resolve(short_id, context)

    logger.info("Redirect", short_id=short_id)
    return RedirectResponse(url=target.long_url, status_code=status.HTTP_302_FOUND)
