"""Per-client rate limits (slowapi) and client IP extraction."""

from slowapi import Limiter
from slowapi.util import get_remote_address
from starlette.requests import Request

from linkly.core.config import get_settings

settings = get_settings()

# Header name, and whether the value may be a comma-separated proxy chain
PROXY_IP_HEADERS = (("X-Forwarded-For", True), ("X-Real-IP", False))


def get_real_client_ip(request: Request) -> str:
    """Address of the visitor behind any reverse proxies.

    Used both as the rate-limit key and as the ``source_ip`` of recorded
    clicks. The first entry of X-Forwarded-For is the original client.
    """
    for header, is_chain in PROXY_IP_HEADERS:
        value = request.headers.get(header)
        if not value:
            continue
        candidate = value.split(",")[0] if is_chain else value
        if candidate.strip():
            return candidate.strip()
    return get_remote_address(request)


limiter = Limiter(
    key_func=get_real_client_ip,
    storage_uri=settings.rate_limit_storage_uri,  # memory:// or redis://host:6379
    strategy="moving-window",
    enabled=settings.rate_limit_enabled,
)

RATE_LIMIT_REDIRECT = "1000/minute"
RATE_LIMIT_CREATE_LINK = "60/hour"
RATE_LIMIT_API = "100/minute"
