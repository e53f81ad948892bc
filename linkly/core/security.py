"""Bearer token handling.

Tokens are issued by the external auth service. This service only verifies
them and uses the ``sub`` claim as the opaque owner reference of links.
"""

from datetime import datetime, timedelta, timezone
from typing import Any

from jose import JWTError, jwt
from pydantic import BaseModel

from linkly.core.config import get_settings

ACCESS_TOKEN_EXPIRE_MINUTES = 60 * 24 * 7  # 7 days


class TokenData(BaseModel):
    """Data encoded in JWT token."""

    owner_ref: str
    exp: datetime | None = None


def create_access_token(owner_ref: str, expires_delta: timedelta | None = None) -> str:
    """Create a JWT access token for ``owner_ref``.

    Used by tooling and tests; production tokens come from the auth service.
    """
    settings = get_settings()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode: dict[str, Any] = {"sub": owner_ref, "exp": expire}
    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> TokenData | None:
    """Decode and validate a JWT access token.

    Returns:
        TokenData if valid, None if invalid or expired
    """
    settings = get_settings()
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError:
        return None

    owner_ref = payload.get("sub")
    if not owner_ref:
        return None

    exp = payload.get("exp")
    return TokenData(
        owner_ref=str(owner_ref),
        exp=datetime.fromtimestamp(exp, tz=timezone.utc) if exp else None,
    )
