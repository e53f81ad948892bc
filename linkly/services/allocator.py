"""Short identifier allocation: random ids and custom aliases."""

import re
import secrets
import string

import structlog

from linkly.core.exceptions import (
    AliasConflictError,
    AllocationExhaustedError,
    InvalidAliasError,
)
from linkly.core.observability import record_allocation_collision
from linkly.stores.base import LinkStore

logger = structlog.get_logger()

# URL-safe alphabet (same 64 characters as nanoid)
SHORT_ID_CHARS = string.ascii_letters + string.digits + "_-"
SHORT_ID_LENGTH = 6
MAX_ALIAS_LENGTH = 32
ALIAS_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")

# First path segments already routed by the application
RESERVED_ALIASES = frozenset({"api", "preview", "health", "metrics", "docs", "redoc", "openapi.json"})


def generate_short_id(length: int = SHORT_ID_LENGTH) -> str:
    """Generate a random short id from the URL-safe alphabet."""
    return "".join(secrets.choice(SHORT_ID_CHARS) for _ in range(length))


def validate_alias(alias: str) -> None:
    """Raise InvalidAliasError unless ``alias`` can be used as a path segment."""
    if not alias:
        raise InvalidAliasError(alias, "alias cannot be empty")
    if len(alias) > MAX_ALIAS_LENGTH:
        raise InvalidAliasError(alias, f"alias is longer than {MAX_ALIAS_LENGTH} characters")
    if not ALIAS_PATTERN.match(alias):
        raise InvalidAliasError(alias, "only letters, digits, '-' and '_' are allowed")
    if alias.lower() in RESERVED_ALIASES:
        raise InvalidAliasError(alias, "alias is reserved")


class IdentifierAllocator:
    """Hands out short ids that are not yet used by any stored link."""

    def __init__(
        self,
        store: LinkStore,
        length: int = SHORT_ID_LENGTH,
        max_attempts: int = 10,
    ):
        self._store = store
        self.length = length
        self.max_attempts = max_attempts

    async def is_available(self, short_id: str) -> bool:
        """Check if a short id is free both as an id and as an alias."""
        if await self._store.find_by_short_id(short_id) is not None:
            return False
        return await self._store.find_by_alias(short_id) is None

    async def allocate(self, custom_alias: str | None = None) -> str:
        """Return a free short id.

        A custom alias is validated and returned unchanged if it is free.
        Otherwise a random id is generated, retrying on collision up to
        ``max_attempts`` times.
        """
        if custom_alias is not None:
            validate_alias(custom_alias)
            if not await self.is_available(custom_alias):
                raise AliasConflictError(custom_alias)
            return custom_alias

        for attempt in range(1, self.max_attempts + 1):
            short_id = generate_short_id(self.length)
            if await self.is_available(short_id):
                return short_id
            record_allocation_collision()
            logger.info("Short id collision", short_id=short_id, attempt=attempt)

        raise AllocationExhaustedError(self.max_attempts)
