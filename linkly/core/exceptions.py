"""Error outcomes of the link lifecycle.

Every failure of a link operation is raised as a subclass of ``LinkError``.
The ``error`` attribute is a stable machine-readable code that the HTTP layer
returns alongside the status code.
"""


class LinkError(Exception):
    """Base class for all link lifecycle errors."""

    error = "link_error"

    def __init__(self, message: str, short_id: str | None = None):
        super().__init__(message)
        self.message = message
        self.short_id = short_id


class InvalidUrlError(LinkError):
    """The long URL is not an absolute HTTP(S) URL."""

    error = "invalid_url"

    def __init__(self, url: str):
        super().__init__(f"Invalid URL: {url!r}")
        self.url = url


class InvalidAliasError(LinkError):
    """The custom alias is empty, unsafe in a URL path, or reserved."""

    error = "invalid_alias"

    def __init__(self, alias: str, reason: str):
        super().__init__(f"Invalid custom alias {alias!r}: {reason}", short_id=alias)
        self.reason = reason


class AliasConflictError(LinkError):
    """The custom alias is already taken."""

    error = "alias_conflict"

    def __init__(self, alias: str):
        super().__init__(f"Custom alias '{alias}' is already taken", short_id=alias)


class AllocationExhaustedError(LinkError):
    """No free short identifier was found within the attempt budget."""

    error = "allocation_exhausted"

    def __init__(self, attempts: int):
        super().__init__(f"Unable to generate a unique short id after {attempts} attempts")
        self.attempts = attempts


class LinkNotFoundError(LinkError):
    error = "not_found"

    def __init__(self, short_id: str):
        super().__init__("Link not found", short_id=short_id)


class LinkInactiveError(LinkError):
    error = "inactive"

    def __init__(self, short_id: str):
        super().__init__("Link is inactive", short_id=short_id)


class LinkExpiredError(LinkError):
    error = "expired"

    def __init__(self, short_id: str):
        super().__init__("Link has expired", short_id=short_id)


class StorageError(LinkError):
    """The link store failed (connection loss, timeout, driver error)."""

    error = "storage_error"


class DuplicateKeyError(StorageError):
    """An insert violated the uniqueness of ``short_id`` or ``custom_alias``."""

    error = "duplicate_key"

    def __init__(self, short_id: str):
        super().__init__(f"Short id '{short_id}' already exists", short_id=short_id)
