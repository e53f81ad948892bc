"""Link store implementations."""

from linkly.stores.base import LinkStore
from linkly.stores.memory import MemoryLinkStore
from linkly.stores.sql import SQLLinkStore

__all__ = ["LinkStore", "MemoryLinkStore", "SQLLinkStore"]
