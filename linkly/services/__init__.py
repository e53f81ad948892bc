"""Link lifecycle services."""

from linkly.services.aggregator import AnalyticsAggregator
from linkly.services.allocator import IdentifierAllocator, generate_short_id
from linkly.services.geoip import GeoIPService, GeoLocation
from linkly.services.lifecycle import LinkLifecycleManager, validate_long_url
from linkly.services.resolver import ResolutionEngine

__all__ = [
    "AnalyticsAggregator",
    "IdentifierAllocator",
    "generate_short_id",
    "GeoIPService",
    "GeoLocation",
    "LinkLifecycleManager",
    "validate_long_url",
    "ResolutionEngine",
]
