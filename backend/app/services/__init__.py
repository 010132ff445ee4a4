"""Services package."""

from backend.app.services.aggregation_engine import AggregationEngine
from backend.app.services.group_cache import ActiveGroupCache
from backend.app.services.group_store import GroupStore
from backend.app.services.outage_query import OutageQueryService

__all__ = [
    "AggregationEngine",
    "ActiveGroupCache",
    "GroupStore",
    "OutageQueryService",
]
