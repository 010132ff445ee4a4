"""
Request-scoped service construction.

Client handles live on ``app.state`` (set by the lifespan, or by tests);
services are cheap wrappers built per request from them.
"""
from datetime import timedelta

from fastapi import Depends, Request

from backend.app.core.config import get_settings
from backend.app.services.aggregation_engine import AggregationEngine
from backend.app.services.group_cache import ActiveGroupCache
from backend.app.services.group_store import GroupStore
from backend.app.services.outage_query import OutageQueryService


def get_group_store(request: Request) -> GroupStore:
    settings = get_settings()
    return GroupStore(
        request.app.state.session_maker,
        merge_window=timedelta(minutes=settings.merge_window_minutes),
    )


def get_group_cache(request: Request) -> ActiveGroupCache:
    settings = get_settings()
    return ActiveGroupCache(
        getattr(request.app.state, "redis_client", None),
        ttl_seconds=settings.cache_ttl_seconds,
    )


def get_aggregation_engine(
    store: GroupStore = Depends(get_group_store),
    cache: ActiveGroupCache = Depends(get_group_cache),
) -> AggregationEngine:
    settings = get_settings()
    return AggregationEngine(
        store,
        cache,
        merge_window=timedelta(minutes=settings.merge_window_minutes),
    )


def get_outage_query_service(store: GroupStore = Depends(get_group_store)) -> OutageQueryService:
    return OutageQueryService(store)
