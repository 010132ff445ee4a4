"""
Outage Aggregation Engine.

Routes each incoming outage event to the group it belongs to:

1. Cache probe   - the active group for (controller, type) admits the event.
2. Store probe   - the most recently ended stored group admits the event.
3. Create        - nothing admits it; start a new group.

The probe sequence produces a tagged decision (CachedMerge | StoreMerge |
CreateGroup) and a single dispatcher performs the writes. No step holds a
lock across the sequence: two racing first events for one key may create two
overlapping groups, and the next event converges on the most recently ended
one through the store probe.
"""
import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Union

from backend.app.core.exceptions import InvalidEventTypeError
from backend.app.schemas.outages import GroupSnapshot, OutageEventType, ProcessAction, ProcessResult
from backend.app.services.group_cache import ActiveGroupCache
from backend.app.services.group_store import DEFAULT_MERGE_WINDOW, GroupStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CachedMerge:
    group: GroupSnapshot


@dataclass(frozen=True)
class StoreMerge:
    group: GroupSnapshot


@dataclass(frozen=True)
class CreateGroup:
    controller_id: str
    event_type: str


Decision = Union[CachedMerge, StoreMerge, CreateGroup]


def event_in_window(group: GroupSnapshot, timestamp: int, window: timedelta) -> bool:
    """
    True iff ``start - W <= timestamp <= end + W``.

    A gap tolerance, not a containment test: the event may fall outside
    [start, end] and still extend the group.
    """
    tolerance = int(window.total_seconds())
    return group.start_time - tolerance <= timestamp <= group.end_time + tolerance


def normalize_event_type(event_type: Union[str, OutageEventType]) -> str:
    try:
        return OutageEventType(event_type).value
    except ValueError as e:
        raise InvalidEventTypeError(
            f"Unknown event type {event_type!r}; expected one of: {OutageEventType.allowed()}"
        ) from e


class AggregationEngine:
    """Sole writer of outage groups and items; keeps the cache behind the store."""

    def __init__(
        self,
        store: GroupStore,
        cache: ActiveGroupCache,
        merge_window: timedelta = DEFAULT_MERGE_WINDOW,
    ):
        self.store = store
        self.cache = cache
        self.merge_window = merge_window

    async def decide(self, controller_id: str, event_type: str, timestamp: int) -> Decision:
        cached = await self.cache.get(controller_id, event_type)
        if cached is not None and event_in_window(cached, timestamp, self.merge_window):
            return CachedMerge(cached)

        stored = await self.store.find_active_group(controller_id, event_type, timestamp)
        if stored is not None:
            return StoreMerge(stored)

        return CreateGroup(controller_id, event_type)

    async def process_event(
        self,
        controller_id: str,
        event_type: Union[str, OutageEventType],
        timestamp: int,
    ) -> ProcessResult:
        event_type = normalize_event_type(event_type)
        decision = await self.decide(controller_id, event_type, timestamp)

        if isinstance(decision, CachedMerge):
            await self.add_event_to_group(decision.group, timestamp)
            action, group_id = ProcessAction.ADDED_TO_CACHED_GROUP, decision.group.id
        elif isinstance(decision, StoreMerge):
            await self.add_event_to_group(decision.group, timestamp)
            action, group_id = ProcessAction.ADDED_TO_DB_GROUP, decision.group.id
        elif isinstance(decision, CreateGroup):
            created = await self.create_new_group(decision.controller_id, decision.event_type, timestamp)
            action, group_id = ProcessAction.CREATED_NEW_GROUP, created.id
        else:
            raise TypeError(f"Unhandled aggregation decision: {decision!r}")

        logger.info(
            f"Outage event processed: action={action.value}, group_id={group_id}, "
            f"controller={controller_id}, type={event_type}",
            extra={"extra_data": {"action": action.value, "group_id": group_id}},
        )
        return ProcessResult(action=action, group_id=group_id)

    async def add_event_to_group(self, group: GroupSnapshot, timestamp: int) -> GroupSnapshot:
        """
        Merge one occurrence into ``group`` and refresh its cache entry.

        The cache is written only after the store commits; the refreshed entry
        keeps the pre-update snapshot's fields and takes the boundaries from
        the store.
        """
        updated = await self.store.append_item_and_extend_boundary(group.id, timestamp)

        to_cache = group.model_copy(update={
            "start_time": updated.start_time,
            "end_time": updated.end_time,
            "updated_at": updated.updated_at,
        })
        await self.cache.set(group.controller_id, group.event_type.value, to_cache)
        return updated

    async def create_new_group(self, controller_id: str, event_type: str, timestamp: int) -> GroupSnapshot:
        """Persist a single-instant group with its first item, then cache it."""
        created = await self.store.create_group_with_first_item(controller_id, event_type, timestamp)
        await self.cache.set(controller_id, event_type, created)
        return created
