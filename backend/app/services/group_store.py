"""
Group Store - durable persistence for outage groups and items.

Every write runs in its own transaction: a group is never visible without
its first item, and an item is never visible without the boundary update
it implies.
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timedelta
from typing import AsyncIterator, List, Optional, Tuple

from sqlalchemy import and_, desc, func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from backend.app.core.exceptions import (
    DuplicateOccurrenceError,
    GroupConsistencyError,
    OutageStoreError,
)
from backend.app.core.timeutil import from_epoch, to_epoch
from backend.app.models.outage_orm import OutageGroupORM, OutageItemORM
from backend.app.schemas.outages import GroupSnapshot, OutageItemSnapshot, OutageQuery

logger = logging.getLogger(__name__)

# Gap tolerance between an event and either boundary of a group
DEFAULT_MERGE_WINDOW = timedelta(minutes=60)


def to_snapshot(orm_obj: OutageGroupORM) -> GroupSnapshot:
    return GroupSnapshot(
        id=int(orm_obj.id),
        event_type=orm_obj.event_type,
        controller_id=orm_obj.controller_id,
        start_time=to_epoch(orm_obj.start_time),
        end_time=to_epoch(orm_obj.end_time),
        created_at=to_epoch(orm_obj.created_at) if orm_obj.created_at else None,
        updated_at=to_epoch(orm_obj.updated_at) if orm_obj.updated_at else None,
    )


class GroupStore:
    """Repository for outage group and item records."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        merge_window: timedelta = DEFAULT_MERGE_WINDOW,
    ):
        self.session_factory = session_factory
        self.merge_window = merge_window

    @asynccontextmanager
    async def _transaction(self) -> AsyncIterator[AsyncSession]:
        async with self.session_factory() as session:
            try:
                yield session
                await session.commit()
            except IntegrityError as e:
                await session.rollback()
                raise DuplicateOccurrenceError(f"Constraint violated: {e.orig}") from e
            except SQLAlchemyError as e:
                await session.rollback()
                raise OutageStoreError(f"Outage store write failed: {e}") from e
            except Exception:
                await session.rollback()
                raise

    @asynccontextmanager
    async def _read(self) -> AsyncIterator[AsyncSession]:
        async with self.session_factory() as session:
            try:
                yield session
            except SQLAlchemyError as e:
                raise OutageStoreError(f"Outage store read failed: {e}") from e

    async def find_active_group(
        self,
        controller_id: str,
        event_type: str,
        timestamp: int,
    ) -> Optional[GroupSnapshot]:
        """
        Most recently ended group whose window, widened by the merge tolerance,
        contains ``timestamp``.

        Equivalent to ``start - W <= t <= end + W``, written against the
        columns so idx_time_event_controller can serve the range scan.
        """
        event_time = from_epoch(timestamp)
        range_start = event_time - self.merge_window
        range_end = event_time + self.merge_window

        async with self._read() as session:
            result = await session.execute(
                select(OutageGroupORM)
                .where(
                    and_(
                        OutageGroupORM.controller_id == controller_id,
                        OutageGroupORM.event_type == event_type,
                        OutageGroupORM.start_time <= range_end,
                        OutageGroupORM.end_time >= range_start,
                    )
                )
                .order_by(desc(OutageGroupORM.end_time), desc(OutageGroupORM.id))
                .limit(1)
            )
            orm_obj = result.scalars().first()

        return to_snapshot(orm_obj) if orm_obj is not None else None

    async def create_group_with_first_item(
        self,
        controller_id: str,
        event_type: str,
        occurrence_time: int,
    ) -> GroupSnapshot:
        """Insert a group spanning a single instant together with its first item."""
        occurred_at = from_epoch(occurrence_time)

        async with self._transaction() as session:
            group = OutageGroupORM(
                event_type=event_type,
                controller_id=controller_id,
                start_time=occurred_at,
                end_time=occurred_at,
            )
            session.add(group)
            await session.flush()

            session.add(OutageItemORM(group_id=group.id, occurrence_time=occurred_at))
            await session.flush()
            await session.refresh(group)
            snapshot = to_snapshot(group)

        logger.debug(f"Outage group {snapshot.id} created for {controller_id}/{event_type}")
        return snapshot

    async def append_item_and_extend_boundary(
        self,
        group_id: int,
        occurrence_time: int,
    ) -> GroupSnapshot:
        """
        Record one occurrence and widen the group to cover it.

        The new bounds come from the stored item extremes, not from the
        incoming timestamp, so late arrivals give the same result as a full
        recomputation.
        """
        async with self._transaction() as session:
            group = await session.get(OutageGroupORM, group_id, with_for_update=True)
            if group is None:
                raise GroupConsistencyError(f"Outage group {group_id} not found during merge")

            session.add(OutageItemORM(group_id=group_id, occurrence_time=from_epoch(occurrence_time)))
            await session.flush()

            first_seen, last_seen = (
                await session.execute(
                    select(
                        func.min(OutageItemORM.occurrence_time),
                        func.max(OutageItemORM.occurrence_time),
                    ).where(OutageItemORM.group_id == group_id)
                )
            ).one()
            if first_seen is None or last_seen is None:
                raise GroupConsistencyError(
                    f"No items found for outage group {group_id} after insert"
                )

            self._extend_boundary(group, first_seen, last_seen)
            await session.flush()
            await session.refresh(group)
            snapshot = to_snapshot(group)

        return snapshot

    @staticmethod
    def _extend_boundary(group: OutageGroupORM, first_seen: datetime, last_seen: datetime) -> None:
        # Bounds only ever widen.
        start = min(to_epoch(group.start_time), to_epoch(first_seen))
        end = max(to_epoch(group.end_time), to_epoch(last_seen))
        if start != to_epoch(group.start_time):
            group.start_time = from_epoch(start)
        if end != to_epoch(group.end_time):
            group.end_time = from_epoch(end)

    async def get_group(self, group_id: int) -> Optional[GroupSnapshot]:
        async with self._read() as session:
            orm_obj = await session.get(OutageGroupORM, group_id)
        return to_snapshot(orm_obj) if orm_obj is not None else None

    async def list_items(self, group_id: int) -> List[OutageItemSnapshot]:
        async with self._read() as session:
            result = await session.execute(
                select(OutageItemORM)
                .where(OutageItemORM.group_id == group_id)
                .order_by(OutageItemORM.occurrence_time)
            )
            items = result.scalars().all()

        return [
            OutageItemSnapshot(
                id=int(item.id),
                group_id=int(item.group_id),
                occurrence_time=to_epoch(item.occurrence_time),
            )
            for item in items
        ]

    async def query_groups(self, query: OutageQuery) -> Tuple[List[GroupSnapshot], int]:
        """Page of groups overlapping the query window plus the unpaginated count."""
        conditions = [
            OutageGroupORM.event_type == query.outage_type.value,
            OutageGroupORM.start_time <= from_epoch(query.end_time),
            OutageGroupORM.end_time >= from_epoch(query.start_time),
        ]
        if query.controller_id:
            conditions.append(OutageGroupORM.controller_id == query.controller_id)

        async with self._read() as session:
            result = await session.execute(
                select(OutageGroupORM)
                .where(and_(*conditions))
                .order_by(desc(OutageGroupORM.start_time), desc(OutageGroupORM.id))
                .offset(query.offset)
                .limit(query.limit)
            )
            groups = result.scalars().all()

            total = await session.scalar(
                select(func.count()).select_from(OutageGroupORM).where(and_(*conditions))
            )

        return [to_snapshot(g) for g in groups], int(total or 0)
