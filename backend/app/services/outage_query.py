"""Outage query service: read side over the group store."""

from typing import Optional

from backend.app.schemas.outages import (
    GroupSnapshot,
    OutageGroupDetail,
    OutageGroupOut,
    OutageQuery,
    OutageQueryResponse,
    Pagination,
)
from backend.app.services.group_store import GroupStore


def to_group_out(group: GroupSnapshot) -> OutageGroupOut:
    return OutageGroupOut(
        id=group.id,
        outage_type=group.event_type,
        controller_id=group.controller_id,
        start_time=str(group.start_time),
        end_time=str(group.end_time),
    )


class OutageQueryService:

    def __init__(self, store: GroupStore):
        self.store = store

    async def query_groups(self, query: OutageQuery) -> OutageQueryResponse:
        groups, total = await self.store.query_groups(query)
        return OutageQueryResponse(
            data=[to_group_out(g) for g in groups],
            pagination=Pagination(total=total, offset=query.offset, limit=query.limit),
        )

    async def get_group_detail(self, group_id: int) -> Optional[OutageGroupDetail]:
        group = await self.store.get_group(group_id)
        if group is None:
            return None
        items = await self.store.list_items(group_id)
        return OutageGroupDetail(**to_group_out(group).model_dump(), items=items)
