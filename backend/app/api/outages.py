"""
Outage Query API Router.

Lists outage groups overlapping a time window, newest first.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from backend.app.api.deps import get_outage_query_service
from backend.app.core.config import get_settings
from backend.app.core.exceptions import RequestRejectedError
from backend.app.schemas.outages import (
    OutageEventType,
    OutageGroupDetail,
    OutageQuery,
    OutageQueryResponse,
    check_timestamp,
)
from backend.app.services.outage_query import OutageQueryService

logger = logging.getLogger(__name__)
router = APIRouter()

# Largest OFFSET the SQL backends accept (signed 64-bit)
MAX_OFFSET = 2**63 - 1


def outage_query_params(
    outage_type: OutageEventType = Query(..., description="Outage category"),
    start_time: int = Query(..., description="Window start, unix seconds"),
    end_time: int = Query(..., description="Window end, unix seconds"),
    controller_id: Optional[str] = Query(default=None),
    offset: Optional[int] = Query(default=None),
    limit: Optional[int] = Query(default=None),
) -> OutageQuery:
    settings = get_settings()
    try:
        check_timestamp(start_time, "start_time")
        check_timestamp(end_time, "end_time")
    except ValueError as e:
        raise RequestRejectedError(str(e)) from e

    if start_time > end_time:
        raise RequestRejectedError("start_time cannot be greater than end_time")
    if controller_id is not None and not controller_id.strip():
        raise RequestRejectedError("controller_id cannot be empty")
    if offset is not None and offset < 0:
        raise RequestRejectedError("offset must be a non-negative integer")
    if offset is not None and offset > MAX_OFFSET:
        raise RequestRejectedError(f"offset must not exceed {MAX_OFFSET}")
    if limit is not None and limit <= 0:
        raise RequestRejectedError("limit must be a positive integer")

    return OutageQuery(
        outage_type=outage_type,
        controller_id=controller_id,
        start_time=start_time,
        end_time=end_time,
        offset=offset or 0,
        limit=min(limit or settings.default_page_size, settings.max_page_size),
    )


@router.get("", response_model=OutageQueryResponse)
async def query_outage_groups(
    query: OutageQuery = Depends(outage_query_params),
    service: OutageQueryService = Depends(get_outage_query_service),
):
    """Groups whose [start_time, end_time] overlaps the requested window."""
    logger.debug(
        f"Outage query: type={query.outage_type.value}, window=[{query.start_time}, {query.end_time}], "
        f"offset={query.offset}, limit={query.limit}"
    )
    return await service.query_groups(query)


@router.get("/{group_id}", response_model=OutageGroupDetail)
async def get_outage_group(
    group_id: int,
    service: OutageQueryService = Depends(get_outage_query_service),
):
    """Single group with its recorded occurrences."""
    detail = await service.get_group_detail(group_id)
    if detail is None:
        raise HTTPException(status_code=404, detail=f"Outage group {group_id} not found")
    return detail
