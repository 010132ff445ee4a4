"""
Outage Event Ingestion Endpoint.

Accepts outage events from field controllers and routes each one through
the aggregation engine synchronously: the response reports which group the
event landed in.
"""
import logging

from fastapi import APIRouter, Depends, status

from backend.app.api.deps import get_aggregation_engine
from backend.app.core.logging import bind_outage_context
from backend.app.schemas.outages import OutageEventRequest, ProcessEventResponse
from backend.app.services.aggregation_engine import AggregationEngine

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/data-process",
    response_model=ProcessEventResponse,
    status_code=status.HTTP_200_OK,
    summary="Process outage event",
    description="Aggregate an outage event into an existing or new outage group",
)
async def process_data(
    request: OutageEventRequest,
    engine: AggregationEngine = Depends(get_aggregation_engine),
) -> ProcessEventResponse:
    """
    Process:
    1. Validate request schema (400 on failure)
    2. Probe the active-group cache, then the store
    3. Merge into the matching group or create a new one

    Raises:
        400: If request validation fails
        409: If the same occurrence was already recorded for the group
        503: If the store is unavailable, or the cache could not be refreshed
             after the event was committed
    """
    bind_outage_context(request.controller_id, request.event_type.value)
    logger.debug(f"Outage event received at {request.timestamp}")

    result = await engine.process_event(
        controller_id=request.controller_id,
        event_type=request.event_type,
        timestamp=request.timestamp,
    )
    return ProcessEventResponse(data=result)
