"""
Outage aggregation schemas and enums.

Shared contract used by the data-process endpoint, the aggregation engine,
the active-group cache and the outage query endpoint.
"""
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, StrictStr, field_validator

# 2000-01-01 .. 2100-01-01
MIN_TIMESTAMP = 946684800
MAX_TIMESTAMP = 4102444800


class OutageEventType(str, Enum):
    PANEL_OUTAGE = "panel_outage"
    TEMPERATURE_OUTAGE = "temperature_outage"
    LED_OUTAGE = "led_outage"

    @classmethod
    def allowed(cls) -> str:
        return ", ".join(member.value for member in cls)


class ProcessAction(str, Enum):
    """Outcome of routing one event through the aggregation engine."""
    CREATED_NEW_GROUP = "created_new_group"
    ADDED_TO_CACHED_GROUP = "added_to_cached_group"
    ADDED_TO_DB_GROUP = "added_to_db_group"


def check_timestamp(value: int, field_name: str) -> int:
    if value < 0:
        raise ValueError(f"{field_name} must be a valid unix timestamp (positive integer)")
    if value < MIN_TIMESTAMP or value > MAX_TIMESTAMP:
        raise ValueError(
            f"{field_name} is out of valid range (must be between 2000-01-01 and 2100-01-01)"
        )
    return value


class OutageEventRequest(BaseModel):
    """Inbound outage event reported by a field controller."""

    controller_id: StrictStr = Field(description="Reporting controller identifier")
    event_type: OutageEventType = Field(description="Outage category")
    timestamp: int = Field(description="Occurrence time, unix seconds")

    @field_validator("controller_id")
    @classmethod
    def _controller_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("controller_id cannot be empty")
        return value

    @field_validator("timestamp")
    @classmethod
    def _timestamp_in_range(cls, value: int) -> int:
        return check_timestamp(value, "timestamp")


class GroupSnapshot(BaseModel):
    """
    Denormalised view of one outage group.

    Returned by the store and stored as JSON in the active-group cache.
    Times are unix seconds.
    """
    id: int
    event_type: OutageEventType
    controller_id: str
    start_time: int
    end_time: int
    created_at: Optional[int] = None
    updated_at: Optional[int] = None


class OutageItemSnapshot(BaseModel):
    id: int
    group_id: int
    occurrence_time: int


class ProcessResult(BaseModel):
    success: bool = True
    action: ProcessAction
    group_id: int


class ProcessEventResponse(BaseModel):
    success: bool = True
    message: str = "Event processed successfully"
    data: ProcessResult


class OutageQuery(BaseModel):
    """Filter and page for the read side."""
    outage_type: OutageEventType
    controller_id: Optional[str] = None
    start_time: int
    end_time: int
    offset: int = 0
    limit: int = 20


class OutageGroupOut(BaseModel):
    id: int
    outage_type: OutageEventType
    controller_id: str
    start_time: str
    end_time: str


class Pagination(BaseModel):
    total: int
    offset: int
    limit: int


class OutageQueryResponse(BaseModel):
    data: List[OutageGroupOut]
    pagination: Pagination


class OutageGroupDetail(OutageGroupOut):
    """One group with the occurrences that shaped its boundaries."""
    items: List[OutageItemSnapshot] = Field(default_factory=list)
