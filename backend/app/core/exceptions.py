"""
Error taxonomy for the aggregation service.

Store, cache and consistency failures are kept apart so the HTTP layer
(and operators reading the logs) can tell "store unavailable" from
"cache degraded" from "the state machine broke an invariant".
"""


class OutageServiceError(Exception):
    """Base class for all service errors."""
    pass


class RequestRejectedError(OutageServiceError):
    """Raised when a request fails validation before reaching the engine."""
    pass


class InvalidEventTypeError(OutageServiceError, ValueError):
    """Raised when an event type outside the enumeration reaches the engine."""
    pass


class OutageStoreError(OutageServiceError):
    """Durable store failure (connectivity, constraint violation, rollback)."""
    pass


class DuplicateOccurrenceError(OutageStoreError):
    """The (group, occurrence_time) pair already exists."""
    pass


class CacheError(OutageServiceError):
    """Cache write failed after the durable write was committed."""
    pass


class GroupConsistencyError(OutageServiceError):
    """An internal invariant was violated (e.g. item missing right after insert)."""
    pass
