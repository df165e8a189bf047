from booking_engine.engine import BookingEngine
from booking_engine.errors import (
    BookingEngineError,
    CommitConflictError,
    RejectionReason,
    ResourceNotFoundError,
    UpstreamUnavailableError,
)
from booking_engine.utils import DateRange

__all__ = [
    "BookingEngine",
    "BookingEngineError",
    "CommitConflictError",
    "DateRange",
    "RejectionReason",
    "ResourceNotFoundError",
    "UpstreamUnavailableError",
]
