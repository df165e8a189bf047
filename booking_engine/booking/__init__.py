from booking_engine.booking.conflicts import ConflictReport, find_conflicts, has_conflict
from booking_engine.booking.coordinator import BookingCoordinator
from booking_engine.booking.state_machine import (
    BookingStateMachine,
    BookingTrigger,
    InvalidTransitionError,
)

__all__ = [
    "BookingCoordinator",
    "BookingStateMachine",
    "BookingTrigger",
    "ConflictReport",
    "InvalidTransitionError",
    "find_conflicts",
    "has_conflict",
]
