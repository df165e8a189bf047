from booking_engine.schemas.appointment_schema import (
    ACTIVE_STATUSES,
    AppointmentStatus,
    BookingReservation,
    BookingResult,
    BookingState,
    CandidateSlot,
    ExistingAppointment,
)
from booking_engine.schemas.resource_schema import (
    ExclusionWindow,
    Resource,
    ResourceKind,
    RoomStatus,
    RoomType,
    WeeklyTemplate,
    WeeklyTemplateEntry,
)
from booking_engine.schemas.service_schema import DeliveryMode, ServiceConstraints

__all__ = [
    "ACTIVE_STATUSES",
    "AppointmentStatus",
    "BookingReservation",
    "BookingResult",
    "BookingState",
    "CandidateSlot",
    "DeliveryMode",
    "ExclusionWindow",
    "ExistingAppointment",
    "Resource",
    "ResourceKind",
    "RoomStatus",
    "RoomType",
    "ServiceConstraints",
    "WeeklyTemplate",
    "WeeklyTemplateEntry",
]
