"""Appointment, candidate slot, and booking outcome data models."""

from datetime import datetime, timedelta
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from booking_engine.errors import RejectionReason
from booking_engine.schemas.resource_schema import ResourceKind
from booking_engine.schemas.service_schema import MAX_BUFFER_MINUTES
from booking_engine.utils import ensure_utc


class AppointmentStatus(str, Enum):
    """Lifecycle status of a stored appointment."""
    PENDING = "pending"
    SCHEDULED = "scheduled"
    CONFIRMED = "confirmed"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no_show"
    RESCHEDULED = "rescheduled"

    @property
    def blocks_calendar(self) -> bool:
        return self in ACTIVE_STATUSES


ACTIVE_STATUSES = frozenset({
    AppointmentStatus.PENDING,
    AppointmentStatus.SCHEDULED,
    AppointmentStatus.CONFIRMED,
    AppointmentStatus.IN_PROGRESS,
})


class _UtcSpan(BaseModel):
    start: datetime
    end: datetime

    @field_validator("start", "end")
    @classmethod
    def _to_utc(cls, value: datetime, info) -> datetime:
        return ensure_utc(value, info.field_name)

    @model_validator(mode="after")
    def _check_span(self):
        if self.start >= self.end:
            raise ValueError("start must be before end")
        return self


class ExistingAppointment(_UtcSpan):
    """An appointment already held by the store for one resource."""
    appointment_id: str
    resource_id: str
    resource_kind: ResourceKind
    status: AppointmentStatus = AppointmentStatus.SCHEDULED
    service_id: Optional[str] = None
    buffer_before_minutes: int = Field(default=0, ge=0, le=MAX_BUFFER_MINUTES)
    buffer_after_minutes: int = Field(default=0, ge=0, le=MAX_BUFFER_MINUTES)

    @property
    def is_active(self) -> bool:
        return self.status.blocks_calendar

    @property
    def protected_start(self) -> datetime:
        return self.start - timedelta(minutes=self.buffer_before_minutes)

    @property
    def protected_end(self) -> datetime:
        return self.end + timedelta(minutes=self.buffer_after_minutes)


class CandidateSlot(_UtcSpan):
    """A fully specified, not-yet-committed booking proposal."""
    professional_id: str
    room_id: Optional[str] = None
    service_id: str

    def resource_keys(self) -> list[tuple[str, str]]:
        keys = [(self.professional_id, ResourceKind.PROFESSIONAL.value)]
        if self.room_id is not None:
            keys.append((self.room_id, ResourceKind.ROOM.value))
        return keys


class BookingReservation(BaseModel):
    """Durable outcome of a successful commit."""
    appointment_id: str
    reservation_token: str
    professional_id: str
    room_id: Optional[str] = None
    service_id: str
    start: datetime
    end: datetime
    status: AppointmentStatus = AppointmentStatus.SCHEDULED
    versions: dict[str, int] = Field(default_factory=dict)
    created_at: datetime

    def as_appointments(self, buffer_before: int = 0, buffer_after: int = 0) -> list[ExistingAppointment]:
        """Per-resource appointment records as the store indexes them."""
        records = [
            ExistingAppointment(
                appointment_id=self.appointment_id,
                resource_id=self.professional_id,
                resource_kind=ResourceKind.PROFESSIONAL,
                start=self.start,
                end=self.end,
                status=self.status,
                service_id=self.service_id,
                buffer_before_minutes=buffer_before,
                buffer_after_minutes=buffer_after,
            )
        ]
        if self.room_id is not None:
            records.append(
                ExistingAppointment(
                    appointment_id=self.appointment_id,
                    resource_id=self.room_id,
                    resource_kind=ResourceKind.ROOM,
                    start=self.start,
                    end=self.end,
                    status=self.status,
                    service_id=self.service_id,
                    buffer_before_minutes=buffer_before,
                    buffer_after_minutes=buffer_after,
                )
            )
        return records


class BookingState(str, Enum):
    """States of a single booking attempt."""
    REQUESTED = "requested"
    VALIDATING = "validating"
    RESERVED = "reserved"
    REJECTED = "rejected"


class BookingResult(BaseModel):
    """What the booking endpoint receives for one attempt."""
    state: BookingState
    reason: Optional[RejectionReason] = None
    reservation: Optional[BookingReservation] = None
    alternatives: list[CandidateSlot] = Field(default_factory=list)
    message: str = ""

    @property
    def reserved(self) -> bool:
        return self.state == BookingState.RESERVED
