"""Service booking rules."""

from datetime import timedelta
from enum import Enum

from pydantic import BaseModel, Field

from booking_engine.schemas.resource_schema import RoomType

# Buffers on either side of a session, for services and stored appointments alike.
MAX_BUFFER_MINUTES = 120


class DeliveryMode(str, Enum):
    """How a service is delivered, which decides the room types it may use."""
    IN_PERSON = "in_person"
    ONLINE = "online"
    HYBRID = "hybrid"

    def allows_room_type(self, room_type: RoomType) -> bool:
        if self == DeliveryMode.HYBRID:
            return True
        if self == DeliveryMode.ONLINE:
            return room_type == RoomType.VIRTUAL
        return room_type == RoomType.PHYSICAL


class ServiceConstraints(BaseModel):
    """Per-service booking rules consulted by the evaluator and slot generator."""
    service_id: str
    name: str = ""
    duration_minutes: int = Field(ge=15, le=480)
    buffer_before_minutes: int = Field(default=0, ge=0, le=MAX_BUFFER_MINUTES)
    buffer_after_minutes: int = Field(default=0, ge=0, le=MAX_BUFFER_MINUTES)
    min_advance_booking_hours: float = Field(default=2, ge=0, le=168)
    max_advance_booking_days: int = Field(default=30, ge=1, le=365)
    allow_same_day_booking: bool = True
    max_concurrent_bookings: int = Field(default=1, ge=1, le=10)
    eligible_professional_ids: list[str] = Field(default_factory=list)
    eligible_room_ids: list[str] = Field(default_factory=list)
    delivery_mode: DeliveryMode = DeliveryMode.IN_PERSON
    requires_room: bool = True
    is_active: bool = True

    @property
    def duration(self) -> timedelta:
        return timedelta(minutes=self.duration_minutes)

    @property
    def buffer_before(self) -> timedelta:
        return timedelta(minutes=self.buffer_before_minutes)

    @property
    def buffer_after(self) -> timedelta:
        return timedelta(minutes=self.buffer_after_minutes)

    def professional_eligible(self, professional_id: str) -> bool:
        return not self.eligible_professional_ids or professional_id in self.eligible_professional_ids

    def room_eligible(self, room_id: str) -> bool:
        return not self.eligible_room_ids or room_id in self.eligible_room_ids
