"""Bookable resource data models: weekly templates, exclusions, professionals and rooms."""

from datetime import date, time
from enum import Enum
from typing import Optional

import pytz
from pydantic import BaseModel, Field, field_validator, model_validator

from booking_engine.config import settings
from booking_engine.utils import parse_clock_time


class ResourceKind(str, Enum):
    """The two bookable entity kinds."""
    PROFESSIONAL = "professional"
    ROOM = "room"


class RoomType(str, Enum):
    PHYSICAL = "physical"
    VIRTUAL = "virtual"


class RoomStatus(str, Enum):
    """Operational status of a room."""
    AVAILABLE = "available"
    OCCUPIED = "occupied"
    MAINTENANCE = "maintenance"
    OUT_OF_ORDER = "out_of_order"


class WeeklyTemplateEntry(BaseModel):
    """Opening hours for one day of the week (0 = Sunday ... 6 = Saturday)."""
    day_of_week: int = Field(ge=0, le=6)
    start_time: time
    end_time: time
    is_open: bool = True

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def _parse_time(cls, value):
        if isinstance(value, str):
            return parse_clock_time(value)
        return value

    @model_validator(mode="after")
    def _check_order(self) -> "WeeklyTemplateEntry":
        if self.is_open and self.start_time >= self.end_time:
            raise ValueError(
                f"start_time must be before end_time for day {self.day_of_week}"
            )
        return self


class WeeklyTemplate(BaseModel):
    """Recurring open/closed schedule. Days without an entry are closed."""
    entries: list[WeeklyTemplateEntry] = Field(default_factory=list)

    @model_validator(mode="after")
    def _one_entry_per_day(self) -> "WeeklyTemplate":
        seen: set[int] = set()
        for entry in self.entries:
            if entry.day_of_week in seen:
                raise ValueError(f"Duplicate template entry for day {entry.day_of_week}")
            seen.add(entry.day_of_week)
        self.entries.sort(key=lambda e: e.day_of_week)
        return self

    def entry_for(self, day_of_week: int) -> Optional[WeeklyTemplateEntry]:
        for entry in self.entries:
            if entry.day_of_week == day_of_week:
                return entry
        return None


class ExclusionWindow(BaseModel):
    """
    Vacation or maintenance period that closes a resource.

    Dates are inclusive. Without times the window covers whole days;
    ``start_time`` / ``end_time`` narrow the first and last day. A recurring
    window re-applies every year on the same month/day range.
    """
    start_date: date
    end_date: date
    reason: str = ""
    recurring: bool = False
    start_time: Optional[time] = None
    end_time: Optional[time] = None

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def _parse_time(cls, value):
        if isinstance(value, str):
            return parse_clock_time(value)
        return value

    @model_validator(mode="after")
    def _check_range(self) -> "ExclusionWindow":
        if self.start_date > self.end_date:
            raise ValueError("start_date must be on or before end_date")
        if (
            self.start_date == self.end_date
            and self.start_time is not None
            and self.end_time is not None
            and self.start_time >= self.end_time
        ):
            raise ValueError("start_time must be before end_time on a single-day window")
        return self


class Resource(BaseModel):
    """A professional or a room, with the schedule data the engine consults."""
    id: str
    kind: ResourceKind
    name: str = ""
    # Falls back to the clinic zone (DEFAULT_TIMEZONE) when the record has none
    timezone: str = Field(default_factory=lambda: settings.scheduling.default_timezone)
    template: WeeklyTemplate = Field(default_factory=WeeklyTemplate)
    exclusions: list[ExclusionWindow] = Field(default_factory=list)
    is_active: bool = True
    is_bookable: bool = True

    # Professionals only: services offered (empty = every service)
    service_ids: list[str] = Field(default_factory=list)

    # Rooms only
    room_type: Optional[RoomType] = None
    status: RoomStatus = RoomStatus.AVAILABLE

    @field_validator("timezone")
    @classmethod
    def _known_timezone(cls, value: str) -> str:
        if value not in pytz.all_timezones_set:
            raise ValueError(f"Unknown timezone: {value!r}")
        return value

    @model_validator(mode="after")
    def _room_defaults(self) -> "Resource":
        if self.kind == ResourceKind.ROOM and self.room_type is None:
            self.room_type = RoomType.PHYSICAL
        return self

    @property
    def key(self) -> tuple[str, str]:
        return (self.id, self.kind.value)

    @property
    def tz(self) -> pytz.BaseTzInfo:
        return pytz.timezone(self.timezone)

    def accepts_bookings(self) -> bool:
        """Whether the resource can be booked at all, independent of date."""
        if not (self.is_active and self.is_bookable):
            return False
        if self.kind == ResourceKind.ROOM:
            return self.status in (RoomStatus.AVAILABLE, RoomStatus.OCCUPIED)
        return True

    def offers_service(self, service_id: str) -> bool:
        return not self.service_ids or service_id in self.service_ids
