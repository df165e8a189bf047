"""Shared test fixtures and helpers."""

from datetime import date, datetime, time, timedelta, timezone
from typing import Optional

import pytest

from booking_engine.config import AppConfig, CacheConfig, ConcurrencyConfig
from booking_engine.engine import BookingEngine
from booking_engine.schemas.appointment_schema import (
    AppointmentStatus,
    CandidateSlot,
    ExistingAppointment,
)
from booking_engine.schemas.resource_schema import (
    ExclusionWindow,
    Resource,
    ResourceKind,
    WeeklyTemplate,
    WeeklyTemplateEntry,
)
from booking_engine.schemas.service_schema import ServiceConstraints
from booking_engine.stores.memory import InMemoryAppointmentStore, InMemoryCatalog

# 2025-03-17 is a Monday; 1 is Monday in template numbering (0 = Sunday).
MONDAY = date(2025, 3, 17)
TUESDAY = MONDAY + timedelta(days=1)
NOW = datetime(2025, 3, 10, 9, 0, tzinfo=timezone.utc)


def at(day: date, hour: int, minute: int = 0) -> datetime:
    """UTC instant on ``day``."""
    return datetime.combine(day, time(hour, minute), tzinfo=timezone.utc)


def make_template(
    days: tuple[int, ...] = (1,),
    start: str = "09:00",
    end: str = "17:00",
) -> WeeklyTemplate:
    return WeeklyTemplate(entries=[
        WeeklyTemplateEntry(day_of_week=dow, start_time=start, end_time=end) for dow in days
    ])


def make_professional(
    resource_id: str = "pro-1",
    days: tuple[int, ...] = (1,),
    start: str = "09:00",
    end: str = "17:00",
    exclusions: Optional[list[ExclusionWindow]] = None,
    tz: str = "UTC",
    **kwargs,
) -> Resource:
    """Helper to create a professional open on ``days`` (default: Mondays 09:00-17:00)."""
    return Resource(
        id=resource_id,
        kind=ResourceKind.PROFESSIONAL,
        timezone=tz,
        template=make_template(days, start, end),
        exclusions=exclusions or [],
        **kwargs,
    )


def make_room(
    resource_id: str = "room-1",
    days: tuple[int, ...] = (1, 2, 3, 4, 5),
    start: str = "08:00",
    end: str = "20:00",
    exclusions: Optional[list[ExclusionWindow]] = None,
    tz: str = "UTC",
    **kwargs,
) -> Resource:
    """Helper to create a room open on weekdays 08:00-20:00."""
    return Resource(
        id=resource_id,
        kind=ResourceKind.ROOM,
        timezone=tz,
        template=make_template(days, start, end),
        exclusions=exclusions or [],
        **kwargs,
    )


def make_service(**overrides) -> ServiceConstraints:
    """Helper to create a 50 minute service with no buffers and no advance notice."""
    values = {
        "service_id": "svc-therapy",
        "name": "Individual therapy",
        "duration_minutes": 50,
        "min_advance_booking_hours": 0,
        "max_advance_booking_days": 30,
    }
    values.update(overrides)
    return ServiceConstraints(**values)


def make_appointment(
    start: datetime,
    minutes: int = 50,
    resource_id: str = "pro-1",
    kind: ResourceKind = ResourceKind.PROFESSIONAL,
    status: AppointmentStatus = AppointmentStatus.SCHEDULED,
    appointment_id: str = "APT-EXISTING",
    buffer_before: int = 0,
    buffer_after: int = 0,
) -> ExistingAppointment:
    return ExistingAppointment(
        appointment_id=appointment_id,
        resource_id=resource_id,
        resource_kind=kind,
        start=start,
        end=start + timedelta(minutes=minutes),
        status=status,
        buffer_before_minutes=buffer_before,
        buffer_after_minutes=buffer_after,
    )


def make_candidate(
    start: datetime,
    minutes: int = 50,
    professional_id: str = "pro-1",
    room_id: Optional[str] = "room-1",
    service_id: str = "svc-therapy",
) -> CandidateSlot:
    return CandidateSlot(
        start=start,
        end=start + timedelta(minutes=minutes),
        professional_id=professional_id,
        room_id=room_id,
        service_id=service_id,
    )


def make_config(use_resource_locks: bool = True, ttl: float = 0, timeout: float = 10.0) -> AppConfig:
    """Config with the template cache off unless a TTL is given."""
    return AppConfig(
        cache=CacheConfig(template_cache_ttl_seconds=ttl),
        concurrency=ConcurrencyConfig(
            use_resource_locks=use_resource_locks,
            booking_timeout_seconds=timeout,
        ),
    )


@pytest.fixture
def service():
    return make_service()


@pytest.fixture
def catalog(service):
    store = InMemoryCatalog()
    store.add_resource(make_professional())
    store.add_resource(make_room())
    store.add_service(service)
    return store


@pytest.fixture
def appointments():
    store = InMemoryAppointmentStore()
    yield store
    store.reset()


@pytest.fixture
def engine(catalog, appointments):
    return BookingEngine(catalog, catalog, appointments, make_config())
