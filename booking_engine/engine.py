"""
Booking engine facade.

Wires the collaborator stores to the availability pipeline and the
booking coordinator, and exposes the two operations the clinic backend
calls: slot search and booking.

Usage:
    engine = BookingEngine(catalog, catalog, appointments)
    slots = await engine.find_slots("svc-therapy", "pro-1", DateRange(monday, friday), now)
    result = await engine.book(slots[0], now)
"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from booking_engine.availability.intersector import find_bookable_slots
from booking_engine.availability.slot_generator import StepLike
from booking_engine.booking.conflicts import has_conflict, lookup_window
from booking_engine.booking.coordinator import BookingCoordinator
from booking_engine.config import AppConfig, settings
from booking_engine.schemas.appointment_schema import BookingResult, CandidateSlot, ExistingAppointment
from booking_engine.schemas.resource_schema import Resource, ResourceKind
from booking_engine.schemas.service_schema import ServiceConstraints
from booking_engine.stores.base import AppointmentStore, ServiceStore, TemplateStore
from booking_engine.stores.cache import CachedTemplateStore
from booking_engine.utils import DateRange, ensure_utc

logger = logging.getLogger(__name__)

# Days searched for alternatives after a conflict, starting at the requested date.
ALTERNATIVES_SEARCH_DAYS = 7


class BookingEngine:
    """Availability search and booking over one clinic's stores."""

    def __init__(
        self,
        templates: TemplateStore,
        services: ServiceStore,
        appointments: AppointmentStore,
        config: AppConfig = settings,
    ) -> None:
        if config.cache.template_cache_ttl_seconds > 0 and not isinstance(templates, CachedTemplateStore):
            templates = CachedTemplateStore(templates, config.cache.template_cache_ttl_seconds)
        self.templates = templates
        self.services = services
        self.appointments = appointments
        self.config = config
        self.coordinator = BookingCoordinator(
            templates, services, appointments, config, alternatives_finder=self._alternatives
        )

    async def find_slots(
        self,
        service_id: str,
        professional_id: str,
        date_range: DateRange,
        now: datetime,
        room_id: Optional[str] = None,
        step: StepLike = None,
        exclude_conflicts: bool = True,
    ) -> list[CandidateSlot]:
        """
        Bookable candidate slots for a service with one professional.

        Args:
            service_id: service to book
            professional_id: professional delivering it
            date_range: inclusive dates, in the professional's timezone
            now: current instant (timezone-aware)
            room_id: restrict the search to one room; when omitted and the
                service needs a room, every room in the catalog is tried
            step: grid step in minutes; defaults to ``DEFAULT_SLOT_STEP_MINUTES``
                or, when that is 0, the service duration
            exclude_conflicts: drop slots that collide with active appointments

        Returns:
            Candidate slots ordered by start time, then room id.

        Raises:
            ValueError: naive ``now`` or an empty/oversized date range.
            UpstreamUnavailableError: a store could not be reached.
            ResourceNotFoundError: unknown service, professional, or room.
        """
        now = ensure_utc(now, "now")
        if date_range.num_days == 0:
            raise ValueError(f"Date range ends before it starts: {date_range.start} > {date_range.end}")
        if date_range.num_days > self.config.scheduling.max_search_days:
            raise ValueError(
                f"Date range spans {date_range.num_days} days, "
                f"at most {self.config.scheduling.max_search_days} are searched at once"
            )
        if step is None:
            step = self.config.scheduling.default_slot_step_minutes

        service = await self.services.get_service_constraints(service_id)
        professional = await self.templates.get_resource(professional_id, ResourceKind.PROFESSIONAL)
        rooms = await self._candidate_rooms(service, room_id)

        slots = find_bookable_slots(service, professional, rooms, date_range, now, step)
        if exclude_conflicts and slots:
            slots = await self._without_conflicts(slots, service)

        logger.info(
            "find_slots: %d slot(s) for %s with %s, %s to %s",
            len(slots), service_id, professional_id, date_range.start, date_range.end,
        )
        return slots

    async def book(self, candidate: CandidateSlot, now: datetime, cancel_event=None, timeout=None) -> BookingResult:
        """Validate and atomically reserve ``candidate``. See ``BookingCoordinator.book``."""
        return await self.coordinator.book(candidate, now, cancel_event=cancel_event, timeout=timeout)

    async def _candidate_rooms(
        self, service: ServiceConstraints, room_id: Optional[str]
    ) -> list[Resource]:
        if room_id is not None:
            return [await self.templates.get_resource(room_id, ResourceKind.ROOM)]
        if not service.requires_room:
            return []
        return [room for room in await self.templates.list_rooms() if room.accepts_bookings()]

    async def _without_conflicts(
        self, slots: list[CandidateSlot], service: ServiceConstraints
    ) -> list[CandidateSlot]:
        window_start = lookup_window(slots[0]).start
        window_end = max(lookup_window(slot).end for slot in slots)

        keys = sorted({key for slot in slots for key in slot.resource_keys()})
        existing: list[ExistingAppointment] = []
        for resource_id, kind_value in keys:
            existing.extend(
                await self.appointments.list_active_appointments(
                    resource_id, ResourceKind(kind_value), window_start, window_end
                )
            )
        if not existing:
            return slots
        return [slot for slot in slots if not has_conflict(slot, existing, service)]

    async def _alternatives(
        self, candidate: CandidateSlot, service: ServiceConstraints, now: datetime
    ) -> list[CandidateSlot]:
        """Fresh slots with the same professional, any suitable room, from the requested day on."""
        professional = await self.templates.get_resource(
            candidate.professional_id, ResourceKind.PROFESSIONAL
        )
        first_day = candidate.start.astimezone(professional.tz).date()
        days = min(ALTERNATIVES_SEARCH_DAYS, self.config.scheduling.max_search_days)
        date_range = DateRange(first_day, first_day + timedelta(days=days - 1))

        slots = await self.find_slots(
            service.service_id, professional.id, date_range, now,
            step=self.config.scheduling.default_slot_step_minutes,
        )
        return [slot for slot in slots if slot.start != candidate.start or slot.room_id != candidate.room_id]
