"""
Booking Transaction Coordinator

Turns a chosen candidate slot into a committed appointment, or a
structured rejection. Each attempt walks the booking state machine:

    REQUESTED -> VALIDATING -> RESERVED | REJECTED

Validation re-runs the constraint evaluator, confirms the slot still sits
inside open hours, then reads appointments fresh and runs the conflict
checker. The write is the store's conditional commit on the version
counters read during validation, so a concurrent writer that got there
first turns this attempt into a CONFLICT instead of a double booking.

In-process ``asyncio.Lock``s per resource serialize attempts on the same
calendars inside one worker. They reduce wasted work; correctness across
workers comes from the compare-and-swap alone.
"""

import asyncio
import uuid
from contextlib import AsyncExitStack
from dataclasses import dataclass
from datetime import datetime
from typing import Awaitable, Callable, Optional

from booking_engine.availability.constraints import is_bookable
from booking_engine.availability.intervals import Interval, intersect
from booking_engine.availability.resolver import resolve_resource_intervals
from booking_engine.availability.slot_generator import fits_open_hours
from booking_engine.booking.conflicts import find_conflicts, lookup_window
from booking_engine.booking.state_machine import BookingStateMachine, BookingTrigger
from booking_engine.config import AppConfig, settings
from booking_engine.errors import (
    CommitConflictError,
    RejectionReason,
    ResourceNotFoundError,
    UpstreamUnavailableError,
)
from booking_engine.logging_context import get_request_logger, set_request_id
from booking_engine.schemas.appointment_schema import (
    BookingReservation,
    BookingResult,
    CandidateSlot,
    ExistingAppointment,
)
from booking_engine.schemas.resource_schema import Resource, ResourceKind
from booking_engine.schemas.service_schema import ServiceConstraints
from booking_engine.stores.base import AppointmentStore, ResourceKey, ServiceStore, TemplateStore
from booking_engine.utils import ensure_utc

logger = get_request_logger(__name__)

AlternativesFinder = Callable[[CandidateSlot, ServiceConstraints, datetime], Awaitable[list[CandidateSlot]]]

# Timeouts raised by a store itself (socket or driver). The booking deadline
# never surfaces here: wait_for cancels the store call instead.
STORE_TIMEOUTS = (TimeoutError, asyncio.TimeoutError)


def _timed_out(exc: BaseException) -> str:
    return f"Store call timed out: {exc}" if str(exc) else "Store call timed out."


class _Rejection(Exception):
    """Internal signal carrying a rejection reason out of a validation step."""

    def __init__(self, reason: RejectionReason, message: str) -> None:
        super().__init__(message)
        self.reason = reason
        self.message = message


@dataclass
class _ValidatedRequest:
    service: ServiceConstraints
    professional: Resource
    room: Optional[Resource]


class BookingCoordinator:
    """Runs booking attempts against a set of collaborator stores."""

    def __init__(
        self,
        templates: TemplateStore,
        services: ServiceStore,
        appointments: AppointmentStore,
        config: AppConfig = settings,
        alternatives_finder: Optional[AlternativesFinder] = None,
    ) -> None:
        self._templates = templates
        self._services = services
        self._appointments = appointments
        self._config = config
        self._alternatives_finder = alternatives_finder
        self._locks: dict[ResourceKey, asyncio.Lock] = {}

    def _lock_for(self, key: ResourceKey) -> asyncio.Lock:
        return self._locks.setdefault(key, asyncio.Lock())

    async def book(
        self,
        candidate: CandidateSlot,
        now: datetime,
        cancel_event: Optional[asyncio.Event] = None,
        timeout: Optional[float] = None,
    ) -> BookingResult:
        """
        Attempt to reserve ``candidate``.

        Args:
            candidate: the slot to book, as returned by slot search
            now: current instant (timezone-aware)
            cancel_event: when set before the commit, the attempt is
                abandoned without writing anything
            timeout: seconds allowed for validation; defaults to
                ``BOOKING_TIMEOUT_SECONDS``. The commit is never cut short.

        Returns:
            A BookingResult in state RESERVED or REJECTED.

        Raises:
            ValueError: naive ``now``, or a candidate whose span does not
                match the service duration.
            asyncio.CancelledError: the calling task was cancelled; the
                attempt is recorded as rejected before propagating.
        """
        now = ensure_utc(now, "now")
        set_request_id(f"BOOK-{uuid.uuid4().hex[:8]}")
        if timeout is None:
            timeout = self._config.concurrency.booking_timeout_seconds

        sm = BookingStateMachine()
        logger.info(
            "Booking requested: %s with %s in %s at %s",
            candidate.service_id, candidate.professional_id,
            candidate.room_id or "no room", candidate.start.isoformat(),
        )
        try:
            return await self._attempt(sm, candidate, now, cancel_event, timeout)
        except asyncio.CancelledError:
            if not sm.is_terminal():
                sm.reject(RejectionReason.CANCELLED)
            logger.info("Booking attempt cancelled by caller")
            raise

    async def _attempt(
        self,
        sm: BookingStateMachine,
        candidate: CandidateSlot,
        now: datetime,
        cancel_event: Optional[asyncio.Event],
        timeout: float,
    ) -> BookingResult:
        sm.transition(BookingTrigger.VALIDATION_STARTED)
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout

        async with AsyncExitStack() as stack:
            try:
                request = await self._within(self._validate(candidate, now), deadline)
                self._check_cancelled(cancel_event)

                if self._config.concurrency.use_resource_locks:
                    for key in sorted(candidate.resource_keys()):
                        await self._within(stack.enter_async_context(self._lock_for(key)), deadline)

                versions = await self._within(
                    self._check_conflicts(candidate, request.service), deadline
                )
                self._check_cancelled(cancel_event)
            except asyncio.TimeoutError:
                return self._rejected(
                    sm, RejectionReason.CANCELLED,
                    f"Booking validation did not finish within {timeout:g}s.",
                )
            except _Rejection as rejection:
                result = self._rejected(sm, rejection.reason, rejection.message)
            else:
                result = await self._commit(sm, candidate, request.service, versions)

        if result.reason == RejectionReason.CONFLICT:
            result.alternatives = await self._alternatives(candidate, request.service, now)
        return result

    async def _commit(
        self,
        sm: BookingStateMachine,
        candidate: CandidateSlot,
        service: ServiceConstraints,
        versions: dict[ResourceKey, int],
    ) -> BookingResult:
        try:
            reservation = await self._appointments.commit_appointment(candidate, service, versions)
        except CommitConflictError as exc:
            logger.info("Commit lost the race: %s", exc)
            return self._rejected(
                sm, RejectionReason.CONFLICT,
                "The slot was taken while this booking was being confirmed.",
            )
        except UpstreamUnavailableError as exc:
            return self._rejected(sm, RejectionReason.UPSTREAM_UNAVAILABLE, str(exc))
        except STORE_TIMEOUTS as exc:
            return self._rejected(sm, RejectionReason.UPSTREAM_UNAVAILABLE, _timed_out(exc))
        return self._reserved(sm, reservation)

    async def _within(self, awaitable, deadline: float):
        remaining = deadline - asyncio.get_running_loop().time()
        return await asyncio.wait_for(awaitable, timeout=max(remaining, 0))

    @staticmethod
    def _check_cancelled(cancel_event: Optional[asyncio.Event]) -> None:
        if cancel_event is not None and cancel_event.is_set():
            raise _Rejection(RejectionReason.CANCELLED, "Booking was cancelled by the caller.")

    async def _load(self, candidate: CandidateSlot) -> _ValidatedRequest:
        try:
            service = await self._services.get_service_constraints(candidate.service_id)
            professional = await self._templates.get_resource(
                candidate.professional_id, ResourceKind.PROFESSIONAL
            )
            room = None
            if candidate.room_id is not None:
                room = await self._templates.get_resource(candidate.room_id, ResourceKind.ROOM)
        except ResourceNotFoundError as exc:
            raise _Rejection(RejectionReason.INELIGIBLE_RESOURCE, str(exc)) from None
        except UpstreamUnavailableError as exc:
            raise _Rejection(RejectionReason.UPSTREAM_UNAVAILABLE, str(exc)) from None
        except STORE_TIMEOUTS as exc:
            raise _Rejection(RejectionReason.UPSTREAM_UNAVAILABLE, _timed_out(exc)) from None
        return _ValidatedRequest(service=service, professional=professional, room=room)

    async def _validate(self, candidate: CandidateSlot, now: datetime) -> _ValidatedRequest:
        request = await self._load(candidate)
        service = request.service
        if candidate.end - candidate.start != service.duration:
            raise ValueError(
                f"Candidate spans {candidate.end - candidate.start}, "
                f"service {service.service_id} lasts {service.duration}"
            )

        check = is_bookable(
            service, candidate.professional_id, candidate.room_id, candidate.start, now,
            request.professional, request.room,
        )
        if not check.ok:
            raise _Rejection(check.reason, check.message)

        if not fits_open_hours(candidate.start, service, self._open_intervals(candidate, request)):
            raise _Rejection(
                RejectionReason.RESOURCE_CLOSED,
                "The slot is outside the open hours of the professional or room.",
            )
        return request

    @staticmethod
    def _open_intervals(candidate: CandidateSlot, request: _ValidatedRequest) -> list[Interval]:
        professional = request.professional
        intervals = resolve_resource_intervals(
            professional, candidate.start.astimezone(professional.tz).date()
        )
        if request.room is not None:
            room = request.room
            intervals = intersect(
                intervals,
                resolve_resource_intervals(room, candidate.start.astimezone(room.tz).date()),
            )
        return intervals

    async def _check_conflicts(
        self, candidate: CandidateSlot, service: ServiceConstraints
    ) -> dict[ResourceKey, int]:
        """Read versions, then appointments, and reject on any conflict."""
        window = lookup_window(candidate)
        versions: dict[ResourceKey, int] = {}
        existing: list[ExistingAppointment] = []
        try:
            for resource_id, kind_value in candidate.resource_keys():
                kind = ResourceKind(kind_value)
                versions[(resource_id, kind_value)] = await self._appointments.get_version(
                    resource_id, kind
                )
                existing.extend(
                    await self._appointments.list_active_appointments(
                        resource_id, kind, window.start, window.end
                    )
                )
        except UpstreamUnavailableError as exc:
            raise _Rejection(RejectionReason.UPSTREAM_UNAVAILABLE, str(exc)) from None
        except STORE_TIMEOUTS as exc:
            raise _Rejection(RejectionReason.UPSTREAM_UNAVAILABLE, _timed_out(exc)) from None

        conflicts = [r for r in find_conflicts(candidate, existing, service) if r.has_conflict]
        if conflicts:
            described = ", ".join(
                f"{r.resource_kind.value} {r.resource_id} ({r.peak_concurrency}/{r.limit})"
                for r in conflicts
            )
            raise _Rejection(RejectionReason.CONFLICT, f"Slot is no longer free: {described}.")
        return versions

    async def _alternatives(
        self, candidate: CandidateSlot, service: ServiceConstraints, now: datetime
    ) -> list[CandidateSlot]:
        if self._alternatives_finder is None or self._config.scheduling.alternatives_limit == 0:
            return []
        try:
            found = await self._alternatives_finder(candidate, service, now)
        except (UpstreamUnavailableError, ResourceNotFoundError) as exc:
            logger.warning("Could not compute alternatives: %s", exc)
            return []
        return found[: self._config.scheduling.alternatives_limit]

    @staticmethod
    def _rejected(
        sm: BookingStateMachine, reason: RejectionReason, message: str
    ) -> BookingResult:
        sm.reject(reason)
        logger.info("Booking rejected (%s): %s", reason.value, message)
        return BookingResult(state=sm.current_state, reason=reason, message=message)

    @staticmethod
    def _reserved(sm: BookingStateMachine, reservation: BookingReservation) -> BookingResult:
        sm.transition(BookingTrigger.RESERVATION_COMMITTED)
        logger.info("Booking reserved: %s", reservation.appointment_id)
        return BookingResult(
            state=sm.current_state,
            reservation=reservation,
            message=f"Appointment {reservation.appointment_id} confirmed.",
        )
