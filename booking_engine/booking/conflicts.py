"""
Conflict Checker

Detects whether a candidate slot collides with existing appointments:
- both sides are expanded by their own buffers before comparing
- only active appointments (pending/scheduled/confirmed/in progress) count
- a professional runs one session at a time
- a room may host up to ``max_concurrent_bookings`` simultaneous sessions
"""

import logging
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Iterable, Optional

from booking_engine.availability.intervals import Interval
from booking_engine.schemas.appointment_schema import CandidateSlot, ExistingAppointment
from booking_engine.schemas.resource_schema import ResourceKind
from booking_engine.schemas.service_schema import MAX_BUFFER_MINUTES, ServiceConstraints

logger = logging.getLogger(__name__)

PROFESSIONAL_CONCURRENCY = 1


@dataclass
class ConflictReport:
    """Overlap analysis of one candidate against one resource's calendar."""
    resource_id: str
    resource_kind: ResourceKind
    limit: int
    overlapping: list[ExistingAppointment] = field(default_factory=list)
    peak_concurrency: int = 0

    @property
    def has_conflict(self) -> bool:
        return self.peak_concurrency >= self.limit

    @property
    def capacity_available(self) -> int:
        return max(0, self.limit - self.peak_concurrency)


def protected_window(candidate: CandidateSlot, service: ServiceConstraints) -> Interval:
    """The candidate's span widened by the service buffers."""
    return Interval(candidate.start, candidate.end).expand(
        service.buffer_before, service.buffer_after
    )


def peak_overlap(window: Interval, intervals: Iterable[Interval]) -> int:
    """Maximum number of ``intervals`` simultaneously open inside ``window``."""
    events: list[tuple] = []
    for interval in intervals:
        start = max(interval.start, window.start)
        end = min(interval.end, window.end)
        if start < end:
            events.append((start, 1))
            events.append((end, -1))

    # Closings sort before openings at the same instant: half-open spans
    # that only touch never count as simultaneous.
    events.sort(key=lambda e: (e[0], e[1]))
    peak = current = 0
    for _, delta in events:
        current += delta
        peak = max(peak, current)
    return peak


def concurrency_limit(resource_kind: ResourceKind, service: ServiceConstraints) -> int:
    if resource_kind == ResourceKind.PROFESSIONAL:
        return PROFESSIONAL_CONCURRENCY
    return service.max_concurrent_bookings


def check_resource(
    candidate: CandidateSlot,
    existing: Iterable[ExistingAppointment],
    service: ServiceConstraints,
    resource_kind: ResourceKind,
    resource_id: Optional[str] = None,
) -> ConflictReport:
    """
    Compare ``candidate`` with the calendar of one resource.

    ``resource_id`` defaults to the candidate's professional or room,
    depending on ``resource_kind``.
    """
    if resource_id is None:
        resource_id = (
            candidate.professional_id
            if resource_kind == ResourceKind.PROFESSIONAL
            else candidate.room_id
        )
    if resource_id is None:
        raise ValueError("Candidate has no room to check")

    window = protected_window(candidate, service)
    overlapping = [
        appt
        for appt in existing
        if appt.resource_id == resource_id
        and appt.resource_kind == resource_kind
        and appt.is_active
        and window.overlaps(Interval(appt.protected_start, appt.protected_end))
    ]
    report = ConflictReport(
        resource_id=resource_id,
        resource_kind=resource_kind,
        limit=concurrency_limit(resource_kind, service),
        overlapping=overlapping,
        peak_concurrency=peak_overlap(
            window, (Interval(a.protected_start, a.protected_end) for a in overlapping)
        ),
    )
    if report.has_conflict:
        logger.debug(
            "Conflict on %s %s: %d overlapping, limit %d",
            resource_kind.value, resource_id, report.peak_concurrency, report.limit,
        )
    return report


def find_conflicts(
    candidate: CandidateSlot,
    existing: Iterable[ExistingAppointment],
    service: ServiceConstraints,
) -> list[ConflictReport]:
    """Reports for the candidate's professional and, if any, its room."""
    appointments = list(existing)
    reports = [check_resource(candidate, appointments, service, ResourceKind.PROFESSIONAL)]
    if candidate.room_id is not None:
        reports.append(check_resource(candidate, appointments, service, ResourceKind.ROOM))
    return reports


def has_conflict(
    candidate: CandidateSlot,
    existing: Iterable[ExistingAppointment],
    service: ServiceConstraints,
) -> bool:
    """True if booking ``candidate`` would overlap or exceed a concurrency limit."""
    return any(report.has_conflict for report in find_conflicts(candidate, existing, service))


def lookup_window(candidate: CandidateSlot) -> Interval:
    """Read window wide enough to catch every neighbour whose buffers could reach the candidate."""
    padding = timedelta(minutes=2 * MAX_BUFFER_MINUTES)
    return Interval(candidate.start - padding, candidate.end + padding)
