"""
Multi-Resource Intersector

Combines professional availability, room availability and service rules
into one ordered list of bookable candidate slots.

Per date:
    1. resolve the professional's open intervals
    2. resolve each room's open intervals (when a room is involved)
    3. intersect the two interval sets
    4. skip the day if the constraint evaluator rejects it as a whole
    5. generate slots over the intersection
    6. keep only starts the evaluator accepts individually
"""

import logging
from datetime import datetime
from typing import Optional, Sequence

from booking_engine.availability.constraints import check_eligibility, evaluate_day, is_bookable
from booking_engine.availability.intervals import Interval, intersect
from booking_engine.availability.resolver import resolve_resource_intervals
from booking_engine.availability.slot_generator import StepLike, generate_slots, slot_end
from booking_engine.schemas.appointment_schema import CandidateSlot
from booking_engine.schemas.resource_schema import Resource
from booking_engine.schemas.service_schema import ServiceConstraints
from booking_engine.utils import DateRange

logger = logging.getLogger(__name__)


def _slot_order(slot: CandidateSlot) -> tuple:
    return (slot.start, slot.room_id or "")


def find_bookable_slots(
    service: ServiceConstraints,
    professional: Resource,
    rooms: Sequence[Resource],
    date_range: DateRange,
    now: datetime,
    step: StepLike = None,
) -> list[CandidateSlot]:
    """
    Enumerate candidate slots for ``service`` with ``professional``.

    Args:
        service: booking rules for the requested service
        professional: the professional resource
        rooms: candidate rooms; empty when the service needs no room
        date_range: dates to search, in the professional's timezone
        now: current instant, used for advance-notice rules
        step: slot grid step (see ``generate_slots``)

    Returns:
        Candidate slots ordered by start time, then room id.
    """
    pairings: list[Optional[Resource]] = []
    if rooms:
        for room in rooms:
            eligibility = check_eligibility(service, professional.id, room.id, professional, room)
            if eligibility.ok:
                pairings.append(room)
            else:
                logger.debug("Skipping room %s: %s", room.id, eligibility.message)
    else:
        eligibility = check_eligibility(service, professional.id, None, professional)
        if eligibility.ok:
            pairings.append(None)
        else:
            logger.debug("No slots for %s: %s", professional.id, eligibility.message)

    if not pairings:
        return []

    slots: list[CandidateSlot] = []
    tz = professional.tz
    for day in date_range.days():
        professional_intervals = resolve_resource_intervals(professional, day)
        if not professional_intervals:
            continue

        for room in pairings:
            intervals: list[Interval] = professional_intervals
            if room is not None:
                intervals = intersect(professional_intervals, resolve_resource_intervals(room, day))

            room_id = room.id if room is not None else None
            day_check = evaluate_day(
                service, professional.id, room_id, day, intervals, now, tz, professional, room
            )
            if not day_check.ok:
                continue

            for start in generate_slots(intervals, service, step):
                check = is_bookable(
                    service, professional.id, room_id, start, now, professional, room, tz
                )
                if not check.ok:
                    continue
                slots.append(
                    CandidateSlot(
                        start=start,
                        end=slot_end(start, service),
                        professional_id=professional.id,
                        room_id=room_id,
                        service_id=service.service_id,
                    )
                )

    slots.sort(key=_slot_order)
    logger.debug(
        "Found %d candidate slot(s) for service %s with %s between %s and %s",
        len(slots), service.service_id, professional.id, date_range.start, date_range.end,
    )
    return slots
