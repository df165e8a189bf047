"""
Constraint Evaluator

Encodes per-service booking rules. Checks run in a fixed order and the
first failure wins:

1. professional eligibility   -> INELIGIBLE_RESOURCE
2. room eligibility and type  -> INELIGIBLE_RESOURCE
3. minimum advance notice     -> TOO_SOON
4. maximum advance window     -> TOO_FAR
5. same-day booking allowance -> SAME_DAY_DISALLOWED

``now`` is always passed in; nothing here reads the system clock.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Optional, Sequence

import pytz

from booking_engine.availability.intervals import Interval
from booking_engine.errors import RejectionReason
from booking_engine.schemas.resource_schema import Resource
from booking_engine.schemas.service_schema import ServiceConstraints

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConstraintResult:
    """Outcome of a constraint evaluation."""
    ok: bool
    reason: Optional[RejectionReason] = None
    message: str = ""


_OK = ConstraintResult(ok=True)


def _reject(reason: RejectionReason, message: str) -> ConstraintResult:
    return ConstraintResult(ok=False, reason=reason, message=message)


def check_eligibility(
    service: ServiceConstraints,
    professional_id: str,
    room_id: Optional[str],
    professional: Optional[Resource] = None,
    room: Optional[Resource] = None,
) -> ConstraintResult:
    """Checks 1 and 2: may this professional/room pairing deliver the service?"""
    if not service.is_active:
        return _reject(
            RejectionReason.INELIGIBLE_RESOURCE,
            f"Service {service.service_id} is not active.",
        )

    if not service.professional_eligible(professional_id):
        return _reject(
            RejectionReason.INELIGIBLE_RESOURCE,
            f"Professional {professional_id} is not eligible for service {service.service_id}.",
        )
    if professional is not None and not professional.offers_service(service.service_id):
        return _reject(
            RejectionReason.INELIGIBLE_RESOURCE,
            f"Professional {professional_id} does not offer service {service.service_id}.",
        )

    if room_id is None:
        if service.requires_room:
            return _reject(
                RejectionReason.INELIGIBLE_RESOURCE,
                f"Service {service.service_id} requires a room.",
            )
        return _OK

    if not service.room_eligible(room_id):
        return _reject(
            RejectionReason.INELIGIBLE_RESOURCE,
            f"Room {room_id} is not eligible for service {service.service_id}.",
        )
    if room is not None and room.room_type is not None:
        if not service.delivery_mode.allows_room_type(room.room_type):
            return _reject(
                RejectionReason.INELIGIBLE_RESOURCE,
                f"Room {room_id} is {room.room_type.value}, "
                f"service is delivered {service.delivery_mode.value}.",
            )
    return _OK


def _local_date(value: datetime, tz: pytz.BaseTzInfo) -> date:
    return value.astimezone(tz).date()


def is_bookable(
    service: ServiceConstraints,
    professional_id: str,
    room_id: Optional[str],
    start: datetime,
    now: datetime,
    professional: Optional[Resource] = None,
    room: Optional[Resource] = None,
    tz: Optional[pytz.BaseTzInfo] = None,
) -> ConstraintResult:
    """
    Evaluate whether a booking starting at ``start`` is allowed at ``now``.

    ``tz`` decides what "the same calendar day" means; it defaults to the
    professional's timezone, then UTC.
    """
    eligibility = check_eligibility(service, professional_id, room_id, professional, room)
    if not eligibility.ok:
        return eligibility

    lead = start - now
    if lead < timedelta(hours=service.min_advance_booking_hours):
        return _reject(
            RejectionReason.TOO_SOON,
            f"Bookings need at least {service.min_advance_booking_hours:g} hours notice.",
        )
    if lead > timedelta(days=service.max_advance_booking_days):
        return _reject(
            RejectionReason.TOO_FAR,
            f"Bookings open at most {service.max_advance_booking_days} days ahead.",
        )

    if not service.allow_same_day_booking:
        zone = tz or (professional.tz if professional is not None else pytz.utc)
        if _local_date(start, zone) == _local_date(now, zone):
            return _reject(
                RejectionReason.SAME_DAY_DISALLOWED,
                "Same-day bookings are not allowed for this service.",
            )
    return _OK


def evaluate_day(
    service: ServiceConstraints,
    professional_id: str,
    room_id: Optional[str],
    day: date,
    intervals: Sequence[Interval],
    now: datetime,
    tz: pytz.BaseTzInfo,
    professional: Optional[Resource] = None,
    room: Optional[Resource] = None,
) -> ConstraintResult:
    """
    Day-level pre-check so whole days can be skipped before slot generation.

    Rejects only when no start on ``day`` inside ``intervals`` could pass
    ``is_bookable``; an accepted day may still reject individual starts.
    """
    eligibility = check_eligibility(service, professional_id, room_id, professional, room)
    if not eligibility.ok:
        return eligibility

    if not intervals:
        return _reject(RejectionReason.RESOURCE_CLOSED, f"No open hours on {day.isoformat()}.")

    earliest_start = min(i.start for i in intervals)
    latest_start = max(i.end for i in intervals) - service.duration

    if latest_start - now < timedelta(hours=service.min_advance_booking_hours):
        return _reject(
            RejectionReason.TOO_SOON,
            f"Every opening on {day.isoformat()} is inside the minimum notice period.",
        )
    if earliest_start - now > timedelta(days=service.max_advance_booking_days):
        return _reject(
            RejectionReason.TOO_FAR,
            f"{day.isoformat()} is beyond the advance booking window.",
        )
    if not service.allow_same_day_booking and day == _local_date(now, tz):
        return _reject(
            RejectionReason.SAME_DAY_DISALLOWED,
            "Same-day bookings are not allowed for this service.",
        )
    return _OK
