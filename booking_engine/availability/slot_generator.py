"""
Slot Generator

Turns open intervals into discrete candidate start times for a service.

Candidates sit on a grid anchored at each interval's start. With the
default step (the service duration) consecutive candidates are
``duration + buffer_before + buffer_after`` apart, so booking every
candidate keeps each session's buffers clear of its neighbours. Any other
step is a plain grid; buffer spacing against existing bookings is left to
the conflict checker.
A candidate is kept while ``start + duration + buffer_after`` still fits
before the interval closes.

Example (50 min session, 10/10 buffers, step 50, open 09:00-17:00):
    09:00, 10:10, 11:20, ...
"""

from datetime import datetime, timedelta
from typing import Iterable, Iterator, Union

from booking_engine.availability.intervals import Interval
from booking_engine.schemas.service_schema import ServiceConstraints

StepLike = Union[int, timedelta, None]


def resolve_step(service: ServiceConstraints, step: StepLike = None) -> timedelta:
    """Normalize ``step`` (minutes or timedelta); falsy means the service duration."""
    if not step:
        return service.duration
    value = step if isinstance(step, timedelta) else timedelta(minutes=step)
    if value <= timedelta(0):
        raise ValueError(f"Slot step must be positive, got {value}")
    return value


def iter_slot_starts(
    interval: Interval,
    service: ServiceConstraints,
    step: StepLike = None,
) -> Iterator[datetime]:
    """Yield valid starts inside a single open interval."""
    footprint = service.buffer_before + service.duration + service.buffer_after
    if interval.duration < footprint:
        return

    stride = resolve_step(service, step)
    if stride == service.duration:
        stride += service.buffer_before + service.buffer_after
    tail = service.duration + service.buffer_after
    start = interval.start
    while start + tail <= interval.end:
        yield start
        start += stride


def generate_slots(
    open_intervals: Iterable[Interval],
    service: ServiceConstraints,
    step: StepLike = None,
) -> list[datetime]:
    """
    Candidate start times across ``open_intervals``.

    Args:
        open_intervals: intervals as returned by the resolver or intersector
        service: supplies duration and buffers
        step: grid step in minutes (or a timedelta); defaults to the
            service duration, which also spaces candidates by both buffers.
            A finer step such as 15 is a plain grid that lets services of
            different lengths pack back to back.

    Returns:
        Deduplicated start times, ascending.
    """
    starts: set[datetime] = set()
    for interval in open_intervals:
        starts.update(iter_slot_starts(interval, service, step))
    return sorted(starts)


def slot_end(start: datetime, service: ServiceConstraints) -> datetime:
    return start + service.duration


def fits_open_hours(start: datetime, service: ServiceConstraints, intervals: Iterable[Interval]) -> bool:
    """Whether a session at ``start`` and its trailing buffer fit one open interval."""
    tail = service.duration + service.buffer_after
    return any(i.start <= start and start + tail <= i.end for i in intervals)
