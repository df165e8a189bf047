"""
Resource Calendar Resolver

Projects a weekly template and its exclusion windows onto a concrete date:
1. Find the template entry for the date's day of week
2. Build the day's open interval in the resource's wall-clock time
3. Subtract every exclusion window touching that date
4. Localize the remaining pieces and return them as UTC instants

Pure: the same template, exclusions, date and timezone always give the
same answer, and no clock is read.
"""

import logging
from datetime import date, datetime, time, timedelta, timezone
from typing import Iterable, Optional

import pytz

from booking_engine.availability.intervals import Interval, subtract_all
from booking_engine.schemas.resource_schema import ExclusionWindow, Resource, WeeklyTemplate
from booking_engine.utils import template_weekday

logger = logging.getLogger(__name__)


def _anniversary(year: int, source: date) -> date:
    """Move a month/day to another year; 29 February becomes 28 February when needed."""
    try:
        return source.replace(year=year)
    except ValueError:
        return source.replace(year=year, day=28)


def _span(
    start_day: date,
    end_day: date,
    start_time: Optional[time],
    end_time: Optional[time],
) -> Interval:
    start = datetime.combine(start_day, start_time or time.min)
    if end_time is None:
        end = datetime.combine(end_day + timedelta(days=1), time.min)
    else:
        end = datetime.combine(end_day, end_time)
    return Interval(start, end)


def exclusion_spans(window: ExclusionWindow, day: date) -> list[Interval]:
    """
    Wall-clock spans of ``window`` that may touch ``day``.

    Non-recurring windows have exactly one span. Recurring windows are
    projected onto the previous and the current year so ranges that wrap
    the new year (e.g. 24 Dec - 2 Jan) are caught on both sides.
    """
    if not window.recurring:
        return [_span(window.start_date, window.end_date, window.start_time, window.end_time)]

    wraps = (window.end_date.month, window.end_date.day) < (
        window.start_date.month, window.start_date.day
    )
    spans = []
    for year in (day.year - 1, day.year):
        start_day = _anniversary(year, window.start_date)
        end_day = _anniversary(year + 1 if wraps else year, window.end_date)
        spans.append(_span(start_day, end_day, window.start_time, window.end_time))
    return spans


def _localize(value: datetime, tz: pytz.BaseTzInfo) -> datetime:
    return tz.localize(value).astimezone(timezone.utc)


def resolve_open_intervals(
    template: WeeklyTemplate,
    exclusions: Iterable[ExclusionWindow],
    day: date,
    tz: pytz.BaseTzInfo,
) -> list[Interval]:
    """
    Open intervals of a resource on ``day``.

    Args:
        template: weekly recurring schedule
        exclusions: vacations / maintenance windows
        day: the calendar date, in the resource's timezone
        tz: the resource's timezone, used for the day-of-week lookup and
            for converting wall-clock times to instants

    Returns:
        Disjoint UTC intervals sorted ascending; empty when closed.
    """
    entry = template.entry_for(template_weekday(day))
    if entry is None or not entry.is_open:
        return []

    day_interval = Interval(
        datetime.combine(day, entry.start_time),
        datetime.combine(day, entry.end_time),
    )

    blocks = [
        span
        for window in exclusions
        for span in exclusion_spans(window, day)
        if span.overlaps(day_interval)
    ]
    remaining = subtract_all([day_interval], blocks)

    return [
        Interval(_localize(piece.start, tz), _localize(piece.end, tz))
        for piece in remaining
        if piece.start < piece.end
    ]


def resolve_resource_intervals(resource: Resource, day: date) -> list[Interval]:
    """Open intervals of ``resource`` on ``day``, closed if it takes no bookings."""
    if not resource.accepts_bookings():
        logger.debug("Resource %s (%s) is not bookable", resource.id, resource.kind.value)
        return []
    return resolve_open_intervals(resource.template, resource.exclusions, day, resource.tz)
