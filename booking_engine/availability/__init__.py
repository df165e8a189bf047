from booking_engine.availability.constraints import ConstraintResult, evaluate_day, is_bookable
from booking_engine.availability.intersector import find_bookable_slots
from booking_engine.availability.intervals import Interval, intersect
from booking_engine.availability.resolver import (
    resolve_open_intervals,
    resolve_resource_intervals,
)
from booking_engine.availability.slot_generator import generate_slots

__all__ = [
    "ConstraintResult",
    "Interval",
    "evaluate_day",
    "find_bookable_slots",
    "generate_slots",
    "intersect",
    "is_bookable",
    "resolve_open_intervals",
    "resolve_resource_intervals",
]
