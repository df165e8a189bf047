"""
Offline console demo: runs the availability and booking engine end to end.

Uses the in-memory stores with a small sample clinic. No database, no
network calls. Designed for walkthroughs of the scheduling rules.

Usage:
    python console_demo.py
    python console_demo.py --scenario race
    python console_demo.py --scenario maintenance --attempts 8
"""

import argparse
import asyncio
import sys
from datetime import date, datetime, time, timedelta, timezone

import pytz

from booking_engine.config import settings
from booking_engine.engine import BookingEngine
from booking_engine.schemas.appointment_schema import BookingResult, CandidateSlot
from booking_engine.schemas.resource_schema import (
    ExclusionWindow,
    Resource,
    ResourceKind,
    RoomType,
    WeeklyTemplate,
    WeeklyTemplateEntry,
)
from booking_engine.schemas.service_schema import DeliveryMode, ServiceConstraints
from booking_engine.stores.memory import InMemoryAppointmentStore, InMemoryCatalog
from booking_engine.utils import DateRange

BLUE = "\033[94m"
GREEN = "\033[92m"
YELLOW = "\033[93m"
RED = "\033[91m"
DIM = "\033[2m"
RESET = "\033[0m"
BOLD = "\033[1m"

CLINIC_TZ = settings.scheduling.default_timezone
# Monday 2025-03-17 is the demo's reference week.
DEMO_MONDAY = date(2025, 3, 17)
DEMO_NOW = datetime(2025, 3, 14, 8, 0, tzinfo=timezone.utc)


def _weekdays(open_at: str, close_at: str) -> WeeklyTemplate:
    # 1 = Monday ... 5 = Friday
    return WeeklyTemplate(entries=[
        WeeklyTemplateEntry(day_of_week=dow, start_time=open_at, end_time=close_at)
        for dow in range(1, 6)
    ])


def build_clinic() -> tuple[InMemoryCatalog, InMemoryAppointmentStore]:
    """Two psychologists, two consulting rooms, one virtual room, three services."""
    catalog = InMemoryCatalog()
    catalog.add_resource(Resource(
        id="pro-garcia", kind=ResourceKind.PROFESSIONAL, name="Dra. Laura Garcia",
        timezone=CLINIC_TZ, template=_weekdays("09:00", "17:00"),
    ))
    catalog.add_resource(Resource(
        id="pro-ruiz", kind=ResourceKind.PROFESSIONAL, name="Dr. Pablo Ruiz",
        timezone=CLINIC_TZ, template=_weekdays("10:00", "14:00"),
        service_ids=["svc-individual"],
    ))
    catalog.add_resource(Resource(
        id="room-1", kind=ResourceKind.ROOM, name="Consulta 1",
        timezone=CLINIC_TZ, template=_weekdays("08:00", "20:00"),
        exclusions=[ExclusionWindow(
            start_date=DEMO_MONDAY, end_date=DEMO_MONDAY,
            start_time="11:00", end_time="13:00", reason="HVAC maintenance",
        )],
    ))
    catalog.add_resource(Resource(
        id="room-2", kind=ResourceKind.ROOM, name="Consulta 2",
        timezone=CLINIC_TZ, template=_weekdays("08:00", "20:00"),
    ))
    catalog.add_resource(Resource(
        id="room-online", kind=ResourceKind.ROOM, name="Sala virtual",
        timezone=CLINIC_TZ, template=_weekdays("08:00", "21:00"),
        room_type=RoomType.VIRTUAL,
    ))
    catalog.add_service(ServiceConstraints(
        service_id="svc-individual", name="Individual therapy",
        duration_minutes=50, buffer_before_minutes=10, buffer_after_minutes=10,
    ))
    catalog.add_service(ServiceConstraints(
        service_id="svc-online", name="Online follow-up",
        duration_minutes=30, delivery_mode=DeliveryMode.ONLINE,
        min_advance_booking_hours=0, allow_same_day_booking=True,
    ))
    catalog.add_service(ServiceConstraints(
        service_id="svc-group", name="Group session",
        duration_minutes=90, buffer_after_minutes=15, max_concurrent_bookings=3,
        eligible_room_ids=["room-2"],
    ))
    return catalog, InMemoryAppointmentStore()


def _tz() -> pytz.BaseTzInfo:
    return pytz.timezone(CLINIC_TZ)


def _local(value: datetime) -> str:
    return value.astimezone(_tz()).strftime("%a %d %b %H:%M")


class ConsoleDemo:
    """Runs scripted scenarios against a fresh sample clinic."""

    def __init__(self, attempts: int = 5) -> None:
        self.catalog, self.appointments = build_clinic()
        self.engine = BookingEngine(self.catalog, self.catalog, self.appointments)
        self.attempts = attempts

    def say(self, text: str) -> None:
        print(f"{GREEN}{BOLD}[engine]{RESET} {GREEN}{text}{RESET}")

    def system_log(self, text: str) -> None:
        print(f"{DIM}  >> {text}{RESET}")

    def show_slots(self, slots: list[CandidateSlot], limit: int = 8) -> None:
        for slot in slots[:limit]:
            print(f"   {BLUE}{_local(slot.start)}{RESET} - {slot.end.astimezone(_tz()):%H:%M}"
                  f"  {DIM}{slot.room_id or 'no room'}{RESET}")
        if len(slots) > limit:
            self.system_log(f"... {len(slots) - limit} more")

    def show_result(self, label: str, result: BookingResult) -> None:
        if result.reserved:
            print(f"   {GREEN}{label}: RESERVED {result.reservation.appointment_id}{RESET}")
        else:
            print(f"   {RED}{label}: REJECTED ({result.reason.value}){RESET} {DIM}{result.message}{RESET}")

    async def scenario_slots(self) -> None:
        self.say("Individual therapy with Dra. Garcia, Monday, any room")
        slots = await self.engine.find_slots(
            "svc-individual", "pro-garcia", DateRange(DEMO_MONDAY, DEMO_MONDAY), DEMO_NOW,
        )
        self.show_slots(slots)

        self.say("Online follow-up with Dra. Garcia, Monday, 15 minute grid")
        slots = await self.engine.find_slots(
            "svc-online", "pro-garcia", DateRange(DEMO_MONDAY, DEMO_MONDAY), DEMO_NOW, step=15,
        )
        self.show_slots(slots, limit=4)

    async def scenario_maintenance(self) -> None:
        self.say("Consulta 1 is under maintenance on Monday 11:00-13:00")
        slots = await self.engine.find_slots(
            "svc-individual", "pro-garcia", DateRange(DEMO_MONDAY, DEMO_MONDAY), DEMO_NOW,
            room_id="room-1",
        )
        self.show_slots(slots, limit=len(slots))
        blocked = [s for s in slots if time(11) <= s.start.astimezone(_tz()).time() < time(13)]
        self.system_log(f"Slots starting inside the maintenance window: {len(blocked)}")

    async def scenario_race(self) -> None:
        slots = await self.engine.find_slots(
            "svc-individual", "pro-garcia", DateRange(DEMO_MONDAY, DEMO_MONDAY), DEMO_NOW,
            room_id="room-2",
        )
        target = slots[0]
        self.say(f"{self.attempts} clients try to book {_local(target.start)} in room-2 at once")
        results = await asyncio.gather(*(self.engine.book(target, DEMO_NOW) for _ in range(self.attempts)))
        for i, result in enumerate(results, 1):
            self.show_result(f"client {i}", result)

        winners = sum(1 for r in results if r.reserved)
        self.system_log(f"Reserved: {winners}, rejected: {len(results) - winners}")
        losers = [r for r in results if not r.reserved]
        if losers and losers[0].alternatives:
            print(f"{YELLOW}   Alternatives offered to the others:{RESET}")
            self.show_slots(losers[0].alternatives)

    async def scenario_too_soon(self) -> None:
        now = datetime.combine(DEMO_MONDAY, time(8, 0), tzinfo=timezone.utc)
        start = _tz().localize(datetime.combine(DEMO_MONDAY, time(9, 0))).astimezone(timezone.utc)
        candidate = CandidateSlot(
            start=start, end=start + timedelta(minutes=50),
            professional_id="pro-garcia", room_id="room-2", service_id="svc-individual",
        )
        self.say(f"Booking {_local(start)} at {now:%H:%M} UTC the same morning")
        self.show_result("attempt", await self.engine.book(candidate, now))

    SCENARIOS = {
        "slots": scenario_slots,
        "maintenance": scenario_maintenance,
        "race": scenario_race,
        "too-soon": scenario_too_soon,
    }

    async def run_scenario(self, scenario: str) -> None:
        handler = self.SCENARIOS.get(scenario)
        if handler is None:
            print(f"{RED}Unknown scenario: {scenario}{RESET}")
            return

        print()
        print(f"{BOLD}{'=' * 60}{RESET}")
        print(f"{BOLD}  CLINIC BOOKING ENGINE - Scenario: {scenario}{RESET}")
        print(f"{BOLD}  Engine: {settings.engine_name} ({CLINIC_TZ}){RESET}")
        print(f"{BOLD}{'=' * 60}{RESET}")
        print()

        await handler(self)

        print(f"\n{BOLD}{'=' * 60}{RESET}")
        print(f"{BOLD}  Scenario '{scenario}' complete.{RESET}")
        print(f"{DIM}  Commits: {self.appointments.commits}{RESET}")
        print(f"{BOLD}{'=' * 60}{RESET}")


def main() -> None:
    parser = argparse.ArgumentParser(description="Clinic booking engine console demo")
    parser.add_argument(
        "--scenario",
        choices=sorted(ConsoleDemo.SCENARIOS),
        default="slots",
        help="Scripted scenario to run",
    )
    parser.add_argument(
        "--attempts",
        type=int,
        default=5,
        help="Concurrent booking attempts in the race scenario",
    )
    args = parser.parse_args()

    demo = ConsoleDemo(attempts=args.attempts)
    try:
        asyncio.run(demo.run_scenario(args.scenario))
    except KeyboardInterrupt:
        print(f"\n{DIM}Demo interrupted.{RESET}")
        sys.exit(0)


if __name__ == "__main__":
    main()
