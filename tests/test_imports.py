"""Tests for import chains and module integrity.

Ensures all public modules can be imported without errors and
that re-exports from __init__.py files work correctly.
"""


class TestSchemaImports:
    def test_import_resource_schema(self):
        from booking_engine.schemas.resource_schema import Resource, ResourceKind, RoomStatus
        assert ResourceKind.ROOM == "room"
        assert RoomStatus.OUT_OF_ORDER == "out_of_order"
        assert Resource is not None

    def test_import_appointment_schema(self):
        from booking_engine.schemas.appointment_schema import ACTIVE_STATUSES, AppointmentStatus
        assert AppointmentStatus.CANCELLED not in ACTIVE_STATUSES
        assert AppointmentStatus.PENDING in ACTIVE_STATUSES

    def test_schemas_package_reexports(self):
        from booking_engine.schemas import BookingResult, CandidateSlot, ServiceConstraints
        assert BookingResult is not None
        assert CandidateSlot is not None
        assert ServiceConstraints is not None


class TestAvailabilityImports:
    def test_availability_package_reexports(self):
        from booking_engine.availability import (
            evaluate_day,
            find_bookable_slots,
            generate_slots,
            intersect,
            is_bookable,
            resolve_open_intervals,
        )
        assert callable(find_bookable_slots)
        assert callable(generate_slots)
        assert callable(intersect)
        assert callable(is_bookable)
        assert callable(evaluate_day)
        assert callable(resolve_open_intervals)


class TestBookingImports:
    def test_booking_package_reexports(self):
        from booking_engine.booking import BookingCoordinator, BookingStateMachine, has_conflict
        assert BookingCoordinator is not None
        assert BookingStateMachine().is_terminal() is False
        assert callable(has_conflict)

    def test_stores_package_reexports(self):
        from booking_engine.stores import CachedTemplateStore, InMemoryAppointmentStore, InMemoryCatalog
        assert CachedTemplateStore is not None
        assert InMemoryCatalog().reads == 0
        assert InMemoryAppointmentStore().commits == 0


class TestTopLevel:
    def test_package_exports(self):
        import booking_engine
        assert booking_engine.RejectionReason.CONFLICT == "CONFLICT"
        assert booking_engine.BookingEngine is not None
        assert booking_engine.DateRange is not None

    def test_rejection_reason_flags(self):
        from booking_engine.errors import RejectionReason
        assert RejectionReason.UPSTREAM_UNAVAILABLE.retryable
        assert not RejectionReason.CONFLICT.retryable
        assert RejectionReason.CONFLICT.requires_fresh_search

    def test_console_demo_builds_clinic(self):
        from console_demo import build_clinic
        catalog, appointments = build_clinic()
        assert appointments.commits == 0
        assert catalog is not None
