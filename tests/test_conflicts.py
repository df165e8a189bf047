"""Tests for buffer-aware conflict detection and room concurrency limits."""

from booking_engine.availability.intervals import Interval
from booking_engine.booking.conflicts import check_resource, find_conflicts, has_conflict, peak_overlap
from booking_engine.schemas.appointment_schema import AppointmentStatus
from booking_engine.schemas.resource_schema import ResourceKind
from tests.conftest import MONDAY, at, make_appointment, make_candidate, make_service


class TestProfessionalOverlap:
    def test_exact_overlap(self):
        existing = [make_appointment(at(MONDAY, 10))]
        assert has_conflict(make_candidate(at(MONDAY, 10)), existing, make_service())

    def test_partial_overlap(self):
        existing = [make_appointment(at(MONDAY, 10))]
        assert has_conflict(make_candidate(at(MONDAY, 10, 30)), existing, make_service())

    def test_back_to_back_without_buffers(self):
        existing = [make_appointment(at(MONDAY, 10))]
        assert not has_conflict(make_candidate(at(MONDAY, 10, 50)), existing, make_service())

    def test_existing_buffer_blocks(self):
        existing = [make_appointment(at(MONDAY, 10), buffer_after=10)]
        assert has_conflict(make_candidate(at(MONDAY, 10, 55)), existing, make_service())

    def test_candidate_buffer_blocks(self):
        service = make_service(buffer_before_minutes=10)
        existing = [make_appointment(at(MONDAY, 10))]
        assert has_conflict(make_candidate(at(MONDAY, 10, 55)), existing, service)

    def test_touching_expanded_intervals_accepted(self):
        # Candidate 08:00-08:50, existing 09:00 with 10 minutes before:
        # candidate end == existing start - buffer_before
        existing = [make_appointment(at(MONDAY, 9), buffer_before=10)]
        candidate = make_candidate(at(MONDAY, 8, 0))
        assert candidate.end == at(MONDAY, 8, 50)
        assert not has_conflict(candidate, existing, make_service())

    def test_touching_with_buffers_on_both_sides(self):
        service = make_service(buffer_before_minutes=10, buffer_after_minutes=10)
        existing = [make_appointment(at(MONDAY, 9), buffer_before=10, buffer_after=10)]
        # 10:10 - 10 == 09:50 + 10
        assert not has_conflict(make_candidate(at(MONDAY, 10, 10)), existing, service)
        assert has_conflict(make_candidate(at(MONDAY, 10, 5)), existing, service)

    def test_professional_limit_ignores_service_concurrency(self):
        service = make_service(max_concurrent_bookings=5)
        existing = [make_appointment(at(MONDAY, 10))]
        assert has_conflict(make_candidate(at(MONDAY, 10)), existing, service)

    def test_other_professional_ignored(self):
        existing = [make_appointment(at(MONDAY, 10), resource_id="pro-2")]
        assert not has_conflict(make_candidate(at(MONDAY, 10)), existing, make_service())


class TestStatuses:
    def test_cancelled_does_not_block(self):
        existing = [make_appointment(at(MONDAY, 10), status=AppointmentStatus.CANCELLED)]
        assert not has_conflict(make_candidate(at(MONDAY, 10)), existing, make_service())

    def test_inactive_statuses_do_not_block(self):
        for status in (AppointmentStatus.NO_SHOW, AppointmentStatus.COMPLETED, AppointmentStatus.RESCHEDULED):
            existing = [make_appointment(at(MONDAY, 10), status=status)]
            assert not has_conflict(make_candidate(at(MONDAY, 10)), existing, make_service())

    def test_active_statuses_block(self):
        for status in (
            AppointmentStatus.PENDING,
            AppointmentStatus.SCHEDULED,
            AppointmentStatus.CONFIRMED,
            AppointmentStatus.IN_PROGRESS,
        ):
            existing = [make_appointment(at(MONDAY, 10), status=status)]
            assert has_conflict(make_candidate(at(MONDAY, 10)), existing, make_service())


class TestRoomConcurrency:
    def _room_booking(self, start, appointment_id):
        return make_appointment(
            start, resource_id="room-1", kind=ResourceKind.ROOM, appointment_id=appointment_id
        )

    def test_single_capacity_room(self):
        existing = [self._room_booking(at(MONDAY, 10), "A")]
        candidate = make_candidate(at(MONDAY, 10), professional_id="pro-2")
        assert has_conflict(candidate, existing, make_service())

    def test_shared_room_below_limit(self):
        service = make_service(max_concurrent_bookings=3)
        existing = [self._room_booking(at(MONDAY, 10), "A"), self._room_booking(at(MONDAY, 10), "B")]
        candidate = make_candidate(at(MONDAY, 10), professional_id="pro-3")
        report = check_resource(candidate, existing, service, ResourceKind.ROOM)
        assert not report.has_conflict
        assert report.capacity_available == 1

    def test_shared_room_at_limit(self):
        service = make_service(max_concurrent_bookings=2)
        existing = [self._room_booking(at(MONDAY, 10), "A"), self._room_booking(at(MONDAY, 10, 20), "B")]
        candidate = make_candidate(at(MONDAY, 10), professional_id="pro-3")
        assert has_conflict(candidate, existing, service)

    def test_sequential_bookings_do_not_stack(self):
        # Two bookings inside the window that never run at the same time
        service = make_service(duration_minutes=120, max_concurrent_bookings=2)
        existing = [self._room_booking(at(MONDAY, 10), "A"), self._room_booking(at(MONDAY, 11), "B")]
        candidate = make_candidate(at(MONDAY, 10), minutes=120, professional_id="pro-3")
        report = check_resource(candidate, existing, service, ResourceKind.ROOM)
        assert len(report.overlapping) == 2
        assert report.peak_concurrency == 1
        assert not report.has_conflict


class TestReports:
    def test_reports_for_professional_and_room(self):
        existing = [
            make_appointment(at(MONDAY, 10)),
            make_appointment(at(MONDAY, 12), resource_id="room-1", kind=ResourceKind.ROOM),
        ]
        reports = find_conflicts(make_candidate(at(MONDAY, 10)), existing, make_service())
        assert [(r.resource_kind, r.has_conflict) for r in reports] == [
            (ResourceKind.PROFESSIONAL, True),
            (ResourceKind.ROOM, False),
        ]

    def test_no_room_report_without_room(self):
        reports = find_conflicts(make_candidate(at(MONDAY, 10), room_id=None), [], make_service())
        assert len(reports) == 1

    def test_peak_overlap_touching_spans(self):
        window = Interval(at(MONDAY, 9), at(MONDAY, 12))
        spans = [Interval(at(MONDAY, 9), at(MONDAY, 10)), Interval(at(MONDAY, 10), at(MONDAY, 11))]
        assert peak_overlap(window, spans) == 1
