"""
In-memory collaborator stores.

In production these would be backed by the clinic's document database,
with the version compare-and-swap implemented as a conditional update.
They are used by the test suite, the console demo, and single-process
deployments.
"""

import asyncio
import logging
import uuid
from datetime import datetime, timezone
from typing import Optional

from booking_engine.errors import CommitConflictError, ResourceNotFoundError, UpstreamUnavailableError
from booking_engine.schemas.appointment_schema import (
    AppointmentStatus,
    BookingReservation,
    CandidateSlot,
    ExistingAppointment,
)
from booking_engine.schemas.resource_schema import Resource, ResourceKind
from booking_engine.schemas.service_schema import ServiceConstraints
from booking_engine.stores.base import AppointmentStore, ResourceKey, ServiceStore, TemplateStore

logger = logging.getLogger(__name__)


class _Outage:
    """Shared switch used by tests to simulate an unreachable backend."""

    def __init__(self) -> None:
        self.available = True

    def check(self, store_name: str) -> None:
        if not self.available:
            raise UpstreamUnavailableError(f"{store_name} is unavailable")


class InMemoryCatalog(TemplateStore, ServiceStore):
    """Professionals, rooms, and services held in dictionaries."""

    def __init__(self) -> None:
        self._resources: dict[ResourceKey, Resource] = {}
        self._services: dict[str, ServiceConstraints] = {}
        self.outage = _Outage()
        self.reads = 0

    def add_resource(self, resource: Resource) -> Resource:
        self._resources[resource.key] = resource
        return resource

    def add_service(self, service: ServiceConstraints) -> ServiceConstraints:
        self._services[service.service_id] = service
        return service

    async def get_resource(self, resource_id: str, kind: ResourceKind) -> Resource:
        self.outage.check("Resource catalog")
        self.reads += 1
        await asyncio.sleep(0)
        resource = self._resources.get((resource_id, kind.value))
        if resource is None:
            raise ResourceNotFoundError(f"{kind.value.capitalize()} {resource_id} not found")
        return resource

    async def list_rooms(self) -> list[Resource]:
        self.outage.check("Resource catalog")
        self.reads += 1
        await asyncio.sleep(0)
        return sorted(
            (r for r in self._resources.values() if r.kind == ResourceKind.ROOM),
            key=lambda r: r.id,
        )

    async def get_service_constraints(self, service_id: str) -> ServiceConstraints:
        self.outage.check("Service catalog")
        await asyncio.sleep(0)
        service = self._services.get(service_id)
        if service is None:
            raise ResourceNotFoundError(f"Service {service_id} not found")
        return service


class InMemoryAppointmentStore(AppointmentStore):
    """
    Appointment records indexed per resource, with version counters.

    Reads yield to the event loop like real I/O would, which lets
    concurrent booking attempts interleave. ``commit_appointment`` never
    yields, so its compare-and-swap runs as one step.
    """

    def __init__(self) -> None:
        self._records: dict[ResourceKey, list[ExistingAppointment]] = {}
        self._versions: dict[ResourceKey, int] = {}
        self._reservations: dict[str, BookingReservation] = {}
        self.outage = _Outage()
        self.commits = 0

    def add_existing(self, appointment: ExistingAppointment) -> ExistingAppointment:
        """Seed an appointment that was booked outside the engine."""
        key = (appointment.resource_id, appointment.resource_kind.value)
        self._records.setdefault(key, []).append(appointment)
        self._bump(key)
        return appointment

    def _bump(self, key: ResourceKey) -> int:
        self._versions[key] = self._versions.get(key, 0) + 1
        return self._versions[key]

    async def list_active_appointments(
        self,
        resource_id: str,
        kind: ResourceKind,
        start: datetime,
        end: datetime,
    ) -> list[ExistingAppointment]:
        self.outage.check("Appointment store")
        await asyncio.sleep(0)
        return [
            appt
            for appt in self._records.get((resource_id, kind.value), [])
            if appt.is_active and appt.start < end and appt.end > start
        ]

    async def get_version(self, resource_id: str, kind: ResourceKind) -> int:
        self.outage.check("Appointment store")
        await asyncio.sleep(0)
        return self._versions.get((resource_id, kind.value), 0)

    async def commit_appointment(
        self,
        candidate: CandidateSlot,
        service: ServiceConstraints,
        expected_versions: dict[ResourceKey, int],
    ) -> BookingReservation:
        self.outage.check("Appointment store")
        for key in candidate.resource_keys():
            current = self._versions.get(key, 0)
            expected = expected_versions.get(key)
            if expected != current:
                raise CommitConflictError(
                    f"Calendar of {key[1]} {key[0]} changed (expected v{expected}, found v{current})",
                    resource_key=key,
                )

        reservation = BookingReservation(
            appointment_id=f"APT-{uuid.uuid4().hex[:8].upper()}",
            reservation_token=uuid.uuid4().hex,
            professional_id=candidate.professional_id,
            room_id=candidate.room_id,
            service_id=candidate.service_id,
            start=candidate.start,
            end=candidate.end,
            status=AppointmentStatus.SCHEDULED,
            created_at=datetime.now(timezone.utc),
        )
        for record in reservation.as_appointments(
            service.buffer_before_minutes, service.buffer_after_minutes
        ):
            key = (record.resource_id, record.resource_kind.value)
            self._records.setdefault(key, []).append(record)
            reservation.versions[f"{key[1]}:{key[0]}"] = self._bump(key)

        self._reservations[reservation.appointment_id] = reservation
        self.commits += 1
        logger.info(
            "Appointment committed: %s for %s at %s",
            reservation.appointment_id, candidate.professional_id, candidate.start.isoformat(),
        )
        return reservation

    def cancel(self, appointment_id: str) -> bool:
        """Cancel an appointment; its slot is free again immediately."""
        found = False
        for key, records in self._records.items():
            for i, record in enumerate(records):
                if record.appointment_id == appointment_id and record.is_active:
                    records[i] = record.model_copy(update={"status": AppointmentStatus.CANCELLED})
                    self._bump(key)
                    found = True
        if appointment_id in self._reservations:
            reservation = self._reservations[appointment_id]
            self._reservations[appointment_id] = reservation.model_copy(
                update={"status": AppointmentStatus.CANCELLED}
            )
        if found:
            logger.info("Appointment cancelled: %s", appointment_id)
        return found

    def get_reservation(self, appointment_id: str) -> Optional[BookingReservation]:
        return self._reservations.get(appointment_id)

    def all_records(self, resource_id: str, kind: ResourceKind) -> list[ExistingAppointment]:
        return list(self._records.get((resource_id, kind.value), []))

    def reset(self) -> None:
        """Clear all appointments and versions. Used by test fixtures for isolation."""
        self._records.clear()
        self._versions.clear()
        self._reservations.clear()
        self.commits = 0

