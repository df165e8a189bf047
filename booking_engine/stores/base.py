"""
Collaborator interfaces consumed by the booking engine.

Persistence of professionals, rooms, services and appointments belongs to
the host application. These base classes define the calls the engine
makes; implementations raise ``UpstreamUnavailableError`` when the
backing store cannot be reached and ``ResourceNotFoundError`` for unknown
ids.
"""

from abc import ABC, abstractmethod
from datetime import datetime

from booking_engine.schemas.appointment_schema import (
    BookingReservation,
    CandidateSlot,
    ExistingAppointment,
)
from booking_engine.schemas.resource_schema import (
    ExclusionWindow,
    Resource,
    ResourceKind,
    WeeklyTemplate,
)
from booking_engine.schemas.service_schema import ServiceConstraints

ResourceKey = tuple[str, str]


class TemplateStore(ABC):
    """Read access to professional and room schedules."""

    @abstractmethod
    async def get_resource(self, resource_id: str, kind: ResourceKind) -> Resource:
        """Return the resource with its weekly template and exclusions."""

    @abstractmethod
    async def list_rooms(self) -> list[Resource]:
        """Return every room known to the store, bookable or not."""

    async def get_weekly_template(self, resource_id: str, kind: ResourceKind) -> WeeklyTemplate:
        resource = await self.get_resource(resource_id, kind)
        return resource.template

    async def get_exclusion_windows(
        self, resource_id: str, kind: ResourceKind
    ) -> list[ExclusionWindow]:
        resource = await self.get_resource(resource_id, kind)
        return list(resource.exclusions)


class ServiceStore(ABC):
    """Read access to service configuration."""

    @abstractmethod
    async def get_service_constraints(self, service_id: str) -> ServiceConstraints:
        """Return the booking rules of a service."""


class AppointmentStore(ABC):
    """
    Appointment persistence with an atomic conditional commit.

    Every resource carries a version counter that the store bumps whenever
    an appointment touching that resource is written. ``commit_appointment``
    succeeds only if all counters still match the versions the caller read,
    so two writers racing for the same calendar cannot both win.
    """

    @abstractmethod
    async def list_active_appointments(
        self,
        resource_id: str,
        kind: ResourceKind,
        start: datetime,
        end: datetime,
    ) -> list[ExistingAppointment]:
        """Active appointments of one resource whose span touches ``[start, end)``."""

    @abstractmethod
    async def get_version(self, resource_id: str, kind: ResourceKind) -> int:
        """Current version counter of a resource's calendar."""

    @abstractmethod
    async def commit_appointment(
        self,
        candidate: CandidateSlot,
        service: ServiceConstraints,
        expected_versions: dict[ResourceKey, int],
    ) -> BookingReservation:
        """
        Atomically store ``candidate``.

        Raises:
            CommitConflictError: a resource version no longer matches.
        """
