"""Rejection reasons and exceptions raised by the booking engine and its stores."""

from enum import Enum
from typing import Optional


class RejectionReason(str, Enum):
    """Structured reason codes surfaced to the booking endpoint."""
    RESOURCE_CLOSED = "RESOURCE_CLOSED"
    INELIGIBLE_RESOURCE = "INELIGIBLE_RESOURCE"
    TOO_SOON = "TOO_SOON"
    TOO_FAR = "TOO_FAR"
    SAME_DAY_DISALLOWED = "SAME_DAY_DISALLOWED"
    CONFLICT = "CONFLICT"
    CANCELLED = "CANCELLED"
    UPSTREAM_UNAVAILABLE = "UPSTREAM_UNAVAILABLE"

    @property
    def retryable(self) -> bool:
        """Whether the caller may retry the same request (with backoff)."""
        return self == RejectionReason.UPSTREAM_UNAVAILABLE

    @property
    def requires_fresh_search(self) -> bool:
        """Whether the caller should re-run slot search instead of retrying."""
        return self == RejectionReason.CONFLICT


class BookingEngineError(Exception):
    """Base class for errors raised by the engine and its collaborators."""


class UpstreamUnavailableError(BookingEngineError):
    """A collaborator store could not be reached. Transient."""


class ResourceNotFoundError(BookingEngineError):
    """A professional, room, or service id is unknown to the store."""


class CommitConflictError(BookingEngineError):
    """The store refused a commit because a resource changed since it was read."""

    def __init__(self, message: str, resource_key: Optional[tuple[str, str]] = None) -> None:
        super().__init__(message)
        self.resource_key = resource_key
