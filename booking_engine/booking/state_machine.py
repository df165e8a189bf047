"""
Finite state machine for a single booking attempt.

    REQUESTED -> VALIDATING -> RESERVED | REJECTED

Cancellation is accepted from REQUESTED and VALIDATING. RESERVED and
REJECTED are terminal; no transition leaves them.

Usage:
    sm = BookingStateMachine()
    sm.transition(BookingTrigger.VALIDATION_STARTED)
    sm.reject(RejectionReason.CONFLICT)
    assert sm.current_state == BookingState.REJECTED
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from booking_engine.errors import RejectionReason
from booking_engine.schemas.appointment_schema import BookingState

logger = logging.getLogger(__name__)


class BookingTrigger(str, Enum):
    """Events that cause state transitions."""
    VALIDATION_STARTED = "validation_started"
    RESERVATION_COMMITTED = "reservation_committed"
    REJECTED = "rejected"
    CANCELLED = "cancelled"


@dataclass
class Transition:
    """A single valid state transition."""
    from_state: BookingState
    to_state: BookingState
    trigger: BookingTrigger


@dataclass
class StateEntry:
    """Recorded history entry for a state visit."""
    state: BookingState
    entered_at: datetime
    trigger: Optional[BookingTrigger] = None


class InvalidTransitionError(Exception):
    """Raised when a transition is not valid from the current state."""


class BookingStateMachine:
    """Tracks one booking attempt through its lifecycle."""

    TRANSITIONS: list[Transition] = [
        Transition(BookingState.REQUESTED, BookingState.VALIDATING,
                   BookingTrigger.VALIDATION_STARTED),
        Transition(BookingState.REQUESTED, BookingState.REJECTED,
                   BookingTrigger.REJECTED),
        Transition(BookingState.REQUESTED, BookingState.REJECTED,
                   BookingTrigger.CANCELLED),

        Transition(BookingState.VALIDATING, BookingState.RESERVED,
                   BookingTrigger.RESERVATION_COMMITTED),
        Transition(BookingState.VALIDATING, BookingState.REJECTED,
                   BookingTrigger.REJECTED),
        Transition(BookingState.VALIDATING, BookingState.REJECTED,
                   BookingTrigger.CANCELLED),
    ]

    TERMINAL_STATES = frozenset({BookingState.RESERVED, BookingState.REJECTED})

    def __init__(self) -> None:
        self._current_state = BookingState.REQUESTED
        self._history: list[StateEntry] = [
            StateEntry(state=BookingState.REQUESTED, entered_at=datetime.now(timezone.utc))
        ]
        self._reason: Optional[RejectionReason] = None

    @property
    def current_state(self) -> BookingState:
        return self._current_state

    @property
    def reason(self) -> Optional[RejectionReason]:
        return self._reason

    def transition(self, trigger: BookingTrigger) -> BookingState:
        """
        Execute a state transition.

        Raises:
            InvalidTransitionError: If no valid transition exists.
        """
        for t in self.TRANSITIONS:
            if t.from_state == self._current_state and t.trigger == trigger:
                old_state = self._current_state
                self._current_state = t.to_state
                self._history.append(StateEntry(
                    state=self._current_state,
                    entered_at=datetime.now(timezone.utc),
                    trigger=trigger,
                ))
                logger.debug(
                    "Booking transition: %s -> %s (trigger: %s)",
                    old_state.value, self._current_state.value, trigger.value,
                )
                return self._current_state

        valid = [t.value for t in self.get_valid_triggers()]
        raise InvalidTransitionError(
            f"No valid transition from '{self._current_state.value}' "
            f"with trigger '{trigger.value}'. Valid triggers: {valid}"
        )

    def reject(self, reason: RejectionReason) -> BookingState:
        """Move to REJECTED and remember why."""
        trigger = (
            BookingTrigger.CANCELLED
            if reason == RejectionReason.CANCELLED
            else BookingTrigger.REJECTED
        )
        state = self.transition(trigger)
        self._reason = reason
        return state

    def get_valid_triggers(self) -> list[BookingTrigger]:
        """Return all triggers valid from the current state."""
        return [t.trigger for t in self.TRANSITIONS if t.from_state == self._current_state]

    def get_history(self) -> list[StateEntry]:
        return list(self._history)

    def get_state_trace(self) -> list[str]:
        """Return ordered list of state names visited."""
        return [entry.state.value for entry in self._history]

    def is_terminal(self) -> bool:
        return self._current_state in self.TERMINAL_STATES
