"""
Finite state machine for the booking lifecycle.

Defines the five booking statuses and the explicit transitions between
them. Every status change a booking goes through must match a row in
TRANSITIONS; anything else is rejected with IllegalTransitionError
carrying the current status.

Usage:
    sm = BookingStateMachine(BookingStatus.RESERVED)
    sm.transition(LifecycleEvent.CHECK_IN)
    assert sm.current_state == BookingStatus.CHECKED_IN
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Optional

from grooming_scheduler.errors import IllegalTransitionError

logger = logging.getLogger(__name__)


class BookingStatus(str, Enum):
    """All possible statuses in a booking lifecycle."""
    RESERVED = "reserved"
    CHECKED_IN = "checked_in"
    PROGRESSING = "progressing"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class LifecycleEvent(str, Enum):
    """Events that cause status transitions."""
    CHECK_IN = "check_in"
    SUBMIT_SERVICES = "submit_services"
    COMPLETE = "complete"
    CANCEL = "cancel"
    RESTORE = "restore"
    SUBMIT_FEEDBACK = "submit_feedback"


class Role(str, Enum):
    """Caller role supplied by the identity provider."""
    STAFF = "staff"
    ADMIN = "admin"


ACTIVE_STATUSES: frozenset[BookingStatus] = frozenset({
    BookingStatus.RESERVED,
    BookingStatus.CHECKED_IN,
    BookingStatus.PROGRESSING,
})

TERMINAL_STATUSES: frozenset[BookingStatus] = frozenset({
    BookingStatus.COMPLETED,
    BookingStatus.CANCELLED,
})


def _admin_only(role: Role) -> bool:
    return role == Role.ADMIN


@dataclass
class Transition:
    """A single valid status transition."""
    from_state: BookingStatus
    to_state: BookingStatus
    event: LifecycleEvent
    guard: Optional[Callable[[Role], bool]] = None


@dataclass
class StateEntry:
    """Recorded history entry for a status visit."""
    state: BookingStatus
    entered_at: datetime
    event: Optional[LifecycleEvent] = None


class BookingStateMachine:
    """
    Deterministic state machine controlling a booking's status.

    The machine only decides; it does not persist. The lifecycle
    controller asks it for the target status, then applies the change
    with a compare-and-set update scoped to ``sources_for(event)``.
    """

    TRANSITIONS: list[Transition] = [
        # --- Arrival ---
        Transition(BookingStatus.RESERVED, BookingStatus.CHECKED_IN,
                   LifecycleEvent.CHECK_IN),

        # --- Service assignment (first submission and re-submission) ---
        Transition(BookingStatus.RESERVED, BookingStatus.PROGRESSING,
                   LifecycleEvent.SUBMIT_SERVICES),
        Transition(BookingStatus.CHECKED_IN, BookingStatus.PROGRESSING,
                   LifecycleEvent.SUBMIT_SERVICES),
        Transition(BookingStatus.PROGRESSING, BookingStatus.PROGRESSING,
                   LifecycleEvent.SUBMIT_SERVICES),

        # --- Completion ---
        Transition(BookingStatus.PROGRESSING, BookingStatus.COMPLETED,
                   LifecycleEvent.COMPLETE),
        Transition(BookingStatus.CHECKED_IN, BookingStatus.COMPLETED,
                   LifecycleEvent.COMPLETE),

        # --- Cancellation ---
        Transition(BookingStatus.RESERVED, BookingStatus.CANCELLED,
                   LifecycleEvent.CANCEL),
        Transition(BookingStatus.CHECKED_IN, BookingStatus.CANCELLED,
                   LifecycleEvent.CANCEL),
        Transition(BookingStatus.PROGRESSING, BookingStatus.CANCELLED,
                   LifecycleEvent.CANCEL),

        # --- Administrative undo ---
        Transition(BookingStatus.CANCELLED, BookingStatus.PROGRESSING,
                   LifecycleEvent.RESTORE, guard=_admin_only),
        Transition(BookingStatus.COMPLETED, BookingStatus.PROGRESSING,
                   LifecycleEvent.RESTORE, guard=_admin_only),

        # --- Feedback (no status change) ---
        Transition(BookingStatus.COMPLETED, BookingStatus.COMPLETED,
                   LifecycleEvent.SUBMIT_FEEDBACK),
    ]

    def __init__(self, status: BookingStatus = BookingStatus.RESERVED) -> None:
        self._current_state = BookingStatus(status)
        self._history: list[StateEntry] = [
            StateEntry(state=self._current_state, entered_at=datetime.now(timezone.utc))
        ]

    @property
    def current_state(self) -> BookingStatus:
        return self._current_state

    def transition(self, event: LifecycleEvent, role: Role = Role.STAFF) -> BookingStatus:
        """
        Execute a status transition.

        Args:
            event: The lifecycle event.
            role: Role of the caller, checked by guarded transitions.

        Returns:
            The new booking status.

        Raises:
            IllegalTransitionError: If no valid transition exists for this
                status, event and role.
        """
        blocked_by_guard = False
        for t in self.TRANSITIONS:
            if t.from_state == self._current_state and t.event == event:
                if t.guard is not None and not t.guard(role):
                    blocked_by_guard = True
                    continue

                old_state = self._current_state
                self._current_state = t.to_state
                self._history.append(StateEntry(
                    state=self._current_state,
                    entered_at=datetime.now(timezone.utc),
                    event=event,
                ))
                logger.debug(
                    "Booking transition: %s -> %s (event: %s)",
                    old_state.value, self._current_state.value, event.value,
                )
                return self._current_state

        if blocked_by_guard:
            raise IllegalTransitionError(
                f"'{event.value}' requires the admin role "
                f"(booking is '{self._current_state.value}')",
                current_status=self._current_state.value,
            )
        valid = [e.value for e in self.get_valid_events(role)]
        raise IllegalTransitionError(
            f"Cannot '{event.value}' a booking that is '{self._current_state.value}'. "
            f"Valid events: {valid}",
            current_status=self._current_state.value,
        )

    def can_transition(self, event: LifecycleEvent, role: Role = Role.STAFF) -> bool:
        return event in self.get_valid_events(role)

    def get_valid_events(self, role: Role = Role.STAFF) -> list[LifecycleEvent]:
        """Return all events valid from the current status for this role."""
        return [
            t.event for t in self.TRANSITIONS
            if t.from_state == self._current_state and (t.guard is None or t.guard(role))
        ]

    @classmethod
    def sources_for(cls, event: LifecycleEvent) -> list[BookingStatus]:
        """Statuses from which ``event`` is legal, for compare-and-set updates."""
        return [t.from_state for t in cls.TRANSITIONS if t.event == event]

    def get_history(self) -> list[StateEntry]:
        """Return the full transition history of this machine instance."""
        return list(self._history)

    def get_state_trace(self) -> list[str]:
        """Return ordered list of status names visited."""
        return [entry.state.value for entry in self._history]

    def is_terminal(self) -> bool:
        """Check if the booking is completed or cancelled."""
        return self._current_state in TERMINAL_STATUSES
