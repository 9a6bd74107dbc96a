from grooming_scheduler.lifecycle.state_machine import (
    ACTIVE_STATUSES,
    TERMINAL_STATUSES,
    BookingStateMachine,
    BookingStatus,
    LifecycleEvent,
    Role,
)

__all__ = [
    "BookingStateMachine",
    "BookingStatus",
    "LifecycleEvent",
    "Role",
    "ACTIVE_STATUSES",
    "TERMINAL_STATUSES",
]
