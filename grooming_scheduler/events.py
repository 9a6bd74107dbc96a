"""
In-process change feed for the booking ledger.

List views subscribe to be told when bookings are inserted, updated or
deleted so disappearing availability shows up without a manual refresh.
Events are published after the write commits. A failing subscriber is
logged and skipped; it never affects the write or other subscribers.

Usage:
    unsubscribe = change_feed.subscribe(lambda e: print(e.kind, e.record_id))
    ...
    unsubscribe()
"""

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class ChangeKind(str, Enum):
    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"


@dataclass(frozen=True)
class ChangeEvent:
    """One committed change to a ledger table."""
    table: str
    kind: ChangeKind
    record_id: int
    status: Optional[str] = None
    occurred_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


Subscriber = Callable[[ChangeEvent], None]


class ChangeFeed:
    """Thread-safe publish/subscribe hub keyed by table name."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._subscribers: list[tuple[Optional[str], Subscriber]] = []

    def subscribe(self, callback: Subscriber, table: Optional[str] = None) -> Callable[[], None]:
        """Register ``callback`` for one table (or all when None). Returns an unsubscribe function."""
        entry = (table, callback)
        with self._lock:
            self._subscribers.append(entry)

        def unsubscribe() -> None:
            with self._lock:
                if entry in self._subscribers:
                    self._subscribers.remove(entry)

        return unsubscribe

    def publish(self, event: ChangeEvent) -> None:
        with self._lock:
            targets = [cb for table, cb in self._subscribers if table is None or table == event.table]
        for callback in targets:
            try:
                callback(event)
            except Exception:
                logger.exception(
                    "Change feed subscriber failed for %s %s #%d",
                    event.table, event.kind.value, event.record_id,
                )

    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)


# Process-wide feed shared by the ledger, lifecycle controller and API
change_feed = ChangeFeed()
