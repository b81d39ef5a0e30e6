"""Append-only event log for replay and audit.

Design invariants
-----------------
1.  ``append()`` is **idempotent** on ``event.event_id``; appending
    the same event twice is a silent no-op.
2.  ``read()`` returns events in **append order** (monotonically
    increasing sequence number).
3.  ``replay()`` yields events lazily so a new projection can rebuild
    its read state before consuming live events.
4.  The log is **append-only**: events can never be deleted or
    modified.  ``clear()`` exists only for testing.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Callable
from datetime import datetime
from typing import Protocol

from plan_ledger.domain.events import DomainEvent

EventFilter = Callable[[DomainEvent], bool]


class IEventLog(Protocol):
    """Append-only event log."""

    async def append(self, event: DomainEvent) -> None:
        """Persist an event.  Idempotent on ``event.event_id``."""
        ...

    async def read(
        self,
        event_types: tuple[type[DomainEvent], ...] | None = None,
        aggregate_id: str | None = None,
        after_sequence: int | None = None,
        limit: int = 10_000,
    ) -> list[DomainEvent]:
        """Read events in append order, with optional filters."""
        ...

    def replay(
        self,
        where: EventFilter | None = None,
        from_timestamp: datetime | None = None,
    ) -> AsyncIterator[DomainEvent]:
        """Yield events lazily for state reconstruction."""
        ...


class InMemoryEventLog:
    """List-backed event log.  No persistence across restarts."""

    def __init__(self) -> None:
        self._events: list[DomainEvent] = []
        self._seen_ids: set[str] = set()

    async def append(self, event: DomainEvent) -> None:
        """Append *event*.  No-op if ``event_id`` already stored."""
        if event.event_id in self._seen_ids:
            return
        self._seen_ids.add(event.event_id)
        self._events.append(event)

    async def read(
        self,
        event_types: tuple[type[DomainEvent], ...] | None = None,
        aggregate_id: str | None = None,
        after_sequence: int | None = None,
        limit: int = 10_000,
    ) -> list[DomainEvent]:
        """Read events in append order with optional filters.

        ``after_sequence`` is the number of leading events to skip.
        """
        start = after_sequence if after_sequence is not None else 0
        out: list[DomainEvent] = []
        for event in self._events[start:]:
            if event_types is not None and not isinstance(event, event_types):
                continue
            if aggregate_id is not None and event.aggregate_id != aggregate_id:
                continue
            out.append(event)
            if len(out) >= limit:
                break
        return out

    async def replay(
        self,
        where: EventFilter | None = None,
        from_timestamp: datetime | None = None,
    ) -> AsyncIterator[DomainEvent]:
        """Yield stored events lazily."""
        # snapshot so appends during replay are not picked up mid-iteration
        for event in list(self._events):
            if where is not None and not where(event):
                continue
            if from_timestamp is not None and event.timestamp < from_timestamp:
                continue
            yield event

    # -- Testing helpers ---------------------------------------------------

    def clear(self) -> None:
        """Remove all events.  Testing only."""
        self._events.clear()
        self._seen_ids.clear()

    def __len__(self) -> int:
        return len(self._events)
