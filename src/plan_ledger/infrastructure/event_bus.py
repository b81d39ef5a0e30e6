"""Broadcast event bus with independently running projections.

Design goals
------------
1.  **Non-blocking publish**: ``publish()`` only enqueues.  Each
    subscription owns an unbounded FIFO queue drained by its own
    background task, so a slow or failing projection never holds up the
    producer or any other projection.
2.  **Ordering**: events from one producer reach every subscription in
    publication order (one FIFO per subscription).  There is no total
    order across producers.
3.  **Failure isolation**: a handler exception is logged, counted and
    dead-lettered; the subscription keeps running and the next matching
    event is still delivered.
4.  **Cooperative cancellation**: cancelling a subscription discards
    events that have not started processing.  A handler invocation that
    is already running is allowed to finish; committed effects are not
    rolled back.
5.  **Replay**: with an attached event log, ``subscribe(replay=True)``
    feeds the subscription every logged event before live delivery.

This module provides:

*  ``ProjectionBus``: the bus.
*  ``Subscription``: running-task handle returned by ``subscribe()``.
*  ``DeadLetter``: record of one failed handler invocation.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections import defaultdict
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

from plan_ledger.domain.events import DomainEvent
from plan_ledger.infrastructure.event_log import IEventLog
from plan_ledger.observability.logger import correlation_context

logger = logging.getLogger(__name__)

# Type alias for async event handlers.
EventHandler = Callable[[DomainEvent], Awaitable[None]]
EventPredicate = Callable[[DomainEvent], bool]
ErrorCallback = Callable[[str, DomainEvent, Exception], None]

_STOP = object()


@dataclass
class DeadLetter:
    """Record of a handler failure."""

    subscription: str
    event_type: str
    event_id: str
    error: str
    timestamp: float = field(default_factory=time.monotonic)


# ---------------------------------------------------------------------------
# Subscription handle
# ---------------------------------------------------------------------------

class Subscription:
    """A running projection task bound to one handler.

    Created by ``ProjectionBus.subscribe()``; not instantiated directly.
    """

    def __init__(
        self,
        bus: ProjectionBus,
        name: str,
        handler: EventHandler,
        event_types: tuple[type[DomainEvent], ...] | None,
        predicate: EventPredicate | None,
        replay: bool,
    ) -> None:
        self._bus = bus
        self._name = name
        self._handler = handler
        self._event_types = event_types
        self._predicate = predicate
        self._replay = replay
        self._queue: asyncio.Queue[object] = asyncio.Queue()
        self._closed = False
        self._ready = asyncio.Event()
        self._replayed_ids: set[str] = set()
        self._task: asyncio.Task[None] = asyncio.create_task(
            self._run(), name=f"projection-{name}",
        )

        self.delivered = 0
        self.failed = 0

    @property
    def name(self) -> str:
        return self._name

    @property
    def is_active(self) -> bool:
        return not self._closed and not self._task.done()

    @property
    def pending(self) -> int:
        """Events queued but not yet started."""
        return self._queue.qsize()

    def matches(self, event: DomainEvent) -> bool:
        if self._event_types is not None and not isinstance(event, self._event_types):
            return False
        if self._predicate is None:
            return True
        try:
            return bool(self._predicate(event))
        except Exception:
            logger.exception(
                "Predicate of %s failed on %s; event skipped",
                self._name,
                type(event).__name__,
            )
            return False

    async def cancel(self) -> None:
        """Stop future delivery and wait for the in-flight handler."""
        await self._bus.cancel(self)

    async def wait_idle(self) -> None:
        """Wait until replay is done and every queued event was handled."""
        if self._task.done():
            return
        await self._ready.wait()
        await self._queue.join()

    # -- Internals ---------------------------------------------------------

    def _offer(self, event: DomainEvent) -> None:
        if self._closed:
            return
        self._queue.put_nowait(event)

    def _close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._queue.put_nowait(_STOP)

    async def _run(self) -> None:
        try:
            if self._replay:
                await self._run_replay()
        finally:
            self._ready.set()

        # only events queued while replay ran can repeat a replayed one
        overlap = self._queue.qsize()
        if not overlap:
            self._replayed_ids.clear()

        while True:
            item = await self._queue.get()
            try:
                if item is _STOP or self._closed:
                    break
                event: DomainEvent = item  # type: ignore[assignment]
                if event.event_id in self._replayed_ids:
                    continue
                await self._bus._deliver(self, event)
            finally:
                self._queue.task_done()
                if overlap:
                    overlap -= 1
                    if not overlap:
                        self._replayed_ids.clear()

        self._discard_pending()

    async def _run_replay(self) -> None:
        log = self._bus.event_log
        if log is None:
            return
        async for event in log.replay(where=self.matches):
            if self._closed:
                return
            self._replayed_ids.add(event.event_id)
            await self._bus._deliver(self, event)

    def _discard_pending(self) -> None:
        dropped = 0
        while True:
            try:
                item = self._queue.get_nowait()
            except asyncio.QueueEmpty:
                break
            if item is not _STOP:
                dropped += 1
            self._queue.task_done()
        if dropped:
            logger.info(
                "Subscription %s cancelled with %d undelivered events",
                self._name,
                dropped,
            )

    async def _wait_closed(self) -> None:
        await self._task

    def __repr__(self) -> str:
        state = "active" if self.is_active else "closed"
        return f"<Subscription {self._name} {state} delivered={self.delivered}>"


# ---------------------------------------------------------------------------
# Bus
# ---------------------------------------------------------------------------

class ProjectionBus:
    """In-process broadcast bus.  Must be used inside a running event loop.

    Parameters
    ----------
    event_log
        Optional ``IEventLog``.  When provided, every published event is
        appended to it (best effort) and becomes available for replay.
    record_history
        Keep an in-memory list of published events for inspection.
    on_handler_error
        Optional callback ``(subscription_name, event, exc)`` invoked when
        a handler raises.  Useful for external metrics or alerting.
    """

    def __init__(
        self,
        *,
        event_log: IEventLog | None = None,
        record_history: bool = True,
        on_handler_error: ErrorCallback | None = None,
    ) -> None:
        self._event_log = event_log
        self._record_history = record_history
        self._on_handler_error = on_handler_error
        self._subscriptions: list[Subscription] = []
        self._history: list[DomainEvent] = []
        self._error_counts: dict[str, int] = defaultdict(int)
        self._dead_letters: list[DeadLetter] = []
        self._messages_processed: int = 0
        self._seq = 0

    # -- Core API ----------------------------------------------------------

    async def publish(self, event: DomainEvent) -> None:
        """Enqueue *event* for every matching subscription.

        Never waits on handler execution.
        """
        if self._record_history:
            self._history.append(event)

        if self._event_log is not None:
            try:
                await self._event_log.append(event)
            except Exception:
                logger.exception(
                    "Event log append failed for %s", type(event).__name__,
                )

        for sub in list(self._subscriptions):
            if sub.matches(event):
                sub._offer(event)

    def subscribe(
        self,
        handler: EventHandler,
        *,
        event_types: type[DomainEvent] | tuple[type[DomainEvent], ...] | None = None,
        predicate: EventPredicate | None = None,
        name: str | None = None,
        replay: bool = False,
    ) -> Subscription:
        """Start a projection task that calls *handler* once per matching event.

        An event matches when it is an instance of one of *event_types*
        (any type when ``None``) and *predicate* (if given) returns true.
        """
        if isinstance(event_types, type):
            event_types = (event_types,)
        self._seq += 1
        sub_name = name or f"{getattr(handler, '__qualname__', 'handler')}#{self._seq}"
        sub = Subscription(
            self, sub_name, handler, event_types, predicate, replay,
        )
        self._subscriptions.append(sub)
        logger.info("Subscription %s started", sub_name)
        return sub

    async def cancel(self, subscription: Subscription) -> None:
        """Stop delivery to *subscription*; in-flight handling completes."""
        if subscription in self._subscriptions:
            self._subscriptions.remove(subscription)
        subscription._close()
        # a handler cancelling its own subscription cannot await itself
        if asyncio.current_task() is not subscription._task:
            await subscription._wait_closed()
        logger.info(
            "Subscription %s cancelled (delivered=%d, failed=%d)",
            subscription.name,
            subscription.delivered,
            subscription.failed,
        )

    async def drain(self) -> None:
        """Wait until every live subscription has processed its queue."""
        await asyncio.gather(*(s.wait_idle() for s in list(self._subscriptions)))

    async def stop(self) -> None:
        """Cancel every subscription."""
        for sub in list(self._subscriptions):
            await self.cancel(sub)

    # -- Delivery ----------------------------------------------------------

    async def _deliver(self, sub: Subscription, event: DomainEvent) -> None:
        try:
            with correlation_context(
                event.correlation_id or event.event_id, event.event_id,
            ):
                await sub._handler(event)
        except Exception as exc:
            sub.failed += 1
            self._error_counts[sub.name] += 1
            self._dead_letters.append(
                DeadLetter(
                    subscription=sub.name,
                    event_type=type(event).__name__,
                    event_id=event.event_id,
                    error=f"{type(exc).__name__}: {exc}",
                )
            )
            logger.exception(
                "Handler error in %s on %s (event_id=%s)",
                sub.name,
                type(event).__name__,
                event.event_id,
            )

            if self._on_handler_error is not None:
                try:
                    self._on_handler_error(sub.name, event, exc)
                except Exception:
                    logger.warning(
                        "on_handler_error callback failed", exc_info=True,
                    )
        else:
            sub.delivered += 1
            self._messages_processed += 1

    # -- Observability -----------------------------------------------------

    @property
    def event_log(self) -> IEventLog | None:
        return self._event_log

    @property
    def subscriptions(self) -> list[Subscription]:
        return list(self._subscriptions)

    def get_history(
        self,
        event_type: type[DomainEvent] | None = None,
    ) -> list[DomainEvent]:
        """Return published events, optionally filtered."""
        if event_type is None:
            return list(self._history)
        return [e for e in self._history if isinstance(e, event_type)]

    def clear_history(self) -> None:
        """Clear the event history (testing helper)."""
        self._history.clear()

    def get_error_counts(self) -> dict[str, int]:
        """Return ``{subscription_name: error_count}``."""
        return dict(self._error_counts)

    @property
    def dead_letters(self) -> list[DeadLetter]:
        return list(self._dead_letters)

    def clear_dead_letters(self) -> list[DeadLetter]:
        """Drain and return dead letters."""
        drained = self._dead_letters[:]
        self._dead_letters.clear()
        return drained

    @property
    def messages_processed(self) -> int:
        return self._messages_processed
