"""Versioned aggregate store.

Design invariants
-----------------
1.  Each aggregate id owns an **append-only** history; version 1 is
    written by ``append()`` and every ``update()`` adds exactly
    ``latest + 1``.
2.  ``update()`` is a read-modify-write under a **per-id lock**: calls on
    the same id serialize (no lost updates), calls on different ids
    never contend.
3.  Snapshots are frozen values; readers get the snapshot objects or
    fresh lists of them, never the internal history list.
4.  Absent ids surface as ``NotFoundError`` (``UnknownAggregateError``
    for exact-version lookups); there are no silent defaults.

This module provides:

*  ``IVersionedStore``: the protocol.
*  ``InMemoryVersionedStore``: generic dict-backed implementation.
*  ``InMemoryPlanStore``: the plan specialisation with ``list_active``.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable
from datetime import datetime
from typing import Generic, Protocol, TypeVar, Union

from plan_ledger.core.errors import (
    DuplicateIdError,
    NotFoundError,
    UnknownAggregateError,
)
from plan_ledger.core.ids import new_id
from plan_ledger.domain.aggregate import Versioned, VersionedId
from plan_ledger.domain.lifecycle import DEFAULT_POLICY, LifecyclePolicy, is_active
from plan_ledger.domain.plan import Plan, PlanData, require_aware

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Transformations may be plain functions or coroutines.
Transform = Callable[[T], Union[T, Awaitable[T]]]


# ---------------------------------------------------------------------------
# Protocol
# ---------------------------------------------------------------------------

class IVersionedStore(Protocol[T]):
    """Append-only, per-id versioned history of aggregate snapshots."""

    async def append(
        self, data: T, aggregate_id: str | None = None,
    ) -> Versioned[T]:
        """Create a new aggregate at version 1."""
        ...

    async def update(
        self, aggregate_id: str, fn: Transform[T],
    ) -> Versioned[T]:
        """Atomically derive and append the next version."""
        ...

    async def get_latest(self, aggregate_id: str) -> Versioned[T]: ...

    async def get_exact(self, versioned_id: VersionedId) -> Versioned[T]: ...

    async def list_versions(self, aggregate_id: str) -> list[Versioned[T]]: ...

    async def list_latest(
        self, where: Callable[[Versioned[T]], bool] | None = None,
    ) -> list[Versioned[T]]: ...


# ---------------------------------------------------------------------------
# In-memory implementation
# ---------------------------------------------------------------------------

class InMemoryVersionedStore(Generic[T]):
    """Dict-backed store.  No persistence across restarts.

    Locks are created lazily per aggregate id and never evicted; the
    store lives for the whole process.
    """

    def __init__(self) -> None:
        self._histories: dict[str, list[Versioned[T]]] = {}
        self._locks: dict[str, asyncio.Lock] = {}

    def _lock_for(self, aggregate_id: str) -> asyncio.Lock:
        # No await between lookup and insert, so this is atomic on the loop.
        lock = self._locks.get(aggregate_id)
        if lock is None:
            lock = self._locks[aggregate_id] = asyncio.Lock()
        return lock

    def _history(self, aggregate_id: str) -> list[Versioned[T]]:
        history = self._histories.get(aggregate_id)
        if not history:
            raise NotFoundError(f"Aggregate not found: {aggregate_id}")
        return history

    # -- Writes ------------------------------------------------------------

    async def append(
        self, data: T, aggregate_id: str | None = None,
    ) -> Versioned[T]:
        """Create a brand-new aggregate holding *data* at version 1.

        Raises
        ------
        DuplicateIdError
            If an explicit *aggregate_id* already has history.
        """
        aid = aggregate_id or new_id()
        async with self._lock_for(aid):
            if aid in self._histories:
                raise DuplicateIdError(f"Aggregate id already exists: {aid}")
            snapshot = Versioned(VersionedId(aid, 1), data)
            self._histories[aid] = [snapshot]
        logger.debug("Appended %s", snapshot.versioned_id)
        return snapshot

    async def update(
        self, aggregate_id: str, fn: Transform[T],
    ) -> Versioned[T]:
        """Apply *fn* to the latest data and append the result.

        *fn* runs while the id's lock is held; if it raises, no version
        is written and the exception propagates.

        Raises
        ------
        NotFoundError
            If *aggregate_id* has no history.
        """
        async with self._lock_for(aggregate_id):
            history = self._history(aggregate_id)
            latest = history[-1]
            result = fn(latest.data)
            if inspect.isawaitable(result):
                result = await result
            snapshot = Versioned(latest.versioned_id.next(), result)
            history.append(snapshot)
        logger.debug("Updated %s", snapshot.versioned_id)
        return snapshot

    # -- Reads -------------------------------------------------------------

    async def get_latest(self, aggregate_id: str) -> Versioned[T]:
        return self._history(aggregate_id)[-1]

    async def get_exact(self, versioned_id: VersionedId) -> Versioned[T]:
        """Return one historical snapshot.

        Raises
        ------
        UnknownAggregateError
            If the aggregate id has no history.
        NotFoundError
            If the id exists but the version does not.
        """
        history = self._histories.get(versioned_id.aggregate_id)
        if not history:
            raise UnknownAggregateError(
                f"Unknown aggregate: {versioned_id.aggregate_id}"
            )
        # versions are contiguous from 1
        index = versioned_id.version - 1
        if index >= len(history):
            raise NotFoundError(
                f"Version {versioned_id.version} not found for "
                f"{versioned_id.aggregate_id} (latest is {len(history)})"
            )
        return history[index]

    async def list_versions(self, aggregate_id: str) -> list[Versioned[T]]:
        """All snapshots of *aggregate_id*, oldest first."""
        return list(self._history(aggregate_id))

    async def list_latest(
        self, where: Callable[[Versioned[T]], bool] | None = None,
    ) -> list[Versioned[T]]:
        """Latest snapshot of every aggregate, in creation order."""
        latest = [history[-1] for history in self._histories.values()]
        if where is None:
            return latest
        return [s for s in latest if where(s)]

    # -- Helpers -----------------------------------------------------------

    def __contains__(self, aggregate_id: object) -> bool:
        return aggregate_id in self._histories

    def __len__(self) -> int:
        return len(self._histories)


class InMemoryPlanStore(InMemoryVersionedStore[PlanData]):
    """Plan store with status-aware queries."""

    def __init__(self, policy: LifecyclePolicy = DEFAULT_POLICY) -> None:
        super().__init__()
        self._policy = policy

    @property
    def policy(self) -> LifecyclePolicy:
        return self._policy

    async def list_active(self, now: datetime) -> list[Plan]:
        """Latest version of every plan active at *now*."""
        require_aware(now, "now")
        return await self.list_latest(
            lambda plan: is_active(plan.data.status, now, self._policy)
        )
