"""Plan commands and queries on top of the versioned store and the bus."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING

from plan_ledger.core.clock import IClock, WallClock
from plan_ledger.domain import lifecycle
from plan_ledger.domain.aggregate import VersionedId
from plan_ledger.domain.events import (
    DomainEvent,
    PlanCreated,
    PlanLaunched,
    PlanRetired,
    PlanUpdated,
)
from plan_ledger.domain.plan import Plan, PlanData, Retired
from plan_ledger.observability.logger import get_causation_id, get_correlation_id

if TYPE_CHECKING:
    from plan_ledger.infrastructure.event_bus import ProjectionBus
    from plan_ledger.infrastructure.store import InMemoryPlanStore

logger = logging.getLogger(__name__)


class PlanService:
    """Plan lifecycle operations.

    Every mutation goes through the store's atomic ``update()`` and, once
    the new version is committed, publishes the matching plan event.
    Publishing only enqueues, so callers never wait on projections.

    Errors from the store (``NotFoundError``) and from lifecycle rules
    (``ValidationError``, ``InvalidTransitionError``) propagate to the
    caller unchanged; nothing is published for a failed mutation.

    Commands take an optional ``correlation_id``.  When omitted, the id
    bound by the bus around the current handler (if any) is used, so
    events emitted from a projection stay in the same causal chain.
    """

    def __init__(
        self,
        store: InMemoryPlanStore,
        bus: ProjectionBus | None = None,
        clock: IClock | None = None,
    ) -> None:
        self._store = store
        self._bus = bus
        self._clock = clock or WallClock()

    @property
    def policy(self) -> lifecycle.LifecyclePolicy:
        return self._store.policy

    # -- Commands ----------------------------------------------------------

    async def create(
        self,
        name: str,
        aggregate_id: str | None = None,
        correlation_id: str = "",
    ) -> Plan:
        plan = await self._store.append(PlanData.new(name), aggregate_id)
        logger.info("Plan %s created: %s", plan.aggregate_id, plan.data.name)
        await self._publish(
            PlanCreated(
                aggregate_id=plan.aggregate_id,
                version=plan.version,
                name=plan.data.name.value,
                **_trace_ids(correlation_id),
            )
        )
        return plan

    async def rename(
        self, aggregate_id: str, name: str, correlation_id: str = "",
    ) -> Plan:
        plan = await self._store.update(
            aggregate_id, lambda data: lifecycle.rename(data, name),
        )
        await self._publish_updated(plan, correlation_id)
        return plan

    async def update_data(
        self, aggregate_id: str, data: PlanData, correlation_id: str = "",
    ) -> Plan:
        """Replace the plan payload wholesale with *data*."""
        plan = await self._store.update(aggregate_id, lambda _: data)
        await self._publish_updated(plan, correlation_id)
        return plan

    async def launch(
        self,
        aggregate_id: str,
        at: datetime | None = None,
        correlation_id: str = "",
    ) -> Plan:
        at = at or self._clock.now()
        plan = await self._store.update(
            aggregate_id, lambda data: lifecycle.launch(data, at, self.policy),
        )
        logger.info("Plan %s launched at %s (v%d)", aggregate_id, at.isoformat(), plan.version)
        await self._publish(
            PlanLaunched(
                aggregate_id=aggregate_id,
                version=plan.version,
                launched_at=at,
                **_trace_ids(correlation_id),
            )
        )
        return plan

    async def retire(
        self,
        aggregate_id: str,
        at: datetime | None = None,
        correlation_id: str = "",
    ) -> Plan:
        at = at or self._clock.now()
        plan = await self._store.update(
            aggregate_id, lambda data: lifecycle.retire(data, at, self.policy),
        )
        status = plan.data.status
        if not isinstance(status, Retired):
            raise TypeError(f"Unhandled plan status after retire: {status!r}")
        if status.is_degenerate:
            logger.warning(
                "Plan %s retired with a zero-length interval at %s",
                aggregate_id,
                at.isoformat(),
            )
        else:
            logger.info("Plan %s retired at %s (v%d)", aggregate_id, at.isoformat(), plan.version)
        await self._publish(
            PlanRetired(
                aggregate_id=aggregate_id,
                version=plan.version,
                valid_from=status.valid_from,
                valid_until=status.valid_until,
                **_trace_ids(correlation_id),
            )
        )
        return plan

    # -- Queries -----------------------------------------------------------

    async def get(self, aggregate_id: str) -> Plan:
        return await self._store.get_latest(aggregate_id)

    async def get_version(self, aggregate_id: str, version: int) -> Plan:
        return await self._store.get_exact(VersionedId(aggregate_id, version))

    async def history(self, aggregate_id: str) -> list[Plan]:
        return await self._store.list_versions(aggregate_id)

    async def list_active(self, now: datetime | None = None) -> list[Plan]:
        return await self._store.list_active(now or self._clock.now())

    # -- Internals ---------------------------------------------------------

    async def _publish_updated(self, plan: Plan, correlation_id: str) -> None:
        await self._publish(
            PlanUpdated(
                aggregate_id=plan.aggregate_id,
                version=plan.version,
                name=plan.data.name.value,
                **_trace_ids(correlation_id),
            )
        )

    async def _publish(self, event: DomainEvent) -> None:
        if self._bus is not None:
            await self._bus.publish(event)


def _trace_ids(correlation_id: str) -> dict[str, str]:
    return {
        "correlation_id": correlation_id or get_correlation_id(),
        "causation_id": get_causation_id(),
    }
