"""Active-plans read model.

Maintains ``{aggregate_id: PlanData}`` for the latest known version of
every plan, fed by ``Plan*`` events.  Each event carries only ids, so the
projection loads the referenced version from the store; events that
arrive out of order (older version than already held) are ignored.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING

from plan_ledger.domain.aggregate import VersionedId
from plan_ledger.domain.events import PLAN_EVENTS, DomainEvent, PlanEvent
from plan_ledger.domain.lifecycle import DEFAULT_POLICY, LifecyclePolicy, is_active
from plan_ledger.domain.plan import Plan, require_aware

if TYPE_CHECKING:
    from plan_ledger.infrastructure.event_bus import ProjectionBus, Subscription
    from plan_ledger.infrastructure.store import InMemoryPlanStore

logger = logging.getLogger(__name__)


class ActivePlansProjection:
    name = "active-plans"

    def __init__(
        self,
        store: InMemoryPlanStore,
        policy: LifecyclePolicy = DEFAULT_POLICY,
    ) -> None:
        self._store = store
        self._policy = policy
        self._plans: dict[str, Plan] = {}

    def attach(self, bus: ProjectionBus, *, replay: bool = True) -> Subscription:
        return bus.subscribe(
            self.handle,
            event_types=PLAN_EVENTS,
            name=self.name,
            replay=replay,
        )

    async def handle(self, event: DomainEvent) -> None:
        if not isinstance(event, PlanEvent):
            return
        current = self._plans.get(event.aggregate_id)
        if current is not None and current.version >= event.version:
            logger.debug(
                "Skipping stale %s v%d for %s",
                type(event).__name__,
                event.version,
                event.aggregate_id,
            )
            return
        plan = await self._store.get_exact(
            VersionedId(event.aggregate_id, event.version)
        )
        self._plans[event.aggregate_id] = plan

    def get(self, aggregate_id: str) -> Plan | None:
        return self._plans.get(aggregate_id)

    def active(self, now: datetime) -> list[Plan]:
        require_aware(now, "now")
        return [
            plan for plan in self._plans.values()
            if is_active(plan.data.status, now, self._policy)
        ]

    def __len__(self) -> int:
        return len(self._plans)
