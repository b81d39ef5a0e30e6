"""Application bootstrap.

Wires the plan store, event log, projection bus, plan service and
projections from ``Settings``.  Collaborators default to the in-memory
adapters; pass your own bundle to connect real services.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .core.clock import IClock, WallClock
from .core.config import Settings, load_settings
from .infrastructure.collaborators import Collaborators
from .infrastructure.event_bus import ProjectionBus, Subscription
from .infrastructure.event_log import InMemoryEventLog
from .infrastructure.store import InMemoryPlanStore
from .observability.logger import setup_logging
from .projections import ActivePlansProjection, PaymentCreationProjection
from .services.plan_service import PlanService

logger = logging.getLogger(__name__)


@dataclass
class Runtime:
    """Everything a running ledger process holds."""

    settings: Settings
    clock: IClock
    store: InMemoryPlanStore
    event_log: InMemoryEventLog | None
    bus: ProjectionBus
    plans: PlanService
    collaborators: Collaborators
    payment_projection: PaymentCreationProjection
    active_plans: ActivePlansProjection
    subscriptions: list[Subscription] = field(default_factory=list)

    async def start(self) -> None:
        """Attach projections to the bus.  Needs a running event loop."""
        if self.subscriptions:
            logger.warning("Runtime already started")
            return
        self.subscriptions = [
            self.payment_projection.attach(self.bus),
            self.active_plans.attach(
                self.bus, replay=self.event_log is not None,
            ),
        ]
        logger.info("Runtime started with %d projections", len(self.subscriptions))

    async def stop(self) -> None:
        await self.bus.stop()
        self.subscriptions = []
        logger.info(
            "Runtime stopped (processed=%d, dead_letters=%d)",
            self.bus.messages_processed,
            len(self.bus.dead_letters),
        )


def build_runtime(
    settings: Settings | None = None,
    *,
    clock: IClock | None = None,
    collaborators: Collaborators | None = None,
    configure_logging: bool = False,
) -> Runtime:
    """Build (but do not start) a runtime from *settings*."""
    settings = settings or Settings()
    if configure_logging:
        setup_logging(
            level=settings.observability.log_level,
            format=settings.observability.log_format,
        )

    clock = clock or WallClock()
    policy = settings.lifecycle.to_policy()
    collaborators = collaborators or Collaborators()

    store = InMemoryPlanStore(policy)
    event_log = InMemoryEventLog() if settings.bus.event_log_enabled else None
    bus = ProjectionBus(
        event_log=event_log,
        record_history=settings.bus.record_history,
    )

    return Runtime(
        settings=settings,
        clock=clock,
        store=store,
        event_log=event_log,
        bus=bus,
        plans=PlanService(store, bus, clock),
        collaborators=collaborators,
        payment_projection=PaymentCreationProjection(
            contracts=collaborators.contracts,
            customers=collaborators.customers,
            payment_methods=collaborators.payment_methods,
            quoting=collaborators.quoting,
            payments=collaborators.payments,
        ),
        active_plans=ActivePlansProjection(store, policy),
    )


def build_runtime_from_config(
    config_path: str | Path | None = None,
    overrides: dict[str, Any] | None = None,
    **kwargs: Any,
) -> Runtime:
    """Load settings (TOML + env) and build a runtime with logging set up."""
    settings = load_settings(config_path=config_path, overrides=overrides)
    return build_runtime(settings, configure_logging=True, **kwargs)
