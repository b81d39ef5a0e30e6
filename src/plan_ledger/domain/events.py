"""Canonical domain events.

Design invariants
-----------------
1.  Every event is **immutable** (``frozen=True``).
2.  ``event_id`` is a UUID4 generated at creation time; it serves as the
    idempotency / dedup key in the event log.
3.  ``aggregate_type`` (class attribute) plus the concrete class name
    form the event tag, e.g. ``plan/PlanLaunched``.
4.  Events carry only the ids downstream consumers need for lookups;
    projections fetch current state from the store or collaborators.
5.  ``correlation_id`` links events from the same external trigger;
    ``causation_id`` points at the ``event_id`` that directly caused it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import ClassVar

from plan_ledger.core.ids import new_id as _uuid
from plan_ledger.core.ids import utc_now as _now

# ---------------------------------------------------------------------------
# Base
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class DomainEvent:
    """Immutable base for every domain event.

    Shared fields
    ~~~~~~~~~~~~~
    event_id        Unique identity (UUID4).  Idempotency key.
    timestamp       UTC creation time.
    aggregate_id    Id of the aggregate the event is about.
    correlation_id  Groups events from the same causal chain.
    causation_id    The ``event_id`` that directly caused this event.
    """

    aggregate_type: ClassVar[str] = ""

    event_id: str = field(default_factory=_uuid)
    timestamp: datetime = field(default_factory=_now)
    aggregate_id: str = ""
    correlation_id: str = ""
    causation_id: str = ""

    @property
    def tag(self) -> str:
        return f"{self.aggregate_type}/{type(self).__name__}"


# =========================================================================
# Plan aggregate
# =========================================================================

@dataclass(frozen=True)
class PlanEvent(DomainEvent):
    aggregate_type: ClassVar[str] = "plan"

    version: int = 1


@dataclass(frozen=True)
class PlanCreated(PlanEvent):
    name: str = ""


@dataclass(frozen=True)
class PlanUpdated(PlanEvent):
    """Plan name or payload replaced."""

    name: str = ""


@dataclass(frozen=True)
class PlanLaunched(PlanEvent):
    launched_at: datetime | None = None


@dataclass(frozen=True)
class PlanRetired(PlanEvent):
    valid_from: datetime | None = None
    valid_until: datetime | None = None


# =========================================================================
# Contract aggregate (produced outside the ledger)
# =========================================================================

@dataclass(frozen=True)
class ContractEvent(DomainEvent):
    aggregate_type: ClassVar[str] = "contract"

    contract_id: str = ""

    def __post_init__(self) -> None:
        # contract events are keyed by contract id
        if not self.aggregate_id and self.contract_id:
            object.__setattr__(self, "aggregate_id", self.contract_id)


@dataclass(frozen=True)
class ContractCreated(ContractEvent):
    pass


@dataclass(frozen=True)
class ContractRenewed(ContractEvent):
    pass


@dataclass(frozen=True)
class ContractTerminated(ContractEvent):
    pass


# =========================================================================
# Registry
# =========================================================================

ALL_DOMAIN_EVENTS: tuple[type[DomainEvent], ...] = (
    PlanCreated,
    PlanUpdated,
    PlanLaunched,
    PlanRetired,
    ContractCreated,
    ContractRenewed,
    ContractTerminated,
)

PLAN_EVENTS: tuple[type[PlanEvent], ...] = (
    PlanCreated,
    PlanUpdated,
    PlanLaunched,
    PlanRetired,
)
