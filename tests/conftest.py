"""Shared fixtures for the plan-ledger test suite."""

from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from plan_ledger.core.clock import SimClock
from plan_ledger.core.models import CardMethod, Contract, Customer
from plan_ledger.infrastructure.collaborators import (
    Collaborators,
    InMemoryPaymentService,
)
from plan_ledger.infrastructure.event_bus import ProjectionBus
from plan_ledger.infrastructure.event_log import InMemoryEventLog
from plan_ledger.infrastructure.store import InMemoryPlanStore
from plan_ledger.services.plan_service import PlanService


# ---------------------------------------------------------------------------
# Time
# ---------------------------------------------------------------------------

@pytest.fixture
def t0() -> datetime:
    return datetime(2024, 6, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def sim_clock(t0: datetime) -> SimClock:
    return SimClock(start=t0)


# ---------------------------------------------------------------------------
# Store / bus / service
# ---------------------------------------------------------------------------

@pytest.fixture
def store() -> InMemoryPlanStore:
    return InMemoryPlanStore()


@pytest.fixture
def event_log() -> InMemoryEventLog:
    return InMemoryEventLog()


@pytest.fixture
def bus(event_log: InMemoryEventLog) -> ProjectionBus:
    return ProjectionBus(event_log=event_log)


@pytest.fixture
def plan_service(
    store: InMemoryPlanStore, bus: ProjectionBus, sim_clock: SimClock,
) -> PlanService:
    return PlanService(store, bus, sim_clock)


# ---------------------------------------------------------------------------
# Collaborators
# ---------------------------------------------------------------------------

@pytest.fixture
def sample_customer() -> Customer:
    return Customer(customer_id="cust-1", name="Ada Lovelace", email="ada@example.com")


@pytest.fixture
def sample_contract(sample_customer: Customer) -> Contract:
    return Contract(
        contract_id="contract-1",
        customer_id=sample_customer.customer_id,
        plan_id="plan-1",
        start_date=date(2024, 7, 1),
        insured_sum=Decimal("120000"),
    )


@pytest.fixture
def collaborators(
    sim_clock: SimClock,
    sample_customer: Customer,
    sample_contract: Contract,
) -> Collaborators:
    """In-memory collaborators seeded with one fully configured customer."""
    c = Collaborators(payments=InMemoryPaymentService(clock=sim_clock))
    c.customers.add(sample_customer)
    c.contracts.add(sample_contract)
    c.payment_methods.configure(
        sample_customer.customer_id, CardMethod(last4="4242"),
    )
    return c
