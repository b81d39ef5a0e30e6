"""Tests for the append-only event log."""

from __future__ import annotations

from datetime import timedelta

import pytest

from plan_ledger.domain.events import (
    ContractCreated,
    PlanCreated,
    PlanLaunched,
)
from plan_ledger.infrastructure.event_log import InMemoryEventLog


class TestAppend:
    @pytest.mark.asyncio
    async def test_append_is_idempotent(self, event_log: InMemoryEventLog):
        event = PlanCreated(aggregate_id="p1", name="home")
        await event_log.append(event)
        await event_log.append(event)
        assert len(event_log) == 1

    @pytest.mark.asyncio
    async def test_clear(self, event_log: InMemoryEventLog):
        await event_log.append(PlanCreated(aggregate_id="p1"))
        event_log.clear()
        assert len(event_log) == 0
        assert await event_log.read() == []


class TestRead:
    @pytest.mark.asyncio
    async def test_read_in_append_order(self, event_log: InMemoryEventLog):
        events = [PlanCreated(aggregate_id=f"p{i}") for i in range(5)]
        for e in events:
            await event_log.append(e)
        assert await event_log.read() == events

    @pytest.mark.asyncio
    async def test_filters(self, event_log: InMemoryEventLog):
        created = PlanCreated(aggregate_id="p1")
        launched = PlanLaunched(aggregate_id="p1", version=2)
        contract = ContractCreated(contract_id="c1")
        for e in (created, launched, contract):
            await event_log.append(e)

        assert await event_log.read(event_types=(PlanLaunched,)) == [launched]
        assert await event_log.read(aggregate_id="p1") == [created, launched]
        assert await event_log.read(aggregate_id="c1") == [contract]
        assert await event_log.read(after_sequence=1) == [launched, contract]
        assert await event_log.read(limit=2) == [created, launched]


class TestReplay:
    @pytest.mark.asyncio
    async def test_replay_with_filter(self, event_log: InMemoryEventLog):
        await event_log.append(PlanCreated(aggregate_id="p1"))
        await event_log.append(ContractCreated(contract_id="c1"))

        replayed = [
            e async for e in event_log.replay(
                where=lambda e: isinstance(e, ContractCreated),
            )
        ]
        assert [type(e) for e in replayed] == [ContractCreated]

    @pytest.mark.asyncio
    async def test_replay_from_timestamp(self, event_log: InMemoryEventLog, t0):
        old = PlanCreated(aggregate_id="p1", timestamp=t0 - timedelta(days=1))
        new = PlanCreated(aggregate_id="p2", timestamp=t0)
        await event_log.append(old)
        await event_log.append(new)

        replayed = [e async for e in event_log.replay(from_timestamp=t0)]
        assert replayed == [new]

    @pytest.mark.asyncio
    async def test_appends_during_replay_not_seen(self, event_log: InMemoryEventLog):
        await event_log.append(PlanCreated(aggregate_id="p1"))
        seen = []
        async for e in event_log.replay():
            seen.append(e)
            await event_log.append(PlanCreated(aggregate_id="late"))
        assert len(seen) == 1
        assert len(event_log) == 2


class TestContractEvents:
    def test_aggregate_id_defaults_to_contract_id(self):
        assert ContractCreated(contract_id="c1").aggregate_id == "c1"

    def test_tag(self):
        assert ContractCreated(contract_id="c1").tag == "contract/ContractCreated"
        assert PlanCreated().tag == "plan/PlanCreated"
