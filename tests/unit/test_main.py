"""End-to-end tests for runtime wiring."""

from __future__ import annotations

from datetime import timedelta

import pytest

from plan_ledger.core.clock import SimClock
from plan_ledger.core.config import Settings
from plan_ledger.core.errors import InvalidTransitionError
from plan_ledger.domain.events import ContractCreated
from plan_ledger.infrastructure.collaborators import Collaborators
from plan_ledger.main import build_runtime, build_runtime_from_config


class TestBuildRuntime:
    def test_defaults(self):
        runtime = build_runtime()
        assert runtime.event_log is not None
        assert runtime.bus.event_log is runtime.event_log
        assert runtime.subscriptions == []

    def test_event_log_disabled(self):
        runtime = build_runtime(Settings(bus={"event_log_enabled": False}))
        assert runtime.event_log is None
        assert runtime.bus.event_log is None

    @pytest.mark.asyncio
    async def test_strict_lifecycle_from_settings(self, sim_clock: SimClock):
        settings = Settings(lifecycle={"allow_retire_unlaunched": False})
        runtime = build_runtime(settings, clock=sim_clock)
        plan = await runtime.plans.create("home")
        with pytest.raises(InvalidTransitionError):
            await runtime.plans.retire(plan.aggregate_id)


class TestBuildRuntimeFromConfig:
    def test_loads_toml(self, tmp_path, monkeypatch):
        monkeypatch.setattr("plan_ledger.main.setup_logging", lambda **kw: None)
        path = tmp_path / "ledger.toml"
        path.write_text("[bus]\nevent_log_enabled = false\nrecord_history = false\n")

        runtime = build_runtime_from_config(path)
        assert runtime.event_log is None
        assert runtime.settings.bus.record_history is False

    def test_overrides(self, monkeypatch):
        calls = []
        monkeypatch.setattr(
            "plan_ledger.main.setup_logging", lambda **kw: calls.append(kw),
        )
        runtime = build_runtime_from_config(
            overrides={"lifecycle": {"inclusive_bounds": False}},
        )
        assert runtime.plans.policy.inclusive_bounds is False
        assert calls == [{"level": "INFO", "format": "console"}]


class TestRuntimeLifecycle:
    @pytest.mark.asyncio
    async def test_full_flow(self, sim_clock: SimClock, collaborators: Collaborators, t0):
        runtime = build_runtime(clock=sim_clock, collaborators=collaborators)

        # plan events published before start are replayed into the read model
        plan = await runtime.plans.create("household insurance")
        await runtime.start()
        await runtime.plans.launch(plan.aggregate_id, t0)
        await runtime.bus.publish(ContractCreated(contract_id="contract-1"))
        await runtime.bus.drain()

        assert len(collaborators.payments.for_contract("contract-1")) == 1
        assert runtime.payment_projection.payments_created == 1
        assert runtime.active_plans.active(t0 + timedelta(days=1)) == [plan]

        await runtime.stop()
        assert runtime.subscriptions == []
        assert runtime.bus.subscriptions == []

    @pytest.mark.asyncio
    async def test_start_twice_is_noop(self, sim_clock: SimClock):
        runtime = build_runtime(clock=sim_clock)
        await runtime.start()
        first = list(runtime.subscriptions)
        await runtime.start()
        assert runtime.subscriptions == first
        await runtime.stop()

    @pytest.mark.asyncio
    async def test_failed_payment_is_dead_lettered(
        self, sim_clock: SimClock, collaborators: Collaborators,
    ):
        runtime = build_runtime(clock=sim_clock, collaborators=collaborators)
        await runtime.start()
        await runtime.bus.publish(ContractCreated(contract_id="missing"))
        await runtime.bus.publish(ContractCreated(contract_id="contract-1"))
        await runtime.bus.drain()

        assert runtime.bus.get_error_counts() == {"payment-creation": 1}
        assert len(collaborators.payments.payments) == 1
        await runtime.stop()
