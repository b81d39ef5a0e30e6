"""Test structured logging setup."""

from __future__ import annotations

import json
import logging

import pytest
import structlog

from plan_ledger.domain.events import ContractCreated, DomainEvent
from plan_ledger.infrastructure.event_bus import ProjectionBus
from plan_ledger.observability.logger import (
    get_logger,
    set_correlation_id,
    setup_logging,
)


@pytest.fixture
def restore_logging():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for handler in root.handlers[:]:
        if handler not in handlers:
            root.removeHandler(handler)
    root.setLevel(level)
    structlog.reset_defaults()
    set_correlation_id("")


class TestSetupLogging:
    def test_json_output_for_stdlib_loggers(self, capsys, restore_logging):
        setup_logging(level="INFO", format="json")
        logging.getLogger("plan_ledger.test").warning("plan %s retired", "p1")

        line = capsys.readouterr().err.strip().splitlines()[-1]
        record = json.loads(line)
        assert record["event"] == "plan p1 retired"
        assert record["level"] == "warning"
        assert record["logger"] == "plan_ledger.test"
        assert "timestamp" in record

    def test_correlation_id_added(self, capsys, restore_logging):
        setup_logging(format="json")
        set_correlation_id("corr-1")
        logging.getLogger("plan_ledger.test").info("hello")

        record = json.loads(capsys.readouterr().err.strip().splitlines()[-1])
        assert record["correlation_id"] == "corr-1"

    def test_level_filtering(self, capsys, restore_logging):
        setup_logging(level="WARNING", format="json")
        logging.getLogger("plan_ledger.test").info("quiet")
        assert capsys.readouterr().err == ""

    def test_structlog_logger(self, capsys, restore_logging):
        setup_logging(format="json")
        get_logger("plan_ledger.test").info("projection_started", name="payments")

        record = json.loads(capsys.readouterr().err.strip().splitlines()[-1])
        assert record["event"] == "projection_started"
        assert record["name"] == "payments"

    def test_console_format(self, capsys, restore_logging):
        setup_logging(format="console")
        logging.getLogger("plan_ledger.test").error("boom")
        assert "boom" in capsys.readouterr().err


class TestHandlerCorrelation:
    @pytest.mark.asyncio
    async def test_handler_log_line_carries_event_correlation(
        self, capsys, restore_logging, bus: ProjectionBus,
    ):
        setup_logging(format="json")

        async def handler(event: DomainEvent) -> None:
            logging.getLogger("plan_ledger.test").info("handled %s", event.tag)

        bus.subscribe(handler)
        await bus.publish(ContractCreated(contract_id="c1", correlation_id="req-42"))
        await bus.drain()

        records = [
            json.loads(line)
            for line in capsys.readouterr().err.strip().splitlines()
        ]
        [handled] = [r for r in records if r["event"].startswith("handled")]
        assert handled["correlation_id"] == "req-42"
