"""
Unit tests for keeper/runner.py
"""

import asyncio
from decimal import Decimal
from unittest.mock import AsyncMock, Mock

import pytest
from prometheus_client import CollectorRegistry

from keeper.metrics import KeeperMetrics
from keeper.runner import KeeperRunner
from keeper.types import ExecutionOutcome, Market, Opportunity


def make_opportunity(i: int, profit: str) -> Opportunity:
    market = Market(
        address=f"0x{i:040x}",
        name=f"market-{i}",
        yt=f"0x{i + 1:040x}",
        pt=f"0x{i + 2:040x}",
        sy=f"0x{i + 3:040x}",
        underlying=f"0x{i + 4:040x}",
    )
    return Opportunity(market, Decimal("1000"), Decimal(profit), 500)


@pytest.fixture
def registry():
    return CollectorRegistry()


@pytest.fixture
def metrics(registry):
    return KeeperMetrics(registry=registry)


def make_runner(metrics, opportunities=(), outcome=None, **kwargs):
    feed = Mock()
    feed.refresh.return_value = ["markets"]
    scanner = Mock()
    scanner.scan.return_value = list(opportunities)
    executor = Mock()
    executor.mode = "sandbox"
    executor.execute = AsyncMock(
        return_value=outcome or ExecutionOutcome(success=True, profit=Decimal("1"))
    )
    return KeeperRunner(feed, scanner, executor, metrics, **kwargs)


class TestRunOnce:
    async def test_executes_only_the_best_opportunity(self, metrics):
        best, other = make_opportunity(1, "90"), make_opportunity(2, "40")
        runner = make_runner(metrics, [best, other])

        outcome = await runner.run_once()

        assert outcome.success
        runner.executor.execute.assert_awaited_once_with(best)
        runner.scanner.scan.assert_called_once_with(["markets"])

    async def test_no_opportunities_executes_nothing(self, metrics):
        runner = make_runner(metrics)

        assert await runner.run_once() is None
        runner.executor.execute.assert_not_awaited()
        assert metrics.get_summary()["cycles"] == 1

    async def test_scan_error_is_contained(self, metrics, registry):
        runner = make_runner(metrics)
        runner.feed.refresh.side_effect = RuntimeError("feed exploded")

        assert await runner.run_once() is None
        runner.executor.execute.assert_not_awaited()
        assert registry.get_sample_value("pendle_keeper_cycle_errors_total") == 1

    async def test_executor_exception_becomes_failure(self, metrics, registry):
        runner = make_runner(metrics, [make_opportunity(1, "10")])
        runner.executor.execute.side_effect = RuntimeError("boom")

        outcome = await runner.run_once()

        assert not outcome.success
        assert outcome.reason == "RuntimeError"
        assert outcome.error == "boom"
        assert (
            registry.get_sample_value(
                "pendle_keeper_execution_failures_total", {"reason": "RuntimeError"}
            )
            == 1
        )

    async def test_records_scan_and_execution(self, metrics, registry):
        runner = make_runner(metrics, [make_opportunity(1, "9"), make_opportunity(2, "8")])

        await runner.run_once()

        summary = metrics.get_summary()
        assert summary["opportunities_found"] == 2
        assert summary["trades_executed"] == 1
        assert summary["last_scan_time"] is not None
        assert (
            registry.get_sample_value(
                "pendle_keeper_trades_executed_total", {"mode": "sandbox"}
            )
            == 1
        )

    async def test_failed_outcome_recorded_by_reason(self, metrics, registry):
        runner = make_runner(
            metrics,
            [make_opportunity(1, "9")],
            outcome=ExecutionOutcome(success=False, reason="InsufficientOutput"),
        )

        await runner.run_once()

        assert metrics.get_summary()["execution_failures"] == 1
        assert (
            registry.get_sample_value(
                "pendle_keeper_execution_failures_total",
                {"reason": "InsufficientOutput"},
            )
            == 1
        )


class TestRunLoop:
    async def test_once_runs_single_cycle(self, metrics):
        runner = make_runner(metrics, once=True, poll_sec=60)

        await asyncio.wait_for(runner.run(), timeout=5)

        assert runner.feed.refresh.call_count == 1
        assert not runner.is_running

    async def test_keeps_polling_through_errors(self, metrics):
        runner = make_runner(metrics, poll_sec=0.01)
        calls = []

        def refresh():
            calls.append(1)
            if len(calls) == 3:
                runner.stop()
            raise RuntimeError("flaky feed")

        runner.feed.refresh.side_effect = refresh

        await asyncio.wait_for(runner.run(), timeout=5)

        assert len(calls) == 3

    async def test_stop_interrupts_sleep(self, metrics):
        runner = make_runner(metrics, poll_sec=3600)

        task = asyncio.create_task(runner.run())
        for _ in range(100):
            if runner.feed.refresh.called:
                break
            await asyncio.sleep(0.01)
        runner.stop()

        await asyncio.wait_for(task, timeout=5)
        assert runner.feed.refresh.call_count == 1
        assert not runner.is_running
