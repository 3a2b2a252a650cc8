"""
Polling loop for the Pendle arbitrage keeper.

Each cycle: refresh markets, scan, execute at most the single best
opportunity, record metrics, sleep. Opportunities that were not chosen are
dropped, never queued. Any error inside a cycle is logged and the cycle
yields nothing; the loop carries on.
"""

import asyncio
from typing import List, Optional

from pendle_arbitrage.utils import format_duration, get_current_timestamp, get_logger

from .metrics import KeeperMetrics
from .types import ExecutionOutcome, Opportunity

logger = get_logger(__name__)


class KeeperRunner:
    """
    Drives the keeper.

    Args:
        feed: MarketDataFeed (``refresh() -> List[Market]``)
        scanner: OpportunityScanner (``scan(markets) -> List[Opportunity]``)
        executor: ArbitrageExecutor (async ``execute(opportunity)``)
        metrics: KeeperMetrics record; a private registry is not created here
        poll_sec: Sleep between cycles
        once: Run a single cycle, then stop
    """

    def __init__(
        self,
        feed,
        scanner,
        executor,
        metrics: KeeperMetrics,
        poll_sec: float = 5.0,
        once: bool = False,
    ):
        self.feed = feed
        self.scanner = scanner
        self.executor = executor
        self.metrics = metrics
        self.poll_sec = poll_sec
        self.once = once

        self._running = False
        self._stop_event: Optional[asyncio.Event] = None
        self.started_at: Optional[float] = None

    @property
    def is_running(self) -> bool:
        return self._running

    async def _scan(self) -> List[Opportunity]:
        loop = asyncio.get_running_loop()
        markets = await loop.run_in_executor(None, self.feed.refresh)
        return await loop.run_in_executor(None, self.scanner.scan, markets)

    async def run_once(self) -> Optional[ExecutionOutcome]:
        """
        Run one polling cycle.

        Returns:
            Outcome of the execution attempt, or None if nothing was executed
        """
        try:
            opportunities = await self._scan()
        except Exception as e:
            logger.error(f"Error in scan cycle: {e}", exc_info=True)
            self.metrics.record_cycle_error()
            return None

        self.metrics.record_scan(len(opportunities), get_current_timestamp())

        if not opportunities:
            logger.info("No profitable opportunities found")
            return None

        logger.info(f"Found {len(opportunities)} arbitrage opportunities")
        best = opportunities[0]
        try:
            outcome = await self.executor.execute(best)
        except Exception as e:
            logger.error(f"Execution of {best.market.name} raised: {e}", exc_info=True)
            outcome = ExecutionOutcome(
                success=False, reason=type(e).__name__, error=str(e)
            )

        self.metrics.record_execution(
            outcome.success,
            mode=getattr(self.executor, "mode", "live"),
            reason=outcome.reason or "",
        )
        return outcome

    async def _sleep(self) -> None:
        """Sleep for the poll interval, waking early if stop() is called."""
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=self.poll_sec)
        except asyncio.TimeoutError:
            pass

    async def run(self) -> None:
        """Main loop. Returns after stop() or, with ``once``, after one cycle."""
        logger.info("Starting arbitrage scanning loop...")
        self._running = True
        self._stop_event = asyncio.Event()
        self.started_at = get_current_timestamp()

        try:
            while self._running:
                await self.run_once()
                if self.once or not self._running:
                    break
                await self._sleep()
        finally:
            self._running = False
            self.log_stats()

    def stop(self) -> None:
        """Request the loop to stop; an in-flight cycle runs to completion."""
        if self._running:
            logger.info("Stopping keeper...")
        self._running = False
        if self._stop_event is not None:
            self._stop_event.set()

    def log_stats(self) -> None:
        summary = self.metrics.get_summary()
        uptime = (
            get_current_timestamp() - self.started_at if self.started_at else 0.0
        )
        logger.info(
            f"Keeper stats: uptime={format_duration(uptime)}, "
            f"cycles={summary['cycles']}, "
            f"opportunities={summary['opportunities_found']}, "
            f"executed={summary['trades_executed']}, "
            f"failed={summary['execution_failures']}"
        )
        if hasattr(self.executor, "get_stats"):
            logger.info(f"Execution stats: {self.executor.get_stats()}")
