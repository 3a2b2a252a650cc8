"""
Prometheus metrics for the arbitrage keeper.

Counters live in an injectable registry so tests (and multiple keepers in one
process) never collide on the global default.
"""

import re
import threading
import time
from typing import Any, Dict, Optional

from prometheus_client import REGISTRY, CollectorRegistry, Counter, Gauge

_LABEL_NAME = re.compile(r"^[A-Za-z][A-Za-z0-9_]{0,63}$")


def failure_label(reason: str) -> str:
    """
    Bounded label value for a failure reason.

    Revert and exception names pass through; free text such as an RPC error
    message collapses to "Other".
    """
    if not reason:
        return "unknown"
    if _LABEL_NAME.match(reason):
        return reason
    return "Other"


class KeeperMetrics:
    """
    Keeper counters.

    Tracks:
    - opportunities found per scan
    - executions attempted, succeeded and failed (by reason)
    - polling cycles and cycle errors
    - time of the last completed scan
    """

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        """Initialize metrics with custom registry or default"""
        self.registry = registry or REGISTRY
        self._lock = threading.RLock()
        self._initialize_metrics()

        # Plain mirrors for log summaries
        self.opportunities_found = 0
        self.trades_executed = 0
        self.execution_failures = 0
        self.cycles = 0
        self.last_scan_time: Optional[float] = None

    def _initialize_metrics(self):
        self.cycles_total = Counter(
            "pendle_keeper_cycles_total",
            "Total number of polling cycles run",
            registry=self.registry,
        )

        self.cycle_errors_total = Counter(
            "pendle_keeper_cycle_errors_total",
            "Total number of polling cycles aborted by an unexpected error",
            registry=self.registry,
        )

        self.opportunities_found_total = Counter(
            "pendle_keeper_opportunities_found_total",
            "Total number of opportunities found across scans",
            registry=self.registry,
        )

        self.trades_executed_total = Counter(
            "pendle_keeper_trades_executed_total",
            "Total number of successful executions",
            ["mode"],
            registry=self.registry,
        )

        self.execution_failures_total = Counter(
            "pendle_keeper_execution_failures_total",
            "Total number of failed executions",
            ["reason"],
            registry=self.registry,
        )

        self.last_scan_timestamp = Gauge(
            "pendle_keeper_last_scan_timestamp_seconds",
            "Unix time of the last completed scan",
            registry=self.registry,
        )

    def record_scan(self, opportunities: int, timestamp: Optional[float] = None):
        """Record a completed scan and how many opportunities it found"""
        with self._lock:
            self.cycles += 1
            self.cycles_total.inc()
            self.opportunities_found += opportunities
            if opportunities:
                self.opportunities_found_total.inc(opportunities)
            self.last_scan_time = timestamp if timestamp is not None else time.time()
            self.last_scan_timestamp.set(self.last_scan_time)

    def record_execution(self, success: bool, mode: str = "live", reason: str = ""):
        with self._lock:
            if success:
                self.trades_executed += 1
                self.trades_executed_total.labels(mode=mode).inc()
            else:
                self.execution_failures += 1
                self.execution_failures_total.labels(reason=failure_label(reason)).inc()

    def record_cycle_error(self):
        with self._lock:
            self.cycle_errors_total.inc()

    def get_summary(self) -> Dict[str, Any]:
        """Get current counter values for logging"""
        with self._lock:
            return {
                "cycles": self.cycles,
                "opportunities_found": self.opportunities_found,
                "trades_executed": self.trades_executed,
                "execution_failures": self.execution_failures,
                "last_scan_time": self.last_scan_time,
            }
