"""
Off-chain keeper: market discovery, opportunity scanning and execution.
"""

from .config import ConfigError, KeeperConfig, load_config
from .executor import (
    ArbitrageExecutor,
    DryRunExecutor,
    LedgerExecutor,
    Web3Executor,
    build_parameters,
)
from .market_data import MarketDataFeed, PendleApiMarketSource, StaticMarketSource
from .metrics import KeeperMetrics
from .pricing import ModelParams, ProfitEstimate, estimate_arb_profit
from .reserves import LedgerMarketReader, Web3MarketReader
from .runner import KeeperRunner
from .scanner import OpportunityScanner
from .types import ExecutionOutcome, Market, MarketReserves, Opportunity

__all__ = [
    "ArbitrageExecutor",
    "ConfigError",
    "DryRunExecutor",
    "ExecutionOutcome",
    "KeeperConfig",
    "KeeperMetrics",
    "KeeperRunner",
    "LedgerExecutor",
    "LedgerMarketReader",
    "Market",
    "MarketDataFeed",
    "MarketReserves",
    "ModelParams",
    "Opportunity",
    "OpportunityScanner",
    "PendleApiMarketSource",
    "ProfitEstimate",
    "StaticMarketSource",
    "Web3Executor",
    "Web3MarketReader",
    "build_parameters",
    "estimate_arb_profit",
    "load_config",
]
