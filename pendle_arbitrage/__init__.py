"""
Pendle Flash Arbitrage.

Detects spreads between a Pendle market's PT price and the price implied by
minting/redeeming the PT/YT pair, and captures them inside a single flash-loan
transaction. Ships a simulated ledger hosting the arbitrage contract and its
collaborators for dry runs and tests.
"""

PROJECT_NAME = "Pendle-Flash-Arbitrage"
VERSION = "0.4.0"

from pendle_arbitrage.exceptions import (
    ConfigurationError,
    DataError,
    ExecutionError,
    NetworkError,
    PendleArbitrageError,
)

__all__ = [
    "PROJECT_NAME",
    "VERSION",
    "PendleArbitrageError",
    "ConfigurationError",
    "DataError",
    "ExecutionError",
    "NetworkError",
]
