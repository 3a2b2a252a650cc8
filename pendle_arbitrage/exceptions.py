"""
Exception hierarchy for the off-chain side of the Pendle arbitrage system.

Contract reverts raised by the simulated ledger live in
``pendle_arbitrage.chain.errors``; everything here describes keeper-side
failures (configuration, market data, RPC, submission).
"""

from typing import Any, Dict, Optional


class PendleArbitrageError(Exception):
    """Base exception for all keeper related errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.details = details or {}


class ConfigurationError(PendleArbitrageError):
    """Raised when there are configuration-related issues."""

    pass


class DataError(PendleArbitrageError):
    """Raised when market data is missing, malformed or unreadable."""

    def __init__(
        self,
        message: str,
        source: Optional[str] = None,
        market: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, details)
        self.source = source
        self.market = market


class NetworkError(PendleArbitrageError):
    """Raised when network or RPC connectivity issues occur."""

    def __init__(
        self,
        message: str,
        endpoint: Optional[str] = None,
        status_code: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, details)
        self.endpoint = endpoint
        self.status_code = status_code


class ExecutionError(PendleArbitrageError):
    """Raised when building or submitting an arbitrage transaction fails."""

    def __init__(
        self,
        message: str,
        market: Optional[str] = None,
        tx_hash: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, details)
        self.market = market
        self.tx_hash = tx_hash
