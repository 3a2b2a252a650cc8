"""
Core data types for the Pendle arbitrage keeper.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from pendle_arbitrage.chain.params import ArbitrageParameters


@dataclass(frozen=True)
class Market:
    """
    One Pendle market and the tokens around it.

    Attributes:
        address: PT/SY market contract
        name: Human-readable name (e.g., "wstETH-26DEC24")
        yt: YT contract address
        pt: PT token address
        sy: SY wrapper address
        underlying: Underlying asset address
        expiry: Expiry as unix seconds (0 when the feed did not report one)
        liquidity_usd: Market liquidity in USD as reported by the feed
        is_expired: Expiry flag as reported by the feed or an on-chain check
    """

    address: str
    name: str
    yt: str
    pt: str
    sy: str
    underlying: str
    expiry: int = 0
    liquidity_usd: float = 0.0
    is_expired: bool = False

    def expired_at(self, now: float) -> bool:
        return self.is_expired or (self.expiry > 0 and self.expiry <= now)


@dataclass(frozen=True)
class MarketReserves:
    """SY and PT reserves of a market, in token units."""

    sy_reserve: Decimal
    pt_reserve: Decimal


@dataclass
class Opportunity:
    """
    A ranked arbitrage candidate. Lives for one polling cycle.

    Attributes:
        market: Market the candidate belongs to
        optimal_size: Trade size (token units) that maximized net profit
        expected_profit: Estimated net profit after costs (token units)
        profit_bps: Estimated profit rate in basis points of the size
    """

    market: Market
    optimal_size: Decimal
    expected_profit: Decimal
    profit_bps: int


@dataclass
class ExecutionOutcome:
    """
    Result of one execution attempt.

    Attributes:
        success: Whether the attempt landed
        profit: Realized (or, in dry runs, expected) profit in token units
        reason: Failure name (revert or exception class, "TransactionReverted",
            "Timeout"); used as a metrics label
        error: Full failure message, for logs only
        tx_hash: Transaction hash, if one was submitted
        gas_used: Gas consumed, if known
        execution_time_ms: Wall time from build to confirmation
    """

    success: bool
    profit: Optional[Decimal] = None
    reason: Optional[str] = None
    error: Optional[str] = None
    tx_hash: Optional[str] = None
    gas_used: Optional[int] = None
    execution_time_ms: Optional[float] = None


__all__ = [
    "ArbitrageParameters",
    "ExecutionOutcome",
    "Market",
    "MarketReserves",
    "Opportunity",
]
