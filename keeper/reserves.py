"""
Market state readers.

Both readers expose the same two calls used by the scanner and the market
feed:

- ``read_reserves(market) -> MarketReserves``
- ``is_expired(market) -> bool``

``Web3MarketReader`` talks to a live chain through JSON-RPC;
``LedgerMarketReader`` reads the in-process simulated ledger.
"""

import time
from typing import Callable, TypeVar

from web3 import Web3

from pendle_arbitrage.chain.ledger import Chain
from pendle_arbitrage.exceptions import DataError
from pendle_arbitrage.utils import get_logger, to_units

from .abi import PENDLE_MARKET_ABI, PENDLE_YT_ABI
from .types import Market, MarketReserves

logger = get_logger(__name__)

T = TypeVar("T")


def _is_rate_limited(error: Exception) -> bool:
    text = str(error)
    return "429" in text or "Too Many Requests" in text


class Web3MarketReader:
    """Reads Pendle market reserves and YT expiry over JSON-RPC."""

    def __init__(
        self,
        web3: Web3,
        decimals: int = 18,
        max_retries: int = 3,
        backoff_base: float = 1.0,
    ):
        self.web3 = web3
        self.decimals = decimals
        self.max_retries = max_retries
        self.backoff_base = backoff_base

    def _call(self, what: str, market: Market, fn: Callable[[], T]) -> T:
        """
        Run one contract call, retrying only on rate limiting.

        Raises:
            DataError: If the call fails, or keeps being rate limited
        """
        last_error = None
        for attempt in range(self.max_retries):
            try:
                return fn()
            except Exception as e:
                last_error = e
                if _is_rate_limited(e) and attempt < self.max_retries - 1:
                    # Exponential backoff: 1s, 2s, 4s
                    time.sleep(self.backoff_base * 2**attempt)
                    continue
                raise DataError(
                    f"Failed to read {what}: {e}", source="rpc", market=market.name
                ) from e

        raise DataError(
            f"Failed to read {what} after {self.max_retries} retries: {last_error}",
            source="rpc",
            market=market.name,
        ) from last_error

    def read_reserves(self, market: Market) -> MarketReserves:
        contract = self.web3.eth.contract(
            address=Web3.to_checksum_address(market.address), abi=PENDLE_MARKET_ABI
        )
        sy_raw, pt_raw = self._call(
            "reserves", market, contract.functions.getReserves().call
        )
        return MarketReserves(
            sy_reserve=to_units(sy_raw, self.decimals),
            pt_reserve=to_units(pt_raw, self.decimals),
        )

    def is_expired(self, market: Market) -> bool:
        yt = self.web3.eth.contract(
            address=Web3.to_checksum_address(market.yt), abi=PENDLE_YT_ABI
        )
        return bool(self._call("expiry", market, yt.functions.isExpired().call))


class LedgerMarketReader:
    """Reads markets deployed on a simulated ``Chain``."""

    def __init__(self, chain: Chain, decimals: int = 18):
        self.chain = chain
        self.decimals = decimals

    def read_reserves(self, market: Market) -> MarketReserves:
        if not self.chain.has_code(market.address):
            raise DataError(
                f"No market deployed at {market.address}",
                source="ledger",
                market=market.name,
            )
        sy_raw, pt_raw = self.chain.contract_at(market.address).get_reserves()
        return MarketReserves(
            sy_reserve=to_units(sy_raw, self.decimals),
            pt_reserve=to_units(pt_raw, self.decimals),
        )

    def is_expired(self, market: Market) -> bool:
        if not self.chain.has_code(market.yt):
            raise DataError(
                f"No YT deployed at {market.yt}", source="ledger", market=market.name
            )
        return self.chain.contract_at(market.yt).is_expired()
