"""
Opportunity scanner.

For each live, liquid market, tries every size on the ladder, keeps the sizes
clearing the minimum profit rate and picks the one with the largest net
profit. Candidates are then ranked across markets, best first.
"""

import time
from decimal import Decimal
from typing import Callable, Iterable, List, Optional, Sequence

from pendle_arbitrage.utils import get_logger

from .pricing import ModelParams, estimate_arb_profit
from .types import Market, Opportunity

logger = get_logger(__name__)

DEFAULT_TRADE_SIZES = [Decimal("10"), Decimal("100"), Decimal("1000"), Decimal("10000")]


class OpportunityScanner:
    """
    Ranks arbitrage candidates across markets.

    Args:
        reader: Object with ``read_reserves(market) -> MarketReserves``
        min_profit_bps: Sizes below this estimated rate are discarded
        trade_sizes: Size ladder, in token units
        max_flash_amount: Sizes above this cap are never proposed
        min_liquidity_usd: Markets below this liquidity are skipped
        params: Cost assumptions for the model
        clock: Returns the current unix time; used for the expiry check
    """

    def __init__(
        self,
        reader,
        min_profit_bps: int = 15,
        trade_sizes: Sequence[Decimal] = DEFAULT_TRADE_SIZES,
        max_flash_amount: Optional[Decimal] = None,
        min_liquidity_usd: float = 0.0,
        params: ModelParams = ModelParams(),
        clock: Callable[[], float] = time.time,
    ):
        self.reader = reader
        self.min_profit_bps = min_profit_bps
        self.trade_sizes = [Decimal(s) for s in trade_sizes]
        self.max_flash_amount = max_flash_amount
        self.min_liquidity_usd = min_liquidity_usd
        self.params = params
        self.clock = clock

    @classmethod
    def from_config(cls, config, reader, clock: Callable[[], float] = time.time):
        return cls(
            reader,
            min_profit_bps=config.min_profit_bps,
            trade_sizes=config.trade_sizes,
            max_flash_amount=config.max_flash_amount,
            min_liquidity_usd=config.min_liquidity_usd,
            params=ModelParams.from_config(config),
            clock=clock,
        )

    def is_eligible(self, market: Market, now: float) -> bool:
        if market.expired_at(now):
            return False
        return market.liquidity_usd >= self.min_liquidity_usd

    def _sizes(self) -> List[Decimal]:
        if self.max_flash_amount is None:
            return self.trade_sizes
        return [s for s in self.trade_sizes if s <= self.max_flash_amount]

    def best_for_market(self, market: Market) -> Optional[Opportunity]:
        """Best qualifying size for one market, or None."""
        try:
            reserves = self.reader.read_reserves(market)
        except Exception as e:
            logger.warning(f"Skipping {market.name}: {e}")
            return None

        best: Optional[Opportunity] = None
        for size in self._sizes():
            estimate = estimate_arb_profit(reserves, size, self.params)
            if estimate is None or estimate.profit_bps < self.min_profit_bps:
                continue
            if best is None or estimate.net_profit > best.expected_profit:
                best = Opportunity(
                    market=market,
                    optimal_size=size,
                    expected_profit=estimate.net_profit,
                    profit_bps=estimate.profit_bps,
                )
        return best

    def scan(self, markets: Iterable[Market]) -> List[Opportunity]:
        """
        Scan markets and return candidates sorted by net profit, descending.

        Ties keep input order.
        """
        now = self.clock()
        opportunities = []
        for market in markets:
            if not self.is_eligible(market, now):
                continue
            opp = self.best_for_market(market)
            if opp is None:
                continue
            opportunities.append(opp)
            logger.info(
                "OPPORTUNITY_FOUND: "
                f"{{'market': '{market.name}', 'size': '{opp.optimal_size}', "
                f"'profit': '{opp.expected_profit:.6f}', 'bps': {opp.profit_bps}}}"
            )

        return sorted(opportunities, key=lambda o: o.expected_profit, reverse=True)
