"""
Price/reserve model for the PT round trip.

Estimates the profit of selling ``size`` PT into a market and buying the same
amount back, net of the mint/redeem cost and gas.

The sell leg is priced on the market's constant-product curve. The buy-back
leg is NOT priced on the curve: it is a flat ``size * (1 + buy_slippage)``
allowance. That is a known estimation bias kept on purpose; the execution
contract's settlement check is what protects funds, not this estimate.

All math is Decimal with 50 digits of precision, set in a local context so the
thread's own context is left alone. Nothing here performs I/O.
"""

from dataclasses import dataclass
from decimal import Decimal, localcontext
from typing import Optional

from .types import MarketReserves

PRECISION = 50
BPS = Decimal("10000")
GWEI = Decimal("1e-9")


@dataclass(frozen=True)
class ModelParams:
    """
    Cost assumptions for the estimate.

    Attributes:
        buy_slippage_pct: Flat allowance on the buy-back leg, in percent
        mint_redeem_cost_bps: Mint + redeem cost, in bps of size
        gas_units: Gas quantity per execution
        gas_price_gwei: Gas price used to cost it
    """

    buy_slippage_pct: Decimal = Decimal("2")
    mint_redeem_cost_bps: Decimal = Decimal("20")
    gas_units: int = 500_000
    gas_price_gwei: Decimal = Decimal("0.1")

    @property
    def gas_cost(self) -> Decimal:
        return Decimal(self.gas_units) * self.gas_price_gwei * GWEI

    @classmethod
    def from_config(cls, config) -> "ModelParams":
        return cls(
            buy_slippage_pct=config.buy_slippage_pct,
            mint_redeem_cost_bps=config.mint_redeem_cost_bps,
            gas_units=config.gas_units,
            gas_price_gwei=config.gas_price_gwei,
        )


@dataclass(frozen=True)
class ProfitEstimate:
    """Breakdown of one (market, size) estimate, in token units."""

    size: Decimal
    sy_from_sell: Decimal
    sy_for_buy: Decimal
    mint_redeem_cost: Decimal
    gas_cost: Decimal
    net_profit: Decimal
    profit_bps: int


def sell_output(size: Decimal, reserve_in: Decimal, reserve_out: Decimal) -> Decimal:
    """
    Output of selling ``size`` into a constant-product pool, no fee.

    Equivalent to ``reserve_out - k / (reserve_in + size)`` with
    ``k = reserve_in * reserve_out``. For positive inputs the result lies
    strictly between 0 and the spot-price output ``size * reserve_out / reserve_in``.
    """
    if size <= 0 or reserve_in <= 0 or reserve_out <= 0:
        return Decimal(0)
    return reserve_out * size / (reserve_in + size)


def estimate_arb_profit(
    reserves: MarketReserves,
    size: Decimal,
    params: ModelParams = ModelParams(),
) -> Optional[ProfitEstimate]:
    """
    Estimate the net profit of cycling ``size`` PT through a market.

    Args:
        reserves: SY and PT reserves of the market
        size: Trade size in token units
        params: Cost assumptions

    Returns:
        ProfitEstimate, or None when any stage leaves no profit
    """
    with localcontext() as ctx:
        ctx.prec = PRECISION
        return _estimate(reserves, Decimal(size), params)


def _estimate(
    reserves: MarketReserves, size: Decimal, params: ModelParams
) -> Optional[ProfitEstimate]:
    if size <= 0:
        return None

    sy_from_sell = sell_output(size, reserves.pt_reserve, reserves.sy_reserve)
    sy_for_buy = size * (1 + params.buy_slippage_pct / Decimal(100))
    if sy_from_sell <= sy_for_buy:
        return None

    mint_redeem_cost = size * params.mint_redeem_cost_bps / BPS
    net = sy_from_sell - sy_for_buy - mint_redeem_cost
    if net <= 0:
        return None

    # Rate is quoted before gas
    profit_bps = int(net * BPS / size)

    gas_cost = params.gas_cost
    net_after_gas = net - gas_cost
    if net_after_gas <= 0:
        return None

    return ProfitEstimate(
        size=size,
        sy_from_sell=sy_from_sell,
        sy_for_buy=sy_for_buy,
        mint_redeem_cost=mint_redeem_cost,
        gas_cost=gas_cost,
        net_profit=net_after_gas,
        profit_bps=profit_bps,
    )
