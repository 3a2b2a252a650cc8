"""
Builders for a ready-to-use simulated deployment.

``build_environment`` wires up an underlying token, the SY/PT/YT triple, a
PT/SY market seeded with liquidity, the router, both lenders and the
arbitrage contract, so the keeper and the tests can run the full cycle
without an RPC endpoint.
"""

from dataclasses import dataclass
from typing import Optional

from pendle_arbitrage.utils import WAD

from .flash_arb import PendleFlashArb
from .lenders import AavePool, BalancerVault
from .ledger import Chain, make_address
from .pendle import (
    ERC20Token,
    PendleMarket,
    PrincipalToken,
    StandardizedYield,
    YieldToken,
)
from .router import PendleRouter

DEFAULT_LENDER_LIQUIDITY = 10_000_000 * WAD


@dataclass
class SimulatedDeployment:
    chain: Chain
    owner: str
    underlying: ERC20Token
    sy: StandardizedYield
    pt: PrincipalToken
    yt: YieldToken
    market: PendleMarket
    router: PendleRouter
    vault: BalancerVault
    pool: AavePool
    arb: PendleFlashArb


def seed_market(
    deployment: SimulatedDeployment, sy_reserve: int, pt_reserve: int
) -> None:
    """Top the market's SY and PT balances up to the given reserves."""
    chain = deployment.chain
    market = deployment.market.address
    sy_have, pt_have = deployment.market.get_reserves()
    if sy_reserve > sy_have:
        chain.mint(deployment.sy.address, market, sy_reserve - sy_have)
    if pt_reserve > pt_have:
        chain.mint(deployment.pt.address, market, pt_reserve - pt_have)


def build_environment(
    symbol: str = "wstETH",
    expiry_in: int = 90 * 24 * 3600,
    sy_reserve: int = 1_000_000 * WAD,
    pt_reserve: int = 1_000_000 * WAD,
    curve=None,
    vault_fee_bps: int = 0,
    pool_fee_bps: int = 5,
    exchange_rate: int = WAD,
    owner: Optional[str] = None,
    chain: Optional[Chain] = None,
) -> SimulatedDeployment:
    chain = chain or Chain()
    owner = owner or make_address("keeper-owner")

    underlying = ERC20Token(chain, symbol)
    sy = StandardizedYield(chain, f"SY-{symbol}", underlying.address, exchange_rate)
    pt = PrincipalToken(chain, f"PT-{symbol}")
    yt = YieldToken(chain, f"YT-{symbol}", sy, pt, chain.timestamp + expiry_in)
    market = PendleMarket(chain, f"{symbol}-market", yt, curve)
    router = PendleRouter(chain)
    vault = BalancerVault(chain, fee_bps=vault_fee_bps)
    pool = AavePool(chain, fee_bps=pool_fee_bps)
    arb = PendleFlashArb(chain, owner, vault.address, pool.address)

    for lender in (vault, pool):
        chain.mint(underlying.address, lender.address, DEFAULT_LENDER_LIQUIDITY)
    # SY backing so redemptions of freshly minted market reserves can settle
    chain.mint(
        underlying.address,
        sy.address,
        sy.preview_redeem(sy_reserve) + DEFAULT_LENDER_LIQUIDITY,
    )

    deployment = SimulatedDeployment(
        chain=chain,
        owner=owner,
        underlying=underlying,
        sy=sy,
        pt=pt,
        yt=yt,
        market=market,
        router=router,
        vault=vault,
        pool=pool,
        arb=arb,
    )
    seed_market(deployment, sy_reserve, pt_reserve)
    return deployment
