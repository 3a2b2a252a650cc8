"""
Simulated on-chain environment: ledger, Pendle contracts, flash lenders and
the flash arbitrage contract.
"""

from .environment import SimulatedDeployment, build_environment, seed_market
from .errors import (
    ContractRevert,
    Expired,
    InsufficientOutput,
    NoProfit,
    NotVault,
    Unauthorized,
    ZeroAddress,
)
from .flash_arb import ArbStage, PendleFlashArb
from .lenders import AavePool, BalancerVault, FlashLender
from .ledger import MAX_UINT256, ZERO_ADDRESS, Chain, make_address
from .params import ArbitrageParameters
from .pendle import ConstantProductCurve, MarketSwapData, PendleMarket, QuotedCurve
from .router import PendleRouter, SwapData, SwapType, TokenInput, TokenOutput

__all__ = [
    "AavePool",
    "ArbStage",
    "ArbitrageParameters",
    "BalancerVault",
    "Chain",
    "ConstantProductCurve",
    "ContractRevert",
    "Expired",
    "FlashLender",
    "InsufficientOutput",
    "MAX_UINT256",
    "MarketSwapData",
    "NoProfit",
    "NotVault",
    "PendleFlashArb",
    "PendleMarket",
    "PendleRouter",
    "QuotedCurve",
    "SimulatedDeployment",
    "SwapData",
    "SwapType",
    "TokenInput",
    "TokenOutput",
    "Unauthorized",
    "ZERO_ADDRESS",
    "ZeroAddress",
    "build_environment",
    "make_address",
    "seed_market",
]
