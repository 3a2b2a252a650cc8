"""
Simulated Pendle router: underlying <-> SY conversions.

Token inputs and outputs carry a ``SwapData`` routing payload, a tagged
variant naming which external aggregator (if any) should pre-swap the token.
The simulated router only executes direct routes (``NONE``/``PASSTHROUGH``).
"""

from dataclasses import dataclass, field
from enum import Enum

from .errors import InsufficientOutput, UnsupportedSwap
from .ledger import MAX_UINT256, ZERO_ADDRESS, Chain, Contract


class SwapType(Enum):
    NONE = 0
    KYBERSWAP = 1
    ONE_INCH = 2
    PASSTHROUGH = 3


@dataclass(frozen=True)
class SwapData:
    """Aggregator routing payload; opaque to the arbitrage contract."""

    swap_type: SwapType = SwapType.NONE
    ext_router: str = ZERO_ADDRESS
    ext_calldata: bytes = b""

    @property
    def is_direct(self) -> bool:
        return self.swap_type in (SwapType.NONE, SwapType.PASSTHROUGH)


@dataclass(frozen=True)
class TokenInput:
    token_in: str
    net_token_in: int
    token_mint_sy: str
    swap_data: SwapData = field(default_factory=SwapData)


@dataclass(frozen=True)
class TokenOutput:
    token_out: str
    min_token_out: int
    token_redeem_sy: str
    swap_data: SwapData = field(default_factory=SwapData)


class PendleRouter(Contract):
    def __init__(self, chain: Chain, label: str = "pendle-router-v4"):
        super().__init__(chain, label)

    def _check_route(self, token: str, sy_token: str, swap_data: SwapData) -> None:
        if not swap_data.is_direct:
            raise UnsupportedSwap(
                f"external route {swap_data.swap_type.name} not available", self.address
            )
        if token != sy_token:
            raise UnsupportedSwap(
                f"direct route needs {sy_token}, got {token}", self.address
            )

    def mint_sy_from_token(
        self,
        sender: str,
        receiver: str,
        sy: str,
        min_sy_out: int,
        inp: TokenInput,
    ) -> int:
        self._check_route(inp.token_in, inp.token_mint_sy, inp.swap_data)
        sy_contract = self.chain.contract_at(sy)
        self.chain.transfer_from(
            inp.token_in, self.address, sender, self.address, inp.net_token_in
        )
        if self.chain.allowance(inp.token_in, self.address, sy) < inp.net_token_in:
            self.chain.approve(inp.token_in, self.address, sy, MAX_UINT256)
        return sy_contract.deposit(
            self.address, receiver, inp.token_mint_sy, inp.net_token_in, min_sy_out
        )

    def redeem_sy_to_token(
        self,
        sender: str,
        receiver: str,
        sy: str,
        net_sy_in: int,
        out: TokenOutput,
    ) -> int:
        self._check_route(out.token_out, out.token_redeem_sy, out.swap_data)
        sy_contract = self.chain.contract_at(sy)
        self.chain.transfer_from(sy, self.address, sender, self.address, net_sy_in)
        net_token_out = sy_contract.redeem(
            self.address, receiver, net_sy_in, out.token_redeem_sy, 0
        )
        if net_token_out < out.min_token_out:
            raise InsufficientOutput(net_token_out, out.min_token_out, self.address)
        return net_token_out
