"""
Arbitrage parameters and their ABI encoding.

The tuple layout matches the deployed contract's ``executeArb`` argument, so
the same value is handed to web3 for live submission and round-tripped
through the flash-loan ``userData`` payload in the simulated contract.
"""

from dataclasses import astuple, dataclass

from eth_abi import decode, encode
from web3 import Web3

PARAMS_ABI_TYPE = "(address,address,address,address,address,uint256,uint256,uint256)"


@dataclass(frozen=True)
class ArbitrageParameters:
    """
    Input to one execution attempt.

    Attributes:
        vault: Flash-loan source address
        router: Pendle router address
        underlying: Asset borrowed and repaid
        yt: YT address (PT and SY are resolved from it)
        market: PT/SY market address
        flash_amount: Underlying to borrow (raw units)
        py_to_cycle: PT/YT amount to split, trade and merge (raw units)
        min_underlying_out: Floor on underlying returned by the final unwind
    """

    vault: str
    router: str
    underlying: str
    yt: str
    market: str
    flash_amount: int
    py_to_cycle: int
    min_underlying_out: int

    def as_tuple(self) -> tuple:
        return astuple(self)

    def encode(self) -> bytes:
        return encode([PARAMS_ABI_TYPE], [self.as_tuple()])

    @classmethod
    def decode(cls, data: bytes) -> "ArbitrageParameters":
        (raw,) = decode([PARAMS_ABI_TYPE], data)
        addresses = [Web3.to_checksum_address(a) for a in raw[:5]]
        return cls(*addresses, *raw[5:])
