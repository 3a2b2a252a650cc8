"""
Simulated Pendle-style yield tokenization contracts.

- ``StandardizedYield`` (SY): wraps the underlying at a stored exchange rate.
- ``YieldToken`` (YT): splits SY into PT + YT and merges them back; owns the
  expiry.
- ``PendleMarket``: trades PT against SY. Pricing is delegated to a curve
  object so callers can plug in a constant-product pool or a fixed quote.
"""

from dataclasses import dataclass
from typing import Tuple

from pendle_arbitrage.utils import WAD

from .errors import Expired, SlippageExceeded, TransferFailed
from .ledger import MAX_UINT256, Chain, Contract


class ERC20Token(Contract):
    """Plain token whose balances live in the ledger."""

    def __init__(self, chain: Chain, symbol: str, decimals: int = 18, label: str = None):
        super().__init__(chain, label or f"token:{symbol}")
        self.symbol = symbol
        self.decimals = decimals

    def balance_of(self, holder: str) -> int:
        return self.chain.balance_of(self.address, holder)

    def approve(self, sender: str, spender: str, amount: int) -> bool:
        self.chain.approve(self.address, sender, spender, amount)
        return True


class StandardizedYield(ERC20Token):
    """
    SY wrapper. One share is worth ``exchange_rate / 1e18`` underlying.

    The contract holds the deposited underlying and pays redemptions out of it.
    """

    def __init__(
        self,
        chain: Chain,
        symbol: str,
        underlying: str,
        exchange_rate: int = WAD,
    ):
        super().__init__(chain, symbol, label=f"sy:{symbol}")
        self.underlying = underlying
        self.exchange_rate = exchange_rate

    def preview_deposit(self, amount_in: int) -> int:
        return amount_in * WAD // self.exchange_rate

    def preview_redeem(self, shares: int) -> int:
        return shares * self.exchange_rate // WAD

    def deposit(
        self,
        sender: str,
        receiver: str,
        token_in: str,
        amount_in: int,
        min_shares_out: int,
    ) -> int:
        if token_in != self.underlying:
            raise TransferFailed(f"SY {self.symbol} cannot wrap {token_in}", self.address)
        self.chain.transfer_from(token_in, self.address, sender, self.address, amount_in)
        shares = self.preview_deposit(amount_in)
        if shares < min_shares_out:
            raise SlippageExceeded(
                f"SY shares {shares} < min {min_shares_out}", self.address
            )
        self.chain.mint(self.address, receiver, shares)
        return shares

    def redeem(
        self,
        sender: str,
        receiver: str,
        shares: int,
        token_out: str,
        min_token_out: int,
    ) -> int:
        if token_out != self.underlying:
            raise TransferFailed(f"SY {self.symbol} cannot unwrap to {token_out}", self.address)
        self.chain.burn(self.address, sender, shares)
        amount_out = self.preview_redeem(shares)
        if amount_out < min_token_out:
            raise SlippageExceeded(
                f"SY redeem {amount_out} < min {min_token_out}", self.address
            )
        self.chain.transfer(token_out, self.address, receiver, amount_out)
        return amount_out


class PrincipalToken(ERC20Token):
    """PT leg; minted and burned only by its YT."""

    def __init__(self, chain: Chain, symbol: str):
        super().__init__(chain, symbol, label=f"pt:{symbol}")
        self.yt = None


class YieldToken(ERC20Token):
    """
    YT leg and the split/merge engine for one SY and expiry.

    Minting uses the "floating SY" pattern: SY transferred to this contract
    beyond ``sy_reserve`` is split on the next ``mint_py`` call.
    """

    def __init__(
        self,
        chain: Chain,
        symbol: str,
        sy: StandardizedYield,
        pt: PrincipalToken,
        expiry: int,
        py_index: int = WAD,
    ):
        super().__init__(chain, symbol, label=f"yt:{symbol}")
        self.sy = sy.address
        self.pt = pt.address
        self.expiry = expiry
        self.py_index = py_index
        self.sy_reserve = 0
        pt.yt = self.address

    def is_expired(self) -> bool:
        return self.chain.timestamp >= self.expiry

    def mint_py(self, sender: str, receiver_pt: str, receiver_yt: str) -> int:
        if self.is_expired():
            raise Expired(f"YT {self.symbol} expired at {self.expiry}", self.address)
        floating = self.chain.balance_of(self.sy, self.address) - self.sy_reserve
        amount_py = floating * self.py_index // WAD
        self.sy_reserve += floating
        self.chain.mint(self.pt, receiver_pt, amount_py)
        self.chain.mint(self.address, receiver_yt, amount_py)
        return amount_py

    def redeem_py(self, sender: str, receiver: str, amount_py: int) -> int:
        """Pull ``amount_py`` of PT and YT from ``sender`` and return the SY."""
        self.chain.transfer_from(self.pt, self.address, sender, self.address, amount_py)
        self.chain.transfer_from(self.address, self.address, sender, self.address, amount_py)
        self.chain.burn(self.pt, self.address, amount_py)
        self.chain.burn(self.address, self.address, amount_py)
        sy_out = amount_py * WAD // self.py_index
        self.sy_reserve -= sy_out
        self.chain.transfer(self.sy, self.address, receiver, sy_out)
        return sy_out


@dataclass(frozen=True)
class MarketSwapData:
    """Per-call slippage bound handed to the market alongside a swap."""

    min_sy_out: int = 0
    max_sy_in: int = MAX_UINT256


class ConstantProductCurve:
    """x * y = k pricing with the fee taken from the input side."""

    def __init__(self, fee_bps: int = 0):
        self.fee_bps = fee_bps

    def sell_pt(self, pt_in: int, sy_reserve: int, pt_reserve: int) -> int:
        pt_in_after_fee = pt_in * (10_000 - self.fee_bps) // 10_000
        return pt_in_after_fee * sy_reserve // (pt_reserve + pt_in_after_fee)

    def buy_pt(self, pt_out: int, sy_reserve: int, pt_reserve: int) -> int:
        if pt_out >= pt_reserve:
            raise SlippageExceeded(f"PT out {pt_out} drains reserve {pt_reserve}")
        numerator = sy_reserve * pt_out * 10_000
        denominator = (pt_reserve - pt_out) * (10_000 - self.fee_bps)
        return numerator // denominator + 1


class QuotedCurve:
    """
    Fixed SY-per-PT quotes, one for each side of the book.

    A sell quote above the buy quote is a crossed book: selling PT and buying
    the same amount straight back leaves SY behind.
    """

    def __init__(self, sell_price: int, buy_price: int):
        self.sell_price = sell_price
        self.buy_price = buy_price

    def sell_pt(self, pt_in: int, sy_reserve: int, pt_reserve: int) -> int:
        return pt_in * self.sell_price // WAD

    def buy_pt(self, pt_out: int, sy_reserve: int, pt_reserve: int) -> int:
        return -(-pt_out * self.buy_price // WAD)


class PendleMarket(Contract):
    """PT/SY market. Reserves are the market's real token balances."""

    def __init__(
        self,
        chain: Chain,
        name: str,
        yt: YieldToken,
        curve=None,
    ):
        super().__init__(chain, f"market:{name}")
        self.name = name
        self.yt = yt.address
        self.pt = yt.pt
        self.sy = yt.sy
        self.curve = curve or ConstantProductCurve()

    def get_reserves(self) -> Tuple[int, int]:
        """Return ``(sy_reserve, pt_reserve)``."""
        return (
            self.chain.balance_of(self.sy, self.address),
            self.chain.balance_of(self.pt, self.address),
        )

    def _check_live(self) -> None:
        if self.chain.contract_at(self.yt).is_expired():
            raise Expired(f"Market {self.name} expired", self.address)

    def swap_exact_pt_for_sy(
        self,
        sender: str,
        receiver: str,
        exact_pt_in: int,
        data: MarketSwapData = MarketSwapData(),
    ) -> int:
        self._check_live()
        sy_reserve, pt_reserve = self.get_reserves()
        sy_out = self.curve.sell_pt(exact_pt_in, sy_reserve, pt_reserve)
        if sy_out < data.min_sy_out:
            raise SlippageExceeded(f"SY out {sy_out} < min {data.min_sy_out}", self.address)
        self.chain.transfer_from(self.pt, self.address, sender, self.address, exact_pt_in)
        self.chain.transfer(self.sy, self.address, receiver, sy_out)
        self.chain.emit(self, "Swap", side="sell_pt", pt=exact_pt_in, sy=sy_out)
        return sy_out

    def swap_sy_for_exact_pt(
        self,
        sender: str,
        receiver: str,
        exact_pt_out: int,
        data: MarketSwapData = MarketSwapData(),
    ) -> int:
        self._check_live()
        sy_reserve, pt_reserve = self.get_reserves()
        sy_in = self.curve.buy_pt(exact_pt_out, sy_reserve, pt_reserve)
        if sy_in > data.max_sy_in:
            raise SlippageExceeded(f"SY in {sy_in} > max {data.max_sy_in}", self.address)
        self.chain.transfer_from(self.sy, self.address, sender, self.address, sy_in)
        self.chain.transfer(self.pt, self.address, receiver, exact_pt_out)
        self.chain.emit(self, "Swap", side="buy_pt", pt=exact_pt_out, sy=sy_in)
        return sy_in
