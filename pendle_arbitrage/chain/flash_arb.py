"""
Flash-loan arbitrage contract for Pendle PT markets.

One ``execute_arb`` call walks a single forward pass:

    BORROWED -> MARKET_VALIDATED -> CONVERTED_TO_SY -> SPLIT_MINTED
    -> SPREAD_CAPTURED -> MERGED -> UNWOUND -> SETTLED

Intermediate steps carry no slippage bounds. A buy-back the contract cannot
afford and an output below principal plus fee both end in InsufficientOutput.
Rollback of earlier steps on any failure comes from the enclosing
``Chain.transact``, not from compensation code here.
"""

from enum import Enum
from typing import List

from pendle_arbitrage.utils import get_logger

from .errors import Expired, InsufficientOutput, NoProfit, NotVault, Unauthorized, ZeroAddress
from .ledger import MAX_UINT256, ZERO_ADDRESS, Chain, Contract
from .params import ArbitrageParameters
from .pendle import MarketSwapData
from .router import SwapData, TokenInput, TokenOutput

logger = get_logger(__name__)


class ArbStage(Enum):
    BORROWED = 1
    MARKET_VALIDATED = 2
    CONVERTED_TO_SY = 3
    SPLIT_MINTED = 4
    SPREAD_CAPTURED = 5
    MERGED = 6
    UNWOUND = 7
    SETTLED = 8


class PendleFlashArb(Contract):
    """
    Owner-operated arbitrage contract.

    Accepts flash loans from exactly two lenders fixed at deployment: a
    vault-style lender (push repayment) and, optionally, a pool-style lender
    (pull repayment). Both callbacks share ``_arbitrage`` and ``_settle``.
    """

    def __init__(
        self,
        chain: Chain,
        owner: str,
        vault: str,
        pool: str = ZERO_ADDRESS,
        label: str = "pendle-flash-arb",
    ):
        super().__init__(chain, label)
        if owner == ZERO_ADDRESS:
            raise ZeroAddress("owner", self.address)
        self.owner = owner
        self.vault = vault
        self.pool = pool

    # ------------------------------------------------------------------
    # Owner entry points
    # ------------------------------------------------------------------

    def _only_owner(self, sender: str) -> None:
        if sender != self.owner:
            raise Unauthorized(f"{sender} is not the owner", self.address)

    def execute_arb(self, sender: str, params: ArbitrageParameters) -> int:
        """Borrow, run the cycle and return the profit paid to the owner."""
        self._only_owner(sender)
        if params.vault == ZERO_ADDRESS or params.vault not in (self.vault, self.pool):
            raise Unauthorized(f"untrusted lender {params.vault}", self.address)

        owner_before = self.chain.balance_of(params.underlying, self.owner)
        lender = self.chain.contract_at(params.vault)
        lender.flash_borrow(
            self.address,
            self.address,
            params.underlying,
            params.flash_amount,
            params.encode(),
        )
        return self.chain.balance_of(params.underlying, self.owner) - owner_before

    def update_owner(self, sender: str, new_owner: str) -> None:
        self._only_owner(sender)
        if new_owner == ZERO_ADDRESS:
            raise ZeroAddress("new owner is the zero address", self.address)
        self.chain.emit(self, "OwnerUpdated", previous=self.owner, owner=new_owner)
        self.owner = new_owner

    def rescue_token(self, sender: str, token: str, amount: int) -> None:
        """Sweep any token balance to the owner. Deliberately unconditional."""
        self._only_owner(sender)
        self.chain.transfer(token, self.address, self.owner, amount)

    # ------------------------------------------------------------------
    # Flash-loan callbacks
    # ------------------------------------------------------------------

    def receive_flash_loan(
        self,
        sender: str,
        tokens: List[str],
        amounts: List[int],
        fee_amounts: List[int],
        user_data: bytes,
    ) -> None:
        """Vault-style callback: repayment is pushed before returning."""
        if sender != self.vault or self.vault == ZERO_ADDRESS:
            raise NotVault(f"callback from {sender}", self.address)
        params = ArbitrageParameters.decode(user_data)

        required = amounts[0] + fee_amounts[0]
        self._arbitrage(params, amounts[0])
        profit = self._settle(params, required)

        self.chain.transfer(params.underlying, self.address, self.vault, required)
        self._distribute(params, profit)

    def execute_operation(
        self,
        sender: str,
        asset: str,
        amount: int,
        premium: int,
        initiator: str,
        params_data: bytes,
    ) -> bool:
        """Pool-style callback: the pool pulls repayment after we return."""
        if sender != self.pool or self.pool == ZERO_ADDRESS:
            raise Unauthorized(f"callback from {sender}", self.address)
        if initiator != self.address:
            raise Unauthorized(f"initiator {initiator}", self.address)
        params = ArbitrageParameters.decode(params_data)

        required = amount + premium
        self._arbitrage(params, amount)
        profit = self._settle(params, required)

        self._distribute(params, profit)
        self.chain.approve(asset, self.address, self.pool, required)
        return True

    # ------------------------------------------------------------------
    # Shared sequence
    # ------------------------------------------------------------------

    def _advance(self, stage: ArbStage, **info) -> None:
        logger.debug(f"[{self.label}] {stage.name} {info}")

    def _approve_spenders(self, params: ArbitrageParameters, sy: str, pt: str) -> None:
        approvals = [
            (params.underlying, sy),
            (params.underlying, params.router),
            (pt, params.yt),
            (params.yt, params.yt),
            (pt, params.market),
            (sy, params.market),
            (sy, params.router),
        ]
        for token, spender in approvals:
            self.chain.approve(token, self.address, spender, MAX_UINT256)

    def _arbitrage(self, params: ArbitrageParameters, borrowed: int) -> int:
        chain = self.chain
        self._advance(ArbStage.BORROWED, amount=borrowed)

        yt = chain.contract_at(params.yt)
        if yt.is_expired():
            raise Expired(f"YT {params.yt} expired", self.address)
        sy, pt = yt.sy, yt.pt
        market = chain.contract_at(params.market)
        router = chain.contract_at(params.router)
        self._advance(ArbStage.MARKET_VALIDATED, expiry=yt.expiry)

        self._approve_spenders(params, sy, pt)

        sy_received = router.mint_sy_from_token(
            self.address,
            self.address,
            sy,
            0,
            TokenInput(params.underlying, borrowed, params.underlying, SwapData()),
        )
        self._advance(ArbStage.CONVERTED_TO_SY, sy=sy_received)

        to_split = min(sy_received, params.py_to_cycle)
        chain.transfer(sy, self.address, yt.address, to_split)
        py_minted = yt.mint_py(self.address, self.address, self.address)
        cycle = min(py_minted, params.py_to_cycle)
        self._advance(ArbStage.SPLIT_MINTED, py=py_minted, cycle=cycle)

        sy_from_sell = market.swap_exact_pt_for_sy(
            self.address, self.address, cycle, MarketSwapData()
        )
        sy_held = chain.balance_of(sy, self.address)
        sy_needed = market.curve.buy_pt(cycle, *market.get_reserves())
        if sy_needed > sy_held:
            raise InsufficientOutput(sy_held, sy_needed, self.address)
        sy_for_buy = market.swap_sy_for_exact_pt(
            self.address, self.address, cycle, MarketSwapData()
        )
        self._advance(ArbStage.SPREAD_CAPTURED, sold=sy_from_sell, bought=sy_for_buy)

        redeemable = min(
            chain.balance_of(pt, self.address),
            chain.balance_of(yt.address, self.address),
        )
        if redeemable > 0:
            yt.redeem_py(self.address, self.address, redeemable)
        self._advance(ArbStage.MERGED, py=redeemable)

        sy_balance = chain.balance_of(sy, self.address)
        underlying_out = router.redeem_sy_to_token(
            self.address,
            self.address,
            sy,
            sy_balance,
            TokenOutput(
                params.underlying, params.min_underlying_out, params.underlying, SwapData()
            ),
        )
        self._advance(ArbStage.UNWOUND, sy=sy_balance, underlying=underlying_out)
        return underlying_out

    def _settle(self, params: ArbitrageParameters, required: int) -> int:
        balance = self.chain.balance_of(params.underlying, self.address)
        if balance < required:
            raise InsufficientOutput(balance, required, self.address)
        profit = balance - required
        if profit == 0:
            raise NoProfit("execution broke even", self.address)
        self._advance(ArbStage.SETTLED, repay=required, profit=profit)
        return profit

    def _distribute(self, params: ArbitrageParameters, profit: int) -> None:
        self.chain.transfer(params.underlying, self.address, self.owner, profit)
        self.chain.emit(
            self,
            "ArbitrageExecuted",
            market=params.market,
            flash_amount=params.flash_amount,
            profit=profit,
        )
