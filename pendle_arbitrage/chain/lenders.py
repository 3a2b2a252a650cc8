"""
Simulated flash-loan sources.

Both lenders expose one capability, ``flash_borrow``, and guarantee the same
post-condition: when the borrower's callback returns, principal plus fee must
be recoverable by the lender or the whole transaction reverts. They differ in
callback shape and in how repayment is collected:

- ``BalancerVault``: multi-asset ``receive_flash_loan`` callback; the borrower
  pushes repayment back before returning.
- ``AavePool``: single-asset ``execute_operation`` callback carrying the
  initiator; the pool pulls repayment through an allowance afterwards.
"""

from typing import List

from .errors import RepaymentFailed, TransferFailed
from .ledger import Chain, Contract


class FlashLender(Contract):
    def __init__(self, chain: Chain, label: str, fee_bps: int = 0):
        super().__init__(chain, label)
        self.fee_bps = fee_bps

    def fee_for(self, amount: int) -> int:
        return amount * self.fee_bps // 10_000

    def flash_borrow(
        self, sender: str, receiver: str, asset: str, amount: int, data: bytes
    ) -> None:
        raise NotImplementedError


class BalancerVault(FlashLender):
    def __init__(self, chain: Chain, label: str = "balancer-vault", fee_bps: int = 0):
        super().__init__(chain, label, fee_bps)

    def flash_loan(
        self,
        sender: str,
        recipient: str,
        tokens: List[str],
        amounts: List[int],
        user_data: bytes,
    ) -> None:
        pre_balances = [self.chain.balance_of(t, self.address) for t in tokens]
        fee_amounts = [self.fee_for(a) for a in amounts]

        for token, amount in zip(tokens, amounts):
            self.chain.transfer(token, self.address, recipient, amount)

        self.chain.contract_at(recipient).receive_flash_loan(
            self.address, tokens, amounts, fee_amounts, user_data
        )

        for token, pre, fee in zip(tokens, pre_balances, fee_amounts):
            post = self.chain.balance_of(token, self.address)
            if post < pre + fee:
                raise RepaymentFailed(
                    f"vault balance {post} < {pre + fee} after flash loan",
                    self.address,
                )
        self.chain.emit(self, "FlashLoan", recipient=recipient, tokens=tokens, amounts=amounts)

    def flash_borrow(
        self, sender: str, receiver: str, asset: str, amount: int, data: bytes
    ) -> None:
        self.flash_loan(sender, receiver, [asset], [amount], data)


class AavePool(FlashLender):
    def __init__(self, chain: Chain, label: str = "aave-pool", fee_bps: int = 5):
        super().__init__(chain, label, fee_bps)

    def flash_loan_simple(
        self,
        sender: str,
        receiver: str,
        asset: str,
        amount: int,
        params: bytes,
    ) -> None:
        premium = self.fee_for(amount)
        self.chain.transfer(asset, self.address, receiver, amount)

        ok = self.chain.contract_at(receiver).execute_operation(
            self.address, asset, amount, premium, sender, params
        )
        if not ok:
            raise RepaymentFailed("executeOperation returned false", self.address)

        try:
            self.chain.transfer_from(
                asset, self.address, receiver, self.address, amount + premium
            )
        except TransferFailed as e:
            raise RepaymentFailed(f"could not pull repayment: {e}", self.address) from e
        self.chain.emit(self, "FlashLoan", receiver=receiver, asset=asset, amount=amount, premium=premium)

    def flash_borrow(
        self, sender: str, receiver: str, asset: str, amount: int, data: bytes
    ) -> None:
        self.flash_loan_simple(sender, receiver, asset, amount, data)
