"""
Contract revert types raised inside the simulated ledger.

Any ``ContractRevert`` escaping a ``Chain.transact`` call means the whole
transaction was rolled back.
"""

from typing import Optional


class ContractRevert(Exception):
    """Base class for every revert raised by a simulated contract."""

    def __init__(self, message: Optional[str] = None, contract: Optional[str] = None):
        super().__init__(message or type(self).__name__)
        self.contract = contract

    @property
    def reason(self) -> str:
        return type(self).__name__


class Unauthorized(ContractRevert):
    """Caller or declared flash-loan initiator is not allowed."""


class NotVault(ContractRevert):
    """Vault-style flash-loan callback invoked by something other than the vault."""


class Expired(ContractRevert):
    """Target market's YT has passed its expiry."""


class InsufficientOutput(ContractRevert):
    """Underlying out is below the router min-out or the flash-loan repayment."""

    def __init__(self, received: int, required: int, contract: Optional[str] = None):
        super().__init__(
            f"InsufficientOutput(received={received}, required={required})", contract
        )
        self.received = received
        self.required = required


class NoProfit(ContractRevert):
    """Execution broke exactly even."""


class ZeroAddress(ContractRevert):
    """Zero address passed where a real identity is required."""


class TransferFailed(ContractRevert):
    """ERC20 transfer exceeded balance or allowance."""


class SlippageExceeded(ContractRevert):
    """Router or market output fell outside the caller's bound."""


class RepaymentFailed(ContractRevert):
    """Flash lender did not get its principal plus fee back."""


class UnsupportedSwap(ContractRevert):
    """Router was handed an external aggregator route it cannot execute."""
