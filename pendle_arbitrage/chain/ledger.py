"""
In-process ledger that stands in for the EVM.

Tracks ERC20 balances, allowances and supply for every simulated token, hosts
the simulated contracts, and gives each transaction all-or-nothing semantics:
``Chain.transact`` snapshots every piece of state first and restores it if
anything raises. Contracts deployed and storage slots added during a reverted
call are dropped as well.
"""

import copy
import time
from contextlib import contextmanager
from typing import Any, Callable, Dict, List, Optional, Tuple

from web3 import Web3

from pendle_arbitrage.utils import get_logger

from .errors import ContractRevert, TransferFailed, ZeroAddress

logger = get_logger(__name__)

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"
MAX_UINT256 = 2**256 - 1


def make_address(label: str) -> str:
    """Derive a deterministic checksum address from a human-readable label."""
    digest = bytes(Web3.keccak(text=label))
    return Web3.to_checksum_address("0x" + digest[-20:].hex())


class Contract:
    """
    Base class for simulated contracts.

    Subclasses keep their storage as plain instance attributes; everything
    except the ``chain`` back-reference is captured by ledger snapshots.
    """

    def __init__(self, chain: "Chain", label: str):
        self.chain = chain
        self.label = label
        self.address = make_address(label)
        chain.deploy(self)

    def _storage(self) -> Dict[str, Any]:
        return {k: v for k, v in vars(self).items() if k != "chain"}

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.label} @ {self.address})"


class Chain:
    """Simulated ledger with ERC20 bookkeeping and transactional rollback."""

    def __init__(self, timestamp: Optional[int] = None):
        self.timestamp: int = int(timestamp if timestamp is not None else time.time())
        self.balances: Dict[Tuple[str, str], int] = {}
        self.allowances: Dict[Tuple[str, str, str], int] = {}
        self.total_supply: Dict[str, int] = {}
        self.events: List[Dict[str, Any]] = []
        self.contracts: Dict[str, Contract] = {}

    # ------------------------------------------------------------------
    # Contract registry
    # ------------------------------------------------------------------

    def deploy(self, contract: Contract) -> Contract:
        if contract.address in self.contracts:
            raise ValueError(f"Address already in use: {contract.address}")
        self.contracts[contract.address] = contract
        return contract

    def contract_at(self, address: str) -> Contract:
        contract = self.contracts.get(address)
        if contract is None:
            raise ContractRevert(f"No contract deployed at {address}")
        return contract

    def has_code(self, address: str) -> bool:
        return address in self.contracts

    # ------------------------------------------------------------------
    # ERC20 bookkeeping
    # ------------------------------------------------------------------

    def balance_of(self, token: str, holder: str) -> int:
        return self.balances.get((token, holder), 0)

    def allowance(self, token: str, owner: str, spender: str) -> int:
        return self.allowances.get((token, owner, spender), 0)

    def mint(self, token: str, to: str, amount: int) -> None:
        if to == ZERO_ADDRESS:
            raise ZeroAddress("mint to the zero address", token)
        self.balances[(token, to)] = self.balance_of(token, to) + amount
        self.total_supply[token] = self.total_supply.get(token, 0) + amount

    def burn(self, token: str, holder: str, amount: int) -> None:
        balance = self.balance_of(token, holder)
        if balance < amount:
            raise TransferFailed(
                f"burn amount {amount} exceeds balance {balance}", token
            )
        self.balances[(token, holder)] = balance - amount
        self.total_supply[token] = self.total_supply.get(token, 0) - amount

    def transfer(self, token: str, sender: str, to: str, amount: int) -> None:
        if to == ZERO_ADDRESS:
            raise ZeroAddress("transfer to the zero address", token)
        balance = self.balance_of(token, sender)
        if balance < amount:
            raise TransferFailed(
                f"transfer amount {amount} exceeds balance {balance}", token
            )
        self.balances[(token, sender)] = balance - amount
        self.balances[(token, to)] = self.balance_of(token, to) + amount

    def approve(self, token: str, owner: str, spender: str, amount: int) -> None:
        self.allowances[(token, owner, spender)] = amount

    def transfer_from(
        self, token: str, spender: str, owner: str, to: str, amount: int
    ) -> None:
        allowed = self.allowance(token, owner, spender)
        if allowed < amount:
            raise TransferFailed(
                f"insufficient allowance {allowed} < {amount}", token
            )
        # Infinite approvals are never decremented, as in OpenZeppelin ERC20
        if allowed != MAX_UINT256:
            self.allowances[(token, owner, spender)] = allowed - amount
        self.transfer(token, owner, to, amount)

    # ------------------------------------------------------------------
    # Events and time
    # ------------------------------------------------------------------

    def emit(self, contract: Contract, name: str, **args: Any) -> None:
        self.events.append({"address": contract.address, "event": name, **args})

    def advance_time(self, seconds: int) -> None:
        self.timestamp += seconds

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    def snapshot(self) -> Dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "balances": dict(self.balances),
            "allowances": dict(self.allowances),
            "total_supply": dict(self.total_supply),
            "events": list(self.events),
            "storage": {
                address: copy.deepcopy(contract._storage())
                for address, contract in self.contracts.items()
            },
        }

    def restore(self, snap: Dict[str, Any]) -> None:
        self.timestamp = snap["timestamp"]
        self.balances = dict(snap["balances"])
        self.allowances = dict(snap["allowances"])
        self.total_supply = dict(snap["total_supply"])
        self.events = list(snap["events"])
        # Contracts deployed after the snapshot never existed
        for address in list(self.contracts):
            if address not in snap["storage"]:
                del self.contracts[address]
        for address, storage in snap["storage"].items():
            state = vars(self.contracts[address])
            for name in [k for k in state if k != "chain" and k not in storage]:
                del state[name]
            state.update(copy.deepcopy(storage))

    @contextmanager
    def atomic(self):
        """Run a block with revert-on-exception semantics."""
        snap = self.snapshot()
        try:
            yield self
        except BaseException:
            self.restore(snap)
            raise

    def transact(self, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        """
        Execute one transaction.

        Returns whatever ``fn`` returns. Any exception rolls back every state
        change made during the call and propagates unchanged.
        """
        try:
            with self.atomic():
                return fn(*args, **kwargs)
        except ContractRevert as e:
            logger.debug(f"Transaction reverted: {e.reason}: {e}")
            raise

