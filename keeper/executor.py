"""
Arbitrage execution for the keeper.

Turns the best Opportunity of a cycle into ArbitrageParameters and hands them
to one of three submitters:

- ``DryRunExecutor``: logs what would be executed (simulation mode)
- ``LedgerExecutor``: runs ``execute_arb`` on the in-process simulated chain
- ``Web3Executor``: signs and sends ``executeArb`` to the deployed contract

Every failure is turned into an unsuccessful ExecutionOutcome; nothing is
retried and nothing propagates to the polling loop.
"""

import asyncio
import time
from decimal import Decimal
from typing import Dict, Optional

from eth_account import Account
from eth_account.signers.local import LocalAccount
from web3 import Web3
from web3.exceptions import TimeExhausted

from pendle_arbitrage.chain.errors import ContractRevert
from pendle_arbitrage.chain.flash_arb import PendleFlashArb
from pendle_arbitrage.chain.ledger import Chain
from pendle_arbitrage.exceptions import ConfigurationError, ExecutionError
from pendle_arbitrage.utils import get_logger, to_raw, to_units

from .abi import ARB_CONTRACT_ABI
from .types import ArbitrageParameters, ExecutionOutcome, Opportunity

logger = get_logger(__name__)


def build_parameters(
    opportunity: Opportunity,
    vault: str,
    router: str,
    profit_capture_pct: int = 80,
    decimals: int = 18,
) -> ArbitrageParameters:
    """
    Build execution parameters for an opportunity.

    Borrows and cycles the full optimal size. The output floor is the size
    plus ``profit_capture_pct`` percent of the expected profit.
    """
    market = opportunity.market
    flash_amount = to_raw(opportunity.optimal_size, decimals)
    profit_raw = to_raw(opportunity.expected_profit, decimals)
    return ArbitrageParameters(
        vault=vault,
        router=router,
        underlying=market.underlying,
        yt=market.yt,
        market=market.address,
        flash_amount=flash_amount,
        py_to_cycle=flash_amount,
        min_underlying_out=flash_amount + profit_raw * profit_capture_pct // 100,
    )


class ArbitrageExecutor:
    """
    Base executor: parameter construction, logging and statistics.

    Subclasses implement ``_submit``.
    """

    mode = "base"

    def __init__(
        self,
        vault: str,
        router: str,
        profit_capture_pct: int = 80,
        decimals: int = 18,
    ):
        self.vault = vault
        self.router = router
        self.profit_capture_pct = profit_capture_pct
        self.decimals = decimals

        # Execution statistics
        self.executions_attempted = 0
        self.executions_successful = 0
        self.total_profit = Decimal(0)

    def build(self, opportunity: Opportunity) -> ArbitrageParameters:
        return build_parameters(
            opportunity,
            self.vault,
            self.router,
            self.profit_capture_pct,
            self.decimals,
        )

    async def execute(self, opportunity: Opportunity) -> ExecutionOutcome:
        start_time = time.time()
        self.executions_attempted += 1

        try:
            params = self.build(opportunity)
            logger.info(
                "EXECUTION_START: "
                f"{{'mode': '{self.mode}', 'market': '{opportunity.market.name}', "
                f"'flash_amount': {params.flash_amount}, "
                f"'min_underlying_out': {params.min_underlying_out}, "
                f"'profit_bps': {opportunity.profit_bps}}}"
            )
            outcome = await self._submit(params, opportunity)
        except Exception as e:
            outcome = ExecutionOutcome(
                success=False, reason=type(e).__name__, error=str(e)
            )
        outcome.execution_time_ms = (time.time() - start_time) * 1000

        if outcome.success:
            self.executions_successful += 1
            self.total_profit += outcome.profit or Decimal(0)
            logger.info(
                "EXECUTION_RESULT: "
                f"{{'success': True, 'market': '{opportunity.market.name}', "
                f"'profit': '{outcome.profit}', 'tx_hash': '{outcome.tx_hash}', "
                f"'gas_used': {outcome.gas_used}, "
                f"'time_ms': {outcome.execution_time_ms:.0f}}}"
            )
        else:
            logger.error(
                "EXECUTION_RESULT: "
                f"{{'success': False, 'market': '{opportunity.market.name}', "
                f"'reason': '{outcome.reason}', 'error': {outcome.error!r}, "
                f"'tx_hash': '{outcome.tx_hash}', "
                f"'time_ms': {outcome.execution_time_ms:.0f}}}"
            )
        return outcome

    async def _submit(
        self, params: ArbitrageParameters, opportunity: Opportunity
    ) -> ExecutionOutcome:
        raise NotImplementedError

    def get_stats(self) -> Dict:
        """Get execution statistics."""
        success_rate = (
            self.executions_successful / self.executions_attempted * 100
            if self.executions_attempted > 0
            else 0.0
        )
        return {
            "mode": self.mode,
            "executions_attempted": self.executions_attempted,
            "executions_successful": self.executions_successful,
            "success_rate_pct": success_rate,
            "total_profit": str(self.total_profit),
        }


class DryRunExecutor(ArbitrageExecutor):
    """Logs the parameters it would submit and reports the expected profit."""

    mode = "simulation"

    async def _submit(
        self, params: ArbitrageParameters, opportunity: Opportunity
    ) -> ExecutionOutcome:
        logger.info(
            "SIMULATION: Would execute arbitrage with params: "
            f"{{'market': '{params.market}', "
            f"'flash_amount': '{to_units(params.flash_amount, self.decimals)}', "
            f"'expected_profit': '{opportunity.expected_profit}', "
            f"'profit_bps': {opportunity.profit_bps}}}"
        )
        return ExecutionOutcome(
            success=True, profit=opportunity.expected_profit, tx_hash="0xDRYRUN"
        )


class LedgerExecutor(ArbitrageExecutor):
    """Executes against a ``PendleFlashArb`` deployed on a simulated Chain."""

    mode = "sandbox"

    def __init__(
        self,
        chain: Chain,
        arb: PendleFlashArb,
        sender: str,
        vault: str,
        router: str,
        profit_capture_pct: int = 80,
        decimals: int = 18,
    ):
        super().__init__(vault, router, profit_capture_pct, decimals)
        self.chain = chain
        self.arb = arb
        self.sender = sender

    async def _submit(
        self, params: ArbitrageParameters, opportunity: Opportunity
    ) -> ExecutionOutcome:
        try:
            profit_raw = self.chain.transact(self.arb.execute_arb, self.sender, params)
        except ContractRevert as e:
            return ExecutionOutcome(success=False, reason=e.reason, error=str(e))
        return ExecutionOutcome(success=True, profit=to_units(profit_raw, self.decimals))


class Web3Executor(ArbitrageExecutor):
    """
    Submits ``executeArb`` to the deployed contract.

    Gas is estimated against the node and padded by ``gas_limit_buffer_pct``;
    the node's current gas price is used. Success means a receipt with
    status 1. Realized profit is not decoded from the receipt, so the outcome
    reports the expected profit.
    """

    mode = "live"

    def __init__(
        self,
        web3: Web3,
        contract_address: str,
        private_key: str,
        vault: str,
        router: str,
        profit_capture_pct: int = 80,
        gas_limit_buffer_pct: int = 20,
        receipt_timeout: float = 120,
        decimals: int = 18,
    ):
        super().__init__(vault, router, profit_capture_pct, decimals)
        self.web3 = web3
        self.contract = web3.eth.contract(
            address=Web3.to_checksum_address(contract_address), abi=ARB_CONTRACT_ABI
        )
        self.gas_limit_buffer_pct = gas_limit_buffer_pct
        self.receipt_timeout = receipt_timeout

        try:
            self.account: LocalAccount = Account.from_key(private_key)
        except Exception as e:
            raise ConfigurationError(f"Failed to load private key: {e}") from e
        logger.info(f"Loaded account: {self.account.address}")

    def _build_transaction(self, params: ArbitrageParameters) -> Dict:
        call = self.contract.functions.executeArb(params.as_tuple())
        gas_estimate = call.estimate_gas({"from": self.account.address})
        return call.build_transaction(
            {
                "from": self.account.address,
                "gas": gas_estimate * (100 + self.gas_limit_buffer_pct) // 100,
                "gasPrice": self.web3.eth.gas_price,
                "nonce": self.web3.eth.get_transaction_count(self.account.address),
                "chainId": self.web3.eth.chain_id,
            }
        )

    def _send(self, params: ArbitrageParameters) -> str:
        tx = self._build_transaction(params)
        signed_tx = self.account.sign_transaction(tx)
        tx_hash = self.web3.eth.send_raw_transaction(signed_tx.raw_transaction)
        return self.web3.to_hex(tx_hash)

    async def _submit(
        self, params: ArbitrageParameters, opportunity: Opportunity
    ) -> ExecutionOutcome:
        loop = asyncio.get_running_loop()
        tx_hash: Optional[str] = None
        try:
            tx_hash = await loop.run_in_executor(None, self._send, params)
            logger.info(f"Transaction sent: {tx_hash}")
            receipt = await loop.run_in_executor(
                None,
                lambda: self.web3.eth.wait_for_transaction_receipt(
                    tx_hash, timeout=self.receipt_timeout
                ),
            )
        except TimeExhausted as e:
            return ExecutionOutcome(
                success=False, reason="Timeout", error=str(e), tx_hash=tx_hash
            )
        except Exception as e:
            return ExecutionOutcome(
                success=False, reason=type(e).__name__, error=str(e), tx_hash=tx_hash
            )

        if receipt["status"] != 1:
            return ExecutionOutcome(
                success=False,
                reason="TransactionReverted",
                error=f"Transaction {tx_hash} reverted",
                tx_hash=tx_hash,
                gas_used=receipt["gasUsed"],
            )
        return ExecutionOutcome(
            success=True,
            profit=opportunity.expected_profit,
            tx_hash=tx_hash,
            gas_used=receipt["gasUsed"],
        )


def verify_deployment(web3: Web3, contract_address: str, wallet_address: str) -> bool:
    """
    Check the arbitrage contract before going live.

    Returns:
        True if the contract is deployed and owned by the wallet, False if no
        code is deployed at the address (simulation mode)

    Raises:
        ConfigurationError: If the wallet is not the contract owner
        ExecutionError: If the node could not be queried
    """
    address = Web3.to_checksum_address(contract_address)
    try:
        code = web3.eth.get_code(address)
    except Exception as e:
        raise ExecutionError(f"Could not verify contract: {e}") from e
    if not code or bytes(code) in (b"", b"\x00"):
        logger.info(f"Contract not yet deployed at {address}; running in simulation mode")
        return False

    contract = web3.eth.contract(address=address, abi=ARB_CONTRACT_ABI)
    try:
        owner = contract.functions.owner().call()
    except Exception as e:
        raise ExecutionError(f"Could not read contract owner: {e}") from e
    if owner.lower() != wallet_address.lower():
        raise ConfigurationError(
            "Wallet is not the owner of the arbitrage contract",
            details={"owner": owner, "wallet": wallet_address},
        )
    logger.info(f"Contract verified at: {address}")
    return True
