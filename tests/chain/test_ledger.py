"""
Unit tests for the simulated ledger.

Covers ERC20 bookkeeping, infinite allowances, and transaction rollback of
both balances and contract storage.
"""

import pytest
from web3 import Web3

from pendle_arbitrage.chain.errors import ContractRevert, TransferFailed, ZeroAddress
from pendle_arbitrage.chain.ledger import MAX_UINT256, ZERO_ADDRESS, Chain, Contract, make_address
from pendle_arbitrage.chain.pendle import ERC20Token

ALICE = make_address("alice")
BOB = make_address("bob")
CAROL = make_address("carol")


class Counter(Contract):
    def __init__(self, chain):
        super().__init__(chain, "counter")
        self.value = 0
        self.history = []

    def bump(self, fail: bool = False):
        self.value += 1
        self.history.append(self.value)
        if fail:
            raise ContractRevert("bump failed", self.address)
        return self.value


@pytest.fixture
def chain():
    return Chain(timestamp=1_700_000_000)


@pytest.fixture
def token(chain):
    return ERC20Token(chain, "TKN")


def test_make_address_is_deterministic_checksum():
    assert make_address("alice") == ALICE
    assert make_address("alice") != make_address("bob")
    assert Web3.is_checksum_address(ALICE)


def test_mint_transfer_and_supply(chain, token):
    chain.mint(token.address, ALICE, 100)
    chain.transfer(token.address, ALICE, BOB, 40)

    assert token.balance_of(ALICE) == 60
    assert token.balance_of(BOB) == 40
    assert chain.total_supply[token.address] == 100


def test_transfer_exceeding_balance_fails(chain, token):
    chain.mint(token.address, ALICE, 10)
    with pytest.raises(TransferFailed):
        chain.transfer(token.address, ALICE, BOB, 11)


def test_transfer_to_zero_address_fails(chain, token):
    chain.mint(token.address, ALICE, 10)
    with pytest.raises(ZeroAddress):
        chain.transfer(token.address, ALICE, ZERO_ADDRESS, 1)


def test_transfer_from_decrements_finite_allowance(chain, token):
    chain.mint(token.address, ALICE, 100)
    token.approve(ALICE, BOB, 50)

    chain.transfer_from(token.address, BOB, ALICE, CAROL, 30)

    assert chain.allowance(token.address, ALICE, BOB) == 20
    assert token.balance_of(CAROL) == 30
    with pytest.raises(TransferFailed):
        chain.transfer_from(token.address, BOB, ALICE, CAROL, 21)


def test_infinite_allowance_is_not_decremented(chain, token):
    chain.mint(token.address, ALICE, 100)
    token.approve(ALICE, BOB, MAX_UINT256)

    chain.transfer_from(token.address, BOB, ALICE, CAROL, 100)

    assert chain.allowance(token.address, ALICE, BOB) == MAX_UINT256


def test_contract_at_unknown_address_reverts(chain):
    with pytest.raises(ContractRevert):
        chain.contract_at(make_address("nobody"))
    assert not chain.has_code(make_address("nobody"))


def test_deploy_twice_at_same_label_fails(chain):
    Counter(chain)
    with pytest.raises(ValueError):
        Counter(chain)


class TestTransactions:
    """Rollback semantics of Chain.transact."""

    def test_successful_transaction_commits(self, chain):
        counter = Counter(chain)
        assert chain.transact(counter.bump) == 1
        assert counter.value == 1

    def test_revert_restores_balances_and_storage(self, chain, token):
        counter = Counter(chain)
        chain.mint(token.address, ALICE, 100)
        chain.transact(counter.bump)

        def doomed():
            chain.transfer(token.address, ALICE, BOB, 70)
            chain.emit(counter, "Moved", amount=70)
            counter.bump(fail=True)

        events_before = list(chain.events)
        with pytest.raises(ContractRevert) as exc_info:
            chain.transact(doomed)

        assert exc_info.value.reason == "ContractRevert"
        assert token.balance_of(ALICE) == 100
        assert token.balance_of(BOB) == 0
        assert counter.value == 1
        assert counter.history == [1]
        assert chain.events == events_before

    def test_non_revert_exceptions_also_roll_back(self, chain, token):
        chain.mint(token.address, ALICE, 5)

        def broken():
            chain.transfer(token.address, ALICE, BOB, 5)
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            chain.transact(broken)
        assert token.balance_of(ALICE) == 5

    def test_revert_undoes_deployments_and_new_storage(self, chain):
        counter = Counter(chain)
        deployed = {}

        def grows_state():
            deployed["token"] = ERC20Token(chain, "LATE")
            counter.owner = ALICE
            raise ContractRevert("nope")

        with pytest.raises(ContractRevert):
            chain.transact(grows_state)

        assert not chain.has_code(deployed["token"].address)
        assert not hasattr(counter, "owner")
        assert counter.chain is chain
        # The address is free again
        ERC20Token(chain, "LATE")

    def test_rollback_restores_timestamp(self, chain):
        start = chain.timestamp

        def later():
            chain.advance_time(3600)
            raise ContractRevert("nope")

        with pytest.raises(ContractRevert):
            chain.transact(later)
        assert chain.timestamp == start
