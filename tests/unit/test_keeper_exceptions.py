"""Tests for the exceptions module and contract revert types."""

import pytest

from pendle_arbitrage.chain.errors import (
    ContractRevert,
    Expired,
    InsufficientOutput,
    NoProfit,
    Unauthorized,
)
from pendle_arbitrage.exceptions import (
    ConfigurationError,
    DataError,
    ExecutionError,
    NetworkError,
    PendleArbitrageError,
)


def test_base_exception():
    """Test the base exception class."""
    error = PendleArbitrageError("Test error")
    assert str(error) == "Test error"
    assert error.details == {}

    error_with_details = PendleArbitrageError("Test error", {"key": "value"})
    assert error_with_details.details == {"key": "value"}


def test_configuration_error():
    error = ConfigurationError("Config error", {"config_file": "keeper.yaml"})
    assert str(error) == "Config error"
    assert error.details["config_file"] == "keeper.yaml"
    assert isinstance(error, PendleArbitrageError)


def test_data_error():
    error = DataError("Bad reserves", source="rpc", market="wstETH-26DEC24")
    assert error.source == "rpc"
    assert error.market == "wstETH-26DEC24"
    assert isinstance(error, PendleArbitrageError)


def test_network_error():
    error = NetworkError("API down", endpoint="https://api.pendle.finance", status_code=503)
    assert error.endpoint == "https://api.pendle.finance"
    assert error.status_code == 503


def test_execution_error():
    error = ExecutionError("Send failed", market="rsETH-26DEC24", tx_hash="0xabc")
    assert error.market == "rsETH-26DEC24"
    assert error.tx_hash == "0xabc"


def test_exception_catching():
    """Every keeper error is catchable through the base class."""
    for cls in (ConfigurationError, DataError, NetworkError, ExecutionError):
        with pytest.raises(PendleArbitrageError):
            raise cls("failure")


class TestContractReverts:
    def test_reason_is_the_revert_name(self):
        assert NoProfit().reason == "NoProfit"
        assert Expired("past expiry").reason == "Expired"
        assert str(NoProfit()) == "NoProfit"

    def test_insufficient_output_carries_amounts(self):
        error = InsufficientOutput(990, 1000, contract="0xarb")

        assert error.received == 990
        assert error.required == 1000
        assert error.contract == "0xarb"
        assert error.reason == "InsufficientOutput"
        assert "received=990" in str(error)

    def test_reverts_are_not_keeper_errors(self):
        assert issubclass(Unauthorized, ContractRevert)
        assert not issubclass(ContractRevert, PendleArbitrageError)
