"""
Unit tests for keeper/reserves.py
"""

import unittest
from decimal import Decimal
from unittest.mock import MagicMock

from keeper.reserves import LedgerMarketReader, Web3MarketReader
from keeper.types import Market
from pendle_arbitrage.chain import build_environment
from pendle_arbitrage.exceptions import DataError
from pendle_arbitrage.utils import WAD

MARKET = Market(
    address="0x2FCb47B58350cD377f94d3821e7373Df60bD9Ced",
    name="wstETH-26DEC24",
    yt="0x4ba89e3584710cf5f7f1b541cb2b989d53a64355",
    pt="0x1c085195437738d73d75DC64bC5A3E098b7f93b1",
    sy="0x80c12D5b6Cc494632Bf11b03F09436c489B7b5C3",
    underlying="0x5979D7b546E38E414F7E9822514be443A4800529",
)


def mock_web3(get_reserves=None, is_expired=None):
    web3 = MagicMock()
    contract = MagicMock()
    if get_reserves is not None:
        contract.functions.getReserves.return_value.call.side_effect = get_reserves
    if is_expired is not None:
        contract.functions.isExpired.return_value.call.side_effect = is_expired
    web3.eth.contract.return_value = contract
    return web3


class TestWeb3MarketReader(unittest.TestCase):
    def test_reads_reserves_in_token_units(self):
        web3 = mock_web3(get_reserves=[(1_100_000 * WAD, 1_000_000 * WAD)])

        reserves = Web3MarketReader(web3).read_reserves(MARKET)

        self.assertEqual(reserves.sy_reserve, Decimal("1100000"))
        self.assertEqual(reserves.pt_reserve, Decimal("1000000"))

    def test_retries_when_rate_limited(self):
        web3 = mock_web3(
            get_reserves=[
                ValueError("429 Client Error: Too Many Requests"),
                (5 * WAD, 4 * WAD),
            ]
        )

        reserves = Web3MarketReader(web3, backoff_base=0).read_reserves(MARKET)

        self.assertEqual(reserves.pt_reserve, Decimal(4))

    def test_gives_up_after_max_retries(self):
        web3 = mock_web3(get_reserves=[ValueError("429")] * 3)
        reader = Web3MarketReader(web3, max_retries=3, backoff_base=0)

        with self.assertRaises(DataError) as ctx:
            reader.read_reserves(MARKET)
        self.assertEqual(ctx.exception.source, "rpc")
        self.assertEqual(ctx.exception.market, "wstETH-26DEC24")

    def test_other_failures_are_not_retried(self):
        calls = []

        def revert():
            calls.append(1)
            raise ValueError("execution reverted")

        web3 = mock_web3(get_reserves=revert)
        with self.assertRaises(DataError):
            Web3MarketReader(web3, backoff_base=0).read_reserves(MARKET)
        self.assertEqual(len(calls), 1)

    def test_is_expired(self):
        web3 = mock_web3(is_expired=[True])
        self.assertTrue(Web3MarketReader(web3).is_expired(MARKET))


class TestLedgerMarketReader(unittest.TestCase):
    def setUp(self):
        self.env = build_environment(sy_reserve=1_100_000 * WAD)
        self.market = Market(
            address=self.env.market.address,
            name="sandbox",
            yt=self.env.yt.address,
            pt=self.env.pt.address,
            sy=self.env.sy.address,
            underlying=self.env.underlying.address,
        )
        self.reader = LedgerMarketReader(self.env.chain)

    def test_reads_market_balances(self):
        reserves = self.reader.read_reserves(self.market)

        self.assertEqual(reserves.sy_reserve, Decimal("1100000"))
        self.assertEqual(reserves.pt_reserve, Decimal("1000000"))

    def test_expiry_follows_chain_time(self):
        self.assertFalse(self.reader.is_expired(self.market))
        self.env.chain.advance_time(91 * 24 * 3600)
        self.assertTrue(self.reader.is_expired(self.market))

    def test_unknown_market(self):
        ghost = Market(**{**self.market.__dict__, "address": "0x" + "99" * 20})
        with self.assertRaises(DataError):
            self.reader.read_reserves(ghost)


if __name__ == "__main__":
    unittest.main()
