"""
Unit tests for keeper/market_data.py

The Pendle API is mocked at ``requests.get``; no network access.
"""

from datetime import datetime
from unittest.mock import Mock, patch

import pytest
import requests

from keeper.market_data import (
    KNOWN_ARBITRUM_MARKETS,
    MarketDataFeed,
    PendleApiMarketSource,
    StaticMarketSource,
    market_from_dict,
)
from keeper.types import Market
from pendle_arbitrage.exceptions import DataError, NetworkError


def api_entry(i: int, **overrides):
    entry = {
        "address": f"0x{i:040x}",
        "name": f"PT-{i}",
        "expiry": "2030-06-26T00:00:00.000Z",
        "yt": {"address": f"0x{i + 1:040x}"},
        "pt": {"address": f"0x{i + 2:040x}"},
        "sy": {"address": f"0x{i + 3:040x}"},
        "underlyingAsset": {"address": f"0x{i + 4:040x}"},
        "liquidity": {"usd": 2_500_000.5},
        "isExpired": False,
    }
    entry.update(overrides)
    return entry


def mock_response(payload, status=200):
    response = Mock()
    response.status_code = status
    response.json.return_value = payload
    if status >= 400:
        response.raise_for_status.side_effect = requests.HTTPError(
            f"{status} error", response=response
        )
    else:
        response.raise_for_status.return_value = None
    return response


class TestStaticMarketSource:
    def test_defaults_to_known_arbitrum_markets(self):
        markets = StaticMarketSource().fetch()

        assert [m.name for m in markets] == ["wstETH-26DEC24", "rsETH-26DEC24"]
        assert len(markets) == len(KNOWN_ARBITRUM_MARKETS)
        assert all(m.liquidity_usd > 0 for m in markets)

    def test_configured_markets_take_precedence(self):
        market = market_from_dict(dict(KNOWN_ARBITRUM_MARKETS[1]))
        assert StaticMarketSource([market]).fetch() == [market]

    def test_fetch_returns_a_copy(self):
        source = StaticMarketSource()
        source.fetch().clear()
        assert len(source.fetch()) == 2


class TestMarketFromDict:
    def test_parses_iso_and_unix_expiry(self):
        iso = market_from_dict(dict(KNOWN_ARBITRUM_MARKETS[0], expiry="2024-12-26T00:00:00Z"))
        unix = market_from_dict(dict(KNOWN_ARBITRUM_MARKETS[0], expiry=1735171200))

        assert iso.expiry == 1735171200
        assert unix.expiry == 1735171200

    def test_naive_iso_expiry_is_utc(self):
        entry = dict(KNOWN_ARBITRUM_MARKETS[0], expiry="2024-12-26T00:00:00")
        assert market_from_dict(entry).expiry == 1735171200

    def test_naive_datetime_expiry_is_utc(self):
        entry = dict(KNOWN_ARBITRUM_MARKETS[0], expiry=datetime(2024, 12, 26))
        assert market_from_dict(entry).expiry == 1735171200

    def test_missing_field_raises_data_error(self):
        entry = dict(KNOWN_ARBITRUM_MARKETS[0])
        del entry["pt"]
        with pytest.raises(DataError):
            market_from_dict(entry)


class TestPendleApiMarketSource:
    @patch("keeper.market_data.requests.get")
    def test_parses_results(self, mock_get):
        mock_get.return_value = mock_response({"results": [api_entry(16), api_entry(32)]})
        source = PendleApiMarketSource(chain_id=42161)

        markets = source.fetch()

        assert len(markets) == 2
        assert markets[0].name == "PT-16"
        assert markets[0].liquidity_usd == pytest.approx(2_500_000.5)
        assert markets[0].expiry == 1908662400
        args, kwargs = mock_get.call_args
        assert args[0] == "https://api.pendle.finance/core/v1/42161/markets"
        assert kwargs["timeout"] == 10

    @patch("keeper.market_data.requests.get")
    def test_skips_malformed_entries(self, mock_get):
        broken_address = api_entry(48, address="0xnothex")
        missing_pt = api_entry(64)
        del missing_pt["pt"]
        mock_get.return_value = mock_response(
            {"results": [broken_address, missing_pt, "garbage", api_entry(80)]}
        )

        markets = PendleApiMarketSource().fetch()

        assert [m.name for m in markets] == ["PT-80"]

    @patch("keeper.market_data.requests.get")
    def test_accepts_chain_prefixed_ids(self, mock_get):
        entry = api_entry(16, pt="42161-0x" + "ab" * 20)
        mock_get.return_value = mock_response([entry])

        (market,) = PendleApiMarketSource().fetch()

        assert market.pt.lower() == "0x" + "ab" * 20

    @patch("keeper.market_data.requests.get")
    def test_http_error_becomes_network_error(self, mock_get):
        mock_get.return_value = mock_response({}, status=503)

        with pytest.raises(NetworkError) as exc_info:
            PendleApiMarketSource().fetch()
        assert exc_info.value.status_code == 503

    @patch("keeper.market_data.requests.get")
    def test_connection_error_becomes_network_error(self, mock_get):
        mock_get.side_effect = requests.ConnectionError("unreachable")
        with pytest.raises(NetworkError):
            PendleApiMarketSource().fetch()


class TestMarketDataFeed:
    def _markets(self):
        return [market_from_dict(dict(m)) for m in KNOWN_ARBITRUM_MARKETS]

    def test_drops_markets_expired_on_chain(self):
        wst, rs = self._markets()
        reader = Mock()
        reader.is_expired.side_effect = lambda m: m.name == wst.name

        active = MarketDataFeed(StaticMarketSource([wst, rs]), reader).refresh()

        assert active == [rs]

    def test_failed_expiry_check_keeps_market(self):
        markets = self._markets()
        reader = Mock()
        reader.is_expired.side_effect = TimeoutError("rpc timeout")

        active = MarketDataFeed(StaticMarketSource(markets), reader).refresh()

        assert active == markets

    def test_drops_feed_flagged_expired(self):
        wst, rs = self._markets()
        flagged = Market(**{**wst.__dict__, "is_expired": True})

        active = MarketDataFeed(StaticMarketSource([flagged, rs])).refresh()

        assert active == [rs]

    def test_source_failure_yields_no_markets(self):
        source = Mock()
        source.fetch.side_effect = NetworkError("api down")

        assert MarketDataFeed(source).refresh() == []
