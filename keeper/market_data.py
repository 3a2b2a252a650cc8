"""
Market discovery for the keeper.

Two sources produce candidate markets:

- ``StaticMarketSource``: markets from config, or the built-in Arbitrum list
- ``PendleApiMarketSource``: the Pendle HTTP API

``MarketDataFeed`` wraps a source and drops markets whose YT reports expired
on-chain. A failed expiry check keeps the market; the scanner's own expiry
filter and the model's failure tolerance still apply downstream.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import requests
from web3 import Web3

from pendle_arbitrage.exceptions import DataError, NetworkError
from pendle_arbitrage.utils import get_logger

from .types import Market

logger = get_logger(__name__)

# Liquid Pendle markets on Arbitrum, used when nothing is configured
KNOWN_ARBITRUM_MARKETS: List[Dict[str, Any]] = [
    {
        "address": "0x2FCb47B58350cD377f94d3821e7373Df60bD9Ced",
        "name": "wstETH-26DEC24",
        "yt": "0x4ba89e3584710cf5f7f1b541cb2b989d53a64355",
        "pt": "0x1c085195437738d73d75DC64bC5A3E098b7f93b1",
        "sy": "0x80c12D5b6Cc494632Bf11b03F09436c489B7b5C3",
        "underlying": "0x5979D7b546E38E414F7E9822514be443A4800529",
        "liquidity_usd": 10_000_000,
    },
    {
        "address": "0x34280882267fFA6383b363e278B027bE083bbe21",
        "name": "rsETH-26DEC24",
        "yt": "0xacc8B10daebE0F22dFDC3b25ba2506d96Ed86663",
        "pt": "0xb72e76Ef2A0d08c5c4B1a1D4529d4F6aCDc8Bf37",
        "sy": "0xd2605A61F730e01Dd454Db4e46d0Df8a7Ab090b7",
        "underlying": "0x4186BFC76E2E237523CBC30FD220FE055156b41F",
        "liquidity_usd": 5_000_000,
    },
]


def _parse_expiry(value: Any) -> int:
    """
    Accept unix seconds or an ISO-8601 timestamp; 0 when absent.

    Timestamps without an offset are read as UTC.
    """
    if value in (None, ""):
        return 0
    if isinstance(value, (int, float)):
        return int(value)
    if not isinstance(value, datetime):
        value = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return int(value.timestamp())


def market_from_dict(entry: Dict[str, Any]) -> Market:
    """
    Build a Market from a flat dict (config or built-in list).

    Raises:
        DataError: If a required field is missing or an address is invalid
    """
    try:
        return Market(
            address=Web3.to_checksum_address(entry["address"]),
            name=str(entry.get("name") or entry["address"]),
            yt=Web3.to_checksum_address(entry["yt"]),
            pt=Web3.to_checksum_address(entry["pt"]),
            sy=Web3.to_checksum_address(entry["sy"]),
            underlying=Web3.to_checksum_address(entry["underlying"]),
            expiry=_parse_expiry(entry.get("expiry")),
            liquidity_usd=float(entry.get("liquidity_usd") or 0),
            is_expired=bool(entry.get("is_expired", False)),
        )
    except (KeyError, TypeError, ValueError) as e:
        raise DataError(f"Malformed market entry: {e}", source="static") from e


class StaticMarketSource:
    """Fixed list of markets."""

    def __init__(self, markets: Optional[List[Market]] = None):
        self.markets = list(markets) if markets else [
            market_from_dict(m) for m in KNOWN_ARBITRUM_MARKETS
        ]

    def fetch(self) -> List[Market]:
        return list(self.markets)


class PendleApiMarketSource:
    """
    Markets from the Pendle core API.

    Entries missing any contract address, or carrying an invalid one, are
    skipped with a warning rather than failing the whole fetch.
    """

    def __init__(
        self,
        base_url: str = "https://api.pendle.finance/core/v1",
        chain_id: int = 42161,
        timeout: float = 10,
        limit: int = 100,
    ):
        self.base_url = base_url.rstrip("/")
        self.chain_id = chain_id
        self.timeout = timeout
        self.limit = limit

    @property
    def url(self) -> str:
        return f"{self.base_url}/{self.chain_id}/markets"

    def fetch(self) -> List[Market]:
        """
        Raises:
            NetworkError: If the API is unreachable or returns a non-2xx status
        """
        try:
            response = requests.get(
                self.url, params={"limit": self.limit, "skip": 0}, timeout=self.timeout
            )
            response.raise_for_status()
            data = response.json()
        except requests.RequestException as e:
            status = getattr(getattr(e, "response", None), "status_code", None)
            raise NetworkError(
                f"Pendle API request failed: {e}", endpoint=self.url, status_code=status
            ) from e
        except ValueError as e:
            raise NetworkError(
                f"Pendle API returned invalid JSON: {e}", endpoint=self.url
            ) from e

        entries = data.get("results", []) if isinstance(data, dict) else data
        markets = []
        for entry in entries or []:
            market = self._parse_entry(entry)
            if market is not None:
                markets.append(market)
        logger.debug(f"Pendle API returned {len(markets)} usable markets")
        return markets

    @staticmethod
    def _address_of(entry: Dict[str, Any], key: str) -> str:
        value = entry[key]
        if isinstance(value, dict):
            value = value["address"]
        # API ids sometimes carry a "<chainId>-" prefix
        if isinstance(value, str) and "-" in value:
            value = value.split("-", 1)[1]
        return Web3.to_checksum_address(value)

    def _parse_entry(self, entry: Any) -> Optional[Market]:
        try:
            liquidity = entry.get("liquidity") or {}
            return Market(
                address=self._address_of(entry, "address"),
                name=str(entry.get("name") or entry.get("symbol") or entry["address"]),
                yt=self._address_of(entry, "yt"),
                pt=self._address_of(entry, "pt"),
                sy=self._address_of(entry, "sy"),
                underlying=self._address_of(entry, "underlyingAsset"),
                expiry=_parse_expiry(entry.get("expiry")),
                liquidity_usd=float(
                    liquidity.get("usd", 0) if isinstance(liquidity, dict) else liquidity
                ),
                is_expired=bool(entry.get("isExpired", False)),
            )
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            logger.warning(f"Skipping malformed market entry: {e}")
            return None


class MarketDataFeed:
    """
    Produces the active market list for each polling cycle.

    Args:
        source: Object with a ``fetch() -> List[Market]`` method
        reader: Optional reader with ``is_expired(market)`` for on-chain checks
    """

    def __init__(self, source, reader=None):
        self.source = source
        self.reader = reader

    def refresh(self) -> List[Market]:
        try:
            markets = self.source.fetch()
        except (NetworkError, DataError) as e:
            logger.error(f"Error fetching markets: {e}")
            return []

        active = []
        for market in markets:
            if market.is_expired:
                continue
            if self.reader is not None:
                try:
                    if self.reader.is_expired(market):
                        logger.debug(f"{market.name} expired on-chain, dropping")
                        continue
                except Exception as e:
                    logger.debug(f"Expiry check failed for {market.name}, keeping: {e}")
            active.append(market)

        logger.info(f"Found {len(active)} active markets")
        return active
