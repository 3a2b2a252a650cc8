"""
Configuration loading and validation for the Pendle arbitrage keeper.

Settings come from an optional YAML file and are then overridden by
environment variables (a ``.env`` file is honored via python-dotenv), so a
deployment can run from environment alone.
"""

import os
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional

import yaml
from dotenv import load_dotenv
from web3 import Web3

from pendle_arbitrage.exceptions import ConfigurationError, DataError

from .market_data import market_from_dict
from .types import Market

DEFAULT_RPC_URL = "https://arb1.arbitrum.io/rpc"
DEFAULT_BALANCER_VAULT = "0xBA12222222228d8Ba445958a75a0704d566BF2C8"
DEFAULT_PENDLE_ROUTER = "0x888888888889758F76e7103c6CbF23ABbF58F946"
DEFAULT_PENDLE_API_URL = "https://api.pendle.finance/core/v1"
DEFAULT_TRADE_SIZES = ["10", "100", "1000", "10000"]

# env var -> (config key, parser)
ENV_OVERRIDES = {
    "ARBITRUM_RPC_URL": ("rpc_url", str),
    "PRIVATE_KEY": ("private_key", str),
    "BALANCER_VAULT": ("balancer_vault", str),
    "PENDLE_ROUTER_V4": ("pendle_router", str),
    "MIN_PROFIT_BPS": ("min_profit_bps", int),
    "MAX_FLASH_AMOUNT": ("max_flash_amount", str),
    "POLLING_INTERVAL_MS": ("poll_interval_ms", int),
    "ARB_CONTRACT_ADDRESS": ("arb_contract_address", str),
    "MIN_LIQUIDITY_USD": ("min_liquidity_usd", float),
    "GAS_PRICE_GWEI": ("gas_price_gwei", str),
}


class ConfigError(ConfigurationError):
    """Raised when config is invalid or missing required fields."""

    pass


class KeeperConfig:
    """
    Parsed and validated keeper configuration.

    Attributes:
        rpc_url: HTTP(S) RPC endpoint
        chain_id: Chain id used for the market-data API path
        private_key: Signing key (live mode only)
        arb_contract_address: Deployed arbitrage contract
        balancer_vault: Flash-loan source passed as ``vault`` in parameters
        pendle_router: Pendle router passed in parameters
        min_profit_bps: Minimum estimated profit rate to keep a size
        max_flash_amount: Largest size the scanner may propose (token units)
        poll_interval_ms: Sleep between polling cycles
        min_liquidity_usd: Markets below this are never scanned
        trade_sizes: Ladder of candidate sizes (token units)
        buy_slippage_pct: Flat allowance added to the buy-back leg estimate
        mint_redeem_cost_bps: Estimated mint + redeem cost
        gas_units: Gas quantity assumed per execution
        gas_price_gwei: Gas price used for the cost estimate
        profit_capture_pct: Share of expected profit required in min_underlying_out
        gas_limit_buffer_pct: Headroom added on top of estimateGas
        market_source: "static" (configured/known markets) or "api"
        pendle_api_url: Base URL of the market-data API
        markets: Statically configured markets
        once: If True, run a single cycle and exit
    """

    def __init__(self, config_dict: Dict[str, Any]):
        self.rpc_url: str = self._get_str(config_dict, "rpc_url", DEFAULT_RPC_URL)
        self.chain_id: int = self._int(config_dict.get("chain_id", 42161), "chain_id")
        self.private_key: Optional[str] = config_dict.get("private_key") or None
        self.arb_contract_address: Optional[str] = self._optional_address(
            config_dict.get("arb_contract_address")
        )
        self.balancer_vault: str = self._address(
            config_dict.get("balancer_vault", DEFAULT_BALANCER_VAULT), "balancer_vault"
        )
        self.pendle_router: str = self._address(
            config_dict.get("pendle_router", DEFAULT_PENDLE_ROUTER), "pendle_router"
        )

        # Opportunity thresholds
        self.min_profit_bps: int = self._int(
            config_dict.get("min_profit_bps", 15), "min_profit_bps"
        )
        self.max_flash_amount: Decimal = self._decimal(
            config_dict.get("max_flash_amount", "1000000"), "max_flash_amount"
        )
        self.min_liquidity_usd: float = self._float(
            config_dict.get("min_liquidity_usd", 0), "min_liquidity_usd"
        )
        self.trade_sizes: List[Decimal] = [
            self._decimal(s, "trade_sizes")
            for s in config_dict.get("trade_sizes", DEFAULT_TRADE_SIZES)
        ]

        # Cost model
        self.buy_slippage_pct: Decimal = self._decimal(
            config_dict.get("buy_slippage_pct", "2"), "buy_slippage_pct"
        )
        self.mint_redeem_cost_bps: Decimal = self._decimal(
            config_dict.get("mint_redeem_cost_bps", "20"), "mint_redeem_cost_bps"
        )
        self.gas_units: int = self._int(config_dict.get("gas_units", 500_000), "gas_units")
        self.gas_price_gwei: Decimal = self._decimal(
            config_dict.get("gas_price_gwei", "0.1"), "gas_price_gwei"
        )

        # Execution
        self.profit_capture_pct: int = self._int(
            config_dict.get("profit_capture_pct", 80), "profit_capture_pct"
        )
        self.gas_limit_buffer_pct: int = self._int(
            config_dict.get("gas_limit_buffer_pct", 20), "gas_limit_buffer_pct"
        )

        # Loop
        self.poll_interval_ms: int = self._int(
            config_dict.get("poll_interval_ms", 5000), "poll_interval_ms"
        )
        self.once: bool = bool(config_dict.get("once", False))

        # Market data
        self.market_source: str = config_dict.get("market_source", "static")
        if self.market_source not in ("static", "api"):
            raise ConfigError(
                f"market_source must be 'static' or 'api', got '{self.market_source}'"
            )
        self.pendle_api_url: str = config_dict.get("pendle_api_url", DEFAULT_PENDLE_API_URL)
        self.markets: List[Market] = self._parse_markets(config_dict.get("markets", []))

        self._validate()

    def _validate(self) -> None:
        if self.min_profit_bps < 0:
            raise ConfigError(f"min_profit_bps must be >= 0: {self.min_profit_bps}")
        if self.max_flash_amount <= 0:
            raise ConfigError(f"max_flash_amount must be positive: {self.max_flash_amount}")
        if not self.trade_sizes or any(s <= 0 for s in self.trade_sizes):
            raise ConfigError("trade_sizes must be a non-empty list of positive sizes")
        if self.poll_interval_ms <= 0:
            raise ConfigError(f"poll_interval_ms must be positive: {self.poll_interval_ms}")
        if not 0 <= self.profit_capture_pct <= 100:
            raise ConfigError(
                f"profit_capture_pct must be in [0, 100]: {self.profit_capture_pct}"
            )

    @staticmethod
    def _get_str(d: Dict, key: str, default: str) -> str:
        val = d.get(key, default)
        if not isinstance(val, str) or not val.strip():
            raise ConfigError(f"Config field '{key}' must be a non-empty string")
        return val

    @staticmethod
    def _int(value: Any, key: str) -> int:
        try:
            return int(value)
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Config field '{key}' is not an integer: {value!r}") from e

    @staticmethod
    def _float(value: Any, key: str) -> float:
        try:
            return float(value)
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Config field '{key}' is not a number: {value!r}") from e

    @staticmethod
    def _decimal(value: Any, key: str) -> Decimal:
        try:
            return Decimal(str(value))
        except ArithmeticError as e:
            raise ConfigError(f"Config field '{key}' is not a number: {value!r}") from e

    @staticmethod
    def _address(value: Any, key: str) -> str:
        try:
            return Web3.to_checksum_address(value)
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Config field '{key}' is not an address: {value!r}") from e

    @classmethod
    def _optional_address(cls, value: Any) -> Optional[str]:
        if not value:
            return None
        return cls._address(value, "arb_contract_address")

    @classmethod
    def _parse_markets(cls, markets_raw: List[Any]) -> List[Market]:
        """Parse and validate statically configured markets."""
        if not isinstance(markets_raw, list):
            raise ConfigError("markets must be a list")

        markets = []
        for i, m in enumerate(markets_raw):
            if not isinstance(m, dict):
                raise ConfigError(f"Market config {i} must be a dict")
            missing = [
                k for k in ("address", "name", "yt", "pt", "sy", "underlying") if not m.get(k)
            ]
            if missing:
                raise ConfigError(f"Market config {i} missing fields: {', '.join(missing)}")
            try:
                markets.append(market_from_dict(m))
            except DataError as e:
                raise ConfigError(f"Market config {i} is invalid: {e}") from e
        return markets

    @property
    def poll_sec(self) -> float:
        return self.poll_interval_ms / 1000.0


def apply_env_overrides(
    config_dict: Dict[str, Any], env: Mapping[str, str]
) -> Dict[str, Any]:
    """Return a copy of ``config_dict`` with recognised env vars applied."""
    merged = dict(config_dict)
    for env_key, (config_key, parser) in ENV_OVERRIDES.items():
        raw = env.get(env_key)
        if raw is None or raw == "":
            continue
        try:
            merged[config_key] = parser(raw)
        except ValueError as e:
            raise ConfigError(f"Environment variable {env_key} is invalid: {raw!r}") from e
    return merged


def load_config(
    config_path: Optional[str] = None,
    env: Optional[Mapping[str, str]] = None,
    use_dotenv: bool = True,
) -> KeeperConfig:
    """
    Load and validate config from an optional YAML file plus the environment.

    Args:
        config_path: Path to config YAML file (optional)
        env: Environment mapping (defaults to os.environ)
        use_dotenv: Load a ``.env`` file into os.environ first

    Returns:
        Validated KeeperConfig instance

    Raises:
        ConfigError: If config invalid or file not found
    """
    if use_dotenv:
        load_dotenv()

    config_dict: Dict[str, Any] = {}
    if config_path:
        if not os.path.exists(config_path):
            raise ConfigError(f"Config file not found: {config_path}")
        try:
            with open(config_path, "r") as f:
                config_dict = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Failed to parse YAML: {e}") from e
        if not isinstance(config_dict, dict):
            raise ConfigError("Config file must contain a YAML dictionary")

    return KeeperConfig(apply_env_overrides(config_dict, os.environ if env is None else env))
