#!/usr/bin/env python3
"""
Run the Pendle flash-loan arbitrage keeper.

MODES:
  1. Live (default): read markets over RPC, submit executeArb to the deployed
     contract. Requires PRIVATE_KEY and ARB_CONTRACT_ADDRESS.
  2. Simulation: picked automatically when no contract code is deployed at
     ARB_CONTRACT_ADDRESS; logs what would be executed.
  3. Sandbox (--sandbox): runs the full cycle against an in-process simulated
     Pendle deployment. No RPC, no keys.

Usage:
  python run_keeper.py --config configs/keeper_arbitrum.yaml
  python run_keeper.py --sandbox --once

Environment Variables:
  ARBITRUM_RPC_URL, PRIVATE_KEY, ARB_CONTRACT_ADDRESS, BALANCER_VAULT,
  PENDLE_ROUTER_V4, MIN_PROFIT_BPS, MAX_FLASH_AMOUNT, POLLING_INTERVAL_MS,
  MIN_LIQUIDITY_USD, GAS_PRICE_GWEI
"""

import argparse
import asyncio
import signal
import sys

from eth_account import Account
from web3 import Web3

import logging_config
from keeper.config import KeeperConfig, load_config
from keeper.executor import DryRunExecutor, LedgerExecutor, Web3Executor, verify_deployment
from keeper.market_data import MarketDataFeed, PendleApiMarketSource, StaticMarketSource
from keeper.metrics import KeeperMetrics
from keeper.reserves import LedgerMarketReader, Web3MarketReader
from keeper.runner import KeeperRunner
from keeper.scanner import OpportunityScanner
from keeper.types import Market
from pendle_arbitrage.chain import QuotedCurve, build_environment
from pendle_arbitrage.exceptions import ConfigurationError, ExecutionError
from pendle_arbitrage.utils import WAD, get_logger

logger = get_logger(__name__)


def parse_args(argv=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Pendle flash-loan arbitrage keeper",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to keeper config YAML file (optional; env vars also work)",
    )
    parser.add_argument(
        "--sandbox",
        action="store_true",
        help="Run against an in-process simulated deployment",
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run one cycle and exit",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Verbose logging",
    )
    return parser.parse_args(argv)


def build_sandbox(config: KeeperConfig):
    """
    Wire the keeper to a simulated wstETH deployment.

    Reserves are skewed towards SY so the model sees a spread, and the market
    quotes a crossed book so the round trip actually pays.
    """
    deployment = build_environment(
        sy_reserve=1_100_000 * WAD,
        pt_reserve=1_000_000 * WAD,
        curve=QuotedCurve(sell_price=108 * WAD // 100, buy_price=WAD),
    )
    market = Market(
        address=deployment.market.address,
        name="wstETH-sandbox",
        yt=deployment.yt.address,
        pt=deployment.pt.address,
        sy=deployment.sy.address,
        underlying=deployment.underlying.address,
        expiry=deployment.yt.expiry,
        liquidity_usd=10_000_000,
    )
    reader = LedgerMarketReader(deployment.chain)
    feed = MarketDataFeed(StaticMarketSource([market]), reader)
    executor = LedgerExecutor(
        deployment.chain,
        deployment.arb,
        deployment.owner,
        vault=deployment.vault.address,
        router=deployment.router.address,
        profit_capture_pct=config.profit_capture_pct,
    )
    return feed, reader, executor


def build_live(config: KeeperConfig):
    """
    Wire the keeper to a live chain.

    Raises:
        ConfigurationError: Missing key/contract, or wallet is not the owner
    """
    if not config.arb_contract_address:
        raise ConfigurationError("ARB_CONTRACT_ADDRESS not set")
    if not config.private_key:
        raise ConfigurationError("PRIVATE_KEY not set")

    web3 = Web3(Web3.HTTPProvider(config.rpc_url, request_kwargs={"timeout": 10}))
    reader = Web3MarketReader(web3)

    if config.market_source == "api":
        source = PendleApiMarketSource(config.pendle_api_url, config.chain_id)
    else:
        source = StaticMarketSource(config.markets or None)
    feed = MarketDataFeed(source, reader)

    wallet = Account.from_key(config.private_key).address
    logger.info(f"Wallet address: {wallet}")

    try:
        deployed = verify_deployment(web3, config.arb_contract_address, wallet)
    except ExecutionError as e:
        logger.warning(f"{e}; running in simulation mode")
        deployed = False

    if deployed:
        executor = Web3Executor(
            web3,
            config.arb_contract_address,
            config.private_key,
            vault=config.balancer_vault,
            router=config.pendle_router,
            profit_capture_pct=config.profit_capture_pct,
            gas_limit_buffer_pct=config.gas_limit_buffer_pct,
        )
    else:
        executor = DryRunExecutor(
            config.balancer_vault,
            config.pendle_router,
            profit_capture_pct=config.profit_capture_pct,
        )
    return feed, reader, executor


async def main(argv=None):
    """Main entry point."""
    args = parse_args(argv)
    if args.debug:
        logging_config.setup_debug()
    else:
        logging_config.setup()

    try:
        config = load_config(args.config)
        if args.once:
            config.once = True

        logger.info("Initializing Pendle Arbitrage Keeper...")
        if args.sandbox:
            feed, reader, executor = build_sandbox(config)
        else:
            feed, reader, executor = build_live(config)
    except ConfigurationError as e:
        logger.error(f"Fatal: {e}")
        sys.exit(1)

    runner = KeeperRunner(
        feed,
        OpportunityScanner.from_config(config, reader),
        executor,
        KeeperMetrics(),
        poll_sec=config.poll_sec,
        once=config.once,
    )
    logger.info(f"Keeper initialized successfully (mode={executor.mode})")

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, runner.stop)

    await runner.run()


def cli():
    asyncio.run(main())


if __name__ == "__main__":
    cli()
