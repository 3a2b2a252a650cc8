"""
Common utilities and helper functions for the Pendle arbitrage system.

Centralizes logger construction, duration formatting and the conversions
between on-chain integer amounts and Decimal token units.
"""

import logging
import time
from decimal import Decimal, localcontext
from typing import Union

WAD = 10**18

# Enough digits for any uint256 amount
UINT256_DIGITS = 78


# Timestamp utilities
def get_current_timestamp() -> float:
    """Get current Unix timestamp as float."""
    return time.time()


def format_duration(seconds: float) -> str:
    """Format duration in seconds to human-readable string."""
    if seconds < 60:
        return f"{seconds:.2f}s"
    elif seconds < 3600:
        minutes = seconds / 60
        return f"{minutes:.1f}m"
    else:
        hours = seconds / 3600
        return f"{hours:.1f}h"


# Token unit utilities
def to_units(raw: int, decimals: int = 18) -> Decimal:
    """Convert a raw on-chain integer amount to Decimal token units."""
    with localcontext() as ctx:
        ctx.prec = UINT256_DIGITS
        return Decimal(raw) / (Decimal(10) ** decimals)


def to_raw(amount: Union[Decimal, int, str], decimals: int = 18) -> int:
    """
    Convert Decimal token units to a raw on-chain integer amount.

    Fractions below one raw unit are truncated, matching how contracts floor.
    """
    with localcontext() as ctx:
        ctx.prec = UINT256_DIGITS
        scaled = Decimal(str(amount)) * (Decimal(10) ** decimals)
    return int(scaled.to_integral_value(rounding="ROUND_DOWN"))


# Logging utilities
def get_logger(name: str, level: Union[str, int] = logging.INFO) -> logging.Logger:
    """
    Get a logger with the project's line format.

    A handler is attached only while the root logger has none, and
    ``logging_config.setup`` removes it again, so each record is written once.

    Args:
        name: Logger name (typically __name__)
        level: Logging level
    """
    logger = logging.getLogger(name)

    if logger.level == logging.NOTSET:
        logger.setLevel(level)

    # Once the root logger is configured, records propagate to it instead
    if not logger.handlers and not logging.getLogger().handlers:
        handler = logging.StreamHandler()
        formatter = logging.Formatter(
            "%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s",
            datefmt="%H:%M:%S",
        )
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    return logger
