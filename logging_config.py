"""
Logging configuration for the keeper process.

Usage:
    import logging_config
    logging_config.setup()
"""

import logging
import sys


def setup(level=logging.INFO):
    """
    Configure process-wide logging.

    - Uses shorter timestamp format (HH:MM:SS instead of full datetime)
    - Quiets HTTP client and web3 provider chatter
    """

    # Root logger - minimal format
    root = logging.getLogger()
    root.setLevel(level)

    # Clear existing handlers
    root.handlers.clear()

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(level)

    formatter = logging.Formatter(
        fmt="%(asctime)s | %(levelname)-7s | %(message)s", datefmt="%H:%M:%S"
    )
    console.setFormatter(formatter)
    root.addHandler(console)

    # Suppress noisy loggers
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("web3.providers").setLevel(logging.WARNING)
    logging.getLogger("web3.RequestManager").setLevel(logging.WARNING)

    # Module loggers pin their own level and handler on creation; reset both
    # so every record goes through the root handler once
    logging.getLogger("__main__").setLevel(level)
    for name in list(logging.root.manager.loggerDict):
        if name.startswith(("keeper", "pendle_arbitrage")):
            logger = logging.getLogger(name)
            logger.handlers.clear()
            logger.setLevel(level)


def setup_debug():
    """
    Verbose logging for debugging, including each contract stage transition.
    """
    setup(level=logging.DEBUG)
