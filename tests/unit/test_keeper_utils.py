"""
Unit tests for pendle_arbitrage.utils
"""

import logging
from decimal import Decimal

import pytest

from pendle_arbitrage.utils import WAD, format_duration, get_logger, to_raw, to_units


class TestTokenUnits:
    def test_to_units(self):
        assert to_units(WAD) == Decimal(1)
        assert to_units(1_500_000, decimals=6) == Decimal("1.5")

    def test_to_raw(self):
        assert to_raw(Decimal("1000")) == 1000 * WAD
        assert to_raw("0.5", decimals=6) == 500_000
        assert to_raw(3) == 3 * WAD

    def test_to_raw_truncates_below_one_unit(self):
        assert to_raw(Decimal("1.0000009"), decimals=6) == 1_000_000

    def test_large_amounts_are_exact(self):
        raw = 12_345_678_901_234 * WAD + 987_654_321_987_654_321
        assert to_raw(to_units(raw)) == raw


class TestTimeFormatting:
    def test_format_duration(self):
        assert format_duration(5) == "5.00s"
        assert format_duration(90) == "1.5m"
        assert format_duration(7200) == "2.0h"


@pytest.fixture
def bare_root():
    """Root logger with no handlers, as before any logging setup."""
    root = logging.getLogger()
    saved = root.handlers[:]
    root.handlers.clear()
    yield root
    root.handlers[:] = saved


class TestGetLogger:
    def test_single_handler_on_repeat_calls(self, bare_root):
        logger = get_logger("keeper.test_single_handler")
        get_logger("keeper.test_single_handler")
        assert len(logger.handlers) == 1

    def test_no_handler_once_root_is_configured(self, bare_root):
        bare_root.addHandler(logging.NullHandler())
        assert get_logger("keeper.test_root_configured").handlers == []

    def test_default_level(self):
        assert get_logger("keeper.test_level").level == logging.INFO
