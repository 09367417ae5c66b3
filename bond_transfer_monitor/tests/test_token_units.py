"""
代币数量换算测试
"""

import pytest

from bond_transfer_monitor.utils.token_units import format_ether, format_units


@pytest.mark.parametrize("value,decimals,expected", [
    (10 * 10 ** 18, 18, "10"),
    (25 * 10 ** 17, 18, "2.5"),
    (1, 18, "0.000000000000000001"),
    (0, 18, "0"),
    (1_500_000, 6, "1.5"),
    (12345, 2, "123.45"),
    (700, 0, "700"),
    ("1000000000000000000", 18, "1"),
])
def test_format_units(value, decimals, expected):
    assert format_units(value, decimals) == expected


def test_format_ether():
    assert format_ether(3 * 10 ** 18) == "3"


@pytest.mark.parametrize("value,decimals,expected", [
    (10 ** 30 + 1, 18, "1000000000000.000000000000000001"),
    (12345678901 * 10 ** 18 + 123456789012345678, 18, "12345678901.123456789012345678"),
    (10 ** 30 + 1, 5, "10000000000000000000000000.00001"),
    (2 ** 256 - 1, 18, "115792089237316195423570985008687907853269984665640564039457.584007913129639935"),
    (2 ** 256 - 1, 0, str(2 ** 256 - 1)),
])
def test_format_units_keeps_every_digit(value, decimals, expected):
    assert format_units(value, decimals) == expected
