import math

import pytest

from haulquote.utils.formatters import (
    format_container_size,
    format_currency,
    format_decimal_percentage,
    format_number,
    format_percentage,
    format_status,
    is_valid_number,
    safe_number,
)


class TestFormatters:
    def test_currency(self):
        assert format_currency(1234.5) == "$1,234.50"
        assert format_currency(-5) == "($5.00)"
        assert format_currency(None) == "N/A"
        assert format_currency(math.nan) == "N/A"

    def test_percentages(self):
        assert format_percentage(8.25) == "8.25%"
        assert format_percentage(4, decimal_places=0) == "4%"
        assert format_decimal_percentage(0.0825) == "8.25%"
        assert format_percentage(None) == "N/A"

    def test_number(self):
        assert format_number(17.3212) == "17.32"
        assert format_number(1500, decimal_places=0) == "1,500"

    def test_container_size(self):
        assert format_container_size(" 4YD ") == "4YD"
        assert format_container_size("") == "N/A"

    @pytest.mark.parametrize("status,expected", [
        ("serviceable", "Serviceable - Quote Generated"),
        ("manual-review", "Manual Review Required"),
        ("not-serviceable", "Not Serviceable"),
        ("pending", "Unknown Status"),
    ])
    def test_status(self, status, expected):
        assert format_status(status) == expected


class TestNumbers:
    def test_is_valid_number(self):
        assert is_valid_number(3)
        assert is_valid_number(2.5)
        assert not is_valid_number(True)
        assert not is_valid_number(math.inf)
        assert not is_valid_number("3")

    def test_safe_number(self):
        assert safe_number("12.5") == 12.5
        assert safe_number("12abc") == 0
        assert safe_number(None, fallback=-1) == -1
        assert safe_number(math.nan, fallback=7) == 7
