"""Unit tests for display formatting helpers."""

import pytest

from fleetopt.reporting import format_currency, format_distance, format_duration, format_fuel


class TestFormatCurrency:

    @pytest.mark.parametrize("usd,expected", [
        (1_250_000, "$1.3M"),
        (4200, "$4K"),
        (1500, "$2K"),
        (850, "$850"),
        (0, "$0"),
    ])
    def test_format(self, usd, expected):
        assert format_currency(usd) == expected


class TestFormatDistance:

    @pytest.mark.parametrize("nm,expected", [
        (150.4, "150 nm"),
        (100.0, "100 nm"),
        (42.26, "42.3 nm"),
        (0.0, "0.0 nm"),
    ])
    def test_format(self, nm, expected):
        assert format_distance(nm) == expected


class TestFormatFuel:

    @pytest.mark.parametrize("liters,expected", [
        (2500, "2.5K L"),
        (1000, "1.0K L"),
        (850.4, "850 L"),
    ])
    def test_format(self, liters, expected):
        assert format_fuel(liters) == expected


class TestFormatDuration:

    @pytest.mark.parametrize("hours,expected", [
        (0.5, "30m"),
        (0.0, "0m"),
        (5.5, "5.5h"),
        (24.0, "1d 0h"),
        (50.0, "2d 2h"),
    ])
    def test_format(self, hours, expected):
        assert format_duration(hours) == expected

    def test_unreachable(self):
        assert format_duration(float('inf')) == "n/a"
