#!/usr/bin/env python3
"""Tests for pence-based currency helpers."""

from decimal import Decimal

import pytest

from expenses.core.currency import (
    format_pence,
    major_to_pence,
    minor_units_to_pence,
    parse_pounds_to_pence,
    pence_to_major,
    pence_to_pounds_str,
)


class TestPenceFormatting:
    """Test integer-only rendering of pence."""

    @pytest.mark.currency
    def test_pence_to_pounds_str(self):
        assert pence_to_pounds_str(850) == "8.50"
        assert pence_to_pounds_str(5) == "0.05"
        assert pence_to_pounds_str(0) == "0.00"
        assert pence_to_pounds_str(-1234) == "-12.34"

    @pytest.mark.currency
    def test_format_pence_uses_currency_symbol(self):
        assert format_pence(850) == "£8.50"
        assert format_pence(850, "EUR") == "€8.50"
        assert format_pence(850, "CHF") == "CHF 8.50"


class TestParsing:
    """Test parsing of pound amounts from text and JSON numbers."""

    @pytest.mark.currency
    def test_parse_plain_and_symbol_amounts(self):
        assert parse_pounds_to_pence("8.5") == 850
        assert parse_pounds_to_pence("£1,234.56") == 123456
        assert parse_pounds_to_pence("12") == 1200

    @pytest.mark.currency
    def test_parse_rounds_half_up(self):
        assert parse_pounds_to_pence("0.125") == 13

    @pytest.mark.currency
    @pytest.mark.parametrize("bad", ["", "abc", "£", "nan", "inf"])
    def test_parse_rejects_non_numbers(self, bad):
        with pytest.raises(ValueError):
            parse_pounds_to_pence(bad)

    @pytest.mark.currency
    def test_major_to_pence_avoids_float_error(self):
        # 9.2 * 100 == 919.9999999999999 in binary floating point
        assert major_to_pence(9.2) == 920
        assert major_to_pence(0.1) == 10
        assert major_to_pence(7) == 700
        assert major_to_pence(Decimal("3.335")) == 334

    @pytest.mark.currency
    def test_major_to_pence_rejects_booleans(self):
        with pytest.raises(ValueError):
            major_to_pence(True)


class TestConversions:
    """Test Monzo minor units and JSON rendering."""

    @pytest.mark.currency
    def test_minor_units_to_pence_is_unsigned(self):
        assert minor_units_to_pence(-850) == 850
        assert minor_units_to_pence(850) == 850

    @pytest.mark.currency
    def test_pence_to_major_is_two_decimal(self):
        assert pence_to_major(2095) == 20.95
        assert pence_to_major(1) == 0.01
        assert pence_to_major(0) == 0.0
