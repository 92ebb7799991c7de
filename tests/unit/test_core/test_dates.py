#!/usr/bin/env python3
"""Tests for FinancialDate and timestamp helpers."""

from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo

import pytest

from expenses.core.dates import FinancialDate, format_timestamp, parse_timestamp


class TestFinancialDate:
    """Test FinancialDate construction and formatting."""

    def test_from_string(self):
        d = FinancialDate.from_string("2026-02-11")
        assert d.date == date(2026, 2, 11)
        assert d.to_iso_string() == "2026-02-11"
        assert str(d) == "2026-02-11"

    @pytest.mark.parametrize("bad", ["11/02/2026", "2026-2-11", "", "━━━━", "2026-02-30"])
    def test_from_string_rejects_non_iso(self, bad):
        with pytest.raises(ValueError):
            FinancialDate.from_string(bad)

    def test_weekday_code(self):
        assert FinancialDate.from_string("2026-02-09").weekday_code == "MON"
        assert FinancialDate.from_string("2026-02-11").weekday_code == "WED"
        assert FinancialDate.from_string("2026-02-15").weekday_code == "SUN"

    def test_ordering(self):
        assert FinancialDate.from_string("2026-01-31") < FinancialDate.from_string("2026-02-01")

    def test_from_timestamp_defaults_to_utc(self):
        d = FinancialDate.from_timestamp("2026-02-11T23:30:00.000Z")
        assert d.to_iso_string() == "2026-02-11"

    def test_from_timestamp_in_home_zone_crosses_midnight(self):
        """23:30 UTC in British Summer Time is already the next day in London."""
        d = FinancialDate.from_timestamp("2026-06-05T23:30:00.000Z", ZoneInfo("Europe/London"))
        assert d.to_iso_string() == "2026-06-06"
        assert d.weekday_code == "SAT"


class TestTimestamps:
    """Test RFC3339 parsing and formatting."""

    def test_parse_zulu_with_milliseconds(self):
        moment = parse_timestamp("2026-02-11T12:30:07.123Z")
        assert moment == datetime(2026, 2, 11, 12, 30, 7, 123000, tzinfo=timezone.utc)

    def test_parse_nanoseconds(self):
        moment = parse_timestamp("2026-02-11T12:30:07.123456789Z")
        assert moment.microsecond == 123456

    def test_parse_without_fraction(self):
        assert parse_timestamp("2026-02-11T12:30:07Z").second == 7

    def test_parse_naive_is_utc(self):
        assert parse_timestamp("2026-02-11T12:30:07").tzinfo == timezone.utc

    def test_format_timestamp(self):
        moment = datetime(2026, 2, 11, 12, 30, 7, 123456, tzinfo=timezone.utc)
        assert format_timestamp(moment) == "2026-02-11T12:30:07.123Z"
