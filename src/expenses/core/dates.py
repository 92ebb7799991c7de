#!/usr/bin/env python3
"""
FinancialDate Primitive Type

Immutable date wrapper with consistent formatting across the CSV baseline,
the Monzo feed and the archive document.
"""

import re
from dataclasses import dataclass
from datetime import date, datetime, timezone, tzinfo

ISO_DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")

# Python's weekday(): Monday == 0
WEEKDAY_CODES = ("MON", "TUE", "WED", "THU", "FRI", "SAT", "SUN")


@dataclass(frozen=True, order=True)
class FinancialDate:
    """Immutable financial date wrapper with consistent formatting."""

    date: date

    @classmethod
    def from_string(cls, date_str: str) -> "FinancialDate":
        """
        Parse a strict ISO ``YYYY-MM-DD`` string.

        Raises:
            ValueError: If the string is not an ISO calendar date
        """
        if not ISO_DATE_PATTERN.match(date_str or ""):
            raise ValueError(f"Not an ISO date: {date_str!r}")
        return cls(date=datetime.strptime(date_str, "%Y-%m-%d").date())

    @classmethod
    def from_timestamp(cls, timestamp: str, tz: tzinfo | None = None) -> "FinancialDate":
        """
        Create from an RFC3339 timestamp such as Monzo's ``created`` field.

        Args:
            timestamp: e.g. "2026-02-10T12:31:07.123Z"
            tz: Time zone the calendar date is taken in (default: UTC)
        """
        moment = parse_timestamp(timestamp)
        return cls(date=moment.astimezone(tz or timezone.utc).date())

    @classmethod
    def today(cls) -> "FinancialDate":
        return cls(date=date.today())

    @property
    def weekday_code(self) -> str:
        """Three-letter weekday code, MON..SUN."""
        return WEEKDAY_CODES[self.date.weekday()]

    def to_iso_string(self) -> str:
        """Format as YYYY-MM-DD."""
        return self.date.isoformat()

    def __str__(self) -> str:
        return self.to_iso_string()

    def __repr__(self) -> str:
        return f"FinancialDate(date={self.date!r})"


def parse_timestamp(value: str) -> datetime:
    """
    Parse an RFC3339 timestamp into an aware datetime.

    Monzo emits a trailing ``Z`` and up to nanosecond precision, neither of which
    older ``fromisoformat`` implementations accept.
    """
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    match = re.match(r"^(.*T\d{2}:\d{2}:\d{2})(\.\d+)?(.*)$", text)
    if match:
        digits = (match.group(2) or ".")[1:]
        fraction = f".{digits[:6].ljust(6, '0')}" if digits else ""
        text = f"{match.group(1)}{fraction}{match.group(3)}"
    moment = datetime.fromisoformat(text)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment


def format_timestamp(moment: datetime) -> str:
    """Format an aware datetime as RFC3339 with a trailing Z."""
    return moment.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z"
