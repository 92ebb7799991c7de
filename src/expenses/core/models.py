#!/usr/bin/env python3
"""
Core Data Models for the Expense Dashboard

The normalized Expense record shared by the CSV baseline, the live Monzo feed
and the archive, plus the Summary handed to dashboard consumers.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .currency import DEFAULT_CURRENCY
from .dates import FinancialDate
from .money import Money

MEALS_CATEGORY = "Meals & Entertainment"
GENERAL_CATEGORY = "General"

NEW_LIVE_BUCKET = "new_live"
# Baseline expenses outside every configured date range
BASELINE_BUCKET = "baseline"

# (date, merchant, amount in pence)
ExpenseKey = tuple[str, str, int]


class ConnectionState(Enum):
    """Whether the summary includes a live fetch from the bank."""

    CONNECTED = "connected"
    DISCONNECTED = "disconnected"


@dataclass(frozen=True)
class Expense:
    """
    Normalized expense record.

    Identity for deduplication is the loose triple (date, merchant, amount);
    the provider's transaction id is not carried because the CSV baseline has
    nothing to join it against.
    """

    date: FinancialDate
    merchant: str
    amount: Money
    currency: str = DEFAULT_CURRENCY
    category: str = GENERAL_CATEGORY
    expense_type: str = "Other"
    purpose: str = ""
    location: str = ""
    receipt_attached: str = "No"
    notes: str = ""

    def __post_init__(self) -> None:
        if not self.amount.is_positive():
            raise ValueError(f"Expense amount must be positive, got {self.amount}")

    @property
    def weekday(self) -> str:
        """MON..SUN, derived from the date."""
        return self.date.weekday_code

    @property
    def key(self) -> ExpenseKey:
        """Deduplication key."""
        return (self.date.to_iso_string(), self.merchant, self.amount.to_pence())

    def to_dict(self) -> dict[str, Any]:
        """Convert to the archive/JSON document form."""
        return {
            "date": self.date.to_iso_string(),
            "day": self.weekday,
            "merchant": self.merchant,
            "amount": self.amount.to_major(),
            "currency": self.currency,
            "category": self.category,
            "expenseType": self.expense_type,
            "purpose": self.purpose,
            "location": self.location,
            "receiptAttached": self.receipt_attached,
            "notes": self.notes,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Expense":
        """
        Create Expense from its document form.

        Raises:
            ValueError: If the date is not ISO or the amount is not positive
            KeyError: If a required key is missing
        """
        currency = data.get("currency") or DEFAULT_CURRENCY
        return cls(
            date=FinancialDate.from_string(data["date"]),
            merchant=data["merchant"],
            amount=Money.from_major(data["amount"], currency=currency),
            currency=currency,
            category=data.get("category") or GENERAL_CATEGORY,
            expense_type=data.get("expenseType") or "Other",
            purpose=data.get("purpose") or "",
            location=data.get("location") or "",
            receipt_attached=data.get("receiptAttached") or "No",
            notes=data.get("notes") or "",
        )


@dataclass
class BucketTotal:
    """Running total for one summary bucket, kept in pence until rendered."""

    total: Money = field(default_factory=Money.zero)
    count: int = 0

    def add(self, expense: Expense) -> None:
        self.total = self.total + expense.amount
        self.count += 1

    def to_dict(self) -> dict[str, Any]:
        return {"total": self.total.to_major(), "count": self.count}


@dataclass
class Summary:
    """Result of one sync pass."""

    expenses: list[Expense]
    buckets: dict[str, BucketTotal]
    last_updated: str
    connection_state: ConnectionState
    cached: bool = False
    cache_age: int | None = None
    step_up_required: bool = False
    reauthorization_required: bool = False

    @property
    def total(self) -> Money:
        """Grand total: the sum of every bucket total."""
        grand = Money.zero()
        for bucket in self.buckets.values():
            grand = grand + bucket.total
        return grand

    @property
    def count(self) -> int:
        return len(self.expenses)

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-ready dict."""
        result: dict[str, Any] = {
            "expenses": [e.to_dict() for e in self.expenses],
            "total": self.total.to_major(),
            "count": self.count,
            "buckets": {name: bucket.to_dict() for name, bucket in self.buckets.items()},
            "last_updated": self.last_updated,
            "cached": self.cached,
            "connection_state": self.connection_state.value,
            "step_up_required": self.step_up_required,
            "reauthorization_required": self.reauthorization_required,
        }
        if self.cache_age is not None:
            result["cache_age"] = self.cache_age
        return result


def expense_keys(expenses: list[Expense]) -> set[ExpenseKey]:
    """Collect the deduplication keys of a list of expenses."""
    return {e.key for e in expenses}


def sort_newest_first(expenses: list[Expense]) -> list[Expense]:
    """Stable sort by date, newest first."""
    return sorted(expenses, key=lambda e: e.date, reverse=True)
