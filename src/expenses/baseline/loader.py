#!/usr/bin/env python3
"""
CSV Baseline Loader

Loads the historical expense export (the baseline) and totals it per
configured date-range bucket.

The export is an 11-column CSV:

    Date,Day,Merchant,Amount,Currency,Category,Expense Type,Purpose,Location,Receipt Attached,Notes

interleaved with decorative separator lines (``━━━``, ``═══``, ``>>>``) and
repeated header rows. Only rows whose first column is an ISO date and whose
amount is a positive number are kept.
"""

import logging
from pathlib import Path
from typing import Protocol

import pandas as pd

from ..core.config import BaselineBucket
from ..core.dates import ISO_DATE_PATTERN, FinancialDate
from ..core.errors import BaselineUnavailable
from ..core.models import BASELINE_BUCKET, BucketTotal, Expense, sort_newest_first

logger = logging.getLogger(__name__)

CSV_COLUMNS = [
    "date",
    "day",
    "merchant",
    "amount",
    "currency",
    "category",
    "expenseType",
    "purpose",
    "location",
    "receiptAttached",
    "notes",
]


class BaselineSource(Protocol):
    """Provider of historical, already-documented expenses."""

    def load_baseline(self) -> list[Expense]: ...

    def bucket_totals(self, expenses: list[Expense]) -> dict[str, BucketTotal]: ...


def bucket_totals(expenses: list[Expense], buckets: list[BaselineBucket]) -> dict[str, BucketTotal]:
    """
    Total expenses into the first bucket whose date range contains them.

    Every configured bucket appears in the result, empty ones included.
    Expenses outside all ranges go to the ``baseline`` bucket, which is
    present whenever it is non-empty or no buckets are configured, so the
    bucket totals always cover every baseline expense.
    """
    totals = {bucket.name: BucketTotal() for bucket in buckets}
    if not buckets:
        totals[BASELINE_BUCKET] = BucketTotal()
    for expense in expenses:
        for bucket in buckets:
            if bucket.contains(expense.date.date):
                totals[bucket.name].add(expense)
                break
        else:
            totals.setdefault(BASELINE_BUCKET, BucketTotal()).add(expense)
    return totals


class CsvBaselineSource:
    """
    Baseline read from the expense CSV export.

    Args:
        csv_path: Location of the export; None or a missing file means an
            empty baseline
        buckets: Named date ranges used for per-bucket totals
    """

    def __init__(self, csv_path: Path | None, buckets: list[BaselineBucket] | None = None):
        self.csv_path = Path(csv_path) if csv_path else None
        self.buckets = list(buckets or [])

    def load_baseline(self) -> list[Expense]:
        """
        Parse the export into expenses, newest first.

        Raises:
            BaselineUnavailable: If the file exists but cannot be read
        """
        if self.csv_path is None or not self.csv_path.exists():
            logger.info(f"Baseline CSV not found at {self.csv_path}; using live data only")
            return []

        try:
            df = pd.read_csv(
                self.csv_path,
                header=None,
                names=CSV_COLUMNS,
                dtype=str,
                keep_default_na=False,
                skip_blank_lines=True,
                on_bad_lines="skip",
                engine="python",
            )
        except pd.errors.EmptyDataError:
            logger.info(f"Baseline CSV {self.csv_path} is empty")
            return []
        except (OSError, UnicodeDecodeError, pd.errors.ParserError) as e:
            raise BaselineUnavailable(f"Cannot read baseline CSV {self.csv_path}: {e}") from e

        # Short rows are padded with NaN
        df = df.fillna("")

        expenses: list[Expense] = []
        skipped = 0
        for row in df.to_dict(orient="records"):
            expense = self._row_to_expense(row)
            if expense is None:
                skipped += 1
                continue
            expenses.append(expense)

        logger.info(f"Loaded {len(expenses)} baseline expenses from {self.csv_path} (skipped {skipped} rows)")
        return sort_newest_first(expenses)

    def bucket_totals(self, expenses: list[Expense]) -> dict[str, BucketTotal]:
        return bucket_totals(expenses, self.buckets)

    @staticmethod
    def _row_to_expense(row: dict[str, str]) -> Expense | None:
        """Convert one CSV row, or None for separator, header and junk rows."""
        date_str = (row.get("date") or "").strip()
        if not ISO_DATE_PATTERN.match(date_str):
            return None

        record = {key: (value or "").strip() for key, value in row.items()}
        try:
            expense = Expense.from_dict(record)
        except (KeyError, ValueError) as e:
            logger.debug(f"Skipping baseline row dated {date_str}: {e}")
            return None

        # "Day" column is informational; the weekday is always derived from the date
        if record["day"] and record["day"].upper()[:3] != expense.weekday:
            logger.debug(f"Baseline row {date_str} says {record['day']}, date is a {expense.weekday}")
        return expense


def last_covered_date(expenses: list[Expense]) -> FinancialDate | None:
    """Newest date the baseline documents, or None for an empty baseline."""
    return max((e.date for e in expenses), default=None)
