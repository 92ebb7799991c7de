"""
Expense Dashboard - work expenses from a CSV baseline and the Monzo feed

Reconciles an exported expense spreadsheet with live Monzo transactions,
keeping an archive of classified expenses beyond the provider's 90-day
history window.

Domain Packages:
- core: Money, dates, models, configuration, errors and blob storage
- monzo: OAuth token lifecycle, encrypted token vault and transaction fetching
- classify: Rule chain deciding which transactions are work expenses
- archive: Deduplicated long-term store of classified expenses
- baseline: CSV baseline loading and per-bucket totals
- sync: Sync orchestration and collaborator wiring
- cli: The ``expenses`` command

Example Usage:
    from expenses.core.config import get_config
    from expenses.sync import build_orchestrator

    summary = build_orchestrator(get_config()).sync(window_days=30)
"""

__version__ = "0.1.0"
__author__ = "Expense Dashboard Maintainers"

from .core.config import Environment, get_config
from .core.models import Expense, Summary

__all__ = [
    "Environment",
    "Expense",
    "Summary",
    "get_config",
]
