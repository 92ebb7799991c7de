"""
Transaction Archive Package

Deduplicated long-term storage for classified live expenses.
"""

from .store import DEFAULT_ARCHIVE_PATH, TransactionArchive

__all__ = ["DEFAULT_ARCHIVE_PATH", "TransactionArchive"]
