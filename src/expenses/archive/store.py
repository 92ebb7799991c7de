#!/usr/bin/env python3
"""
Transaction Archive

Persistent, deduplicated history of classified Monzo expenses. The provider
only releases about 90 days of history after strong customer authentication,
so the archive is what keeps older live expenses visible.

The archive is one JSON document:

    {
      "expenses": [...newest first...],
      "lastUpdated": "2026-02-10T12:00:00.000Z",
      "oldestDate": "2026-01-05",
      "newestDate": "2026-02-10"
    }

Writes are read-merge-write at the document level without a cross-process
lock; concurrent syncs can lose each other's additions until the next sync.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Callable

from ..core.dates import format_timestamp
from ..core.errors import ArchiveUnavailable
from ..core.json_utils import dumps_json, loads_json
from ..core.blobstore import BlobStore
from ..core.models import Expense, ExpenseKey, sort_newest_first

logger = logging.getLogger(__name__)

DEFAULT_ARCHIVE_PATH = "transactions/monzo-expenses.json"


class TransactionArchive:
    """
    Read and merge the archived expense document.

    Args:
        blob_store: Backend holding the document
        path: Blob path of the document
        clock: Returns the current aware UTC datetime (for ``lastUpdated``)
    """

    def __init__(
        self,
        blob_store: BlobStore,
        path: str = DEFAULT_ARCHIVE_PATH,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self.blob_store = blob_store
        self.path = path
        self._clock = clock

    def load(self) -> list[Expense]:
        """
        Load archived expenses, newest first.

        Returns an empty list when the archive is absent or unreadable.
        """
        try:
            return self._read()
        except ArchiveUnavailable as e:
            logger.warning(f"Archive unavailable, continuing without it: {e}")
            return []

    def merge_and_persist(self, new_expenses: list[Expense]) -> list[Expense]:
        """
        Add ``new_expenses`` whose (date, merchant, amount) key is not archived yet.

        Returns:
            The merged archive, newest first

        Raises:
            ArchiveUnavailable: If the existing document cannot be read; merging
                against a falsely empty archive would overwrite history
        """
        existing = self._read()
        seen: set[ExpenseKey] = {e.key for e in existing}

        additions: list[Expense] = []
        for expense in new_expenses:
            if expense.key in seen:
                continue
            seen.add(expense.key)
            additions.append(expense)

        if not additions:
            logger.debug(f"No new expenses to archive ({len(existing)} already stored)")
            return existing

        merged = sort_newest_first(existing + additions)
        try:
            self.blob_store.put(self.path, dumps_json(self._document(merged)).encode("utf-8"))
            logger.info(f"Archived {len(additions)} new expenses ({len(merged)} total)")
        except ArchiveUnavailable as e:
            logger.error(f"Failed to write archive: {e}")
        return merged

    def _read(self) -> list[Expense]:
        raw = self.blob_store.get(self.path)
        if raw is None:
            return []

        try:
            document = loads_json(raw)
        except ValueError as e:
            raise ArchiveUnavailable(f"Archive document at {self.path} is not valid JSON: {e}") from e

        entries = document.get("expenses") if isinstance(document, dict) else None
        if not isinstance(entries, list):
            raise ArchiveUnavailable(f"Archive document at {self.path} has no expenses list")

        expenses: list[Expense] = []
        for entry in entries:
            try:
                expenses.append(Expense.from_dict(entry))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Skipping malformed archive entry: {e}")
        return sort_newest_first(expenses)

    def _document(self, expenses: list[Expense]) -> dict[str, Any]:
        dates = [e.date.to_iso_string() for e in expenses]
        return {
            "expenses": [e.to_dict() for e in expenses],
            "lastUpdated": format_timestamp(self._clock()),
            "oldestDate": min(dates) if dates else None,
            "newestDate": max(dates) if dates else None,
        }
